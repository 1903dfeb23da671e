# users/views.py
"""
User and role management endpoints (JSON).
"""
import csv
import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from shared.decorators.permissions import PermissionChecker, require_manage_users
from shared.helpers import parse_json_body

from .serializers import (
    CreateUserSerializer,
    PasswordResetSerializer,
    PermissionSerializer,
    RoleAssignmentSerializer,
    RoleSerializer,
)
from .services import UserManagementService

logger = logging.getLogger(__name__)

User = get_user_model()


def _academy_user(request, user_id):
    """Users are only reachable through the requester's academy."""
    return get_object_or_404(
        User.objects.filter(role_assignments__academy=request.academy).distinct(),
        pk=user_id,
    )


@login_required
def my_permissions_view(request):
    """Roles and permissions of the logged in user in the current academy."""
    academy = getattr(request, 'academy', None)
    return JsonResponse({
        'academy': academy.name if academy else None,
        'roles': PermissionChecker.get_user_roles(request.user, academy),
        'permissions': PermissionChecker.get_user_permissions(request.user, academy),
    })


@require_manage_users
def user_list_view(request):
    return JsonResponse({'users': UserManagementService.get_all_users(request.academy)})


@require_manage_users
@require_http_methods(["POST"])
def create_user_view(request):
    serializer = CreateUserSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    data = serializer.validated_data
    user = UserManagementService.create_user(
        email=data['email'],
        password=data['password'],
        academy=request.academy,
        first_name=data.get('first_name', ''),
        last_name=data.get('last_name', ''),
        role_name=data['role'].name if data.get('role') else None,
        created_by=request.user,
    )
    return JsonResponse({'success': True, 'id': user.id, 'email': user.email}, status=201)


@require_manage_users
def role_list_view(request):
    roles = UserManagementService.get_all_roles()
    return JsonResponse({'roles': RoleSerializer(roles, many=True).data})


@require_manage_users
def permission_list_view(request):
    permissions = UserManagementService.get_all_permissions()
    return JsonResponse({'permissions': PermissionSerializer(permissions, many=True).data})


@require_manage_users
@require_http_methods(["POST"])
def assign_role_view(request, user_id):
    user = _academy_user(request, user_id)
    serializer = RoleAssignmentSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    UserManagementService.assign_role(
        user, serializer.validated_data['role'].name, request.academy, assigned_by=request.user
    )
    return JsonResponse({
        'success': True,
        'roles': PermissionChecker.get_user_roles(user, request.academy),
    })


@require_manage_users
@require_http_methods(["POST"])
def remove_role_view(request, user_id):
    user = _academy_user(request, user_id)
    serializer = RoleAssignmentSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    removed = UserManagementService.remove_role(
        user, serializer.validated_data['role'].name, request.academy
    )
    return JsonResponse({'success': removed})


@require_manage_users
@require_http_methods(["POST"])
def reset_password_view(request, user_id):
    user = _academy_user(request, user_id)
    serializer = PasswordResetSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    UserManagementService.reset_password(user, serializer.validated_data['password'])
    return JsonResponse({'success': True})


@require_manage_users
@require_http_methods(["POST"])
def delete_user_view(request, user_id):
    user = _academy_user(request, user_id)
    UserManagementService.delete_user(user, requested_by=request.user)
    return JsonResponse({'success': True})


@require_manage_users
def export_users_view(request):
    """Export academy users and their roles to CSV."""
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = (
        f'attachment; filename="users_{request.academy.slug}_{timezone.now().date()}.csv"'
    )

    writer = csv.writer(response)
    writer.writerow(['Email', 'Name', 'Roles', 'Active', 'Last Login'])

    for row in UserManagementService.get_all_users(request.academy):
        writer.writerow([
            row['email'],
            row['name'],
            ', '.join(row['roles']),
            'Yes' if row['is_active'] else 'No',
            row['last_login'] or '',
        ])

    return response
