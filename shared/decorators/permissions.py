# shared/decorators/permissions.py
"""
UNIFIED PERMISSION SYSTEM
==========================

Core permission checking and decorators for role-based access control.
All permission logic flows through PermissionChecker for consistency.
"""

import logging
from functools import wraps
from typing import Callable, List, Optional

from django.apps import apps
from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse

logger = logging.getLogger(__name__)

SUPER_ADMIN_ROLE = 'super_admin'


# ============================================================================
# 1. PERMISSION CHECKER - SINGLE SOURCE OF TRUTH
# ============================================================================

class PermissionChecker:
    """Centralized permission validation used across entire system."""

    @staticmethod
    def is_super_admin(user) -> bool:
        return bool(user and user.is_authenticated and user.is_superuser)

    @staticmethod
    def get_user_roles(user, academy) -> List[str]:
        """Role names the user holds in the academy."""
        if PermissionChecker.is_super_admin(user):
            return [SUPER_ADMIN_ROLE]
        if not user or not user.is_authenticated or not academy:
            return []

        UserRoleAssignment = apps.get_model('users', 'UserRoleAssignment')
        return list(
            UserRoleAssignment.objects.filter(user=user, academy=academy)
            .values_list('role__name', flat=True)
        )

    @staticmethod
    def has_permission(user, permission: str, academy) -> bool:
        """
        Check if a user holds a permission in an academy.

        Hierarchy:
        1. Superusers → All permissions
        2. No academy context → No permissions
        3. Any role assigned in the academy that carries the permission
        """
        if not user or not user.is_authenticated:
            return False

        if PermissionChecker.is_super_admin(user):
            return True

        if not academy:
            return False

        RolePermission = apps.get_model('users', 'RolePermission')
        return RolePermission.objects.filter(
            role__assignments__user=user,
            role__assignments__academy=academy,
            permission__name=permission,
        ).exists()

    @staticmethod
    def get_user_permissions(user, academy) -> List[str]:
        """Effective permission names for the user in the academy."""
        Permission = apps.get_model('users', 'Permission')

        if PermissionChecker.is_super_admin(user):
            return list(Permission.objects.values_list('name', flat=True))
        if not user or not user.is_authenticated or not academy:
            return []

        return list(
            Permission.objects.filter(
                roles__assignments__user=user,
                roles__assignments__academy=academy,
            ).values_list('name', flat=True).distinct()
        )


# ============================================================================
# 2. HELPER FUNCTIONS
# ============================================================================

def _get_current_academy(request: HttpRequest) -> Optional['Academy']:
    """Get current academy from request."""
    # Priority 1: Academy from middleware
    academy = getattr(request, 'academy', None)
    if academy:
        return academy

    # Priority 2: User's current_academy
    if request.user.is_authenticated and getattr(request.user, 'current_academy', None):
        return request.user.current_academy

    return None


def _handle_permission_denied(request: HttpRequest, permission: str) -> HttpResponse:
    """Handle permission denied consistently."""
    if not request.user.is_authenticated:
        return JsonResponse({
            'success': False,
            'error': 'Authentication Required',
            'redirect': settings.LOGIN_URL + f'?next={request.path}',
        }, status=401)

    logger.warning(f"Permission denied: user {request.user.id} lacks {permission} on {request.path}")
    return JsonResponse({
        'success': False,
        'error': 'Permission Denied',
        'message': f"You don't have permission to {permission.replace('_', ' ')}",
    }, status=403)


# ============================================================================
# 3. CORE DECORATORS
# ============================================================================

def require_permission(permission: str, require_academy: bool = False) -> Callable:
    """Decorator to require specific permission for a view."""
    def decorator(view_func: Callable) -> Callable:
        @wraps(view_func)
        def _wrapped_view(request: HttpRequest, *args, **kwargs) -> HttpResponse:
            academy = _get_current_academy(request)

            if require_academy and academy is None and request.user.is_authenticated:
                return JsonResponse({
                    'success': False,
                    'error': 'Academy Context Required',
                    'message': 'Please select an academy to continue.',
                }, status=400)

            if not PermissionChecker.has_permission(request.user, permission, academy):
                return _handle_permission_denied(request, permission)

            request.academy = academy
            return view_func(request, *args, **kwargs)

        return _wrapped_view

    return decorator


# ============================================================================
# 4. PERMISSION-SPECIFIC SHORTCUT DECORATORS
# ============================================================================

def require_manage_users(view_func: Callable) -> Callable:
    """Shortcut for 'manage_users' permission."""
    return require_permission('manage_users', require_academy=True)(view_func)


def require_approve_players(view_func: Callable) -> Callable:
    """Shortcut for 'approve_players' permission."""
    return require_permission('approve_players')(view_func)


def require_manage_payments(view_func: Callable) -> Callable:
    """Shortcut for 'manage_payments' permission."""
    return require_permission('manage_payments')(view_func)


def require_view_reports(view_func: Callable) -> Callable:
    """Shortcut for 'view_reports' permission."""
    return require_permission('view_reports')(view_func)


def require_send_emails(view_func: Callable) -> Callable:
    """Shortcut for 'send_emails' permission."""
    return require_permission('send_emails')(view_func)


def require_manage_tournaments(view_func: Callable) -> Callable:
    """Shortcut for 'manage_tournaments' permission."""
    return require_permission('manage_tournaments')(view_func)


__all__ = [
    'PermissionChecker',
    'SUPER_ADMIN_ROLE',
    'require_permission',
    'require_manage_users',
    'require_approve_players',
    'require_manage_payments',
    'require_view_reports',
    'require_send_emails',
    'require_manage_tournaments',
]
