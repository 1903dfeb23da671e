# users/services.py
"""
User and role management services.
"""
import logging
from typing import Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core.exceptions import RolePermissionError, ValidationError
from shared.decorators.permissions import PermissionChecker

from .models import Permission, Role, RolePermission, UserRoleAssignment

logger = logging.getLogger(__name__)

User = get_user_model()


DEFAULT_PERMISSIONS = {
    'view_players': ('players', 'View players and families'),
    'approve_players': ('approvals', 'Approve or reject pending players'),
    'manage_payments': ('billing', 'Record, link and approve payments'),
    'view_reports': ('reports', 'View financial and player reports'),
    'send_emails': ('communications', 'Queue and send emails'),
    'manage_tournaments': ('tournaments', 'Manage tournaments and registrations'),
    'manage_users': ('users', 'Manage users and role assignments'),
    'manage_settings': ('core', 'Change academy prices and settings'),
}

DEFAULT_ROLES = {
    'admin': ('Administrator', list(DEFAULT_PERMISSIONS)),
    'coach': ('Coach', ['view_players', 'manage_tournaments']),
    'accountant': ('Accountant', ['view_players', 'manage_payments', 'view_reports', 'send_emails']),
}


class RoleSetupService:
    """Seed the default roles and permissions."""

    @staticmethod
    @transaction.atomic
    def seed_defaults() -> Dict[str, int]:
        permissions_created = 0
        for name, (module, description) in DEFAULT_PERMISSIONS.items():
            _, created = Permission.objects.get_or_create(
                name=name,
                defaults={'module': module, 'description': description},
            )
            permissions_created += int(created)

        roles_created = 0
        for role_name, (display_name, permission_names) in DEFAULT_ROLES.items():
            role, created = Role.objects.get_or_create(
                name=role_name,
                defaults={'display_name': display_name, 'is_system': True},
            )
            roles_created += int(created)
            for permission in Permission.objects.filter(name__in=permission_names):
                RolePermission.objects.get_or_create(role=role, permission=permission)

        logger.info(f"Seeded {roles_created} roles and {permissions_created} permissions")
        return {'roles': roles_created, 'permissions': permissions_created}


class UserManagementService:
    """Create users and manage their role assignments per academy."""

    @staticmethod
    @transaction.atomic
    def create_user(email: str, password: str, academy, first_name: str = '',
                    last_name: str = '', role_name: Optional[str] = None, created_by=None):
        email = (email or '').strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError(f"A user with email {email} already exists.", user_friendly=True)

        user = User.objects.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            current_academy=academy,
        )

        if role_name:
            UserManagementService.assign_role(user, role_name, academy, assigned_by=created_by)

        logger.info(f"User {user.email} created in {academy}")
        return user

    @staticmethod
    def assign_role(user, role_name: str, academy, assigned_by=None) -> UserRoleAssignment:
        try:
            role = Role.objects.get(name=role_name)
        except Role.DoesNotExist:
            raise ValidationError(f"Role '{role_name}' does not exist.", user_friendly=True)

        try:
            assignment, created = UserRoleAssignment.objects.get_or_create(
                user=user,
                role=role,
                academy=academy,
                defaults={'assigned_by': assigned_by},
            )
        except IntegrityError as e:
            logger.error(f"Role assignment failed for {user.email}: {e}")
            raise ValidationError("Could not assign role.", user_friendly=True)

        if created:
            logger.info(f"Role {role_name} assigned to {user.email} in {academy}")
        return assignment

    @staticmethod
    def remove_role(user, role_name: str, academy) -> bool:
        deleted, _ = UserRoleAssignment.objects.filter(
            user=user, role__name=role_name, academy=academy
        ).delete()
        if deleted:
            logger.info(f"Role {role_name} removed from {user.email} in {academy}")
        return bool(deleted)

    @staticmethod
    def get_all_users(academy) -> List[Dict]:
        """Users holding any role in the academy, with their role names."""
        users = (
            User.objects.filter(role_assignments__academy=academy)
            .distinct()
            .order_by('email')
        )
        return [
            {
                'id': user.id,
                'email': user.email,
                'name': user.display_name,
                'is_active': user.is_active,
                'roles': PermissionChecker.get_user_roles(user, academy),
                'last_login': user.last_login.isoformat() if user.last_login else None,
            }
            for user in users
        ]

    @staticmethod
    def get_all_roles():
        return Role.objects.prefetch_related('permissions').all()

    @staticmethod
    def get_all_permissions():
        return Permission.objects.all()

    @staticmethod
    def get_role_permissions(role_name: str) -> List[str]:
        return list(
            Permission.objects.filter(roles__name=role_name).values_list('name', flat=True)
        )

    @staticmethod
    def reset_password(user, new_password: str) -> None:
        if not new_password or len(new_password) < 8:
            raise ValidationError("Password must be at least 8 characters.", user_friendly=True)
        user.set_password(new_password)
        user.save(update_fields=['password'])
        logger.info(f"Password reset for {user.email}")

    @staticmethod
    def delete_user(user, requested_by) -> None:
        if user.pk == requested_by.pk:
            raise RolePermissionError("You cannot delete your own account.", user_friendly=True)
        if user.is_superuser and not requested_by.is_superuser:
            raise RolePermissionError("Only a super admin can delete a super admin.", user_friendly=True)

        email = user.email
        user.delete()
        logger.info(f"User {email} deleted by {requested_by.email}")
