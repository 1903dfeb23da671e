# users/tests/test_services.py
from django.test import TestCase

from core.exceptions import RolePermissionError, ValidationError
from core.models import Academy
from shared.decorators.permissions import PermissionChecker
from users.models import Permission, Role, User
from users.services import RoleSetupService, UserManagementService


class RoleSetupServiceTest(TestCase):
    def test_seed_defaults_is_idempotent(self):
        first = RoleSetupService.seed_defaults()
        self.assertEqual(first['roles'], 3)
        self.assertEqual(first['permissions'], 8)

        second = RoleSetupService.seed_defaults()
        self.assertEqual(second, {'roles': 0, 'permissions': 0})
        self.assertEqual(Role.objects.count(), 3)

    def test_default_role_permissions(self):
        RoleSetupService.seed_defaults()
        self.assertEqual(
            sorted(UserManagementService.get_role_permissions('coach')),
            ['manage_tournaments', 'view_players'],
        )
        self.assertEqual(
            Permission.objects.filter(roles__name='admin').count(),
            Permission.objects.count(),
        )


class UserManagementServiceTest(TestCase):
    def setUp(self):
        RoleSetupService.seed_defaults()
        self.academy = Academy.objects.create(name='Academia Central')
        self.admin = User.objects.create_user(email='admin@example.com', password='adminpass123')
        UserManagementService.assign_role(self.admin, 'admin', self.academy)

    def test_create_user_with_role(self):
        user = UserManagementService.create_user(
            email='Accountant@Example.com',
            password='secret123',
            academy=self.academy,
            role_name='accountant',
            created_by=self.admin,
        )
        self.assertEqual(user.email, 'accountant@example.com')
        self.assertEqual(user.current_academy, self.academy)
        self.assertTrue(PermissionChecker.has_permission(user, 'manage_payments', self.academy))
        self.assertFalse(PermissionChecker.has_permission(user, 'manage_users', self.academy))

    def test_create_duplicate_user_fails(self):
        with self.assertRaises(ValidationError):
            UserManagementService.create_user(
                email='ADMIN@example.com', password='secret123', academy=self.academy
            )

    def test_assign_unknown_role_fails(self):
        with self.assertRaises(ValidationError):
            UserManagementService.assign_role(self.admin, 'janitor', self.academy)

    def test_permissions_are_scoped_to_academy(self):
        other = Academy.objects.create(name='Academia Norte')
        self.assertTrue(PermissionChecker.has_permission(self.admin, 'manage_users', self.academy))
        self.assertFalse(PermissionChecker.has_permission(self.admin, 'manage_users', other))

    def test_remove_role(self):
        self.assertTrue(UserManagementService.remove_role(self.admin, 'admin', self.academy))
        self.assertFalse(UserManagementService.remove_role(self.admin, 'admin', self.academy))
        self.assertEqual(PermissionChecker.get_user_roles(self.admin, self.academy), [])

    def test_get_all_users(self):
        UserManagementService.create_user(
            email='coach@example.com', password='secret123', academy=self.academy, role_name='coach'
        )
        User.objects.create_user(email='outsider@example.com')

        rows = UserManagementService.get_all_users(self.academy)
        self.assertEqual([row['email'] for row in rows], ['admin@example.com', 'coach@example.com'])
        self.assertEqual(rows[1]['roles'], ['coach'])

    def test_reset_password_requires_length(self):
        with self.assertRaises(ValidationError):
            UserManagementService.reset_password(self.admin, 'short')

        UserManagementService.reset_password(self.admin, 'longenough')
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.check_password('longenough'))

    def test_delete_user_rules(self):
        with self.assertRaises(RolePermissionError):
            UserManagementService.delete_user(self.admin, requested_by=self.admin)

        root = User.objects.create_superuser(email='root@example.com', password='rootpass123')
        with self.assertRaises(RolePermissionError):
            UserManagementService.delete_user(root, requested_by=self.admin)

        UserManagementService.delete_user(self.admin, requested_by=root)
        self.assertFalse(User.objects.filter(email='admin@example.com').exists())
