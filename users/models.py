# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.conf import settings
from django.utils.translation import gettext_lazy as _
import logging

from .managers import UserManager

logger = logging.getLogger(__name__)


class User(AbstractUser):
    """Staff user; logs in with email."""

    username = models.CharField(
        _("username"),
        max_length=150,
        blank=True,
        null=True,
        help_text=_("Optional. 150 characters or fewer."),
    )

    email = models.EmailField(_("email address"), unique=True)
    phone_number = models.CharField(max_length=20, blank=True, null=True)

    current_academy = models.ForeignKey(
        "core.Academy",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='current_users'
    )

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'auth_user'
        indexes = [
            models.Index(fields=['email']),
        ]

    def __str__(self):
        return self.email

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.email


class Role(models.Model):
    """Named bundle of permissions, assigned to users per academy."""

    name = models.SlugField(max_length=50, unique=True, help_text="Machine name, e.g. 'admin'")
    display_name = models.CharField(max_length=100)
    description = models.TextField(blank=True, help_text="Role description and responsibilities")
    is_system = models.BooleanField(default=False, help_text="Seeded roles cannot be deleted")

    permissions = models.ManyToManyField(
        'Permission',
        through='RolePermission',
        related_name='roles',
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'users_role'
        ordering = ['name']

    def __str__(self):
        return self.display_name or self.name

    def has_permission(self, permission_name):
        """Check if role has specific permission."""
        return self.permissions.filter(name=permission_name).exists()


class Permission(models.Model):
    """Application permission, e.g. 'approve_players'."""

    name = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=255, blank=True)
    module = models.CharField(max_length=50, blank=True, help_text="Area of the dashboard it covers")

    class Meta:
        db_table = 'users_access_permission'
        ordering = ['module', 'name']

    def __str__(self):
        return self.name


class RolePermission(models.Model):
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name='role_permissions')
    permission = models.ForeignKey(Permission, on_delete=models.CASCADE, related_name='role_permissions')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'users_role_permission'
        unique_together = ['role', 'permission']

    def __str__(self):
        return f"{self.role.name}:{self.permission.name}"


class UserRoleAssignment(models.Model):
    """A role held by a user inside one academy."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='role_assignments')
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name='assignments')
    academy = models.ForeignKey("core.Academy", on_delete=models.CASCADE, related_name='role_assignments')
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'users_role_assignment'
        unique_together = ['user', 'role', 'academy']
        indexes = [
            models.Index(fields=['user', 'academy']),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.role.name} @ {self.academy.name}"
