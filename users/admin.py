# users/admin.py
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Permission, Role, RolePermission, User, UserRoleAssignment


class UserRoleAssignmentInline(admin.TabularInline):
    model = UserRoleAssignment
    fk_name = 'user'
    extra = 0
    raw_id_fields = ['academy', 'assigned_by']


@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('email', 'first_name', 'last_name', 'current_academy', 'is_staff', 'is_active')
    list_filter = ('is_staff', 'is_active', 'is_superuser', 'current_academy')
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        (_('Personal info'), {'fields': ('first_name', 'last_name', 'phone_number')}),
        (_('Academy Context'), {'fields': ('current_academy',)}),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups'),
        }),
        (_('Important dates'), {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'first_name', 'last_name', 'is_staff', 'is_active')}
        ),
    )
    search_fields = ('email', 'first_name', 'last_name', 'phone_number')
    ordering = ('email',)
    filter_horizontal = ('groups',)
    inlines = [UserRoleAssignmentInline]


class RolePermissionInline(admin.TabularInline):
    model = RolePermission
    extra = 0


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ['name', 'display_name', 'is_system', 'created_at']
    list_filter = ['is_system']
    search_fields = ['name', 'display_name']
    inlines = [RolePermissionInline]


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ['name', 'module', 'description']
    list_filter = ['module']
    search_fields = ['name', 'description']


@admin.register(UserRoleAssignment)
class UserRoleAssignmentAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'academy', 'assigned_by', 'created_at']
    list_filter = ['role', 'academy']
    search_fields = ['user__email']
    raw_id_fields = ['user', 'assigned_by']
