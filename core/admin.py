# core/admin.py
from django.contrib import admin

from .models import Academy, Setting


@admin.register(Academy)
class AcademyAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'contact_email', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'slug', 'contact_email']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'academy', 'updated_at']
    list_filter = ['academy']
    search_fields = ['key', 'description']
