from django.contrib import admin

from .models import Family, PendingPlayer, Player


class PlayerInline(admin.TabularInline):
    model = Player
    extra = 0
    fields = ['first_name', 'last_name', 'category', 'status']


@admin.register(Family)
class FamilyAdmin(admin.ModelAdmin):
    list_display = ['name', 'tutor_name', 'tutor_cedula', 'tutor_email', 'tutor_phone']
    search_fields = ['name', 'tutor_name', 'tutor_cedula', 'tutor_email']
    inlines = [PlayerInline]


@admin.register(Player)
class PlayerAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'category', 'status', 'family', 'payment_status', 'last_payment_date']
    list_filter = ['status', 'category', 'gender', 'payment_status']
    search_fields = ['first_name', 'last_name', 'cedula', 'tutor_name', 'family__name']
    raw_id_fields = ['family']


@admin.register(PendingPlayer)
class PendingPlayerAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'category', 'family', 'tutor_email', 'created_at']
    list_filter = ['category', 'gender']
    search_fields = ['first_name', 'last_name', 'cedula', 'tutor_name', 'family__name']
    raw_id_fields = ['family']
