from django.contrib import admin

from .models import Tournament, TournamentRegistration


class RegistrationInline(admin.TabularInline):
    model = TournamentRegistration
    extra = 0
    fields = ['team_name', 'category', 'coach_name', 'status', 'payment_status']


@admin.register(Tournament)
class TournamentAdmin(admin.ModelAdmin):
    list_display = ['name', 'start_date', 'end_date', 'location', 'status', 'registration_open']
    list_filter = ['status', 'registration_open']
    search_fields = ['name', 'location']
    inlines = [RegistrationInline]


@admin.register(TournamentRegistration)
class TournamentRegistrationAdmin(admin.ModelAdmin):
    list_display = ['team_name', 'tournament', 'category', 'coach_name', 'coach_email', 'status', 'payment_status']
    list_filter = ['status', 'payment_status', 'category']
    search_fields = ['team_name', 'coach_name', 'coach_email']
    raw_id_fields = ['tournament']
