# billing/admin.py
from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from shared.constants import StatusChoices

from .models import Expense, Payment, StaffPayment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'player_link', 'type', 'method', 'amount_formatted',
        'status_badge', 'payment_date', 'month_year', 'reference'
    ]
    list_filter = ['status', 'type', 'method', 'payment_date']
    search_fields = ['reference', 'notes', 'player__first_name', 'player__last_name']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'payment_date'
    raw_id_fields = ['player', 'created_by']
    filter_horizontal = ['pending_players']

    fieldsets = (
        ('Payment', {
            'fields': ('player', 'pending_players', 'amount', 'type', 'method', 'status')
        }),
        ('Details', {
            'fields': ('payment_date', 'month_year', 'reference', 'proof_url', 'notes')
        }),
        ('Metadata', {
            'fields': ('created_by', 'created_at', 'updated_at')
        }),
    )

    def amount_formatted(self, obj):
        return f"${obj.amount:,.2f}"
    amount_formatted.short_description = 'Amount'

    def status_badge(self, obj):
        status_colors = {
            StatusChoices.PENDING: 'orange',
            StatusChoices.PENDING_APPROVAL: 'goldenrod',
            StatusChoices.APPROVED: 'green',
            StatusChoices.PAID: 'green',
            StatusChoices.REJECTED: 'red',
            StatusChoices.CANCELLED: 'gray',
        }

        color = status_colors.get(obj.status, 'gray')
        return format_html(
            '<span style="background: {}; color: white; padding: 2px 8px; border-radius: 10px;">{}</span>',
            color, obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def player_link(self, obj):
        if obj.player:
            url = reverse('admin:players_player_change', args=[obj.player.id])
            return format_html('<a href="{}">{}</a>', url, obj.player.full_name)
        return 'Unlinked'
    player_link.short_description = 'Player'

    def has_delete_permission(self, request, obj=None):
        if obj and obj.status == StatusChoices.PAID:
            return False
        return super().has_delete_permission(request, obj)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('player', 'created_by')


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['description', 'category', 'amount', 'date']
    list_filter = ['category', 'date']
    search_fields = ['description', 'category']
    date_hierarchy = 'date'


@admin.register(StaffPayment)
class StaffPaymentAdmin(admin.ModelAdmin):
    list_display = ['staff_name', 'amount', 'payment_date']
    search_fields = ['staff_name', 'notes']
    date_hierarchy = 'payment_date'
