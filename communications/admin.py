from django.contrib import admin

from .models import EmailQueue, EmailTemplate


@admin.register(EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'subject', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['name', 'subject']


@admin.register(EmailQueue)
class EmailQueueAdmin(admin.ModelAdmin):
    list_display = ['to_email', 'subject', 'status', 'scheduled_for', 'sent_at', 'delivered_at', 'bounced_at']
    list_filter = ['status', 'scheduled_for', 'template']
    search_fields = ['to_email', 'subject', 'brevo_email_id']
    readonly_fields = ['brevo_email_id', 'sent_at', 'delivered_at', 'opened_at', 'clicked_at', 'bounced_at', 'created_at']
    date_hierarchy = 'scheduled_for'
