# communications/models.py
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class EmailTemplate(models.Model):
    """HTML email with {{variable}} placeholders in subject and body."""

    name = models.CharField(max_length=100, unique=True)
    subject = models.CharField(max_length=255)
    html_template = models.TextField()
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'communications_email_template'
        ordering = ['name']

    def __str__(self):
        return self.name


class EmailQueue(models.Model):
    """One outgoing email, sent by the daily queue processor."""

    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_FAILED = 'failed'

    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_SENT, 'Sent'),
        (STATUS_FAILED, 'Failed'),
    )

    template = models.ForeignKey(
        EmailTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='queued_emails'
    )
    to_email = models.EmailField()
    subject = models.CharField(max_length=255)
    html_content = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    scheduled_for = models.DateField(default=timezone.localdate)
    sent_at = models.DateTimeField(null=True, blank=True)
    brevo_email_id = models.CharField(max_length=255, blank=True, db_index=True)
    error_message = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    # Delivery tracking (Brevo webhooks)
    delivered_at = models.DateTimeField(null=True, blank=True)
    opened_at = models.DateTimeField(null=True, blank=True)
    clicked_at = models.DateTimeField(null=True, blank=True)
    bounced_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'communications_email_queue'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['status', 'scheduled_for']),
            models.Index(fields=['sent_at']),
        ]

    def __str__(self):
        return f"{self.to_email} - {self.subject} ({self.status})"
