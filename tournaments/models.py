# tournaments/models.py
import logging

from django.core.exceptions import ValidationError
from django.db import models

logger = logging.getLogger(__name__)


class Tournament(models.Model):
    """Tournament hosted by the academy. At most one is active at a time."""

    INACTIVE = 'inactive'
    ACTIVE = 'active'
    COMPLETED = 'completed'

    STATUS_CHOICES = (
        (INACTIVE, 'Inactive'),
        (ACTIVE, 'Active'),
        (COMPLETED, 'Completed'),
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    location = models.CharField(max_length=255, blank=True)
    categories = models.JSONField(default=list, blank=True, help_text="Categories teams may register in")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=INACTIVE)
    registration_open = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tournaments_tournament'
        ordering = ['-start_date']

    def __str__(self):
        return self.name

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'End date cannot be before the start date.'})

        if not isinstance(self.categories, list):
            raise ValidationError({'categories': 'Categories must be a list.'})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def accepts_registrations(self):
        return self.status == self.ACTIVE and self.registration_open


class TournamentRegistration(models.Model):
    """Team registered by an external coach."""

    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    STATUS_CHOICES = (
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
    )

    PAYMENT_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('paid', 'Paid'),
    )

    tournament = models.ForeignKey(Tournament, on_delete=models.CASCADE, related_name='registrations')
    team_name = models.CharField(max_length=200)
    coach_name = models.CharField(max_length=200)
    coach_email = models.EmailField()
    coach_phone = models.CharField(max_length=30, blank=True)
    category = models.CharField(max_length=50)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tournaments_registration'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tournament', 'status']),
        ]

    def __str__(self):
        return f"{self.team_name} ({self.category}) - {self.tournament.name}"
