# players/models.py
"""
Families, players and players waiting for approval.
"""
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from shared.constants import DEFAULT_CATEGORY, PlayerStatus

logger = logging.getLogger(__name__)


GENDER_CHOICES = (
    ('Masculino', 'Masculino'),
    ('Femenino', 'Femenino'),
    ('Otro', 'Otro'),
)


class Family(models.Model):
    """Tutor household grouping two or more players."""

    name = models.CharField(max_length=200)
    tutor_name = models.CharField(max_length=200)
    tutor_cedula = models.CharField(max_length=30, unique=True)
    tutor_email = models.EmailField(blank=True)
    tutor_phone = models.CharField(max_length=30, blank=True)
    tutor_cedula_url = models.CharField(max_length=500, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'players_family'
        verbose_name_plural = 'Families'
        ordering = ['name']

    def __str__(self):
        return self.name


class TutorContactMixin:
    """Tutor data lives on the family when there is one, else on the player."""

    @property
    def tutor_contact(self):
        source = self.family if self.family_id else self
        return {
            'name': source.tutor_name,
            'cedula': source.tutor_cedula,
            'email': source.tutor_email,
            'phone': source.tutor_phone,
        }

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


class Player(TutorContactMixin, models.Model):
    """Enrolled (or previously enrolled) player."""

    PAYMENT_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('current', 'Current'),
        ('overdue', 'Overdue'),
    )

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    birth_date = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    cedula = models.CharField(max_length=30, blank=True)
    category = models.CharField(max_length=30, default=DEFAULT_CATEGORY)
    family = models.ForeignKey(
        Family,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='players'
    )
    status = models.CharField(
        max_length=20,
        choices=PlayerStatus.CHOICES,
        default=PlayerStatus.PENDING
    )

    # Fees
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    monthly_fee_override = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Replaces the calculated monthly fee when set"
    )
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    last_payment_date = models.DateField(null=True, blank=True)

    # Tutor (only for players without a family)
    tutor_name = models.CharField(max_length=200, blank=True)
    tutor_cedula = models.CharField(max_length=30, blank=True)
    tutor_email = models.EmailField(blank=True)
    tutor_phone = models.CharField(max_length=30, blank=True)

    # Documents
    cedula_front_url = models.CharField(max_length=500, blank=True)
    cedula_back_url = models.CharField(max_length=500, blank=True)

    notes = models.TextField(blank=True)
    monthly_statement_sent_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'players_player'
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['family', 'created_at']),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.status})"

    def clean(self):
        if not Decimal('0') <= (self.discount_percent or Decimal('0')) <= Decimal('100'):
            raise ValidationError({'discount_percent': 'Discount must be between 0 and 100.'})

        if self.monthly_fee_override is not None and self.monthly_fee_override < 0:
            raise ValidationError({'monthly_fee_override': 'Monthly fee cannot be negative.'})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_enrolled(self):
        return self.status in PlayerStatus.ENROLLED


class PendingPlayer(TutorContactMixin, models.Model):
    """Player created from a paid enrollment, waiting for an admin decision."""

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    birth_date = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    cedula = models.CharField(max_length=30, blank=True)
    category = models.CharField(max_length=30, default=DEFAULT_CATEGORY)
    family = models.ForeignKey(
        Family,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pending_players'
    )

    tutor_name = models.CharField(max_length=200, blank=True)
    tutor_cedula = models.CharField(max_length=30, blank=True)
    tutor_email = models.EmailField(blank=True)
    tutor_phone = models.CharField(max_length=30, blank=True)

    cedula_front_url = models.CharField(max_length=500, blank=True)
    cedula_back_url = models.CharField(max_length=500, blank=True)
    tutor_cedula_url = models.CharField(max_length=500, blank=True)

    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'players_pending_player'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.full_name} (pending)"
