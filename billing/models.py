# billing/models.py
from datetime import date
from decimal import Decimal
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from shared.constants import PaymentMethods, PaymentTypes, StatusChoices
from shared.helpers import MONTH_YEAR_RE

logger = logging.getLogger(__name__)


class Payment(models.Model):
    """Money received from a tutor (enrollment, monthly fee, tournament or custom)."""

    player = models.ForeignKey(
        'players.Player',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments'
    )
    # Enrollment payments made through a gateway before approval
    pending_players = models.ManyToManyField(
        'players.PendingPlayer',
        blank=True,
        related_name='payments'
    )

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )
    type = models.CharField(max_length=20, choices=PaymentTypes.CHOICES, default=PaymentTypes.MONTHLY)
    method = models.CharField(max_length=20, choices=PaymentMethods.CHOICES, default=PaymentMethods.MANUAL)
    status = models.CharField(max_length=20, choices=StatusChoices.CHOICES, default=StatusChoices.APPROVED)

    payment_date = models.DateField(default=date.today)
    month_year = models.CharField(max_length=7, blank=True, help_text="YYYY-MM the payment covers")
    reference = models.CharField(max_length=100, blank=True, help_text="Gateway operation or bank reference")
    proof_url = models.CharField(max_length=500, blank=True)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'billing_payment'
        ordering = ['-payment_date', '-created_at']
        indexes = [
            models.Index(fields=['player', 'status']),
            models.Index(fields=['type', 'status']),
            models.Index(fields=['payment_date']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"{self.get_type_display()} ${self.amount} ({self.status})"

    def clean(self):
        if self.amount is not None and self.amount < 0:
            raise ValidationError({'amount': 'Payment amount cannot be negative.'})

        if self.month_year and not MONTH_YEAR_RE.match(self.month_year):
            raise ValidationError({'month_year': 'Month must use the YYYY-MM format.'})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_linked(self):
        return self.player_id is not None

    def append_note(self, text):
        self.notes = f"{self.notes}\n{text}" if self.notes else text


class Expense(models.Model):
    """Operational expense."""

    description = models.CharField(max_length=255)
    category = models.CharField(max_length=100, default='General')
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    date = models.DateField(default=date.today)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'billing_expense'
        ordering = ['-date']

    def __str__(self):
        return f"{self.description} - ${self.amount}"


class StaffPayment(models.Model):
    """Salary or fee paid to coaches and staff."""

    staff_name = models.CharField(max_length=200)
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    payment_date = models.DateField(default=date.today)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'billing_staff_payment'
        ordering = ['-payment_date']

    def __str__(self):
        return f"{self.staff_name} - ${self.amount}"
