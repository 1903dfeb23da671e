# billing/serializers.py
from decimal import Decimal

from rest_framework import serializers

from shared.constants import PaymentMethods, PaymentTypes, StatusChoices
from shared.helpers import MONTH_YEAR_RE

from .models import Expense, Payment, StaffPayment


class ManualPaymentSerializer(serializers.Serializer):
    """Payment recorded by staff from the dashboard."""

    playerId = serializers.IntegerField(source='player_id', required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    type = serializers.ChoiceField(choices=PaymentTypes.CHOICES, default=PaymentTypes.MONTHLY)
    method = serializers.ChoiceField(choices=PaymentMethods.CHOICES, default=PaymentMethods.CASH)
    status = serializers.ChoiceField(choices=StatusChoices.CHOICES, default=StatusChoices.APPROVED)
    paymentDate = serializers.DateField(source='payment_date', required=False)
    monthYear = serializers.CharField(source='month_year', required=False, allow_blank=True, max_length=7)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=100)
    proofUrl = serializers.CharField(source='proof_url', required=False, allow_blank=True, max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_monthYear(self, value):
        if value and not MONTH_YEAR_RE.match(value):
            raise serializers.ValidationError("Use el formato YYYY-MM")
        return value


class LinkPaymentSerializer(serializers.Serializer):
    playerId = serializers.IntegerField(source='player_id')


class PaymentSerializer(serializers.ModelSerializer):
    playerId = serializers.IntegerField(source='player_id', read_only=True)
    playerName = serializers.SerializerMethodField()
    paymentDate = serializers.DateField(source='payment_date', read_only=True)
    monthYear = serializers.CharField(source='month_year', read_only=True)
    pendingPlayerIds = serializers.SerializerMethodField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, coerce_to_string=False, read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'playerId', 'playerName', 'amount', 'type', 'method', 'status',
            'paymentDate', 'monthYear', 'reference', 'notes', 'pendingPlayerIds',
        ]

    def get_playerName(self, obj):
        return obj.player.full_name if obj.player_id else None

    def get_pendingPlayerIds(self, obj):
        return [p.id for p in obj.pending_players.all()]


class ExpenseSerializer(serializers.ModelSerializer):
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.01'), coerce_to_string=False
    )
    date = serializers.DateField(required=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Expense
        fields = ['id', 'description', 'category', 'amount', 'date', 'createdAt']


class StaffPaymentSerializer(serializers.ModelSerializer):
    staffName = serializers.CharField(source='staff_name', max_length=200)
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.01'), coerce_to_string=False
    )
    paymentDate = serializers.DateField(source='payment_date', required=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = StaffPayment
        fields = ['id', 'staffName', 'amount', 'paymentDate', 'notes', 'createdAt']
