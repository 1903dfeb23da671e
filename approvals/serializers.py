# approvals/serializers.py
from rest_framework import serializers

from players.models import PendingPlayer
from shared.constants import PlayerStatus


class PlayerDecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[PlayerStatus.ACTIVE, PlayerStatus.SCHOLARSHIP],
        default=PlayerStatus.ACTIVE,
    )


class PendingPlayerSerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source='first_name')
    lastName = serializers.CharField(source='last_name')
    birthDate = serializers.DateField(source='birth_date')
    familyId = serializers.IntegerField(source='family_id')
    familyName = serializers.SerializerMethodField()
    tutorName = serializers.SerializerMethodField()
    tutorEmail = serializers.SerializerMethodField()
    tutorPhone = serializers.SerializerMethodField()
    paymentIds = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at')

    class Meta:
        model = PendingPlayer
        fields = [
            'id', 'firstName', 'lastName', 'birthDate', 'gender', 'cedula', 'category',
            'familyId', 'familyName', 'tutorName', 'tutorEmail', 'tutorPhone',
            'paymentIds', 'createdAt',
        ]

    def get_familyName(self, obj):
        return obj.family.name if obj.family_id else None

    def get_tutorName(self, obj):
        return obj.tutor_contact['name']

    def get_tutorEmail(self, obj):
        return obj.tutor_contact['email']

    def get_tutorPhone(self, obj):
        return obj.tutor_contact['phone']

    def get_paymentIds(self, obj):
        return [p.id for p in obj.payments.all()]
