# tournaments/serializers.py
from rest_framework import serializers

from .models import Tournament, TournamentRegistration


class TournamentCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    startDate = serializers.DateField(source='start_date')
    endDate = serializers.DateField(source='end_date')
    location = serializers.CharField(required=False, allow_blank=True, max_length=255, default='')
    categories = serializers.ListField(child=serializers.CharField(max_length=50), required=False, default=list)

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({'endDate': 'La fecha de fin no puede ser anterior al inicio'})
        return attrs


class TournamentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Tournament.STATUS_CHOICES)


class RegistrationToggleSerializer(serializers.Serializer):
    isOpen = serializers.BooleanField(source='is_open')


class TeamRegistrationSerializer(serializers.Serializer):
    teamName = serializers.CharField(source='team_name', max_length=200)
    coachName = serializers.CharField(source='coach_name', max_length=200)
    coachEmail = serializers.EmailField(source='coach_email')
    coachPhone = serializers.CharField(source='coach_phone', required=False, allow_blank=True, max_length=30)
    category = serializers.CharField(max_length=50)


class RegistrationSerializer(serializers.ModelSerializer):
    teamName = serializers.CharField(source='team_name')
    coachName = serializers.CharField(source='coach_name')
    coachEmail = serializers.EmailField(source='coach_email')
    coachPhone = serializers.CharField(source='coach_phone')
    paymentStatus = serializers.CharField(source='payment_status')
    createdAt = serializers.DateTimeField(source='created_at')

    class Meta:
        model = TournamentRegistration
        fields = [
            'id', 'tournament', 'teamName', 'coachName', 'coachEmail', 'coachPhone',
            'category', 'status', 'paymentStatus', 'createdAt',
        ]
