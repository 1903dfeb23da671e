# communications/serializers.py
from rest_framework import serializers

from shared.constants import PlayerStatus


class BroadcastSerializer(serializers.Serializer):
    template = serializers.CharField(max_length=100)
    statuses = serializers.ListField(
        child=serializers.ChoiceField(choices=PlayerStatus.CHOICES),
        allow_empty=False,
        default=lambda: [PlayerStatus.ACTIVE],
    )
    variables = serializers.DictField(required=False, default=dict)
