# players/services.py
"""
Monthly fee rules and player lookups.
"""
import logging
from decimal import Decimal
from typing import Dict, Optional

from django.db.models import Q

from core.services import SettingsService
from shared.constants import PlayerStatus

from .models import Player

logger = logging.getLogger(__name__)


class FeeService:
    """
    Monthly fee calculation.

    Rules, in order:
    1. monthly_fee_override wins when set
    2. Scholarship players pay nothing
    3. In a family with 2+ enrolled players, everyone after the first
       (by created_at) pays the family price
    4. Everyone else pays the monthly price
    """

    @staticmethod
    def family_positions() -> Dict[int, int]:
        """Position of each enrolled family player within their family."""
        positions = {}
        current_family, index = None, 0
        rows = (
            Player.objects.filter(status__in=PlayerStatus.ENROLLED, family__isnull=False)
            .order_by('family_id', 'created_at', 'id')
            .values_list('id', 'family_id')
        )
        for player_id, family_id in rows:
            if family_id != current_family:
                current_family, index = family_id, 0
            positions[player_id] = index
            index += 1
        return positions

    @staticmethod
    def _family_position(player) -> int:
        if not player.family_id:
            return 0
        siblings = list(
            Player.objects.filter(family_id=player.family_id, status__in=PlayerStatus.ENROLLED)
            .order_by('created_at', 'id')
            .values_list('id', flat=True)
        )
        if len(siblings) < 2 or player.pk not in siblings:
            return 0
        return siblings.index(player.pk)

    @staticmethod
    def base_fee(player, prices: Optional[Dict[str, Decimal]] = None,
                 position: Optional[int] = None) -> Decimal:
        """Fee the player owes when paying, ignoring scholarship status."""
        if player.monthly_fee_override is not None:
            return Decimal(player.monthly_fee_override)

        prices = prices or SettingsService.get_prices()
        if position is None:
            position = FeeService._family_position(player)
        return prices['monthly_family'] if position >= 1 else prices['monthly']

    @staticmethod
    def calculate_monthly_fee(player, prices=None, position=None) -> Decimal:
        if player.monthly_fee_override is not None:
            return Decimal(player.monthly_fee_override)
        if player.status == PlayerStatus.SCHOLARSHIP:
            return Decimal('0')
        return FeeService.base_fee(player, prices, position)

    @staticmethod
    def opportunity_cost(player, prices=None, position=None) -> Decimal:
        """What a scholarship player would pay if active."""
        return FeeService.base_fee(player, prices, position)


class PlayerService:
    """Player listing used by the staff dashboard."""

    @staticmethod
    def search_players(query: str = '', status: Optional[str] = None, limit: int = 50):
        players = Player.objects.select_related('family')
        if status:
            players = players.filter(status=status)
        if query:
            for term in query.split():
                players = players.filter(
                    Q(first_name__icontains=term)
                    | Q(last_name__icontains=term)
                    | Q(cedula__icontains=term)
                    | Q(family__name__icontains=term)
                )
        return players.order_by('last_name', 'first_name')[:limit]

    @staticmethod
    def serialize(player, prices=None) -> Dict:
        tutor = player.tutor_contact
        return {
            'id': player.id,
            'firstName': player.first_name,
            'lastName': player.last_name,
            'birthDate': player.birth_date.isoformat(),
            'gender': player.gender,
            'cedula': player.cedula,
            'category': player.category,
            'status': player.status,
            'familyId': player.family_id,
            'familyName': player.family.name if player.family_id else None,
            'tutorName': tutor['name'],
            'tutorEmail': tutor['email'],
            'tutorPhone': tutor['phone'],
            'monthlyFee': float(FeeService.calculate_monthly_fee(player, prices)),
            'paymentStatus': player.payment_status,
            'lastPaymentDate': player.last_payment_date.isoformat() if player.last_payment_date else None,
        }
