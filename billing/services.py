# billing/services.py
"""
Payment recording, linking and summaries.
"""
import logging
import re
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import transaction
from django.db.models import Max, Sum
from django.utils import timezone

from communications.services import EmailQueueService
from core.exceptions import EmailDeliveryError, ValidationError
from players.models import PendingPlayer, Player
from shared.constants import (
    PENDING_PLAYER_IDS_MARKER,
    PaymentMethods,
    PaymentTypes,
    StatusChoices,
)
from shared.helpers import MONTH_YEAR_RE, format_month_year

from .models import Payment

logger = logging.getLogger(__name__)

PENDING_IDS_RE = re.compile(re.escape(PENDING_PLAYER_IDS_MARKER) + r'\s*([\d,\s]+)', re.IGNORECASE)

PAYMENT_TYPE_LABELS = {
    PaymentTypes.ENROLLMENT: 'Matrícula',
    PaymentTypes.MONTHLY: 'Mensualidad',
    PaymentTypes.TOURNAMENT: 'Torneo',
    PaymentTypes.CUSTOM: 'Pago Personalizado',
}

UNLINKED_SCAN_LIMIT = 50


def parse_pending_player_ids(notes: str) -> List[int]:
    """IDs listed after every 'Pending Player IDs:' marker in free-text notes."""
    ids = []
    for match in PENDING_IDS_RE.finditer(notes or ''):
        for part in match.group(1).split(','):
            part = part.strip()
            if part.isdigit():
                ids.append(int(part))
    return ids


class PaymentService:
    """Create and link payments; keeps the player's payment info current."""

    @staticmethod
    @transaction.atomic
    def create_payment(amount, payment_type: str = PaymentTypes.CUSTOM,
                       method: str = PaymentMethods.MANUAL, player: Optional[Player] = None,
                       status: str = StatusChoices.APPROVED, payment_date=None,
                       month_year: str = '', reference: str = '', proof_url: str = '',
                       notes: str = '', created_by=None) -> Payment:
        payment = Payment.objects.create(
            player=player,
            amount=Decimal(str(amount)),
            type=payment_type,
            method=method,
            status=status,
            payment_date=payment_date or timezone.localdate(),
            month_year=month_year or '',
            reference=reference or '',
            proof_url=proof_url or '',
            notes=notes or '',
            created_by=created_by,
        )

        if player is not None and status not in StatusChoices.VOID:
            PaymentService.update_player_payment_info(player, payment.payment_date)

        logger.info(
            f"Payment {payment.id} created: ${payment.amount} {payment_type} via {method} "
            f"for player {player.id if player else 'unlinked'} ({status})"
        )
        return payment

    @staticmethod
    def update_player_payment_info(player: Player, payment_date) -> None:
        Player.objects.filter(pk=player.pk).update(
            last_payment_date=payment_date,
            payment_status='current',
        )
        player.last_payment_date = payment_date
        player.payment_status = 'current'

    @staticmethod
    def create_gateway_payment(player_ref, amount, method: str, payment_type: str = '',
                               month_year: str = '', reference: str = '', notes: str = '',
                               payment_date=None) -> Optional[Payment]:
        """
        Record an approved gateway payment for a player or a pending player.

        The id is looked up in players first, then in pending players. Pending
        players get an unlinked payment tied through ``pending_players``; it is
        linked to the player on approval. Returns None when neither exists.
        """
        try:
            player_id = int(player_ref)
        except (TypeError, ValueError):
            logger.error(f"Gateway payment with invalid player reference {player_ref!r}")
            return None

        if payment_type not in dict(PaymentTypes.CHOICES):
            payment_type = PaymentTypes.CUSTOM
        if month_year and not MONTH_YEAR_RE.match(month_year):
            logger.warning(f"Ignoring invalid month {month_year!r} on gateway payment")
            month_year = ''

        player = Player.objects.filter(pk=player_id).select_related('family').first()
        if player is not None:
            payment = PaymentService.create_payment(
                amount,
                payment_type=payment_type,
                method=method,
                player=player,
                payment_date=payment_date,
                month_year=month_year,
                reference=reference,
                notes=notes,
            )
            PaymentService.send_thank_you(player, payment)
            return payment

        pending = PendingPlayer.objects.filter(pk=player_id).select_related('family').first()
        if pending is None:
            logger.error(f"Gateway payment for unknown player {player_id}")
            return None

        with transaction.atomic():
            payment = Payment.objects.create(
                player=None,
                amount=Decimal(str(amount)),
                type=payment_type,
                method=method,
                status=StatusChoices.APPROVED,
                payment_date=payment_date or timezone.localdate(),
                month_year=month_year,
                reference=reference or '',
                notes=f"{notes}. {PENDING_PLAYER_IDS_MARKER} {pending.id}" if notes
                else f"{PENDING_PLAYER_IDS_MARKER} {pending.id}",
            )
            payment.pending_players.add(pending)

        logger.info(f"Payment {payment.id} recorded for pending player {pending.id}")
        PaymentService.send_thank_you(pending, payment)
        return payment

    @staticmethod
    def send_thank_you(person, payment: Payment) -> bool:
        """Queue the payment_thank_you email to the tutor of a player or pending player."""
        tutor = person.tutor_contact
        if not tutor['email']:
            logger.warning(f"No tutor email for {person}, thank-you email skipped")
            return False

        try:
            EmailQueueService.queue_email(
                'payment_thank_you',
                tutor['email'],
                {
                    'tutorName': tutor['name'] or 'Familia',
                    'playerName': person.full_name,
                    'amount': f"{payment.amount:.2f}",
                    'paymentType': PAYMENT_TYPE_LABELS.get(payment.type, 'Pago'),
                    'paymentDate': payment.payment_date.isoformat(),
                    'monthYear': format_month_year(payment.month_year),
                    'operationId': payment.reference or 'N/A',
                },
                metadata={'payment_id': payment.id},
            )
        except EmailDeliveryError as e:
            logger.error(f"Thank-you email for payment {payment.id} not queued: {e.message}")
            return False
        return True

    @staticmethod
    @transaction.atomic
    def link_payment_to_player(payment: Payment, player: Player) -> Payment:
        if payment.is_linked:
            raise ValidationError("Este pago ya está vinculado a un jugador", user_friendly=True)

        payment.player = player
        if not payment.status or payment.status == StatusChoices.PENDING:
            payment.status = StatusChoices.APPROVED
        payment.save()

        if payment.status not in StatusChoices.VOID:
            PaymentService.update_player_payment_info(player, payment.payment_date)

        logger.info(f"Payment {payment.id} linked to player {player.id}")
        return payment

    @staticmethod
    def auto_link_unlinked_payments(player: Player, pending_player_id: Optional[int] = None) -> Dict:
        """
        Link unlinked payments that belong to a pending player now approved as ``player``.

        A payment belongs to it when the pending-player relation contains it, or
        its notes list the id after the 'Pending Player IDs:' marker. Without a
        pending player id nothing is linked.
        """
        if not pending_player_id:
            return {'linked': 0, 'total': 0, 'errors': []}

        target = pending_player_id
        payments = (
            Payment.objects.filter(player__isnull=True)
            .prefetch_related('pending_players')
            .order_by('-payment_date', '-created_at')[:UNLINKED_SCAN_LIMIT]
        )
        matches = [
            payment for payment in payments
            if target in {p.id for p in payment.pending_players.all()}
            or target in parse_pending_player_ids(payment.notes)
        ]

        linked, errors = 0, []
        for payment in matches:
            try:
                PaymentService.link_payment_to_player(payment, player)
                linked += 1
            except ValidationError as e:
                errors.append(f"Payment {payment.id}: {e.message}")

        if matches:
            logger.info(f"Auto-linked {linked}/{len(matches)} payments to player {player.id}")
        return {'linked': linked, 'total': len(matches), 'errors': errors}

    @staticmethod
    def get_payment_summary(player: Player) -> Dict:
        payments = Payment.objects.filter(player=player).exclude(status__in=StatusChoices.VOID)
        totals = payments.aggregate(total=Sum('amount'), last=Max('payment_date'))
        return {
            'total': totals['total'] or Decimal('0'),
            'count': payments.count(),
            'last_payment': totals['last'],
        }

    @staticmethod
    def get_unlinked_payments(limit: int = 100):
        return (
            Payment.objects.filter(player__isnull=True)
            .prefetch_related('pending_players')
            .order_by('-payment_date', '-created_at')[:limit]
        )
