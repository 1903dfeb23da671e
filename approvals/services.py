# approvals/services.py
"""
Manual review of players, pending players, payments and tournament
registrations.
"""
import logging
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.utils import timezone

from billing.models import Payment
from billing.services import PaymentService
from communications.services import EmailQueueService
from core.exceptions import ApprovalError, EmailDeliveryError
from players.models import PendingPlayer, Player
from players.services import FeeService
from shared.constants import TUTOR_FIELDS, PaymentMethods, PaymentTypes, PlayerStatus, StatusChoices
from tournaments.models import TournamentRegistration

logger = logging.getLogger(__name__)

APPROVAL_STATUSES = (PlayerStatus.ACTIVE, PlayerStatus.SCHOLARSHIP)
FULL_SCHOLARSHIP = Decimal('100')


class ApprovalService:

    # ============ QUEUES ============

    @staticmethod
    def get_pending_players():
        return Player.objects.filter(status=PlayerStatus.PENDING).select_related('family').order_by('created_at')

    @staticmethod
    def get_pending_rows():
        return PendingPlayer.objects.select_related('family').prefetch_related('payments').order_by('created_at')

    @staticmethod
    def get_pending_payments():
        return (
            Payment.objects.filter(status=StatusChoices.PENDING_APPROVAL)
            .select_related('player')
            .prefetch_related('pending_players')
            .order_by('-payment_date', '-created_at')
        )

    @staticmethod
    def get_pending_registrations():
        return (
            TournamentRegistration.objects.filter(status=TournamentRegistration.PENDING)
            .select_related('tournament')
            .order_by('created_at')
        )

    # ============ PLAYERS ============

    @staticmethod
    def _check_status(status: str) -> None:
        if status not in APPROVAL_STATUSES:
            raise ApprovalError(
                f"Estado inválido: {status}. Use {PlayerStatus.ACTIVE} o {PlayerStatus.SCHOLARSHIP}",
                user_friendly=True,
            )

    @staticmethod
    @transaction.atomic
    def approve_player(player: Player, status: str, approved_by=None) -> Optional[Payment]:
        """
        Approve a Pending player as Active or Scholarship.

        Scholarship players get a 100% discount. Active players get their
        first monthly fee recorded as a Paid manual payment. Returns that
        payment, if any.
        """
        ApprovalService._check_status(status)
        if player.status != PlayerStatus.PENDING:
            raise ApprovalError(f"El jugador ya fue procesado ({player.status})", user_friendly=True)

        player.status = status
        if status == PlayerStatus.SCHOLARSHIP:
            player.discount_percent = FULL_SCHOLARSHIP
        player.save()

        payment = None
        if status == PlayerStatus.ACTIVE:
            fee = FeeService.calculate_monthly_fee(player)
            if fee > 0:
                payment = PaymentService.create_payment(
                    fee,
                    payment_type=PaymentTypes.MONTHLY,
                    method=PaymentMethods.MANUAL,
                    player=player,
                    status=StatusChoices.PAID,
                    month_year=timezone.localdate().strftime('%Y-%m'),
                    notes=f"Mensualidad automática al aprobar jugador. Monto: ${fee:.2f}",
                    created_by=approved_by,
                )

        logger.info(f"Player {player.id} approved as {status}")
        ApprovalService.notify_accepted(player, status)
        return payment

    @staticmethod
    @transaction.atomic
    def approve_pending_player(pending: PendingPlayer, status: str) -> Player:
        """
        Promote a pending player into a Player.

        Tutor fields are copied only when the pending player has no family.
        Payments tied to the pending row are linked to the new player before
        the row is removed.
        """
        ApprovalService._check_status(status)

        player = Player(
            first_name=pending.first_name,
            last_name=pending.last_name,
            birth_date=pending.birth_date,
            gender=pending.gender,
            cedula=pending.cedula,
            category=pending.category,
            family=pending.family,
            status=status,
            cedula_front_url=pending.cedula_front_url,
            cedula_back_url=pending.cedula_back_url,
            notes=pending.notes,
        )
        if not pending.family_id:
            for field in TUTOR_FIELDS:
                setattr(player, field, getattr(pending, field))
            if pending.tutor_cedula_url:
                player.notes = '\n'.join(filter(None, [player.notes, f"Cédula del tutor: {pending.tutor_cedula_url}"]))
        if status == PlayerStatus.SCHOLARSHIP:
            player.discount_percent = FULL_SCHOLARSHIP
        player.save()

        result = PaymentService.auto_link_unlinked_payments(player, pending.id)
        for error in result['errors']:
            logger.warning(f"Pending player {pending.id}: {error}")

        ApprovalService.notify_accepted(player, status)

        logger.info(
            f"Pending player {pending.id} approved as player {player.id} ({status}), "
            f"{result['linked']} payment(s) linked"
        )
        pending.delete()
        return player

    @staticmethod
    def notify_accepted(player: Player, status: str) -> bool:
        tutor = player.tutor_contact
        if not tutor['email']:
            return False

        try:
            EmailQueueService.queue_email(
                'player_accepted',
                tutor['email'],
                {
                    'tutorName': tutor['name'] or 'Familia',
                    'playerName': player.full_name,
                    'status': 'Becado' if status == PlayerStatus.SCHOLARSHIP else 'Activo',
                },
                metadata={'player_id': player.id},
            )
        except EmailDeliveryError as e:
            logger.error(f"Acceptance email for player {player.id} not queued: {e.message}")
            return False
        return True

    @staticmethod
    def reject_player(player: Player) -> Player:
        if player.status != PlayerStatus.PENDING:
            raise ApprovalError(f"El jugador ya fue procesado ({player.status})", user_friendly=True)
        player.status = PlayerStatus.REJECTED
        player.save()
        logger.info(f"Player {player.id} rejected")
        return player

    @staticmethod
    def reject_pending_player(pending: PendingPlayer) -> None:
        logger.info(f"Pending player {pending.id} ({pending.full_name}) rejected and removed")
        pending.delete()

    # ============ PAYMENTS ============

    @staticmethod
    def _set_payment_status(payment: Payment, status: str) -> Payment:
        if payment.status not in StatusChoices.REVIEWABLE:
            raise ApprovalError(f"El pago ya fue procesado ({payment.status})", user_friendly=True)
        payment.status = status
        payment.save()
        logger.info(f"Payment {payment.id} set to {status}")
        return payment

    @staticmethod
    @transaction.atomic
    def approve_payment(payment: Payment) -> Payment:
        payment = ApprovalService._set_payment_status(payment, StatusChoices.PAID)
        if payment.player_id:
            PaymentService.update_player_payment_info(payment.player, payment.payment_date)
        return payment

    @staticmethod
    def reject_payment(payment: Payment) -> Payment:
        return ApprovalService._set_payment_status(payment, StatusChoices.REJECTED)

    # ============ TOURNAMENT REGISTRATIONS ============

    @staticmethod
    def _set_registration_status(registration: TournamentRegistration, status: str) -> TournamentRegistration:
        if registration.status != TournamentRegistration.PENDING:
            raise ApprovalError(f"La inscripción ya fue procesada ({registration.status})", user_friendly=True)
        registration.status = status
        registration.save(update_fields=['status', 'updated_at'])
        logger.info(f"Tournament registration {registration.id} {status}")
        return registration

    @staticmethod
    def approve_registration(registration: TournamentRegistration) -> TournamentRegistration:
        return ApprovalService._set_registration_status(registration, TournamentRegistration.APPROVED)

    @staticmethod
    def reject_registration(registration: TournamentRegistration) -> TournamentRegistration:
        return ApprovalService._set_registration_status(registration, TournamentRegistration.REJECTED)
