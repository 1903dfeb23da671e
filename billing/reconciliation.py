# billing/reconciliation.py
"""
Gateway notification handling.

Callbacks and webhooks from Yappy and Paguelo Fácil rarely carry enough data
to know which local record they pay for. Enrollment payments are matched
against stored payments (operation code, order id, then amount in a recent
window), and new unlinked payments are matched to recent pending players by
amount.
"""
import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from core.services import SettingsService
from enrollment.services import EnrollmentService
from players.models import PendingPlayer
from shared.constants import (
    GATEWAY_LABELS,
    PENDING_PLAYER_IDS_MARKER,
    SETTING_PRICE_ENROLLMENT,
    PaymentMethods,
    PaymentTypes,
    StatusChoices,
)
from shared.services.payment import BaseGatewayClient
from shared.utils import IdempotencyService

from .models import Payment
from .services import PaymentService

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = Decimal('1.00')
RECENT_WINDOW = timedelta(hours=2)
MAX_PENDING_CANDIDATES = 20
ORDER_ID_CANDIDATES = 5
DEFAULT_ENROLLMENT_PRICE = Decimal('80.00')

APPROVED = 'approved'
DENIED = 'denied'
UNKNOWN = 'unknown'


class ReconciliationService:

    @staticmethod
    def classify(payload: Dict) -> str:
        """
        Classify a Paguelo Fácil webhook body as approved, denied or unknown.

        status 1 / authStatus '00' / totalPay > 0 / an 'aprobada' message mean
        approved, unless status 0, another authStatus or a 'denegada' message
        says otherwise.
        """
        status = str(payload.get('status', '')).strip()
        auth_status = str(payload.get('authStatus') or '').strip()
        total_pay = BaseGatewayClient.parse_amount(payload.get('totalPay') or payload.get('TotalPagado'))
        message = str(payload.get('messageSys') or '').lower()

        denied = (
            status == '0'
            or (auth_status and auth_status != '00')
            or 'denegada' in message
            or 'denied' in message
        )
        if denied:
            return DENIED

        approved = (
            status == '1'
            or auth_status == '00'
            or total_pay > 0
            or 'aprobada' in message
            or 'approved' in message
        )
        return APPROVED if approved else UNKNOWN

    @staticmethod
    def enrollment_price() -> Decimal:
        return SettingsService.get_decimal(SETTING_PRICE_ENROLLMENT, DEFAULT_ENROLLMENT_PRICE)

    # ============ ENROLLMENT PAYMENTS ============

    @staticmethod
    def find_enrollment_payment(amount: Decimal, method: str, operation_number: str = '',
                                order_id: str = '') -> Optional[Payment]:
        payments = Payment.objects.filter(type=PaymentTypes.ENROLLMENT, method=method)

        if operation_number:
            match = payments.filter(notes__icontains=operation_number).order_by(
                '-payment_date', '-created_at').first()
            if match:
                logger.info(f"Enrollment payment {match.id} matched by operation {operation_number}")
                return match

        if order_id:
            candidates = list(
                payments.filter(notes__icontains=order_id)
                .order_by('-payment_date', '-created_at')[:ORDER_ID_CANDIDATES]
            )
            if candidates:
                match = next((p for p in candidates if p.status == StatusChoices.PENDING), candidates[0])
                logger.info(f"Enrollment payment {match.id} matched by order {order_id}")
                return match

        cutoff = timezone.now() - RECENT_WINDOW
        recent = payments.filter(
            status=StatusChoices.PENDING,
            created_at__gte=cutoff,
        ).order_by('-created_at')[:MAX_PENDING_CANDIDATES]
        for payment in recent:
            if abs(payment.amount - amount) <= AMOUNT_TOLERANCE:
                logger.info(f"Enrollment payment {payment.id} matched by amount ${amount}")
                return payment
        return None

    @staticmethod
    @transaction.atomic
    def reconcile_enrollment(amount, method: str = PaymentMethods.PAGUELOFACIL,
                             operation_number: str = '', order_id: str = '',
                             payment_date=None) -> Tuple[Payment, bool]:
        """
        Approve the stored enrollment payment this notification is for, or
        create an unlinked Approved one and try to tie it to pending players.

        Returns (payment, created).
        """
        amount = Decimal(str(amount))
        gateway = GATEWAY_LABELS.get(method, method)
        operation_info = f"{gateway} Operación: {operation_number}" if operation_number else gateway
        now = timezone.now().isoformat()

        payment = ReconciliationService.find_enrollment_payment(amount, method, operation_number, order_id)
        if payment is not None:
            payment.status = StatusChoices.APPROVED
            payment.append_note(f"{operation_info} (Webhook). Confirmado: {now}")
            if operation_number and not payment.reference:
                payment.reference = operation_number
            payment.save()
            logger.info(f"Enrollment payment {payment.id} approved from gateway notification")
            return payment, False

        payment = Payment.objects.create(
            player=None,
            amount=amount,
            type=PaymentTypes.ENROLLMENT,
            method=method,
            status=StatusChoices.APPROVED,
            payment_date=payment_date or timezone.localdate(),
            reference=operation_number or '',
            notes=(
                f"Pago de matrícula procesado con {gateway} (Webhook).\n"
                f"{operation_info}. Monto: ${amount}. Confirmado: {now}\n\n"
                "Nota: Este pago se creó automáticamente desde el webhook porque no se "
                "encontró un pago pendiente asociado."
            ),
        )
        logger.info(f"No stored enrollment payment matched; created payment {payment.id}")
        ReconciliationService.link_payment_to_pending_players(payment)
        return payment, True

    @staticmethod
    def link_payment_to_pending_players(payment: Payment) -> List[int]:
        """
        Tie an unlinked enrollment payment to recent pending players.

        Tries, in order: a family whose enrollment total is within $1 of the
        payment; a single player without family whose price is within $1; the
        newest players up to round(amount / price).
        """
        price = ReconciliationService.enrollment_price()
        amount = payment.amount
        expected = int((amount / price).quantize(Decimal('1'), rounding=ROUND_HALF_UP)) if price > 0 else 0

        recent = list(
            PendingPlayer.objects.filter(created_at__gte=timezone.now() - RECENT_WINDOW)
            .order_by('-created_at', '-id')[:MAX_PENDING_CANDIDATES]
        )
        if not recent:
            logger.info(f"No recent pending players for payment {payment.id}")
            return []

        already_linked = set(
            Payment.pending_players.through.objects.filter(
                pendingplayer_id__in=[p.id for p in recent],
                payment__type=PaymentTypes.ENROLLMENT,
            ).exclude(payment_id=payment.id).values_list('pendingplayer_id', flat=True)
        )
        candidates = [p for p in recent if p.id not in already_linked]

        families: Dict[int, List[PendingPlayer]] = {}
        individuals = []
        for pending in candidates:
            if pending.family_id:
                families.setdefault(pending.family_id, []).append(pending)
            else:
                individuals.append(pending)

        matched: List[PendingPlayer] = []
        for family_id, members in families.items():
            if abs(price * len(members) - amount) <= AMOUNT_TOLERANCE:
                matched = members
                logger.info(f"Payment {payment.id} matched to family {family_id} ({len(members)} players)")
                break

        if not matched:
            for pending in individuals:
                if abs(price - amount) <= AMOUNT_TOLERANCE:
                    matched = [pending]
                    logger.info(f"Payment {payment.id} matched to pending player {pending.id}")
                    break

        if not matched and 0 < expected <= len(candidates):
            matched = candidates[:expected]
            logger.info(f"Payment {payment.id} matched to the {expected} newest pending players")

        if not matched:
            logger.warning(f"Could not match payment {payment.id} (${amount}) to pending players")
            return []

        ids = [p.id for p in matched]
        ids_text = ', '.join(str(i) for i in ids)
        payment.pending_players.add(*ids)
        payment.append_note(
            f"Vinculado automáticamente a jugador(es) pendiente(s): {ids_text}. "
            f"{PENDING_PLAYER_IDS_MARKER} {ids_text}"
        )
        payment.save(update_fields=['notes', 'updated_at'])
        return ids

    # ============ NOTIFICATIONS ============

    @staticmethod
    def handle_enrollment(method: str, amount, operation_number: str = '', order_id: str = '',
                          token: str = '', payment_date=None) -> Dict:
        """
        Approved enrollment notification. With stored form data the enrollment
        is created from it; otherwise the payment is reconciled.
        """
        data = EnrollmentService.load_temporary(token) if token else None
        if data:
            result = EnrollmentService.create_enrollment_from_payment(data, amount, method, operation_number)
            if result['success']:
                EnrollmentService.discard_temporary(token)
                return dict(result, action='enrollment_created')
            if result.get('paymentId'):
                return dict(result, action='enrollment_partial')
            logger.error(f"Enrollment from {method} payment failed, recording payment only: {result['error']}")

        payment, created = ReconciliationService.reconcile_enrollment(
            amount, method, operation_number, order_id, payment_date
        )
        return {
            'success': True,
            'action': 'payment_created' if created else 'payment_matched',
            'paymentId': payment.id,
        }

    @staticmethod
    def process_notification(method: str, notification: Dict) -> Dict:
        """
        Act on an approved gateway notification once per operation.

        ``notification`` keys: type ('enrollment' | 'payment'), player_ref
        (player id, or enrollment token for enrollments), payment_type,
        amount, month_year, operation, order_id, notes, payment_date.
        """
        key = IdempotencyService.build_key(method, notification.get('operation') or notification.get('order_id'))
        if key and not IdempotencyService.check_and_lock(key):
            logger.info(f"{method} notification {key} already processed")
            return {'success': True, 'action': 'duplicate'}

        try:
            result = ReconciliationService._dispatch(method, notification)
        except Exception:
            if key:
                IdempotencyService.mark_failed(key)
            raise

        if key:
            IdempotencyService.mark_processed(key)
        return result

    @staticmethod
    def _dispatch(method: str, notification: Dict) -> Dict:
        kind = notification.get('type') or 'payment'
        amount = BaseGatewayClient.parse_amount(notification.get('amount'))
        if amount <= 0:
            logger.warning(f"{method} notification without amount ignored")
            return {'success': False, 'action': 'ignored'}

        if kind == 'enrollment':
            return ReconciliationService.handle_enrollment(
                method,
                amount,
                operation_number=notification.get('operation') or '',
                order_id=notification.get('order_id') or '',
                token=notification.get('player_ref') or '',
                payment_date=notification.get('payment_date'),
            )

        if kind == 'payment' and notification.get('player_ref'):
            payment = PaymentService.create_gateway_payment(
                notification['player_ref'],
                amount,
                method,
                payment_type=notification.get('payment_type') or '',
                month_year=notification.get('month_year') or '',
                reference=notification.get('operation') or notification.get('order_id') or '',
                notes=notification.get('notes') or '',
                payment_date=notification.get('payment_date'),
            )
            if payment is None:
                return {'success': False, 'action': 'player_not_found'}
            return {'success': True, 'action': 'payment_created', 'paymentId': payment.id}

        logger.warning(f"{method} notification of type {kind!r} has nothing to record")
        return {'success': False, 'action': 'ignored'}
