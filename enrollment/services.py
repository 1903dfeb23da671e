# enrollment/services.py
"""
Enrollment intake.

Two flows create records:
- direct submission (transfer, proof, cash, cheque): Family + Players with
  status Pending and an enrollment payment waiting for review, all atomic;
- gateway enrollment (Yappy, Paguelo Fácil): after the gateway confirms the
  money, PendingPlayers and an Approved payment are created. Nothing is
  rolled back on a partial failure because the payment already happened.
"""
import logging
import secrets
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from billing.models import Payment
from communications.services import EmailQueueService
from core.exceptions import EmailDeliveryError, ValidationError
from core.services import SettingsService
from players.categories import get_category
from players.models import Family, PendingPlayer, Player
from shared.constants import (
    DEFAULT_CATEGORY,
    GATEWAY_LABELS,
    PENDING_PLAYER_IDS_MARKER,
    PaymentMethods,
    PaymentTypes,
    PlayerStatus,
    StatusChoices,
)
from shared.helpers import money

from .serializers import EnrollmentSerializer, clean_phone

logger = logging.getLogger(__name__)

TEMP_ENROLLMENT_TTL = 60 * 60
MIN_TUTOR_CEDULA_LENGTH = 7


def family_name_for(tutor_name: str) -> str:
    """'Familia <second word of the tutor name>', or the whole name."""
    parts = tutor_name.split(' ')
    return f"Familia {parts[1] if len(parts) > 1 and parts[1] else tutor_name}"


class EnrollmentService:

    # ============ VALIDATION ============

    @staticmethod
    def normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        """Fix the usual data-entry problems before validating gateway enrollments."""
        normalized = dict(data)

        cedula = normalized.get('tutorCedula')
        if isinstance(cedula, str):
            cedula = cedula.strip()
            if 0 < len(cedula) < MIN_TUTOR_CEDULA_LENGTH:
                logger.info(f"Padding tutor cedula {cedula!r} to {MIN_TUTOR_CEDULA_LENGTH} characters")
                cedula = cedula.zfill(MIN_TUTOR_CEDULA_LENGTH)
            normalized['tutorCedula'] = cedula

        phone = normalized.get('tutorPhone')
        if isinstance(phone, str):
            cleaned = clean_phone(phone.strip())
            if len(cleaned) >= 7:
                normalized['tutorPhone'] = cleaned

        players = normalized.get('players')
        if isinstance(players, list):
            normalized_players = []
            for player in players:
                player = dict(player) if isinstance(player, dict) else player
                if isinstance(player, dict):
                    if isinstance(player.get('cedula'), str):
                        player['cedula'] = player['cedula'].strip()
                    if not (player.get('category') or '').strip():
                        player['category'] = DEFAULT_CATEGORY
                normalized_players.append(player)
            normalized['players'] = normalized_players

        return normalized

    @staticmethod
    def validate(data: Dict[str, Any]) -> Dict[str, Any]:
        serializer = EnrollmentSerializer(data=data)
        if not serializer.is_valid():
            raise ValidationError("Datos inválidos", user_friendly=True, details=serializer.errors)
        return serializer.validated_data

    # ============ DIRECT SUBMISSION ============

    @staticmethod
    @transaction.atomic
    def submit_enrollment(data: Dict[str, Any]) -> Dict[str, Any]:
        """Create family, players and the enrollment payment from validated form data."""
        family, created = Family.objects.get_or_create(
            tutor_cedula=data['tutor_cedula'],
            defaults={
                'name': family_name_for(data['tutor_name']),
                'tutor_name': data['tutor_name'],
                'tutor_email': data['tutor_email'],
                'tutor_phone': data['tutor_phone'],
                'tutor_cedula_url': data.get('tutor_cedula_url') or '',
            },
        )
        if not created:
            family.tutor_name = data['tutor_name']
            family.tutor_email = data['tutor_email']
            family.tutor_phone = data['tutor_phone']
            if data.get('tutor_cedula_url'):
                family.tutor_cedula_url = data['tutor_cedula_url']
            family.save()

        players = []
        for player_data in data['players']:
            players.append(Player.objects.create(
                first_name=player_data['first_name'],
                last_name=player_data['last_name'],
                birth_date=player_data['birth_date'],
                gender=player_data['gender'],
                cedula=player_data.get('cedula') or '',
                category=player_data.get('category') or get_category(
                    player_data['birth_date'], player_data['gender']
                ),
                family=family,
                status=PlayerStatus.PENDING,
                cedula_front_url=player_data.get('cedula_front_url') or '',
                cedula_back_url=player_data.get('cedula_back_url') or '',
            ))

        count = len(players)
        price = SettingsService.get_prices()['enrollment']
        total = price * count

        form_method = data['payment_method']
        method = PaymentMethods.FROM_ENROLLMENT_FORM[form_method]
        status = (
            StatusChoices.PENDING_APPROVAL
            if form_method in PaymentMethods.NEEDS_APPROVAL
            else StatusChoices.PENDING
        )
        proof_url = data.get('payment_proof_url') or ''

        payment = Payment.objects.create(
            player=players[0],
            amount=total,
            type=PaymentTypes.ENROLLMENT,
            method=method,
            status=status,
            proof_url=proof_url,
            notes=(
                f"Matrícula para {count} jugador(es). Tutor: {data['tutor_name']}. "
                f"Jugadores: {', '.join(str(p.id) for p in players)}"
            ),
        )
        # Siblings get a zero-amount record so each player has an enrollment row
        for player in players[1:]:
            Payment.objects.create(
                player=player,
                amount=Decimal('0'),
                type=PaymentTypes.ENROLLMENT,
                method=method,
                status=status,
                proof_url=proof_url,
                notes=(
                    "Matrícula compartida (pago principal registrado en jugador principal). "
                    f"Tutor: {data['tutor_name']}"
                ),
            )

        logger.info(f"Enrollment for family {family.id}: {count} player(s), payment {payment.id} ({status})")

        EnrollmentService._send_confirmation(data, players, total, form_method)

        return {
            'success': True,
            'familyId': family.id,
            'playerIds': [p.id for p in players],
            'paymentId': payment.id,
            'amount': money(total),
        }

    @staticmethod
    def _send_confirmation(data, players, total, payment_method) -> None:
        try:
            EmailQueueService.queue_email(
                'enrollment_confirmation',
                data['tutor_email'],
                {
                    'tutorName': data['tutor_name'],
                    'playerNames': ', '.join(p.full_name for p in players),
                    'amount': f"{total:.2f}",
                    'paymentMethod': payment_method,
                },
            )
        except EmailDeliveryError as e:
            logger.warning(f"Enrollment confirmation not queued for {data['tutor_email']}: {e.message}")

    # ============ GATEWAY ENROLLMENT ============

    @staticmethod
    def create_enrollment_from_payment(enrollment_data: Dict[str, Any], amount, method: str,
                                       operation_number: Optional[str] = None) -> Dict[str, Any]:
        """
        Create PendingPlayers and an Approved enrollment payment after a gateway
        confirmed the money. Returns a result dict and never raises for data
        problems; whatever was created before a failure is kept.
        """
        created: Dict[str, Any] = {'familyId': None, 'playerIds': [], 'paymentId': None}

        serializer = EnrollmentSerializer(data=EnrollmentService.normalize(enrollment_data))
        if not serializer.is_valid():
            message = EnrollmentService._describe_errors(serializer.errors, enrollment_data)
            logger.error(f"Gateway enrollment data invalid: {message}")
            return dict(created, success=False, error=f"Datos de enrollment inválidos: {message}")

        data = serializer.validated_data
        amount = Decimal(str(amount))
        players_data = data['players']

        try:
            family = None
            if len(players_data) >= 2:
                family = Family.objects.filter(tutor_cedula=data['tutor_cedula']).first()
                if family is None:
                    family = Family.objects.create(
                        name=family_name_for(data['tutor_name']),
                        tutor_name=data['tutor_name'],
                        tutor_cedula=data['tutor_cedula'],
                        tutor_email=data['tutor_email'],
                        tutor_phone=data['tutor_phone'],
                        tutor_cedula_url=data.get('tutor_cedula_url') or '',
                    )
                    logger.info(f"Created family {family.id} for gateway enrollment")
                created['familyId'] = family.id

            for player_data in players_data:
                pending = PendingPlayer.objects.create(
                    first_name=player_data['first_name'],
                    last_name=player_data['last_name'],
                    birth_date=player_data['birth_date'],
                    gender=player_data['gender'],
                    cedula=player_data.get('cedula') or '',
                    category=player_data.get('category') or DEFAULT_CATEGORY,
                    cedula_front_url=player_data.get('cedula_front_url') or '',
                    cedula_back_url=player_data.get('cedula_back_url') or '',
                    family=family,
                    tutor_name='' if family else data['tutor_name'],
                    tutor_cedula='' if family else data['tutor_cedula'],
                    tutor_email='' if family else data['tutor_email'],
                    tutor_phone='' if family else data['tutor_phone'],
                    tutor_cedula_url='' if family else (data.get('tutor_cedula_url') or ''),
                )
                created['playerIds'].append(pending.id)

            payment = EnrollmentService._create_gateway_enrollment_payment(
                created['playerIds'], amount, method, operation_number, data['tutor_name']
            )
            created['paymentId'] = payment.id
        except (DatabaseError, DjangoValidationError) as e:
            logger.error(
                f"Gateway enrollment failed after payment was confirmed, keeping created rows "
                f"{created}: {e}",
                exc_info=True,
            )
            return dict(created, success=False, error=str(e))

        logger.info(
            f"Gateway enrollment created: {len(created['playerIds'])} pending player(s), "
            f"payment {created['paymentId']}"
        )
        return dict(created, success=True)

    @staticmethod
    def _create_gateway_enrollment_payment(pending_ids: List[int], amount: Decimal, method: str,
                                           operation_number: Optional[str], tutor_name: str):
        gateway = GATEWAY_LABELS.get(method, method)
        if operation_number:
            operation_info = f"{gateway} Operación: {operation_number}"
        else:
            operation_info = gateway

        payment = Payment.objects.create(
            player=None,
            amount=amount,
            type=PaymentTypes.ENROLLMENT,
            method=method,
            status=StatusChoices.APPROVED,
            payment_date=timezone.localdate(),
            reference=operation_number or '',
            notes=(
                f"Pago de matrícula procesado con {gateway}.\n"
                f"{operation_info}. Monto: ${amount}. Confirmado: {timezone.now().isoformat()}\n\n"
                f"Matrícula para {len(pending_ids)} jugador(es). Tutor: {tutor_name}. "
                f"{PENDING_PLAYER_IDS_MARKER} {', '.join(str(i) for i in pending_ids)}"
            ),
        )
        payment.pending_players.set(pending_ids)
        return payment

    @staticmethod
    def _describe_errors(errors, original) -> str:
        messages = []
        labels = (
            ('tutorCedula', 'Cédula del tutor inválida'),
            ('tutorPhone', 'Teléfono del tutor inválido'),
            ('tutorEmail', 'Email del tutor inválido'),
            ('players', 'Datos de jugadores inválidos'),
        )
        for field, label in labels:
            if field in errors:
                detail = errors[field]
                text = ', '.join(str(d) for d in detail) if isinstance(detail, list) else str(detail)
                if field == 'tutorCedula':
                    received = str(original.get('tutorCedula') or '')
                    text += f'. Valor recibido: "{received}" ({len(received)} caracteres)'
                messages.append(f"{label}: {text}")
        if not messages:
            messages = [f"{field}: {detail}" for field, detail in errors.items()]
        return '; '.join(messages)

    # ============ TEMPORARY STORAGE ============

    @staticmethod
    def _temp_key(token: str) -> str:
        return f"enrollment_temp:{token}"

    @staticmethod
    def store_temporary(data: Dict[str, Any]) -> str:
        """Keep form data for an hour while the tutor pays at the gateway."""
        token = f"enrollment_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        cache.set(EnrollmentService._temp_key(token), data, TEMP_ENROLLMENT_TTL)
        logger.info(f"Stored temporary enrollment data with token {token}")
        return token

    @staticmethod
    def load_temporary(token: str) -> Optional[Dict[str, Any]]:
        if not token:
            return None
        return cache.get(EnrollmentService._temp_key(token))

    @staticmethod
    def discard_temporary(token: str) -> None:
        if token:
            cache.delete(EnrollmentService._temp_key(token))
