# communications/services.py
"""
Email templating and the daily-limited email queue.
"""
import logging
import math
from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlencode

from django.conf import settings
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from billing.models import Payment
from core.exceptions import EmailDeliveryError
from core.services import SettingsService
from players.models import Player
from players.services import FeeService
from shared.constants import (
    SETTING_PAYMENT_LINK_BASE_URL,
    SETTING_STATEMENT_DAY,
    PaymentTypes,
    PlayerStatus,
    StatusChoices,
)
from shared.helpers import format_month_year
from shared.services.email import BrevoService

from .models import EmailQueue, EmailTemplate

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT = 300

STATEMENT_TEMPLATE = 'monthly_statement'
DEFAULT_STATEMENT_DAY = 1
STATEMENT_DUE_DAYS = 5
# Payments that cover a month: monthly fees, plus custom payments tagged with the month
STATEMENT_PAYMENT_TYPES = (PaymentTypes.MONTHLY, PaymentTypes.CUSTOM)


def get_logo_url() -> str:
    """Email clients need an absolute https URL."""
    logo = getattr(settings, 'EMAIL_LOGO_URL', '') or ''
    if logo.startswith('http'):
        return logo
    return f"https://{logo.lstrip('/')}"


def format_spanish_date(value: date) -> str:
    """date(2024, 5, 6) -> '6 de mayo de 2024'."""
    return f"{value.day} de {format_month_year(value.strftime('%Y-%m'))}"


def render_template(template: EmailTemplate, variables: Optional[Dict] = None) -> Tuple[str, str]:
    """Replace {{name}} placeholders in subject and body. Returns (subject, html)."""
    merged = {'logoUrl': get_logo_url()}
    merged.update(variables or {})

    subject = template.subject
    html = template.html_template
    for key, value in merged.items():
        placeholder = '{{' + str(key) + '}}'
        subject = subject.replace(placeholder, str(value))
        html = html.replace(placeholder, str(value))
    return subject, html


class EmailQueueService:
    """Queue, send and track emails within the provider's daily limit."""

    BOUNCE_EVENTS = ('bounce', 'hardBounce', 'softBounce')

    @staticmethod
    def daily_limit() -> int:
        return int(getattr(settings, 'EMAIL_DAILY_LIMIT', DEFAULT_DAILY_LIMIT) or DEFAULT_DAILY_LIMIT)

    @staticmethod
    def get_template(name: str) -> EmailTemplate:
        template = EmailTemplate.objects.filter(name=name).first()
        if template is None:
            raise EmailDeliveryError(f"Template '{name}' not found", user_friendly=True)
        if not template.is_active:
            raise EmailDeliveryError(f"Template '{name}' exists but is inactive", user_friendly=True)
        return template

    @staticmethod
    def _build_metadata(template_name: str, variables: Optional[Dict], metadata: Optional[Dict]) -> Dict:
        merged = dict(metadata or {})
        merged['email_type'] = merged.get('email_type') or template_name
        merged.update(variables or {})
        return merged

    @staticmethod
    def sent_today_count() -> int:
        return EmailQueue.objects.filter(
            status=EmailQueue.STATUS_SENT,
            sent_at__date=timezone.localdate(),
        ).count()

    @staticmethod
    def pending_due_count() -> int:
        return EmailQueue.objects.filter(
            status=EmailQueue.STATUS_PENDING,
            scheduled_for__lte=timezone.localdate(),
        ).count()

    @staticmethod
    def send_immediately(template_name: str, to_email: str, variables: Optional[Dict] = None,
                         metadata: Optional[Dict] = None) -> Dict:
        """Send now, bypassing the queue; the attempt is still recorded."""
        template = EmailQueueService.get_template(template_name)
        subject, html = render_template(template, variables)
        record = EmailQueue(
            template=template,
            to_email=to_email,
            subject=subject,
            html_content=html,
            scheduled_for=timezone.localdate(),
            metadata=EmailQueueService._build_metadata(template_name, variables, metadata),
        )

        try:
            message_id = BrevoService().send_email(to_email, subject, html)
        except EmailDeliveryError as e:
            logger.error(f"Immediate email '{template_name}' to {to_email} failed: {e.message}")
            record.status = EmailQueue.STATUS_FAILED
            record.error_message = e.message
            record.save()
            return {'success': False, 'error': e.message, 'email_id': record.id}

        record.status = EmailQueue.STATUS_SENT
        record.sent_at = timezone.now()
        record.brevo_email_id = message_id or ''
        record.save()
        return {'success': True, 'message_id': message_id, 'email_id': record.id}

    @staticmethod
    def queue_email(template_name: str, to_email: str, variables: Optional[Dict] = None,
                    scheduled_for=None, metadata: Optional[Dict] = None) -> Dict:
        """
        Queue an email and estimate when it will go out.

        An explicit future scheduled_for is kept. Otherwise the date is today
        unless today's remaining quota is already taken by due emails, in which
        case it moves forward by as many days as the backlog needs.
        """
        template = EmailQueueService.get_template(template_name)
        subject, html = render_template(template, variables)

        limit = EmailQueueService.daily_limit()
        today = timezone.localdate()
        remaining = max(0, limit - EmailQueueService.sent_today_count())
        pending = EmailQueueService.pending_due_count()

        queue_position = None
        queued_for_tomorrow = False

        if scheduled_for is not None and scheduled_for > today:
            scheduled = scheduled_for
            queued_for_tomorrow = True
        elif remaining == 0:
            scheduled = today + timedelta(days=1)
            queued_for_tomorrow = True
        elif pending >= remaining:
            days_needed = math.ceil((pending - remaining + 1) / limit)
            scheduled = today + timedelta(days=days_needed)
            queued_for_tomorrow = days_needed > 0
            queue_position = pending + 1
        else:
            scheduled = today
            queue_position = pending + 1

        email = EmailQueue.objects.create(
            template=template,
            to_email=to_email,
            subject=subject,
            html_content=html,
            scheduled_for=scheduled,
            metadata=EmailQueueService._build_metadata(template_name, variables, metadata),
        )
        logger.info(f"Email '{template_name}' queued for {to_email} on {scheduled}")

        return {
            'success': True,
            'email_id': email.id,
            'estimated_send_date': scheduled.isoformat(),
            'queue_position': queue_position,
            'queued_for_tomorrow': queued_for_tomorrow,
            'remaining_today': remaining,
        }

    @staticmethod
    def queue_batch(template_name: str, recipients: List[Dict]) -> Dict:
        """Queue recipients ({'email', 'variables'}) in daily-limit sized batches, one day apart."""
        limit = EmailQueueService.daily_limit()
        today = timezone.localdate()
        batches = math.ceil(len(recipients) / limit) if recipients else 0

        for batch in range(batches):
            send_date = today + timedelta(days=batch)
            for recipient in recipients[batch * limit:(batch + 1) * limit]:
                EmailQueueService.queue_email(
                    template_name,
                    recipient['email'],
                    recipient.get('variables'),
                    scheduled_for=send_date,
                    metadata=recipient.get('metadata'),
                )

        logger.info(f"Queued {len(recipients)} '{template_name}' emails over {batches} day(s)")
        return {'success': True, 'total_queued': len(recipients), 'days': batches}

    @staticmethod
    def process_queue() -> Dict:
        """Send due emails up to today's remaining quota; push the rest to tomorrow."""
        today = timezone.localdate()
        tomorrow = today + timedelta(days=1)
        remaining = max(0, EmailQueueService.daily_limit() - EmailQueueService.sent_today_count())

        due = EmailQueue.objects.filter(
            status=EmailQueue.STATUS_PENDING,
            scheduled_for__lte=today,
        ).order_by('created_at', 'id')

        if remaining == 0:
            moved = due.update(scheduled_for=tomorrow)
            logger.warning(f"Daily email limit reached, {moved} emails moved to {tomorrow}")
            return {
                'success': False,
                'error': 'Daily limit reached',
                'sent': 0,
                'failed': 0,
                'total': 0,
                'remaining_today': 0,
                'queued_for_tomorrow': moved,
            }

        due_ids = list(due.values_list('id', flat=True))
        if not due_ids:
            return {'success': True, 'sent': 0, 'failed': 0, 'total': 0, 'remaining_today': remaining}

        send_ids = due_ids[:remaining]
        overflow_ids = due_ids[remaining:]
        queued_for_tomorrow = 0
        if overflow_ids:
            queued_for_tomorrow = EmailQueue.objects.filter(id__in=overflow_ids).update(scheduled_for=tomorrow)

        brevo = BrevoService()
        sent = failed = 0

        for email in EmailQueue.objects.filter(id__in=send_ids).order_by('created_at', 'id'):
            # Claim the row so a concurrent run does not send it twice
            claimed = EmailQueue.objects.filter(
                id=email.id, status=EmailQueue.STATUS_PENDING
            ).update(status=EmailQueue.STATUS_SENT)
            if not claimed:
                continue

            try:
                message_id = brevo.send_email(email.to_email, email.subject, email.html_content)
            except EmailDeliveryError as e:
                EmailQueue.objects.filter(id=email.id).update(
                    status=EmailQueue.STATUS_FAILED,
                    error_message=e.message,
                )
                failed += 1
                continue

            EmailQueue.objects.filter(id=email.id).update(
                sent_at=timezone.now(),
                brevo_email_id=message_id or '',
            )
            sent += 1
            EmailQueueService._record_statement_sent(email)

        logger.info(f"Email queue processed: {sent} sent, {failed} failed, {queued_for_tomorrow} deferred")
        return {
            'success': True,
            'sent': sent,
            'failed': failed,
            'total': len(send_ids),
            'remaining_today': max(0, remaining - sent),
            'queued_for_tomorrow': queued_for_tomorrow,
        }

    @staticmethod
    def _record_statement_sent(email: EmailQueue) -> None:
        metadata = email.metadata or {}
        if metadata.get('email_type') != 'monthly_statement':
            return

        player_ids = list(metadata.get('player_ids') or [])
        if metadata.get('player_id'):
            player_ids.append(metadata['player_id'])
        if player_ids:
            Player.objects.filter(pk__in=player_ids).update(monthly_statement_sent_at=timezone.now())

    @staticmethod
    def get_queue_status() -> Dict:
        today = timezone.localdate()
        limit = EmailQueueService.daily_limit()
        sent_today = EmailQueueService.sent_today_count()
        pending = EmailQueue.objects.filter(status=EmailQueue.STATUS_PENDING)

        return {
            'daily_limit': limit,
            'sent_today': sent_today,
            'remaining_today': max(0, limit - sent_today),
            'pending_today': pending.filter(scheduled_for__lte=today).count(),
            'pending_future': pending.filter(scheduled_for__gt=today).count(),
            'failed_today': EmailQueue.objects.filter(
                status=EmailQueue.STATUS_FAILED, created_at__date=today
            ).count(),
            'brevo_credits': EmailQueueService.get_provider_credits(),
        }

    @staticmethod
    def get_provider_credits() -> Optional[int]:
        """Remaining Brevo credits, or None when the account cannot be read."""
        try:
            return BrevoService().get_account()['credits']
        except EmailDeliveryError as e:
            logger.warning(f"Brevo account unavailable: {e.message}")
            return None

    @staticmethod
    def get_tutor_recipients(statuses: Iterable[str]) -> List[Dict]:
        """One recipient per tutor email (case-insensitive) for players in the given statuses."""
        recipients = {}
        players = Player.objects.filter(status__in=list(statuses)).select_related('family').order_by('id')
        for player in players:
            tutor = player.tutor_contact
            email = (tutor['email'] or '').strip().lower()
            if not email:
                continue
            entry = recipients.setdefault(email, {
                'email': email,
                'name': tutor['name'],
                'players': [],
            })
            entry['players'].append(player.full_name)
        return list(recipients.values())

    @staticmethod
    @transaction.atomic
    def apply_delivery_event(event: str, message_id: str, reason: Optional[str] = None) -> int:
        """Apply a provider delivery event. Returns the number of rows updated."""
        message_id = (message_id or '').strip().lstrip('<').rstrip('>').strip()
        if not message_id or not event:
            return 0

        emails = EmailQueue.objects.filter(brevo_email_id=message_id)
        now = timezone.now()

        if event == 'delivered':
            updated = emails.update(delivered_at=now)
        elif event == 'opened':
            updated = emails.update(opened_at=now)
        elif event == 'click':
            updated = emails.update(clicked_at=now)
        elif event in EmailQueueService.BOUNCE_EVENTS:
            updated = emails.update(
                bounced_at=now,
                status=EmailQueue.STATUS_FAILED,
                error_message=reason or 'Email bounced',
            )
        elif event == 'spam':
            updated = emails.update(status=EmailQueue.STATUS_FAILED, error_message='Marked as spam')
        elif event == 'blocked':
            updated = emails.update(status=EmailQueue.STATUS_FAILED, error_message='Email blocked')
        else:
            logger.debug(f"Ignoring Brevo event {event} for {message_id}")
            return 0

        logger.info(f"Brevo event {event} applied to {updated} email(s) with id {message_id}")
        return updated


class StatementService:
    """
    Monthly account statements for tutors.

    On the configured payment day each tutor of Active players gets one
    statement listing the players and what is still owed for the month.
    Players already sent a statement this month are skipped.
    """

    @staticmethod
    def payment_day() -> int:
        raw = SettingsService.get_value(SETTING_STATEMENT_DAY)
        try:
            day = int(raw)
        except (TypeError, ValueError):
            return DEFAULT_STATEMENT_DAY
        return day if 1 <= day <= 31 else DEFAULT_STATEMENT_DAY

    @staticmethod
    def amount_paid(player: Player, month_year: str) -> Decimal:
        total = Payment.objects.filter(
            Q(status__in=(StatusChoices.APPROVED, StatusChoices.PAID)) | Q(status=''),
            player=player,
            month_year=month_year,
            type__in=STATEMENT_PAYMENT_TYPES,
        ).aggregate(total=Sum('amount'))['total']
        return total or Decimal('0')

    @staticmethod
    def payment_link(cedula: str) -> str:
        base = (SettingsService.get_value(SETTING_PAYMENT_LINK_BASE_URL) or settings.APP_BASE_URL).strip()
        link = f"{base.rstrip('/')}/pay"
        return f"{link}?{urlencode({'cedula': cedula})}" if cedula else link

    @staticmethod
    def _already_sent(player: Player, month_year: str) -> bool:
        sent_at = player.monthly_statement_sent_at
        return bool(sent_at) and timezone.localtime(sent_at).strftime('%Y-%m') == month_year

    @staticmethod
    def get_due_statements(today: Optional[date] = None) -> List[Dict]:
        """One statement per tutor email with the balance of each of their players."""
        today = today or timezone.localdate()
        month_year = today.strftime('%Y-%m')
        prices = SettingsService.get_prices()
        positions = FeeService.family_positions()

        statements = OrderedDict()
        players = Player.objects.filter(status=PlayerStatus.ACTIVE).select_related('family').order_by('id')
        for player in players:
            if StatementService._already_sent(player, month_year):
                continue

            tutor = player.tutor_contact
            email = (tutor['email'] or '').strip().lower()
            if not email:
                logger.warning(f"Player {player.id} has no tutor email, statement skipped")
                continue

            fee = FeeService.calculate_monthly_fee(player, prices, positions.get(player.id, 0))
            due = max(Decimal('0'), fee - StatementService.amount_paid(player, month_year))

            statement = statements.setdefault(email, {
                'email': email,
                'tutor_name': tutor['name'] or 'Familia',
                'tutor_cedula': tutor['cedula'] or '',
                'month_year': month_year,
                'players': [],
                'total_due': Decimal('0'),
            })
            statement['players'].append({'id': player.id, 'name': player.full_name, 'fee': fee, 'due': due})
            statement['total_due'] += due

        return list(statements.values())

    @staticmethod
    def send_monthly_statements(today: Optional[date] = None, force: bool = False) -> Dict:
        """
        Queue this month's statements through the batch queue.

        Runs only on the payment day unless ``force`` is set. Tutors who owe
        nothing get no email; their players are still marked as done for the
        month.
        """
        today = today or timezone.localdate()
        payment_day = StatementService.payment_day()
        if not force and today.day != payment_day:
            logger.info(f"Statements skipped: today is day {today.day}, payment day is {payment_day}")
            return {'success': True, 'skipped': True, 'processed': 0, 'queued': 0, 'players': 0}

        # Fail before marking anyone when the template is missing
        EmailQueueService.get_template(STATEMENT_TEMPLATE)

        statements = StatementService.get_due_statements(today)
        due_date = format_spanish_date(today + timedelta(days=STATEMENT_DUE_DAYS))
        recipients = []
        for statement in statements:
            if statement['total_due'] <= 0:
                continue
            recipients.append({
                'email': statement['email'],
                'variables': {
                    'tutorName': statement['tutor_name'],
                    'playerName': ', '.join(p['name'] for p in statement['players']),
                    'playerList': ''.join(
                        f"<li>{p['name']}: ${p['due']:.2f}</li>" for p in statement['players']
                    ),
                    'amount': f"{statement['total_due']:.2f}",
                    'monthYear': format_month_year(statement['month_year']),
                    'dueDate': due_date,
                    'paymentLink': StatementService.payment_link(statement['tutor_cedula']),
                },
                'metadata': {
                    'player_ids': [p['id'] for p in statement['players']],
                    'month_year': statement['month_year'],
                },
            })

        result = EmailQueueService.queue_batch(STATEMENT_TEMPLATE, recipients)
        player_ids = [p['id'] for statement in statements for p in statement['players']]
        Player.objects.filter(pk__in=player_ids).update(monthly_statement_sent_at=timezone.now())

        logger.info(
            f"Monthly statements for {today:%Y-%m}: {len(recipients)} queued "
            f"out of {len(statements)} tutors, {len(player_ids)} players"
        )
        return {
            'success': True,
            'skipped': False,
            'monthYear': today.strftime('%Y-%m'),
            'processed': len(statements),
            'queued': result['total_queued'],
            'players': len(player_ids),
        }
