# communications/views.py
"""
Email queue endpoints: cron trigger, Brevo delivery webhook, queue status
and broadcasts to tutors.
"""
import json
import logging
import time

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from core.exceptions import EmailDeliveryError
from shared.decorators.permissions import require_send_emails
from shared.helpers import parse_json_body
from shared.utils import WebhookSecurity

from .serializers import BroadcastSerializer
from .services import EmailQueueService, StatementService

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def process_queue_cron_view(request):
    """Called by the scheduler; requires Authorization: Bearer CRON_SECRET."""
    if not WebhookSecurity.verify_bearer_token(
        request.headers.get('Authorization', ''), getattr(settings, 'CRON_SECRET', '')
    ):
        logger.warning("Unauthorized email cron call")
        return JsonResponse({'error': 'Unauthorized'}, status=401)

    try:
        result = EmailQueueService.process_queue()
    except EmailDeliveryError as e:
        logger.error(f"Email queue processing failed: {e.message}")
        return JsonResponse({'error': 'Failed to process email queue', 'details': e.message}, status=500)

    result['timestamp'] = timezone.now().isoformat()
    return JsonResponse(result)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def monthly_statements_cron_view(request):
    """Queue monthly statements on the payment day; ?force=1 runs on any day."""
    if not WebhookSecurity.verify_bearer_token(
        request.headers.get('Authorization', ''), getattr(settings, 'CRON_SECRET', '')
    ):
        logger.warning("Unauthorized monthly statements cron call")
        return JsonResponse({'error': 'Unauthorized'}, status=401)

    try:
        result = StatementService.send_monthly_statements(force=request.GET.get('force') == '1')
    except EmailDeliveryError as e:
        logger.error(f"Monthly statements failed: {e.message}")
        return JsonResponse({'error': 'Failed to process monthly statements', 'details': e.message}, status=500)

    result['timestamp'] = timezone.now().isoformat()
    return JsonResponse(result)


@csrf_exempt
@require_http_methods(["POST"])
def brevo_webhook_view(request):
    """Delivery events from Brevo (delivered, opened, click, bounces, spam, blocked)."""
    start_time = time.time()
    webhook_id = WebhookSecurity.make_webhook_id(request.body)

    secret = getattr(settings, 'BREVO_WEBHOOK_SECRET', '')
    if secret and not WebhookSecurity.verify_signature(
        request.body, request.headers.get('x-brevo-signature', ''), secret
    ):
        logger.warning(f"[{webhook_id}] Invalid Brevo signature")
        return JsonResponse({'error': 'Invalid signature'}, status=401)

    try:
        payload = json.loads(request.body.decode('utf-8'))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"[{webhook_id}] Invalid JSON payload: {str(e)}")
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    if not isinstance(payload, dict):
        return JsonResponse({'received': True})

    event = payload.get('event')
    message_id = payload.get('message-id') or payload.get('messageId') or payload.get('message_id')
    if not event or not message_id:
        logger.info(f"[{webhook_id}] Brevo webhook without event or message id")
        return JsonResponse({'received': True})

    updated = EmailQueueService.apply_delivery_event(event, message_id, payload.get('reason'))

    processing_time = time.time() - start_time
    logger.info(f"[{webhook_id}] Brevo {event} processed in {processing_time:.2f}s ({updated} rows)")
    return JsonResponse({'received': True, 'updated': updated})


@require_send_emails
@require_http_methods(["GET"])
def queue_status_view(request):
    return JsonResponse(EmailQueueService.get_queue_status())


@require_send_emails
@require_http_methods(["POST"])
def broadcast_view(request):
    """Queue a template to every tutor of players in the given statuses."""
    serializer = BroadcastSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    data = serializer.validated_data
    # Fail fast on a missing template before building the recipient list
    EmailQueueService.get_template(data['template'])

    recipients = [
        {
            'email': tutor['email'],
            'variables': dict(
                data['variables'],
                tutorName=tutor['name'],
                playerNames=', '.join(tutor['players']),
            ),
        }
        for tutor in EmailQueueService.get_tutor_recipients(data['statuses'])
    ]
    result = EmailQueueService.queue_batch(data['template'], recipients)
    logger.info(f"Broadcast '{data['template']}' queued by {request.user.email} for {len(recipients)} tutors")
    return JsonResponse(result)
