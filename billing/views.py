"""
Billing views: Yappy and Paguelo Fácil endpoints, plus staff payment management.
"""
import csv
import json
import logging
import re
import time
from urllib.parse import urlencode

from django.conf import settings
from django.db import DatabaseError
from django.http import HttpResponse, HttpResponseRedirect, JsonResponse
from django.shortcuts import get_object_or_404
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from core.exceptions import AcademyException
from players.models import Player
from shared.constants import PaymentMethods, StatusChoices
from shared.decorators.permissions import require_manage_payments
from shared.helpers import money, parse_date, parse_json_body
from shared.exceptions.payment import (
    PaymentGatewayError,
    PaymentProcessingError,
    PaymentVerificationError,
)
from shared.services.payment import BaseGatewayClient, PagueloFacilService, YappyService
from shared.utils import WebhookSecurity

from .models import Expense, Payment, StaffPayment
from .reconciliation import APPROVED, ReconciliationService
from .serializers import (
    ExpenseSerializer,
    LinkPaymentSerializer,
    ManualPaymentSerializer,
    PaymentSerializer,
    StaffPaymentSerializer,
)
from .services import PaymentService

logger = logging.getLogger('billing')

ORDER_PLAYER_RE = re.compile(r'^payment-([^-]+)-')

# Order of the custom params sent to Paguelo Fácil as PARM_2..PARM_6
PAGUELOFACIL_PARAM_ORDER = ('type', 'playerId', 'paymentType', 'amount', 'monthYear')

DEFAULT_DENIED_REASON = 'Transacción denegada'


def _base_url():
    return settings.APP_BASE_URL.rstrip('/')


def _absolute(path):
    return f"{_base_url()}{path}"


def _player_from_order(order_id):
    match = ORDER_PLAYER_RE.match(order_id or '')
    return match.group(1) if match else ''


def _result_url(gateway, approved, kind, player_id, extra):
    """Frontend page the payer lands on after a gateway callback."""
    query = urlencode(dict({gateway: 'success' if approved else 'failed'}, **extra))
    if kind == 'enrollment':
        path = '/enrollment/success' if approved else '/enrollment'
    elif kind == 'payment' and player_id:
        path = f'/dashboard/players/{player_id}'
    else:
        path = '/dashboard/finances'
    return f"{_base_url()}{path}?{query}"


def _record_notification(method, notification, log_prefix):
    """Process an approved notification; failures are logged and the payer still gets redirected."""
    try:
        result = ReconciliationService.process_notification(method, notification)
        logger.info(f"{log_prefix} {result.get('action')}: {result}")
        return result
    except (DatabaseError, AcademyException) as e:
        logger.error(f"{log_prefix} could not record payment: {e}", exc_info=True)
        return None


# ============ YAPPY ============

@csrf_exempt
@require_http_methods(["GET"])
def yappy_config_view(request):
    """Public values for the Yappy payment button."""
    try:
        service = YappyService()
    except PaymentProcessingError as e:
        return JsonResponse({'success': False, 'error': e.message}, status=500)
    return JsonResponse(dict(service.get_public_config(), success=True))


@csrf_exempt
@require_http_methods(["POST"])
def yappy_validate_view(request):
    try:
        result = YappyService().validate_merchant()
    except PaymentGatewayError as e:
        return JsonResponse({'success': False, 'error': e.message}, status=401)
    except PaymentProcessingError as e:
        return JsonResponse({'success': False, 'error': e.message}, status=500)
    return JsonResponse(dict(result, success=True))


@csrf_exempt
@require_http_methods(["POST"])
def yappy_order_view(request):
    """Validate the merchant, then create the order the button will pay."""
    data = parse_json_body(request)
    amount = BaseGatewayClient.parse_amount(data.get('amount'))
    description = (data.get('description') or '').strip()
    order_id = (data.get('orderId') or '').strip()

    if amount < YappyService.MIN_AMOUNT:
        return JsonResponse({'error': 'El monto debe ser mayor o igual a $0.01'}, status=400)
    if not description:
        return JsonResponse({'error': 'La descripción es requerida'}, status=400)
    if not order_id:
        return JsonResponse({'error': 'El ID de orden es requerido'}, status=400)
    if len(order_id) > YappyService.MAX_ORDER_ID_LENGTH:
        return JsonResponse(
            {'error': f'El ID de orden no puede superar {YappyService.MAX_ORDER_ID_LENGTH} caracteres'},
            status=400,
        )

    try:
        service = YappyService()
        validation = service.validate_merchant()
        order = service.create_order(
            amount,
            description,
            order_id,
            token=validation['token'],
            payment_date=validation['epochTime'],
            ipn_url=data.get('ipnUrl') or _absolute(reverse('billing:yappy_callback')),
        )
    except PaymentProcessingError as e:
        logger.error(f"Yappy order {order_id} failed: {e.message}")
        return JsonResponse({'error': e.message or 'Error al crear orden de pago'}, status=500)

    return JsonResponse({
        'success': True,
        'orderData': order,
        'cdnUrl': service.cdn_url,
        'merchantId': service.merchant_id,
    })


def _yappy_params(request):
    """Callback params from the query string and, for POST, the JSON body."""
    params = PagueloFacilService.parse_callback_params(request.GET)
    if request.method == 'POST' and request.body:
        try:
            body = json.loads(request.body.decode('utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = {}
        if isinstance(body, dict):
            params.update(body)

    metadata = params.get('metadata') or {}
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except json.JSONDecodeError:
            metadata = {}
    return params, metadata if isinstance(metadata, dict) else {}


def _verify_yappy_hash(params):
    """A hash that is present must match; a missing one is only logged."""
    received = params.get('hash') or params.get('Hash') or ''
    if not received:
        logger.warning(f"Yappy callback for order {params.get('orderId')} arrived without hash")
        return
    if not YappyService().validate_callback_hash(params, received):
        raise PaymentVerificationError("Invalid Yappy callback hash")


@csrf_exempt
@require_http_methods(["GET", "POST"])
def yappy_callback_view(request):
    params, metadata = _yappy_params(request)
    order_id = str(params.get('orderId') or '')

    try:
        _verify_yappy_hash(params)
    except PaymentVerificationError:
        logger.warning(f"Rejected Yappy callback with invalid hash for order {order_id}")
        return JsonResponse({'success': False, 'error': 'Invalid hash'}, status=401)
    except PaymentProcessingError as e:
        logger.error(f"Yappy callback could not be verified: {e.message}")
        return JsonResponse({'success': False, 'error': e.message}, status=500)

    def value(key):
        return metadata.get(key) or params.get(key) or ''

    kind = value('type')
    player_id = str(value('playerId') or _player_from_order(order_id))
    amount = params.get('amount') or value('amount')
    transaction_id = params.get('confirmationNumber') or params.get('transactionId') or ''
    approved = YappyService.is_transaction_approved(params)

    logger.info(
        f"Yappy callback order={order_id} status={params.get('status')} "
        f"type={kind} player={player_id} approved={approved}"
    )

    if approved and kind == 'enrollment':
        _record_notification(PaymentMethods.YAPPY, {
            'type': 'enrollment',
            'player_ref': value('enrollmentToken'),
            'amount': amount,
            'operation': transaction_id,
            'order_id': order_id,
        }, f"Yappy order {order_id}")
    elif approved and kind == 'payment' and player_id:
        _record_notification(PaymentMethods.YAPPY, {
            'type': 'payment',
            'player_ref': player_id,
            'payment_type': value('paymentType'),
            'amount': amount,
            'month_year': value('monthYear'),
            'operation': transaction_id,
            'order_id': order_id,
            'notes': (
                f"Pago procesado con Yappy Comercial. Orden: {order_id}. "
                f"Transacción: {transaction_id or 'N/A'}. {value('notes')}"
            ).strip(),
        }, f"Yappy order {order_id}")
    elif not approved:
        logger.info(f"Yappy order {order_id} not approved (status {params.get('status')})")

    extra = {'orderId': order_id}
    if approved and not (kind == 'payment' and player_id):
        extra['amount'] = amount
    return JsonResponse({
        'success': approved,
        'redirectUrl': _result_url('yappy', approved, kind, player_id, extra),
    })


# ============ PAGUELO FÁCIL ============

@csrf_exempt
@require_http_methods(["POST"])
def paguelofacil_link_view(request):
    data = parse_json_body(request)
    amount = BaseGatewayClient.parse_amount(data.get('amount'))
    description = (data.get('description') or '').strip()

    if amount < PagueloFacilService.MIN_AMOUNT:
        return JsonResponse({'error': 'El monto debe ser mayor o igual a $1.00 USD'}, status=400)
    if not description:
        return JsonResponse({'error': 'La descripción es requerida'}, status=400)

    custom = data.get('customParams') or {}
    custom_params = None
    if isinstance(custom, dict) and custom:
        # Fixed positions so the callback can read them back by index
        custom_params = [(key, custom.get(key) or '') for key in PAGUELOFACIL_PARAM_ORDER]

    try:
        result = PagueloFacilService().create_payment_link(
            amount,
            description,
            return_url=data.get('returnUrl') or _absolute(reverse('billing:paguelofacil_callback')),
            email=data.get('email') or None,
            order_id=data.get('orderId') or None,
            custom_params=custom_params,
            expires_in=data.get('expiresIn') or PagueloFacilService.DEFAULT_EXPIRES_IN,
        )
    except PaymentProcessingError as e:
        return JsonResponse({'error': e.message or 'Error al generar enlace de pago'}, status=500)

    return JsonResponse({'success': True, 'paymentUrl': result['url'], 'code': result['code']})


@csrf_exempt
@require_http_methods(["GET", "POST"])
def paguelofacil_callback_view(request):
    """RETURN_URL target: record approved payments, then send the payer to the frontend."""
    params = PagueloFacilService.parse_callback_params(request.GET)
    params.update(PagueloFacilService.parse_callback_params(request.POST))

    order_id = params.get('PARM_1', '')
    kind = params.get('type') or params.get('PARM_2', '')
    player_ref = params.get('playerId') or params.get('PARM_3', '') or _player_from_order(order_id)
    amount = params.get('amount') or params.get('PARM_5') or params.get('TotalPagado', '')
    operation = params.get('Oper', '')
    approved = PagueloFacilService.is_transaction_approved(params)

    logger.info(
        f"PagueloFacil callback oper={operation} estado={params.get('Estado')} "
        f"type={kind} ref={player_ref} approved={approved}"
    )

    if approved and kind in ('enrollment', 'payment') and player_ref:
        _record_notification(PaymentMethods.PAGUELOFACIL, {
            'type': kind,
            'player_ref': player_ref,
            'payment_type': params.get('paymentType') or params.get('PARM_4', ''),
            'amount': amount,
            'month_year': params.get('monthYear') or params.get('PARM_6', ''),
            'operation': operation,
            'order_id': order_id,
            'notes': (
                f"Pago procesado con Paguelo Fácil. Operación: {operation or 'N/A'}. "
                f"Fecha: {params.get('Fecha') or 'N/A'} {params.get('Hora') or 'N/A'}"
            ),
        }, f"PagueloFacil operation {operation}")
    elif approved and kind == 'enrollment':
        _record_notification(PaymentMethods.PAGUELOFACIL, {
            'type': 'enrollment',
            'amount': amount,
            'operation': operation,
            'order_id': order_id,
        }, f"PagueloFacil operation {operation}")

    if approved:
        extra = {'oper': operation}
        if kind != 'payment' or not player_ref:
            extra['monto'] = params.get('TotalPagado', '')
    else:
        extra = {'razon': params.get('Razon') or DEFAULT_DENIED_REASON}

    # Enrollment tokens are not player ids
    redirect_player = player_ref if kind == 'payment' else ''
    return HttpResponseRedirect(_result_url('paguelofacil', approved, kind, redirect_player, extra))


@csrf_exempt
@require_http_methods(["POST"])
def paguelofacil_webhook_view(request):
    """Server-to-server notification; more reliable than the browser callback."""
    start_time = time.time()
    webhook_id = WebhookSecurity.make_webhook_id(request.body)

    try:
        payload = json.loads(request.body.decode('utf-8'))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"[{webhook_id}] Invalid JSON payload: {str(e)}")
        return JsonResponse({'error': 'Invalid JSON in webhook body', 'details': str(e)}, status=400)

    if not isinstance(payload, dict):
        return JsonResponse({'error': 'Invalid webhook body'}, status=400)

    try:
        operation = str(payload.get('codOper') or payload.get('Oper') or '')
        outcome = ReconciliationService.classify(payload)
        message = str(payload.get('messageSys') or '').lower()
        if any(word in message for word in ('authentication', '3ds', 'issuer is rejecting')):
            logger.warning(f"[{webhook_id}] 3DS problem on operation {operation}: {payload.get('messageSys')}")

        logger.info(f"[{webhook_id}] PagueloFacil operation {operation}: {outcome}")

        if outcome == APPROVED:
            order_id = str(payload.get('PARM_1') or '')
            result = ReconciliationService.process_notification(PaymentMethods.PAGUELOFACIL, {
                'type': payload.get('PARM_2') or 'payment',
                'player_ref': str(payload.get('PARM_3') or '') or _player_from_order(order_id),
                'payment_type': payload.get('PARM_4') or '',
                'amount': (payload.get('PARM_5') or payload.get('totalPay')
                           or payload.get('TotalPagado') or payload.get('requestPayAmount')),
                'month_year': payload.get('PARM_6') or '',
                'operation': operation,
                'order_id': order_id,
                'notes': f"Pago procesado con Paguelo Fácil (Webhook). Operación: {operation or 'N/A'}",
            })
            logger.info(f"[{webhook_id}] {result.get('action')}: {result}")

        processing_time = time.time() - start_time
        logger.info(f"[{webhook_id}] Webhook processed in {processing_time:.2f}s")
        return JsonResponse({'success': True, 'received': True})

    except Exception as e:
        processing_time = time.time() - start_time
        logger.error(f"[{webhook_id}] Webhook error after {processing_time:.2f}s: {str(e)}", exc_info=True)
        return JsonResponse({'error': 'Error processing webhook', 'details': str(e)}, status=500)


# ============ STAFF PAYMENT MANAGEMENT ============

@require_manage_payments
@require_http_methods(["GET", "POST"])
def payments_view(request):
    """GET lists payments (?player=&status=&type=&limit=); POST records a manual payment."""
    if request.method == 'GET':
        payments = Payment.objects.select_related('player').prefetch_related('pending_players')
        for param, field in (('player', 'player_id'), ('status', 'status'), ('type', 'type')):
            if request.GET.get(param):
                payments = payments.filter(**{field: request.GET[param]})
        try:
            limit = min(int(request.GET.get('limit', 100)), 500)
        except ValueError:
            limit = 100
        return JsonResponse({'payments': PaymentSerializer(payments[:limit], many=True).data})

    serializer = ManualPaymentSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    data = dict(serializer.validated_data)
    player_id = data.pop('player_id', None)
    player = get_object_or_404(Player, pk=player_id) if player_id else None

    payment = PaymentService.create_payment(
        data.pop('amount'),
        payment_type=data.pop('type'),
        player=player,
        created_by=request.user,
        **data,
    )
    return JsonResponse({'success': True, 'payment': PaymentSerializer(payment).data}, status=201)


@require_manage_payments
@require_http_methods(["POST"])
def link_payment_view(request, payment_id):
    payment = get_object_or_404(Payment, pk=payment_id)
    serializer = LinkPaymentSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    player = get_object_or_404(Player, pk=serializer.validated_data['player_id'])
    payment = PaymentService.link_payment_to_player(payment, player)
    return JsonResponse({'success': True, 'payment': PaymentSerializer(payment).data})


@require_manage_payments
@require_http_methods(["GET"])
def unlinked_payments_view(request):
    payments = PaymentService.get_unlinked_payments()
    return JsonResponse({'payments': PaymentSerializer(payments, many=True).data})


@require_manage_payments
@require_http_methods(["GET"])
def player_payment_summary_view(request, player_id):
    player = get_object_or_404(Player, pk=player_id)
    summary = PaymentService.get_payment_summary(player)
    return JsonResponse({
        'playerId': player.id,
        'total': money(summary['total']),
        'count': summary['count'],
        'lastPayment': summary['last_payment'].isoformat() if summary['last_payment'] else None,
    })


@require_manage_payments
@require_http_methods(["GET"])
def export_payments_view(request):
    """Payments to CSV; optional ?start=&end= (YYYY-MM-DD)."""
    payments = Payment.objects.select_related('player').order_by('-payment_date', '-created_at')
    if request.GET.get('start'):
        payments = payments.filter(payment_date__gte=parse_date(request.GET['start'], 'start'))
    if request.GET.get('end'):
        payments = payments.filter(payment_date__lte=parse_date(request.GET['end'], 'end'))
    if request.GET.get('include_void') != '1':
        payments = payments.exclude(status__in=StatusChoices.VOID)

    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="payments_{timezone.now().date()}.csv"'

    writer = csv.writer(response)
    writer.writerow(['ID', 'Date', 'Player', 'Type', 'Method', 'Status', 'Amount', 'Month', 'Reference', 'Notes'])
    for payment in payments.iterator():
        writer.writerow([
            payment.id,
            payment.payment_date.isoformat(),
            payment.player.full_name if payment.player_id else '',
            payment.get_type_display(),
            payment.get_method_display(),
            payment.status,
            f"{payment.amount:.2f}",
            payment.month_year,
            payment.reference,
            payment.notes.replace('\n', ' '),
        ])

    return response


# ============ EXPENSES & STAFF PAYMENTS ============

def _filter_dates(queryset, request, field):
    if request.GET.get('start'):
        queryset = queryset.filter(**{f'{field}__gte': parse_date(request.GET['start'], 'start')})
    if request.GET.get('end'):
        queryset = queryset.filter(**{f'{field}__lte': parse_date(request.GET['end'], 'end')})
    return queryset


def _list_or_create(request, queryset, serializer_class, date_field, key):
    if request.method == 'GET':
        records = _filter_dates(queryset, request, date_field)
        return JsonResponse({key: serializer_class(records, many=True).data})

    serializer = serializer_class(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)
    record = serializer.save()
    logger.info(f"{record._meta.verbose_name.title()} {record.id} recorded by {request.user.email}: ${record.amount}")
    return JsonResponse({'success': True, key[:-1]: serializer_class(record).data}, status=201)


@require_manage_payments
@require_http_methods(["GET", "POST"])
def expenses_view(request):
    """GET lists expenses (?start=&end=); POST records one."""
    return _list_or_create(request, Expense.objects.all(), ExpenseSerializer, 'date', 'expenses')


@require_manage_payments
@require_http_methods(["DELETE"])
def expense_detail_view(request, expense_id):
    expense = get_object_or_404(Expense, pk=expense_id)
    expense.delete()
    logger.info(f"Expense {expense_id} deleted by {request.user.email}")
    return JsonResponse({'success': True})


@require_manage_payments
@require_http_methods(["GET", "POST"])
def staff_payments_view(request):
    """GET lists staff payments (?start=&end=); POST records one."""
    return _list_or_create(
        request, StaffPayment.objects.all(), StaffPaymentSerializer, 'payment_date', 'staffPayments'
    )


@require_manage_payments
@require_http_methods(["DELETE"])
def staff_payment_detail_view(request, staff_payment_id):
    staff_payment = get_object_or_404(StaffPayment, pk=staff_payment_id)
    staff_payment.delete()
    logger.info(f"Staff payment {staff_payment_id} deleted by {request.user.email}")
    return JsonResponse({'success': True})
