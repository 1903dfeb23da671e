# approvals/views.py
"""
Review queues and approve/reject actions for the staff dashboard.
"""
import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from billing.models import Payment
from billing.serializers import PaymentSerializer
from core.services import SettingsService
from players.models import PendingPlayer, Player
from players.services import PlayerService
from shared.decorators.permissions import require_approve_players, require_manage_payments
from shared.helpers import parse_json_body
from tournaments.models import TournamentRegistration
from tournaments.serializers import RegistrationSerializer

from .serializers import PendingPlayerSerializer, PlayerDecisionSerializer
from .services import ApprovalService

logger = logging.getLogger(__name__)


def _decision_status(request):
    serializer = PlayerDecisionSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return None, JsonResponse({'success': False, 'errors': serializer.errors}, status=400)
    return serializer.validated_data['status'], None


# ============ PLAYERS ============

@require_approve_players
@require_http_methods(["GET"])
def pending_players_view(request):
    prices = SettingsService.get_prices()
    return JsonResponse({
        'players': [PlayerService.serialize(p, prices) for p in ApprovalService.get_pending_players()],
        'pendingPlayers': PendingPlayerSerializer(ApprovalService.get_pending_rows(), many=True).data,
    })


@require_approve_players
@require_http_methods(["POST"])
def approve_player_view(request, player_id):
    player = get_object_or_404(Player, pk=player_id)
    status, error = _decision_status(request)
    if error:
        return error

    payment = ApprovalService.approve_player(player, status, approved_by=request.user)
    return JsonResponse({
        'success': True,
        'player': PlayerService.serialize(player),
        'paymentId': payment.id if payment else None,
    })


@require_approve_players
@require_http_methods(["POST"])
def reject_player_view(request, player_id):
    player = get_object_or_404(Player, pk=player_id)
    ApprovalService.reject_player(player)
    return JsonResponse({'success': True, 'player': PlayerService.serialize(player)})


@require_approve_players
@require_http_methods(["POST"])
def approve_pending_player_view(request, pending_id):
    pending = get_object_or_404(PendingPlayer, pk=pending_id)
    status, error = _decision_status(request)
    if error:
        return error

    player = ApprovalService.approve_pending_player(pending, status)
    return JsonResponse({'success': True, 'player': PlayerService.serialize(player)})


@require_approve_players
@require_http_methods(["POST"])
def reject_pending_player_view(request, pending_id):
    pending = get_object_or_404(PendingPlayer, pk=pending_id)
    ApprovalService.reject_pending_player(pending)
    return JsonResponse({'success': True})


# ============ PAYMENTS ============

@require_manage_payments
@require_http_methods(["GET"])
def pending_payments_view(request):
    return JsonResponse({
        'payments': PaymentSerializer(ApprovalService.get_pending_payments(), many=True).data,
    })


@require_manage_payments
@require_http_methods(["POST"])
def approve_payment_view(request, payment_id):
    payment = get_object_or_404(Payment, pk=payment_id)
    ApprovalService.approve_payment(payment)
    return JsonResponse({'success': True, 'payment': PaymentSerializer(payment).data})


@require_manage_payments
@require_http_methods(["POST"])
def reject_payment_view(request, payment_id):
    payment = get_object_or_404(Payment, pk=payment_id)
    ApprovalService.reject_payment(payment)
    return JsonResponse({'success': True, 'payment': PaymentSerializer(payment).data})


# ============ TOURNAMENT REGISTRATIONS ============

@require_approve_players
@require_http_methods(["GET"])
def pending_registrations_view(request):
    return JsonResponse({
        'registrations': RegistrationSerializer(ApprovalService.get_pending_registrations(), many=True).data,
    })


@require_approve_players
@require_http_methods(["POST"])
def approve_registration_view(request, registration_id):
    registration = get_object_or_404(TournamentRegistration, pk=registration_id)
    ApprovalService.approve_registration(registration)
    return JsonResponse({'success': True, 'status': registration.status})


@require_approve_players
@require_http_methods(["POST"])
def reject_registration_view(request, registration_id):
    registration = get_object_or_404(TournamentRegistration, pk=registration_id)
    ApprovalService.reject_registration(registration)
    return JsonResponse({'success': True, 'status': registration.status})
