# tournaments/views.py
"""
Public tournament endpoints (active tournament, team registration) and
management endpoints for staff with manage_tournaments.
"""
import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from shared.decorators.permissions import require_manage_tournaments
from shared.helpers import parse_json_body

from .models import Tournament
from .serializers import (
    RegistrationSerializer,
    RegistrationToggleSerializer,
    TeamRegistrationSerializer,
    TournamentCreateSerializer,
    TournamentStatusSerializer,
)
from .services import TournamentService

logger = logging.getLogger(__name__)


@require_http_methods(["GET"])
def active_tournament_view(request):
    tournament = TournamentService.get_active_tournament()
    return JsonResponse({'tournament': TournamentService.serialize(tournament) if tournament else None})


@csrf_exempt
@require_http_methods(["POST"])
def register_team_view(request, tournament_id):
    tournament = get_object_or_404(Tournament, pk=tournament_id)
    serializer = TeamRegistrationSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    registration = TournamentService.register_team(tournament, serializer.validated_data)
    return JsonResponse({'success': True, 'registrationId': registration.id}, status=201)


@require_manage_tournaments
@require_http_methods(["GET", "POST"])
def tournament_list_view(request):
    if request.method == 'GET':
        return JsonResponse({
            'tournaments': [TournamentService.serialize(t) for t in TournamentService.get_tournaments()],
        })

    serializer = TournamentCreateSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    tournament = TournamentService.create_tournament(**serializer.validated_data)
    return JsonResponse({'success': True, 'tournament': TournamentService.serialize(tournament)}, status=201)


@require_manage_tournaments
@require_http_methods(["POST"])
def tournament_status_view(request, tournament_id):
    tournament = get_object_or_404(Tournament, pk=tournament_id)
    serializer = TournamentStatusSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    tournament = TournamentService.update_status(tournament, serializer.validated_data['status'])
    return JsonResponse({'success': True, 'tournament': TournamentService.serialize(tournament)})


@require_manage_tournaments
@require_http_methods(["POST"])
def toggle_registration_view(request, tournament_id):
    tournament = get_object_or_404(Tournament, pk=tournament_id)
    serializer = RegistrationToggleSerializer(data=parse_json_body(request))
    if not serializer.is_valid():
        return JsonResponse({'success': False, 'errors': serializer.errors}, status=400)

    TournamentService.toggle_registration(tournament, serializer.validated_data['is_open'])
    return JsonResponse({'success': True, 'registrationOpen': tournament.registration_open})


@require_manage_tournaments
@require_http_methods(["POST", "DELETE"])
def delete_tournament_view(request, tournament_id):
    tournament = get_object_or_404(Tournament, pk=tournament_id)
    TournamentService.delete_tournament(tournament)
    return JsonResponse({'success': True})


@require_manage_tournaments
@require_http_methods(["GET"])
def registration_list_view(request, tournament_id):
    tournament = get_object_or_404(Tournament, pk=tournament_id)
    registrations = tournament.registrations.all()
    if request.GET.get('status'):
        registrations = registrations.filter(status=request.GET['status'])
    return JsonResponse({'registrations': RegistrationSerializer(registrations, many=True).data})
