# players/views.py
import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from core.services import SettingsService
from shared.decorators.permissions import require_permission

from .models import Player
from .services import PlayerService

logger = logging.getLogger(__name__)


@require_permission('view_players')
@require_http_methods(["GET"])
def player_list_view(request):
    """List or search players: ?q=&status=&limit="""
    try:
        limit = min(int(request.GET.get('limit', 50)), 500)
    except ValueError:
        limit = 50

    players = PlayerService.search_players(
        query=request.GET.get('q', '').strip(),
        status=request.GET.get('status') or None,
        limit=limit,
    )
    prices = SettingsService.get_prices()
    return JsonResponse({
        'players': [PlayerService.serialize(p, prices) for p in players],
    })


@require_permission('view_players')
@require_http_methods(["GET"])
def player_detail_view(request, player_id):
    player = get_object_or_404(Player.objects.select_related('family'), pk=player_id)
    return JsonResponse({'player': PlayerService.serialize(player)})
