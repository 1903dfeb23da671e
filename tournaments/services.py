# tournaments/services.py
"""
Tournament lifecycle and team registration.
"""
import logging
from typing import Dict, Optional

from django.db import transaction

from core.exceptions import ValidationError

from .models import Tournament, TournamentRegistration

logger = logging.getLogger(__name__)


class TournamentService:

    @staticmethod
    def get_tournaments():
        return Tournament.objects.all()

    @staticmethod
    def get_active_tournament() -> Optional[Tournament]:
        return Tournament.objects.filter(status=Tournament.ACTIVE).order_by('-created_at').first()

    @staticmethod
    def create_tournament(name: str, start_date, end_date, description: str = '',
                          location: str = '', categories=None) -> Tournament:
        """New tournaments start inactive with registration closed."""
        tournament = Tournament.objects.create(
            name=name,
            description=description or '',
            start_date=start_date,
            end_date=end_date,
            location=location or '',
            categories=list(categories or []),
            status=Tournament.INACTIVE,
            registration_open=False,
        )
        logger.info(f"Tournament created: {tournament.name} ({tournament.id})")
        return tournament

    @staticmethod
    @transaction.atomic
    def update_status(tournament: Tournament, status: str) -> Tournament:
        """
        Activating a tournament deactivates (and closes) every other one and
        opens its registration; any other status closes registration.
        """
        if status not in dict(Tournament.STATUS_CHOICES):
            raise ValidationError(f"Invalid tournament status: {status}", user_friendly=True)

        if status == Tournament.ACTIVE:
            deactivated = Tournament.objects.exclude(pk=tournament.pk).filter(
                status=Tournament.ACTIVE
            ).update(status=Tournament.INACTIVE, registration_open=False)
            if deactivated:
                logger.info(f"Deactivated {deactivated} tournaments before activating {tournament.id}")

        tournament.status = status
        tournament.registration_open = status == Tournament.ACTIVE
        tournament.save()

        logger.info(f"Tournament {tournament.id} is now {status}")
        return tournament

    @staticmethod
    def toggle_registration(tournament: Tournament, is_open: bool) -> Tournament:
        tournament.registration_open = bool(is_open)
        tournament.save(update_fields=['registration_open', 'updated_at'])
        logger.info(f"Tournament {tournament.id} registration {'opened' if is_open else 'closed'}")
        return tournament

    @staticmethod
    def delete_tournament(tournament: Tournament) -> None:
        logger.info(f"Deleting tournament {tournament.id} with {tournament.registrations.count()} registrations")
        tournament.delete()

    @staticmethod
    def register_team(tournament: Tournament, data: Dict) -> TournamentRegistration:
        if not tournament.accepts_registrations:
            raise ValidationError("Las inscripciones para este torneo están cerradas", user_friendly=True)

        category = data['category']
        if tournament.categories and category not in tournament.categories:
            raise ValidationError(f"Categoría no disponible en este torneo: {category}", user_friendly=True)

        registration = TournamentRegistration.objects.create(
            tournament=tournament,
            team_name=data['team_name'],
            coach_name=data['coach_name'],
            coach_email=data['coach_email'],
            coach_phone=data.get('coach_phone') or '',
            category=category,
            status=TournamentRegistration.PENDING,
            payment_status='pending',
        )
        logger.info(f"Team '{registration.team_name}' registered in tournament {tournament.id}")
        return registration

    @staticmethod
    def serialize(tournament: Tournament) -> Dict:
        return {
            'id': tournament.id,
            'name': tournament.name,
            'description': tournament.description,
            'startDate': tournament.start_date.isoformat(),
            'endDate': tournament.end_date.isoformat(),
            'location': tournament.location,
            'categories': tournament.categories,
            'status': tournament.status,
            'registrationOpen': tournament.registration_open,
        }
