# players/tests/test_views.py
from datetime import date

from django.test import TestCase
from django.urls import reverse

from core.models import Academy
from players.models import Player
from users.services import RoleSetupService, UserManagementService


class PlayerViewsTest(TestCase):
    def setUp(self):
        RoleSetupService.seed_defaults()
        self.academy = Academy.objects.create(name='Academia Central')
        self.coach = UserManagementService.create_user(
            email='coach@example.com', password='coachpass123',
            academy=self.academy, role_name='coach',
        )
        self.player = Player.objects.create(
            first_name='Luis', last_name='Pérez', birth_date=date(2014, 4, 2),
            gender='Masculino', status='Active', tutor_email='tutor@example.com',
        )

    def test_requires_login(self):
        response = self.client.get(reverse('players:player_list'))
        self.assertEqual(response.status_code, 401)

    def test_list_players(self):
        self.client.force_login(self.coach)
        response = self.client.get(reverse('players:player_list'), {'q': 'luis'})
        self.assertEqual(response.status_code, 200)
        players = response.json()['players']
        self.assertEqual(len(players), 1)
        self.assertEqual(players[0]['monthlyFee'], 130.0)
        self.assertEqual(players[0]['tutorEmail'], 'tutor@example.com')

    def test_player_detail(self):
        self.client.force_login(self.coach)
        response = self.client.get(reverse('players:player_detail', args=[self.player.id]))
        self.assertEqual(response.json()['player']['firstName'], 'Luis')

        response = self.client.get(reverse('players:player_detail', args=[9999]))
        self.assertEqual(response.status_code, 404)
