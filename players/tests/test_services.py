# players/tests/test_services.py
from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from core.services import SettingsService
from players.models import Family, Player
from players.services import FeeService, PlayerService


def make_player(**kwargs):
    defaults = {
        'first_name': 'Luis',
        'last_name': 'Pérez',
        'birth_date': date(2014, 4, 2),
        'gender': 'Masculino',
        'status': 'Active',
    }
    defaults.update(kwargs)
    return Player.objects.create(**defaults)


class FeeServiceTest(TestCase):
    def setUp(self):
        self.family = Family.objects.create(
            name='Familia Pérez', tutor_name='Marta Pérez', tutor_cedula='8-123-456'
        )

    def test_single_player_pays_monthly_price(self):
        player = make_player()
        self.assertEqual(FeeService.calculate_monthly_fee(player), Decimal('130.00'))

    def test_override_wins(self):
        player = make_player(monthly_fee_override=Decimal('50.00'))
        self.assertEqual(FeeService.calculate_monthly_fee(player), Decimal('50.00'))

    def test_scholarship_pays_nothing(self):
        player = make_player(status='Scholarship')
        self.assertEqual(FeeService.calculate_monthly_fee(player), Decimal('0'))
        self.assertEqual(FeeService.opportunity_cost(player), Decimal('130.00'))

    def test_family_discount_after_first_player(self):
        first = make_player(family=self.family)
        second = make_player(first_name='Ana', gender='Femenino', family=self.family)

        self.assertEqual(FeeService.calculate_monthly_fee(first), Decimal('130.00'))
        self.assertEqual(FeeService.calculate_monthly_fee(second), Decimal('110.50'))

    def test_family_discount_ignores_pending_siblings(self):
        make_player(family=self.family, status='Pending')
        second = make_player(first_name='Ana', family=self.family)
        self.assertEqual(FeeService.calculate_monthly_fee(second), Decimal('130.00'))

    def test_prices_from_settings(self):
        SettingsService.set_value('price_monthly', '100')
        player = make_player()
        self.assertEqual(FeeService.calculate_monthly_fee(player), Decimal('100'))

    def test_family_positions(self):
        first = make_player(family=self.family)
        second = make_player(first_name='Ana', family=self.family)
        loner = make_player(first_name='Juan')

        positions = FeeService.family_positions()
        self.assertEqual(positions[first.id], 0)
        self.assertEqual(positions[second.id], 1)
        self.assertNotIn(loner.id, positions)


class PlayerModelTest(TestCase):
    def test_discount_must_be_a_percentage(self):
        with self.assertRaises(ValidationError):
            make_player(discount_percent=Decimal('120'))

    def test_tutor_contact_prefers_family(self):
        family = Family.objects.create(
            name='Familia Ruiz', tutor_name='Carlos Ruiz', tutor_cedula='8-1-1',
            tutor_email='carlos@example.com'
        )
        player = make_player(family=family, tutor_email='ignored@example.com')
        self.assertEqual(player.tutor_contact['email'], 'carlos@example.com')

        loner = make_player(tutor_name='Rosa', tutor_email='rosa@example.com')
        self.assertEqual(loner.tutor_contact['email'], 'rosa@example.com')


class PlayerServiceTest(TestCase):
    def test_search_players(self):
        make_player(first_name='Luis', last_name='Pérez')
        make_player(first_name='Ana', last_name='Gómez', status='Scholarship')

        self.assertEqual(len(PlayerService.search_players('ana')), 1)
        self.assertEqual(len(PlayerService.search_players(status='Active')), 1)
        self.assertEqual(len(PlayerService.search_players()), 2)
