# core/tests/test_models.py
from decimal import Decimal

from django.test import TestCase

from core.models import Academy, Setting
from core.services import SettingsService


class AcademyModelTest(TestCase):
    def test_slug_generated_from_name(self):
        academy = Academy.objects.create(name="Suarez Academy")
        self.assertEqual(academy.slug, "suarez-academy")


class SettingsServiceTest(TestCase):
    def setUp(self):
        self.academy = Academy.objects.create(name="Tura")

    def test_defaults_when_not_configured(self):
        prices = SettingsService.get_prices()
        self.assertEqual(prices['enrollment'], Decimal('130.00'))
        self.assertEqual(prices['monthly'], Decimal('130.00'))
        self.assertEqual(prices['monthly_family'], Decimal('110.50'))

    def test_academy_value_overrides_global(self):
        Setting.objects.create(key='price_monthly', value='100')
        Setting.objects.create(academy=self.academy, key='price_monthly', value='90')

        self.assertEqual(SettingsService.get_prices()['monthly'], Decimal('100'))
        self.assertEqual(SettingsService.get_prices(self.academy)['monthly'], Decimal('90'))

    def test_non_numeric_value_falls_back(self):
        Setting.objects.create(key='price_enrollment', value='abc')
        self.assertEqual(
            SettingsService.get_decimal('price_enrollment', Decimal('80')),
            Decimal('80'),
        )

    def test_set_value_updates_existing_row(self):
        SettingsService.set_value('price_enrollment', 120)
        SettingsService.set_value('price_enrollment', 125)
        self.assertEqual(Setting.objects.filter(key='price_enrollment').count(), 1)
        self.assertEqual(SettingsService.get_value('price_enrollment'), '125')
