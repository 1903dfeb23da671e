from datetime import date
from decimal import Decimal

from django.test import TestCase

from billing.models import Expense, Payment, StaffPayment
from billing.tests.test_services import make_pending
from players.models import Family
from players.tests.test_services import make_player
from reports.services import ReportService, percent, period_type, resolve_period

MAY_START, MAY_END = date(2024, 5, 1), date(2024, 5, 31)


class HelpersTest(TestCase):
    def test_resolve_period(self):
        today = date(2024, 8, 20)
        self.assertEqual(resolve_period('monthly', today=today), (date(2024, 8, 1), date(2024, 8, 31)))
        self.assertEqual(resolve_period('quarterly', today=today), (date(2024, 7, 1), date(2024, 9, 30)))
        self.assertEqual(resolve_period('annual', 2023, today=today), (date(2023, 1, 1), date(2023, 12, 31)))

    def test_period_type(self):
        self.assertEqual(period_type(MAY_START, MAY_END), 'monthly')
        self.assertEqual(period_type(date(2024, 4, 1), date(2024, 6, 30)), 'quarterly')
        self.assertEqual(period_type(date(2024, 1, 1), date(2024, 12, 31)), 'annual')
        self.assertEqual(period_type(date(2023, 1, 1), date(2024, 12, 31)), 'custom')

    def test_percent(self):
        self.assertEqual(percent(1, 3), 33.33)
        self.assertEqual(percent(5, 0), 0.0)


class ReportServiceTest(TestCase):
    def setUp(self):
        family = Family.objects.create(name='Familia Gómez', tutor_name='Ana Gómez', tutor_cedula='8-1-1')
        self.first = make_player(first_name='Ana', last_name='Gómez', family=family, category='U10')
        self.second = make_player(first_name='Beto', last_name='Gómez', family=family, category='U12')
        self.custom = make_player(first_name='Caro', last_name='Díaz', category='U12',
                                  monthly_fee_override=Decimal('50.00'))
        self.scholar = make_player(first_name='Dani', last_name='Ruiz', status='Scholarship', category='U14')
        make_player(first_name='Eli', last_name='Mora', status='Pending')
        make_pending()

        Payment.objects.create(player=self.first, amount=130, payment_date=date(2024, 5, 5), method='yappy')
        Payment.objects.create(player=self.second, amount='110.50', status='Pending',
                               payment_date=date(2024, 5, 6), method='transfer')
        Payment.objects.create(player=self.custom, amount=50, status='Paid',
                               payment_date=date(2024, 5, 7), method='cash')
        Payment.objects.create(player=self.custom, amount=20, status='Rejected', payment_date=date(2024, 5, 8))
        Payment.objects.create(player=self.first, amount=99, payment_date=date(2024, 6, 1))
        Payment.objects.create(amount=80, type='enrollment', payment_date=date(2024, 5, 9))
        legacy = Payment.objects.create(player=self.first, amount=10, payment_date=date(2024, 5, 10), method='cash')
        Payment.objects.filter(pk=legacy.pk).update(status='')

        Expense.objects.create(description='Camisetas', category='Uniformes', amount=100, date=date(2024, 5, 2))
        Expense.objects.create(description='Árbitros', category='Arbitraje', amount=20, date=date(2024, 5, 3))
        Expense.objects.create(description='Balones', amount=500, date=date(2024, 4, 3))
        StaffPayment.objects.create(staff_name='Coach', amount=80, payment_date=date(2024, 5, 15))

    def test_financial_kpis(self):
        kpis = ReportService.get_financial_kpis(MAY_START, MAY_END)

        self.assertEqual(kpis['totalIncome'], 300.50)
        self.assertEqual(kpis['totalExpenses'], 200.00)
        self.assertEqual(kpis['profit'], 100.50)
        self.assertEqual(kpis['profitMargin'], 33.44)
        self.assertEqual(kpis['activePlayers'], 3)
        self.assertEqual(kpis['scholarshipPlayers'], 1)
        self.assertEqual(kpis['expectedMonthlyIncome'], 290.50)
        self.assertEqual(kpis['scholarshipOpportunityCost'], 130.00)
        self.assertEqual(kpis['actualVsExpected'], 10.00)
        self.assertEqual(kpis['actualVsExpectedPercent'], 3.44)

    def test_scholarship_impact(self):
        impact = ReportService.get_scholarship_impact(MAY_START, MAY_END)

        self.assertEqual(impact['totalScholarshipPlayers'], 1)
        self.assertEqual(impact['totalActivePlayers'], 3)
        self.assertEqual(impact['scholarshipPercentage'], 25.0)
        self.assertEqual(impact['monthlyOpportunityCost'], 130.00)
        self.assertEqual(impact['annualOpportunityCost'], 1560.00)
        self.assertEqual(impact['players'][0]['id'], self.scholar.id)
        self.assertEqual(impact['impactOnProfit'], {
            'currentProfit': -10.00,
            'profitWithoutScholarships': 120.00,
            'scholarshipImpact': 130.00,
        })

    def test_player_report(self):
        report = ReportService.get_player_report()

        self.assertEqual(report['summary']['totalActive'], 3)
        self.assertEqual(report['summary']['totalScholarship'], 1)
        self.assertEqual(report['summary']['totalPending'], 2)
        self.assertEqual(report['summary']['byCategory']['U12'], 2)
        fees = {row['firstName']: row['monthlyFee'] for row in report['activePlayers']}
        self.assertEqual(fees, {'Ana': 130.0, 'Beto': 110.5, 'Caro': 50.0})
        self.assertEqual(report['scholarshipPlayers'][0]['opportunityCost'], 130.0)

    def test_financial_report(self):
        report = ReportService.get_financial_report(MAY_START, MAY_END)

        self.assertEqual(report['period'], {'start': '2024-05-01', 'end': '2024-05-31', 'type': 'monthly'})
        self.assertEqual(report['summary']['totalIncome'], 300.50)
        self.assertEqual(report['income']['byType'], {'monthly': 190.0})
        self.assertEqual(report['income']['byMethod'], {'yappy': 130.0, 'cash': 60.0})
        self.assertEqual([row['playerName'] for row in report['income']['byPlayer']], ['Ana Gómez', 'Caro Díaz'])
        self.assertEqual(report['income']['byPlayer'][0]['total'], 140.0)
        self.assertEqual(report['income']['byFamily'][0]['familyName'], 'Familia Gómez')
        self.assertEqual(report['expenses']['operational'], [
            {'category': 'Uniformes', 'amount': 100.0},
            {'category': 'Arbitraje', 'amount': 20.0},
        ])
        self.assertEqual(report['expenses']['staff'], 80.0)
        self.assertEqual(report['expenses']['total'], 200.0)
        self.assertEqual(report['scholarshipImpact']['monthlyOpportunityCost'], 130.0)

    def test_empty_period(self):
        kpis = ReportService.get_financial_kpis(date(2020, 1, 1), date(2020, 1, 31))
        self.assertEqual(kpis['totalIncome'], 0.0)
        self.assertEqual(kpis['profitMargin'], 0.0)
        self.assertEqual(kpis['actualVsExpected'], -290.50)
