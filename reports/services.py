# reports/services.py
"""
Financial and player reporting.

Amounts are summed as Decimal and converted to floats only in the returned
dicts, which the views send as JSON or CSV as-is.
"""
import logging
from calendar import monthrange
from collections import Counter, OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple

from django.db.models import Q, Sum
from django.utils import timezone

from billing.models import Expense, Payment, StaffPayment
from core.services import SettingsService
from players.models import PendingPlayer, Player
from players.services import FeeService
from shared.constants import UNKNOWN_CATEGORY, PlayerStatus, StatusChoices
from shared.helpers import money

logger = logging.getLogger(__name__)

# Pending payments count as income since they are usually approved later.
INCOME_STATUSES = (StatusChoices.APPROVED, StatusChoices.PAID, StatusChoices.PENDING)
CONFIRMED_STATUSES = (StatusChoices.APPROVED, StatusChoices.PAID)

ZERO = Decimal('0')


def percent(part, whole) -> float:
    if not whole:
        return 0.0
    return round(float(Decimal(part) / Decimal(whole) * 100), 2)


def resolve_period(period: str = 'monthly', year: Optional[int] = None,
                   today: Optional[date] = None) -> Tuple[date, date]:
    """Current month, current quarter, or a calendar year."""
    today = today or timezone.localdate()
    if period == 'quarterly':
        first_month = (today.month - 1) // 3 * 3 + 1
        last_month = first_month + 2
        return date(today.year, first_month, 1), date(today.year, last_month, monthrange(today.year, last_month)[1])
    if period == 'annual':
        year = year or today.year
        return date(year, 1, 1), date(year, 12, 31)
    return date(today.year, today.month, 1), date(today.year, today.month, monthrange(today.year, today.month)[1])


def period_type(start: date, end: date) -> str:
    days = (end - start).days
    if days <= 35:
        return 'monthly'
    if days <= 100:
        return 'quarterly'
    if days <= 370:
        return 'annual'
    return 'custom'


class ReportService:

    # ============ BUILDING BLOCKS ============

    @staticmethod
    def income_payments(start: date, end: date, statuses=INCOME_STATUSES):
        """Player payments dated in the range; a blank status counts as income."""
        return Payment.objects.filter(
            Q(status__in=statuses) | Q(status=''),
            player__isnull=False,
            payment_date__gte=start,
            payment_date__lte=end,
        )

    @staticmethod
    def _sum(queryset, field: str = 'amount') -> Decimal:
        return queryset.aggregate(total=Sum(field))['total'] or ZERO

    @staticmethod
    def expense_totals(start: date, end: date) -> Dict[str, Decimal]:
        operational = ReportService._sum(Expense.objects.filter(date__gte=start, date__lte=end))
        staff = ReportService._sum(StaffPayment.objects.filter(payment_date__gte=start, payment_date__lte=end))
        return {'operational': operational, 'staff': staff, 'total': operational + staff}

    @staticmethod
    def enrolled_fees() -> Dict:
        """
        Expected monthly income from Active players and the opportunity cost
        of Scholarship players, with each player's fee.
        """
        prices = SettingsService.get_prices()
        positions = FeeService.family_positions()
        players = Player.objects.filter(status__in=PlayerStatus.ENROLLED).select_related('family')

        expected, opportunity = ZERO, ZERO
        fees = {}
        for player in players:
            position = positions.get(player.id, 0)
            if player.status == PlayerStatus.SCHOLARSHIP:
                fee = FeeService.opportunity_cost(player, prices, position)
                opportunity += fee
            else:
                fee = FeeService.calculate_monthly_fee(player, prices, position)
                expected += fee
            fees[player.id] = fee

        return {
            'players': list(players),
            'fees': fees,
            'expected_monthly_income': expected,
            'opportunity_cost': opportunity,
        }

    # ============ REPORTS ============

    @staticmethod
    def get_financial_kpis(start: date, end: date, fees: Optional[Dict] = None) -> Dict:
        income = ReportService._sum(ReportService.income_payments(start, end))
        expenses = ReportService.expense_totals(start, end)['total']
        profit = income - expenses

        fees = fees or ReportService.enrolled_fees()
        statuses = Counter(p.status for p in fees['players'])
        expected = fees['expected_monthly_income']
        actual_vs_expected = income - expected

        return {
            'totalIncome': money(income),
            'totalExpenses': money(expenses),
            'profit': money(profit),
            'profitMargin': percent(profit, income),
            'activePlayers': statuses[PlayerStatus.ACTIVE],
            'scholarshipPlayers': statuses[PlayerStatus.SCHOLARSHIP],
            'scholarshipOpportunityCost': money(fees['opportunity_cost']),
            'expectedMonthlyIncome': money(expected),
            'actualVsExpected': money(actual_vs_expected),
            'actualVsExpectedPercent': percent(actual_vs_expected, expected),
        }

    @staticmethod
    def get_scholarship_impact(start: date, end: date, fees: Optional[Dict] = None) -> Dict:
        fees = fees or ReportService.enrolled_fees()
        players = fees['players']
        scholarship = [p for p in players if p.status == PlayerStatus.SCHOLARSHIP]
        monthly_cost = fees['opportunity_cost']

        income = ReportService._sum(ReportService.income_payments(start, end, CONFIRMED_STATUSES))
        expenses = ReportService.expense_totals(start, end)['total']
        current_profit = income - expenses
        without_scholarships = income + monthly_cost - expenses

        return {
            'totalScholarshipPlayers': len(scholarship),
            'totalActivePlayers': len(players) - len(scholarship),
            'scholarshipPercentage': percent(len(scholarship), len(players)),
            'monthlyOpportunityCost': money(monthly_cost),
            'annualOpportunityCost': money(monthly_cost * 12),
            'players': [
                {
                    'id': p.id,
                    'firstName': p.first_name,
                    'lastName': p.last_name,
                    'category': p.category,
                    'familyId': p.family_id,
                    'customMonthlyFee': money(p.monthly_fee_override) if p.monthly_fee_override is not None else None,
                    'opportunityCost': money(fees['fees'][p.id]),
                    'createdAt': p.created_at.isoformat(),
                }
                for p in scholarship
            ],
            'impactOnProfit': {
                'currentProfit': money(current_profit),
                'profitWithoutScholarships': money(without_scholarships),
                'scholarshipImpact': money(without_scholarships - current_profit),
            },
        }

    @staticmethod
    def get_player_report() -> Dict:
        fees = ReportService.enrolled_fees()
        all_players = Player.objects.all()

        by_category = Counter(p.category or UNKNOWN_CATEGORY for p in all_players.only('category'))
        pending = all_players.filter(status=PlayerStatus.PENDING).count() + PendingPlayer.objects.count()
        active = [p for p in fees['players'] if p.status == PlayerStatus.ACTIVE]
        scholarship = [p for p in fees['players'] if p.status == PlayerStatus.SCHOLARSHIP]

        return {
            'summary': {
                'totalActive': len(active),
                'totalScholarship': len(scholarship),
                'totalPending': pending,
                'byCategory': dict(sorted(by_category.items())),
            },
            'activePlayers': [
                {
                    'id': p.id,
                    'firstName': p.first_name,
                    'lastName': p.last_name,
                    'category': p.category,
                    'status': p.status,
                    'monthlyFee': money(fees['fees'][p.id]),
                    'familyName': p.family.name if p.family_id else None,
                    'lastPaymentDate': p.last_payment_date.isoformat() if p.last_payment_date else None,
                    'paymentStatus': p.payment_status,
                }
                for p in sorted(active, key=lambda p: (p.last_name, p.first_name))
            ],
            'scholarshipPlayers': [
                {
                    'id': p.id,
                    'firstName': p.first_name,
                    'lastName': p.last_name,
                    'category': p.category,
                    'opportunityCost': money(fees['fees'][p.id]),
                    'createdAt': p.created_at.isoformat(),
                }
                for p in sorted(scholarship, key=lambda p: (p.last_name, p.first_name))
            ],
        }

    @staticmethod
    def get_financial_report(start: date, end: date) -> Dict:
        fees = ReportService.enrolled_fees()
        payments = (
            ReportService.income_payments(start, end, CONFIRMED_STATUSES)
            .select_related('player__family')
        )

        by_type, by_method = OrderedDict(), OrderedDict()
        by_player, by_family = {}, {}
        for payment in payments:
            amount = payment.amount
            by_type[payment.type] = by_type.get(payment.type, ZERO) + amount
            by_method[payment.method] = by_method.get(payment.method, ZERO) + amount

            player = payment.player
            row = by_player.setdefault(player.id, {'playerId': player.id, 'playerName': player.full_name, 'total': ZERO})
            row['total'] += amount
            if player.family_id:
                row = by_family.setdefault(
                    player.family_id,
                    {'familyId': player.family_id, 'familyName': player.family.name, 'total': ZERO},
                )
                row['total'] += amount

        by_category = OrderedDict()
        for category, amount in (
            Expense.objects.filter(date__gte=start, date__lte=end)
            .values_list('category', 'amount')
        ):
            category = category or UNKNOWN_CATEGORY
            by_category[category] = by_category.get(category, ZERO) + amount
        expenses = ReportService.expense_totals(start, end)

        def ranked(rows):
            return [dict(row, total=money(row['total'])) for row in sorted(rows, key=lambda r: -r['total'])]

        return {
            'period': {'start': start.isoformat(), 'end': end.isoformat(), 'type': period_type(start, end)},
            'summary': ReportService.get_financial_kpis(start, end, fees),
            'income': {
                'byType': {k: money(v) for k, v in by_type.items()},
                'byMethod': {k: money(v) for k, v in by_method.items()},
                'byPlayer': ranked(by_player.values()),
                'byFamily': ranked(by_family.values()),
            },
            'expenses': {
                'operational': [
                    {'category': category, 'amount': money(amount)}
                    for category, amount in sorted(by_category.items(), key=lambda item: -item[1])
                ],
                'staff': money(expenses['staff']),
                'total': money(expenses['total']),
            },
            'scholarshipImpact': ReportService.get_scholarship_impact(start, end, fees),
        }
