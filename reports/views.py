# reports/views.py
"""
Report endpoints. Dates come from ?start=&end= (YYYY-MM-DD) or from
?period=monthly|quarterly|annual&year=.
"""
import csv
import logging

from django.http import HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from core.exceptions import ValidationError
from shared.decorators.permissions import require_view_reports
from shared.helpers import parse_date

from .services import ReportService, resolve_period

logger = logging.getLogger(__name__)

PERIODS = ('monthly', 'quarterly', 'annual')


def _date_range(request):
    start, end = request.GET.get('start'), request.GET.get('end')
    if start and end:
        start, end = parse_date(start, 'start'), parse_date(end, 'end')
        if end < start:
            raise ValidationError("La fecha de fin no puede ser anterior al inicio", user_friendly=True)
        return start, end

    period = request.GET.get('period', 'monthly')
    if period not in PERIODS:
        raise ValidationError(f"Periodo inválido: {period}", user_friendly=True)
    try:
        year = int(request.GET['year']) if request.GET.get('year') else None
    except ValueError:
        raise ValidationError("Año inválido", user_friendly=True)
    return resolve_period(period, year)


def _csv_response(name):
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{name}_{timezone.now().date()}.csv"'
    return response


@require_view_reports
@require_http_methods(["GET"])
def kpis_view(request):
    start, end = _date_range(request)
    return JsonResponse({
        'period': {'start': start.isoformat(), 'end': end.isoformat()},
        'kpis': ReportService.get_financial_kpis(start, end),
    })


@require_view_reports
@require_http_methods(["GET"])
def scholarship_impact_view(request):
    start, end = _date_range(request)
    return JsonResponse(ReportService.get_scholarship_impact(start, end))


@require_view_reports
@require_http_methods(["GET"])
def player_report_view(request):
    return JsonResponse(ReportService.get_player_report())


@require_view_reports
@require_http_methods(["GET"])
def financial_report_view(request):
    start, end = _date_range(request)
    return JsonResponse(ReportService.get_financial_report(start, end))


@require_view_reports
@require_http_methods(["GET"])
def export_players_view(request):
    report = ReportService.get_player_report()
    response = _csv_response('players')

    writer = csv.writer(response)
    writer.writerow(['ID', 'Nombre', 'Categoría', 'Estado', 'Mensualidad', 'Familia', 'Último Pago', 'Estado de Pago'])
    for row in report['activePlayers']:
        writer.writerow([
            row['id'],
            f"{row['firstName']} {row['lastName']}",
            row['category'],
            row['status'],
            f"{row['monthlyFee']:.2f}",
            row['familyName'] or '',
            row['lastPaymentDate'] or '',
            row['paymentStatus'],
        ])
    for row in report['scholarshipPlayers']:
        writer.writerow([
            row['id'],
            f"{row['firstName']} {row['lastName']}",
            row['category'],
            'Scholarship',
            '0.00',
            '',
            '',
            '',
        ])

    return response


@require_view_reports
@require_http_methods(["GET"])
def export_financial_view(request):
    start, end = _date_range(request)
    report = ReportService.get_financial_report(start, end)
    summary = report['summary']
    response = _csv_response('financial')

    writer = csv.writer(response)
    writer.writerow(['Métrica', 'Valor'])
    writer.writerows([
        ['Período', f"{report['period']['start']} a {report['period']['end']}"],
        ['Ingresos Totales', f"{summary['totalIncome']:.2f}"],
        ['Gastos Totales', f"{summary['totalExpenses']:.2f}"],
        ['Profit', f"{summary['profit']:.2f}"],
        ['Margen de Ganancia %', f"{summary['profitMargin']:.2f}"],
        ['Jugadores Activos', summary['activePlayers']],
        ['Jugadores Becados', summary['scholarshipPlayers']],
        ['Costo de Oportunidad Becados', f"{summary['scholarshipOpportunityCost']:.2f}"],
        ['Ingreso Esperado Mensual', f"{summary['expectedMonthlyIncome']:.2f}"],
        ['Diferencia Real vs Esperado', f"{summary['actualVsExpected']:.2f}"],
        ['Diferencia %', f"{summary['actualVsExpectedPercent']:.2f}"],
    ])

    writer.writerow([])
    writer.writerow(['Tipo de Pago', 'Monto'])
    writer.writerows([k, f"{v:.2f}"] for k, v in report['income']['byType'].items())
    writer.writerow([])
    writer.writerow(['Método de Pago', 'Monto'])
    writer.writerows([k, f"{v:.2f}"] for k, v in report['income']['byMethod'].items())
    writer.writerow([])
    writer.writerow(['Categoría de Gasto', 'Monto'])
    writer.writerows([e['category'], f"{e['amount']:.2f}"] for e in report['expenses']['operational'])
    writer.writerow(['Personal', f"{report['expenses']['staff']:.2f}"])

    return response
