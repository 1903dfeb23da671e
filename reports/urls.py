# reports/urls.py
from django.urls import path

from . import views

app_name = 'reports'

urlpatterns = [
    path('kpis/', views.kpis_view, name='kpis'),
    path('scholarships/', views.scholarship_impact_view, name='scholarships'),
    path('players/', views.player_report_view, name='players'),
    path('players/export/', views.export_players_view, name='export_players'),
    path('financial/', views.financial_report_view, name='financial'),
    path('financial/export/', views.export_financial_view, name='export_financial'),
]
