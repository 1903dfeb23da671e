# tournaments/urls.py
from django.urls import path

from . import views

app_name = 'tournaments'

urlpatterns = [
    # Public
    path('active/', views.active_tournament_view, name='active'),
    path('<int:tournament_id>/register/', views.register_team_view, name='register'),

    # Management
    path('', views.tournament_list_view, name='list'),
    path('<int:tournament_id>/status/', views.tournament_status_view, name='status'),
    path('<int:tournament_id>/registration/', views.toggle_registration_view, name='toggle_registration'),
    path('<int:tournament_id>/delete/', views.delete_tournament_view, name='delete'),
    path('<int:tournament_id>/registrations/', views.registration_list_view, name='registrations'),
]
