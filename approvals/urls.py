# approvals/urls.py
from django.urls import path

from . import views

app_name = 'approvals'

urlpatterns = [
    path('players/', views.pending_players_view, name='players'),
    path('players/<int:player_id>/approve/', views.approve_player_view, name='approve_player'),
    path('players/<int:player_id>/reject/', views.reject_player_view, name='reject_player'),
    path('pending-players/<int:pending_id>/approve/', views.approve_pending_player_view,
         name='approve_pending_player'),
    path('pending-players/<int:pending_id>/reject/', views.reject_pending_player_view,
         name='reject_pending_player'),
    path('payments/', views.pending_payments_view, name='payments'),
    path('payments/<int:payment_id>/approve/', views.approve_payment_view, name='approve_payment'),
    path('payments/<int:payment_id>/reject/', views.reject_payment_view, name='reject_payment'),
    path('registrations/', views.pending_registrations_view, name='registrations'),
    path('registrations/<int:registration_id>/approve/', views.approve_registration_view,
         name='approve_registration'),
    path('registrations/<int:registration_id>/reject/', views.reject_registration_view,
         name='reject_registration'),
]
