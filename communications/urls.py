# communications/urls.py
from django.urls import path

from . import views

app_name = 'communications'

urlpatterns = [
    path('cron/process/', views.process_queue_cron_view, name='process_queue_cron'),
    path('cron/statements/', views.monthly_statements_cron_view, name='monthly_statements_cron'),
    path('webhooks/brevo/', views.brevo_webhook_view, name='brevo_webhook'),
    path('queue/status/', views.queue_status_view, name='queue_status'),
    path('broadcast/', views.broadcast_view, name='broadcast'),
]
