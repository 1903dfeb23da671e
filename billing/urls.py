from django.urls import path
from . import views

app_name = 'billing'

urlpatterns = [
    # Yappy Comercial
    path('yappy/config/', views.yappy_config_view, name='yappy_config'),
    path('yappy/validate/', views.yappy_validate_view, name='yappy_validate'),
    path('yappy/order/', views.yappy_order_view, name='yappy_order'),
    path('yappy/callback/', views.yappy_callback_view, name='yappy_callback'),

    # Paguelo Fácil
    path('paguelofacil/link/', views.paguelofacil_link_view, name='paguelofacil_link'),
    path('paguelofacil/callback/', views.paguelofacil_callback_view, name='paguelofacil_callback'),
    path('paguelofacil/webhook/', views.paguelofacil_webhook_view, name='paguelofacil_webhook'),

    # Staff payment management
    path('payments/', views.payments_view, name='payments'),
    path('payments/unlinked/', views.unlinked_payments_view, name='unlinked_payments'),
    path('payments/export/', views.export_payments_view, name='export_payments'),
    path('payments/<int:payment_id>/link/', views.link_payment_view, name='link_payment'),
    path('players/<int:player_id>/summary/', views.player_payment_summary_view, name='player_summary'),

    # Expenses and staff payments
    path('expenses/', views.expenses_view, name='expenses'),
    path('expenses/<int:expense_id>/', views.expense_detail_view, name='expense_detail'),
    path('staff-payments/', views.staff_payments_view, name='staff_payments'),
    path('staff-payments/<int:staff_payment_id>/', views.staff_payment_detail_view, name='staff_payment_detail'),
]
