# users/urls.py
from django.urls import path

from . import views

app_name = 'users'

urlpatterns = [
    path('me/permissions/', views.my_permissions_view, name='my_permissions'),

    # ============ USER MANAGEMENT ============
    path('', views.user_list_view, name='user_list'),
    path('create/', views.create_user_view, name='create_user'),
    path('export/', views.export_users_view, name='export_users'),
    path('<int:user_id>/roles/assign/', views.assign_role_view, name='assign_role'),
    path('<int:user_id>/roles/remove/', views.remove_role_view, name='remove_role'),
    path('<int:user_id>/password/', views.reset_password_view, name='reset_password'),
    path('<int:user_id>/delete/', views.delete_user_view, name='delete_user'),

    # ============ ROLES & PERMISSIONS ============
    path('roles/', views.role_list_view, name='role_list'),
    path('permissions/', views.permission_list_view, name='permission_list'),
]
