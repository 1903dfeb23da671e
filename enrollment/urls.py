# enrollment/urls.py
from django.urls import path

from . import views

app_name = 'enrollment'

urlpatterns = [
    path('', views.enrollment_submit_view, name='submit'),
    path('temp/', views.enrollment_temp_view, name='temp'),
]
