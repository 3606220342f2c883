"""
URL patterns for the registrations app (frontend views).
"""
from django.urls import path
from . import views

urlpatterns = [
    path('verify/<str:client_reference>/', views.verify_registration, name='verify_registration'),
]
