"""
API URL patterns for registrations app (Hubtel checkout, callback and status).
"""
from django.urls import path
from . import views

urlpatterns = [
    path('events/', views.list_events, name='list_events'),
    path('events/<str:event_type>/', views.event_detail, name='event_detail'),
    path('initiate-payment/', views.initiate_payment, name='initiate_payment'),
    path('payment-callback/', views.payment_callback, name='payment_callback'),
    path('transaction-status/<str:client_reference>/', views.transaction_status, name='transaction_status'),
    path('registrations/', views.registration_list, name='registration_list'),
    path('registrations/<str:client_reference>/', views.registration_detail, name='registration_detail'),
    path('registrations/<str:client_reference>/send-reminder/', views.send_registration_reminder, name='send_registration_reminder'),
    path('verify/<str:client_reference>/', views.verify_registration_api, name='verify_registration_api'),
    path('offline-registration/', views.offline_registration, name='offline_registration'),
]
