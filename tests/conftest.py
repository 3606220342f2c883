"""Shared fixtures for the registrations test suite."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from registrations.hubtel import HubtelClient
from registrations.models import Registration
from registrations.reconciler import StatusReconciler
from registrations.store import RegistrationStore


def hubtel_response(status_code=200, body=None):
    """A stand-in for requests.Response carrying a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    return response


def status_body(status, **data):
    """Hubtel transaction status API body."""
    data.setdefault('transactionId', '7fd01221faeb41469daec7b3561bddc5')
    data.setdefault('amount', 1500)
    data.setdefault('charges', 15)
    data.setdefault('paymentMethod', 'mobilemoney')
    data['status'] = status
    return {'message': 'Successful', 'responseCode': '0000', 'data': data}


# -- Settings -----------------------------------------------------------------


@pytest.fixture(autouse=True)
def summit_settings(settings):
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.SITE_URL = 'https://summit.example.com'
    settings.DEFAULT_FROM_EMAIL = 'Value Creation Summit <noreply@example.com>'
    settings.SUPPORT_EMAIL = 'support@example.com'
    return settings


# -- Registrations ------------------------------------------------------------


@pytest.fixture
def make_registration(db):
    def _make(client_reference='ref-1', **fields):
        values = {
            'client_reference': client_reference,
            'event_type': 'ceo',
            'event_name': '2025 CEO Roundtable - Lead the Business, Scale to Legacy',
            'event_price': Decimal('2500.00'),
            'currency': 'GHS',
            'full_name': 'Ama Mensah',
            'email': 'ama@example.com',
            'phone': '+233 24 123 4567',
            'organization': 'Mensah Foods Ltd',
        }
        values.update(fields)
        return Registration.objects.create(**values)
    return _make


@pytest.fixture
def registration(make_registration):
    return make_registration()


# -- Hubtel and reconciler ----------------------------------------------------


@pytest.fixture
def hubtel_session():
    session = MagicMock()
    session.request.return_value = hubtel_response(200, status_body('Pending'))
    return session


@pytest.fixture
def hubtel(hubtel_session):
    return HubtelClient(
        app_id='app-id',
        api_key='secret',
        merchant_id='11684',
        session=hubtel_session,
    )


@pytest.fixture
def unconfigured_hubtel(hubtel_session):
    return HubtelClient(app_id='', api_key='', merchant_id='', session=hubtel_session)


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.send_confirmation.return_value = {'success': True, 'error': None}
    notifier.send_failure_notice.return_value = {'success': True, 'error': None}
    notifier.send_reminder.return_value = {'success': True, 'error': None}
    return notifier


@pytest.fixture
def store(db):
    return RegistrationStore()


@pytest.fixture
def reconciler(store, hubtel, notifier):
    return StatusReconciler(store=store, client=hubtel, notifier=notifier)
