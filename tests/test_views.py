"""Tests for the JSON API and verification page in registrations.views."""

import json
from unittest.mock import patch

import pytest
import requests
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core import mail
from django.test import RequestFactory

from registrations import views
from registrations.models import PaymentActivity, Registration

from .conftest import hubtel_response, status_body

User = get_user_model()

REGISTRATION_PAYLOAD = {
    'eventType': 'sme',
    'formData': {
        'fullName': '  Kofi Boateng ',
        'email': 'kofi@example.com',
        'phone': '+233 24 555 0101',
        'organization': 'Boateng Ventures',
        'agiMember': True,
    },
}

CHECKOUT_BODY = {
    'responseCode': '0000',
    'status': 'Success',
    'data': {
        'checkoutUrl': 'https://pay.hubtel.com/abc123',
        'checkoutId': 'abc123',
        'clientReference': 'ignored',
        'checkoutDirectUrl': 'https://pay.hubtel.com/abc123/direct',
    },
}


def body(response):
    return json.loads(response.content)


# -- Fixtures -----------------------------------------------------------------


@pytest.fixture
def rf():
    return RequestFactory()


@pytest.fixture(autouse=True)
def use_test_reconciler(reconciler):
    with patch('registrations.views.get_reconciler', return_value=reconciler):
        yield reconciler


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(username='desk', password='testpass123', is_staff=True)


def post_json(rf, path, payload, user=None):
    request = rf.post(path, data=json.dumps(payload), content_type='application/json')
    request.user = user or AnonymousUser()
    return request


def get(rf, path, user=None, **params):
    request = rf.get(path, params)
    request.user = user or AnonymousUser()
    return request


# -- Events -------------------------------------------------------------------


@pytest.mark.unit
class TestEvents:
    def test_list(self, rf):
        response = views.list_events(get(rf, '/api/events/'))
        events = body(response)
        assert [e['id'] for e in events] == ['sme', 'ceo', 'wealth']
        assert events[0]['price'] == '1500.00'
        assert events[0]['location'] == 'Accra City Hotel'

    def test_detail(self, rf):
        response = views.event_detail(get(rf, '/api/events/ceo/'), 'ceo')
        assert body(response)['price'] == '2500.00'

    def test_unknown_event(self, rf):
        response = views.event_detail(get(rf, '/api/events/gala/'), 'gala')
        assert response.status_code == 404

    def test_catalogue_override(self, rf, settings):
        settings.SUMMIT_EVENTS = {
            'gala': {'title': 'Gala Night', 'date': 'Dec 1', 'time': '7 PM', 'location': 'Kempinski', 'price': 500},
        }
        events = body(views.list_events(get(rf, '/api/events/')))
        assert [e['id'] for e in events] == ['gala']
        assert events[0]['price'] == '500'


# -- Checkout -----------------------------------------------------------------


@pytest.mark.django_db
class TestInitiatePayment:
    def test_creates_pending_registration_and_checkout(self, rf, hubtel_session):
        hubtel_session.request.return_value = hubtel_response(200, CHECKOUT_BODY)

        response = views.initiate_payment(post_json(rf, '/api/initiate-payment/', REGISTRATION_PAYLOAD))

        assert response.status_code == 200
        data = body(response)
        assert data['success'] is True
        assert data['checkoutUrl'] == 'https://pay.hubtel.com/abc123'
        assert data['amount'] == '1500.00'

        registration = Registration.objects.get(client_reference=data['clientReference'])
        assert registration.payment_status == Registration.STATUS_PENDING
        assert registration.full_name == 'Kofi Boateng'
        assert registration.agi_member is True
        assert registration.event_price == 1500
        assert registration.checkout_id == 'abc123'
        assert registration.payment_activities.filter(kind=PaymentActivity.KIND_INITIATED).exists()

        sent = hubtel_session.request.call_args[1]['json']
        assert sent['clientReference'] == registration.client_reference
        assert sent['callbackUrl'] == 'https://summit.example.com/api/payment-callback/'
        assert sent['returnUrl'] == f'https://summit.example.com/verify/{registration.client_reference}/'
        assert sent['totalAmount'] == 1500.0

    def test_retry_reuses_pending_registration(self, rf, hubtel_session, registration):
        hubtel_session.request.return_value = hubtel_response(200, CHECKOUT_BODY)

        response = views.initiate_payment(post_json(rf, '/api/initiate-payment/', {'clientReference': 'ref-1'}))

        assert body(response)['clientReference'] == 'ref-1'
        assert Registration.objects.count() == 1

    def test_retry_refused_once_paid(self, rf, make_registration, hubtel_session):
        make_registration(payment_status=Registration.STATUS_COMPLETED)
        response = views.initiate_payment(post_json(rf, '/api/initiate-payment/', {'clientReference': 'ref-1'}))
        assert response.status_code == 409
        assert body(response)['paymentStatus'] == Registration.STATUS_COMPLETED
        hubtel_session.request.assert_not_called()

    def test_invalid_form(self, rf, hubtel_session):
        payload = {'eventType': 'gala', 'formData': {'fullName': 'X', 'email': 'not-an-email', 'phone': '12'}}

        response = views.initiate_payment(post_json(rf, '/api/initiate-payment/', payload))

        assert response.status_code == 400
        errors = body(response)['errors']
        assert {'event_type', 'email', 'phone', 'organization'} <= set(errors)
        assert Registration.objects.count() == 0
        hubtel_session.request.assert_not_called()

    def test_honeypot(self, rf):
        payload = dict(REGISTRATION_PAYLOAD, formData=dict(REGISTRATION_PAYLOAD['formData'], website='http://spam'))
        response = views.initiate_payment(post_json(rf, '/api/initiate-payment/', payload))
        assert response.status_code == 400

    def test_provider_failure(self, rf, hubtel_session):
        hubtel_session.request.side_effect = requests.exceptions.ConnectionError('down')

        response = views.initiate_payment(post_json(rf, '/api/initiate-payment/', REGISTRATION_PAYLOAD))

        assert response.status_code == 502
        data = body(response)
        assert data['success'] is False
        registration = Registration.objects.get(client_reference=data['clientReference'])
        assert registration.payment_status == Registration.STATUS_PENDING
        assert registration.checkout_url is None

    def test_unconfigured_provider(self, rf, use_test_reconciler, unconfigured_hubtel, hubtel_session):
        use_test_reconciler.client = unconfigured_hubtel

        response = views.initiate_payment(post_json(rf, '/api/initiate-payment/', REGISTRATION_PAYLOAD))

        assert response.status_code == 503
        hubtel_session.request.assert_not_called()


# -- Callback -----------------------------------------------------------------


@pytest.mark.django_db
class TestPaymentCallback:
    def test_applies_callback(self, rf, registration, notifier):
        response = views.payment_callback(post_json(rf, '/api/payment-callback/', {
            'ResponseCode': '0000',
            'Status': 'Success',
            'Data': {'ClientReference': 'ref-1', 'Status': 'Success', 'Amount': 2500},
        }))

        assert response.status_code == 200
        assert body(response) == {'success': True, 'clientReference': 'ref-1', 'status': 'completed', 'changed': True}
        notifier.send_confirmation.assert_called_once()

    def test_duplicate_is_acknowledged(self, rf, make_registration):
        make_registration(payment_status=Registration.STATUS_COMPLETED)
        response = views.payment_callback(post_json(rf, '/api/payment-callback/', {
            'clientReference': 'ref-1', 'providerStatus': 'Failed',
        }))
        assert response.status_code == 200
        assert body(response)['status'] == 'completed'
        assert body(response)['changed'] is False

    def test_invalid_json(self, rf):
        request = rf.post('/api/payment-callback/', data='{not json', content_type='application/json')
        assert views.payment_callback(request).status_code == 400

    def test_malformed(self, rf):
        response = views.payment_callback(post_json(rf, '/api/payment-callback/', {'Status': 'Success'}))
        assert response.status_code == 400

    def test_unknown_registration(self, rf):
        response = views.payment_callback(post_json(rf, '/api/payment-callback/', {
            'clientReference': 'missing', 'providerStatus': 'Success',
        }))
        assert response.status_code == 404
        assert body(response)['success'] is False

    def test_rejects_get(self, rf):
        assert views.payment_callback(rf.get('/api/payment-callback/')).status_code == 405


# -- Transaction status -------------------------------------------------------


@pytest.mark.django_db
class TestTransactionStatus:
    def test_provider_status(self, rf, registration, hubtel_session):
        hubtel_session.request.return_value = hubtel_response(200, status_body('Paid'))

        response = views.transaction_status(
            get(rf, '/api/transaction-status/ref-1/', hubtelTransactionId='hub-1'), 'ref-1',
        )

        data = body(response)
        assert data['status'] == 'completed'
        assert data['source'] == 'provider'
        assert data['hubtelConfigured'] is True
        assert data['lastProviderCheck'] is not None
        assert 'providerError' not in data
        assert hubtel_session.request.call_args[1]['params']['hubtelTransactionId'] == 'hub-1'

    def test_local_fallback_on_timeout(self, rf, registration, hubtel_session):
        hubtel_session.request.side_effect = requests.exceptions.Timeout()

        response = views.transaction_status(get(rf, '/api/transaction-status/ref-1/'), 'ref-1')

        assert response.status_code == 200
        data = body(response)
        assert data['status'] == 'pending'
        assert data['source'] == 'local'
        assert data['providerError']

    def test_unknown_reference(self, rf, db):
        response = views.transaction_status(get(rf, '/api/transaction-status/nope/'), 'nope')
        assert response.status_code == 404

    def test_invalid_reference(self, rf, db):
        response = views.transaction_status(get(rf, '/api/transaction-status/x/'), 'bad ref!')
        assert response.status_code == 400


# -- Registration reads -------------------------------------------------------


@pytest.mark.django_db
class TestRegistrationReads:
    def test_detail_for_prefill(self, rf, registration):
        data = body(views.registration_detail(get(rf, '/api/registrations/ref-1/'), 'ref-1'))
        reg = data['registration']
        assert reg['clientReference'] == 'ref-1'
        assert reg['customerInfo']['fullName'] == 'Ama Mensah'
        assert reg['paymentStatus'] == 'pending'
        assert 'paymentData' not in reg

    def test_detail_for_staff_includes_payment_data(self, rf, registration, staff_user):
        data = body(views.registration_detail(get(rf, '/api/registrations/ref-1/', user=staff_user), 'ref-1'))
        assert data['registration']['paymentData'] == {}

    def test_detail_not_found(self, rf, db):
        assert views.registration_detail(get(rf, '/api/registrations/nope/'), 'nope').status_code == 404

    def test_verify_api(self, rf, make_registration):
        make_registration(payment_status=Registration.STATUS_COMPLETED)
        data = body(views.verify_registration_api(get(rf, '/api/verify/ref-1/'), 'ref-1'))
        assert data['valid'] is True
        assert data['registration']['fullName'] == 'Ama Mensah'

    def test_verify_api_unpaid(self, rf, registration):
        data = body(views.verify_registration_api(get(rf, '/api/verify/ref-1/'), 'ref-1'))
        assert data['valid'] is False

    def test_verify_page(self, rf, make_registration):
        make_registration(payment_status=Registration.STATUS_COMPLETED)
        response = views.verify_registration(get(rf, '/verify/ref-1/'), 'ref-1')
        assert response.status_code == 200
        assert b'Valid Registration' in response.content
        assert b'Ama Mensah' in response.content


# -- Staff endpoints ----------------------------------------------------------


@pytest.mark.django_db
class TestStaffEndpoints:
    def test_list_requires_staff(self, rf):
        assert views.registration_list(get(rf, '/api/registrations/')).status_code == 403

    def test_list_filters(self, rf, make_registration, staff_user):
        make_registration('ref-1')
        make_registration('ref-2', payment_status=Registration.STATUS_COMPLETED)
        make_registration('ref-3', event_type='sme', payment_status=Registration.STATUS_COMPLETED)

        data = body(views.registration_list(get(rf, '/api/registrations/', user=staff_user, status='completed', event='ceo')))

        assert data['count'] == 1
        assert data['registrations'][0]['clientReference'] == 'ref-2'

    def test_list_bad_limit(self, rf, staff_user):
        response = views.registration_list(get(rf, '/api/registrations/', user=staff_user, limit='many'))
        assert response.status_code == 400

    def test_send_reminder(self, rf, registration, staff_user):
        response = views.send_registration_reminder(
            post_json(rf, '/api/registrations/ref-1/send-reminder/', {}, user=staff_user), 'ref-1',
        )

        assert response.status_code == 200
        assert body(response)['reminderCount'] == 1
        assert len(mail.outbox) == 1
        assert Registration.objects.get(client_reference='ref-1').reminder_count == 1

    def test_send_reminder_refused_when_paid(self, rf, make_registration, staff_user):
        make_registration(payment_status=Registration.STATUS_COMPLETED)
        response = views.send_registration_reminder(
            post_json(rf, '/api/registrations/ref-1/send-reminder/', {}, user=staff_user), 'ref-1',
        )
        assert response.status_code == 409
        assert mail.outbox == []

    def test_send_reminder_requires_staff(self, rf, registration):
        response = views.send_registration_reminder(post_json(rf, '/api/registrations/ref-1/send-reminder/', {}), 'ref-1')
        assert response.status_code == 403

    def test_offline_registration(self, rf, staff_user, notifier):
        payload = dict(REGISTRATION_PAYLOAD, amount='1500.00', note='Cash at registration desk')

        response = views.offline_registration(post_json(rf, '/api/offline-registration/', payload, user=staff_user))

        assert response.status_code == 201
        data = body(response)
        assert data['status'] == 'completed'
        assert data['emailSent'] is True
        registration = Registration.objects.get(client_reference=data['clientReference'])
        assert registration.payment_status == Registration.STATUS_COMPLETED
        assert registration.payment_data['payment_method'] == 'offline'
        assert registration.payment_data['recorded_by'] == 'desk'
        assert registration.payment_data['note'] == 'Cash at registration desk'
        notifier.send_confirmation.assert_called_once()

    def test_offline_registration_requires_staff(self, rf):
        response = views.offline_registration(post_json(rf, '/api/offline-registration/', REGISTRATION_PAYLOAD))
        assert response.status_code == 403
        assert Registration.objects.count() == 0
