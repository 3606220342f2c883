"""
Views for event listing, registration, Hubtel checkout and payment status.
"""
import json
import logging

from django.http import Http404, JsonResponse
from django.shortcuts import render
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .emails import payment_link
from .events import get_catalogue
from .exceptions import (
    DuplicateReference, InvalidReference, MalformedCallback, ProviderError,
    ProviderNotConfigured, RegistrationError, UnknownEvent, UnknownRegistration,
)
from .forms import OfflineRegistrationForm, RegistrationForm
from .models import PaymentActivity, Registration
from .reconciler import get_reconciler
from .reminders import send_reminder
from .serializers import AdminRegistrationSerializer, RegistrationSerializer, VerificationSerializer
from .utils import generate_client_reference, site_url, validate_client_reference, verification_url

logger = logging.getLogger(__name__)


def _parse_body_json(request):
    """Read JSON body and return dict. Return {} if not JSON or invalid."""
    if request.content_type and 'application/json' in request.content_type:
        try:
            body = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return body if isinstance(body, dict) else {}
    return {}


def _error(error, status, **extra):
    return JsonResponse(dict({'success': False, 'error': error}, **extra), status=status)


def _form_errors(form):
    return {field: [e['message'] for e in errors] for field, errors in form.errors.get_json_data().items()}


def _staff_only(request):
    if not (request.user.is_authenticated and request.user.is_staff):
        return _error('You do not have permission to access this resource.', 403)
    return None


def _find_registration(reference):
    reference = validate_client_reference(reference)
    registration = get_reconciler().store.find_by_reference(reference)
    if registration is None:
        raise UnknownRegistration()
    return registration


# -- events -------------------------------------------------------------------

@require_http_methods(["GET"])
def list_events(request):
    """
    API: all configured events.
    """
    return JsonResponse([event.as_dict() for event in get_catalogue()], safe=False)


@require_http_methods(["GET"])
def event_detail(request, event_type):
    try:
        event = get_catalogue().get(event_type)
    except UnknownEvent:
        return JsonResponse({'message': 'Event not found'}, status=404)
    return JsonResponse(event.as_dict())


# -- checkout -----------------------------------------------------------------

@csrf_exempt
@require_http_methods(["POST"])
def initiate_payment(request):
    """
    Create (or reuse) a pending registration and start a Hubtel checkout for it.

    Body: ``{"eventType": "ceo", "formData": {...}}``; include ``clientReference``
    to retry checkout for an existing pending registration.
    """
    payload = _parse_body_json(request) or request.POST.dict()
    reconciler = get_reconciler()
    store, client = reconciler.store, reconciler.client

    existing_ref = payload.get('clientReference') or payload.get('ref')
    if existing_ref:
        try:
            registration = _find_registration(existing_ref)
        except RegistrationError as e:
            return _error(e.message, e.status_code)
        if registration.payment_status != Registration.STATUS_PENDING:
            return _error('This registration is not pending payment', 409,
                          paymentStatus=registration.payment_status)
    else:
        form = RegistrationForm.from_payload(payload)
        if not form.is_valid():
            return _error('Form validation failed', 400, errors=_form_errors(form))

        event = form.event
        data = form.cleaned_data
        try:
            registration = store.create(
                client_reference=generate_client_reference(event.id),
                event_type=event.id,
                event_name=event.title,
                event_price=event.price,
                currency=event.currency,
                full_name=data['full_name'],
                email=data['email'],
                phone=data['phone'],
                organization=data['organization'],
                agi_member=data.get('agi_member', False),
            )
        except DuplicateReference as e:
            return _error(e.message, e.status_code)
        logger.info(f"Created pending registration {registration.client_reference} for {event.id}")

    reference = registration.client_reference
    try:
        checkout = client.initiate_charge(
            amount=registration.event_price,
            description=registration.event_name,
            client_reference=reference,
            callback_url=site_url(reverse('payment_callback')),
            return_url=verification_url(reference),
            cancel_url=payment_link(registration),
            payer_phone=registration.phone,
            payer_email=registration.email,
            payer_name=registration.full_name,
        )
    except ProviderNotConfigured as e:
        logger.error(f"Cannot initiate checkout for {reference}: {e.message}")
        return _error('Payment provider not configured', e.status_code, clientReference=reference)
    except ProviderError as e:
        logger.error(f"Hubtel checkout initiation failed for {reference}: {e.message}")
        return _error('Payment initialization failed', 502, message=e.message, clientReference=reference)

    store.set_checkout(reference, checkout.checkout_id, checkout.checkout_url)
    PaymentActivity.objects.create(
        registration=registration,
        reference=reference,
        kind=PaymentActivity.KIND_INITIATED,
        status=registration.payment_status,
        message=f"Checkout {checkout.checkout_id}",
    )
    return JsonResponse({
        'success': True,
        'clientReference': reference,
        'checkoutUrl': checkout.checkout_url,
        'checkoutDirectUrl': checkout.checkout_direct_url,
        'checkoutId': checkout.checkout_id,
        'amount': str(registration.event_price),
        'currency': registration.currency,
        'eventName': registration.event_name,
        'description': registration.event_name,
        'customerEmail': registration.email,
        'customerMsisdn': registration.phone,
        'merchantId': client.merchant_id,
    })


# -- callback and status ------------------------------------------------------

@csrf_exempt
@require_http_methods(["POST"])
def payment_callback(request):
    """
    Hubtel payment callback.

    200 for an applied or already-applied notification, 400 for a payload we
    cannot read, 404 when the client reference is unknown to us.
    """
    try:
        payload = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error('Invalid JSON', 400)

    try:
        result = get_reconciler().reconcile_from_callback(payload)
    except (MalformedCallback, UnknownRegistration) as e:
        return _error(e.message, e.status_code)

    return JsonResponse({
        'success': True,
        'clientReference': result.client_reference,
        'status': result.status,
        'changed': result.changed,
    })


@require_http_methods(["GET"])
def transaction_status(request, client_reference):
    """
    Poll Hubtel for a transaction's live status. Always answers with a status;
    ``source`` says whether it came from Hubtel or from our records.
    """
    reconciler = get_reconciler()
    try:
        result = reconciler.reconcile_from_poll(
            client_reference,
            hubtel_transaction_id=request.GET.get('hubtelTransactionId') or None,
            network_transaction_id=request.GET.get('networkTransactionId') or None,
        )
    except (InvalidReference, UnknownRegistration) as e:
        return _error(e.message, e.status_code)

    registration = result.registration
    body = {
        'success': True,
        'clientReference': result.client_reference,
        'status': result.status,
        'source': result.source,
        'changed': result.changed,
        'providerStatus': result.provider_status,
        'hubtelConfigured': reconciler.client.is_configured,
        'lastProviderCheck': registration.last_provider_check.isoformat() if registration.last_provider_check else None,
    }
    if result.provider_error:
        body['providerError'] = result.provider_error
    return JsonResponse(body)


# -- registrations ------------------------------------------------------------

@require_http_methods(["GET"])
def registration_detail(request, client_reference):
    try:
        registration = _find_registration(client_reference)
    except RegistrationError as e:
        return _error(e.message, e.status_code)
    serializer_class = AdminRegistrationSerializer if request.user.is_staff else RegistrationSerializer
    return JsonResponse({'success': True, 'registration': serializer_class(registration).data})


@require_http_methods(["GET"])
def verify_registration_api(request, client_reference):
    """
    API: entry check for a scanned QR code.
    """
    try:
        registration = _find_registration(client_reference)
    except RegistrationError as e:
        return _error(e.message, e.status_code, valid=False)
    return JsonResponse({'success': True, 'registration': VerificationSerializer(registration).data,
                         'valid': registration.is_paid})


def verify_registration(request, client_reference):
    """
    Page the entry QR code points to.
    """
    try:
        registration = _find_registration(client_reference)
    except RegistrationError:
        raise Http404('Registration not found')
    return render(request, 'registrations/verify.html', {'registration': registration})


@require_http_methods(["GET"])
def registration_list(request):
    """
    Staff API: registrations filtered by ``status`` and ``event``, newest first.
    """
    denied = _staff_only(request)
    if denied:
        return denied
    try:
        limit = int(request.GET.get('limit', 100))
    except ValueError:
        return _error('limit must be an integer', 400)
    registrations = get_reconciler().store.list_registrations(
        status=request.GET.get('status') or None,
        event_type=request.GET.get('event') or None,
        limit=max(1, min(limit, 500)),
    )
    return JsonResponse({
        'success': True,
        'count': len(registrations),
        'registrations': AdminRegistrationSerializer(registrations, many=True).data,
    })


@csrf_exempt
@require_http_methods(["POST"])
def send_registration_reminder(request, client_reference):
    denied = _staff_only(request)
    if denied:
        return denied
    try:
        registration = _find_registration(client_reference)
    except RegistrationError as e:
        return _error(e.message, e.status_code)

    result = send_reminder(registration, store=get_reconciler().store)
    if not result['success']:
        return _error(result['error'], 409 if registration.payment_status != Registration.STATUS_PENDING else 502)
    return JsonResponse({'success': True, 'clientReference': registration.client_reference,
                         'reminderCount': registration.reminder_count})


@csrf_exempt
@require_http_methods(["POST"])
def offline_registration(request):
    """
    Staff API: record a registration that was paid outside Hubtel.
    """
    denied = _staff_only(request)
    if denied:
        return denied

    payload = _parse_body_json(request) or request.POST.dict()
    form = OfflineRegistrationForm.from_payload(payload)
    if not form.is_valid():
        return _error('Form validation failed', 400, errors=_form_errors(form))

    event = form.event
    data = form.cleaned_data
    reconciler = get_reconciler()
    registration = reconciler.store.create(
        client_reference=generate_client_reference(event.id),
        event_type=event.id,
        event_name=event.title,
        event_price=event.price,
        currency=event.currency,
        full_name=data['full_name'],
        email=data['email'],
        phone=data['phone'],
        organization=data['organization'],
        agi_member=data.get('agi_member', False),
    )
    result = reconciler.complete_offline(
        registration.client_reference,
        amount=data.get('amount'),
        note=data.get('note'),
        recorded_by=request.user.get_username(),
    )
    return JsonResponse({
        'success': True,
        'clientReference': result.client_reference,
        'status': result.status,
        'emailSent': bool(result.notification and result.notification.get('success')),
    }, status=201)
