"""
Normalization of Hubtel callback payloads.

Hubtel (and our own test and offline tooling) post several envelope shapes.
Everything is converted to a CallbackNotification here, before it reaches the
reconciler.
"""
from dataclasses import dataclass, field

from .exceptions import MalformedCallback

REFERENCE_KEYS = ('clientReference', 'client_reference', 'ClientReference')
STATUS_KEYS = ('providerStatus', 'provider_status', 'Status', 'status')
PROVIDER_DATA_KEYS = ('providerData', 'provider_data')


@dataclass(frozen=True)
class CallbackNotification:
    client_reference: str
    provider_status: str
    provider_data: dict = field(default_factory=dict)


def _first(mapping, keys):
    for key in keys:
        value = mapping.get(key)
        if value not in (None, ''):
            return value
    return None


def _hubtel_payment_data(data):
    """Pick settlement details out of a Hubtel ``Data`` block."""
    details = data.get('PaymentDetails') or {}
    payment_data = {
        'transaction_id': data.get('SalesInvoiceId') or data.get('TransactionId') or data.get('CheckoutId'),
        'checkout_id': data.get('CheckoutId'),
        'amount': data.get('Amount'),
        'charges': data.get('Charges'),
        'amount_after_charges': data.get('AmountAfterCharges'),
        'payment_method': details.get('PaymentType'),
        'channel': details.get('Channel'),
        'customer_phone': data.get('CustomerPhoneNumber') or details.get('MobileMoneyNumber'),
        'description': data.get('Description'),
    }
    return {k: v for k, v in payment_data.items() if v is not None}


def normalize_callback(payload):
    """
    Convert any supported callback payload into a CallbackNotification.

    Supported shapes:
      * Hubtel envelope: ``{"ResponseCode", "Status", "Data": {"ClientReference", "Status", ...}}``
      * flat Hubtel: ``{"ClientReference", "Status", "Amount", ...}``
      * canonical: ``{"clientReference", "providerStatus", "providerData"}`` with any
        further fields treated as provider data

    Raises MalformedCallback when no client reference or status can be found.
    """
    if isinstance(payload, CallbackNotification):
        return payload
    if not isinstance(payload, dict):
        raise MalformedCallback("Callback payload must be a JSON object")

    data = payload.get('Data') or payload.get('data')
    if isinstance(data, dict) and _first(data, REFERENCE_KEYS):
        reference = _first(data, REFERENCE_KEYS)
        status = _first(data, STATUS_KEYS) or _first(payload, STATUS_KEYS)
        provider_data = _hubtel_payment_data(data)
        if payload.get('ResponseCode'):
            provider_data['response_code'] = payload['ResponseCode']
    elif 'ClientReference' in payload:
        reference = payload.get('ClientReference')
        status = _first(payload, STATUS_KEYS)
        provider_data = _hubtel_payment_data(payload)
    else:
        reference = _first(payload, REFERENCE_KEYS)
        status = _first(payload, STATUS_KEYS)
        provider_data = _first(payload, PROVIDER_DATA_KEYS)
        if not isinstance(provider_data, dict):
            skip = set(REFERENCE_KEYS) | set(STATUS_KEYS) | set(PROVIDER_DATA_KEYS)
            provider_data = {k: v for k, v in payload.items() if k not in skip}
        else:
            provider_data = dict(provider_data)

    if not isinstance(reference, str) or not reference.strip():
        raise MalformedCallback("Callback payload has no client reference")
    if not isinstance(status, str) or not status:
        raise MalformedCallback(f"Callback for {reference} has no status")

    return CallbackNotification(
        client_reference=reference.strip(),
        provider_status=status,
        provider_data=provider_data,
    )
