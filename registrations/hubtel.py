"""
Hubtel payment provider client: checkout initiation and transaction status check.
"""
import base64
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

import requests
from django.conf import settings

from .exceptions import (
    InvalidCredentials, InvalidRequest, ProviderError, ProviderNotConfigured,
    ProviderNotFound, ProviderTimeout, ProviderUnavailable,
)
from .models import Registration

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
USER_AGENT = 'ValueCreationSummit/1.0'

# Hubtel status vocabulary -> Registration.payment_status (case-sensitive)
STATUS_MAP = {
    'Success': Registration.STATUS_COMPLETED,
    'Paid': Registration.STATUS_COMPLETED,
    'Failed': Registration.STATUS_FAILED,
    'Pending': Registration.STATUS_PENDING,
    'Unpaid': Registration.STATUS_PENDING,
    'Cancelled': Registration.STATUS_CANCELLED,
    'Refunded': Registration.STATUS_REFUNDED,
}


def map_hubtel_status(provider_status):
    """Map a Hubtel status string to an internal payment status."""
    return STATUS_MAP.get(provider_status, Registration.STATUS_UNKNOWN)


@dataclass
class CheckoutHandle:
    checkout_url: str
    checkout_id: str
    client_reference: str
    checkout_direct_url: str = ''


@dataclass
class ProviderStatus:
    status: str
    transaction_id: str = None
    external_transaction_id: str = None
    amount: Decimal = None
    charges: Decimal = None
    payment_method: str = None
    date: str = None
    raw: dict = field(default_factory=dict)

    @property
    def internal_status(self):
        return map_hubtel_status(self.status)

    def as_payment_data(self):
        """Settlement details in the shape stored on Registration.payment_data."""
        data = {
            'transaction_id': self.transaction_id,
            'external_transaction_id': self.external_transaction_id,
            'amount': self.amount,
            'charges': self.charges,
            'payment_method': self.payment_method,
            'provider_status': self.status,
            'provider_date': self.date,
        }
        return {k: v for k, v in data.items() if v is not None}


def _decimal_or_none(value):
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Ignoring non-numeric amount from Hubtel: {value!r}")
        return None


class HubtelClient:
    """
    Thin wrapper over the Hubtel online checkout and transaction status APIs.

    Credentials are read once from settings at construction time. Without all
    three (app id, API key, merchant account) the client reports itself
    unconfigured and refuses to make network calls.
    """

    def __init__(self, app_id=None, api_key=None, merchant_id=None,
                 checkout_url=None, status_url=None, timeout=None, session=None):
        self.app_id = app_id if app_id is not None else getattr(settings, 'HUBTEL_APP_ID', '')
        self.api_key = api_key if api_key is not None else getattr(settings, 'HUBTEL_API_KEY', '')
        self.merchant_id = merchant_id if merchant_id is not None else getattr(settings, 'HUBTEL_MERCHANT_ID', '')
        self.checkout_url = (checkout_url or getattr(settings, 'HUBTEL_CHECKOUT_URL', 'https://payproxyapi.hubtel.com')).rstrip('/')
        self.status_url = (status_url or getattr(settings, 'HUBTEL_STATUS_URL', 'https://api-txnstatus.hubtel.com')).rstrip('/')
        self.timeout = timeout or getattr(settings, 'HUBTEL_TIMEOUT', DEFAULT_TIMEOUT)
        self.session = session or requests.Session()

        if not self.is_configured:
            logger.warning("Hubtel credentials not fully configured. Transaction status checks will be skipped.")

    @property
    def is_configured(self):
        return bool(self.app_id and self.api_key and self.merchant_id)

    map_status = staticmethod(map_hubtel_status)

    def auth_header(self):
        if not (self.app_id and self.api_key):
            raise ProviderNotConfigured()
        credentials = f"{self.app_id}:{self.api_key}".encode('utf-8')
        return f"Basic {base64.b64encode(credentials).decode('ascii')}"

    def _request(self, method, url, **kwargs):
        headers = {
            'Authorization': self.auth_header(),
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'User-Agent': USER_AGENT,
        }
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise ProviderTimeout(http_status=0) from e
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(f"Network error connecting to Hubtel API: {e}", http_status=0) from e

        try:
            data = response.json()
        except ValueError:
            raise ProviderUnavailable(
                "Invalid JSON response from Hubtel", http_status=response.status_code,
            ) from None

        if 200 <= response.status_code < 300:
            if not isinstance(data, dict):
                raise ProviderUnavailable(
                    "Unexpected response body from Hubtel", http_status=response.status_code, data=data,
                )
            return data

        message = (data.get('message') or data.get('Message') or 'Hubtel API request failed') if isinstance(data, dict) else 'Hubtel API request failed'
        response_code = (data.get('responseCode') or data.get('ResponseCode')) if isinstance(data, dict) else None
        error_class = {
            400: InvalidRequest,
            401: InvalidCredentials,
            403: InvalidCredentials,
            404: ProviderNotFound,
            422: InvalidRequest,
        }.get(response.status_code, ProviderUnavailable)
        raise error_class(message, http_status=response.status_code, response_code=response_code, data=data)

    def initiate_charge(self, amount, description, client_reference, callback_url,
                        return_url, cancel_url, payer_phone='', payer_email='', payer_name=''):
        """
        Create a Hubtel online checkout for ``amount`` and return its handle.

        Raises ProviderError subclasses; there is no fallback on this path.
        """
        if not self.is_configured:
            raise ProviderNotConfigured()

        payload = {
            'totalAmount': float(amount),
            'description': description,
            'callbackUrl': callback_url,
            'returnUrl': return_url,
            'cancellationUrl': cancel_url,
            'merchantAccountNumber': self.merchant_id,
            'clientReference': client_reference,
            'payeeName': payer_name,
            'payeeMobileNumber': payer_phone,
            'payeeEmail': payer_email,
        }
        logger.info(f"Initiating Hubtel checkout for {client_reference} ({amount})")
        data = self._request('POST', f"{self.checkout_url}/items/initiate", json=payload)

        checkout = data.get('data')
        if not isinstance(checkout, dict):
            checkout = {}
        if data.get('responseCode') != '0000' or not checkout.get('checkoutUrl'):
            raise InvalidRequest(
                data.get('message') or data.get('status') or 'No checkout URL returned',
                response_code=data.get('responseCode'), data=data,
            )
        return CheckoutHandle(
            checkout_url=checkout['checkoutUrl'],
            checkout_id=checkout.get('checkoutId', ''),
            client_reference=checkout.get('clientReference') or client_reference,
            checkout_direct_url=checkout.get('checkoutDirectUrl', ''),
        )

    def query_status(self, client_reference, hubtel_transaction_id=None, network_transaction_id=None):
        """
        Check a transaction's status with Hubtel.

        At least one identifier is required. Raises ProviderError subclasses.
        """
        if not self.is_configured:
            raise ProviderNotConfigured()

        params = {}
        if client_reference:
            params['clientReference'] = client_reference
        if hubtel_transaction_id:
            params['hubtelTransactionId'] = hubtel_transaction_id
        if network_transaction_id:
            params['networkTransactionId'] = network_transaction_id
        if not params:
            raise InvalidRequest("At least one transaction identifier is required")

        logger.info(f"Checking Hubtel transaction status for: {client_reference}")
        data = self._request('GET', f"{self.status_url}/transactions/{self.merchant_id}/status", params=params)

        txn = data.get('data')
        if not isinstance(txn, dict) or not isinstance(txn.get('status'), str) or not txn['status']:
            raise ProviderError(
                data.get('message') or 'Hubtel did not return transaction data',
                response_code=data.get('responseCode'), data=data,
            )

        logger.info(
            f"Hubtel status check for {client_reference}: status={txn.get('status')} "
            f"responseCode={data.get('responseCode')} transactionId={txn.get('transactionId')}"
        )
        return ProviderStatus(
            status=txn['status'],
            transaction_id=txn.get('transactionId'),
            external_transaction_id=txn.get('externalTransactionId'),
            amount=_decimal_or_none(txn.get('amount')),
            charges=_decimal_or_none(txn.get('charges')),
            payment_method=txn.get('paymentMethod'),
            date=txn.get('date'),
            raw=txn,
        )
