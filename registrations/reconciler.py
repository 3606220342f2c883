"""
Payment status reconciliation.

Merges the locally stored payment status of a registration with the status
reported by Hubtel, either pushed through the payment callback or pulled with a
transaction status check, and persists the outcome exactly once.

Rules:
  * a terminal status (completed, failed, cancelled, refunded) is never changed
    by a callback or a poll; repeated deliveries are acknowledged as success
  * every status write is conditioned on the status read just before it, so of
    two racing writers only one changes the row and only that one notifies
  * provider failures during a poll fall back to the stored status
"""
import logging
from dataclasses import dataclass

from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils import timezone

from .callbacks import normalize_callback
from .emails import EmailNotifier
from .exceptions import ProviderError, UnknownRegistration
from .hubtel import HubtelClient, map_hubtel_status
from .models import PaymentActivity, Registration
from .store import RegistrationStore
from .utils import validate_client_reference

logger = logging.getLogger(__name__)

SOURCE_LOCAL = 'local'
SOURCE_PROVIDER = 'provider'
SOURCE_CALLBACK = 'callback'
SOURCE_MANUAL = 'manual'

TIMESTAMP_KEYS = {
    Registration.STATUS_COMPLETED: 'completed_at',
    Registration.STATUS_FAILED: 'failed_at',
    Registration.STATUS_CANCELLED: 'cancelled_at',
    Registration.STATUS_REFUNDED: 'refunded_at',
}

FAILURE_NOTICE_STATUSES = (Registration.STATUS_FAILED, Registration.STATUS_CANCELLED)


@dataclass
class ReconcileResult:
    client_reference: str
    status: str
    source: str
    changed: bool = False
    registration: Registration = None
    provider_status: str = None
    provider_error: str = None
    notification: dict = None


class StatusReconciler:

    def __init__(self, store=None, client=None, notifier=None):
        self.store = store or RegistrationStore()
        self.client = client or HubtelClient()
        self.notifier = notifier or EmailNotifier()

    # -- callbacks ---------------------------------------------------------

    def reconcile_from_callback(self, payload):
        """
        Apply a Hubtel callback to its registration.

        Raises MalformedCallback or UnknownRegistration; any other outcome,
        including a duplicate delivery, is a success.
        """
        notification = normalize_callback(payload)
        reference = notification.client_reference

        registration = self.store.find_by_reference(reference)
        if registration is None:
            logger.warning(f"Callback for unknown registration {reference} (status {notification.provider_status})")
            raise UnknownRegistration(f"No registration for client reference {reference}")

        new_status = map_hubtel_status(notification.provider_status)
        self._log_activity(
            registration, PaymentActivity.KIND_CALLBACK,
            provider_status=notification.provider_status, status=new_status, source=SOURCE_CALLBACK,
        )

        if registration.is_terminal:
            logger.info(
                f"Callback for {reference} ignored: already {registration.payment_status} "
                f"(provider sent {notification.provider_status})"
            )
            return self._unchanged(registration, notification.provider_status)

        if new_status == registration.payment_status:
            return self._unchanged(registration, notification.provider_status)

        payment_data = self._payment_data(new_status, notification.provider_data, SOURCE_CALLBACK)
        return self._transition(
            registration, new_status, payment_data, SOURCE_CALLBACK,
            provider_status=notification.provider_status,
        )

    # -- polling -----------------------------------------------------------

    def reconcile_from_poll(self, client_reference, hubtel_transaction_id=None, network_transaction_id=None):
        """
        Check Hubtel for the live status of ``client_reference`` and reconcile.

        Always returns a status. When Hubtel cannot be asked or does not answer,
        the stored status comes back with ``source='local'`` and the reason in
        ``provider_error``.
        """
        reference = validate_client_reference(client_reference)
        registration = self.store.find_by_reference(reference)
        if registration is None:
            raise UnknownRegistration(f"No registration for client reference {reference}")

        if not self.client.is_configured:
            return self._unchanged(registration, provider_error='Hubtel credentials not configured')

        try:
            provider = self.client.query_status(reference, hubtel_transaction_id, network_transaction_id)
        except ProviderError as e:
            logger.warning(f"Hubtel status check failed for {reference}, using stored status: {e}")
            self._log_activity(
                registration, PaymentActivity.KIND_POLL,
                status=registration.payment_status, source=SOURCE_LOCAL, message=str(e),
            )
            return self._unchanged(registration, provider_error=str(e))

        checked_at = self.store.touch_provider_check(reference)
        registration.last_provider_check = checked_at
        mapped = provider.internal_status
        self._log_activity(
            registration, PaymentActivity.KIND_POLL,
            provider_status=provider.status, status=mapped, source=SOURCE_PROVIDER,
        )

        if registration.is_terminal:
            if mapped != registration.payment_status:
                logger.info(
                    f"Poll for {reference}: Hubtel says {provider.status}, keeping local "
                    f"{registration.payment_status}"
                )
            return self._unchanged(registration, provider.status)

        if mapped == registration.payment_status:
            return ReconcileResult(
                client_reference=reference,
                status=registration.payment_status,
                source=SOURCE_PROVIDER,
                registration=registration,
                provider_status=provider.status,
            )

        payment_data = self._payment_data(mapped, provider.as_payment_data(), SOURCE_PROVIDER)
        return self._transition(
            registration, mapped, payment_data, SOURCE_PROVIDER,
            provider_status=provider.status, last_provider_check=checked_at,
        )

    # -- manual ------------------------------------------------------------

    def complete_offline(self, client_reference, amount=None, note=None, recorded_by=None):
        """
        Mark a registration as paid outside Hubtel (cash, transfer at the desk).

        Only a non-terminal registration is changed.
        """
        reference = validate_client_reference(client_reference)
        registration = self.store.find_by_reference(reference)
        if registration is None:
            raise UnknownRegistration(f"No registration for client reference {reference}")
        if registration.is_terminal:
            return self._unchanged(registration)

        provider_data = {
            'amount': amount if amount is not None else registration.event_price,
            'payment_method': 'offline',
        }
        if note:
            provider_data['note'] = note
        if recorded_by:
            provider_data['recorded_by'] = recorded_by
        payment_data = self._payment_data(Registration.STATUS_COMPLETED, provider_data, SOURCE_MANUAL)
        return self._transition(
            registration, Registration.STATUS_COMPLETED, payment_data, SOURCE_MANUAL,
            any_non_terminal=True, activity_kind=PaymentActivity.KIND_OFFLINE,
        )

    # -- internals ---------------------------------------------------------

    def _transition(self, registration, new_status, payment_data, source, provider_status=None,
                    any_non_terminal=False, activity_kind=PaymentActivity.KIND_STATUS_CHANGED, **extra):
        reference = registration.client_reference
        previous = registration.payment_status
        expected_status = None if any_non_terminal else previous

        changed = self.store.update_status(reference, expected_status, new_status, payment_data, **extra)
        if not changed:
            # Another writer moved this registration first; report what it wrote.
            current = self.store.find_by_reference(reference)
            logger.info(f"Status update for {reference} lost to a concurrent writer; now {current.payment_status}")
            return self._unchanged(current, provider_status)

        registration = self.store.find_by_reference(reference)
        logger.info(f"Registration {reference}: {previous} -> {new_status} ({source})")
        self._log_activity(
            registration, activity_kind,
            provider_status=provider_status, status=new_status, source=source,
            message=f"{previous} -> {new_status}",
        )
        notification = self._notify(registration, new_status, payment_data)
        return ReconcileResult(
            client_reference=reference,
            status=new_status,
            source=source,
            changed=True,
            registration=registration,
            provider_status=provider_status,
            notification=notification,
        )

    def _unchanged(self, registration, provider_status=None, provider_error=None):
        return ReconcileResult(
            client_reference=registration.client_reference,
            status=registration.payment_status,
            source=SOURCE_LOCAL,
            registration=registration,
            provider_status=provider_status,
            provider_error=provider_error,
        )

    def _payment_data(self, new_status, provider_data, source):
        payment_data = dict(provider_data or {})
        payment_data[TIMESTAMP_KEYS.get(new_status, 'updated_at')] = timezone.now().isoformat()
        payment_data['source'] = source
        return payment_data

    def _notify(self, registration, new_status, payment_data):
        if new_status == Registration.STATUS_COMPLETED:
            send = self.notifier.send_confirmation
        elif new_status in FAILURE_NOTICE_STATUSES:
            send = self.notifier.send_failure_notice
        else:
            return None

        try:
            result = send(registration, payment_data)
        except Exception as e:
            result = {'success': False, 'error': str(e)}

        if not result.get('success'):
            logger.error(f"Notification for {registration.client_reference} failed: {result.get('error')}")
            self._log_activity(
                registration, PaymentActivity.KIND_NOTIFICATION_FAILED,
                status=new_status, message=result.get('error'),
            )
        return result

    def _log_activity(self, registration, kind, provider_status=None, status=None, source=None, message=None):
        PaymentActivity.objects.using(self.store.using).create(
            registration=registration,
            reference=registration.client_reference,
            kind=kind,
            provider_status=(provider_status or '')[:50] or None,
            status=status,
            source=source,
            message=(message or '')[:255] or None,
        )


_default_reconciler = None


def get_reconciler():
    """Shared reconciler built from settings on first use."""
    global _default_reconciler
    if _default_reconciler is None:
        _default_reconciler = StatusReconciler()
    return _default_reconciler


@receiver(setting_changed)
def _reset_reconciler(sender, setting, **kwargs):
    global _default_reconciler
    if setting.startswith('HUBTEL_'):
        _default_reconciler = None
