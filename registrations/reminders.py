"""
Payment reminders for registrations that never completed checkout.

Reminders are caller-driven (admin action, API call or the
``send_payment_reminders`` command); nothing here schedules itself.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from .emails import EmailNotifier
from .models import PaymentActivity, Registration
from .store import RegistrationStore

logger = logging.getLogger(__name__)


def max_reminders():
    return getattr(settings, 'REMINDER_MAX_COUNT', 3)


def send_reminder(registration, store=None, notifier=None):
    """
    Email a payment reminder for a pending registration and record it.

    Returns ``{'success': bool, 'error': str | None}``.
    """
    store = store or RegistrationStore()
    notifier = notifier or EmailNotifier()

    if registration.payment_status != Registration.STATUS_PENDING:
        return {'success': False, 'error': f"Registration is {registration.payment_status}, not pending"}

    result = notifier.send_reminder(registration)
    if result.get('success'):
        sent_at = store.record_reminder(registration.client_reference)
        registration.reminder_count += 1
        registration.last_reminder_sent = sent_at
        PaymentActivity.objects.create(
            registration=registration,
            reference=registration.client_reference,
            kind=PaymentActivity.KIND_REMINDER,
            status=registration.payment_status,
            message=f"Reminder #{registration.reminder_count}",
        )
    else:
        logger.warning(f"Reminder for {registration.client_reference} not sent: {result.get('error')}")
    return result


def registrations_due_for_reminder(min_age_hours=24, max_count=None, event_type=None):
    """
    Pending registrations older than ``min_age_hours`` whose last reminder (if
    any) is also older than that, and which have had fewer than ``max_count``.
    """
    max_count = max_reminders() if max_count is None else max_count
    cutoff = timezone.now() - timedelta(hours=min_age_hours)
    qs = Registration.objects.filter(
        payment_status=Registration.STATUS_PENDING,
        created_at__lte=cutoff,
        reminder_count__lt=max_count,
    ).filter(
        Q(last_reminder_sent__isnull=True) | Q(last_reminder_sent__lte=cutoff)
    )
    if event_type:
        qs = qs.filter(event_type=event_type)
    return qs.order_by('created_at')
