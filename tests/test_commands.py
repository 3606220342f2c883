"""Tests for the reconcile_pending and send_payment_reminders management commands."""

from datetime import timedelta
from io import StringIO
from unittest.mock import patch

import pytest
from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from registrations.models import PaymentActivity, Registration

from .conftest import hubtel_response, status_body


def backdate(reference, **delta):
    Registration.objects.filter(client_reference=reference).update(created_at=timezone.now() - timedelta(**delta))


@pytest.mark.django_db
class TestReconcilePending:
    @pytest.fixture(autouse=True)
    def use_test_reconciler(self, reconciler):
        with patch('registrations.management.commands.reconcile_pending.get_reconciler', return_value=reconciler):
            yield reconciler

    def test_updates_pending_registrations(self, make_registration, hubtel_session):
        make_registration('ref-1')
        make_registration('ref-2', payment_status=Registration.STATUS_COMPLETED)
        backdate('ref-1', hours=1)
        backdate('ref-2', hours=1)
        hubtel_session.request.return_value = hubtel_response(200, status_body('Paid'))
        out = StringIO()

        call_command('reconcile_pending', stdout=out)

        assert Registration.objects.get(client_reference='ref-1').payment_status == Registration.STATUS_COMPLETED
        assert hubtel_session.request.call_count == 1
        assert 'Checked: 1, updated: 1, errors: 0' in out.getvalue()

    def test_skips_recent_registrations(self, registration, hubtel_session):
        call_command('reconcile_pending', stdout=StringIO())
        hubtel_session.request.assert_not_called()

    def test_reports_provider_errors(self, registration, hubtel_session):
        hubtel_session.request.return_value = hubtel_response(503, {'message': 'Service unavailable'})
        out = StringIO()

        call_command('reconcile_pending', '--min-age-minutes', '0', stdout=out)

        assert 'errors: 1' in out.getvalue()
        assert Registration.objects.get(client_reference='ref-1').payment_status == Registration.STATUS_PENDING

    def test_dry_run_does_not_contact_hubtel(self, registration, hubtel_session):
        out = StringIO()
        call_command('reconcile_pending', '--dry-run', '--min-age-minutes', '0', stdout=out)
        hubtel_session.request.assert_not_called()
        assert 'ref-1 (pending)' in out.getvalue()

    def test_unconfigured(self, registration, use_test_reconciler, unconfigured_hubtel):
        use_test_reconciler.client = unconfigured_hubtel
        with pytest.raises(CommandError):
            call_command('reconcile_pending', '--min-age-minutes', '0', stdout=StringIO())


@pytest.mark.django_db
class TestSendPaymentReminders:
    def test_reminds_old_pending_registrations(self, make_registration):
        make_registration('ref-1')
        make_registration('ref-2', email='paid@example.com', payment_status=Registration.STATUS_COMPLETED)
        make_registration('ref-3', email='new@example.com')
        backdate('ref-1', days=2)
        backdate('ref-2', days=2)
        out = StringIO()

        call_command('send_payment_reminders', stdout=out)

        assert [m.to for m in mail.outbox] == [['ama@example.com']]
        registration = Registration.objects.get(client_reference='ref-1')
        assert registration.reminder_count == 1
        assert registration.last_reminder_sent is not None
        assert PaymentActivity.objects.filter(kind=PaymentActivity.KIND_REMINDER).count() == 1
        assert 'Sent: 1, failed: 0' in out.getvalue()

    def test_does_not_repeat_recent_reminder(self, registration):
        backdate('ref-1', days=2)
        call_command('send_payment_reminders', stdout=StringIO())
        call_command('send_payment_reminders', stdout=StringIO())
        assert len(mail.outbox) == 1

    def test_respects_max_reminders(self, make_registration):
        make_registration(reminder_count=3)
        backdate('ref-1', days=2)
        call_command('send_payment_reminders', '--max-reminders', '3', stdout=StringIO())
        assert mail.outbox == []

    def test_event_filter(self, make_registration):
        make_registration('ref-1')
        make_registration('ref-2', event_type='sme', email='sme@example.com')
        backdate('ref-1', days=2)
        backdate('ref-2', days=2)
        call_command('send_payment_reminders', '--event', 'sme', stdout=StringIO())
        assert [m.to for m in mail.outbox] == [['sme@example.com']]

    def test_dry_run(self, registration):
        backdate('ref-1', days=2)
        out = StringIO()
        call_command('send_payment_reminders', '--dry-run', stdout=out)
        assert mail.outbox == []
        assert 'ref-1' in out.getvalue()
        assert Registration.objects.get(client_reference='ref-1').reminder_count == 0
