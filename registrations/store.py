"""
Registration store: the only persistence seam the reconciliation flow uses.
"""
import logging

from django.db import DEFAULT_DB_ALIAS, IntegrityError, OperationalError, connections, transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import DuplicateReference
from .models import Registration

logger = logging.getLogger(__name__)


class RegistrationStore:
    """
    Registration records keyed by client reference.

    The store owns its connection lifecycle: every operation first makes sure
    the connection for ``using`` is alive, dropping and reopening it once if not.
    """

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    @property
    def connection(self):
        return connections[self.using]

    def ensure_connection(self):
        conn = self.connection
        if conn.in_atomic_block:
            return
        try:
            # An open connection that fails its ping is dropped; a closed one is simply opened
            if conn.connection is not None and not conn.is_usable():
                raise OperationalError("connection is not usable")
            conn.ensure_connection()
        except OperationalError:
            logger.warning(f"Database connection '{self.using}' unusable, reconnecting")
            conn.close()
            conn.ensure_connection()

    def is_healthy(self):
        try:
            self.ensure_connection()
        except OperationalError as e:
            logger.error(f"Registration store health check failed: {e}")
            return False
        return True

    @property
    def objects(self):
        return Registration.objects.using(self.using)

    def create(self, **fields):
        """Insert a new registration. Fails with DuplicateReference if the reference exists."""
        self.ensure_connection()
        reference = fields.get('client_reference')
        try:
            with transaction.atomic(using=self.using):
                return self.objects.create(**fields)
        except IntegrityError as e:
            if self.objects.filter(client_reference=reference).exists():
                raise DuplicateReference(f"Client reference already exists: {reference}") from e
            raise

    def find_by_reference(self, reference):
        self.ensure_connection()
        return self.objects.filter(client_reference=reference).first()

    def update_status(self, reference, expected_status, new_status, payment_data=None, **extra):
        """
        Atomically move ``reference`` from ``expected_status`` to ``new_status``.

        With ``expected_status=None`` the update is guarded by "status is not
        terminal" instead. Returns True only if this call changed the row; a
        concurrent writer that got there first makes this a no-op.
        """
        self.ensure_connection()
        now = timezone.now()
        qs = self.objects.filter(client_reference=reference)
        if expected_status is None:
            qs = qs.exclude(payment_status__in=Registration.TERMINAL_STATUSES)
        else:
            qs = qs.filter(payment_status=expected_status)

        values = dict(extra, payment_status=new_status, updated_at=now)
        if payment_data is not None:
            values['payment_data'] = payment_data
        updated = qs.update(**values)
        return updated == 1

    def touch_provider_check(self, reference):
        self.ensure_connection()
        now = timezone.now()
        self.objects.filter(client_reference=reference).update(last_provider_check=now)
        return now

    def set_checkout(self, reference, checkout_id, checkout_url):
        self.ensure_connection()
        self.objects.filter(client_reference=reference).update(
            checkout_id=checkout_id, checkout_url=checkout_url, updated_at=timezone.now(),
        )

    def record_reminder(self, reference):
        self.ensure_connection()
        now = timezone.now()
        self.objects.filter(client_reference=reference).update(
            reminder_count=F('reminder_count') + 1, last_reminder_sent=now,
        )
        return now

    def list_registrations(self, status=None, event_type=None, limit=None):
        self.ensure_connection()
        qs = self.objects.order_by('-created_at')
        if status:
            qs = qs.filter(payment_status=status)
        if event_type:
            qs = qs.filter(event_type=event_type)
        if limit:
            qs = qs[:limit]
        return list(qs)
