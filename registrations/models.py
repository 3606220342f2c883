"""
Database models for Value Creation Summit registrations.
"""
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Registration(models.Model):
    """
    One registration/payment attempt for a summit event, keyed by client reference.
    """
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_REFUNDED = 'refunded'
    STATUS_UNKNOWN = 'unknown'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending Payment'),
        (STATUS_COMPLETED, 'Paid'),
        (STATUS_FAILED, 'Payment Failed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_REFUNDED, 'Refunded'),
        (STATUS_UNKNOWN, 'Status Unknown'),
    ]

    # No automatic transition is allowed out of these
    TERMINAL_STATUSES = frozenset({
        STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED, STATUS_REFUNDED,
    })

    client_reference = models.CharField(max_length=100, unique=True)
    event_type = models.CharField(max_length=50, db_index=True)

    # Customer information (captured once from the registration form)
    full_name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=30)
    organization = models.CharField(max_length=200)
    agi_member = models.BooleanField(default=False, help_text="Member of the Association of Ghana Industries")

    # Event snapshot at registration time
    event_name = models.CharField(max_length=255)
    event_price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='GHS')

    # Payment information
    payment_status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    payment_data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder,
                                    help_text="Settlement details supplied by Hubtel")
    checkout_id = models.CharField(max_length=100, blank=True, null=True)
    checkout_url = models.URLField(max_length=500, blank=True, null=True)
    last_provider_check = models.DateTimeField(null=True, blank=True)

    # Reminder bookkeeping
    reminder_count = models.PositiveIntegerField(default=0)
    last_reminder_sent = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Registration'
        verbose_name_plural = 'Registrations'

    def __str__(self):
        return f"{self.full_name} - {self.event_type} - {self.payment_status}"

    @property
    def is_terminal(self):
        return self.payment_status in self.TERMINAL_STATUSES

    @property
    def is_paid(self):
        return self.payment_status == self.STATUS_COMPLETED


class PaymentActivity(models.Model):
    """
    Logs every payment-related event: initiated, callback, poll, status change, manual completion.
    Administrative only; reconciliation never reads it.
    """
    KIND_INITIATED = 'initiated'
    KIND_CALLBACK = 'callback'
    KIND_POLL = 'poll'
    KIND_STATUS_CHANGED = 'status_changed'
    KIND_OFFLINE = 'offline'
    KIND_REMINDER = 'reminder'
    KIND_NOTIFICATION_FAILED = 'notification_failed'

    KIND_CHOICES = [
        (KIND_INITIATED, 'Checkout initiated'),
        (KIND_CALLBACK, 'Callback received'),
        (KIND_POLL, 'Status polled'),
        (KIND_STATUS_CHANGED, 'Status changed'),
        (KIND_OFFLINE, 'Offline completion'),
        (KIND_REMINDER, 'Reminder sent'),
        (KIND_NOTIFICATION_FAILED, 'Notification failed'),
    ]

    SOURCE_CHOICES = [
        ('local', 'Local'),
        ('provider', 'Provider'),
        ('callback', 'Callback'),
        ('manual', 'Manual'),
    ]

    id = models.BigAutoField(primary_key=True)
    registration = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name='payment_activities'
    )
    reference = models.CharField(max_length=100, db_index=True)
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, db_index=True)
    provider_status = models.CharField(max_length=50, blank=True, null=True)
    status = models.CharField(max_length=10, choices=Registration.STATUS_CHOICES, blank=True, null=True)
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, blank=True, null=True)
    gateway = models.CharField(max_length=20, default='hubtel')
    message = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Payment Activity'
        verbose_name_plural = 'Payment Activities'

    def __str__(self):
        return f"{self.reference} – {self.get_kind_display()} – {self.status or '-'}"
