"""
Django admin configuration for registrations app.
"""
from django.contrib import admin, messages
import csv
from django.http import HttpResponse
from .models import Registration, PaymentActivity
from .reconciler import get_reconciler
from .reminders import send_reminder


class PaymentActivityInline(admin.TabularInline):
    model = PaymentActivity
    extra = 0
    can_delete = False
    fields = ['created_at', 'kind', 'provider_status', 'status', 'source', 'message']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    """
    Admin interface for managing registrations.
    Includes filtering, search, Hubtel status checks, reminders and CSV export.
    """
    list_display = [
        'client_reference', 'full_name', 'email', 'phone', 'organization',
        'event_type', 'event_price', 'payment_status', 'reminder_count', 'created_at'
    ]
    list_filter = ['payment_status', 'event_type', 'agi_member', 'created_at']
    search_fields = ['client_reference', 'full_name', 'email', 'phone', 'organization']
    readonly_fields = [
        'client_reference', 'payment_status', 'payment_data', 'checkout_id', 'checkout_url',
        'last_provider_check', 'reminder_count', 'last_reminder_sent', 'created_at', 'updated_at',
    ]
    created_fields = [
        'event_type', 'event_name', 'event_price', 'currency',
        'full_name', 'email', 'phone', 'organization', 'agi_member',
    ]
    fieldsets = (
        ('Registrant', {
            'fields': ('full_name', 'email', 'phone', 'organization', 'agi_member')
        }),
        ('Event', {
            'fields': ('event_type', 'event_name', 'event_price', 'currency')
        }),
        ('Payment Information', {
            'fields': ('client_reference', 'payment_status', 'checkout_id', 'checkout_url', 'last_provider_check')
        }),
        ('Additional Information', {
            'fields': ('payment_data', 'reminder_count', 'last_reminder_sent', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
    inlines = [PaymentActivityInline]

    def get_readonly_fields(self, request, obj=None):
        # Event and registrant details are fixed once the registration exists
        fields = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            fields += self.created_fields
        return fields

    actions = ['check_hubtel_status', 'send_payment_reminders', 'export_as_csv']

    def check_hubtel_status(self, request, queryset):
        """
        Ask Hubtel for the live status of the selected registrations.
        """
        reconciler = get_reconciler()
        if not reconciler.client.is_configured:
            self.message_user(request, "Hubtel credentials are not configured.", messages.ERROR)
            return

        changed = errors = 0
        for registration in queryset:
            result = reconciler.reconcile_from_poll(registration.client_reference)
            if result.changed:
                changed += 1
            if result.provider_error:
                errors += 1
        self.message_user(
            request,
            f"Checked {queryset.count()} registration(s): {changed} updated, {errors} could not be checked.",
            messages.WARNING if errors else messages.SUCCESS,
        )

    check_hubtel_status.short_description = "Check payment status with Hubtel"

    def send_payment_reminders(self, request, queryset):
        sent = skipped = 0
        for registration in queryset.filter(payment_status=Registration.STATUS_PENDING):
            if send_reminder(registration)['success']:
                sent += 1
            else:
                skipped += 1
        self.message_user(request, f"Sent {sent} reminder(s); {skipped} failed.")

    send_payment_reminders.short_description = "Send payment reminder to pending registrations"

    def export_as_csv(self, request, queryset):
        """
        Export selected registrations as CSV.
        """
        meta = self.model._meta
        field_names = [
            'client_reference', 'full_name', 'email', 'phone', 'organization', 'agi_member',
            'event_type', 'event_name', 'event_price', 'currency', 'payment_status',
            'checkout_id', 'created_at'
        ]

        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename={meta}.csv'
        writer = csv.writer(response)

        writer.writerow(field_names)
        for obj in queryset:
            row = [getattr(obj, field) for field in field_names]
            writer.writerow(row)

        return response

    export_as_csv.short_description = "Export selected registrations as CSV"


@admin.register(PaymentActivity)
class PaymentActivityAdmin(admin.ModelAdmin):
    """
    Admin interface for viewing all payment activity (callbacks, polls, status changes).
    """
    list_display = ['created_at', 'reference', 'kind', 'provider_status', 'status', 'source', 'registration']
    list_filter = ['kind', 'status', 'source', 'created_at']
    search_fields = ['reference', 'registration__full_name', 'registration__email', 'message']
    readonly_fields = ['id', 'created_at']
    date_hierarchy = 'created_at'
