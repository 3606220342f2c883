"""
JSON representations of registrations for the API.

Field names follow the camelCase the registration pages already consume.
"""
from rest_framework import serializers

from .models import Registration


class CustomerInfoSerializer(serializers.ModelSerializer):
    fullName = serializers.CharField(source='full_name')
    agiMember = serializers.BooleanField(source='agi_member')

    class Meta:
        model = Registration
        fields = ['fullName', 'email', 'phone', 'organization', 'agiMember']


class RegistrationSerializer(serializers.ModelSerializer):
    clientReference = serializers.CharField(source='client_reference')
    eventType = serializers.CharField(source='event_type')
    eventName = serializers.CharField(source='event_name')
    eventPrice = serializers.DecimalField(source='event_price', max_digits=10, decimal_places=2)
    customerInfo = CustomerInfoSerializer(source='*')
    paymentStatus = serializers.CharField(source='payment_status')
    paymentStatusDisplay = serializers.CharField(source='get_payment_status_display')
    lastProviderCheck = serializers.DateTimeField(source='last_provider_check')
    createdAt = serializers.DateTimeField(source='created_at')
    updatedAt = serializers.DateTimeField(source='updated_at')

    class Meta:
        model = Registration
        fields = [
            'clientReference', 'eventType', 'eventName', 'eventPrice', 'currency',
            'customerInfo', 'paymentStatus', 'paymentStatusDisplay',
            'lastProviderCheck', 'createdAt', 'updatedAt',
        ]


class AdminRegistrationSerializer(RegistrationSerializer):
    paymentData = serializers.JSONField(source='payment_data')
    checkoutId = serializers.CharField(source='checkout_id')
    reminderCount = serializers.IntegerField(source='reminder_count')
    lastReminderSent = serializers.DateTimeField(source='last_reminder_sent')

    class Meta(RegistrationSerializer.Meta):
        fields = RegistrationSerializer.Meta.fields + [
            'paymentData', 'checkoutId', 'reminderCount', 'lastReminderSent',
        ]


class VerificationSerializer(serializers.ModelSerializer):
    """What the door scanner sees after reading an entry QR code."""
    clientReference = serializers.CharField(source='client_reference')
    fullName = serializers.CharField(source='full_name')
    eventType = serializers.CharField(source='event_type')
    eventName = serializers.CharField(source='event_name')
    paymentStatus = serializers.CharField(source='payment_status')
    valid = serializers.BooleanField(source='is_paid')

    class Meta:
        model = Registration
        fields = ['clientReference', 'fullName', 'organization', 'eventType', 'eventName', 'paymentStatus', 'valid']

