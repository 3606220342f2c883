# Generated manually for Registration and PaymentActivity

import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


STATUS_CHOICES = [
    ('pending', 'Pending Payment'),
    ('completed', 'Paid'),
    ('failed', 'Payment Failed'),
    ('cancelled', 'Cancelled'),
    ('refunded', 'Refunded'),
    ('unknown', 'Status Unknown'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Registration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('client_reference', models.CharField(max_length=100, unique=True)),
                ('event_type', models.CharField(db_index=True, max_length=50)),
                ('full_name', models.CharField(max_length=200)),
                ('email', models.EmailField(max_length=254)),
                ('phone', models.CharField(max_length=30)),
                ('organization', models.CharField(max_length=200)),
                ('agi_member', models.BooleanField(default=False, help_text='Member of the Association of Ghana Industries')),
                ('event_name', models.CharField(max_length=255)),
                ('event_price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(default='GHS', max_length=3)),
                ('payment_status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='pending', max_length=10)),
                ('payment_data', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, help_text='Settlement details supplied by Hubtel')),
                ('checkout_id', models.CharField(blank=True, max_length=100, null=True)),
                ('checkout_url', models.URLField(blank=True, max_length=500, null=True)),
                ('last_provider_check', models.DateTimeField(blank=True, null=True)),
                ('reminder_count', models.PositiveIntegerField(default=0)),
                ('last_reminder_sent', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Registration',
                'verbose_name_plural': 'Registrations',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PaymentActivity',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('reference', models.CharField(db_index=True, max_length=100)),
                ('kind', models.CharField(choices=[
                    ('initiated', 'Checkout initiated'),
                    ('callback', 'Callback received'),
                    ('poll', 'Status polled'),
                    ('status_changed', 'Status changed'),
                    ('offline', 'Offline completion'),
                    ('reminder', 'Reminder sent'),
                    ('notification_failed', 'Notification failed'),
                ], db_index=True, max_length=20)),
                ('provider_status', models.CharField(blank=True, max_length=50, null=True)),
                ('status', models.CharField(blank=True, choices=STATUS_CHOICES, max_length=10, null=True)),
                ('source', models.CharField(blank=True, choices=[
                    ('local', 'Local'),
                    ('provider', 'Provider'),
                    ('callback', 'Callback'),
                    ('manual', 'Manual'),
                ], max_length=10, null=True)),
                ('gateway', models.CharField(default='hubtel', max_length=20)),
                ('message', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('registration', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payment_activities', to='registrations.registration')),
            ],
            options={
                'verbose_name': 'Payment Activity',
                'verbose_name_plural': 'Payment Activities',
                'ordering': ['-created_at'],
            },
        ),
    ]
