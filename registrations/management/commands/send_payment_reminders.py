"""
Management command to email payment reminders for unpaid registrations.

Run: python manage.py send_payment_reminders
Use --dry-run to only print who would be reminded.
"""
from django.core.management.base import BaseCommand

from registrations.reminders import max_reminders, registrations_due_for_reminder, send_reminder


class Command(BaseCommand):
    help = 'Send payment reminders to registrations still pending payment'

    def add_arguments(self, parser):
        parser.add_argument(
            '--older-than-hours',
            type=int,
            default=24,
            help='Only remind registrations (and previous reminders) older than this (default 24).',
        )
        parser.add_argument(
            '--max-reminders',
            type=int,
            default=None,
            help='Stop after this many reminders per registration (default REMINDER_MAX_COUNT).',
        )
        parser.add_argument(
            '--event',
            default=None,
            help='Only remind registrations for this event type.',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only show who would be reminded, do not send.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        max_count = options['max_reminders'] if options['max_reminders'] is not None else max_reminders()
        if dry_run:
            self.stdout.write(self.style.WARNING('Dry run: no emails will be sent.'))

        regs = registrations_due_for_reminder(
            min_age_hours=options['older_than_hours'],
            max_count=max_count,
            event_type=options['event'],
        )

        sent = failed = 0
        for reg in regs:
            if dry_run:
                self.stdout.write(f'  {reg.client_reference}: {reg.email} (reminders so far: {reg.reminder_count})')
                continue
            result = send_reminder(reg)
            if result['success']:
                sent += 1
                self.stdout.write(f'  Reminded {reg.email} ({reg.client_reference})')
            else:
                failed += 1
                self.stdout.write(self.style.ERROR(f'  Failed {reg.email}: {result["error"]}'))

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(f'Done. Sent: {sent}, failed: {failed}'))
