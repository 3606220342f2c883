"""
Management command to check non-terminal registrations against Hubtel.

Picks up payments whose callback never arrived.

Run: python manage.py reconcile_pending
Use --dry-run to only list the registrations that would be checked.
"""
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from registrations.models import Registration
from registrations.reconciler import get_reconciler


class Command(BaseCommand):
    help = 'Poll Hubtel for pending/unknown registrations and apply any status change'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only show which registrations would be checked.',
        )
        parser.add_argument(
            '--limit',
            type=int,
            default=100,
            help='Maximum number of registrations to check (default 100).',
        )
        parser.add_argument(
            '--min-age-minutes',
            type=int,
            default=5,
            help='Skip registrations created less than this many minutes ago (default 5).',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        reconciler = get_reconciler()
        if not reconciler.client.is_configured and not dry_run:
            raise CommandError('Hubtel credentials are not configured.')

        cutoff = timezone.now() - timedelta(minutes=options['min_age_minutes'])
        regs = Registration.objects.exclude(
            payment_status__in=Registration.TERMINAL_STATUSES
        ).filter(
            created_at__lte=cutoff
        ).order_by('created_at')[:options['limit']]

        if dry_run:
            self.stdout.write(self.style.WARNING('Dry run: Hubtel will not be contacted.'))

        checked = changed = errors = 0
        for reg in regs:
            checked += 1
            if dry_run:
                self.stdout.write(f'  {reg.client_reference} ({reg.payment_status})')
                continue

            result = reconciler.reconcile_from_poll(reg.client_reference)
            if result.provider_error:
                errors += 1
                self.stdout.write(self.style.WARNING(f'  {reg.client_reference}: {result.provider_error}'))
            elif result.changed:
                changed += 1
                self.stdout.write(f'  {reg.client_reference}: {reg.payment_status} -> {result.status}')

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(f'Done. Checked: {checked}, updated: {changed}, errors: {errors}'))
