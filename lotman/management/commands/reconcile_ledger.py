"""
Management command to audit the cached batch quantities against the ledger.

Usage:
    python manage.py reconcile_ledger
    python manage.py reconcile_ledger --dry-run
    python manage.py reconcile_ledger --sku TSHIRT-M
"""

from django.core.management.base import BaseCommand

from lotman.models import Batch


class Command(BaseCommand):
    """Rebuild Batch.quantity_remaining from the movement log."""

    help = 'Recompute cached batch quantities from the movement log'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without fixing it'
        )
        parser.add_argument(
            '--sku',
            help='Only reconcile batches of this SKU'
        )

    def handle(self, *args, **options):
        batches = Batch.objects.select_related('product').with_availability().fifo()
        if options['sku']:
            batches = batches.filter(product__sku=options['sku'])

        drifted = [b for b in batches if b.quantity_remaining != b.available]

        for batch in drifted:
            self.stdout.write(
                f'{batch}: cached {batch.quantity_remaining}, ledger {batch.available}'
            )

        if options['dry_run']:
            self.stdout.write(f'{len(drifted)} batch(es) would be corrected')
            return

        for batch in drifted:
            batch.recalculate()

        self.stdout.write(
            self.style.SUCCESS(f'{len(drifted)} batch(es) corrected')
        )
