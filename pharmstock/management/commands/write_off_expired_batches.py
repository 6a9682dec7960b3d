"""
Management command to write off expired batches.

Usage:
    python manage.py write_off_expired_batches
    python manage.py write_off_expired_batches --dry-run
"""

from django.core.management.base import BaseCommand
from django.db.models import Count, Sum

from pharmstock import ledger
from pharmstock.adapters.clock import get_clock
from pharmstock.models import Batch


class Command(BaseCommand):
    """Write off dead stock command."""

    help = 'Baixa lotes vencidos que ainda têm saldo'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra o que seria baixado sem executar'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            dead = Batch.objects.dead_stock(get_clock().today()).aggregate(
                batches=Count('id'), units=Sum('quantity_remaining')
            )
            self.stdout.write(
                f"{dead['batches']} lote(s) seria(m) baixado(s) "
                f"({dead['units'] or 0} unidade(s))"
            )
        else:
            results = ledger.write_off_all_expired()
            batches = sum(len(lines) for lines in results.values())
            units = sum(line.quantity for lines in results.values() for line in lines)
            self.stdout.write(
                self.style.SUCCESS(f'{batches} lote(s) baixado(s) ({units} unidade(s))')
            )
