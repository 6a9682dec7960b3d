"""
Management command to check cached stock totals against batches and movements.

Usage:
    python manage.py reconcile_stock
    python manage.py reconcile_stock --product AMOX500
    python manage.py reconcile_stock --fix
"""

from django.core.management.base import BaseCommand, CommandError

from pharmstock import ledger
from pharmstock.models import Product


class Command(BaseCommand):
    """Stock reconciliation command."""

    help = 'Confere o estoque em cache contra lotes e movimentos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Corrige o estoque em cache para a soma dos lotes'
        )
        parser.add_argument(
            '--product',
            metavar='CODE',
            help='Confere apenas o produto com este código'
        )

    def handle(self, *args, **options):
        fix = options['fix']
        code = options['product']

        if code:
            try:
                product = Product.objects.get(code=code)
            except Product.DoesNotExist:
                raise CommandError(f'Produto não encontrado: {code}')
            result = ledger.reconcile(product, fix=fix)
            drifted = [] if result.is_consistent else [result]
        else:
            drifted = ledger.reconcile_all(fix=fix)

        for result in drifted:
            status = 'corrigido' if result.fixed else 'divergente'
            self.stdout.write(
                self.style.WARNING(
                    f'produto={result.product_id} cache={result.cached} '
                    f'lotes={result.batches} movimentos={result.movements} [{status}]'
                )
            )

        if drifted:
            self.stdout.write(f'{len(drifted)} produto(s) com divergência')
        else:
            self.stdout.write(self.style.SUCCESS('Estoque consistente'))
