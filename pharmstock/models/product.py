"""
Product model: one logical stock pool.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F
from django.utils.translation import gettext_lazy as _


class ProductQuerySet(models.QuerySet):
    """Filters on the cached stock total (fast path, no batch join)."""

    def in_stock(self):
        return self.filter(stock_quantity__gt=0)

    def out_of_stock(self):
        return self.filter(stock_quantity=0)

    def at_or_below_reorder(self):
        """Cached total at or below reorder level, but not empty."""
        return self.filter(stock_quantity__gt=0, stock_quantity__lte=F('reorder_level'))


class Product(models.Model):
    """
    Product whose stock is the sum of its batches.

    stock_quantity is a cache:
    - Equals Σ batch.quantity_remaining after every committed ledger write
    - Written only by the ledger services, never by forms or admin
    - version is bumped on every write (compare-and-swap guard)
    """

    code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Código'),
        help_text=_('Código do produto. Prefixo dos números de lote gerados.'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Nome'))

    reorder_level = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Ponto de reposição'),
        help_text=_('Estoque disponível até este valor é considerado baixo'),
    )

    # Packaging metadata (informational only)
    unit = models.CharField(max_length=30, blank=True, default='', verbose_name=_('Unidade'))
    unit_quantity = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        default=Decimal('1'),
        verbose_name=_('Quantidade por unidade'),
    )

    # Cache of Σ batch.quantity_remaining (updated by the ledger)
    stock_quantity = models.PositiveIntegerField(
        default=0,
        editable=False,
        verbose_name=_('Estoque'),
    )
    version = models.PositiveBigIntegerField(default=0, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        verbose_name = _('Produto')
        verbose_name_plural = _('Produtos')
        ordering = ['code']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name='pharmstock_product_stock_gte_zero',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.code} {self.name}"
