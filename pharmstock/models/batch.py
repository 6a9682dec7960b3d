"""
Batch model: one received lot of a product.

A product's stock is the sum of its batches. Each batch keeps its own
expiry, cost and sale price, and is consumed earliest-expiry-first.

Two independent axes describe a batch at a given day:
- depletion: active while quantity_remaining > 0, depleted at zero (terminal)
- freshness: fresh while expiration_date > today, expired from that day on

Only active + fresh batches can be allocated. Expired batches that still
hold units are dead stock: reported separately and written off explicitly.

Usage:
    batch = ledger.add_batch(
        100, amoxicillin,
        expiration_date=date(2026, 6, 30),
        unit_cost=Decimal('1.20'),
        sale_price=Decimal('2.50'),
    )
"""

from datetime import date, timedelta
from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

# Deterministic FIFO order: earliest expiry, then earliest receipt, then insertion
FIFO_ORDER = ('expiration_date', 'received_date', 'id')


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with ledger filters."""

    def for_product(self, product):
        """Filter batches for a specific product (instance or pk)."""
        return self.filter(product_id=getattr(product, 'pk', product))

    def with_stock(self):
        """Batches still holding units."""
        return self.filter(quantity_remaining__gt=0)

    def fresh(self, today: date):
        """Batches whose expiration date is still ahead."""
        return self.filter(expiration_date__gt=today)

    def expired(self, today: date):
        """Batches at or past their expiration date."""
        return self.filter(expiration_date__lte=today)

    def fifo(self):
        return self.order_by(*FIFO_ORDER)

    def available(self, today: date):
        """Allocatable batches in FIFO order."""
        return self.with_stock().fresh(today).fifo()

    def dead_stock(self, today: date):
        """Expired batches that still hold units."""
        return self.with_stock().expired(today).fifo()

    def expiring_within(self, today: date, days: int):
        """Fresh batches with units expiring in (today, today + days]."""
        return self.with_stock().filter(
            expiration_date__gt=today,
            expiration_date__lte=today + timedelta(days=days),
        )


class Batch(models.Model):
    """
    Received lot with its own expiry, cost and remaining quantity.

    Rules:
    - quantity_received is frozen after insert
    - quantity_remaining only changes through the ledger (F() updates)
    - NEVER delete(); depleted batches stay for audit
    """

    product = models.ForeignKey(
        'pharmstock.Product',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('Produto'),
    )

    batch_number = models.CharField(
        max_length=64,
        verbose_name=_('Número do Lote'),
        help_text=_('Único por produto. Gerado automaticamente se vazio.'),
    )

    # Dates
    expiration_date = models.DateField(
        db_index=True,
        verbose_name=_('Data de Validade'),
    )
    received_date = models.DateField(verbose_name=_('Data de Recebimento'))

    # Quantities (integer units)
    quantity_received = models.PositiveIntegerField(verbose_name=_('Quantidade Recebida'))
    quantity_remaining = models.PositiveIntegerField(verbose_name=_('Quantidade Restante'))

    # Money
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name=_('Custo Unitário'),
    )
    sale_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name=_('Preço de Venda'),
    )

    # Supplier / origin
    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Fornecedor'),
    )

    notes = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Observações'),
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Atualizado em'))

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = list(FIFO_ORDER)
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'batch_number'],
                name='pharmstock_unique_batch_number_per_product',
            ),
            models.CheckConstraint(
                condition=Q(quantity_received__gt=0),
                name='pharmstock_batch_received_gt_zero',
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__lte=F('quantity_received')),
                name='pharmstock_batch_remaining_lte_received',
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'expiration_date'], name='pharmstock_batch_expiry_idx'),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_quantity_received = instance.__dict__.get('quantity_received')
        return instance

    def save(self, *args, **kwargs):
        """Save batch, refusing to rewrite the received quantity."""
        loaded = getattr(self, '_loaded_quantity_received', None)
        if self.pk and loaded is not None and loaded != self.quantity_received:
            raise ValueError(
                "Quantidade recebida é imutável. "
                "Registre um novo lote ou um ajuste de estoque."
            )
        super().save(*args, **kwargs)
        self._loaded_quantity_received = self.quantity_received

    def delete(self, *args, **kwargs):
        """Prevent deletion: batches are kept for audit."""
        raise ValueError(
            "Lotes não podem ser excluídos. "
            "Esgote o lote com uma saída de estoque."
        )

    # ══════════════════════════════════════════════════════════════
    # STATE
    # ══════════════════════════════════════════════════════════════

    @property
    def is_depleted(self) -> bool:
        return self.quantity_remaining == 0

    def is_expired_on(self, day: date) -> bool:
        """Is this batch at or past its expiration date on `day`?"""
        return self.expiration_date <= day

    def is_available_on(self, day: date) -> bool:
        """Can the allocator take units from this batch on `day`?"""
        return not self.is_depleted and not self.is_expired_on(day)

    @property
    def remaining_cost(self) -> Decimal:
        """Value of the units still in this batch, at cost."""
        return self.quantity_remaining * self.unit_cost

    def __str__(self) -> str:
        return f"Lote {self.batch_number} (val:{self.expiration_date})"
