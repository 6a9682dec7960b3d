"""
StockMovement model: append-only log of quantity changes.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from pharmstock.models.enums import MovementType


class StockMovementQuerySet(models.QuerySet):
    """Audit filters."""

    def for_product(self, product):
        return self.filter(product_id=getattr(product, 'pk', product))

    def of_type(self, movement_type):
        return self.filter(movement_type=movement_type)

    def stock_in(self):
        return self.filter(delta__gt=0)

    def stock_out(self):
        return self.filter(delta__lt=0)

    def since(self, moment):
        return self.filter(timestamp__gte=moment)


class StockMovement(models.Model):
    """
    Immutable record of a quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new movements with inverse delta
    - For any product, Σ delta == Product.stock_quantity

    The ledger appends movements inside the same transaction that changes
    the batches, so a failed append rolls the batch change back.
    """

    product = models.ForeignKey(
        'pharmstock.Product',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Produto'),
    )
    batch = models.ForeignKey(
        'pharmstock.Batch',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Lote'),
    )

    movement_type = models.CharField(
        max_length=30,
        choices=MovementType.choices,
        db_index=True,
        verbose_name=_('Tipo'),
    )
    delta = models.IntegerField(
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )

    # Cost snapshot of the batch at movement time (COGS audit)
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Custo Unitário'),
    )

    # External reference (pos transaction, order, ...)
    reference_type = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Tipo de Referência'),
    )
    reference_id = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('ID da Referência'),
    )

    note = models.TextField(blank=True, default='', verbose_name=_('Observação'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['timestamp', 'id']
        indexes = [
            models.Index(fields=['product', 'timestamp'], name='pharmstock_move_product_idx'),
            models.Index(fields=['batch', 'timestamp'], name='pharmstock_move_batch_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='pharmstock_move_ref_idx'),
        ]

    def save(self, *args, **kwargs):
        """Insert-only save."""
        if self.pk:
            raise ValueError(
                "Movimentos são imutáveis. "
                "Para corrigir, crie um novo movimento com delta inverso."
            )
        if not self.delta:
            raise ValueError("Variação não pode ser zero")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion: movements are immutable."""
        raise ValueError(
            "Movimentos são imutáveis. "
            "Para estornar, crie um novo movimento com delta inverso."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} | {self.movement_type}"
