"""
Enums for Pharmstock models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementType(models.TextChoices):
    """
    Why a quantity changed.

    Inbound:  PURCHASE (new batch), RETURN (units back into their batch)
    Outbound: SALE, POS_SALE, ORDER_RESERVATION, MANUAL_ADJUSTMENT, EXPIRED
    """
    PURCHASE = 'purchase', _('Compra')
    SALE = 'sale', _('Venda')
    POS_SALE = 'pos_sale', _('Venda no balcão')
    ORDER_RESERVATION = 'order_reservation', _('Reserva de pedido')
    MANUAL_ADJUSTMENT = 'manual_adjustment', _('Ajuste manual')
    RETURN = 'return', _('Devolução')
    EXPIRED = 'expired', _('Baixa por vencimento')


# Reasons accepted by the FIFO allocator
DEPLETION_TYPES = frozenset({
    MovementType.SALE,
    MovementType.POS_SALE,
    MovementType.ORDER_RESERVATION,
    MovementType.MANUAL_ADJUSTMENT,
})


class StockStatus(models.TextChoices):
    """Product stock classification derived from available stock."""
    IN_STOCK = 'in_stock', _('Em estoque')
    LOW_STOCK = 'low_stock', _('Estoque baixo')
    OUT_OF_STOCK = 'out_of_stock', _('Sem estoque')
