"""
Django Pharmstock: estoque de farmácia por lotes (FIFO por validade).

Uso:
    from pharmstock import ledger, StockError

    ledger.add_batch(100, amoxicilina, date(2026, 6, 30),
                     unit_cost=Decimal('1.20'), sale_price=Decimal('2.50'))
    ledger.reduce_stock(7, amoxicilina, 'pos_sale')
    ledger.is_low_stock(amoxicilina)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from pharmstock.service import Ledger
        return Ledger
    elif name == 'StockError':
        from pharmstock.exceptions import StockError
        return StockError
    elif name == 'Product':
        from pharmstock.models.product import Product
        return Product
    elif name == 'Batch':
        from pharmstock.models.batch import Batch
        return Batch
    elif name == 'StockMovement':
        from pharmstock.models.movement import StockMovement
        return StockMovement
    elif name == 'MovementType':
        from pharmstock.models.enums import MovementType
        return MovementType
    elif name == 'StockStatus':
        from pharmstock.models.enums import StockStatus
        return StockStatus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'StockError',
    'Product',
    'Batch',
    'StockMovement',
    'MovementType',
    'StockStatus',
]

__version__ = '0.1.0'
