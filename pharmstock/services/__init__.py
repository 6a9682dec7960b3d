"""
Ledger services: modular organization of stock operations.

    from pharmstock.services import StockQueries, StockBatches, StockAllocation
"""

from pharmstock.services.allocation import Allocation, ConsumedBatch, StockAllocation
from pharmstock.services.batches import StockBatches
from pharmstock.services.movements import StockMovements
from pharmstock.services.queries import StockQueries
from pharmstock.services.reconciliation import Reconciliation, StockReconciliation

__all__ = [
    'StockQueries',
    'StockBatches',
    'StockAllocation',
    'StockMovements',
    'StockReconciliation',
    'Allocation',
    'ConsumedBatch',
    'Reconciliation',
]
