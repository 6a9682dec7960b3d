"""
Pharmstock Models.

Core models for the batch ledger:
- Product: stock pool with cached total
- Batch: received lot with expiry, cost and remaining quantity
- StockMovement: immutable log of quantity changes
"""

from pharmstock.models.batch import Batch
from pharmstock.models.enums import DEPLETION_TYPES, MovementType, StockStatus
from pharmstock.models.movement import StockMovement
from pharmstock.models.product import Product

__all__ = [
    'MovementType',
    'StockStatus',
    'DEPLETION_TYPES',
    'Product',
    'Batch',
    'StockMovement',
]
