"""
Ledger: the single public interface for all stock operations.

Usage:
    from pharmstock import ledger, StockError

    batch = ledger.add_batch(100, amoxicillin, date(2026, 6, 30),
                             unit_cost=Decimal('1.20'), sale_price=Decimal('2.50'))
    ledger.can_fulfill_quantity(7, amoxicillin)   # True
    consumed = ledger.reduce_stock(7, amoxicillin, 'pos_sale', reference=sale)
    ledger.get_current_price(amoxicillin)         # Decimal('2.50')
"""

from pharmstock.services.allocation import StockAllocation
from pharmstock.services.batches import StockBatches
from pharmstock.services.movements import StockMovements
from pharmstock.services.queries import StockQueries
from pharmstock.services.reconciliation import StockReconciliation


class Ledger(
    StockQueries,
    StockBatches,
    StockAllocation,
    StockMovements,
    StockReconciliation,
):
    """
    Single interface for all ledger operations.

    Parameter convention: (quantity, product, ...)
    Follows natural language: "Reduce 7 units of amoxicillin for a sale"

    `product` is a Product instance or its pk everywhere.

    IMPORTANT: Every write locks the product row and commits through a
    version compare-and-swap inside transaction.atomic(); a conflicting
    writer is retried a bounded number of times. Reads never lock.

    Methods by group:
        Queries:  get_product, available_stock, is_low_stock, is_out_of_stock,
                  stock_status, expiring_soon, inventory_value,
                  low_stock_products, expiring_products
        Batches:  get_batch, get_available_batches, get_expired_batches,
                  get_current_price, batch_summary, next_batch_number,
                  add_batch, update_batch
        FIFO:     can_fulfill_quantity, plan_allocation, reduce_stock,
                  restore_stock, write_off_expired, write_off_all_expired
        Log:      record_movement, movements
        Audit:    reconcile, reconcile_all
    """
