"""
Reconciliation: compare the cached total with the batches and the log.

After every committed write:

    Product.stock_quantity == Σ batch.quantity_remaining == Σ movement.delta

reconcile() checks that equality. Drift means something bypassed the
ledger (raw SQL, a data migration, a manual admin edit).
"""

import logging
from dataclasses import dataclass

from django.db.models import Sum

from pharmstock.models.batch import Batch
from pharmstock.models.movement import StockMovement
from pharmstock.models.product import Product
from pharmstock.services import locking
from pharmstock.services.queries import StockQueries

logger = logging.getLogger('pharmstock')


@dataclass(frozen=True)
class Reconciliation:
    """Three views of one product's stock."""

    product_id: int
    cached: int
    batches: int
    movements: int
    fixed: bool = False

    @property
    def is_consistent(self) -> bool:
        return self.cached == self.batches == self.movements

    @property
    def drift(self) -> int:
        """Cached total minus Σ remaining (0 when consistent)."""
        return self.cached - self.batches


def _totals(product_id):
    batches = Batch.objects.filter(product_id=product_id).aggregate(
        t=Sum('quantity_remaining')
    )['t'] or 0
    movements = StockMovement.objects.filter(product_id=product_id).aggregate(
        t=Sum('delta')
    )['t'] or 0
    return batches, movements


class StockReconciliation:
    """Drift detection methods."""

    @classmethod
    def reconcile(cls, product, fix: bool = False) -> Reconciliation:
        """
        Compare cached total, Σ remaining and Σ movement deltas.

        Args:
            fix: Reset the cached total to Σ remaining. Movements and
                batches are never edited.
        """
        product = StockQueries.get_product(product)

        if not fix:
            product.refresh_from_db(fields=['stock_quantity', 'version'])
            batches, movements = _totals(product.pk)
            result = Reconciliation(product.pk, product.stock_quantity, batches, movements)
        else:
            def attempt():
                locked = locking.lock_product(product)
                batches, movements = _totals(locked.pk)
                found = Reconciliation(locked.pk, locked.stock_quantity, batches, movements)
                if found.cached != batches:
                    locking.commit_product(locked, batches - locked.stock_quantity)
                    found = Reconciliation(
                        locked.pk, found.cached, batches, movements, fixed=True,
                    )
                return locked, found

            locked, result = locking.run_serialized(attempt)
            locking.sync_product(product, locked)

        if not result.is_consistent:
            logger.warning(
                "pharmstock.reconcile.drift",
                extra={
                    "product_id": result.product_id,
                    "cached": result.cached,
                    "batches": result.batches,
                    "movements": result.movements,
                    "fixed": result.fixed,
                },
            )
        return result

    @classmethod
    def reconcile_all(cls, fix: bool = False) -> list[Reconciliation]:
        """Reconcile every product. Returns only the inconsistent ones."""
        return [
            result
            for result in (cls.reconcile(p, fix=fix) for p in Product.objects.order_by('pk'))
            if not result.is_consistent
        ]
