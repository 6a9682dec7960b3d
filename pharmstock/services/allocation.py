"""
FIFO allocation: taking units out of the ledger.

Planning is a pure walk over batches already in FIFO order. reduce_stock()
runs the same planner on a snapshot read under the product lock, so the
batches a caller is charged for are exactly the batches decremented.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db.models import F

from pharmstock.adapters.clock import get_clock
from pharmstock.exceptions import StockError
from pharmstock.models.batch import Batch
from pharmstock.models.enums import DEPLETION_TYPES, MovementType
from pharmstock.models.product import Product
from pharmstock.services import locking
from pharmstock.services.movements import append_movement
from pharmstock.services.queries import StockQueries
from pharmstock.values import CENT, as_quantity

logger = logging.getLogger('pharmstock')


@dataclass(frozen=True)
class ConsumedBatch:
    """Units taken from (or returned to) one batch."""

    batch_id: int
    batch_number: str
    quantity: int
    unit_cost: Decimal
    sale_price: Decimal
    expiration_date: date

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.unit_cost

    @property
    def revenue(self) -> Decimal:
        return self.quantity * self.sale_price

    @classmethod
    def take(cls, batch: Batch, quantity: int) -> 'ConsumedBatch':
        return cls(
            batch_id=batch.pk,
            batch_number=batch.batch_number,
            quantity=quantity,
            unit_cost=batch.unit_cost,
            sale_price=batch.sale_price,
            expiration_date=batch.expiration_date,
        )


@dataclass(frozen=True)
class Allocation:
    """Result of planning a depletion: which batches, how much, at what cost."""

    requested: int
    lines: tuple[ConsumedBatch, ...]

    @property
    def total_cost(self) -> Decimal:
        return sum((line.cost for line in self.lines), Decimal('0')).quantize(CENT)

    @property
    def total_revenue(self) -> Decimal:
        return sum((line.revenue for line in self.lines), Decimal('0')).quantize(CENT)

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)


def plan(batches, quantity: int) -> Allocation:
    """
    Walk batches in the order given, taking min(remaining, still needed).

    Raises:
        StockError('INSUFFICIENT_STOCK'): The batches hold less than quantity
    """
    batches = list(batches)
    available = sum(batch.quantity_remaining for batch in batches)
    if available < quantity:
        raise StockError(
            'INSUFFICIENT_STOCK',
            available=available,
            requested=quantity,
            shortage=quantity - available,
        )

    lines = []
    needed = quantity
    for batch in batches:
        if needed == 0:
            break
        take = min(batch.quantity_remaining, needed)
        if take:
            lines.append(ConsumedBatch.take(batch, take))
            needed -= take
    return Allocation(requested=quantity, lines=tuple(lines))


class StockAllocation:
    """FIFO allocator methods."""

    @classmethod
    def can_fulfill_quantity(cls, quantity, product) -> bool:
        """Σ remaining over available batches >= quantity. Pure read."""
        quantity = as_quantity(quantity, minimum=0)
        return StockQueries.available_stock(product) >= quantity

    @classmethod
    def plan_allocation(cls, quantity, product) -> Allocation:
        """
        Preview which batches a depletion would consume, without consuming.

        Raises:
            StockError('INSUFFICIENT_STOCK'): Not enough available units
        """
        quantity = as_quantity(quantity)
        product = StockQueries.get_product(product)
        batches = Batch.objects.for_product(product).available(get_clock().today())
        return plan(batches, quantity)

    @classmethod
    def reduce_stock(cls, quantity, product, reason,
                     reference=None, note='', user=None) -> list[ConsumedBatch]:
        """
        Take units out earliest-expiry-first.

        All or nothing: either every planned batch is decremented, the
        cached total drops by quantity and one movement per batch is
        written, or nothing changes.

        Args:
            quantity: Units to take
            product: Product instance or pk
            reason: Outbound MovementType (sale, pos_sale, order_reservation,
                manual_adjustment)
            reference: Originating object (order, sale...)

        Returns:
            One ConsumedBatch per affected batch, in FIFO order

        Raises:
            StockError('INVALID_QUANTITY'): quantity is not a positive integer
            StockError('INVALID_REASON'): reason is not an outbound type
            StockError('INSUFFICIENT_STOCK'): Not enough available units
            StockError('CONCURRENT_MODIFICATION'): Retries exhausted
        """
        quantity = as_quantity(quantity)
        if reason not in DEPLETION_TYPES:
            raise StockError('INVALID_REASON', reason=reason)

        def attempt():
            locked = locking.lock_product(product)
            snapshot = list(
                Batch.objects.for_product(locked).available(get_clock().today())
            )
            allocation = plan(snapshot, quantity)

            locking.commit_product(locked, -quantity)
            batches = {batch.pk: batch for batch in snapshot}
            for line in allocation:
                updated = Batch.objects.filter(
                    pk=line.batch_id,
                    quantity_remaining__gte=line.quantity,
                ).update(quantity_remaining=F('quantity_remaining') - line.quantity)
                if not updated:
                    raise StockError(
                        'CONCURRENT_MODIFICATION',
                        product_id=locked.pk,
                        batch_id=line.batch_id,
                    )
                append_movement(
                    locked,
                    reason,
                    -line.quantity,
                    note=note,
                    batch=batches[line.batch_id],
                    user=user,
                    reference=reference,
                )
            return locked, allocation

        locked, allocation = locking.run_serialized(attempt)
        locking.sync_product(product, locked)

        logger.info(
            "pharmstock.reduce_stock",
            extra={
                "product_id": locked.pk,
                "qty": str(quantity),
                "reason": str(reason),
                "batches": [line.batch_id for line in allocation],
                "cost": str(allocation.total_cost),
            },
        )
        return list(allocation.lines)

    @classmethod
    def restore_stock(cls, product, consumed, reference=None,
                      note='', user=None) -> list[ConsumedBatch]:
        """
        Put previously consumed units back into their source batches.

        Used when an order is cancelled after its units were reserved.
        Units go back even if the batch has since expired; dead stock is
        then written off explicitly.

        Args:
            consumed: Iterable of ConsumedBatch (as returned by reduce_stock)
                or (batch_id, quantity) pairs

        Raises:
            StockError('BATCH_NOT_FOUND'): Batch does not belong to product
            StockError('RESTORE_EXCEEDS_RECEIVED'): Would overfill a batch
        """
        returns = {}
        for line in consumed:
            if isinstance(line, ConsumedBatch):
                batch_id, qty = line.batch_id, line.quantity
            else:
                batch_id, qty = line
            returns[batch_id] = returns.get(batch_id, 0) + as_quantity(qty)
        if not returns:
            raise StockError('INVALID_QUANTITY', requested=0)
        total = sum(returns.values())

        def attempt():
            locked = locking.lock_product(product)
            batches = Batch.objects.for_product(locked).in_bulk(list(returns))
            missing = [pk for pk in returns if pk not in batches]
            if missing:
                raise StockError('BATCH_NOT_FOUND', batch_id=missing[0], product_id=locked.pk)

            for batch_id, qty in returns.items():
                batch = batches[batch_id]
                if batch.quantity_remaining + qty > batch.quantity_received:
                    raise StockError(
                        'RESTORE_EXCEEDS_RECEIVED',
                        batch_id=batch_id,
                        requested=qty,
                        available=batch.quantity_received - batch.quantity_remaining,
                    )

            locking.commit_product(locked, total)
            lines = []
            for batch_id, qty in returns.items():
                batch = batches[batch_id]
                Batch.objects.filter(pk=batch_id).update(
                    quantity_remaining=F('quantity_remaining') + qty
                )
                append_movement(
                    locked,
                    MovementType.RETURN,
                    qty,
                    note=note,
                    batch=batch,
                    user=user,
                    reference=reference,
                )
                lines.append(ConsumedBatch.take(batch, qty))
            return locked, lines

        locked, lines = locking.run_serialized(attempt)
        locking.sync_product(product, locked)

        logger.info(
            "pharmstock.restore_stock",
            extra={
                "product_id": locked.pk,
                "qty": str(total),
                "batches": [line.batch_id for line in lines],
            },
        )
        return lines

    @classmethod
    def write_off_expired(cls, product, user=None, note='') -> list[ConsumedBatch]:
        """
        Deplete every expired batch that still holds units.

        One expired movement per batch. Returns what was written off
        (empty when there is no dead stock).
        """

        def attempt():
            locked = locking.lock_product(product)
            dead = list(Batch.objects.for_product(locked).dead_stock(get_clock().today()))
            if not dead:
                return locked, []

            total = sum(batch.quantity_remaining for batch in dead)
            locking.commit_product(locked, -total)
            lines = []
            for batch in dead:
                qty = batch.quantity_remaining
                updated = Batch.objects.filter(
                    pk=batch.pk, quantity_remaining=qty,
                ).update(quantity_remaining=0)
                if not updated:
                    raise StockError(
                        'CONCURRENT_MODIFICATION',
                        product_id=locked.pk,
                        batch_id=batch.pk,
                    )
                append_movement(
                    locked,
                    MovementType.EXPIRED,
                    -qty,
                    note=note or f"Lote vencido em {batch.expiration_date:%d/%m/%Y}",
                    batch=batch,
                    user=user,
                )
                lines.append(ConsumedBatch.take(batch, qty))
            return locked, lines

        locked, lines = locking.run_serialized(attempt)
        locking.sync_product(product, locked)

        if lines:
            logger.info(
                "pharmstock.write_off_expired",
                extra={
                    "product_id": locked.pk,
                    "qty": str(sum(line.quantity for line in lines)),
                    "batches": [line.batch_id for line in lines],
                },
            )
        return lines

    @classmethod
    def write_off_all_expired(cls, user=None) -> dict[int, list[ConsumedBatch]]:
        """
        Write off dead stock across every product that has some.

        Each product is written off in its own transaction.
        """
        today = get_clock().today()
        product_ids = (
            Batch.objects.dead_stock(today)
            .order_by()
            .values_list('product_id', flat=True)
            .distinct()
        )
        results = {}
        for product in Product.objects.filter(pk__in=list(product_ids)):
            lines = cls.write_off_expired(product, user=user)
            if lines:
                results[product.pk] = lines
        return results
