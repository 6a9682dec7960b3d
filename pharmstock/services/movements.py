"""
Stock movements: the append-only audit log.

append_movement() writes exactly one immutable entry and touches nothing
else. Ledger writes call it inside their own transaction, right after
changing the batches and the cached total, while holding the product lock.

record_movement() is the public way to log a quantity change. It is a full
ledger write: the delta is applied to one batch and to the cached total in
the same transaction as the entry, so the log never drifts from the batches.
"""

import logging
from datetime import timedelta

from django.db.models import F

from pharmstock.adapters.clock import get_clock
from pharmstock.exceptions import StockError
from pharmstock.models.batch import Batch
from pharmstock.models.enums import DEPLETION_TYPES, MovementType
from pharmstock.models.movement import StockMovement
from pharmstock.services import locking

logger = logging.getLogger('pharmstock')


# Types record_movement() accepts, by sign of the delta.
# Purchases only enter through add_batch(), which creates the batch.
INBOUND_TYPES = frozenset({MovementType.RETURN, MovementType.MANUAL_ADJUSTMENT})
OUTBOUND_TYPES = DEPLETION_TYPES | {MovementType.EXPIRED}


def _reference_parts(reference, reference_type, reference_id):
    """Resolve a model instance into (reference_type, reference_id) strings."""
    if reference is not None:
        meta = getattr(reference, '_meta', None)
        if meta is not None:
            return meta.label_lower, str(reference.pk)
        return type(reference).__name__.lower(), str(reference)
    if reference_id is None:
        reference_id = ''
    return reference_type or '', str(reference_id)


def _check_entry(movement_type, delta):
    if movement_type not in MovementType.values:
        raise StockError('INVALID_MOVEMENT', movement_type=movement_type)
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise StockError('INVALID_MOVEMENT', delta=delta)


def append_movement(product, movement_type, delta,
                    reference_type='', reference_id='', note='',
                    batch=None, user=None, reference=None,
                    unit_cost=None, **metadata) -> StockMovement:
    """
    Append one movement to the log.

    Must run inside the ledger write that applied the delta, with the
    product locked (see locking.run_serialized).

    Args:
        product: Locked Product instance
        movement_type: MovementType value
        delta: Signed integer quantity change (never zero)
        reference_type, reference_id: Originating transaction
        note: Free-text note
        batch: Affected batch (optional)
        user: Actor performing the change
        reference: Model instance; overrides reference_type/reference_id
        unit_cost: Cost snapshot (defaults to batch.unit_cost)

    Raises:
        StockError('INVALID_MOVEMENT'): Unknown type, zero/non-integer
            delta, or batch from another product
    """
    _check_entry(movement_type, delta)
    if batch is not None and batch.product_id != product.pk:
        raise StockError(
            'INVALID_MOVEMENT',
            batch_id=batch.pk,
            product_id=product.pk,
        )

    ref_type, ref_id = _reference_parts(reference, reference_type, reference_id)
    if unit_cost is None and batch is not None:
        unit_cost = batch.unit_cost

    movement = StockMovement.objects.create(
        product=product,
        batch=batch,
        movement_type=movement_type,
        delta=delta,
        unit_cost=unit_cost,
        reference_type=ref_type,
        reference_id=ref_id,
        note=note or '',
        user=user,
        timestamp=get_clock().now(),
        metadata=metadata,
    )
    logger.debug(
        "pharmstock.movement",
        extra={
            "product_id": product.pk,
            "batch_id": batch.pk if batch is not None else None,
            "movement_type": movement_type,
            "delta": delta,
        },
    )
    return movement


def _pick_batch(product, delta):
    """
    Batch a movement without an explicit batch applies to.

    Outbound: the first batch in FIFO order that covers the whole delta.
    Inbound: the most recently received batch with room for it.
    """
    today = get_clock().today()
    if delta < 0:
        batches = list(Batch.objects.for_product(product).available(today))
        for batch in batches:
            if batch.quantity_remaining >= -delta:
                return batch
        raise StockError(
            'INSUFFICIENT_STOCK',
            available=max((b.quantity_remaining for b in batches), default=0),
            requested=-delta,
        )

    batch = (
        Batch.objects.for_product(product)
        .filter(quantity_remaining__lte=F('quantity_received') - delta)
        .order_by('-received_date', '-id')
        .first()
    )
    if batch is None:
        raise StockError('RESTORE_EXCEEDS_RECEIVED', product_id=product.pk, requested=delta)
    return batch


def _resolve_batch(product, batch, delta):
    """Fetch the named batch under the product lock and check it can take delta."""
    batch_id = getattr(batch, 'pk', batch)
    try:
        found = Batch.objects.get(pk=batch_id)
    except (Batch.DoesNotExist, ValueError, TypeError):
        raise StockError('BATCH_NOT_FOUND', batch_id=batch_id, product_id=product.pk)
    if found.product_id != product.pk:
        raise StockError('INVALID_MOVEMENT', batch_id=found.pk, product_id=product.pk)

    if delta < 0 and found.quantity_remaining < -delta:
        raise StockError(
            'INSUFFICIENT_STOCK',
            batch_id=found.pk,
            available=found.quantity_remaining,
            requested=-delta,
        )
    if delta > 0 and found.quantity_remaining + delta > found.quantity_received:
        raise StockError(
            'RESTORE_EXCEEDS_RECEIVED',
            batch_id=found.pk,
            requested=delta,
            available=found.quantity_received - found.quantity_remaining,
        )
    return found


class StockMovements:
    """Movement log methods."""

    @classmethod
    def record_movement(cls, product, movement_type, delta,
                        reference_type='', reference_id='', note='',
                        batch=None, user=None, reference=None,
                        unit_cost=None, **metadata) -> StockMovement:
        """
        Log a quantity change and apply it to the ledger.

        The delta moves one batch and the cached total together with the
        new entry. Without a batch, an outbound delta comes out of the
        first FIFO batch that covers it and an inbound delta goes back
        into the most recently received batch with room for it.

        Args:
            product: Product instance or pk
            movement_type: Outbound type (sale, pos_sale, order_reservation,
                manual_adjustment, expired) for a negative delta; return or
                manual_adjustment for a positive one
            delta: Signed integer quantity change (never zero)
            batch: Batch instance or pk (optional)

        Raises:
            StockError('INVALID_MOVEMENT'): Bad type, delta or sign, or a
                batch from another product
            StockError('PRODUCT_NOT_FOUND'): Unknown product
            StockError('BATCH_NOT_FOUND'): Unknown batch
            StockError('INSUFFICIENT_STOCK'): Batch holds less than -delta
            StockError('RESTORE_EXCEEDS_RECEIVED'): Batch has no room for delta
        """
        _check_entry(movement_type, delta)
        allowed = OUTBOUND_TYPES if delta < 0 else INBOUND_TYPES
        if movement_type not in allowed:
            raise StockError('INVALID_MOVEMENT', movement_type=movement_type, delta=delta)

        def attempt():
            locked = locking.lock_product(product)
            if batch is None:
                target = _pick_batch(locked, delta)
            else:
                target = _resolve_batch(locked, batch, delta)

            locking.commit_product(locked, delta)
            Batch.objects.filter(pk=target.pk).update(
                quantity_remaining=F('quantity_remaining') + delta
            )
            target.quantity_remaining += delta
            movement = append_movement(
                locked,
                movement_type,
                delta,
                reference_type=reference_type,
                reference_id=reference_id,
                note=note,
                batch=target,
                user=user,
                reference=reference,
                unit_cost=unit_cost,
                **metadata,
            )
            return locked, movement

        locked, movement = locking.run_serialized(attempt)
        locking.sync_product(product, locked)

        logger.info(
            "pharmstock.record_movement",
            extra={
                "product_id": locked.pk,
                "batch_id": movement.batch_id,
                "movement_type": str(movement_type),
                "delta": delta,
            },
        )
        return movement

    @classmethod
    def movements(cls, product, movement_type=None, direction=None, days=None):
        """
        Movement history for a product, oldest first.

        Args:
            movement_type: Only this MovementType
            direction: 'in' (positive deltas) or 'out' (negative deltas)
            days: Only the last N days (by clock)
        """
        qs = StockMovement.objects.for_product(product).select_related('batch')
        if movement_type is not None:
            qs = qs.of_type(movement_type)
        if direction == 'in':
            qs = qs.stock_in()
        elif direction == 'out':
            qs = qs.stock_out()
        elif direction is not None:
            raise StockError('INVALID_FIELD', direction=direction)
        if days is not None:
            qs = qs.since(get_clock().now() - timedelta(days=days))
        return qs
