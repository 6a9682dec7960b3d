"""
Batch ledger: receiving and maintaining batches.

add_batch() is the only way units enter the ledger from a supplier.
update_batch() edits descriptive fields; quantities are out of its reach.
"""

import logging
from datetime import date

from django.db import IntegrityError
from django.db.models import Count, Sum

from pharmstock.adapters.clock import get_clock
from pharmstock.conf import pharmstock_settings
from pharmstock.exceptions import StockError
from pharmstock.models.batch import Batch
from pharmstock.models.enums import MovementType
from pharmstock.services import locking
from pharmstock.services.movements import append_movement
from pharmstock.services.queries import StockQueries
from pharmstock.values import as_date, as_money, as_quantity

logger = logging.getLogger('pharmstock')

# Fields update_batch() may change, with their coercion
EDITABLE_FIELDS = {
    'expiration_date': lambda value: as_date(value, 'expiration_date'),
    'unit_cost': lambda value: as_money(value, 'unit_cost'),
    'sale_price': lambda value: as_money(value, 'sale_price'),
    'notes': lambda value: '' if value is None else str(value),
}

QUANTITY_FIELDS = frozenset({'quantity_received', 'quantity_remaining'})


class StockBatches:
    """Batch ledger methods."""

    # ══════════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_batch(cls, product, batch_id) -> Batch:
        """
        Raises:
            StockError('BATCH_NOT_FOUND'): No such batch for this product
        """
        product = StockQueries.get_product(product)
        try:
            return Batch.objects.for_product(product).get(pk=batch_id)
        except (Batch.DoesNotExist, ValueError, TypeError):
            raise StockError('BATCH_NOT_FOUND', batch_id=batch_id, product_id=product.pk)

    @classmethod
    def get_available_batches(cls, product) -> list[Batch]:
        """Batches with units and a future expiry, in FIFO order."""
        product = StockQueries.get_product(product)
        return list(Batch.objects.for_product(product).available(get_clock().today()))

    @classmethod
    def get_expired_batches(cls, product) -> list[Batch]:
        """Dead stock: expired batches that still hold units."""
        product = StockQueries.get_product(product)
        return list(Batch.objects.for_product(product).dead_stock(get_clock().today()))

    @classmethod
    def get_current_price(cls, product):
        """
        Sale price of the batch the next sale would draw from.

        With nothing available, falls back to the sale price of the most
        recently received batch. None if the product never had a batch.
        """
        product = StockQueries.get_product(product)
        batches = Batch.objects.for_product(product)
        first = batches.available(get_clock().today()).first()
        if first is not None:
            return first.sale_price
        last = batches.order_by('-received_date', '-id').first()
        return last.sale_price if last is not None else None

    @classmethod
    def batch_summary(cls, product) -> dict:
        """
        Units available, units in dead stock, and number of available batches.
        """
        product = StockQueries.get_product(product)
        today = get_clock().today()
        batches = Batch.objects.for_product(product).with_stock()
        available = batches.fresh(today).aggregate(
            total=Sum('quantity_remaining'), count=Count('id')
        )
        expired = batches.expired(today).aggregate(total=Sum('quantity_remaining'))
        return {
            'total_available': available['total'] or 0,
            'total_expired': expired['total'] or 0,
            'batch_count': available['count'],
        }

    @classmethod
    def next_batch_number(cls, product, received_date: date | None = None) -> str:
        """
        Next unused batch number: {code}-{YYYYMM}-{seq}.

        seq is one past the highest numeric suffix among this product's
        batches sharing the prefix, zero-padded to BATCH_SEQUENCE_DIGITS.
        """
        product = StockQueries.get_product(product)
        received_date = received_date or get_clock().today()
        prefix = f"{product.code}-{received_date:%Y%m}-"

        highest = 0
        existing = Batch.objects.for_product(product).filter(
            batch_number__startswith=prefix
        ).values_list('batch_number', flat=True)
        for number in existing:
            suffix = number[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))

        digits = pharmstock_settings.BATCH_SEQUENCE_DIGITS
        return f"{prefix}{highest + 1:0{digits}d}"

    # ══════════════════════════════════════════════════════════════
    # WRITES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def add_batch(cls, quantity, product, expiration_date, unit_cost, sale_price,
                  batch_number='', received_date=None, supplier='', notes='',
                  reference=None, user=None) -> Batch:
        """
        Receive a new batch.

        Creates the batch with quantity_remaining = quantity, writes one
        purchase movement and adds the quantity to the cached total.

        Raises:
            StockError('INVALID_QUANTITY'): quantity is not a positive integer
            StockError('INVALID_PRICE'): Bad unit_cost or sale_price
            StockError('INVALID_EXPIRY'): Expiry is not after today
            StockError('INVALID_DATE'): Unparseable date, or received in the future
            StockError('DUPLICATE_BATCH_NUMBER'): Number already used for product
            StockError('PRODUCT_NOT_FOUND'): Unknown product
        """
        quantity = as_quantity(quantity)
        unit_cost = as_money(unit_cost, 'unit_cost')
        sale_price = as_money(sale_price, 'sale_price')
        expiration_date = as_date(expiration_date, 'expiration_date')

        today = get_clock().today()
        received_date = as_date(received_date, 'received_date') if received_date else today
        if expiration_date <= today:
            raise StockError(
                'INVALID_EXPIRY',
                expiration_date=expiration_date,
                today=today,
            )
        if received_date > today:
            raise StockError(
                'INVALID_DATE',
                field='received_date',
                value=received_date,
            )
        batch_number = (batch_number or '').strip()

        def attempt():
            locked = locking.lock_product(product)
            number = batch_number or cls.next_batch_number(locked, received_date)
            if Batch.objects.for_product(locked).filter(batch_number=number).exists():
                raise StockError(
                    'DUPLICATE_BATCH_NUMBER',
                    batch_number=number,
                    product_id=locked.pk,
                )

            locking.commit_product(locked, quantity)
            try:
                batch = Batch.objects.create(
                    product=locked,
                    batch_number=number,
                    expiration_date=expiration_date,
                    received_date=received_date,
                    quantity_received=quantity,
                    quantity_remaining=quantity,
                    unit_cost=unit_cost,
                    sale_price=sale_price,
                    supplier=supplier or '',
                    notes=notes or '',
                )
            except IntegrityError as exc:
                raise StockError(
                    'DUPLICATE_BATCH_NUMBER',
                    batch_number=number,
                    product_id=locked.pk,
                ) from exc

            append_movement(
                locked,
                MovementType.PURCHASE,
                quantity,
                reference_type='purchase',
                reference_id=number,
                note=f"Novo lote: {number}",
                batch=batch,
                user=user,
                reference=reference,
            )
            return locked, batch

        locked, batch = locking.run_serialized(attempt)
        locking.sync_product(product, locked)

        logger.info(
            "pharmstock.add_batch",
            extra={
                "product_id": locked.pk,
                "batch_id": batch.pk,
                "batch_number": batch.batch_number,
                "qty": str(quantity),
                "expiration_date": str(expiration_date),
            },
        )
        return batch

    @classmethod
    def update_batch(cls, product, batch_id, /, user=None, **changes) -> Batch:
        """
        Edit descriptive fields of a batch.

        Allowed: expiration_date, unit_cost, sale_price, notes.

        Raises:
            StockError('IMMUTABLE_FIELD'): quantity_received/quantity_remaining
            StockError('INVALID_FIELD'): Any other unknown field
            StockError('INVALID_DATE'): Expiry before the received date
            StockError('BATCH_NOT_FOUND'): No such batch for this product
        """
        immutable = sorted(QUANTITY_FIELDS & changes.keys())
        if immutable:
            raise StockError('IMMUTABLE_FIELD', fields=immutable)
        unknown = sorted(changes.keys() - EDITABLE_FIELDS.keys())
        if unknown:
            raise StockError('INVALID_FIELD', fields=unknown)

        values = {name: EDITABLE_FIELDS[name](value) for name, value in changes.items()}

        def attempt():
            locked = locking.lock_product(product)
            try:
                batch = Batch.objects.for_product(locked).get(pk=batch_id)
            except (Batch.DoesNotExist, ValueError, TypeError):
                raise StockError('BATCH_NOT_FOUND', batch_id=batch_id, product_id=locked.pk)

            expiration_date = values.get('expiration_date')
            if expiration_date is not None and expiration_date < batch.received_date:
                raise StockError(
                    'INVALID_DATE',
                    field='expiration_date',
                    value=expiration_date,
                    received_date=batch.received_date,
                )
            if not values:
                return batch

            locking.commit_product(locked)
            for name, value in values.items():
                setattr(batch, name, value)
            batch.save(update_fields=[*values, 'updated_at'])
            return batch

        batch = locking.run_serialized(attempt)
        logger.info(
            "pharmstock.update_batch",
            extra={
                "batch_id": batch.pk,
                "fields": sorted(values),
                "user": getattr(user, 'pk', None),
            },
        )
        return batch
