"""
Per-product write serialization.

Every ledger write for a product follows the same shape:

    def attempt():
        product = lock_product(product_id)      # row lock, waits for the current writer
        ...read snapshot, validate, plan...
        commit_product(product, stock_delta)    # CAS on Product.version
        ...apply batch updates, append movements...

    result = run_serialized(attempt)            # atomic + bounded retry

Writers on different products never touch the same row, so they run in
parallel. Writers on the same product are serialized by the row lock
(backends with SELECT ... FOR UPDATE) and, independently, by the version
compare-and-swap, so a stale snapshot can never be committed.
"""

import logging
import time

from django.db import OperationalError, connection, transaction
from django.db.models import F

from pharmstock.adapters.clock import get_clock
from pharmstock.conf import pharmstock_settings
from pharmstock.exceptions import StockError
from pharmstock.models.product import Product

logger = logging.getLogger('pharmstock')

# Driver error codes for "someone else holds the lock"
LOCK_CONTENTION_CODES = frozenset({
    '55P03',  # PostgreSQL lock_not_available (NOWAIT, lock_timeout)
    '40001',  # PostgreSQL serialization_failure
    '40P01',  # PostgreSQL deadlock_detected
    1205,     # MySQL lock wait timeout
    1213,     # MySQL deadlock
    3572,     # MySQL NOWAIT
})

# SQLite reports contention only in the message
LOCK_CONTENTION_MESSAGES = ('database is locked', 'database table is locked')


def is_lock_contention(exc: OperationalError) -> bool:
    """Is this database error a busy lock rather than a broken connection?"""
    cause = exc.__cause__ or exc
    code = getattr(cause, 'pgcode', None) or getattr(cause, 'sqlstate', None)
    if code is None and cause.args and isinstance(cause.args[0], (int, str)):
        code = cause.args[0]
    if code in LOCK_CONTENTION_CODES:
        return True
    message = str(exc)
    return any(text in message for text in LOCK_CONTENTION_MESSAGES)


def lock_product(product) -> Product:
    """
    Fetch a fresh copy of the product, locking its row.

    Must run inside transaction.atomic().

    Raises:
        StockError('PRODUCT_NOT_FOUND'): Unknown product
        StockError('CONCURRENT_MODIFICATION'): Row is locked by another writer
            (with LOCK_NOWAIT), or the database lock wait timed out
    """
    product_id = getattr(product, 'pk', product)
    nowait = (
        pharmstock_settings.LOCK_NOWAIT
        and connection.features.has_select_for_update_nowait
    )
    try:
        return Product.objects.select_for_update(nowait=nowait).get(pk=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise StockError('PRODUCT_NOT_FOUND', product_id=product_id)
    except OperationalError as exc:
        if not is_lock_contention(exc):
            raise
        raise StockError('CONCURRENT_MODIFICATION', product_id=product_id) from exc


def commit_product(product: Product, stock_delta: int = 0) -> Product:
    """
    Apply a stock delta to the cached total, guarded by the version read
    in lock_product().

    Updates the in-memory instance to match the new row.

    Raises:
        StockError('CONCURRENT_MODIFICATION'): Another writer committed first
    """
    now = get_clock().now()
    updated = Product.objects.filter(pk=product.pk, version=product.version).update(
        version=F('version') + 1,
        stock_quantity=F('stock_quantity') + stock_delta,
        updated_at=now,
    )
    if not updated:
        raise StockError(
            'CONCURRENT_MODIFICATION',
            product_id=product.pk,
            expected_version=product.version,
        )
    product.version += 1
    product.stock_quantity += stock_delta
    product.updated_at = now
    return product


def run_serialized(operation, *args, **kwargs):
    """
    Run a ledger write atomically, retrying on concurrent modification.

    Lock contention reported by the database (busy row, lock timeout,
    deadlock) counts as a concurrent modification; any other database
    error propagates untouched.

    Each attempt gets its own transaction (or savepoint, when called inside
    an outer atomic block), so a failed attempt leaves no trace.
    After MAX_RETRIES extra attempts the last error reaches the caller.
    """
    max_retries = max(0, pharmstock_settings.MAX_RETRIES)
    backoff = pharmstock_settings.RETRY_BACKOFF_MS / 1000

    attempt = 0
    while True:
        attempt += 1
        try:
            with transaction.atomic():
                return operation(*args, **kwargs)
        except OperationalError as exc:
            if not is_lock_contention(exc):
                raise
            error = StockError('CONCURRENT_MODIFICATION', detail=str(exc))
            error.__cause__ = exc
        except StockError as exc:
            if not exc.retryable:
                raise
            error = exc

        if attempt > max_retries:
            raise error
        logger.info(
            "pharmstock.retry",
            extra={
                "operation": getattr(operation, '__name__', repr(operation)),
                "attempt": attempt,
                "data": error.data,
            },
        )
        if backoff:
            time.sleep(backoff * attempt)


def sync_product(target, locked: Product) -> None:
    """Copy the committed cache and version onto the caller's instance."""
    if isinstance(target, Product) and target is not locked:
        target.stock_quantity = locked.stock_quantity
        target.version = locked.version
        target.updated_at = locked.updated_at
