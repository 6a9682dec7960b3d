"""
Input coercion: isolated, testable, reusable.

Quantities are whole units, money is Decimal with two places, dates are
datetime.date. Anything else is rejected with a StockError before the
ledger touches the database.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from pharmstock.exceptions import StockError

CENT = Decimal('0.01')


def as_quantity(value, field: str = 'quantity', minimum: int = 1) -> int:
    """Whole number of units, at least minimum."""
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise StockError('INVALID_QUANTITY', field=field, requested=value)
    return value


def as_money(value, field: str) -> Decimal:
    """
    Non-negative amount with at most two decimal places.

    Floats are refused: binary fractions do not round-trip to cents.
    """
    if isinstance(value, (bool, float)):
        raise StockError('INVALID_PRICE', field=field, value=value)
    try:
        amount = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except InvalidOperation:
        raise StockError('INVALID_PRICE', field=field, value=value)
    if not amount.is_finite() or amount < 0 or amount != amount.quantize(CENT):
        raise StockError('INVALID_PRICE', field=field, value=value)
    return amount.quantize(CENT)


def as_date(value, field: str) -> date:
    """date, datetime (date part) or ISO 8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise StockError('INVALID_DATE', field=field, value=value)
