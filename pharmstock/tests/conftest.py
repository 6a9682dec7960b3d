"""
Pytest fixtures for Pharmstock tests.

Time is pinned to 2025-01-10 09:00 UTC for every test.
"""

from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.db.models import Sum

from pharmstock import ledger
from pharmstock.adapters.clock import FixedClock, reset_clock, set_clock
from pharmstock.models import Batch, Product, StockMovement


User = get_user_model()

TODAY = date(2025, 1, 10)


@pytest.fixture(autouse=True)
def clock():
    """Fixed clock shared by every ledger call in the test."""
    fixed = FixedClock(datetime(2025, 1, 10, 9, 0, tzinfo=dt_timezone.utc))
    set_clock(fixed)
    yield fixed
    reset_clock()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='farmaceutico',
        password='testpass123'
    )


@pytest.fixture
def product(db):
    """Amoxicillin, reorder at 10 units."""
    return Product.objects.create(
        code='AMOX500',
        name='Amoxicilina 500mg',
        reorder_level=10,
        unit='cápsula',
    )


@pytest.fixture
def other_product(db):
    """Dipyrone, no reorder level."""
    return Product.objects.create(
        code='DIP1G',
        name='Dipirona 1g',
        unit='comprimido',
    )


@pytest.fixture
def stocked(product):
    """
    Two batches:
        A: 5 units, expires 2025-01-20, cost 1.20, price 2.50
        B: 10 units, expires 2025-02-01, cost 1.50, price 2.90
    """
    a = ledger.add_batch(
        5, product, date(2025, 1, 20),
        unit_cost=Decimal('1.20'), sale_price=Decimal('2.50'),
        batch_number='A',
    )
    b = ledger.add_batch(
        10, product, date(2025, 2, 1),
        unit_cost=Decimal('1.50'), sale_price=Decimal('2.90'),
        batch_number='B',
    )
    return product, a, b


@pytest.fixture
def consistent():
    """
    Assert the ledger invariant for a product:
    stock_quantity == Σ remaining == Σ movement deltas, nothing negative.
    """

    def check(product):
        product = Product.objects.get(pk=getattr(product, 'pk', product))
        batches = Batch.objects.filter(product=product)
        remaining = batches.aggregate(t=Sum('quantity_remaining'))['t'] or 0
        deltas = StockMovement.objects.filter(product=product).aggregate(t=Sum('delta'))['t'] or 0

        assert product.stock_quantity == remaining == deltas
        for batch in batches:
            assert 0 <= batch.quantity_remaining <= batch.quantity_received
        return product.stock_quantity

    return check
