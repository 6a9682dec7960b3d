"""
Tests for expiry and low-stock queries.
"""

from datetime import date
from decimal import Decimal

import pytest

from pharmstock import ledger, StockError, StockStatus
from pharmstock.models import Product


pytestmark = pytest.mark.django_db


def receive(product, quantity, expiration_date, unit_cost='1.00'):
    return ledger.add_batch(
        quantity, product, expiration_date,
        unit_cost=Decimal(unit_cost), sale_price=Decimal('5.00'),
    )


class TestStockLevels:
    """Tests for is_low_stock / is_out_of_stock / stock_status."""

    def test_empty_product(self, product):
        assert ledger.is_out_of_stock(product)
        assert not ledger.is_low_stock(product)
        assert ledger.stock_status(product) == StockStatus.OUT_OF_STOCK

    def test_low_stock_includes_reorder_level(self, product):
        receive(product, 10, date(2025, 6, 1))

        assert ledger.is_low_stock(product)
        assert not ledger.is_out_of_stock(product)
        assert ledger.stock_status(product) == StockStatus.LOW_STOCK

    def test_above_reorder_level(self, product):
        receive(product, 11, date(2025, 6, 1))

        assert not ledger.is_low_stock(product)
        assert ledger.stock_status(product) == StockStatus.IN_STOCK

    def test_zero_reorder_level_is_never_low(self, other_product):
        receive(other_product, 1, date(2025, 6, 1))

        assert not ledger.is_low_stock(other_product)
        assert ledger.stock_status(other_product) == StockStatus.IN_STOCK

    def test_expired_units_are_not_available(self, product, clock):
        receive(product, 50, date(2025, 1, 11))
        clock.advance(days=1)

        product.refresh_from_db()
        assert product.stock_quantity == 50
        assert ledger.available_stock(product) == 0
        assert ledger.is_out_of_stock(product)
        assert not ledger.is_low_stock(product)

    def test_unknown_product(self, db):
        with pytest.raises(StockError) as exc:
            ledger.is_low_stock(424242)

        assert exc.value.code == 'PRODUCT_NOT_FOUND'


class TestExpiringSoon:
    """Window is (today, today + days]."""

    def test_within_window(self, stocked):
        product, _, _ = stocked

        # A expires 2025-01-20, today is 2025-01-10
        assert ledger.expiring_soon(product, days=10)
        assert not ledger.expiring_soon(product, days=9)

    def test_default_window(self, stocked, settings):
        product, _, _ = stocked

        assert ledger.expiring_soon(product)

        settings.PHARMSTOCK = {'EXPIRING_SOON_DAYS': 5}
        assert not ledger.expiring_soon(product)

    def test_expired_batch_is_not_expiring(self, product, clock):
        receive(product, 5, date(2025, 1, 11))
        clock.set(date(2025, 1, 11))

        assert not ledger.expiring_soon(product, days=30)

    def test_depleted_batch_is_not_expiring(self, stocked):
        product, _, _ = stocked
        ledger.reduce_stock(5, product, 'sale')

        assert not ledger.expiring_soon(product, days=10)

    def test_expiring_products(self, stocked, other_product):
        product, _, _ = stocked
        receive(other_product, 3, date(2025, 12, 1))

        assert list(ledger.expiring_products(days=15)) == [product]
        assert list(ledger.expiring_products(days=365)) == [product, other_product]


class TestInventoryValue:
    """Σ remaining × unit_cost over non-expired batches."""

    def test_all_products(self, stocked, other_product):
        receive(other_product, 4, date(2025, 3, 1), unit_cost='0.25')

        # 5 × 1.20 + 10 × 1.50 + 4 × 0.25
        assert ledger.inventory_value() == Decimal('22.00')

    def test_selected_products(self, stocked, other_product):
        product, _, _ = stocked
        receive(other_product, 4, date(2025, 3, 1), unit_cost='0.25')

        assert ledger.inventory_value([product]) == Decimal('21.00')
        assert ledger.inventory_value([other_product.pk]) == Decimal('1.00')
        assert ledger.inventory_value(Product.objects.none()) == Decimal('0.00')

    def test_excludes_expired_and_consumed(self, stocked, clock):
        product, _, _ = stocked
        ledger.reduce_stock(7, product, 'sale')

        assert ledger.inventory_value() == Decimal('12.00')

        clock.set(date(2025, 2, 1))
        assert ledger.inventory_value() == Decimal('0.00')


class TestLowStockProducts:
    """Tests for ledger.low_stock_products()."""

    def test_lists_only_low(self, product, other_product):
        other_product.reorder_level = 100
        other_product.save()
        receive(product, 4, date(2025, 6, 1))
        receive(other_product, 150, date(2025, 6, 1))

        low = list(ledger.low_stock_products())

        assert low == [product]
        assert low[0].available == 4

    def test_ignores_expired_units(self, product, clock):
        receive(product, 4, date(2025, 1, 15))
        receive(product, 20, date(2025, 1, 11))

        assert list(ledger.low_stock_products()) == []

        clock.set(date(2025, 1, 12))
        assert list(ledger.low_stock_products()) == [product]

    def test_out_of_stock_is_not_low(self, product):
        assert list(ledger.low_stock_products()) == []
