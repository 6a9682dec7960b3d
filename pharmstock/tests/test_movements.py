"""
Tests for the movement log.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from pharmstock import ledger, StockError
from pharmstock.models import MovementType, StockMovement


pytestmark = pytest.mark.django_db


class TestRecordMovement:
    """Tests for ledger.record_movement()."""

    def test_appends_entry(self, stocked, user, clock, consistent):
        product, a, _ = stocked

        move = ledger.record_movement(
            product, MovementType.MANUAL_ADJUSTMENT, -1,
            reference_type='inventory', reference_id=42,
            note='Contagem', batch=a, user=user, counted_by='caixa 2',
        )

        assert move.pk
        assert move.batch_id == a.pk
        assert move.reference_type == 'inventory'
        assert move.reference_id == '42'
        assert move.unit_cost == Decimal('1.20')
        assert move.timestamp == clock.now()
        assert move.metadata == {'counted_by': 'caixa 2'}
        assert product.stock_quantity == 14
        assert consistent(product) == 14

    def test_applies_delta_to_batch(self, stocked, consistent):
        product, a, b = stocked

        ledger.record_movement(product, 'manual_adjustment', -2, batch=b.pk)

        a.refresh_from_db()
        b.refresh_from_db()
        assert (a.quantity_remaining, b.quantity_remaining) == (5, 8)
        assert consistent(product) == 13

    def test_outbound_without_batch_takes_first_covering_batch(self, stocked, consistent):
        product, a, b = stocked

        move = ledger.record_movement(product, 'manual_adjustment', -7)

        assert move.batch_id == b.pk
        assert consistent(product) == 8

    def test_inbound_without_batch_refills_latest_batch(self, stocked, consistent):
        product, a, b = stocked
        ledger.reduce_stock(12, product, 'sale')

        move = ledger.record_movement(product, 'manual_adjustment', 3)

        assert move.batch_id == b.pk
        assert consistent(product) == 6

    def test_inbound_never_overfills(self, stocked, consistent):
        product, _, _ = stocked

        with pytest.raises(StockError) as exc:
            ledger.record_movement(product, 'manual_adjustment', 5)

        assert exc.value.code == 'RESTORE_EXCEEDS_RECEIVED'
        assert consistent(product) == 15
        assert StockMovement.objects.count() == 2

    def test_outbound_beyond_batch(self, stocked, consistent):
        product, a, _ = stocked

        with pytest.raises(StockError) as exc:
            ledger.record_movement(product, 'sale', -6, batch=a)

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == 5
        assert consistent(product) == 15

    def test_unknown_product(self, db):
        with pytest.raises(StockError) as exc:
            ledger.record_movement(999999, 'manual_adjustment', 5)

        assert exc.value.code == 'PRODUCT_NOT_FOUND'
        assert not StockMovement.objects.exists()

    def test_unknown_batch(self, stocked):
        product, _, _ = stocked

        with pytest.raises(StockError) as exc:
            ledger.record_movement(product, 'sale', -1, batch=424242)

        assert exc.value.code == 'BATCH_NOT_FOUND'

    @pytest.mark.parametrize('delta', [0, 1.5, True, '3'])
    def test_invalid_delta(self, product, delta):
        with pytest.raises(StockError) as exc:
            ledger.record_movement(product, 'sale', delta)

        assert exc.value.code == 'INVALID_MOVEMENT'

    def test_invalid_type(self, product):
        with pytest.raises(StockError) as exc:
            ledger.record_movement(product, 'transfer', 1)

        assert exc.value.code == 'INVALID_MOVEMENT'

    @pytest.mark.parametrize('movement_type, delta', [
        ('purchase', 1),
        ('sale', 1),
        ('return', -1),
        ('expired', 1),
    ])
    def test_sign_must_match_type(self, stocked, movement_type, delta):
        product, a, _ = stocked

        with pytest.raises(StockError) as exc:
            ledger.record_movement(product, movement_type, delta, batch=a)

        assert exc.value.code == 'INVALID_MOVEMENT'

    def test_batch_from_other_product(self, stocked, other_product):
        _, a, _ = stocked

        with pytest.raises(StockError) as exc:
            ledger.record_movement(other_product, 'sale', -1, batch=a)

        assert exc.value.code == 'INVALID_MOVEMENT'


class TestMovementImmutability:
    """Movements are never edited or removed."""

    def test_update_is_refused(self, stocked):
        move = StockMovement.objects.first()
        move.delta = 999

        with pytest.raises(ValueError):
            move.save()

    def test_delete_is_refused(self, stocked):
        move = StockMovement.objects.first()

        with pytest.raises(ValueError):
            move.delete()

        assert StockMovement.objects.filter(pk=move.pk).exists()


class TestMovementHistory:
    """Tests for ledger.movements()."""

    def test_oldest_first(self, stocked):
        product, a, b = stocked
        ledger.reduce_stock(7, product, 'sale')

        history = ledger.movements(product)

        assert [(m.movement_type, m.delta) for m in history] == [
            ('purchase', 5),
            ('purchase', 10),
            ('sale', -5),
            ('sale', -2),
        ]

    def test_filters(self, stocked):
        product, _, _ = stocked
        ledger.reduce_stock(7, product, 'sale')

        assert ledger.movements(product, direction='in').count() == 2
        assert ledger.movements(product, direction='out').count() == 2
        assert ledger.movements(product, movement_type='sale').count() == 2
        assert ledger.movements(product, movement_type=MovementType.RETURN).count() == 0

    def test_days_window(self, stocked, clock):
        product, _, _ = stocked
        clock.advance(days=10)
        ledger.reduce_stock(1, product, 'sale')

        assert ledger.movements(product, days=5).count() == 1
        assert ledger.movements(product, days=30).count() == 3

    def test_invalid_direction(self, product):
        with pytest.raises(StockError) as exc:
            ledger.movements(product, direction='sideways')

        assert exc.value.code == 'INVALID_FIELD'

    def test_scoped_to_product(self, stocked, other_product):
        ledger.add_batch(
            2, other_product, date(2025, 3, 1) + timedelta(days=1),
            unit_cost=Decimal('0.10'), sale_price=Decimal('0.50'),
        )

        assert ledger.movements(other_product).count() == 1
