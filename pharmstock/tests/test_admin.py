"""
Tests for the admin actions.
"""

import pytest
from django.contrib import admin, messages

from pharmstock import ledger, StockError
from pharmstock.admin import ProductAdmin
from pharmstock.models import Product


pytestmark = pytest.mark.django_db


@pytest.fixture
def model_admin(monkeypatch):
    """ProductAdmin that collects user messages instead of storing them."""
    product_admin = ProductAdmin(Product, admin.site)
    product_admin.sent = []
    monkeypatch.setattr(
        product_admin, 'message_user',
        lambda request, message, level=messages.INFO: product_admin.sent.append((level, str(message))),
    )
    return product_admin


@pytest.fixture
def request_(rf, user):
    request = rf.post('/admin/pharmstock/product/')
    request.user = user
    return request


class TestReconcileAction:

    def test_fixes_drift(self, stocked, model_admin, request_, consistent):
        product, _, _ = stocked
        Product.objects.filter(pk=product.pk).update(stock_quantity=99)

        model_admin.reconcile(request_, Product.objects.all())

        assert consistent(product) == 15
        assert model_admin.sent[-1] == (messages.INFO, '1 produto(s) corrigido(s).')

    def test_busy_product_is_reported(self, stocked, model_admin, request_, monkeypatch):
        def busy(product, fix=False):
            raise StockError('CONCURRENT_MODIFICATION', product_id=product.pk)

        monkeypatch.setattr(ledger, 'reconcile', busy)

        model_admin.reconcile(request_, Product.objects.all())

        assert model_admin.sent == [
            (messages.WARNING, 'AMOX500: Modificação concorrente detectada'),
            (messages.INFO, '0 produto(s) corrigido(s).'),
        ]


class TestWriteOffAction:

    def test_writes_off_dead_stock(self, stocked, model_admin, request_, clock, consistent):
        product, _, _ = stocked
        clock.set(clock.today().replace(day=20))

        model_admin.write_off_expired(request_, Product.objects.all())

        assert consistent(product) == 10
        assert model_admin.sent[-1] == (messages.INFO, '1 lote(s) baixado(s).')
