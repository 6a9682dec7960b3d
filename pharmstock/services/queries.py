"""
Stock queries: read-only operations.

Pure reads over ledger state. No locking, no side effects. Anything that
depends on "today" reads the configured clock.
"""

from datetime import date
from decimal import Decimal

from django.db.models import Exists, F, OuterRef, Q, Sum
from django.db.models.functions import Coalesce

from pharmstock.adapters.clock import get_clock
from pharmstock.conf import pharmstock_settings
from pharmstock.exceptions import StockError
from pharmstock.models.batch import Batch
from pharmstock.models.enums import StockStatus
from pharmstock.models.product import Product
from pharmstock.values import CENT


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def get_product(cls, product) -> Product:
        """
        Resolve a Product instance or pk.

        Raises:
            StockError('PRODUCT_NOT_FOUND'): Unknown pk
        """
        if isinstance(product, Product):
            return product
        try:
            return Product.objects.get(pk=product)
        except (Product.DoesNotExist, ValueError, TypeError):
            raise StockError('PRODUCT_NOT_FOUND', product_id=product)

    @classmethod
    def available_stock(cls, product, today: date | None = None) -> int:
        """
        Units in batches that are neither depleted nor expired.

        Differs from Product.stock_quantity, which also counts dead stock.
        """
        today = today or get_clock().today()
        product = cls.get_product(product)
        return Batch.objects.for_product(product).with_stock().fresh(today).aggregate(
            t=Coalesce(Sum('quantity_remaining'), 0)
        )['t']

    @classmethod
    def is_low_stock(cls, product) -> bool:
        """0 < available stock <= reorder level."""
        product = cls.get_product(product)
        available = cls.available_stock(product)
        return 0 < available <= product.reorder_level

    @classmethod
    def is_out_of_stock(cls, product) -> bool:
        return cls.available_stock(product) == 0

    @classmethod
    def stock_status(cls, product) -> StockStatus:
        """Classify a product as in stock, low stock or out of stock."""
        product = cls.get_product(product)
        available = cls.available_stock(product)
        if available == 0:
            return StockStatus.OUT_OF_STOCK
        if available <= product.reorder_level:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    @classmethod
    def expiring_soon(cls, product, days: int | None = None) -> bool:
        """
        Does any batch with units expire within the look-ahead window?

        Window is (today, today + days]; days defaults to EXPIRING_SOON_DAYS.
        """
        if days is None:
            days = pharmstock_settings.EXPIRING_SOON_DAYS
        product = cls.get_product(product)
        return Batch.objects.for_product(product).expiring_within(
            get_clock().today(), days
        ).exists()

    @classmethod
    def inventory_value(cls, products=None) -> Decimal:
        """
        Σ quantity_remaining × unit_cost over non-expired batches.

        Args:
            products: Iterable of products/pks or a Product queryset
                (None = every product)
        """
        batches = Batch.objects.with_stock().fresh(get_clock().today())
        if products is not None:
            batches = batches.filter(
                product_id__in=[getattr(p, 'pk', p) for p in products]
            )
        total = sum(
            (quantity * unit_cost
             for quantity, unit_cost in batches.values_list('quantity_remaining', 'unit_cost')),
            Decimal('0'),
        )
        return total.quantize(CENT)

    @classmethod
    def low_stock_products(cls):
        """Products whose available stock is above zero and at or below reorder level."""
        today = get_clock().today()
        return Product.objects.annotate(
            available=Coalesce(
                Sum(
                    'batches__quantity_remaining',
                    filter=Q(batches__expiration_date__gt=today),
                ),
                0,
            )
        ).filter(
            available__gt=0,
            available__lte=F('reorder_level'),
        ).order_by('available', 'code')

    @classmethod
    def expiring_products(cls, days: int | None = None):
        """Products with at least one batch expiring within the window."""
        if days is None:
            days = pharmstock_settings.EXPIRING_SOON_DAYS
        expiring = Batch.objects.filter(product=OuterRef('pk')).expiring_within(
            get_clock().today(), days
        )
        return Product.objects.filter(Exists(expiring)).order_by('code')
