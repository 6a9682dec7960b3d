"""
Pharmstock Admin.

Stock never changes through forms: quantities only move through the
ledger. The admin offers:
- Product: descriptive fields editable, stock read-only, batches inline
- Batch: read-only lot traceability
- StockMovement: read-only audit trail
- Actions: write off expired batches, reconcile cached totals
"""

import logging

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from pharmstock.adapters.clock import get_clock
from pharmstock.exceptions import StockError
from pharmstock.models import Batch, Product, StockMovement

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Stock only changes via the ledger service."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# PRODUCT ADMIN
# =========================================================================

class BatchInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Batch
    extra = 0
    fields = ['batch_number', 'expiration_date', 'received_date',
              'quantity_received', 'quantity_remaining', 'unit_cost', 'sale_price']
    readonly_fields = fields
    ordering = ['expiration_date', 'received_date', 'id']
    show_change_link = True


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Product admin. Stock total is read-only."""

    list_display = ['code', 'name', 'stock_quantity', 'reorder_level', 'status_display']
    search_fields = ['code', 'name']
    readonly_fields = ['stock_quantity', 'version', 'created_at', 'updated_at']
    inlines = [BatchInline]
    actions = ['write_off_expired', 'reconcile']

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Situação'))
    def status_display(self, obj):
        from pharmstock import ledger

        return ledger.stock_status(obj).label

    @admin.action(description=_('Baixar lotes vencidos'))
    def write_off_expired(self, request, queryset):
        from pharmstock import ledger

        count = 0
        for product in queryset:
            try:
                count += len(ledger.write_off_expired(product, user=request.user))
            except StockError as exc:
                logger.warning("write_off_expired: failed for %s: %s", product.code, exc)
                self.message_user(request, f"{product.code}: {exc.message}", messages.WARNING)

        self.message_user(request, _('{count} lote(s) baixado(s).').format(count=count))

    @admin.action(description=_('Reconciliar estoque'))
    def reconcile(self, request, queryset):
        from pharmstock import ledger

        fixed = 0
        for product in queryset:
            try:
                if ledger.reconcile(product, fix=True).fixed:
                    fixed += 1
            except StockError as exc:
                logger.warning("reconcile: failed for %s: %s", product.code, exc)
                self.message_user(request, f"{product.code}: {exc.message}", messages.WARNING)

        self.message_user(request, _('{count} produto(s) corrigido(s).').format(count=fixed))


# =========================================================================
# BATCH ADMIN (read-only)
# =========================================================================

@admin.register(Batch)
class BatchAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Batch admin: lot traceability."""

    list_display = ['batch_number', 'product', 'expiration_date', 'received_date',
                    'quantity_remaining', 'quantity_received', 'unit_cost',
                    'sale_price', 'is_expired_display']
    list_filter = ['expiration_date', 'received_date']
    search_fields = ['batch_number', 'supplier', 'product__code', 'product__name']
    list_select_related = ['product']
    date_hierarchy = 'expiration_date'

    @admin.display(description=_('Vencido?'), boolean=True)
    def is_expired_display(self, obj):
        return obj.is_expired_on(get_clock().today())


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin. Immutable audit trail."""

    list_display = ['timestamp', 'product', 'batch', 'movement_type', 'delta',
                    'reference_type', 'reference_id', 'user']
    list_filter = ['movement_type', 'timestamp']
    search_fields = ['product__code', 'batch__batch_number', 'reference_id', 'note']
    list_select_related = ['product', 'batch', 'user']
    date_hierarchy = 'timestamp'
