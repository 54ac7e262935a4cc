"""
Lotman Admin — read-only views for production debugging.

Stock only changes through the ledger service:
- Product: list + edit (SKU frozen once referenced)
- Batch: read-only (derived availability next to the cached figure)
- Movement: read-only audit trail
- Order: read-only with status actions routed through ledger.transition()
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from lotman.exceptions import LedgerError
from lotman.models import Batch, Movement, Order, OrderLine, OrderStatus, Product

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# PRODUCT ADMIN
# =========================================================================

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Product admin — editable, never deletable."""

    list_display = ['sku', 'name', 'min_stock_alert', 'is_active', 'available_display']
    list_filter = ['is_active']
    search_fields = ['sku', 'name']
    readonly_fields = ['created_at', 'updated_at']

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Available'))
    def available_display(self, obj):
        from lotman import ledger
        return ledger.available_for_product(obj)


# =========================================================================
# BATCH ADMIN (read-only)
# =========================================================================

@admin.register(Batch)
class BatchAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Batch admin — read-only. Cost corrections go through ledger.correct_cost()."""

    list_display = ['__str__', 'lot_number', 'unit_cost', 'received_at',
                    'quantity_remaining', 'available_display']
    list_filter = ['received_at']
    search_fields = ['lot_number', 'product__sku']
    readonly_fields = ['product', 'lot_number', 'unit_cost', 'received_at',
                       'quantity_remaining', 'version', 'user', 'created_at']
    date_hierarchy = 'received_at'

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('product').with_availability()

    @admin.display(description=_('Available'))
    def available_display(self, obj):
        return obj.available


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['created_at', 'batch', 'kind', 'quantity', 'order', 'user']
    list_filter = ['kind', 'created_at']
    search_fields = ['reason', 'batch__lot_number', 'batch__product__sku']
    readonly_fields = ['batch', 'kind', 'quantity', 'order', 'line',
                       'reason', 'user', 'created_at']
    date_hierarchy = 'created_at'


# =========================================================================
# ORDER ADMIN (read-only with status actions)
# =========================================================================

class OrderLineInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = OrderLine
    extra = 0
    fields = ['product', 'quantity']
    readonly_fields = ['product', 'quantity']


@admin.register(Order)
class OrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Order admin — read-only; status changes via actions."""

    list_display = ['id', 'order_date', 'customer_name', 'status', 'cod_amount', 'status_changed_at']
    list_filter = ['status', 'order_date']
    search_fields = ['customer_name', 'phone1', 'phone2']
    readonly_fields = ['status', 'cod_amount', 'customer_name', 'customer_address',
                       'phone1', 'phone2', 'destination_branch', 'order_date',
                       'user', 'metadata', 'created_at', 'status_changed_at']
    inlines = [OrderLineInline]
    actions = ['mark_sent', 'mark_delivered', 'mark_returned', 'mark_cancelled']

    def _transition(self, request, queryset, status):
        from lotman import ledger

        count = 0
        for order in queryset:
            try:
                ledger.transition(order, status, user=request.user, reason='admin')
                count += 1
            except LedgerError as exc:
                logger.warning("order %s: %s", order.pk, exc)

        self.message_user(
            request,
            _('{count} order(s) moved to {status}.').format(count=count, status=status),
        )
        return count

    @admin.action(description=_('Mark selected orders as sent'))
    def mark_sent(self, request, queryset):
        self._transition(request, queryset, OrderStatus.SENT)

    @admin.action(description=_('Mark selected orders as delivered'))
    def mark_delivered(self, request, queryset):
        self._transition(request, queryset, OrderStatus.DELIVERED)

    @admin.action(description=_('Mark selected orders as returned'))
    def mark_returned(self, request, queryset):
        self._transition(request, queryset, OrderStatus.RETURNED)

    @admin.action(description=_('Cancel selected orders'))
    def mark_cancelled(self, request, queryset):
        self._transition(request, queryset, OrderStatus.CANCELLED)
