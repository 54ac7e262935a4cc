"""
Ledger reports — inventory breakdown, low-stock alerts, sales summary.

Usage:
    from lotman import ledger

    for row in ledger.breakdown():
        print(row.sku, row.lot_number, row.received, row.remaining, row.level)

    for product, available in ledger.low_stock():
        notify(product, available)
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db.models import DecimalField, ExpressionWrapper, F, Sum
from django.db.models.functions import Abs, Coalesce

from lotman.conf import lotman_settings
from lotman.exceptions import store_faults
from lotman.models.batch import Batch
from lotman.models.enums import MovementKind, OrderStatus
from lotman.models.movement import Movement
from lotman.models.order import Order
from lotman.models.product import Product
from lotman.services.availability import get_product

logger = logging.getLogger('lotman')


@dataclass(frozen=True)
class BatchBreakdown:
    """One inventory report row."""

    batch_id: int
    product_id: int
    sku: str
    lot_number: str
    received_at: object
    unit_cost: Decimal
    received: int
    consumed: int
    returned: int
    cancelled: int
    remaining: int
    level: str  # "healthy", "low", "out"


@dataclass(frozen=True)
class SalesSummary:
    orders: int
    revenue: Decimal
    cogs: Decimal

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue - self.cogs

    @property
    def margin(self) -> Decimal:
        """Gross profit as a percentage of revenue (0 without revenue)."""
        if not self.revenue:
            return Decimal('0')
        return (self.gross_profit / self.revenue * 100).quantize(Decimal('0.01'))


def stock_level(remaining: int) -> str:
    if remaining <= 0:
        return 'out'
    if remaining <= lotman_settings.LOW_STOCK_LOT_THRESHOLD:
        return 'low'
    return 'healthy'


class LedgerReports:
    """Read-only reporting over the ledger."""

    @classmethod
    @store_faults
    def breakdown(cls, product=None) -> list[BatchBreakdown]:
        """
        Per-batch received/consumed/returned/cancelled/remaining.

        received − consumed == remaining for every row (remaining floored
        at 0). Rows are ordered by product SKU, then FIFO.
        """
        batches = Batch.objects.select_related('product').with_availability()
        if product is not None:
            batches = batches.for_product(get_product(product))

        rows = []
        for batch in batches.order_by('product__sku', 'received_at', 'pk'):
            remaining = batch.available
            rows.append(BatchBreakdown(
                batch_id=batch.pk,
                product_id=batch.product_id,
                sku=batch.product.sku,
                lot_number=batch.lot_number,
                received_at=batch.received_at,
                unit_cost=batch.unit_cost,
                received=batch.received_qty,
                consumed=batch.consumed_qty,
                returned=batch.returned_qty,
                cancelled=batch.cancelled_qty,
                remaining=remaining,
                level=stock_level(remaining),
            ))
        return rows

    @classmethod
    @store_faults
    def low_stock(cls) -> list[tuple[Product, int]]:
        """
        Active products whose availability is below min_stock_alert.

        Returns:
            List of (product, current_available) tuples
        """
        totals: dict[int, int] = {}
        for batch in Batch.objects.filter(product__is_active=True).with_availability():
            totals[batch.product_id] = totals.get(batch.product_id, 0) + batch.available

        triggered = []
        for product in Product.objects.active().order_by('sku'):
            available = totals.get(product.pk, 0)
            if available < product.min_stock_alert:
                triggered.append((product, available))
                logger.warning(
                    "ledger.alert.low_stock",
                    extra={
                        "product_id": product.pk,
                        "sku": product.sku,
                        "min_stock_alert": product.min_stock_alert,
                        "available": available,
                    },
                )
        return triggered

    @classmethod
    @store_faults
    def sales_summary(cls, start: date | None = None, end: date | None = None) -> SalesSummary:
        """
        Revenue and cost of goods sold for delivered orders.

        Revenue is the cash-on-delivery amount of delivered orders whose
        order_date falls in [start, end]. COGS prices each of their sale
        movements at the batch's current unit cost, so cost corrections
        apply retroactively.
        """
        orders = Order.objects.filter(status=OrderStatus.DELIVERED)
        if start is not None:
            orders = orders.filter(order_date__gte=start)
        if end is not None:
            orders = orders.filter(order_date__lte=end)

        revenue = orders.aggregate(
            t=Coalesce(Sum('cod_amount'), Decimal('0'))
        )['t']

        line_cost = ExpressionWrapper(
            Abs(F('quantity')) * F('batch__unit_cost'),
            output_field=DecimalField(max_digits=14, decimal_places=2),
        )
        cogs = Movement.objects.filter(
            kind=MovementKind.SALE,
            order__in=orders,
        ).aggregate(
            t=Coalesce(Sum(line_cost), Decimal('0'))
        )['t']

        return SalesSummary(
            orders=orders.count(),
            revenue=Decimal(revenue),
            cogs=Decimal(cogs).quantize(Decimal('0.01')),
        )
