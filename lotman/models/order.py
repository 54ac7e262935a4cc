"""
Order model — outbound sale whose status decides whether its
movements still consume stock.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Sum
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import OrderStatus


class Order(models.Model):
    """
    Customer order (cash on delivery).

    LIFECYCLE:

    ┌─────────────────────────────────────────────────────────────┐
    │                                                             │
    │   ┌────────────┐   ┌──────┐   ┌───────────┐                │
    │   │ PROCESSING │──►│ SENT │──►│ DELIVERED │                │
    │   └────────────┘   └──────┘   └───────────┘                │
    │      │     │          │             │                       │
    │      │     ▼          ▼             ▼                       │
    │      │   ┌──────────────────────────────┐                  │
    │      │   │           RETURNED           │                  │
    │      ▼   └──────────────────────────────┘                  │
    │   ┌───────────┐                                             │
    │   │ CANCELLED │                                             │
    │   └───────────┘                                             │
    │                                                             │
    └─────────────────────────────────────────────────────────────┘

    status is the only mutable field that affects stock math. Lines are
    fixed at creation; changing what was ordered means a new order.
    Status changes go through ledger.transition().
    """

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PROCESSING,
        db_index=True,
        verbose_name=_('Status'),
    )
    cod_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Cash on delivery'),
    )

    customer_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Customer'))
    customer_address = models.TextField(blank=True, default='', verbose_name=_('Address'))
    phone1 = models.CharField(max_length=20, blank=True, default='', verbose_name=_('Phone'))
    phone2 = models.CharField(max_length=20, blank=True, default='', verbose_name=_('Phone (alternate)'))
    destination_branch = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Destination branch'))
    order_date = models.DateField(default=timezone.localdate, verbose_name=_('Order date'))

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Recorded by'),
    )
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    status_changed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Status changed at'))

    class Meta:
        verbose_name = _('Order')
        verbose_name_plural = _('Orders')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'order_date'], name='lotman_orde_status_3c9d2a_idx'),
        ]

    @property
    def is_consuming(self) -> bool:
        return OrderStatus(self.status).is_consuming

    @property
    def total_quantity(self) -> int:
        """Units across all lines."""
        return self.lines.aggregate(t=Sum('quantity'))['t'] or 0

    def __str__(self) -> str:
        return f"Order {self.pk} [{self.status}]"


class OrderLine(models.Model):
    """Ordered product/quantity pair. Immutable after creation."""

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name='lines',
        verbose_name=_('Order'),
    )
    product = models.ForeignKey(
        'lotman.Product',
        on_delete=models.PROTECT,
        related_name='order_lines',
        verbose_name=_('Product'),
    )
    quantity = models.PositiveIntegerField(verbose_name=_('Quantity'))

    class Meta:
        verbose_name = _('Order line')
        verbose_name_plural = _('Order lines')
        ordering = ['pk']

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Order lines are immutable. Create a new order instead.")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.quantity}x {self.product}"
