"""
Enums for Lotman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementKind(models.TextChoices):
    """Direction of a ledger entry."""
    IN = 'in', _('Stock in')       # Receipt of a batch, positive quantity
    SALE = 'sale', _('Sale')       # Debit against an order, negative quantity


class OrderStatus(models.TextChoices):
    """
    Order lifecycle status.

    PROCESSING ──► SENT ──► DELIVERED
        │           │           │
        ├──► CANCELLED          │
        ▼           ▼           ▼
        └────────► RETURNED ◄───┘

    Stock math only cares whether a status is consuming: sale movements
    of an order count against availability while the order is
    PROCESSING, SENT or DELIVERED.
    """
    PROCESSING = 'processing', _('Processing')
    SENT = 'sent', _('Sent')
    DELIVERED = 'delivered', _('Delivered')
    RETURNED = 'returned', _('Returned')
    CANCELLED = 'cancelled', _('Cancelled')

    @property
    def is_consuming(self) -> bool:
        return self in CONSUMING_STATUSES

    def can_transition_to(self, target) -> bool:
        return OrderStatus(target) in ORDER_TRANSITIONS[self]

    @classmethod
    def consuming(cls) -> list[str]:
        """Values usable in ``status__in`` lookups."""
        return sorted(status.value for status in CONSUMING_STATUSES)


CONSUMING_STATUSES = frozenset({
    OrderStatus.PROCESSING,
    OrderStatus.SENT,
    OrderStatus.DELIVERED,
})

ORDER_TRANSITIONS = {
    OrderStatus.PROCESSING: frozenset({
        OrderStatus.SENT, OrderStatus.RETURNED, OrderStatus.CANCELLED,
    }),
    OrderStatus.SENT: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.RETURNED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}
