"""
Batch model — one receipt of a product (a "lot").

Availability of a batch is never stored as a source of truth. It is
derived from the movement log joined with the *current* status of each
referenced order:

    available = Σ in − Σ |sale where order is consuming|

Usage:
    batches = Batch.objects.for_product(product).with_availability().fifo()
    for batch in batches:
        print(batch.lot_number, batch.available)
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q, Sum
from django.db.models.functions import Abs, Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import MovementKind, OrderStatus

logger = logging.getLogger('lotman')


def consuming_sale_filter(prefix: str = '') -> Q:
    """
    Q object selecting sale movements that still count against stock.

    ``prefix`` is the lookup path to Movement (``'movements__'`` when
    filtering from Batch, ``''`` when filtering Movement directly).
    """
    from lotman.conf import lotman_settings

    consuming = Q(**{f'{prefix}order__status__in': OrderStatus.consuming()})
    if lotman_settings.COUNT_UNLINKED_SALES:
        consuming |= Q(**{f'{prefix}order__isnull': True})
    return Q(**{f'{prefix}kind': MovementKind.SALE}) & consuming


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with ledger aggregates."""

    def for_product(self, product):
        product_id = getattr(product, 'pk', product)
        return self.filter(product_id=product_id)

    def fifo(self):
        """Oldest receipt first, ties broken by id."""
        return self.order_by('received_at', 'pk')

    def with_availability(self):
        """
        Annotate received_qty, consumed_qty, returned_qty, cancelled_qty.

        One aggregate query over the movement log; order status is
        joined live, never copied onto the movement.
        """
        def debited(condition):
            return Coalesce(
                Sum(Abs('movements__quantity'), filter=condition),
                0,
            )

        sale = Q(movements__kind=MovementKind.SALE)
        return self.annotate(
            received_qty=Coalesce(
                Sum('movements__quantity', filter=Q(movements__kind=MovementKind.IN)),
                0,
            ),
            consumed_qty=debited(consuming_sale_filter('movements__')),
            returned_qty=debited(sale & Q(movements__order__status=OrderStatus.RETURNED)),
            cancelled_qty=debited(sale & Q(movements__order__status=OrderStatus.CANCELLED)),
        )


class Batch(models.Model):
    """
    A receipt of stock, the allocation unit for FIFO.

    Only unit_cost may change after receipt. quantity_remaining is a
    materialized cache of the derived availability: the calculator and the
    allocator never read it; recalculate() rebuilds it from the log.
    version is bumped by every allocation that debits the batch and guards
    the allocation commit against concurrent writers.
    """

    product = models.ForeignKey(
        'lotman.Product',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('Product'),
    )
    lot_number = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Lot number'),
        help_text=_('Human label. Not guaranteed to be unique.'),
    )
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Unit cost'),
        help_text=_('Zero means the cost has not been entered yet'),
    )
    received_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name=_('Received at'),
    )

    # Cache of derived availability (rebuilt from Movements)
    quantity_remaining = models.IntegerField(
        default=0,
        editable=False,
        verbose_name=_('Remaining (cached)'),
    )
    version = models.PositiveIntegerField(default=0, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Received by'),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Batch')
        verbose_name_plural = _('Batches')
        ordering = ['received_at', 'pk']
        indexes = [
            models.Index(fields=['product', 'received_at'], name='lotman_batc_product_6b1f0e_idx'),
        ]

    @property
    def has_cost(self) -> bool:
        return self.unit_cost > 0

    @property
    def available(self) -> int:
        """
        Derived availability.

        Uses the annotations from with_availability() when present,
        otherwise runs the aggregate for this batch.
        """
        received = getattr(self, 'received_qty', None)
        consumed = getattr(self, 'consumed_qty', None)
        if received is None or consumed is None:
            from lotman.services.availability import LedgerQueries
            return LedgerQueries.available_for_batch(self)
        return max(0, received - consumed)

    def recalculate(self) -> int:
        """
        Rebuild quantity_remaining from the movement log.

        Use for:
        - Integrity audit (reconcile_ledger)
        - Correction after detected drift

        Returns:
            Derived availability
        """
        from lotman.services.availability import LedgerQueries

        derived = LedgerQueries.available_for_batch(self.pk)

        if derived != self.quantity_remaining:
            old = self.quantity_remaining
            Batch.objects.filter(pk=self.pk).update(quantity_remaining=derived)
            self.quantity_remaining = derived
            logger.warning(
                f"Batch {self.pk} recalculated: {old} → {derived} "
                f"(diff: {derived - old})"
            )

        return derived

    def __str__(self) -> str:
        lot = f" #{self.lot_number}" if self.lot_number else ""
        return f"{self.product}{lot} ({self.received_at:%Y-%m-%d})"
