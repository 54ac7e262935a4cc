"""
Ledger queries — read-only availability derived from the movement log.

All methods are classmethod on Ledger and use no locking. Nothing here
is cached: order status is joined at call time, so a status change is
visible to the very next read.
"""

from dataclasses import dataclass

from lotman.exceptions import LedgerError, store_faults
from lotman.models.batch import Batch
from lotman.models.product import Product


@dataclass(frozen=True)
class BatchTotals:
    """Ledger totals for one batch under current order statuses."""

    batch_id: int
    received: int
    consumed: int
    returned: int
    cancelled: int

    @property
    def remaining(self) -> int:
        return max(0, self.received - self.consumed)


def _pk(obj):
    return getattr(obj, 'pk', obj)


def get_product(product) -> Product:
    """Product instance or id → Product, NOT_FOUND otherwise."""
    if isinstance(product, Product) and product.pk is not None:
        return product
    pk = _pk(product)
    try:
        return Product.objects.get(pk=pk)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise LedgerError('NOT_FOUND', entity='product', id=pk) from None


class LedgerQueries:
    """Read-only availability methods."""

    @classmethod
    def _annotated_batch(cls, batch) -> Batch:
        pk = _pk(batch)
        try:
            found = Batch.objects.with_availability().filter(pk=pk).first()
        except (ValueError, TypeError):
            found = None
        if found is None:
            raise LedgerError('NOT_FOUND', entity='batch', id=pk)
        return found

    @classmethod
    @store_faults
    def available_for_batch(cls, batch) -> int:
        """
        Units of a batch currently available.

        available = Σ in − Σ |sale of consuming orders|, floored at 0

        Args:
            batch: Batch instance or id

        Raises:
            LedgerError('NOT_FOUND'): If the batch does not exist
        """
        found = cls._annotated_batch(batch)
        return max(0, found.received_qty - found.consumed_qty)

    @classmethod
    @store_faults
    def available_for_product(cls, product) -> int:
        """
        Units of a product currently available, summed over its batches.

        A product without batches has 0 available.

        Raises:
            LedgerError('NOT_FOUND'): If the product does not exist
        """
        product = get_product(product)
        batches = Batch.objects.for_product(product).with_availability()
        return sum(max(0, b.received_qty - b.consumed_qty) for b in batches)

    @classmethod
    @store_faults
    def batch_totals(cls, batch) -> BatchTotals:
        """Received/consumed/returned/cancelled figures for a batch."""
        found = cls._annotated_batch(batch)
        return BatchTotals(
            batch_id=found.pk,
            received=found.received_qty,
            consumed=found.consumed_qty,
            returned=found.returned_qty,
            cancelled=found.cancelled_qty,
        )

    @classmethod
    def refresh_cached_remaining(cls, batch_ids) -> None:
        """Rewrite quantity_remaining of the given batches from the log."""
        batches = Batch.objects.filter(pk__in=set(batch_ids)).with_availability()
        for batch in batches:
            Batch.objects.filter(pk=batch.pk).update(quantity_remaining=batch.available)
