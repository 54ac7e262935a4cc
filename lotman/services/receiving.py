"""
Stock receiving — stock-in and unit cost correction.

All methods use transaction.atomic() with appropriate locking.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from lotman.exceptions import LedgerError, store_faults
from lotman.models.batch import Batch
from lotman.models.enums import MovementKind
from lotman.models.movement import Movement
from lotman.models.product import Product

logger = logging.getLogger('lotman')


def _to_cost(value) -> Decimal:
    try:
        cost = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerError('INVALID_COST', unit_cost=value) from None
    if not cost.is_finite():
        raise LedgerError('INVALID_COST', unit_cost=value)
    return cost


class StockReceiving:
    """Batch registry writes."""

    @classmethod
    @store_faults
    def receive(cls, quantity, sku, lot_number='', unit_cost=Decimal('0'),
                received_at=None, user=None, name=None, description='') -> Batch:
        """
        Stock entry.

        Finds the product by SKU (creating it when new), creates the
        Batch and its positive 'in' Movement.

        Args:
            quantity: Units received (positive int)
            sku: Product SKU
            lot_number: Human lot label
            unit_cost: Cost per unit (0 = not entered yet)
            received_at: Receipt timestamp (None = now), drives FIFO order

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity <= 0
            LedgerError('INVALID_COST'): If unit_cost is negative
            LedgerError('UNAVAILABLE'): If the database could not be reached

        Concurrency:
            - Runs under transaction.atomic()
            - Uses get_or_create on the SKU
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise LedgerError('INVALID_QUANTITY', requested=quantity)

        cost = _to_cost(unit_cost)
        if cost < 0:
            raise LedgerError('INVALID_COST', unit_cost=unit_cost)

        with transaction.atomic():
            product, created = Product.objects.get_or_create(
                sku=sku,
                defaults={'name': name or sku, 'description': description},
            )

            batch = Batch.objects.create(
                product=product,
                lot_number=lot_number,
                unit_cost=cost,
                received_at=received_at or timezone.now(),
                quantity_remaining=quantity,
                user=user,
            )

            Movement.objects.create(
                batch=batch,
                kind=MovementKind.IN,
                quantity=quantity,
                reason=f"Stock in #{lot_number}" if lot_number else "Stock in",
                user=user,
            )

            logger.info(
                "ledger.receive",
                extra={
                    "sku": sku,
                    "qty": quantity,
                    "batch_id": batch.pk,
                    "lot_number": lot_number,
                    "new_product": created,
                },
            )
            return batch

    @classmethod
    @store_faults
    def correct_cost(cls, batch, unit_cost, user=None) -> Batch:
        """
        Correct the unit cost of a received batch.

        Touches only Batch.unit_cost: movements and availability are
        unaffected. COGS reports pick up the corrected cost.

        Raises:
            LedgerError('INVALID_COST'): If unit_cost <= 0
            LedgerError('NOT_FOUND'): If the batch does not exist
        """
        cost = _to_cost(unit_cost)
        if cost <= 0:
            raise LedgerError('INVALID_COST', unit_cost=unit_cost)

        pk = getattr(batch, 'pk', batch)

        with transaction.atomic():
            try:
                locked = Batch.objects.select_for_update().get(pk=pk)
            except (Batch.DoesNotExist, ValueError, TypeError):
                raise LedgerError('NOT_FOUND', entity='batch', id=pk) from None

            old_cost = locked.unit_cost
            locked.unit_cost = cost
            locked.save(update_fields=['unit_cost'])

            logger.info(
                "ledger.cost.corrected",
                extra={
                    "batch_id": locked.pk,
                    "old_cost": str(old_cost),
                    "new_cost": str(cost),
                    "user_id": getattr(user, 'pk', None),
                },
            )
            return locked
