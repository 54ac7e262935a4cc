"""
Stock allocation — FIFO planning of outbound quantities.

Planning is a pure read: it computes which batches a request would
debit but writes nothing. OrderCommits re-runs it inside the commit
transaction before anything is written.
"""

from dataclasses import dataclass

from lotman.exceptions import LedgerError, store_faults
from lotman.models.batch import Batch
from lotman.services.availability import get_product


@dataclass(frozen=True)
class Deduction:
    """Units to take from one batch, and the batch version they were read at."""

    batch_id: int
    quantity: int
    version: int


@dataclass(frozen=True)
class AllocationPlan:
    """FIFO deductions satisfying one order line."""

    product_id: int
    requested: int
    deductions: tuple[Deduction, ...] = ()

    @property
    def total(self) -> int:
        return sum(d.quantity for d in self.deductions)

    @property
    def batch_ids(self) -> list[int]:
        return [d.batch_id for d in self.deductions]


def validate_quantity(quantity) -> int:
    """Non-negative int, bools rejected."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise LedgerError('INVALID_QUANTITY', requested=quantity)
    return quantity


class StockAllocation:
    """FIFO allocation planning."""

    @classmethod
    @store_faults
    def plan(cls, quantity, product, taken=None) -> AllocationPlan:
        """
        Plan a FIFO deduction of ``quantity`` units of ``product``.

        Walks batches oldest receipt first (ties by id), taking
        min(available, remaining) from each. All-or-nothing: no partial
        plan is ever returned.

        Args:
            quantity: Units requested (0 gives an empty plan)
            product: Product instance or id
            taken: Optional {batch_id: units} already claimed by earlier
                lines of the same order

        Returns:
            AllocationPlan

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity is negative or not an int
            LedgerError('NOT_FOUND'): If the product does not exist
            LedgerError('INSUFFICIENT_STOCK'): If total availability < quantity
        """
        validate_quantity(quantity)
        product = get_product(product)
        taken = taken or {}

        if quantity == 0:
            return AllocationPlan(product_id=product.pk, requested=0)

        batches = Batch.objects.for_product(product).with_availability().fifo()

        deductions = []
        remaining = quantity
        total_available = 0

        for batch in batches:
            available = max(0, batch.available - taken.get(batch.pk, 0))
            total_available += available
            if remaining == 0 or available == 0:
                continue
            take = min(available, remaining)
            deductions.append(Deduction(batch_id=batch.pk, quantity=take, version=batch.version))
            remaining -= take

        if remaining > 0:
            raise LedgerError(
                'INSUFFICIENT_STOCK',
                f"Only {total_available} of {product.sku} available",
                product_id=product.pk,
                sku=product.sku,
                available=total_available,
                requested=quantity,
                shortfall=quantity - total_available,
            )

        return AllocationPlan(
            product_id=product.pk,
            requested=quantity,
            deductions=tuple(deductions),
        )

    @classmethod
    @store_faults
    def plan_lines(cls, lines) -> list[AllocationPlan]:
        """
        Plan a multi-line order line by line.

        Units claimed by earlier lines are withheld from later ones, so
        the same product on two lines cannot be planned twice over.

        Args:
            lines: Iterable of (product, quantity) pairs or LineDraft

        Raises:
            LedgerError: From the first line that cannot be planned
        """
        taken: dict[int, int] = {}
        plans = []

        for line in lines:
            product, quantity = _unpack_line(line)
            plan = cls.plan(quantity, product, taken=taken)
            for deduction in plan.deductions:
                taken[deduction.batch_id] = taken.get(deduction.batch_id, 0) + deduction.quantity
            plans.append(plan)

        return plans


def _unpack_line(line):
    if hasattr(line, 'product') and hasattr(line, 'quantity'):
        return line.product, line.quantity
    product, quantity = line
    return product, quantity
