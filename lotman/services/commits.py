"""
Order commits — verify-then-commit of allocation plans.

Each attempt runs under one transaction.atomic():

1. Lock the draft's Product rows (select_for_update, ordered by id)
2. Re-plan every line against live availability
3. Write Order, OrderLines and one sale Movement per deduction
4. Claim each debited batch: UPDATE ... WHERE version = planned version

A lost claim or a database serialization failure rolls the attempt back
and the whole cycle runs again, up to COMMIT_MAX_RETRIES. Business-rule
rejections (INSUFFICIENT_STOCK, NOT_FOUND, ...) are never retried.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from django.db import InterfaceError, OperationalError, transaction
from django.db.models import F

from lotman.conf import lotman_settings
from lotman.exceptions import LedgerError, is_serialization_failure
from lotman.models.batch import Batch
from lotman.models.enums import MovementKind, OrderStatus
from lotman.models.movement import Movement
from lotman.models.order import Order, OrderLine
from lotman.models.product import Product
from lotman.services.allocation import StockAllocation
from lotman.services.availability import LedgerQueries, get_product

logger = logging.getLogger('lotman')


@dataclass
class LineDraft:
    product: Any
    quantity: int


@dataclass
class OrderDraft:
    """Order to be created, as entered by the caller."""

    lines: list[LineDraft]
    status: str = OrderStatus.PROCESSING
    cod_amount: Decimal = Decimal('0')
    customer_name: str = ''
    customer_address: str = ''
    phone1: str = ''
    phone2: str = ''
    destination_branch: str = ''
    order_date: date | None = None
    metadata: dict = field(default_factory=dict)


class OrderCommits:
    """Allocation transaction coordinator."""

    @classmethod
    def commit(cls, draft: OrderDraft, user=None) -> Order:
        """
        Create an order and debit its stock FIFO, all or nothing.

        Returns:
            The created Order (order.pk is the order id)

        Raises:
            LedgerError('EMPTY_ORDER'): If the draft has no lines
            LedgerError('INVALID_QUANTITY'): If a line quantity is not positive
            LedgerError('INVALID_STATUS'): If the initial status does not consume stock
            LedgerError('NOT_FOUND'): If a product does not exist
            LedgerError('INSUFFICIENT_STOCK'): If any line cannot be satisfied
            LedgerError('CONFLICT'): If concurrent commits kept winning
            LedgerError('UNAVAILABLE'): If the database could not be reached

        Concurrency:
            - Runs each attempt under transaction.atomic()
            - Uses select_for_update() on the draft's products
            - Optimistic version check on every debited batch
        """
        cls._validate_draft(draft)
        attempts = max(1, int(lotman_settings.COMMIT_MAX_RETRIES))

        for attempt in range(1, attempts + 1):
            try:
                order = cls._commit_once(draft, user)
            except LedgerError as exc:
                # CONFLICT here is a serialization failure inside a nested read
                if exc.code not in ('CONCURRENT_MODIFICATION', 'CONFLICT'):
                    if exc.code == 'INSUFFICIENT_STOCK':
                        logger.info(
                            "ledger.commit.rejected",
                            extra={
                                "sku": exc.data.get('sku'),
                                "requested": exc.requested,
                                "available": exc.available,
                            },
                        )
                    raise
                logger.warning(
                    "ledger.commit.conflict",
                    extra={"attempt": attempt, "batch_id": exc.data.get('batch_id')},
                )
            except (OperationalError, InterfaceError) as exc:
                if isinstance(exc, InterfaceError) or not is_serialization_failure(exc):
                    raise LedgerError('UNAVAILABLE', error=str(exc)) from exc
                logger.warning(
                    "ledger.commit.conflict",
                    extra={"attempt": attempt, "error": str(exc)},
                )
            else:
                logger.info(
                    "ledger.commit",
                    extra={
                        "order_id": order.pk,
                        "lines": len(draft.lines),
                        "attempt": attempt,
                    },
                )
                return order

        raise LedgerError('CONFLICT', attempts=attempts)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _validate_draft(cls, draft: OrderDraft) -> None:
        if not draft.lines:
            raise LedgerError('EMPTY_ORDER')

        for line in draft.lines:
            quantity = line.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise LedgerError('INVALID_QUANTITY', requested=quantity)

        if draft.status not in OrderStatus.values or not OrderStatus(draft.status).is_consuming:
            raise LedgerError(
                'INVALID_STATUS',
                current=draft.status,
                expected=OrderStatus.consuming(),
            )

    @classmethod
    def _commit_once(cls, draft: OrderDraft, user) -> Order:
        with transaction.atomic():
            lines = cls._lock_products(draft)

            plans = StockAllocation.plan_lines(lines)

            extra = {}
            if draft.order_date is not None:
                extra['order_date'] = draft.order_date
            order = Order.objects.create(
                status=draft.status,
                cod_amount=draft.cod_amount,
                customer_name=draft.customer_name,
                customer_address=draft.customer_address,
                phone1=draft.phone1,
                phone2=draft.phone2,
                destination_branch=draft.destination_branch,
                user=user,
                metadata=dict(draft.metadata),
                **extra,
            )

            deductions = []
            for plan in plans:
                line = OrderLine.objects.create(
                    order=order,
                    product_id=plan.product_id,
                    quantity=plan.requested,
                )
                for deduction in plan.deductions:
                    Movement.objects.create(
                        batch_id=deduction.batch_id,
                        kind=MovementKind.SALE,
                        quantity=-deduction.quantity,
                        order=order,
                        line=line,
                        reason=f"Order {order.pk}",
                        user=user,
                    )
                    deductions.append(deduction)

            cls._claim_batches(deductions)
            return order

    @classmethod
    def _lock_products(cls, draft: OrderDraft) -> list:
        """
        Resolve every line's product, then row-lock them lowest id first.

        Returns:
            (product, quantity) pairs with resolved Product instances

        Raises:
            LedgerError('NOT_FOUND'): If a product does not exist (or vanished
                before it could be locked)
        """
        lines = [(get_product(line.product), line.quantity) for line in draft.lines]
        product_ids = sorted({product.pk for product, _ in lines})

        locked = set(
            Product.objects.select_for_update()
            .filter(pk__in=product_ids)
            .order_by('pk')
            .values_list('pk', flat=True)
        )
        for pk in product_ids:
            if pk not in locked:
                raise LedgerError('NOT_FOUND', entity='product', id=pk)
        return lines

    @classmethod
    def _claim_batches(cls, deductions) -> None:
        """
        Compare-and-set the version of every debited batch.

        Raises:
            LedgerError('CONCURRENT_MODIFICATION'): If another commit
                debited a batch since it was planned
        """
        versions = {}
        for deduction in deductions:
            versions.setdefault(deduction.batch_id, deduction.version)

        for batch_id in sorted(versions):
            claimed = Batch.objects.filter(
                pk=batch_id,
                version=versions[batch_id],
            ).update(version=F('version') + 1)
            if not claimed:
                raise LedgerError('CONCURRENT_MODIFICATION', batch_id=batch_id)

        LedgerQueries.refresh_cached_remaining(versions)
