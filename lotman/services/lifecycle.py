"""
Order lifecycle — status transitions.

A transition is a single-field update. Movements are never rewritten:
returning or cancelling an order releases its stock only because the
availability calculator stops counting its sale movements.
"""

import logging

from django.db import transaction
from django.utils import timezone

from lotman.exceptions import LedgerError, store_faults
from lotman.models.enums import ORDER_TRANSITIONS, OrderStatus
from lotman.models.order import Order
from lotman.services.availability import LedgerQueries

logger = logging.getLogger('lotman')


def _get_order_for_update(order) -> Order:
    pk = getattr(order, 'pk', order)
    try:
        return Order.objects.select_for_update().get(pk=pk)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise LedgerError('NOT_FOUND', entity='order', id=pk) from None


class OrderLifecycle:
    """Order status state machine."""

    @classmethod
    @store_faults
    def transition(cls, order, new_status, user=None, reason='') -> Order:
        """
        Move an order to a new status.

        Allowed:
            processing -> sent | returned | cancelled
            sent       -> delivered | returned
            delivered  -> returned

        Returns:
            Updated Order

        Raises:
            LedgerError('INVALID_STATUS'): If new_status is not a known status
            LedgerError('NOT_FOUND'): If the order does not exist
            LedgerError('INVALID_TRANSITION'): If the edge is not in the graph
            LedgerError('UNAVAILABLE'): If the order row could not be locked
                (lock timeout, lost connection)

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on the Order (per-order serialization)
        """
        if new_status not in OrderStatus.values:
            raise LedgerError('INVALID_STATUS', requested=new_status, expected=list(OrderStatus.values))
        target = OrderStatus(new_status)

        with transaction.atomic():
            locked = _get_order_for_update(order)
            current = OrderStatus(locked.status)

            if not current.can_transition_to(target):
                raise LedgerError(
                    'INVALID_TRANSITION',
                    f"Cannot move order {locked.pk} from {current} to {target}",
                    order_id=locked.pk,
                    current=current.value,
                    requested=target.value,
                )

            now = timezone.now()
            locked.status = target
            locked.status_changed_at = now
            locked.metadata.setdefault('status_history', []).append({
                'from': current.value,
                'to': target.value,
                'at': now.isoformat(),
                'user_id': getattr(user, 'pk', None),
                'reason': reason,
            })
            locked.save(update_fields=['status', 'status_changed_at', 'metadata'])

            batch_ids = set(locked.movements.values_list('batch_id', flat=True))
            if current.is_consuming != target.is_consuming:
                LedgerQueries.refresh_cached_remaining(batch_ids)

            logger.info(
                "ledger.transition",
                extra={
                    "order_id": locked.pk,
                    "from_status": current.value,
                    "to_status": target.value,
                    "batches": sorted(batch_ids),
                },
            )
            return locked

    @classmethod
    @store_faults
    def allowed_transitions(cls, order) -> list[str]:
        """Statuses reachable from the order's current status."""
        pk = getattr(order, 'pk', order)
        status = Order.objects.filter(pk=pk).values_list('status', flat=True).first()
        if status is None:
            raise LedgerError('NOT_FOUND', entity='order', id=pk)
        return sorted(s.value for s in ORDER_TRANSITIONS[OrderStatus(status)])
