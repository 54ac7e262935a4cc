"""
Lotman Models.

Core models for the inventory ledger:
- Product: What is sold, identified by SKU
- Batch: One receipt of a product (lot), the FIFO allocation unit
- Movement: Immutable ledger of stock-in and sale entries
- Order / OrderLine: Outbound sales whose status decides consumption
"""

from lotman.models.batch import Batch
from lotman.models.enums import (
    CONSUMING_STATUSES,
    ORDER_TRANSITIONS,
    MovementKind,
    OrderStatus,
)
from lotman.models.movement import Movement
from lotman.models.order import Order, OrderLine
from lotman.models.product import Product

__all__ = [
    'MovementKind',
    'OrderStatus',
    'CONSUMING_STATUSES',
    'ORDER_TRANSITIONS',
    'Product',
    'Batch',
    'Movement',
    'Order',
    'OrderLine',
]
