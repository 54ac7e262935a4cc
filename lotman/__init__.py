"""
Django Lotman — FIFO lot ledger and stock allocation.

Stock is never a counter: it is derived from an append-only log of
stock-in and sale movements, joined with the live status of each order.

Usage:
    from lotman import ledger, LedgerError

    ledger.receive(10, 'TSHIRT-M', lot_number='A-17')
    ledger.plan(7, product)
    ledger.available_for_product(product)  # 10
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from lotman.service import Ledger
        return Ledger
    elif name == 'LedgerError':
        from lotman.exceptions import LedgerError
        return LedgerError
    elif name == 'Product':
        from lotman.models.product import Product
        return Product
    elif name == 'Batch':
        from lotman.models.batch import Batch
        return Batch
    elif name == 'Movement':
        from lotman.models.movement import Movement
        return Movement
    elif name == 'Order':
        from lotman.models.order import Order
        return Order
    elif name == 'OrderLine':
        from lotman.models.order import OrderLine
        return OrderLine
    elif name == 'OrderStatus':
        from lotman.models.enums import OrderStatus
        return OrderStatus
    elif name == 'MovementKind':
        from lotman.models.enums import MovementKind
        return MovementKind
    elif name in ('OrderDraft', 'LineDraft'):
        from lotman.services import commits
        return getattr(commits, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'LedgerError',
    'Product',
    'Batch',
    'Movement',
    'Order',
    'OrderLine',
    'OrderStatus',
    'MovementKind',
    'OrderDraft',
    'LineDraft',
]

__version__ = '0.1.0'
