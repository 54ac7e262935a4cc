"""
Exceptions for Lotman.

All errors are LedgerError with a structured code for programmatic handling.
Database faults never leave a public ledger operation raw: @store_faults
turns them into CONFLICT (serialization failure, deadlock, locked SQLite
file) or UNAVAILABLE (anything else, e.g. lock timeout, lost connection).
"""

import functools
from decimal import Decimal
from typing import Any

from django.db import DatabaseError, InterfaceError, OperationalError

# SQLSTATEs for serialization failure and deadlock
_RETRYABLE_SQLSTATES = frozenset({'40001', '40P01'})


class LedgerError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.commit(draft)
        except LedgerError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Only {e.available} available")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'NOT_FOUND': 'Product, batch or order not found',
        'INVALID_QUANTITY': 'Quantity must be a non-negative integer',
        'INVALID_STATUS': 'Unknown or disallowed order status',
        'INVALID_COST': 'Unit cost is not valid',
        'EMPTY_ORDER': 'Order has no lines',
        'INSUFFICIENT_STOCK': 'Requested quantity not available',
        'INVALID_TRANSITION': 'Order status change not allowed',
        'CONCURRENT_MODIFICATION': 'Concurrent modification detected',
        'CONFLICT': 'Could not commit after repeated concurrent modifications',
        'UNAVAILABLE': 'Ledger store unavailable',
    }

    _retryable = frozenset({'CONCURRENT_MODIFICATION', 'CONFLICT', 'UNAVAILABLE'})

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    @property
    def shortfall(self) -> int:
        """Units missing to satisfy the request."""
        return self.data.get('shortfall', 0)

    @property
    def is_retryable(self) -> bool:
        """Transient fault: the caller may retry the whole operation later."""
        return self.code in self._retryable

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


def is_serialization_failure(exc: DatabaseError) -> bool:
    cause = exc.__cause__
    code = getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)
    if code in _RETRYABLE_SQLSTATES:
        return True
    return 'database is locked' in str(exc)


def store_faults(func):
    """
    Map database faults raised by a ledger operation to LedgerError.

    Apply below @classmethod. LedgerErrors raised by nested operations
    pass through untouched.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InterfaceError as exc:
            raise LedgerError('UNAVAILABLE', error=str(exc)) from exc
        except OperationalError as exc:
            if is_serialization_failure(exc):
                raise LedgerError('CONFLICT', error=str(exc)) from exc
            raise LedgerError('UNAVAILABLE', error=str(exc)) from exc
    return wrapper
