"""
Ledger tunables, read from the ``LOTMAN`` dict in Django settings.

    LOTMAN = {
        "COMMIT_MAX_RETRIES": 5,        # verify-then-commit attempts
        "COUNT_UNLINKED_SALES": False,  # ignore order-less legacy sales
    }

Omitted keys keep their defaults; unknown keys are ignored. Values are
re-read on every access, so override_settings applies immediately.
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class LotmanSettings:

    # Attempts of the verify-then-commit cycle before surfacing CONFLICT
    COMMIT_MAX_RETRIES: int = 3

    # min_stock_alert given to products created at stock-in
    DEFAULT_MIN_STOCK_ALERT: int = 10

    # Batch breakdown marks a lot "low" at or below this remaining quantity
    LOW_STOCK_LOT_THRESHOLD: int = 5

    # Sale movements without an order (legacy rows) still consume stock
    COUNT_UNLINKED_SALES: bool = True


def get_lotman_settings() -> LotmanSettings:
    overrides: dict[str, Any] = getattr(settings, "LOTMAN", {})
    return LotmanSettings(**{
        k: v for k, v in overrides.items()
        if k in LotmanSettings.__dataclass_fields__
    })


class _LazySettings:

    def __getattr__(self, name):
        return getattr(get_lotman_settings(), name)


lotman_settings = _LazySettings()
