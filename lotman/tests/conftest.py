"""
Pytest fixtures for Lotman tests.
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from lotman import ledger
from lotman.services.commits import LineDraft, OrderDraft


User = get_user_model()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def day_one():
    return datetime(2024, 3, 1, 9, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def two_lots(db, day_one):
    """TSHIRT-M received twice: B1 (5 units) then B2 (5 units) a day later."""
    b1 = ledger.receive(5, 'TSHIRT-M', lot_number='B1', unit_cost=Decimal('100.00'),
                        received_at=day_one)
    b2 = ledger.receive(5, 'TSHIRT-M', lot_number='B2', unit_cost=Decimal('120.00'),
                        received_at=day_one + timedelta(days=1))
    return b1, b2


@pytest.fixture
def product(two_lots):
    return two_lots[0].product


@pytest.fixture
def other_product(db, day_one):
    """MUG-01 with a single lot of 5."""
    batch = ledger.receive(5, 'MUG-01', lot_number='M1', unit_cost=Decimal('40.00'),
                           received_at=day_one)
    return batch.product


@pytest.fixture
def make_order(db):
    """Commit an order of (product, quantity) pairs."""
    def _make(*lines, **kwargs):
        draft = OrderDraft(
            lines=[LineDraft(product, quantity) for product, quantity in lines],
            **kwargs,
        )
        return ledger.commit(draft)
    return _make
