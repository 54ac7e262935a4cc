"""
Tests for ledger.commit() — verify-then-commit of multi-line orders.

Scenarios:
1. Written rows (Order, OrderLine, sale Movements) and FIFO split
2. All-or-nothing across lines
3. Draft validation
4. Retry on lost version claims and serialization failures
5. Store faults surface as UNAVAILABLE
6. No overselling with real concurrent writers (PostgreSQL only)
"""

import logging
import threading
from datetime import date
from decimal import Decimal

import pytest
from django.db import OperationalError, connection
from django.db.models import F

from lotman import ledger, LedgerError
from lotman.models import Batch, Movement, MovementKind, Order, OrderLine, OrderStatus, Product
from lotman.services.commits import LineDraft, OrderCommits, OrderDraft


pytestmark = pytest.mark.django_db


class TestCommit:

    def test_creates_order_lines_and_movements(self, two_lots, product, make_order):
        b1, b2 = two_lots

        order = make_order((product, 7))

        assert order.pk is not None
        assert order.status == OrderStatus.PROCESSING
        assert list(order.lines.values_list('product_id', 'quantity')) == [(product.pk, 7)]

        sales = Movement.objects.filter(order=order).order_by('batch__received_at')
        assert [(m.batch_id, m.quantity) for m in sales] == [(b1.pk, -5), (b2.pk, -2)]
        assert all(m.kind == MovementKind.SALE for m in sales)
        assert all(m.line_id == order.lines.get().pk for m in sales)
        assert all(m.reason == f"Order {order.pk}" for m in sales)

    def test_availability_after_commit(self, product, make_order):
        make_order((product, 7))

        assert ledger.available_for_product(product) == 3

    def test_updates_cache_and_version(self, two_lots, product, make_order):
        b1, b2 = two_lots

        make_order((product, 7))

        b1.refresh_from_db()
        b2.refresh_from_db()
        assert (b1.quantity_remaining, b2.quantity_remaining) == (0, 3)
        assert (b1.version, b2.version) == (1, 1)

    def test_draft_fields_persisted(self, product, user):
        draft = OrderDraft(
            lines=[LineDraft(product, 1)],
            cod_amount=Decimal('350.00'),
            customer_name='Mona',
            customer_address='12 Nile St',
            phone1='0100000000',
            destination_branch='Giza',
            order_date=date(2024, 3, 5),
            metadata={'channel': 'phone'},
        )

        order = ledger.commit(draft, user=user)

        order.refresh_from_db()
        assert order.cod_amount == Decimal('350.00')
        assert order.customer_name == 'Mona'
        assert order.destination_branch == 'Giza'
        assert order.order_date == date(2024, 3, 5)
        assert order.metadata == {'channel': 'phone'}
        assert order.user == user
        assert order.movements.get().user == user

    def test_initial_status_sent(self, product, make_order):
        order = make_order((product, 2), status=OrderStatus.SENT)

        assert order.status == OrderStatus.SENT
        assert ledger.available_for_product(product) == 8

    def test_total_quantity(self, product, other_product, make_order):
        order = make_order((product, 2), (other_product, 3))

        assert order.total_quantity == 5

    def test_sequential_orders_never_oversell(self, product, make_order):
        for _ in range(10):
            make_order((product, 1))

        with pytest.raises(LedgerError) as exc:
            make_order((product, 1))

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert ledger.available_for_product(product) == 0

    def test_logs_commit(self, product, make_order, caplog):
        with caplog.at_level(logging.INFO, logger='lotman'):
            order = make_order((product, 1))

        records = [r for r in caplog.records if r.getMessage() == 'ledger.commit']
        assert len(records) == 1
        assert records[0].order_id == order.pk


class TestAllOrNothing:

    def test_failing_line_leaves_other_lines_untouched(self, product, other_product, make_order):
        """MUG-01 has 5; the order wants 2 of it plus 11 of TSHIRT-M."""
        movements = Movement.objects.count()

        with pytest.raises(LedgerError) as exc:
            make_order((other_product, 2), (product, 11))

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.data['sku'] == 'TSHIRT-M'
        assert ledger.available_for_product(other_product) == 5
        assert ledger.available_for_product(product) == 10
        assert Order.objects.count() == 0
        assert OrderLine.objects.count() == 0
        assert Movement.objects.count() == movements

    def test_same_product_twice_beyond_stock(self, product, make_order):
        with pytest.raises(LedgerError) as exc:
            make_order((product, 6), (product, 6))

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert Order.objects.count() == 0

    def test_unknown_product_line(self, product, make_order):
        with pytest.raises(LedgerError) as exc:
            make_order((product, 1), (987654, 1))

        assert exc.value.code == 'NOT_FOUND'
        assert Order.objects.count() == 0


class TestProductResolution:
    """Lines name products the same way plan() accepts them."""

    def test_product_id_as_string(self, product):
        assert ledger.plan(2, str(product.pk)).total == 2

        order = ledger.commit(OrderDraft(lines=[LineDraft(str(product.pk), 2)]))

        assert order.lines.get().product_id == product.pk
        assert ledger.available_for_product(product) == 8

    def test_product_id_as_int(self, product):
        ledger.commit(OrderDraft(lines=[LineDraft(product.pk, 2)]))

        assert ledger.available_for_product(product) == 8

    def test_unsaved_product(self, product):
        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[
                LineDraft(product, 1),
                LineDraft(Product(sku='NEVER-SAVED'), 1),
            ]))

        assert exc.value.code == 'NOT_FOUND'
        assert exc.value.data['entity'] == 'product'
        assert Order.objects.count() == 0
        assert ledger.available_for_product(product) == 10

    def test_garbage_product_id(self, product):
        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[LineDraft('not-a-pk', 1)]))

        assert exc.value.code == 'NOT_FOUND'


class TestDraftValidation:

    def test_empty_order(self):
        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[]))

        assert exc.value.code == 'EMPTY_ORDER'

    @pytest.mark.parametrize('quantity', [0, -2, 1.5, False])
    def test_non_positive_quantity(self, product, quantity):
        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[LineDraft(product, quantity)]))

        assert exc.value.code == 'INVALID_QUANTITY'

    @pytest.mark.parametrize('status', ['returned', 'cancelled', 'lost'])
    def test_non_consuming_initial_status(self, product, status):
        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[LineDraft(product, 1)], status=status))

        assert exc.value.code == 'INVALID_STATUS'
        assert Order.objects.count() == 0


class TestRetry:

    def test_lost_claim_is_retried(self, product, monkeypatch):
        claim = OrderCommits._claim_batches.__func__
        calls = []

        def racing_claim(cls, deductions):
            calls.append(list(deductions))
            if len(calls) == 1:
                # Another writer debits the first batch meanwhile
                Batch.objects.filter(pk=deductions[0].batch_id).update(version=F('version') + 1)
            return claim(cls, deductions)

        monkeypatch.setattr(OrderCommits, '_claim_batches', classmethod(racing_claim))

        order = ledger.commit(OrderDraft(lines=[LineDraft(product, 7)]))

        assert len(calls) == 2
        assert Order.objects.count() == 1
        assert Movement.objects.filter(order=order).count() == 2
        assert ledger.available_for_product(product) == 3

    def test_conflict_after_max_retries(self, product, monkeypatch, caplog):
        claim = OrderCommits._claim_batches.__func__
        calls = []

        def always_racing(cls, deductions):
            calls.append(1)
            Batch.objects.filter(pk=deductions[0].batch_id).update(version=F('version') + 1)
            return claim(cls, deductions)

        monkeypatch.setattr(OrderCommits, '_claim_batches', classmethod(always_racing))

        with caplog.at_level(logging.WARNING, logger='lotman'):
            with pytest.raises(LedgerError) as exc:
                ledger.commit(OrderDraft(lines=[LineDraft(product, 3)]))

        assert exc.value.code == 'CONFLICT'
        assert exc.value.is_retryable
        assert exc.value.data['attempts'] == 3
        assert len(calls) == 3
        assert Order.objects.count() == 0
        assert not Movement.objects.filter(kind=MovementKind.SALE).exists()
        assert ledger.available_for_product(product) == 10
        conflicts = [r for r in caplog.records if r.getMessage() == 'ledger.commit.conflict']
        assert len(conflicts) == 3

    def test_retry_count_from_settings(self, product, monkeypatch, settings):
        settings.LOTMAN = {'COMMIT_MAX_RETRIES': 1}
        claim = OrderCommits._claim_batches.__func__
        calls = []

        def always_racing(cls, deductions):
            calls.append(1)
            Batch.objects.filter(pk=deductions[0].batch_id).update(version=F('version') + 1)
            return claim(cls, deductions)

        monkeypatch.setattr(OrderCommits, '_claim_batches', classmethod(always_racing))

        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[LineDraft(product, 3)]))

        assert exc.value.code == 'CONFLICT'
        assert len(calls) == 1

    def test_serialization_failure_is_retried(self, product, monkeypatch):
        commit_once = OrderCommits._commit_once.__func__
        calls = []

        def locked_once(cls, draft, user):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError('database is locked')
            return commit_once(cls, draft, user)

        monkeypatch.setattr(OrderCommits, '_commit_once', classmethod(locked_once))

        order = ledger.commit(OrderDraft(lines=[LineDraft(product, 2)]))

        assert len(calls) == 2
        assert order.pk is not None

    def test_locked_read_while_planning_is_retried(self, product, monkeypatch):
        for_product = Batch.objects.for_product
        calls = []

        def locked_once(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError('database is locked')
            return for_product(*args, **kwargs)

        monkeypatch.setattr(Batch.objects, 'for_product', locked_once)

        order = ledger.commit(OrderDraft(lines=[LineDraft(product, 2)]))

        assert len(calls) == 2
        assert Order.objects.filter(pk=order.pk).exists()

    def test_business_rejection_not_retried(self, product, monkeypatch):
        commit_once = OrderCommits._commit_once.__func__
        calls = []

        def counting(cls, draft, user):
            calls.append(1)
            return commit_once(cls, draft, user)

        monkeypatch.setattr(OrderCommits, '_commit_once', classmethod(counting))

        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[LineDraft(product, 50)]))

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert len(calls) == 1


class TestUnavailable:

    def test_store_fault_surfaces_as_unavailable(self, product, monkeypatch):
        def unreachable(cls, draft, user):
            raise OperationalError('could not connect to server: Connection refused')

        monkeypatch.setattr(OrderCommits, '_commit_once', classmethod(unreachable))

        with pytest.raises(LedgerError) as exc:
            ledger.commit(OrderDraft(lines=[LineDraft(product, 1)]))

        assert exc.value.code == 'UNAVAILABLE'
        assert exc.value.is_retryable
        assert isinstance(exc.value.__cause__, OperationalError)


@pytest.mark.skipif(
    connection.vendor != 'postgresql',
    reason='Needs row-level locking (PostgreSQL)',
)
@pytest.mark.django_db(transaction=True)
class TestConcurrentCommits:

    def test_no_overselling(self, product):
        results = []
        barrier = threading.Barrier(8)

        def buy():
            try:
                barrier.wait()
                ledger.commit(OrderDraft(lines=[LineDraft(product.pk, 2)]))
                results.append('ok')
            except LedgerError as exc:
                results.append(exc.code)
            finally:
                connection.close()

        threads = [threading.Thread(target=buy) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count('ok') == 5
        assert set(results) <= {'ok', 'INSUFFICIENT_STOCK', 'CONFLICT'}
        assert ledger.available_for_product(product) == 0
        sold = sum(-m.quantity for m in Movement.objects.filter(kind=MovementKind.SALE))
        assert sold == 10
