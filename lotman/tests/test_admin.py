"""
Admin smoke tests: read-only changelists and status actions.
"""

import pytest
from django.urls import reverse

from lotman import ledger
from lotman.models import Order, OrderStatus


pytestmark = pytest.mark.django_db


class TestChangelists:

    @pytest.mark.parametrize('model', ['product', 'batch', 'movement', 'order'])
    def test_changelist_renders(self, admin_client, product, make_order, model):
        make_order((product, 2))

        response = admin_client.get(reverse(f'admin:lotman_{model}_changelist'))

        assert response.status_code == 200

    def test_batch_is_read_only(self, admin_client, two_lots):
        b1, _ = two_lots

        assert admin_client.get(reverse('admin:lotman_batch_add')).status_code == 403
        response = admin_client.post(
            reverse('admin:lotman_batch_change', args=[b1.pk]),
            {'unit_cost': '1.00'},
        )
        assert response.status_code == 403


class TestOrderActions:

    def _act(self, client, action, *orders):
        return client.post(reverse('admin:lotman_order_changelist'), {
            'action': action,
            '_selected_action': [o.pk for o in orders],
        })

    def test_mark_sent(self, admin_client, product, make_order):
        order = make_order((product, 2))

        response = self._act(admin_client, 'mark_sent', order)

        assert response.status_code == 302
        assert Order.objects.get(pk=order.pk).status == OrderStatus.SENT

    def test_cancel_releases_stock(self, admin_client, product, make_order):
        order = make_order((product, 4))

        self._act(admin_client, 'mark_cancelled', order)

        assert Order.objects.get(pk=order.pk).status == OrderStatus.CANCELLED
        assert ledger.available_for_product(product) == 10

    def test_invalid_transition_skipped(self, admin_client, product, make_order):
        fresh = make_order((product, 1))
        shipped = make_order((product, 1))
        ledger.transition(shipped, 'sent')

        self._act(admin_client, 'mark_delivered', fresh, shipped)

        assert Order.objects.get(pk=fresh.pk).status == OrderStatus.PROCESSING
        assert Order.objects.get(pk=shipped.pk).status == OrderStatus.DELIVERED
