from datetime import timedelta
from unittest import mock

import pytest
from django.core.management import call_command
from django.utils import timezone

from coupons.models import Coupon
from coupons.service import confirm_usage
from orders.cleanup import AUTO_CANCEL_REASON, cancel_pending_orders
from orders.models import Order

pytestmark = pytest.mark.django_db


@pytest.fixture
def three_orders(make_order):
    now = timezone.now()
    return (
        make_order(created_at=now - timedelta(days=3)),
        make_order(created_at=now - timedelta(days=1)),
        make_order(created_at=now - timedelta(days=3), order_status='cancelled', payment_status='cancelled',
                   cancelled_by='customer', cancel_reason='Changed my mind'),
    )


def test_cancels_only_the_stale_order(three_orders, gateway):
    stale, recent, cancelled = three_orders
    result = cancel_pending_orders()

    assert (result.found, result.cancelled, result.failed) == (1, 1, 0)

    stale.refresh_from_db()
    assert stale.order_status == 'cancelled'
    assert stale.payment_status == 'failed'
    assert stale.cancelled_by == 'system'
    assert stale.cancel_reason == AUTO_CANCEL_REASON
    assert stale.can_cancel is False

    recent_after = Order.objects.get(pk=recent.pk)
    cancelled_after = Order.objects.get(pk=cancelled.pk)
    assert (recent_after.order_status, recent_after.payment_status) == ('pending', 'pending')
    assert recent_after.updated_at == recent.updated_at
    assert cancelled_after.cancel_reason == 'Changed my mind'
    assert cancelled_after.updated_at == cancelled.updated_at
    assert not gateway.calls


def test_releases_coupon(make_order, make_coupon):
    make_coupon(usage_limit=1)
    order = make_order(created_at=timezone.now() - timedelta(days=3), coupon_code='SAVE10')
    confirm_usage('SAVE10', order=order)

    cancel_pending_orders()
    assert Coupon.objects.get(code='SAVE10').used_count == 0


def test_cod_orders_are_not_swept(make_order):
    make_order(created_at=timezone.now() - timedelta(days=5), payment_method='cod', order_status='confirmed')
    assert cancel_pending_orders().found == 0


def test_one_failure_does_not_stop_the_sweep(make_order):
    old = timezone.now() - timedelta(days=3)
    first, second = make_order(created_at=old - timedelta(hours=1)), make_order(created_at=old)

    with mock.patch('orders.cleanup.release_usage', side_effect=[RuntimeError('boom'), False]):
        result = cancel_pending_orders()

    assert (result.found, result.cancelled, result.failed) == (2, 1, 1)
    assert result.errors[0]['order_number'] == first.order_number
    first.refresh_from_db()
    second.refresh_from_db()
    assert first.order_status == 'pending'
    assert second.order_status == 'cancelled'


def test_management_command(three_orders, capsys):
    call_command('cancel_stale_orders')
    assert 'Cancelled: 1' in capsys.readouterr().out
