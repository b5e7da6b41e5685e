from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from api.exceptions import GatewayUnavailable, OrderStateError
from coupons.models import Coupon
from orders.models import Order
from orders.services import (
    cancel_order,
    create_order,
    get_statistics,
    mark_payment_failed,
    update_order_status,
    verify_payment,
)
from payment.models import StoreSettings

pytestmark = pytest.mark.django_db


@pytest.fixture
def checkout(make_product):
    ring = make_product(name='Ring', category='rings', price='1000')

    def data(**kwargs):
        payload = {
            'customer_name': 'Asha Verma',
            'customer_email': 'asha@example.com',
            'customer_phone': '9876543210',
            'address': '12 MG Road, Jaipur',
            'items': [{'product_id': ring.pk, 'quantity': 1}],
        }
        payload.update(kwargs)
        return payload
    return data


def events(order):
    return list(order.timeline.values_list('event', flat=True))


class TestCreateOrder:
    def test_online_order_registers_with_gateway(self, checkout, gateway):
        order = create_order(checkout(), 'razorpay')
        assert order.order_number.startswith('ELG-')
        assert len(order.order_number) == 12
        assert order.payment_status == 'pending'
        assert order.order_status == 'pending'
        assert order.gateway_order_id == f"order_fake_{order.pk}"
        assert ('create_intent', Decimal('1000.00'), str(order.pk)) in gateway.calls

    def test_coupon_slot_taken_at_creation(self, checkout, make_coupon):
        make_coupon(code='FLAT100', discount_type='flat', discount_value='100', usage_limit=10)
        order = create_order(checkout(coupon_code='flat100'), 'razorpay')
        assert order.coupon_code == 'FLAT100'
        assert order.final_amount == Decimal('900.00')
        assert Coupon.objects.get(code='FLAT100').used_count == 1

    def test_gateway_failure_cancels_order_and_releases_coupon(self, checkout, make_coupon, gateway):
        make_coupon(code='FLAT100', discount_type='flat', discount_value='100')
        gateway.fail_intents = True
        with pytest.raises(GatewayUnavailable):
            create_order(checkout(coupon_code='FLAT100'), 'razorpay')

        order = Order.objects.get()
        assert order.payment_status == 'failed'
        assert order.order_status == 'cancelled'
        assert order.cancelled_by == 'system'
        assert Coupon.objects.get(code='FLAT100').used_count == 0

    def test_cod_order_confirmed_with_surcharge(self, checkout):
        StoreSettings.objects.update_or_create(key='store_settings', defaults={'cod_extra_charge': 49})
        order = create_order(checkout(), 'cod')
        assert order.order_status == 'confirmed'
        assert order.payment_status == 'pending'
        assert order.cod_charge == Decimal('49.00')
        assert order.final_amount == Decimal('1049.00')

    def test_cod_limits(self, checkout):
        StoreSettings.objects.update_or_create(key='store_settings', defaults={'cod_maximum_order': 500})
        with pytest.raises(ValidationError, match='Maximum order amount for COD'):
            create_order(checkout(), 'cod')

    def test_closed_store(self, checkout):
        StoreSettings.objects.update_or_create(key='store_settings', defaults={'store_open': False})
        with pytest.raises(ValidationError):
            create_order(checkout(), 'razorpay')
        assert not Order.objects.exists()


class TestVerifyPayment:
    def test_valid_signature_confirms(self, checkout):
        order = create_order(checkout(), 'razorpay')
        order = verify_payment(order.pk, order.gateway_order_id, 'pay_1', 'valid-signature')
        assert order.payment_status == 'success'
        assert order.order_status == 'confirmed'
        assert 'Payment Successful' in events(order)

    def test_repeat_verification_is_idempotent(self, checkout):
        order = create_order(checkout(), 'razorpay')
        verify_payment(order.pk, order.gateway_order_id, 'pay_1', 'valid-signature')
        again = verify_payment(order.pk, order.gateway_order_id, 'pay_1', 'valid-signature')
        assert again.payment_status == 'success'
        assert events(again).count('Payment Successful') == 1

    def test_bad_signature_fails_and_cancels(self, checkout, make_coupon):
        make_coupon(code='FLAT100', discount_type='flat', discount_value='100')
        order = create_order(checkout(coupon_code='FLAT100'), 'razorpay')
        with pytest.raises(ValidationError, match='Invalid payment signature'):
            verify_payment(order.pk, order.gateway_order_id, 'pay_1', 'forged')

        order.refresh_from_db()
        assert order.payment_status == 'failed'
        assert order.order_status == 'cancelled'
        assert Coupon.objects.get(code='FLAT100').used_count == 0

    def test_order_without_gateway_reference_cannot_be_verified(self, make_order, gateway):
        order = make_order(gateway_order_id='')
        with pytest.raises(ValidationError, match='Invalid payment signature'):
            verify_payment(order.pk, 'order_chosen_by_client', 'pay_1', 'valid-signature')

        order.refresh_from_db()
        assert order.payment_status == 'failed'
        assert order.order_status == 'cancelled'
        assert not [call for call in gateway.calls if call[0] == 'verify_signature']

    def test_mark_payment_failed_only_from_pending(self, checkout, paid_order):
        order = create_order(checkout(), 'razorpay')
        assert mark_payment_failed(order.pk).payment_status == 'failed'
        assert mark_payment_failed(paid_order.pk).payment_status == 'success'


class TestCancelOrder:
    def test_customer_cancels_unpaid_order(self, make_order):
        order = cancel_order(make_order().pk, 'Ordered by mistake')
        assert order.order_status == 'cancelled'
        assert order.payment_status == 'cancelled'
        assert order.cancelled_by == 'customer'
        assert order.cancel_reason == 'Ordered by mistake'
        assert order.can_cancel is False
        assert order.refund_status == 'none'

    def test_window_expired(self, make_order, hours_ago):
        order = make_order(created_at=hours_ago(25))
        assert order.can_cancel is False
        with pytest.raises(OrderStateError, match='24 hours'):
            cancel_order(order.pk, 'Too late')

    def test_same_order_at_t_plus_25h(self, make_order):
        order = make_order()
        assert order.can_cancel_at(order.created_at + timedelta(hours=1)) is True
        assert order.can_cancel_at(order.created_at + timedelta(hours=25)) is False

    def test_shipped_order_cannot_be_cancelled(self, make_order):
        order = make_order(order_status='shipped', payment_status='success')
        with pytest.raises(OrderStateError, match='shipped'):
            cancel_order(order.pk, 'Changed my mind')

    def test_reason_required(self, make_order):
        with pytest.raises(ValidationError):
            cancel_order(make_order().pk, '  ')

    def test_second_cancel_rejected(self, make_order):
        order = make_order()
        cancel_order(order.pk, 'first')
        with pytest.raises(OrderStateError, match='already cancelled'):
            cancel_order(order.pk, 'second')

    def test_paid_order_refund_pending(self, paid_order, gateway):
        order = cancel_order(paid_order.pk, 'Found a better price')
        assert order.order_status == 'cancelled'
        assert order.refund_status == 'pending'
        assert order.refund_id == f"rfnd_{order.pk}"
        assert order.refund_amount == order.final_amount
        assert ('refund', 'pay_abc', order.final_amount, str(order.pk)) in gateway.calls
        assert 'Refund Initiated' in events(order)

    def test_paid_order_refund_pending_even_when_gateway_throws(self, paid_order, gateway):
        gateway.fail_refunds = True
        order = cancel_order(paid_order.pk, 'Found a better price')
        assert order.order_status == 'cancelled'
        assert order.refund_status == 'pending'
        assert order.refund_id == ''
        assert order.refund_error == 'refund service unavailable'
        assert 'Refund Failed' in events(order)

    def test_unexpected_gateway_exception_is_recorded(self, paid_order, gateway, monkeypatch):
        def refund(self, payment_ref, amount, metadata, idempotency_key=None):
            raise ConnectionResetError('socket reset')

        monkeypatch.setattr(gateway, 'refund', refund)
        scheduled = []
        monkeypatch.setattr('orders.services.notify_after_commit',
                            lambda func, *args: scheduled.append(func.__name__))

        order = cancel_order(paid_order.pk, 'changed my mind')
        assert order.order_status == 'cancelled'
        assert order.refund_status == 'pending'
        assert order.refund_error == 'socket reset'
        assert 'Refund Failed' in events(order)
        assert scheduled == ['notify_order_cancelled']

    def test_cod_order_is_not_refunded(self, make_order, gateway):
        order = cancel_order(make_order(payment_method='cod', order_status='confirmed').pk, 'No longer needed')
        assert order.refund_status == 'none'
        assert not [call for call in gateway.calls if call[0] == 'refund']

    def test_admin_cancel_ignores_window(self, make_order, hours_ago):
        order = make_order(created_at=hours_ago(72), order_status='processing')
        order = update_order_status(order.pk, 'cancelled')
        assert order.order_status == 'cancelled'
        assert order.cancelled_by == 'admin'


class TestUpdateOrderStatus:
    def test_ship_with_tracking_number(self, paid_order):
        order = update_order_status(paid_order.pk, 'shipped', 'TRK123')
        assert order.order_status == 'shipped'
        assert order.tracking_number == 'TRK123'
        assert order.shipped_at is not None
        assert order.can_cancel is False

    def test_cod_delivery_collects_payment(self, make_order):
        order = make_order(payment_method='cod', order_status='shipped')
        order = update_order_status(order.pk, 'delivered')
        assert order.payment_status == 'success'
        assert order.delivered_at is not None
        assert 'Payment Collected' in events(order)

    def test_unpaid_online_order_cannot_ship(self, make_order):
        order = make_order(order_status='confirmed')
        with pytest.raises(OrderStateError):
            update_order_status(order.pk, 'shipped')

    def test_illegal_jump(self, paid_order):
        with pytest.raises(OrderStateError):
            update_order_status(paid_order.pk, 'delivered')


def test_statistics(make_order):
    make_order(payment_status='success', order_status='delivered', final_amount=Decimal('900'),
               product_discount=Decimal('50'), coupon_discount=Decimal('50'))
    make_order(payment_status='refunded', order_status='cancelled', final_amount=Decimal('500'),
               refund_status='completed', refund_amount=Decimal('500'), product_discount=Decimal('20'))
    make_order(payment_status='pending', created_at=timezone.now() - timedelta(days=40))

    stats = get_statistics()
    assert stats['total_orders'] == 3
    assert stats['total_revenue'] == Decimal('900')
    assert stats['payment_status']['success'] == 1
    assert stats['payment_status']['failed'] == 0
    assert stats['order_status']['cancelled'] == 1
    assert stats['total_product_discount'] == Decimal('70')
    assert stats['total_coupon_discount'] == Decimal('50')
    assert stats['total_discount_given'] == Decimal('120')
    assert stats['total_refunds'] == 1
    assert stats['refunded_amount'] == Decimal('500')
    assert stats['today_orders'] == 2
