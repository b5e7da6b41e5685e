"""
Order lifecycle operations.

Every status change is written with a conditional ``UPDATE`` that names the
state it expects to replace, so of two concurrent callers exactly one wins
and the other gets ``OrderStateError``. Timeline entries and notifications
follow the winning write.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from api.exceptions import GatewayUnavailable, OrderStateError
from coupons.service import confirm_usage, release_usage
from notifications.whatsapp import notify_after_commit, notify_order_cancelled
from payment.gateway import GatewayError, get_gateway
from payment.models import StoreSettings
from refunds.service import refund_cancelled_order
from .models import Order
from .pricing import build_quote
from .state import check_order_transition

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

SORTABLE_FIELDS = {
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
    'finalAmount': 'final_amount',
    'orderNumber': 'order_number',
    'customerName': 'customer_name',
    'paymentStatus': 'payment_status',
    'orderStatus': 'order_status',
}


def get_order(order_id):
    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        raise NotFound('Order not found')
    return order


def _release_coupon(order):
    if release_usage(order):
        order.record('Coupon Released', f"Usage of coupon {order.coupon_code} released")


def create_order(data, payment_method, gateway=None, now=None):
    """
    Price the cart and persist the order with its coupon slot taken.

    ``data`` holds the customer fields, ``items`` and an optional
    ``coupon_code``. Cash on delivery orders are confirmed immediately and pay
    the store's COD surcharge. Online orders are registered with the payment
    gateway; if that fails the order is cancelled and the coupon slot given
    back before ``GatewayUnavailable`` is raised.
    """
    now = now or timezone.now()
    store = StoreSettings.load()
    if not store.store_open:
        raise ValidationError('Store is currently closed. Please try again later.')

    is_cod = payment_method == 'cod'
    if not is_cod and not store.online_payment_enabled:
        raise ValidationError('Online payment is currently unavailable')

    cod_charge = store.cod_extra_charge if is_cod else ZERO
    quote = build_quote(data['items'], data.get('coupon_code'), cod_charge, now)
    if is_cod:
        reason = store.cod_block_reason(quote.final_amount - quote.cod_charge)
        if reason:
            raise ValidationError(reason)
    if quote.final_amount <= 0:
        raise ValidationError('Invalid order amount')

    with transaction.atomic():
        order = Order.objects.create(
            customer_name=data['customer_name'],
            customer_email=data['customer_email'],
            customer_phone=data['customer_phone'],
            address=data['address'],
            pincode=data.get('pincode', ''),
            notes=data.get('notes', ''),
            items=quote.snapshots(),
            subtotal=quote.subtotal,
            product_discount=quote.product_discount,
            coupon_code=quote.coupon_code,
            coupon_discount=quote.coupon_discount,
            cod_charge=quote.cod_charge,
            final_amount=quote.final_amount,
            payment_method=payment_method,
            payment_status='pending',
            order_status='confirmed' if is_cod else 'pending',
            created_at=now,
        )
        if quote.coupon_code:
            confirm_usage(quote.coupon_code, order=order)
        order.record('Order Placed', f"Order placed with {order.get_payment_method_display()}")
        if is_cod:
            order.record('Order Confirmed', 'Cash on Delivery order confirmed')

    logger.info("Order %s created (%s, %s)", order.order_number, payment_method, order.final_amount)

    if not is_cod:
        attach_gateway_order(order, gateway)
    return order


def attach_gateway_order(order, gateway=None):
    gateway = gateway or get_gateway()
    try:
        gateway_order_id = gateway.create_intent(
            order.final_amount,
            settings.PAYMENT_GATEWAY.get('CURRENCY', 'INR'),
            {'order_id': order.pk, 'order_number': order.order_number},
            idempotency_key=str(order.pk),
        )
    except GatewayError as e:
        logger.error("Payment gateway order creation failed for %s", order.order_number, exc_info=True)
        _fail_payment(order, f"Payment gateway unavailable: {e}")
        raise GatewayUnavailable()

    Order.objects.filter(pk=order.pk).update(gateway_order_id=gateway_order_id, updated_at=timezone.now())
    order.gateway_order_id = gateway_order_id
    order.record('Payment Initiated', f"Gateway order {gateway_order_id} created")
    return order


def _fail_payment(order, reason):
    """pending -> failed; the order is cancelled by the system and its coupon slot released."""
    now = timezone.now()
    with transaction.atomic():
        updated = Order.objects.filter(pk=order.pk, payment_status='pending').exclude(
            order_status='cancelled').update(
            payment_status='failed',
            order_status='cancelled',
            cancelled_by='system',
            cancel_reason=reason,
            cancelled_at=now,
            updated_at=now,
        )
        if not updated:
            return False
        order.refresh_from_db()
        order.record('Payment Failed', reason)
        _release_coupon(order)
    logger.warning("Payment failed for order %s: %s", order.order_number, reason)
    return True


def verify_payment(order_id, gateway_order_id, gateway_payment_id, signature, gateway=None):
    order = get_order(order_id)
    if order.is_cod:
        raise ValidationError('Cash on Delivery orders do not need payment verification')

    if order.payment_status == 'success':
        if order.gateway_payment_id == gateway_payment_id:
            return order
        raise OrderStateError('Payment for this order has already been verified')
    if order.payment_status != 'pending':
        raise OrderStateError(f"Payment is already {order.payment_status}")

    gateway = gateway or get_gateway()
    expected_ref = order.gateway_order_id
    if not expected_ref or gateway_order_id != expected_ref or not gateway.verify_signature(
            expected_ref, gateway_payment_id, signature):
        _fail_payment(order, 'Invalid payment signature')
        raise ValidationError('Invalid payment signature')

    now = timezone.now()
    with transaction.atomic():
        updated = Order.objects.filter(pk=order.pk, payment_status='pending').exclude(
            order_status='cancelled').update(
            payment_status='success',
            order_status='confirmed',
            gateway_payment_id=gateway_payment_id,
            gateway_signature=signature,
            updated_at=now,
        )
        if not updated:
            order.refresh_from_db()
            if order.payment_status == 'success' and order.gateway_payment_id == gateway_payment_id:
                return order
            raise OrderStateError(f"Payment is already {order.payment_status}")
        order.refresh_from_db()
        order.record('Payment Successful', f"Payment {gateway_payment_id} verified")
        order.record('Order Confirmed', 'Order confirmed after successful payment')

    logger.info("Payment verified for order %s", order.order_number)
    return order


def mark_payment_failed(order_id, reason=None):
    """Customer abandoned or the gateway reported failure. No-op unless payment is still pending."""
    order = get_order(order_id)
    if order.is_cod:
        raise ValidationError('Cash on Delivery orders have no online payment')
    if _fail_payment(order, reason or 'Payment failed or was cancelled'):
        order.refresh_from_db()
    return order


def cancel_order(order_id, reason, cancelled_by='customer', now=None, gateway=None):
    """
    Cancel an order and settle what it holds.

    Customers may only cancel inside the cancellation window; admins are held
    to the fulfilment rules alone. The coupon slot is released, an unpaid
    payment becomes ``cancelled`` and a captured online payment is handed to
    the refund coordinator.
    """
    now = now or timezone.now()
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Please provide a cancellation reason')

    order = get_order(order_id)
    if cancelled_by == 'customer':
        blocked = order.cancellation_block_reason(now)
        if blocked:
            raise OrderStateError(f"Order cannot be cancelled: {blocked}")
    else:
        if order.payment_status == 'refunded':
            raise OrderStateError('Order cannot be cancelled: Order has already been refunded')
        check_order_transition(order.order_status, 'cancelled')

    updates = {
        'order_status': 'cancelled',
        'cancelled_by': cancelled_by,
        'cancel_reason': reason,
        'cancelled_at': now,
        'updated_at': now,
    }
    if order.payment_status == 'pending':
        updates['payment_status'] = 'cancelled'

    with transaction.atomic():
        updated = Order.objects.filter(
            pk=order.pk,
            order_status=order.order_status,
            payment_status=order.payment_status,
        ).update(**updates)
        if not updated:
            raise OrderStateError('Order was updated by another request. Please refresh and try again.')
        order.refresh_from_db()
        order.record('Order Cancelled', f"Order cancelled by {cancelled_by}. Reason: {reason}")
        _release_coupon(order)

    logger.info("Order %s cancelled by %s", order.order_number, cancelled_by)

    if order.payment_status == 'success' and not order.is_cod:
        order = refund_cancelled_order(order, reason, gateway=gateway, now=now)

    notify_after_commit(notify_order_cancelled, order)
    return order


def update_order_status(order_id, new_status, tracking_number='', now=None, gateway=None):
    """Admin fulfilment update. Cancelling goes through ``cancel_order``."""
    if new_status not in dict(Order.ORDER_STATUS_CHOICES):
        raise ValidationError('Invalid order status')
    if new_status == 'cancelled':
        return cancel_order(order_id, 'Cancelled by admin', cancelled_by='admin', now=now, gateway=gateway)

    now = now or timezone.now()
    order = get_order(order_id)
    check_order_transition(order.order_status, new_status)
    if new_status in ('shipped', 'delivered') and not order.is_cod and order.payment_status != 'success':
        raise OrderStateError('Payment has not been received for this order')

    updates = {'order_status': new_status, 'updated_at': now}
    description = f"Order status changed from {order.order_status} to {new_status}"
    if new_status == 'shipped':
        updates['shipped_at'] = now
        if tracking_number:
            updates['tracking_number'] = tracking_number
            description += f". Tracking number: {tracking_number}"
    elif new_status == 'delivered':
        updates['delivered_at'] = now
    collect_cash = new_status == 'delivered' and order.is_cod and order.payment_status == 'pending'
    if collect_cash:
        updates['payment_status'] = 'success'

    with transaction.atomic():
        updated = Order.objects.filter(
            pk=order.pk,
            order_status=order.order_status,
            payment_status=order.payment_status,
        ).update(**updates)
        if not updated:
            raise OrderStateError('Order was updated by another request. Please refresh and try again.')
        order.refresh_from_db()
        order.record(f"Order {new_status.capitalize()}", description)
        if collect_cash:
            order.record('Payment Collected', 'Cash collected on delivery')

    logger.info("Order %s status updated to %s", order.order_number, new_status)
    return order


def list_orders(filters):
    """Admin listing. ``filters`` uses the query-string names of the admin screen."""
    queryset = Order.objects.all()
    if filters.get('paymentStatus'):
        queryset = queryset.filter(payment_status=filters['paymentStatus'])
    if filters.get('orderStatus'):
        queryset = queryset.filter(order_status=filters['orderStatus'])
    if filters.get('refundStatus'):
        queryset = queryset.filter(refund_status=filters['refundStatus'])
    if filters.get('paymentMethod'):
        queryset = queryset.filter(payment_method=filters['paymentMethod'])

    search = (filters.get('search') or '').strip()
    if search:
        queryset = queryset.filter(
            Q(customer_name__icontains=search)
            | Q(customer_email__icontains=search)
            | Q(customer_phone__icontains=search)
            | Q(gateway_order_id__icontains=search)
            | Q(gateway_payment_id__icontains=search)
            | Q(order_number__icontains=search)
        )

    sort_field = SORTABLE_FIELDS.get(filters.get('sortBy'), 'created_at')
    if filters.get('order') != 'asc':
        sort_field = f"-{sort_field}"
    return queryset.order_by(sort_field, '-id')


def customer_orders(email):
    email = (email or '').strip()
    if not email:
        raise ValidationError('Email is required')
    return Order.objects.filter(customer_email__iexact=email).order_by('-created_at')


def get_statistics(now=None):
    now = timezone.localtime(now or timezone.now())
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_month = start_of_day.replace(day=1)

    paid = Order.objects.filter(payment_status='success')
    totals = Order.objects.aggregate(
        total_orders=Count('id'),
        total_product_discount=Sum('product_discount'),
        total_coupon_discount=Sum('coupon_discount'),
    )
    refunded = Order.objects.filter(payment_status='refunded').aggregate(
        total_refunds=Count('id'),
        refunded_amount=Sum('refund_amount'),
    )

    def counts(field, choices):
        found = dict(Order.objects.values_list(field).annotate(total=Count('id')).order_by())
        return {key: found.get(key, 0) for key, _ in choices}

    product_discount = totals['total_product_discount'] or ZERO
    coupon_discount = totals['total_coupon_discount'] or ZERO
    return {
        'total_orders': totals['total_orders'],
        'total_revenue': paid.aggregate(total=Sum('final_amount'))['total'] or ZERO,
        'payment_status': counts('payment_status', Order.PAYMENT_STATUS_CHOICES),
        'order_status': counts('order_status', Order.ORDER_STATUS_CHOICES),
        'total_product_discount': product_discount,
        'total_coupon_discount': coupon_discount,
        'total_discount_given': product_discount + coupon_discount,
        'total_refunds': refunded['total_refunds'],
        'refunded_amount': refunded['refunded_amount'] or ZERO,
        'today_orders': Order.objects.filter(created_at__gte=start_of_day).count(),
        'monthly_revenue': paid.filter(created_at__gte=start_of_month).aggregate(
            total=Sum('final_amount'))['total'] or ZERO,
    }
