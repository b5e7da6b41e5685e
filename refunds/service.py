"""
Refund coordination against the payment gateway.

A refund is claimed with one conditional ``UPDATE`` that both checks that no
refund is already recorded for the order and sets ``refund_status=pending``.
Only the caller whose update matched a row talks to the gateway, so two
concurrent cancellations can never refund twice. Whatever the gateway
answers, the order stays ``pending``: a success records the gateway refund
id, a failure records the error for manual follow-up.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from api.exceptions import OrderStateError
from coupons.service import release_usage
from notifications.whatsapp import (
    notify_admin_refund_status,
    notify_after_commit,
    notify_refund_status,
)
from orders.models import Order
from orders.state import REFUND_BLOCKING, check_payment_transition, check_refund_transition
from payment.gateway import get_gateway

logger = logging.getLogger(__name__)

MISSING_PAYMENT_ID = 'Payment ID not found. Manual refund required.'


def _get_order(order_id):
    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        raise NotFound('Order not found')
    return order


def _refundable(queryset):
    return (
        queryset.filter(payment_status='success')
        .exclude(payment_method='cod')
        .exclude(refund_status__in=REFUND_BLOCKING)
    )


def check_refundable(order, amount=None):
    """Validate a refund request and return the amount to refund."""
    if order.payment_status != 'success':
        raise OrderStateError(
            f"Only successful prepaid orders can be refunded. Current payment status: {order.payment_status}")
    if order.is_cod:
        raise OrderStateError('Cash on Delivery orders cannot be refunded through the payment gateway')
    if order.refund_status in REFUND_BLOCKING:
        raise OrderStateError(f"Refund already {order.refund_status}")
    if not order.gateway_payment_id:
        raise ValidationError('Payment ID not found. Cannot process refund for this order.')

    amount = order.final_amount if amount is None else Decimal(amount)
    if amount <= 0:
        raise ValidationError('Refund amount must be greater than zero')
    if amount > order.final_amount:
        raise ValidationError(f"Refund amount cannot exceed the order amount of ₹{order.final_amount}")
    return amount


def _call_gateway(order, amount, reason, gateway=None):
    gateway = gateway or get_gateway()
    try:
        result = gateway.refund(
            order.gateway_payment_id,
            amount,
            {'order_id': order.pk, 'order_number': order.order_number, 'reason': reason},
            idempotency_key=str(order.pk),
        )
    except Exception as e:
        # Any gateway fault leaves the claim pending for manual follow-up
        logger.exception("Refund for order %s failed at the gateway", order.order_number)
        Order.objects.filter(pk=order.pk).update(refund_error=str(e), updated_at=timezone.now())
        order.record('Refund Failed', 'Automatic refund failed. Manual processing required.')
    else:
        Order.objects.filter(pk=order.pk).update(
            refund_id=result.get('refund_id', ''), refund_error='', updated_at=timezone.now())
        order.record('Refund Initiated', f"Refund of ₹{amount} initiated")
        logger.info("Refund %s initiated for order %s", result.get('refund_id'), order.order_number)

    order.refresh_from_db()
    return order


def request_refund(order_id, amount=None, reason=None, gateway=None, now=None):
    """
    Admin refund of a paid online order, full unless ``amount`` is given.

    The order is cancelled as part of the same claim, since a refunded order
    can't stay in fulfilment.
    """
    now = now or timezone.now()
    order = _get_order(order_id)
    amount = check_refundable(order, amount)
    reason = (reason or '').strip() or 'Refund requested by admin'

    updates = {
        'refund_status': 'pending',
        'refund_amount': amount,
        'refund_reason': reason,
        'refund_initiated_at': now,
        'refund_error': '',
        'order_status': 'cancelled',
        'updated_at': now,
    }
    newly_cancelled = order.order_status != 'cancelled'
    if newly_cancelled:
        updates.update(cancelled_by='admin', cancel_reason=reason, cancelled_at=now)

    with transaction.atomic():
        claimed = _refundable(Order.objects.filter(pk=order.pk, order_status=order.order_status)).update(
            **updates)
        if not claimed:
            raise OrderStateError('A refund for this order is already in progress')
        order.refresh_from_db()
        if newly_cancelled:
            order.record('Order Cancelled', f"Order cancelled by admin. Reason: {reason}")
            if release_usage(order):
                order.record('Coupon Released', f"Usage of coupon {order.coupon_code} released")

    logger.info("Refund of %s claimed for order %s", amount, order.order_number)
    return _call_gateway(order, amount, reason, gateway)


def refund_cancelled_order(order, reason, gateway=None, now=None):
    """
    Refund the full amount of a paid online order that has just been cancelled.

    Returns the order unchanged if another caller already holds the refund.
    """
    now = now or timezone.now()
    reason = reason or 'Customer requested cancellation'
    amount = order.final_amount

    with transaction.atomic():
        claimed = _refundable(Order.objects.filter(pk=order.pk)).update(
            refund_status='pending',
            refund_amount=amount,
            refund_reason=reason,
            refund_initiated_at=now,
            refund_error='' if order.gateway_payment_id else MISSING_PAYMENT_ID,
            updated_at=now,
        )
        if not claimed:
            logger.info("Refund for order %s already claimed", order.order_number)
            order.refresh_from_db()
            return order
        order.refresh_from_db()

    if not order.gateway_payment_id:
        logger.error("Order %s was paid but has no gateway payment id", order.order_number)
        order.record('Refund Failed', MISSING_PAYMENT_ID)
        return order
    return _call_gateway(order, amount, reason, gateway)


def update_refund_status(order_id, new_status, now=None):
    """
    Admin progression of a refund.

    ``completed`` marks the payment refunded. Moving ``completed`` back to
    ``processing`` undoes that once, for operator mistakes, and returns the
    payment to ``success``.
    """
    if new_status not in dict(Order.REFUND_STATUS_CHOICES):
        raise ValidationError('Invalid refund status')

    now = now or timezone.now()
    order = _get_order(order_id)
    old_status = order.refund_status
    check_refund_transition(old_status, new_status, order.refund_completion_reverted)
    undo = old_status == 'completed' and new_status == 'processing'

    updates = {'refund_status': new_status, 'updated_at': now}
    if new_status == 'completed':
        check_payment_transition(order.payment_status, 'refunded')
        updates.update(payment_status='refunded', refund_date=now)
    elif undo:
        updates.update(payment_status='success', refund_date=None, refund_completion_reverted=True)
    if order.refund_amount is None:
        updates['refund_amount'] = order.final_amount

    with transaction.atomic():
        updated = Order.objects.filter(
            pk=order.pk,
            refund_status=old_status,
            payment_status=order.payment_status,
        ).update(**updates)
        if not updated:
            raise OrderStateError('Order was updated by another request. Please refresh and try again.')
        order.refresh_from_db()
        order.record('Refund Status Updated', f"Refund status changed from {old_status} to {new_status}")
        if new_status == 'completed':
            order.record('Refund Completed', f"Refund of ₹{order.refund_amount} completed")
        elif undo:
            order.record('Refund Completion Undone',
                         'Refund completion reverted. Status changed back to processing by admin.')

    if undo:
        logger.warning("Refund completion undone for order %s, payment reverted to success",
                       order.order_number)
    else:
        logger.info("Refund status of order %s changed from %s to %s", order.order_number, old_status,
                    new_status)

    if new_status in ('processing', 'completed'):
        notify_after_commit(notify_refund_status, order, new_status)
    notify_after_commit(notify_admin_refund_status, order, old_status, new_status)
    return order
