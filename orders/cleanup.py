"""
Sweep for orders whose online payment never arrived.

Orders still waiting for payment two days after creation are cancelled by
the system. Cash on delivery orders are paid at the door and are never
swept. Nothing was captured, so no refund is attempted; the coupon slot
is released the same way a normal cancellation releases it. Each order is
handled on its own and a failure is collected without stopping the sweep.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from coupons.service import release_usage
from .models import Order

logger = logging.getLogger(__name__)

STALE_AFTER = timedelta(days=2)
STALE_PAYMENT_STATUSES = ('pending', 'created')
AUTO_CANCEL_REASON = 'Automatically cancelled - Payment not received within 2 days'


@dataclass
class CleanupResult:
    found: int = 0
    cancelled: int = 0
    failed: int = 0
    errors: list = field(default_factory=list)


def stale_orders(now=None):
    now = now or timezone.now()
    return (
        Order.objects.filter(payment_status__in=STALE_PAYMENT_STATUSES, created_at__lt=now - STALE_AFTER)
        .exclude(order_status='cancelled')
        .exclude(payment_method='cod')
        .order_by('created_at')
    )


def _cancel_stale(order, now):
    with transaction.atomic():
        # Only touch the order if it is still in the state we selected it in
        updated = Order.objects.filter(
            pk=order.pk,
            payment_status__in=STALE_PAYMENT_STATUSES,
        ).exclude(order_status='cancelled').update(
            order_status='cancelled',
            payment_status='failed',
            cancelled_by='system',
            cancel_reason=AUTO_CANCEL_REASON,
            cancelled_at=now,
            updated_at=now,
        )
        if not updated:
            return False
        order.refresh_from_db()
        order.record('Order Cancelled', AUTO_CANCEL_REASON)
        if release_usage(order):
            order.record('Coupon Released', f"Usage of coupon {order.coupon_code} released")
    return True


def cancel_pending_orders(now=None):
    now = now or timezone.now()
    orders = list(stale_orders(now))
    result = CleanupResult(found=len(orders))

    for order in orders:
        try:
            if _cancel_stale(order, now):
                result.cancelled += 1
                logger.info("Auto-cancelled order %s (created %s)", order.order_number, order.created_at)
        except Exception as e:
            result.failed += 1
            result.errors.append({'order_id': order.pk, 'order_number': order.order_number, 'error': str(e)})
            logger.exception("Failed to cancel stale order %s", order.order_number)
    return result


def run_order_cleanup(now=None):
    logger.info("Running order cleanup")
    result = cancel_pending_orders(now)
    logger.info("Order cleanup finished: %d checked, %d cancelled, %d failed",
                result.found, result.cancelled, result.failed)
    for error in result.errors:
        logger.warning("Order %s: %s", error['order_number'], error['error'])
    return result
