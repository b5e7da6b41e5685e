"""
Allowed transitions for the three status fields of an order.

Payment, fulfilment and refund statuses move independently but under the
tables below. Anything not listed is rejected with ``OrderStateError``.
Cancellation eligibility is derived from the current state and the clock on
every read; it is never stored.
"""
from datetime import timedelta

from django.utils import timezone

from api.exceptions import OrderStateError

CANCELLATION_WINDOW = timedelta(hours=24)

PAYMENT_TRANSITIONS = {
    'pending': {'success', 'failed', 'cancelled'},
    'success': {'refunded'},
    # refunded -> success only through the refund completion undo
    'refunded': set(),
    'failed': set(),
    'cancelled': set(),
}

ORDER_TRANSITIONS = {
    'pending': {'processing', 'confirmed', 'cancelled'},
    'processing': {'confirmed', 'shipped', 'cancelled'},
    'confirmed': {'processing', 'shipped', 'cancelled'},
    'shipped': {'delivered'},
    'delivered': set(),
    'cancelled': set(),
}

REFUND_TRANSITIONS = {
    'none': {'pending', 'requested'},
    'requested': {'pending', 'processing', 'rejected'},
    'pending': {'processing', 'rejected'},
    'processing': {'completed', 'rejected'},
    # completed -> processing is the one-time admin undo, checked separately
    'completed': set(),
    'rejected': set(),
}

REFUND_IN_FLIGHT = ('pending', 'requested', 'processing')
# A new refund can't be opened while one of these is recorded
REFUND_BLOCKING = ('pending', 'requested', 'processing', 'completed')

UNCANCELLABLE_ORDER_STATUSES = ('shipped', 'delivered', 'cancelled')


def _check(table, kind, current, new):
    if new not in table.get(current, set()):
        raise OrderStateError(f"Cannot change {kind} status from '{current}' to '{new}'")


def check_payment_transition(current, new):
    _check(PAYMENT_TRANSITIONS, 'payment', current, new)


def check_order_transition(current, new):
    _check(ORDER_TRANSITIONS, 'order', current, new)


def check_refund_transition(current, new, completion_reverted=False):
    """``completed -> processing`` is allowed once, as an admin undo."""
    if current == 'completed' and new == 'processing':
        if completion_reverted:
            raise OrderStateError('Refund completion has already been reverted once')
        return
    _check(REFUND_TRANSITIONS, 'refund', current, new)


def cancellation_block_reason(order_status, payment_status, created_at, now=None):
    """Return why the customer can't cancel right now, or None if they can."""
    now = now or timezone.now()
    if order_status == 'cancelled':
        return 'Order is already cancelled'
    if order_status == 'shipped':
        return 'Order has already been shipped'
    if order_status == 'delivered':
        return 'Order has already been delivered'
    if payment_status == 'refunded':
        return 'Order has already been refunded'
    if created_at is None or now - created_at > CANCELLATION_WINDOW:
        return 'Cancellation window of 24 hours has expired'
    return None


def can_cancel(order_status, payment_status, created_at, now=None):
    return cancellation_block_reason(order_status, payment_status, created_at, now) is None
