"""
Order notifications over a WhatsApp-compatible HTTP API.

Delivery is best effort. ``send_message`` never raises: when the channel is
disabled or unconfigured the message is only logged and reported as a
success, and transport failures are logged and reported as a failure. Order
code schedules notifications with ``notify_after_commit`` so a message goes
out only for state that was actually saved.
"""
import logging

import requests
from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)


def _config():
    return getattr(settings, 'WHATSAPP', {})


def format_phone(phone):
    phone = (phone or '').strip().replace(' ', '')
    if not phone or phone.startswith('+'):
        return phone
    return f"{_config().get('DEFAULT_COUNTRY_CODE', '+91')}{phone}"


def send_message(to, message):
    config = _config()
    if not config.get('ENABLED') or not config.get('API_URL'):
        logger.info("WhatsApp disabled, message to %s not sent:\n%s", to, message)
        return {'success': True, 'message': 'WhatsApp service disabled', 'logged': True}

    try:
        response = requests.post(
            config['API_URL'],
            json={'to': to, 'message': message},
            headers={
                'Authorization': f"Bearer {config.get('API_KEY', '')}",
                'Content-Type': 'application/json',
            },
            timeout=config.get('TIMEOUT', 10),
        )
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error("WhatsApp message to %s failed: %s\n%s", to, e, message)
        return {'success': False, 'error': str(e), 'logged': True}

    logger.info("WhatsApp message sent to %s", to)
    return {'success': True, 'logged': False}


def _store_name():
    return getattr(settings, 'STORE_NAME', 'Parika Jewels')


def _admin_orders_url():
    return f"{getattr(settings, 'FRONTEND_URL', 'http://localhost:5173')}/admin/orders"


def _money(amount):
    return f"₹{amount or 0:.2f}"


def notify_order_cancelled(order):
    """Tell the admin and the customer that ``order`` was cancelled."""
    reason = order.cancel_reason or 'Not specified'
    admin_number = _config().get('ADMIN_NUMBER', '')
    prepaid = not order.is_cod and order.refund_status != 'none'

    if prepaid:
        admin_message = (
            f"*Cancel & Refund Request - Order #{order.order_number}*\n\n"
            f"*Customer:* {order.customer_name}\n"
            f"*Payment Method:* Prepaid\n"
            f"*Cancel Reason:* {reason}\n"
            f"*Total Amount:* {_money(order.final_amount)}\n\n"
            f"Refund requested. Please process it as soon as possible.\n\n"
            f"Order Details: {_admin_orders_url()}"
        )
        customer_message = (
            f"*Order Cancelled Successfully*\n\n"
            f"Dear {order.customer_name},\n\n"
            f"Your order #{order.order_number} has been cancelled.\n\n"
            f"*Refund Status:* Processing\n"
            f"You will receive your refund within 5-7 business days.\n\n"
            f"Thank you!\n*{_store_name()}*"
        )
    else:
        admin_message = (
            f"*Order Cancelled - Order #{order.order_number}*\n\n"
            f"*Customer:* {order.customer_name}\n"
            f"*Payment Method:* {'COD' if order.is_cod else 'Online (unpaid)'}\n"
            f"*Cancel Reason:* {reason}\n"
            f"*Cancelled By:* {order.cancelled_by or 'customer'}\n\n"
            f"Order Details: {_admin_orders_url()}"
        )
        customer_message = (
            f"*Order Cancelled Successfully*\n\n"
            f"Dear {order.customer_name},\n\n"
            f"Your order #{order.order_number} has been cancelled successfully.\n\n"
            f"Thank you!\n*{_store_name()}*"
        )

    results = []
    if admin_number:
        results.append(send_message(admin_number, admin_message))
    results.append(send_message(format_phone(order.customer_phone), customer_message))
    return results


def notify_refund_status(order, status):
    """Customer-facing refund update; only processing and completed are announced."""
    if status == 'processing':
        message = (
            f"*Refund Update - Order #{order.order_number}*\n\n"
            f"Dear {order.customer_name},\n\n"
            f"Your refund is now being processed.\n\n"
            f"*Refund Amount:* {_money(order.refund_amount)}\n"
            f"*Expected Time:* 5-7 business days\n\n"
            f"*{_store_name()}*"
        )
    elif status == 'completed':
        completed_on = order.refund_date.strftime('%d/%m/%Y') if order.refund_date else ''
        message = (
            f"*Refund Completed - Order #{order.order_number}*\n\n"
            f"Dear {order.customer_name},\n\n"
            f"Your refund has been completed successfully!\n\n"
            f"*Refund Amount:* {_money(order.refund_amount)}\n"
            f"*Completed On:* {completed_on}\n\n"
            f"Thank you for your patience!\n*{_store_name()}*"
        )
    else:
        return None
    return send_message(format_phone(order.customer_phone), message)


def notify_admin_refund_status(order, old_status, new_status):
    admin_number = _config().get('ADMIN_NUMBER', '')
    if not admin_number:
        return None
    message = (
        f"*Refund Status Updated - Order #{order.order_number}*\n\n"
        f"*Customer:* {order.customer_name}\n"
        f"*Refund Amount:* {_money(order.refund_amount)}\n\n"
        f"*Status Change:* {old_status} -> {new_status}\n\n"
        f"Order Details: {_admin_orders_url()}"
    )
    return send_message(admin_number, message)


def notify_after_commit(func, *args):
    """Run ``func(*args)`` once the surrounding transaction commits; errors are logged only."""
    def dispatch():
        try:
            func(*args)
        except Exception:
            logger.exception("Notification %s failed", func.__name__)

    transaction.on_commit(dispatch)
