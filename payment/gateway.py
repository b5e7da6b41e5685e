"""
Payment gateway client.

The rest of the project talks to ``PaymentGateway``; the concrete backend is
picked by ``settings.PAYMENT_GATEWAY['BACKEND']``. Every POST carries an
idempotency key derived from the order id, which is what makes the session's
retry policy safe for refunds and order creation.
"""
import hashlib
import hmac
import logging
from decimal import Decimal

import requests
from requests.adapters import HTTPAdapter, Retry
from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """The gateway could not be reached or refused the request."""


def to_minor_units(amount):
    """Rupees to paise."""
    return int((Decimal(amount) * 100).quantize(Decimal('1')))


class PaymentGateway:
    def create_intent(self, amount, currency, metadata, idempotency_key=None):
        """Register a payment for ``amount`` and return the gateway's order reference."""
        raise NotImplementedError

    def verify_signature(self, order_ref, payment_ref, signature):
        raise NotImplementedError

    def refund(self, payment_ref, amount, metadata, idempotency_key=None):
        """Ask for ``amount`` back; returns ``{'refund_id': ..., 'status': ...}``."""
        raise NotImplementedError


class RazorpayGateway(PaymentGateway):
    def __init__(self, config=None):
        config = config or settings.PAYMENT_GATEWAY
        self.key_id = config.get('KEY_ID', '')
        self.key_secret = config.get('KEY_SECRET', '')
        self.base_url = config.get('BASE_URL', 'https://api.razorpay.com/v1').rstrip('/')
        self.timeout = config.get('TIMEOUT', (5, 15))

        retries = Retry(
            total=config.get('MAX_RETRIES', 2),
            backoff_factor=0.5,
            status_forcelist=(502, 503, 504),
            allowed_methods=frozenset(['GET', 'POST']),
            raise_on_status=False,
        )
        self.session = requests.Session()
        self.session.auth = (self.key_id, self.key_secret)
        self.session.mount('https://', HTTPAdapter(max_retries=retries))

    def _post(self, path, payload, idempotency_key=None):
        headers = {'Content-Type': 'application/json'}
        if idempotency_key:
            headers['Idempotency-Key'] = str(idempotency_key)
        try:
            response = self.session.post(f"{self.base_url}{path}", json=payload, headers=headers,
                                         timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise GatewayError(f"Failed to connect to payment gateway: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            error = data.get('error') or {}
            message = error.get('description') if isinstance(error, dict) else str(error)
            raise GatewayError(message or f"Payment gateway returned HTTP {response.status_code}")
        return data

    def create_intent(self, amount, currency, metadata, idempotency_key=None):
        data = self._post('/orders', {
            'amount': to_minor_units(amount),
            'currency': currency,
            'receipt': str(metadata.get('order_number', idempotency_key or '')),
            'notes': {key: str(value) for key, value in metadata.items()},
        }, idempotency_key)
        if not data.get('id'):
            raise GatewayError('Payment gateway did not return an order id')
        return data['id']

    def verify_signature(self, order_ref, payment_ref, signature):
        if not (order_ref and payment_ref and signature):
            return False
        expected = hmac.new(
            self.key_secret.encode(),
            f"{order_ref}|{payment_ref}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)

    def refund(self, payment_ref, amount, metadata, idempotency_key=None):
        data = self._post(f"/payments/{payment_ref}/refund", {
            'amount': to_minor_units(amount),
            'notes': {key: str(value) for key, value in metadata.items()},
        }, idempotency_key)
        return {'refund_id': data.get('id', ''), 'status': data.get('status', '')}


def get_gateway():
    backend = settings.PAYMENT_GATEWAY.get('BACKEND', 'payment.gateway.RazorpayGateway')
    return import_string(backend)()
