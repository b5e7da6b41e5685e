import hashlib
import hmac
from decimal import Decimal
from unittest import mock

import pytest
import requests

from payment.gateway import GatewayError, RazorpayGateway, get_gateway, to_minor_units
from tests.fakes import FakeGateway

CONFIG = {
    'KEY_ID': 'rzp_test_key',
    'KEY_SECRET': 'secret',
    'BASE_URL': 'https://api.razorpay.test/v1',
    'TIMEOUT': (1, 2),
    'MAX_RETRIES': 0,
}


def test_signature_is_hmac_of_order_and_payment():
    gateway = RazorpayGateway(CONFIG)
    signature = hmac.new(b'secret', b'order_1|pay_1', hashlib.sha256).hexdigest()
    assert gateway.verify_signature('order_1', 'pay_1', signature) is True
    assert gateway.verify_signature('order_1', 'pay_2', signature) is False
    assert gateway.verify_signature('order_1', 'pay_1', '') is False


def test_amounts_sent_in_paise():
    assert to_minor_units(Decimal('1049.50')) == 104950


def test_refund_sends_idempotency_key():
    gateway = RazorpayGateway(CONFIG)
    response = mock.Mock(status_code=200)
    response.json.return_value = {'id': 'rfnd_1', 'status': 'processed'}
    with mock.patch.object(gateway.session, 'post', return_value=response) as post:
        result = gateway.refund('pay_1', Decimal('10'), {'order_id': 7}, idempotency_key='7')

    assert result == {'refund_id': 'rfnd_1', 'status': 'processed'}
    args, kwargs = post.call_args
    assert args[0] == 'https://api.razorpay.test/v1/payments/pay_1/refund'
    assert kwargs['headers']['Idempotency-Key'] == '7'
    assert kwargs['json']['amount'] == 1000
    assert kwargs['timeout'] == (1, 2)


def test_transport_errors_become_gateway_errors():
    gateway = RazorpayGateway(CONFIG)
    with mock.patch.object(gateway.session, 'post', side_effect=requests.exceptions.Timeout('slow')):
        with pytest.raises(GatewayError):
            gateway.create_intent(Decimal('10'), 'INR', {}, idempotency_key='1')


def test_error_response_becomes_gateway_error():
    gateway = RazorpayGateway(CONFIG)
    response = mock.Mock(status_code=400)
    response.json.return_value = {'error': {'description': 'The amount must be atleast INR 1.00'}}
    with mock.patch.object(gateway.session, 'post', return_value=response):
        with pytest.raises(GatewayError, match='amount must be'):
            gateway.refund('pay_1', Decimal('0.5'), {})


def test_backend_comes_from_settings():
    assert isinstance(get_gateway(), FakeGateway)
