from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from coupons.models import Coupon
from orders.models import Order
from products.models import Product
from tests.fakes import FakeGateway


@pytest.fixture(autouse=True)
def gateway(settings):
    settings.PAYMENT_GATEWAY = {
        **settings.PAYMENT_GATEWAY,
        'BACKEND': 'tests.fakes.FakeGateway',
        'KEY_ID': 'rzp_test_key',
        'KEY_SECRET': 'test-secret',
    }
    settings.WHATSAPP = {**settings.WHATSAPP, 'ENABLED': False, 'ADMIN_NUMBER': '+919800000000'}
    FakeGateway.reset()
    return FakeGateway


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(db):
    user = get_user_model().objects.create_user(username='admin', password='secret', is_staff=True)
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def make_product(db):
    def make(name='Gold Ring', category='rings', price='1000', **kwargs):
        return Product.objects.create(name=name, category=category, price=Decimal(price), **kwargs)
    return make


@pytest.fixture
def make_coupon(db):
    def make(code='SAVE10', discount_type='percentage', discount_value='10', **kwargs):
        return Coupon.objects.create(code=code, discount_type=discount_type,
                                     discount_value=Decimal(discount_value), **kwargs)
    return make


@pytest.fixture
def make_order(db):
    def make(**kwargs):
        fields = {
            'customer_name': 'Asha Verma',
            'customer_email': 'asha@example.com',
            'customer_phone': '9876543210',
            'address': '12 MG Road, Jaipur',
            'pincode': '302001',
            'items': [],
            'subtotal': Decimal('1000.00'),
            'final_amount': Decimal('1000.00'),
            'payment_method': 'razorpay',
        }
        fields.update(kwargs)
        return Order.objects.create(**fields)
    return make


@pytest.fixture
def paid_order(make_order):
    return make_order(
        payment_status='success',
        order_status='confirmed',
        gateway_order_id='order_abc',
        gateway_payment_id='pay_abc',
    )


@pytest.fixture
def hours_ago():
    def at(hours):
        return timezone.now() - timedelta(hours=hours)
    return at
