from decimal import Decimal

import pytest
from rest_framework.exceptions import ValidationError

from discounts.models import Discount
from orders.pricing import build_quote

pytestmark = pytest.mark.django_db


def test_quote_combines_product_and_coupon_discounts(make_product, make_coupon):
    ring = make_product(name='Ring', category='rings', price='1000')
    necklace = make_product(name='Necklace', category='necklaces', price='2000')
    Discount.objects.create(name='Ring week', scope='category', category='rings',
                            discount_type='percentage', discount_value=Decimal('10'))
    make_coupon(code='NECK10', discount_value='10', applicable_categories=['necklaces'])

    quote = build_quote(
        [{'product_id': ring.pk, 'quantity': 2}, {'product_id': necklace.pk, 'quantity': 1}],
        coupon_code='neck10',
    )

    assert quote.subtotal == Decimal('4000.00')
    assert quote.product_discount == Decimal('200.00')
    assert quote.coupon_code == 'NECK10'
    assert quote.coupon_discount == Decimal('200.00')
    assert quote.final_amount == Decimal('3600.00')
    assert quote.total_discount == Decimal('400.00')


def test_lines_are_snapshotted_as_json(make_product):
    ring = make_product(name='Ring', category='rings', price='1000', discount_type='flat',
                        discount_value=Decimal('150'))
    quote = build_quote([{'product_id': ring.pk, 'quantity': 1}])
    snapshot = quote.snapshots()[0]
    assert snapshot['product_id'] == ring.pk
    assert snapshot['price'] == '1000.00'
    assert snapshot['product_discount'] == '150.00'
    assert snapshot['final_price'] == '850.00'
    assert snapshot['discount_label'] == '₹150 OFF'


def test_repeated_products_are_merged(make_product):
    ring = make_product()
    quote = build_quote([{'product_id': ring.pk, 'quantity': 1}, {'product_id': ring.pk, 'quantity': 2}])
    assert len(quote.lines) == 1
    assert quote.lines[0].quantity == 3


def test_cod_charge_added_after_discounts(make_product, make_coupon):
    ring = make_product(price='1000')
    make_coupon(code='FLAT100', discount_type='flat', discount_value='100')
    quote = build_quote([{'product_id': ring.pk, 'quantity': 1}], 'FLAT100', cod_charge=Decimal('50'))
    assert quote.final_amount == Decimal('950.00')


def test_empty_cart():
    with pytest.raises(ValidationError, match='Cart is empty'):
        build_quote([])


def test_unknown_product():
    with pytest.raises(ValidationError):
        build_quote([{'product_id': 999, 'quantity': 1}])


def test_unavailable_product(make_product):
    ring = make_product(is_available=False)
    with pytest.raises(ValidationError):
        build_quote([{'product_id': ring.pk, 'quantity': 1}])


def test_later_price_change_does_not_touch_snapshot(make_product):
    ring = make_product(price='1000')
    quote = build_quote([{'product_id': ring.pk, 'quantity': 1}])
    ring.price = Decimal('5000')
    ring.save()
    assert quote.snapshots()[0]['price'] == '1000.00'
