from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from discounts.calculator import (
    calculate_product_discount,
    calculate_products_discounts,
    get_categories_with_discounts,
)
from discounts.models import Discount
from products.catalog import ProductSnapshot


def snapshot(price='1000', category='rings', product_id=1, **kwargs):
    return ProductSnapshot(id=product_id, name='Ring', category=category, price=Decimal(price), **kwargs)


def rule(scope, discount_type, value, **kwargs):
    return Discount(name=f"{scope} {value}", scope=scope, discount_type=discount_type,
                    discount_value=Decimal(value), **kwargs)


def test_no_rules_means_no_discount():
    result = calculate_product_discount(snapshot(), [])
    assert result.has_discount is False
    assert result.final_price == Decimal('1000.00')
    assert result.discount_amount == Decimal('0.00')


def test_larger_amount_beats_higher_scope():
    rules = [
        rule('category', 'percentage', '20', category='rings'),
        rule('product', 'flat', '500', product_id=1),
    ]
    result = calculate_product_discount(snapshot(), rules)
    assert result.discount_amount == Decimal('500.00')
    assert result.final_price == Decimal('500.00')
    assert result.candidate.source == 'product'
    assert result.label == '₹500 OFF'


def test_category_rule_wins_when_larger_than_product_rule():
    rules = [
        rule('product', 'flat', '100', product_id=1),
        rule('category', 'percentage', '20', category='rings'),
    ]
    result = calculate_product_discount(snapshot(), rules)
    assert result.discount_amount == Decimal('200.00')
    assert result.candidate.source == 'category'
    assert result.discount_percentage == Decimal('20.00')


def test_equal_amounts_keep_the_first_evaluated():
    rules = [
        rule('global', 'flat', '100'),
        rule('category', 'percentage', '10', category='rings'),
    ]
    result = calculate_product_discount(snapshot(), rules)
    assert result.candidate.source == 'category'


def test_inline_discount_competes_with_rules():
    product = snapshot(discount_type='percentage', discount_value=Decimal('30'))
    result = calculate_product_discount(product, [rule('global', 'percentage', '10')])
    assert result.discount_amount == Decimal('300.00')
    assert result.candidate.source == 'product-inline'


def test_flat_discount_is_capped_at_price():
    result = calculate_product_discount(snapshot(price='300'), [rule('global', 'flat', '500')])
    assert result.discount_amount == Decimal('300.00')
    assert result.final_price == Decimal('0.00')


@pytest.mark.parametrize('price,rules', [
    ('999.99', [rule('global', 'percentage', '100')]),
    ('10', [rule('global', 'flat', '10.01'), rule('category', 'percentage', '50', category='rings')]),
    ('0', [rule('global', 'flat', '5')]),
])
def test_final_price_never_negative(price, rules):
    result = calculate_product_discount(snapshot(price=price), rules)
    assert result.discount_amount <= Decimal(price)
    assert result.final_price == max(Decimal('0'), Decimal(price) - result.discount_amount)


def test_rules_for_other_targets_are_ignored():
    rules = [
        rule('product', 'flat', '500', product_id=2),
        rule('category', 'percentage', '50', category='necklaces'),
    ]
    assert calculate_product_discount(snapshot(), rules).has_discount is False


def test_rules_outside_their_window_are_ignored():
    now = timezone.now()
    rules = [
        rule('global', 'flat', '400', end_date=now - timedelta(days=1)),
        rule('global', 'flat', '300', start_date=now + timedelta(days=1)),
        rule('global', 'flat', '200', is_active=False),
        rule('global', 'flat', '50', start_date=now - timedelta(days=1), end_date=now + timedelta(days=1)),
    ]
    result = calculate_product_discount(snapshot(), rules, now=now)
    assert result.discount_amount == Decimal('50.00')


@pytest.mark.django_db
def test_batch_uses_active_rules_from_the_database(make_product):
    ring = make_product(name='Ring', category='rings', price='1000')
    chain = make_product(name='Chain', category='chains', price='2000')
    Discount.objects.create(name='Rings sale', scope='category', category='rings',
                            discount_type='percentage', discount_value=Decimal('15'))
    Discount.objects.create(name='Old sale', scope='global', discount_type='flat',
                            discount_value=Decimal('999'), end_date=timezone.now() - timedelta(days=2))

    ring_result, chain_result = calculate_products_discounts([ring, chain])
    assert ring_result.discount_amount == Decimal('150.00')
    assert chain_result.has_discount is False
    assert get_categories_with_discounts() == ['rings']


@pytest.mark.django_db
def test_priority_defaults_from_scope(make_product):
    product_rule = Discount.objects.create(name='p', scope='product', product=make_product(),
                                           discount_type='flat', discount_value=Decimal('10'))
    global_rule = Discount.objects.create(name='g', scope='global', discount_type='flat',
                                          discount_value=Decimal('10'))
    assert product_rule.priority == 3
    assert global_rule.priority == 1
