"""
Best-discount resolution for catalog products.

Every candidate (the product's inline discount, product rules, category rules
and global rules) is priced independently and the largest monetary discount
wins. Scope priority is only a display order; when two candidates give the
same amount the one evaluated first is kept (product, then category, then
global).
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Q
from django.utils import timezone

from .models import Discount

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
CENT = Decimal('0.01')
HUNDRED = Decimal('100')


def round_money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def discount_amount(price, discount_type, discount_value):
    """Raw discount for one unit; flat discounts never exceed the price."""
    price = Decimal(price)
    value = Decimal(discount_value or 0)
    if discount_type == 'percentage':
        return price * value / HUNDRED
    if discount_type == 'flat':
        return min(value, price)
    return ZERO


def discount_label(discount_type, discount_value):
    if discount_type is None:
        return None
    value = Decimal(discount_value).normalize()
    if discount_type == 'percentage':
        return f"{value:f}% OFF"
    if discount_type == 'flat':
        return f"₹{value:f} OFF"
    return 'DISCOUNT'


@dataclass(frozen=True)
class Candidate:
    source: str
    discount_type: str
    discount_value: Decimal
    name: str
    rule_id: int = None


@dataclass(frozen=True)
class DiscountResult:
    has_discount: bool
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    discount_percentage: Decimal
    label: str = None
    candidate: Candidate = None

    def as_dict(self):
        return {
            'hasDiscount': self.has_discount,
            'originalPrice': self.original_price,
            'discountAmount': self.discount_amount,
            'finalPrice': self.final_price,
            'discountPercentage': self.discount_percentage,
            'discountLabel': self.label,
            'discount': None if self.candidate is None else {
                'source': self.candidate.source,
                'name': self.candidate.name,
                'discountType': self.candidate.discount_type,
                'discountValue': self.candidate.discount_value,
                'ruleId': self.candidate.rule_id,
            },
        }


def active_discounts_queryset(now=None):
    now = now or timezone.now()
    return (
        Discount.objects.filter(is_active=True)
        .filter(Q(start_date__isnull=True) | Q(start_date__lte=now))
        .filter(Q(end_date__isnull=True) | Q(end_date__gte=now))
        .order_by('-priority', '-created_at')
    )


def get_active_discounts(now=None):
    """Fetch the active rule set once so listings can reuse it for every product."""
    return list(active_discounts_queryset(now))


def _candidates(product, rules):
    inline_type = getattr(product, 'discount_type', None)
    inline_value = getattr(product, 'discount_value', None) or ZERO
    if inline_type in ('percentage', 'flat') and inline_value > 0:
        yield Candidate('product-inline', inline_type, Decimal(inline_value), 'Product Discount')

    for rule in rules:
        if rule.scope == 'product' and rule.product_id is not None and str(rule.product_id) == str(product.id):
            yield Candidate('product', rule.discount_type, rule.discount_value, rule.name, rule.pk)
    for rule in rules:
        if rule.scope == 'category' and rule.category and rule.category == product.category:
            yield Candidate('category', rule.discount_type, rule.discount_value, rule.name, rule.pk)
    for rule in rules:
        if rule.scope == 'global':
            yield Candidate('global', rule.discount_type, rule.discount_value, rule.name, rule.pk)


def no_discount(price):
    price = round_money(price)
    return DiscountResult(
        has_discount=False,
        original_price=price,
        discount_amount=round_money(ZERO),
        final_price=price,
        discount_percentage=round_money(ZERO),
    )


def calculate_product_discount(product, active_discounts=None, now=None):
    """
    Resolve the single best discount for ``product``.

    ``product`` needs ``id``, ``price``, ``category`` and optionally
    ``discount_type``/``discount_value``. ``active_discounts`` is the
    pre-fetched rule list; rules outside their window at ``now`` are ignored
    even if the caller passed them in.
    """
    now = now or timezone.now()
    if active_discounts is None:
        active_discounts = get_active_discounts(now)
    rules = [rule for rule in active_discounts if rule.is_valid_at(now)]

    price = Decimal(product.price)
    best = None
    best_amount = ZERO
    for candidate in _candidates(product, rules):
        amount = discount_amount(price, candidate.discount_type, candidate.discount_value)
        if amount > best_amount:
            best, best_amount = candidate, amount

    if best is None:
        return no_discount(price)

    amount = round_money(min(best_amount, price))
    final_price = round_money(max(ZERO, price - amount))
    percentage = round_money(amount / price * HUNDRED) if price > 0 else round_money(ZERO)
    return DiscountResult(
        has_discount=True,
        original_price=round_money(price),
        discount_amount=amount,
        final_price=final_price,
        discount_percentage=percentage,
        label=discount_label(best.discount_type, best.discount_value),
        candidate=best,
    )


def calculate_products_discounts(products, now=None):
    now = now or timezone.now()
    rules = get_active_discounts(now)
    logger.debug("Resolving discounts for %d products against %d active rules", len(products), len(rules))
    return [calculate_product_discount(product, rules, now) for product in products]


def get_categories_with_discounts(now=None):
    return sorted(set(
        active_discounts_queryset(now)
        .filter(scope='category')
        .exclude(category='')
        .values_list('category', flat=True)
    ))
