"""
Turns a requested cart into the amount the customer pays.

Each requested line is looked up in the catalog, priced through the discount
resolver against one shared rule set, and the optional coupon is validated
against the discounted lines. The result is a ``Quote`` that the order
persists as-is.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal

from django.utils import timezone
from rest_framework.exceptions import ValidationError

from coupons.service import CartLine, validate_coupon
from discounts.calculator import calculate_product_discount, get_active_discounts, round_money
from products.catalog import get_snapshots

ZERO = Decimal('0')


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    name: str
    category: str
    price: Decimal
    quantity: int
    discount_type: str
    discount_value: Decimal
    product_discount: Decimal
    final_price: Decimal
    discount_label: str = None

    @property
    def line_subtotal(self):
        return self.price * self.quantity

    @property
    def line_discount(self):
        return self.product_discount * self.quantity

    @property
    def line_total(self):
        return self.final_price * self.quantity

    def as_snapshot(self):
        """JSON-safe form stored on the order."""
        data = asdict(self)
        for key in ('price', 'discount_value', 'product_discount', 'final_price'):
            data[key] = str(data[key])
        return data


@dataclass(frozen=True)
class Quote:
    lines: list
    subtotal: Decimal
    product_discount: Decimal
    coupon_code: str = ''
    coupon_discount: Decimal = ZERO
    cod_charge: Decimal = ZERO
    final_amount: Decimal = ZERO
    coupon_message: str = ''

    @property
    def total_discount(self):
        return self.product_discount + self.coupon_discount

    def snapshots(self):
        return [line.as_snapshot() for line in self.lines]


def _merge_quantities(items):
    quantities = {}
    for item in items:
        product_id = int(item['product_id'])
        quantity = int(item.get('quantity') or 1)
        if quantity < 1:
            raise ValidationError({'items': 'Quantity must be at least 1'})
        quantities[product_id] = quantities.get(product_id, 0) + quantity
    return quantities


def price_lines(items, now=None):
    """Snapshot and discount every requested line against the current catalog."""
    if not items:
        raise ValidationError('Cart is empty')

    now = now or timezone.now()
    quantities = _merge_quantities(items)
    snapshots = get_snapshots(quantities.keys())
    missing = [str(pk) for pk in quantities if pk not in snapshots]
    if missing:
        raise ValidationError({'items': f"Products not found: {', '.join(missing)}"})

    rules = get_active_discounts(now)
    lines = []
    for product_id, quantity in quantities.items():
        product = snapshots[product_id]
        if not product.is_available:
            raise ValidationError({'items': f"{product.name} is currently unavailable"})
        result = calculate_product_discount(product, rules, now)
        lines.append(PricedLine(
            product_id=product.id,
            name=product.name,
            category=product.category,
            price=round_money(product.price),
            quantity=quantity,
            discount_type=product.discount_type,
            discount_value=Decimal(product.discount_value),
            product_discount=result.discount_amount,
            final_price=result.final_price,
            discount_label=result.label,
        ))
    return lines


def build_quote(items, coupon_code=None, cod_charge=ZERO, now=None):
    """
    Price ``items`` (``[{'product_id', 'quantity'}]``) for checkout.

    The coupon sees the already discounted line prices, so product and coupon
    discounts stack but a coupon never discounts money the customer is not
    paying anyway. ``cod_charge`` is added on top of the discounted total.
    """
    now = now or timezone.now()
    lines = price_lines(items, now)

    subtotal = round_money(sum((line.line_subtotal for line in lines), ZERO))
    product_discount = round_money(sum((line.line_discount for line in lines), ZERO))
    discounted_total = subtotal - product_discount

    coupon_discount = ZERO
    coupon_message = ''
    code = ''
    if coupon_code:
        cart = [CartLine(category=line.category, price=line.final_price, quantity=line.quantity)
                for line in lines]
        coupon_quote = validate_coupon(coupon_code, cart, discounted_total, now)
        code = coupon_quote.coupon.code
        coupon_discount = coupon_quote.discount_amount
        coupon_message = coupon_quote.message

    cod_charge = round_money(cod_charge or ZERO)
    final_amount = round_money(max(ZERO, discounted_total - coupon_discount) + cod_charge)

    return Quote(
        lines=lines,
        subtotal=subtotal,
        product_discount=product_discount,
        coupon_code=code,
        coupon_discount=round_money(coupon_discount),
        cod_charge=cod_charge,
        final_amount=final_amount,
        coupon_message=coupon_message,
    )
