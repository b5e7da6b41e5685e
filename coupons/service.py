"""
Coupon validation and usage accounting.

Validation is read-only: previewing a coupon any number of times never moves
``used_count``. The counter only changes through ``confirm_usage`` (when an
order holding the coupon is created) and ``release_usage`` (when that order
is cancelled).
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from api.exceptions import CouponExhausted
from .models import Coupon, CouponRedemption, normalize_code

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass(frozen=True)
class CartLine:
    category: str
    price: Decimal
    quantity: int = 1

    @property
    def total(self):
        return Decimal(self.price) * self.quantity


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount_amount: Decimal
    eligible_total: Decimal
    cart_total: Decimal
    final_amount: Decimal
    message: str

    def as_dict(self):
        return {
            'valid': True,
            'discountAmount': self.discount_amount,
            'eligibleTotal': self.eligible_total,
            'finalAmount': self.final_amount,
            'message': self.message,
            'couponDetails': {
                'code': self.coupon.code,
                'discountType': self.coupon.discount_type,
                'discountValue': self.coupon.discount_value,
                'description': self.coupon.description,
                'applicableCategories': self.coupon.applicable_categories,
            },
        }


def _as_cart_line(item):
    if isinstance(item, CartLine):
        return item
    return CartLine(
        category=item.get('category') or '',
        price=Decimal(str(item.get('price') or 0)),
        quantity=int(item.get('quantity') or 1),
    )


def format_rupees(amount):
    return f"₹{Decimal(amount).quantize(Decimal('1'), rounding=ROUND_HALF_UP):,}"


def coupon_discount(coupon, eligible_total):
    """Percentage coupons round to whole rupees; flat coupons never exceed the eligible total."""
    if coupon.discount_type == 'percentage':
        amount = (eligible_total * coupon.discount_value / Decimal('100')).quantize(
            Decimal('1'), rounding=ROUND_HALF_UP)
    else:
        amount = min(coupon.discount_value, eligible_total)
    return Decimal(amount).quantize(Decimal('0.01'))


def validate_coupon(code, cart_items, cart_total, now=None):
    """
    Check ``code`` against the cart and price it.

    The checks run in a fixed order and the first failure is raised:
    unknown code, inactive, not started, expired, usage limit, no eligible
    item, minimum purchase. A category-restricted coupon is priced against
    the eligible items only, never against the whole cart.
    """
    now = now or timezone.now()
    code = normalize_code(code)
    if not code:
        raise ValidationError('Coupon code is required')
    cart_total = Decimal(str(cart_total or 0))
    if cart_total <= 0:
        raise ValidationError('Invalid cart total')

    try:
        coupon = Coupon.objects.get(code=code)
    except Coupon.DoesNotExist:
        raise NotFound('Invalid coupon code')

    if not coupon.is_active:
        raise ValidationError('This coupon is currently inactive')
    if not coupon.has_started(now):
        raise ValidationError('This coupon is not yet active')
    if coupon.is_expired(now):
        raise ValidationError('This coupon has expired')
    if coupon.is_usage_limit_reached:
        raise CouponExhausted()

    eligible_total = cart_total
    categories = coupon.applicable_categories or []
    if categories:
        lines = [_as_cart_line(item) for item in cart_items or []]
        eligible_total = sum((line.total for line in lines if line.category in categories), ZERO)
        if eligible_total <= 0:
            raise ValidationError(f"This coupon is only applicable to: {', '.join(categories)}")

    if coupon.min_purchase and eligible_total < coupon.min_purchase:
        raise ValidationError(
            f"Minimum purchase of {format_rupees(coupon.min_purchase)} required on eligible items "
            f"to use this coupon"
        )

    amount = coupon_discount(coupon, eligible_total)
    if categories:
        message = f"Coupon applied to {', '.join(categories)} items only!"
    else:
        message = 'Coupon applied successfully!'

    return CouponQuote(
        coupon=coupon,
        discount_amount=amount,
        eligible_total=eligible_total,
        cart_total=cart_total,
        final_amount=cart_total - amount,
        message=message,
    )


def confirm_usage(code, order=None):
    """
    Take one usage slot of ``code`` and return the new ``used_count``.

    The increment is written first and the limit is checked against the value
    read back inside the same transaction, so two concurrent confirmations
    cannot both squeeze under the limit. When ``order`` is given the slot is
    recorded against it and a repeated confirmation for that order is a no-op.
    """
    code = normalize_code(code)
    if not code:
        raise ValidationError('Coupon code is required')

    with transaction.atomic():
        if order is not None:
            redemption, created = CouponRedemption.objects.get_or_create(
                order=order, defaults={'coupon_code': code})
            if not created:
                logger.info("Coupon %s already confirmed for order %s", redemption.coupon_code, order.pk)
                return Coupon.objects.filter(code=redemption.coupon_code).values_list(
                    'used_count', flat=True).first()

        updated = Coupon.objects.filter(code=code).update(used_count=F('used_count') + 1)
        if not updated:
            raise NotFound('Coupon not found')

        used_count, usage_limit = Coupon.objects.filter(code=code).values_list(
            'used_count', 'usage_limit').get()
        if usage_limit is not None and used_count > usage_limit:
            # Leaving the atomic block with an exception rolls the increment back
            logger.warning("Coupon %s usage limit %s reached", code, usage_limit)
            raise CouponExhausted()

    logger.info("Coupon %s usage confirmed (%s used)", code, used_count)
    return used_count


def release_usage(order):
    """Give the order's usage slot back. Returns True if a slot was released."""
    redemption = CouponRedemption.objects.filter(order=order).first()
    if redemption is None:
        return False

    deleted, _ = CouponRedemption.objects.filter(pk=redemption.pk).delete()
    if not deleted:
        # Another cancellation released it first
        return False

    Coupon.objects.filter(code=redemption.coupon_code, used_count__gt=0).update(
        used_count=F('used_count') - 1)
    logger.info("Coupon %s usage released by order %s", redemption.coupon_code, order.pk)
    return True


def active_coupons_queryset(now=None):
    now = now or timezone.now()
    return (
        Coupon.objects.filter(is_active=True)
        .filter(Q(start_date__isnull=True) | Q(start_date__lte=now))
        .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=now))
        .filter(Q(usage_limit__isnull=True) | Q(used_count__lt=F('usage_limit')))
    )


def coupons_for_category(category, now=None, limit=3):
    """Best active coupons usable on ``category`` (restricted to it, or unrestricted)."""
    coupons = [
        coupon for coupon in active_coupons_queryset(now).order_by('-discount_value')
        if not coupon.applicable_categories or category in coupon.applicable_categories
    ]
    return coupons[:limit]
