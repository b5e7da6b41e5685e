from django.db import models
from django.utils import timezone


def normalize_code(code):
    return (code or '').strip().upper()


class Coupon(models.Model):
    DISCOUNT_TYPE_CHOICES = (
        ('percentage', 'Percentage'),
        ('flat', 'Flat Amount'),
    )

    code = models.CharField(max_length=50, unique=True)
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    min_purchase = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    start_date = models.DateTimeField(blank=True, null=True)
    expiry_date = models.DateTimeField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    usage_limit = models.PositiveIntegerField(blank=True, null=True)
    used_count = models.PositiveIntegerField(default=0)
    # Empty list means the coupon applies to every category
    applicable_categories = models.JSONField(default=list, blank=True)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        self.code = normalize_code(self.code)
        super().save(*args, **kwargs)

    def has_started(self, now=None):
        return self.start_date is None or (now or timezone.now()) >= self.start_date

    def is_expired(self, now=None):
        return self.expiry_date is not None and (now or timezone.now()) > self.expiry_date

    @property
    def is_usage_limit_reached(self):
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def is_valid(self, now=None):
        return (self.is_active and self.has_started(now) and not self.is_expired(now)
                and not self.is_usage_limit_reached)

    def __str__(self):
        return self.code


class CouponRedemption(models.Model):
    """One usage slot held by one order; confirmation and release are keyed on it."""
    order = models.OneToOneField('orders.Order', on_delete=models.CASCADE, related_name='coupon_redemption')
    coupon_code = models.CharField(max_length=50, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.coupon_code} -> order {self.order_id}"
