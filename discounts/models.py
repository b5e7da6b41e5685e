from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from products.models import Product


class Discount(models.Model):
    SCOPE_CHOICES = [
        ('global', 'Global'),
        ('category', 'Category'),
        ('product', 'Product'),
    ]
    DISCOUNT_TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('flat', 'Flat'),
    ]
    # Display/sort order only, the resolver picks by amount
    SCOPE_PRIORITY = {'product': 3, 'category': 2, 'global': 1}

    name = models.CharField(max_length=255)
    scope = models.CharField(max_length=20, choices=SCOPE_CHOICES)
    category = models.CharField(max_length=100, blank=True, default='')
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='discount_rules',
        blank=True,
        null=True,
    )
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    start_date = models.DateTimeField(blank=True, null=True)
    end_date = models.DateTimeField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    priority = models.PositiveSmallIntegerField(blank=True, null=True)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-priority', '-created_at']
        indexes = [
            models.Index(fields=['scope', 'is_active']),
            models.Index(fields=['category', 'is_active']),
            models.Index(fields=['start_date', 'end_date']),
        ]

    def clean(self):
        errors = {}
        if self.scope == 'category' and not (self.category or '').strip():
            errors['category'] = 'Category is required when scope is "category"'
        if self.scope == 'product' and self.product_id is None:
            errors['product'] = 'Product is required when scope is "product"'
        if self.scope != 'category' and self.category:
            errors['category'] = 'Category can only be set on category discounts'
        if self.scope != 'product' and self.product_id is not None:
            errors['product'] = 'Product can only be set on product discounts'
        if self.discount_value is not None:
            if self.discount_value < 0:
                errors['discount_value'] = 'Discount value cannot be negative'
            elif self.discount_type == 'percentage' and self.discount_value > 100:
                errors['discount_value'] = 'Percentage discount must be between 0 and 100'
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            errors['end_date'] = 'End date must be after start date'
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        if self.priority is None:
            self.priority = self.SCOPE_PRIORITY.get(self.scope, 0)
        if self.category:
            self.category = self.category.strip()
        super().save(*args, **kwargs)

    def is_valid_at(self, now=None):
        """True while the rule is switched on and inside its validity window."""
        now = now or timezone.now()
        if not self.is_active:
            return False
        if self.start_date and now < self.start_date:
            return False
        if self.end_date and now > self.end_date:
            return False
        return True

    @property
    def label(self):
        if self.discount_type == 'percentage':
            return f"{self.discount_value.normalize():f}% OFF"
        return f"₹{self.discount_value.normalize():f} OFF"

    def __str__(self):
        return f"{self.name} ({self.scope}, {self.label})"
