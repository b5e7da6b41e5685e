import secrets
import string

from django.conf import settings
from django.db import models
from django.utils import timezone

from .state import can_cancel, cancellation_block_reason

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number():
    prefix = getattr(settings, 'ORDER_NUMBER_PREFIX', 'ELG')
    suffix = ''.join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(8))
    return f"{prefix}-{suffix}"


class Order(models.Model):
    PAYMENT_METHOD_CHOICES = [
        ('razorpay', 'Online Payment'),
        ('cod', 'Cash on Delivery'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('success', 'Success'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
        ('cancelled', 'Cancelled'),
    ]
    ORDER_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('confirmed', 'Confirmed'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]
    REFUND_STATUS_CHOICES = [
        ('none', 'None'),
        ('pending', 'Pending'),
        ('requested', 'Requested'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('rejected', 'Rejected'),
    ]
    CANCELLED_BY_CHOICES = [
        ('customer', 'Customer'),
        ('admin', 'Admin'),
        ('system', 'System'),
    ]

    order_number = models.CharField(max_length=20, unique=True, blank=True)

    # Customer
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField(db_index=True)
    customer_phone = models.CharField(max_length=20)
    address = models.TextField()
    pincode = models.CharField(max_length=10, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    # Line snapshots, written once at creation
    items = models.JSONField(default=list)

    # Pricing
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    product_discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    coupon_code = models.CharField(max_length=50, blank=True, default='')
    coupon_discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cod_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    final_amount = models.DecimalField(max_digits=12, decimal_places=2)

    # Payment
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='razorpay')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending',
                                      db_index=True)
    gateway_order_id = models.CharField(max_length=100, blank=True, default='')
    gateway_payment_id = models.CharField(max_length=100, blank=True, default='')
    gateway_signature = models.CharField(max_length=255, blank=True, default='')

    order_status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default='pending',
                                    db_index=True)

    # Refund
    refund_status = models.CharField(max_length=20, choices=REFUND_STATUS_CHOICES, default='none')
    refund_id = models.CharField(max_length=100, blank=True, default='')
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    refund_reason = models.TextField(blank=True, default='')
    refund_initiated_at = models.DateTimeField(blank=True, null=True)
    refund_date = models.DateTimeField(blank=True, null=True)
    refund_error = models.TextField(blank=True, default='')
    refund_completion_reverted = models.BooleanField(default=False)

    # Cancellation
    cancelled_by = models.CharField(max_length=20, choices=CANCELLED_BY_CHOICES, blank=True, default='')
    cancel_reason = models.TextField(blank=True, default='')
    cancelled_at = models.DateTimeField(blank=True, null=True)

    # Delivery
    tracking_number = models.CharField(max_length=100, blank=True, default='')
    shipped_at = models.DateTimeField(blank=True, null=True)
    delivered_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        if not self.order_number:
            order_number = generate_order_number()
            while Order.objects.filter(order_number=order_number).exists():
                order_number = generate_order_number()
            self.order_number = order_number
        super().save(*args, **kwargs)

    @property
    def is_cod(self):
        return self.payment_method == 'cod'

    @property
    def total_savings(self):
        return self.product_discount + self.coupon_discount

    def can_cancel_at(self, now=None):
        return can_cancel(self.order_status, self.payment_status, self.created_at, now)

    @property
    def can_cancel(self):
        return self.can_cancel_at()

    def cancellation_block_reason(self, now=None):
        return cancellation_block_reason(self.order_status, self.payment_status, self.created_at, now)

    def record(self, event, description=''):
        """Append an entry to the order timeline."""
        return OrderEvent.objects.create(order=self, event=event, description=description)

    def __str__(self):
        return f"Order {self.order_number} - {self.order_status}/{self.payment_status}"


class OrderEvent(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='timeline')
    event = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.order_id}: {self.event}"
