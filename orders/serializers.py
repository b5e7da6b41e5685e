from rest_framework import serializers

from .models import Order, OrderEvent


class OrderEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderEvent
        fields = ['event', 'description', 'created_at']


class OrderSerializer(serializers.ModelSerializer):
    can_cancel = serializers.SerializerMethodField()
    cancellation_block_reason = serializers.SerializerMethodField()
    total_savings = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    timeline = OrderEventSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        exclude = ['gateway_signature']

    def get_can_cancel(self, obj):
        return obj.can_cancel_at(self.context.get('now'))

    def get_cancellation_block_reason(self, obj):
        return obj.cancellation_block_reason(self.context.get('now'))


class OrderSummarySerializer(serializers.ModelSerializer):
    """Admin list rows, without the timeline."""
    can_cancel = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'customer_name', 'customer_email', 'customer_phone',
                  'final_amount', 'coupon_code', 'payment_method', 'payment_status', 'order_status',
                  'refund_status', 'refund_error', 'can_cancel', 'created_at', 'updated_at']


class OrderItemRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, default=1)


class CreateOrderRequestSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255)
    customer_email = serializers.EmailField()
    customer_phone = serializers.CharField(max_length=20)
    address = serializers.CharField()
    pincode = serializers.CharField(max_length=10, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = OrderItemRequestSerializer(many=True)
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Cart is empty')
        return value


class CancelOrderRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)
    custom_reason = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')

    def validate(self, data):
        # A free-text reason replaces the picked one, as the cancel form sends both
        data['reason'] = data['custom_reason'].strip() or data['reason']
        return data


class UpdateOrderStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.ORDER_STATUS_CHOICES)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
