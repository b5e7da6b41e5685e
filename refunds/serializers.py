from rest_framework import serializers

from orders.models import Order


class RefundRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True,
                                      default=None)
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')


class RefundStatusRequestSerializer(serializers.Serializer):
    refund_status = serializers.ChoiceField(choices=Order.REFUND_STATUS_CHOICES)


class RefundSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = ['id', 'order_number', 'order_status', 'payment_status', 'refund_status', 'refund_id',
                  'refund_amount', 'refund_reason', 'refund_initiated_at', 'refund_date', 'refund_error',
                  'refund_completion_reverted']
