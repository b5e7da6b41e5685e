from rest_framework import serializers

from .models import StoreSettings


class VerifyPaymentRequestSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    razorpay_order_id = serializers.CharField(max_length=100)
    razorpay_payment_id = serializers.CharField(max_length=100)
    razorpay_signature = serializers.CharField(max_length=255)


class PaymentFailedRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class StoreSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreSettings
        exclude = ['id', 'key']
        read_only_fields = ['last_updated_by', 'updated_at']

    def validate(self, data):
        minimum = data.get('cod_minimum_order', getattr(self.instance, 'cod_minimum_order', 0))
        maximum = data.get('cod_maximum_order', getattr(self.instance, 'cod_maximum_order', 0))
        if min(minimum, maximum, data.get('cod_extra_charge', 0)) < 0:
            raise serializers.ValidationError('Amounts cannot be negative')
        if maximum and minimum > maximum:
            raise serializers.ValidationError({'cod_maximum_order': 'Maximum must be greater than minimum'})
        return data
