# serializers.py
from rest_framework import serializers

from .models import Coupon, normalize_code


class CouponSerializer(serializers.ModelSerializer):
    is_currently_valid = serializers.SerializerMethodField()

    class Meta:
        model = Coupon
        fields = '__all__'
        read_only_fields = ['used_count', 'created_at', 'updated_at']
        # Uniqueness is checked on the normalized code in validate_code
        extra_kwargs = {'code': {'validators': []}}

    def get_is_currently_valid(self, obj):
        return obj.is_valid()

    def validate_code(self, value):
        code = normalize_code(value)
        if not code:
            raise serializers.ValidationError('Coupon code is required')
        existing = Coupon.objects.filter(code=code)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError('A coupon with this code already exists')
        return code

    def validate_applicable_categories(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError('applicable_categories must be a list of category names')
        return [item.strip() for item in value if item.strip()]

    def validate(self, data):
        discount_type = data.get('discount_type', getattr(self.instance, 'discount_type', None))
        discount_value = data.get('discount_value', getattr(self.instance, 'discount_value', None))
        if discount_value is not None and discount_value < 0:
            raise serializers.ValidationError({'discount_value': 'Discount value cannot be negative'})
        if discount_type == 'percentage' and discount_value is not None and discount_value > 100:
            raise serializers.ValidationError({'discount_value': 'Percentage discount cannot exceed 100'})

        start = data.get('start_date', getattr(self.instance, 'start_date', None))
        expiry = data.get('expiry_date', getattr(self.instance, 'expiry_date', None))
        if start and expiry and expiry <= start:
            raise serializers.ValidationError({'expiry_date': 'Expiry date must be after start date'})
        return data


class CouponCartItemSerializer(serializers.Serializer):
    category = serializers.CharField(allow_blank=True, required=False, default='')
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)


class ValidateCouponRequestSerializer(serializers.Serializer):
    code = serializers.CharField()
    cartTotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    cartItems = CouponCartItemSerializer(many=True, required=False, default=list)


class ConfirmUsageRequestSerializer(serializers.Serializer):
    code = serializers.CharField()
    orderId = serializers.IntegerField(required=False, allow_null=True, default=None)


class PublicCouponSerializer(serializers.ModelSerializer):
    class Meta:
        model = Coupon
        fields = ['code', 'discount_type', 'discount_value', 'min_purchase', 'expiry_date',
                  'applicable_categories', 'description']
