from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .models import Discount


class DiscountSerializer(serializers.ModelSerializer):
    label = serializers.CharField(read_only=True)
    is_currently_valid = serializers.SerializerMethodField()
    product_name = serializers.CharField(source='product.name', read_only=True, default=None)

    class Meta:
        model = Discount
        fields = '__all__'
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'priority': {'required': False},
            'category': {'required': False},
        }

    def get_is_currently_valid(self, obj):
        return obj.is_valid_at()

    def validate(self, data):
        # Run the model invariants against the merged state of a partial update
        instance = Discount(**{
            **({f.name: getattr(self.instance, f.name) for f in Discount._meta.concrete_fields}
               if self.instance else {}),
            **data,
        })
        try:
            instance.clean()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.message_dict)
        return data
