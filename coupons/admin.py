from django.contrib import admin

from .models import Coupon, CouponRedemption


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ('code', 'discount_type', 'discount_value', 'min_purchase', 'used_count',
                    'usage_limit', 'is_active', 'start_date', 'expiry_date')
    list_filter = ('discount_type', 'is_active')
    search_fields = ('code', 'description')
    readonly_fields = ('used_count',)


@admin.register(CouponRedemption)
class CouponRedemptionAdmin(admin.ModelAdmin):
    list_display = ('coupon_code', 'order', 'created_at')
    search_fields = ('coupon_code',)

    def has_change_permission(self, request, obj=None):
        return False
