from django.contrib import admin

from .models import Order, OrderEvent


class OrderEventInline(admin.TabularInline):
    model = OrderEvent
    extra = 0
    can_delete = False
    readonly_fields = ('event', 'description', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_number', 'customer_name', 'final_amount', 'payment_method', 'payment_status',
                    'order_status', 'refund_status', 'created_at')
    list_filter = ('payment_status', 'order_status', 'refund_status', 'payment_method')
    search_fields = ('order_number', 'customer_name', 'customer_email', 'customer_phone')
    readonly_fields = ('order_number', 'items', 'subtotal', 'product_discount', 'coupon_code',
                       'coupon_discount', 'cod_charge', 'final_amount', 'created_at', 'updated_at')
    inlines = [OrderEventInline]


@admin.register(OrderEvent)
class OrderEventAdmin(admin.ModelAdmin):
    list_display = ('order', 'event', 'created_at')
    search_fields = ('order__order_number', 'event')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
