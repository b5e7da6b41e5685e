from django.contrib import admin

from .models import Discount


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ('name', 'scope', 'category', 'product', 'discount_type', 'discount_value',
                    'is_active', 'priority', 'start_date', 'end_date')
    list_filter = ('scope', 'discount_type', 'is_active')
    search_fields = ('name', 'category')
