from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'discount_type', 'discount_value', 'is_available')
    list_filter = ('category', 'is_available', 'discount_type')
    search_fields = ('name', 'slug', 'category')
