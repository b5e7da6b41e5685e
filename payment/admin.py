from django.contrib import admin

from .models import StoreSettings


@admin.register(StoreSettings)
class StoreSettingsAdmin(admin.ModelAdmin):
    list_display = ('store_open', 'online_payment_enabled', 'cod_enabled', 'cod_extra_charge', 'updated_at')
