from decimal import Decimal

from django.db import models

STORE_SETTINGS_KEY = 'store_settings'


class StoreSettings(models.Model):
    """Checkout configuration kept in one well-known row."""
    key = models.CharField(max_length=50, unique=True, default=STORE_SETTINGS_KEY)
    store_open = models.BooleanField(default=True)
    online_payment_enabled = models.BooleanField(default=True)
    cod_enabled = models.BooleanField(default=True)
    cod_minimum_order = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    # 0 means no upper bound
    cod_maximum_order = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cod_extra_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    last_updated_by = models.CharField(max_length=255, blank=True, default='')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'Store settings'

    @classmethod
    def load(cls):
        settings_row, _ = cls.objects.get_or_create(key=STORE_SETTINGS_KEY)
        return settings_row

    def cod_block_reason(self, amount):
        """Why cash on delivery can't be used for ``amount``, or None."""
        amount = Decimal(amount)
        if not self.cod_enabled:
            return 'Cash on Delivery is currently unavailable'
        if self.cod_minimum_order and amount < self.cod_minimum_order:
            return f"Minimum order amount for COD is ₹{self.cod_minimum_order}"
        if self.cod_maximum_order and amount > self.cod_maximum_order:
            return f"Maximum order amount for COD is ₹{self.cod_maximum_order}"
        return None

    def __str__(self):
        return 'Store settings'
