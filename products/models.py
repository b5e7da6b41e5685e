from django.db import models
from django.utils.text import slugify


class Product(models.Model):
    DISCOUNT_TYPE_CHOICES = [
        ('none', 'None'),
        ('percentage', 'Percentage'),
        ('flat', 'Flat'),
    ]

    name = models.CharField(max_length=255)
    # slug field for SEO-friendly URLs in frontend
    slug = models.SlugField(max_length=280, blank=True, null=True, unique=True)
    category = models.CharField(max_length=100, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)

    # Inline discount maintained on the product itself, competes with discount rules
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default='none')
    discount_value = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if not self.slug:
            base_slug = slugify(self.name)
            unique_slug = base_slug
            counter = 1
            while Product.objects.filter(slug=unique_slug).exclude(pk=self.pk).exists():
                unique_slug = f"{base_slug}-{counter}"
                counter += 1
            self.slug = unique_slug
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.category})"
