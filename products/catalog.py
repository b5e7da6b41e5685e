"""
Read-only catalog lookup used at checkout time.

Orders never hold a reference to the live product row; they copy what this
module returns into an immutable line snapshot.
"""
from dataclasses import dataclass
from decimal import Decimal

from .models import Product


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    category: str
    price: Decimal
    discount_type: str = 'none'
    discount_value: Decimal = Decimal('0')
    is_available: bool = True

    @classmethod
    def from_product(cls, product):
        return cls(
            id=product.pk,
            name=product.name,
            category=product.category,
            price=product.price,
            discount_type=product.discount_type,
            discount_value=product.discount_value,
            is_available=product.is_available,
        )


def get_snapshot(product_id):
    """Return the snapshot for one product, or None when it does not exist."""
    product = Product.objects.filter(pk=product_id).first()
    return ProductSnapshot.from_product(product) if product else None


def get_snapshots(product_ids):
    """Return {id: ProductSnapshot} for every id that exists, in one query."""
    products = Product.objects.filter(pk__in=set(product_ids))
    return {product.pk: ProductSnapshot.from_product(product) for product in products}
