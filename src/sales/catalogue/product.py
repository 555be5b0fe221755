"""Product aggregate: the catalog read side that checkout prices against.

Product CRUD lives outside this service; the sales domain only needs the
authoritative price, weight and stock of each variant, and owns the stock
decrement that happens when an order is placed.
"""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Float, HasMany, Integer, String

from sales.domain import sales


@dataclass(frozen=True)
class VariantDetails:
    """Checkout view of one purchasable variant."""

    product_id: str
    title: str
    sku: str
    price: float
    weight_grams: float
    stock: int
    size: str | None = None
    color: str | None = None
    thumbnail: str | None = None


@sales.entity(part_of="Product")
class Variant:
    sku = String(required=True, max_length=50)
    size = String(max_length=20)
    color = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=500)

    @property
    def effective_price(self):
        return self.sale_price if self.sale_price is not None else self.price


@sales.aggregate
class Product:
    title = String(required=True, max_length=255)
    hero_image = String(max_length=500)
    weight_grams = Float(default=0.0, min_value=0.0)
    variants = HasMany(Variant)

    def variant_for(self, sku):
        variant = next((v for v in self.variants if v.sku == sku), None)
        if variant is None:
            raise ObjectNotFoundError(f"Variant {sku} not found for product {self.id}")
        return variant

    def details_for(self, sku) -> VariantDetails:
        variant = self.variant_for(sku)
        return VariantDetails(
            product_id=str(self.id),
            title=self.title,
            sku=variant.sku,
            price=variant.effective_price,
            weight_grams=self.weight_grams or 0,
            stock=variant.stock or 0,
            size=variant.size,
            color=variant.color,
            thumbnail=variant.image or self.hero_image,
        )

    def reserve(self, sku, quantity):
        """Take ``quantity`` units of ``sku`` out of stock."""
        variant = self.variant_for(sku)
        if (variant.stock or 0) < quantity:
            raise ValidationError({"items": [f"Insufficient stock for {self.title} ({sku})"]})
        variant.stock = variant.stock - quantity

    def restock(self, sku, quantity):
        """Return ``quantity`` units of ``sku`` to stock."""
        variant = self.variant_for(sku)
        variant.stock = (variant.stock or 0) + quantity


@sales.repository(part_of=Product)
class ProductRepository:
    def find_variant(self, product_id, sku) -> VariantDetails:
        """Resolve a variant to its checkout details.

        Raises ``ObjectNotFoundError`` for an unknown product or SKU.
        """
        product = self.get(product_id)
        return product.details_for(sku)
