"""Cart line aggregation and totals.

These functions are shared by the storefront estimate (``POST /cart/estimate``
and the server-side cart) and by order placement, so an estimate and the
final order are always priced by the same code.

Lines are immutable; every operation returns a new list.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace

from protean.exceptions import ValidationError

from sales.pricing.shipping import DEFAULT_SHIPPING_CONFIG, ShippingConfig, compute_shipping_fee, total_weight


@dataclass(frozen=True)
class CustomField:
    label: str
    value: str

    def to_dict(self) -> dict:
        return {"label": self.label, "value": self.value}


@dataclass(frozen=True)
class CartLine:
    """One entry in a cart.

    A line carrying custom fields is a made-to-order item and never merges
    with another line, even one with the same SKU.
    """

    product_id: str
    variant_sku: str
    title: str
    price: float
    quantity: int
    weight_grams: float = 0
    size: str | None = None
    color: str | None = None
    thumbnail: str | None = None
    custom_fields: tuple[CustomField, ...] = ()

    def __post_init__(self):
        if self.quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if self.price < 0:
            raise ValidationError({"price": ["Price cannot be negative"]})
        if self.weight_grams is not None and self.weight_grams < 0:
            raise ValidationError({"weight_grams": ["Weight cannot be negative"]})

    @property
    def is_custom(self) -> bool:
        return bool(self.custom_fields)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def mergeable_with(self, other: "CartLine") -> bool:
        return self.variant_sku == other.variant_sku and not self.is_custom and not other.is_custom


@dataclass(frozen=True)
class CartTotals:
    subtotal: float
    delivery_fee: float
    discount: float
    total: float

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "deliveryFee": self.delivery_fee,
            "discount": self.discount,
            "total": self.total,
        }


def merge_line(lines: Iterable[CartLine], new_line: CartLine) -> list[CartLine]:
    """Add ``new_line``, folding it into an existing mergeable line when there is one."""
    lines = list(lines)
    if not new_line.is_custom:
        for index, line in enumerate(lines):
            if line.mergeable_with(new_line):
                lines[index] = replace(line, quantity=line.quantity + new_line.quantity)
                return lines
    lines.append(new_line)
    return lines


def update_quantity(lines: Iterable[CartLine], variant_sku: str, quantity: int) -> list[CartLine]:
    """Set ``quantity`` on every line with ``variant_sku``. Unknown SKUs are ignored."""
    if quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be at least 1"]})
    return [replace(line, quantity=quantity) if line.variant_sku == variant_sku else line for line in lines]


def remove_line(lines: Iterable[CartLine], variant_sku: str) -> list[CartLine]:
    """Drop every line with ``variant_sku``. Unknown SKUs are ignored."""
    return [line for line in lines if line.variant_sku != variant_sku]


def subtotal_of(lines: Iterable[CartLine]) -> float:
    return sum(line.price * line.quantity for line in lines)


def order_total(subtotal: float, delivery_fee: float, discount: float) -> float:
    return max(subtotal + delivery_fee - discount, 0)


def compute_totals(
    lines: Iterable[CartLine],
    discount: float = 0,
    shipping_config: ShippingConfig | None = None,
    expedited: bool = False,
    delivery_fee: float | None = None,
) -> CartTotals:
    """Price a set of cart lines.

    ``delivery_fee`` replaces the weight-based fee, as for in-store pickup.
    """
    lines = list(lines)
    subtotal = subtotal_of(lines)

    if delivery_fee is None:
        delivery_fee = compute_shipping_fee(
            total_weight(lines),
            subtotal,
            shipping_config or DEFAULT_SHIPPING_CONFIG,
            expedited=expedited,
        )

    discount = discount or 0
    return CartTotals(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        discount=discount,
        total=order_total(subtotal, delivery_fee, discount),
    )
