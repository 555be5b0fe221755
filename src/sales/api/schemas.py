"""Pydantic request schemas for the Sales API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Payloads use camelCase keys; snake_case names
are accepted as well.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CustomFieldSchema(ApiModel):
    label: str
    value: str


class AddressSchema(ApiModel):
    recipient_name: str
    line1: str
    line2: str | None = None
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str
    phone: str | None = None


class ShippingRateSchema(ApiModel):
    min_weight: float = Field(ge=0)
    max_weight: float
    fee: float = Field(ge=0)


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartLineRequest(ApiModel):
    product_id: str
    variant_sku: str
    quantity: int = Field(ge=1, default=1)
    custom_fields: list[CustomFieldSchema] | None = None


class UpdateCartLineRequest(ApiModel):
    variant_sku: str
    quantity: int = Field(ge=1)


class ApplyCartCouponRequest(ApiModel):
    code: str


class EstimateLineSchema(ApiModel):
    product_id: str
    variant_sku: str
    title: str
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    weight: float = Field(ge=0, default=0)
    size: str | None = None
    color: str | None = None
    thumbnail: str | None = None
    custom_fields: list[CustomFieldSchema] | None = None


class EstimateCartRequest(ApiModel):
    items: list[EstimateLineSchema]
    coupon_code: str | None = None
    expedited: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "items": [
                        {
                            "productId": "prod-001",
                            "variantSku": "TEE-BLK-M",
                            "title": "Linen Tee",
                            "price": 1000,
                            "quantity": 2,
                            "weight": 300,
                        }
                    ],
                    "couponCode": "SAVE10",
                    "expedited": False,
                }
            ]
        },
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderItemSchema(ApiModel):
    product_id: str
    variant_sku: str
    quantity: int = Field(ge=1, default=1)
    price: float | None = None  # Display estimate only; ignored when pricing
    custom_fields: list[CustomFieldSchema] | None = None


class CreateOrderRequest(ApiModel):
    email: str | None = None
    address: AddressSchema
    items: list[OrderItemSchema] = []
    payment_method: Literal["cod", "card", "bank_transfer"] = "cod"
    coupon_code: str | None = None
    delivery_method: Literal["Standard", "Express", "Click & collect"] = "Standard"
    estimated_delivery: datetime | None = None
    notes: str | None = None


class UpdateOrderRequest(ApiModel):
    status: str | None = None
    note: str | None = None
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None
    delivery_provider: str | None = None
    payment_status: str | None = None
    transaction_id: str | None = None


class CancelOrderRequest(ApiModel):
    note: str | None = None


class PaymentNotificationRequest(ApiModel):
    status: Literal["paid", "failed", "refunded"]
    transaction_id: str


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class ValidateCouponRequest(ApiModel):
    code: str | None = None
    subtotal: float = Field(ge=0)


class CreateCouponRequest(ApiModel):
    code: str
    kind: Literal["percentage", "fixed"]
    value: float = Field(ge=0)
    min_spend: float | None = None
    max_discount: float | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    usage_limit: int | None = None
    auto_apply: bool = False
    is_active: bool = True


class UpdateCouponRequest(ApiModel):
    code: str | None = None
    kind: Literal["percentage", "fixed"] | None = None
    value: float | None = Field(ge=0, default=None)
    min_spend: float | None = None
    max_discount: float | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    usage_limit: int | None = None
    auto_apply: bool | None = None
    is_active: bool | None = None


# ---------------------------------------------------------------------------
# Shipping
# ---------------------------------------------------------------------------
class ShippingSettingsRequest(ApiModel):
    rates: list[ShippingRateSchema]
    free_shipping_threshold: float = Field(ge=0, default=15000)
    express_shipping_surcharge: float = Field(ge=0, default=700)
