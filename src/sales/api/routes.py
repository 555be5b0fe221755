"""FastAPI routes for the Sales domain: cart, orders, coupons and shipping."""

import hmac
import json
import os

from fastapi import APIRouter, Depends, Header, Query
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from sales.api.dependencies import (
    Requester,
    admin_requester,
    current_requester,
    ensure_can_view,
    get_shipping_provider,
    optional_requester,
)
from sales.api.schemas import (
    AddCartLineRequest,
    ApplyCartCouponRequest,
    CancelOrderRequest,
    CreateCouponRequest,
    CreateOrderRequest,
    EstimateCartRequest,
    PaymentNotificationRequest,
    ShippingSettingsRequest,
    UpdateCartLineRequest,
    UpdateCouponRequest,
    UpdateOrderRequest,
    ValidateCouponRequest,
)
from sales.api.serializers import (
    serialize_cart,
    serialize_coupon,
    serialize_line,
    serialize_order,
    serialize_tracking,
)
from sales.cart.cart import ShoppingCart
from sales.cart.estimate import estimate_totals
from sales.cart.items import AddToCart, ApplyCouponToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from sales.coupon.coupon import Coupon
from sales.coupon.management import CreateCoupon, UpdateCoupon
from sales.coupon.validation import find_auto_apply_coupon, validate_coupon
from sales.exceptions import ForbiddenError
from sales.order.order import Order, OrderStatus
from sales.order.placement import PlaceOrder, create_order
from sales.order.status import CancelOrder, RecordGatewayPayment, UpdateOrder
from sales.pricing.cart import CartLine, CustomField, merge_line
from sales.shipping.provider import ShippingConfigProvider
from sales.shipping.settings import UpdateShippingSettings


def _custom_fields_json(custom_fields):
    if not custom_fields:
        return None
    return json.dumps([field.model_dump() for field in custom_fields])


def _pagination(page, limit, total) -> dict:
    return {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit}


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_payload(customer_id, provider: ShippingConfigProvider) -> dict:
    cart = current_domain.repository_for(ShoppingCart).for_customer(customer_id)
    lines = cart.lines() if cart else []
    totals, coupon_message = estimate_totals(lines, provider, coupon_code=cart.coupon_code if cart else None)
    return {"data": serialize_cart(cart, totals, coupon_message)}


@cart_router.get("")
async def get_cart(
    requester: Requester = Depends(current_requester),
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    return _cart_payload(requester.id, provider)


@cart_router.post("")
async def add_cart_line(
    body: AddCartLineRequest,
    requester: Requester = Depends(current_requester),
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    command = AddToCart(
        customer_id=requester.id,
        product_id=body.product_id,
        variant_sku=body.variant_sku,
        quantity=body.quantity,
        custom_fields=_custom_fields_json(body.custom_fields),
    )
    current_domain.process(command, asynchronous=False)
    return _cart_payload(requester.id, provider)


@cart_router.patch("")
async def update_cart_line(
    body: UpdateCartLineRequest,
    requester: Requester = Depends(current_requester),
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    command = UpdateCartQuantity(
        customer_id=requester.id,
        variant_sku=body.variant_sku,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_payload(requester.id, provider)


@cart_router.delete("/{variant_sku}")
async def remove_cart_line(
    variant_sku: str,
    requester: Requester = Depends(current_requester),
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    command = RemoveFromCart(customer_id=requester.id, variant_sku=variant_sku)
    current_domain.process(command, asynchronous=False)
    return _cart_payload(requester.id, provider)


@cart_router.delete("")
async def clear_cart(
    requester: Requester = Depends(current_requester),
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    current_domain.process(ClearCart(customer_id=requester.id), asynchronous=False)
    return _cart_payload(requester.id, provider)


@cart_router.post("/coupon")
async def apply_cart_coupon(
    body: ApplyCartCouponRequest,
    requester: Requester = Depends(current_requester),
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    command = ApplyCouponToCart(customer_id=requester.id, coupon_code=body.code)
    current_domain.process(command, asynchronous=False)
    return _cart_payload(requester.id, provider)


@cart_router.post("/estimate")
async def estimate_cart(
    body: EstimateCartRequest,
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    """Price a guest cart held by the client, merging lines the same way a stored cart does."""
    lines = []
    for item in body.items:
        lines = merge_line(
            lines,
            CartLine(
                product_id=item.product_id,
                variant_sku=item.variant_sku,
                title=item.title,
                price=item.price,
                quantity=item.quantity,
                weight_grams=item.weight,
                size=item.size,
                color=item.color,
                thumbnail=item.thumbnail,
                custom_fields=tuple(CustomField(f.label, f.value) for f in item.custom_fields or ()),
            ),
        )

    totals, coupon_message = estimate_totals(
        lines,
        provider,
        coupon_code=body.coupon_code,
        expedited=body.expedited,
    )
    data = {"items": [serialize_line(line) for line in lines], "totals": totals.to_dict()}
    if coupon_message:
        data["couponMessage"] = coupon_message
    return {"data": data}


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("")
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    requester: Requester = Depends(current_requester),
) -> dict:
    orders, total = current_domain.repository_for(Order).find_by_user(requester.id, page=page, limit=limit)
    return {
        "data": {
            "orders": [serialize_order(order) for order in orders],
            "pagination": _pagination(page, limit, total),
        }
    }


@order_router.post("", status_code=201)
async def place_order(
    body: CreateOrderRequest,
    requester: Requester | None = Depends(optional_requester),
) -> dict:
    command = PlaceOrder(
        user_id=requester.id if requester else None,
        email=body.email,
        items=json.dumps(
            [
                {
                    "product_id": item.product_id,
                    "variant_sku": item.variant_sku,
                    "quantity": item.quantity,
                    "custom_fields": [field.model_dump() for field in item.custom_fields or []],
                }
                for item in body.items
            ]
        ),
        address=json.dumps(body.address.model_dump()),
        payment_method=body.payment_method,
        coupon_code=body.coupon_code,
        delivery_method=body.delivery_method,
        estimated_delivery=body.estimated_delivery,
        notes=body.notes,
    )
    order = create_order(command)
    return {"data": serialize_order(order)}


@order_router.get("/{order_id}")
async def get_order(
    order_id: str,
    requester: Requester | None = Depends(optional_requester),
) -> dict:
    order = current_domain.repository_for(Order).get(order_id)
    ensure_can_view(order, requester)
    return {"data": serialize_order(order)}


@order_router.get("/{order_id}/tracking")
async def track_order(
    order_id: str,
    requester: Requester | None = Depends(optional_requester),
) -> dict:
    order = current_domain.repository_for(Order).get(order_id)
    ensure_can_view(order, requester)
    return {"data": serialize_tracking(order)}


@order_router.patch("/{order_id}")
async def update_order(
    order_id: str,
    body: UpdateOrderRequest,
    requester: Requester = Depends(admin_requester),
) -> dict:
    """Admin update of fulfilment status, tracking details and payment status."""
    current_domain.process(
        UpdateOrder(
            order_id=order_id,
            status=body.status,
            note=body.note,
            tracking_number=body.tracking_number,
            estimated_delivery=body.estimated_delivery,
            delivery_provider=body.delivery_provider,
            payment_status=body.payment_status,
            transaction_id=body.transaction_id,
        ),
        asynchronous=False,
    )
    return {"data": serialize_order(current_domain.repository_for(Order).get(order_id))}


@order_router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    requester: Requester = Depends(current_requester),
) -> dict:
    repo = current_domain.repository_for(Order)
    order = repo.get(order_id)
    if not (requester.is_admin or order.is_owned_by(requester.id)):
        raise ForbiddenError()

    current_domain.process(
        CancelOrder(order_id=order_id, note=body.note if body else None),
        asynchronous=False,
    )
    return {"data": serialize_order(repo.get(order_id))}


@order_router.post("/{order_id}/payment-notifications")
async def payment_notification(
    order_id: str,
    body: PaymentNotificationRequest,
    x_webhook_secret: str | None = Header(default=None),
) -> dict:
    """Payment outcome pushed by the payment gateway."""
    secret = os.environ.get("PAYMENT_WEBHOOK_SECRET")
    if secret and not hmac.compare_digest(secret, x_webhook_secret or ""):
        raise ForbiddenError("Invalid webhook secret")

    current_domain.process(
        RecordGatewayPayment(order_id=order_id, status=body.status, transaction_id=body.transaction_id),
        asynchronous=False,
    )
    order = current_domain.repository_for(Order).get(order_id)
    return {"data": {"status": order.status, "paymentStatus": order.payment_status}}


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("/validate")
async def validate_coupon_code(body: ValidateCouponRequest) -> dict:
    if not body.code:
        raise ValidationError({"code": ["Coupon code is required"]})
    return {"data": validate_coupon(body.code, body.subtotal).to_dict()}


@coupon_router.get("/auto-apply")
async def auto_apply_coupon(subtotal: float = Query(ge=0)) -> dict:
    verdict = find_auto_apply_coupon(subtotal)
    if verdict is None:
        return {"data": None}
    return {"data": {"code": verdict.code, **verdict.to_dict()}}


@coupon_router.get("")
async def list_coupons(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    requester: Requester = Depends(admin_requester),
) -> dict:
    coupons, total = current_domain.repository_for(Coupon).list_page(page=page, limit=limit)
    return {
        "data": {
            "coupons": [serialize_coupon(coupon) for coupon in coupons],
            "pagination": _pagination(page, limit, total),
        }
    }


@coupon_router.get("/{code}")
async def get_coupon(
    code: str,
    requester: Requester = Depends(admin_requester),
) -> dict:
    coupon = current_domain.repository_for(Coupon).find_by_code(code)
    if coupon is None:
        raise ObjectNotFoundError("Coupon not found")
    return {"data": serialize_coupon(coupon)}


@coupon_router.post("", status_code=201)
async def create_coupon(
    body: CreateCouponRequest,
    requester: Requester = Depends(admin_requester),
) -> dict:
    coupon_id = current_domain.process(CreateCoupon(**body.model_dump()), asynchronous=False)
    coupon = current_domain.repository_for(Coupon).get(coupon_id)
    return {"data": serialize_coupon(coupon)}


@coupon_router.patch("/{code}")
async def update_coupon(
    code: str,
    body: UpdateCouponRequest,
    requester: Requester = Depends(admin_requester),
) -> dict:
    changes = body.model_dump(exclude_unset=True, mode="json")
    coupon_id = current_domain.process(UpdateCoupon(code=code, changes=json.dumps(changes)), asynchronous=False)
    coupon = current_domain.repository_for(Coupon).get(coupon_id)
    return {"data": serialize_coupon(coupon)}


# ---------------------------------------------------------------------------
# Shipping Router
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipping_router.get("")
async def get_shipping_settings(
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    return {"data": provider.refresh().to_dict()}


@shipping_router.patch("")
async def update_shipping_settings(
    body: ShippingSettingsRequest,
    requester: Requester = Depends(admin_requester),
    provider: ShippingConfigProvider = Depends(get_shipping_provider),
) -> dict:
    command = UpdateShippingSettings(
        rates=json.dumps([rate.model_dump(by_alias=True) for rate in body.rates]),
        free_shipping_threshold=body.free_shipping_threshold,
        express_surcharge=body.express_shipping_surcharge,
    )
    config = current_domain.process(command, asynchronous=False)
    provider.invalidate()
    return {"data": config.to_dict()}


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders")
async def list_all_orders(
    status: OrderStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    requester: Requester = Depends(admin_requester),
) -> dict:
    """Every order, newest first, optionally narrowed to one fulfilment status."""
    orders, total = current_domain.repository_for(Order).search(
        status=status.value if status else None,
        page=page,
        limit=limit,
    )
    return {
        "data": {
            "orders": [serialize_order(order) for order in orders],
            "pagination": _pagination(page, limit, total),
        }
    }
