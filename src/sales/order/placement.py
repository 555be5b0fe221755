"""Order placement: command, handler and the checkout entry point.

Prices, weights and stock come from the catalogue, never from the client.
The order, the stock reservations, the coupon redemption and the emptied
cart are persisted in the command's unit of work. The confirmation email
follows from the ``OrderPlaced`` event once that commits.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from sales.cart.cart import ShoppingCart, load_custom_fields
from sales.catalogue.product import Product
from sales.coupon.coupon import Coupon
from sales.coupon.validation import validate_coupon
from sales.domain import logger, sales
from sales.order.order import STANDARD_DELIVERY, DeliveryMethod, Order
from sales.pricing.cart import CartLine, compute_totals, subtotal_of
from sales.shipping.settings import load_shipping_config


@sales.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier()  # Empty for guest checkout
    email = String(max_length=254)
    items = Text()  # JSON: list of {product_id, variant_sku, quantity, custom_fields?}
    address = Text()  # JSON: DeliveryAddress fields
    payment_method = String(max_length=20, default="cod")
    coupon_code = String(max_length=50)
    delivery_method = String(max_length=50, default=STANDARD_DELIVERY)
    estimated_delivery = DateTime()
    notes = Text()


def _load_json(raw):
    if raw is None:
        return None
    return json.loads(raw) if isinstance(raw, str) else raw


def _delivery_method(raw):
    try:
        return DeliveryMethod(raw or STANDARD_DELIVERY)
    except ValueError as exc:
        raise ValidationError({"delivery_method": [f"Unknown delivery method: {raw}"]}) from exc


def _custom_fields_json(raw):
    if not raw:
        return None
    return raw if isinstance(raw, str) else json.dumps(raw)


@sales.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items = _load_json(command.items) or []
        if not items:
            raise ValidationError({"items": ["Order must have at least one item"]})
        if not command.email:
            raise ValidationError({"email": ["Email is required"]})
        delivery_method = _delivery_method(command.delivery_method)

        product_repo = current_domain.repository_for(Product)
        products = {}
        lines = []
        for item in items:
            product_id = str(item.get("product_id") or "")
            variant_sku = item.get("variant_sku")
            if not product_id or not variant_sku:
                raise ValidationError({"items": ["Each item needs a product and a variant"]})

            product = products.get(product_id) or product_repo.get(product_id)
            products[product_id] = product
            variant = product.details_for(variant_sku)

            lines.append(
                CartLine(
                    product_id=product_id,
                    variant_sku=variant.sku,
                    title=variant.title,
                    price=variant.price,
                    quantity=int(item.get("quantity", 1)),
                    weight_grams=variant.weight_grams,
                    size=variant.size,
                    color=variant.color,
                    thumbnail=variant.thumbnail,
                    custom_fields=load_custom_fields(_custom_fields_json(item.get("custom_fields"))),
                )
            )

        for line in lines:
            products[line.product_id].reserve(line.variant_sku, line.quantity)

        discount = 0
        coupon_code = None
        if command.coupon_code:
            verdict = validate_coupon(command.coupon_code, subtotal_of(lines))
            if not verdict.valid:
                raise ValidationError({"coupon_code": [verdict.message]})
            discount = verdict.discount
            coupon_code = verdict.code

        totals = compute_totals(
            lines,
            discount=discount,
            shipping_config=load_shipping_config(),
            expedited=delivery_method == DeliveryMethod.EXPRESS,
            delivery_fee=0 if delivery_method == DeliveryMethod.CLICK_AND_COLLECT else None,
        )

        order = Order.place(
            email=command.email,
            address=_load_json(command.address) or {},
            lines=lines,
            totals=totals,
            payment_method=command.payment_method,
            user_id=command.user_id,
            coupon_code=coupon_code,
            delivery_method=delivery_method.value,
            estimated_delivery=command.estimated_delivery,
            notes=command.notes,
        )
        current_domain.repository_for(Order).add(order)

        for product in products.values():
            product_repo.add(product)

        if coupon_code:
            current_domain.repository_for(Coupon).redeem(coupon_code)

        if command.user_id:
            cart_repo = current_domain.repository_for(ShoppingCart)
            cart = cart_repo.for_customer(command.user_id)
            if cart is not None and cart.items:
                cart.clear()
                cart_repo.add(cart)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            user_id=str(command.user_id) if command.user_id else None,
            total=order.total,
            coupon_code=coupon_code,
        )
        return str(order.id)


def create_order(command: PlaceOrder) -> Order:
    """Place an order and return it as stored."""
    order_id = current_domain.process(command, asynchronous=False)
    return current_domain.repository_for(Order).get(order_id)
