"""Cart line management: commands and handler."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from sales.cart.cart import ShoppingCart, load_custom_fields
from sales.catalogue.product import Product
from sales.coupon.validation import validate_coupon
from sales.domain import sales
from sales.pricing.cart import CartLine, subtotal_of


@sales.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_sku = String(required=True, max_length=50)
    quantity = Integer(default=1, min_value=1)
    custom_fields = Text()  # JSON array of {label, value}


@sales.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    customer_id = Identifier(required=True)
    variant_sku = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)


@sales.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    variant_sku = String(required=True, max_length=50)


@sales.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    customer_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@sales.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


def _custom_fields_json(raw):
    if raw is None or isinstance(raw, str):
        return raw
    return json.dumps(raw)


@sales.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        variant = current_domain.repository_for(Product).find_variant(command.product_id, command.variant_sku)
        if variant.stock < command.quantity:
            raise ValidationError({"quantity": [f"Insufficient stock for {variant.title} ({variant.sku})"]})

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id) or ShoppingCart.create(command.customer_id)
        cart.add_line(
            CartLine(
                product_id=variant.product_id,
                variant_sku=variant.sku,
                title=variant.title,
                price=variant.price,
                quantity=command.quantity,
                weight_grams=variant.weight_grams,
                size=variant.size,
                color=variant.color,
                thumbnail=variant.thumbnail,
                custom_fields=load_custom_fields(_custom_fields_json(command.custom_fields)),
            )
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None:
            return None
        cart.update_line_quantity(command.variant_sku, command.quantity)
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None:
            return None
        cart.remove_line(command.variant_sku)
        repo.add(cart)
        return str(cart.id)

    @handle(ApplyCouponToCart)
    def apply_coupon_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Cannot apply a coupon to an empty cart"]})

        verdict = validate_coupon(command.coupon_code, subtotal_of(cart.lines()))
        if not verdict.valid:
            raise ValidationError({"coupon_code": [verdict.message]})

        cart.apply_coupon(verdict.code, verdict.discount)
        repo.add(cart)
        return verdict

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None:
            return None
        cart.clear()
        repo.add(cart)
        return str(cart.id)
