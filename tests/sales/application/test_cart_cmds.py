"""Application tests for cart commands."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from sales.cart.cart import ShoppingCart
from sales.cart.estimate import estimate_totals
from sales.cart.items import AddToCart, ApplyCouponToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from sales.shipping.provider import ShippingConfigProvider
from sales.shipping.settings import load_shipping_config


def _add(product, sku, quantity=1, customer_id="cust-001", custom_fields=None):
    return current_domain.process(
        AddToCart(
            customer_id=customer_id,
            product_id=str(product.id),
            variant_sku=sku,
            quantity=quantity,
            custom_fields=json.dumps(custom_fields) if custom_fields else None,
        ),
        asynchronous=False,
    )


def _cart(customer_id="cust-001"):
    return current_domain.repository_for(ShoppingCart).for_customer(customer_id)


class TestAddToCart:
    def test_first_add_creates_cart(self, tee):
        _add(tee, "TEE-M", 2)
        cart = _cart()
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2
        assert cart.items[0].price == 1000
        assert cart.items[0].weight_grams == 300

    def test_repeat_add_merges(self, tee):
        _add(tee, "TEE-M", 1)
        _add(tee, "TEE-M", 2)
        cart = _cart()
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_custom_lines_never_merge(self, tee):
        monogram = [{"label": "Monogram", "value": "AM"}]
        _add(tee, "TEE-M", 1, custom_fields=monogram)
        _add(tee, "TEE-M", 1, custom_fields=monogram)
        assert len(_cart().items) == 2

    def test_more_than_stock_rejected(self, scarf):
        with pytest.raises(ValidationError) as exc:
            _add(scarf, "SCARF", 6)
        assert exc.value.messages["quantity"] == ["Insufficient stock for Silk Scarf (SCARF)"]

    def test_unknown_variant(self, tee):
        with pytest.raises(ObjectNotFoundError):
            _add(tee, "TEE-XXL")

    def test_carts_are_per_customer(self, tee):
        _add(tee, "TEE-M", customer_id="cust-001")
        _add(tee, "TEE-M", customer_id="cust-002")
        assert len(_cart("cust-001").items) == 1
        assert len(_cart("cust-002").items) == 1


class TestUpdateAndRemove:
    def test_update_quantity(self, tee):
        _add(tee, "TEE-M")
        current_domain.process(
            UpdateCartQuantity(customer_id="cust-001", variant_sku="TEE-M", quantity=4),
            asynchronous=False,
        )
        assert _cart().items[0].quantity == 4

    def test_update_without_cart_is_noop(self):
        result = current_domain.process(
            UpdateCartQuantity(customer_id="cust-404", variant_sku="TEE-M", quantity=4),
            asynchronous=False,
        )
        assert result is None
        assert _cart("cust-404") is None

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            UpdateCartQuantity(customer_id="cust-001", variant_sku="TEE-M", quantity=0)

    def test_remove_line(self, tee, scarf):
        _add(tee, "TEE-M")
        _add(scarf, "SCARF")
        current_domain.process(RemoveFromCart(customer_id="cust-001", variant_sku="TEE-M"), asynchronous=False)
        assert [item.variant_sku for item in _cart().items] == ["SCARF"]

    def test_remove_unknown_sku_is_noop(self, tee):
        _add(tee, "TEE-M")
        current_domain.process(RemoveFromCart(customer_id="cust-001", variant_sku="NOPE"), asynchronous=False)
        assert len(_cart().items) == 1

    def test_clear(self, tee, scarf):
        _add(tee, "TEE-M")
        _add(scarf, "SCARF")
        current_domain.process(ClearCart(customer_id="cust-001"), asynchronous=False)
        assert len(_cart().items) == 0


class TestApplyCoupon:
    def test_valid_coupon_is_stored(self, tee, make_coupon):
        make_coupon("SAVE10")
        _add(tee, "TEE-M", 2)
        verdict = current_domain.process(
            ApplyCouponToCart(customer_id="cust-001", coupon_code="save10"),
            asynchronous=False,
        )
        assert verdict.valid
        assert verdict.discount == 200
        cart = _cart()
        assert cart.coupon_code == "SAVE10"
        assert cart.discount == 200

    def test_invalid_coupon_rejected(self, tee, make_coupon):
        make_coupon("BIGSPEND", min_spend=5000)
        _add(tee, "TEE-M")
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                ApplyCouponToCart(customer_id="cust-001", coupon_code="BIGSPEND"),
                asynchronous=False,
            )
        assert exc.value.messages["coupon_code"] == ["Minimum spend of 5000 required"]
        assert _cart().coupon_code is None

    def test_empty_cart_rejected(self, make_coupon):
        make_coupon("SAVE10")
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                ApplyCouponToCart(customer_id="cust-001", coupon_code="SAVE10"),
                asynchronous=False,
            )
        assert exc.value.messages["cart"] == ["Cannot apply a coupon to an empty cart"]

    def test_clear_drops_coupon(self, tee, make_coupon):
        make_coupon("SAVE10")
        _add(tee, "TEE-M")
        current_domain.process(ApplyCouponToCart(customer_id="cust-001", coupon_code="SAVE10"), asynchronous=False)
        current_domain.process(ClearCart(customer_id="cust-001"), asynchronous=False)
        assert _cart().coupon_code is None


class TestEstimateTotals:
    def test_estimate_with_coupon(self, tee, scarf, make_coupon):
        make_coupon("SAVE10")
        _add(tee, "TEE-M", 2)
        _add(scarf, "SCARF", 1)
        totals, message = estimate_totals(
            _cart().lines(),
            ShippingConfigProvider(load_shipping_config),
            coupon_code="SAVE10",
        )
        assert totals.to_dict() == {"subtotal": 2500, "deliveryFee": 800, "discount": 250, "total": 3050}
        assert message is None

    def test_coupon_no_longer_valid_is_reported(self, tee, make_coupon):
        make_coupon("BIGSPEND", min_spend=5000)
        _add(tee, "TEE-M")
        totals, message = estimate_totals(
            _cart().lines(),
            ShippingConfigProvider(load_shipping_config),
            coupon_code="BIGSPEND",
        )
        assert totals.discount == 0
        assert message == "Minimum spend of 5000 required"
