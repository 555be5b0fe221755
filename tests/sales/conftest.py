"""Shared fixtures for the Sales domain: a small catalogue, coupons and checkout payloads."""

import json

import pytest
from protean import current_domain
from sales.catalogue.product import Product, Variant
from sales.coupon.management import CreateCoupon
from sales.notification import get_email_channel
from sales.order.order import Order
from sales.pricing.cart import CartLine, compute_totals


@pytest.fixture()
def address():
    return {
        "recipient_name": "Ama Mensah",
        "line1": "12 Palm Street",
        "city": "Accra",
        "postal_code": "00233",
        "country": "GH",
        "phone": "+233200000000",
    }


@pytest.fixture()
def make_product():
    def _make(title, sku, price, weight_grams, stock=10, sale_price=None):
        product = Product(
            title=title,
            weight_grams=weight_grams,
            variants=[Variant(sku=sku, size="M", color="Black", price=price, sale_price=sale_price, stock=stock)],
        )
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def make_coupon():
    def _make(code, kind="percentage", value=10, **terms):
        return current_domain.process(
            CreateCoupon(code=code, kind=kind, value=value, **terms),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def tee(make_product):
    return make_product("Linen Tee", "TEE-M", price=1000, weight_grams=300, stock=10)


@pytest.fixture()
def scarf(make_product):
    return make_product("Silk Scarf", "SCARF", price=500, weight_grams=150, stock=5)


@pytest.fixture()
def items_json():
    """JSON items payload from ``(product, sku, quantity)`` tuples."""

    def _items(*entries):
        return json.dumps(
            [
                {"product_id": str(product.id), "variant_sku": sku, "quantity": quantity}
                for product, sku, quantity in entries
            ]
        )

    return _items


@pytest.fixture()
def stock_of():
    def _stock(product, sku):
        return current_domain.repository_for(Product).get(product.id).variant_for(sku).stock

    return _stock


@pytest.fixture()
def email_channel():
    return get_email_channel()


@pytest.fixture()
def seed_orders(address):
    """Store ``count`` one-line orders directly, bypassing checkout."""

    def _seed(count, user_id="user-001", status=None):
        repo = current_domain.repository_for(Order)
        line = CartLine(product_id="prod-seed", variant_sku="SEED", title="Seed", price=100, quantity=1)
        order_ids = []
        for _ in range(count):
            order = Order.place(
                email="seed@example.com",
                address=address,
                lines=[line],
                totals=compute_totals([line]),
                payment_method="cod",
                user_id=user_id,
            )
            if status:
                order.transition_to(status)
            repo.add(order)
            order_ids.append(str(order.id))
        return order_ids

    return _seed
