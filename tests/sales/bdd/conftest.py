"""Shared BDD fixtures and step definitions for the Sales domain."""

import json

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from sales.catalogue.product import Product, Variant
from sales.coupon.management import CreateCoupon
from sales.order.order import Order
from sales.order.placement import PlaceOrder

ADDRESS = {
    "recipient_name": "Ama Mensah",
    "line1": "12 Palm Street",
    "city": "Accra",
    "country": "GH",
}


@pytest.fixture()
def catalogue():
    """Products seeded by the scenario, keyed by variant SKU."""
    return {}


@pytest.fixture()
def context():
    return {}


@pytest.fixture()
def place_order(catalogue):
    """Place an order for (sku, quantity) pairs from the seeded catalogue."""

    def _place(user_id, quantities, coupon_code=None, delivery_method="Standard"):
        items = [
            {"product_id": str(catalogue[sku].id), "variant_sku": sku, "quantity": quantity}
            for sku, quantity in quantities
        ]
        return current_domain.process(
            PlaceOrder(
                user_id=user_id,
                email=f"{user_id}@example.com",
                items=json.dumps(items),
                address=json.dumps(ADDRESS),
                payment_method="card",
                coupon_code=coupon_code,
                delivery_method=delivery_method,
            ),
            asynchronous=False,
        )

    return _place


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        'a product "{title}" with variant "{sku}" priced {price:d} weighing {weight:d}g with {stock:d} in stock'
    )
)
def _(catalogue, title, sku, price, weight, stock):
    product = Product(
        title=title,
        weight_grams=weight,
        variants=[Variant(sku=sku, price=price, stock=stock)],
    )
    current_domain.repository_for(Product).add(product)
    catalogue[sku] = product


@given(parsers.cfparse('a {kind} coupon "{code}" worth {value:d}'))
def _(kind, code, value):
    current_domain.process(CreateCoupon(code=code, kind=kind, value=value), asynchronous=False)


@given(parsers.cfparse('a {kind} coupon "{code}" worth {value:d} with a minimum spend of {min_spend:d}'))
def _(kind, code, value, min_spend):
    current_domain.process(CreateCoupon(code=code, kind=kind, value=value, min_spend=min_spend), asynchronous=False)


@given(parsers.cfparse('a {kind} coupon "{code}" worth {value:d} usable {limit:d} time'))
def _(kind, code, value, limit):
    current_domain.process(CreateCoupon(code=code, kind=kind, value=value, usage_limit=limit), asynchronous=False)


@given(parsers.cfparse('an inactive {kind} coupon "{code}" worth {value:d}'))
def _(kind, code, value):
    current_domain.process(CreateCoupon(code=code, kind=kind, value=value, is_active=False), asynchronous=False)


@given(
    parsers.cfparse('customer "{user_id}" has placed an order for {quantity:d} of "{sku}"'),
    target_fixture="order_id",
)
def _(place_order, user_id, quantity, sku):
    return place_order(user_id, [(sku, quantity)])


@given(
    parsers.cfparse('customer "{user_id}" has used coupon "{code}" on an order for {quantity:d} of "{sku}"'),
    target_fixture="order_id",
)
def _(place_order, user_id, code, quantity, sku):
    return place_order(user_id, [(sku, quantity)], coupon_code=code)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{sku}" has {stock:d} in stock'))
def _(catalogue, sku, stock):
    product = current_domain.repository_for(Product).get(catalogue[sku].id)
    assert product.variant_for(sku).stock == stock


@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status
