import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sales.api import (
    admin_router,
    cart_router,
    coupon_router,
    order_router,
    register_error_handlers,
    shipping_router,
)

CUSTOMER = {"X-User-Id": "user-001"}
OTHER_CUSTOMER = {"X-User-Id": "user-002"}
ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "admin"}


def _app():
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(coupon_router)
    app.include_router(shipping_router)
    app.include_router(admin_router)
    register_error_handlers(app)
    return app


@pytest.fixture()
def client():
    return TestClient(_app())


@pytest.fixture()
def lenient_client():
    """Client that returns 500 responses instead of re-raising server errors."""
    return TestClient(_app(), raise_server_exceptions=False)


@pytest.fixture()
def customer():
    return dict(CUSTOMER)


@pytest.fixture()
def other_customer():
    return dict(OTHER_CUSTOMER)


@pytest.fixture()
def admin():
    return dict(ADMIN)
