"""Sales domain API package."""

from sales.api.errors import register_error_handlers
from sales.api.routes import admin_router, cart_router, coupon_router, order_router, shipping_router

__all__ = [
    "admin_router",
    "cart_router",
    "order_router",
    "coupon_router",
    "shipping_router",
    "register_error_handlers",
]
