"""Boutique sales FastAPI application.

Serves the cart, checkout, order lifecycle, coupon and shipping endpoints.
Commands are processed synchronously within each request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from src/sales/domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sales.domain import sales
from sales.utils.logging import add_context, clear_context, configure_logging

configure_logging()
sales.init()

_DOMAIN_PREFIXES = ("/cart", "/orders", "/coupons", "/shipping", "/admin")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Boutique Sales API",
    description="Cart pricing, checkout, coupons, shipping and order lifecycle",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the sales domain context for every domain request."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with sales.domain_context():
            return await call_next(request)
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from sales.api import (  # noqa: E402
    admin_router,
    cart_router,
    coupon_router,
    order_router,
    register_error_handlers,
    shipping_router,
)

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(coupon_router)
app.include_router(shipping_router)
app.include_router(admin_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": sales.name})
