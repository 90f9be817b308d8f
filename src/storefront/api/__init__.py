"""Storefront HTTP API package."""

from storefront.api.routes import (
    cart_router,
    checkout_router,
    delivery_router,
    inquiry_router,
    order_router,
    product_router,
    request_router,
)

ROUTERS = (
    product_router,
    cart_router,
    checkout_router,
    order_router,
    delivery_router,
    request_router,
    inquiry_router,
)

__all__ = ["ROUTERS"]
