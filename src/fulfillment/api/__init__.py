"""Fulfillment API package."""

from fulfillment.api.errors import register_fulfillment_exception_handlers
from fulfillment.api.routes import checkout_router, order_router, payment_router, rider_router, shop_router

routers = [checkout_router, order_router, payment_router, shop_router, rider_router]

__all__ = [
    "checkout_router",
    "order_router",
    "payment_router",
    "register_fulfillment_exception_handlers",
    "rider_router",
    "routers",
    "shop_router",
]
