"""
Registre central des routers (API client, webhook, admin, health).
"""
from fastapi import FastAPI
from album_orders.catalog.views import router as catalog_router
from album_orders.cart.views import router as cart_router
from album_orders.checkout.views import router as checkout_router
from album_orders.addresses.views import router as addresses_router
from album_orders.payments.views import router as payments_router
from album_orders.admin.views import router as admin_router
from album_orders.health.router import router as health_router


def register_routers(app: FastAPI) -> None:
    # API v1 (client)
    app.include_router(catalog_router)
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(addresses_router)
    # Webhook Stripe
    app.include_router(payments_router)
    # Photographe
    app.include_router(admin_router)
    # Health & monitoring
    app.include_router(health_router)
