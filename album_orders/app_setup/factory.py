"""
Factory d'application pour les entrypoints (album_orders.asgi) et les tests.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers


def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares (CORS, hosts, en-têtes de sécurité, no-cache)
      - gestionnaires d'exceptions
      - routers (catalogue, panier, checkout, adresses, webhook, admin, health)
    """
    app = FastAPI(title="Album Orders", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
