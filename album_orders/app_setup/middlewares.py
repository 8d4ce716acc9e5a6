"""
Middlewares transverses de l'application.
- register_basic_middlewares: CORS et TrustedHost.
- register_security_middleware: en-têtes de sécurité et CSP (Stripe.js autorisé).
- register_no_cache_middleware: pas de cache sur les réponses panier et admin.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from album_orders.config import ALLOWED_HOSTS, CORS_ORIGINS, SUPABASE_URL

STRIPE_JS = "https://js.stripe.com"
STRIPE_API = "https://api.stripe.com"


def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )


def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")

        csp_connect = ["'self'", STRIPE_API]
        if SUPABASE_URL:
            csp_connect.append(SUPABASE_URL.rstrip("/"))
        csp = (
            "default-src 'self'; "
            "base-uri 'self'; object-src 'none'; "
            f"frame-src {STRIPE_JS}; "
            f"script-src 'self' {STRIPE_JS}; "
            f"connect-src {' '.join(csp_connect)}"
        )
        response.headers.setdefault("Content-Security-Policy", csp)
        return response


def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_cache_for_private(request: Request, call_next):
        response = await call_next(request)
        path = request.url.path
        if "/cart" in path or path.startswith("/admin"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
        return response
