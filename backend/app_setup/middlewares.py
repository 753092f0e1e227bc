"""
Middlewares transverses de l’application.
- register_basic_middlewares: CORS (storefront) et TrustedHost.
- register_security_middleware: en-têtes de sécurité sur toutes les réponses.
Pas de cookie de session ni de CSRF: l'API est appelée en JSON (storefront) ou avec un Bearer (admin),
et le webhook Stripe est authentifié par signature.
"""
from fastapi import Request, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from backend.config import get_settings


def register_basic_middlewares(app: FastAPI) -> None:
    """
    - CORSMiddleware: origines du storefront (CORS_ORIGINS, '*' par défaut)
    - TrustedHostMiddleware: hôtes acceptés (ALLOWED_HOSTS), indépendant des origines CORS
    """
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )


def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if request.url.path.startswith(("/admin", "/api/v1/orders")):
            response.headers["Cache-Control"] = "no-store"
        return response
