"""
Registre central des routers.
- API v1: payments (checkout, webhook, confirm), orders (statuts), emails (envois internes)
- Admin: exports, stats, newsletter
- Health: health_router
"""
from fastapi import FastAPI
from backend.payments import views as payments_views
from backend.orders import views as orders_views
from backend.emails import views as emails_views
from backend.admin.views import router as admin_router
from backend.health.router import router as health_router


def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(payments_views.router)
    app.include_router(orders_views.router)
    app.include_router(emails_views.router)
    # Admin
    app.include_router(admin_router)
    # Health & monitoring
    app.include_router(health_router)
