from typing import Any, Dict
import logging
import backend.infra.supabase_client as supabase_client
from backend.config import Settings

logger = logging.getLogger(__name__)


def integrations_info(settings: Settings) -> Dict[str, bool]:
    """Intégrations configurées (booléens uniquement, jamais les valeurs)."""
    return {
        "stripe": bool(settings.stripe_secret_key),
        "stripe_webhook": bool(settings.stripe_webhook_secret),
        "database": settings.database_configured,
        "email": bool(settings.resend_api_key),
        "mailerlite": bool(settings.mailerlite_api_key),
    }


def health_supabase_info(settings: Settings) -> Dict[str, Any]:
    """Ping léger de la table orders via le client service-role."""
    if not settings.database_configured:
        return {"configured": False, "connect_ok": False}
    try:
        supabase_client.get_service_supabase(settings).table("orders").select("id").limit(1).execute()
        return {"configured": True, "connect_ok": True}
    except Exception as e:
        logger.warning("health.supabase ping failed: %s", e)
        return {"configured": True, "connect_ok": False, "error": type(e).__name__}
