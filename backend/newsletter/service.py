"""
Synchronisation des abonnés newsletter (table newsletter_subscribers) vers MailerLite.
"""
from typing import Any, Dict, List, Optional
import logging
import time

import backend.infra.supabase_client as supabase_client
from backend.config import Settings
from backend.content import repository as content_repository
from backend.utils.errors import ClientInputError, ConfigurationError, PersistenceError
from .mailerlite import MailerLiteClient, MailerLiteError

logger = logging.getLogger(__name__)

GROUP_NAME = "Moenviron Newsletter"
ACTIONS = ("test", "sync")


def resolve_api_key(settings: Settings) -> str:
    """Clé saisie dans le CMS (site_content 'mailerlite'), sinon MAILERLITE_API_KEY."""
    content = content_repository.get_section_content("mailerlite", settings) if settings.database_configured else {}
    return str(content.get("api_key") or settings.mailerlite_api_key or "").strip()


def fetch_active_subscribers(settings: Settings) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase(settings)
            .table("newsletter_subscribers")
            .select("*")
            .eq("is_active", True)
            .execute()
        )
        return res.data or []
    except Exception as e:
        logger.exception("newsletter.service.fetch_active_subscribers failed")
        raise PersistenceError(f"newsletter_subscribers read failed: {e}")


def split_name(full_name: Optional[str]) -> tuple:
    first, _, rest = (full_name or "").strip().partition(" ")
    return first, rest.strip()


def sync_subscribers(
    action: str,
    settings: Settings,
    *,
    client: Optional[MailerLiteClient] = None,
    delay: float = 0.1,
) -> Dict[str, Any]:
    """
    action='test': vérifie la connexion et le groupe.
    action='sync': pousse chaque abonné actif (pause `delay` entre deux appels, quota MailerLite).
    Un abonné en échec est compté dans failed_count sans interrompre la synchro.
    """
    if action not in ACTIONS:
        raise ClientInputError("Invalid action")
    api_key = resolve_api_key(settings)
    if not api_key:
        raise ConfigurationError("newsletter: MailerLite API key not configured", public_message="MailerLite API key not configured")

    client = client or MailerLiteClient(api_key)
    group = client.find_or_create_group(GROUP_NAME)
    if action == "test":
        return {"success": True, "message": "Connection successful", "group_id": group["id"], "group_name": group.get("name")}

    subscribers = fetch_active_subscribers(settings)
    if not subscribers:
        return {"success": True, "synced_count": 0, "message": "No active subscribers"}

    synced = 0
    failed = 0
    for sub in subscribers:
        first, last = split_name(sub.get("name"))
        try:
            client.upsert_subscriber(sub.get("email") or "", name=first, last_name=last, group_id=group["id"])
            synced += 1
        except MailerLiteError:
            logger.exception("newsletter.sync failed subscriber id=%s", sub.get("id"))
            failed += 1
        if delay:
            time.sleep(delay)
    logger.info("newsletter.sync synced=%s failed=%s total=%s", synced, failed, len(subscribers))
    return {"success": True, "synced_count": synced, "failed_count": failed, "total": len(subscribers), "group_id": group["id"]}
