from typing import Any, Dict, Optional
import logging
import backend.infra.supabase_client as supabase_client
from backend.config import Settings

logger = logging.getLogger(__name__)


# module backend.content.repository
def get_section_content(section_key: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Contenu JSON d'une section `site_content` (ex: 'resend', 'mailerlite' pour les clés d'intégration).
    Retourne {} si la section est absente ou si la lecture échoue.
    """
    try:
        res = (
            supabase_client.get_service_supabase(settings)
            .table("site_content")
            .select("content")
            .eq("section_key", section_key)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("content.repository.get_section_content failed section_key=%s", section_key)
        return {}
    rows = res.data or []
    content = rows[0].get("content") if rows else None
    return content if isinstance(content, dict) else {}
