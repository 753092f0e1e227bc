from typing import List, Optional
import logging
import backend.infra.supabase_client as supabase_client
from backend.config import Settings
from backend.utils.errors import PersistenceError

logger = logging.getLogger(__name__)


# module backend.admin.repository
def fetch_table(table_name: str, settings: Optional[Settings] = None) -> List[dict]:
    """
    Toutes les lignes d'une table (exports). Le nom doit déjà être validé par l'allowlist du service.
    """
    try:
        res = supabase_client.get_service_supabase(settings).table(table_name).select("*").execute()
        return res.data or []
    except Exception as e:
        logger.exception("admin.repository.fetch_table failed table=%s", table_name)
        raise PersistenceError(f"{table_name} export failed: {e}")


def count_table_rows(table_name: str, settings: Optional[Settings] = None) -> int:
    """
    Compte les lignes d'une table via Supabase.
    Utilise count='exact' si disponible, sinon fallback sur len(data).
    """
    try:
        res = supabase_client.get_service_supabase(settings).table(table_name).select("id", count="exact").execute()
        if getattr(res, "count", None) is not None:
            return int(res.count)  # type: ignore
        return len(res.data or [])
    except Exception:
        logger.exception("admin.repository.count_table_rows failed table=%s", table_name)
        return 0
