from typing import List, Dict, Any, Optional
import logging
import backend.infra.supabase_client as supabase_client
from backend.config import Settings
from backend.utils.errors import PersistenceError

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"


# module backend.orders.repository
def fetch_orders(limit: int = 100, status: Optional[str] = None, settings: Optional[Settings] = None) -> List[dict]:
    """
    Dernières commandes (plus récentes d'abord), filtrables par statut.
    """
    try:
        query = (
            supabase_client.get_service_supabase(settings)
            .table(ORDERS_TABLE)
            .select("*")
        )
        if status:
            query = query.eq("status", status)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return res.data or []
    except Exception as e:
        logger.exception("orders.repository.fetch_orders failed status=%s", status)
        raise PersistenceError(f"orders list failed: {e}")


def get_order_by_id(order_id: str, settings: Optional[Settings] = None) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase(settings)
            .table(ORDERS_TABLE)
            .select("*")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.get_order_by_id failed id=%s", order_id)
        raise PersistenceError(f"orders read failed: {e}")
    rows = res.data or []
    return rows[0] if rows else None


def update_order_if_status(
    order_id: str,
    expected_status: str,
    data: Dict[str, Any],
    settings: Optional[Settings] = None,
) -> Optional[dict]:
    """
    Mise à jour conditionnelle: n'écrit que si la commande est toujours dans `expected_status`.
    Retourne la ligne mise à jour, ou None si le statut a changé entre-temps.
    """
    try:
        res = (
            supabase_client.get_service_supabase(settings)
            .table(ORDERS_TABLE)
            .update(data)
            .eq("id", order_id)
            .eq("status", expected_status)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.update_order_if_status failed id=%s", order_id)
        raise PersistenceError(f"orders update failed: {e}")
    rows = res.data or []
    return rows[0] if rows else None
