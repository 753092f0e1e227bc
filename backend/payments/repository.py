"""
Accès aux données pour la feature 'payments' (table orders, service-role).
"""
from typing import Any, Dict, Optional
import logging
# Import du module (et non des fonctions) pour que les tests puissent le monkeypatcher
import backend.infra.supabase_client as supabase_client
from backend.config import Settings
from backend.utils.errors import PersistenceError

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"


# module backend.payments.repository
def insert_order_if_absent(row: Dict[str, Any], settings: Optional[Settings] = None) -> Optional[dict]:
    """
    Insère une commande sauf si payment_intent_id existe déjà.
    - upsert + ignore_duplicates sur la contrainte UNIQUE(payment_intent_id):
      la base arbitre entre deux livraisons simultanées du même événement
    - Retourne la ligne créée, ou None si doublon
    - PersistenceError si l'écriture échoue
    """
    try:
        res = (
            supabase_client.get_service_supabase(settings)
            .table(ORDERS_TABLE)
            .upsert(row, on_conflict="payment_intent_id", ignore_duplicates=True)
            .execute()
        )
    except Exception as e:
        logger.exception("payments.repository.insert_order_if_absent failed payment_intent_id=%s", row.get("payment_intent_id"))
        raise PersistenceError(f"orders insert failed: {e}")
    rows = res.data or []
    return rows[0] if rows else None


def get_order_by_payment_id(payment_intent_id: str, settings: Optional[Settings] = None) -> Optional[dict]:
    """Lecture d'une commande par identifiant de paiement (None si absente)."""
    try:
        res = (
            supabase_client.get_service_supabase(settings)
            .table(ORDERS_TABLE)
            .select("*")
            .eq("payment_intent_id", payment_intent_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("payments.repository.get_order_by_payment_id failed payment_intent_id=%s", payment_intent_id)
        raise PersistenceError(f"orders read failed: {e}")
    rows = res.data or []
    return rows[0] if rows else None
