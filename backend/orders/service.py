"""
Cas d'usage 'orders': transitions de statut pilotées par l'équipe, avec email de suivi.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from backend.config import Settings
from backend.emails import service as emails_service
from backend.utils.errors import InvalidTransitionError, NotFoundError
from . import repository
from .status import ensure_transition, parse_status

logger = logging.getLogger(__name__)


def list_orders(settings: Settings, limit: int = 100, status: Optional[str] = None) -> List[dict]:
    if status:
        status = parse_status(status).value
    return repository.fetch_orders(limit=limit, status=status, settings=settings)


def update_order_status(
    order_id: str,
    new_status: str,
    *,
    settings: Settings,
    tracking_number: Optional[str] = None,
    tracking_carrier: Optional[str] = None,
    estimated_delivery: Optional[str] = None,
    notify: bool = True,
) -> Dict[str, Any]:
    """
    Applique une transition de statut:
    - commande introuvable -> NotFoundError (404)
    - commande terminée ou transition absente de la table -> InvalidTransitionError (409)
    - écriture conditionnée au statut lu (course avec un autre opérateur -> 409)
    - email de statut optionnel, jamais bloquant
    """
    order = repository.get_order_by_id(order_id, settings)
    if not order:
        raise NotFoundError("order not found")

    current = order.get("status") or "pending"
    target = ensure_transition(current, new_status)

    data: Dict[str, Any] = {"status": target.value, "updated_at": datetime.now(timezone.utc).isoformat()}
    if tracking_number:
        data["tracking_number"] = tracking_number
    if tracking_carrier:
        data["tracking_carrier"] = tracking_carrier
    if estimated_delivery:
        data["estimated_delivery"] = estimated_delivery

    updated = repository.update_order_if_status(order_id, current, data, settings)
    if not updated:
        raise InvalidTransitionError("order status changed concurrently, reload and retry")
    logger.info("orders.update_status id=%s %s -> %s", order_id, current, target.value)

    email = None
    if notify:
        try:
            email = emails_service.send_status_update(
                order_id=str(updated.get("id") or order_id),
                user_email=updated.get("user_email") or "",
                user_name=updated.get("user_name"),
                status=target.value,
                tracking_number=updated.get("tracking_number"),
                tracking_carrier=updated.get("tracking_carrier"),
                estimated_delivery=updated.get("estimated_delivery"),
                total_amount=updated.get("total_amount"),
                currency=updated.get("currency"),
                settings=settings,
            ).as_dict()
        except Exception:
            logger.exception("orders.update_status email failed id=%s", order_id)
            email = {"status": "failed", "id": None, "reason": "rendering or dispatch error"}
    return {"order": updated, "email": email}
