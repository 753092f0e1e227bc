from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from backend.config import Settings, get_settings
from backend.orders import service as orders_service
from backend.utils.security import require_staff

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


class StatusUpdateRequest(BaseModel):
    status: str
    trackingNumber: Optional[str] = None
    trackingCarrier: Optional[str] = None
    estimatedDelivery: Optional[str] = None
    notify: bool = True


# module backend.orders.views
@router.get("")
def list_orders(
    limit: int = Query(default=100, ge=1, le=500),
    status: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_staff),
):
    return {"orders": orders_service.list_orders(settings, limit=limit, status=status)}


@router.post("/{order_id}/status")
def update_order_status(
    order_id: str,
    body: StatusUpdateRequest,
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_staff),
):
    """
    Transition de statut (staff):
    - 404 commande inconnue, 400 statut inconnu, 409 transition refusée
    - email de suivi envoyé si notify (échec non bloquant, reporté dans 'email')
    """
    result = orders_service.update_order_status(
        order_id,
        body.status,
        settings=settings,
        tracking_number=body.trackingNumber,
        tracking_carrier=body.trackingCarrier,
        estimated_delivery=body.estimatedDelivery,
        notify=body.notify,
    )
    return {"success": True, "order": result["order"], "email": result["email"]}
