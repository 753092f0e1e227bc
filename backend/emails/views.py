from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from backend.config import Settings, get_settings
from backend.emails import service as emails_service
from backend.utils.security import require_staff

router = APIRouter(prefix="/api/v1/emails", tags=["Emails API"])


class OrderConfirmationRequest(BaseModel):
    orderId: str
    userEmail: EmailStr
    userName: Optional[str] = None
    items: List[Dict[str, Any]] = Field(default_factory=list)
    totalAmount: Optional[float] = None
    currency: str = "GBP"


class OrderStatusRequest(BaseModel):
    orderId: str
    userEmail: EmailStr
    status: str
    userName: Optional[str] = None
    trackingNumber: Optional[str] = None
    trackingCarrier: Optional[str] = None
    estimatedDelivery: Optional[str] = None
    totalAmount: Optional[float] = None
    currency: Optional[str] = None


# module backend.emails.views
@router.post("/order-confirmation")
def send_order_confirmation(
    body: OrderConfirmationRequest,
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_staff),
):
    """Renvoi manuel d'une confirmation: 200 { success, data } ou 502 { error } si Resend échoue."""
    order = {
        "id": body.orderId,
        "user_email": body.userEmail,
        "user_name": body.userName,
        "items": body.items,
        "total_amount": body.totalAmount,
        "currency": body.currency,
    }
    result = emails_service.send_order_confirmation(order, settings, raise_errors=True)
    return {"success": result.status == "sent", "data": result.as_dict()}


@router.post("/order-status")
def send_order_status(
    body: OrderStatusRequest,
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_staff),
):
    """Email de suivi pour un statut donné (gabarit générique si statut inconnu)."""
    result = emails_service.send_status_update(
        order_id=body.orderId,
        user_email=body.userEmail,
        status=body.status,
        user_name=body.userName,
        tracking_number=body.trackingNumber,
        tracking_carrier=body.trackingCarrier,
        estimated_delivery=body.estimatedDelivery,
        total_amount=body.totalAmount,
        currency=body.currency,
        settings=settings,
        raise_errors=True,
    )
    return {"success": result.status == "sent", "data": result.as_dict()}


class SendEmailRequest(BaseModel):
    to: EmailStr
    subject: Optional[str] = None
    html: Optional[str] = None
    action: Optional[str] = None


@router.post("/send")
def send_email(
    body: SendEmailRequest,
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_staff),
):
    """
    Envoi libre { to, subject, html } ou email de test { to, action: "test" }.
    - 400 { error } si subject/html manquent hors test
    - 502 { error } si Resend échoue
    """
    result = emails_service.send_custom_email(
        body.to,
        settings,
        subject=body.subject,
        html=body.html,
        action=body.action,
    )
    message = "Test email sent!" if body.action == "test" else "Email sent"
    return {"success": result.status == "sent", "message": message, "data": result.as_dict()}
