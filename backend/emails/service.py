"""
Cas d'usage 'emails': confirmation de commande et mise à jour de statut.

L'envoi d'email n'est pas transactionnel avec la commande: côté webhook, tout échec
est journalisé puis ignoré (EmailResult 'failed'), la commande reste valide.
Les endpoints internes utilisent deliver(..., raise_errors=True) pour remonter un 502.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from backend.config import Settings
from backend.content import repository as content_repository
from backend.utils.errors import ClientInputError, EmailDispatchError
from . import client as email_client
from . import rendering

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    status: str  # "sent" | "skipped" | "failed"
    id: Optional[str] = None
    reason: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "id": self.id, "reason": self.reason}


def resolve_resend_api_key(settings: Settings) -> str:
    """RESEND_API_KEY, sinon la clé saisie dans le CMS (site_content.section_key='resend')."""
    if settings.resend_api_key:
        return settings.resend_api_key
    if not settings.database_configured:
        return ""
    content = content_repository.get_section_content("resend", settings)
    return str(content.get("api_key") or "").strip()


def deliver(to: str, subject: str, html: str, settings: Settings, *, raise_errors: bool = False) -> EmailResult:
    """Envoi unique via Resend; skip si pas de clé ou pas de destinataire."""
    if not (to or "").strip():
        return EmailResult("skipped", reason="no recipient")
    api_key = resolve_resend_api_key(settings)
    if not api_key:
        if raise_errors:
            raise EmailDispatchError("Resend API key not configured", public_message="Email provider not configured")
        return EmailResult("skipped", reason="email provider not configured")
    payload = {"from": settings.email_from, "to": [to.strip()], "subject": subject, "html": html}
    try:
        email_id = email_client.send_via_resend(payload, api_key)
    except EmailDispatchError as e:
        if raise_errors:
            raise
        logger.exception("emails.service.deliver failed subject=%s", subject)
        return EmailResult("failed", reason=e.message)
    return EmailResult("sent", id=email_id)


def send_order_confirmation(order: Dict[str, Any], settings: Settings, *, raise_errors: bool = False) -> EmailResult:
    """Confirmation d'une commande nouvellement créée (jamais pour un doublon)."""
    subject, html = rendering.render_order_confirmation(order)
    result = deliver(order.get("user_email") or "", subject, html, settings, raise_errors=raise_errors)
    logger.info("emails.service.send_order_confirmation order_id=%s status=%s", order.get("id"), result.status)
    return result


def send_status_update(
    *,
    order_id: str,
    user_email: str,
    status: str,
    settings: Settings,
    user_name: Optional[str] = None,
    tracking_number: Optional[str] = None,
    tracking_carrier: Optional[str] = None,
    estimated_delivery: Optional[str] = None,
    total_amount: Optional[float] = None,
    currency: Optional[str] = None,
    raise_errors: bool = False,
) -> EmailResult:
    subject, html = rendering.render_status_update(
        order_id=order_id,
        status=status,
        user_name=user_name,
        tracking_number=tracking_number,
        tracking_carrier=tracking_carrier,
        estimated_delivery=estimated_delivery,
        total_amount=total_amount,
        currency=currency,
        site_url=settings.public_site_url,
    )
    result = deliver(user_email, subject, html, settings, raise_errors=raise_errors)
    logger.info("emails.service.send_status_update order_id=%s status=%s email=%s", order_id, status, result.status)
    return result


def send_custom_email(
    to: str,
    settings: Settings,
    *,
    subject: Optional[str] = None,
    html: Optional[str] = None,
    action: Optional[str] = None,
) -> EmailResult:
    """
    Envoi libre depuis l'admin (raise_errors: un échec Resend remonte en 502).
    - action "test": email de vérification, sujet par défaut si absent
    - sinon subject et html obligatoires (ClientInputError)
    """
    if not (to or "").strip():
        raise ClientInputError("recipient required")
    if action == "test":
        default_subject, html = rendering.render_test_email(settings.email_from)
        subject = subject or default_subject
    elif not (subject or "").strip() or not (html or "").strip():
        raise ClientInputError("subject and html required")
    result = deliver(to, subject, html, settings, raise_errors=True)
    logger.info("emails.service.send_custom_email action=%s status=%s", action or "send", result.status)
    return result
