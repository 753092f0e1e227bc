"""
Cas d'usage 'payments': orchestre cart, stripe, metadata, repository et emails.

Flux: panier -> session Checkout -> page Stripe -> webhook vérifié -> commande (une seule
par identifiant de paiement) -> un email de confirmation.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

from backend.config import Settings
from backend.emails import service as emails_service
from backend.orders.status import OrderStatus
from backend.utils.errors import ClientInputError
from . import cart as cart_logic
from . import repository
from . import stripe_client
from .currency import normalize_currency
from .metadata import extract_order_fields

logger = logging.getLogger(__name__)

SUCCEEDED_EVENTS = {"payment_intent.succeeded", "checkout.session.completed"}


@dataclass
class MaterializeResult:
    status: str  # "created" | "duplicate" | "skipped"
    order: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None


def _prepare_checkout(
    items: Optional[List[Dict[str, Any]]],
    customer_email: Optional[str],
    customer_name: Optional[str],
    currency: Optional[str],
    is_donation: bool,
    settings: Settings,
) -> Dict[str, Any]:
    """Validations locales (avant tout appel réseau) et calculs communs session / PaymentIntent."""
    lines = cart_logic.normalize_items(items)
    email = (customer_email or "").strip()
    if not email:
        raise ClientInputError("email required")
    code = normalize_currency(currency or settings.base_currency, default=settings.base_currency)
    with_shipping = cart_logic.shipping_applies(code, is_donation, settings.base_currency)
    total = cart_logic.subtotal(lines) + (settings.shipping_flat_fee if with_shipping else 0)
    total_minor = cart_logic.check_minimum(total, code)
    metadata = cart_logic.make_metadata(
        lines,
        customer_email=email,
        customer_name=customer_name or "",
        currency=code,
        is_donation=is_donation,
    )
    return {
        "lines": lines,
        "email": email,
        "currency": code,
        "with_shipping": with_shipping,
        "total_minor": total_minor,
        "metadata": metadata,
    }


def build_checkout_session(
    items: Optional[List[Dict[str, Any]]],
    customer_email: Optional[str],
    *,
    settings: Settings,
    customer_name: Optional[str] = None,
    currency: Optional[str] = None,
    is_donation: bool = False,
) -> Dict[str, str]:
    """
    Crée la session Stripe Checkout et retourne {"url", "session_id"}.
    - ClientInputError: panier vide, email manquant, montant invalide ou sous le minimum
    - PaymentProviderError: échec Stripe (status Stripe ou 400)
    """
    prepared = _prepare_checkout(items, customer_email, customer_name, currency, is_donation, settings)
    code = prepared["currency"]
    site = settings.public_site_url.rstrip("/")
    session = stripe_client.create_session(
        settings,
        line_items=cart_logic.to_line_items(prepared["lines"], code),
        success_url=f"{site}/order-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{site}/cart",
        metadata=prepared["metadata"],
        customer_email=prepared["email"],
        submit_type="donate" if is_donation else "pay",
        shipping_options=cart_logic.shipping_options(code, settings.shipping_flat_fee) if prepared["with_shipping"] else None,
        shipping_countries=cart_logic.SHIPPING_COUNTRIES,
    )
    logger.info("payments.checkout session_id=%s currency=%s items=%s donation=%s",
                session.get("id"), code, len(prepared["lines"]), is_donation)
    return {"url": session.get("url"), "session_id": session.get("id")}


def build_payment_intent(
    items: Optional[List[Dict[str, Any]]],
    customer_email: Optional[str],
    *,
    settings: Settings,
    customer_name: Optional[str] = None,
    currency: Optional[str] = None,
    is_donation: bool = False,
) -> Dict[str, str]:
    """Variante checkout intégré: PaymentIntent du total (livraison incluse), mêmes validations."""
    prepared = _prepare_checkout(items, customer_email, customer_name, currency, is_donation, settings)
    intent = stripe_client.create_payment_intent(
        settings,
        amount=prepared["total_minor"],
        currency=prepared["currency"],
        receipt_email=prepared["email"],
        metadata=prepared["metadata"],
    )
    return {"client_secret": intent.get("client_secret"), "payment_intent_id": intent.get("id")}


def materialize_event(event: Dict[str, Any], settings: Settings) -> MaterializeResult:
    """
    Transforme un événement Stripe vérifié en commande.
    - Types hors paiement réussi (ping, etc.) -> skipped, sans effet de bord
    - Session non payée -> skipped
    - Identifiant de paiement déjà présent -> duplicate (succès, pas d'email)
    """
    event_type = (event or {}).get("type") or ""
    if event_type not in SUCCEEDED_EVENTS:
        return MaterializeResult("skipped", reason=f"event type {event_type or 'unknown'}")

    obj = ((event.get("data") or {}).get("object")) or {}
    if event_type == "checkout.session.completed" and obj.get("payment_status") != "paid":
        return MaterializeResult("skipped", reason=f"payment_status={obj.get('payment_status')}")
    return materialize_payment(obj, settings)


def materialize_payment(
    obj: Dict[str, Any],
    settings: Settings,
    shipping_address: Optional[Dict[str, Any]] = None,
) -> MaterializeResult:
    """Insertion idempotente d'une commande à partir d'un objet Stripe payé."""
    row = extract_order_fields(obj)
    if not row["payment_intent_id"]:
        raise ClientInputError("invalid payload")
    if shipping_address:
        row["shipping_address"] = shipping_address
    row["status"] = OrderStatus.PENDING.value

    created = repository.insert_order_if_absent(row, settings)
    if not created:
        logger.info("payments.materialize duplicate payment_intent_id=%s", row["payment_intent_id"])
        return MaterializeResult("duplicate", reason="order already exists")
    logger.info("payments.materialize created order_id=%s payment_intent_id=%s total=%s %s",
                created.get("id"), row["payment_intent_id"], row["total_amount"], row["currency"])
    return MaterializeResult("created", order=created)


def _confirm_by_email(result: MaterializeResult, settings: Settings) -> "Optional[emails_service.EmailResult]":
    if result.status != "created" or not result.order:
        return None
    try:
        return emails_service.send_order_confirmation(result.order, settings)
    except Exception:
        # la commande est déjà enregistrée: l'email ne doit jamais la faire échouer
        logger.exception("payments.confirmation email failed order_id=%s", result.order.get("id"))
        return emails_service.EmailResult("failed", reason="rendering or dispatch error")


def handle_event(event: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    """Webhook: matérialise puis envoie au plus un email de confirmation."""
    result = materialize_event(event, settings)
    email = _confirm_by_email(result, settings)
    logger.info("payments.webhook type=%s status=%s", event.get("type"), result.status)
    return {
        "status": result.status,
        "order_id": (result.order or {}).get("id"),
        "email": email.status if email else None,
    }


def confirm_payment(
    payment_intent_id: str,
    settings: Settings,
    shipping_address: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Alternative sans webhook (checkout intégré): relit le PaymentIntent chez Stripe.
    Un paiement réussi passe par la même insertion idempotente que le webhook.
    Une confirmation répétée renvoie l'identifiant de la commande existante.
    """
    if not (payment_intent_id or "").strip():
        raise ClientInputError("payment intent id required")
    intent = stripe_client.retrieve_payment_intent(settings, payment_intent_id.strip())
    status = intent.get("status") or ""
    if status != "succeeded":
        return {"success": False, "status": status, "message": "Payment not completed"}
    result = materialize_payment(intent, settings, shipping_address=shipping_address)
    _confirm_by_email(result, settings)
    order = result.order
    if result.status == "duplicate":
        order = repository.get_order_by_payment_id(intent.get("id"), settings)
    return {
        "success": True,
        "paymentIntentId": intent.get("id"),
        "orderId": (order or {}).get("id"),
        "created": result.status == "created",
    }
