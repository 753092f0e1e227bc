"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Toute erreur du SDK est traduite en PaymentProviderError (status Stripe si connu, sinon 400).
"""
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from backend.config import Settings
from backend.utils.errors import PaymentProviderError

logger = logging.getLogger(__name__)


# module backend.payments.stripe_client
def require_stripe(settings: Settings):
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key depuis settings.stripe_secret_key
    - ConfigurationError si la clé manque (jamais d'appel Stripe sans clé)
    """
    settings.require("stripe_secret_key", operation="stripe")
    stripe.api_key = settings.stripe_secret_key
    return stripe


def to_plain(obj: Any) -> Dict[str, Any]:
    """Objet Stripe -> dict JSON pur (indépendant de la version du SDK)."""
    if isinstance(obj, dict):
        return obj
    return json.loads(str(obj))


def _provider_error(op: str, e: stripe.StripeError) -> PaymentProviderError:
    status = getattr(e, "http_status", None) or 400
    # seuls les refus de carte portent un message destiné au client
    user_message = e.user_message if isinstance(e, stripe.CardError) else None
    logger.warning("stripe.%s failed status=%s error=%s", op, status, e)
    return PaymentProviderError(
        f"stripe.{op}: {e}",
        status_code=int(status),
        public_message=user_message or None,
    )


def create_session(
    settings: Settings,
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    customer_email: str,
    submit_type: str = "pay",
    shipping_options: Optional[List[Dict[str, Any]]] = None,
    shipping_countries: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode payment).
    Retour: {"id": "cs_test_...", "url": "https://checkout.stripe.com/..."}
    """
    require_stripe(settings)
    params: Dict[str, Any] = {
        "mode": "payment",
        "payment_method_types": ["card"],
        "line_items": line_items,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "customer_email": customer_email,
        "metadata": metadata,
        "payment_intent_data": {"metadata": metadata},
        "submit_type": submit_type,
    }
    if shipping_options:
        params["shipping_options"] = shipping_options
        params["shipping_address_collection"] = {"allowed_countries": shipping_countries or []}
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        raise _provider_error("checkout.Session.create", e)
    return {"id": session["id"], "url": session["url"]}


def create_payment_intent(
    settings: Settings,
    *,
    amount: int,
    currency: str,
    receipt_email: str,
    metadata: Dict[str, str],
) -> Dict[str, Any]:
    """PaymentIntent pour le checkout intégré (Stripe Elements)."""
    require_stripe(settings)
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=currency,
            receipt_email=receipt_email,
            metadata=metadata,
        )
    except stripe.StripeError as e:
        raise _provider_error("PaymentIntent.create", e)
    return {"id": intent["id"], "client_secret": intent["client_secret"]}


def retrieve_payment_intent(settings: Settings, payment_intent_id: str) -> Dict[str, Any]:
    require_stripe(settings)
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        raise _provider_error("PaymentIntent.retrieve", e)
    return to_plain(intent)
