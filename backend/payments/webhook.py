"""
Vérification des webhooks Stripe.

Préconditions vérifiées dans l'ordre, chacune bloquante:
  1) secret de signature configuré
  2) clé API Stripe configurée
  3) accès base (URL + service key) configuré
  4) en-tête stripe-signature présent
Puis vérification HMAC via le SDK (comparaison à temps constant, tolérance horodatage).
Aucun chemin "payload non signé": sans signature valide, rien n'est traité.
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe

from backend.config import Settings
from backend.utils.errors import ClientInputError, ConfigurationError, SignatureInvalidError

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300


def verify(raw_body: bytes, signature_header: Optional[str], settings: Settings) -> Dict[str, Any]:
    if not settings.stripe_webhook_secret:
        raise ConfigurationError("webhook: STRIPE_WEBHOOK_SECRET manquant")
    if not settings.stripe_secret_key:
        raise ConfigurationError("webhook: STRIPE_SECRET_KEY manquant")
    if not settings.database_configured:
        raise ConfigurationError("webhook: SUPABASE_URL / SUPABASE_SERVICE_KEY manquants")
    if not signature_header:
        raise SignatureInvalidError("webhook: en-tête stripe-signature absent", public_message="Missing stripe-signature header")

    try:
        payload = raw_body.decode("utf-8")
    except UnicodeDecodeError:
        raise SignatureInvalidError("webhook: corps non UTF-8")

    try:
        stripe.WebhookSignature.verify_header(
            payload, signature_header, settings.stripe_webhook_secret, SIGNATURE_TOLERANCE_SECONDS
        )
    except stripe.SignatureVerificationError as e:
        logger.warning("payments.webhook signature verification failed: %s", e)
        raise SignatureInvalidError(f"webhook: {e}")

    try:
        event = json.loads(payload)
    except ValueError:
        raise ClientInputError("invalid payload")
    if not isinstance(event, dict) or not event.get("type"):
        raise ClientInputError("invalid payload")
    return event
