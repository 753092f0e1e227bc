"""
Désérialisation des métadonnées Stripe (client, panier) vers les champs d'une commande.
"""
import json
from typing import Any, Dict, List, Optional

from backend.utils.errors import MetadataCorruptError
from .currency import from_minor_units


# module backend.payments.metadata
def items_blob(meta: Dict[str, Any]) -> Optional[str]:
    """Recompose le JSON du panier (clé unique `items` ou morceaux items_0..items_n)."""
    if meta.get("items"):
        return str(meta["items"])
    raw_count = meta.get("items_chunks")
    if not raw_count:
        return None
    try:
        count = int(raw_count)
    except (TypeError, ValueError):
        raise MetadataCorruptError(f"items_chunks invalide: {raw_count!r}")
    parts = []
    for idx in range(count):
        part = meta.get(f"items_{idx}")
        if part is None:
            raise MetadataCorruptError(f"morceau items_{idx} manquant ({count} attendus)")
        parts.append(str(part))
    return "".join(parts)


def parse_items(meta: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Liste [{id, name, qty, price}] depuis la metadata.
    - Absente -> [] (paiement sans panier, ex: don par lien statique)
    - JSON illisible ou structure inattendue -> MetadataCorruptError
    """
    blob = items_blob(meta)
    if not blob:
        return []
    try:
        items = json.loads(blob)
    except ValueError as e:
        raise MetadataCorruptError(f"items JSON illisible: {e}")
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise MetadataCorruptError("items doit être une liste d'objets")
    return items


def payment_identifier(obj: Dict[str, Any]) -> str:
    """
    Identifiant de paiement unique de la commande.
    Une session Checkout et son PaymentIntent partagent ainsi la même clé.
    """
    if obj.get("object") == "checkout.session":
        intent = obj.get("payment_intent")
        if isinstance(intent, dict):
            intent = intent.get("id")
        return str(intent or obj.get("id") or "")
    return str(obj.get("id") or "")


def extract_order_fields(obj: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extrait les champs commande d'un objet Stripe (checkout.session ou payment_intent).
    Montant converti en unités majeures selon la devise (zero-decimal inclus).
    """
    meta = obj.get("metadata") or {}
    details = obj.get("customer_details") or {}
    currency = str(obj.get("currency") or meta.get("currency") or "").lower()
    amount_minor = obj.get("amount_total")
    if amount_minor is None:
        amount_minor = obj.get("amount_received") or obj.get("amount") or 0
    is_session = obj.get("object") == "checkout.session"
    return {
        "user_email": (
            meta.get("customer_email")
            or details.get("email")
            or obj.get("customer_email")
            or obj.get("receipt_email")
            or ""
        ).strip(),
        "user_name": (meta.get("customer_name") or details.get("name") or "").strip(),
        "total_amount": from_minor_units(int(amount_minor), currency),
        "currency": currency.upper(),
        "payment_method": "stripe",
        "payment_intent_id": payment_identifier(obj),
        "stripe_session_id": obj.get("id") if is_session else None,
        "items": parse_items(meta),
        "is_donation": str(meta.get("is_donation") or "").lower() == "true",
        "shipping_address": shipping_address(obj),
    }


def shipping_address(obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Adresse collectée par Stripe: shipping_details (session), collected_information.shipping_details
    (API récentes) ou shipping (payment_intent). None si absente.
    """
    collected = obj.get("collected_information") or {}
    found = obj.get("shipping_details") or collected.get("shipping_details") or obj.get("shipping")
    if not found:
        return None
    return dict(found)
