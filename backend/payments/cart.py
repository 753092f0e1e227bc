"""
Logique panier pure (pas de Stripe, pas de DB): validation, line_items, metadata, livraison.
"""
import json
import math
from typing import List, Dict, Any, Optional

from backend.utils.errors import ClientInputError
from .currency import to_minor_units, min_amount

# Stripe limite chaque valeur de metadata à 500 caractères et à 50 clés par objet
METADATA_VALUE_LIMIT = 500
MAX_ITEMS_CHUNKS = 40

SHIPPING_COUNTRIES = ["GB", "KE", "UG", "TZ", "RW", "US", "NG", "ZA", "GH", "ET"]


# module backend.payments.cart
def normalize_items(items: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Valide un panier brut [{id, name, price, quantity}, ...].
    - Panier vide -> ClientInputError("no items")
    - Prix <= 0, non fini (inf, nan) ou quantité < 1 -> ClientInputError("invalid amount")
    Retourne des lignes normalisées (price float, quantity int).
    """
    if not items:
        raise ClientInputError("no items")
    lines: List[Dict[str, Any]] = []
    for it in items:
        try:
            price = float(it.get("price") or 0)
            qty = int(it.get("quantity") or 0)
        except (TypeError, ValueError, OverflowError):
            raise ClientInputError("invalid amount")
        if not math.isfinite(price) or price <= 0 or qty < 1:
            raise ClientInputError("invalid amount")
        lines.append({
            "id": str(it.get("id") or "").strip(),
            "name": str(it.get("name") or "Item").strip() or "Item",
            "price": price,
            "quantity": qty,
        })
    return lines


def subtotal(lines: List[Dict[str, Any]]) -> float:
    return sum(line["price"] * line["quantity"] for line in lines)


def shipping_applies(currency: str, is_donation: bool, base_currency: str) -> bool:
    """Frais fixes uniquement hors don et dans la devise de base; ailleurs ils sont inclus ou offerts."""
    return not is_donation and currency == base_currency


def check_minimum(total: float, currency: str) -> int:
    """Retourne le total en unités mineures; refuse un total sous le minimum Stripe."""
    amount = to_minor_units(total, currency)
    if amount < min_amount(currency):
        raise ClientInputError("amount below minimum")
    return amount


def to_line_items(lines: List[Dict[str, Any]], currency: str) -> List[Dict[str, Any]]:
    """Construit les line_items Stripe (price_data, unit_amount en unités mineures)."""
    return [
        {
            "quantity": line["quantity"],
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(line["price"], currency),
                "product_data": {"name": line["name"]},
            },
        }
        for line in lines
    ]


def shipping_options(currency: str, flat_fee: float) -> List[Dict[str, Any]]:
    return [
        {
            "shipping_rate_data": {
                "type": "fixed_amount",
                "fixed_amount": {"amount": to_minor_units(flat_fee, currency), "currency": currency},
                "display_name": "Standard Shipping",
                "delivery_estimate": {
                    "minimum": {"unit": "business_day", "value": 5},
                    "maximum": {"unit": "business_day", "value": 10},
                },
            }
        }
    ]


def serialize_items(lines: List[Dict[str, Any]]) -> str:
    """Sous-ensemble compact {id, name, qty, price}: pas de description ni d'image."""
    compact = [{"id": l["id"], "name": l["name"], "qty": l["quantity"], "price": l["price"]} for l in lines]
    return json.dumps(compact, separators=(",", ":"), ensure_ascii=False)


def make_metadata(
    lines: List[Dict[str, Any]],
    *,
    customer_email: str,
    customer_name: str = "",
    currency: str,
    is_donation: bool = False,
) -> Dict[str, str]:
    """
    Sérialise les métadonnées Stripe associées à la session.
    - items: JSON compact; découpé en items_0..items_n (+ items_chunks) au-delà de 500 caractères.
    - Refuse un panier qui dépasserait le nombre de clés autorisé.
    """
    metadata = {
        "customer_email": customer_email,
        "customer_name": (customer_name or "")[:METADATA_VALUE_LIMIT],
        "currency": currency,
        "is_donation": "true" if is_donation else "false",
    }
    blob = serialize_items(lines)
    if len(blob) <= METADATA_VALUE_LIMIT:
        metadata["items"] = blob
        return metadata
    chunks = [blob[i:i + METADATA_VALUE_LIMIT] for i in range(0, len(blob), METADATA_VALUE_LIMIT)]
    if len(chunks) > MAX_ITEMS_CHUNKS:
        raise ClientInputError("cart too large")
    metadata["items_chunks"] = str(len(chunks))
    for idx, chunk in enumerate(chunks):
        metadata[f"items_{idx}"] = chunk
    return metadata
