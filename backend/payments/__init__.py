"""
Module 'payments' (feature-first): point d'entrée public.
Réunit devises, logique panier, metadata Stripe, client Stripe, vérification webhook, repository BD et services.
"""

from .currency import to_minor_units, from_minor_units, is_zero_decimal, normalize_currency, format_amount
from .cart import normalize_items, to_line_items, make_metadata, shipping_options
from .metadata import extract_order_fields, parse_items
from .stripe_client import require_stripe, create_session, create_payment_intent, retrieve_payment_intent
from .webhook import verify
from .repository import insert_order_if_absent, get_order_by_payment_id
from .service import (
    MaterializeResult,
    build_checkout_session,
    build_payment_intent,
    materialize_event,
    handle_event,
    confirm_payment,
)

__all__ = [
    # currency
    "to_minor_units",
    "from_minor_units",
    "is_zero_decimal",
    "normalize_currency",
    "format_amount",
    # cart
    "normalize_items",
    "to_line_items",
    "make_metadata",
    "shipping_options",
    # metadata
    "extract_order_fields",
    "parse_items",
    # stripe
    "require_stripe",
    "create_session",
    "create_payment_intent",
    "retrieve_payment_intent",
    "verify",
    # repository
    "insert_order_if_absent",
    "get_order_by_payment_id",
    # services
    "MaterializeResult",
    "build_checkout_session",
    "build_payment_intent",
    "materialize_event",
    "handle_event",
    "confirm_payment",
]
