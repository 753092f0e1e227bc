"""
Rendu HTML des emails de commande (Jinja2, templates/emails/).
"""
from typing import Any, Dict, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from backend.config import TEMPLATES_DIR
from backend.payments.currency import format_amount

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR / "emails")),
    autoescape=select_autoescape(["html"]),
)

TEST_EMAIL_SUBJECT = "Test Email from Moenviron"

STATUS_STYLES: Dict[str, Dict[str, str]] = {
    "pending": {"subject": "Order Received", "heading": "We Received Your Order!", "icon": "📦", "color": "#f59e0b"},
    "processing": {"subject": "Order Processing", "heading": "Your Order is Being Prepared!", "icon": "⚙️", "color": "#3b82f6"},
    "shipped": {"subject": "Order Shipped", "heading": "Your Order is On Its Way!", "icon": "🚚", "color": "#8b5cf6"},
    "arrived": {"subject": "Order Has Arrived!", "heading": "Your Package Has Arrived at Its Destination!", "icon": "🎉", "color": "#6366f1"},
    "delivered": {"subject": "Order Delivered", "heading": "Your Order Has Been Delivered!", "icon": "✅", "color": "#22c55e"},
    "cancelled": {"subject": "Order Cancelled", "heading": "Order Cancelled", "icon": "❌", "color": "#ef4444"},
}


def short_order_id(order_id: Any) -> str:
    return str(order_id or "")[:8].upper()


def status_style(status: str) -> Dict[str, str]:
    """Style par statut; un statut inconnu retombe sur le gabarit générique "Order Update"."""
    key = (status or "").strip().lower()
    if key in STATUS_STYLES:
        return STATUS_STYLES[key]
    return {"subject": "Order Update", "heading": f"Status: {status}", "icon": "📬", "color": "#059669"}


def _item_rows(items: List[Dict[str, Any]], currency: str) -> Tuple[List[Dict[str, Any]], float]:
    rows = []
    subtotal = 0.0
    for item in items or []:
        qty = int(item.get("qty") or item.get("quantity") or 1)
        price = float(item.get("price") or 0)
        line_total = price * qty
        subtotal += line_total
        rows.append({"name": item.get("name") or "Item", "qty": qty, "line_total": format_amount(line_total, currency)})
    return rows, subtotal


def render_order_confirmation(order: Dict[str, Any]) -> Tuple[str, str]:
    """Retourne (subject, html) pour la confirmation d'une commande créée."""
    currency = order.get("currency") or ""
    rows, subtotal = _item_rows(order.get("items") or [], currency)
    total_raw = order.get("total_amount")
    total = float(total_raw) if total_raw is not None else subtotal
    shipping = total - subtotal if rows and total - subtotal > 0.005 else 0.0
    short_id = short_order_id(order.get("id"))
    html = _env.get_template("order_confirmation.html").render(
        customer_name=order.get("user_name") or "there",
        short_id=short_id,
        rows=rows,
        shipping=format_amount(shipping, currency) if shipping else None,
        total=format_amount(total, currency),
    )
    return f"Order Confirmed! #{short_id}", html


def render_status_update(
    *,
    order_id: str,
    status: str,
    user_name: Optional[str] = None,
    tracking_number: Optional[str] = None,
    tracking_carrier: Optional[str] = None,
    estimated_delivery: Optional[str] = None,
    total_amount: Optional[float] = None,
    currency: Optional[str] = None,
    site_url: str = "",
) -> Tuple[str, str]:
    style = status_style(status)
    short_id = short_order_id(order_id)
    html = _env.get_template("order_status.html").render(
        style=style,
        customer_name=user_name or "there",
        short_id=short_id,
        status=(status or "").upper(),
        tracking_number=tracking_number,
        tracking_carrier=tracking_carrier,
        estimated_delivery=estimated_delivery,
        total=format_amount(float(total_amount), currency) if total_amount is not None else None,
        order_url=f"{site_url.rstrip('/')}/orders/{order_id}" if site_url else None,
    )
    return f"{style['subject']} - Order #{short_id}", html


def render_test_email(sender: str = "") -> Tuple[str, str]:
    """Email de vérification de la connexion Resend (action "test" de l'admin)."""
    html = _env.get_template("test.html").render(sender=sender or "Moenviron")
    return TEST_EMAIL_SUBJECT, html
