import logging
import math
from typing import List, Optional

from fastapi import APIRouter, Request, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from backend.config import Settings, get_settings
from backend.utils.errors import ClientInputError
from backend.utils.rate_limit import optional_rate_limit
from backend.payments import service as payments_service
from backend.payments import webhook as payments_webhook

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class CartItem(BaseModel):
    id: str = ""
    name: str = "Item"
    price: float = 0
    quantity: int = 1
    carbonOffsetKg: Optional[float] = None


class CheckoutRequest(BaseModel):
    # Validation métier (panier vide, email manquant) faite par le service: messages 400 explicites
    items: List[CartItem] = Field(default_factory=list)
    customerEmail: Optional[str] = None
    customerName: Optional[str] = None
    currency: Optional[str] = None
    isDonation: bool = False


class ConfirmPaymentRequest(BaseModel):
    paymentIntentId: Optional[str] = None
    shippingAddress: Optional[dict] = None


# module backend.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(body: CheckoutRequest, settings: Settings = Depends(get_settings)):
    """
    Crée une session Checkout Stripe pour le panier du storefront.
    - Entrée JSON: { items: [{id, name, price, quantity}], customerEmail, customerName?, currency?, isDonation? }
    - Sortie: { url, sessionId }
    - Erreurs: 400 { error } (panier/email/montant), status Stripe en cas d'échec fournisseur
    """
    session = payments_service.build_checkout_session(
        [item.model_dump() for item in body.items],
        body.customerEmail,
        settings=settings,
        customer_name=body.customerName,
        currency=body.currency,
        is_donation=body.isDonation,
    )
    return {"url": session["url"], "sessionId": session["session_id"]}


@router.get("/checkout")
def checkout_link(
    amount: float = Query(default=0),
    currency: Optional[str] = None,
    email: Optional[str] = None,
    name: Optional[str] = None,
    isDonation: str = "true",
    settings: Settings = Depends(get_settings),
):
    """
    Variante lien (dons): redirige (302) vers la page Stripe.
    Montant <= 0: redirection vers le lien de don statique, sans créer de session.
    Montant non fini (inf, nan): 400 { error: "invalid amount" }.
    """
    if not math.isfinite(amount):
        raise ClientInputError("invalid amount")
    if amount <= 0:
        return RedirectResponse(url=settings.donation_fallback_url, status_code=302)
    is_donation = isDonation.lower() != "false"
    item = {"id": "donation", "name": "Donation to Moenviron" if is_donation else "Purchase", "price": amount, "quantity": 1}
    session = payments_service.build_checkout_session(
        [item],
        email,
        settings=settings,
        customer_name=name,
        currency=currency,
        is_donation=is_donation,
    )
    return RedirectResponse(url=session["url"], status_code=302)


@router.post("/payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(body: CheckoutRequest, settings: Settings = Depends(get_settings)):
    """Checkout intégré (Stripe Elements): { clientSecret, paymentIntentId }."""
    intent = payments_service.build_payment_intent(
        [item.model_dump() for item in body.items],
        body.customerEmail,
        settings=settings,
        customer_name=body.customerName,
        currency=body.currency,
        is_donation=body.isDonation,
    )
    return {"clientSecret": intent["client_secret"], "paymentIntentId": intent["payment_intent_id"]}


@router.post("/confirm")
def confirm_payment(body: ConfirmPaymentRequest, settings: Settings = Depends(get_settings)):
    """
    Alternative au webhook pour le checkout intégré: vérifie le PaymentIntent chez Stripe
    et crée la commande (idempotent, même clé que le webhook).
    L'adresse de livraison fournie est enregistrée sur la commande.
    """
    return payments_service.confirm_payment(
        body.paymentIntentId or "",
        settings,
        shipping_address=body.shippingAddress,
    )


@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request, settings: Settings = Depends(get_settings)):
    """
    Webhook Stripe: signature vérifiée avant tout traitement.
    - payment_intent.succeeded / checkout.session.completed: commande idempotente + email
    - Autres types (ping, ...): ignorés
    - Réponse: 200 { received: true } ; erreurs 4xx/5xx { error } (Stripe relivre)
    """
    payload = await request.body()
    event = payments_webhook.verify(payload, request.headers.get("stripe-signature"), settings)
    outcome = await run_in_threadpool(payments_service.handle_event, event, settings)
    return JSONResponse({"received": True, "status": outcome["status"]})
