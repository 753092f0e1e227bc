"""
Adaptateur Resend (emails transactionnels).
"""
import logging
import threading
from typing import Any, Dict

import resend

from backend.utils.errors import EmailDispatchError

logger = logging.getLogger(__name__)

# resend.api_key est global au module SDK: un seul envoi à la fois entre pose et restauration
_api_key_lock = threading.Lock()


def send_via_resend(payload: Dict[str, Any], api_key: str) -> str:
    """
    Envoie un email via Resend et retourne son identifiant.
    - La clé est posée le temps de l'appel (sous verrou) puis restaurée
    - EmailDispatchError si la clé manque, si le SDK lève ou si la réponse n'a pas d'id
    """
    configured = (api_key or "").strip()
    if not configured:
        raise EmailDispatchError("Resend API key is not configured")

    with _api_key_lock:
        previous = getattr(resend, "api_key", None)
        resend.api_key = configured
        try:
            response = resend.Emails.send(payload)
        except Exception as e:
            raise EmailDispatchError(f"resend.Emails.send failed: {e}")
        finally:
            resend.api_key = previous

    email_id = response.get("id") if isinstance(response, dict) else None
    if not email_id:
        raise EmailDispatchError(f"resend response without id: {response!r}")
    logger.info("emails.client sent id=%s to=%s", email_id, payload.get("to"))
    return str(email_id)
