from typing import Optional, Dict, Any, List
import logging
import backend.infra.supabase_client as supabase_client
from backend.config import Settings

logger = logging.getLogger(__name__)

ROLES = ("admin", "staff", "user")


def determine_role(email: Optional[str], metadata: Dict[str, Any] | None, admin_emails: List[str]) -> str:
    """
    Rôle applicatif:
    - 'admin' si user_metadata.role == 'admin' ou si l'email figure dans ADMIN_EMAILS
    - 'staff' pour l'équipe logistique (mises à jour de statut)
    - 'user' sinon
    """
    role_lower = str((metadata or {}).get("role", "")).lower()
    if role_lower == "admin" or (email or "").lower() in admin_emails:
        return "admin"
    if role_lower == "staff":
        return "staff"
    return "user"


def get_user_from_token(token: str, settings: Settings) -> Dict[str, Any]:
    """
    Résout un access token Supabase en utilisateur {id, email, role, metadata}.
    Retourne {} si le token est invalide ou expiré.
    """
    try:
        res = supabase_client.get_supabase(settings).auth.get_user(token)
    except Exception:
        logger.exception("auth.service.get_user_from_token failed")
        return {}
    user = getattr(res, "user", None)
    if not user:
        return {}
    email = getattr(user, "email", None)
    metadata = getattr(user, "user_metadata", None) or {}
    return {
        "id": getattr(user, "id", None),
        "email": email,
        "role": determine_role(email, metadata, settings.admin_emails),
        "metadata": metadata,
    }
