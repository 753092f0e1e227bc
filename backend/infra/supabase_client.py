from typing import Optional, Tuple
from supabase import create_client, Client
from backend.config import Settings, get_settings
from backend.utils.errors import ConfigurationError

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None
_service_key: Optional[Tuple[str, str]] = None


def get_supabase(settings: Optional[Settings] = None) -> Client:
    """Client 'anon' (RLS actif), utilisé pour résoudre les tokens utilisateurs."""
    global _supabase
    settings = settings or get_settings()
    if _supabase is None:
        settings.require("supabase_url", "supabase_anon_key", operation="get_supabase")
        _supabase = create_client(settings.supabase_url, settings.supabase_anon_key)
    return _supabase


def get_service_supabase(settings: Optional[Settings] = None) -> Client:
    """
    Client service-role (bypass RLS) pour le webhook, les commandes et l'admin.
    Reconstruit si l'URL ou la clé changent (Settings injectés différents).
    """
    global _service_supabase, _service_key
    settings = settings or get_settings()
    if not settings.database_configured:
        raise ConfigurationError("SUPABASE_URL / SUPABASE_SERVICE_KEY manquants pour get_service_supabase()")
    key = (settings.supabase_url, settings.supabase_service_key)
    if _service_supabase is None or _service_key != key:
        _service_supabase = create_client(*key)
        _service_key = key
    return _service_supabase
