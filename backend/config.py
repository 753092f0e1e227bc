# backend.config
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
import logging
import os
from dotenv import load_dotenv

from backend.utils.errors import ConfigurationError

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

TEMPLATES_DIR = BASE_DIR / "templates"

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Expose le chemin des templates d'emails (TEMPLATES_DIR)
- Construit un objet Settings typé, injecté dans les services (Stripe, Supabase, Resend, MailerLite)
- Les variables requises sont vérifiées à la demande (Settings.require), jamais au démarrage
"""

logger = logging.getLogger(__name__)

# Lien Stripe statique utilisé par le flux de don quand aucun montant n'est fourni
DEFAULT_DONATION_FALLBACK_URL = "https://donate.stripe.com/dRm7sKgzH3qtapRg8wd3i00"


def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")


def _env(*names: str, default: str = "") -> str:
    """Première variable non vide parmi `names` (alias hérités des fonctions Netlify/Supabase)."""
    for name in names:
        value = _clean_env(os.getenv(name) or "")
        if value:
            return value
    return default


def _split_csv(raw: str) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


def _normalize_supabase_url(url: str) -> str:
    # SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
    if url and not url.startswith("http"):
        url = "https://" + url
    return url.rstrip("/")


@dataclass(frozen=True)
class Settings:
    """
    Configuration typée de l'application.
    Construite une fois par processus (get_settings) et passée explicitement aux services,
    ce qui permet aux tests d'injecter une configuration sans toucher à os.environ.
    """
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_key: str = ""
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    resend_api_key: str = ""
    email_from: str = "Moenviron <orders@moenviron.com>"
    mailerlite_api_key: str = ""
    public_site_url: str = "http://localhost:8000"
    base_currency: str = "gbp"
    donation_fallback_url: str = DEFAULT_DONATION_FALLBACK_URL
    shipping_flat_fee: float = 5.0
    admin_emails: List[str] = field(default_factory=list)
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    allowed_hosts: List[str] = field(default_factory=lambda: ["localhost", "127.0.0.1"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Lit l'environnement (déjà chargé depuis .env) et normalise les valeurs."""
        fee_raw = _env("SHIPPING_FLAT_FEE", default="5")
        try:
            shipping_fee = float(fee_raw)
        except ValueError:
            logger.warning("config: SHIPPING_FLAT_FEE invalide (%r), valeur par défaut 5", fee_raw)
            shipping_fee = 5.0
        return cls(
            supabase_url=_normalize_supabase_url(_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")),
            supabase_anon_key=_env("SUPABASE_ANON_KEY", "SUPABASE_KEY"),
            supabase_service_key=_env("SUPABASE_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY"),
            stripe_secret_key=_env("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
            resend_api_key=_env("RESEND_API_KEY"),
            email_from=_env("EMAIL_FROM", default="Moenviron <orders@moenviron.com>"),
            mailerlite_api_key=_env("MAILERLITE_API_KEY"),
            public_site_url=_env("PUBLIC_SITE_URL", "BASE_URL", "URL", default="http://localhost:8000").rstrip("/"),
            base_currency=_env("BASE_CURRENCY", default="gbp").lower(),
            donation_fallback_url=_env("DONATION_FALLBACK_URL", default=DEFAULT_DONATION_FALLBACK_URL),
            shipping_flat_fee=shipping_fee,
            admin_emails=[e.lower() for e in _split_csv(os.getenv("ADMIN_EMAILS", ""))],
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
            allowed_hosts=_split_csv(os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")),
        )

    def missing(self, *names: str) -> List[str]:
        return [n for n in names if not getattr(self, n)]

    def require(self, *names: str, operation: Optional[str] = None) -> None:
        """
        Vérifie que les champs demandés sont renseignés.
        Les noms manquants ne partent que dans les logs; le client reçoit un message générique.
        """
        absent = self.missing(*names)
        if absent:
            raise ConfigurationError(f"{operation or 'operation'} missing configuration: {', '.join(absent)}")

    @property
    def database_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings du processus (dépendance FastAPI, surchargée dans les tests)."""
    return Settings.from_env()
