"""
Taxonomie d'erreurs applicatives.

Chaque erreur porte un status HTTP et un message public (sûr à afficher);
le message interne (args[0]) ne part que dans les logs.
Les handlers FastAPI sont enregistrés dans backend.app_setup.exceptions.
"""
from typing import Optional


class AppError(Exception):
    status_code: int = 500
    default_public_message: str = "Internal error"

    def __init__(self, message: str = "", *, status_code: Optional[int] = None, public_message: Optional[str] = None):
        super().__init__(message or self.default_public_message)
        if status_code is not None:
            self.status_code = status_code
        self.public_message = public_message or self.default_public_message

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class ClientInputError(AppError):
    """Entrée invalide: le message est déjà assaini et renvoyé tel quel."""
    status_code = 400

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("public_message", message)
        super().__init__(message, **kwargs)


class NotFoundError(ClientInputError):
    status_code = 404


class InvalidTransitionError(ClientInputError):
    status_code = 409


class ConfigurationError(AppError):
    status_code = 500
    default_public_message = "Service not configured"


class SignatureInvalidError(AppError):
    status_code = 400
    default_public_message = "Invalid webhook signature"


class PaymentProviderError(AppError):
    """Erreur Stripe: status repris du SDK si disponible, 400 sinon."""
    status_code = 400
    default_public_message = "Unable to start checkout, please try again"


class PersistenceError(AppError):
    status_code = 500


class MetadataCorruptError(PersistenceError):
    """Metadata Stripe illisible: on refuse plutôt que d'écrire une commande vide."""


class EmailDispatchError(AppError):
    status_code = 502
    default_public_message = "Email delivery failed"
