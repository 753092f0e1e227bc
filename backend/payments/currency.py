"""
Conversion montants <-> unités mineures Stripe.

Table statique des devises supportées par la boutique. Une devise "zero-decimal"
n'a pas de subdivision: Stripe attend le montant tel quel (UGX 1000 -> 1000).
Les autres sont multipliées par 100 (GBP 85.00 -> 8500). KES n'est PAS zero-decimal.
"""
from typing import Dict, NamedTuple, Optional


class CurrencyConfig(NamedTuple):
    symbol: str
    code: str
    min_amount: int  # minimum Stripe, en unités mineures
    zero_decimal: bool


CURRENCY_CONFIG: Dict[str, CurrencyConfig] = {
    "gbp": CurrencyConfig("£", "GBP", 30, False),
    "eur": CurrencyConfig("€", "EUR", 50, False),
    "usd": CurrencyConfig("$", "USD", 50, False),
    "kes": CurrencyConfig("KSh ", "KES", 100, False),
    "ugx": CurrencyConfig("UGX ", "UGX", 1000, True),
    "tzs": CurrencyConfig("TZS ", "TZS", 1000, False),
    "rwf": CurrencyConfig("RWF ", "RWF", 100, True),
    "ngn": CurrencyConfig("₦", "NGN", 100, False),
    "zar": CurrencyConfig("R", "ZAR", 100, False),
    "ghs": CurrencyConfig("GH₵", "GHS", 100, False),
    "etb": CurrencyConfig("ETB ", "ETB", 100, False),
}

# Symboles utilisés dans les emails transactionnels; toute autre devise affiche son code
EMAIL_SYMBOLS: Dict[str, str] = {"GBP": "£", "EUR": "€", "USD": "$", "KES": "KSh"}


def _key(currency_code: Optional[str]) -> str:
    return (currency_code or "").strip().lower()


def is_zero_decimal(currency_code: Optional[str]) -> bool:
    config = CURRENCY_CONFIG.get(_key(currency_code))
    return bool(config and config.zero_decimal)


def normalize_currency(currency_code: Optional[str], default: str = "gbp") -> str:
    """Code en minuscules; une devise inconnue ou absente retombe sur `default`."""
    key = _key(currency_code)
    return key if key in CURRENCY_CONFIG else _key(default)


def to_minor_units(amount: float, currency_code: Optional[str]) -> int:
    """
    Montant lisible -> entier Stripe.
    Devise inconnue: traitée comme non zero-decimal (x100).
    """
    if is_zero_decimal(currency_code):
        return int(round(amount))
    return int(round(amount * 100))


def from_minor_units(amount: int, currency_code: Optional[str]) -> float:
    """Inverse symétrique de to_minor_units (identité pour les devises zero-decimal)."""
    if is_zero_decimal(currency_code):
        return float(amount)
    return amount / 100


def min_amount(currency_code: Optional[str]) -> int:
    config = CURRENCY_CONFIG.get(_key(currency_code))
    return config.min_amount if config else 0


def currency_symbol(currency_code: Optional[str]) -> str:
    code = (currency_code or "").strip().upper()
    return EMAIL_SYMBOLS.get(code, code)


def format_amount(amount: float, currency_code: Optional[str]) -> str:
    """Ex: format_amount(85, "gbp") -> "£85.00"; format_amount(5000, "UGX") -> "UGX 5000"."""
    code = (currency_code or "").strip().upper()
    symbol = currency_symbol(code)
    value = f"{amount:.0f}" if is_zero_decimal(code) else f"{amount:.2f}"
    if symbol == code and code:
        return f"{code} {value}"
    return f"{symbol}{value}"
