"""
Currency conversion through a USD pivot.

Rates are "units of currency per 1 USD", as returned by the FX-rate
provider (USD base).
"""

from typing import Dict, Mapping


PIVOT_CURRENCY = "USD"

# Used whenever the FX-rate provider is unreachable
FALLBACK_RATES: Dict[str, float] = {
    "USD": 1.0,
    "JPY": 150.0,
    "EUR": 0.92,
    "GBP": 0.79,
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "JPY": "¥",
    "EUR": "€",
    "GBP": "£",
}

# Currencies displayed without minor units
ZERO_DECIMAL_CURRENCIES = {"JPY"}


def convert(amount: float, from_currency: str, to_currency: str, rates: Mapping[str, float]) -> float:
    """
    Convert ``amount`` between currencies using USD as the pivot.

    Raises:
        KeyError: A non-USD currency is missing from ``rates``.
    """
    if from_currency == to_currency:
        return amount

    amount_usd = amount if from_currency == PIVOT_CURRENCY else amount / rates[from_currency]
    return amount_usd if to_currency == PIVOT_CURRENCY else amount_usd * rates[to_currency]


def currency_symbol(currency: str) -> str:
    """Display symbol for a currency code (the code itself if unknown)."""
    return CURRENCY_SYMBOLS.get(currency, currency)


def format_currency(amount: float, currency: str) -> str:
    """Format an amount for display, e.g. ``¥2,845`` or ``$178.25``."""
    decimals = 0 if currency in ZERO_DECIMAL_CURRENCIES else 2
    sign = "-" if amount < 0 else ""
    symbol = currency_symbol(currency)
    body = f"{abs(amount):,.{decimals}f}"
    if symbol == currency:
        return f"{sign}{body} {currency}"
    return f"{sign}{symbol}{body}"
