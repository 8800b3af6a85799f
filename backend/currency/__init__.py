"""
Currency conversion and formatting.
"""

from .conversion import (
    PIVOT_CURRENCY,
    FALLBACK_RATES,
    convert,
    currency_symbol,
    format_currency,
)

__all__ = [
    "PIVOT_CURRENCY",
    "FALLBACK_RATES",
    "convert",
    "currency_symbol",
    "format_currency",
]
