"""
Exchange-rate client (USD base).

Rates come from exchangerate-api.com's free endpoint. Failures fall back
to a fixed table so prices can always be displayed in JPY or USD.
"""

import math
from typing import Dict, Optional

import httpx

from config import CACHE_TTL_MINUTES
from currency import FALLBACK_RATES, PIVOT_CURRENCY
from log import get_logger


logger = get_logger(__name__)


class ExchangeRateClient:
    """
    Async client for USD-based exchange rates.

    Usage:
        async with ExchangeRateClient(cache=cache) as client:
            rates = await client.get_rates()   # {"USD": 1.0, "JPY": 151.2, ...}
    """

    BASE_URL = "https://api.exchangerate-api.com/v4/latest"

    def __init__(self, cache=None, timeout: float = 10.0, http_client: Optional[httpx.AsyncClient] = None):
        self.cache = cache
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get_rates(self) -> Dict[str, float]:
        """
        Currency code -> units per 1 USD.

        Never raises; returns the fallback table when the provider is
        unavailable or answers without rates.
        """
        key = f"fx:rates:{PIVOT_CURRENCY}"
        cached = self.cache.get(key) if self.cache is not None else None
        if cached is not None:
            return cached

        try:
            response = await self._client.get(f"{self.BASE_URL}/{PIVOT_CURRENCY}")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("fx_rates_fallback", error=str(e))
            return dict(FALLBACK_RATES)

        raw_rates = data.get("rates") if isinstance(data, dict) else None
        rates = _numeric_rates(raw_rates) if isinstance(raw_rates, dict) else {}
        if not rates:
            logger.warning("fx_rates_fallback", error="response without rates")
            return dict(FALLBACK_RATES)

        if self.cache is not None:
            self.cache.set(key, rates, CACHE_TTL_MINUTES["fx_rates"])
        return rates


def _numeric_rates(raw: Dict[str, object]) -> Dict[str, float]:
    """Keep positive finite rates; anything else in the payload is skipped."""
    rates = {}
    for code, rate in raw.items():
        if isinstance(rate, bool):
            continue
        try:
            value = float(rate)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value) and value > 0:
            rates[str(code)] = value
    return rates
