"""
CoinGecko Data Client

Free crypto market data (no API key required):
- Current price / 24h change / market cap for a coin id
- Daily price history
- Coin search by name or symbol
- Top coins by market cap

Responses are kept in the expiring cache when one is injected.
"""

from typing import Any, Dict, List, Optional

import httpx

from config import CACHE_TTL_MINUTES
from errors import NotFoundError, UpstreamError
from log import get_logger
from .models import CryptoMarketData, PricePoint, sort_series


logger = get_logger(__name__)


class CoinGeckoError(UpstreamError):
    """Exception raised for CoinGecko API errors."""
    pass


class CoinGeckoClient:
    """
    Async client for the CoinGecko public API.

    Usage:
        async with CoinGeckoClient(cache=cache) as client:
            coin_id = await client.resolve_coin_id("btc")
            data = await client.get_market_data(coin_id)
    """

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(self, cache=None, timeout: float = 10.0, http_client: Optional[httpx.AsyncClient] = None):
        """
        Initialize CoinGecko client.

        Args:
            cache: Optional ExpiringCache for responses
            timeout: Request timeout in seconds
            http_client: Pre-built httpx client (tests pass one with a mock transport)
        """
        self.cache = cache
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.BASE_URL}/{path}"
        try:
            response = await self._client.get(url, params=params or {})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise CoinGeckoError(f"HTTP error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise CoinGeckoError(f"Request failed: {str(e)}") from e
        except ValueError as e:
            raise CoinGeckoError(f"Invalid JSON from CoinGecko: {e}") from e

    def _cached(self, key: str):
        return self.cache.get(key) if self.cache is not None else None

    def _store(self, key: str, value: Any, kind: str) -> None:
        if self.cache is not None:
            self.cache.set(key, value, CACHE_TTL_MINUTES[kind])

    async def get_market_data(self, coin_id: str) -> CryptoMarketData:
        """
        Get the current market snapshot for a coin.

        Raises:
            NotFoundError: CoinGecko knows no coin with this id
            CoinGeckoError: The request failed
        """
        key = f"crypto:market:{coin_id}"
        cached = self._cached(key)
        if cached is not None:
            return CryptoMarketData.from_dict(cached)

        data = await self._request("coins/markets", {
            "vs_currency": "usd",
            "ids": coin_id,
            "order": "market_cap_desc",
            "per_page": 1,
            "page": 1,
            "sparkline": "false",
        })
        if not isinstance(data, list):
            raise CoinGeckoError(f"Unexpected market payload for {coin_id}")
        if not data:
            raise NotFoundError(f"Cryptocurrency not found: {coin_id}")

        market = self._to_market_data(data[0])
        self._store(key, market.to_dict(), "crypto_market")
        return market

    async def get_historical_prices(self, coin_id: str, days: int = 365) -> List[PricePoint]:
        """
        Get daily USD prices for the last ``days`` days, oldest first.

        Raises:
            NotFoundError: No price history is available
        """
        key = f"crypto:history:{coin_id}:{days}"
        cached = self._cached(key)
        if cached is not None:
            return [PricePoint.from_dict(p) for p in cached]

        data = await self._request(f"coins/{coin_id}/market_chart", {
            "vs_currency": "usd",
            "days": days,
            "interval": "daily",
        })
        raw_prices = data.get("prices") if isinstance(data, dict) else None
        if not raw_prices:
            raise NotFoundError(f"Price history not found for {coin_id}")
        if not isinstance(raw_prices, list):
            raise CoinGeckoError(f"Unexpected price history payload for {coin_id}")

        try:
            points = sort_series([
                PricePoint(timestamp=int(ts), price=float(price))
                for ts, price in raw_prices
                if price is not None
            ])
        except (TypeError, ValueError, OverflowError) as e:
            raise CoinGeckoError(f"Malformed price history for {coin_id}: {e}") from e
        if not points:
            raise NotFoundError(f"Price history not found for {coin_id}")

        self._store(key, [p.to_dict() for p in points], "history")
        return points

    async def search(self, query: str) -> List[Dict[str, str]]:
        """Search coins by name or symbol (at most 10 results)."""
        key = f"crypto:search:{query.lower()}"
        cached = self._cached(key)
        if cached is not None:
            return cached

        data = await self._request("search", {"query": query})
        coins = data.get("coins") if isinstance(data, dict) else None
        if not isinstance(coins, list):
            coins = []
        results = [
            {"id": str(coin["id"]), "name": str(coin.get("name", "")), "symbol": str(coin.get("symbol", ""))}
            for coin in coins
            if isinstance(coin, dict) and coin.get("id")
        ][:10]
        self._store(key, results, "crypto_search")
        return results

    async def resolve_coin_id(self, query: str) -> str:
        """
        Resolve a symbol or name ("btc", "Bitcoin") to a CoinGecko id.

        The query is first tried as an id; otherwise the first search hit
        wins.

        Raises:
            NotFoundError: Neither lookup produced a coin
        """
        lower_query = (query or "").strip().lower()
        if not lower_query:
            raise NotFoundError("Cryptocurrency not found: empty query")

        try:
            await self.get_market_data(lower_query)
            return lower_query
        except (NotFoundError, CoinGeckoError):
            pass

        try:
            results = await self.search(lower_query)
        except CoinGeckoError as e:
            logger.warning("crypto_search_failed", query=lower_query, error=str(e))
            results = []

        if results:
            return results[0]["id"]

        raise NotFoundError(f"Cryptocurrency not found: {query}")

    async def get_top_coins(self, limit: int = 10) -> List[CryptoMarketData]:
        """Top coins by market cap."""
        key = f"crypto:top:{limit}"
        cached = self._cached(key)
        if cached is not None:
            return [CryptoMarketData.from_dict(c) for c in cached]

        data = await self._request("coins/markets", {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": limit,
            "page": 1,
            "sparkline": "false",
        })
        if not isinstance(data, list):
            raise CoinGeckoError("Unexpected payload for top coins")
        coins = [self._to_market_data(item) for item in data]
        self._store(key, [c.to_dict() for c in coins], "top_cryptos")
        return coins

    @staticmethod
    def _to_market_data(item: Dict[str, Any]) -> CryptoMarketData:
        if not isinstance(item, dict):
            raise CoinGeckoError(f"Unexpected coin entry: {item!r}")
        try:
            return CryptoMarketData(
                id=str(item.get("id", "")),
                symbol=str(item.get("symbol", "")),
                name=str(item.get("name", "")),
                current_price=float(item.get("current_price") or 0),
                price_change_percentage_24h=float(item.get("price_change_percentage_24h") or 0),
                market_cap=float(item.get("market_cap") or 0),
                total_volume=float(item.get("total_volume") or 0),
            )
        except (TypeError, ValueError) as e:
            raise CoinGeckoError(f"Malformed coin entry: {e}") from e
