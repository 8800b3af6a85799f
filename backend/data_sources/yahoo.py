"""
Yahoo Finance Data Client

Stock data for domestic (TSE, ``.T`` suffix) and foreign listings using
the yfinance library:
- Current quote with change against the previous close
- Daily (or intraday) OHLCV history
- Company profile (sector, employees, business summary)

No API key required. yfinance is synchronous, so calls run in a thread
pool; caching happens on the async side through the injected
ExpiringCache.
"""

import asyncio
import math
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import yfinance as yf

from config import CACHE_TTL_MINUTES
from errors import NotFoundError, UpstreamError
from .models import PricePoint, Quote, sort_series


_DOMESTIC_CODE = re.compile(r"^\d{4}$")

VALID_RANGES = {"1mo", "3mo", "6mo", "1y", "2y", "5y", "ytd", "max"}
VALID_INTERVALS = {"1d", "1wk", "1mo"}


def _safe_float(val, default=0) -> Optional[float]:
    """
    Coerce a value to a finite float.

    NaN, infinity, None and unparseable values map to ``default`` so they
    never reach JSON responses.
    """
    if val is None:
        return default
    try:
        f = float(val)
        if math.isnan(f) or math.isinf(f):
            return default
        return f
    except (ValueError, TypeError):
        return default


def to_yahoo_symbol(code: str) -> str:
    """Map a 4-digit TSE code to its Yahoo symbol (``7203`` -> ``7203.T``)."""
    code = code.strip().upper()
    if _DOMESTIC_CODE.match(code):
        return f"{code}.T"
    return code


class YahooFinanceError(UpstreamError):
    """Exception raised for Yahoo Finance errors."""
    pass


class YahooFinanceClient:
    """
    Client for Yahoo Finance data via yfinance.

    Usage:
        async with YahooFinanceClient(cache=cache) as client:
            quote = await client.get_quote("7203.T")
            history = await client.get_price_history("7203.T")
    """

    def __init__(self, cache=None, max_workers: int = 4):
        """
        Initialize Yahoo Finance client.

        Args:
            cache: Optional ExpiringCache for responses
            max_workers: Thread pool size for the blocking yfinance calls
        """
        self.cache = cache
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    async def close(self):
        """Close the client."""
        self._executor.shutdown(wait=False)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_ticker(self, symbol: str) -> yf.Ticker:
        """Get yfinance Ticker object."""
        return yf.Ticker(symbol)

    async def _run_sync(self, func, *args):
        """Run synchronous function in thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    def _cached(self, key: str):
        return self.cache.get(key) if self.cache is not None else None

    def _store(self, key: str, value: Any, kind: str) -> None:
        if self.cache is not None:
            self.cache.set(key, value, CACHE_TTL_MINUTES[kind])

    # ------------------------------------------------------------------
    # Quote
    # ------------------------------------------------------------------

    def get_quote_sync(self, symbol: str) -> Quote:
        """
        Fetch the current quote for a symbol.

        Raises:
            NotFoundError: Yahoo has no price for the symbol
            YahooFinanceError: The lookup itself failed
        """
        try:
            info = self._get_ticker(symbol).info
        except Exception as e:
            raise YahooFinanceError(f"Quote lookup failed for {symbol}: {e}") from e

        price = _safe_float((info or {}).get("regularMarketPrice") or (info or {}).get("currentPrice"), default=None)
        if not info or price is None:
            raise NotFoundError(f"Stock not found: {symbol}")

        previous_close = _safe_float(
            info.get("previousClose") or info.get("regularMarketPreviousClose"), default=price
        )
        change = price - previous_close
        change_percent = (change / previous_close * 100) if previous_close else 0.0

        market_time = info.get("regularMarketTime")
        timestamp = int(market_time) * 1000 if isinstance(market_time, (int, float)) else None

        return Quote(
            symbol=symbol,
            name=info.get("longName") or info.get("shortName") or symbol,
            price=price,
            previous_close=previous_close,
            change=change,
            change_percent=change_percent,
            currency=info.get("currency") or ("JPY" if symbol.endswith(".T") else "USD"),
            exchange=info.get("fullExchangeName") or info.get("exchange") or "",
            timestamp=timestamp,
        )

    async def get_quote(self, symbol: str) -> Quote:
        """Cached async wrapper for get_quote_sync."""
        key = f"stock:quote:{symbol}"
        cached = self._cached(key)
        if cached is not None:
            return Quote.from_dict(cached)

        quote = await self._run_sync(self.get_quote_sync, symbol)
        self._store(key, quote.to_dict(), "quote")
        return quote

    # ------------------------------------------------------------------
    # Price history
    # ------------------------------------------------------------------

    def get_price_history_sync(self, symbol: str, range: str = "1y", interval: str = "1d") -> List[PricePoint]:
        """
        Fetch OHLCV history for a symbol.

        Args:
            symbol: Yahoo symbol (``7203.T``, ``AAPL``)
            range: yfinance period string (1mo, 3mo, 6mo, 1y, 2y, 5y, ytd, max)
            interval: Bar size (1d, 1wk, 1mo)

        Returns:
            PricePoints sorted oldest first; bars without a close are skipped.
        """
        try:
            hist = self._get_ticker(symbol).history(period=range, interval=interval)
        except Exception as e:
            raise YahooFinanceError(f"History lookup failed for {symbol}: {e}") from e

        if hist is None or hist.empty:
            raise NotFoundError(f"Price history not found for {symbol}")

        records = []
        for idx, row in hist.iterrows():
            close_val = _safe_float(row.get("Close"), default=None)
            if close_val is None:
                continue
            records.append(PricePoint(
                timestamp=int(idx.timestamp() * 1000),
                price=close_val,
                open=_safe_float(row.get("Open"), default=None),
                high=_safe_float(row.get("High"), default=None),
                low=_safe_float(row.get("Low"), default=None),
                close=close_val,
                volume=int(_safe_float(row.get("Volume"), default=0)),
            ))

        points = sort_series(records)
        if not points:
            raise NotFoundError(f"Price history not found for {symbol}")
        return points

    async def get_price_history(self, symbol: str, range: str = "1y", interval: str = "1d") -> List[PricePoint]:
        """Cached async wrapper for get_price_history_sync."""
        if range not in VALID_RANGES:
            range = "1y"
        if interval not in VALID_INTERVALS:
            interval = "1d"

        key = f"stock:history:{symbol}:{range}:{interval}"
        cached = self._cached(key)
        if cached is not None:
            return [PricePoint.from_dict(p) for p in cached]

        points = await self._run_sync(self.get_price_history_sync, symbol, range, interval)
        self._store(key, [p.to_dict() for p in points], "history")
        return points

    # ------------------------------------------------------------------
    # Company profile
    # ------------------------------------------------------------------

    def get_company_profile_sync(self, symbol: str) -> Dict[str, Any]:
        """
        Best-effort company profile; empty dict when Yahoo has nothing.
        """
        try:
            info = self._get_ticker(symbol).info or {}
        except Exception:
            return {}
        if not info:
            return {}

        employees = info.get("fullTimeEmployees")
        return {
            "symbol": symbol,
            "name": info.get("longName") or info.get("shortName") or symbol,
            "sector": info.get("sector"),
            "industry": info.get("industry"),
            "employees": int(employees) if isinstance(employees, (int, float)) else None,
            "description": info.get("longBusinessSummary"),
            "country": info.get("country"),
            "market_cap": _safe_float(info.get("marketCap"), default=None),
            "website": info.get("website"),
        }

    async def get_company_profile(self, symbol: str) -> Dict[str, Any]:
        """Async wrapper for get_company_profile_sync."""
        key = f"stock:profile:{symbol}"
        cached = self._cached(key)
        if cached is not None:
            return cached

        profile = await self._run_sync(self.get_company_profile_sync, symbol)
        if profile:
            self._store(key, profile, "profile")
        return profile
