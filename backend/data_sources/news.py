"""
News Client for the forecast dashboard.

Fetches recent articles about an asset from NewsAPI. The dashboard must
work without a key, so a missing key or any upstream failure degrades to
a fixed set of placeholder articles instead of an error.
"""

import os
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from config import CACHE_TTL_MINUTES
from errors import UpstreamError
from log import get_logger
from .models import NewsArticle


logger = get_logger(__name__)


class NewsError(UpstreamError):
    """Exception raised for news API errors."""
    pass


GENERAL_NEWS_TOPIC = "Financial Markets"

# (title, description, source, hours ago) templates for placeholder news
_MOCK_TEMPLATES = [
    (
        "{q} Reaches New Milestone in Market Performance",
        "Recent analysis shows {q} demonstrating strong market fundamentals with increased institutional adoption and positive technical indicators.",
        "Financial Times",
        2,
    ),
    (
        "Analysts Predict Bullish Trend for {q}",
        "Market experts suggest that {q} could see significant growth in the coming months based on current market conditions and adoption rates.",
        "Bloomberg",
        5,
    ),
    (
        "{q} Technical Analysis: Key Support and Resistance Levels",
        "Technical analysts identify critical price levels for {q}, with strong support zones and potential breakout patterns emerging.",
        "CoinDesk",
        12,
    ),
    (
        "Market Update: {q} Shows Resilience Amid Volatility",
        "Despite recent market turbulence, {q} maintains stable performance with growing trading volumes and investor confidence.",
        "Reuters",
        24,
    ),
    (
        "Institutional Interest in {q} Continues to Grow",
        "Major financial institutions are increasing their exposure to {q}, signaling long-term confidence in the asset's potential.",
        "Wall Street Journal",
        36,
    ),
]


class NewsClient:
    """
    Client for asset news.

    Usage:
        async with NewsClient(cache=cache) as client:
            articles = await client.get_asset_news("Bitcoin")
    """

    BASE_URL = "https://newsapi.org/v2"

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache=None,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize news client.

        Args:
            api_key: NewsAPI key (optional - falls back to NEWS_API_KEY, then mock news)
            cache: Optional ExpiringCache for responses
            timeout: Request timeout in seconds
            http_client: Pre-built httpx client (tests pass one with a mock transport)
            clock: Current time in seconds, used to date placeholder articles
        """
        self.api_key = api_key or os.getenv("NEWS_API_KEY")
        self.cache = cache
        self._clock = clock
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, endpoint: str, params: Dict[str, Any]) -> List[NewsArticle]:
        params = {**params, "apiKey": self.api_key}
        try:
            response = await self._client.get(f"{self.BASE_URL}/{endpoint}", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise NewsError(f"News API error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise NewsError(f"News request failed: {str(e)}") from e
        except ValueError as e:
            raise NewsError(f"Invalid JSON from News API: {e}") from e

        return [self._to_article(a) for a in data.get("articles", []) if a.get("title")]

    async def get_asset_news(self, query: str, page_size: int = 10) -> List[NewsArticle]:
        """
        Latest English articles mentioning ``query``.

        Never raises: without an API key, or when NewsAPI fails, the
        placeholder articles are returned.
        """
        if not self.api_key:
            logger.info("news_mock_used", query=query, reason="no_api_key")
            return self.mock_news(query)

        key = f"news:asset:{query.lower()}:{page_size}"
        cached = self.cache.get(key) if self.cache is not None else None
        if cached is not None:
            return [NewsArticle.from_dict(a) for a in cached]

        try:
            articles = await self._request("everything", {
                "q": query,
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": page_size,
            })
        except NewsError as e:
            logger.warning("news_fetch_failed", query=query, error=str(e))
            return self.mock_news(query)

        if self.cache is not None:
            self.cache.set(key, [a.to_dict() for a in articles], CACHE_TTL_MINUTES["news"])
        return articles

    async def get_general_news(self, page_size: int = 10) -> List[NewsArticle]:
        """Top business headlines (placeholder articles on failure)."""
        if not self.api_key:
            return self.mock_news(GENERAL_NEWS_TOPIC)

        key = f"news:general:{page_size}"
        cached = self.cache.get(key) if self.cache is not None else None
        if cached is not None:
            return [NewsArticle.from_dict(a) for a in cached]

        try:
            articles = await self._request("top-headlines", {
                "category": "business",
                "language": "en",
                "pageSize": page_size,
            })
        except NewsError as e:
            logger.warning("news_fetch_failed", query="general", error=str(e))
            return self.mock_news(GENERAL_NEWS_TOPIC)

        if self.cache is not None:
            self.cache.set(key, [a.to_dict() for a in articles], CACHE_TTL_MINUTES["news"])
        return articles

    def mock_news(self, query: str) -> List[NewsArticle]:
        """Placeholder articles about ``query``, dated relative to now."""
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return [
            NewsArticle(
                title=title.format(q=query),
                description=description.format(q=query),
                url="#",
                published_at=(now - timedelta(hours=hours)).isoformat().replace("+00:00", "Z"),
                source=source,
            )
            for title, description, source, hours in _MOCK_TEMPLATES
        ]

    @staticmethod
    def _to_article(article: Dict[str, Any]) -> NewsArticle:
        source = article.get("source") or {}
        return NewsArticle(
            title=article.get("title") or "",
            description=article.get("description") or "",
            url=article.get("url") or "",
            published_at=article.get("publishedAt") or "",
            source=source.get("name", "") if isinstance(source, dict) else str(source),
            url_to_image=article.get("urlToImage"),
        )
