"""
Collaborators shared by the search workflow and the API.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from config import Settings
from currency import FALLBACK_RATES
from data_sources import CoinGeckoClient, ExchangeRateClient, NewsClient, YahooFinanceClient
from forecast import ForecastGenerator
from llm import get_llm_client
from search import StockDirectory
from storage import ExpiringCache, JsonFileStore


@dataclass
class DashboardServices:
    """Everything a search needs, injected so tests can swap in fakes."""
    directory: StockDirectory
    coingecko: CoinGeckoClient
    yahoo: YahooFinanceClient
    news: NewsClient
    fx: ExchangeRateClient
    forecaster: ForecastGenerator
    cache: Optional[ExpiringCache] = None
    rates: Dict[str, float] = field(default_factory=lambda: dict(FALLBACK_RATES))

    async def close(self):
        """Release HTTP clients and worker threads."""
        await self.coingecko.close()
        await self.yahoo.close()
        await self.news.close()
        await self.fx.close()


def create_services(settings: Settings) -> DashboardServices:
    """Wire the production services from settings."""
    cache = ExpiringCache(JsonFileStore(settings.cache_path))
    return DashboardServices(
        directory=StockDirectory(),
        coingecko=CoinGeckoClient(cache=cache, timeout=settings.http_timeout),
        yahoo=YahooFinanceClient(cache=cache),
        news=NewsClient(api_key=settings.news_api_key, cache=cache, timeout=settings.http_timeout),
        fx=ExchangeRateClient(cache=cache, timeout=settings.http_timeout),
        forecaster=ForecastGenerator(llm_client=get_llm_client(settings)),
        cache=cache,
    )
