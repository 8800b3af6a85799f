"""
Shared fixtures: dashboard services wired with in-memory fakes.
"""

import os
import random
import sys
from unittest.mock import AsyncMock

import pytest

# ── Ensure backend is importable ──
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from data_sources.models import CryptoMarketData, NewsArticle, PricePoint, Quote
from errors import NotFoundError
from forecast import ForecastGenerator
from search import CatalogEntry, ForeignListing, StockCatalog, StockDirectory
from storage import ExpiringCache, InMemoryStore
from workflow import DashboardServices


DAY_MS = 24 * 60 * 60 * 1000
START_TS = 1_704_067_200_000  # 2024-01-01


def daily_series(start_price: float, days: int = 60, step: float = 1.0):
    return [PricePoint(timestamp=START_TS + i * DAY_MS, price=start_price + i * step) for i in range(days)]


TOYOTA_QUOTE = Quote(
    symbol="7203.T",
    name="Toyota Motor Corporation",
    price=2845.0,
    previous_close=2800.0,
    change=45.0,
    change_percent=1.607,
    currency="JPY",
    exchange="Tokyo",
)

BITCOIN = CryptoMarketData(
    id="bitcoin",
    symbol="btc",
    name="Bitcoin",
    current_price=65000.0,
    price_change_percentage_24h=2.5,
    market_cap=1.2e12,
    total_volume=3.1e10,
)

NEWS = [
    NewsArticle(
        title="Toyota sales up",
        description="Record quarter",
        url="https://news.example/1",
        published_at="2025-01-01T00:00:00Z",
        source="Reuters",
    )
]


def _stock_quote(symbol):
    if symbol == "7203.T":
        return TOYOTA_QUOTE
    raise NotFoundError(f"Stock not found: {symbol}")


def _coin_id(query):
    if query.lower() in ("bitcoin", "btc"):
        return "bitcoin"
    raise NotFoundError(f"Cryptocurrency not found: {query}")


@pytest.fixture
def directory():
    catalog = StockCatalog.from_entries([
        CatalogEntry("7203", "トヨタ自動車", "Toyota Motor Corporation", "輸送用機器", "プライム"),
        CatalogEntry("6758", "ソニーグループ", "Sony Group Corporation", "電気機器", "プライム"),
    ])
    return StockDirectory(catalog=catalog, foreign=[ForeignListing("AAPL", "Apple Inc.")])


@pytest.fixture
def services(directory):
    coingecko = AsyncMock()
    coingecko.resolve_coin_id.side_effect = _coin_id
    coingecko.get_market_data.return_value = BITCOIN
    coingecko.get_historical_prices.return_value = daily_series(60000.0, step=100.0)
    coingecko.search.return_value = [{"id": "bitcoin", "name": "Bitcoin", "symbol": "btc"}]
    coingecko.get_top_coins.return_value = [BITCOIN]

    yahoo = AsyncMock()
    yahoo.get_quote.side_effect = _stock_quote
    yahoo.get_price_history.return_value = daily_series(2785.0)
    yahoo.get_company_profile.return_value = {"sector": "Consumer Cyclical", "description": "Automaker"}

    news = AsyncMock()
    news.get_asset_news.return_value = NEWS
    news.get_general_news.return_value = NEWS

    fx = AsyncMock()
    fx.get_rates.return_value = {"USD": 1.0, "JPY": 150.0, "EUR": 0.92, "GBP": 0.79}

    return DashboardServices(
        directory=directory,
        coingecko=coingecko,
        yahoo=yahoo,
        news=news,
        fx=fx,
        forecaster=ForecastGenerator(rng=random.Random(0)),
        cache=ExpiringCache(InMemoryStore()),
        rates={"USD": 1.0, "JPY": 150.0, "EUR": 0.92, "GBP": 0.79},
    )
