"""
Tests for the upstream data clients.

HTTP clients run against httpx.MockTransport; yfinance is replaced by a
mocked Ticker so nothing touches the network.
"""

import os
import sys
from unittest.mock import MagicMock, patch

import httpx
import pandas as pd
import pytest

# ── Ensure backend is importable ──
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from data_sources import (
    CoinGeckoClient,
    CoinGeckoError,
    ExchangeRateClient,
    NewsClient,
    YahooFinanceClient,
    YahooFinanceError,
    to_yahoo_symbol,
)
from data_sources.models import PricePoint, sort_series
from errors import NotFoundError
from storage import ExpiringCache, InMemoryStore


# ============================================================================
# Helpers
# ============================================================================

def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


BITCOIN_MARKET = {
    "id": "bitcoin",
    "symbol": "btc",
    "name": "Bitcoin",
    "current_price": 65000.0,
    "price_change_percentage_24h": 2.5,
    "market_cap": 1.2e12,
    "total_volume": 3.1e10,
}


def coingecko_handler(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        path = request.url.path
        if path.endswith("/coins/markets"):
            ids = request.url.params.get("ids")
            if ids is None:
                return httpx.Response(200, json=[BITCOIN_MARKET, {**BITCOIN_MARKET, "id": "ethereum", "name": "Ethereum"}])
            return httpx.Response(200, json=[BITCOIN_MARKET] if ids == "bitcoin" else [])
        if path.endswith("/coins/bitcoin/market_chart"):
            return httpx.Response(200, json={"prices": [[3000, 3.0], [1000, 1.0], [2000, 2.0], [2000, 2.5]]})
        if path.endswith("/search"):
            query = request.url.params.get("query")
            coins = [{"id": "bitcoin", "name": "Bitcoin", "symbol": "BTC"}] if query in ("btc", "bit") else []
            return httpx.Response(200, json={"coins": coins})
        return httpx.Response(404)
    return handler


# ============================================================================
# Models
# ============================================================================

class TestSortSeries:

    def test_orders_and_dedupes(self):
        points = [
            PricePoint(timestamp=3, price=3.0),
            PricePoint(timestamp=1, price=1.0),
            PricePoint(timestamp=3, price=3.5),
            PricePoint(timestamp=2, price=None),
        ]
        result = sort_series(points)
        assert [p.timestamp for p in result] == [1, 3]
        assert result[-1].price == 3.5


# ============================================================================
# CoinGecko
# ============================================================================

class TestCoinGeckoClient:

    @pytest.mark.asyncio
    async def test_market_data(self):
        calls = []
        async with CoinGeckoClient(http_client=mock_client(coingecko_handler(calls))) as client:
            market = await client.get_market_data("bitcoin")
        assert market.name == "Bitcoin"
        assert market.current_price == 65000.0

    @pytest.mark.asyncio
    async def test_market_data_not_found(self):
        async with CoinGeckoClient(http_client=mock_client(coingecko_handler([]))) as client:
            with pytest.raises(NotFoundError):
                await client.get_market_data("nope")

    @pytest.mark.asyncio
    async def test_history_is_sorted_and_deduped(self):
        async with CoinGeckoClient(http_client=mock_client(coingecko_handler([]))) as client:
            history = await client.get_historical_prices("bitcoin")
        assert [p.timestamp for p in history] == [1000, 2000, 3000]
        assert history[1].price == 2.5

    @pytest.mark.asyncio
    async def test_resolve_coin_id_via_search(self):
        async with CoinGeckoClient(http_client=mock_client(coingecko_handler([]))) as client:
            assert await client.resolve_coin_id("BTC") == "bitcoin"
            assert await client.resolve_coin_id("bitcoin") == "bitcoin"
            with pytest.raises(NotFoundError):
                await client.resolve_coin_id("zzz")

    @pytest.mark.asyncio
    async def test_top_coins(self):
        async with CoinGeckoClient(http_client=mock_client(coingecko_handler([]))) as client:
            coins = await client.get_top_coins(limit=2)
        assert [c.id for c in coins] == ["bitcoin", "ethereum"]

    @pytest.mark.asyncio
    async def test_http_error_is_wrapped(self):
        client = CoinGeckoClient(http_client=mock_client(lambda request: httpx.Response(500)))
        with pytest.raises(CoinGeckoError):
            await client.get_top_coins()
        await client.close()

    @pytest.mark.asyncio
    async def test_error_object_instead_of_list(self):
        handler = lambda request: httpx.Response(200, json={"status": {"error_code": 429}})
        async with CoinGeckoClient(http_client=mock_client(handler)) as client:
            with pytest.raises(CoinGeckoError):
                await client.get_market_data("bitcoin")
            with pytest.raises(CoinGeckoError):
                await client.get_top_coins()

    @pytest.mark.asyncio
    async def test_malformed_coin_entries(self):
        for body in (["bitcoin"], [{"id": "bitcoin", "current_price": "lots"}]):
            handler = lambda request, body=body: httpx.Response(200, json=body)
            async with CoinGeckoClient(http_client=mock_client(handler)) as client:
                with pytest.raises(CoinGeckoError):
                    await client.get_market_data("bitcoin")

    @pytest.mark.asyncio
    async def test_malformed_price_history(self):
        for prices in ([[1000]], [5, 6], [[1000, "abc"]], {"1000": 1.0}):
            handler = lambda request, prices=prices: httpx.Response(200, json={"prices": prices})
            async with CoinGeckoClient(http_client=mock_client(handler)) as client:
                with pytest.raises(CoinGeckoError):
                    await client.get_historical_prices("bitcoin")

    @pytest.mark.asyncio
    async def test_search_skips_malformed_coins(self):
        body = {"coins": ["bitcoin", {"name": "No id"}, {"id": "ethereum", "name": "Ethereum", "symbol": "ETH"}]}
        async with CoinGeckoClient(http_client=mock_client(lambda r: httpx.Response(200, json=body))) as client:
            results = await client.search("eth")
        assert results == [{"id": "ethereum", "name": "Ethereum", "symbol": "ETH"}]

    @pytest.mark.asyncio
    async def test_responses_are_cached(self):
        calls = []
        cache = ExpiringCache(InMemoryStore())
        async with CoinGeckoClient(cache=cache, http_client=mock_client(coingecko_handler(calls))) as client:
            await client.get_market_data("bitcoin")
            again = await client.get_market_data("bitcoin")
        assert len(calls) == 1
        assert again.name == "Bitcoin"
        assert cache.get("crypto:market:bitcoin")["id"] == "bitcoin"


# ============================================================================
# Yahoo Finance
# ============================================================================

class TestYahooFinanceClient:

    def test_to_yahoo_symbol(self):
        assert to_yahoo_symbol("7203") == "7203.T"
        assert to_yahoo_symbol("aapl") == "AAPL"
        assert to_yahoo_symbol("7203.T") == "7203.T"

    @pytest.mark.asyncio
    async def test_quote(self):
        ticker = MagicMock()
        ticker.info = {
            "regularMarketPrice": 2845.0,
            "previousClose": 2800.0,
            "currency": "JPY",
            "fullExchangeName": "Tokyo",
            "longName": "Toyota Motor Corporation",
            "regularMarketTime": 1_700_000_000,
        }
        client = YahooFinanceClient()
        with patch.object(client, "_get_ticker", return_value=ticker):
            quote = await client.get_quote("7203.T")
        await client.close()

        assert quote.price == 2845.0
        assert quote.change == pytest.approx(45.0)
        assert quote.change_percent == pytest.approx(45 / 28)
        assert quote.currency == "JPY"
        assert quote.timestamp == 1_700_000_000_000

    @pytest.mark.asyncio
    async def test_quote_without_price_is_not_found(self):
        ticker = MagicMock()
        ticker.info = {"trailingPegRatio": None}
        client = YahooFinanceClient()
        with patch.object(client, "_get_ticker", return_value=ticker):
            with pytest.raises(NotFoundError):
                await client.get_quote("ZZZZ")
        await client.close()

    @pytest.mark.asyncio
    async def test_quote_failure_is_upstream_error(self):
        client = YahooFinanceClient()
        with patch.object(client, "_get_ticker", side_effect=RuntimeError("boom")):
            with pytest.raises(YahooFinanceError):
                await client.get_quote("AAPL")
        await client.close()

    @pytest.mark.asyncio
    async def test_history_drops_missing_closes(self):
        index = pd.to_datetime(["2025-01-06", "2025-01-08", "2025-01-07"], utc=True)
        frame = pd.DataFrame(
            {
                "Open": [1.0, 3.0, 2.0],
                "High": [1.5, 3.5, 2.5],
                "Low": [0.5, 2.5, 1.5],
                "Close": [1.2, float("nan"), 2.2],
                "Volume": [100, 300, 200],
            },
            index=index,
        )
        ticker = MagicMock()
        ticker.history.return_value = frame
        client = YahooFinanceClient()
        with patch.object(client, "_get_ticker", return_value=ticker):
            history = await client.get_price_history("7203.T", range="bogus")
        await client.close()

        ticker.history.assert_called_once_with(period="1y", interval="1d")
        assert [p.close for p in history] == [1.2, 2.2]
        assert history[0].timestamp < history[1].timestamp
        assert history[1].volume == 200

    @pytest.mark.asyncio
    async def test_company_profile_is_cached(self):
        ticker = MagicMock()
        ticker.info = {
            "longName": "Sony Group Corporation",
            "sector": "Technology",
            "fullTimeEmployees": 113000,
            "country": "Japan",
            "marketCap": float("nan"),
        }
        cache = ExpiringCache(InMemoryStore())
        client = YahooFinanceClient(cache=cache)
        with patch.object(client, "_get_ticker", return_value=ticker) as get_ticker:
            profile = await client.get_company_profile("6758.T")
            await client.get_company_profile("6758.T")
        await client.close()

        assert get_ticker.call_count == 1
        assert profile["name"] == "Sony Group Corporation"
        assert profile["employees"] == 113000
        assert profile["market_cap"] is None

    @pytest.mark.asyncio
    async def test_profile_lookup_failure_is_empty(self):
        client = YahooFinanceClient()
        with patch.object(client, "_get_ticker", side_effect=RuntimeError("boom")):
            assert await client.get_company_profile("ZZZZ") == {}
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_history_is_not_found(self):
        ticker = MagicMock()
        ticker.history.return_value = pd.DataFrame()
        client = YahooFinanceClient()
        with patch.object(client, "_get_ticker", return_value=ticker):
            with pytest.raises(NotFoundError):
                await client.get_price_history("ZZZZ")
        await client.close()


# ============================================================================
# News
# ============================================================================

class TestNewsClient:

    @pytest.mark.asyncio
    async def test_without_key_returns_mock_articles(self, monkeypatch):
        monkeypatch.delenv("NEWS_API_KEY", raising=False)
        client = NewsClient(http_client=mock_client(lambda r: httpx.Response(500)), clock=lambda: 1_700_000_000.0)
        articles = await client.get_asset_news("Bitcoin")
        await client.close()

        assert len(articles) == 5
        assert articles[0].title == "Bitcoin Reaches New Milestone in Market Performance"
        assert articles[0].source == "Financial Times"
        assert articles[0].published_at == "2023-11-14T20:13:20Z"
        assert articles[0].published_at > articles[-1].published_at

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_mock_articles(self):
        client = NewsClient(api_key="k", http_client=mock_client(lambda r: httpx.Response(429)))
        articles = await client.get_asset_news("Toyota")
        await client.close()
        assert [a.source for a in articles] == ["Financial Times", "Bloomberg", "CoinDesk", "Reuters", "Wall Street Journal"]

    @pytest.mark.asyncio
    async def test_everything_query(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"articles": [
                {
                    "title": "Toyota sales up",
                    "description": "Record quarter",
                    "url": "https://news.example/1",
                    "publishedAt": "2025-01-01T00:00:00Z",
                    "source": {"id": None, "name": "Reuters"},
                    "urlToImage": None,
                },
                {"title": None},
            ]})

        cache = ExpiringCache(InMemoryStore())
        client = NewsClient(api_key="k", cache=cache, http_client=mock_client(handler))
        articles = await client.get_asset_news("Toyota", page_size=5)
        await client.get_asset_news("Toyota", page_size=5)
        await client.close()

        assert len(seen) == 1
        params = seen[0].url.params
        assert seen[0].url.path == "/v2/everything"
        assert params["q"] == "Toyota"
        assert params["language"] == "en"
        assert params["sortBy"] == "publishedAt"
        assert params["pageSize"] == "5"
        assert params["apiKey"] == "k"
        assert len(articles) == 1
        assert articles[0].source == "Reuters"

    @pytest.mark.asyncio
    async def test_general_news_uses_business_headlines(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"articles": []})

        client = NewsClient(api_key="k", http_client=mock_client(handler))
        assert await client.get_general_news() == []
        await client.close()
        assert seen[0].url.path == "/v2/top-headlines"
        assert seen[0].url.params["category"] == "business"


# ============================================================================
# Exchange rates
# ============================================================================

class TestExchangeRateClient:

    @pytest.mark.asyncio
    async def test_rates(self):
        def handler(request):
            assert request.url.path == "/v4/latest/USD"
            return httpx.Response(200, json={"base": "USD", "rates": {"USD": 1, "JPY": 151.2}})

        cache = ExpiringCache(InMemoryStore())
        async with ExchangeRateClient(cache=cache, http_client=mock_client(handler)) as client:
            rates = await client.get_rates()
        assert rates == {"USD": 1.0, "JPY": 151.2}
        assert cache.get("fx:rates:USD") == rates

    @pytest.mark.asyncio
    async def test_failure_uses_fallback_table(self):
        async with ExchangeRateClient(http_client=mock_client(lambda r: httpx.Response(503))) as client:
            rates = await client.get_rates()
        assert rates == {"USD": 1.0, "JPY": 150.0, "EUR": 0.92, "GBP": 0.79}

    @pytest.mark.asyncio
    async def test_response_without_rates_uses_fallback_table(self):
        async with ExchangeRateClient(http_client=mock_client(lambda r: httpx.Response(200, json={}))) as client:
            rates = await client.get_rates()
        assert rates["JPY"] == 150.0

    @pytest.mark.asyncio
    async def test_non_numeric_rates_are_skipped(self):
        payload = {"rates": {"USD": 1, "JPY": None, "EUR": "n/a", "GBP": "0.8", "XXX": True}}
        async with ExchangeRateClient(http_client=mock_client(lambda r: httpx.Response(200, json=payload))) as client:
            rates = await client.get_rates()
        assert rates == {"USD": 1.0, "GBP": 0.8}

    @pytest.mark.asyncio
    async def test_malformed_rates_use_fallback_table(self):
        for payload in ({"rates": [1, 2]}, {"rates": {"JPY": None}}, ["USD"]):
            handler = lambda r, body=payload: httpx.Response(200, json=body)
            async with ExchangeRateClient(http_client=mock_client(handler)) as client:
                rates = await client.get_rates()
            assert rates == {"USD": 1.0, "JPY": 150.0, "EUR": 0.92, "GBP": 0.79}
