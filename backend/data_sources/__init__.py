"""
Data Sources

Adapters for the upstream market data providers:
- CoinGecko (crypto prices and history, no API key)
- Yahoo Finance via yfinance (stock quotes and history, no API key)
- NewsAPI (asset news, optional key; placeholder news without one)
- exchangerate-api.com (USD-based FX rates, fixed fallback table)
"""

from .models import PricePoint, Quote, CryptoMarketData, NewsArticle
from .coingecko import CoinGeckoClient, CoinGeckoError
from .yahoo import YahooFinanceClient, YahooFinanceError, to_yahoo_symbol
from .news import NewsClient, NewsError
from .fx import ExchangeRateClient

__all__ = [
    "PricePoint",
    "Quote",
    "CryptoMarketData",
    "NewsArticle",
    "CoinGeckoClient",
    "CoinGeckoError",
    "YahooFinanceClient",
    "YahooFinanceError",
    "to_yahoo_symbol",
    "NewsClient",
    "NewsError",
    "ExchangeRateClient",
]
