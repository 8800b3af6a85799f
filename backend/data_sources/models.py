"""
Normalized market data structures shared by the data sources.

All of them round-trip through plain dicts so they can sit in the
expiring cache as JSON.
"""

from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, List, Optional


@dataclass
class PricePoint:
    """One point of a price series (timestamp in epoch milliseconds)."""
    timestamp: int
    price: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    volume: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricePoint":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Quote:
    """Current price of a stock with the change against the previous close."""
    symbol: str
    name: str
    price: float
    previous_close: float
    change: float
    change_percent: float
    currency: str
    exchange: str
    timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quote":
        return cls(**data)


@dataclass
class CryptoMarketData:
    """CoinGecko market snapshot for one coin (prices in USD)."""
    id: str
    symbol: str
    name: str
    current_price: float
    price_change_percentage_24h: float
    market_cap: float
    total_volume: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CryptoMarketData":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class NewsArticle:
    """A news article related to an asset."""
    title: str
    description: str
    url: str
    published_at: str
    source: str
    url_to_image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NewsArticle":
        return cls(**data)


def sort_series(points: List[PricePoint]) -> List[PricePoint]:
    """
    Order a series oldest-first with strictly increasing timestamps.

    Points without a price are dropped; for duplicate timestamps the last
    one wins.
    """
    by_timestamp: Dict[int, PricePoint] = {}
    for point in points:
        if point.price is None:
            continue
        by_timestamp[point.timestamp] = point
    return [by_timestamp[ts] for ts in sorted(by_timestamp)]
