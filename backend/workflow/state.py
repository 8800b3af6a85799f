"""
State passed through the search workflow.
"""

from typing import Any, Dict, List, Optional

from typing_extensions import TypedDict


class SearchState(TypedDict):
    """State passed through the LangGraph search workflow."""
    query: str
    asset_type: str  # "stock" or "crypto"

    # Resolution
    symbol: Optional[str]
    asset_name: Optional[str]
    source_currency: Optional[str]
    news_query: Optional[str]

    # Market data
    quote: Optional[Dict[str, Any]]
    market: Optional[Dict[str, Any]]
    profile: Optional[Dict[str, Any]]
    history: List[Any]

    # News and forecast
    news: List[Any]
    indicators: Optional[Dict[str, Any]]
    forecast: Optional[Any]

    # Error tracking
    error: Optional[str]
    error_kind: Optional[str]  # "not_found" or "upstream"


def initial_state(query: str, asset_type: str) -> SearchState:
    return {
        "query": query.strip(),
        "asset_type": asset_type,
        "symbol": None,
        "asset_name": None,
        "source_currency": None,
        "news_query": None,
        "quote": None,
        "market": None,
        "profile": None,
        "history": [],
        "news": [],
        "indicators": None,
        "forecast": None,
        "error": None,
        "error_kind": None,
    }
