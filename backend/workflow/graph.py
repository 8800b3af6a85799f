"""
Search workflow

One search runs four LangGraph nodes in sequence:
1. resolve      - free text -> stock symbol or CoinGecko id
2. market_data  - quote / market snapshot and one year of daily prices
3. news         - recent articles about the asset (never fails)
4. forecast     - indicators and the one-year forecast (never fails)

Once a node records an error, the remaining nodes pass the state through
untouched.
"""

from langgraph.graph import StateGraph, END

from errors import DashboardError, NotFoundError
from indicators import compute_indicators
from log import get_logger
from .services import DashboardServices
from .state import SearchState


logger = get_logger(__name__)

HISTORY_DAYS = 365


def _fail(state: SearchState, exc: Exception) -> SearchState:
    state["error"] = str(exc)
    state["error_kind"] = "not_found" if isinstance(exc, NotFoundError) else "upstream"
    logger.warning(
        "search_failed",
        query=state["query"],
        asset_type=state["asset_type"],
        kind=state["error_kind"],
        error=str(exc),
    )
    return state


def build_search_workflow(services: DashboardServices):
    """
    Build the LangGraph workflow for a dashboard search.

    Flow:
    1. Resolve the query
    2. Fetch market data
    3. Fetch news
    4. Forecast
    """

    async def resolve_node(state: SearchState) -> SearchState:
        """Node: turn the query into a symbol (stocks) or coin id (crypto)."""
        if state.get("error"):
            return state

        try:
            if state["asset_type"] == "crypto":
                state["symbol"] = await services.coingecko.resolve_coin_id(state["query"])
            else:
                state["symbol"] = services.directory.resolve_symbol(state["query"])
        except DashboardError as e:
            return _fail(state, e)

        logger.info("search_resolved", query=state["query"], symbol=state["symbol"])
        return state

    async def market_data_node(state: SearchState) -> SearchState:
        """Node: fetch the price snapshot and one year of daily history."""
        if state.get("error"):
            return state

        symbol = state["symbol"]
        try:
            if state["asset_type"] == "crypto":
                market = await services.coingecko.get_market_data(symbol)
                history = await services.coingecko.get_historical_prices(symbol, days=HISTORY_DAYS)
                state["market"] = market.to_dict()
                state["asset_name"] = market.name or symbol
                state["news_query"] = market.name or symbol
                state["source_currency"] = "USD"
            else:
                quote = await services.yahoo.get_quote(symbol)
                history = await services.yahoo.get_price_history(symbol, range="1y", interval="1d")
                state["quote"] = quote.to_dict()
                entry = services.directory.describe(symbol)
                state["asset_name"] = entry.name_local if entry else (quote.name or symbol)
                state["news_query"] = entry.name_foreign if entry else (quote.name or symbol)
                state["source_currency"] = quote.currency or "USD"
                state["profile"] = await services.yahoo.get_company_profile(symbol) or None
        except DashboardError as e:
            return _fail(state, e)

        state["history"] = history
        return state

    async def news_node(state: SearchState) -> SearchState:
        """Node: recent news about the asset (placeholder articles on failure)."""
        if state.get("error"):
            return state

        state["news"] = await services.news.get_asset_news(state["news_query"] or state["asset_name"])
        return state

    async def forecast_node(state: SearchState) -> SearchState:
        """Node: technical indicators and the one-year forecast."""
        if state.get("error"):
            return state

        history = state["history"]
        state["indicators"] = compute_indicators([p.price for p in history]).to_dict()
        state["forecast"] = await services.forecaster.generate(
            state["asset_name"],
            state["asset_type"],
            history,
            state["news"],
        )
        return state

    workflow = StateGraph(SearchState)

    # Add nodes
    workflow.add_node("resolve", resolve_node)
    workflow.add_node("market_data", market_data_node)
    workflow.add_node("news", news_node)
    workflow.add_node("forecast", forecast_node)

    # Define edges
    workflow.set_entry_point("resolve")
    workflow.add_edge("resolve", "market_data")
    workflow.add_edge("market_data", "news")
    workflow.add_edge("news", "forecast")
    workflow.add_edge("forecast", END)

    return workflow.compile()
