"""
Market Forecast Dashboard - API backend

Serves the data behind a stock and crypto dashboard: fuzzy Japanese stock
search, price history, news, technical indicators and a one-year price
forecast.

Features:
- Stock search: kana-insensitive fuzzy matching over the domestic catalog
- Crypto search: CoinGecko ids, symbols and names
- Forecasts: LLM monthly targets, or a local random walk without a key
- Display currency: JPY or USD via USD-pivot conversion
"""

from typing import Any, Dict, List, Literal, Optional
from contextlib import asynccontextmanager

# Load environment variables from .env file
from dotenv import load_dotenv
from pathlib import Path

# Load .env from the backend directory
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Local imports
from config import Settings
from currency import convert, format_currency
from errors import (
    FETCH_FAILED_MESSAGE,
    NOT_FOUND_MESSAGE,
    DashboardError,
    NotFoundError,
    user_message,
)
from indicators import rsi_sentiment
from log import configure_logging, get_logger
from workflow import (
    DashboardServices,
    SearchSessions,
    SupersededError,
    build_search_workflow,
    create_services,
    initial_state,
)


settings = Settings.from_env()
configure_logging(settings.log_level, format_json=settings.log_json)
logger = get_logger(__name__)

SUGGESTION_LIMIT = 10
SUPERSEDED_MESSAGE = "A newer search replaced this one."


# ============================================================================
# Pydantic Models
# ============================================================================

class SearchRequest(BaseModel):
    """Request to load the dashboard for one asset."""
    query: str = Field(..., min_length=1, description="Name, code or ticker (e.g. 7203, トヨタ, bitcoin)")
    asset_type: Literal["stock", "crypto"] = Field(default="stock")
    currency: Literal["JPY", "USD"] = Field(default="JPY", description="Display currency")
    session_id: Optional[str] = Field(
        default=None,
        description="Client session; a newer search in the same session supersedes older ones",
    )


class PricePointModel(BaseModel):
    """Single point of a price series (epoch milliseconds)."""
    timestamp: int
    price: float


class NewsArticleModel(BaseModel):
    title: str
    description: str
    url: str
    published_at: str
    source: str
    url_to_image: Optional[str] = None


class FactorModel(BaseModel):
    title: str
    reasoning: str


class IndicatorsModel(BaseModel):
    rsi: Optional[float] = None
    sma7: Optional[float] = None
    sma30: Optional[float] = None
    volatility: Optional[float] = None
    sentiment: str = Field(default="neutral", description="overbought, oversold or neutral")


class ForecastReport(BaseModel):
    """Narrative part of the forecast."""
    analysis: str
    confidence: str
    key_factors: List[FactorModel]
    risks: List[FactorModel]
    source: str = Field(description="llm or fallback")


class AssetCard(BaseModel):
    """Headline facts about the asset, prices in the display currency."""
    symbol: str
    name: str
    asset_type: str
    source_currency: str
    current_price: float
    formatted_price: str
    change_percent: Optional[float] = None
    exchange: Optional[str] = None
    market_cap: Optional[float] = None
    sector: Optional[str] = None
    market: Optional[str] = None
    description: Optional[str] = None


class SearchResponse(BaseModel):
    """Everything the dashboard renders for one search."""
    query: str
    display_currency: str
    exchange_rate: float = Field(description="Multiplier from the source currency to the display currency")
    asset: AssetCard
    history: List[PricePointModel]
    predictions: List[PricePointModel]
    news: List[NewsArticleModel]
    indicators: IndicatorsModel
    report: ForecastReport


class SuggestionModel(BaseModel):
    symbol: str
    name: str
    sector: Optional[str] = None
    market: Optional[str] = None
    score: Optional[float] = None


class StockEntryModel(BaseModel):
    code: str
    symbol: str
    name_local: str
    name_foreign: str
    sector: str
    market: str


class ConversionResponse(BaseModel):
    amount: float
    from_currency: str
    to_currency: str
    result: float
    formatted: str


# ============================================================================
# Dependencies
# ============================================================================

search_sessions = SearchSessions()


def get_services(request: Request) -> DashboardServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


def get_workflow(request: Request):
    workflow = getattr(request.app.state, "workflow", None)
    if workflow is None:
        raise HTTPException(status_code=503, detail="Workflow not initialized")
    return workflow


def get_sessions() -> SearchSessions:
    return search_sessions


# ============================================================================
# FastAPI Application
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    services = create_services(settings)
    services.rates = await services.fx.get_rates()
    app.state.services = services
    app.state.workflow = build_search_workflow(services)
    logger.info(
        "startup",
        llm_enabled=settings.llm_enabled,
        news_api=bool(settings.news_api_key),
        cache_path=str(settings.cache_path),
    )
    yield
    await services.close()


app = FastAPI(
    title="Market Forecast Dashboard",
    description="Stock and crypto search, price history, news and one-year forecasts",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    """Map provider failures to friendly messages (404 not found, 502 otherwise)."""
    status_code = 404 if isinstance(exc, NotFoundError) else 502
    logger.warning("request_failed", path=request.url.path, status=status_code, error=str(exc))
    return JSONResponse(status_code=status_code, content={"detail": user_message(exc)})


@app.get("/health")
@app.get("/ping")  # Alias for keep-alive services
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "market-forecast-dashboard"}


def _display_rate(source: str, target: str, rates: Dict[str, float]) -> float:
    """Source -> display multiplier; 1.0 when either rate is unknown."""
    try:
        return convert(1.0, source, target, rates)
    except (KeyError, ZeroDivisionError):
        logger.warning("display_rate_unavailable", source=source, target=target)
        return 1.0


def _build_asset_card(state: Dict[str, Any], display_currency: str, rate: float) -> AssetCard:
    history = state["history"]
    current = history[-1].price
    card = {
        "symbol": state["symbol"],
        "name": state["asset_name"],
        "asset_type": state["asset_type"],
        "source_currency": state["source_currency"],
    }

    if state["asset_type"] == "crypto":
        market = state["market"] or {}
        current = market.get("current_price") or current
        card["change_percent"] = market.get("price_change_percentage_24h")
        card["market_cap"] = (market.get("market_cap") or 0) * rate or None
    else:
        quote = state["quote"] or {}
        profile = state["profile"] or {}
        current = quote.get("price") or current
        card["change_percent"] = quote.get("change_percent")
        card["exchange"] = quote.get("exchange")
        card["sector"] = profile.get("sector")
        card["description"] = profile.get("description")
        if profile.get("market_cap"):
            card["market_cap"] = profile["market_cap"] * rate

    card["current_price"] = current * rate
    card["formatted_price"] = format_currency(current * rate, display_currency)
    return AssetCard(**card)


@app.post("/api/search", response_model=SearchResponse)
async def search_asset(
    request: SearchRequest,
    services: DashboardServices = Depends(get_services),
    workflow=Depends(get_workflow),
    sessions: SearchSessions = Depends(get_sessions),
):
    """
    Load the dashboard for one asset.

    This endpoint:
    1. Resolves the query to a symbol or coin id
    2. Fetches the quote and one year of daily prices
    3. Fetches recent news
    4. Computes indicators and the one-year forecast

    Returns 404 when the asset is unknown, 502 when a provider fails and
    409 when a newer search in the same session has started meanwhile.
    """
    generation = sessions.begin(request.session_id) if request.session_id else None

    final_state = await workflow.ainvoke(initial_state(request.query, request.asset_type))

    if generation is not None:
        try:
            sessions.check(request.session_id, generation)
        except SupersededError as e:
            logger.info("search_superseded", session_id=e.session_id, generation=e.generation)
            raise HTTPException(status_code=409, detail=SUPERSEDED_MESSAGE)

    if final_state.get("error"):
        if final_state["error_kind"] == "not_found":
            raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
        raise HTTPException(status_code=502, detail=FETCH_FAILED_MESSAGE)

    rate = _display_rate(final_state["source_currency"], request.currency, services.rates)
    forecast = final_state["forecast"]
    indicators = final_state["indicators"] or {}

    return SearchResponse(
        query=final_state["query"],
        display_currency=request.currency,
        exchange_rate=rate,
        asset=_build_asset_card(final_state, request.currency, rate),
        history=[PricePointModel(timestamp=p.timestamp, price=p.price * rate) for p in final_state["history"]],
        predictions=[PricePointModel(timestamp=p.timestamp, price=p.price * rate) for p in forecast.predictions],
        news=[NewsArticleModel(**a.to_dict()) for a in final_state["news"]],
        indicators=IndicatorsModel(**indicators, sentiment=rsi_sentiment(indicators.get("rsi"))),
        report=ForecastReport(
            analysis=forecast.analysis,
            confidence=forecast.confidence.value,
            key_factors=[FactorModel(**f.to_dict()) for f in forecast.key_factors],
            risks=[FactorModel(**f.to_dict()) for f in forecast.risks],
            source=forecast.source,
        ),
    )


@app.get("/api/suggestions", response_model=List[SuggestionModel])
async def suggestions(
    q: str = Query(..., description="Partial name, code or ticker"),
    asset_type: Literal["stock", "crypto"] = "stock",
    services: DashboardServices = Depends(get_services),
):
    """Search-as-you-type suggestions (at most 10)."""
    if not q.strip():
        return []

    if asset_type == "crypto":
        coins = await services.coingecko.search(q.strip())
        return [
            SuggestionModel(symbol=coin["id"], name=f"{coin['name']} ({coin['symbol'].upper()})")
            for coin in coins[:SUGGESTION_LIMIT]
        ]

    return [
        SuggestionModel(
            symbol=s.symbol,
            name=s.name,
            sector=s.sector,
            market=s.market,
            score=s.score,
        )
        for s in services.directory.search_stocks(q)[:SUGGESTION_LIMIT]
    ]


@app.get("/api/stocks/{code}", response_model=StockEntryModel)
async def get_stock(code: str, services: DashboardServices = Depends(get_services)):
    """Catalog entry for a domestic stock code (with or without the .T suffix)."""
    entry = services.directory.describe(code)
    if entry is None:
        raise NotFoundError(f"Stock not in catalog: {code}")
    return StockEntryModel(
        code=entry.code,
        symbol=entry.symbol,
        name_local=entry.name_local,
        name_foreign=entry.name_foreign,
        sector=entry.sector,
        market=entry.market,
    )


@app.get("/api/cryptos/top")
async def top_cryptos(
    limit: int = Query(default=10, ge=1, le=100),
    services: DashboardServices = Depends(get_services),
):
    """Top coins by market cap (USD)."""
    coins = await services.coingecko.get_top_coins(limit=limit)
    return {"coins": [c.to_dict() for c in coins]}


@app.get("/api/news/general", response_model=List[NewsArticleModel])
async def general_news(
    page_size: int = Query(default=10, ge=1, le=100),
    services: DashboardServices = Depends(get_services),
):
    """Top business headlines (placeholder articles when NewsAPI is unavailable)."""
    articles = await services.news.get_general_news(page_size=page_size)
    return [NewsArticleModel(**a.to_dict()) for a in articles]


@app.get("/api/exchange-rates")
async def exchange_rates(services: DashboardServices = Depends(get_services)):
    """Current USD-based rates (refreshes the rates used for display)."""
    services.rates = await services.fx.get_rates()
    return {"base": "USD", "rates": services.rates}


@app.get("/api/convert", response_model=ConversionResponse)
async def convert_amount(
    amount: float,
    from_currency: str = Query(..., min_length=3, max_length=3),
    to_currency: str = Query(..., min_length=3, max_length=3),
    services: DashboardServices = Depends(get_services),
):
    """Convert an amount between currencies through USD."""
    source = from_currency.upper()
    target = to_currency.upper()
    try:
        result = convert(amount, source, target, services.rates)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Unsupported currency: {e.args[0]}")
    return ConversionResponse(
        amount=amount,
        from_currency=source,
        to_currency=target,
        result=result,
        formatted=format_currency(result, target),
    )


@app.delete("/api/cache")
async def clear_cache(
    prefix: str = Query(default="", description="Only keys starting with this prefix"),
    services: DashboardServices = Depends(get_services),
):
    """Drop cached provider responses."""
    cleared = services.cache.clear(prefix) if services.cache is not None else 0
    logger.info("cache_cleared", prefix=prefix, count=cleared)
    return {"cleared": cleared}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
