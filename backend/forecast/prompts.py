"""
Prompt construction for the LLM forecast.
"""

from typing import Optional, Sequence

from data_sources.models import NewsArticle, PricePoint
from indicators import TechnicalIndicators


MAX_NEWS_ITEMS = 5
RECENT_DAYS = 30


def _fmt(value: Optional[float], prefix: str = "", suffix: str = "") -> str:
    if value is None:
        return "insufficient data"
    return f"{prefix}{value:.2f}{suffix}"


def build_prediction_prompt(
    asset_name: str,
    asset_type: str,
    history: Sequence[PricePoint],
    news: Sequence[NewsArticle],
    indicators: TechnicalIndicators,
) -> str:
    """Build the one-year forecast prompt (history must be non-empty)."""
    current_price = history[-1].price
    first_price = history[0].price
    price_change = (current_price - first_price) / first_price * 100 if first_price else 0.0

    recent = ", ".join(f"${p.price:.2f}" for p in history[-RECENT_DAYS:])
    news_context = "\n".join(
        f"- {article.title}: {article.description}" for article in list(news)[:MAX_NEWS_ITEMS]
    ) or "- No recent news available"
    kind = "cryptocurrency" if asset_type == "crypto" else "stock"

    return f"""You are a financial analyst. Using the information below, forecast the price of {asset_name} over the next 12 months.

[Asset]
- Name: {asset_name}
- Type: {kind}
- Current price: ${current_price:.2f}
- Change over the past year: {price_change:.2f}%

[Technical indicators]
- RSI (14 days): {_fmt(indicators.rsi)} (above 70: overbought / below 30: oversold)
- SMA (7 days): {_fmt(indicators.sma7, prefix="$")}
- SMA (30 days): {_fmt(indicators.sma30, prefix="$")}
- Volatility (30 days): {_fmt(indicators.volatility, suffix="%")}

[Price trend, last {RECENT_DAYS} days]
{recent}

[Latest news]
{news_context}

Reply in JSON with exactly this shape:

{{
  "monthlyPredictions": [
    {{"month": 1, "predictedPrice": <price>, "confidence": "high/medium/low"}},
    ... (12 months)
  ],
  "analysis": "Detailed analysis report (about 300 words)",
  "keyFactors": [
    {{"title": "Main growth driver", "reasoning": "Why this driver supports the price (about 80 words)"}}
  ],
  "risks": [
    {{"title": "Potential risk", "reasoning": "Impact of the risk and how to watch for it (about 80 words)"}}
  ],
  "overallConfidence": "high/medium/low"
}}

Notes:
- Keep the forecast within a realistic range
- Support the analysis with concrete evidence
- Consider both risks and opportunities
- State clearly that this is not investment advice"""
