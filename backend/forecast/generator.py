"""
Forecast Generator

Produces a one-year daily price forecast for an asset. Two paths:
- LLM path: prompt the configured model and parse its monthly targets
- Fallback path: damped random walk from the last 30 days' growth rate,
  with a template analysis built from the technical indicators

Any failure on the LLM path (provider error, malformed reply) drops to
the fallback, so callers always get a result for a non-empty history.
"""

import math
import random
from typing import Any, List, Optional, Sequence

from data_sources.models import NewsArticle, PricePoint
from indicators import TechnicalIndicators, compute_indicators, rsi_sentiment
from log import get_logger
from .models import Confidence, Factor, ForecastResult
from .parsing import DAY_MS, DAYS_PER_YEAR, parse_prediction_response
from .prompts import build_prediction_prompt


logger = get_logger(__name__)

DISCLAIMER = (
    "This forecast is based on historical data and technical analysis and is "
    "not investment advice. Markets can move sharply for reasons no model "
    "anticipates; invest at your own risk."
)

STEADY_TREND = Factor(
    title="Steady trend over the past 30 days",
    reasoning=(
        "The recent price path has moved in a consistent direction without "
        "outsized swings, suggesting persistent demand from larger holders."
    ),
)
MARKET_SENTIMENT = Factor(
    title="Positive overall market sentiment",
    reasoning=(
        "Improving economic indicators and inflows into related sectors point "
        "to a recovering investor mood, which tends to lift the wider market."
    ),
)
INSTITUTIONAL_DEMAND = Factor(
    title="Continued institutional participation",
    reasoning=(
        "Fund and ETF inflows dampen short-term swings and form the base for a "
        "longer-term uptrend."
    ),
)
REGULATION_RISK = Factor(
    title="Changes in the regulatory environment",
    reasoning=(
        "Tighter rules on financial products or changes to taxation in major "
        "markets could cool sentiment quickly."
    ),
)
MACRO_RISK = Factor(
    title="Macroeconomic uncertainty",
    reasoning=(
        "Sticky inflation or a turn towards tighter monetary policy is a "
        "headwind for risk assets; recession fears push money to safety."
    ),
)
CORRECTION_RISK = Factor(
    title="Possibility of a market-wide correction",
    reasoning=(
        "After sharp rallies, profit-taking commonly produces pullbacks of "
        "10-20% before the longer trend resumes."
    ),
)
COMPETITION_RISK = Factor(
    title="Capital rotating to competing assets",
    reasoning=(
        "Newer projects or competitors with better yields or technology can "
        "draw capital away; watch shifts in market share."
    ),
)


class ForecastGenerator:
    """
    One-year price forecaster.

    Usage:
        generator = ForecastGenerator(llm_client=get_llm_client())
        result = await generator.generate("Bitcoin", "crypto", history, news)
    """

    FORECAST_DAYS = DAYS_PER_YEAR
    DAMPING = 0.995
    NOISE = 0.015  # uniform noise span, +/- 0.75% per day
    TREND_WINDOW = 30

    def __init__(self, llm_client: Optional[Any] = None, rng: Optional[random.Random] = None):
        """
        Initialize the generator.

        Args:
            llm_client: Object with ``async complete(prompt) -> str``; None
                        means every forecast uses the fallback
            rng: Random source for the fallback walk (seed it in tests)
        """
        self.llm_client = llm_client
        self.rng = rng or random.Random()

    async def generate(
        self,
        asset_name: str,
        asset_type: str,
        history: Sequence[PricePoint],
        news: Sequence[NewsArticle] = (),
    ) -> ForecastResult:
        """
        Forecast the next year of daily prices.

        Args:
            asset_name: Display name used in the prompt and analysis
            asset_type: "crypto" or "stock"
            history: Historical series, oldest first
            news: Recent articles (the first five go into the prompt)

        Returns:
            ForecastResult (``source`` tells which path produced it).

        Raises:
            ValueError: ``history`` is empty.
        """
        if not history:
            raise ValueError("Cannot forecast without historical prices")

        indicators = compute_indicators([p.price for p in history])

        if self.llm_client is None:
            logger.info("forecast_fallback", asset=asset_name, reason="llm_not_configured")
            return self.generate_fallback(asset_name, history, indicators)

        prompt = build_prediction_prompt(asset_name, asset_type, history, news, indicators)
        try:
            reply = await self.llm_client.complete(prompt)
            result = parse_prediction_response(reply, history)
        except Exception as e:
            logger.warning(
                "forecast_fallback",
                asset=asset_name,
                reason=type(e).__name__,
                error=str(e),
            )
            return self.generate_fallback(asset_name, history, indicators)

        logger.info("forecast_generated", asset=asset_name, source="llm", points=len(result.predictions))
        return result

    def generate_fallback(
        self,
        asset_name: str,
        history: Sequence[PricePoint],
        indicators: Optional[TechnicalIndicators] = None,
    ) -> ForecastResult:
        """
        Damped random-walk forecast: 365 daily points after the last timestamp.

        Raises:
            ValueError: ``history`` is empty.
        """
        if not history:
            raise ValueError("Cannot forecast without historical prices")
        if indicators is None:
            indicators = compute_indicators([p.price for p in history])

        last = history[-1]
        growth_rate = self._average_daily_growth(history)

        predictions: List[PricePoint] = []
        price = last.price
        rate = growth_rate
        for day in range(1, self.FORECAST_DAYS + 1):
            rate *= self.DAMPING
            noise = (self.rng.random() - 0.5) * self.NOISE
            next_price = price * (1 + rate) * (1 + noise)
            # Explosive histories can overflow; hold the last finite price.
            if math.isfinite(next_price):
                price = next_price
            predictions.append(PricePoint(timestamp=last.timestamp + day * DAY_MS, price=price))

        sentiment = rsi_sentiment(indicators.rsi)
        return ForecastResult(
            predictions=predictions,
            analysis=self._fallback_analysis(asset_name, growth_rate, indicators, sentiment),
            confidence=Confidence.MEDIUM,
            key_factors=self._fallback_key_factors(indicators, sentiment),
            risks=self._fallback_risks(indicators, sentiment),
            source="fallback",
        )

    def _average_daily_growth(self, history: Sequence[PricePoint]) -> float:
        start = history[-self.TREND_WINDOW:][0].price
        if start <= 0:
            return 0.0
        return (history[-1].price - start) / start / self.TREND_WINDOW

    def _annual_change_text(self, growth_rate: float) -> str:
        """Compound ``growth_rate`` over a year; too large a figure is described in words."""
        try:
            annual = math.expm1(self.FORECAST_DAYS * math.log1p(growth_rate)) * 100
        except (OverflowError, ValueError):
            annual = math.inf
        if not math.isfinite(annual):
            return "too large to express as a percentage"
        return f"about {annual:.2f}%"

    def _fallback_analysis(
        self,
        asset_name: str,
        growth_rate: float,
        indicators: TechnicalIndicators,
        sentiment: str,
    ) -> str:
        annual_text = self._annual_change_text(growth_rate)

        if indicators.rsi is None:
            rsi_text = "RSI (14 days) is unavailable because the history is too short."
        else:
            rsi_text = f"RSI (14 days) is {indicators.rsi:.2f}, which reads as {sentiment}."

        if indicators.sma7 is not None and indicators.sma30 is not None:
            direction = "above" if indicators.sma7 >= indicators.sma30 else "below"
            sma_text = (
                f"The 7-day SMA ({indicators.sma7:.2f}) sits {direction} the "
                f"30-day SMA ({indicators.sma30:.2f})."
            )
        else:
            sma_text = "Moving averages need at least 30 days of prices."

        if indicators.volatility is None:
            volatility_text = "Volatility could not be measured."
        else:
            volatility_text = f"30-day volatility is {indicators.volatility:.2f}%."

        return (
            f"One-year price outlook for {asset_name}\n\n"
            f"Trend: over the last 30 days the average growth rate was "
            f"{growth_rate * 100:.2f}% per day. If that pace held, the annual "
            f"change would be {annual_text}; the projection damps it "
            f"gradually so long-run growth flattens out.\n\n"
            f"Technicals: {rsi_text} {sma_text} {volatility_text}\n\n"
            f"Expect short-term swings around the projected path.\n\n"
            f"{DISCLAIMER}"
        )

    def _fallback_key_factors(self, indicators: TechnicalIndicators, sentiment: str) -> List[Factor]:
        factors = [STEADY_TREND]
        if sentiment == "oversold":
            factors.append(Factor(
                title="Oversold conditions may invite a rebound",
                reasoning=(
                    f"RSI at {indicators.rsi:.2f} is below 30. Selling pressure "
                    "looks stretched and buyers often step in at these levels."
                ),
            ))
        elif sentiment == "neutral" and indicators.rsi is not None:
            factors.append(Factor(
                title="Room to run before overbought territory",
                reasoning=(
                    f"RSI at {indicators.rsi:.2f} is neither overbought nor "
                    "oversold, leaving headroom for the trend to continue."
                ),
            ))
        if (
            indicators.sma7 is not None
            and indicators.sma30 is not None
            and indicators.sma7 > indicators.sma30
        ):
            factors.append(Factor(
                title="Short-term average above the long-term average",
                reasoning=(
                    f"The 7-day SMA ({indicators.sma7:.2f}) is above the 30-day "
                    f"SMA ({indicators.sma30:.2f}), a common bullish signal."
                ),
            ))
        factors.extend([MARKET_SENTIMENT, INSTITUTIONAL_DEMAND])
        return factors

    def _fallback_risks(self, indicators: TechnicalIndicators, sentiment: str) -> List[Factor]:
        risks = []
        if sentiment == "overbought":
            risks.append(Factor(
                title="Overbought conditions",
                reasoning=(
                    f"RSI at {indicators.rsi:.2f} is above 70. Rallies from these "
                    "levels are often followed by profit-taking."
                ),
            ))
        if indicators.volatility is not None and indicators.volatility > 5:
            risks.append(Factor(
                title="Elevated volatility",
                reasoning=(
                    f"30-day volatility of {indicators.volatility:.2f}% means "
                    "prices can move well away from the projected path."
                ),
            ))
        risks.extend([REGULATION_RISK, MACRO_RISK, CORRECTION_RISK, COMPETITION_RISK])
        return risks
