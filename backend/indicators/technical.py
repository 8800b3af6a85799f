"""
Technical indicators over an oldest-first price series.

Each function returns None (not an exception) when the series is too
short for the requested lookback.
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Sequence


OVERBOUGHT_RSI = 70
OVERSOLD_RSI = 30


@dataclass
class TechnicalIndicators:
    """Indicator snapshot fed to the forecast generator."""
    rsi: Optional[float]
    sma7: Optional[float]
    sma30: Optional[float]
    volatility: Optional[float]

    def to_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)


def calculate_sma(prices: Sequence[float], period: int) -> Optional[float]:
    """Arithmetic mean of the last ``period`` prices."""
    if period <= 0 or len(prices) < period:
        return None
    window = prices[-period:]
    return sum(window) / period


def calculate_rsi(prices: Sequence[float], period: int = 14) -> Optional[float]:
    """
    Relative Strength Index over the last ``period + 1`` prices.

    Uses simple averages of gains and losses (no Wilder smoothing).
    Returns 100 when there are no losses in the window.
    """
    if period <= 0 or len(prices) < period + 1:
        return None

    window = prices[-(period + 1):]
    gains = 0.0
    losses = 0.0
    for previous, current in zip(window, window[1:]):
        difference = current - previous
        if difference >= 0:
            gains += difference
        else:
            losses += abs(difference)

    avg_gain = gains / period
    avg_loss = losses / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def calculate_volatility(prices: Sequence[float], period: int = 30) -> Optional[float]:
    """
    Coefficient of variation of the last ``period`` prices, in percent.

    Population standard deviation (divisor ``period``) over the mean.
    """
    if period <= 0 or len(prices) < period:
        return None

    window = prices[-period:]
    mean = sum(window) / period
    if mean == 0:
        return None

    variance = sum((p - mean) ** 2 for p in window) / period
    return (math.sqrt(variance) / mean) * 100


def compute_indicators(prices: Sequence[float]) -> TechnicalIndicators:
    """RSI(14), SMA(7), SMA(30) and 30-day volatility in one pass."""
    return TechnicalIndicators(
        rsi=calculate_rsi(prices),
        sma7=calculate_sma(prices, 7),
        sma30=calculate_sma(prices, 30),
        volatility=calculate_volatility(prices),
    )


def rsi_sentiment(rsi: Optional[float]) -> str:
    """Bucket an RSI reading: overbought (>70), oversold (<30) or neutral."""
    if rsi is None:
        return "neutral"
    if rsi > OVERBOUGHT_RSI:
        return "overbought"
    if rsi < OVERSOLD_RSI:
        return "oversold"
    return "neutral"
