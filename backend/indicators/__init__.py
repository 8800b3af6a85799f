"""
Technical indicator library (SMA, RSI, volatility).
"""

from .technical import (
    TechnicalIndicators,
    calculate_sma,
    calculate_rsi,
    calculate_volatility,
    compute_indicators,
    rsi_sentiment,
)

__all__ = [
    "TechnicalIndicators",
    "calculate_sma",
    "calculate_rsi",
    "calculate_volatility",
    "compute_indicators",
    "rsi_sentiment",
]
