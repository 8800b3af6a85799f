"""
Forecast Generator (LLM path with a local fallback).
"""

from .models import Confidence, Factor, ForecastResult
from .parsing import extract_json_block, interpolate_monthly, normalize_factors, parse_prediction_response
from .prompts import build_prediction_prompt
from .generator import ForecastGenerator

__all__ = [
    "Confidence",
    "Factor",
    "ForecastResult",
    "extract_json_block",
    "interpolate_monthly",
    "normalize_factors",
    "parse_prediction_response",
    "build_prediction_prompt",
    "ForecastGenerator",
]
