"""
Tolerant parsing of LLM forecast replies.

Models wrap the requested JSON in prose or code fences, so the reply is
scanned for the first balanced ``{...}`` object before decoding. Monthly
price targets are then expanded into a daily series anchored on the last
historical point.
"""

import json
import math
from typing import Any, Dict, List, Optional, Sequence

from errors import ParseError
from data_sources.models import PricePoint
from .models import Confidence, Factor, ForecastResult


DAY_MS = 24 * 60 * 60 * 1000
DAYS_PER_YEAR = 365

GENERIC_REASONING = (
    "The model did not provide detailed reasoning for this factor, "
    "but it is considered relevant to the current market trend."
)
MISSING_ANALYSIS = "The AI analysis could not be generated."


def extract_json_block(text: str) -> Optional[Dict[str, Any]]:
    """
    Decode the first balanced JSON object embedded in ``text``.

    Braces inside string literals (including escaped quotes) do not count
    towards the balance. Returns None when no object decodes.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        value = json.loads(text[start:i + 1])
                    except ValueError:
                        break
                    if isinstance(value, dict):
                        return value
                    break
        start = text.find("{", start + 1)
    return None


def month_offset_days(month: float) -> int:
    """Days from the last historical point to the end of forecast month ``month``."""
    return round(month * DAYS_PER_YEAR / 12)


def interpolate_monthly(monthly: Sequence[Any], last_point: PricePoint) -> List[PricePoint]:
    """
    Expand monthly ``{month, predictedPrice}`` targets into daily points.

    Each target is reached by equal daily steps from the previous anchor,
    the first anchor being ``last_point``. Entries with a missing or
    non-numeric month/price, or that would not move forward in time, are
    skipped.
    """
    points: List[PricePoint] = []
    prev_ts = last_point.timestamp
    prev_price = last_point.price

    for item in monthly:
        if not isinstance(item, dict):
            continue
        month = _number(item.get("month"))
        price = _number(item.get("predictedPrice"))
        if month is None or price is None:
            continue

        target_ts = last_point.timestamp + month_offset_days(month) * DAY_MS
        days = (target_ts - prev_ts) // DAY_MS
        if days <= 0:
            continue

        step = (price - prev_price) / days
        for d in range(1, days + 1):
            points.append(PricePoint(timestamp=prev_ts + d * DAY_MS, price=prev_price + step * d))

        prev_ts = prev_ts + days * DAY_MS
        prev_price = price

    return points


def normalize_factors(items: Any) -> List[Factor]:
    """Accept plain strings or ``{title, reasoning}`` objects; drop anything else."""
    if not isinstance(items, list):
        return []

    factors = []
    for item in items:
        if isinstance(item, str) and item.strip():
            factors.append(Factor(title=item.strip(), reasoning=GENERIC_REASONING))
        elif isinstance(item, dict) and item.get("title"):
            reasoning = item.get("reasoning") or GENERIC_REASONING
            factors.append(Factor(title=str(item["title"]), reasoning=str(reasoning)))
    return factors


def parse_prediction_response(text: str, history: Sequence[PricePoint]) -> ForecastResult:
    """
    Turn an LLM reply into a ForecastResult.

    Args:
        text: Raw completion text
        history: Historical series, oldest first (at least one point)

    Returns:
        ForecastResult with ``source="llm"``.

    Raises:
        ParseError: No JSON object in the reply, or no usable monthly targets.
    """
    parsed = extract_json_block(text)
    if parsed is None:
        raise ParseError("No JSON object found in LLM response")

    monthly = parsed.get("monthlyPredictions")
    if not isinstance(monthly, list):
        raise ParseError("LLM response has no monthlyPredictions list")

    predictions = interpolate_monthly(monthly, history[-1])
    if not predictions:
        raise ParseError("LLM response has no usable monthly predictions")

    analysis = parsed.get("analysis")
    return ForecastResult(
        predictions=predictions,
        analysis=analysis if isinstance(analysis, str) and analysis.strip() else MISSING_ANALYSIS,
        confidence=Confidence.parse(parsed.get("overallConfidence")),
        key_factors=normalize_factors(parsed.get("keyFactors")),
        risks=normalize_factors(parsed.get("risks")),
        source="llm",
    )


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None
