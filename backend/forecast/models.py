"""
Forecast result types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from data_sources.models import PricePoint


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, value: Any) -> "Confidence":
        """Read a confidence label, defaulting to MEDIUM for anything unknown."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.MEDIUM


@dataclass
class Factor:
    """A growth driver or risk with the reasoning behind it."""
    title: str
    reasoning: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "reasoning": self.reasoning}


@dataclass
class ForecastResult:
    """One-year price forecast for an asset."""
    predictions: List[PricePoint]
    analysis: str
    confidence: Confidence = Confidence.MEDIUM
    key_factors: List[Factor] = field(default_factory=list)
    risks: List[Factor] = field(default_factory=list)
    source: str = "fallback"  # "llm" or "fallback"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predictions": [p.to_dict() for p in self.predictions],
            "analysis": self.analysis,
            "confidence": self.confidence.value,
            "key_factors": [f.to_dict() for f in self.key_factors],
            "risks": [f.to_dict() for f in self.risks],
            "source": self.source,
        }
