"""
Runtime configuration for the forecast dashboard.

Values come from environment variables (a ``backend/.env`` file is loaded
by main.py before anything reads them). Every setting is optional: without
API keys the dashboard degrades to mock news and the local fallback
forecast.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional


# Minutes each kind of upstream payload stays in the expiring cache
CACHE_TTL_MINUTES: Dict[str, int] = {
    "quote": 5,
    "crypto_market": 5,
    "top_cryptos": 5,
    "history": 30,
    "profile": 30,
    "crypto_search": 30,
    "news": 15,
    "fx_rates": 60,
}


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Environment-backed settings."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 2048
    news_api_key: Optional[str] = None
    cache_path: Path = field(default_factory=lambda: Path(__file__).parent / "storage" / "cache.json")
    http_timeout: float = 10.0
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        cache_path = os.getenv("CACHE_PATH")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", "2048")),
            news_api_key=os.getenv("NEWS_API_KEY") or None,
            cache_path=Path(cache_path) if cache_path else Path(__file__).parent / "storage" / "cache.json",
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "10")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_env_bool("LOG_JSON"),
        )

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)
