"""
Shared LLM Client for price forecasts.
Uses LangChain's ChatOpenAI so the forecast call is traced alongside the
LangGraph search workflow.

The client is optional: without OPENAI_API_KEY ``get_llm_client`` returns
None and forecasts use the statistical fallback.
"""

import os
from typing import Optional, Dict

from langchain_openai import ChatOpenAI

from config import Settings
from errors import UpstreamError
from log import get_logger


logger = get_logger(__name__)

# Cache of LLM clients by model name
_clients: Dict[str, "LLMClient"] = {}

SYSTEM_PROMPT = (
    "You are a professional financial analyst. "
    "Answer with a single JSON object and nothing else."
)


class LLMClient:
    """Async LLM client wrapper using LangChain."""

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None, max_tokens: int = 2048):
        """
        Initialize LLM client.

        Args:
            model: Model name (e.g., "gpt-4o", "gpt-4o-mini"). If None, uses
                   OPENAI_MODEL env var or defaults to "gpt-4o-mini".
            api_key: OpenAI key; ChatOpenAI reads OPENAI_API_KEY when omitted
            max_tokens: Completion budget (a 12-month forecast needs ~1-2k)
        """
        model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        kwargs = {"model": model, "max_tokens": max_tokens, "temperature": 0.7}
        if api_key:
            kwargs["api_key"] = api_key
        self._llm = ChatOpenAI(**kwargs)
        self.model_name = model

    async def complete(self, prompt: str, config: dict = None) -> str:
        """Send a prompt and return the raw text of the reply.

        Args:
            prompt: The forecast prompt
            config: Optional LangChain RunnableConfig for trace propagation

        Returns:
            Reply text (may be empty).

        Raises:
            UpstreamError: The provider call failed.
        """
        try:
            response = await self._llm.ainvoke(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                config=config,
            )
        except Exception as e:
            logger.warning("llm_call_failed", model=self.model_name, error=str(e))
            raise UpstreamError(f"LLM request failed: {e}") from e

        content = response.content or ""
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content


def get_llm_client(settings: Optional[Settings] = None) -> Optional[LLMClient]:
    """
    Get or create the LLM client for the configured model.

    Args:
        settings: Application settings. If None, read from the environment.

    Returns:
        LLMClient instance (cached per model), or None when no OpenAI key
        is configured.
    """
    settings = settings or Settings.from_env()
    if not settings.llm_enabled:
        return None

    model = settings.openai_model
    if model not in _clients:
        _clients[model] = LLMClient(
            model=model,
            api_key=settings.openai_api_key,
            max_tokens=settings.llm_max_tokens,
        )
    return _clients[model]
