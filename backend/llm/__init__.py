"""
LLM Client for price forecasts.
"""

from .client import LLMClient, get_llm_client

__all__ = ["LLMClient", "get_llm_client"]
