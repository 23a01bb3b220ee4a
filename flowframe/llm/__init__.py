"""LLM client for structured JSON output."""

from __future__ import annotations

from typing import Optional

from ..config import FlowframeConfig
from .cleanup import clean_llm_response
from .client import LLMClient
from .errors import LLMAbortedError, LLMError, LLMParseError
from .models import ChatMessage, LLMOptions, LLMResult, TokenUsage, json_prompt


def get_llm_client(config: Optional[FlowframeConfig] = None) -> LLMClient:
    """Factory function to get an LLM client for the configured endpoint."""
    return LLMClient.from_config(config)


__all__ = [
    "ChatMessage",
    "LLMAbortedError",
    "LLMClient",
    "LLMError",
    "LLMOptions",
    "LLMParseError",
    "LLMResult",
    "TokenUsage",
    "clean_llm_response",
    "get_llm_client",
    "json_prompt",
]
