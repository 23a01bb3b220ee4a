"""Message and result models for the LLM client."""

from __future__ import annotations

import asyncio
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")

Role = Literal["system", "user", "assistant"]
ResponseFormat = Literal["json_object", "text"]


class ChatMessage(BaseModel):
    """A single role-tagged message in a conversation."""

    role: Role
    content: str


class TokenUsage(BaseModel):
    """Token counters reported by the LLM endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResult(BaseModel, Generic[T]):
    """Parsed response together with the raw text it came from."""

    data: T
    raw: str
    model: str
    usage: Optional[TokenUsage] = None


class LLMOptions(BaseModel):
    """Per-request options.

    ``signal`` is an :class:`asyncio.Event`; setting it aborts the request
    and any pending retry delay.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    response_format: Optional[ResponseFormat] = None
    signal: Optional[asyncio.Event] = None


def json_prompt(system_prompt: str, user_message: str) -> List[ChatMessage]:
    """Build the common system-prompt plus user-question message pair."""
    return [
        ChatMessage(role="system", content=system_prompt),
        ChatMessage(role="user", content=user_message),
    ]
