"""LLM client: the primitive for every model interaction in a flow.

``chat_json()`` turns role-tagged messages into parsed JSON. A text
generation endpoint does not guarantee valid JSON, so three layers are
stacked:

1. the request asks for ``response_format="json_object"``;
2. the HTTP boundary strips fences and repairs what it can;
3. on a parse failure the conversation gets a corrective instruction and
   is retried after an exponential delay (1s, 2s, ...).

Retries change the prompt rather than resending the same request.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..config import FlowframeConfig, load_config
from ..constants import (
    BACKOFF_BASE_MS,
    CORRECTIVE_JSON_INSTRUCTION,
    DEFAULT_LLM_BASE_URL,
    DEFAULT_LLM_ENDPOINT,
    DEFAULT_LLM_TIMEOUT,
    DEFAULT_MODEL,
    MAX_JSON_RETRIES,
)
from ..utils.retry import compute_backoff
from .errors import LLMAbortedError, LLMError, LLMParseError
from .models import ChatMessage, LLMOptions, LLMResult, TokenUsage

logger = logging.getLogger(__name__)

R = TypeVar("R")

Sleep = Callable[[float], Awaitable[None]]


class LLMClient:
    """Async client for the ``POST {messages, model, ...}`` chat endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_LLM_BASE_URL,
        endpoint: str = DEFAULT_LLM_ENDPOINT,
        default_model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        max_retries: int = MAX_JSON_RETRIES,
        backoff_base_ms: int = BACKOFF_BASE_MS,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.url = base_url.rstrip("/") + "/" + endpoint.lstrip("/")
        self.default_model = default_model
        self.max_retries = max_retries
        self.backoff_base_ms = backoff_base_ms
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._sleep = sleep

    @classmethod
    def from_config(
        cls, config: Optional[FlowframeConfig] = None, **kwargs: Any
    ) -> "LLMClient":
        llm = (config or load_config()).llm
        return cls(
            base_url=llm.base_url,
            endpoint=llm.endpoint,
            default_model=llm.model,
            timeout=llm.timeout,
            max_retries=llm.max_retries,
            backoff_base_ms=llm.backoff_base_ms,
            **kwargs,
        )

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: Optional[LLMOptions] = None,
    ) -> LLMResult[str]:
        """Raw chat; returns the response text as both ``data`` and ``raw``.

        Raises:
            LLMError: On a non-2xx response (with its status code) or a
                transport failure (status code 0).
            LLMAbortedError: If ``options.signal`` is set.
        """
        options = options or LLMOptions()
        model = options.model or self.default_model
        payload: dict[str, Any] = {
            "messages": [message.model_dump() for message in messages],
            "model": model,
        }
        if options.temperature is not None:
            payload["temperature"] = options.temperature
        if options.max_tokens is not None:
            payload["maxTokens"] = options.max_tokens
        if options.response_format is not None:
            payload["responseFormat"] = options.response_format

        logger.debug(f"POST {self.url} model={model} messages={len(messages)}")
        try:
            response = await self._abortable(self._http.post(self.url, json=payload), options.signal)
        except httpx.HTTPError as exc:
            raise LLMError(f"LLM request failed: {exc}") from exc

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("error") if isinstance(body, dict) else None
            raise LLMError(
                message or f"LLM request failed ({response.status_code})",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMError(
                f"LLM endpoint returned a non-JSON envelope ({response.status_code})",
                response.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise LLMError(
                f"LLM endpoint returned a non-JSON envelope ({response.status_code})",
                response.status_code,
            )

        content = data.get("content")
        if content is None:
            content = ""
        usage = data.get("usage")
        return LLMResult[str](
            data=content,
            raw=content,
            model=data.get("model") or model,
            usage=TokenUsage.model_validate(usage) if usage else None,
        )

    async def chat_json(
        self,
        messages: Sequence[ChatMessage],
        options: Optional[LLMOptions] = None,
        *,
        output_type: Optional[Type[BaseModel]] = None,
        max_retries: Optional[int] = None,
    ) -> LLMResult[Any]:
        """Send a chat request and parse the response as JSON.

        When ``output_type`` is given the parsed object is validated into
        that model; a validation failure is retried like a parse failure.

        Raises:
            LLMParseError: After ``max_retries`` unparseable responses,
                carrying the last raw response.
            LLMError: Transport errors from :meth:`chat`, not retried.
        """
        options = options or LLMOptions()
        attempts = max_retries if max_retries is not None else self.max_retries
        request_options = options.model_copy(
            update={"response_format": options.response_format or "json_object"}
        )
        last_raw = ""

        for attempt in range(1, attempts + 1):
            conversation = list(messages)
            if attempt > 1:
                conversation.append(ChatMessage(role="user", content=CORRECTIVE_JSON_INSTRUCTION))

            result = await self.chat(conversation, request_options)
            last_raw = result.raw

            try:
                parsed: Any = json.loads(result.raw)
                if output_type is not None:
                    parsed = output_type.model_validate(parsed)
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.warning(
                    f"LLM response was not valid JSON (attempt {attempt}/{attempts}): {exc}"
                )
                if attempt < attempts:
                    delay = compute_backoff(attempt, self.backoff_base_ms)
                    await self._abortable(self._sleep(delay), options.signal)
                continue

            return LLMResult[Any](
                data=parsed, raw=result.raw, model=result.model, usage=result.usage
            )

        raise LLMParseError(
            f"Failed to parse LLM response as JSON after {attempts} attempts",
            last_raw,
        )

    # ------------------------------------------------------------------
    @staticmethod
    async def _abortable(awaitable: Awaitable[R], signal: Optional[asyncio.Event]) -> R:
        """Await ``awaitable`` unless ``signal`` is set first."""
        if signal is None:
            return await awaitable
        work = asyncio.ensure_future(awaitable)
        if signal.is_set():
            work.cancel()
            raise LLMAbortedError()
        aborted = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait({work, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work, aborted):
                if not task.done():
                    task.cancel()
        if work in done:
            return work.result()
        raise LLMAbortedError()
