"""Errors raised by the LLM client."""

from __future__ import annotations

from ..exceptions import FlowframeError


class LLMError(FlowframeError):
    """LLM request failed. ``status_code`` is 0 when no HTTP response arrived."""

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMParseError(LLMError):
    """The model never produced parseable JSON.

    Carries the last raw response for debugging.
    """

    def __init__(self, message: str, raw_response: str) -> None:
        super().__init__(message)
        self.raw_response = raw_response


class LLMAbortedError(LLMError):
    """The caller's abort signal was set while a request was in flight."""

    def __init__(self, message: str = "LLM request aborted") -> None:
        super().__init__(message)
