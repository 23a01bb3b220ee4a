"""Best-effort cleanup of model text before JSON parsing.

The HTTP boundary normally applies this before the text reaches the
client; it is exposed here for local endpoints and test doubles.
"""

from __future__ import annotations

import re

_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def strip_code_fences(text: str) -> str:
    match = _FENCE.match(text)
    return match.group(1) if match else text


def extract_json_block(text: str) -> str:
    """Return the outermost ``{...}`` or ``[...]`` span, or ``text`` unchanged."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return text
    return text[start : end + 1]


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def clean_llm_response(text: str) -> str:
    """Strip markdown fences and surrounding prose, then drop trailing commas."""
    cleaned = strip_code_fences(text.strip())
    cleaned = extract_json_block(cleaned)
    return remove_trailing_commas(cleaned).strip()
