"""Shared constants for flowframe."""

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_LLM_BASE_URL = "http://localhost:5000"
DEFAULT_LLM_ENDPOINT = "/api/llm/chat"
DEFAULT_LLM_TIMEOUT = 120.0

MAX_JSON_RETRIES = 3
BACKOFF_BASE_MS = 1000

CORRECTIVE_JSON_INSTRUCTION = (
    "Your previous response was not valid JSON. "
    "Please respond with ONLY a valid JSON object. No markdown fencing, "
    "no trailing commas, no unescaped newlines in strings. "
    "Ensure all string values have properly escaped special characters."
)

DEFAULT_HISTORY_LIMIT = 50
