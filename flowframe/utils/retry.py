from __future__ import annotations

import random

from ..constants import BACKOFF_BASE_MS


def compute_backoff(attempt: int, base_ms: float = BACKOFF_BASE_MS, jitter: float = 0.0) -> float:
    """Exponential backoff in seconds: ``base_ms * 2^(attempt-1)``, plus optional jitter."""
    delay = base_ms * (2 ** (attempt - 1)) / 1000
    return delay + random.uniform(0, jitter) if jitter else delay
