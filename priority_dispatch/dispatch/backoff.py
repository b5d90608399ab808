"""Bounded exponential backoff for dispatch retries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

BASE_BACKOFF_MS = 200
MAX_BACKOFF_MS = 30_000
MAX_EXPONENT = 10


@dataclass(frozen=True)
class BackoffScheduler:
    base_ms: int = BASE_BACKOFF_MS
    cap_ms: int = MAX_BACKOFF_MS
    max_exponent: int = MAX_EXPONENT

    def delay_ms(self, attempt_count: int) -> int:
        exponent = min(max(0, attempt_count), self.max_exponent)
        return min(self.base_ms * (1 << exponent), self.cap_ms)

    def delay_for(self, attempt_count: int) -> timedelta:
        """Delay before the next attempt, given how many attempts the transport has seen."""
        return timedelta(milliseconds=self.delay_ms(attempt_count))
