"""LLM scoring client with rate-limit-aware retry and heuristic fallback."""

from __future__ import annotations

import asyncio
import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from structlog import get_logger

from priority_dispatch.schemas import NotificationEvent, ScoringResult
from priority_dispatch.scoring.heuristic import fallback_score
from priority_dispatch.scoring.services import ScoringService, is_rate_limit_error

logger = get_logger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY_S = 10.0

DEFAULT_SCORE = 0.5
DEFAULT_PRIORITY = 5

_CODE_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_CODE_FENCE_CLOSE = re.compile(r"\s*```$")


def build_scoring_prompt(event: NotificationEvent) -> str:
    channels = ", ".join(event.user.channels) or "none"
    return f"""Notification event:
- eventId: {event.event_id}
- source: {event.source}
- userId: {event.user.id}
- segment: {event.user.segment or "unknown"}
- channels: {channels}

Content:
Title: {event.content.title}
Body: {event.content.body}

Rules:
- Higher score/priority for time-sensitive, critical, or error/incident messages.
- Lower priority for marketing or non-urgent updates.
- If message can wait (e.g. marketing), you MAY set sendAfter to a future time (e.g. in 1-3 hours). Otherwise use null.
- score is a number between 0 and 1; priority is an integer from 1 (most urgent) to 10 (least urgent).

Respond with strict JSON only, e.g.:
{{"score":0.92,"priority":1,"sendAfter":null}}
"""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _parse_send_after(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_scoring_response(text: str) -> ScoringResult:
    """Parse a scoring response, substituting safe defaults for bad fields.

    Raises:
        ValueError: If the text is not JSON at all.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _CODE_FENCE_CLOSE.sub("", _CODE_FENCE_OPEN.sub("", cleaned))

    parsed = json.loads(cleaned)
    if not isinstance(parsed, dict):
        parsed = {}

    raw_score = parsed.get("score")
    score = float(raw_score) if _is_number(raw_score) else DEFAULT_SCORE
    score = min(1.0, max(0.0, score))

    raw_priority = parsed.get("priority")
    priority = int(round(raw_priority)) if _is_number(raw_priority) else DEFAULT_PRIORITY
    priority = min(10, max(1, priority))

    return ScoringResult(score=score, priority=priority, send_after=_parse_send_after(parsed.get("sendAfter")))


class LLMScoringClient:
    """Score events through an external service, degrading to heuristic scoring.

    ``score`` never raises: every failure path ends in ``fallback_score``. Rate-limit
    waits go through ``sleep`` and only suspend the coroutine scoring that one event.
    """

    def __init__(
        self,
        service: ScoringService | None,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay_s: float = BASE_DELAY_S,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._service = service
        self._max_attempts = max(1, max_attempts)
        self._base_delay_s = base_delay_s
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self._service is not None

    async def score(self, event: NotificationEvent) -> ScoringResult:
        if self._service is None:
            logger.warning("scoring service not configured, using fallback scoring", event_id=event.event_id)
            return fallback_score(event)

        prompt = build_scoring_prompt(event)

        for attempt in range(1, self._max_attempts + 1):
            try:
                text = await self._service.complete(prompt)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                if is_rate_limit_error(exc) and attempt < self._max_attempts:
                    delay = self._base_delay_s * 2 ** (attempt - 1)
                    logger.warning(
                        "scoring rate limited, retrying",
                        event_id=event.event_id,
                        attempt=attempt,
                        delay_s=delay,
                    )
                    await self._sleep(delay)
                    continue

                logger.error(
                    "scoring failed, falling back",
                    event_id=event.event_id,
                    attempt=attempt,
                    error=str(exc),
                )
                return fallback_score(event)

            logger.debug("scoring raw response", event_id=event.event_id, raw=text)
            try:
                return parse_scoring_response(text)
            except ValueError as exc:
                logger.error("scoring response was not JSON, falling back", event_id=event.event_id, error=str(exc))
                return fallback_score(event)

        return fallback_score(event)
