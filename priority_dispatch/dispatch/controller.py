"""Per-message dispatch decision: defer, rate limit, send, or fail with backoff."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Protocol

from structlog import get_logger

from priority_dispatch.dispatch.backoff import BackoffScheduler
from priority_dispatch.dispatch.providers import DeliveryProvider
from priority_dispatch.dispatch.rate_limit import RateLimitGuard
from priority_dispatch.schemas import RankedMessage

logger = get_logger(__name__)


class DispatchStatus(str, Enum):
    SENT = "sent"
    DEFERRED = "deferred"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class DispatchOutcome:
    status: DispatchStatus
    deferred_until: datetime | None = None
    retry_after: timedelta | None = None

    @classmethod
    def sent(cls) -> "DispatchOutcome":
        return cls(status=DispatchStatus.SENT)

    @classmethod
    def deferred(cls, until: datetime) -> "DispatchOutcome":
        return cls(status=DispatchStatus.DEFERRED, deferred_until=until)

    @classmethod
    def rate_limited(cls, delay: timedelta) -> "DispatchOutcome":
        return cls(status=DispatchStatus.RATE_LIMITED, retry_after=delay)


class RetryScheduler(Protocol):
    """Transport hook that makes the current delivery visible again after ``delay``."""

    async def retry_after(self, delay: timedelta) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DispatchController:
    """Decide what happens to one delivery attempt of a ranked message.

    The attempt count comes from the transport with each delivery. The controller
    has no maximum-attempt threshold of its own: provider errors are re-raised so
    the transport's redrive policy decides when a message is dead-lettered.
    """

    def __init__(
        self,
        guard: RateLimitGuard,
        provider: DeliveryProvider,
        *,
        backoff: BackoffScheduler | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._guard = guard
        self._provider = provider
        self._backoff = backoff or BackoffScheduler()
        self._clock = clock

    async def dispatch(
        self,
        message: RankedMessage,
        attempt_count: int,
        retry: RetryScheduler | None = None,
    ) -> DispatchOutcome:
        if message.send_after is not None and message.send_after > self._clock():
            logger.info("skipping until sendAfter", event_id=message.event_id, send_after=message.send_after.isoformat())
            return DispatchOutcome.deferred(message.send_after)

        if not await self._guard.admit(message.rate_limit_key):
            delay = self._backoff.delay_for(attempt_count)
            await self._request_retry(message, attempt_count, delay, retry)
            return DispatchOutcome.rate_limited(delay)

        try:
            await self._provider.send(message)
        except Exception as exc:
            logger.error("dispatch failed", event_id=message.event_id, attempt=attempt_count, error=str(exc))
            delay = self._backoff.delay_for(attempt_count)
            try:
                await self._request_retry(message, attempt_count, delay, retry)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("failed to apply backoff", event_id=message.event_id)
            raise

        return DispatchOutcome.sent()

    async def _request_retry(
        self,
        message: RankedMessage,
        attempt_count: int,
        delay: timedelta,
        retry: RetryScheduler | None,
    ) -> None:
        if retry is None:
            return
        await retry.retry_after(delay)
        logger.warning(
            "applied exponential backoff",
            event_id=message.event_id,
            attempt=attempt_count,
            delay_ms=int(delay.total_seconds() * 1000),
        )
