"""Fixed-window rate limiting keyed by recipient.

The read-check-increment sequence runs as one atomic store operation so that
concurrent workers admitting against the same key cannot overshoot capacity.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from structlog import get_logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger(__name__)

RATE_LIMIT_WINDOW_MS = 60_000
RATE_LIMIT_MAX_PER_WINDOW = 30
DEFAULT_KEY_PREFIX = "rate"


@dataclass(frozen=True)
class RateLimitState:
    window_start: int
    count: int


@dataclass(frozen=True)
class RateLimitDecision:
    admitted: bool
    state: RateLimitState


class RateLimitStore(Protocol):
    async def try_acquire(self, key: str, now_ms: int, window_ms: int, capacity: int) -> RateLimitDecision: ...

    async def get(self, key: str) -> RateLimitState | None: ...


def _decide(state: RateLimitState | None, now_ms: int, window_ms: int, capacity: int) -> RateLimitDecision:
    if state is None or now_ms - state.window_start > window_ms:
        state = RateLimitState(window_start=now_ms, count=0)
    if state.count >= capacity:
        return RateLimitDecision(admitted=False, state=state)
    return RateLimitDecision(admitted=True, state=RateLimitState(window_start=state.window_start, count=state.count + 1))


class InMemoryRateLimitStore:
    """Process-local store for tests and local runs.

    ``try_acquire`` does not await between reading and writing, so it is atomic
    with respect to other coroutines on the same event loop.
    """

    def __init__(self) -> None:
        self._states: dict[str, RateLimitState] = {}

    async def try_acquire(self, key: str, now_ms: int, window_ms: int, capacity: int) -> RateLimitDecision:
        decision = _decide(self._states.get(key), now_ms, window_ms, capacity)
        if decision.admitted:
            self._states[key] = decision.state
        return decision

    async def get(self, key: str) -> RateLimitState | None:
        return self._states.get(key)


# KEYS[1] = state hash; ARGV = now_ms, window_ms, capacity.
# Returns {admitted, windowStart, count}.
_ACQUIRE_SCRIPT = """
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local capacity = tonumber(ARGV[3])
local state = redis.call('HMGET', KEYS[1], 'windowStart', 'count')
local window_start = tonumber(state[1])
local count = tonumber(state[2])
if window_start == nil or count == nil or now - window_start > window then
  window_start = now
  count = 0
end
if count >= capacity then
  return {0, window_start, count}
end
count = count + 1
redis.call('HSET', KEYS[1], 'windowStart', window_start, 'count', count)
return {1, window_start, count}
"""


class RedisRateLimitStore:
    """Rate-limit state in Redis hashes, updated by a single Lua script."""

    def __init__(self, redis: "Redis", key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._redis = redis
        self._key_prefix = key_prefix
        self._acquire = redis.register_script(_ACQUIRE_SCRIPT)

    def _state_key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def try_acquire(self, key: str, now_ms: int, window_ms: int, capacity: int) -> RateLimitDecision:
        admitted, window_start, count = await self._acquire(
            keys=[self._state_key(key)],
            args=[now_ms, window_ms, capacity],
        )
        return RateLimitDecision(
            admitted=bool(int(admitted)),
            state=RateLimitState(window_start=int(window_start), count=int(count)),
        )

    async def get(self, key: str) -> RateLimitState | None:
        raw = await self._redis.hgetall(self._state_key(key))
        if not raw:
            return None

        def _str(v: bytes | str) -> str:
            return v.decode() if isinstance(v, bytes) else v

        fields = {_str(k): _str(v) for k, v in raw.items()}
        return RateLimitState(window_start=int(fields.get("windowStart", 0)), count=int(fields.get("count", 0)))


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimitGuard:
    def __init__(
        self,
        store: RateLimitStore,
        *,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        capacity: int = RATE_LIMIT_MAX_PER_WINDOW,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._window_ms = window_ms
        self._capacity = capacity
        self._clock = clock

    async def admit(self, rate_limit_key: str | None) -> bool:
        """Admit one send for the key. Messages without a key are always admitted."""
        if not rate_limit_key:
            return True

        decision = await self._store.try_acquire(rate_limit_key, self._clock(), self._window_ms, self._capacity)
        if not decision.admitted:
            logger.warning(
                "rate limit exceeded",
                rate_limit_key=rate_limit_key,
                window_start=decision.state.window_start,
                count=decision.state.count,
            )
            return False

        logger.debug(
            "rate limit ok",
            rate_limit_key=rate_limit_key,
            window_start=decision.state.window_start,
            count=decision.state.count,
        )
        return True
