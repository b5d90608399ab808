"""Construct pipeline components from configuration.

The entry point owns every external client; components receive them explicitly.
"""

from __future__ import annotations

from redis.asyncio import Redis

from priority_dispatch.config import DispatchConfig
from priority_dispatch.dispatch.backoff import BackoffScheduler
from priority_dispatch.dispatch.controller import DispatchController
from priority_dispatch.dispatch.providers import DeliveryProvider, LoggingDeliveryProvider
from priority_dispatch.dispatch.rate_limit import RateLimitGuard, RateLimitStore, RedisRateLimitStore
from priority_dispatch.publisher import RedisStreamPublisher
from priority_dispatch.ranking import Ranker
from priority_dispatch.scoring.llm import LLMScoringClient
from priority_dispatch.scoring.services import build_scoring_service


def build_redis(config: DispatchConfig) -> Redis:
    return Redis.from_url(config.redis.url)


def build_scoring_client(config: DispatchConfig) -> LLMScoringClient:
    return LLMScoringClient(
        build_scoring_service(config.scoring),
        max_attempts=config.scoring.max_attempts,
        base_delay_s=config.scoring.base_delay_s,
    )


def build_ranker(config: DispatchConfig) -> Ranker:
    return Ranker(build_scoring_client(config))


def build_publisher(config: DispatchConfig, redis: Redis) -> RedisStreamPublisher:
    return RedisStreamPublisher(redis, stream=config.redis.priority_stream)


def build_rate_limit_guard(config: DispatchConfig, store: RateLimitStore) -> RateLimitGuard:
    return RateLimitGuard(store, window_ms=config.rate_limit.window_ms, capacity=config.rate_limit.capacity)


def build_dispatch_controller(
    config: DispatchConfig,
    redis: Redis | None = None,
    *,
    store: RateLimitStore | None = None,
    provider: DeliveryProvider | None = None,
) -> DispatchController:
    """Build a controller over ``store``, or over a Redis-backed store when only ``redis`` is given."""
    if store is None:
        if redis is None:
            raise ValueError("Either a rate-limit store or a Redis client is required")
        store = RedisRateLimitStore(redis, key_prefix=config.rate_limit.key_prefix)

    backoff = BackoffScheduler(
        base_ms=config.backoff.base_ms,
        cap_ms=config.backoff.cap_ms,
        max_exponent=config.backoff.max_exponent,
    )
    return DispatchController(
        build_rate_limit_guard(config, store),
        provider or LoggingDeliveryProvider(),
        backoff=backoff,
    )
