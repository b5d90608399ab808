"""Dispatch stage: scheduling, rate limiting, backoff and provider delivery."""

from priority_dispatch.dispatch.backoff import BackoffScheduler
from priority_dispatch.dispatch.controller import DispatchController, DispatchOutcome, DispatchStatus, RetryScheduler
from priority_dispatch.dispatch.providers import ChannelRouter, DeliveryProvider, LoggingDeliveryProvider
from priority_dispatch.dispatch.rate_limit import (
    InMemoryRateLimitStore,
    RateLimitDecision,
    RateLimitGuard,
    RateLimitState,
    RateLimitStore,
    RedisRateLimitStore,
)

__all__ = [
    "BackoffScheduler",
    "ChannelRouter",
    "DeliveryProvider",
    "DispatchController",
    "DispatchOutcome",
    "DispatchStatus",
    "InMemoryRateLimitStore",
    "LoggingDeliveryProvider",
    "RateLimitDecision",
    "RateLimitGuard",
    "RateLimitState",
    "RateLimitStore",
    "RedisRateLimitStore",
    "RetryScheduler",
]
