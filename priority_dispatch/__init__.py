"""Notification scoring and rate-controlled dispatch."""

from priority_dispatch.dispatch import (
    BackoffScheduler,
    DispatchController,
    DispatchOutcome,
    DispatchStatus,
    InMemoryRateLimitStore,
    RateLimitGuard,
    RedisRateLimitStore,
)
from priority_dispatch.handlers import DispatchHandler, QueueRecord, RankingHandler
from priority_dispatch.publisher import RedisStreamPublisher
from priority_dispatch.ranking import Ranker, build_ranked_message, pick_channel
from priority_dispatch.schemas import Channel, NotificationEvent, RankedMessage, ScoringResult, to_canonical_event
from priority_dispatch.scoring import LLMScoringClient, fallback_score

__all__ = [
    "BackoffScheduler",
    "Channel",
    "DispatchController",
    "DispatchHandler",
    "DispatchOutcome",
    "DispatchStatus",
    "InMemoryRateLimitStore",
    "LLMScoringClient",
    "NotificationEvent",
    "QueueRecord",
    "RankedMessage",
    "Ranker",
    "RankingHandler",
    "RateLimitGuard",
    "RedisRateLimitStore",
    "RedisStreamPublisher",
    "ScoringResult",
    "build_ranked_message",
    "fallback_score",
    "pick_channel",
    "to_canonical_event",
]
