"""Turn scored notification events into ranked messages for the dispatch stage."""

from __future__ import annotations

from priority_dispatch.schemas import (
    Channel,
    DeliveryPreferences,
    NotificationEvent,
    RankedMessage,
    ScoringResult,
)
from priority_dispatch.scoring.llm import LLMScoringClient

DEFAULT_CHANNEL = Channel.EMAIL


def pick_channel(event: NotificationEvent) -> Channel:
    """Use the first declared user channel; default to email if it is missing or unknown."""
    if not event.user.channels:
        return DEFAULT_CHANNEL
    try:
        return Channel(event.user.channels[0])
    except ValueError:
        return DEFAULT_CHANNEL


def rate_limit_key_for(user_id: str) -> str:
    return f"user:{user_id}"


def build_ranked_message(event: NotificationEvent, ranking: ScoringResult) -> RankedMessage:
    return RankedMessage(
        event_id=event.event_id,
        user_id=event.user.id,
        channel=pick_channel(event),
        priority=ranking.priority,
        score=ranking.score,
        send_after=ranking.send_after,
        content=event.content,
        preferences=DeliveryPreferences(rate_limit_key=rate_limit_key_for(event.user.id)),
        source=event.source,
    )


class Ranker:
    def __init__(self, scoring_client: LLMScoringClient) -> None:
        self._scoring_client = scoring_client

    async def rank(self, event: NotificationEvent) -> RankedMessage:
        ranking = await self._scoring_client.score(event)
        return build_ranked_message(event, ranking)
