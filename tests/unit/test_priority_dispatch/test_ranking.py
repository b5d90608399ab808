"""Tests for channel selection and ranked message construction."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from priority_dispatch.ranking import Ranker, build_ranked_message, pick_channel, rate_limit_key_for
from priority_dispatch.schemas import Channel, NotificationEvent, ScoringResult, to_canonical_event
from priority_dispatch.scoring.llm import LLMScoringClient

pytestmark = pytest.mark.unit


def _make_event(channels: list[str] | None = None) -> NotificationEvent:
    return to_canonical_event(
        {
            "eventId": "evt-9",
            "source": "billing",
            "user": {"id": "42", "channels": channels or []},
            "content": {"title": "Invoice ready", "body": "Your invoice is ready", "cta": "View"},
        }
    )


@pytest.mark.parametrize(
    "channels,expected",
    [
        (["sms", "email"], Channel.SMS),
        (["push"], Channel.PUSH),
        (["webhook"], Channel.WEBHOOK),
        (["carrier-pigeon", "sms"], Channel.EMAIL),
        ([], Channel.EMAIL),
    ],
)
def test_pick_channel(channels: list[str], expected: Channel) -> None:
    assert pick_channel(_make_event(channels)) is expected


def test_rate_limit_key_is_scoped_to_user() -> None:
    assert rate_limit_key_for("42") == "user:42"


def test_build_ranked_message_copies_event_fields() -> None:
    send_after = datetime(2026, 1, 1, tzinfo=timezone.utc)
    event = _make_event(["push"])
    message = build_ranked_message(event, ScoringResult(score=0.25, priority=9, send_after=send_after))

    assert message.event_id == "evt-9"
    assert message.user_id == "42"
    assert message.channel is Channel.PUSH
    assert message.score == 0.25
    assert message.priority == 9
    assert message.send_after == send_after
    assert message.content == event.content
    assert message.rate_limit_key == "user:42"
    assert message.source == "billing"


@pytest.mark.asyncio
async def test_ranker_uses_scoring_client() -> None:
    service = AsyncMock()
    service.complete.return_value = '{"score": 0.95, "priority": 1, "sendAfter": null}'
    ranker = Ranker(LLMScoringClient(service))

    message = await ranker.rank(_make_event(["sms"]))

    assert message.priority == 1
    assert message.score == 0.95
    assert message.channel is Channel.SMS
