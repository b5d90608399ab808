"""End-to-end: rank an event, then dispatch it repeatedly within one rate-limit window."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from priority_dispatch.config import DispatchConfig
from priority_dispatch.dispatch.controller import DispatchStatus
from priority_dispatch.dispatch.rate_limit import InMemoryRateLimitStore
from priority_dispatch.handlers import QueueRecord, RankingHandler
from priority_dispatch.ranking import Ranker
from priority_dispatch.runtime import build_dispatch_controller
from priority_dispatch.scoring.llm import LLMScoringClient

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_thirty_one_sends_in_one_window() -> None:
    publisher = AsyncMock()
    await RankingHandler(Ranker(LLMScoringClient(None)), publisher).handle(
        [
            QueueRecord(
                body={
                    "eventId": "evt-42",
                    "user": {"id": "42", "channels": ["sms"]},
                    "content": {"title": "Your order shipped", "body": "Track it in the app"},
                }
            )
        ]
    )
    message = publisher.publish.await_args.args[0]
    assert message.rate_limit_key == "user:42"

    provider = AsyncMock()
    controller = build_dispatch_controller(DispatchConfig(), store=InMemoryRateLimitStore(), provider=provider)

    outcomes = [await controller.dispatch(message, attempt_count=1) for _ in range(31)]

    assert provider.send.await_count == 30
    statuses = [outcome.status for outcome in outcomes]
    assert statuses.count(DispatchStatus.SENT) == 30
    assert statuses.count(DispatchStatus.RATE_LIMITED) == 1
    assert statuses[-1] is DispatchStatus.RATE_LIMITED
