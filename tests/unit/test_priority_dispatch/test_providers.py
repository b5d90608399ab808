"""Tests for delivery providers."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from structlog.testing import capture_logs

from priority_dispatch.dispatch.providers import ChannelRouter, LoggingDeliveryProvider
from priority_dispatch.errors import UnsupportedChannelError
from priority_dispatch.schemas import Channel, EventContent, RankedMessage

pytestmark = pytest.mark.unit


def _message(channel: Channel) -> RankedMessage:
    return RankedMessage(
        event_id="evt-1",
        user_id="42",
        channel=channel,
        priority=4,
        score=0.6,
        content=EventContent(title="t", body="b"),
    )


@pytest.mark.asyncio
async def test_logging_provider_records_dispatch() -> None:
    with capture_logs() as logs:
        await LoggingDeliveryProvider().send(_message(Channel.SMS))

    assert logs[0]["event"] == "dispatching (placeholder provider)"
    assert logs[0]["channel"] == "sms"
    assert logs[0]["priority"] == 4


@pytest.mark.asyncio
async def test_router_sends_through_channel_provider() -> None:
    email, sms = AsyncMock(), AsyncMock()
    router = ChannelRouter({Channel.EMAIL: email, Channel.SMS: sms})

    message = _message(Channel.SMS)
    await router.send(message)

    sms.send.assert_awaited_once_with(message)
    email.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_router_rejects_unregistered_channel() -> None:
    router = ChannelRouter({Channel.EMAIL: AsyncMock()})

    with pytest.raises(UnsupportedChannelError) as exc_info:
        await router.send(_message(Channel.WEBHOOK))
    assert exc_info.value.channel == "webhook"
