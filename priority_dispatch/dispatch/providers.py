"""Delivery provider interface and the providers shipped with the pipeline."""

from __future__ import annotations

from typing import Mapping, Protocol

from structlog import get_logger

from priority_dispatch.errors import UnsupportedChannelError
from priority_dispatch.schemas import Channel, RankedMessage

logger = get_logger(__name__)


class DeliveryProvider(Protocol):
    """Sends one message; raises on delivery failure."""

    async def send(self, message: RankedMessage) -> None: ...


class LoggingDeliveryProvider:
    """Placeholder provider that records the dispatch instead of contacting a real service."""

    async def send(self, message: RankedMessage) -> None:
        logger.info(
            "dispatching (placeholder provider)",
            event_id=message.event_id,
            user_id=message.user_id,
            channel=message.channel.value,
            priority=message.priority,
        )


class ChannelRouter:
    """Route each message to the provider registered for its channel."""

    def __init__(self, providers: Mapping[Channel, DeliveryProvider]) -> None:
        self._providers = dict(providers)

    async def send(self, message: RankedMessage) -> None:
        provider = self._providers.get(message.channel)
        if provider is None:
            raise UnsupportedChannelError(message.channel.value)
        await provider.send(message)
