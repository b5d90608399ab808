"""Publish ranked messages to the priority Redis Stream."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from structlog import get_logger

from priority_dispatch.schemas import RankedMessage

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger(__name__)

PRIORITY_STREAM = "notifications:priority"


class MessagePublisher(Protocol):
    async def publish(self, message: RankedMessage) -> str: ...


class RedisStreamPublisher:
    def __init__(self, redis: "Redis", stream: str = PRIORITY_STREAM, maxlen: int = 10000) -> None:
        self._redis = redis
        self._stream = stream
        self._maxlen = maxlen

    async def publish(self, message: RankedMessage) -> str:
        fields = {
            "payload": message.to_json(),
            "eventId": message.event_id,
            "userId": message.user_id,
            "priority": str(message.priority),
        }
        entry_id = await self._redis.xadd(self._stream, fields, maxlen=self._maxlen)  # type: ignore[arg-type]
        decoded = entry_id.decode() if isinstance(entry_id, bytes) else str(entry_id)
        logger.debug("published ranked message", stream=self._stream, event_id=message.event_id, entry_id=decoded)
        return decoded
