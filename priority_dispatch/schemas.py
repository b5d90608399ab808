"""Notification data model: inbound events, scoring results and ranked messages."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WEBHOOK = "webhook"


class _WireModel(BaseModel):
    """Immutable model that reads and writes camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_wire_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EventUser(_WireModel):
    id: str
    segment: str | None = None
    channels: list[str] = Field(default_factory=list)


class EventContent(_WireModel):
    title: str
    body: str
    cta: str | None = None
    metadata: dict[str, Any] | None = None


class NotificationEvent(_WireModel):
    event_id: str
    source: str = "unknown"
    occurred_at: datetime | None = None
    user: EventUser
    content: EventContent

    @field_validator("occurred_at")
    @classmethod
    def _occurred_at_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class QuietHours(_WireModel):
    start: str
    end: str


class DeliveryPreferences(_WireModel):
    quiet_hours: QuietHours | None = None
    rate_limit_key: str | None = None
    failover_channels: list[Channel] | None = None
    timezone: str | None = None


class ScoringResult(_WireModel):
    score: float = Field(ge=0.0, le=1.0)
    # Lower number means more urgent: 1 = highest, 10 = lowest.
    priority: int = Field(ge=1, le=10)
    send_after: datetime | None = None

    @field_validator("send_after")
    @classmethod
    def _send_after_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class RankedMessage(_WireModel):
    event_id: str
    user_id: str
    channel: Channel
    priority: int = Field(ge=1, le=10)
    score: float = Field(ge=0.0, le=1.0)
    send_after: datetime | None = None
    content: EventContent
    preferences: DeliveryPreferences | None = None
    source: str | None = None

    @field_validator("send_after")
    @classmethod
    def _send_after_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @property
    def rate_limit_key(self) -> str | None:
        if self.preferences is None:
            return None
        return self.preferences.rate_limit_key


def to_canonical_event(raw: Mapping[str, Any]) -> NotificationEvent:
    """Validate a raw event payload and normalize it into a NotificationEvent.

    Raises:
        pydantic.ValidationError: If the payload does not match the event schema.
    """
    return NotificationEvent.model_validate(raw)


__all__ = [
    "Channel",
    "DeliveryPreferences",
    "EventContent",
    "EventUser",
    "NotificationEvent",
    "QuietHours",
    "RankedMessage",
    "ScoringResult",
    "to_canonical_event",
]
