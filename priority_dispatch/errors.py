"""Exception types raised by the dispatch pipeline."""

from __future__ import annotations


class PriorityDispatchError(Exception):
    """Base class for pipeline errors."""


class ScoringServiceError(PriorityDispatchError):
    """The external scoring service failed to produce a response."""


class ScoringRateLimitedError(ScoringServiceError):
    """The external scoring service rejected the call as rate limited or over quota."""


class ConfigError(PriorityDispatchError):
    """Configuration file could not be read or validated."""


class UnsupportedChannelError(PriorityDispatchError):
    """No delivery provider is registered for the message channel."""

    def __init__(self, channel: str) -> None:
        super().__init__(f"No delivery provider registered for channel: {channel}")
        self.channel = channel
