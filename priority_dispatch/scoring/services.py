"""Adapters for external scoring services (OpenAI, Anthropic)."""

from __future__ import annotations

import os
import re
from typing import TYPE_CHECKING, Any, Protocol, cast

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from priority_dispatch.errors import ScoringRateLimitedError, ScoringServiceError

if TYPE_CHECKING:
    from priority_dispatch.config import ScoringConfig

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-haiku-4-5-20251001"
MAX_RESPONSE_TOKENS = 200

_RATE_LIMIT_MARKERS: tuple[str, ...] = ("429", "too many requests", "quota exceeded", "resource_exhausted")
_UNEXPANDED_VAR = re.compile(r"\$\{[^}]+\}")


class ScoringService(Protocol):
    """Request/response call to an external model that returns the raw response text."""

    async def complete(self, prompt: str) -> str: ...


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when the failure means "too many requests" or quota exhaustion."""
    if isinstance(exc, ScoringRateLimitedError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


class OpenAIScoringService:
    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_OPENAI_MODEL) -> None:
        self._client = client
        self._model = model

    async def complete(self, prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
        except openai.RateLimitError as exc:
            raise ScoringRateLimitedError(str(exc)) from exc
        except openai.OpenAIError as exc:
            raise ScoringServiceError(str(exc)) from exc

        response_any = cast(Any, response)
        return response_any.choices[0].message.content or ""


class AnthropicScoringService:
    def __init__(self, client: AsyncAnthropic, model: str = DEFAULT_ANTHROPIC_MODEL) -> None:
        self._client = client
        self._model = model

    async def complete(self, prompt: str) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=MAX_RESPONSE_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as exc:
            raise ScoringRateLimitedError(str(exc)) from exc
        except anthropic.AnthropicError as exc:
            raise ScoringServiceError(str(exc)) from exc

        return response.content[0].text  # type: ignore[union-attr]


def _resolve_api_key(configured: str | None, env_var: str) -> str | None:
    # An unset ${VAR} survives config expansion as literal text.
    if configured and configured.strip() and not _UNEXPANDED_VAR.search(configured):
        return configured.strip()
    return os.getenv(env_var) or None


def build_scoring_service(config: "ScoringConfig") -> ScoringService | None:
    """Construct the configured scoring service, or None when no credentials are available."""
    if config.provider == "openai":
        api_key = _resolve_api_key(config.api_key, "OPENAI_API_KEY")
        if not api_key:
            return None
        return OpenAIScoringService(AsyncOpenAI(api_key=api_key), model=config.model or DEFAULT_OPENAI_MODEL)

    if config.provider == "anthropic":
        api_key = _resolve_api_key(config.api_key, "ANTHROPIC_API_KEY")
        if not api_key:
            return None
        return AnthropicScoringService(
            AsyncAnthropic(api_key=api_key), model=config.model or DEFAULT_ANTHROPIC_MODEL
        )

    return None
