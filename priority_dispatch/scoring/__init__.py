"""Scoring stage: LLM client with deterministic heuristic fallback."""

from priority_dispatch.scoring.heuristic import fallback_score
from priority_dispatch.scoring.llm import LLMScoringClient, build_scoring_prompt, parse_scoring_response
from priority_dispatch.scoring.services import (
    AnthropicScoringService,
    OpenAIScoringService,
    ScoringService,
    build_scoring_service,
    is_rate_limit_error,
)

__all__ = [
    "AnthropicScoringService",
    "LLMScoringClient",
    "OpenAIScoringService",
    "ScoringService",
    "build_scoring_prompt",
    "build_scoring_service",
    "fallback_score",
    "is_rate_limit_error",
    "parse_scoring_response",
]
