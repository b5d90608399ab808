"""Deterministic local scoring used when the scoring service is unavailable."""

from __future__ import annotations

from priority_dispatch.schemas import NotificationEvent, ScoringResult

URGENCY_KEYWORDS: tuple[str, ...] = ("urgent", "critical")
INCIDENT_KEYWORDS: tuple[str, ...] = ("error", "incident")

BASE_SCORE = 0.5
URGENCY_BOOST = 0.3
INCIDENT_BOOST = 0.2


def priority_for_score(score: float) -> int:
    if score > 0.8:
        return 1
    if score > 0.6:
        return 3
    return 5


def fallback_score(event: NotificationEvent) -> ScoringResult:
    """Score an event from keyword matches on its title and body.

    Pure: the same event text always yields the same score and priority.
    """
    text = f"{event.content.title} {event.content.body}".lower()
    score = BASE_SCORE

    if any(keyword in text for keyword in URGENCY_KEYWORDS):
        score += URGENCY_BOOST
    if any(keyword in text for keyword in INCIDENT_KEYWORDS):
        score += INCIDENT_BOOST

    score = min(1.0, max(0.0, score))
    return ScoringResult(score=score, priority=priority_for_score(score), send_after=None)
