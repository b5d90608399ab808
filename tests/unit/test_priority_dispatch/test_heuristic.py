"""Tests for the deterministic fallback scorer."""

from __future__ import annotations

import pytest

from priority_dispatch.schemas import NotificationEvent, to_canonical_event
from priority_dispatch.scoring.heuristic import fallback_score, priority_for_score

pytestmark = pytest.mark.unit


def _make_event(title: str, body: str = "") -> NotificationEvent:
    return to_canonical_event(
        {"eventId": "evt-h", "user": {"id": "user-1"}, "content": {"title": title, "body": body}}
    )


def test_urgent_and_error_clamps_to_top_priority() -> None:
    result = fallback_score(_make_event("URGENT: payment failed", "An error occurred"))
    assert result.score == 1.0
    assert result.priority == 1
    assert result.send_after is None


def test_neutral_text_scores_baseline() -> None:
    result = fallback_score(_make_event("Weekly digest", "Here is what you missed"))
    assert result.score == 0.5
    assert result.priority == 5


def test_urgency_keyword_only() -> None:
    result = fallback_score(_make_event("Critical update"))
    assert result.score == pytest.approx(0.8)
    assert result.priority == 3


def test_incident_keyword_only() -> None:
    result = fallback_score(_make_event("Status", "Incident resolved"))
    assert result.score == pytest.approx(0.7)
    assert result.priority == 3


def test_keyword_in_body_counts() -> None:
    result = fallback_score(_make_event("Heads up", "this is urgent"))
    assert result.score == pytest.approx(0.8)


def test_multiple_keywords_from_same_group_add_once() -> None:
    result = fallback_score(_make_event("urgent critical", "neutral"))
    assert result.score == pytest.approx(0.8)


@pytest.mark.parametrize(
    "title,body",
    [
        ("", ""),
        ("urgent", "critical error incident"),
        ("Sale ends soon", "50% off"),
        ("ERROR", ""),
    ],
)
def test_fallback_is_pure_and_bounded(title: str, body: str) -> None:
    event = _make_event(title, body)
    first = fallback_score(event)
    second = fallback_score(_make_event(title, body))
    assert first == second
    assert 0.0 <= first.score <= 1.0
    assert first.priority in {1, 3, 5}


@pytest.mark.parametrize("score,priority", [(1.0, 1), (0.81, 1), (0.8, 3), (0.61, 3), (0.6, 5), (0.0, 5)])
def test_priority_thresholds(score: float, priority: int) -> None:
    assert priority_for_score(score) == priority
