"""Command-line entry point for local scoring and dispatch runs."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError
from structlog import get_logger

from priority_dispatch.config import DispatchConfig, load_config
from priority_dispatch.dispatch.controller import DispatchStatus
from priority_dispatch.dispatch.rate_limit import InMemoryRateLimitStore
from priority_dispatch.errors import ConfigError
from priority_dispatch.log import configure_logging
from priority_dispatch.ranking import build_ranked_message
from priority_dispatch.runtime import build_dispatch_controller, build_scoring_client
from priority_dispatch.schemas import DeliveryPreferences, NotificationEvent, to_canonical_event
from priority_dispatch.scoring.heuristic import fallback_score

logger = get_logger(__name__)


def demo_event() -> NotificationEvent:
    return to_canonical_event(
        {
            "eventId": "demo-1",
            "source": "local-demo",
            "occurredAt": datetime.now(timezone.utc).isoformat(),
            "user": {"id": "user-123", "segment": "beta", "channels": ["email"]},
            "content": {
                "title": "Urgent: service incident detected",
                "body": "We detected an error in your account. Please check your dashboard.",
            },
        }
    )


def _load_event(path: Path | None) -> NotificationEvent:
    if path is None:
        return demo_event()
    with open(path, "r", encoding="utf-8") as f:
        return to_canonical_event(json.load(f))


async def _score(config: DispatchConfig, event: NotificationEvent, heuristic: bool) -> dict[str, Any]:
    client = build_scoring_client(config)
    use_llm = client.configured and not heuristic
    result = await client.score(event) if use_llm else fallback_score(event)
    return {
        "useLlm": use_llm,
        "event": event.to_wire_dict(),
        "result": result.to_wire_dict(),
    }


async def _simulate(config: DispatchConfig, sends: int, rate_limit_key: str) -> dict[str, Any]:
    event = demo_event()
    message = build_ranked_message(event, fallback_score(event)).model_copy(
        update={"preferences": DeliveryPreferences(rate_limit_key=rate_limit_key)}
    )
    controller = build_dispatch_controller(config, store=InMemoryRateLimitStore())

    tally: Counter[str] = Counter()
    for _ in range(sends):
        outcome = await controller.dispatch(message, attempt_count=1)
        tally[outcome.status.value] += 1

    return {
        "sends": sends,
        "rateLimitKey": rate_limit_key,
        "outcomes": {status.value: tally.get(status.value, 0) for status in DispatchStatus},
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Score and dispatch notifications locally.")
    parser.add_argument("--config", type=Path, default=None, help="Path to the YAML config file.")
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    score_parser = subparsers.add_parser("score", help="Score one notification event.")
    score_parser.add_argument("--event", type=Path, default=None, help="JSON file with the event (demo event if omitted).")
    score_parser.add_argument("--heuristic", action="store_true", help="Skip the scoring service.")

    simulate_parser = subparsers.add_parser("simulate", help="Dispatch one message repeatedly in a single window.")
    simulate_parser.add_argument("--sends", type=int, default=31, help="Number of dispatch attempts.")
    simulate_parser.add_argument("--key", default="user:42", help="Rate-limit key for the message.")

    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging(args.log_level or "INFO")
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logger.error("invalid configuration", error=str(exc))
        return 2
    configure_logging(args.log_level or config.log_level)

    if args.command == "score":
        try:
            event = _load_event(args.event)
        except (OSError, ValueError, ValidationError) as exc:
            logger.error("invalid event file", path=str(args.event), error=str(exc))
            return 2
        output = asyncio.run(_score(config, event, args.heuristic))
    else:
        output = asyncio.run(_simulate(config, args.sends, args.key))

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
