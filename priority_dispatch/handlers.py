"""Batch entry points for the ranking and dispatch stages.

The transport hands each stage a batch of ``QueueRecord`` deliveries. Redelivery,
visibility and dead-lettering stay with the transport; these handlers only parse
records and drive the ranker and the dispatch controller.
"""

from __future__ import annotations

import asyncio
import json
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from structlog import get_logger

from priority_dispatch.dispatch.controller import DispatchController, DispatchStatus, RetryScheduler
from priority_dispatch.publisher import MessagePublisher
from priority_dispatch.ranking import Ranker
from priority_dispatch.schemas import RankedMessage, to_canonical_event

logger = get_logger(__name__)


@dataclass(frozen=True)
class QueueRecord:
    """One delivery from the transport.

    ``attempt`` is the transport's receive count for this message (1 on first delivery).
    """

    body: str | Mapping[str, Any]
    attempt: int = 1
    retry: RetryScheduler | None = None

    def payload(self) -> Mapping[str, Any]:
        if isinstance(self.body, str):
            return json.loads(self.body)
        return self.body


class RankingHandler:
    def __init__(self, ranker: Ranker, publisher: MessagePublisher) -> None:
        self._ranker = ranker
        self._publisher = publisher

    async def handle(self, records: Iterable[QueueRecord]) -> dict[str, int]:
        events = [to_canonical_event(record.payload()) for record in records]

        # Score concurrently so one event's rate-limit wait does not hold up the rest.
        ranked = await asyncio.gather(*(self._ranker.rank(event) for event in events))

        for message in ranked:
            await self._publisher.publish(message)

        logger.info("ranking complete", count=len(ranked))
        return {"processed": len(ranked)}


class DispatchHandler:
    def __init__(self, controller: DispatchController) -> None:
        self._controller = controller

    async def handle(self, records: Iterable[QueueRecord]) -> dict[str, int]:
        """Dispatch each record in order; a provider error propagates after backoff is requested."""
        tally: Counter[str] = Counter()
        for record in records:
            message = RankedMessage.model_validate(record.payload())
            outcome = await self._controller.dispatch(message, record.attempt, retry=record.retry)
            tally[outcome.status.value] += 1

        summary = {status.value: tally.get(status.value, 0) for status in DispatchStatus}
        logger.info("dispatch batch complete", **summary)
        return summary
