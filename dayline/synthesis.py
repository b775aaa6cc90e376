"""
Tool: Day Synthesis
Purpose: Run places -> blocks -> timeline for one day, or many days in parallel

Each day is independent once its inputs are fetched, so batches fan out
over a thread pool. Within a day everything is sequential.

Usage:
    from dayline.synthesis import DayRequest, synthesize_day, synthesize_days

    result = synthesize_day(DayRequest.from_dict(payload))
    results = synthesize_days([req1, req2, req3], max_workers=4)
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from dayline.blocks.builder import build_location_blocks
from dayline.config_models import SynthesisConfig, load_config
from dayline.logging_config import day_context, get_logger
from dayline.models import DayTimeline, HourlySummary, LocationBlock, PlaceSet, parse_datetime
from dayline.timeline.events import AuxiliaryEvents, TimelineEvent
from dayline.timeline.normalizer import build_timeline


logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass
class DayRequest:
    """Everything needed to synthesize one day, already fetched."""

    date: date
    summaries: list[HourlySummary] = field(default_factory=list)
    places: PlaceSet = field(default_factory=PlaceSet)
    auxiliary: AuxiliaryEvents = field(default_factory=AuxiliaryEvents)
    user_id: str | None = None
    now: datetime | None = None
    carry_in: LocationBlock | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DayRequest":
        summaries = [HourlySummary.from_dict(s) for s in data.get("summaries") or []]
        if data.get("date"):
            day = date.fromisoformat(data["date"])
        elif summaries:
            day = summaries[0].hour_start.date()
        else:
            raise ValueError("A day request needs a date or at least one summary")
        return cls(
            date=day,
            summaries=summaries,
            places=PlaceSet.from_dict(data.get("places")),
            auxiliary=AuxiliaryEvents.from_dict(data.get("auxiliary")),
            user_id=data.get("user_id"),
            now=parse_datetime(data.get("now")),
            carry_in=LocationBlock.from_dict(data["carry_in"]) if data.get("carry_in") else None,
        )


@dataclass
class DaySynthesis:
    date: date
    blocks: list[LocationBlock]
    events: list[TimelineEvent]
    user_id: str | None = None

    def to_timeline(self) -> DayTimeline:
        return DayTimeline(date=self.date, blocks=self.blocks, events=self.events, user_id=self.user_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "user_id": self.user_id,
            "blocks": [b.to_dict() for b in self.blocks],
            "events": [e.to_dict() for e in self.events],
        }


def synthesize_day(request: DayRequest, config: SynthesisConfig | None = None) -> DaySynthesis:
    """
    Build blocks and the unified timeline for one day.

    Each block gets the feed rows it owns attached as timeline_events.
    Log lines emitted meanwhile carry the request's user_id and date.

    Raises:
        MalformedInputError: Summaries or auxiliary records violate ordering/duration rules
    """
    config = config or load_config()
    with day_context(request.user_id, request.date):
        blocks = build_location_blocks(
            request.summaries, request.places, config=config, carry_in=request.carry_in
        )
        events = build_timeline(blocks, request.auxiliary, request.now, config=config)

    by_block: dict[str, list[TimelineEvent]] = {b.id: [] for b in blocks}
    for event in events:
        if event.block_id in by_block:
            by_block[event.block_id].append(event)
    blocks = [block.with_timeline(by_block[block.id]) for block in blocks]

    return DaySynthesis(date=request.date, blocks=blocks, events=events, user_id=request.user_id)


def synthesize_days(
    requests: list[DayRequest],
    max_workers: int = DEFAULT_MAX_WORKERS,
    config: SynthesisConfig | None = None,
) -> list[DaySynthesis]:
    """
    Synthesize independent days in parallel, preserving input order.

    A malformed day fails the whole batch; its MalformedInputError propagates.
    """
    config = config or load_config()
    if not requests:
        return []
    workers = max(1, min(max_workers, len(requests)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(lambda r: synthesize_day(r, config), requests))
    logger.info("days_synthesized", days=len(results), workers=workers)
    return results
