"""
Tool: Location-Block Builder
Purpose: Group a day's hourly summaries into contiguous location blocks

State machine over summaries in time order:

    no-open-block  ->  open-stationary(place) | open-travel(movement) | open-unknown

A summary whose place (or travel signature) matches the open block extends
it; anything else closes the block and opens a new one. Hours without
location evidence do not force a transition: a stationary block at a known
place is carried forward across them while the gap stays within
blocks.carry_forward_tolerance_minutes.

Output blocks are contiguous and cover exactly [first.hour_start, last.hour_end].

Usage:
    from dayline.blocks.builder import build_location_blocks

    blocks = build_location_blocks(summaries, places)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from dayline import IN_TRANSIT_LABEL, MEANINGLESS_LABELS, UNKNOWN_LOCATION_LABEL
from dayline.blocks.app_usage import aggregate_app_usage
from dayline.config_models import SynthesisConfig
from dayline.errors import MalformedInputError
from dayline.logging_config import get_logger
from dayline.models import (
    ActivityType,
    BlockType,
    HourlySummary,
    LocationBlock,
    MovementType,
    PlaceSet,
    PlaceSource,
    ResolvedPlace,
    minutes_between,
)
from dayline.places import geo
from dayline.places.resolver import has_location_evidence, resolve_summary


logger = get_logger(__name__)

_STATIONARY = "stationary"
_TRAVEL = "travel"
_UNKNOWN = "unknown"


def is_meaningful_label(label: str | None) -> bool:
    return bool(label) and label.strip().lower() not in MEANINGLESS_LABELS


@dataclass
class _Hour:
    summary: HourlySummary
    resolved: ResolvedPlace | None
    carried: bool = False


@dataclass
class _OpenBlock:
    kind: str
    signature: str
    start: datetime
    end: datetime
    place: ResolvedPlace | None = None
    movement: MovementType | None = None
    hours: list[_Hour] = field(default_factory=list)
    carried_gap: bool = False
    gap_id: str | None = None

    @property
    def can_carry(self) -> bool:
        return (
            self.kind == _STATIONARY
            and self.place is not None
            and self.place.is_known
            and is_meaningful_label(self.place.label)
        )

    def matches_place(self, resolved: ResolvedPlace) -> bool:
        if self.kind == _UNKNOWN:
            return not resolved.is_known
        if self.kind != _STATIONARY or not resolved.is_known:
            return False
        if self.signature == resolved.key:
            return True
        # Blocks carried in from history only know their label
        return self.signature == f"label:{resolved.label}"

    def accepts_travel(self, movement: MovementType | None) -> bool:
        if self.kind != _TRAVEL:
            return False
        if movement is None or not movement.is_concrete:
            return True
        if self.movement is None or not self.movement.is_concrete:
            self.movement = movement
            return True
        return self.movement == movement

    def extend(self, hour: _Hour) -> None:
        self.hours.append(hour)
        self.end = max(self.end, hour.summary.hour_end)


def _validate(summaries: list[HourlySummary]) -> None:
    seen: set[str] = set()
    previous: HourlySummary | None = None
    for summary in summaries:
        if summary.hour_end < summary.hour_start:
            logger.warning("malformed_summaries", reason="end_before_start", summary_id=summary.id)
            raise MalformedInputError(
                f"Summary {summary.id} ends before it starts",
                summary_id=summary.id,
                hour_start=summary.hour_start.isoformat(),
                hour_end=summary.hour_end.isoformat(),
            )
        if summary.id in seen:
            logger.warning("malformed_summaries", reason="duplicate_id", summary_id=summary.id)
            raise MalformedInputError(f"Duplicate summary id {summary.id}", summary_id=summary.id)
        seen.add(summary.id)
        if previous is not None and summary.hour_start < previous.hour_end:
            logger.warning(
                "malformed_summaries",
                reason="non_monotonic",
                summary_id=summary.id,
                previous_id=previous.id,
            )
            raise MalformedInputError(
                f"Summary {summary.id} starts before {previous.id} ends",
                summary_id=summary.id,
                previous_id=previous.id,
            )
        previous = summary


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _is_travel(summary: HourlySummary, config: SynthesisConfig) -> bool:
    activity = summary.primary_activity
    return activity is not None and activity.value == config.blocks.travel_activity


def _place_from_block(block: LocationBlock) -> ResolvedPlace:
    if block.is_user_defined:
        source = PlaceSource.USER_DEFINED
    elif block.inferred_place is not None or block.is_place_inferred:
        source = PlaceSource.INFERRED
    else:
        source = PlaceSource.UNKNOWN
    return ResolvedPlace(
        source=source,
        label=block.location_label,
        category=block.location_category,
        confidence=block.confidence_score,
        geohash7=block.geohash7,
        inferred_place=block.inferred_place,
    )


def _carry_in_block(
    carry_in: LocationBlock | None,
    summary: HourlySummary,
    tolerance: timedelta,
) -> _OpenBlock | None:
    if carry_in is None or carry_in.type != BlockType.STATIONARY:
        return None
    if not is_meaningful_label(carry_in.location_label):
        return None
    gap = summary.hour_start - carry_in.end_time
    if gap < timedelta(0) or gap > tolerance:
        return None
    place = _place_from_block(carry_in)
    if not place.is_known:
        return None
    return _OpenBlock(
        kind=_STATIONARY,
        signature=f"label:{place.label}",
        start=summary.hour_start,
        end=summary.hour_start,
        place=place,
    )


def _dominant_activity(hours: list[_Hour]) -> ActivityType | None:
    minutes: dict[ActivityType, float] = defaultdict(float)
    last_seen: dict[ActivityType, datetime] = {}
    for hour in hours:
        activity = hour.summary.primary_activity
        if activity is None:
            continue
        minutes[activity] += max(0.0, hour.summary.duration_minutes)
        last_seen[activity] = hour.summary.hour_start
    if not minutes:
        return None
    # Ties go to the most recent occurrence
    return max(minutes, key=lambda a: (minutes[a], last_seen[a]))


def _block_confidence(hours: list[_Hour], carried_factor: float) -> float:
    weighted = 0.0
    total = 0.0
    for hour in hours:
        duration = max(0.0, hour.summary.duration_minutes)
        score = hour.summary.confidence_score or 0.0
        if hour.carried:
            score *= carried_factor
        weighted += score * duration
        total += duration
    if total <= 0:
        scores = [h.summary.confidence_score or 0.0 for h in hours]
        mean = sum(scores) / len(scores) if scores else 0.0
    else:
        mean = weighted / total
    return round(min(1.0, max(0.0, mean)), 4)


def _travel_movement(open_block: _OpenBlock) -> MovementType | None:
    candidates: list[MovementType] = []
    for hour in open_block.hours:
        if hour.summary.movement_type is not None:
            candidates.append(hour.summary.movement_type)
        candidates.extend(s.movement_type for s in hour.summary.segments if s.movement_type)
    for movement in candidates:
        if movement.is_concrete:
            return movement
    return candidates[0] if candidates else None


def _travel_distance(open_block: _OpenBlock) -> float | None:
    total = 0.0
    for hour in open_block.hours:
        if hour.summary.distance_m is not None:
            total += hour.summary.distance_m
        else:
            total += sum(s.distance_m or 0.0 for s in hour.summary.segments)
    return total if total > 0 else None


def _close(open_block: _OpenBlock, config: SynthesisConfig) -> LocationBlock:
    hours = open_block.hours
    summaries = [h.summary for h in hours]
    segments = sorted(
        (seg for s in summaries for seg in s.segments),
        key=lambda seg: seg.start_time,
    )
    apps, screen_minutes = aggregate_app_usage(
        [session for s in summaries for session in s.app_sessions],
        open_block.start,
        open_block.end,
    )
    fresh_samples = [sample for h in hours if not h.carried for sample in h.summary.valid_samples]
    carried_ids = [h.summary.id for h in hours if h.carried]

    block_id = summaries[0].id if summaries else open_block.gap_id
    block = LocationBlock(
        id=block_id,
        type=BlockType.TRAVEL if open_block.kind == _TRAVEL else BlockType.STATIONARY,
        location_label=UNKNOWN_LOCATION_LABEL,
        start_time=open_block.start,
        end_time=open_block.end,
        duration_minutes=round(minutes_between(open_block.start, open_block.end)),
        apps=apps,
        total_screen_minutes=screen_minutes,
        dominant_activity=_dominant_activity(hours),
        confidence_score=_block_confidence(hours, config.blocks.carried_confidence_factor),
        total_location_samples=len(fresh_samples),
        summaries=summaries,
        segments=segments,
        summary_ids=[s.id for s in summaries],
        has_user_feedback=any(bool(s.user_feedback) for s in summaries),
        is_locked=any(s.locked_at is not None for s in summaries),
        is_carried_forward=open_block.carried_gap or bool(carried_ids),
        carried_forward_summary_ids=carried_ids,
    )

    if open_block.kind == _TRAVEL:
        block.movement_type = _travel_movement(open_block)
        block.distance_m = _travel_distance(open_block)
        return block

    place = open_block.place
    if place is None:
        first_resolved = next((h.resolved for h in hours if h.resolved is not None), None)
        block.geohash7 = first_resolved.geohash7 if first_resolved else None
        return block

    block.location_label = place.label
    block.location_category = place.category
    block.inferred_place = place.inferred_place
    block.is_place_inferred = place.source == PlaceSource.INFERRED
    block.is_user_defined = place.source == PlaceSource.USER_DEFINED
    block.geohash7 = place.geohash7

    if place.alternatives and (place.is_ambiguous or not place.is_known):
        block.place_alternatives = list(place.alternatives)
        center = geo.centroid(fresh_samples)
        if center is None and place.latitude is not None:
            center = (place.latitude, place.longitude)
        if center is not None:
            block.latitude, block.longitude = center
    return block


def _travel_label(block: LocationBlock, next_block: LocationBlock | None) -> str:
    destination = None
    for segment in reversed(block.segments):
        if is_meaningful_label(segment.place_label):
            destination = segment.place_label
            break
    if destination is None and next_block is not None and next_block.type == BlockType.STATIONARY:
        if is_meaningful_label(next_block.location_label):
            destination = next_block.location_label

    movement = block.movement_type
    verb = movement.verb if movement is not None else "Travel"
    if destination:
        return f"{verb} → {destination}"
    if movement is not None and movement != MovementType.UNKNOWN:
        return verb
    return IN_TRANSIT_LABEL


def build_location_blocks(
    summaries: list[HourlySummary],
    places: PlaceSet,
    *,
    config: SynthesisConfig | None = None,
    carry_in: LocationBlock | None = None,
) -> list[LocationBlock]:
    """
    Group summaries into contiguous location blocks.

    Args:
        summaries: The day's hourly summaries, ordered by hour_start
        places: The user's saved and inferred places
        config: Synthesis configuration (built-in defaults when omitted)
        carry_in: Last block of a previous day, used to carry a known place
            into leading hours that have no location evidence

    Returns:
        Ordered, contiguous LocationBlocks

    Raises:
        MalformedInputError: Summaries overlap, run backwards, end before
            they start, or repeat an id
    """
    config = config or SynthesisConfig()
    _validate(summaries)
    if not summaries:
        return []

    tolerance = timedelta(minutes=config.blocks.carry_forward_tolerance_minutes)
    closed: list[LocationBlock] = []
    current: _OpenBlock | None = None

    def close_current() -> None:
        nonlocal current
        if current is not None:
            closed.append(_close(current, config))
            current = None

    for summary in summaries:
        travel = _is_travel(summary, config)
        evidence = has_location_evidence(summary)
        resolved = resolve_summary(summary, places, config.places) if evidence and not travel else None

        # Missing time between the open block and this summary
        if current is not None and summary.hour_start > current.end:
            gap = summary.hour_start - current.end
            same_place = not travel and (resolved is None or current.matches_place(resolved))
            if current.kind == _UNKNOWN:
                current.end = summary.hour_start
            elif current.can_carry and same_place and gap <= tolerance:
                current.end = summary.hour_start
                current.carried_gap = True
            else:
                gap_start = current.end
                close_current()
                current = _OpenBlock(
                    kind=_UNKNOWN,
                    signature=_UNKNOWN,
                    start=gap_start,
                    end=summary.hour_start,
                    gap_id=f"gap-{_epoch_ms(gap_start)}",
                )

        if travel:
            if current is not None and current.accepts_travel(summary.movement_type):
                current.extend(_Hour(summary, None))
                continue
            close_current()
            current = _OpenBlock(
                kind=_TRAVEL,
                signature=f"travel:{(summary.movement_type or MovementType.UNKNOWN).value}",
                start=summary.hour_start,
                end=summary.hour_end,
                movement=summary.movement_type,
                hours=[_Hour(summary, None)],
            )
            continue

        if resolved is None:
            if current is not None and current.can_carry:
                current.extend(_Hour(summary, None, carried=True))
                continue
            if current is not None and current.kind == _UNKNOWN:
                current.extend(_Hour(summary, None))
                continue
            if current is None:
                current = _carry_in_block(carry_in, summary, tolerance)
                if current is not None:
                    current.extend(_Hour(summary, None, carried=True))
                    continue
            close_current()
            current = _OpenBlock(
                kind=_UNKNOWN,
                signature=_UNKNOWN,
                start=summary.hour_start,
                end=summary.hour_end,
                hours=[_Hour(summary, None)],
            )
            continue

        if current is not None and current.matches_place(resolved):
            current.extend(_Hour(summary, resolved))
            continue

        close_current()
        known = resolved.is_known
        current = _OpenBlock(
            kind=_STATIONARY if known else _UNKNOWN,
            signature=resolved.key,
            start=summary.hour_start,
            end=summary.hour_end,
            place=resolved,
            hours=[_Hour(summary, resolved)],
        )

    close_current()

    blocks = []
    for index, block in enumerate(closed):
        if block.type == BlockType.TRAVEL:
            next_block = closed[index + 1] if index + 1 < len(closed) else None
            block = replace(block, location_label=_travel_label(block, next_block))
        blocks.append(block)

    logger.info(
        "location_blocks_built",
        summaries=len(summaries),
        blocks=len(blocks),
        carried=sum(1 for b in blocks if b.is_carried_forward),
    )
    return blocks
