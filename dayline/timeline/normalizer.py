"""
Tool: Timeline Normalizer
Purpose: Merge block app usage and auxiliary events into one ordered feed

Steps:
    1. One "app" row per app session inside each block
    2. One row per auxiliary record (email, chat, meeting, call, SMS, website)
    3. Scheduled calendar entries, paired with their actual counterpart
    4. Order by start (at ordering_granularity_minutes), then kind priority
    5. Overlap sweep over sorted boundaries
    6. is_past against the caller's "now"

Usage:
    from dayline.timeline.normalizer import build_timeline

    events = build_timeline(blocks, auxiliary, now=datetime.now(timezone.utc))
"""

from __future__ import annotations

import heapq
from bisect import bisect_right
from datetime import datetime, timedelta

from dayline.config_models import SynthesisConfig
from dayline.errors import MalformedInputError
from dayline.logging_config import get_logger
from dayline.models import LocationBlock
from dayline.timeline.classification import (
    classify_productivity,
    is_work_context,
    normalize_category,
)
from dayline.timeline.events import (
    AuxiliaryEvents,
    CalendarEntry,
    ProductivityFlag,
    TimelineEvent,
    TimelineEventKind,
)


logger = get_logger(__name__)

# Calendar entries generated by the activity pipeline rather than the user
DERIVED_CALENDAR_KINDS = {
    "session_block",
    "travel",
    "commute",
    "location_block",
    "location_inferred",
    "screen_time",
    "unknown_gap",
    "pattern_gap",
    "evidence_block",
}


def _duration(start: datetime, end: datetime) -> float:
    return round(max(0.0, (end - start).total_seconds() / 60.0), 2)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


class _BlockIndex:
    """Finds the block whose [start, end) contains a moment."""

    def __init__(self, blocks: list[LocationBlock]):
        self.blocks = blocks
        self.starts = [b.start_time for b in blocks]

    def owner(self, moment: datetime) -> LocationBlock | None:
        index = bisect_right(self.starts, moment) - 1
        if index < 0:
            return None
        block = self.blocks[index]
        if block.contains(moment):
            return block
        # Closed upper bound for the final block
        if index == len(self.blocks) - 1 and moment == block.end_time:
            return block
        return None


def _summary_ids_at(block: LocationBlock | None, moment: datetime) -> list[str]:
    if block is None:
        return []
    for summary in block.summaries:
        if summary.hour_start <= moment < summary.hour_end:
            return [summary.id]
    return []


def _check_interval(kind: str, record_id: str, start: datetime, end: datetime | None) -> None:
    if end is not None and end < start:
        logger.warning("malformed_auxiliary_event", kind=kind, record_id=record_id)
        raise MalformedInputError(
            f"{kind} {record_id} ends before it starts",
            kind=kind,
            record_id=record_id,
            start_time=start.isoformat(),
            end_time=end.isoformat(),
        )


def _validate_auxiliary(auxiliary: AuxiliaryEvents) -> None:
    for meeting in auxiliary.meetings:
        _check_interval("meeting", meeting.id, meeting.start_time, meeting.end_time)
    for call in auxiliary.calls:
        _check_interval("call", call.id, call.start_time, call.end_time)
    for visit in auxiliary.websites:
        _check_interval("website", visit.id, visit.start_time, visit.end_time)
    for entry in auxiliary.scheduled + auxiliary.actuals:
        _check_interval("calendar", entry.id, entry.start_time, entry.end_time)


class _TimelineBuilder:
    def __init__(self, blocks: list[LocationBlock], config: SynthesisConfig):
        self.config = config
        self.index = _BlockIndex(blocks)
        self.events: list[TimelineEvent] = []
        self.message_duration = timedelta(minutes=config.timeline.message_duration_minutes)

    def add(
        self,
        event_id: str,
        kind: TimelineEventKind,
        title: str | None,
        start: datetime,
        end: datetime,
        *,
        subtitle: str | None = None,
        category: str | None = None,
        app_name: str | None = None,
        block: LocationBlock | None = None,
        **extra,
    ) -> TimelineEvent:
        classification = self.config.classification
        owner = block or self.index.owner(start)
        normalized = normalize_category(category, classification, app_name)
        event = TimelineEvent(
            id=event_id,
            kind=kind,
            kind_label=kind.label,
            title=title or kind.label,
            subtitle=subtitle,
            start_time=start,
            end_time=end,
            duration_minutes=_duration(start, end),
            app_category=normalized,
            productivity=classify_productivity(
                normalized, is_work_context(owner, classification), classification
            ),
            block_id=owner.id if owner else None,
            summary_ids=_summary_ids_at(owner, start),
            **extra,
        )
        self.events.append(event)
        return event

    def add_app_sessions(self) -> None:
        for block in self.index.blocks:
            for app in block.apps:
                for session in app.sessions:
                    self.add(
                        f"app-{app.app_id}-{int(session.start_time.timestamp() * 1000)}",
                        TimelineEventKind.APP,
                        app.display_name,
                        session.start_time,
                        session.end_time,
                        subtitle=app.category,
                        category=app.category,
                        app_name=app.display_name,
                        block=block,
                        app_id=app.app_id,
                    )

    def add_communications(self, auxiliary: AuxiliaryEvents) -> None:
        for email in auxiliary.emails:
            count = len(email.recipients)
            self.add(
                f"email-{email.id}",
                TimelineEventKind.EMAIL,
                email.subject,
                email.sent_at,
                email.sent_at + self.message_duration,
                subtitle=_plural(count, "Recipient") if count else None,
                category=email.app_category,
            )
        for chat in auxiliary.chats:
            self.add(
                f"chat-{chat.id}",
                TimelineEventKind.SLACK_MESSAGE,
                chat.text,
                chat.sent_at,
                chat.sent_at + self.message_duration,
                subtitle=f"#{chat.channel}" if chat.channel else None,
                category=chat.app_category,
            )
        for meeting in auxiliary.meetings:
            count = len(meeting.attendees)
            self.add(
                f"meeting-{meeting.id}",
                TimelineEventKind.MEETING,
                meeting.title,
                meeting.start_time,
                meeting.end_time,
                subtitle=_plural(count, "Attendee") if count else meeting.location,
                category=meeting.app_category,
            )
        for call in auxiliary.calls:
            self.add(
                f"call-{call.id}",
                TimelineEventKind.PHONE_CALL,
                call.contact,
                call.start_time,
                call.end_time,
                subtitle=call.direction.capitalize() if call.direction else None,
                category=call.app_category,
            )
        for sms in auxiliary.sms:
            self.add(
                f"sms-{sms.id}",
                TimelineEventKind.SMS,
                sms.contact,
                sms.sent_at,
                sms.sent_at + self.message_duration,
                subtitle=sms.direction.capitalize() if sms.direction else None,
                category=sms.app_category,
            )
        for visit in auxiliary.websites:
            self.add(
                f"web-{visit.id}",
                TimelineEventKind.WEBSITE,
                visit.title or visit.domain,
                visit.start_time,
                visit.end_time or visit.start_time + self.message_duration,
                subtitle=visit.domain,
                category=visit.category,
                app_name=visit.domain,
            )

    def _is_derived(self, entry: CalendarEntry) -> bool:
        if entry.source and entry.source in self.config.timeline.skip_calendar_sources:
            return True
        return bool(entry.kind) and entry.kind in DERIVED_CALENDAR_KINDS

    def add_calendar(self, auxiliary: AuxiliaryEvents) -> None:
        planned = [e for e in auxiliary.scheduled if not self._is_derived(e)]
        actuals = [e for e in auxiliary.actuals if not self._is_derived(e)]
        planned_ids = {e.id for e in planned}

        by_planned_id = {}
        for actual in actuals:
            if actual.planned_event_id in planned_ids:
                by_planned_id.setdefault(actual.planned_event_id, actual)
        consumed = {a.id for a in by_planned_id.values()}

        for entry in planned:
            match = by_planned_id.get(entry.id)
            if match is None:
                match = self._find_actual(entry, actuals, consumed)
                if match is not None:
                    consumed.add(match.id)
            self.add(
                f"cal-{entry.id}",
                TimelineEventKind.SCHEDULED,
                entry.title,
                entry.start_time,
                entry.end_time,
                subtitle=entry.location,
                category=entry.category,
                scheduled_event=entry,
                actual_event=match,
            )

        for actual in actuals:
            if actual.id in consumed:
                continue
            self.add(
                f"cal-actual-{actual.id}",
                TimelineEventKind.MEETING,
                actual.title,
                actual.start_time,
                actual.end_time,
                subtitle=actual.location,
                category=actual.category,
                actual_event=actual,
            )

    def _find_actual(
        self,
        entry: CalendarEntry,
        actuals: list[CalendarEntry],
        consumed: set[str],
    ) -> CalendarEntry | None:
        owner = self.index.owner(entry.start_time)
        for actual in actuals:
            if actual.id in consumed or actual.planned_event_id:
                continue
            if not (actual.start_time < entry.end_time and actual.end_time > entry.start_time):
                continue
            actual_owner = self.index.owner(actual.start_time)
            if owner is not None and actual_owner is not None and owner.id != actual_owner.id:
                continue
            same_title = actual.title == entry.title
            same_category = entry.category is not None and entry.category == actual.category
            if same_title or same_category:
                return actual
        return None


def _ordering_key(event: TimelineEvent, config: SynthesisConfig):
    granularity = config.timeline.ordering_granularity_minutes
    seconds = event.start_time.timestamp()
    bucket = int(seconds // (granularity * 60)) if granularity > 0 else seconds
    priority = config.timeline.kind_priority.get(event.kind.value, len(config.timeline.kind_priority))
    return (bucket, priority, event.start_time, event.id)


def detect_overlaps(events: list[TimelineEvent]) -> None:
    """
    Fill each event's overlaps with the ids of events whose [start, end) intersects it.

    Sweep in start order with a heap of active end times; O(n log n + k)
    for k overlapping pairs. Zero-length events never overlap anything.
    """
    found: dict[str, set[str]] = {e.id: set() for e in events}
    active: list[tuple[datetime, int, TimelineEvent]] = []
    ordered = sorted(events, key=lambda e: (e.start_time, e.end_time, e.id))

    for seq, event in enumerate(ordered):
        while active and active[0][0] <= event.start_time:
            heapq.heappop(active)
        if event.end_time <= event.start_time:
            continue
        for _, _, other in active:
            if other.id != event.id:
                found[event.id].add(other.id)
                found[other.id].add(event.id)
        heapq.heappush(active, (event.end_time, seq, event))

    for event in events:
        event.overlaps = sorted(found[event.id])


def build_timeline(
    blocks: list[LocationBlock],
    auxiliary: AuxiliaryEvents | None = None,
    now: datetime | None = None,
    *,
    config: SynthesisConfig | None = None,
) -> list[TimelineEvent]:
    """
    Build the unified, ordered timeline for one day.

    Args:
        blocks: Location blocks from build_location_blocks
        auxiliary: Email/chat/meeting/call/SMS/website/calendar records
        now: Evaluation time for is_past; None marks every row as past
        config: Synthesis configuration (built-in defaults when omitted)

    Returns:
        TimelineEvents in feed order with overlaps filled in

    Raises:
        MalformedInputError: An auxiliary record ends before it starts
    """
    config = config or SynthesisConfig()
    auxiliary = auxiliary or AuxiliaryEvents()
    _validate_auxiliary(auxiliary)

    builder = _TimelineBuilder(blocks, config)
    builder.add_app_sessions()
    builder.add_communications(auxiliary)
    builder.add_calendar(auxiliary)
    events = builder.events

    seen: set[str] = set()
    for event in events:
        if event.id in seen:
            logger.warning("malformed_auxiliary_event", reason="duplicate_id", event_id=event.id)
            raise MalformedInputError(f"Duplicate timeline event id {event.id}", event_id=event.id)
        seen.add(event.id)

    events.sort(key=lambda e: _ordering_key(e, config))
    detect_overlaps(events)
    for event in events:
        event.is_past = True if now is None else event.end_time <= now

    logger.info(
        "timeline_built",
        events=len(events),
        unproductive=sum(1 for e in events if e.productivity == ProductivityFlag.UNPRODUCTIVE),
        overlapping=sum(1 for e in events if e.overlaps),
    )
    return events
