"""
Timeline event models.

Every source (app sessions, email, chat, meetings, calls, SMS, websites,
calendar) normalizes into one TimelineEvent row. Auxiliary inputs are
explicit per-kind records rather than a loose "meta" dict, so each kind
carries only the fields it actually has.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from dayline.models import format_datetime, parse_datetime


class TimelineEventKind(str, Enum):
    APP = "app"
    EMAIL = "email"
    SLACK_MESSAGE = "slack_message"
    MEETING = "meeting"
    PHONE_CALL = "phone_call"
    SMS = "sms"
    WEBSITE = "website"
    SCHEDULED = "scheduled"

    @property
    def label(self) -> str:
        return KIND_LABELS[self]


KIND_LABELS = {
    TimelineEventKind.APP: "App",
    TimelineEventKind.EMAIL: "E-Mail",
    TimelineEventKind.SLACK_MESSAGE: "Slack Message",
    TimelineEventKind.MEETING: "Meeting",
    TimelineEventKind.PHONE_CALL: "Phone Call",
    TimelineEventKind.SMS: "SMS",
    TimelineEventKind.WEBSITE: "Website",
    TimelineEventKind.SCHEDULED: "Scheduled",
}


class ProductivityFlag(str, Enum):
    PRODUCTIVE = "productive"
    NEUTRAL = "neutral"
    UNPRODUCTIVE = "unproductive"


# =============================================================================
# Auxiliary records
# =============================================================================


class _Record:
    """Shared dict conversion for auxiliary records."""

    datetime_fields: ClassVar[tuple[str, ...]] = ()

    def to_dict(self) -> dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = format_datetime(value)
            elif isinstance(value, list):
                value = list(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        data = data.copy()
        for name in cls.datetime_fields:
            if name in data:
                data[name] = parse_datetime(data[name])
        return cls(**data)


@dataclass
class EmailRecord(_Record):
    id: str
    sent_at: datetime
    subject: str | None = None
    direction: str = "sent"
    sender: str | None = None
    recipients: list[str] = field(default_factory=list)
    app_category: str | None = None

    datetime_fields: ClassVar[tuple[str, ...]] = ("sent_at",)


@dataclass
class ChatMessageRecord(_Record):
    id: str
    sent_at: datetime
    channel: str | None = None
    text: str | None = None
    sender: str | None = None
    app_category: str | None = None

    datetime_fields: ClassVar[tuple[str, ...]] = ("sent_at",)


@dataclass
class MeetingRecord(_Record):
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    attendees: list[str] = field(default_factory=list)
    location: str | None = None
    app_category: str | None = None

    datetime_fields: ClassVar[tuple[str, ...]] = ("start_time", "end_time")


@dataclass
class CallRecord(_Record):
    id: str
    start_time: datetime
    end_time: datetime
    contact: str | None = None
    direction: str = "outgoing"
    app_category: str | None = None

    datetime_fields: ClassVar[tuple[str, ...]] = ("start_time", "end_time")


@dataclass
class SmsRecord(_Record):
    id: str
    sent_at: datetime
    contact: str | None = None
    direction: str = "sent"
    app_category: str | None = None

    datetime_fields: ClassVar[tuple[str, ...]] = ("sent_at",)


@dataclass
class WebsiteVisitRecord(_Record):
    id: str
    domain: str
    start_time: datetime
    end_time: datetime | None = None
    title: str | None = None
    category: str | None = None

    datetime_fields: ClassVar[tuple[str, ...]] = ("start_time", "end_time")


@dataclass
class CalendarEntry(_Record):
    """A planned (scheduled) or actual calendar event."""

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    category: str | None = None
    location: str | None = None
    source: str | None = None
    kind: str | None = None
    # Set on actuals that record which planned entry they fulfil
    planned_event_id: str | None = None

    datetime_fields: ClassVar[tuple[str, ...]] = ("start_time", "end_time")


@dataclass
class AuxiliaryEvents:
    """All non-location event sources for one day."""

    emails: list[EmailRecord] = field(default_factory=list)
    chats: list[ChatMessageRecord] = field(default_factory=list)
    meetings: list[MeetingRecord] = field(default_factory=list)
    calls: list[CallRecord] = field(default_factory=list)
    sms: list[SmsRecord] = field(default_factory=list)
    websites: list[WebsiteVisitRecord] = field(default_factory=list)
    scheduled: list[CalendarEntry] = field(default_factory=list)
    actuals: list[CalendarEntry] = field(default_factory=list)

    _RECORD_TYPES: ClassVar[dict[str, type]] = {
        "emails": EmailRecord,
        "chats": ChatMessageRecord,
        "meetings": MeetingRecord,
        "calls": CallRecord,
        "sms": SmsRecord,
        "websites": WebsiteVisitRecord,
        "scheduled": CalendarEntry,
        "actuals": CalendarEntry,
    }

    def to_dict(self) -> dict[str, Any]:
        return {name: [r.to_dict() for r in getattr(self, name)] for name in self._RECORD_TYPES}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AuxiliaryEvents":
        data = data or {}
        return cls(
            **{
                name: [record_type.from_dict(r) for r in data.get(name) or []]
                for name, record_type in cls._RECORD_TYPES.items()
            }
        )


# =============================================================================
# Unified row
# =============================================================================


@dataclass
class TimelineEvent:
    """One row of the unified timeline feed."""

    id: str
    kind: TimelineEventKind
    kind_label: str
    title: str
    start_time: datetime
    end_time: datetime
    duration_minutes: float
    subtitle: str | None = None
    app_id: str | None = None
    app_category: str | None = None
    productivity: ProductivityFlag = ProductivityFlag.NEUTRAL
    overlaps: list[str] = field(default_factory=list)
    is_past: bool = True
    scheduled_event: CalendarEntry | None = None
    actual_event: CalendarEntry | None = None
    block_id: str | None = None
    summary_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "kind_label": self.kind_label,
            "title": self.title,
            "subtitle": self.subtitle,
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
            "duration_minutes": self.duration_minutes,
            "app_id": self.app_id,
            "app_category": self.app_category,
            "productivity": self.productivity.value,
            "overlaps": list(self.overlaps),
            "is_past": self.is_past,
            "scheduled_event": self.scheduled_event.to_dict() if self.scheduled_event else None,
            "actual_event": self.actual_event.to_dict() if self.actual_event else None,
            "block_id": self.block_id,
            "summary_ids": list(self.summary_ids),
        }
