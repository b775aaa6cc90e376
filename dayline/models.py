"""
Tool: Synthesis Models
Purpose: Data structures for hourly summaries, places and location blocks

Usage:
    from dayline.models import (
        HourlySummary,
        LocationSample,
        RawAppSession,
        SavedPlace,
        InferredPlace,
        PlaceSet,
        ResolvedPlace,
        LocationBlock,
    )

Hourly summaries are produced upstream and are read-only here. Location
blocks are built fresh on every synthesis pass; after construction only
their label/category may be refreshed (see LocationBlock.relabel).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from dayline import UNKNOWN_LOCATION_LABEL

if TYPE_CHECKING:
    from dayline.timeline.events import TimelineEvent


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 string (or pass a datetime through)."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


# =============================================================================
# Vocabularies
# =============================================================================


class BlockType(str, Enum):
    """Location block type."""

    STATIONARY = "stationary"
    TRAVEL = "travel"


class MovementType(str, Enum):
    """How the user moved during a travel block."""

    WALKING = "walking"
    RUNNING = "running"
    CYCLING = "cycling"
    DRIVING = "driving"
    TRANSIT = "transit"
    STATIONARY = "stationary"
    UNKNOWN = "unknown"

    @property
    def verb(self) -> str:
        verbs = {
            "walking": "Walking",
            "running": "Running",
            "cycling": "Cycling",
            "driving": "Driving",
            "transit": "Transit",
        }
        return verbs.get(self.value, "Travel")

    @property
    def is_concrete(self) -> bool:
        return self not in (MovementType.STATIONARY, MovementType.UNKNOWN)


class ActivityType(str, Enum):
    """Inferred activity for an hour or segment."""

    WORKOUT = "workout"
    SLEEP = "sleep"
    COMMUTE = "commute"
    DEEP_WORK = "deep_work"
    COLLABORATIVE_WORK = "collaborative_work"
    MEETING = "meeting"
    DISTRACTED_TIME = "distracted_time"
    LEISURE = "leisure"
    EXTENDED_SOCIAL = "extended_social"
    SOCIAL_BREAK = "social_break"
    PERSONAL_TIME = "personal_time"
    AWAY_FROM_DESK = "away_from_desk"
    OFFLINE_ACTIVITY = "offline_activity"
    MIXED_ACTIVITY = "mixed_activity"


class PlaceSource(str, Enum):
    """Where a resolved label came from."""

    USER_DEFINED = "user_defined"
    INFERRED = "inferred"
    UNKNOWN = "unknown"


class InferredPlaceType(str, Enum):
    HOME = "home"
    WORK = "work"
    FREQUENT = "frequent"
    UNKNOWN = "unknown"


def _enum_or_none(enum_cls: type[Enum], value: Any) -> Any:
    if value is None or isinstance(value, enum_cls):
        return value
    return enum_cls(value)


def _enum_value(value: Enum | None) -> str | None:
    return value.value if value is not None else None


# =============================================================================
# Raw inputs
# =============================================================================


@dataclass
class LocationSample:
    """A single GPS fix."""

    latitude: float | None
    longitude: float | None
    recorded_at: datetime | None = None
    accuracy_m: float | None = None

    @property
    def is_valid(self) -> bool:
        if self.latitude is None or self.longitude is None:
            return False
        try:
            lat = float(self.latitude)
            lng = float(self.longitude)
        except (TypeError, ValueError):
            return False
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "recorded_at": format_datetime(self.recorded_at),
            "accuracy_m": self.accuracy_m,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocationSample":
        data = data.copy()
        data["recorded_at"] = parse_datetime(data.get("recorded_at"))
        return cls(**data)


@dataclass
class RawAppSession:
    """One foreground session of an app as reported by the OS."""

    app_id: str
    display_name: str
    category: str | None
    start_time: datetime
    end_time: datetime

    @property
    def minutes(self) -> float:
        return minutes_between(self.start_time, self.end_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "app_id": self.app_id,
            "display_name": self.display_name,
            "category": self.category,
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawAppSession":
        data = data.copy()
        data.setdefault("display_name", data.get("app_id", ""))
        data.setdefault("category", None)
        data["start_time"] = parse_datetime(data["start_time"])
        data["end_time"] = parse_datetime(data["end_time"])
        return cls(**data)


@dataclass
class ActivitySegment:
    """A sub-hour activity segment inferred upstream."""

    id: str
    start_time: datetime
    end_time: datetime
    activity: ActivityType | None = None
    movement_type: MovementType | None = None
    distance_m: float | None = None
    place_label: str | None = None

    @property
    def minutes(self) -> float:
        return max(0.0, minutes_between(self.start_time, self.end_time))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
            "activity": _enum_value(self.activity),
            "movement_type": _enum_value(self.movement_type),
            "distance_m": self.distance_m,
            "place_label": self.place_label,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivitySegment":
        data = data.copy()
        data["start_time"] = parse_datetime(data["start_time"])
        data["end_time"] = parse_datetime(data["end_time"])
        data["activity"] = _enum_or_none(ActivityType, data.get("activity"))
        data["movement_type"] = _enum_or_none(MovementType, data.get("movement_type"))
        return cls(**data)


@dataclass
class PlaceAlternative:
    """A candidate place near the user's location, for disambiguation."""

    place_name: str
    place_id: str | None = None
    vicinity: str | None = None
    types: list[str] = field(default_factory=list)
    latitude: float | None = None
    longitude: float | None = None
    distance_m: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "place_name": self.place_name,
            "place_id": self.place_id,
            "vicinity": self.vicinity,
            "types": list(self.types),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "distance_m": self.distance_m,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaceAlternative":
        data = data.copy()
        data["types"] = list(data.get("types") or [])
        return cls(**data)


@dataclass
class HourlySummary:
    """
    One hour of raw signal, produced upstream.

    Feedback and lock flags are owned by the feedback store; they are
    OR-reduced into blocks but never written here.
    """

    id: str
    hour_start: datetime
    hour_end: datetime | None = None
    user_id: str | None = None

    # Location evidence
    location_samples: list[LocationSample] = field(default_factory=list)
    geohash7: str | None = None
    nearby_places: list[PlaceAlternative] = field(default_factory=list)

    # Usage and activity
    app_sessions: list[RawAppSession] = field(default_factory=list)
    segments: list[ActivitySegment] = field(default_factory=list)
    primary_activity: ActivityType | None = None
    movement_type: MovementType | None = None
    distance_m: float | None = None

    # Evidence quality and feedback
    confidence_score: float = 0.0
    user_feedback: str | None = None
    locked_at: datetime | None = None

    def __post_init__(self):
        if self.hour_end is None:
            self.hour_end = self.hour_start + timedelta(hours=1)

    @property
    def duration_minutes(self) -> float:
        return minutes_between(self.hour_start, self.hour_end)

    @property
    def valid_samples(self) -> list[LocationSample]:
        return [s for s in self.location_samples if s.is_valid]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "hour_start": format_datetime(self.hour_start),
            "hour_end": format_datetime(self.hour_end),
            "user_id": self.user_id,
            "location_samples": [s.to_dict() for s in self.location_samples],
            "geohash7": self.geohash7,
            "nearby_places": [p.to_dict() for p in self.nearby_places],
            "app_sessions": [s.to_dict() for s in self.app_sessions],
            "segments": [s.to_dict() for s in self.segments],
            "primary_activity": _enum_value(self.primary_activity),
            "movement_type": _enum_value(self.movement_type),
            "distance_m": self.distance_m,
            "confidence_score": self.confidence_score,
            "user_feedback": self.user_feedback,
            "locked_at": format_datetime(self.locked_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HourlySummary":
        data = data.copy()
        for field_name in ["hour_start", "hour_end", "locked_at"]:
            data[field_name] = parse_datetime(data.get(field_name))
        data["location_samples"] = [
            LocationSample.from_dict(s) for s in data.get("location_samples") or []
        ]
        data["nearby_places"] = [
            PlaceAlternative.from_dict(p) for p in data.get("nearby_places") or []
        ]
        data["app_sessions"] = [RawAppSession.from_dict(s) for s in data.get("app_sessions") or []]
        data["segments"] = [ActivitySegment.from_dict(s) for s in data.get("segments") or []]
        data["primary_activity"] = _enum_or_none(ActivityType, data.get("primary_activity"))
        data["movement_type"] = _enum_or_none(MovementType, data.get("movement_type"))
        return cls(**data)


# =============================================================================
# Places
# =============================================================================


@dataclass
class SavedPlace:
    """A place the user explicitly saved (label + radius)."""

    id: str
    label: str
    category: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    radius_m: float = 100.0
    geohash7: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "category": self.category,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius_m": self.radius_m,
            "geohash7": self.geohash7,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SavedPlace":
        return cls(**data)


@dataclass
class InferredPlace:
    """A place inferred from history (home/work/frequent cluster)."""

    geohash7: str
    inferred_type: InferredPlaceType
    confidence: float
    suggested_label: str
    latitude: float | None = None
    longitude: float | None = None
    existing_label: str | None = None
    lookup_name: str | None = None
    reasoning: str = ""
    stats: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "geohash7": self.geohash7,
            "inferred_type": self.inferred_type.value,
            "confidence": self.confidence,
            "suggested_label": self.suggested_label,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "existing_label": self.existing_label,
            "lookup_name": self.lookup_name,
            "reasoning": self.reasoning,
            "stats": dict(self.stats),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InferredPlace":
        data = data.copy()
        data["inferred_type"] = InferredPlaceType(data.get("inferred_type", "unknown"))
        data["stats"] = dict(data.get("stats") or {})
        return cls(**data)


@dataclass
class PlaceSet:
    """The user's saved and inferred places, read-only during synthesis."""

    saved: list[SavedPlace] = field(default_factory=list)
    inferred: list[InferredPlace] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "saved": [p.to_dict() for p in self.saved],
            "inferred": [p.to_dict() for p in self.inferred],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PlaceSet":
        data = data or {}
        return cls(
            saved=[SavedPlace.from_dict(p) for p in data.get("saved") or []],
            inferred=[InferredPlace.from_dict(p) for p in data.get("inferred") or []],
        )


@dataclass
class ResolvedPlace:
    """Result of resolving one location sample against the place set."""

    source: PlaceSource
    label: str
    category: str | None = None
    confidence: float = 0.0
    place_id: str | None = None
    geohash7: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    inferred_place: InferredPlace | None = None
    alternatives: list[PlaceAlternative] = field(default_factory=list)
    distance_m: float | None = None
    is_ambiguous: bool = False

    @property
    def key(self) -> str:
        """Grouping key: consecutive hours with equal keys share a block."""
        if self.source == PlaceSource.USER_DEFINED:
            return f"saved:{self.place_id}"
        if self.source == PlaceSource.INFERRED:
            return f"inferred:{self.place_id}"
        return "unknown"

    @property
    def is_known(self) -> bool:
        return self.source != PlaceSource.UNKNOWN

    @classmethod
    def unknown(
        cls,
        geohash7: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        alternatives: list[PlaceAlternative] | None = None,
    ) -> "ResolvedPlace":
        return cls(
            source=PlaceSource.UNKNOWN,
            label=UNKNOWN_LOCATION_LABEL,
            geohash7=geohash7,
            latitude=latitude,
            longitude=longitude,
            alternatives=list(alternatives or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "label": self.label,
            "category": self.category,
            "confidence": self.confidence,
            "place_id": self.place_id,
            "geohash7": self.geohash7,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "inferred_place": self.inferred_place.to_dict() if self.inferred_place else None,
            "alternatives": [a.to_dict() for a in self.alternatives],
            "distance_m": self.distance_m,
            "is_ambiguous": self.is_ambiguous,
        }


# =============================================================================
# Blocks
# =============================================================================


@dataclass
class AppSession:
    """A contiguous stretch of one app's usage inside a block."""

    start_time: datetime
    end_time: datetime
    minutes: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
            "minutes": self.minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppSession":
        return cls(
            start_time=parse_datetime(data["start_time"]),
            end_time=parse_datetime(data["end_time"]),
            minutes=data.get("minutes", 0.0),
        )


@dataclass
class BlockAppUsage:
    """Aggregated usage of one app across a block."""

    app_id: str
    display_name: str
    category: str | None
    total_minutes: float
    sessions: list[AppSession] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "app_id": self.app_id,
            "display_name": self.display_name,
            "category": self.category,
            "total_minutes": self.total_minutes,
            "sessions": [s.to_dict() for s in self.sessions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockAppUsage":
        data = data.copy()
        data["sessions"] = [AppSession.from_dict(s) for s in data.get("sessions") or []]
        return cls(**data)


@dataclass
class LocationBlock:
    """
    A maximal run of consecutive hours at one place (or in one transit mode).

    Built by dayline.blocks.builder; treat as read-only afterwards.
    """

    id: str
    type: BlockType
    location_label: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int

    # Travel
    movement_type: MovementType | None = None
    distance_m: float | None = None

    # Location
    location_category: str | None = None
    inferred_place: InferredPlace | None = None
    is_place_inferred: bool = False
    geohash7: str | None = None
    is_user_defined: bool = False

    # Content
    apps: list[BlockAppUsage] = field(default_factory=list)
    total_screen_minutes: float = 0.0
    dominant_activity: ActivityType | None = None

    # Evidence
    confidence_score: float = 0.0
    total_location_samples: int = 0

    # Underlying data
    summaries: list[HourlySummary] = field(default_factory=list)
    segments: list[ActivitySegment] = field(default_factory=list)

    # Feedback routing
    summary_ids: list[str] = field(default_factory=list)
    has_user_feedback: bool = False
    is_locked: bool = False

    # Disambiguation (set only while pending)
    place_alternatives: list[PlaceAlternative] | None = None
    latitude: float | None = None
    longitude: float | None = None

    # Carry-forward
    is_carried_forward: bool = False
    carried_forward_summary_ids: list[str] = field(default_factory=list)

    # Merged feed rows
    timeline_events: list["TimelineEvent"] | None = None

    def contains(self, moment: datetime) -> bool:
        return self.start_time <= moment < self.end_time

    def relabel(
        self,
        label: str,
        category: str | None = None,
        user_defined: bool = True,
    ) -> "LocationBlock":
        """Return a copy with a new label/category; time boundaries never change."""
        return replace(
            self,
            location_label=label,
            location_category=category if category is not None else self.location_category,
            is_user_defined=user_defined,
            place_alternatives=None if user_defined else self.place_alternatives,
        )

    def with_timeline(self, events: list["TimelineEvent"]) -> "LocationBlock":
        return replace(self, timeline_events=list(events))

    def to_dict(self, include_summaries: bool = False) -> dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type.value,
            "movement_type": _enum_value(self.movement_type),
            "distance_m": self.distance_m,
            "location_label": self.location_label,
            "location_category": self.location_category,
            "inferred_place": self.inferred_place.to_dict() if self.inferred_place else None,
            "is_place_inferred": self.is_place_inferred,
            "geohash7": self.geohash7,
            "is_user_defined": self.is_user_defined,
            "start_time": format_datetime(self.start_time),
            "end_time": format_datetime(self.end_time),
            "duration_minutes": self.duration_minutes,
            "apps": [a.to_dict() for a in self.apps],
            "total_screen_minutes": self.total_screen_minutes,
            "dominant_activity": _enum_value(self.dominant_activity),
            "confidence_score": self.confidence_score,
            "total_location_samples": self.total_location_samples,
            "segments": [s.to_dict() for s in self.segments],
            "summary_ids": list(self.summary_ids),
            "has_user_feedback": self.has_user_feedback,
            "is_locked": self.is_locked,
            "place_alternatives": (
                [a.to_dict() for a in self.place_alternatives]
                if self.place_alternatives is not None
                else None
            ),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_carried_forward": self.is_carried_forward,
            "carried_forward_summary_ids": list(self.carried_forward_summary_ids),
            "timeline_events": (
                [e.to_dict() for e in self.timeline_events]
                if self.timeline_events is not None
                else None
            ),
        }
        if include_summaries:
            data["summaries"] = [s.to_dict() for s in self.summaries]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocationBlock":
        """
        Rebuild a block from to_dict() output, e.g. a previous day's last block
        passed back as carry-in. Feed rows and unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in data.items() if k in known and k != "timeline_events"}
        data["type"] = BlockType(data.get("type", BlockType.STATIONARY.value))
        data["start_time"] = parse_datetime(data["start_time"])
        data["end_time"] = parse_datetime(data["end_time"])
        data.setdefault(
            "duration_minutes", round(minutes_between(data["start_time"], data["end_time"]))
        )
        data["movement_type"] = _enum_or_none(MovementType, data.get("movement_type"))
        data["dominant_activity"] = _enum_or_none(ActivityType, data.get("dominant_activity"))
        if data.get("inferred_place"):
            data["inferred_place"] = InferredPlace.from_dict(data["inferred_place"])
        data["apps"] = [BlockAppUsage.from_dict(a) for a in data.get("apps") or []]
        data["segments"] = [ActivitySegment.from_dict(s) for s in data.get("segments") or []]
        data["summaries"] = [HourlySummary.from_dict(s) for s in data.get("summaries") or []]
        if data.get("place_alternatives") is not None:
            data["place_alternatives"] = [
                PlaceAlternative.from_dict(a) for a in data["place_alternatives"]
            ]
        return cls(**data)


@dataclass
class DayTimeline:
    """One day's blocks and feed rows; the unit of history for pattern analysis."""

    date: date
    blocks: list[LocationBlock] = field(default_factory=list)
    events: list["TimelineEvent"] = field(default_factory=list)
    user_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "user_id": self.user_id,
            "blocks": [b.to_dict() for b in self.blocks],
            "events": [e.to_dict() for e in self.events],
        }
