"""
Tool: Place Inference
Purpose: Infer home / work / frequent places from hourly location history

Heuristics:
    - Home: dominant overnight location (22:00-06:00), at least 2 overnight hours
    - Work: dominant weekday 09:00-17:00 location, at least 3 work hours
    - Frequent: seen on at least 2 distinct days
    - Everything else is reported as "unknown" with low confidence

Usage:
    from dayline.places.inference import infer_places_from_history

    result = infer_places_from_history(rows)
    for place in result.inferred_places:
        print(place.suggested_label, place.confidence)

Dependencies:
    - collections (stdlib)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dayline.errors import MalformedInputError
from dayline.logging_config import get_logger
from dayline.models import InferredPlace, InferredPlaceType, SavedPlace, parse_datetime
from dayline.places import geo
from dayline.places.resolver import PROMOTED_PLACE_RADIUS_M


logger = get_logger(__name__)

MIN_OVERNIGHT_HOURS_FOR_HOME = 2
MIN_WORK_HOURS_FOR_WORK = 3
MIN_DAYS_FOR_FREQUENT = 2

OVERNIGHT_START_HOUR = 22
OVERNIGHT_END_HOUR = 6
WORK_START_HOUR = 9
WORK_END_HOUR = 17

INFERRED_TYPE_CATEGORIES = {
    InferredPlaceType.HOME: "home",
    InferredPlaceType.WORK: "work",
}


@dataclass
class LocationHistoryRow:
    """One past hour at one geohash cell."""

    hour_start: datetime
    geohash7: str
    latitude: float | None = None
    longitude: float | None = None
    place_label: str | None = None
    lookup_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocationHistoryRow":
        data = data.copy()
        data["hour_start"] = parse_datetime(data["hour_start"])
        return cls(**data)


@dataclass
class GeohashCluster:
    geohash7: str
    total_hours: int = 0
    overnight_hours: int = 0
    work_hours: int = 0
    weekend_hours: int = 0
    days: set[str] = field(default_factory=set)
    latitude: float | None = None
    longitude: float | None = None
    located_hours: int = 0
    existing_label: str | None = None
    lookup_name: str | None = None

    @property
    def distinct_days(self) -> int:
        return len(self.days)

    def add(self, row: LocationHistoryRow) -> None:
        hour = row.hour_start.hour
        is_weekend = row.hour_start.weekday() >= 5

        self.total_hours += 1
        if hour >= OVERNIGHT_START_HOUR or hour < OVERNIGHT_END_HOUR:
            self.overnight_hours += 1
        if not is_weekend and WORK_START_HOUR <= hour < WORK_END_HOUR:
            self.work_hours += 1
        if is_weekend:
            self.weekend_hours += 1
        self.days.add(row.hour_start.date().isoformat())

        if geo.is_valid_coordinate(row.latitude, row.longitude):
            # Running average over hours that carried a centroid
            self.located_hours += 1
            n = self.located_hours
            if self.latitude is None:
                self.latitude, self.longitude = float(row.latitude), float(row.longitude)
            else:
                self.latitude = (self.latitude * (n - 1) + float(row.latitude)) / n
                self.longitude = (self.longitude * (n - 1) + float(row.longitude)) / n

        if row.place_label:
            self.existing_label = row.place_label
        if row.lookup_name:
            self.lookup_name = row.lookup_name


@dataclass
class PlaceInferenceResult:
    inferred_places: list[InferredPlace]
    total_geohashes: int = 0
    days_analyzed: int = 0
    hours_analyzed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "inferred_places": [p.to_dict() for p in self.inferred_places],
            "stats": {
                "total_geohashes": self.total_geohashes,
                "days_analyzed": self.days_analyzed,
                "hours_analyzed": self.hours_analyzed,
            },
        }


def build_clusters(rows: list[LocationHistoryRow]) -> dict[str, GeohashCluster]:
    clusters: dict[str, GeohashCluster] = {}
    for row in rows:
        if not geo.is_valid_geohash(row.geohash7):
            continue
        cluster = clusters.get(row.geohash7)
        if cluster is None:
            cluster = GeohashCluster(geohash7=row.geohash7)
            clusters[row.geohash7] = cluster
        cluster.add(row)
    return clusters


def _classify(
    cluster: GeohashCluster,
    home_geohash: str | None,
    work_geohash: str | None,
    home_assigned: bool,
    work_assigned: bool,
) -> tuple[InferredPlaceType, float, str, str]:
    lookup = cluster.lookup_name

    if cluster.existing_label:
        return InferredPlaceType.UNKNOWN, 1.0, cluster.existing_label, "User-defined place"

    if not home_assigned and cluster.overnight_hours >= MIN_OVERNIGHT_HOURS_FOR_HOME:
        ratio = cluster.overnight_hours / max(1, cluster.total_hours)
        if cluster.geohash7 == home_geohash:
            confidence = min(0.95, 0.6 + ratio * 0.35)
            reasoning = (
                f"Dominant overnight location: {cluster.overnight_hours}h overnight "
                f"({round(ratio * 100)}% of time here)"
            )
        else:
            confidence = min(0.85, 0.5 + ratio * 0.35)
            reasoning = f"{cluster.overnight_hours}h overnight across {cluster.distinct_days} days"
        return InferredPlaceType.HOME, confidence, "Home", reasoning

    if not work_assigned and cluster.work_hours >= MIN_WORK_HOURS_FOR_WORK:
        ratio = cluster.work_hours / max(1, cluster.total_hours)
        if cluster.geohash7 == work_geohash:
            confidence = min(0.90, 0.5 + ratio * 0.4)
            reasoning = (
                f"Dominant work-hours location: {cluster.work_hours}h during 9am-5pm weekdays"
            )
        else:
            confidence = min(0.80, 0.4 + ratio * 0.4)
            reasoning = f"{cluster.work_hours}h during work hours across {cluster.distinct_days} days"
        return InferredPlaceType.WORK, confidence, lookup or "Work", reasoning

    if cluster.distinct_days >= MIN_DAYS_FOR_FREQUENT:
        confidence = min(0.75, 0.35 + cluster.distinct_days * 0.1)
        reasoning = f"Visited {cluster.distinct_days} different days, {cluster.total_hours}h total"
        return InferredPlaceType.FREQUENT, confidence, lookup or "Frequent Location", reasoning

    confidence = min(0.5, 0.2 + cluster.total_hours * 0.05)
    reasoning = f"{cluster.total_hours}h total, {cluster.distinct_days} day(s)"
    if cluster.overnight_hours:
        reasoning += f" · {cluster.overnight_hours}h overnight"
    if cluster.work_hours:
        reasoning += f" · {cluster.work_hours}h work hours"
    return InferredPlaceType.UNKNOWN, confidence, lookup or "Location", reasoning


def infer_places_from_history(rows: list[LocationHistoryRow]) -> PlaceInferenceResult:
    """
    Cluster past hours by geohash7 and label each cluster.

    Args:
        rows: Past hourly rows (any order)

    Returns:
        PlaceInferenceResult sorted by confidence, then total hours
    """
    clusters = build_clusters(rows)
    if not clusters:
        return PlaceInferenceResult(inferred_places=[])

    by_total = sorted(clusters.values(), key=lambda c: (-c.total_hours, c.geohash7))

    overnight = [c for c in by_total if c.overnight_hours > 0]
    overnight.sort(key=lambda c: -c.overnight_hours)
    home_geohash = overnight[0].geohash7 if overnight else None

    working = [c for c in by_total if c.work_hours > 0]
    working.sort(key=lambda c: -c.work_hours)
    work_geohash = working[0].geohash7 if working else None

    home_assigned = False
    work_assigned = False
    inferred = []

    for cluster in by_total:
        place_type, confidence, label, reasoning = _classify(
            cluster, home_geohash, work_geohash, home_assigned, work_assigned
        )
        if not cluster.existing_label:
            home_assigned = home_assigned or place_type == InferredPlaceType.HOME
            work_assigned = work_assigned or place_type == InferredPlaceType.WORK

        inferred.append(
            InferredPlace(
                geohash7=cluster.geohash7,
                inferred_type=place_type,
                confidence=round(confidence, 4),
                suggested_label=label,
                latitude=cluster.latitude,
                longitude=cluster.longitude,
                existing_label=cluster.existing_label,
                lookup_name=cluster.lookup_name,
                reasoning=reasoning,
                stats={
                    "total_hours": cluster.total_hours,
                    "overnight_hours": cluster.overnight_hours,
                    "work_hours": cluster.work_hours,
                    "distinct_days": cluster.distinct_days,
                },
            )
        )

    inferred.sort(key=lambda p: (-p.confidence, -p.stats["total_hours"]))

    days = {row.hour_start.date().isoformat() for row in rows if geo.is_valid_geohash(row.geohash7)}
    logger.info(
        "places_inferred",
        clusters=len(clusters),
        inferred=len(inferred),
        days=len(days),
    )
    return PlaceInferenceResult(
        inferred_places=inferred,
        total_geohashes=len(clusters),
        days_analyzed=len(days),
        hours_analyzed=sum(c.total_hours for c in clusters.values()),
    )


def inference_to_saved_place(
    inference: InferredPlace,
    label: str | None = None,
    category: str | None = None,
) -> SavedPlace:
    """
    Build the SavedPlace a caller would persist when the user confirms an inference.

    Raises:
        MalformedInputError: If the inference has no centroid
    """
    if not geo.is_valid_coordinate(inference.latitude, inference.longitude):
        raise MalformedInputError(
            "Cannot create place without coordinates", geohash7=inference.geohash7
        )
    return SavedPlace(
        id=f"place-{inference.geohash7}",
        label=label or inference.suggested_label,
        category=category or INFERRED_TYPE_CATEGORIES.get(inference.inferred_type, "other"),
        latitude=float(inference.latitude),
        longitude=float(inference.longitude),
        radius_m=PROMOTED_PLACE_RADIUS_M,
        geohash7=inference.geohash7,
    )
