"""Shared test fixtures for Dayline tests.

This module provides common fixtures used across all test modules:
- A fixed test day and timestamp helper
- Hourly summary factories
- Saved/inferred place sets around two fixed coordinates
- Default synthesis configuration (independent of args/ on disk)

Usage:
    def test_something(make_summary, places, config):
        summary = make_summary("h9", 9, location=HOME)
        ...
"""

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from dayline.config_models import SynthesisConfig
from dayline.models import (
    ActivityType,
    HourlySummary,
    InferredPlace,
    InferredPlaceType,
    LocationSample,
    MovementType,
    PlaceSet,
    RawAppSession,
    SavedPlace,
)


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent

# Monday
TEST_DAY = date(2026, 3, 2)

# About 1.3 km apart
HOME = (47.6101, -122.3421)
WORK = (47.6205, -122.3493)
# About 3 km from both
CAFE = (47.6400, -122.3200)


def at(hour: int, minute: int = 0, day: date = TEST_DAY) -> datetime:
    """UTC timestamp on the test day."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc) + timedelta(
        hours=hour, minutes=minute
    )


# ─────────────────────────────────────────────────────────────────────────────
# Configuration Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def config() -> SynthesisConfig:
    """Default configuration, not read from args/synthesis.yaml."""
    return SynthesisConfig()


# ─────────────────────────────────────────────────────────────────────────────
# Place Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def home_place() -> SavedPlace:
    return SavedPlace(
        id="place-home",
        label="Home",
        category="home",
        latitude=HOME[0],
        longitude=HOME[1],
        radius_m=100.0,
    )


@pytest.fixture
def work_place() -> SavedPlace:
    return SavedPlace(
        id="place-work",
        label="Work",
        category="work",
        latitude=WORK[0],
        longitude=WORK[1],
        radius_m=100.0,
    )


@pytest.fixture
def places(home_place: SavedPlace, work_place: SavedPlace) -> PlaceSet:
    """Saved Home and Work."""
    return PlaceSet(saved=[home_place, work_place])


@pytest.fixture
def inferred_cafe() -> InferredPlace:
    return InferredPlace(
        geohash7="c23nb62",
        inferred_type=InferredPlaceType.FREQUENT,
        confidence=0.65,
        suggested_label="Corner Cafe",
        latitude=CAFE[0],
        longitude=CAFE[1],
    )


# ─────────────────────────────────────────────────────────────────────────────
# Summary Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_summary() -> Callable[..., HourlySummary]:
    """Factory for one-hour summaries on the test day.

    Args (of the returned callable):
        summary_id: Summary id
        hour: Hour of day the summary starts
        location: (lat, lng) or None for an hour without samples
        samples: Number of samples at location
        activity: Primary ActivityType
        confidence: Confidence score
        apps: List of (app_id, category, start_minute, end_minute)
        movement: MovementType for travel hours
    """

    def _make(
        summary_id: str,
        hour: int,
        location: tuple[float, float] | None = None,
        samples: int = 3,
        activity: ActivityType | None = None,
        confidence: float = 0.8,
        apps: list[tuple[str, str | None, int, int]] | None = None,
        movement: MovementType | None = None,
        distance_m: float | None = None,
        user_feedback: str | None = None,
        locked: bool = False,
    ) -> HourlySummary:
        start = at(hour)
        location_samples = []
        if location is not None:
            location_samples = [
                LocationSample(
                    latitude=location[0],
                    longitude=location[1],
                    recorded_at=start + timedelta(minutes=10 * i),
                )
                for i in range(samples)
            ]
        sessions = [
            RawAppSession(
                app_id=app_id,
                display_name=app_id.capitalize(),
                category=category,
                start_time=start + timedelta(minutes=s),
                end_time=start + timedelta(minutes=e),
            )
            for app_id, category, s, e in apps or []
        ]
        return HourlySummary(
            id=summary_id,
            hour_start=start,
            user_id="alice",
            location_samples=location_samples,
            app_sessions=sessions,
            primary_activity=activity,
            movement_type=movement,
            distance_m=distance_m,
            confidence_score=confidence,
            user_feedback=user_feedback,
            locked_at=start if locked else None,
        )

    return _make


@pytest.fixture
def home_work_day(make_summary) -> list[HourlySummary]:
    """H1-H8 at Home, H9-H10 at Work."""
    summaries = [
        make_summary(f"h{hour}", hour, location=HOME, activity=ActivityType.PERSONAL_TIME)
        for hour in range(1, 9)
    ]
    summaries += [
        make_summary(f"h{hour}", hour, location=WORK, activity=ActivityType.DEEP_WORK)
        for hour in range(9, 11)
    ]
    return summaries
