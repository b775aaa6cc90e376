"""
App Usage Aggregator

Collapses raw per-app sessions into per-app totals for one block:

    1. Drop clock-skewed sessions (end <= start)
    2. Clip the rest to the block window
    3. Group by app id and merge overlapping sessions of the same app
    4. Sort apps by total minutes, descending
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from dayline.logging_config import get_logger
from dayline.models import AppSession, BlockAppUsage, RawAppSession


logger = get_logger(__name__)


def _merge_intervals(
    intervals: list[tuple[datetime, datetime]],
) -> list[tuple[datetime, datetime]]:
    merged: list[tuple[datetime, datetime]] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def aggregate_app_usage(
    sessions: list[RawAppSession],
    start: datetime,
    end: datetime,
) -> tuple[list[BlockAppUsage], float]:
    """
    Aggregate raw sessions overlapping [start, end).

    Returns:
        (apps sorted by total minutes desc, total screen minutes)
    """
    intervals: dict[str, list[tuple[datetime, datetime]]] = defaultdict(list)
    names: dict[str, str] = {}
    categories: dict[str, str | None] = {}
    dropped = 0

    for session in sessions:
        if session.end_time <= session.start_time:
            dropped += 1
            continue
        clipped_start = max(session.start_time, start)
        clipped_end = min(session.end_time, end)
        if clipped_end <= clipped_start:
            continue

        intervals[session.app_id].append((clipped_start, clipped_end))
        if not names.get(session.app_id):
            names[session.app_id] = session.display_name or session.app_id
        if categories.get(session.app_id) is None:
            categories[session.app_id] = session.category

    if dropped:
        logger.debug("app_sessions_dropped", reason="non_positive_duration", count=dropped)

    apps = []
    for app_id, spans in intervals.items():
        app_sessions = [
            AppSession(
                start_time=s,
                end_time=e,
                minutes=round((e - s).total_seconds() / 60.0, 2),
            )
            for s, e in _merge_intervals(spans)
        ]
        apps.append(
            BlockAppUsage(
                app_id=app_id,
                display_name=names[app_id],
                category=categories.get(app_id),
                total_minutes=round(sum(s.minutes for s in app_sessions), 2),
                sessions=app_sessions,
            )
        )

    apps.sort(key=lambda a: (-a.total_minutes, a.app_id))
    total = round(sum(a.total_minutes for a in apps), 2)
    return apps, total
