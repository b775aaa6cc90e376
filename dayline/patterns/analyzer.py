"""
Tool: Pattern Insight Analyzer
Purpose: Compare today's place/activity pattern with the user's history

For every clock hour the analyzer builds a distribution over
"place/activity" states (minutes spent in each). Today's distribution is
compared with the baseline for the same weekday and hour:

    - anomaly score: mean divergence over observed hours, in [0, 1]
    - deviations: hours whose divergence exceeds patterns.deviation_threshold
    - predictions: not-yet-observed hours, most frequent historical state,
      confidence = share of baseline days where that state dominated

Divergence is Jensen-Shannon (base 2) or total variation, chosen by
patterns.divergence. Both are bounded by 1 and grow with the size of the
deviation.

Usage:
    from dayline.patterns.analyzer import analyze_patterns

    insight = analyze_patterns(today, history, now)
    print(insight.anomaly_score, [d.title for d in insight.deviations])

Dependencies:
    - collections (stdlib)
    - math (stdlib)
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any

from dayline.blocks.builder import is_meaningful_label
from dayline.config_models import PatternsConfig, SynthesisConfig
from dayline.errors import MalformedInputError
from dayline.logging_config import get_logger
from dayline.models import BlockType, DayTimeline, LocationBlock


logger = get_logger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

Distribution = dict[str, float]


@dataclass
class InsightRow:
    id: str
    time_label: str
    title: str
    detail: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "time_label": self.time_label,
            "title": self.title,
            "detail": self.detail,
            "confidence": self.confidence,
        }


@dataclass
class PatternInsight:
    date_label: str
    anomaly_score: float = 0.0
    deviations: list[InsightRow] = field(default_factory=list)
    predictions: list[InsightRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date_label": self.date_label,
            "anomaly_score": self.anomaly_score,
            "deviations": [r.to_dict() for r in self.deviations],
            "predictions": [r.to_dict() for r in self.predictions],
        }


# =============================================================================
# Formatting
# =============================================================================


def format_hour(hour: int) -> str:
    """Format an hour of day as "9:00 AM"."""
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:00 {suffix}"


def format_date_label(day: date) -> str:
    return f"{day:%A, %B} {day.day}"


def _split_state(state: str) -> tuple[str, str]:
    place, _, activity = state.partition("/")
    return place, activity


def _describe_state(state: str) -> str:
    place, activity = _split_state(state)
    if activity == "none":
        return place
    return f"{activity.replace('_', ' ')} at {place}"


# =============================================================================
# Distributions
# =============================================================================


def block_state(block: LocationBlock) -> str:
    if block.type == BlockType.TRAVEL:
        place = "Travel"
    elif is_meaningful_label(block.location_label):
        place = block.location_label
    else:
        place = "Unknown"
    activity = block.dominant_activity.value if block.dominant_activity else "none"
    return f"{place}/{activity}"


def hourly_distributions(day: DayTimeline) -> dict[int, Distribution]:
    """Minutes per state for each clock hour of the day, normalized to sum to 1."""
    minutes: dict[int, Counter] = defaultdict(Counter)
    for block in day.blocks:
        state = block_state(block)
        cursor = block.start_time.replace(minute=0, second=0, microsecond=0)
        while cursor < block.end_time:
            next_hour = cursor + timedelta(hours=1)
            overlap = min(next_hour, block.end_time) - max(cursor, block.start_time)
            if cursor.date() == day.date and overlap > timedelta(0):
                minutes[cursor.hour][state] += overlap.total_seconds() / 60.0
            cursor = next_hour

    distributions = {}
    for hour, counts in minutes.items():
        total = sum(counts.values())
        if total > 0:
            distributions[hour] = {state: value / total for state, value in counts.items()}
    return distributions


def _top_state(distribution: Distribution) -> str:
    return max(sorted(distribution), key=lambda s: distribution[s])


def _average(distributions: list[Distribution]) -> Distribution:
    merged: dict[str, float] = defaultdict(float)
    for dist in distributions:
        for state, share in dist.items():
            merged[state] += share / len(distributions)
    return dict(merged)


def jensen_shannon(p: Distribution, q: Distribution) -> float:
    states = set(p) | set(q)
    divergence = 0.0
    for state in states:
        a = p.get(state, 0.0)
        b = q.get(state, 0.0)
        m = (a + b) / 2
        if a > 0:
            divergence += 0.5 * a * math.log2(a / m)
        if b > 0:
            divergence += 0.5 * b * math.log2(b / m)
    return min(1.0, max(0.0, divergence))


def total_variation(p: Distribution, q: Distribution) -> float:
    states = set(p) | set(q)
    return min(1.0, 0.5 * sum(abs(p.get(s, 0.0) - q.get(s, 0.0)) for s in states))


DIVERGENCES = {
    "jensen_shannon": jensen_shannon,
    "total_variation": total_variation,
}


# =============================================================================
# Baseline
# =============================================================================


class _Baseline:
    """Historical per-hour distributions grouped by weekday."""

    def __init__(self, days: list[DayTimeline], config: PatternsConfig):
        self.config = config
        self.day_count = len(days)
        self.by_weekday: dict[int, dict[int, list[Distribution]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self.any_day: dict[int, list[Distribution]] = defaultdict(list)
        for day in days:
            weekday = day.date.weekday()
            for hour, dist in hourly_distributions(day).items():
                self.by_weekday[weekday][hour].append(dist)
                self.any_day[hour].append(dist)

    def samples(self, weekday: int, hour: int) -> tuple[list[Distribution], bool]:
        """Distributions for (weekday, hour); second value is True when falling back."""
        same_weekday = self.by_weekday.get(weekday, {}).get(hour, [])
        if same_weekday:
            return same_weekday, False
        if self.config.weekday_fallback:
            return self.any_day.get(hour, []), True
        return [], False


def _select_history(
    today: DayTimeline,
    history: list[DayTimeline],
    config: PatternsConfig,
) -> list[DayTimeline]:
    earliest = today.date - timedelta(days=config.lookback_days)
    selected = []
    for day in history:
        if today.user_id and day.user_id and day.user_id != today.user_id:
            logger.warning(
                "malformed_history", reason="user_mismatch", user_id=today.user_id, other=day.user_id
            )
            raise MalformedInputError(
                "History belongs to a different user",
                user_id=today.user_id,
                history_user_id=day.user_id,
            )
        if earliest <= day.date < today.date:
            selected.append(day)
    return selected


def _day_tzinfo(today: DayTimeline, history: list[DayTimeline]) -> tzinfo | None:
    """Timezone the day's clock hours are counted in (that of its blocks)."""
    for day in [today, *history]:
        if day.blocks:
            return day.blocks[0].start_time.tzinfo
    return None


def _hour_start(day: date, hour: int, tz: tzinfo | None) -> datetime:
    return datetime.combine(day, time(hour), tzinfo=tz)


def _deviation_row(
    hour: int,
    today_dist: Distribution,
    samples: list[Distribution],
    divergence: float,
    weekday_name: str,
    fallback: bool,
) -> InsightRow:
    baseline = _average(samples)
    usual = _top_state(baseline)
    observed = _top_state(today_dist)
    usual_place, _ = _split_state(usual)
    observed_place, _ = _split_state(observed)
    usual_days = sum(1 for d in samples if _top_state(d) == usual)
    scope = "days" if fallback else f"{weekday_name}s"

    if observed_place != usual_place:
        title = f"{observed_place} instead of {usual_place}"
    else:
        title = f"Unusual {_describe_state(observed)}"
    detail = (
        f"Usually {_describe_state(usual)} ({usual_days} of {len(samples)} past {scope}); "
        f"today {_describe_state(observed)}."
    )
    return InsightRow(
        id=f"deviation-{hour:02d}",
        time_label=format_hour(hour),
        title=title,
        detail=detail,
        confidence=round(divergence, 4),
    )


def _prediction_row(
    hour: int,
    samples: list[Distribution],
    weekday_name: str,
    fallback: bool,
) -> InsightRow:
    winners = Counter(_top_state(d) for d in samples)
    state, count = max(sorted(winners.items()), key=lambda item: item[1])
    place, _ = _split_state(state)
    scope = "days" if fallback else f"{weekday_name}s"
    return InsightRow(
        id=f"prediction-{hour:02d}",
        time_label=format_hour(hour),
        title=place,
        detail=f"Usually {_describe_state(state)}, seen on {count} of {len(samples)} past {scope}.",
        confidence=round(count / len(samples), 4),
    )


def analyze_patterns(
    today: DayTimeline,
    history: list[DayTimeline],
    now: datetime | None = None,
    *,
    config: SynthesisConfig | None = None,
) -> PatternInsight:
    """
    Score today against the user's history and predict the rest of the day.

    Args:
        today: Today's blocks and events
        history: Previous days for the same user (any order)
        now: Evaluation time; hours starting at or after it are predicted.
            None treats the whole day as observed.
        config: Synthesis configuration (built-in defaults when omitted)

    Returns:
        PatternInsight (score 0 and empty lists without enough history)

    Raises:
        MalformedInputError: History belongs to a different user
    """
    patterns = (config or SynthesisConfig()).patterns
    insight = PatternInsight(date_label=format_date_label(today.date))

    days = _select_history(today, history, patterns)
    if len(days) < patterns.min_history_days:
        logger.info("pattern_baseline_missing", history_days=len(days))
        return insight

    # Hours are compared as instants, built in the blocks' own timezone
    tz = _day_tzinfo(today, days)
    baseline = _Baseline(days, patterns)
    divergence_fn = DIVERGENCES[patterns.divergence]
    weekday = today.date.weekday()
    weekday_name = DAY_NAMES[weekday]
    today_dists = hourly_distributions(today)

    scored: list[tuple[float, int]] = []
    for hour, dist in sorted(today_dists.items()):
        if now is not None and _hour_start(today.date, hour, tz) >= now:
            continue
        samples, fallback = baseline.samples(weekday, hour)
        if not samples:
            continue
        divergence = divergence_fn(dist, _average(samples))
        scored.append((divergence, hour))
        if divergence > patterns.deviation_threshold:
            insight.deviations.append(
                _deviation_row(hour, dist, samples, divergence, weekday_name, fallback)
            )

    if scored:
        insight.anomaly_score = round(
            min(1.0, max(0.0, sum(d for d, _ in scored) / len(scored))), 4
        )
    insight.deviations.sort(key=lambda r: (-r.confidence, r.id))

    if now is not None:
        for hour in range(24):
            if _hour_start(today.date, hour, tz) < now:
                continue
            samples, fallback = baseline.samples(weekday, hour)
            if not samples:
                continue
            row = _prediction_row(hour, samples, weekday_name, fallback)
            if row.confidence >= patterns.prediction_min_confidence:
                insight.predictions.append(row)
        insight.predictions.sort(key=lambda r: (-r.confidence, r.id))
        insight.predictions = insight.predictions[: patterns.max_predictions]

    logger.info(
        "patterns_analyzed",
        history_days=len(days),
        anomaly_score=insight.anomaly_score,
        deviations=len(insight.deviations),
        predictions=len(insight.predictions),
    )
    return insight
