"""
Productivity classification for timeline rows.

Categories are normalized first (per-user overrides, known app lists,
synonyms), then mapped to a coarse productivity flag:

    social / entertainment          -> unproductive
    work                            -> productive
    communication in a work context -> productive
    anything else                   -> neutral
"""

from __future__ import annotations

from dayline.config_models import ClassificationConfig
from dayline.models import LocationBlock
from dayline.timeline.events import ProductivityFlag


def normalize_category(
    category: str | None,
    config: ClassificationConfig,
    app_name: str | None = None,
) -> str | None:
    """Map a raw category (and optionally the app's name) to a canonical category."""
    name = (app_name or "").strip().lower()
    if name:
        if name in config.app_overrides:
            return config.app_overrides[name]
        if name in config.distraction_apps:
            canonical = _canonical(category, config) if category else None
            return canonical if canonical in config.unproductive_categories else "entertainment"
        if name in config.work_apps and category is None:
            return "work"
    if category is None:
        return None
    return _canonical(category, config)


def _canonical(category: str, config: ClassificationConfig) -> str:
    key = category.strip().lower()
    return config.category_synonyms.get(key, key)


def is_work_context(block: LocationBlock | None, config: ClassificationConfig) -> bool:
    if block is None:
        return False
    category = (block.location_category or "").lower()
    if category in config.work_place_categories:
        return True
    activity = block.dominant_activity
    return activity is not None and activity.value in config.work_activities


def classify_productivity(
    category: str | None,
    work_context: bool,
    config: ClassificationConfig,
) -> ProductivityFlag:
    if category is None:
        return ProductivityFlag.NEUTRAL
    if category in config.unproductive_categories:
        return ProductivityFlag.UNPRODUCTIVE
    if category in config.productive_categories:
        return ProductivityFlag.PRODUCTIVE
    if category in config.communication_categories and work_context:
        return ProductivityFlag.PRODUCTIVE
    return ProductivityFlag.NEUTRAL
