from __future__ import annotations

import logging
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from dayline import ARGS_DIR

logger = logging.getLogger(__name__)


# =============================================================================
# Places (args/synthesis.yaml -> places)
# =============================================================================

class PlacesConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    default_radius_m: float = Field(default=100.0, gt=0)
    inferred_match_radius_m: float = Field(default=150.0, gt=0)
    ambiguity_margin: float = Field(default=0.1, ge=0.0, le=1.0)
    max_alternatives: int = Field(default=5, ge=0)
    alternative_search_radius_m: float = Field(default=500.0, gt=0)
    geohash_precision: int = Field(default=7, ge=1, le=12)


# =============================================================================
# Blocks (args/synthesis.yaml -> blocks)
# =============================================================================

class BlocksConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    # 16h covers an overnight stay without fresh samples
    carry_forward_tolerance_minutes: int = Field(default=960, ge=0)
    carried_confidence_factor: float = Field(default=0.6, ge=0.0, le=1.0)
    travel_activity: str = Field(default="commute")


# =============================================================================
# Timeline (args/synthesis.yaml -> timeline)
# =============================================================================

class TimelineConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    ordering_granularity_minutes: int = Field(default=15, ge=0)
    message_duration_minutes: int = Field(default=5, ge=0)
    kind_priority: dict[str, int] = Field(
        default_factory=lambda: {
            "meeting": 0,
            "phone_call": 1,
            "scheduled": 2,
            "app": 3,
            "email": 4,
            "slack_message": 4,
            "sms": 4,
            "website": 4,
        }
    )
    skip_calendar_sources: list[str] = Field(default_factory=lambda: ["derived", "evidence"])


class ClassificationConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    unproductive_categories: list[str] = Field(default_factory=lambda: ["social", "entertainment"])
    productive_categories: list[str] = Field(default_factory=lambda: ["work"])
    communication_categories: list[str] = Field(default_factory=lambda: ["communication"])
    work_place_categories: list[str] = Field(default_factory=lambda: ["work", "office"])
    work_activities: list[str] = Field(
        default_factory=lambda: ["deep_work", "collaborative_work", "meeting"]
    )
    category_synonyms: dict[str, str] = Field(
        default_factory=lambda: {
            "comms": "communication",
            "messaging": "communication",
            "email": "communication",
            "productivity": "work",
            "business": "work",
            "games": "entertainment",
            "video": "entertainment",
            "streaming": "entertainment",
            "social_media": "social",
            "social networking": "social",
        }
    )
    distraction_apps: list[str] = Field(
        default_factory=lambda: [
            "instagram",
            "tiktok",
            "youtube",
            "twitter",
            "x",
            "facebook",
            "snapchat",
            "reddit",
            "netflix",
            "hulu",
            "disney+",
            "hbo",
        ]
    )
    work_apps: list[str] = Field(
        default_factory=lambda: [
            "slack",
            "gmail",
            "outlook",
            "teams",
            "zoom",
            "notion",
            "figma",
            "linear",
            "jira",
            "asana",
            "trello",
            "google docs",
        ]
    )
    # app name (lowercase) -> category, applied before anything else
    app_overrides: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Patterns (args/synthesis.yaml -> patterns)
# =============================================================================

class PatternsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    divergence: Literal["jensen_shannon", "total_variation"] = Field(default="jensen_shannon")
    deviation_threshold: float = Field(default=0.35, ge=0.0, le=1.0)
    prediction_min_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    lookback_days: int = Field(default=28, ge=1)
    min_history_days: int = Field(default=1, ge=1)
    weekday_fallback: bool = Field(default=True)
    max_predictions: int = Field(default=8, ge=0)


class SynthesisConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    places: PlacesConfig = Field(default_factory=PlacesConfig)
    blocks: BlocksConfig = Field(default_factory=BlocksConfig)
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    patterns: PatternsConfig = Field(default_factory=PatternsConfig)


_CONFIG_MAP: dict[str, type[BaseModel]] = {
    "synthesis": SynthesisConfig,
}


def load_and_validate(config_name: str, model_class: type[BaseModel] | None = None) -> BaseModel:
    if model_class is None:
        model_class = _CONFIG_MAP.get(config_name)
        if model_class is None:
            raise ValueError(f"Unknown config: {config_name}. Available: {list(_CONFIG_MAP.keys())}")

    yaml_path = ARGS_DIR / f"{config_name}.yaml"

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return model_class.model_validate(raw)
    except Exception as e:
        logger.warning(f"Config validation failed for {config_name}: {e}, using defaults")
        return model_class()


def load_config() -> SynthesisConfig:
    """Load args/synthesis.yaml (defaults when absent or invalid)."""
    return load_and_validate("synthesis")
