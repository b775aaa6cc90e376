"""
Presentation lookups for rendering collaborators.

Pure mappings from blocks and timeline rows to colors and icon names. Kept
outside the data model: nothing in synthesis reads these.
"""

from __future__ import annotations

from dataclasses import dataclass

from dayline.models import BlockType, LocationBlock
from dayline.timeline.events import ProductivityFlag, TimelineEvent, TimelineEventKind


@dataclass(frozen=True)
class BannerColors:
    bg: str
    text: str


@dataclass(frozen=True)
class BicolorTint:
    dark: str
    light: str
    icon_color: str


LOCATION_COLORS = {
    "home": BannerColors(bg="#3B82F6", text="#FFFFFF"),
    "work": BannerColors(bg="#7C3AED", text="#FFFFFF"),
    "travel": BannerColors(bg="#F97316", text="#FFFFFF"),
    "gym": BannerColors(bg="#22C55E", text="#FFFFFF"),
    "frequent": BannerColors(bg="#F59E0B", text="#FFFFFF"),
    "unknown": BannerColors(bg="#64748B", text="#FFFFFF"),
}

EVENT_KIND_COLORS = {
    TimelineEventKind.APP: BicolorTint(dark="#64748B", light="#94A3B8", icon_color="#FFFFFF"),
    TimelineEventKind.EMAIL: BicolorTint(dark="#DC2626", light="#F87171", icon_color="#FFFFFF"),
    TimelineEventKind.SLACK_MESSAGE: BicolorTint(dark="#7C3AED", light="#A78BFA", icon_color="#FFFFFF"),
    TimelineEventKind.MEETING: BicolorTint(dark="#2563EB", light="#60A5FA", icon_color="#FFFFFF"),
    TimelineEventKind.PHONE_CALL: BicolorTint(dark="#059669", light="#34D399", icon_color="#FFFFFF"),
    TimelineEventKind.SMS: BicolorTint(dark="#059669", light="#34D399", icon_color="#FFFFFF"),
    TimelineEventKind.WEBSITE: BicolorTint(dark="#64748B", light="#94A3B8", icon_color="#FFFFFF"),
    TimelineEventKind.SCHEDULED: BicolorTint(dark="#6B7280", light="#9CA3AF", icon_color="#FFFFFF"),
}

UNPRODUCTIVE_TINT = BicolorTint(dark="#DC2626", light="#F87171", icon_color="#FFFFFF")

# (keywords, icon) checked in order against the lowercased label
PLACE_ICON_KEYWORDS = [
    (("home",), "home"),
    (("office", "work"), "briefcase"),
    (("gym", "fitness"), "dumbbell"),
    (("cafe", "coffee"), "coffee"),
    (("commute", "transit", "travel"), "car"),
    (("store", "shop"), "shopping-bag"),
    (("restaurant", "food"), "utensils"),
    (("church",), "church"),
    (("school", "university"), "graduation-cap"),
    (("hospital", "doctor"), "heart"),
    (("building",), "building"),
]

DEFAULT_PLACE_ICON = "map-pin"


def place_icon(label: str | None) -> str:
    if not label:
        return DEFAULT_PLACE_ICON
    lowered = label.lower()
    for keywords, icon in PLACE_ICON_KEYWORDS:
        if any(k in lowered for k in keywords):
            return icon
    return DEFAULT_PLACE_ICON


def confidence_color(score: float) -> str:
    if score >= 0.7:
        return "#22C55E"
    if score >= 0.4:
        return "#F59E0B"
    return "#EF4444"


def block_banner_colors(block: LocationBlock) -> BannerColors:
    """Travel first, then inferred place type, then gym keywords, else slate."""
    if block.type == BlockType.TRAVEL:
        return LOCATION_COLORS["travel"]
    if block.inferred_place is not None:
        colors = LOCATION_COLORS.get(block.inferred_place.inferred_type.value)
        if colors is not None:
            return colors
    label = block.location_label.lower()
    if "gym" in label or "fitness" in label:
        return LOCATION_COLORS["gym"]
    return LOCATION_COLORS["unknown"]


def event_tint(event: TimelineEvent) -> BicolorTint:
    if event.productivity == ProductivityFlag.UNPRODUCTIVE:
        return UNPRODUCTIVE_TINT
    return EVENT_KIND_COLORS[event.kind]


def block_display(block: LocationBlock) -> dict[str, str]:
    banner = block_banner_colors(block)
    return {
        "icon": place_icon(block.location_label),
        "banner_bg": banner.bg,
        "banner_text": banner.text,
        "confidence_color": confidence_color(block.confidence_score),
    }


def event_display(event: TimelineEvent) -> dict[str, str]:
    tint = event_tint(event)
    return {"dark": tint.dark, "light": tint.light, "icon_color": tint.icon_color}
