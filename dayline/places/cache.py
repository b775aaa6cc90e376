"""
Resolved Place Cache

Per-user cache of geohash7 -> place label, shared across synthesis calls
so repeated renders don't resolve the same cells again.

Every read returns an independent deep copy and every write stores one,
so a caller editing its result can never change what another caller sees.

Usage:
    from dayline.places.cache import ResolvedPlaceCache, refresh_block_labels

    cache = ResolvedPlaceCache()
    labels = cache.get_or_load(user_id, lambda: fetch_labels(user_id))
    blocks = refresh_block_labels(blocks, labels)

Dependencies:
    - threading (stdlib)
    - copy (stdlib)
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from dayline.logging_config import get_logger
from dayline.models import BlockType, LocationBlock


logger = get_logger(__name__)


@dataclass
class PlaceLabel:
    """A label the user (or inference) attached to one geohash7 cell."""

    geohash7: str
    label: str
    category: str | None = None
    place_id: str | None = None
    user_defined: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "geohash7": self.geohash7,
            "label": self.label,
            "category": self.category,
            "place_id": self.place_id,
            "user_defined": self.user_defined,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaceLabel":
        return cls(**data)


class ResolvedPlaceCache:
    """Thread-safe, copy-on-read / copy-on-write label cache keyed by user."""

    def __init__(self):
        self._entries: dict[str, dict[str, PlaceLabel]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> dict[str, PlaceLabel] | None:
        with self._lock:
            labels = self._entries.get(user_id)
            return copy.deepcopy(labels) if labels is not None else None

    def get_label(self, user_id: str, geohash7: str) -> PlaceLabel | None:
        with self._lock:
            label = self._entries.get(user_id, {}).get(geohash7)
            return copy.deepcopy(label) if label is not None else None

    def put(self, user_id: str, labels: dict[str, PlaceLabel]) -> None:
        stored = copy.deepcopy(labels)
        with self._lock:
            self._entries[user_id] = stored
        logger.debug("place_cache_put", user_id=user_id, labels=len(stored))

    def get_or_load(
        self,
        user_id: str,
        loader: Callable[[], dict[str, PlaceLabel]],
    ) -> dict[str, PlaceLabel]:
        """Return cached labels, calling loader (outside the lock) on a miss."""
        cached = self.get(user_id)
        if cached is not None:
            return cached
        loaded = loader()
        self.put(user_id, loaded)
        return copy.deepcopy(loaded)

    def apply_edit(
        self,
        user_id: str,
        geohash7: str,
        label: str,
        category: str | None = None,
        place_id: str | None = None,
    ) -> PlaceLabel:
        """Record a user's label edit for one cell; returns a copy of the new entry."""
        entry = PlaceLabel(
            geohash7=geohash7,
            label=label,
            category=category,
            place_id=place_id,
            user_defined=True,
        )
        with self._lock:
            self._entries.setdefault(user_id, {})[geohash7] = entry
        logger.info("place_label_edited", user_id=user_id, geohash7=geohash7, label=label)
        return copy.deepcopy(entry)

    def invalidate(self, user_id: str | None = None) -> None:
        with self._lock:
            if user_id is None:
                self._entries.clear()
            else:
                self._entries.pop(user_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def refresh_block_labels(
    blocks: list[LocationBlock],
    labels: dict[str, PlaceLabel],
) -> list[LocationBlock]:
    """
    Apply cached labels to already-built blocks.

    Only label, category and the user-defined flag change; time
    boundaries and contents are untouched. Travel blocks are skipped.
    """
    refreshed = []
    for block in blocks:
        entry = labels.get(block.geohash7) if block.geohash7 else None
        if entry is None or block.type != BlockType.STATIONARY:
            refreshed.append(block)
            continue
        refreshed.append(
            block.relabel(entry.label, category=entry.category, user_defined=entry.user_defined)
        )
    return refreshed
