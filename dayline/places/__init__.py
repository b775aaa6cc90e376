"""
Dayline Places Module

Resolves location samples to labelled places, caches resolved labels per
user, and infers home/work/frequent places from location history.
"""

from dayline.places.cache import ResolvedPlaceCache, refresh_block_labels
from dayline.places.inference import infer_places_from_history
from dayline.places.resolver import promote_alternative, resolve_place, resolve_summary


__all__ = [
    "ResolvedPlaceCache",
    "infer_places_from_history",
    "promote_alternative",
    "refresh_block_labels",
    "resolve_place",
    "resolve_summary",
]
