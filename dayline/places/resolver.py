"""
Tool: Place Resolver
Purpose: Turn a location sample into a labelled place

Resolution order:
    1. Saved place whose radius contains the sample (or whose geohash7
       equals the sample's). Smaller radius wins, then smaller distance.
    2. Inferred cluster within tolerance. Nearest wins, then higher
       confidence. Near-equal competitors make the result ambiguous.
    3. "Unknown Location" with nearby named places as alternatives.

The resolver is pure: it never raises on bad coordinates and never
mutates the place set.

Usage:
    from dayline.places.resolver import resolve_place

    resolved = resolve_place(47.61, -122.33, places)
    print(resolved.label, resolved.source)
"""

from __future__ import annotations

from dataclasses import dataclass

from dayline.config_models import PlacesConfig
from dayline.errors import MalformedInputError
from dayline.models import (
    HourlySummary,
    InferredPlace,
    PlaceAlternative,
    PlaceSet,
    PlaceSource,
    ResolvedPlace,
    SavedPlace,
)
from dayline.places import geo


# Radius given to a place promoted from an alternative
PROMOTED_PLACE_RADIUS_M = 150.0


@dataclass
class _Candidate:
    distance: float
    place: SavedPlace | InferredPlace


def _place_position(place: SavedPlace | InferredPlace) -> tuple[float, float] | None:
    if geo.is_valid_coordinate(place.latitude, place.longitude):
        return float(place.latitude), float(place.longitude)
    return geo.decode(place.geohash7)


def _distance_to(place, lat: float, lng: float) -> float | None:
    position = _place_position(place)
    if position is None:
        return None
    return geo.distance_m(lat, lng, position[0], position[1])


def _match_saved(
    saved: list[SavedPlace], lat: float, lng: float, geohash7: str
) -> _Candidate | None:
    matches = []
    for place in saved:
        distance = _distance_to(place, lat, lng)
        if place.geohash7 and place.geohash7 == geohash7:
            matches.append(_Candidate(distance or 0.0, place))
        elif distance is not None and distance <= place.radius_m:
            matches.append(_Candidate(distance, place))
    if not matches:
        return None
    matches.sort(key=lambda c: (c.place.radius_m, c.distance))
    return matches[0]


def _match_inferred(
    inferred: list[InferredPlace],
    lat: float,
    lng: float,
    geohash7: str,
    config: PlacesConfig,
) -> list[_Candidate]:
    matches = []
    for place in inferred:
        distance = _distance_to(place, lat, lng)
        if place.geohash7 == geohash7:
            matches.append(_Candidate(distance or 0.0, place))
        elif distance is not None and distance <= config.inferred_match_radius_m:
            matches.append(_Candidate(distance, place))
    matches.sort(key=lambda c: (c.distance, -c.place.confidence))
    return matches


def _inferred_label(place: InferredPlace) -> str:
    return place.existing_label or place.lookup_name or place.suggested_label


def _nearby_alternatives(
    nearby: list[PlaceAlternative] | None,
    lat: float,
    lng: float,
    config: PlacesConfig,
) -> list[PlaceAlternative]:
    located: list[PlaceAlternative] = []
    unlocated: list[PlaceAlternative] = []
    for candidate in nearby or []:
        if geo.is_valid_coordinate(candidate.latitude, candidate.longitude):
            distance = geo.distance_m(lat, lng, candidate.latitude, candidate.longitude)
            if distance > config.alternative_search_radius_m:
                continue
            located.append(
                PlaceAlternative(
                    place_name=candidate.place_name,
                    place_id=candidate.place_id,
                    vicinity=candidate.vicinity,
                    types=list(candidate.types),
                    latitude=candidate.latitude,
                    longitude=candidate.longitude,
                    distance_m=round(distance, 1),
                )
            )
        else:
            unlocated.append(
                PlaceAlternative(
                    place_name=candidate.place_name,
                    place_id=candidate.place_id,
                    vicinity=candidate.vicinity,
                    types=list(candidate.types),
                )
            )
    located.sort(key=lambda a: (a.distance_m, a.place_name))
    return (located + unlocated)[: config.max_alternatives]


def resolve_place(
    latitude: float | None,
    longitude: float | None,
    places: PlaceSet,
    *,
    geohash7: str | None = None,
    nearby: list[PlaceAlternative] | None = None,
    config: PlacesConfig | None = None,
) -> ResolvedPlace:
    """
    Resolve one position against the user's places.

    Args:
        latitude, longitude: Sample position (may be None/invalid)
        places: Saved and inferred places
        geohash7: Geohash used when coordinates are missing
        nearby: Named places from the lookup collaborator
        config: Places configuration (built-in defaults when omitted)

    Returns:
        ResolvedPlace (never raises for bad coordinates)
    """
    config = config or PlacesConfig()

    if geo.is_valid_coordinate(latitude, longitude):
        lat, lng = float(latitude), float(longitude)
        cell = geohash7 if geo.is_valid_geohash(geohash7) else geo.encode(
            lat, lng, config.geohash_precision
        )
    else:
        decoded = geo.decode(geohash7)
        if decoded is None:
            return ResolvedPlace.unknown()
        lat, lng = decoded
        cell = geohash7

    saved = _match_saved(places.saved, lat, lng, cell)
    if saved is not None:
        place = saved.place
        return ResolvedPlace(
            source=PlaceSource.USER_DEFINED,
            label=place.label,
            category=place.category,
            confidence=1.0,
            place_id=place.id,
            geohash7=cell,
            latitude=lat,
            longitude=lng,
            distance_m=round(saved.distance, 1),
        )

    inferred = _match_inferred(places.inferred, lat, lng, cell, config)
    if inferred:
        winner = inferred[0]
        place = winner.place
        competitors = [
            c
            for c in inferred[1:]
            if place.confidence - c.place.confidence <= config.ambiguity_margin
        ]
        alternatives = []
        for competitor in competitors[: config.max_alternatives]:
            position = _place_position(competitor.place)
            alternatives.append(
                PlaceAlternative(
                    place_name=_inferred_label(competitor.place),
                    place_id=competitor.place.geohash7,
                    types=[competitor.place.inferred_type.value],
                    latitude=position[0] if position else None,
                    longitude=position[1] if position else None,
                    distance_m=round(competitor.distance, 1),
                )
            )
        return ResolvedPlace(
            source=PlaceSource.INFERRED,
            label=_inferred_label(place),
            category=place.inferred_type.value,
            confidence=place.confidence,
            place_id=place.geohash7,
            geohash7=cell,
            latitude=lat,
            longitude=lng,
            inferred_place=place,
            alternatives=alternatives,
            distance_m=round(winner.distance, 1),
            is_ambiguous=bool(alternatives),
        )

    return ResolvedPlace.unknown(
        geohash7=cell,
        latitude=lat,
        longitude=lng,
        alternatives=_nearby_alternatives(nearby, lat, lng, config),
    )


def has_location_evidence(summary: HourlySummary) -> bool:
    """True when the hour carries a usable sample or geohash."""
    return bool(summary.valid_samples) or geo.decode(summary.geohash7) is not None


def resolve_summary(
    summary: HourlySummary,
    places: PlaceSet,
    config: PlacesConfig | None = None,
) -> ResolvedPlace:
    """Resolve an hour using the centroid of its valid samples."""
    position = geo.centroid(summary.location_samples)
    lat, lng = position if position else (None, None)
    return resolve_place(
        lat,
        lng,
        places,
        geohash7=summary.geohash7,
        nearby=summary.nearby_places,
        config=config,
    )


def promote_alternative(
    alternative: PlaceAlternative,
    label: str | None = None,
    category: str | None = None,
    radius_m: float = PROMOTED_PLACE_RADIUS_M,
) -> SavedPlace:
    """
    Build the SavedPlace a caller would persist when the user picks an alternative.

    Raises:
        MalformedInputError: If the alternative has no usable coordinates
    """
    if not geo.is_valid_coordinate(alternative.latitude, alternative.longitude):
        raise MalformedInputError(
            "Cannot promote a place alternative without coordinates",
            place_name=alternative.place_name,
        )
    cell = geo.encode(float(alternative.latitude), float(alternative.longitude), 7)
    if category is None and alternative.types:
        category = alternative.types[0]
    return SavedPlace(
        id=alternative.place_id or f"place-{cell}",
        label=label or alternative.place_name,
        category=category,
        latitude=float(alternative.latitude),
        longitude=float(alternative.longitude),
        radius_m=radius_m,
        geohash7=cell,
    )
