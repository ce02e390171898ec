"""
Location search: classify a geocoder match, then rank technicians near it.
"""

import logging
import re

from errors import LocationNotFoundError
from geo import bounding_box_span, haversine_distance
from models import SearchOutcome, SearchResult, TechnicianRecord
from utils import correct_state, get_fallback_limit, get_search_config, normalize_zip

logger = logging.getLogger(__name__)

# Result types
RESULT_ADDRESS = "address"
RESULT_NEIGHBORHOOD = "neighborhood"
RESULT_ZIP = "zip"
RESULT_CITY = "city"
RESULT_STATE = "state"
RESULT_UNKNOWN = "unknown"

CITY_COMPONENTS = ("city", "town", "village")
ADDRESS_CLASSES = {"building", "shop", "amenity", "tourism", "office"}


def classify_result(match) -> str:
    """
    Classify a geocoding match into a search scope.

    Checks run in order; the first that applies wins. No single Nominatim
    field separates a house from a state, so type tags come first and the
    bounding-box size is the last resort.
    """
    if match is None:
        return RESULT_UNKNOWN

    address = match.address or {}
    address_type = (match.address_type or "").lower()
    feature_type = (match.feature_type or "").lower()
    feature_class = (match.feature_class or "").lower()
    has_city = any(address.get(k) for k in CITY_COMPONENTS)

    if not has_city and (
        address_type == "state"
        or (feature_type == "administrative" and address.get("state"))
    ):
        return RESULT_STATE

    if address_type in CITY_COMPONENTS or feature_type in ("city", "town"):
        return RESULT_CITY

    if (
        address_type == "postcode"
        or feature_type == "postcode"
        or (address_type == "suburb" and feature_class == "place")
    ):
        return RESULT_ZIP

    if address_type in ("neighbourhood", "suburb", "quarter") or feature_type in ("neighbourhood", "suburb"):
        return RESULT_NEIGHBORHOOD

    if (
        feature_type in ("house", "building")
        or feature_class in ADDRESS_CLASSES
        or address_type in ("road", "house_number")
    ):
        return RESULT_ADDRESS

    span = bounding_box_span(match.boundingbox)
    if span is None:
        return RESULT_CITY
    config = get_search_config()
    if span < config.get("address_span_degrees", 0.01):
        return RESULT_ADDRESS
    if span > config.get("state_span_degrees", 2.0):
        return RESULT_STATE
    return RESULT_CITY


# --- Matching ---

def _search_zip(address: dict, query: str) -> str | None:
    zip_code = normalize_zip(address.get("postcode"))
    if zip_code:
        return zip_code
    match = re.fullmatch(r"\s*(\d{5})(?:-\d{4})?\s*", query or "")
    return match.group(1) if match else None


def _search_city(address: dict, query: str) -> str | None:
    for key in CITY_COMPONENTS:
        if address.get(key):
            return address[key].strip()
    first = (query or "").split(",")[0].strip()
    return first or None


def _search_state(address: dict, query: str) -> str | None:
    if address.get("state"):
        return correct_state(address["state"])
    # e.g. "US-TX"
    iso = address.get("ISO3166-2-lvl4") or ""
    if iso.upper().startswith("US-"):
        return iso[3:].upper()
    state = correct_state((query or "").split(",")[-1])
    return state or None


def _in_scope(result_type: str, address: dict, query: str):
    """Return a predicate for scope membership, or None when the scope has no filter."""
    if result_type == RESULT_ZIP:
        target = _search_zip(address, query)
        if target:
            return lambda t: normalize_zip(t.zip) == target
    elif result_type in (RESULT_CITY, RESULT_NEIGHBORHOOD):
        target = _search_city(address, query)
        if target:
            target = target.lower()
            return lambda t: (t.city or "").strip().lower() == target
    elif result_type == RESULT_STATE:
        target = _search_state(address, query)
        if target:
            return lambda t: correct_state(t.state) == target
    return None


def match_technicians(
    result_type: str,
    latitude: float,
    longitude: float,
    address: dict | None,
    technicians: list[TechnicianRecord],
    query: str = "",
    limit: int | None = None,
) -> list[SearchResult]:
    """
    Rank active technicians for a classified search.

    Every scope sorts new technicians first, then by ascending distance.
    address/unknown scopes, and any filtered scope that matches nobody,
    return the nearest `limit` technicians flagged as fallback. The result
    is never empty when an active technician exists.
    """
    limit = limit or get_fallback_limit()
    address = address or {}

    ranked = [
        SearchResult(
            technician=t,
            distance_miles=haversine_distance(latitude, longitude, t.latitude, t.longitude),
        )
        for t in technicians
        if t.is_active
    ]
    ranked.sort(key=lambda r: (not r.technician.is_new, r.distance_miles))

    predicate = _in_scope(result_type, address, query)
    if predicate is not None:
        matched = [r for r in ranked if predicate(r.technician)]
        if matched:
            logger.info(f"Search scope {result_type}: {len(matched)} technicians in scope")
            return matched

    fallback = ranked[:limit]
    for r in fallback:
        r.is_fallback = True
    logger.info(f"Search scope {result_type}: no direct matches, returning nearest {len(fallback)}")
    return fallback


def search_technicians(query: str, db, geocoder, limit: int | None = None) -> SearchOutcome:
    """
    Geocode a query, classify it and match technicians.

    Raises:
        LocationNotFoundError: The geocoder has no match for the query
        GeocoderError: The geocoder failed
    """
    match = geocoder.search(query)
    if match is None:
        raise LocationNotFoundError(query)

    result_type = classify_result(match)
    logger.info(f"Search {query!r} classified as {result_type} ({match.display_name})")

    results = match_technicians(
        result_type,
        match.latitude,
        match.longitude,
        match.address,
        db.get_technicians(active_only=True),
        query=query,
        limit=limit,
    )
    return SearchOutcome(
        query=query,
        result_type=result_type,
        latitude=match.latitude,
        longitude=match.longitude,
        results=results,
        display_name=match.display_name,
    )
