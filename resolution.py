"""
Coordinate resolution chain shared by bulk import and manual entry.

A chain is an ordered list of strategies. Each strategy takes a
CoordinateRequest and returns a Resolution or None; the first hit wins.
What happens to an unresolved request is the caller's policy.
"""

import logging
from dataclasses import dataclass

from geo import is_valid_us_coordinate, lookup_major_city
from utils import get_placeholder_zip, normalize_zip

logger = logging.getLogger(__name__)

SOURCE_EXPLICIT = "explicit"
SOURCE_ZIP_CENTROID = "zip_centroid"
SOURCE_CITY_CENTROID = "city_centroid"
SOURCE_BUILTIN_CITY = "builtin_city"


@dataclass
class CoordinateRequest:
    """What is known about a location before resolution."""

    latitude: float | None
    longitude: float | None
    zip: str | None
    city: str
    state: str

    @classmethod
    def from_row(cls, row) -> "CoordinateRequest":
        """Build from anything with latitude/longitude/zip/city/state attributes."""
        return cls(
            latitude=row.latitude,
            longitude=row.longitude,
            zip=row.zip,
            city=row.city,
            state=row.state,
        )


@dataclass
class Resolution:
    """Resolved coordinates plus the ZIP to store."""

    latitude: float
    longitude: float
    source: str
    zip: str | None = None  # canonical ZIP carried by a centroid, if any


def explicit_coordinates(request: CoordinateRequest) -> Resolution | None:
    """Use the request's own coordinates when they pass the US sanity check."""
    if not is_valid_us_coordinate(request.latitude, request.longitude):
        return None
    return Resolution(request.latitude, request.longitude, SOURCE_EXPLICIT)


class ZipCentroidStrategy:
    """Resolve through the ZIP tier of a CentroidResolver."""

    def __init__(self, resolver):
        self.resolver = resolver

    def __call__(self, request: CoordinateRequest) -> Resolution | None:
        centroid = self.resolver.resolve_by_zip(request.zip)
        if centroid is None:
            return None
        return Resolution(centroid.latitude, centroid.longitude, SOURCE_ZIP_CENTROID, centroid.zip)


class CityCentroidStrategy:
    """Resolve through the city/state tier of a CentroidResolver."""

    def __init__(self, resolver):
        self.resolver = resolver

    def __call__(self, request: CoordinateRequest) -> Resolution | None:
        centroid = self.resolver.resolve_by_city(request.city, request.state)
        if centroid is None:
            return None
        return Resolution(centroid.latitude, centroid.longitude, SOURCE_CITY_CENTROID, centroid.zip)


def builtin_city_coordinates(request: CoordinateRequest) -> Resolution | None:
    """Last resort for manual entry: the built-in major-city table."""
    coords = lookup_major_city(request.city, request.state)
    if coords is None:
        return None
    return Resolution(coords[0], coords[1], SOURCE_BUILTIN_CITY)


class CoordinateResolutionChain:
    """Ordered strategies; resolve() returns the first hit or None."""

    def __init__(self, strategies: list):
        self.strategies = list(strategies)
        self._placeholder_zip = get_placeholder_zip()

    def resolve(self, request: CoordinateRequest) -> Resolution | None:
        for strategy in self.strategies:
            resolution = strategy(request)
            if resolution is not None:
                resolution.zip = self._settle_zip(request.zip, resolution.zip)
                return resolution
        return None

    def _settle_zip(self, requested: str | None, canonical: str | None) -> str:
        """Keep a real requested ZIP; backfill a missing or placeholder one."""
        zip_code = normalize_zip(requested)
        if zip_code and zip_code != self._placeholder_zip:
            return zip_code
        return normalize_zip(canonical) or self._placeholder_zip


def bulk_import_chain(resolver) -> CoordinateResolutionChain:
    """Explicit coordinates, then ZIP centroid, then city centroid."""
    return CoordinateResolutionChain([
        explicit_coordinates,
        ZipCentroidStrategy(resolver),
        CityCentroidStrategy(resolver),
    ])


def manual_entry_chain(resolver) -> CoordinateResolutionChain:
    """The bulk chain plus the built-in major-city table."""
    return CoordinateResolutionChain([
        explicit_coordinates,
        ZipCentroidStrategy(resolver),
        CityCentroidStrategy(resolver),
        builtin_city_coordinates,
    ])
