"""
ZIP and city/state centroid cache: batched lookups, live ZIP fill, seeding.

Lookups for a whole import run are collected up front (prefetch) and read in
bounded batches, so resolving N rows costs a handful of store reads rather
than one per row.
"""

import asyncio
import logging

import httpx

from errors import GeocoderError, GeocoderRateLimitError, SeedError
from geo import is_valid_us_coordinate, parse_coordinate
from models import Centroid
from utils import get_import_config, get_placeholder_zip, get_seed_config, normalize_zip

logger = logging.getLogger(__name__)


def _city_key(city: str, state: str) -> tuple[str, str] | None:
    """Lookup key for the city tier: (lower-cased city, upper-cased state)."""
    city = (city or "").strip().lower()
    state = (state or "").strip().upper()
    if not city or not state:
        return None
    return city, state


class CentroidResolver:
    """
    Two-tier centroid cache (ZIP first, then city/state) for one run.

    A miss is not an error: resolve_* returns None and the caller moves on
    to the next tier. Keys that were not prefetched are read on demand and
    memoised, misses included.
    """

    def __init__(self, db, batch_size: int | None = None):
        self.db = db
        self.batch_size = batch_size or get_import_config().get("centroid_batch_size", 500)
        self._placeholder_zip = get_placeholder_zip()
        self._zips: dict[str, Centroid | None] = {}
        self._cities: dict[tuple[str, str], Centroid | None] = {}

    def _zip_key(self, zip_code: str | None) -> str | None:
        key = normalize_zip(zip_code)
        if key is None or key == self._placeholder_zip:
            return None
        return key

    def prefetch(self, zips: list[str], city_states: list[tuple[str, str]]) -> None:
        """Load every distinct ZIP and (city, state) key in bounded batches."""
        zip_keys = sorted({k for k in (self._zip_key(z) for z in zips) if k} - self._zips.keys())
        if zip_keys:
            found = self.db.get_zip_centroids(zip_keys, batch_size=self.batch_size)
            for key in zip_keys:
                self._zips[key] = found.get(key)

        city_keys = sorted(
            {k for k in (_city_key(c, s) for c, s in city_states) if k} - self._cities.keys()
        )
        if city_keys:
            found = self.db.get_city_centroids(city_keys, batch_size=self.batch_size)
            for key in city_keys:
                self._cities[key] = found.get(key)

        logger.info(
            f"Centroid prefetch: {len(zip_keys)} ZIPs, {len(city_keys)} cities "
            f"(batch size {self.batch_size})"
        )

    def resolve_by_zip(self, zip_code: str | None) -> Centroid | None:
        """Centroid for a ZIP (normalized to 5 digits), or None."""
        key = self._zip_key(zip_code)
        if key is None:
            return None
        if key not in self._zips:
            self._zips[key] = self.db.get_zip_centroids([key]).get(key)
        return self._zips[key]

    def resolve_by_city(self, city: str, state: str) -> Centroid | None:
        """Centroid for a city/state pair (case-insensitive city, exact state), or None."""
        key = _city_key(city, state)
        if key is None:
            return None
        if key not in self._cities:
            self._cities[key] = self.db.get_city_centroids([key]).get(key)
        return self._cities[key]


# --- Live ZIP fill ---

def fill_missing_zip_centroids(db, geocoder, zips: list[str]) -> dict[str, Centroid]:
    """
    Geocode ZIPs that are not cached yet and store the results.

    Calls are sequential; the geocoder enforces its own minimum interval.
    Results outside the US sanity box are discarded. A rate-limit response
    stops the loop but keeps (and stores) everything resolved so far.

    Returns:
        Dict of zip -> Centroid covering cached and newly resolved ZIPs.
    """
    placeholder = get_placeholder_zip()
    unique_zips = sorted({z for z in (normalize_zip(z) for z in zips) if z and z != placeholder})
    if not unique_zips:
        return {}

    centroids = db.get_zip_centroids(unique_zips)
    missing = [z for z in unique_zips if z not in centroids]
    logger.info(f"ZIP fill: {len(centroids)} cached, {len(missing)} to geocode")

    new_rows = []
    for zip_code in missing:
        try:
            coords = geocoder.geocode_postal_code(zip_code)
        except GeocoderRateLimitError as e:
            logger.warning(f"ZIP fill stopped by rate limit after {len(new_rows)} lookups: {e.message}")
            break
        except GeocoderError as e:
            logger.warning(f"ZIP fill: lookup failed for {zip_code}: {e.message}")
            continue

        if coords is None or not is_valid_us_coordinate(*coords):
            logger.debug(f"ZIP fill: no usable result for {zip_code}")
            continue
        lat, lng = coords
        new_rows.append((zip_code, lat, lng))
        centroids[zip_code] = Centroid(latitude=lat, longitude=lng, zip=zip_code)

    if new_rows:
        db.upsert_zip_centroids(new_rows)
        logger.info(f"ZIP fill: cached {len(new_rows)} new centroids")

    return centroids


# --- Seeding from the open US cities dataset ---

def build_seed_rows(data: list[dict]) -> tuple[list[tuple], list[tuple]]:
    """
    Turn dataset entries into upsert rows.

    Entries look like {"zip_code": 501, "latitude": 40.8, "longitude": -73.0,
    "city": "Holtsville", "state": "NY"}. Entries without a usable coordinate
    are skipped. The first valid entry per ZIP and per (city, state) wins; a
    city row carries the ZIP of the entry that created it.

    Returns:
        (zip_rows, city_rows): tuples of (zip, lat, lng) and
        (city, state, lat, lng, zip)
    """
    zip_rows = []
    city_rows = []
    seen_zips = set()
    seen_cities = set()

    for entry in data:
        lat = parse_coordinate(entry.get("latitude"))
        lng = parse_coordinate(entry.get("longitude"))
        if lat is None or lng is None or (lat == 0 and lng == 0):
            continue

        raw_zip = entry.get("zip_code")
        zip_code = normalize_zip(str(raw_zip)) if raw_zip is not None else None
        if zip_code and zip_code not in seen_zips:
            seen_zips.add(zip_code)
            zip_rows.append((zip_code, lat, lng))

        city = (entry.get("city") or "").strip()
        state = (entry.get("state") or "").strip().upper()
        if not city or not state:
            continue
        key = (city.lower(), state)
        if key in seen_cities:
            continue
        seen_cities.add(key)
        city_rows.append((city, state, lat, lng, zip_code))

    return zip_rows, city_rows


async def download_dataset(url: str, timeout: float = 120.0) -> list[dict]:
    """Download the US cities dataset (a JSON array)."""
    logger.info(f"Downloading centroid dataset: {url}")
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SeedError(f"Failed to fetch dataset: HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise SeedError(f"Failed to fetch dataset: {e}")

    try:
        data = response.json()
    except ValueError as e:
        raise SeedError(f"Dataset is not valid JSON: {e}")
    if not isinstance(data, list):
        raise SeedError("Dataset is not a JSON array")
    logger.info(f"Downloaded {len(data)} dataset entries")
    return data


async def seed_centroids(db, force: bool = False, dataset_url: str | None = None) -> dict:
    """
    Populate zip_centroids and city_centroids from the open dataset.

    Idempotent: skipped when the city table already holds more rows than
    the configured threshold, unless force=True. Rows are upserted.
    """
    config = get_seed_config()
    threshold = config.get("already_seeded_threshold", 20000)
    batch_size = config.get("upsert_batch_size", 1000)
    url = dataset_url or config["dataset_url"]

    existing = db.count_city_centroids()
    if existing > threshold and not force:
        logger.info(f"Centroids already seeded ({existing} cities), skipping")
        return {"status": "skipped", "zip_count": 0, "city_count": existing}

    data = await download_dataset(url)
    zip_rows, city_rows = build_seed_rows(data)

    for i in range(0, len(zip_rows), batch_size):
        db.upsert_zip_centroids(zip_rows[i : i + batch_size])
        logger.info(f"Seeded ZIPs {i + 1}-{min(i + batch_size, len(zip_rows))} of {len(zip_rows)}")

    for i in range(0, len(city_rows), batch_size):
        db.upsert_city_centroids(city_rows[i : i + batch_size])
        logger.info(f"Seeded cities {i + 1}-{min(i + batch_size, len(city_rows))} of {len(city_rows)}")

    logger.info(f"Centroid seeding complete: {len(zip_rows)} ZIPs, {len(city_rows)} cities")
    return {"status": "seeded", "zip_count": len(zip_rows), "city_count": len(city_rows)}


def run_seed(db, force: bool = False, dataset_url: str | None = None) -> dict:
    """Synchronous wrapper for seed_centroids."""
    return asyncio.run(seed_centroids(db, force=force, dataset_url=dataset_url))
