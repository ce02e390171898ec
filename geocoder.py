"""
Nominatim geocoding client with rate limiting and error handling.
"""

import logging
import time
from dataclasses import dataclass, field

import requests
import streamlit as st

from errors import GeocoderError, GeocoderRateLimitError
from geo import parse_coordinate
from utils import get_geocoder_config

# Configure logging
logger = logging.getLogger(__name__)

# Set up console handler if not already configured
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


@dataclass
class GeocodeMatch:
    """Top geocoding hit for a free-text query."""

    latitude: float
    longitude: float
    display_name: str = ""
    feature_type: str = ""  # Nominatim "type"
    feature_class: str = ""  # Nominatim "class"
    address_type: str = ""  # Nominatim "addresstype"
    address: dict = field(default_factory=dict)
    boundingbox: list | None = None  # [south, north, west, east]
    geojson: dict | None = None

    @classmethod
    def from_nominatim(cls, item: dict) -> "GeocodeMatch":
        """Build a match from one element of a Nominatim JSON response."""
        return cls(
            latitude=float(item["lat"]),
            longitude=float(item["lon"]),
            display_name=item.get("display_name", ""),
            feature_type=item.get("type", "") or "",
            feature_class=item.get("class", "") or "",
            address_type=item.get("addresstype", "") or "",
            address=item.get("address") or {},
            boundingbox=item.get("boundingbox"),
            geojson=item.get("geojson"),
        )


class NominatimGeocoder:
    """
    Free-text and postal-code geocoding against Nominatim.

    Requests are sequential with a minimum gap between them, per the
    public instance's usage policy.
    """

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        min_request_interval: float | None = None,
        timeout: int | None = None,
        country_suffix: str | None = None,
    ):
        config = get_geocoder_config()
        self.base_url = (base_url or config.get("base_url", "https://nominatim.openstreetmap.org")).rstrip("/")
        self.user_agent = user_agent or config.get("user_agent", "CoverageRoster/1.0")
        self.min_request_interval = (
            min_request_interval if min_request_interval is not None
            else config.get("min_request_interval", 1.1)
        )
        self.timeout = timeout or config.get("timeout", 30)
        self.country_suffix = (
            country_suffix if country_suffix is not None
            else config.get("country_suffix", ", USA")
        )
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self.user_agent})
        self._last_request_time: float = 0.0

    def _backoff(self, attempt: int) -> float:
        """Retry delay: exponential, never shorter than the request interval."""
        return max(2**attempt, self.min_request_interval)

    def _request(self, params: dict, max_retries: int = 3) -> list:
        """GET /search with proactive rate limiting and retry on server errors."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.min_request_interval:
            wait = self.min_request_interval - elapsed
            logger.debug(f"Rate limiter: waiting {wait:.2f}s")
            time.sleep(wait)

        url = f"{self.base_url}/search"
        last_error = None

        for attempt in range(max_retries):
            try:
                response = self._session.get(url, params=params, timeout=self.timeout)
                self._last_request_time = time.time()

                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 60))
                    logger.warning(f"Geocoder rate limited. Retry-After: {retry_after}s")
                    raise GeocoderRateLimitError(retry_after)

                if response.status_code >= 500:
                    logger.warning(
                        f"Geocoder server error {response.status_code} "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(self._backoff(attempt))
                        continue
                    raise GeocoderError(
                        f"Geocoder error {response.status_code}: {response.text[:200]}",
                        status_code=response.status_code,
                    )

                if response.status_code >= 400:
                    logger.error(f"Geocoder client error {response.status_code}: {response.text[:200]}")
                    raise GeocoderError(
                        f"Geocoder error {response.status_code}: {response.text[:200]}",
                        status_code=response.status_code,
                    )

                try:
                    result = response.json()
                except ValueError as json_err:
                    raise GeocoderError(f"Invalid JSON from geocoder: {json_err}", response.status_code)
                if not isinstance(result, list):
                    raise GeocoderError("Unexpected geocoder response shape", response.status_code)
                return result

            except requests.RequestException as e:
                last_error = e
                logger.warning(f"Geocoder connection error: {e} (attempt {attempt + 1}/{max_retries})")
                if attempt < max_retries - 1:
                    time.sleep(self._backoff(attempt))
                    continue
                raise GeocoderError(f"Connection error: {e}")

        raise GeocoderError(f"Max retries exceeded: {last_error}")

    def search(self, query: str) -> GeocodeMatch | None:
        """Geocode a free-text location. Returns the top hit, or None for no match."""
        query = (query or "").strip()
        if not query:
            return None

        logger.info(f"Geocoding query: {query!r}")
        results = self._request({
            "format": "json",
            "q": f"{query}{self.country_suffix}",
            "limit": 1,
            "addressdetails": 1,
            "polygon_geojson": 1,
        })
        if not results:
            logger.info(f"No geocoding match for {query!r}")
            return None
        return GeocodeMatch.from_nominatim(results[0])

    def geocode_postal_code(self, zip_code: str) -> tuple[float, float] | None:
        """Look up a US ZIP code. Returns (lat, lng) or None."""
        results = self._request({
            "format": "json",
            "postalcode": zip_code,
            "country": "US",
            "limit": 1,
        })
        if not results:
            return None
        lat = parse_coordinate(results[0].get("lat"))
        lng = parse_coordinate(results[0].get("lon"))
        if lat is None or lng is None:
            return None
        return lat, lng


@st.cache_resource
def get_geocoder() -> NominatimGeocoder:
    """Get cached geocoder instance configured from coverage.yaml."""
    return NominatimGeocoder()
