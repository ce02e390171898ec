"""Geographic utilities: distance and coordinate sanity checks."""

import math

# Coarse continental-US box (plus AK/HI latitudes), not a precise polygon
US_LAT_MIN = 18.0
US_LAT_MAX = 72.0
US_LNG_MIN = -180.0
US_LNG_MAX = -65.0

# (0, 0) marks a technician whose coordinates could not be resolved
SENTINEL_COORDINATE = (0.0, 0.0)

# Major US city coordinates, used as a last resort for manual entry
MAJOR_CITY_COORDS = {
    ("new york", "NY"): (40.7128, -74.006),
    ("los angeles", "CA"): (34.0522, -118.2437),
    ("chicago", "IL"): (41.8781, -87.6298),
    ("houston", "TX"): (29.7604, -95.3698),
    ("phoenix", "AZ"): (33.4484, -112.074),
    ("dallas", "TX"): (32.7767, -96.797),
    ("miami", "FL"): (25.7617, -80.1918),
    ("atlanta", "GA"): (33.749, -84.388),
    ("seattle", "WA"): (47.6062, -122.3321),
    ("denver", "CO"): (39.7392, -104.9903),
    ("boston", "MA"): (42.3601, -71.0589),
    ("san francisco", "CA"): (37.7749, -122.4194),
    ("detroit", "MI"): (42.3314, -83.0458),
    ("minneapolis", "MN"): (44.9778, -93.265),
    ("portland", "OR"): (45.5152, -122.6784),
    ("nashville", "TN"): (36.1627, -86.7816),
    ("charlotte", "NC"): (35.2271, -80.8431),
    ("kansas city", "MO"): (39.0997, -94.5786),
    ("las vegas", "NV"): (36.1699, -115.1398),
    ("columbus", "OH"): (39.9612, -82.9988),
    ("fort worth", "TX"): (32.7555, -97.3308),
    ("san antonio", "TX"): (29.4241, -98.4936),
    ("austin", "TX"): (30.2672, -97.7431),
    ("san diego", "CA"): (32.7157, -117.1611),
    ("jacksonville", "FL"): (30.3322, -81.6557),
    ("indianapolis", "IN"): (39.7684, -86.1581),
    ("philadelphia", "PA"): (39.9526, -75.1652),
    ("washington", "DC"): (38.9072, -77.0369),
    ("baltimore", "MD"): (39.2904, -76.6122),
    ("tampa", "FL"): (27.9506, -82.4572),
    ("orlando", "FL"): (28.5383, -81.3792),
    ("st. louis", "MO"): (38.627, -90.1994),
    ("pittsburgh", "PA"): (40.4406, -79.9959),
    ("sacramento", "CA"): (38.5816, -121.4944),
    ("salt lake city", "UT"): (40.7608, -111.891),
}


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate distance in miles between two coordinates using Haversine formula.

    Args:
        lat1, lng1: First point (degrees)
        lat2, lng2: Second point (degrees)

    Returns:
        Distance in miles
    """
    R = 3959  # Earth's radius in miles

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def parse_coordinate(value) -> float | None:
    """Parse a latitude/longitude cell. Returns None for blanks and non-numbers."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def is_valid_us_coordinate(lat: float | None, lng: float | None) -> bool:
    """
    Check a coordinate pair against the US sanity box.

    Valid iff both are numbers, they are not both zero, and
    18 <= lat <= 72 and -180 <= lng <= -65.
    """
    if lat is None or lng is None:
        return False
    if lat == 0 and lng == 0:
        return False
    return US_LAT_MIN <= lat <= US_LAT_MAX and US_LNG_MIN <= lng <= US_LNG_MAX


def is_sentinel(lat: float | None, lng: float | None) -> bool:
    """True if the pair is the (0, 0) 'unresolved' marker."""
    return (lat or 0) == 0 and (lng or 0) == 0


def lookup_major_city(city: str, state: str) -> tuple[float, float] | None:
    """Look up a major city in the built-in table (case-insensitive city)."""
    if not city or not state:
        return None
    return MAJOR_CITY_COORDS.get((city.strip().lower(), state.strip().upper()))


def bounding_box_span(boundingbox: list | None) -> float | None:
    """
    Latitude span of a [south, north, west, east] bounding box, in degrees.

    Returns None when the box is missing or malformed.
    """
    if not boundingbox or len(boundingbox) < 2:
        return None
    south = parse_coordinate(boundingbox[0])
    north = parse_coordinate(boundingbox[1])
    if south is None or north is None:
        return None
    return abs(north - south)
