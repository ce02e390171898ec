"""
Utility functions for the coverage roster.
Includes config loading, phone cleaning, and city/state/ZIP normalization.
"""

import re
from pathlib import Path
from functools import lru_cache

import yaml


# --- Configuration Loading ---

@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load roster configuration from YAML file.

    Cached for the process lifetime; restart the app to pick up YAML changes.
    """
    config_path = Path(__file__).parent / "config" / "coverage.yaml"
    with open(config_path, "r") as f:
        return yaml.safe_load(f)


def get_import_config() -> dict:
    """Get bulk import settings (batch sizes, defaults, policies)."""
    config = load_config()
    return config.get("import", {})


def get_roster_config() -> dict:
    """Get roster maintenance settings."""
    config = load_config()
    return config.get("roster", {"delete_batch_size": 50})


def get_search_config() -> dict:
    """Get location search settings."""
    config = load_config()
    return config.get("search", {})


def get_geocoder_config() -> dict:
    """Get geocoding service settings."""
    config = load_config()
    return config.get("geocoder", {})


def get_seed_config() -> dict:
    """Get centroid seeding settings."""
    config = load_config()
    return config.get("seed", {})


def get_default_radius() -> int:
    """Get default technician service radius in miles."""
    return get_import_config().get("default_radius_miles", 25)


def get_placeholder_zip() -> str:
    """Get the ZIP stored when a technician's postal code is unknown."""
    return get_import_config().get("placeholder_zip", "00000")


def get_fallback_limit() -> int:
    """Get the number of nearest technicians returned by a fallback search."""
    return get_search_config().get("fallback_limit", 10)


# --- Phone Cleaning ---

def strip_phone(phone: str) -> str:
    """Normalize phone number to digits only.

    Drops a leading US country code from 11-digit numbers.
    """
    if not phone:
        return ""

    digits = re.sub(r'\D', '', phone)

    # Handle country code
    if len(digits) == 11 and digits.startswith('1'):
        digits = digits[1:]

    return digits


def format_phone(phone: str) -> str:
    """Format phone number as (XXX) XXX-XXXX."""
    digits = strip_phone(phone)

    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"

    return phone  # Return original if can't format


# --- State Normalization ---

# US state name → abbreviation
STATE_NAMES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC",
}

# 50 states + DC
VALID_STATE_CODES = frozenset(STATE_NAMES.values())

# Common state abbreviation misspellings
STATE_CORRECTIONS = {
    "te": "TX", "tx.": "TX", "tex": "TX",
    "ca.": "CA", "cal": "CA", "cali": "CA",
    "fl.": "FL", "fla": "FL",
    "ny.": "NY",
    "il.": "IL", "ill": "IL",
    "pa.": "PA", "penn": "PA",
    "oh.": "OH",
    "ga.": "GA",
    "nc.": "NC",
    "va.": "VA",
    "wa.": "WA", "wash": "WA",
    "az.": "AZ", "ariz": "AZ",
    "co.": "CO", "colo": "CO",
    "tn.": "TN", "tenn": "TN",
    "mo.": "MO",
    "mn.": "MN", "minn": "MN",
    "wi.": "WI", "wis": "WI",
    "or.": "OR", "ore": "OR",
    "nv.": "NV", "nev": "NV",
    "md.": "MD",
    "in.": "IN", "ind": "IN",
    "mi.": "MI", "mich": "MI",
    "ok.": "OK", "okla": "OK",
    "ky.": "KY",
    "nm.": "NM",
    "ne.": "NE", "neb": "NE",
    "ut.": "UT",
    "sc.": "SC",
}


def correct_state(state: str) -> str:
    """Correct state abbreviation from full name or common misspellings.

    Returns a valid 2-letter code, or the input upper-cased when it can't be
    recognized. Unrecognized codes pass through; callers don't reject them.
    """
    if not state:
        return ""

    upper = state.strip().upper()
    if upper in VALID_STATE_CODES:
        return upper

    lower = state.strip().lower()
    if lower in STATE_NAMES:
        return STATE_NAMES[lower]
    if lower in STATE_CORRECTIONS:
        return STATE_CORRECTIONS[lower]

    return upper


# --- City Normalization ---

# Common city misspellings → correct spelling
CITY_CORRECTIONS = {
    "huston": "Houston", "housten": "Houston", "houstin": "Houston",
    "dalls": "Dallas", "dalas": "Dallas",
    "phonix": "Phoenix", "pheonix": "Phoenix",
    "miamii": "Miami", "maimi": "Miami",
    "atlana": "Atlanta", "altanta": "Atlanta",
    "seatle": "Seattle", "seattl": "Seattle", "seattel": "Seattle",
    "chicgo": "Chicago", "chicagoo": "Chicago", "chigago": "Chicago",
    "denvar": "Denver", "denvor": "Denver",
    "bostan": "Boston", "bostom": "Boston",
    "san fran": "San Francisco", "sanfrancisco": "San Francisco",
    "detriot": "Detroit", "detrot": "Detroit",
    "minneapolls": "Minneapolis", "mineapolis": "Minneapolis",
    "portlnad": "Portland", "portand": "Portland",
    "nashvile": "Nashville", "nashvill": "Nashville",
    "charlote": "Charlotte", "charolette": "Charlotte", "charlott": "Charlotte",
    "las vagas": "Las Vegas", "las vegus": "Las Vegas",
    "colombus": "Columbus", "columbis": "Columbus",
    "fort woth": "Fort Worth", "forworth": "Fort Worth",
    "san antono": "San Antonio", "san antinio": "San Antonio",
    "austen": "Austin", "austn": "Austin",
    "arlinton": "Arlington", "arlingotn": "Arlington",
    "san deigo": "San Diego", "sandiego": "San Diego",
    "jacksonvile": "Jacksonville", "jaxsonville": "Jacksonville",
    "indianpolis": "Indianapolis", "indianopolis": "Indianapolis",
    "san hose": "San Jose", "sanjose": "San Jose",
    "philedelphia": "Philadelphia", "philadephia": "Philadelphia", "philly": "Philadelphia",
    "washingon": "Washington", "washinton": "Washington",
    "balitmore": "Baltimore", "baltmore": "Baltimore",
    "tamapa": "Tampa", "tamppa": "Tampa",
    "olrando": "Orlando", "oralndo": "Orlando",
    "sacremento": "Sacramento", "sacrimento": "Sacramento",
    "ralegh": "Raleigh", "raliegh": "Raleigh",
    "memphys": "Memphis", "memphs": "Memphis",
    "okalhoma city": "Oklahoma City", "oklohoma city": "Oklahoma City",
    "lousville": "Louisville", "louiville": "Louisville",
    "milwakee": "Milwaukee", "milwuakee": "Milwaukee",
    "tuscon": "Tucson", "tucsen": "Tucson",
    "albquerque": "Albuquerque", "albuqurque": "Albuquerque", "albequerque": "Albuquerque",
    "salt lke city": "Salt Lake City", "saltlakecity": "Salt Lake City",
    "el passo": "El Paso", "elpaso": "El Paso",
    "wacco": "Waco",
    "pittsburg": "Pittsburgh", "pitsberg": "Pittsburgh",
    "st louis": "St. Louis", "saint louis": "St. Louis",
    "new yourk": "New York", "newyork": "New York",
    "los angelas": "Los Angeles", "los angleles": "Los Angeles", "losangeles": "Los Angeles",
    "kansascity": "Kansas City", "kansas cty": "Kansas City",
}


def correct_city(city: str) -> str:
    """Correct common city name misspellings.

    Returns the corrected city name, or the original with each word capitalized.
    """
    if not city:
        return ""

    lower = city.strip().lower()
    if lower in CITY_CORRECTIONS:
        return CITY_CORRECTIONS[lower]

    # Capitalize word starts only; the rest of each word keeps its casing
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), city.strip())


# --- ZIP Normalization ---

def normalize_zip(zip_code: str | None) -> str | None:
    """Normalize ZIP to a 5-digit string.

    Drops a +4 suffix and left-pads truncated ZIPs (e.g., "501" → "00501").
    Returns None when the input isn't a 1-5 digit ZIP.
    """
    if not zip_code:
        return None

    val = str(zip_code).strip()
    # Handle 9-digit ZIPs (e.g., "75201-1234")
    if "-" in val:
        val = val.split("-")[0].strip()

    if not val.isdigit() or len(val) > 5:
        return None

    return val.zfill(5)
