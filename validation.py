"""
Row validation for bulk technician imports.

Input is a grid of text cells (rows of columns). Each data row is either
accepted as a ParsedRow or routed to exactly one SkippedRow. Nothing here
raises for bad rows.

Column order: name, phone, email, city, state, [zip, latitude, longitude,
radius, specialties, priority, notes]
"""

import csv
import io
import logging
import math
from dataclasses import dataclass, field

from geo import parse_coordinate
from models import (
    DEFAULT_PRIORITY,
    PRIORITIES,
    REASON_DUPLICATE_IN_DB,
    REASON_DUPLICATE_IN_FILE,
    REASON_INVALID_PHONE,
    REASON_MISSING_CITY_STATE,
    REASON_MISSING_NAME,
    REASON_ROW_TOO_SHORT,
    ParsedRow,
    SkippedRow,
)
from utils import (
    correct_city,
    correct_state,
    format_phone,
    get_default_radius,
    get_import_config,
    get_placeholder_zip,
    normalize_zip,
    strip_phone,
)

logger = logging.getLogger(__name__)

# Column positions
COL_NAME = 0
COL_PHONE = 1
COL_EMAIL = 2
COL_CITY = 3
COL_STATE = 4
COL_ZIP = 5
COL_LATITUDE = 6
COL_LONGITUDE = 7
COL_RADIUS = 8
COL_SPECIALTIES = 9
COL_PRIORITY = 10
COL_NOTES = 11


@dataclass
class ValidationResult:
    """Accepted and skipped rows from one pass over a grid."""

    accepted: list[ParsedRow] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)
    total_rows: int = 0  # data rows seen (header and blank rows excluded)
    header_detected: bool = False


# --- Grid extraction ---

def parse_delimited(text: str) -> list[list[str]]:
    """
    Split delimited text into a grid.

    Tab-delimited if the first non-blank line contains a tab, else comma.
    Quoted fields may contain delimiters, newlines and doubled quotes.
    Blank lines are dropped.
    """
    if not text:
        return []
    text = text.lstrip("\ufeff")

    first_line = next((line for line in text.splitlines() if line.strip()), "")
    delimiter = "\t" if "\t" in first_line else ","

    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    return [row for row in reader if not _is_blank(row)]


def _is_blank(row: list) -> bool:
    return not any(str(cell).strip() for cell in row)


def is_header_row(row: list) -> bool:
    """A header mentions 'name' and either 'city' or 'state' (case-insensitive)."""
    joined = " ".join(str(cell) for cell in row).lower()
    return "name" in joined and ("city" in joined or "state" in joined)


def _cell(row: list, index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


# --- Optional field parsing ---

def parse_radius(value: str) -> int:
    """Service radius in miles; the default for blanks, non-numbers and non-positive values."""
    default = get_default_radius()
    if not value:
        return default
    try:
        radius = float(value)
    except ValueError:
        return default
    if math.isnan(radius) or math.isinf(radius) or radius <= 0:
        return default
    return max(1, round(radius))


def parse_specialties(value: str) -> list[str]:
    """Semicolon-delimited tags, trimmed, blanks dropped."""
    if not value:
        return []
    return [tag.strip() for tag in value.split(";") if tag.strip()]


def parse_priority(value: str) -> str:
    """One of best/normal/last (case-insensitive); normal otherwise."""
    priority = (value or "").strip().lower()
    return priority if priority in PRIORITIES else DEFAULT_PRIORITY


# --- Row validation ---

def validate_rows(grid: list[list[str]], has_header: bool | None = None) -> ValidationResult:
    """
    Validate every data row of a grid.

    Args:
        grid: Rows of text cells
        has_header: Force header handling; None detects it from the first row

    Returns:
        ValidationResult. Row numbers are 1-based grid positions with the
        header counted and blank rows ignored.
    """
    min_columns = get_import_config().get("min_columns", 5)
    placeholder_zip = get_placeholder_zip()
    result = ValidationResult()

    rows = [row for row in grid if not _is_blank(row)]
    if rows and (has_header if has_header is not None else is_header_row(rows[0])):
        result.header_detected = True

    # normalized digits -> row number of first occurrence
    seen_phones: dict[str, int] = {}

    for row_number, row in enumerate(rows, start=1):
        if row_number == 1 and result.header_detected:
            continue
        result.total_rows += 1

        name = _cell(row, COL_NAME)
        raw_phone = _cell(row, COL_PHONE)
        raw_city = _cell(row, COL_CITY)
        raw_state = _cell(row, COL_STATE)

        def skip(reason: str, city: str = raw_city, state: str = raw_state):
            city_state = f"{city}, {state}" if city or state else ""
            result.skipped.append(SkippedRow(
                row=row_number, name=name, phone=raw_phone, city_state=city_state, reason=reason,
            ))

        if len(row) < min_columns:
            skip(REASON_ROW_TOO_SHORT)
            continue
        if not name:
            skip(REASON_MISSING_NAME)
            continue
        if not raw_city or not raw_state:
            skip(REASON_MISSING_CITY_STATE)
            continue

        city = correct_city(raw_city)
        state = correct_state(raw_state)

        digits = strip_phone(raw_phone)
        if digits and len(digits) != 10:
            skip(f"{REASON_INVALID_PHONE}: {len(digits)} digits", city, state)
            continue
        if digits:
            if digits in seen_phones:
                skip(f"{REASON_DUPLICATE_IN_FILE}: same as row {seen_phones[digits]}", city, state)
                continue
            seen_phones[digits] = row_number

        result.accepted.append(ParsedRow(
            row_number=row_number,
            name=name,
            city=city,
            state=state,
            zip=normalize_zip(_cell(row, COL_ZIP)) or placeholder_zip,
            phone=format_phone(raw_phone) if digits else (raw_phone or None),
            phone_digits=digits,
            email=_cell(row, COL_EMAIL) or None,
            latitude=parse_coordinate(_cell(row, COL_LATITUDE)),
            longitude=parse_coordinate(_cell(row, COL_LONGITUDE)),
            service_radius_miles=parse_radius(_cell(row, COL_RADIUS)),
            specialty=parse_specialties(_cell(row, COL_SPECIALTIES)),
            priority=parse_priority(_cell(row, COL_PRIORITY)),
            notes=_cell(row, COL_NOTES) or None,
        ))

    logger.info(
        f"Validated {result.total_rows} rows: {len(result.accepted)} accepted, "
        f"{len(result.skipped)} skipped (header={'yes' if result.header_detected else 'no'})"
    )
    return result


def check_existing_phones(
    rows: list[ParsedRow], existing_phones: list[str]
) -> tuple[list[ParsedRow], list[SkippedRow]]:
    """
    Drop rows whose phone is already on file.

    Stored phones are normalized before comparison, so "(555) 123-4567" on
    file matches "555.123.4567" in the upload.

    Returns:
        (kept rows, skipped rows)
    """
    on_file = {strip_phone(p) for p in existing_phones}
    on_file.discard("")

    kept = []
    skipped = []
    for row in rows:
        if len(row.phone_digits) == 10 and row.phone_digits in on_file:
            skipped.append(SkippedRow.from_parsed(row, REASON_DUPLICATE_IN_DB))
        else:
            kept.append(row)

    if skipped:
        logger.info(f"Global duplicate check: {len(skipped)} phones already on file")
    return kept, skipped
