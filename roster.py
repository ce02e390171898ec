"""
Manual roster maintenance: single-record create/edit, activation, deletes.

Manual entry runs the same coordinate chain as bulk import, plus the
built-in major-city table as a last resort.
"""

import logging
from typing import Callable

from centroids import CentroidResolver
from errors import RecordValidationError, is_duplicate_phone_error, safe_error_message
from geo import SENTINEL_COORDINATE, parse_coordinate
from models import UNRESOLVED_DROP, ImportPolicy, TechnicianRecord
from resolution import CoordinateRequest, manual_entry_chain
from utils import (
    correct_city,
    correct_state,
    format_phone,
    get_placeholder_zip,
    get_roster_config,
    normalize_zip,
    strip_phone,
)
from validation import parse_priority, parse_radius, parse_specialties

logger = logging.getLogger(__name__)


def prepare_technician(
    db,
    name: str,
    city: str,
    state: str,
    phone: str = "",
    email: str = "",
    zip_code: str = "",
    latitude=None,
    longitude=None,
    service_radius_miles=None,
    specialty: list[str] | str | None = None,
    priority: str = "",
    notes: str = "",
    is_new: bool = False,
    policy: ImportPolicy | None = None,
) -> TechnicianRecord:
    """
    Validate form input and resolve coordinates into a record (not saved).

    Raises:
        RecordValidationError: Missing name/city/state, a bad phone, or no
            coordinates under the drop policy
    """
    policy = policy or ImportPolicy.from_config()

    name = (name or "").strip()
    if not name:
        raise RecordValidationError("Name is required.")
    if not (city or "").strip() or not (state or "").strip():
        raise RecordValidationError("City and state are required.")
    city = correct_city(city)
    state = correct_state(state)

    phone = (phone or "").strip()
    digits = strip_phone(phone)
    if digits and len(digits) != 10:
        raise RecordValidationError(f"Phone must have 10 digits (got {len(digits)}).")

    if isinstance(specialty, str):
        specialty = parse_specialties(specialty)

    record = TechnicianRecord(
        name=name,
        city=city,
        state=state,
        zip=normalize_zip(zip_code) or get_placeholder_zip(),
        latitude=parse_coordinate(latitude),
        longitude=parse_coordinate(longitude),
        phone=format_phone(phone) if digits else (phone or None),
        email=(email or "").strip() or None,
        service_radius_miles=parse_radius(str(service_radius_miles or "")),
        specialty=list(specialty or []),
        priority=parse_priority(priority),
        notes=(notes or "").strip() or None,
        is_new=is_new,
    )

    chain = manual_entry_chain(CentroidResolver(db))
    resolution = chain.resolve(CoordinateRequest.from_row(record))
    if resolution is not None:
        record.latitude, record.longitude = resolution.latitude, resolution.longitude
        record.zip = resolution.zip
        logger.debug(f"Resolved {record.city_state} via {resolution.source}")
    elif policy.on_unresolved_coordinate == UNRESOLVED_DROP:
        raise RecordValidationError(
            f"Could not find coordinates for {record.city_state}. "
            "Enter a ZIP code or latitude/longitude."
        )
    else:
        logger.warning(f"No coordinates for {record.city_state}; saving at (0, 0)")
        record.latitude, record.longitude = SENTINEL_COORDINATE

    return record


def _save(record: TechnicianRecord, write: Callable) -> None:
    try:
        write(record)
    except Exception as e:
        if is_duplicate_phone_error(e):
            raise RecordValidationError("A technician with this phone number already exists.") from e
        raise RecordValidationError(safe_error_message(e)) from e


def create_technician(db, created_by: str | None = None, **fields) -> TechnicianRecord:
    """Validate, resolve and insert one technician. Returns the saved record."""
    record = prepare_technician(db, **fields)
    record.created_by = created_by
    _save(record, db.insert_technician)
    logger.info(f"Created technician {record.id} ({record.name}, {record.city_state})")
    return record


def update_technician(db, technician_id: str, **fields) -> TechnicianRecord:
    """Validate, resolve and update an existing technician."""
    existing = db.get_technician(technician_id)
    if existing is None:
        raise RecordValidationError("Technician not found.")

    record = prepare_technician(db, **fields)
    record.id = existing.id
    record.is_active = existing.is_active
    record.created_by = existing.created_by
    record.created_at = existing.created_at
    _save(record, db.update_technician)
    logger.info(f"Updated technician {record.id} ({record.name})")
    return record


def set_active(db, technician_id: str, is_active: bool) -> None:
    """Activate or deactivate a technician."""
    db.set_technician_active(technician_id, is_active)
    logger.info(f"Technician {technician_id} {'activated' if is_active else 'deactivated'}")


def delete_technicians(
    db,
    technician_ids: list[str],
    progress: Callable[[int, int], None] | None = None,
) -> int:
    """
    Delete technicians in fixed-size batches.

    Returns:
        Number of ids deleted
    """
    batch_size = get_roster_config().get("delete_batch_size", 50)
    total = len(technician_ids)
    for i in range(0, total, batch_size):
        db.delete_technicians(technician_ids[i : i + batch_size])
        done = min(i + batch_size, total)
        if progress:
            progress(done, total)
    logger.info(f"Deleted {total} technicians")
    return total
