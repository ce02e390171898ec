"""
Data types shared by the import pipeline and location search.
"""

from dataclasses import dataclass, field

from geo import is_sentinel
from utils import get_import_config


# Priority ranks a technician can carry
PRIORITIES = ("best", "normal", "last")
DEFAULT_PRIORITY = "normal"

# What to do with a row whose coordinates can't be resolved
UNRESOLVED_DROP = "drop"
UNRESOLVED_KEEP_WITH_SENTINEL = "keep_with_sentinel"

# What to do when a batch insert fails
BATCH_ABORT_ALL = "abort_all"
BATCH_ISOLATE_PER_ROW = "isolate_per_row"

# Skip reasons (fixed taxonomy; some carry a detail suffix)
REASON_ROW_TOO_SHORT = "row too short"
REASON_MISSING_NAME = "missing name"
REASON_MISSING_CITY_STATE = "missing city/state"
REASON_INVALID_PHONE = "invalid phone"  # "invalid phone: N digits"
REASON_DUPLICATE_IN_FILE = "duplicate phone in file"  # "...: same as row R"
REASON_DUPLICATE_IN_DB = "duplicate phone in database"
REASON_NO_COORDINATES = "no coordinates found"
REASON_DATABASE_ERROR = "database error"  # "database error: <safe message>"
REASON_CANCELLED = "import cancelled"


@dataclass
class TechnicianRecord:
    """A technician on the roster."""

    name: str
    city: str
    state: str
    zip: str
    latitude: float
    longitude: float
    phone: str | None = None
    email: str | None = None
    service_radius_miles: int = 25
    specialty: list[str] = field(default_factory=list)
    priority: str = DEFAULT_PRIORITY
    notes: str | None = None
    is_active: bool = True
    is_new: bool = False
    created_by: str | None = None
    created_at: str | None = None
    id: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return not is_sentinel(self.latitude, self.longitude)

    @property
    def city_state(self) -> str:
        return f"{self.city}, {self.state}"


@dataclass
class ParsedRow:
    """One accepted input row, coerced at the ingestion boundary."""

    row_number: int
    name: str
    city: str
    state: str
    zip: str
    phone: str | None = None
    phone_digits: str = ""  # normalized, only for duplicate checks
    email: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    service_radius_miles: int = 25
    specialty: list[str] = field(default_factory=list)
    priority: str = DEFAULT_PRIORITY
    notes: str | None = None

    @property
    def city_state(self) -> str:
        return f"{self.city}, {self.state}"

    def to_record(
        self,
        latitude: float,
        longitude: float,
        zip_code: str | None = None,
        created_by: str | None = None,
    ) -> TechnicianRecord:
        """Build the record to persist once coordinates are settled."""
        return TechnicianRecord(
            name=self.name,
            phone=self.phone,
            email=self.email,
            city=self.city,
            state=self.state,
            zip=zip_code or self.zip,
            latitude=latitude,
            longitude=longitude,
            service_radius_miles=self.service_radius_miles,
            specialty=list(self.specialty),
            priority=self.priority,
            notes=self.notes,
            created_by=created_by,
        )


@dataclass
class SkippedRow:
    """An input row that was not imported, with the reason."""

    row: int
    name: str
    phone: str
    city_state: str
    reason: str

    @classmethod
    def from_parsed(cls, parsed: ParsedRow, reason: str) -> "SkippedRow":
        return cls(
            row=parsed.row_number,
            name=parsed.name,
            phone=parsed.phone or "",
            city_state=parsed.city_state,
            reason=reason,
        )


@dataclass
class Centroid:
    """Representative coordinate for a ZIP code or a city/state pair."""

    latitude: float
    longitude: float
    zip: str | None = None


@dataclass
class SearchResult:
    """A technician matched by a location search."""

    technician: TechnicianRecord
    distance_miles: float
    is_fallback: bool = False


@dataclass
class SearchOutcome:
    """Everything a location search produced."""

    query: str
    result_type: str
    latitude: float
    longitude: float
    results: list[SearchResult] = field(default_factory=list)
    display_name: str = ""

    @property
    def is_fallback(self) -> bool:
        return bool(self.results) and all(r.is_fallback for r in self.results)


@dataclass
class ImportPolicy:
    """Failure-handling choices for a bulk import run."""

    on_unresolved_coordinate: str = UNRESOLVED_KEEP_WITH_SENTINEL
    on_batch_failure: str = BATCH_ISOLATE_PER_ROW

    def __post_init__(self):
        if self.on_unresolved_coordinate not in (UNRESOLVED_DROP, UNRESOLVED_KEEP_WITH_SENTINEL):
            raise ValueError(f"Unknown unresolved-coordinate policy: {self.on_unresolved_coordinate}")
        if self.on_batch_failure not in (BATCH_ABORT_ALL, BATCH_ISOLATE_PER_ROW):
            raise ValueError(f"Unknown batch-failure policy: {self.on_batch_failure}")

    @classmethod
    def from_config(cls) -> "ImportPolicy":
        config = get_import_config()
        return cls(
            on_unresolved_coordinate=config.get(
                "on_unresolved_coordinate", UNRESOLVED_KEEP_WITH_SENTINEL
            ),
            on_batch_failure=config.get("on_batch_failure", BATCH_ISOLATE_PER_ROW),
        )
