"""
CSV export of the technician roster.

The column order matches the import layout, so an exported file can be
re-imported as-is (the header row is detected and skipped).
"""

import csv
import io
from datetime import datetime

from models import TechnicianRecord

ROSTER_COLUMNS = [
    "name",
    "phone",
    "email",
    "city",
    "state",
    "zip",
    "latitude",
    "longitude",
    "service_radius_miles",
    "specialty",
    "priority",
    "notes",
]


def build_roster_row(tech: TechnicianRecord) -> list:
    """Build one export row. Text stays str (quoted), numbers stay numeric (unquoted)."""
    return [
        tech.name or "",
        tech.phone or "",
        tech.email or "",
        tech.city or "",
        tech.state or "",
        tech.zip or "",
        tech.latitude,
        tech.longitude,
        tech.service_radius_miles,
        ";".join(tech.specialty or []),
        tech.priority or "",
        tech.notes or "",
    ]


def export_roster_csv(technicians: list[TechnicianRecord]) -> tuple[str, str]:
    """
    Export technicians to CSV.

    Text fields are quoted with embedded quotes doubled; numeric fields are
    written bare. Specialties are joined with ';'.

    Returns:
        Tuple of (csv_content, filename)
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    # Header row unquoted
    output.write(",".join(ROSTER_COLUMNS) + "\n")
    for tech in technicians:
        writer.writerow(build_roster_row(tech))

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return output.getvalue(), f"technicians_{timestamp}.csv"
