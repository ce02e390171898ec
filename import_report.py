"""
Import run reporting: totals, skipped rows and reason breakdown.
"""

import csv
import io
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from models import ParsedRow, SkippedRow

SKIPPED_COLUMNS = ["Row #", "Name", "Phone", "City/State", "Reason"]


def reason_category(reason: str) -> str:
    """Strip the detail suffix: 'invalid phone: 7 digits' -> 'invalid phone'."""
    return reason.split(":", 1)[0].strip()


@dataclass
class ImportReport:
    """Aggregate result of one bulk import run."""

    total_rows: int = 0
    imported_count: int = 0
    skipped: list[SkippedRow] = field(default_factory=list)
    without_coordinates: list[ParsedRow] = field(default_factory=list)
    cancelled: bool = False

    def add_skipped(self, rows: list[SkippedRow]) -> None:
        """Merge skipped rows, keeping the list sorted by row number."""
        self.skipped.extend(rows)
        self.skipped.sort(key=lambda s: s.row)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def reason_counts(self) -> dict[str, int]:
        """Skip counts by reason category, most frequent first."""
        counts = Counter(reason_category(s.reason) for s in self.skipped)
        return dict(counts.most_common())

    def summary(self) -> str:
        """One-line result for status display."""
        parts = [f"Imported {self.imported_count} of {self.total_rows} rows"]
        if self.skipped:
            breakdown = ", ".join(f"{reason}: {count}" for reason, count in self.reason_counts.items())
            parts.append(f"{self.skipped_count} skipped ({breakdown})")
        if self.without_coordinates:
            parts.append(f"{len(self.without_coordinates)} without coordinates")
        if self.cancelled:
            parts.append("cancelled before completion")
        return "; ".join(parts)

    def skipped_to_csv(self) -> tuple[str, str]:
        """
        Export skipped rows.

        Returns:
            Tuple of (csv_content, filename)
        """
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(SKIPPED_COLUMNS)
        for s in self.skipped:
            writer.writerow([s.row, s.name, s.phone, s.city_state, s.reason])

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return output.getvalue(), f"import_skipped_{timestamp}.csv"
