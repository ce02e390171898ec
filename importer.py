"""
Bulk technician import: validate, resolve coordinates, persist, report.

Pipeline:
    grid -> validate_rows -> check_existing_phones -> resolution chain
         -> BatchPersister -> ImportReport
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from centroids import CentroidResolver
from errors import ImportAbortedError, ImportFileError, is_duplicate_phone_error, safe_error_message
from geo import SENTINEL_COORDINATE
from import_report import ImportReport
from models import (
    BATCH_ABORT_ALL,
    REASON_CANCELLED,
    REASON_DATABASE_ERROR,
    REASON_DUPLICATE_IN_DB,
    REASON_NO_COORDINATES,
    UNRESOLVED_DROP,
    ImportPolicy,
    ParsedRow,
    SkippedRow,
    TechnicianRecord,
)
from resolution import CoordinateRequest, bulk_import_chain
from utils import get_import_config
from validation import check_existing_phones, validate_rows

logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    """Outcome of persisting a list of records."""

    imported_count: int = 0
    imported_ids: list[str] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)
    cancelled: bool = False


class BatchPersister:
    """
    Insert records in fixed-size batches.

    isolate_per_row: a failed batch is retried one row at a time, and each
    failing row becomes a SkippedRow. abort_all: every batch joins one
    transaction; the first failure rolls everything back and raises
    ImportAbortedError.

    should_stop is checked before each batch. The in-flight batch always
    finishes; rows not yet attempted are reported as cancelled.
    """

    def __init__(
        self,
        db,
        batch_size: int | None = None,
        on_batch_failure: str | None = None,
        progress: Callable[[int, int], None] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ):
        self.db = db
        self.batch_size = batch_size or get_import_config().get("batch_size", 500)
        self.on_batch_failure = on_batch_failure or ImportPolicy.from_config().on_batch_failure
        self.progress = progress
        self.should_stop = should_stop

    def persist(self, items: list[tuple[ParsedRow, TechnicianRecord]]) -> PersistResult:
        """Persist (row, record) pairs. Row numbers are kept for skip reporting."""
        result = PersistResult()
        total = len(items)
        abort_all = self.on_batch_failure == BATCH_ABORT_ALL

        for start in range(0, total, self.batch_size):
            if self.should_stop and self.should_stop():
                result.cancelled = True
                result.skipped.extend(
                    SkippedRow.from_parsed(row, REASON_CANCELLED) for row, _ in items[start:]
                )
                logger.info(f"Import cancelled after {start} of {total} rows")
                break

            batch = items[start : start + self.batch_size]
            if abort_all:
                self._insert_in_transaction(batch, result)
            else:
                self._insert_isolating_failures(batch, result)

            done = min(start + self.batch_size, total)
            logger.info(f"Persisted batch: {done}/{total} rows processed")
            if self.progress:
                self.progress(done, total)

        if abort_all:
            self.db.commit()
        return result

    def _insert_in_transaction(self, batch: list, result: PersistResult) -> None:
        records = [record for _, record in batch]
        try:
            ids = self.db.insert_technicians_batch(records, commit=False)
        except Exception as e:
            self.db.rollback()
            first_row = batch[0][0].row_number
            logger.error(f"Batch starting at row {first_row} failed, rolling back import: {e}")
            raise ImportAbortedError(first_row, safe_error_message(e)) from e
        result.imported_count += len(records)
        result.imported_ids.extend(ids)

    def _insert_isolating_failures(self, batch: list, result: PersistResult) -> None:
        records = [record for _, record in batch]
        try:
            ids = self.db.insert_technicians_batch(records)
            result.imported_count += len(records)
            result.imported_ids.extend(ids)
            return
        except Exception as e:
            logger.warning(
                f"Batch starting at row {batch[0][0].row_number} failed ({e}); "
                f"retrying {len(batch)} rows individually"
            )

        for row, record in batch:
            try:
                result.imported_ids.append(self.db.insert_technician(record))
                result.imported_count += 1
            except Exception as e:
                if is_duplicate_phone_error(e):
                    reason = REASON_DUPLICATE_IN_DB
                else:
                    reason = f"{REASON_DATABASE_ERROR}: {safe_error_message(e)}"
                logger.debug(f"Row {row.row_number} rejected by store: {e}")
                result.skipped.append(SkippedRow.from_parsed(row, reason))


def run_import(
    grid: list[list[str]],
    db,
    policy: ImportPolicy | None = None,
    created_by: str | None = None,
    progress: Callable[[int, int], None] | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> ImportReport:
    """
    Import technicians from a grid of text cells.

    Args:
        grid: Rows of cells, optionally starting with a header row
        db: TursoDatabase (or anything with the same store methods)
        policy: Failure handling; defaults to the configured policy
        created_by: Stored on every inserted record
        progress: Called with (done, total) after each batch
        should_stop: Polled between batches; True stops the run

    Returns:
        ImportReport for the run

    Raises:
        ImportFileError: The grid has no data rows
        ImportAbortedError: A batch failed under the abort_all policy
    """
    policy = policy or ImportPolicy.from_config()

    validation = validate_rows(grid)
    if validation.total_rows == 0:
        raise ImportFileError("the file has no data rows" if grid else "the file is empty")

    report = ImportReport(total_rows=validation.total_rows)
    report.add_skipped(validation.skipped)

    accepted, duplicates = check_existing_phones(validation.accepted, db.get_all_phones())
    report.add_skipped(duplicates)

    resolver = CentroidResolver(db)
    resolver.prefetch(
        [row.zip for row in accepted],
        [(row.city, row.state) for row in accepted],
    )
    chain = bulk_import_chain(resolver)

    items = []
    unresolved = []
    for row in accepted:
        resolution = chain.resolve(CoordinateRequest.from_row(row))
        if resolution is not None:
            record = row.to_record(resolution.latitude, resolution.longitude, resolution.zip, created_by)
        elif policy.on_unresolved_coordinate == UNRESOLVED_DROP:
            report.add_skipped([SkippedRow.from_parsed(row, REASON_NO_COORDINATES)])
            continue
        else:
            lat, lng = SENTINEL_COORDINATE
            record = row.to_record(lat, lng, None, created_by)
            unresolved.append(row)
        items.append((row, record))

    if unresolved:
        logger.warning(f"{len(unresolved)} rows have no coordinates and will be stored at (0, 0)")

    persister = BatchPersister(
        db,
        on_batch_failure=policy.on_batch_failure,
        progress=progress,
        should_stop=should_stop,
    )
    persisted = persister.persist(items)

    report.imported_count = persisted.imported_count
    report.cancelled = persisted.cancelled
    report.add_skipped(persisted.skipped)
    not_stored = {s.row for s in persisted.skipped}
    report.without_coordinates = [row for row in unresolved if row.row_number not in not_stored]

    logger.info(f"Import complete: {report.summary()}")
    return report
