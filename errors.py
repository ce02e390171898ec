"""
Pipeline error hierarchy.

All pipeline-level exceptions inherit from PipelineError, which provides:
- message: technical detail (for logs)
- user_message: safe string (for UI display, no schema details)
- recoverable: whether the caller should retry
"""


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, user_message: str, recoverable: bool = True):
        self.message = message
        self.user_message = user_message
        self.recoverable = recoverable
        super().__init__(message)


class ImportFileError(PipelineError):
    """The uploaded grid cannot be processed at all (empty file, no data rows)."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            user_message=f"Could not read the import file: {message}",
            recoverable=False,
        )


class ImportAbortedError(PipelineError):
    """A batch failed while running with the abort-all policy. Nothing was committed."""

    def __init__(self, batch_start_row: int, detail: str):
        self.batch_start_row = batch_start_row
        super().__init__(
            message=f"Batch starting at row {batch_start_row} failed: {detail}",
            user_message=(
                f"Import stopped at the batch starting on row {batch_start_row}. "
                "No technicians were saved."
            ),
            recoverable=True,
        )


class RecordValidationError(PipelineError):
    """A manually entered technician failed validation."""

    def __init__(self, message: str):
        super().__init__(message=message, user_message=message, recoverable=True)


class GeocoderError(PipelineError):
    """Geocoding service failure (unreachable, bad response)."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(
            message=message,
            user_message="Location search failed. Please try again.",
            recoverable=True,
        )


class GeocoderRateLimitError(GeocoderError):
    """Geocoding service rejected the request with HTTP 429."""

    def __init__(self, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__(
            message=f"Geocoder rate limited. Retry after {retry_after} seconds.",
            status_code=429,
        )
        self.user_message = f"Too many searches. Try again in {retry_after} seconds."


class LocationNotFoundError(PipelineError):
    """The geocoder returned no match for a search query."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(
            message=f"No geocoding match for {query!r}",
            user_message=f'Could not find "{query}"',
            recoverable=True,
        )


class SeedError(PipelineError):
    """Centroid seeding could not fetch or load its dataset."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            user_message="Centroid seeding failed. Check the logs for details.",
            recoverable=True,
        )


# --- Store error translation ---

def is_unique_violation(exc: Exception) -> bool:
    """Check if a store exception is a unique-constraint violation."""
    msg = str(exc).lower()
    return "unique" in msg or "23505" in msg


def is_duplicate_phone_error(exc: Exception) -> bool:
    """Check if a store exception is the technicians.phone unique constraint."""
    return is_unique_violation(exc) and "phone" in str(exc).lower()


def safe_error_message(exc: Exception | None) -> str:
    """Convert a store error to a user-facing message without schema details."""
    if exc is None:
        return "An unexpected error occurred. Please try again."

    msg = str(exc).lower()
    if is_unique_violation(exc):
        return "This record already exists."
    if "foreign key" in msg or "23503" in msg:
        return "Cannot complete this action: the record is referenced by other data."
    if "not null" in msg or "23502" in msg:
        return "A required field is missing. Please check your input."
    if "permission" in msg or "42501" in msg:
        return "You do not have permission to perform this action."
    return "An error occurred. Please try again or contact support."
