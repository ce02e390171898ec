"""
Tests for the pipeline error hierarchy.

Run with: pytest tests/test_errors.py -v
"""

import sqlite3

import pytest

from errors import (
    PipelineError,
    ImportFileError,
    ImportAbortedError,
    RecordValidationError,
    GeocoderError,
    GeocoderRateLimitError,
    LocationNotFoundError,
    SeedError,
    is_unique_violation,
    is_duplicate_phone_error,
    safe_error_message,
)


class TestPipelineErrorBase:
    """Tests for PipelineError base class."""

    def test_has_message_and_user_message(self):
        e = PipelineError(
            message="technical detail",
            user_message="user-safe text",
            recoverable=True,
        )
        assert e.message == "technical detail"
        assert e.user_message == "user-safe text"
        assert e.recoverable is True

    def test_str_returns_message(self):
        e = PipelineError(message="tech msg", user_message="user msg")
        assert str(e) == "tech msg"

    def test_recoverable_defaults_true(self):
        e = PipelineError(message="x", user_message="y")
        assert e.recoverable is True


class TestSubclasses:
    """All pipeline errors share the base and carry user-safe text."""

    @pytest.mark.parametrize("error", [
        ImportFileError("the file is empty"),
        ImportAbortedError(12, "This record already exists."),
        RecordValidationError("Name is required."),
        GeocoderError("boom", status_code=502),
        GeocoderRateLimitError(30),
        LocationNotFoundError("Atlantis"),
        SeedError("HTTP 404"),
    ])
    def test_inherits_pipeline_error(self, error):
        assert isinstance(error, PipelineError)
        assert error.user_message

    def test_import_file_error_not_recoverable(self):
        assert ImportFileError("empty").recoverable is False

    def test_import_aborted_mentions_row(self):
        e = ImportAbortedError(501, "database error")
        assert e.batch_start_row == 501
        assert "501" in e.user_message
        assert "No technicians were saved" in e.user_message

    def test_rate_limit_is_geocoder_error(self):
        e = GeocoderRateLimitError(45)
        assert isinstance(e, GeocoderError)
        assert e.status_code == 429
        assert e.retry_after == 45
        assert "45 seconds" in e.user_message

    def test_location_not_found_quotes_query(self):
        e = LocationNotFoundError("Atlantis")
        assert e.user_message == 'Could not find "Atlantis"'


class TestStoreErrorTranslation:
    """Tests for store error helpers."""

    def _unique_phone_error(self):
        conn = sqlite3.connect(":memory:")
        conn.execute("CREATE TABLE technicians (phone TEXT UNIQUE)")
        conn.execute("INSERT INTO technicians VALUES ('(555) 123-4567')")
        try:
            conn.execute("INSERT INTO technicians VALUES ('(555) 123-4567')")
        except sqlite3.IntegrityError as e:
            return e
        finally:
            conn.close()
        raise AssertionError("expected IntegrityError")

    def test_sqlite_unique_phone(self):
        e = self._unique_phone_error()
        assert is_unique_violation(e)
        assert is_duplicate_phone_error(e)

    def test_postgres_style_code(self):
        e = Exception('duplicate key value violates constraint "technicians_phone_key" (23505)')
        assert is_unique_violation(e)
        assert is_duplicate_phone_error(e)

    def test_unique_on_other_column_is_not_phone(self):
        e = Exception("UNIQUE constraint failed: city_centroids.city")
        assert is_unique_violation(e)
        assert not is_duplicate_phone_error(e)

    def test_safe_messages(self):
        assert safe_error_message(self._unique_phone_error()) == "This record already exists."
        assert "required field" in safe_error_message(Exception("NOT NULL constraint failed: technicians.name"))
        assert "referenced" in safe_error_message(Exception("FOREIGN KEY constraint failed"))
        assert "permission" in safe_error_message(Exception("permission denied for table"))
        assert "technicians" not in safe_error_message(Exception("no such column: technicians.foo"))
        assert safe_error_message(None).startswith("An unexpected error")
