"""
Tests for utility functions.

Run with: pytest tests/test_utils.py -v
"""

import pytest
from utils import (
    load_config,
    get_import_config,
    get_search_config,
    get_geocoder_config,
    get_seed_config,
    get_default_radius,
    get_placeholder_zip,
    get_fallback_limit,
    strip_phone,
    format_phone,
    correct_state,
    correct_city,
    normalize_zip,
    VALID_STATE_CODES,
)


class TestConfigLoading:
    """Tests for configuration loading."""

    def test_load_config(self):
        """Test that config loads successfully."""
        config = load_config()
        assert config is not None
        assert "import" in config
        assert "search" in config
        assert "geocoder" in config
        assert "seed" in config

    def test_import_defaults(self):
        config = get_import_config()
        assert config["batch_size"] == 500
        assert config["on_unresolved_coordinate"] == "keep_with_sentinel"
        assert config["on_batch_failure"] == "isolate_per_row"
        assert get_default_radius() == 25
        assert get_placeholder_zip() == "00000"

    def test_search_and_geocoder(self):
        assert get_fallback_limit() == 10
        assert get_search_config()["state_span_degrees"] == 2.0
        assert get_geocoder_config()["min_request_interval"] == pytest.approx(1.1)

    def test_seed_config(self):
        config = get_seed_config()
        assert config["already_seeded_threshold"] == 20000
        assert config["upsert_batch_size"] == 1000
        assert config["dataset_url"].endswith("USCities.json")


class TestStripPhone:
    """Tests for strip_phone()."""

    @pytest.mark.parametrize("raw", [
        "555-123-4567",
        "(555) 123-4567",
        "555.123.4567",
        "+1 555 123 4567",
        "15551234567",
    ])
    def test_normalizes_to_ten_digits(self, raw):
        assert strip_phone(raw) == "5551234567"

    def test_empty(self):
        assert strip_phone("") == ""
        assert strip_phone(None) == ""

    def test_does_not_truncate_long_numbers(self):
        """Extensions stay attached; the row is later rejected, not shortened."""
        assert strip_phone("555-123-4567 x89") == "555123456789"

    def test_eleven_digits_not_starting_with_one(self):
        assert strip_phone("25551234567") == "25551234567"


class TestFormatPhone:
    """Tests for format_phone()."""

    def test_ten_digits(self):
        assert format_phone("5551234567") == "(555) 123-4567"

    def test_country_code(self):
        assert format_phone("1-555-123-4567") == "(555) 123-4567"

    def test_unformattable_returns_original(self):
        assert format_phone("123-45") == "123-45"

    def test_format_then_strip_is_stable(self):
        assert strip_phone(format_phone("555.123.4567")) == "5551234567"


class TestCorrectState:
    """Tests for correct_state()."""

    def test_valid_code_any_case(self):
        assert correct_state("tx") == "TX"
        assert correct_state(" Ca ") == "CA"

    def test_full_name(self):
        assert correct_state("Texas") == "TX"
        assert correct_state("new york") == "NY"
        assert correct_state("District of Columbia") == "DC"

    def test_misspellings(self):
        assert correct_state("tex") == "TX"
        assert correct_state("Cali") == "CA"
        assert correct_state("fla") == "FL"
        assert correct_state("tx.") == "TX"

    def test_unknown_passes_through_upper(self):
        assert correct_state("zz") == "ZZ"
        assert correct_state("ontario") == "ONTARIO"

    def test_empty(self):
        assert correct_state("") == ""

    def test_fifty_one_codes(self):
        assert len(VALID_STATE_CODES) == 51
        assert "DC" in VALID_STATE_CODES


class TestCorrectCity:
    """Tests for correct_city()."""

    def test_misspelling_table(self):
        assert correct_city("huston") == "Houston"
        assert correct_city("  SAN FRAN ") == "San Francisco"
        assert correct_city("st louis") == "St. Louis"

    def test_title_cases_unknown(self):
        assert correct_city("fort collins") == "Fort Collins"
        assert correct_city("  plano ") == "Plano"

    def test_keeps_inner_capitals(self):
        assert correct_city("mcAllen") == "McAllen"

    def test_empty(self):
        assert correct_city("") == ""


class TestNormalizeZip:
    """Tests for normalize_zip()."""

    def test_five_digits(self):
        assert normalize_zip("75201") == "75201"

    def test_zip_plus_four(self):
        assert normalize_zip("75201-1234") == "75201"

    def test_left_pads(self):
        assert normalize_zip("501") == "00501"
        assert normalize_zip(" 2134 ") == "02134"

    def test_invalid(self):
        assert normalize_zip("") is None
        assert normalize_zip(None) is None
        assert normalize_zip("ABCDE") is None
        assert normalize_zip("123456") is None
