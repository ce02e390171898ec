"""Tests for export.py - roster CSV generation."""

import csv
import io

from export import ROSTER_COLUMNS, build_roster_row, export_roster_csv
from importer import run_import
from models import ImportPolicy, TechnicianRecord
from validation import parse_delimited


def make_tech(**overrides) -> TechnicianRecord:
    fields = dict(
        name="Ann Lee",
        phone="(214) 555-0100",
        email="ann@example.com",
        city="Dallas",
        state="TX",
        zip="75201",
        latitude=32.78,
        longitude=-96.8,
        service_radius_miles=40,
        specialty=["hvac", "electrical"],
        priority="best",
        notes="nights only",
    )
    fields.update(overrides)
    return TechnicianRecord(**fields)


class TestBuildRosterRow:
    """Tests for build_roster_row function."""

    def test_column_order(self):
        row = build_roster_row(make_tech())
        assert row == [
            "Ann Lee", "(214) 555-0100", "ann@example.com", "Dallas", "TX", "75201",
            32.78, -96.8, 40, "hvac;electrical", "best", "nights only",
        ]

    def test_missing_optionals_become_empty(self):
        row = build_roster_row(make_tech(phone=None, email=None, specialty=[], notes=None))
        assert row[1] == ""
        assert row[2] == ""
        assert row[9] == ""
        assert row[11] == ""


class TestExportRosterCsv:
    """Tests for export_roster_csv function."""

    def test_header(self):
        content, filename = export_roster_csv([])
        assert content == (
            "name,phone,email,city,state,zip,latitude,longitude,"
            "service_radius_miles,specialty,priority,notes\n"
        )
        assert filename.startswith("technicians_")
        assert filename.endswith(".csv")

    def test_text_quoted_numbers_bare(self):
        content, _ = export_roster_csv([make_tech()])
        line = content.splitlines()[1]
        assert line.startswith('"Ann Lee","(214) 555-0100",')
        assert ',"75201",32.78,-96.8,40,"hvac;electrical",' in line

    def test_embedded_quotes_doubled(self):
        content, _ = export_roster_csv([make_tech(notes='says "hi", twice')])
        assert '"says ""hi"", twice"' in content
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[1][11] == 'says "hi", twice'

    def test_twelve_columns_per_row(self):
        content, _ = export_roster_csv([make_tech(), make_tech(name="Bob", phone=None)])
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[0] == ROSTER_COLUMNS
        assert all(len(r) == 12 for r in rows)


class TestRoundTrip:
    """Exported rosters re-import into the same set of records."""

    def test_export_then_import(self, make_store):
        source = make_store()
        source.insert_technicians_batch([
            make_tech(),
            make_tech(name="Bob Ray", phone=None, email=None, city="Austin", zip="78701",
                      latitude=30.27, longitude=-97.74, specialty=[], priority="normal", notes=None),
            make_tech(name="Cy", phone="(512) 555-0102", city="Waco", zip="00000",
                      latitude=0.0, longitude=0.0, priority="last"),
        ])
        content, _ = export_roster_csv(source.get_technicians())

        target = make_store()
        report = run_import(parse_delimited(content), target, policy=ImportPolicy())

        assert report.imported_count == 3
        assert report.skipped == []
        assert [r.name for r in report.without_coordinates] == ["Cy"]

        def fields(t):
            return (t.name, t.phone, t.email, t.city, t.state, t.zip, t.latitude, t.longitude,
                    t.service_radius_miles, t.specialty, t.priority, t.notes)

        assert [fields(t) for t in target.get_technicians()] == [fields(t) for t in source.get_technicians()]
