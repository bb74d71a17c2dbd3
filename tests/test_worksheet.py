"""Tests for the worksheet model — uses programmatic openpyxl workbooks and CSV bytes."""

from datetime import date, datetime, time

import pytest

from sims.core.errors import MediaParseError, UnknownColumnError
from sims.core.media_parser import CSV_MIMETYPE, XLSX_MIMETYPE, MediaFile
from sims.core.worksheet import (
    Workbook,
    Worksheet,
    _build_header_map,
    is_empty,
    normalize_cell,
    normalize_header,
)
from tests.conftest import make_csv_bytes, make_xlsx_bytes


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_header_trimmed_and_upper_cased(self):
        assert normalize_header("  Study Area ") == "STUDY AREA"
        assert normalize_header(None) == ""
        assert normalize_header(2023) == "2023"

    def test_cell_values(self):
        assert normalize_cell(None) is None
        assert normalize_cell("") is None
        assert normalize_cell("   ") is None
        assert normalize_cell(True) == "TRUE"
        assert normalize_cell(5) == 5
        assert normalize_cell(2.5) == 2.5
        assert normalize_cell(datetime(2023, 1, 2)) == datetime(2023, 1, 2)
        assert normalize_cell(date(2023, 1, 2)) == date(2023, 1, 2)
        assert normalize_cell(time(8, 30)) == "08:30:00"
        assert normalize_cell(" x ") == " x "

    def test_is_empty(self):
        assert is_empty(None)
        assert is_empty("  ")
        assert not is_empty(0)
        assert not is_empty("0")

    def test_header_map_first_occurrence_wins(self):
        assert _build_header_map(["A", "B", "A", ""]) == {"A": 0, "B": 1}


# ---------------------------------------------------------------------------
# Worksheet
# ---------------------------------------------------------------------------

class TestWorksheet:
    def test_from_raw_rows(self):
        ws = Worksheet.from_raw_rows("Obs", [
            ("Species", "Count", None),
            ("Moose", 3, None),
            (None, None, None),
            ("Elk", "4", None),
        ])
        assert ws.headers == ("SPECIES", "COUNT")
        assert [r.row_number for r in ws.rows] == [2, 4]
        assert ws.get_value(ws.rows[1], "count") == "4"

    def test_short_rows_are_padded(self):
        ws = Worksheet.from_raw_rows("Obs", [("A", "B", "C"), ("x",)])
        assert ws.rows[0].values == ("x", None, None)

    def test_column_lookup_case_insensitive(self):
        ws = Worksheet.from_raw_rows("Obs", [("Study Area",), ("North",)])
        assert ws.has_column("study area")
        assert ws.column_index(" STUDY AREA ") == 0
        assert list(ws.iter_column("Study Area")) == [(ws.rows[0], "North")]

    def test_unknown_column_raises(self):
        ws = Worksheet.from_raw_rows("Obs", [("A",), (1,)])
        assert not ws.has_column("B")
        with pytest.raises(UnknownColumnError):
            ws.column_index("B")
        with pytest.raises(KeyError):
            ws.get_value(ws.rows[0], "B")

    def test_empty_sheet(self):
        ws = Worksheet.from_raw_rows("Empty", [])
        assert ws.headers == ()
        assert ws.rows == ()


# ---------------------------------------------------------------------------
# Workbook parsing
# ---------------------------------------------------------------------------

class TestWorkbookFromMedia:
    def test_xlsx_sheets_and_properties(self):
        buffer = make_xlsx_bytes(
            {
                "Summary Results": [["Study Area", "Count"], ["North", 3], ["South", 4]],
                "Notes": [["Note"], ["ok"]],
            },
            properties={"sims_name": "Moose Summary Results", "sims_version": "1.0"},
        )
        wb = Workbook.from_media(MediaFile("summary.xlsx", XLSX_MIMETYPE, buffer))
        assert wb.sheet_names == ["Summary Results", "Notes"]
        assert wb.custom_properties["sims_name"] == "Moose Summary Results"
        assert wb.custom_properties["sims_version"] == "1.0"
        ws = wb.get_worksheet("Summary Results")
        assert ws.headers == ("STUDY AREA", "COUNT")
        assert ws.get_value(ws.rows[1], "Count") == 4

    def test_csv_single_sheet_named_after_file(self):
        buffer = make_csv_bytes([["Study Area", "Count"], ["North", "3"]])
        wb = Workbook.from_media(MediaFile("summary results.csv", CSV_MIMETYPE, buffer))
        assert wb.sheet_names == ["summary results"]
        ws = wb.get_worksheet("summary results")
        # CSV cells stay as text
        assert ws.get_value(ws.rows[0], "Count") == "3"
        assert wb.custom_properties == {}

    def test_csv_without_name(self):
        wb = Workbook.from_media(MediaFile("", CSV_MIMETYPE, b"A\n1\n"))
        assert wb.sheet_names == ["Sheet1"]

    def test_corrupt_xlsx_raises(self):
        with pytest.raises(MediaParseError):
            Workbook.from_media(MediaFile("bad.xlsx", XLSX_MIMETYPE, b"PK\x03\x04not really"))

    def test_unsupported_media_raises(self):
        with pytest.raises(MediaParseError):
            Workbook.from_media(MediaFile("x.png", "image/png", b"\x89PNG"))
