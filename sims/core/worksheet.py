"""Worksheet model — turns a parsed MediaFile into named, read-only worksheets.

XLSX workbooks are read with openpyxl; CSV files become a single worksheet
named after the file. Headers are trimmed and upper-cased, and each worksheet
builds its header index once so column lookups are O(1) and unknown column
names fail loudly.
"""

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import PurePath
from typing import Any, Iterator, Optional, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from sims.core.errors import MediaParseError, UnknownColumnError
from sims.core.media_parser import MediaFile

logger = logging.getLogger(__name__)

CellValue = Union[str, int, float, datetime, date, None]

DEFAULT_CSV_SHEET_NAME = "Sheet1"


@dataclass(frozen=True)
class Row:
    """A data row. row_number is the 1-based spreadsheet row (headers are row 1)."""
    row_number: int
    values: tuple[CellValue, ...]


def normalize_header(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().upper()


def normalize_cell(value: Any) -> CellValue:
    """Coerce a raw cell into the closed set of cell value types."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, (int, float, datetime, date)):
        return value
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    s = str(value)
    if s.strip() == "":
        return None
    return s


def is_empty(value: CellValue) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _build_header_map(headers: list[str]) -> dict[str, int]:
    """Map normalized header names to their 0-based index (first occurrence wins)."""
    header_map: dict[str, int] = {}
    for i, h in enumerate(headers):
        if h and h not in header_map:
            header_map[h] = i
    return header_map


def _extract_row_values(raw_row: tuple, num_cols: int) -> tuple[CellValue, ...]:
    """Normalize a raw row and pad/truncate it to the header width."""
    values = []
    for i in range(num_cols):
        values.append(normalize_cell(raw_row[i]) if i < len(raw_row) else None)
    return tuple(values)


class Worksheet:
    """A named sheet: ordered headers plus data rows. Never mutated after parse."""

    def __init__(self, name: str, headers: list[Any], rows: list[Row]):
        self.name = name
        self.headers: tuple[str, ...] = tuple(normalize_header(h) for h in headers)
        self.rows: tuple[Row, ...] = tuple(rows)
        self._header_index = _build_header_map(list(self.headers))

    @classmethod
    def from_raw_rows(cls, name: str, raw_rows: list[tuple]) -> "Worksheet":
        """Build a worksheet from raw row tuples; the first row holds the headers."""
        if not raw_rows:
            return cls(name, [], [])

        headers = [normalize_header(h) for h in raw_rows[0]]
        # Drop trailing blank header cells left behind by formatting
        while headers and headers[-1] == "":
            headers.pop()
        num_cols = len(headers)

        rows = []
        for offset, raw_row in enumerate(raw_rows[1:]):
            values = _extract_row_values(tuple(raw_row), num_cols)
            # Skip completely empty rows
            if all(v is None for v in values):
                continue
            rows.append(Row(row_number=offset + 2, values=values))
        return cls(name, headers, rows)

    def has_column(self, column_name: str) -> bool:
        return normalize_header(column_name) in self._header_index

    def column_index(self, column_name: str) -> int:
        key = normalize_header(column_name)
        try:
            return self._header_index[key]
        except KeyError:
            raise UnknownColumnError(
                f"Worksheet '{self.name}' has no column '{column_name}'"
            ) from None

    def get_value(self, row: Row, column_name: str) -> CellValue:
        return row.values[self.column_index(column_name)]

    def iter_column(self, column_name: str) -> Iterator[tuple[Row, CellValue]]:
        idx = self.column_index(column_name)
        for row in self.rows:
            yield row, row.values[idx]

    def __repr__(self) -> str:
        return f"Worksheet(name={self.name!r}, headers={len(self.headers)}, rows={len(self.rows)})"


@dataclass
class Workbook:
    """Every worksheet of one uploaded file plus its custom document properties."""
    file_name: str
    mimetype: str
    worksheets: dict[str, Worksheet] = field(default_factory=dict)
    custom_properties: dict[str, Any] = field(default_factory=dict)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.worksheets.keys())

    def get_worksheet(self, name: str) -> Optional[Worksheet]:
        return self.worksheets.get(name)

    @classmethod
    def from_media(cls, media: MediaFile) -> "Workbook":
        """Parse a MediaFile into a Workbook. Raises MediaParseError on unreadable content."""
        if media.is_xlsx:
            return _parse_xlsx(media)
        if media.is_csv:
            return _parse_csv(media)
        raise MediaParseError(
            f"Unsupported media type '{media.mimetype}' for '{media.file_name}'"
        )


def _read_custom_properties(wb) -> dict[str, Any]:
    props = {}
    for prop in wb.custom_doc_props.props:
        props[prop.name] = prop.value
    return props


def _parse_xlsx(media: MediaFile) -> Workbook:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(media.buffer), read_only=False, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise MediaParseError(f"Unable to read workbook '{media.file_name}': {e}") from e

    try:
        worksheets = {}
        for ws in wb.worksheets:
            raw_rows = list(ws.iter_rows(values_only=True))
            worksheets[ws.title] = Worksheet.from_raw_rows(ws.title, raw_rows)
        custom_properties = _read_custom_properties(wb)
    finally:
        wb.close()

    logger.debug(f"Parsed workbook '{media.file_name}' with sheets {list(worksheets)}")
    return Workbook(
        file_name=media.file_name,
        mimetype=media.mimetype,
        worksheets=worksheets,
        custom_properties=custom_properties,
    )


def _parse_csv(media: MediaFile) -> Workbook:
    try:
        text = media.buffer.decode("utf-8-sig")
        raw_rows = [tuple(r) for r in csv.reader(io.StringIO(text, newline=""))]
    except (UnicodeDecodeError, csv.Error) as e:
        raise MediaParseError(f"Unable to read CSV '{media.file_name}': {e}") from e

    sheet_name = PurePath(media.file_name).stem or DEFAULT_CSV_SHEET_NAME
    return Workbook(
        file_name=media.file_name,
        mimetype=media.mimetype,
        worksheets={sheet_name: Worksheet.from_raw_rows(sheet_name, raw_rows)},
    )
