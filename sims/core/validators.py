"""Validator implementations, one function per validator kind.

Validators only read worksheets and append to a CsvValidation or
MediaValidation accumulator. They never raise for bad input data; an exception
escaping a validator is a bug and is left to propagate.
"""

import math
import re
from datetime import date, datetime
from typing import Callable, Optional

from sims.core.models import SubmissionMessageType
from sims.core.validation_schema import (
    ColumnCodeConfig,
    ColumnFormatConfig,
    ColumnNumericConfig,
    ColumnRangeConfig,
    ColumnRequiredConfig,
    FileColumnUniqueConfig,
    FileDuplicateColumnsConfig,
    FileRecommendedColumnsConfig,
    FileRequiredColumnsConfig,
    FileValidColumnsConfig,
    MimetypeConfig,
    SubmissionRequiredFilesConfig,
    ValidatorConfig,
    WorkbookParentChildKeyMatchConfig,
)
from sims.core.validation_state import CsvValidation, MediaValidation
from sims.core.worksheet import CellValue, Workbook, Worksheet, is_empty, normalize_header

NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def to_number(value: CellValue) -> Optional[float]:
    """Interpret a cell as a finite number, or None if it is not one."""
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        s = value.strip()
        if NUMBER_RE.match(s):
            f = float(s)
            return f if math.isfinite(f) else None
    return None


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def display_value(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def code_key(value) -> str:
    """Comparison key for code values: numbers by value, strings trimmed and case-folded."""
    number = to_number(value)
    if number is not None:
        return format_number(number)
    return display_value(value).strip().lower()


# ---------------------------------------------------------------------------
# Header validators (run before any row validation)
# ---------------------------------------------------------------------------

def validate_required_headers(worksheet: Worksheet, config: FileRequiredColumnsConfig,
                              validation: CsvValidation) -> None:
    for column in config.required_columns:
        if not worksheet.has_column(column):
            validation.add_header_error(
                SubmissionMessageType.MISSING_REQUIRED_HEADER, "Missing required header", column,
            )


def validate_recommended_headers(worksheet: Worksheet, config: FileRecommendedColumnsConfig,
                                 validation: CsvValidation) -> None:
    for column in config.recommended_columns:
        if not worksheet.has_column(column):
            validation.add_header_warning(
                SubmissionMessageType.MISSING_RECOMMENDED_HEADER, "Missing recommended header", column,
            )


def validate_duplicate_headers(worksheet: Worksheet, config: FileDuplicateColumnsConfig,
                               validation: CsvValidation) -> None:
    seen: set[str] = set()
    reported: set[str] = set()
    for header in worksheet.headers:
        if not header:
            continue
        if header in seen and header not in reported:
            validation.add_header_error(
                SubmissionMessageType.DUPLICATE_HEADER, "Duplicate header", header,
            )
            reported.add(header)
        seen.add(header)


def validate_valid_headers(worksheet: Worksheet, config: FileValidColumnsConfig,
                           validation: CsvValidation) -> None:
    if not config.valid_columns:
        return
    allowed = {normalize_header(c) for c in config.valid_columns}
    for header in worksheet.headers:
        if header and header not in allowed:
            validation.add_header_warning(
                SubmissionMessageType.UNKNOWN_HEADER, "Unsupported header", header,
            )


# ---------------------------------------------------------------------------
# Column validators (run per configured column, over every row)
# ---------------------------------------------------------------------------

def validate_required_field(worksheet: Worksheet, column: str, config: ColumnRequiredConfig,
                            validation: CsvValidation) -> None:
    for row, value in worksheet.iter_column(column):
        if is_empty(value):
            validation.add_row_error(
                SubmissionMessageType.MISSING_REQUIRED_FIELD,
                "Missing required value for column", column, row.row_number,
            )


def validate_format(worksheet: Worksheet, column: str, config: ColumnFormatConfig,
                    validation: CsvValidation) -> None:
    if config.reg_exp is None:
        return
    pattern = config.pattern()
    for row, value in worksheet.iter_column(column):
        if is_empty(value):
            continue
        text = display_value(value)
        if not pattern.search(text):
            validation.add_row_error(
                SubmissionMessageType.UNEXPECTED_FORMAT,
                f"Unexpected Format: {text}. {config.expected_format}".strip(),
                column, row.row_number,
            )


def validate_numeric(worksheet: Worksheet, column: str, config: ColumnNumericConfig,
                     validation: CsvValidation) -> None:
    for row, value in worksheet.iter_column(column):
        if is_empty(value):
            continue
        if to_number(value) is None:
            validation.add_row_error(
                SubmissionMessageType.INVALID_VALUE,
                f"Invalid value: {display_value(value)}. Value must be a number",
                column, row.row_number,
            )


def _range_description(min_value: Optional[float], max_value: Optional[float]) -> str:
    if min_value is not None and max_value is not None:
        return f"Value must be between {format_number(min_value)} and {format_number(max_value)}"
    if min_value is not None:
        return f"Value must be greater than or equal to {format_number(min_value)}"
    return f"Value must be less than or equal to {format_number(max_value)}"


def validate_range(worksheet: Worksheet, column: str, config: ColumnRangeConfig,
                   validation: CsvValidation) -> None:
    if config.min_value is None and config.max_value is None:
        return
    for row, value in worksheet.iter_column(column):
        if is_empty(value):
            continue
        number = to_number(value)
        if number is None:
            validation.add_row_error(
                SubmissionMessageType.INVALID_VALUE,
                f"Invalid value: {display_value(value)}. Value must be a number",
                column, row.row_number,
            )
            continue
        too_low = config.min_value is not None and number < config.min_value
        too_high = config.max_value is not None and number > config.max_value
        if too_low or too_high:
            validation.add_row_error(
                SubmissionMessageType.OUT_OF_RANGE,
                f"Invalid value: {display_value(value)}. "
                f"{_range_description(config.min_value, config.max_value)}",
                column, row.row_number,
            )


def validate_code(worksheet: Worksheet, column: str, config: ColumnCodeConfig,
                  validation: CsvValidation) -> None:
    if not config.allowed_code_values:
        return
    allowed = {code_key(c.name) for c in config.allowed_code_values}
    allowed_display = ", ".join(display_value(c.name) for c in config.allowed_code_values)
    for row, value in worksheet.iter_column(column):
        if is_empty(value):
            continue
        if code_key(value) not in allowed:
            validation.add_row_error(
                SubmissionMessageType.INVALID_VALUE,
                f"Invalid value: {display_value(value)}. Must be one of [{allowed_display}]",
                column, row.row_number,
            )


# ---------------------------------------------------------------------------
# File-level row validators (run after column validators)
# ---------------------------------------------------------------------------

def validate_unique_columns(worksheet: Worksheet, config: FileColumnUniqueConfig,
                            validation: CsvValidation) -> None:
    columns = [c for c in config.column_names if worksheet.has_column(c)]
    if not columns:
        return
    col_label = ", ".join(config.column_names)
    first_seen: dict[tuple[str, ...], int] = {}
    for row in worksheet.rows:
        parts = tuple(display_value(worksheet.get_value(row, c)).strip() for c in columns)
        if all(p == "" for p in parts):
            continue
        if parts in first_seen:
            validation.add_row_error(
                SubmissionMessageType.DUPLICATE_KEY,
                f"Duplicate key: {', '.join(parts)}. Key first seen on row {first_seen[parts]}",
                col_label, row.row_number,
            )
        else:
            first_seen[parts] = row.row_number


# ---------------------------------------------------------------------------
# Workbook validators (run across worksheets)
# ---------------------------------------------------------------------------

def _match_key(worksheet: Worksheet, row, columns: list[str]) -> Optional[tuple[str, ...]]:
    parts = []
    for column in columns:
        value = worksheet.get_value(row, column) if worksheet.has_column(column) else None
        parts.append("" if is_empty(value) else display_value(value).strip().lower())
    if all(p == "" for p in parts):
        return None
    return tuple(parts)


def validate_parent_child_key_match(workbook: Workbook, config: WorkbookParentChildKeyMatchConfig,
                                    validations: dict[str, CsvValidation]) -> None:
    if not (config.parent_worksheet_name and config.child_worksheet_name and config.column_names):
        return
    parent = workbook.get_worksheet(config.parent_worksheet_name)
    child = workbook.get_worksheet(config.child_worksheet_name)
    if parent is None or child is None:
        return

    parent_keys = set()
    for row in parent.rows:
        key = _match_key(parent, row, config.column_names)
        if key is not None:
            parent_keys.add(key)

    dangling_rows: list[int] = []
    dangling_keys: list[str] = []
    for row in child.rows:
        key = _match_key(child, row, config.column_names)
        if key is None or key in parent_keys:
            continue
        dangling_rows.append(row.row_number)
        shown = ", ".join(
            display_value(child.get_value(row, c)) if child.has_column(c) else ""
            for c in config.column_names
        )
        if shown not in dangling_keys:
            dangling_keys.append(shown)

    if not dangling_rows:
        return

    validations[child.name].add_key_error(
        SubmissionMessageType.DANGLING_PARENT_CHILD_KEY,
        f"{', '.join(config.column_names)} key(s) [{'; '.join(dangling_keys)}] in "
        f"'{child.name}' have no matching row in '{parent.name}'",
        config.column_names,
        dangling_rows,
    )


# ---------------------------------------------------------------------------
# Submission (media) validators
# ---------------------------------------------------------------------------

def validate_required_files(workbook: Workbook, config: SubmissionRequiredFilesConfig,
                            validation: MediaValidation) -> None:
    present = {name.strip().lower() for name in workbook.sheet_names}
    for required in config.required_files:
        if required.strip().lower() not in present:
            validation.add_file_error(
                SubmissionMessageType.MISSING_REQUIRED_FILE,
                f"Missing required sheet: {required}",
            )


def validate_mimetype(workbook: Workbook, config: MimetypeConfig,
                      validation: MediaValidation) -> None:
    """Accept the detected mimetype when any pattern is found within it; no patterns accept everything."""
    if not config.reg_exps:
        return
    if not any(re.search(pattern, workbook.mimetype) for pattern in config.reg_exps):
        validation.add_file_error(
            SubmissionMessageType.UNSUPPORTED_MIMETYPE,
            f"File mimetype '{workbook.mimetype}' is not an accepted type",
        )


HEADER_VALIDATORS: dict[type[ValidatorConfig], Callable] = {
    FileRequiredColumnsConfig: validate_required_headers,
    FileRecommendedColumnsConfig: validate_recommended_headers,
    FileDuplicateColumnsConfig: validate_duplicate_headers,
    FileValidColumnsConfig: validate_valid_headers,
}

FILE_ROW_VALIDATORS: dict[type[ValidatorConfig], Callable] = {
    FileColumnUniqueConfig: validate_unique_columns,
}

COLUMN_VALIDATORS: dict[type[ValidatorConfig], Callable] = {
    ColumnRequiredConfig: validate_required_field,
    ColumnFormatConfig: validate_format,
    ColumnNumericConfig: validate_numeric,
    ColumnRangeConfig: validate_range,
    ColumnCodeConfig: validate_code,
}

WORKBOOK_VALIDATORS: dict[type[ValidatorConfig], Callable] = {
    WorkbookParentChildKeyMatchConfig: validate_parent_child_key_match,
}

SUBMISSION_VALIDATORS: dict[type[ValidatorConfig], Callable] = {
    SubmissionRequiredFilesConfig: validate_required_files,
    MimetypeConfig: validate_mimetype,
}
