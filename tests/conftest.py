"""Shared test helpers for the summary submission test suite."""

import io
from datetime import datetime, timezone
from typing import Any, Optional

import openpyxl
from openpyxl.packaging.custom import StringProperty

from sims.core.models import (
    SubmissionModel,
    SubmissionStatus,
    TemplateModel,
    TemplateSpeciesModel,
)
from sims.core.worksheet import Workbook, Worksheet


def make_xlsx_bytes(
    sheets: dict[str, list[list]],
    properties: Optional[dict[str, str]] = None,
) -> bytes:
    """Build an .xlsx file in memory. Each sheet's first row is its header row."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    for key, value in (properties or {}).items():
        wb.custom_doc_props.append(StringProperty(name=key, value=value))
    buf = io.BytesIO()
    wb.save(buf)
    wb.close()
    return buf.getvalue()


def make_csv_bytes(rows: list[list]) -> bytes:
    lines = [",".join("" if v is None else str(v) for v in row) for row in rows]
    return ("\r\n".join(lines) + "\r\n").encode("utf-8")


def make_workbook(
    sheets: dict[str, list[list]],
    properties: Optional[dict[str, Any]] = None,
    file_name: str = "summary.xlsx",
    mimetype: str = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
) -> Workbook:
    """Build a Workbook directly from row lists, skipping file parsing."""
    return Workbook(
        file_name=file_name,
        mimetype=mimetype,
        worksheets={
            name: Worksheet.from_raw_rows(name, [tuple(r) for r in rows])
            for name, rows in sheets.items()
        },
        custom_properties=dict(properties or {}),
    )


def make_submission(
    submission_id: int = 1,
    survey_id: int = 10,
    status: SubmissionStatus = SubmissionStatus.UPLOADED,
    key: Optional[str] = "surveys/10/summary/1/summary.xlsx",
    file_name: str = "summary.xlsx",
) -> SubmissionModel:
    return SubmissionModel(
        submission_id=submission_id,
        survey_id=survey_id,
        source="SIMS",
        file_name=file_name,
        key=key,
        status=status,
        create_date=datetime.now(timezone.utc),
    )


def make_template(template_id: int = 1, name: str = "Moose Summary Results", version: str = "1.0") -> TemplateModel:
    return TemplateModel(template_id=template_id, name=name, version=version, description="test")


def make_species_record(
    template_species_id: int = 1,
    template_id: int = 1,
    taxonomy_id: Optional[int] = None,
    validation: Any = None,
) -> TemplateSpeciesModel:
    return TemplateSpeciesModel(
        template_species_id=template_species_id,
        template_id=template_id,
        taxonomy_id=taxonomy_id,
        validation=validation if validation is not None else {"files": []},
    )


SUMMARY_SCHEMA = {
    "name": "Summary Results",
    "files": [
        {
            "name": "Summary Results",
            "validations": [
                {"file_duplicate_columns_validator": {}},
                {"file_required_columns_validator": {"required_columns": ["Study Area", "Count", "Date"]}},
            ],
            "columns": [
                {"name": "Study Area", "validations": [{"column_required_validator": {}}]},
                {"name": "Count", "validations": [
                    {"column_numeric_validator": {}},
                    {"column_range_validator": {"min_value": 0, "max_value": 10}},
                ]},
                {"name": "Date", "validations": [
                    {"column_format_validator": {
                        "reg_exp": "^\\d{4}-\\d{2}-\\d{2}$",
                        "expected_format": "Dates need to be formatted as YYYY-MM-DD",
                    }},
                ]},
            ],
        }
    ],
}

SUMMARY_PROPERTIES = {"sims_name": "Moose Summary Results", "sims_version": "1.0"}
