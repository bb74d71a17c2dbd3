"""Validator Dispatch Engine — runs a validation schema against a workbook.

Order of evaluation:
1. Submission (media) validators against the workbook as a whole.
2. Per worksheet: header validators, then (only when no header errors were
   raised) column validators and file-level row validators.
3. Workbook validators across worksheets.

Content validation is skipped entirely when the media state is invalid.
Validators are never wrapped in try/except: a raising validator is a defect.
"""

import logging
from typing import Optional

from sims.core.validation_schema import ValidationSchemaParser
from sims.core.validation_state import (
    CsvState,
    CsvValidation,
    MediaState,
    MediaValidation,
    ValidationReport,
)
from sims.core.validators import (
    COLUMN_VALIDATORS,
    FILE_ROW_VALIDATORS,
    HEADER_VALIDATORS,
    SUBMISSION_VALIDATORS,
    WORKBOOK_VALIDATORS,
)
from sims.core.worksheet import Workbook, Worksheet

logger = logging.getLogger(__name__)


def validate_media(
    workbook: Workbook,
    parser: ValidationSchemaParser,
    log: Optional[logging.Logger] = None,
) -> MediaState:
    log = log or logger
    validation = MediaValidation(file_name=workbook.file_name)
    for config in parser.get_submission_validations():
        validator = SUBMISSION_VALIDATORS.get(type(config))
        if validator is None:
            log.debug(f"No submission validator registered for '{config.kind}'")
            continue
        validator(workbook, config, validation)
    return validation.get_state()


def _validate_worksheet(
    worksheet: Worksheet,
    parser: ValidationSchemaParser,
    validation: CsvValidation,
) -> None:
    file_validations = parser.get_file_validations(worksheet.name)

    for config in file_validations:
        validator = HEADER_VALIDATORS.get(type(config))
        if validator is not None:
            validator(worksheet, config, validation)

    # Row checks against a malformed header row would only produce noise
    if validation.header_errors:
        return

    for column_name, config in parser.get_all_column_validations(worksheet.name):
        if not worksheet.has_column(column_name):
            continue
        validator = COLUMN_VALIDATORS.get(type(config))
        if validator is not None:
            validator(worksheet, column_name, config, validation)

    for config in file_validations:
        validator = FILE_ROW_VALIDATORS.get(type(config))
        if validator is not None:
            validator(worksheet, config, validation)


def validate_content(
    workbook: Workbook,
    parser: ValidationSchemaParser,
    log: Optional[logging.Logger] = None,
) -> list[CsvState]:
    """Validate every worksheet, then the cross-sheet workbook rules."""
    log = log or logger
    validations: dict[str, CsvValidation] = {}

    for name, worksheet in workbook.worksheets.items():
        validation = CsvValidation(file_name=name)
        validations[name] = validation
        if not parser.has_file(name):
            log.debug(f"No file definition for worksheet '{name}', nothing to validate")
            continue
        _validate_worksheet(worksheet, parser, validation)

    for config in parser.get_workbook_validations():
        validator = WORKBOOK_VALIDATORS.get(type(config))
        if validator is not None:
            validator(workbook, config, validations)

    return [v.get_state() for v in validations.values()]


def validate_workbook(
    workbook: Workbook,
    parser: ValidationSchemaParser,
    log: Optional[logging.Logger] = None,
) -> ValidationReport:
    log = log or logger
    media_state = validate_media(workbook, parser, log)
    if not media_state.is_valid:
        log.info(
            f"Media validation failed for '{workbook.file_name}' "
            f"({len(media_state.file_errors)} error(s)), skipping content validation"
        )
        return ValidationReport(media_state=media_state)

    csv_states = validate_content(workbook, parser, log)
    report = ValidationReport(media_state=media_state, csv_states=tuple(csv_states))
    log.info(
        f"Validated '{workbook.file_name}': "
        f"{sum(len(s.header_errors) for s in csv_states)} header error(s), "
        f"{sum(len(s.row_errors) for s in csv_states)} row error(s), "
        f"{sum(len(s.key_errors) for s in csv_states)} key error(s), valid={report.is_valid}"
    )
    return report
