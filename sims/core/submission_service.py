"""Submission State Tracker — drives a summary submission through its lifecycle.

UPLOADED -> PREPARING -> PREPARED -> VALIDATING -> VALIDATED | FAILED_VALIDATION,
with FAILED_SUMMARY_PREPARATION as the exit from PREPARING. Every status change
is checked against STATUS_TRANSITIONS and written before the next stage runs.

Only SubmissionError is turned into persisted messages; anything else raised
along the way is a defect and propagates to the caller. Messages are inserted
one by one, there is no transaction spanning a validation run.
"""

import logging
from typing import Optional

from sims.core import file_store, submission_repository, survey_repository
from sims.core.errors import (
    InvalidStatusTransition,
    MediaParseError,
    SchemaParseError,
    StorageError,
    SubmissionError,
    SubmissionNotFoundError,
)
from sims.core.media_parser import MediaFile, parse_media
from sims.core.models import (
    STATUS_TRANSITIONS,
    MessageClass,
    SubmissionMessageModel,
    SubmissionMessageType,
    SubmissionModel,
    SubmissionStatus,
)
from sims.core.template_resolver import TemplateResolver, get_template_name_version
from sims.core.validation_engine import validate_workbook
from sims.core.validation_schema import ValidationSchemaParser
from sims.core.validation_state import ValidationReport
from sims.core.worksheet import Workbook

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Message text
# ---------------------------------------------------------------------------

def header_message(file_name: str, message: str, col: str) -> str:
    return f"{file_name} - {message} - Column: {col}"


def row_message(file_name: str, message: str, col: str, row: int) -> str:
    return f"{file_name} - {message} - Column: {col} - Row: {row}"


def key_message(file_name: str, message: str, rows: tuple[int, ...]) -> str:
    return f"{file_name} - {message} - Rows: {', '.join(str(r) for r in rows)}"


def report_messages(report: ValidationReport) -> list[tuple[MessageClass, SubmissionMessageType, str]]:
    """Flatten a validation report into (class, type, text) message triples."""
    messages = []
    for error in report.media_state.file_errors:
        messages.append((MessageClass.ERROR, error.error_code, error.message))
    for state in report.csv_states:
        for error in state.header_errors:
            messages.append((MessageClass.ERROR, error.error_code,
                             header_message(state.file_name, error.message, error.col)))
        for warning in state.header_warnings:
            messages.append((MessageClass.WARNING, warning.error_code,
                             header_message(state.file_name, warning.message, warning.col)))
        for error in state.row_errors:
            messages.append((MessageClass.ERROR, error.error_code,
                             row_message(state.file_name, error.message, error.col, error.row)))
        for error in state.key_errors:
            messages.append((MessageClass.ERROR, error.error_code,
                             key_message(state.file_name, error.message, error.rows)))
    return messages


def check_transition(current: SubmissionStatus, target: SubmissionStatus) -> None:
    if target not in STATUS_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(
            f"Cannot move submission from '{current.value}' to '{target.value}'"
        )


# ---------------------------------------------------------------------------
# Preparation helpers
# ---------------------------------------------------------------------------

def load_workbook(buffer: bytes, file_name: str, mimetype: Optional[str] = None) -> Workbook:
    """Classify and parse uploaded bytes, raising SubmissionError for unusable content."""
    media = parse_media(buffer, mimetype=mimetype, file_name=file_name)
    if not isinstance(media, MediaFile):
        raise SubmissionError.from_message_type(SubmissionMessageType.UNSUPPORTED_FILE_TYPE)
    try:
        return Workbook.from_media(media)
    except MediaParseError as e:
        raise SubmissionError.from_message_type(SubmissionMessageType.INVALID_XLSX_CSV, str(e)) from e


def build_parser(validation) -> ValidationSchemaParser:
    try:
        return ValidationSchemaParser(validation)
    except SchemaParseError as e:
        raise SubmissionError.from_message_type(
            SubmissionMessageType.FAILED_PARSE_VALIDATION_SCHEMA, str(e),
        ) from e


class SubmissionService:
    """Validation lifecycle for summary submissions.

    Collaborators default to the module-level repositories and file store and
    can be replaced (tests pass mocks).
    """

    def __init__(
        self,
        repository=submission_repository,
        surveys=survey_repository,
        store=file_store,
        log: Optional[logging.Logger] = None,
    ):
        self.repository = repository
        self.surveys = surveys
        self.store = store
        self.log = log or logger
        self.resolver = TemplateResolver(repository, self.log)

    # --- Lookup ---

    def get_submission(self, submission_id: int, survey_id: Optional[int] = None) -> SubmissionModel:
        submission = self.repository.find_submission_by_id(submission_id)
        if submission is None or (survey_id is not None and submission.survey_id != survey_id):
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return submission

    def get_submission_messages(self, submission_id: int) -> list[SubmissionMessageModel]:
        self.get_submission(submission_id)
        return self.repository.get_submission_messages(submission_id)

    # --- Create ---

    def create_submission(self, survey_id: int, source: str, file_name: str, content: bytes) -> SubmissionModel:
        """Insert an UPLOADED submission and store its file under a generated key."""
        submission_id = self.repository.insert_submission(survey_id, source, file_name)
        key = self.store.build_key(survey_id, submission_id, file_name)
        self.store.put_file(key, content)
        self.repository.update_submission_key(submission_id, key)
        self.log.info(f"Created submission {submission_id} for survey {survey_id} ({len(content)} bytes)")
        return SubmissionModel(
            submission_id=submission_id,
            survey_id=survey_id,
            source=source,
            file_name=file_name,
            key=key,
            status=SubmissionStatus.UPLOADED,
        )

    # --- Status ---

    def _set_status(self, submission: SubmissionModel, status: SubmissionStatus) -> None:
        check_transition(submission.status, status)
        self.repository.update_submission_status(submission.submission_id, status)
        submission.status = status

    def _insert_message(self, submission_id: int, message_class: MessageClass,
                        message_type: SubmissionMessageType, message: str) -> None:
        self.repository.insert_submission_message(submission_id, message_class, message_type, message)

    def _fail(self, submission: SubmissionModel, error: SubmissionError) -> None:
        for m in error.messages:
            self._insert_message(submission.submission_id, m.message_class, m.type, m.description)
        self._set_status(submission, error.status)
        self.log.warning(
            f"Submission {submission.submission_id} -> {error.status.value}: "
            f"{[t.value for t in error.message_types]}"
        )

    def accept_submission(self, submission_id: int) -> SubmissionModel:
        submission = self.get_submission(submission_id)
        self._set_status(submission, SubmissionStatus.ACCEPTED)
        return submission

    def reject_submission(self, submission_id: int) -> SubmissionModel:
        submission = self.get_submission(submission_id)
        self._set_status(submission, SubmissionStatus.REJECTED)
        return submission

    # --- Validation pipeline ---

    def prepare(self, submission: SubmissionModel) -> Workbook:
        """Fetch and parse the submission file and confirm it names a template."""
        if not submission.key:
            raise SubmissionError.from_message_type(SubmissionMessageType.FAILED_GET_FILE_FROM_STORAGE)
        try:
            buffer = self.store.get_file(submission.key)
        except StorageError as e:
            raise SubmissionError.from_message_type(
                SubmissionMessageType.FAILED_GET_FILE_FROM_STORAGE, str(e),
            ) from e

        workbook = load_workbook(buffer, submission.file_name or submission.key)
        get_template_name_version(workbook.custom_properties)
        return workbook

    def validate(self, submission: SubmissionModel, workbook: Workbook, survey_id: int) -> ValidationReport:
        species = self.surveys.get_species_data(survey_id)
        species_ids = [s.tsn for s in species.focal_species]

        resolved = self.resolver.resolve(workbook.custom_properties, species_ids)
        self._insert_message(
            submission.submission_id,
            MessageClass.NOTICE,
            SubmissionMessageType.FOUND_VALIDATION,
            resolved.found_message(),
        )

        parser = build_parser(resolved.validation)
        return validate_workbook(workbook, parser, self.log)

    def validate_file(self, submission_id: int, survey_id: int) -> Optional[ValidationReport]:
        """Run preparation and validation for an UPLOADED submission.

        Returns the validation report, or None when preparation or template
        resolution failed (the reasons are persisted as submission messages).
        """
        submission = self.get_submission(submission_id, survey_id)
        if submission.status != SubmissionStatus.UPLOADED:
            raise InvalidStatusTransition(
                f"Submission {submission_id} is '{submission.status.value}', expected 'Uploaded'"
            )

        self._set_status(submission, SubmissionStatus.PREPARING)
        try:
            workbook = self.prepare(submission)
        except SubmissionError as e:
            e.set_status(SubmissionStatus.FAILED_SUMMARY_PREPARATION)
            self._fail(submission, e)
            return None
        self._set_status(submission, SubmissionStatus.PREPARED)

        self._set_status(submission, SubmissionStatus.VALIDATING)
        try:
            report = self.validate(submission, workbook, survey_id)
        except SubmissionError as e:
            e.set_status(SubmissionStatus.FAILED_VALIDATION)
            self._fail(submission, e)
            return None

        for message_class, message_type, text in report_messages(report):
            self._insert_message(submission_id, message_class, message_type, text)

        final = SubmissionStatus.VALIDATED if report.is_valid else SubmissionStatus.FAILED_VALIDATION
        self._set_status(submission, final)
        self.log.info(f"Submission {submission_id} -> {final.value}")
        return report
