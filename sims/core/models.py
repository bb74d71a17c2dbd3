"""Pydantic models for submission records, templates, and API responses."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class SubmissionStatus(str, Enum):
    UPLOADED = "Uploaded"
    PREPARING = "Preparing"
    FAILED_SUMMARY_PREPARATION = "Failed Summary Preparation"
    PREPARED = "Prepared"
    VALIDATING = "Validating"
    FAILED_VALIDATION = "Failed Validation"
    VALIDATED = "Validated"
    REJECTED = "Rejected"
    ACCEPTED = "Accepted"


# Forward-only lifecycle. Statuses absent from the keys are terminal.
STATUS_TRANSITIONS: dict[SubmissionStatus, set[SubmissionStatus]] = {
    SubmissionStatus.UPLOADED: {SubmissionStatus.PREPARING},
    SubmissionStatus.PREPARING: {
        SubmissionStatus.PREPARED,
        SubmissionStatus.FAILED_SUMMARY_PREPARATION,
    },
    SubmissionStatus.PREPARED: {SubmissionStatus.VALIDATING},
    SubmissionStatus.VALIDATING: {
        SubmissionStatus.VALIDATED,
        SubmissionStatus.FAILED_VALIDATION,
    },
    SubmissionStatus.VALIDATED: {SubmissionStatus.ACCEPTED, SubmissionStatus.REJECTED},
    SubmissionStatus.FAILED_SUMMARY_PREPARATION: {SubmissionStatus.REJECTED},
    SubmissionStatus.FAILED_VALIDATION: {SubmissionStatus.REJECTED},
}


class MessageClass(str, Enum):
    ERROR = "Error"
    WARNING = "Warning"
    NOTICE = "Notice"


class SubmissionMessageType(str, Enum):
    # Preparation
    UNSUPPORTED_FILE_TYPE = "Unsupported File Type"
    INVALID_XLSX_CSV = "Invalid XLSX CSV"
    FAILED_GET_FILE_FROM_STORAGE = "Failed to Get File from Storage"
    FAILED_TO_GET_TEMPLATE_NAME_VERSION = "Failed to Get Template Name and Version"

    # Template resolution
    FAILED_GET_VALIDATION_RULES = "Failed to Get Validation Rules"
    FAILED_PARSE_VALIDATION_SCHEMA = "Failed to Parse Validation Schema"
    MISMATCHED_TEMPLATE_SURVEY_SPECIES = "Mismatched Template With Survey Focal Species"
    FOUND_VALIDATION = "Found Validation"

    # Validation
    INVALID_MEDIA = "Invalid Media"
    MISSING_REQUIRED_FILE = "Missing Required File"
    UNSUPPORTED_MIMETYPE = "Unsupported Mimetype"
    MISSING_REQUIRED_HEADER = "Missing Required Header"
    MISSING_RECOMMENDED_HEADER = "Missing Recommended Header"
    DUPLICATE_HEADER = "Duplicate Header"
    UNKNOWN_HEADER = "Unknown Header"
    MISSING_REQUIRED_FIELD = "Missing Required Field"
    UNEXPECTED_FORMAT = "Unexpected Format"
    OUT_OF_RANGE = "Out of Range"
    INVALID_VALUE = "Invalid Value"
    DUPLICATE_KEY = "Duplicate Key"
    DANGLING_PARENT_CHILD_KEY = "Dangling Parent Child Key"


# --- Persisted records ---


class SubmissionModel(BaseModel):
    submission_id: int
    survey_id: int
    source: Optional[str] = None
    file_name: Optional[str] = None
    key: Optional[str] = None
    status: SubmissionStatus
    create_date: Optional[datetime] = None


class SubmissionMessageModel(BaseModel):
    submission_message_id: int
    submission_id: int
    message_class: MessageClass
    message_type: SubmissionMessageType
    message: str
    create_date: Optional[datetime] = None


class TemplateModel(BaseModel):
    template_id: int
    name: str
    version: str
    description: Optional[str] = None


class TemplateSpeciesModel(BaseModel):
    template_species_id: int
    template_id: int
    taxonomy_id: Optional[int] = None
    validation: Optional[Any] = None  # JSON document (dict) or raw JSON string


class SpeciesRecord(BaseModel):
    tsn: int
    common_name: Optional[str] = None


class SpeciesData(BaseModel):
    focal_species: list[SpeciesRecord] = []
    ancillary_species: list[SpeciesRecord] = []


# --- API response models ---


class SubmissionCreateResponse(BaseModel):
    submission_id: int
    status: SubmissionStatus


class SubmissionValidateResponse(BaseModel):
    submission_id: int
    status: SubmissionStatus
    media_state: Optional[dict] = None
    csv_state: list[dict] = []


class SubmissionMessagesResponse(BaseModel):
    submission_id: int
    status: SubmissionStatus
    messages: list[SubmissionMessageModel] = []


class ValidationReportResponse(BaseModel):
    is_valid: bool
    media_state: dict
    csv_state: list[dict] = []
