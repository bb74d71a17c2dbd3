"""Exception types raised by the submission pipeline.

Only ``SubmissionError`` is ever turned into persisted submission messages.
Parser, storage and schema errors are stage-local and get translated into a
``SubmissionError`` by the submission service.
"""

from dataclasses import dataclass
from typing import Optional

from sims.core.models import MessageClass, SubmissionMessageType, SubmissionStatus


# Human-readable descriptions for message types raised as a single error.
DEFAULT_MESSAGES: dict[SubmissionMessageType, str] = {
    SubmissionMessageType.UNSUPPORTED_FILE_TYPE: "File submitted is not a supported type",
    SubmissionMessageType.INVALID_XLSX_CSV: "Media is invalid",
    SubmissionMessageType.FAILED_GET_FILE_FROM_STORAGE: "Failed to retrieve file from storage",
    SubmissionMessageType.FAILED_TO_GET_TEMPLATE_NAME_VERSION:
        "Failed to get template name and version from the workbook custom properties",
    SubmissionMessageType.FAILED_GET_VALIDATION_RULES: "Failed to get validation rules",
    SubmissionMessageType.FAILED_PARSE_VALIDATION_SCHEMA: "Failed to parse validation schema",
    SubmissionMessageType.MISMATCHED_TEMPLATE_SURVEY_SPECIES:
        "The template does not match any of the survey focal species",
}


class SimsError(Exception):
    """Base class for errors raised by this package."""


@dataclass(frozen=True)
class MessageError:
    """A single message to be persisted against a submission."""
    type: SubmissionMessageType
    description: str
    message_class: MessageClass = MessageClass.ERROR


class SubmissionError(SimsError):
    """Domain error carrying the messages to persist and the failing status."""

    def __init__(
        self,
        messages: list[MessageError],
        status: Optional[SubmissionStatus] = None,
    ):
        self.messages = list(messages)
        self.status = status
        summary = "; ".join(m.description for m in self.messages) or "Submission failed"
        super().__init__(summary)

    @classmethod
    def from_message_type(
        cls,
        message_type: SubmissionMessageType,
        description: Optional[str] = None,
    ) -> "SubmissionError":
        text = description or DEFAULT_MESSAGES.get(message_type, message_type.value)
        return cls([MessageError(type=message_type, description=text)])

    @property
    def message_types(self) -> list[SubmissionMessageType]:
        return [m.type for m in self.messages]

    def set_status(self, status: SubmissionStatus) -> None:
        self.status = status


class SchemaParseError(SimsError):
    """The validation schema document could not be parsed."""


class MediaParseError(SimsError):
    """File content could not be read as a workbook or CSV."""


class StorageError(SimsError):
    """The file store could not return the requested object."""


class SubmissionNotFoundError(SimsError):
    """No submission exists with the requested id."""


class InvalidStatusTransition(SimsError):
    """A submission status change that the lifecycle does not allow."""


class UnknownColumnError(KeyError):
    """A worksheet lookup by a header name the sheet does not have."""
