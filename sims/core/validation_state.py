"""Validation result types — MediaState, CsvState and the error records they hold.

Validators append to the mutable ``CsvValidation`` / ``MediaValidation``
accumulators; the engine freezes them into ``CsvState`` / ``MediaState`` once a
run is complete.
"""

from dataclasses import asdict, dataclass, field

from sims.core.models import SubmissionMessageType


@dataclass(frozen=True)
class HeaderError:
    error_code: SubmissionMessageType
    message: str
    col: str


@dataclass(frozen=True)
class RowError:
    error_code: SubmissionMessageType
    message: str
    col: str
    row: int


@dataclass(frozen=True)
class KeyMatchError:
    error_code: SubmissionMessageType
    message: str
    col_names: tuple[str, ...]
    rows: tuple[int, ...]


@dataclass(frozen=True)
class FileError:
    error_code: SubmissionMessageType
    message: str


@dataclass(frozen=True)
class MediaState:
    file_name: str
    is_valid: bool
    file_errors: tuple[FileError, ...] = ()

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "is_valid": self.is_valid,
            "file_errors": [e.message for e in self.file_errors],
        }


@dataclass(frozen=True)
class CsvState:
    file_name: str
    header_errors: tuple[HeaderError, ...] = ()
    header_warnings: tuple[HeaderError, ...] = ()
    row_errors: tuple[RowError, ...] = ()
    key_errors: tuple[KeyMatchError, ...] = ()

    @property
    def is_valid(self) -> bool:
        # Header warnings and key errors are reported but do not invalidate the sheet
        return not self.header_errors and not self.row_errors

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "is_valid": self.is_valid,
            "header_errors": [_record_dict(e) for e in self.header_errors],
            "header_warnings": [_record_dict(e) for e in self.header_warnings],
            "row_errors": [_record_dict(e) for e in self.row_errors],
            "key_errors": [_record_dict(e) for e in self.key_errors],
        }


def _record_dict(record) -> dict:
    data = asdict(record)
    data["error_code"] = record.error_code.value
    for k, v in data.items():
        if isinstance(v, tuple):
            data[k] = list(v)
    return data


@dataclass
class MediaValidation:
    """Accumulates file-level errors for one submission file."""
    file_name: str
    file_errors: list[FileError] = field(default_factory=list)

    def add_file_error(self, error_code: SubmissionMessageType, message: str) -> None:
        self.file_errors.append(FileError(error_code=error_code, message=message))

    def get_state(self) -> MediaState:
        return MediaState(
            file_name=self.file_name,
            is_valid=not self.file_errors,
            file_errors=tuple(self.file_errors),
        )


@dataclass
class CsvValidation:
    """Accumulates header, row and key errors for one worksheet."""
    file_name: str
    header_errors: list[HeaderError] = field(default_factory=list)
    header_warnings: list[HeaderError] = field(default_factory=list)
    row_errors: list[RowError] = field(default_factory=list)
    key_errors: list[KeyMatchError] = field(default_factory=list)

    def add_header_error(self, error_code: SubmissionMessageType, message: str, col: str) -> None:
        self.header_errors.append(HeaderError(error_code=error_code, message=message, col=col))

    def add_header_warning(self, error_code: SubmissionMessageType, message: str, col: str) -> None:
        self.header_warnings.append(HeaderError(error_code=error_code, message=message, col=col))

    def add_row_error(self, error_code: SubmissionMessageType, message: str, col: str, row: int) -> None:
        self.row_errors.append(RowError(error_code=error_code, message=message, col=col, row=row))

    def add_key_error(self, error_code: SubmissionMessageType, message: str,
                      col_names: list[str], rows: list[int]) -> None:
        self.key_errors.append(KeyMatchError(
            error_code=error_code, message=message,
            col_names=tuple(col_names), rows=tuple(rows),
        ))

    def get_state(self) -> CsvState:
        return CsvState(
            file_name=self.file_name,
            header_errors=tuple(self.header_errors),
            header_warnings=tuple(self.header_warnings),
            row_errors=tuple(self.row_errors),
            key_errors=tuple(self.key_errors),
        )


@dataclass(frozen=True)
class ValidationReport:
    """Result of validating one submission file: media verdict plus per-sheet states."""
    media_state: MediaState
    csv_states: tuple[CsvState, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.media_state.is_valid and all(s.is_valid for s in self.csv_states)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "media_state": self.media_state.to_dict(),
            "csv_state": [s.to_dict() for s in self.csv_states],
        }
