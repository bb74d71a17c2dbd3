"""Validation Schema Parser — typed access to a template's validation document.

A validation document is JSON shaped like:

    {
      "files": [
        {"name": "Observations",
         "validations": [{"file_required_columns_validator": {...}}],
         "columns": [{"name": "Count", "validations": [{"column_numeric_validator": {}}]}]}
      ],
      "defaultFile": {...},
      "validations": [{"submission_required_files_validator": {...}}],
      "workbookValidations": [{"workbook_parent_child_key_match_validator": {...}}]
    }

Every validator entry is an object with exactly one key naming the validator
kind. Entries are parsed into the config classes below; an entry whose only
key is not a known validator is skipped.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from sims.core.errors import SchemaParseError

logger = logging.getLogger(__name__)


class ValidatorScope(str, Enum):
    SUBMISSION = "submission"
    WORKBOOK = "workbook"
    FILE = "file"
    COLUMN = "column"


# JS RegExp flags that have a Python equivalent; g/u/y carry no meaning for a single test.
REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}
IGNORED_REGEX_FLAGS = {"g", "u", "y", "d"}


def compile_js_regex(pattern: str, flags: Optional[str] = None) -> re.Pattern:
    re_flags = 0
    for flag in flags or "":
        if flag in REGEX_FLAGS:
            re_flags |= REGEX_FLAGS[flag]
        elif flag not in IGNORED_REGEX_FLAGS:
            raise ValueError(f"unsupported regex flag '{flag}'")
    return re.compile(pattern, re_flags)


def _check_regex(pattern: str) -> None:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid regular expression '{pattern}': {e}") from e


# ---------------------------------------------------------------------------
# Validator configs
# ---------------------------------------------------------------------------

class ValidatorConfig(BaseModel):
    """Base for every validator kind. ``name``/``description`` are free-form metadata."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: ClassVar[str]
    scope: ClassVar[ValidatorScope]

    name: Optional[Any] = None
    description: Optional[Any] = None


class SubmissionRequiredFilesConfig(ValidatorConfig):
    kind: ClassVar[str] = "submission_required_files_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.SUBMISSION

    required_files: list[str] = []


class MimetypeConfig(ValidatorConfig):
    kind: ClassVar[str] = "mimetype_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.SUBMISSION

    reg_exps: list[str] = []

    @field_validator("reg_exps")
    @classmethod
    def _patterns_compile(cls, v: list[str]) -> list[str]:
        for pattern in v:
            _check_regex(pattern)
        return v


class FileRequiredColumnsConfig(ValidatorConfig):
    kind: ClassVar[str] = "file_required_columns_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.FILE

    required_columns: list[str] = []


class FileRecommendedColumnsConfig(ValidatorConfig):
    kind: ClassVar[str] = "file_recommended_columns_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.FILE

    recommended_columns: list[str] = []


class FileDuplicateColumnsConfig(ValidatorConfig):
    kind: ClassVar[str] = "file_duplicate_columns_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.FILE


class FileValidColumnsConfig(ValidatorConfig):
    kind: ClassVar[str] = "file_valid_columns_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.FILE

    valid_columns: list[str] = []


class FileColumnUniqueConfig(ValidatorConfig):
    kind: ClassVar[str] = "file_column_unique_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.FILE

    column_names: list[str] = []


class ColumnRequiredConfig(ValidatorConfig):
    kind: ClassVar[str] = "column_required_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.COLUMN


class ColumnFormatConfig(ValidatorConfig):
    kind: ClassVar[str] = "column_format_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.COLUMN

    reg_exp: Optional[str] = None
    reg_exp_flags: Optional[str] = None
    expected_format: str = ""

    @field_validator("reg_exp_flags")
    @classmethod
    def _flags_supported(cls, v: Optional[str]) -> Optional[str]:
        compile_js_regex("", v)
        return v

    @field_validator("reg_exp")
    @classmethod
    def _pattern_compiles(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            _check_regex(v)
        return v

    def pattern(self) -> re.Pattern:
        return compile_js_regex(self.reg_exp, self.reg_exp_flags)


class ColumnNumericConfig(ValidatorConfig):
    kind: ClassVar[str] = "column_numeric_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.COLUMN


class ColumnRangeConfig(ValidatorConfig):
    kind: ClassVar[str] = "column_range_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.COLUMN

    min_value: Optional[float] = None
    max_value: Optional[float] = None


class CodeValue(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: Union[str, int, float]
    description: Optional[Any] = None


class ColumnCodeConfig(ValidatorConfig):
    kind: ClassVar[str] = "column_code_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.COLUMN

    allowed_code_values: list[CodeValue] = []


class WorkbookParentChildKeyMatchConfig(ValidatorConfig):
    kind: ClassVar[str] = "workbook_parent_child_key_match_validator"
    scope: ClassVar[ValidatorScope] = ValidatorScope.WORKBOOK

    parent_worksheet_name: Optional[str] = None
    child_worksheet_name: Optional[str] = None
    column_names: list[str] = []


VALIDATOR_CONFIGS: dict[str, type[ValidatorConfig]] = {
    cfg.kind: cfg
    for cfg in (
        SubmissionRequiredFilesConfig,
        MimetypeConfig,
        FileRequiredColumnsConfig,
        FileRecommendedColumnsConfig,
        FileDuplicateColumnsConfig,
        FileValidColumnsConfig,
        FileColumnUniqueConfig,
        ColumnRequiredConfig,
        ColumnFormatConfig,
        ColumnNumericConfig,
        ColumnRangeConfig,
        ColumnCodeConfig,
        WorkbookParentChildKeyMatchConfig,
    )
}


def parse_validator_entry(
    entry: Any,
    scope: ValidatorScope,
    location: str,
) -> Optional[ValidatorConfig]:
    """Parse one tagged validator entry. Returns None for an unknown validator name."""
    if not isinstance(entry, dict) or not entry:
        raise SchemaParseError(f"{location}: validator entry must be a non-empty object")

    recognised = [key for key in entry if key in VALIDATOR_CONFIGS]
    if len(recognised) > 1:
        raise SchemaParseError(
            f"{location}: validator entry names more than one validator: {recognised}"
        )
    if len(entry) > 1:
        raise SchemaParseError(
            f"{location}: validator entry must have exactly one key, got {list(entry)}"
        )
    if not recognised:
        logger.warning(f"{location}: skipping unknown validator '{next(iter(entry))}'")
        return None

    kind = recognised[0]
    config_cls = VALIDATOR_CONFIGS[kind]
    if config_cls.scope != scope:
        raise SchemaParseError(
            f"{location}: '{kind}' is a {config_cls.scope.value} validator, "
            f"not allowed in {scope.value} validations"
        )

    raw_config = entry[kind]
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise SchemaParseError(f"{location}: '{kind}' config must be an object")

    try:
        return config_cls(**raw_config)
    except ValidationError as e:
        raise SchemaParseError(f"{location}: invalid '{kind}' config: {e}") from e


def _parse_validations(raw: Any, scope: ValidatorScope, location: str) -> tuple[ValidatorConfig, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise SchemaParseError(f"{location}: validations must be an array")
    parsed = []
    for i, entry in enumerate(raw):
        config = parse_validator_entry(entry, scope, f"{location}[{i}]")
        if config is not None:
            parsed.append(config)
    return tuple(parsed)


# ---------------------------------------------------------------------------
# Schema tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnSchema:
    name: str
    description: Optional[str]
    validations: tuple[ValidatorConfig, ...]


@dataclass(frozen=True)
class FileSchema:
    name: str
    description: Optional[str]
    columns: tuple[ColumnSchema, ...]
    validations: tuple[ValidatorConfig, ...]

    def find_column(self, column_name: str) -> Optional[ColumnSchema]:
        key = column_name.strip().upper()
        for column in self.columns:
            if column.name.strip().upper() == key:
                return column
        return None


@dataclass(frozen=True)
class ValidationSchema:
    name: Optional[str]
    description: Optional[str]
    files: tuple[FileSchema, ...]
    default_file: Optional[FileSchema]
    validations: tuple[ValidatorConfig, ...]
    workbook_validations: tuple[ValidatorConfig, ...]


def _parse_column(raw: Any, location: str) -> ColumnSchema:
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
        raise SchemaParseError(f"{location}: column must be an object with a string 'name'")
    return ColumnSchema(
        name=raw["name"],
        description=raw.get("description"),
        validations=_parse_validations(
            raw.get("validations"), ValidatorScope.COLUMN, f"{location}.validations",
        ),
    )


def _parse_file(raw: Any, location: str) -> FileSchema:
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
        raise SchemaParseError(f"{location}: file must be an object with a string 'name'")
    raw_columns = raw.get("columns") or []
    if not isinstance(raw_columns, list):
        raise SchemaParseError(f"{location}.columns: must be an array")
    return FileSchema(
        name=raw["name"],
        description=raw.get("description"),
        columns=tuple(
            _parse_column(c, f"{location}.columns[{i}]") for i, c in enumerate(raw_columns)
        ),
        validations=_parse_validations(
            raw.get("validations"), ValidatorScope.FILE, f"{location}.validations",
        ),
    )


def build_validation_schema(raw: dict) -> ValidationSchema:
    raw_files = raw.get("files") or []
    if not isinstance(raw_files, list):
        raise SchemaParseError("files: must be an array")

    default_file = None
    if raw.get("defaultFile") is not None:
        default_file = _parse_file(raw["defaultFile"], "defaultFile")

    return ValidationSchema(
        name=raw.get("name"),
        description=raw.get("description"),
        files=tuple(_parse_file(f, f"files[{i}]") for i, f in enumerate(raw_files)),
        default_file=default_file,
        validations=_parse_validations(
            raw.get("validations"), ValidatorScope.SUBMISSION, "validations",
        ),
        workbook_validations=_parse_validations(
            raw.get("workbookValidations"), ValidatorScope.WORKBOOK, "workbookValidations",
        ),
    )


class ValidationSchemaParser:
    """Parses a validation document once and answers per-scope validator queries.

    Accessors always return lists; an empty list means nothing is configured
    for that scope.
    """

    def __init__(self, schema: Union[dict, str, bytes]):
        if isinstance(schema, (str, bytes)):
            schema = self.parse_json(schema)
        if not isinstance(schema, dict):
            raise SchemaParseError("ValidationSchemaParser - validation schema must be a JSON object")
        self.raw = schema
        self.schema = build_validation_schema(schema)

    @staticmethod
    def parse_json(text: Union[str, bytes]) -> Any:
        try:
            return json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            raise SchemaParseError("ValidationSchemaParser - provided json was not valid JSON") from e

    def find_file(self, file_name: str) -> Optional[FileSchema]:
        """Find the file definition for a sheet, falling back to ``defaultFile``."""
        for f in self.schema.files:
            if f.name == file_name:
                return f
        key = file_name.strip().lower()
        for f in self.schema.files:
            if f.name.strip().lower() == key:
                return f
        return self.schema.default_file

    def has_file(self, file_name: str) -> bool:
        return self.find_file(file_name) is not None

    def get_submission_validations(self) -> list[ValidatorConfig]:
        return list(self.schema.validations)

    def get_workbook_validations(self) -> list[ValidatorConfig]:
        return list(self.schema.workbook_validations)

    def get_file_validations(self, file_name: str) -> list[ValidatorConfig]:
        file_schema = self.find_file(file_name)
        if file_schema is None:
            return []
        return list(file_schema.validations)

    def get_column_names(self, file_name: str) -> list[str]:
        file_schema = self.find_file(file_name)
        if file_schema is None:
            return []
        return [c.name for c in file_schema.columns]

    def get_column_validations(self, file_name: str, column_name: str) -> list[ValidatorConfig]:
        file_schema = self.find_file(file_name)
        if file_schema is None:
            return []
        column = file_schema.find_column(column_name)
        if column is None:
            return []
        return list(column.validations)

    def get_all_column_validations(self, file_name: str) -> list[tuple[str, ValidatorConfig]]:
        file_schema = self.find_file(file_name)
        if file_schema is None:
            return []
        return [
            (column.name, config)
            for column in file_schema.columns
            for config in column.validations
        ]
