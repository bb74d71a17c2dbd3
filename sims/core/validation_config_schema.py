"""JSON Schema describing the validation template document format.

This is a contract definition for template authors and for the test suite;
the runtime parser in ``validation_schema`` does not check documents against it.
"""

from typing import Optional

# name/description on validators are free-form: some templates store type hints there.
_METADATA = {
    "name": {},
    "description": {},
}

_STRING_ARRAY = {"type": "array", "items": {"type": "string"}}


def _validator_def(key: str, description: str, properties: Optional[dict] = None,
                   required: Optional[list[str]] = None) -> dict:
    """Build the definition of a tagged validator entry: ``{<key>: {...config}}``."""
    config = {
        "type": ["object", "null"],
        "properties": {**_METADATA, **(properties or {})},
        "additionalProperties": False,
    }
    if required:
        config["required"] = required
    return {
        "description": description,
        "type": "object",
        "properties": {key: config},
        "required": [key],
        "additionalProperties": False,
    }


VALIDATION_CONFIG_JSON_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "description": "Summary Submission Validation Schema",
    "type": "object",
    "properties": {
        "name": {"description": "The name of the submission file", "type": "string"},
        "description": {"description": "The description of the submission file", "type": "string"},
        "files": {
            "description": "An array of files/sheets within the submission file",
            "type": "array",
            "items": {"$ref": "#/$defs/file"},
        },
        "defaultFile": {
            "description": "A fall-back file definition used when no files/sheets match the files array",
            "$ref": "#/$defs/file",
        },
        "validations": {
            "description": "Validations applied against the submission file as a whole",
            "type": "array",
            "items": {"$ref": "#/$defs/submission_validation"},
        },
        "workbookValidations": {
            "description": "Validations applied across the sheets of a workbook",
            "type": "array",
            "items": {"$ref": "#/$defs/workbook_validation"},
        },
    },
    "additionalProperties": False,
    "$defs": {
        "file": {
            "description": "A single file/sheet within a submission file",
            "type": "object",
            "required": ["name", "columns"],
            "properties": {
                "name": {"type": "string"},
                "description": {"type": "string"},
                "columns": {"type": "array", "items": {"$ref": "#/$defs/column"}},
                "validations": {"type": "array", "items": {"$ref": "#/$defs/file_validation"}},
            },
            "additionalProperties": False,
        },
        "column": {
            "description": "A single column within a file/sheet",
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string"},
                "description": {"type": "string"},
                "validations": {"type": "array", "items": {"$ref": "#/$defs/column_validation"}},
            },
            "additionalProperties": False,
        },
        "submission_validation": {
            "anyOf": [
                {"$ref": "#/$defs/submission_required_files_validator"},
                {"$ref": "#/$defs/mimetype_validator"},
            ],
        },
        "workbook_validation": {
            "anyOf": [
                {"$ref": "#/$defs/workbook_parent_child_key_match_validator"},
            ],
        },
        "file_validation": {
            "anyOf": [
                {"$ref": "#/$defs/file_required_columns_validator"},
                {"$ref": "#/$defs/file_recommended_columns_validator"},
                {"$ref": "#/$defs/file_duplicate_columns_validator"},
                {"$ref": "#/$defs/file_valid_columns_validator"},
                {"$ref": "#/$defs/file_column_unique_validator"},
            ],
        },
        "column_validation": {
            "anyOf": [
                {"$ref": "#/$defs/column_required_validator"},
                {"$ref": "#/$defs/column_format_validator"},
                {"$ref": "#/$defs/column_numeric_validator"},
                {"$ref": "#/$defs/column_range_validator"},
                {"$ref": "#/$defs/column_code_validator"},
            ],
        },
        "submission_required_files_validator": _validator_def(
            "submission_required_files_validator",
            "Validates that the submission contains the required files/sheets",
            {"required_files": _STRING_ARRAY},
            ["required_files"],
        ),
        "mimetype_validator": _validator_def(
            "mimetype_validator",
            "Validates that the submission mimetype matches one of the allowed patterns",
            {"reg_exps": _STRING_ARRAY},
            ["reg_exps"],
        ),
        "workbook_parent_child_key_match_validator": _validator_def(
            "workbook_parent_child_key_match_validator",
            "Validates that every key in the child sheet has a counterpart in the parent sheet",
            {
                "parent_worksheet_name": {"type": "string"},
                "child_worksheet_name": {"type": "string"},
                "column_names": _STRING_ARRAY,
            },
            ["parent_worksheet_name", "child_worksheet_name", "column_names"],
        ),
        "file_required_columns_validator": _validator_def(
            "file_required_columns_validator",
            "Validates that the file/sheet contains the required columns",
            {"required_columns": _STRING_ARRAY},
            ["required_columns"],
        ),
        "file_recommended_columns_validator": _validator_def(
            "file_recommended_columns_validator",
            "Warns when the file/sheet is missing recommended columns",
            {"recommended_columns": _STRING_ARRAY},
            ["recommended_columns"],
        ),
        "file_duplicate_columns_validator": _validator_def(
            "file_duplicate_columns_validator",
            "Validates that no column header is repeated",
        ),
        "file_valid_columns_validator": _validator_def(
            "file_valid_columns_validator",
            "Warns about columns that are not in the allowed list",
            {"valid_columns": _STRING_ARRAY},
        ),
        "file_column_unique_validator": _validator_def(
            "file_column_unique_validator",
            "Validates that the combined values of the named columns are unique per row",
            {"column_names": _STRING_ARRAY},
            ["column_names"],
        ),
        "column_required_validator": _validator_def(
            "column_required_validator",
            "Validates that every row has a value in this column",
        ),
        "column_format_validator": _validator_def(
            "column_format_validator",
            "Validates that the column value matches a regular expression",
            {
                "reg_exp": {"type": "string"},
                "reg_exp_flags": {"type": "string"},
                "expected_format": {"type": "string"},
            },
            ["reg_exp", "expected_format"],
        ),
        "column_numeric_validator": _validator_def(
            "column_numeric_validator",
            "Validates that the column value is a number",
        ),
        "column_range_validator": _validator_def(
            "column_range_validator",
            "Validates that the column value is within an inclusive numeric range",
            {"min_value": {"type": "number"}, "max_value": {"type": "number"}},
        ),
        "column_code_validator": _validator_def(
            "column_code_validator",
            "Validates that the column value is one of an allowed set of codes",
            {"allowed_code_values": {"type": "array", "items": {"$ref": "#/$defs/code_value"}}},
        ),
        "code_value": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": ["string", "number"]},
                "description": {},
            },
            "additionalProperties": False,
        },
    },
}
