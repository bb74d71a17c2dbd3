"""Contract tests: template documents against the validation config JSON Schema."""

import json

import pytest
from jsonschema import Draft202012Validator

from sims.core.validation_config_schema import VALIDATION_CONFIG_JSON_SCHEMA
from sims.core.validation_schema import ValidationSchemaParser
from sims.core.config import settings
from tests.conftest import SUMMARY_SCHEMA


@pytest.fixture(scope="module")
def validator():
    Draft202012Validator.check_schema(VALIDATION_CONFIG_JSON_SCHEMA)
    return Draft202012Validator(VALIDATION_CONFIG_JSON_SCHEMA)


class TestValidationConfigSchema:
    def test_summary_schema_conforms(self, validator):
        assert list(validator.iter_errors(SUMMARY_SCHEMA)) == []

    def test_example_template_conforms(self, validator):
        path = settings.resolve_path(settings.templates_dir) / "_example_summary_template.json"
        template = json.loads(path.read_text(encoding="utf-8"))
        for species in template["species"]:
            assert list(validator.iter_errors(species["validation"])) == []
            ValidationSchemaParser(species["validation"])

    def test_workbook_validations_conform(self, validator):
        document = {
            "validations": [{"mimetype_validator": {"reg_exps": ["text\\/csv"]}}],
            "workbookValidations": [{
                "workbook_parent_child_key_match_validator": {
                    "parent_worksheet_name": "Parent",
                    "child_worksheet_name": "Child",
                    "column_names": ["Key"],
                },
            }],
        }
        assert list(validator.iter_errors(document)) == []

    def test_unknown_top_level_key_rejected(self, validator):
        assert list(validator.iter_errors({"filez": []}))

    def test_two_validators_in_one_entry_rejected(self, validator):
        document = {
            "files": [{
                "name": "Obs",
                "columns": [{
                    "name": "A",
                    "validations": [{"column_required_validator": {}, "column_numeric_validator": {}}],
                }],
            }],
        }
        assert list(validator.iter_errors(document))

    def test_missing_required_config_rejected(self, validator):
        document = {
            "files": [{
                "name": "Obs",
                "columns": [{"name": "A", "validations": [{"column_format_validator": {"reg_exp": "a"}}]}],
            }],
        }
        assert list(validator.iter_errors(document))

    def test_code_values_accept_numbers(self, validator):
        document = {
            "files": [{
                "name": "Obs",
                "columns": [{
                    "name": "A",
                    "validations": [{"column_code_validator": {
                        "allowed_code_values": [{"name": 1}, {"name": "two", "description": "Two"}],
                    }}],
                }],
            }],
        }
        assert list(validator.iter_errors(document)) == []
