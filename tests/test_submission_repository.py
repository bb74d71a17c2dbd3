"""Tests for submission_repository and survey_repository — verify SQL parameters and row mapping.

Uses mocked execute_query to test without a live PostgreSQL.
"""

from unittest.mock import patch

from sims.core.models import MessageClass, SubmissionMessageType, SubmissionStatus
from sims.core.submission_repository import (
    _to_json,
    find_submission_by_id,
    find_template,
    get_submission_messages,
    get_template_species_records,
    insert_submission,
    insert_submission_message,
    insert_template_species,
    update_submission_status,
)
from sims.core.survey_repository import get_species_data


class TestToJson:
    def test_dict_serialized(self):
        assert _to_json({"files": []}) == '{"files": []}'

    def test_string_passes_through(self):
        assert _to_json('{"a": 1}') == '{"a": 1}'

    def test_none(self):
        assert _to_json(None) is None


class TestSubmissions:
    @patch("sims.core.submission_repository.execute_query")
    def test_find_submission(self, mock_exec):
        mock_exec.return_value = [{
            "submission_id": 1, "survey_id": 10, "source": "SIMS", "file_name": "a.xlsx",
            "key": "k", "status": "Uploaded", "create_date": None,
        }]
        submission = find_submission_by_id(1)
        assert submission.status == SubmissionStatus.UPLOADED
        assert mock_exec.call_args.args[1] == {"submission_id": 1}

    @patch("sims.core.submission_repository.execute_query")
    def test_find_submission_missing(self, mock_exec):
        mock_exec.return_value = []
        assert find_submission_by_id(1) is None

    @patch("sims.core.submission_repository.execute_query")
    def test_insert_submission(self, mock_exec):
        mock_exec.return_value = [{"submission_id": 9}]
        assert insert_submission(10, "SIMS", "a.xlsx") == 9
        sql, params = mock_exec.call_args.args
        assert "RETURNING submission_id" in sql
        assert params["status"] == "Uploaded"

    @patch("sims.core.submission_repository.execute_query")
    def test_update_status_uses_value(self, mock_exec):
        update_submission_status(3, SubmissionStatus.FAILED_VALIDATION)
        assert mock_exec.call_args.args[1] == {"submission_id": 3, "status": "Failed Validation"}


class TestMessages:
    @patch("sims.core.submission_repository.execute_query")
    def test_insert_message(self, mock_exec):
        mock_exec.return_value = [{"submission_message_id": 4}]
        message_id = insert_submission_message(
            1, MessageClass.ERROR, SubmissionMessageType.OUT_OF_RANGE, "Obs - bad - Column: A - Row: 2",
        )
        assert message_id == 4
        params = mock_exec.call_args.args[1]
        assert params["message_class"] == "Error"
        assert params["message_type"] == "Out of Range"

    @patch("sims.core.submission_repository.execute_query")
    def test_get_messages(self, mock_exec):
        mock_exec.return_value = [{
            "submission_message_id": 1, "submission_id": 2, "message_class": "Notice",
            "message_type": "Found Validation", "message": "found", "create_date": None,
        }]
        messages = get_submission_messages(2)
        assert messages[0].message_class == MessageClass.NOTICE
        assert messages[0].message_type == SubmissionMessageType.FOUND_VALIDATION


class TestTemplates:
    @patch("sims.core.submission_repository.execute_query")
    def test_find_template(self, mock_exec):
        mock_exec.return_value = [{"template_id": 1, "name": "Moose", "version": "1.0", "description": ""}]
        template = find_template("Moose", "1.0")
        assert template.template_id == 1
        assert mock_exec.call_args.args[1] == {"name": "Moose", "version": "1.0"}

    @patch("sims.core.submission_repository.execute_query")
    def test_species_records_filtered(self, mock_exec):
        mock_exec.return_value = [
            {"template_species_id": 2, "template_id": 1, "taxonomy_id": None, "validation": {"files": []}},
        ]
        records = get_template_species_records(1, [1234, 5678])
        sql, params = mock_exec.call_args.args
        assert "taxonomy_id IS NULL OR" in sql
        assert params["species_ids"] == [1234, 5678]
        assert records[0].validation == {"files": []}

    @patch("sims.core.submission_repository.execute_query")
    def test_species_records_unfiltered(self, mock_exec):
        mock_exec.return_value = []
        get_template_species_records(1, None)
        sql, params = mock_exec.call_args.args
        assert "taxonomy_id" not in sql.split("WHERE", 1)[1]
        assert "species_ids" not in params

    @patch("sims.core.submission_repository.execute_query")
    def test_species_records_no_ids_only_agnostic(self, mock_exec):
        mock_exec.return_value = []
        get_template_species_records(1, [])
        sql, params = mock_exec.call_args.args
        assert "AND taxonomy_id IS NULL" in sql
        assert "species_ids" not in params

    @patch("sims.core.submission_repository.execute_query")
    def test_insert_template_species(self, mock_exec):
        mock_exec.return_value = [{"template_species_id": 3}]
        assert insert_template_species(1, {"files": []}, 180703) == 3
        params = mock_exec.call_args.args[1]
        assert params == {"template_id": 1, "taxonomy_id": 180703, "validation": '{"files": []}'}


class TestSurveyRepository:
    @patch("sims.core.survey_repository.execute_query")
    def test_species_split_by_focal(self, mock_exec):
        mock_exec.return_value = [
            {"tsn": 180703, "common_name": "Moose", "is_focal": True},
            {"tsn": 180695, "common_name": "Elk", "is_focal": False},
        ]
        data = get_species_data(10)
        assert [s.tsn for s in data.focal_species] == [180703]
        assert [s.tsn for s in data.ancillary_species] == [180695]
