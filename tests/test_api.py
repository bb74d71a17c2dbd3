"""Tests for the HTTP surface — FastAPI TestClient with a mocked submission service."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from sims.api.deps import get_submission_service, get_template_resolver
from sims.core.errors import InvalidStatusTransition, SubmissionError, SubmissionNotFoundError
from sims.core.models import SubmissionMessageType, SubmissionStatus
from sims.core.template_resolver import ResolvedTemplate, TemplateResolver
from sims.core.validation_engine import validate_workbook
from sims.core.validation_schema import ValidationSchemaParser
from sims.main import app
from tests.conftest import (
    SUMMARY_SCHEMA,
    make_csv_bytes,
    make_species_record,
    make_submission,
    make_template,
    make_workbook,
)

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def service():
    svc = MagicMock()
    app.dependency_overrides[get_submission_service] = lambda: svc
    yield svc
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    # No lifespan: the tests never reach a real database
    return TestClient(app)


class TestSubmissions:
    def test_create(self, client, service):
        service.create_submission.return_value = make_submission(submission_id=5)
        response = client.post(
            "/api/surveys/10/summary/submissions",
            files={"file": ("summary.xlsx", b"content", XLSX_TYPE)},
        )
        assert response.status_code == 201
        assert response.json() == {"submission_id": 5, "status": "Uploaded"}
        service.create_submission.assert_called_once_with(10, "SIMS", "summary.xlsx", b"content")

    def test_create_empty_file(self, client, service):
        response = client.post(
            "/api/surveys/10/summary/submissions",
            files={"file": ("summary.xlsx", b"", XLSX_TYPE)},
        )
        assert response.status_code == 400

    def test_validate_returns_report(self, client, service):
        wb = make_workbook({"Summary Results": [["Study Area", "Count", "Date"], ["North", 11, "2023-01-01"]]})
        report = validate_workbook(wb, ValidationSchemaParser(SUMMARY_SCHEMA))
        service.validate_file.return_value = report
        service.get_submission.return_value = make_submission(status=SubmissionStatus.FAILED_VALIDATION)

        response = client.post("/api/surveys/10/summary/submissions/1/validate")
        assert response.status_code == 200
        body = response.json()
        assert body["submission_id"] == 1
        assert body["status"] == "Failed Validation"
        assert body["csv_state"][0]["row_errors"][0]["error_code"] == "Out of Range"
        service.validate_file.assert_called_once_with(1, 10)

    def test_validate_preparation_failure_is_400(self, client, service):
        service.validate_file.return_value = None
        service.get_submission.return_value = make_submission(status=SubmissionStatus.FAILED_SUMMARY_PREPARATION)

        response = client.post("/api/surveys/10/summary/submissions/1/validate")
        assert response.status_code == 400
        assert "Submission 1" in response.json()["detail"]

    def test_validate_not_found(self, client, service):
        service.validate_file.side_effect = SubmissionNotFoundError("Submission 1 not found")
        response = client.post("/api/surveys/10/summary/submissions/1/validate")
        assert response.status_code == 404

    def test_validate_twice_conflicts(self, client, service):
        service.validate_file.side_effect = InvalidStatusTransition("already validated")
        response = client.post("/api/surveys/10/summary/submissions/1/validate")
        assert response.status_code == 409

    def test_messages(self, client, service):
        service.get_submission.return_value = make_submission()
        service.get_submission_messages.return_value = []
        response = client.get("/api/surveys/10/summary/submissions/1/messages")
        assert response.status_code == 200
        assert response.json() == {"submission_id": 1, "status": "Uploaded", "messages": []}

    def test_accept_invalid_transition(self, client, service):
        service.get_submission.return_value = make_submission()
        service.accept_submission.side_effect = InvalidStatusTransition("nope")
        response = client.post("/api/surveys/10/summary/submissions/1/accept")
        assert response.status_code == 409

    def test_reject(self, client, service):
        service.get_submission.return_value = make_submission(status=SubmissionStatus.FAILED_VALIDATION)
        service.reject_submission.return_value = make_submission(status=SubmissionStatus.REJECTED)
        response = client.post("/api/surveys/10/summary/submissions/1/reject")
        assert response.status_code == 200
        assert response.json()["status"] == "Rejected"

    def test_invalid_survey_id(self, client, service):
        response = client.get("/api/surveys/0/summary/submissions/1/messages")
        assert response.status_code == 422


class TestAdHocValidation:
    @pytest.fixture
    def resolver(self):
        resolver = MagicMock(spec=TemplateResolver)
        app.dependency_overrides[get_template_resolver] = lambda: resolver
        yield resolver
        app.dependency_overrides.clear()

    def test_csv_against_template(self, client, resolver):
        resolver.resolve.return_value = ResolvedTemplate(
            template=make_template(),
            species_record=make_species_record(validation=SUMMARY_SCHEMA),
            candidate_count=1,
        )
        content = make_csv_bytes([["Study Area", "Count", "Date"], ["North", "3", "2023-01-01"]])
        response = client.post(
            "/api/validate",
            files={"file": ("Summary Results.csv", content, "text/csv")},
            data={"template_name": "Moose Summary Results", "template_version": "1.0"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["is_valid"] is True
        assert body["csv_state"][0]["file_name"] == "Summary Results"
        resolver.resolve.assert_called_once_with(
            {"sims_name": "Moose Summary Results", "sims_version": "1.0"}, [],
        )

    def test_unknown_template_is_400(self, client, resolver):
        resolver.resolve.side_effect = SubmissionError.from_message_type(
            SubmissionMessageType.FAILED_GET_VALIDATION_RULES,
        )
        response = client.post(
            "/api/validate",
            files={"file": ("a.csv", b"A\n1\n", "text/csv")},
            data={"template_name": "Nope", "template_version": "1"},
        )
        assert response.status_code == 400
        assert response.json()["detail"][0]["type"] == "Failed to Get Validation Rules"


class TestHealthAndTemplates:
    @patch("sims.api.health.db_client")
    def test_health_degraded(self, mock_db, client):
        mock_db.check_connection.return_value = False
        response = client.get("/api/health")
        assert response.json() == {"status": "degraded", "services": {"postgres": "error"}}

    @patch("sims.api.templates.submission_repository")
    def test_list_templates(self, mock_repo, client):
        mock_repo.list_templates.return_value = [make_template()]
        response = client.get("/api/templates")
        assert response.status_code == 200
        assert response.json()[0]["name"] == "Moose Summary Results"

    @patch("sims.api.templates.register_template")
    def test_register_example(self, mock_register, client):
        mock_register.return_value = 7
        response = client.post("/api/templates/_example_summary_template/register")
        assert response.status_code == 201
        assert response.json()["template_id"] == 7

    def test_register_missing_file(self, client):
        response = client.post("/api/templates/nonexistent/register")
        assert response.status_code == 404
