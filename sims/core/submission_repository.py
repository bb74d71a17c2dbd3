"""Submission Data Access Layer — SQL wrappers for submissions, messages and templates.

Every statement is parameterised and runs through db_client.execute_query(),
one transaction per call. Submission messages are append-only.
"""

import json
import logging
from typing import Any, Optional

from sims.core.db_client import execute_query
from sims.core.models import (
    MessageClass,
    SubmissionMessageModel,
    SubmissionMessageType,
    SubmissionModel,
    SubmissionStatus,
    TemplateModel,
    TemplateSpeciesModel,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _to_json(value: Any) -> Optional[str]:
    """Serialize a validation document for a json column. Strings pass through."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _parse_submission_row(row: dict) -> SubmissionModel:
    return SubmissionModel(
        submission_id=row["submission_id"],
        survey_id=row["survey_id"],
        source=row.get("source"),
        file_name=row.get("file_name"),
        key=row.get("key"),
        status=SubmissionStatus(row["status"]),
        create_date=row.get("create_date"),
    )


def _parse_message_row(row: dict) -> SubmissionMessageModel:
    return SubmissionMessageModel(
        submission_message_id=row["submission_message_id"],
        submission_id=row["submission_id"],
        message_class=MessageClass(row["message_class"]),
        message_type=SubmissionMessageType(row["message_type"]),
        message=row["message"],
        create_date=row.get("create_date"),
    )


def _parse_template_row(row: dict) -> TemplateModel:
    return TemplateModel(
        template_id=row["template_id"],
        name=row["name"],
        version=row["version"],
        description=row.get("description"),
    )


def _parse_template_species_row(row: dict) -> TemplateSpeciesModel:
    return TemplateSpeciesModel(
        template_species_id=row["template_species_id"],
        template_id=row["template_id"],
        taxonomy_id=row.get("taxonomy_id"),
        validation=row.get("validation"),
    )


# ---------------------------------------------------------------------------
# Submission operations
# ---------------------------------------------------------------------------

def find_submission_by_id(submission_id: int) -> Optional[SubmissionModel]:
    rows = execute_query(
        "SELECT submission_id, survey_id, source, file_name, key, status, create_date "
        "FROM summary_submission WHERE submission_id = :submission_id",
        {"submission_id": submission_id},
    )
    if not rows:
        return None
    return _parse_submission_row(rows[0])


def insert_submission(
    survey_id: int,
    source: str,
    file_name: str,
    status: SubmissionStatus = SubmissionStatus.UPLOADED,
) -> int:
    """Insert a submission row and return its generated id. The key is set afterwards."""
    rows = execute_query(
        "INSERT INTO summary_submission (survey_id, source, file_name, status) "
        "VALUES (:survey_id, :source, :file_name, :status) RETURNING submission_id",
        {"survey_id": survey_id, "source": source, "file_name": file_name, "status": status.value},
    )
    submission_id = rows[0]["submission_id"]
    logger.info(f"Inserted submission {submission_id} for survey {survey_id}")
    return submission_id


def update_submission_key(submission_id: int, key: str) -> None:
    execute_query(
        "UPDATE summary_submission SET key = :key WHERE submission_id = :submission_id",
        {"submission_id": submission_id, "key": key},
    )


def update_submission_status(submission_id: int, status: SubmissionStatus) -> None:
    execute_query(
        "UPDATE summary_submission SET status = :status WHERE submission_id = :submission_id",
        {"submission_id": submission_id, "status": status.value},
    )
    logger.debug(f"Submission {submission_id} -> {status.value}")


# ---------------------------------------------------------------------------
# Submission message operations
# ---------------------------------------------------------------------------

def insert_submission_message(
    submission_id: int,
    message_class: MessageClass,
    message_type: SubmissionMessageType,
    message: str,
) -> int:
    rows = execute_query(
        "INSERT INTO summary_submission_message (submission_id, message_class, message_type, message) "
        "VALUES (:submission_id, :message_class, :message_type, :message) "
        "RETURNING submission_message_id",
        {
            "submission_id": submission_id,
            "message_class": message_class.value,
            "message_type": message_type.value,
            "message": message,
        },
    )
    return rows[0]["submission_message_id"]


def get_submission_messages(submission_id: int) -> list[SubmissionMessageModel]:
    rows = execute_query(
        "SELECT submission_message_id, submission_id, message_class, message_type, message, create_date "
        "FROM summary_submission_message WHERE submission_id = :submission_id "
        "ORDER BY submission_message_id",
        {"submission_id": submission_id},
    )
    return [_parse_message_row(r) for r in rows]


# ---------------------------------------------------------------------------
# Template operations
# ---------------------------------------------------------------------------

def find_template(name: str, version: str) -> Optional[TemplateModel]:
    """Find the active template with an exact (name, version) match."""
    rows = execute_query(
        "SELECT template_id, name, version, description FROM summary_template "
        "WHERE name = :name AND version = :version AND record_end_date IS NULL",
        {"name": name, "version": version},
    )
    if not rows:
        return None
    return _parse_template_row(rows[0])


def list_templates() -> list[TemplateModel]:
    rows = execute_query(
        "SELECT template_id, name, version, description FROM summary_template "
        "WHERE record_end_date IS NULL ORDER BY name, version"
    )
    return [_parse_template_row(r) for r in rows]


def get_template_species_records(
    template_id: int,
    species_ids: Optional[list[int]] = None,
) -> list[TemplateSpeciesModel]:
    """Species rows of a template, in insertion order.

    With species_ids, only rows that are species-agnostic (NULL taxonomy_id)
    or match one of the ids are returned. With None, every row is returned.
    """
    sql = (
        "SELECT template_species_id, template_id, taxonomy_id, validation "
        "FROM summary_template_species WHERE template_id = :template_id"
    )
    params: dict[str, Any] = {"template_id": template_id}
    if species_ids:
        sql += " AND (taxonomy_id IS NULL OR taxonomy_id = ANY(CAST(:species_ids AS integer[])))"
        params["species_ids"] = list(species_ids)
    elif species_ids is not None:
        sql += " AND taxonomy_id IS NULL"
    sql += " ORDER BY template_species_id"
    rows = execute_query(sql, params)
    return [_parse_template_species_row(r) for r in rows]


def insert_template(name: str, version: str, description: Optional[str] = None) -> int:
    rows = execute_query(
        "INSERT INTO summary_template (name, version, description) "
        "VALUES (:name, :version, :description) RETURNING template_id",
        {"name": name, "version": version, "description": description or ""},
    )
    template_id = rows[0]["template_id"]
    logger.info(f"Inserted template '{name}' v{version} as {template_id}")
    return template_id


def insert_template_species(
    template_id: int,
    validation: Any,
    taxonomy_id: Optional[int] = None,
) -> int:
    rows = execute_query(
        "INSERT INTO summary_template_species (template_id, taxonomy_id, validation) "
        "VALUES (:template_id, :taxonomy_id, CAST(:validation AS json)) RETURNING template_species_id",
        {"template_id": template_id, "taxonomy_id": taxonomy_id, "validation": _to_json(validation)},
    )
    return rows[0]["template_species_id"]
