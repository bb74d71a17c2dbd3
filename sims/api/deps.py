"""FastAPI dependencies for survey/submission path parameters and the submission service."""

from fastapi import Path

from sims.core.submission_service import SubmissionService
from sims.core.template_resolver import TemplateResolver


async def get_survey_id(
    survey_id: int = Path(..., description="Survey ID", ge=1)
) -> int:
    return survey_id


async def get_submission_id(
    submission_id: int = Path(..., description="Summary submission ID", ge=1)
) -> int:
    return submission_id


def get_submission_service() -> SubmissionService:
    """Service wired to the module-level repositories and file store."""
    return SubmissionService()


def get_template_resolver() -> TemplateResolver:
    return TemplateResolver()
