"""Survey-scoped summary submission endpoints — upload, validate, messages, accept/reject."""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from sims.api.deps import get_submission_id, get_submission_service, get_survey_id
from sims.core.config import settings
from sims.core.errors import InvalidStatusTransition, StorageError, SubmissionNotFoundError
from sims.core.models import (
    SubmissionCreateResponse,
    SubmissionMessagesResponse,
    SubmissionModel,
    SubmissionValidateResponse,
)
from sims.core.submission_service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_submission(service: SubmissionService, submission_id: int, survey_id: int) -> SubmissionModel:
    try:
        return service.get_submission(submission_id, survey_id)
    except SubmissionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Submission {submission_id} not found")


@router.post("/submissions", response_model=SubmissionCreateResponse, status_code=201)
async def create_submission(
    file: UploadFile = File(...),
    source: str = Form("SIMS"),
    survey_id: int = Depends(get_survey_id),
    service: SubmissionService = Depends(get_submission_service),
):
    """Upload a summary results file (.xlsx or .csv) for a survey."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="An uploaded file name is required")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")

    try:
        submission = service.create_submission(survey_id, source, file.filename, content)
    except StorageError as e:
        logger.error(f"Failed to store upload for survey {survey_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to store uploaded file")

    return SubmissionCreateResponse(submission_id=submission.submission_id, status=submission.status)


@router.post("/submissions/{submission_id}/validate", response_model=SubmissionValidateResponse)
async def validate_submission(
    submission_id: int = Depends(get_submission_id),
    survey_id: int = Depends(get_survey_id),
    service: SubmissionService = Depends(get_submission_service),
):
    """Prepare and validate an uploaded submission.

    Responds 400 when the file could not be prepared or no validation rules
    apply; the reasons are stored as submission messages.
    """
    try:
        report = service.validate_file(submission_id, survey_id)
    except SubmissionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Submission {submission_id} not found")
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    submission = _load_submission(service, submission_id, survey_id)
    if report is None:
        raise HTTPException(
            status_code=400,
            detail=f"Submission {submission_id} could not be validated ({submission.status.value}); "
                   f"see the submission messages for details",
        )

    report_dict = report.to_dict()
    return SubmissionValidateResponse(
        submission_id=submission_id,
        status=submission.status,
        media_state=report_dict["media_state"],
        csv_state=report_dict["csv_state"],
    )


@router.get("/submissions/{submission_id}/messages", response_model=SubmissionMessagesResponse)
async def get_submission_messages(
    submission_id: int = Depends(get_submission_id),
    survey_id: int = Depends(get_survey_id),
    service: SubmissionService = Depends(get_submission_service),
):
    submission = _load_submission(service, submission_id, survey_id)
    return SubmissionMessagesResponse(
        submission_id=submission_id,
        status=submission.status,
        messages=service.get_submission_messages(submission_id),
    )


@router.post("/submissions/{submission_id}/accept", response_model=SubmissionCreateResponse)
async def accept_submission(
    submission_id: int = Depends(get_submission_id),
    survey_id: int = Depends(get_survey_id),
    service: SubmissionService = Depends(get_submission_service),
):
    _load_submission(service, submission_id, survey_id)
    try:
        submission = service.accept_submission(submission_id)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SubmissionCreateResponse(submission_id=submission_id, status=submission.status)


@router.post("/submissions/{submission_id}/reject", response_model=SubmissionCreateResponse)
async def reject_submission(
    submission_id: int = Depends(get_submission_id),
    survey_id: int = Depends(get_survey_id),
    service: SubmissionService = Depends(get_submission_service),
):
    _load_submission(service, submission_id, survey_id)
    try:
        submission = service.reject_submission(submission_id)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SubmissionCreateResponse(submission_id=submission_id, status=submission.status)
