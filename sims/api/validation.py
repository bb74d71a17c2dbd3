"""Ad-hoc validation endpoint — validates an upload against a registered template without persisting it."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from sims.api.deps import get_template_resolver
from sims.core.config import settings
from sims.core.errors import SubmissionError
from sims.core.models import ValidationReportResponse
from sims.core.submission_service import build_parser, load_workbook
from sims.core.template_resolver import (
    TEMPLATE_NAME_PROPERTY,
    TEMPLATE_VERSION_PROPERTY,
    TemplateResolver,
)
from sims.core.validation_engine import validate_workbook

router = APIRouter()


@router.post("/validate", response_model=ValidationReportResponse)
async def validate_upload(
    file: UploadFile = File(...),
    template_name: str = Form(...),
    template_version: str = Form(...),
    resolver: TemplateResolver = Depends(get_template_resolver),
):
    """Validate a summary file against the species-agnostic rules of a template.

    - **file**: summary results file (.xlsx or .csv)
    - **template_name** / **template_version**: registered summary template
    """
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")

    try:
        workbook = load_workbook(content, file.filename or "", mimetype=file.content_type)
        resolved = resolver.resolve(
            {TEMPLATE_NAME_PROPERTY: template_name, TEMPLATE_VERSION_PROPERTY: template_version},
            [],
        )
        parser = build_parser(resolved.validation)
    except SubmissionError as e:
        raise HTTPException(
            status_code=400,
            detail=[{"type": m.type.value, "message": m.description} for m in e.messages],
        )

    report = validate_workbook(workbook, parser)
    return ValidationReportResponse(**report.to_dict())
