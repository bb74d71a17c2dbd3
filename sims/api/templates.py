"""Summary template endpoints — list registered templates and register template files."""

from fastapi import APIRouter, HTTPException

from sims.core import submission_repository
from sims.core.errors import SchemaParseError
from sims.core.models import TemplateModel
from sims.core.template_loader import list_template_files, load_template, register_template

router = APIRouter()


@router.get("/templates", response_model=list[TemplateModel])
async def list_templates():
    """List active summary templates registered in the database."""
    return submission_repository.list_templates()


@router.get("/templates/files")
async def list_files():
    """List template files available for registration."""
    return {"templates": list_template_files()}


@router.post("/templates/{template_name}/register", status_code=201)
async def register(template_name: str):
    """Load a template file and register it with its species validation rules."""
    try:
        definition = load_template(template_name)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Template file '{template_name}' not found")
    except (ValueError, SchemaParseError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid template: {e}")

    template_id = register_template(definition)
    return {
        "template_id": template_id,
        "name": definition.name,
        "version": definition.version,
        "species_records": len(definition.species),
    }
