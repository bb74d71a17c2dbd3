"""Template Loader — loads summary template files and registers them in the database.

A template file ({templates_dir}/{name}.json|.yaml|.yml) looks like:

    name: Moose SRB
    version: "1.0"
    description: Moose stratified random block summary
    species:
      - taxonomy_id: null
        validation: {...validation document...}

JSON is read through the same YAML loader.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ValidationError

from sims.core import submission_repository
from sims.core.config import settings
from sims.core.errors import SchemaParseError
from sims.core.validation_schema import ValidationSchemaParser

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = (".json", ".yaml", ".yml")


class TemplateSpeciesDefinition(BaseModel):
    taxonomy_id: Optional[int] = None
    validation: dict[str, Any]


class TemplateDefinition(BaseModel):
    name: str
    version: str
    description: Optional[str] = None
    species: list[TemplateSpeciesDefinition] = []


def _templates_dir(templates_dir: Optional[Path] = None) -> Path:
    return templates_dir or settings.resolve_path(settings.templates_dir)


def _find_template_file(template_name: str, templates_dir: Path) -> Optional[Path]:
    for suffix in TEMPLATE_SUFFIXES:
        path = templates_dir / f"{template_name}{suffix}"
        if path.exists():
            return path
    return None


def load_template(template_name: str, templates_dir: Optional[Path] = None) -> TemplateDefinition:
    """Load a template file by name and check that each validation document parses.

    Looks for {templates_dir}/{template_name}.json, .yaml, then .yml
    """
    directory = _templates_dir(templates_dir)
    path = _find_template_file(template_name, directory)
    if path is None:
        raise FileNotFoundError(f"Summary template not found: {directory / template_name}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Invalid template format in {path}: expected a mapping")

    # version is often written unquoted in YAML (1.0)
    if "version" in data and data["version"] is not None:
        data["version"] = str(data["version"])

    try:
        definition = TemplateDefinition(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid template format in {path}: {e}") from e

    for i, species in enumerate(definition.species):
        try:
            ValidationSchemaParser(species.validation)
        except SchemaParseError as e:
            raise SchemaParseError(f"{path.name} species[{i}]: {e}") from e

    return definition


def list_template_files(templates_dir: Optional[Path] = None) -> list[str]:
    """List available template names (without extension); '_'-prefixed files are hidden."""
    directory = _templates_dir(templates_dir)
    if not directory.exists():
        return []
    names = {
        p.stem for p in directory.iterdir()
        if p.suffix in TEMPLATE_SUFFIXES and not p.stem.startswith("_")
    }
    return sorted(names)


def register_template(definition: TemplateDefinition, repository=submission_repository) -> int:
    """Insert a template and its species rows. Returns the new template id.

    An existing active (name, version) is left untouched and its id returned.
    """
    existing = repository.find_template(definition.name, definition.version)
    if existing is not None:
        logger.info(f"Template '{definition.name}' v{definition.version} already registered")
        return existing.template_id

    template_id = repository.insert_template(definition.name, definition.version, definition.description)
    for species in definition.species:
        repository.insert_template_species(template_id, species.validation, species.taxonomy_id)
    logger.info(
        f"Registered template '{definition.name}' v{definition.version} "
        f"with {len(definition.species)} species record(s)"
    )
    return template_id
