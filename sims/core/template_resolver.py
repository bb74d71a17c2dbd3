"""Template Resolution — picks the validation document for an uploaded workbook.

The workbook names its template through the ``sims_name`` / ``sims_version``
custom document properties. A template can have several species rows; rows
with a NULL taxonomy apply to any survey, the rest only to surveys whose focal
species include that taxonomy. When several rows qualify, the first one in
repository order is used.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sims.core import submission_repository
from sims.core.errors import SubmissionError
from sims.core.models import SubmissionMessageType, TemplateModel, TemplateSpeciesModel

logger = logging.getLogger(__name__)

TEMPLATE_NAME_PROPERTY = "sims_name"
TEMPLATE_VERSION_PROPERTY = "sims_version"


@dataclass(frozen=True)
class ResolvedTemplate:
    template: TemplateModel
    species_record: TemplateSpeciesModel
    candidate_count: int

    @property
    def validation(self) -> Any:
        return self.species_record.validation

    def found_message(self) -> str:
        return (
            f"Found validation having summary template species ID "
            f"'{self.species_record.template_species_id}' among {self.candidate_count} record(s)."
        )


def _property_text(properties: dict[str, Any], name: str) -> Optional[str]:
    value = properties.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def get_template_name_version(custom_properties: dict[str, Any]) -> tuple[str, str]:
    """Read (name, version) from workbook custom properties."""
    name = _property_text(custom_properties, TEMPLATE_NAME_PROPERTY)
    version = _property_text(custom_properties, TEMPLATE_VERSION_PROPERTY)
    if not name or not version:
        raise SubmissionError.from_message_type(
            SubmissionMessageType.FAILED_TO_GET_TEMPLATE_NAME_VERSION
        )
    return name, version


class TemplateResolver:
    def __init__(self, repository=submission_repository, log: Optional[logging.Logger] = None):
        self.repository = repository
        self.log = log or logger

    def resolve(self, custom_properties: dict[str, Any], species_ids: list[int]) -> ResolvedTemplate:
        name, version = get_template_name_version(custom_properties)

        template = self.repository.find_template(name, version)
        if template is None:
            self.log.info(f"No template registered for '{name}' v{version}")
            raise SubmissionError.from_message_type(
                SubmissionMessageType.FAILED_GET_VALIDATION_RULES,
                f"No validation rules found for template '{name}' version '{version}'",
            )

        records = self.repository.get_template_species_records(template.template_id, list(species_ids))
        if not records:
            if species_ids and self._has_species_specific_rows(template.template_id):
                raise SubmissionError.from_message_type(
                    SubmissionMessageType.MISMATCHED_TEMPLATE_SURVEY_SPECIES,
                )
            raise SubmissionError.from_message_type(
                SubmissionMessageType.FAILED_GET_VALIDATION_RULES,
                f"Template '{name}' version '{version}' has no validation rules for this survey",
            )

        # No ranking between qualifying rows: the first one wins
        chosen = records[0]
        if chosen.validation is None:
            raise SubmissionError.from_message_type(
                SubmissionMessageType.FAILED_GET_VALIDATION_RULES,
                f"Template species record {chosen.template_species_id} has no validation schema",
            )

        resolved = ResolvedTemplate(template=template, species_record=chosen, candidate_count=len(records))
        self.log.info(f"Template '{name}' v{version}: {resolved.found_message()}")
        return resolved

    def _has_species_specific_rows(self, template_id: int) -> bool:
        all_records = self.repository.get_template_species_records(template_id, None)
        return any(r.taxonomy_id is not None for r in all_records)
