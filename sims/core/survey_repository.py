"""Survey species lookup used to pick the species-specific validation template."""

import logging

from sims.core.db_client import execute_query
from sims.core.models import SpeciesData, SpeciesRecord

logger = logging.getLogger(__name__)


def get_species_data(survey_id: int) -> SpeciesData:
    """Return the focal and ancillary species recorded against a survey."""
    rows = execute_query(
        "SELECT tsn, common_name, is_focal FROM study_species "
        "WHERE survey_id = :survey_id ORDER BY study_species_id",
        {"survey_id": survey_id},
    )
    data = SpeciesData()
    for row in rows:
        record = SpeciesRecord(tsn=row["tsn"], common_name=row.get("common_name"))
        if row["is_focal"]:
            data.focal_species.append(record)
        else:
            data.ancillary_species.append(record)
    logger.debug(
        f"Survey {survey_id}: {len(data.focal_species)} focal, "
        f"{len(data.ancillary_species)} ancillary species"
    )
    return data
