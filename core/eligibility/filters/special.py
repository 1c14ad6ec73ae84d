"""Special-circumstances dimension: first-generation, military, citizenship, disability."""

import logging
from datetime import date
from typing import List, Optional

from core.eligibility.filters.checks import check_exact, check_flag
from core.eligibility.models import (
    FailedCriterion,
    FilterDimension,
    HardFilterResult,
    SpecialCriteria,
    StudentProfile,
)

logger = logging.getLogger(__name__)

DIMENSION = FilterDimension.SPECIAL


def filter_special(
    profile: StudentProfile,
    criteria: Optional[SpecialCriteria] = None,
    today: Optional[date] = None,
) -> HardFilterResult:
    if criteria is None:
        return HardFilterResult()

    failed: List[FailedCriterion] = []

    check_flag(
        failed, DIMENSION, 'firstGenerationRequired', criteria.first_generation_required,
        present=profile.first_generation is True,
        actual=profile.first_generation,
    )

    check_exact(
        failed, DIMENSION, 'militaryAffiliation', criteria.military_affiliation, profile.military_affiliation,
    )
    check_exact(
        failed, DIMENSION, 'citizenshipRequired', criteria.citizenship_required, profile.citizenship,
    )

    has_disability_info = bool(profile.disabilities and profile.disabilities.strip())
    check_flag(
        failed, DIMENSION, 'disabilityRequired', criteria.disability_required,
        present=has_disability_info,
        actual=None if profile.disabilities is None else False,
    )

    # Free-text requirements need human review and never reject on their own.
    if criteria.other_requirements:
        logger.debug(f"Other requirements need manual review: {criteria.other_requirements}")

    return HardFilterResult(failed_criteria=failed)
