"""Academic dimension: GPA, SAT, ACT ranges and class-rank percentile."""

from datetime import date
from typing import List, Optional

from core.eligibility.filters.checks import check_max, check_min
from core.eligibility.models import (
    AcademicCriteria,
    FailedCriterion,
    FilterDimension,
    HardFilterResult,
    StudentProfile,
)

DIMENSION = FilterDimension.ACADEMIC


def class_rank_percentile(profile: StudentProfile) -> Optional[float]:
    """Rank as a percentage of class size; lower is better (rank 1 is the top)."""
    if not profile.class_rank or not profile.class_size or profile.class_size <= 0:
        return None
    return (profile.class_rank / profile.class_size) * 100


def filter_academic(
    profile: StudentProfile,
    criteria: Optional[AcademicCriteria] = None,
    today: Optional[date] = None,
) -> HardFilterResult:
    if criteria is None:
        return HardFilterResult()

    failed: List[FailedCriterion] = []

    check_min(failed, DIMENSION, 'minGPA', criteria.min_gpa, profile.gpa)
    check_max(failed, DIMENSION, 'maxGPA', criteria.max_gpa, profile.gpa)
    check_min(failed, DIMENSION, 'minSAT', criteria.min_sat, profile.sat_score)
    check_max(failed, DIMENSION, 'maxSAT', criteria.max_sat, profile.sat_score)
    check_min(failed, DIMENSION, 'minACT', criteria.min_act, profile.act_score)
    check_max(failed, DIMENSION, 'maxACT', criteria.max_act, profile.act_score)

    # "top X%": the student's percentile must not exceed X
    check_max(
        failed, DIMENSION, 'classRankPercentile',
        criteria.class_rank_percentile, class_rank_percentile(profile),
    )

    return HardFilterResult(failed_criteria=failed)
