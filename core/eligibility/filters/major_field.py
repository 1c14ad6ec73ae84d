"""Major/field dimension: eligible and excluded majors, field of study, career-goal keywords."""

from datetime import date
from typing import List, Optional

from core.eligibility.filters.checks import check_one_of
from core.eligibility.models import (
    FailedCriterion,
    FilterDimension,
    HardFilterResult,
    MajorFieldCriteria,
    StudentProfile,
)

DIMENSION = FilterDimension.MAJOR_FIELD


def filter_major_field(
    profile: StudentProfile,
    criteria: Optional[MajorFieldCriteria] = None,
    today: Optional[date] = None,
) -> HardFilterResult:
    if criteria is None:
        return HardFilterResult()

    failed: List[FailedCriterion] = []

    check_one_of(failed, DIMENSION, 'eligibleMajors', criteria.eligible_majors, profile.intended_major)

    # exclusion only applies to a major the student actually declared
    if criteria.excluded_majors and profile.intended_major:
        if profile.intended_major in criteria.excluded_majors:
            failed.append(FailedCriterion(
                DIMENSION,
                'excludedMajors',
                f"Not in: {', '.join(criteria.excluded_majors)}",
                profile.intended_major,
            ))

    check_one_of(
        failed, DIMENSION, 'requiredFieldOfStudy', criteria.required_field_of_study, profile.field_of_study,
    )

    if criteria.career_goals_keywords:
        if not profile.career_goals:
            failed.append(FailedCriterion(DIMENSION, 'careerGoalsKeywords', list(criteria.career_goals_keywords), None))
        else:
            goals = profile.career_goals.lower()
            if not any(keyword.lower() in goals for keyword in criteria.career_goals_keywords):
                failed.append(FailedCriterion(
                    DIMENSION, 'careerGoalsKeywords', list(criteria.career_goals_keywords), profile.career_goals,
                ))

    return HardFilterResult(failed_criteria=failed)
