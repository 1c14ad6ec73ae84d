"""Demographic dimension: gender, ethnicity, age range and location."""

from datetime import date
from typing import List, Optional

from core.eligibility.filters.checks import check_exact, check_one_of
from core.eligibility.models import (
    DemographicCriteria,
    FailedCriterion,
    FilterDimension,
    HardFilterResult,
    StudentProfile,
)

DIMENSION = FilterDimension.DEMOGRAPHIC


def calculate_age(date_of_birth: date, today: date) -> int:
    """Whole years between two dates, counting a birthday only once it has passed."""
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def _age_range_label(age_min: Optional[int], age_max: Optional[int]) -> str:
    low = 'any' if age_min is None else age_min
    high = 'any' if age_max is None else age_max
    return f"{low}-{high}"


def filter_demographic(
    profile: StudentProfile,
    criteria: Optional[DemographicCriteria] = None,
    today: Optional[date] = None,
) -> HardFilterResult:
    if criteria is None:
        return HardFilterResult()

    failed: List[FailedCriterion] = []

    check_exact(failed, DIMENSION, 'requiredGender', criteria.required_gender, profile.gender)

    # any overlap between the student's ethnicities and the required list passes
    if criteria.required_ethnicity:
        if not profile.ethnicity:
            failed.append(FailedCriterion(DIMENSION, 'requiredEthnicity', list(criteria.required_ethnicity), None))
        elif not any(e in criteria.required_ethnicity for e in profile.ethnicity):
            failed.append(FailedCriterion(
                DIMENSION, 'requiredEthnicity', list(criteria.required_ethnicity), list(profile.ethnicity),
            ))

    if criteria.age_min is not None or criteria.age_max is not None:
        if profile.date_of_birth is None:
            failed.append(FailedCriterion(
                DIMENSION, 'age', _age_range_label(criteria.age_min, criteria.age_max), None,
            ))
        else:
            age = calculate_age(profile.date_of_birth, today or date.today())
            if criteria.age_min is not None and age < criteria.age_min:
                failed.append(FailedCriterion(DIMENSION, 'ageMin', criteria.age_min, age))
            if criteria.age_max is not None and age > criteria.age_max:
                failed.append(FailedCriterion(DIMENSION, 'ageMax', criteria.age_max, age))

    check_one_of(failed, DIMENSION, 'requiredState', criteria.required_state, profile.state)
    check_one_of(failed, DIMENSION, 'requiredCity', criteria.required_city, profile.city)

    return HardFilterResult(failed_criteria=failed)
