"""Experience dimension: volunteering, activities, leadership, work history, awards."""

from datetime import date
from typing import List, Optional

from core.eligibility.filters.checks import check_flag, check_min
from core.eligibility.models import (
    ExperienceCriteria,
    FailedCriterion,
    FilterDimension,
    HardFilterResult,
    StudentProfile,
    WorkExperienceEntry,
)

DIMENSION = FilterDimension.EXPERIENCE


def work_experience_months(entries: List[WorkExperienceEntry], today: date) -> int:
    """Sum of whole calendar months per entry; ongoing entries run until ``today``.

    Each entry is floored at zero so a reversed date pair cannot cancel out
    real experience. Entries without a start date contribute nothing.
    """
    total = 0
    for entry in entries:
        if entry.start_date is None:
            continue
        end = entry.end_date or today
        months = (end.year - entry.start_date.year) * 12 + (end.month - entry.start_date.month)
        total += max(0, months)
    return total


def filter_experience(
    profile: StudentProfile,
    criteria: Optional[ExperienceCriteria] = None,
    today: Optional[date] = None,
) -> HardFilterResult:
    if criteria is None:
        return HardFilterResult()

    failed: List[FailedCriterion] = []

    check_min(failed, DIMENSION, 'minVolunteerHours', criteria.min_volunteer_hours, profile.volunteer_hours)

    check_flag(
        failed, DIMENSION, 'leadershipRequired', criteria.leadership_required,
        present=bool(profile.leadership_roles),
        actual=None if profile.leadership_roles is None else False,
    )

    if criteria.required_extracurriculars:
        if profile.extracurriculars is None:
            failed.append(FailedCriterion(
                DIMENSION, 'requiredExtracurriculars', list(criteria.required_extracurriculars), None,
            ))
        else:
            names = [activity.name for activity in profile.extracurriculars]
            lowered = [name.lower() for name in names]
            matched = any(
                required.lower() in name
                for required in criteria.required_extracurriculars
                for name in lowered
            )
            if not matched:
                failed.append(FailedCriterion(
                    DIMENSION, 'requiredExtracurriculars', list(criteria.required_extracurriculars), names,
                ))

    if criteria.min_work_experience is not None:
        months = None
        if profile.work_experience is not None:
            months = work_experience_months(profile.work_experience, today or date.today())
        check_min(failed, DIMENSION, 'minWorkExperience', criteria.min_work_experience, months)

    check_flag(
        failed, DIMENSION, 'awardsHonorsRequired', criteria.awards_honors_required,
        present=bool(profile.awards_honors),
        actual=None if profile.awards_honors is None else False,
    )

    return HardFilterResult(failed_criteria=failed)
