"""Data model for hard-filter eligibility.

Three groups of types live here:

- Student side: ``StudentProfile`` and the typed records for its nested
  collections (extracurriculars, leadership roles, work experience, awards).
  Every attribute is optional; ``None`` means the student never supplied it
  and is never the same thing as ``0``, ``False`` or ``[]``.
- Scholarship side: ``EligibilityCriteria`` with one optional sub-model per
  dimension. The sub-models accept the camelCase keys used in stored
  criteria JSON (``minGPA``, ``requiredGender`` ...).
- Results: ``FailedCriterion`` and ``HardFilterResult``.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class FilterDimension(str, Enum):
    """The six eligibility dimensions, in evaluation order."""
    ACADEMIC = "academic"
    DEMOGRAPHIC = "demographic"
    MAJOR_FIELD = "majorField"
    EXPERIENCE = "experience"
    FINANCIAL = "financial"
    SPECIAL = "special"


class FinancialNeed(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


FINANCIAL_NEED_PRIORITY: Dict[FinancialNeed, int] = {
    FinancialNeed.LOW: 1,
    FinancialNeed.MODERATE: 2,
    FinancialNeed.HIGH: 3,
    FinancialNeed.VERY_HIGH: 4,
}


def financial_need_priority(need: Optional[FinancialNeed]) -> int:
    """Order financial need tiers; a missing tier ranks below LOW."""
    if need is None:
        return 0
    return FINANCIAL_NEED_PRIORITY[need]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FailedCriterion:
    """One violated constraint.

    ``actual`` is ``None`` when the profile had no value for the constrained
    field, otherwise the observed (or derived) value that was out of bounds.
    """
    dimension: FilterDimension
    criterion: str
    required: Any
    actual: Any = None

    def describe(self) -> str:
        if self.actual is None:
            return f"{self.dimension.value}.{self.criterion}: requires {self.required}, profile has no value"
        return f"{self.dimension.value}.{self.criterion}: requires {self.required}, profile has {self.actual}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dimension': self.dimension.value,
            'criterion': self.criterion,
            'required': self.required,
            'actual': self.actual,
        }


@dataclass
class HardFilterResult:
    """Verdict of one dimension filter or of the composed engine.

    ``eligible`` is derived from ``failed_criteria`` so the two can never
    disagree. ``skipped_dimensions`` lists dimensions that were switched off
    by configuration and therefore not evaluated at all.
    """
    failed_criteria: List[FailedCriterion] = field(default_factory=list)
    skipped_dimensions: List[FilterDimension] = field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return not self.failed_criteria

    @property
    def failed_dimensions(self) -> List[FilterDimension]:
        seen: List[FilterDimension] = []
        for failed in self.failed_criteria:
            if failed.dimension not in seen:
                seen.append(failed.dimension)
        return seen

    def reasons(self) -> List[str]:
        return [failed.describe() for failed in self.failed_criteria]


# ---------------------------------------------------------------------------
# Student profile
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtracurricularActivity:
    name: str
    role: Optional[str] = None
    hours_per_week: Optional[float] = None


@dataclass(frozen=True)
class LeadershipRole:
    title: str
    organization: Optional[str] = None


@dataclass(frozen=True)
class WorkExperienceEntry:
    title: Optional[str] = None
    employer: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class AwardHonor:
    name: str
    level: Optional[str] = None
    year: Optional[int] = None


@dataclass(frozen=True)
class StudentProfile:
    # academic
    gpa: Optional[float] = None
    gpa_scale: Optional[float] = None
    sat_score: Optional[int] = None
    act_score: Optional[int] = None
    class_rank: Optional[int] = None
    class_size: Optional[int] = None
    # demographic
    gender: Optional[str] = None
    ethnicity: Optional[List[str]] = None
    date_of_birth: Optional[date] = None
    state: Optional[str] = None
    city: Optional[str] = None
    # major / field
    intended_major: Optional[str] = None
    field_of_study: Optional[str] = None
    career_goals: Optional[str] = None
    # experience
    volunteer_hours: Optional[float] = None
    extracurriculars: Optional[List[ExtracurricularActivity]] = None
    leadership_roles: Optional[List[LeadershipRole]] = None
    work_experience: Optional[List[WorkExperienceEntry]] = None
    awards_honors: Optional[List[AwardHonor]] = None
    # financial
    financial_need: Optional[FinancialNeed] = None
    efc_range: Optional[str] = None
    pell_grant_eligible: Optional[bool] = None
    # special circumstances
    first_generation: Optional[bool] = None
    military_affiliation: Optional[str] = None
    citizenship: Optional[str] = None
    disabilities: Optional[str] = None

    completion_percentage: Optional[float] = None


@dataclass
class StudentRecord:
    id: str
    profile: StudentProfile
    email: Optional[str] = None
    first_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Ingestion helpers for the loosely-typed JSON collections
# ---------------------------------------------------------------------------

def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def _items(raw: Any, kind: str) -> Optional[List[dict]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        logger.warning(f"Ignoring {kind}: expected a list, got {type(raw).__name__}")
        return None
    return [item for item in raw if isinstance(item, dict)]


def parse_extracurriculars(raw: Any) -> Optional[List[ExtracurricularActivity]]:
    items = _items(raw, "extracurriculars")
    if items is None:
        return None
    activities = []
    for item in items:
        name = item.get("name") or item.get("activity")
        if not name:
            continue
        activities.append(ExtracurricularActivity(
            name=str(name),
            role=item.get("role"),
            hours_per_week=item.get("hoursPerWeek"),
        ))
    return activities


def parse_leadership_roles(raw: Any) -> Optional[List[LeadershipRole]]:
    items = _items(raw, "leadership roles")
    if items is None:
        return None
    roles = []
    for item in items:
        title = item.get("title") or item.get("role") or item.get("position")
        if not title:
            continue
        roles.append(LeadershipRole(title=str(title), organization=item.get("organization")))
    return roles


def parse_work_experience(raw: Any) -> Optional[List[WorkExperienceEntry]]:
    items = _items(raw, "work experience")
    if items is None:
        return None
    return [
        WorkExperienceEntry(
            title=item.get("title") or item.get("position"),
            employer=item.get("employer") or item.get("company"),
            start_date=_parse_date(item.get("startDate")),
            end_date=_parse_date(item.get("endDate")),
        )
        for item in items
    ]


def parse_awards_honors(raw: Any) -> Optional[List[AwardHonor]]:
    items = _items(raw, "awards/honors")
    if items is None:
        return None
    awards = []
    for item in items:
        name = item.get("name") or item.get("title")
        if not name:
            continue
        year = item.get("year")
        awards.append(AwardHonor(
            name=str(name),
            level=item.get("level"),
            year=int(year) if isinstance(year, (int, float)) else None,
        ))
    return awards


# ---------------------------------------------------------------------------
# Scholarship criteria
# ---------------------------------------------------------------------------

class _CriteriaModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class AcademicCriteria(_CriteriaModel):
    min_gpa: Optional[float] = Field(default=None, alias="minGPA")
    max_gpa: Optional[float] = Field(default=None, alias="maxGPA")
    min_sat: Optional[int] = Field(default=None, alias="minSAT")
    max_sat: Optional[int] = Field(default=None, alias="maxSAT")
    min_act: Optional[int] = Field(default=None, alias="minACT")
    max_act: Optional[int] = Field(default=None, alias="maxACT")
    class_rank_percentile: Optional[float] = Field(default=None, alias="classRankPercentile")


class DemographicCriteria(_CriteriaModel):
    required_gender: Optional[str] = Field(default=None, alias="requiredGender")
    required_ethnicity: Optional[List[str]] = Field(default=None, alias="requiredEthnicity")
    age_min: Optional[int] = Field(default=None, alias="ageMin")
    age_max: Optional[int] = Field(default=None, alias="ageMax")
    required_state: Optional[List[str]] = Field(default=None, alias="requiredState")
    required_city: Optional[List[str]] = Field(default=None, alias="requiredCity")


class MajorFieldCriteria(_CriteriaModel):
    eligible_majors: Optional[List[str]] = Field(default=None, alias="eligibleMajors")
    excluded_majors: Optional[List[str]] = Field(default=None, alias="excludedMajors")
    required_field_of_study: Optional[List[str]] = Field(default=None, alias="requiredFieldOfStudy")
    career_goals_keywords: Optional[List[str]] = Field(default=None, alias="careerGoalsKeywords")


class ExperienceCriteria(_CriteriaModel):
    min_volunteer_hours: Optional[float] = Field(default=None, alias="minVolunteerHours")
    required_extracurriculars: Optional[List[str]] = Field(default=None, alias="requiredExtracurriculars")
    leadership_required: Optional[bool] = Field(default=None, alias="leadershipRequired")
    min_work_experience: Optional[int] = Field(default=None, alias="minWorkExperience")
    awards_honors_required: Optional[bool] = Field(default=None, alias="awardsHonorsRequired")


class FinancialCriteria(_CriteriaModel):
    requires_financial_need: Optional[bool] = Field(default=None, alias="requiresFinancialNeed")
    max_efc: Optional[float] = Field(default=None, alias="maxEFC")
    pell_grant_required: Optional[bool] = Field(default=None, alias="pellGrantRequired")
    financial_need_level: Optional[FinancialNeed] = Field(default=None, alias="financialNeedLevel")


class SpecialCriteria(_CriteriaModel):
    first_generation_required: Optional[bool] = Field(default=None, alias="firstGenerationRequired")
    military_affiliation: Optional[str] = Field(default=None, alias="militaryAffiliation")
    citizenship_required: Optional[str] = Field(default=None, alias="citizenshipRequired")
    disability_required: Optional[bool] = Field(default=None, alias="disabilityRequired")
    other_requirements: Optional[List[str]] = Field(default=None, alias="otherRequirements")


class EligibilityCriteria(_CriteriaModel):
    academic: Optional[AcademicCriteria] = None
    demographic: Optional[DemographicCriteria] = None
    major_field: Optional[MajorFieldCriteria] = Field(default=None, alias="majorField")
    experience: Optional[ExperienceCriteria] = None
    financial: Optional[FinancialCriteria] = None
    special: Optional[SpecialCriteria] = None


@dataclass
class ScholarshipRecord:
    id: str
    name: str
    criteria: EligibilityCriteria = field(default_factory=EligibilityCriteria)
    provider: Optional[str] = None
    award_amount: Optional[float] = None
    deadline: Optional[datetime] = None
    website: Optional[str] = None
