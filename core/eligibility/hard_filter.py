"""Hard filter engine and batch filter runner.

``apply_hard_filters`` composes the six dimension filters into one verdict for
a (student, scholarship) pair. ``filter_scholarships`` runs it across a list
of scholarships for one student and keeps the eligible ones in input order.

Everything here is pure computation: no I/O, no shared state between calls.
"""

import logging
import time
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from core.eligibility.filters import (
    filter_academic,
    filter_demographic,
    filter_experience,
    filter_financial,
    filter_major_field,
    filter_special,
)
from core.eligibility.models import (
    EligibilityCriteria,
    FailedCriterion,
    FilterDimension,
    HardFilterResult,
    ScholarshipRecord,
    StudentRecord,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnabledDimensions:
    """One switch per dimension. Turning a dimension off is an explicit opt-out
    that the engine reports in ``HardFilterResult.skipped_dimensions``."""
    academic: bool = True
    demographic: bool = True
    major_field: bool = True
    experience: bool = True
    financial: bool = True
    special: bool = True

    def is_enabled(self, dimension: FilterDimension) -> bool:
        return getattr(self, _DIMENSION_ATTRS[dimension])

    @classmethod
    def only(cls, *dimensions: FilterDimension) -> "EnabledDimensions":
        wanted = {_DIMENSION_ATTRS[d] for d in dimensions}
        return cls(**{f.name: f.name in wanted for f in fields(cls)})


@dataclass(frozen=True)
class HardFilterConfig:
    enabled_dimensions: EnabledDimensions = field(default_factory=EnabledDimensions)
    # Stop at the first failing dimension. Turning this off collects every
    # failure for analysis; the verdict is the same either way.
    early_exit: bool = True
    # Reference date for age and ongoing work experience; today when unset.
    reference_date: Optional[date] = None


DEFAULT_CONFIG = HardFilterConfig()


DimensionFilter = Callable[..., HardFilterResult]

_DIMENSION_ATTRS: Dict[FilterDimension, str] = {
    FilterDimension.ACADEMIC: 'academic',
    FilterDimension.DEMOGRAPHIC: 'demographic',
    FilterDimension.MAJOR_FIELD: 'major_field',
    FilterDimension.EXPERIENCE: 'experience',
    FilterDimension.FINANCIAL: 'financial',
    FilterDimension.SPECIAL: 'special',
}

# Evaluation order. Academic goes first: it rejects most often and is cheapest.
DIMENSION_FILTERS: Tuple[Tuple[FilterDimension, DimensionFilter], ...] = (
    (FilterDimension.ACADEMIC, filter_academic),
    (FilterDimension.DEMOGRAPHIC, filter_demographic),
    (FilterDimension.MAJOR_FIELD, filter_major_field),
    (FilterDimension.EXPERIENCE, filter_experience),
    (FilterDimension.FINANCIAL, filter_financial),
    (FilterDimension.SPECIAL, filter_special),
)


def apply_hard_filters(
    student: StudentRecord,
    scholarship: ScholarshipRecord,
    config: Optional[HardFilterConfig] = None,
) -> HardFilterResult:
    config = config or DEFAULT_CONFIG
    criteria = scholarship.criteria or EligibilityCriteria()
    today = config.reference_date or date.today()

    failed: List[FailedCriterion] = []
    skipped: List[FilterDimension] = []

    for dimension, dimension_filter in DIMENSION_FILTERS:
        if not config.enabled_dimensions.is_enabled(dimension):
            skipped.append(dimension)
            continue

        sub_criteria = getattr(criteria, _DIMENSION_ATTRS[dimension])
        if sub_criteria is None:
            continue
        result = dimension_filter(student.profile, sub_criteria, today)
        if result.eligible:
            continue

        failed.extend(result.failed_criteria)
        if config.early_exit:
            break

    return HardFilterResult(failed_criteria=failed, skipped_dimensions=skipped)


# ---------------------------------------------------------------------------
# Batch runner
# ---------------------------------------------------------------------------

@dataclass
class FilterStatistics:
    total_scholarships: int = 0
    eligible_count: int = 0
    rejected_count: int = 0
    execution_time_ms: float = 0.0
    # Every dimension is present; a rejected scholarship counts once per
    # dimension it failed.
    rejections_by_dimension: Dict[FilterDimension, int] = field(
        default_factory=lambda: {d: 0 for d in FilterDimension}
    )

    def to_dict(self) -> dict:
        return {
            'total_scholarships': self.total_scholarships,
            'eligible_count': self.eligible_count,
            'rejected_count': self.rejected_count,
            'execution_time_ms': round(self.execution_time_ms, 3),
            'rejections_by_dimension': {d.value: n for d, n in self.rejections_by_dimension.items()},
        }


@dataclass
class EligibilityOutcome:
    """Per-scholarship verdict with human-readable rejection reasons."""
    scholarship: ScholarshipRecord
    result: HardFilterResult

    @property
    def eligible(self) -> bool:
        return self.result.eligible

    @property
    def reasons(self) -> List[str]:
        return self.result.reasons()


def _run_batch(
    student: StudentRecord,
    scholarships: Sequence[ScholarshipRecord],
    config: Optional[HardFilterConfig],
) -> Tuple[List[ScholarshipRecord], FilterStatistics]:
    stats = FilterStatistics(total_scholarships=len(scholarships))
    eligible: List[ScholarshipRecord] = []

    start = time.perf_counter()
    for scholarship in scholarships:
        result = apply_hard_filters(student, scholarship, config)
        if result.eligible:
            eligible.append(scholarship)
            continue
        for dimension in result.failed_dimensions:
            stats.rejections_by_dimension[dimension] += 1
    stats.execution_time_ms = (time.perf_counter() - start) * 1000

    stats.eligible_count = len(eligible)
    stats.rejected_count = stats.total_scholarships - stats.eligible_count
    return eligible, stats


def filter_scholarships(
    student: StudentRecord,
    scholarships: Sequence[ScholarshipRecord],
    config: Optional[HardFilterConfig] = None,
    include_statistics: bool = False,
) -> List[ScholarshipRecord]:
    """Eligible subset of ``scholarships``, in input order.

    With ``include_statistics`` the rejection breakdown and timing are logged;
    the returned list is the same either way.
    """
    if not include_statistics:
        return [s for s in scholarships if apply_hard_filters(student, s, config).eligible]

    eligible, stats = _run_batch(student, scholarships, config)
    logger.info(
        f"Hard filter for student {student.id}: {stats.eligible_count}/{stats.total_scholarships} eligible "
        f"in {stats.execution_time_ms:.2f}ms, rejections by dimension: "
        f"{stats.to_dict()['rejections_by_dimension']}"
    )
    return eligible


def filter_scholarships_with_statistics(
    student: StudentRecord,
    scholarships: Sequence[ScholarshipRecord],
    config: Optional[HardFilterConfig] = None,
) -> Tuple[List[ScholarshipRecord], FilterStatistics]:
    return _run_batch(student, scholarships, config)


def get_filter_statistics(
    student: StudentRecord,
    scholarships: Sequence[ScholarshipRecord],
    config: Optional[HardFilterConfig] = None,
) -> FilterStatistics:
    _, stats = _run_batch(student, scholarships, config)
    return stats


def match_student(
    student: StudentRecord,
    scholarships: Sequence[ScholarshipRecord],
    config: Optional[HardFilterConfig] = None,
) -> List[EligibilityOutcome]:
    """Verdict for every scholarship, eligible or not, in input order."""
    return [
        EligibilityOutcome(scholarship=s, result=apply_hard_filters(student, s, config))
        for s in scholarships
    ]
