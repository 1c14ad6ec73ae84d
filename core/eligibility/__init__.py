"""
Eligibility Module - Stage 1: Hard Filtering.

Public API:
- apply_hard_filters: verdict for one (student, scholarship) pair
- filter_scholarships: eligible subset for one student, input order preserved
- get_filter_statistics / filter_scholarships_with_statistics: rejection breakdown
- HardFilterConfig / EnabledDimensions: engine configuration

Modules:
- models.py: profile, criteria and result types
- filters/: one pure filter per eligibility dimension
- hard_filter.py: engine composition and batch runner
"""

from core.eligibility.hard_filter import (
    DEFAULT_CONFIG,
    EligibilityOutcome,
    EnabledDimensions,
    FilterStatistics,
    HardFilterConfig,
    apply_hard_filters,
    filter_scholarships,
    filter_scholarships_with_statistics,
    get_filter_statistics,
    match_student,
)
from core.eligibility.models import (
    EligibilityCriteria,
    FailedCriterion,
    FilterDimension,
    HardFilterResult,
    ScholarshipRecord,
    StudentProfile,
    StudentRecord,
)

__all__ = [
    'DEFAULT_CONFIG',
    'EligibilityOutcome',
    'EnabledDimensions',
    'FilterStatistics',
    'HardFilterConfig',
    'apply_hard_filters',
    'filter_scholarships',
    'filter_scholarships_with_statistics',
    'get_filter_statistics',
    'match_student',
    'EligibilityCriteria',
    'FailedCriterion',
    'FilterDimension',
    'HardFilterResult',
    'ScholarshipRecord',
    'StudentProfile',
    'StudentRecord',
]
