"""Financial dimension: need, EFC ceiling, Pell Grant eligibility."""

import re
from datetime import date
from typing import List, Optional

from core.eligibility.filters.checks import check_flag, check_max
from core.eligibility.models import (
    FailedCriterion,
    FilterDimension,
    FinancialCriteria,
    FinancialNeed,
    HardFilterResult,
    StudentProfile,
    financial_need_priority,
)

DIMENSION = FilterDimension.FINANCIAL

# Upper bound used for open-ended ranges such as "10000+".
UNBOUNDED_EFC = 999999

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


def _leading_int(text: str) -> Optional[int]:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def parse_efc_max(efc_range: Optional[str]) -> Optional[int]:
    """Upper bound of an EFC range string.

    "5001-10000" -> 10000, "10000+" -> UNBOUNDED_EFC, "7500" -> 7500.
    Returns None when nothing usable can be read.
    """
    if not efc_range:
        return None
    if '-' in efc_range:
        upper = efc_range.split('-')[1]
        return _leading_int(upper) if upper else None
    if '+' in efc_range:
        return UNBOUNDED_EFC
    # A bare number is taken as the exact EFC.
    return _leading_int(efc_range)


def _need_value(need: Optional[FinancialNeed]) -> Optional[str]:
    return need.value if need is not None else None


def filter_financial(
    profile: StudentProfile,
    criteria: Optional[FinancialCriteria] = None,
    today: Optional[date] = None,
) -> HardFilterResult:
    if criteria is None:
        return HardFilterResult()

    failed: List[FailedCriterion] = []

    # LOW need does not satisfy a need-based requirement
    check_flag(
        failed, DIMENSION, 'requiresFinancialNeed', criteria.requires_financial_need,
        present=profile.financial_need not in (None, FinancialNeed.LOW),
        actual=_need_value(profile.financial_need),
    )

    check_max(failed, DIMENSION, 'maxEFC', criteria.max_efc, parse_efc_max(profile.efc_range))

    check_flag(
        failed, DIMENSION, 'pellGrantRequired', criteria.pell_grant_required,
        present=profile.pell_grant_eligible is True,
        actual=profile.pell_grant_eligible,
    )

    if criteria.financial_need_level is not None:
        required = financial_need_priority(criteria.financial_need_level)
        if financial_need_priority(profile.financial_need) < required:
            failed.append(FailedCriterion(
                DIMENSION,
                'financialNeedLevel',
                criteria.financial_need_level.value,
                _need_value(profile.financial_need),
            ))

    return HardFilterResult(failed_criteria=failed)
