"""Constraint checks shared by the dimension filters.

Each helper appends to ``failed`` instead of returning a result so a filter
can run all of its constraints and collect every violation.
"""

from typing import Any, List, Optional, Sequence

from core.eligibility.models import FailedCriterion, FilterDimension

# Criteria value meaning "no restriction" for single-valued requirements.
NO_RESTRICTION = "Any"


def check_min(
    failed: List[FailedCriterion],
    dimension: FilterDimension,
    criterion: str,
    required: Optional[float],
    actual: Optional[float],
) -> None:
    if required is None:
        return
    if actual is None:
        failed.append(FailedCriterion(dimension, criterion, required, None))
    elif actual < required:
        failed.append(FailedCriterion(dimension, criterion, required, actual))


def check_max(
    failed: List[FailedCriterion],
    dimension: FilterDimension,
    criterion: str,
    required: Optional[float],
    actual: Optional[float],
) -> None:
    if required is None:
        return
    if actual is None:
        failed.append(FailedCriterion(dimension, criterion, required, None))
    elif actual > required:
        failed.append(FailedCriterion(dimension, criterion, required, actual))


def check_one_of(
    failed: List[FailedCriterion],
    dimension: FilterDimension,
    criterion: str,
    allowed: Optional[Sequence[str]],
    actual: Optional[str],
) -> None:
    """Inclusion list on a single-valued field; an empty list restricts nothing."""
    if not allowed:
        return
    if not actual:
        failed.append(FailedCriterion(dimension, criterion, list(allowed), None))
    elif actual not in allowed:
        failed.append(FailedCriterion(dimension, criterion, list(allowed), actual))


def check_exact(
    failed: List[FailedCriterion],
    dimension: FilterDimension,
    criterion: str,
    required: Optional[str],
    actual: Optional[str],
) -> None:
    """Single required value, where ``"Any"`` lifts the restriction."""
    if not required or required == NO_RESTRICTION:
        return
    if not actual:
        failed.append(FailedCriterion(dimension, criterion, required, None))
    elif actual != required:
        failed.append(FailedCriterion(dimension, criterion, required, actual))


def check_flag(
    failed: List[FailedCriterion],
    dimension: FilterDimension,
    criterion: str,
    required: Optional[bool],
    present: bool,
    actual: Any,
) -> None:
    """Boolean requirement; ``actual`` is recorded as observed when ``present`` is false."""
    if required is not True:
        return
    if not present:
        failed.append(FailedCriterion(dimension, criterion, True, actual))
