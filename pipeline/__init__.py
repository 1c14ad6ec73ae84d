"""Pipeline execution modules for the daily scholarship matching run."""

from .runner import run_daily_matching, MatchingRunSummary
from .steps import StepRunner, StepRecord

__all__ = ['run_daily_matching', 'MatchingRunSummary', 'StepRunner', 'StepRecord']
