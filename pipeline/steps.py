"""Retryable, memoized pipeline steps.

A run is a sequence of named steps. Each step is retried on failure and its
result is kept by name, so running the same step again (after a later step
failed, or when a run is resumed with the same StepRunner) returns the stored
result instead of repeating its side effects.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from tenacity import Retrying, before_sleep_log, stop_after_attempt, wait_fixed

logger = logging.getLogger(__name__)


class StepStatus:
    COMPLETED = "completed"
    CACHED = "cached"
    FAILED = "failed"


@dataclass
class StepRecord:
    name: str
    status: str
    attempts: int = 0
    duration: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status,
            'attempts': self.attempts,
            'duration': round(self.duration, 3),
            'error': self.error,
        }


class StepRunner:
    """Runs named steps with tenacity retry and per-name memoization."""

    def __init__(self, max_attempts: int = 3, wait_seconds: float = 2.0):
        self.max_attempts = max(1, max_attempts)
        self.wait_seconds = wait_seconds
        self.completed: Dict[str, Any] = {}
        self.records: List[StepRecord] = []

    def is_completed(self, name: str) -> bool:
        return name in self.completed

    def forget(self, name: str) -> None:
        """Drop a stored result so the step runs again."""
        self.completed.pop(name, None)

    def run(self, name: str, fn: Callable[[], Any]) -> Any:
        """Run ``fn`` as step ``name``; re-raises the last error once retries are spent."""
        if name in self.completed:
            logger.info(f"Step {name}: already completed, reusing result")
            self.records.append(StepRecord(name=name, status=StepStatus.CACHED))
            return self.completed[name]

        record = StepRecord(name=name, status=StepStatus.FAILED)
        self.records.append(record)
        start = time.time()

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.wait_seconds),
            reraise=True,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            for attempt in retrying:
                with attempt:
                    record.attempts = attempt.retry_state.attempt_number
                    result = fn()
        except Exception as e:
            record.duration = time.time() - start
            record.error = str(e)
            logger.error(f"Step {name} failed after {record.attempts} attempt(s): {e}")
            raise

        record.duration = time.time() - start
        record.status = StepStatus.COMPLETED
        self.completed[name] = result
        logger.info(f"Step {name} completed in {record.duration:.2f}s (attempts: {record.attempts})")
        return result

    def summary(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.records]
