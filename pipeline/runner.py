"""Daily matching pipeline runner.

One run selects the student and scholarship populations, hard-filters every
student against the scholarships, scores each eligible pair through the
scoring collaborator, upserts the match, and notifies students about matches
that newly reached a qualifying tier.

Every unit of work is a named step of a StepRunner:

    fetch-students, fetch-scholarships,
    process-batch-1, notify-batch-1, process-batch-2, notify-batch-2, ...

A retried step starts over; completed steps are never executed twice. Match
upserts are idempotent so a retried process-batch step is safe.
"""

import dataclasses
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from core.app_context import AppContext
from core.eligibility import HardFilterConfig, ScholarshipRecord, StudentRecord, filter_scholarships
from core.scorer.models import PriorityTier
from database.uow import matching_uow
from notification.service import PendingNotification
from pipeline.steps import StepRunner

logger = logging.getLogger(__name__)


@dataclass
class MatchingRunSummary:
    """Result of one matching run."""
    success: bool
    students_processed: int = 0
    scholarships_evaluated: int = 0
    eligible_pairs: int = 0
    matches_created: int = 0
    matches_updated: int = 0
    pair_failures: int = 0
    notifications_sent: int = 0
    notification_failures: int = 0
    notifications_skipped: int = 0
    notifications_suppressed: int = 0
    batches_completed: int = 0
    batches_total: int = 0
    cancelled: bool = False
    error: Optional[str] = None
    execution_time: float = 0.0
    steps: List[Dict[str, Any]] = field(default_factory=list)
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data['completed_at'] = self.completed_at.isoformat() if self.completed_at else None
        data['execution_time'] = round(self.execution_time, 3)
        return data


@dataclass
class StudentResult:
    student_id: str
    eligible_pairs: int = 0
    matches_created: int = 0
    matches_updated: int = 0
    pair_failures: int = 0
    pending: List[PendingNotification] = field(default_factory=list)


@dataclass
class BatchResult:
    students: List[StudentResult] = field(default_factory=list)

    @property
    def pending(self) -> List[PendingNotification]:
        return [p for s in self.students for p in s.pending]


@dataclass
class NotifyResult:
    sent: int = 0
    failed: int = 0
    # preferences opted the student out
    skipped: int = 0
    # every channel had already delivered this round
    suppressed: int = 0


def partition(items: Sequence, size: int) -> List[Sequence]:
    """Split ``items`` into consecutive chunks of at most ``size``."""
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]


def process_student(
    ctx: AppContext,
    student: StudentRecord,
    scholarships: Sequence[ScholarshipRecord],
    filter_config: HardFilterConfig,
    calculated_at: datetime,
    notify_tiers: Sequence[PriorityTier],
) -> StudentResult:
    """Filter, score and persist every eligible pair for one student.

    A failing pair is logged and counted; the remaining pairs still run.
    """
    result = StudentResult(student_id=student.id)
    eligible = filter_scholarships(student, scholarships, filter_config)
    result.eligible_pairs = len(eligible)

    for scholarship in eligible:
        try:
            score = ctx.scorer.score(student, scholarship)
            notify_eligible = score.priority_tier in notify_tiers

            with matching_uow() as repo:
                outcome = repo.matches.upsert_match(
                    student_id=student.id,
                    scholarship_id=scholarship.id,
                    score=score,
                    calculated_at=calculated_at,
                    notify_eligible=notify_eligible,
                )
        except Exception:
            logger.exception(
                "Failed matching student_id=%s scholarship_id=%s", student.id, scholarship.id
            )
            result.pair_failures += 1
            continue

        if outcome.created:
            result.matches_created += 1
        else:
            result.matches_updated += 1

        if notify_eligible and not outcome.notified:
            result.pending.append(PendingNotification(
                student_id=student.id,
                scholarship=scholarship,
                match_id=outcome.match_id,
                match_score=score.overall_match_score,
                priority_tier=score.priority_tier,
                student_email=student.email,
                student_first_name=student.first_name,
                notification_round=outcome.notification_round,
            ))

    return result


def _process_batch(
    ctx: AppContext,
    students: Sequence[StudentRecord],
    scholarships: Sequence[ScholarshipRecord],
    filter_config: HardFilterConfig,
    calculated_at: datetime,
    stop_event: threading.Event,
) -> BatchResult:
    matching_config = ctx.config.matching
    notify_tiers = list(matching_config.notify_tiers)

    def run_one(student: StudentRecord) -> Optional[StudentResult]:
        if stop_event.is_set():
            return None
        return process_student(ctx, student, scholarships, filter_config, calculated_at, notify_tiers)

    if matching_config.max_workers > 1:
        with ThreadPoolExecutor(max_workers=matching_config.max_workers) as executor:
            results = list(executor.map(run_one, students))
    else:
        results = [run_one(student) for student in students]

    return BatchResult(students=[r for r in results if r is not None])


def _notify_batch(
    ctx: AppContext,
    pending: Sequence[PendingNotification],
    stop_event: threading.Event,
) -> NotifyResult:
    """Dispatch each pending notification once; failures stay un-notified for the next run."""
    result = NotifyResult()

    for item in pending:
        if stop_event.is_set():
            break

        with matching_uow() as repo:
            if repo.matches.is_notified(item.match_id):
                logger.debug(f"Match {item.match_id} already notified")
                continue

        try:
            channels = ctx.notification_service.notify_new_match(item)
            with matching_uow() as repo:
                repo.matches.mark_notified(item.match_id)
        except Exception:
            logger.exception(
                "Failed notifying student_id=%s scholarship_id=%s",
                item.student_id, item.scholarship.id
            )
            result.failed += 1
            continue

        if any(notification_id is not None for notification_id in channels.values()):
            result.sent += 1
        elif channels:
            result.suppressed += 1
        else:
            result.skipped += 1

    return result


def run_daily_matching(
    ctx: AppContext,
    stop_event: Optional[threading.Event] = None,
    now: Optional[datetime] = None,
    step_runner: Optional[StepRunner] = None,
) -> MatchingRunSummary:
    """Run one matching pass over the current populations.

    Args:
        ctx: Application context with config, scorer and notification service
        stop_event: Optional threading event to signal early termination
        now: Run clock; stamps calculated_at and bounds the scholarship window
        step_runner: Reuse a runner to resume a run without repeating completed steps

    Returns:
        MatchingRunSummary with counts and per-step records
    """
    if stop_event is None:
        stop_event = threading.Event()
    now = now or datetime.now(timezone.utc)

    matching_config = ctx.config.matching
    if step_runner is None:
        step_runner = StepRunner(
            max_attempts=matching_config.step_retry.max_attempts,
            wait_seconds=matching_config.step_retry.wait_seconds,
        )

    pipeline_start = time.time()
    summary = MatchingRunSummary(success=False)

    logger.info("=" * 60)
    logger.info("STARTING DAILY MATCHING")
    logger.info("=" * 60)

    if not matching_config.enabled:
        logger.info("=== DAILY MATCHING: Skipped (disabled in config) ===")
        summary.success = True
        summary.error = "Matching disabled in config"
        summary.completed_at = datetime.now(timezone.utc)
        return summary

    try:
        _run(ctx, summary, step_runner, stop_event, now)
    except Exception as e:
        logger.exception("Error in daily matching")
        summary.success = False
        summary.error = str(e)

    summary.steps = step_runner.summary()
    summary.execution_time = time.time() - pipeline_start
    summary.completed_at = datetime.now(timezone.utc)

    logger.info("=" * 60)
    logger.info(f"DAILY MATCHING FINISHED in {summary.execution_time:.2f}s")
    logger.info(
        f"Students: {summary.students_processed}, scholarships: {summary.scholarships_evaluated}, "
        f"eligible pairs: {summary.eligible_pairs}, created: {summary.matches_created}, "
        f"updated: {summary.matches_updated}, pair failures: {summary.pair_failures}, "
        f"notified: {summary.notifications_sent}, notification failures: {summary.notification_failures}, "
        f"suppressed: {summary.notifications_suppressed}"
    )
    logger.info("=" * 60)
    return summary


def _run(
    ctx: AppContext,
    summary: MatchingRunSummary,
    step_runner: StepRunner,
    stop_event: threading.Event,
    now: datetime,
) -> None:
    matching_config = ctx.config.matching
    filter_config = dataclasses.replace(
        matching_config.hard_filter.to_filter_config(),
        reference_date=now.date(),
    )
    since = now - timedelta(hours=matching_config.lookback_hours)

    logger.info("=== MATCHING STEP 1: Selecting Population ===")

    def fetch_students() -> List[StudentRecord]:
        with matching_uow() as repo:
            return repo.students.get_students_for_matching(matching_config.min_profile_completeness)

    def fetch_scholarships() -> List[ScholarshipRecord]:
        with matching_uow() as repo:
            return repo.scholarships.get_scholarships_for_matching(now=now, since=since)

    students = step_runner.run("fetch-students", fetch_students)
    scholarships = step_runner.run("fetch-scholarships", fetch_scholarships)
    logger.info(f"Selected {len(students)} students and {len(scholarships)} scholarships")

    if not scholarships:
        logger.info("No new or updated scholarships since last run, nothing to match")
        summary.success = True
        return

    summary.scholarships_evaluated = len(scholarships)
    batches = partition(students, matching_config.batch_size)
    summary.batches_total = len(batches)

    for number, batch in enumerate(batches, 1):
        if stop_event.is_set():
            summary.cancelled = True
            summary.error = "Interrupted by system"
            logger.warning(f"Stopping before batch {number}/{len(batches)}")
            return

        logger.info(f"=== MATCHING STEP 2: Processing batch {number}/{len(batches)} ({len(batch)} students) ===")
        batch_result = step_runner.run(
            f"process-batch-{number}",
            lambda batch=batch: _process_batch(ctx, batch, scholarships, filter_config, now, stop_event),
        )
        for student_result in batch_result.students:
            summary.students_processed += 1
            summary.eligible_pairs += student_result.eligible_pairs
            summary.matches_created += student_result.matches_created
            summary.matches_updated += student_result.matches_updated
            summary.pair_failures += student_result.pair_failures

        if ctx.notification_service is not None and batch_result.pending:
            logger.info(f"=== MATCHING STEP 3: Notifying batch {number} ({len(batch_result.pending)} pending) ===")
            notify_result = step_runner.run(
                f"notify-batch-{number}",
                lambda pending=batch_result.pending: _notify_batch(ctx, pending, stop_event),
            )
            summary.notifications_sent += notify_result.sent
            summary.notification_failures += notify_result.failed
            summary.notifications_skipped += notify_result.skipped
            summary.notifications_suppressed += notify_result.suppressed

        if stop_event.is_set():
            summary.cancelled = True
            summary.error = "Interrupted by system"
            logger.warning(f"Stopped during batch {number}/{len(batches)}")
            # the batch may be partial; a resumed run processes it again
            step_runner.forget(f"process-batch-{number}")
            step_runner.forget(f"notify-batch-{number}")
            return

        summary.batches_completed += 1

    summary.success = True
