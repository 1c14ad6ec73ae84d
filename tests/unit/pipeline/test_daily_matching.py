#!/usr/bin/env python3
"""
End-to-end tests for run_daily_matching() on a SQLite schema.

The scorer is an in-process FixedScorer and the notification service a Mock,
so every assertion is about the orchestration: population selection, hard
filtering, idempotent upserts, notify-once semantics, batching, failure
isolation and cancellation.
"""

import threading
from datetime import timedelta
from unittest.mock import Mock, patch

import pytest

from core.app_context import AppContext
from core.config_loader import AppConfig
from core.scorer.models import PriorityTier
from database.repositories.student import StudentRepository
from database.uow import matching_uow
from pipeline import StepRunner, run_daily_matching
from pipeline.runner import StudentResult, partition
from tests.factories import RUN_NOW, FixedScorer, add_scholarship, add_student, make_score

pytestmark = pytest.mark.db


def _context(scorer=None, notifier=None, **matching) -> AppContext:
    matching.setdefault('step_retry', {'max_attempts': 1, 'wait_seconds': 0})
    config = AppConfig(database={'url': 'sqlite://'}, matching=matching)
    return AppContext(config=config, scorer=scorer or FixedScorer(), notification_service=notifier)


def _notifier():
    notifier = Mock()
    notifier.notify_new_match.return_value = {'in_app': 'n-1'}
    return notifier


def _matches():
    with matching_uow() as repo:
        rows = []
        for student_id in ("stu_a", "stu_b", "stu_c"):
            for match in repo.matches.get_matches_for_student(student_id):
                rows.append((match.student_id, match.scholarship_id, match.priority_tier, match.notified))
        return sorted(rows)


def _notified_pairs(notifier):
    return sorted(
        (call.args[0].student_id, call.args[0].scholarship.id)
        for call in notifier.notify_new_match.call_args_list
    )


@pytest.fixture
def population(db_session):
    """Two eligible-ish students, one incomplete profile, three open scholarships."""
    add_student(db_session, "stu_a", gpa=3.9, state="CA")
    add_student(db_session, "stu_b", gpa=3.1, state="TX")
    add_student(db_session, "stu_c", completion=20.0, gpa=4.0)
    add_scholarship(db_session, "sch_open")
    add_scholarship(db_session, "sch_gpa", criteria={"academic": {"minGPA": 3.5}})
    add_scholarship(db_session, "sch_ca", criteria={"demographic": {"requiredState": ["CA"]}})
    db_session.commit()
    return db_session


class TestDailyMatching:

    def test_matches_eligible_pairs_and_notifies(self, population):
        notifier = _notifier()
        summary = run_daily_matching(_context(notifier=notifier), now=RUN_NOW)

        assert summary.success is True
        assert summary.students_processed == 2
        assert summary.scholarships_evaluated == 3
        assert summary.eligible_pairs == 4
        assert summary.matches_created == 4
        assert summary.notifications_sent == 4
        assert summary.batches_completed == summary.batches_total == 1
        assert _matches() == [
            ("stu_a", "sch_ca", "MUST_APPLY", True),
            ("stu_a", "sch_gpa", "MUST_APPLY", True),
            ("stu_a", "sch_open", "MUST_APPLY", True),
            ("stu_b", "sch_open", "MUST_APPLY", True),
        ]
        assert [s['name'] for s in summary.steps] == [
            "fetch-students", "fetch-scholarships", "process-batch-1", "notify-batch-1",
        ]

    def test_pending_notification_carries_student_and_score(self, population):
        notifier = _notifier()
        scorer = FixedScorer(scores={"sch_ca": make_score(82.0, PriorityTier.SHOULD_APPLY)})
        run_daily_matching(_context(scorer=scorer, notifier=notifier), now=RUN_NOW)

        pending = {
            (c.args[0].student_id, c.args[0].scholarship.id): c.args[0]
            for c in notifier.notify_new_match.call_args_list
        }
        item = pending[("stu_a", "sch_ca")]
        assert item.match_score == 82.0
        assert item.priority_tier == PriorityTier.SHOULD_APPLY
        assert item.student_email == "stu_a@example.com"
        assert item.student_first_name == "Stu_A"

    def test_non_qualifying_tiers_are_stored_but_not_notified(self, population):
        notifier = _notifier()
        scorer = FixedScorer(default=make_score(55.0, PriorityTier.HIGH_VALUE_REACH))
        summary = run_daily_matching(_context(scorer=scorer, notifier=notifier), now=RUN_NOW)

        assert summary.matches_created == 4
        assert summary.notifications_sent == 0
        notifier.notify_new_match.assert_not_called()
        assert all(tier == "HIGH_VALUE_REACH" and not notified for _, _, tier, notified in _matches())

    def test_no_recent_scholarships_short_circuits(self, db_session):
        add_student(db_session, "stu_a")
        add_scholarship(db_session, "sch_stale", updated_at=RUN_NOW - timedelta(days=3))
        add_scholarship(db_session, "sch_closed", deadline=RUN_NOW - timedelta(hours=1))
        add_scholarship(db_session, "sch_unverified", verified=False)
        db_session.commit()

        scorer = FixedScorer()
        summary = run_daily_matching(_context(scorer=scorer), now=RUN_NOW)

        assert summary.success is True
        assert summary.scholarships_evaluated == 0
        assert summary.students_processed == 0
        assert scorer.calls == []
        assert _matches() == []

    def test_disabled_matching_does_nothing(self, population):
        scorer = FixedScorer()
        summary = run_daily_matching(_context(scorer=scorer, enabled=False), now=RUN_NOW)

        assert summary.success is True
        assert summary.error == "Matching disabled in config"
        assert scorer.calls == []

    def test_summary_is_serializable(self, population):
        data = run_daily_matching(_context(), now=RUN_NOW).to_dict()
        assert data['success'] is True
        assert isinstance(data['completed_at'], str)
        assert data['steps'][0]['status'] == "completed"


class TestIdempotence:

    def test_rerun_updates_without_duplicates_or_renotifying(self, population):
        notifier = _notifier()
        ctx = _context(notifier=notifier)

        first = run_daily_matching(ctx, now=RUN_NOW)
        second = run_daily_matching(ctx, now=RUN_NOW + timedelta(minutes=5))

        assert first.matches_created == 4
        assert second.matches_created == 0
        assert second.matches_updated == 4
        assert second.notifications_sent == 0
        assert notifier.notify_new_match.call_count == 4
        with matching_uow() as repo:
            assert repo.matches.count_matches() == 4

    def test_rescore_overwrites_scores(self, population):
        ctx = _context()
        run_daily_matching(ctx, now=RUN_NOW)

        ctx.scorer = FixedScorer(default=make_score(77.0, PriorityTier.SHOULD_APPLY, academic_score=61.0))
        run_daily_matching(ctx, now=RUN_NOW + timedelta(hours=1))

        with matching_uow() as repo:
            match = repo.matches.get_match("stu_b", "sch_open")
            assert match.overall_match_score == 77.0
            assert match.academic_score == 61.0
            assert match.priority_tier == "SHOULD_APPLY"

    def test_tier_drop_and_return_notifies_again(self, population):
        notifier = _notifier()
        ctx = _context(notifier=notifier)

        run_daily_matching(ctx, now=RUN_NOW)
        assert notifier.notify_new_match.call_count == 4

        ctx.scorer = FixedScorer(default=make_score(30.0, PriorityTier.IF_TIME_PERMITS))
        run_daily_matching(ctx, now=RUN_NOW + timedelta(hours=1))
        assert notifier.notify_new_match.call_count == 4
        assert not any(notified for *_, notified in _matches())

        ctx.scorer = FixedScorer()
        summary = run_daily_matching(ctx, now=RUN_NOW + timedelta(hours=2))
        assert summary.notifications_sent == 4
        assert notifier.notify_new_match.call_count == 8
        renotified = notifier.notify_new_match.call_args_list[4:]
        assert {call.args[0].notification_round for call in renotified} == {1}

    @pytest.mark.parametrize("batch_size", [1, 2, 100])
    def test_results_independent_of_batch_size(self, population, batch_size):
        notifier = _notifier()
        summary = run_daily_matching(_context(notifier=notifier, batch_size=batch_size), now=RUN_NOW)

        assert summary.batches_total == len(partition(["stu_a", "stu_b"], batch_size))
        assert summary.matches_created == 4
        assert _notified_pairs(notifier) == [
            ("stu_a", "sch_ca"), ("stu_a", "sch_gpa"), ("stu_a", "sch_open"), ("stu_b", "sch_open"),
        ]


class TestFailureIsolation:

    def test_scoring_failure_skips_only_that_pair(self, population):
        notifier = _notifier()
        scorer = FixedScorer(failing=["sch_gpa"])
        summary = run_daily_matching(_context(scorer=scorer, notifier=notifier), now=RUN_NOW)

        assert summary.success is True
        assert summary.pair_failures == 1
        assert summary.matches_created == 3
        assert ("stu_a", "sch_gpa") not in _notified_pairs(notifier)
        assert ("stu_a", "sch_ca") in _notified_pairs(notifier)

    def test_failed_notification_is_retried_next_run(self, population):
        notifier = _notifier()
        notifier.notify_new_match.side_effect = [
            RuntimeError("smtp down"), {'in_app': 'n'}, {'in_app': 'n'}, {'in_app': 'n'},
        ]
        ctx = _context(notifier=notifier)

        first = run_daily_matching(ctx, now=RUN_NOW)
        assert first.success is True
        assert first.notification_failures == 1
        assert first.notifications_sent == 3
        assert sum(1 for *_, notified in _matches() if not notified) == 1

        notifier.notify_new_match.side_effect = None
        notifier.notify_new_match.return_value = {'in_app': 'n'}
        second = run_daily_matching(ctx, now=RUN_NOW + timedelta(minutes=10))

        assert second.notifications_sent == 1
        assert all(notified for *_, notified in _matches())

    def test_preference_skip_counts_as_skipped_and_marks_notified(self, population):
        notifier = _notifier()
        notifier.notify_new_match.return_value = {}
        summary = run_daily_matching(_context(notifier=notifier), now=RUN_NOW)

        assert summary.notifications_skipped == 4
        assert summary.notifications_sent == 0
        assert all(notified for *_, notified in _matches())

    def test_population_query_failure_fails_run(self, population):
        with patch.object(
            StudentRepository, 'get_students_for_matching',
            side_effect=RuntimeError("connection lost"),
        ):
            summary = run_daily_matching(_context(), now=RUN_NOW)

        assert summary.success is False
        assert summary.error == "connection lost"
        assert summary.steps[0]['status'] == "failed"

    def test_population_query_retried(self, population):
        real = StudentRepository.get_students_for_matching
        calls = []

        def flaky(self, min_completeness=50.0):
            calls.append(min_completeness)
            if len(calls) == 1:
                raise RuntimeError("transient")
            return real(self, min_completeness)

        ctx = _context(step_retry={'max_attempts': 2, 'wait_seconds': 0})
        with patch.object(StudentRepository, 'get_students_for_matching', flaky):
            summary = run_daily_matching(ctx, now=RUN_NOW)

        assert summary.success is True
        assert len(calls) == 2
        assert summary.steps[0]['attempts'] == 2


class TestCancellation:

    def test_stop_before_first_batch(self, population):
        stop = threading.Event()
        stop.set()
        scorer = FixedScorer()

        summary = run_daily_matching(_context(scorer=scorer), stop_event=stop, now=RUN_NOW)

        assert summary.success is False
        assert summary.cancelled is True
        assert summary.error == "Interrupted by system"
        assert scorer.calls == []
        assert _matches() == []

    def test_stop_mid_run_then_resume(self, population):
        stop = threading.Event()
        notifier = _notifier()

        def notify_then_stop(pending):
            stop.set()
            return {'in_app': 'n'}

        notifier.notify_new_match.side_effect = notify_then_stop
        ctx = _context(notifier=notifier, batch_size=1)
        steps = StepRunner(max_attempts=1, wait_seconds=0)

        first = run_daily_matching(ctx, stop_event=stop, now=RUN_NOW, step_runner=steps)
        assert first.cancelled is True
        assert first.batches_completed == 0
        assert not steps.is_completed("process-batch-1")
        assert steps.is_completed("fetch-students")

        stop.clear()
        notifier.notify_new_match.side_effect = None
        second = run_daily_matching(ctx, stop_event=stop, now=RUN_NOW, step_runner=steps)

        assert second.success is True
        assert second.batches_completed == 2
        # stu_a's first match was notified before the stop; nothing is sent twice
        assert notifier.notify_new_match.call_count == 4
        assert len(set(_notified_pairs(notifier))) == 4
        assert all(notified for *_, notified in _matches())


class TestConcurrentBatch:

    def test_parallel_workers_process_every_student(self, population):
        processed = []

        def fake_process(ctx, student, scholarships, filter_config, calculated_at, notify_tiers):
            processed.append(student.id)
            return StudentResult(student_id=student.id, eligible_pairs=len(scholarships))

        with patch('pipeline.runner.process_student', side_effect=fake_process):
            summary = run_daily_matching(_context(max_workers=4), now=RUN_NOW)

        assert sorted(processed) == ["stu_a", "stu_b"]
        assert summary.students_processed == 2
        assert summary.eligible_pairs == 6
