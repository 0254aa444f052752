"""
Unit tests for the completion handler.

These run on unsaved schedules; persistence is covered in test_crud.py.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from revision_engine.completion import mark_revision_completed
from revision_engine.enums import CheckpointName, FIXED_CHECKPOINTS, ScheduleStatus
from revision_engine.exceptions import (
    InconsistentStateError,
    InvalidCheckpointError,
    InvalidEffectivenessError,
)
from revision_engine.resolver import is_all_revisions_completed, next_due
from revision_engine.sm2 import MAX_EASE_FACTOR, MIN_EASE_FACTOR

from tests.conftest import D0, days


class TestMarkRevisionCompleted:
    """Tests for recording a single attempt."""

    def test_fixed_checkpoint_is_marked(self, easy_schedule):
        mark_revision_completed(
            easy_schedule, "same_day", 0.85,
            time_taken=600, confidence_before=2, confidence_after=4,
            notes="forgot the edge case", now=D0 + days(0.5)
        )

        cp = easy_schedule.checkpoint(CheckpointName.SAME_DAY)
        assert cp.completed
        assert cp.completed_at == D0 + days(0.5)
        assert cp.effectiveness == 0.85

    def test_history_entry(self, easy_schedule):
        mark_revision_completed(
            easy_schedule, "same_day", 0.85,
            time_taken=600, confidence_before=2, confidence_after=4,
            notes="forgot the edge case", now=D0 + days(0.5)
        )

        assert len(easy_schedule.history) == 1
        event = easy_schedule.history[0]
        assert event.sequence_number == 1
        assert event.checkpoint is CheckpointName.SAME_DAY
        assert event.scheduled_for == D0
        assert event.completed_at == D0 + days(0.5)
        assert event.time_taken == 600
        assert event.confidence_before == 2
        assert event.confidence_after == 4
        assert event.remembered is True
        assert event.notes == "forgot the edge case"
        assert event.effectiveness_score == 0.85

    def test_metrics(self, easy_schedule):
        mark_revision_completed(easy_schedule, "same_day", 0.9, now=D0)
        mark_revision_completed(easy_schedule, "day3", 0.4, remembered=False, now=D0 + days(3))

        assert easy_schedule.total_revisions == 2
        assert easy_schedule.successful_revisions == 1
        assert easy_schedule.average_effectiveness == pytest.approx(0.65)
        assert easy_schedule.forgetting_rate == pytest.approx(0.5)
        assert easy_schedule.success_rate == pytest.approx(50.0)
        assert [e.sequence_number for e in easy_schedule.history] == [1, 2]

    def test_adaptive_completion_leaves_fixed_checkpoints(self, easy_schedule):
        mark_revision_completed(easy_schedule, "adaptive", 0.8, now=D0 + days(1))

        assert not any(cp.completed for cp in easy_schedule.fixed_checkpoints)
        assert easy_schedule.history[0].checkpoint is CheckpointName.ADAPTIVE
        assert easy_schedule.history[0].scheduled_for == D0 + days(1)
        assert easy_schedule.adaptive_checkpoint.completed_at == D0 + days(1)
        assert not easy_schedule.adaptive_checkpoint.completed

    def test_adaptive_history_uses_completion_time(self, easy_schedule):
        easy_schedule.adaptive_checkpoint.scheduled_at = D0 + days(2)

        mark_revision_completed(easy_schedule, "adaptive", 0.8, now=D0 + days(5))

        event = easy_schedule.history[0]
        assert event.scheduled_for == D0 + days(5)
        assert event.completed_at == D0 + days(5)

    def test_aware_completion_time_is_stored_as_naive_utc(self, easy_schedule):
        easy_schedule.current_interval = 10
        easy_schedule.ease_factor = 3.0
        now = datetime(2026, 3, 2, 11, 0, tzinfo=timezone(timedelta(hours=2)))

        mark_revision_completed(easy_schedule, "same_day", 0.95, now=now)

        assert easy_schedule.history[0].completed_at == D0
        assert easy_schedule.next_review_due == D0 + days(30)
        assert easy_schedule.checkpoint(CheckpointName.DAY14).scheduled_at == D0 + days(14)
        assert all(
            cp.scheduled_at.tzinfo is None for cp in easy_schedule.checkpoints if cp.scheduled_at is not None
        )
        assert next_due(easy_schedule, D0 + days(1)).checkpoint is CheckpointName.DAY3

    def test_checkpoint_aliases(self, easy_schedule):
        mark_revision_completed(easy_schedule, "Same-Day", 0.8, now=D0)

        assert easy_schedule.checkpoint(CheckpointName.SAME_DAY).completed

    def test_excellent_recall(self, easy_schedule):
        """Scenario B."""
        mark_revision_completed(easy_schedule, "same_day", 0.95, remembered=True, now=D0)

        assert easy_schedule.ease_factor == 3.0
        assert easy_schedule.current_interval == 3
        assert easy_schedule.next_review_due == D0 + days(3)

    def test_forgotten(self, easy_schedule):
        """Scenario C."""
        easy_schedule.ease_factor = 2.0
        easy_schedule.current_interval = 5
        now = D0 + days(3)

        mark_revision_completed(easy_schedule, "day3", 0.4, remembered=False, now=now)

        assert easy_schedule.ease_factor == pytest.approx(1.6)
        assert easy_schedule.current_interval == 2
        assert easy_schedule.next_review_due == now + days(2)

    def test_manual_reschedule_is_cleared(self, easy_schedule):
        easy_schedule.manually_rescheduled = True
        easy_schedule.rescheduled_to = D0 + days(2)

        mark_revision_completed(easy_schedule, "same_day", 0.8, now=D0)

        assert easy_schedule.manually_rescheduled is False
        assert easy_schedule.rescheduled_to is None


class TestCompletionErrors:
    """Rejected commands leave the schedule untouched."""

    @pytest.mark.parametrize("value", ["day5", "", None, 3])
    def test_unknown_checkpoint(self, easy_schedule, value):
        with pytest.raises(InvalidCheckpointError):
            mark_revision_completed(easy_schedule, value, 0.8, now=D0)
        assert easy_schedule.history == []

    @pytest.mark.parametrize("value", [-0.1, 1.5, float("nan"), "high"])
    def test_effectiveness_out_of_range(self, easy_schedule, value):
        with pytest.raises(InvalidEffectivenessError):
            mark_revision_completed(easy_schedule, "same_day", value, now=D0)
        assert easy_schedule.history == []
        assert easy_schedule.total_revisions == 0

    @pytest.mark.parametrize("value", [0.0, 1.0])
    def test_effectiveness_bounds_are_accepted(self, easy_schedule, value):
        mark_revision_completed(easy_schedule, "same_day", value, now=D0)

        assert easy_schedule.history[0].effectiveness_score == value

    def test_completing_twice(self, easy_schedule):
        mark_revision_completed(easy_schedule, "same_day", 0.8, now=D0)

        with pytest.raises(InconsistentStateError):
            mark_revision_completed(easy_schedule, "same_day", 0.8, now=D0)
        assert len(easy_schedule.history) == 1

    def test_unscheduled_checkpoint(self, easy_schedule):
        with pytest.raises(InconsistentStateError):
            mark_revision_completed(easy_schedule, "day30", 0.8, now=D0)
        assert easy_schedule.history == []

    def test_adaptive_can_be_repeated(self, easy_schedule):
        for i in range(3):
            mark_revision_completed(easy_schedule, "adaptive", 0.8, now=D0 + days(i))

        assert easy_schedule.total_revisions == 3


class TestStatus:
    """completed iff every scheduled fixed checkpoint is done."""

    def test_all_fixed_checkpoints_done(self, hard_schedule):
        """Scenario E: after the last fixed checkpoint only the adaptive track remains."""
        s = hard_schedule
        s.current_interval = 10
        s.ease_factor = 3.0
        mark_revision_completed(s, "same_day", 0.95, now=D0)
        assert s.checkpoint(CheckpointName.DAY30).scheduled

        for name in (CheckpointName.DAY3, CheckpointName.DAY7, CheckpointName.DAY14):
            mark_revision_completed(s, name, 0.95, now=D0 + days(name.offset_days))
            assert s.status == ScheduleStatus.ACTIVE

        mark_revision_completed(s, "day30", 0.95, now=D0 + days(30))

        assert s.status == ScheduleStatus.COMPLETED
        assert is_all_revisions_completed(s)
        due = next_due(s, D0 + days(31))
        assert due.checkpoint is CheckpointName.ADAPTIVE
        assert due.scheduled_at == s.next_review_due

    def test_completed_schedule_reopens_when_day14_is_enabled(self, easy_schedule):
        s = easy_schedule
        for i, name in enumerate((CheckpointName.SAME_DAY, CheckpointName.DAY3, CheckpointName.DAY7)):
            mark_revision_completed(s, name, 0.6, now=D0 + days(i))
        assert s.status == ScheduleStatus.COMPLETED

        now = D0 + days(7)
        for _ in range(10):
            if s.checkpoint(CheckpointName.DAY14).scheduled:
                break
            now += days(s.current_interval)
            mark_revision_completed(s, "adaptive", 0.95, now=now)

        assert s.checkpoint(CheckpointName.DAY14).scheduled
        assert s.status == ScheduleStatus.ACTIVE
        assert not is_all_revisions_completed(s)

    def test_paused_stays_paused(self, easy_schedule):
        easy_schedule.status = ScheduleStatus.PAUSED

        mark_revision_completed(easy_schedule, "same_day", 0.8, now=D0)

        assert easy_schedule.status == ScheduleStatus.PAUSED

    def test_completed_wins_over_paused(self, easy_schedule):
        mark_revision_completed(easy_schedule, "same_day", 0.6, now=D0)
        mark_revision_completed(easy_schedule, "day3", 0.6, now=D0 + days(3))
        easy_schedule.status = ScheduleStatus.PAUSED

        mark_revision_completed(easy_schedule, "day7", 0.6, now=D0 + days(7))

        assert easy_schedule.status == ScheduleStatus.COMPLETED

    @pytest.mark.parametrize("seed", range(5))
    def test_invariants_hold_for_random_histories(self, scheduler, seed):
        rng = random.Random(seed)
        s = scheduler.build_schedule("alice", f"p{seed}", rng.choice(["easy", "medium", "hard"]), D0)
        now = D0

        for step in range(40):
            pending = [cp.name for cp in s.fixed_checkpoints if cp.is_pending]
            name = rng.choice(pending + [CheckpointName.ADAPTIVE])
            now += days(rng.randint(0, 5))
            mark_revision_completed(
                s, name,
                rng.choice([0.0, 0.3, 0.49, 0.5, 0.65, 0.7, 0.85, 0.9, 1.0]),
                remembered=rng.random() < 0.7,
                now=now
            )

            assert MIN_EASE_FACTOR <= s.ease_factor <= MAX_EASE_FACTOR
            assert s.current_interval >= 1
            assert len(s.history) == s.total_revisions == step + 1
            assert (s.status == ScheduleStatus.COMPLETED) == is_all_revisions_completed(s)
            for cp in s.fixed_checkpoints:
                if cp.completed:
                    assert cp.scheduled
                    assert cp.completed_at is not None
            assert sum(1 for e in s.history if e.checkpoint in FIXED_CHECKPOINTS) == \
                sum(1 for cp in s.fixed_checkpoints if cp.completed)
