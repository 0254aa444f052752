"""
Unit tests for queue ordering.
"""

from revision_engine.enums import CheckpointName
from revision_engine.prioritizer import effective_next_due, rank
from revision_engine.resolver import next_due

from tests.conftest import D0, days

NOW = D0 + days(10)


def _at(scheduler, item_id, created, priority=0):
    schedule = scheduler.build_schedule("alice", item_id, "easy", created)
    schedule.queue_priority = priority
    return schedule


def _move(schedule, name, when):
    schedule.checkpoint(name).scheduled_at = when
    schedule.manually_rescheduled = True
    schedule.rescheduled_to = when


class TestRank:
    """Tests for the retrieval order contract."""

    def _schedules(self, scheduler):
        return [
            _at(scheduler, "upcoming", NOW + days(1)),
            _at(scheduler, "late-low", NOW - days(0.5)),
            _at(scheduler, "late-high", NOW - days(0.5), priority=5),
            _at(scheduler, "later-low", NOW - days(20 / 24)),
            _at(scheduler, "most-overdue", NOW - days(3)),
        ]

    def test_order(self, scheduler):
        entries = rank(self._schedules(scheduler), NOW)

        assert [e.item_id for e in entries] == [
            "most-overdue",  # 3 days overdue
            "late-high",  # 1 day, priority 5
            "later-low",  # 1 day, due earlier
            "late-low",
            "upcoming",
        ]
        assert entries[0].due.days_overdue == 3

    def test_overdue_only(self, scheduler):
        entries = rank(self._schedules(scheduler), NOW, overdue_only=True)

        assert "upcoming" not in [e.item_id for e in entries]
        assert all(e.due.is_overdue for e in entries)

    def test_manual_reschedule_moves_entry_up(self, scheduler):
        first = _at(scheduler, "first", NOW + days(1))
        second = _at(scheduler, "second", NOW + days(2))
        _move(second, CheckpointName.SAME_DAY, NOW + days(0.5))

        entries = rank([first, second], NOW)

        assert [e.item_id for e in entries] == ["second", "first"]
        assert entries[0].effective_next_due == NOW + days(0.5)

    def test_moving_a_later_checkpoint_keeps_the_current_date(self, scheduler):
        moved = _at(scheduler, "moved", D0)
        other = _at(scheduler, "other", D0 + days(1))
        for schedule in (moved, other):
            schedule.checkpoint(CheckpointName.SAME_DAY).completed = True
            schedule.adaptive_checkpoint.scheduled_at = D0 + days(40)
        _move(moved, CheckpointName.DAY7, D0 + days(60))

        entries = rank([moved, other], D0 + days(1))

        assert [e.item_id for e in entries] == ["moved", "other"]
        assert entries[0].due.checkpoint is CheckpointName.DAY3
        assert entries[0].effective_next_due == D0 + days(3)

    def test_schedules_with_nothing_left_are_skipped(self, scheduler):
        done = _at(scheduler, "done", D0)
        for cp in done.fixed_checkpoints:
            cp.completed = cp.scheduled
        done.adaptive_checkpoint.scheduled_at = None

        assert rank([done], NOW) == []

    def test_entry_fields(self, scheduler):
        schedule = _at(scheduler, "queued", NOW - days(1), priority=2)
        schedule.in_queue = True
        schedule.queue_position = 4

        entry = rank([schedule], NOW)[0]

        assert entry.in_queue
        assert entry.queue_priority == 2
        assert entry.queue_position == 4
        assert entry.effective_next_due == entry.due.scheduled_at


class TestEffectiveNextDue:

    def test_computed_date(self, easy_schedule):
        due = next_due(easy_schedule, D0)

        assert effective_next_due(easy_schedule, due) == D0

    def test_override_date_is_not_applied_to_another_checkpoint(self, easy_schedule):
        _move(easy_schedule, CheckpointName.DAY7, D0 + days(20))
        due = next_due(easy_schedule, D0)

        assert due.checkpoint is CheckpointName.SAME_DAY
        assert effective_next_due(easy_schedule, due) == D0
