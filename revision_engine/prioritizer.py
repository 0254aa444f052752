"""
Queue Prioritizer

Orders an owner's schedules for retrieval. Only the sort contract lives
here; queue priority and position values are assigned by callers through
crud.set_queue_state.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from revision_engine.resolver import next_due
from revision_engine.schemas import DueRevision, QueueEntry
from revision_engine.timeutils import normalize, utcnow


def effective_next_due(schedule, due: DueRevision) -> datetime:
    """
    Date the queue sorts on.

    A manual reschedule writes its date onto the moved checkpoint itself, so
    the resolved checkpoint already carries it. rescheduled_to names no
    checkpoint and is never applied here.
    """
    return due.scheduled_at


def sort_key(entry: QueueEntry):
    """(overdue first, most overdue first, highest priority first, soonest first)"""
    return (
        not entry.due.is_overdue,
        -(entry.due.days_overdue or 0),
        -(entry.queue_priority or 0),
        entry.effective_next_due,
    )


def build_entry(schedule, now: datetime = None) -> Optional[QueueEntry]:
    due = next_due(schedule, now)
    if due is None:
        return None
    return QueueEntry(
        schedule_id=schedule.id,
        item_id=schedule.item_id,
        due=due,
        effective_next_due=effective_next_due(schedule, due),
        queue_priority=schedule.queue_priority or 0,
        queue_position=schedule.queue_position,
        in_queue=bool(schedule.in_queue)
    )


def rank(schedules: Iterable, now: datetime = None, overdue_only: bool = False) -> List[QueueEntry]:
    """
    Rank schedules into retrieval order.

    Args:
        schedules: Schedules of a single owner
        now: Reference time (defaults to now)
        overdue_only: Drop schedules with nothing due yet

    Returns:
        Queue entries, best candidate first. Schedules with nothing left to
        schedule are left out.
    """
    now = normalize(now) if now else utcnow()
    entries = []
    for schedule in schedules:
        entry = build_entry(schedule, now)
        if entry is None:
            continue
        if overdue_only and not entry.due.is_overdue:
            continue
        entries.append(entry)

    return sorted(entries, key=sort_key)
