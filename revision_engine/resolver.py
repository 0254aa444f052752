"""
Due-Revision Resolver

Read-only queries over a schedule's checkpoints. Fixed checkpoints and the
adaptive track are the same Checkpoint rows, so resolution is one scan in
priority order rather than separate code paths.
"""

from datetime import datetime
from typing import Optional

from revision_engine.enums import CheckpointName
from revision_engine.schemas import DueRevision
from revision_engine.timeutils import ceil_days, normalize, utcnow


def _overdue(name: CheckpointName, scheduled_at: datetime, now: datetime) -> DueRevision:
    return DueRevision(
        checkpoint=name,
        scheduled_at=scheduled_at,
        is_overdue=True,
        days_overdue=ceil_days(now - scheduled_at)
    )


def _upcoming(name: CheckpointName, scheduled_at: datetime, now: datetime) -> DueRevision:
    return DueRevision(
        checkpoint=name,
        scheduled_at=scheduled_at,
        is_overdue=False,
        days_until=ceil_days(scheduled_at - now)
    )


def next_due(schedule, now: datetime = None) -> Optional[DueRevision]:
    """
    Work out the single next actionable checkpoint.

    Order of precedence:
        1. the first pending fixed checkpoint whose time has come (overdue)
        2. the adaptive track, if due
        3. the earliest upcoming fixed checkpoint
        4. the adaptive track, upcoming

    Returns None when nothing is left to schedule.
    """
    now = normalize(now) if now else utcnow()
    fixed = [cp for cp in schedule.fixed_checkpoints if cp.is_pending and cp.scheduled_at is not None]
    adaptive_due = schedule.next_review_due

    for cp in fixed:
        if cp.scheduled_at <= now:
            return _overdue(cp.name, cp.scheduled_at, now)

    if adaptive_due is not None and adaptive_due <= now:
        return _overdue(CheckpointName.ADAPTIVE, adaptive_due, now)

    upcoming = [cp for cp in fixed if cp.scheduled_at > now]
    if upcoming:
        cp = min(upcoming, key=lambda c: c.scheduled_at)
        return _upcoming(cp.name, cp.scheduled_at, now)

    if adaptive_due is not None:
        return _upcoming(CheckpointName.ADAPTIVE, adaptive_due, now)

    return None


def is_all_revisions_completed(schedule) -> bool:
    """True when every fixed checkpoint is either unscheduled or done"""
    return all(not cp.scheduled or cp.completed for cp in schedule.fixed_checkpoints)


def is_overdue(schedule, now: datetime = None) -> bool:
    due = next_due(schedule, now)
    return due is not None and due.is_overdue
