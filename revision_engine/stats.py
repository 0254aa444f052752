"""
Read models over one or many schedules: per-schedule summaries, owner-wide
counts and an upcoming-revisions calendar. Nothing here writes.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from revision_engine.config import settings
from revision_engine.enums import ScheduleStatus
from revision_engine.resolver import next_due
from revision_engine.schemas import CheckpointState, RevisionStats, ScheduleSummary, UpcomingStats
from revision_engine.timeutils import end_of_day, normalize, start_of_day, utcnow


def schedule_summary(schedule, now: datetime = None) -> ScheduleSummary:
    """Everything a reminder or detail view needs about one schedule"""
    return ScheduleSummary(
        schedule_id=schedule.id,
        item_id=schedule.item_id,
        status=schedule.status,
        next_due=next_due(schedule, now),
        total_revisions=schedule.total_revisions or 0,
        successful_revisions=schedule.successful_revisions or 0,
        success_rate=schedule.success_rate,
        average_effectiveness=schedule.average_effectiveness or 0.0,
        ease_factor=schedule.ease_factor,
        current_interval=schedule.current_interval,
        checkpoints=[CheckpointState.model_validate(cp) for cp in schedule.checkpoints],
        in_queue=bool(schedule.in_queue),
        queue_priority=schedule.queue_priority or 0
    )


def _paused(schedule, now: datetime) -> bool:
    if schedule.status != ScheduleStatus.PAUSED:
        return False
    return schedule.pause_until is None or schedule.pause_until > now


def revision_stats(schedules: Iterable, now: datetime = None, window_days: Optional[int] = None) -> RevisionStats:
    """
    Aggregate counts over an owner's schedules.

    pending_today and pending_week count schedules whose next due checkpoint
    falls on today's date / within the window starting today. Overdue is
    derived from the checkpoints, never read from the status column.
    """
    now = normalize(now) if now else utcnow()
    window_days = window_days if window_days is not None else settings.due_soon_days
    today_start, today_end = start_of_day(now), end_of_day(now)
    week_end = today_start + timedelta(days=window_days)

    stats = RevisionStats()
    scheduled_fixed = completed_fixed = 0
    effectiveness = []

    for schedule in schedules:
        if schedule.status == ScheduleStatus.COMPLETED:
            stats.total_completed += 1
        elif _paused(schedule, now):
            stats.total_paused += 1
        else:
            stats.total_active += 1

        for cp in schedule.fixed_checkpoints:
            if cp.scheduled:
                scheduled_fixed += 1
                if cp.completed:
                    completed_fixed += 1

        if schedule.total_revisions:
            effectiveness.append(schedule.average_effectiveness)

        if _paused(schedule, now):
            continue
        due = next_due(schedule, now)
        if due is None:
            continue
        if due.is_overdue:
            stats.total_overdue += 1
        if today_start <= due.scheduled_at <= today_end:
            stats.pending_today += 1
        if today_start <= due.scheduled_at <= week_end:
            stats.pending_week += 1

    if scheduled_fixed:
        stats.completion_rate = round(completed_fixed / scheduled_fixed * 100)
    if effectiveness:
        stats.average_effectiveness = sum(effectiveness) / len(effectiveness)
    return stats


def upcoming_by_day(schedules: Iterable, start: datetime = None, end: datetime = None) -> UpcomingStats:
    """Count next-due revisions per calendar day between start and end"""
    start = start_of_day(normalize(start) if start else utcnow())
    end = end_of_day(normalize(end)) if end else end_of_day(start + timedelta(days=settings.due_soon_days))

    result = UpcomingStats()
    for schedule in schedules:
        if _paused(schedule, start):
            continue
        due = next_due(schedule, start)
        if due is None or not (start <= due.scheduled_at <= end):
            continue
        day = due.scheduled_at.date()
        result.by_day[day] = result.by_day.get(day, 0) + 1
        result.total_upcoming += 1

    result.by_day = dict(sorted(result.by_day.items()))
    return result
