"""
Completion Handler

Applies the outcome of one revision attempt to a schedule snapshot: marks the
checkpoint, appends to the history, refreshes metrics, runs the adaptive
engine and recomputes the status. Everything here works on an in-memory
record; persisting it (and guarding against concurrent writers) is the
store's job, see crud.revision_schedule.

Usage:
    from revision_engine.completion import mark_revision_completed

    mark_revision_completed(schedule, "day3", 0.85, remembered=True, now=now)
"""

import logging
from datetime import datetime
from typing import Optional

from revision_engine.enums import ScheduleStatus, parse_checkpoint
from revision_engine.exceptions import InconsistentStateError, InvalidEffectivenessError
from revision_engine.models import RevisionEvent, RevisionSchedule
from revision_engine.resolver import is_all_revisions_completed
from revision_engine.scheduler import get_scheduler
from revision_engine.sm2 import SM2Algorithm
from revision_engine.timeutils import normalize, utcnow

logger = logging.getLogger(__name__)


def validate_effectiveness(effectiveness) -> float:
    try:
        value = float(effectiveness)
    except (TypeError, ValueError):
        raise InvalidEffectivenessError(effectiveness)
    # NaN fails both comparisons
    if not (0.0 <= value <= 1.0):
        raise InvalidEffectivenessError(effectiveness)
    return value


def mark_revision_completed(
    schedule: RevisionSchedule,
    checkpoint,
    effectiveness: float,
    time_taken: Optional[int] = None,
    confidence_before: Optional[int] = None,
    confidence_after: Optional[int] = None,
    remembered: bool = True,
    notes: Optional[str] = None,
    now: datetime = None
) -> RevisionSchedule:
    """
    Record a completed revision on the schedule.

    Args:
        schedule: Schedule snapshot to mutate
        checkpoint: Checkpoint name (CheckpointName or its string form)
        effectiveness: Quality of the attempt, 0-1
        time_taken: Seconds spent on the attempt
        confidence_before: Self-rated confidence before the attempt (1-5)
        confidence_after: Self-rated confidence after the attempt (1-5)
        remembered: Whether the solution was recalled
        notes: Free-form notes
        now: Completion time (defaults to now)

    Returns:
        The same schedule, mutated

    Raises:
        InvalidCheckpointError: unknown checkpoint name
        InvalidEffectivenessError: effectiveness outside [0, 1]
        InconsistentStateError: fixed checkpoint already completed or never scheduled
    """
    name = parse_checkpoint(checkpoint)
    effectiveness = validate_effectiveness(effectiveness)
    now = normalize(now) if now else utcnow()

    cp = schedule.checkpoint(name)
    if name.is_fixed:
        if cp is None or not cp.scheduled:
            raise InconsistentStateError(
                f"Checkpoint {name.value} of schedule {schedule.id} was never scheduled"
            )
        if cp.completed:
            raise InconsistentStateError(
                f"Checkpoint {name.value} of schedule {schedule.id} is already completed"
            )
        scheduled_for = cp.scheduled_at or now
        cp.completed = True
        cp.completed_at = now
        cp.effectiveness = effectiveness
    else:
        scheduled_for = now
        if cp is not None:
            cp.completed_at = now
            cp.effectiveness = effectiveness

    schedule.history.append(RevisionEvent(
        sequence_number=len(schedule.history) + 1,
        checkpoint=name,
        scheduled_for=scheduled_for,
        completed_at=now,
        time_taken=time_taken,
        confidence_before=confidence_before,
        confidence_after=confidence_after,
        remembered=remembered,
        notes=notes,
        effectiveness_score=effectiveness
    ))

    _update_metrics(schedule, remembered)
    update_adaptive_schedule(schedule, effectiveness, remembered, now)

    # The override was for the review that just happened
    schedule.manually_rescheduled = False
    schedule.rescheduled_to = None

    refresh_status(schedule)
    schedule.touch(now)

    logger.debug(
        "Schedule %s: revision #%d on %s (effectiveness=%.2f, remembered=%s)",
        schedule.id, len(schedule.history), name.value, effectiveness, remembered
    )
    return schedule


def _update_metrics(schedule: RevisionSchedule, remembered: bool) -> None:
    schedule.total_revisions = (schedule.total_revisions or 0) + 1
    if remembered:
        schedule.successful_revisions = (schedule.successful_revisions or 0) + 1

    scores = [event.effectiveness_score or 0.0 for event in schedule.history]
    schedule.average_effectiveness = sum(scores) / len(scores) if scores else 0.0

    total = schedule.total_revisions
    schedule.forgetting_rate = (total - schedule.successful_revisions) / total if total else 0.0


def update_adaptive_schedule(
    schedule: RevisionSchedule,
    effectiveness: float,
    remembered: bool,
    now: datetime = None
) -> RevisionSchedule:
    """
    Run the SM-2 step for an outcome and move the adaptive checkpoint.

    Also switches on day14/day30 when the next adaptive review lands far
    enough in the future.
    """
    now = normalize(now) if now else utcnow()
    new_ef, new_interval, next_review_due = SM2Algorithm.calculate_next_review(
        schedule.ease_factor,
        schedule.current_interval,
        schedule.base_interval,
        effectiveness,
        remembered,
        reference_date=now
    )
    schedule.ease_factor = new_ef
    schedule.current_interval = new_interval

    adaptive = schedule.adaptive_checkpoint
    adaptive.scheduled = True
    adaptive.completed = False
    adaptive.scheduled_at = next_review_due

    get_scheduler().extend_fixed_checkpoints(schedule, now)
    return schedule


def refresh_status(schedule: RevisionSchedule) -> ScheduleStatus:
    """
    Keep status in step with the fixed checkpoints.

    completed wins over paused; a paused schedule otherwise stays paused.
    """
    if is_all_revisions_completed(schedule):
        schedule.status = ScheduleStatus.COMPLETED
    elif schedule.status != ScheduleStatus.PAUSED:
        schedule.status = ScheduleStatus.ACTIVE
    return schedule.status
