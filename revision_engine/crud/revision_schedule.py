import logging
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from revision_engine.completion import mark_revision_completed, refresh_status
from revision_engine.config import settings
from revision_engine.enums import ScheduleStatus, parse_checkpoint
from revision_engine.exceptions import (
    ConcurrentUpdateError,
    DuplicateScheduleError,
    InconsistentStateError,
    ScheduleNotFound,
)
from revision_engine.models import Checkpoint, RevisionSchedule
from revision_engine.prioritizer import rank
from revision_engine.resolver import is_overdue, next_due
from revision_engine.scheduler import get_scheduler
from revision_engine.schemas import DueRevision, QueueEntry, RevisionAttempt
from revision_engine.timeutils import normalize, utcnow

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return normalize(now) if now else utcnow()


def _commit(db: Session, schedule: RevisionSchedule) -> RevisionSchedule:
    """Write back a schedule snapshot; the version column turns a lost update into an error"""
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrentUpdateError(schedule.id, e)
    db.refresh(schedule)
    return schedule


def get_schedule(db: Session, schedule_id: int) -> RevisionSchedule:
    """Get an active schedule by ID"""
    schedule = db.query(RevisionSchedule).filter(
        RevisionSchedule.id == schedule_id,
        RevisionSchedule.is_active.is_(True)
    ).first()
    if not schedule:
        raise ScheduleNotFound(schedule_id)
    return schedule


def get_schedule_for_item(db: Session, owner_id: str, item_id: str) -> RevisionSchedule:
    """Get the active schedule of an owner's item"""
    schedule = db.query(RevisionSchedule).filter(
        RevisionSchedule.owner_id == owner_id,
        RevisionSchedule.item_id == item_id,
        RevisionSchedule.is_active.is_(True)
    ).first()
    if not schedule:
        raise ScheduleNotFound(owner_id=owner_id, item_id=item_id)
    return schedule


def list_schedules(
    db: Session,
    owner_id: str,
    status: Optional[ScheduleStatus] = None,
    in_queue: Optional[bool] = None,
    now: datetime = None
) -> List[RevisionSchedule]:
    """
    Get all active schedules of an owner, optionally filtered.

    OVERDUE is never stored, so filtering on it evaluates each schedule
    against `now` instead of the status column.
    """
    query = db.query(RevisionSchedule).filter(
        RevisionSchedule.owner_id == owner_id,
        RevisionSchedule.is_active.is_(True)
    )
    status = ScheduleStatus(status) if status is not None else None
    if status is not None and status != ScheduleStatus.OVERDUE:
        query = query.filter(RevisionSchedule.status == status)
    if in_queue is not None:
        query = query.filter(RevisionSchedule.in_queue.is_(in_queue))
    schedules = query.order_by(RevisionSchedule.id).all()

    if status == ScheduleStatus.OVERDUE:
        now = _now(now)
        schedules = [s for s in schedules if not _is_paused(s, now) and is_overdue(s, now)]
    return schedules


def initialize_schedule(db: Session, owner_id: str, item_id: str, difficulty, now: datetime = None) -> RevisionSchedule:
    """
    Start tracking an item the owner just solved.

    Raises:
        DuplicateScheduleError: a schedule already exists for the pair
        InvalidDifficultyError: unknown difficulty
    """
    now = _now(now)
    existing = db.query(RevisionSchedule.id).filter(
        RevisionSchedule.owner_id == owner_id,
        RevisionSchedule.item_id == item_id
    ).first()
    if existing:
        raise DuplicateScheduleError(owner_id, item_id)

    schedule = get_scheduler().build_schedule(owner_id, item_id, difficulty, now)
    db.add(schedule)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race against another initializer for the same pair
        db.rollback()
        raise DuplicateScheduleError(owner_id, item_id)
    db.refresh(schedule)

    logger.info(
        "Initialized schedule %s for item %s of owner %s (%s)",
        schedule.id, item_id, owner_id, schedule.last_difficulty.value
    )
    return schedule


def complete_revision(
    db: Session,
    schedule_id: int,
    checkpoint,
    attempt: RevisionAttempt,
    now: datetime = None
) -> RevisionSchedule:
    """
    Record a revision attempt and persist the recomputed schedule.

    Not idempotent: every successful call appends one history entry.

    Raises:
        ScheduleNotFound, InvalidCheckpointError, InvalidEffectivenessError,
        InconsistentStateError, ConcurrentUpdateError
    """
    schedule = get_schedule(db, schedule_id)
    try:
        mark_revision_completed(
            schedule,
            checkpoint,
            attempt.effectiveness,
            time_taken=attempt.time_taken,
            confidence_before=attempt.confidence_before,
            confidence_after=attempt.confidence_after,
            remembered=attempt.remembered,
            notes=attempt.notes,
            now=_now(now)
        )
    except Exception:
        # Drop any half-applied changes from the session
        db.rollback()
        raise
    _commit(db, schedule)

    logger.info(
        "Schedule %s: completed %s, next adaptive review %s (interval %.0f days, EF %.2f)",
        schedule.id, parse_checkpoint(checkpoint).value, schedule.next_review_due,
        schedule.current_interval, schedule.ease_factor
    )
    return schedule


def get_next_due(db: Session, schedule_id: int, now: datetime = None) -> Optional[DueRevision]:
    """Next actionable checkpoint of a schedule (read-only)"""
    return next_due(get_schedule(db, schedule_id), _now(now))


def _is_paused(schedule: RevisionSchedule, now: datetime) -> bool:
    if schedule.status != ScheduleStatus.PAUSED:
        return False
    # A pause with an end date lapses on its own
    return schedule.pause_until is None or schedule.pause_until > now


def list_due_for_owner(
    db: Session,
    owner_id: str,
    now: datetime = None,
    include_upcoming: bool = False
) -> List[QueueEntry]:
    """
    Rank an owner's schedules by what should be revised first.

    Only schedules with a pending checkpoint at or before `now` are returned
    unless include_upcoming is set. Paused schedules are skipped.
    """
    now = _now(now)
    query = db.query(RevisionSchedule).filter(
        RevisionSchedule.owner_id == owner_id,
        RevisionSchedule.is_active.is_(True)
    )
    if not include_upcoming:
        query = query.filter(RevisionSchedule.checkpoints.any(and_(
            Checkpoint.scheduled.is_(True),
            Checkpoint.completed.is_(False),
            Checkpoint.scheduled_at <= now
        )))

    schedules = [s for s in query.all() if not _is_paused(s, now)]
    return rank(schedules, now, overdue_only=not include_upcoming)


def iter_overdue_schedules(db: Session, now: datetime = None, batch_size: int = 100) -> Iterator[Tuple[RevisionSchedule, DueRevision]]:
    """
    Walk every owner's overdue schedules, one record at a time.

    Meant for reminder sweeps; nothing is locked and nothing is written.
    """
    now = _now(now)
    query = db.query(RevisionSchedule).filter(
        RevisionSchedule.is_active.is_(True),
        RevisionSchedule.checkpoints.any(and_(
            Checkpoint.scheduled.is_(True),
            Checkpoint.completed.is_(False),
            Checkpoint.scheduled_at <= now
        ))
    ).order_by(RevisionSchedule.owner_id, RevisionSchedule.id)

    for schedule in query.yield_per(batch_size):
        if _is_paused(schedule, now):
            continue
        due = next_due(schedule, now)
        if due is not None and due.is_overdue:
            yield schedule, due


def set_queue_state(
    db: Session,
    schedule_id: int,
    priority: int,
    position: Optional[int] = None,
    in_queue: bool = True
) -> RevisionSchedule:
    """Put a schedule in the owner's queue with the given priority/position"""
    schedule = get_schedule(db, schedule_id)
    schedule.in_queue = in_queue
    schedule.queue_priority = priority
    schedule.queue_position = position
    schedule.touch()
    return _commit(db, schedule)


def remove_from_queue(db: Session, schedule_id: int) -> RevisionSchedule:
    schedule = get_schedule(db, schedule_id)
    schedule.in_queue = False
    schedule.queue_position = None
    schedule.touch()
    return _commit(db, schedule)


def pause_schedule(db: Session, schedule_id: int, until: Optional[datetime] = None) -> RevisionSchedule:
    """
    Pause reminders for a schedule, indefinitely or until a given time.

    Raises:
        InconsistentStateError: the schedule is already completed
    """
    schedule = get_schedule(db, schedule_id)
    if schedule.status == ScheduleStatus.COMPLETED:
        raise InconsistentStateError(f"Revision schedule {schedule_id} is completed and cannot be paused")

    schedule.status = ScheduleStatus.PAUSED
    schedule.pause_until = normalize(until) if until else None
    schedule.touch()
    _commit(db, schedule)

    logger.info("Paused schedule %s until %s", schedule_id, schedule.pause_until or "resumed")
    return schedule


def resume_schedule(db: Session, schedule_id: int) -> RevisionSchedule:
    """Lift a pause; resuming a schedule that is not paused changes nothing"""
    schedule = get_schedule(db, schedule_id)
    if schedule.status != ScheduleStatus.PAUSED:
        return schedule

    schedule.status = ScheduleStatus.ACTIVE
    schedule.pause_until = None
    refresh_status(schedule)
    schedule.touch()
    _commit(db, schedule)

    logger.info("Resumed schedule %s (%s)", schedule_id, schedule.status.value)
    return schedule


def reschedule(db: Session, schedule_id: int, new_date: datetime, checkpoint=None, now: datetime = None) -> RevisionSchedule:
    """
    Move a pending checkpoint to a new date by hand.

    Without an explicit checkpoint the one currently next due is moved. The
    override is cleared by the next completion.

    Raises:
        InconsistentStateError: the checkpoint is completed, unscheduled, or nothing is pending
    """
    schedule = get_schedule(db, schedule_id)
    new_date = normalize(new_date)

    if checkpoint is None:
        due = next_due(schedule, _now(now))
        if due is None:
            raise InconsistentStateError(f"Revision schedule {schedule_id} has nothing left to reschedule")
        name = due.checkpoint
    else:
        name = parse_checkpoint(checkpoint)

    cp = schedule.checkpoint(name)
    if cp is None or not cp.is_pending:
        raise InconsistentStateError(
            f"Checkpoint {name.value} of schedule {schedule_id} is not pending and cannot be rescheduled"
        )

    cp.scheduled_at = new_date
    schedule.manually_rescheduled = True
    schedule.rescheduled_to = new_date
    schedule.touch()
    _commit(db, schedule)

    logger.info("Rescheduled %s of schedule %s to %s", name.value, schedule_id, new_date)
    return schedule


def deactivate_schedule(db: Session, schedule_id: int) -> RevisionSchedule:
    """Soft-delete a schedule whose item was removed"""
    schedule = get_schedule(db, schedule_id)
    schedule.is_active = False
    schedule.in_queue = False
    schedule.touch()
    _commit(db, schedule)

    logger.info("Deactivated schedule %s", schedule_id)
    return schedule


def run_with_retry(func, *args, **kwargs):
    """
    Call a store command, re-running it when a concurrent writer got there first.

    Each attempt re-reads the record, so a retried completion is applied to
    fresh state exactly once. Validation errors are never retried.
    """
    retryer = Retrying(
        retry=retry_if_exception_type(ConcurrentUpdateError),
        stop=stop_after_attempt(settings.conflict_retry_attempts),
        wait=wait_exponential(multiplier=0.1, max=settings.conflict_retry_max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    return retryer(func, *args, **kwargs)
