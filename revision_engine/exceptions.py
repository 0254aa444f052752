"""
Revision Engine Exceptions

Every error here is a synchronous failure returned to the caller. None of
them is retried by the engine; ConcurrentUpdateError is the only one a caller
may retry, after re-reading the record.
"""

from typing import Optional


class RevisionError(Exception):
    """Base class for all revision engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ScheduleNotFound(RevisionError):
    """No active schedule matches the given id or (owner, item) pair."""

    def __init__(self, schedule_id=None, owner_id: Optional[str] = None, item_id: Optional[str] = None):
        if schedule_id is not None:
            message = f"Revision schedule {schedule_id} not found"
        else:
            message = f"Revision schedule for item {item_id!r} of owner {owner_id!r} not found"
        super().__init__(message)
        self.schedule_id = schedule_id
        self.owner_id = owner_id
        self.item_id = item_id


class DuplicateScheduleError(RevisionError):
    """A schedule already exists for the (owner, item) pair."""

    def __init__(self, owner_id: str, item_id: str):
        super().__init__(f"Revision schedule already exists for item {item_id!r} of owner {owner_id!r}")
        self.owner_id = owner_id
        self.item_id = item_id


class InvalidCheckpointError(RevisionError):
    """The checkpoint name is not one of the known checkpoints."""

    def __init__(self, value):
        super().__init__(f"Unknown checkpoint: {value!r}")
        self.value = value


class InvalidEffectivenessError(RevisionError):
    """Effectiveness must lie within [0, 1]."""

    def __init__(self, value):
        super().__init__(f"Effectiveness must be between 0 and 1, got {value!r}")
        self.value = value


class InvalidDifficultyError(RevisionError):
    """Difficulty must be easy, medium or hard."""

    def __init__(self, value):
        super().__init__(f"Unknown difficulty: {value!r} (expected easy, medium or hard)")
        self.value = value


class InconsistentStateError(RevisionError):
    """The command does not fit the record's current state."""


class ConcurrentUpdateError(RevisionError):
    """The record changed between read and write (optimistic lock failure)."""

    def __init__(self, schedule_id, original_exception: Optional[Exception] = None):
        super().__init__(f"Revision schedule {schedule_id} was modified concurrently")
        self.schedule_id = schedule_id
        self.original_exception = original_exception
