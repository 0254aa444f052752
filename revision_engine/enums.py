"""
Revision Engine Enums

Closed sets of values for checkpoints, item difficulty and schedule status.
Strings coming from callers are parsed into these once, at the boundary.
"""

from enum import Enum

from revision_engine.exceptions import InvalidCheckpointError, InvalidDifficultyError


class CheckpointName(str, Enum):
    """
    Review checkpoints of a schedule.

    The five fixed checkpoints form a one-shot checklist that is laid out when
    the item is first solved. ADAPTIVE is the recurring SM-2 track; it is
    moved to a new date after every completion and never finishes.
    """

    SAME_DAY = "same_day"
    DAY3 = "day3"
    DAY7 = "day7"
    DAY14 = "day14"
    DAY30 = "day30"
    ADAPTIVE = "adaptive"

    @property
    def is_fixed(self) -> bool:
        return self is not CheckpointName.ADAPTIVE

    @property
    def offset_days(self) -> int:
        """Days after initialization at which a fixed checkpoint falls due."""
        return _OFFSETS[self]


# Fixed checkpoints in resolution order
FIXED_CHECKPOINTS = (
    CheckpointName.SAME_DAY,
    CheckpointName.DAY3,
    CheckpointName.DAY7,
    CheckpointName.DAY14,
    CheckpointName.DAY30,
)

_OFFSETS = {
    CheckpointName.SAME_DAY: 0,
    CheckpointName.DAY3: 3,
    CheckpointName.DAY7: 7,
    CheckpointName.DAY14: 14,
    CheckpointName.DAY30: 30,
    CheckpointName.ADAPTIVE: 0,
}

# Accepted spellings besides the enum values
_CHECKPOINT_ALIASES = {
    "sameday": CheckpointName.SAME_DAY,
    "same-day": CheckpointName.SAME_DAY,
}


class Difficulty(str, Enum):
    """Difficulty of the practiced item, as recorded when it was solved."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def multiplier(self) -> float:
        """Scales the adaptive base interval: harder items come back sooner."""
        return _MULTIPLIERS[self]


_MULTIPLIERS = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 0.8,
    Difficulty.HARD: 0.6,
}


class ScheduleStatus(str, Enum):
    """
    Lifecycle status of a schedule.

    OVERDUE is part of the vocabulary for callers that filter on it, but it is
    never stored: overdue-ness is computed on demand from the checkpoints.
    """

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    OVERDUE = "overdue"


def parse_checkpoint(value) -> CheckpointName:
    """Parse a checkpoint name, raising InvalidCheckpointError if unknown."""
    if isinstance(value, CheckpointName):
        return value
    if isinstance(value, str):
        key = value.strip()
        try:
            return CheckpointName(key)
        except ValueError:
            pass
        lowered = key.lower()
        if lowered in _CHECKPOINT_ALIASES:
            return _CHECKPOINT_ALIASES[lowered]
        try:
            return CheckpointName(lowered)
        except ValueError:
            pass
    raise InvalidCheckpointError(value)


def parse_difficulty(value) -> Difficulty:
    """Parse a difficulty, raising InvalidDifficultyError if unknown."""
    if isinstance(value, Difficulty):
        return value
    if isinstance(value, str):
        try:
            return Difficulty(value.strip().lower())
        except ValueError:
            pass
    raise InvalidDifficultyError(value)
