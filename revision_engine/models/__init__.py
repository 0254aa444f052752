from revision_engine.models.revision_schedule import RevisionSchedule
from revision_engine.models.checkpoint import Checkpoint
from revision_engine.models.revision_event import RevisionEvent

__all__ = [
    "RevisionSchedule",
    "Checkpoint",
    "RevisionEvent"
]
