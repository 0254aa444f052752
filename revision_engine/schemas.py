from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime
from revision_engine.enums import CheckpointName, Difficulty, ScheduleStatus

class InitializeSchedule(BaseModel):
    """Command: start tracking a freshly solved item"""
    owner_id: str
    item_id: str
    difficulty: Difficulty

class RevisionAttempt(BaseModel):
    """Outcome of one revision attempt, as reported by the user"""
    effectiveness: float = 0.8  # range checked by the completion handler
    remembered: bool = True
    time_taken: Optional[int] = Field(default=None, ge=0, description="Seconds spent")
    confidence_before: Optional[int] = Field(default=None, ge=1, le=5)
    confidence_after: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = Field(default=None, max_length=1000)

class SetQueueState(BaseModel):
    """Command: put a schedule in the owner's revision queue"""
    priority: int = 0
    position: Optional[int] = Field(default=None, ge=0)

class DueRevision(BaseModel):
    """Next actionable checkpoint of a schedule"""
    checkpoint: CheckpointName
    scheduled_at: datetime
    is_overdue: bool
    days_overdue: Optional[int] = None
    days_until: Optional[int] = None

class QueueEntry(BaseModel):
    """One row of an owner's ranked revision list"""
    schedule_id: Optional[int]
    item_id: str
    due: DueRevision
    effective_next_due: datetime
    queue_priority: int = 0
    queue_position: Optional[int] = None
    in_queue: bool = False

class CheckpointState(BaseModel):
    """Schema for a checkpoint in a summary"""
    name: CheckpointName
    scheduled: bool
    completed: bool
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    effectiveness: Optional[float] = None

    class Config:
        from_attributes = True

class ScheduleSummary(BaseModel):
    """Read model of a single schedule"""
    schedule_id: Optional[int]
    item_id: str
    status: ScheduleStatus
    next_due: Optional[DueRevision] = None
    total_revisions: int
    successful_revisions: int
    success_rate: float
    average_effectiveness: float
    ease_factor: float
    current_interval: float
    checkpoints: List[CheckpointState]
    in_queue: bool
    queue_priority: int

class RevisionStats(BaseModel):
    """Counts across an owner's schedules"""
    total_active: int = 0
    total_paused: int = 0
    total_completed: int = 0
    total_overdue: int = 0
    pending_today: int = 0
    pending_week: int = 0
    completion_rate: int = 0  # % of scheduled fixed checkpoints completed
    average_effectiveness: float = 0.0

class UpcomingStats(BaseModel):
    """Next-due revisions per calendar day in a window"""
    total_upcoming: int = 0
    by_day: Dict[date, int] = Field(default_factory=dict)
