from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Enum, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from revision_engine.database import Base
from revision_engine.enums import CheckpointName, Difficulty, ScheduleStatus, FIXED_CHECKPOINTS
from revision_engine.timeutils import utcnow

def _values(enum_cls):
    return [m.value for m in enum_cls]

class RevisionSchedule(Base):
    """Spaced repetition state for one practiced item of one owner"""
    __tablename__ = "revision_schedules"
    __table_args__ = (
        UniqueConstraint("owner_id", "item_id", name="uq_schedule_owner_item"),
        Index("ix_schedule_owner_status", "owner_id", "status"),
        Index("ix_schedule_owner_queue", "owner_id", "in_queue", "queue_priority"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    item_id = Column(String, nullable=False)

    # Adaptive (SM-2 style) track; its due date lives on the ADAPTIVE checkpoint
    base_interval = Column(Float, nullable=False, default=1.0)  # days
    current_interval = Column(Float, nullable=False, default=1.0)  # days
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval_modifier = Column(Float, nullable=False, default=1.0)

    # Performance metrics
    total_revisions = Column(Integer, nullable=False, default=0)
    successful_revisions = Column(Integer, nullable=False, default=0)
    average_effectiveness = Column(Float, nullable=False, default=0.0)
    forgetting_rate = Column(Float, nullable=False, default=0.0)
    last_difficulty = Column(Enum(Difficulty, native_enum=False, length=10, values_callable=_values))

    # Queue management, driven by callers
    in_queue = Column(Boolean, nullable=False, default=False)
    queue_priority = Column(Integer, nullable=False, default=0)
    queue_position = Column(Integer)

    # Manual overrides
    manually_rescheduled = Column(Boolean, nullable=False, default=False)
    rescheduled_to = Column(DateTime)
    pause_until = Column(DateTime)

    status = Column(
        Enum(ScheduleStatus, native_enum=False, length=12, values_callable=_values),
        nullable=False,
        default=ScheduleStatus.ACTIVE
    )
    is_active = Column(Boolean, nullable=False, default=True)  # soft deletion

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    checkpoints = relationship(
        "Checkpoint",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="Checkpoint.id"
    )
    history = relationship(
        "RevisionEvent",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="RevisionEvent.sequence_number"
    )

    # Compare-and-swap on every UPDATE; a stale snapshot raises StaleDataError on flush
    __mapper_args__ = {"version_id_col": version}

    def checkpoint(self, name: CheckpointName):
        for cp in self.checkpoints:
            if cp.name == name:
                return cp
        return None

    @property
    def fixed_checkpoints(self):
        """Fixed checkpoints in resolution order"""
        by_name = {cp.name: cp for cp in self.checkpoints}
        return [by_name[name] for name in FIXED_CHECKPOINTS if name in by_name]

    @property
    def adaptive_checkpoint(self):
        return self.checkpoint(CheckpointName.ADAPTIVE)

    @property
    def next_review_due(self):
        adaptive = self.adaptive_checkpoint
        return adaptive.scheduled_at if adaptive is not None else None

    @property
    def success_rate(self) -> float:
        """Percentage of revisions where the item was remembered"""
        if not self.total_revisions:
            return 0.0
        return self.successful_revisions / self.total_revisions * 100

    def touch(self, now=None):
        self.updated_at = now or utcnow()

    def __repr__(self):
        return f"<RevisionSchedule {self.id} owner={self.owner_id} item={self.item_id} status={self.status}>"
