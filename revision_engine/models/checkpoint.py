from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, Enum, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from revision_engine.database import Base
from revision_engine.enums import CheckpointName

class Checkpoint(Base):
    """One review slot of a schedule: a fixed day-N checkpoint or the adaptive track"""
    __tablename__ = "revision_checkpoints"
    __table_args__ = (
        UniqueConstraint("schedule_id", "name", name="uq_checkpoint_schedule_name"),
        Index("ix_checkpoint_name_scheduled_at", "name", "scheduled_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("revision_schedules.id", ondelete="CASCADE"), nullable=False)
    name = Column(
        Enum(CheckpointName, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )

    scheduled = Column(Boolean, nullable=False, default=False)
    completed = Column(Boolean, nullable=False, default=False)
    scheduled_at = Column(DateTime)
    completed_at = Column(DateTime)  # last completion for the adaptive track
    effectiveness = Column(Float)  # 0-1 rating of the completing attempt

    schedule = relationship("RevisionSchedule", back_populates="checkpoints")

    @property
    def is_pending(self) -> bool:
        return bool(self.scheduled) and not self.completed

    def __repr__(self):
        return f"<Checkpoint {self.name.value} scheduled={self.scheduled} completed={self.completed} at={self.scheduled_at}>"
