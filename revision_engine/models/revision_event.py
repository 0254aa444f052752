from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from revision_engine.database import Base
from revision_engine.enums import CheckpointName

class RevisionEvent(Base):
    """Append-only record of a single completed revision attempt"""
    __tablename__ = "revision_events"
    __table_args__ = (
        UniqueConstraint("schedule_id", "sequence_number", name="uq_event_schedule_sequence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("revision_schedules.id", ondelete="CASCADE"), nullable=False)
    sequence_number = Column(Integer, nullable=False)  # 1-based position in the history
    checkpoint = Column(
        Enum(CheckpointName, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )

    scheduled_for = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=False)
    time_taken = Column(Integer)  # seconds
    confidence_before = Column(Integer)  # 1-5
    confidence_after = Column(Integer)  # 1-5
    remembered = Column(Boolean, nullable=False, default=True)
    notes = Column(String(1000))
    effectiveness_score = Column(Float, nullable=False)

    schedule = relationship("RevisionSchedule", back_populates="history")
