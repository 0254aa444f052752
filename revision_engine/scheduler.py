import logging
from datetime import datetime

from revision_engine.enums import CheckpointName, Difficulty, ScheduleStatus, FIXED_CHECKPOINTS, parse_difficulty
from revision_engine.models import Checkpoint, RevisionSchedule
from revision_engine.sm2 import SM2Algorithm
from revision_engine.timeutils import add_days, ceil_days, normalize, utcnow

logger = logging.getLogger(__name__)

# Fixed checkpoints switched on once the adaptive track reaches past this many days
LATE_CHECKPOINT_THRESHOLDS = (
    (CheckpointName.DAY14, 10),
    (CheckpointName.DAY30, 20),
)


class IntervalScheduler:
    """Lays out the fixed review checkpoints of a newly solved item"""

    @staticmethod
    def initially_scheduled(name: CheckpointName, difficulty: Difficulty) -> bool:
        """Which fixed checkpoints start enabled for a given difficulty"""
        if name in (CheckpointName.SAME_DAY, CheckpointName.DAY3, CheckpointName.DAY7):
            return True
        if name is CheckpointName.DAY14:
            return difficulty is Difficulty.HARD
        return False

    def build_schedule(self, owner_id: str, item_id: str, difficulty, now: datetime = None) -> RevisionSchedule:
        """
        Create a new, unsaved schedule for an item solved at `now`.

        same_day, day3 and day7 are always scheduled; day14 only for hard
        items; day30 is left for the adaptive track to switch on later.

        Raises:
            InvalidDifficultyError: difficulty is not easy, medium or hard
        """
        difficulty = parse_difficulty(difficulty)
        now = normalize(now) if now else utcnow()
        ease_factor, base_interval, modifier, next_review_due = SM2Algorithm.initialize_item(difficulty, now)

        schedule = RevisionSchedule(
            owner_id=owner_id,
            item_id=item_id,
            base_interval=base_interval,
            current_interval=base_interval,
            ease_factor=ease_factor,
            interval_modifier=modifier,
            total_revisions=0,
            successful_revisions=0,
            average_effectiveness=0.0,
            forgetting_rate=0.0,
            last_difficulty=difficulty,
            in_queue=False,
            queue_priority=0,
            manually_rescheduled=False,
            status=ScheduleStatus.ACTIVE,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        for name in FIXED_CHECKPOINTS:
            scheduled = self.initially_scheduled(name, difficulty)
            schedule.checkpoints.append(Checkpoint(
                name=name,
                scheduled=scheduled,
                completed=False,
                scheduled_at=add_days(now, name.offset_days) if scheduled else None
            ))

        schedule.checkpoints.append(Checkpoint(
            name=CheckpointName.ADAPTIVE,
            scheduled=True,
            completed=False,
            scheduled_at=next_review_due
        ))

        return schedule

    def extend_fixed_checkpoints(self, schedule: RevisionSchedule, now: datetime = None) -> list:
        """
        Switch on day14/day30 when the adaptive track has moved far enough out.

        Enabling is one-way: a checkpoint that is already scheduled keeps its
        date, and nothing is ever unscheduled here.

        Returns:
            Names of the checkpoints that were enabled
        """
        now = normalize(now) if now else utcnow()
        next_due = schedule.next_review_due or now
        days_until_next = ceil_days(next_due - now)

        enabled = []
        for name, threshold in LATE_CHECKPOINT_THRESHOLDS:
            cp = schedule.checkpoint(name)
            if cp is None or cp.scheduled:
                continue
            if days_until_next > threshold:
                cp.scheduled = True
                cp.scheduled_at = add_days(now, name.offset_days)
                enabled.append(name)

        if enabled:
            logger.debug(
                "Schedule %s: enabled %s (adaptive review in %d days)",
                schedule.id, ", ".join(n.value for n in enabled), days_until_next
            )
        return enabled


def get_scheduler() -> IntervalScheduler:
    """Factory function returning the interval scheduler"""
    return IntervalScheduler()
