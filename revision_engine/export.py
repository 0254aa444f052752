import logging
from pathlib import Path
from typing import Iterable

import pandas as pd
from sqlalchemy.orm import Session

from revision_engine.crud import list_schedules

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = [
    "owner_id",
    "item_id",
    "schedule_id",
    "sequence_number",
    "checkpoint",
    "scheduled_for",
    "completed_at",
    "time_taken",
    "confidence_before",
    "confidence_after",
    "remembered",
    "effectiveness_score",
    "notes",
]


def history_frame(schedules: Iterable) -> pd.DataFrame:
    """Flatten the revision history of the given schedules into one table"""
    rows = []
    for schedule in schedules:
        for event in schedule.history:
            rows.append({
                "owner_id": schedule.owner_id,
                "item_id": schedule.item_id,
                "schedule_id": schedule.id,
                "sequence_number": event.sequence_number,
                "checkpoint": event.checkpoint.value,
                "scheduled_for": event.scheduled_for,
                "completed_at": event.completed_at,
                "time_taken": event.time_taken,
                "confidence_before": event.confidence_before,
                "confidence_after": event.confidence_after,
                "remembered": event.remembered,
                "effectiveness_score": event.effectiveness_score,
                "notes": event.notes,
            })

    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    if not df.empty:
        df = df.sort_values(["completed_at", "schedule_id", "sequence_number"]).reset_index(drop=True)
    return df


def export_history(db: Session, owner_id: str, file_path: str) -> int:
    """
    Write an owner's full revision history to CSV for the analytics side.

    Returns:
        Number of history rows written
    """
    df = history_frame(list_schedules(db, owner_id))
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)

    logger.info("Exported %d revision events of owner %s to %s", len(df), owner_id, path)
    return len(df)
