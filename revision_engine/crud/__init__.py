from revision_engine.crud.revision_schedule import (
    get_schedule,
    get_schedule_for_item,
    list_schedules,
    initialize_schedule,
    complete_revision,
    get_next_due,
    list_due_for_owner,
    iter_overdue_schedules,
    set_queue_state,
    remove_from_queue,
    pause_schedule,
    resume_schedule,
    reschedule,
    deactivate_schedule,
    run_with_retry
)

__all__ = [
    "get_schedule",
    "get_schedule_for_item",
    "list_schedules",
    "initialize_schedule",
    "complete_revision",
    "get_next_due",
    "list_due_for_owner",
    "iter_overdue_schedules",
    "set_queue_state",
    "remove_from_queue",
    "pause_schedule",
    "resume_schedule",
    "reschedule",
    "deactivate_schedule",
    "run_with_retry",
]
