import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typing import Optional
from datetime import datetime
from pydantic import ValidationError

from revision_engine.database import SessionLocal, init_db
from revision_engine.crud import (
    initialize_schedule, complete_revision, get_schedule, get_schedule_for_item,
    get_next_due, list_due_for_owner, list_schedules, iter_overdue_schedules,
    set_queue_state, remove_from_queue, pause_schedule, resume_schedule,
    reschedule, deactivate_schedule, run_with_retry
)
from revision_engine.enums import ScheduleStatus
from revision_engine.exceptions import RevisionError
from revision_engine.export import export_history
from revision_engine.logging_config import configure_logging
from revision_engine.schemas import InitializeSchedule, RevisionAttempt, SetQueueState
from revision_engine.stats import revision_stats, schedule_summary, upcoming_by_day

app = typer.Typer(help="Revision CLI - spaced repetition scheduling for solved practice problems")
console = Console()


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Log level (default from REVISION_LOG_LEVEL)")):
    """Configure logging before any command runs"""
    configure_logging(log_level)


def _fail(error: Exception):
    console.print(f"[red]✗[/red] {escape(getattr(error, 'message', None) or str(error))}")
    raise typer.Exit(code=1)


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _due_text(due) -> str:
    if due is None:
        return "nothing scheduled"
    if due.is_overdue:
        return f"{due.checkpoint.value} overdue by {due.days_overdue} day(s)"
    return f"{due.checkpoint.value} in {due.days_until} day(s)"


@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")


@app.command()
def reset_db():
    """Delete all data and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    from revision_engine.database import engine, Base
    import revision_engine.models  # noqa: F401
    console.print("[yellow]Dropping all tables...[/yellow]")
    Base.metadata.drop_all(bind=engine)
    console.print("[yellow]Recreating tables...[/yellow]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓[/green] Database reset complete! All data deleted.")


@app.command()
def add_item(
    owner_id: str = typer.Option(..., prompt="Owner ID"),
    item_id: str = typer.Option(..., prompt="Problem ID"),
    difficulty: str = typer.Option(..., prompt="Difficulty (easy/medium/hard)"),
    now: Optional[datetime] = typer.Option(None, help="Solved at (default: now)")
):
    """Start revision tracking for a solved problem"""
    db = SessionLocal()
    try:
        command = InitializeSchedule(owner_id=owner_id, item_id=item_id, difficulty=difficulty.strip().lower())
        schedule = initialize_schedule(db, command.owner_id, command.item_id, command.difficulty, now)
        console.print(f"[green]✓[/green] Revision schedule created! Schedule ID: {schedule.id}")
        for cp in schedule.fixed_checkpoints:
            when = _fmt(cp.scheduled_at) if cp.scheduled else "not scheduled"
            console.print(f"  {cp.name.value}: {when}")
        console.print(f"  Adaptive base interval: {schedule.base_interval:g} day(s)")
    except (RevisionError, ValidationError) as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def complete(
    schedule_id: int = typer.Option(..., prompt="Schedule ID"),
    checkpoint: str = typer.Option(..., prompt="Checkpoint (same_day/day3/day7/day14/day30/adaptive)"),
    effectiveness: float = typer.Option(0.8, help="How well the revision went, 0-1"),
    remembered: bool = typer.Option(True, "--remembered/--forgot", help="Did you remember the solution?"),
    time_taken: Optional[int] = typer.Option(None, help="Seconds spent"),
    confidence_before: Optional[int] = typer.Option(None, help="Confidence before (1-5)"),
    confidence_after: Optional[int] = typer.Option(None, help="Confidence after (1-5)"),
    notes: Optional[str] = typer.Option(None, help="Optional notes"),
    now: Optional[datetime] = typer.Option(None, help="Completed at (default: now)")
):
    """Record a completed revision"""
    db = SessionLocal()
    try:
        attempt = RevisionAttempt(
            effectiveness=effectiveness,
            remembered=remembered,
            time_taken=time_taken,
            confidence_before=confidence_before,
            confidence_after=confidence_after,
            notes=notes
        )
        schedule = run_with_retry(complete_revision, db, schedule_id, checkpoint, attempt, now)

        console.print(f"[green]✓[/green] Revision recorded!")
        console.print(f"  Revisions: {schedule.total_revisions} ({schedule.success_rate:.0f}% remembered)")
        console.print(f"  Average effectiveness: {schedule.average_effectiveness:.2f}")
        console.print(f"  Next adaptive review: {_fmt(schedule.next_review_due)} (in {schedule.current_interval:g} days)")
        console.print(f"  Ease factor: {schedule.ease_factor:.2f}")
        console.print(f"  Status: {schedule.status.value}")
    except (RevisionError, ValidationError) as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def next_due(
    schedule_id: int,
    now: Optional[datetime] = typer.Option(None, help="Reference time (default: now)")
):
    """Show the next actionable checkpoint of a schedule"""
    db = SessionLocal()
    try:
        due = get_next_due(db, schedule_id, now)
        if due is None:
            console.print(f"[yellow]Nothing left to schedule for {schedule_id}[/yellow]")
            return
        colour = "red" if due.is_overdue else "cyan"
        console.print(f"[{colour}]{_due_text(due)}[/{colour}] (scheduled {_fmt(due.scheduled_at)})")
    except RevisionError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def due(
    owner_id: str,
    now: Optional[datetime] = typer.Option(None, help="Reference time (default: now)"),
    upcoming: bool = typer.Option(False, "--upcoming", help="Include revisions not yet due")
):
    """List an owner's revisions in the order they should be done"""
    db = SessionLocal()
    try:
        entries = list_due_for_owner(db, owner_id, now, include_upcoming=upcoming)
        if not entries:
            console.print(f"[green]Nothing due for {owner_id}[/green]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right")
        table.add_column("Schedule", style="cyan", justify="right")
        table.add_column("Problem", style="green")
        table.add_column("Checkpoint", style="yellow")
        table.add_column("Due", style="blue")
        table.add_column("Overdue", style="red", justify="right")
        table.add_column("Priority", justify="right")

        for i, entry in enumerate(entries, 1):
            table.add_row(
                str(i),
                str(entry.schedule_id),
                entry.item_id,
                entry.due.checkpoint.value,
                _fmt(entry.effective_next_due),
                str(entry.due.days_overdue) if entry.due.is_overdue else "-",
                str(entry.queue_priority)
            )
        console.print(table)
    finally:
        db.close()


@app.command()
def queue(
    schedule_id: int,
    priority: int = typer.Option(0, help="Higher comes first among equally overdue revisions"),
    position: Optional[int] = typer.Option(None, help="Manual position in the queue"),
    remove: bool = typer.Option(False, "--remove", help="Take the schedule out of the queue")
):
    """Add, reorder or remove a schedule in the revision queue"""
    db = SessionLocal()
    try:
        if remove:
            run_with_retry(remove_from_queue, db, schedule_id)
            console.print(f"[green]✓[/green] Schedule {schedule_id} removed from queue")
        else:
            command = SetQueueState(priority=priority, position=position)
            run_with_retry(set_queue_state, db, schedule_id, command.priority, command.position)
            console.print(f"[green]✓[/green] Schedule {schedule_id} queued with priority {priority}")
    except (RevisionError, ValidationError) as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def pause(
    schedule_id: int,
    until: Optional[datetime] = typer.Option(None, help="Resume automatically after this time")
):
    """Pause reminders for a schedule"""
    db = SessionLocal()
    try:
        run_with_retry(pause_schedule, db, schedule_id, until)
        console.print(f"[green]✓[/green] Schedule {schedule_id} paused" + (f" until {_fmt(until)}" if until else ""))
    except RevisionError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def resume(schedule_id: int):
    """Resume a paused schedule"""
    db = SessionLocal()
    try:
        schedule = run_with_retry(resume_schedule, db, schedule_id)
        console.print(f"[green]✓[/green] Schedule {schedule_id} is {schedule.status.value}")
    except RevisionError as e:
        _fail(e)
    finally:
        db.close()


@app.command(name="reschedule")
def reschedule_command(
    schedule_id: int,
    new_date: datetime = typer.Option(..., help="New date for the revision"),
    checkpoint: Optional[str] = typer.Option(None, help="Checkpoint to move (default: the next due one)")
):
    """Move a pending revision to another date"""
    db = SessionLocal()
    try:
        run_with_retry(reschedule, db, schedule_id, new_date, checkpoint)
        console.print(f"[green]✓[/green] Schedule {schedule_id} rescheduled to {_fmt(new_date)}")
    except RevisionError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def remove_item(owner_id: str, item_id: str):
    """Stop tracking a problem that was removed (soft delete)"""
    db = SessionLocal()
    try:
        schedule = get_schedule_for_item(db, owner_id, item_id)
        run_with_retry(deactivate_schedule, db, schedule.id)
        console.print(f"[green]✓[/green] Stopped tracking {item_id}")
    except RevisionError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def show(
    schedule_id: int,
    now: Optional[datetime] = typer.Option(None, help="Reference time (default: now)")
):
    """Show a schedule's checkpoints, metrics and history"""
    db = SessionLocal()
    try:
        schedule = get_schedule(db, schedule_id)
        summary = schedule_summary(schedule, now)

        console.print(f"\n[bold]Revision Schedule {schedule.id}[/bold]")
        console.print(f"  Owner: {schedule.owner_id}")
        console.print(f"  Problem: {schedule.item_id} ({schedule.last_difficulty.value})")
        console.print(f"  Status: {summary.status.value}")
        console.print(f"  Next: {_due_text(summary.next_due)}")
        console.print(f"  Revisions: {summary.total_revisions}, success rate {summary.success_rate:.0f}%")
        console.print(f"  Average effectiveness: {summary.average_effectiveness:.2f}")
        console.print(f"  Ease factor: {summary.ease_factor:.2f}, interval {summary.current_interval:g} day(s)")
        if summary.in_queue:
            console.print(f"  In queue (priority {summary.queue_priority})")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Checkpoint", style="cyan")
        table.add_column("Scheduled", style="yellow")
        table.add_column("Completed", style="green")
        table.add_column("Effectiveness", justify="right")
        for cp in summary.checkpoints:
            table.add_row(
                cp.name.value,
                _fmt(cp.scheduled_at) if cp.scheduled else "no",
                _fmt(cp.completed_at),
                f"{cp.effectiveness:.2f}" if cp.effectiveness is not None else "-"
            )
        console.print(table)

        if schedule.history:
            console.print(f"\n[cyan]Recent revisions:[/cyan]")
            for event in schedule.history[-5:]:
                result = "remembered" if event.remembered else "forgot"
                console.print(
                    f"  #{event.sequence_number} {_fmt(event.completed_at)} - {event.checkpoint.value} - "
                    f"{result} ({event.effectiveness_score:.2f})"
                )
    except RevisionError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def stats(
    owner_id: str,
    now: Optional[datetime] = typer.Option(None, help="Reference time (default: now)")
):
    """Show revision statistics for an owner"""
    db = SessionLocal()
    try:
        result = revision_stats(list_schedules(db, owner_id), now)

        console.print(f"\n[bold]Revision Statistics - {owner_id}[/bold]\n")
        console.print(f"  Active: {result.total_active}")
        console.print(f"  Paused: {result.total_paused}")
        console.print(f"  Completed: {result.total_completed}")
        console.print(f"  [red]Overdue: {result.total_overdue}[/red]")
        console.print(f"  Pending today: {result.pending_today}")
        console.print(f"  Pending this week: {result.pending_week}")
        console.print(f"  Checkpoint completion: {result.completion_rate}%")
        console.print(f"  Average effectiveness: {result.average_effectiveness:.2f}")
    finally:
        db.close()


@app.command()
def upcoming(
    owner_id: str,
    start: Optional[datetime] = typer.Option(None, help="Window start (default: today)"),
    end: Optional[datetime] = typer.Option(None, help="Window end (default: a week after start)")
):
    """Show how many revisions fall due on each upcoming day"""
    db = SessionLocal()
    try:
        schedules = list_schedules(db, owner_id)
        result = upcoming_by_day(schedules, start, end)
        if not result.total_upcoming:
            console.print(f"[green]No upcoming revisions for {owner_id}[/green]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Date", style="cyan")
        table.add_column("Revisions", style="yellow", justify="right")
        for day, count in result.by_day.items():
            table.add_row(day.isoformat(), str(count))
        console.print(table)
        console.print(f"Total: {result.total_upcoming}")
    finally:
        db.close()


@app.command()
def reminders(now: Optional[datetime] = typer.Option(None, help="Reference time (default: now)")):
    """Count overdue revisions per owner, for the reminder job"""
    db = SessionLocal()
    try:
        counts = {}
        for schedule, _ in iter_overdue_schedules(db, now):
            counts[schedule.owner_id] = counts.get(schedule.owner_id, 0) + 1

        if not counts:
            console.print("[green]No overdue revisions[/green]")
            return
        for owner, count in counts.items():
            console.print(f"  {owner}: {count} overdue")
    finally:
        db.close()


@app.command(name="export-history")
def export_history_command(
    owner_id: str,
    file_path: str = typer.Option("revision_history.csv", help="CSV file to write")
):
    """Export an owner's revision history to CSV"""
    db = SessionLocal()
    try:
        rows = export_history(db, owner_id, file_path)
        console.print(f"[green]✓[/green] Exported {rows} revisions to {file_path}")
    finally:
        db.close()


@app.command(name="list")
def list_command(
    owner_id: str,
    status: Optional[ScheduleStatus] = typer.Option(None, help="Filter by status"),
    now: Optional[datetime] = typer.Option(None, help="Reference time for the overdue filter")
):
    """List an owner's schedules"""
    db = SessionLocal()
    try:
        schedules = list_schedules(db, owner_id, status=status, now=now)
        if not schedules:
            console.print(f"[yellow]No schedules found for {owner_id}[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Problem", style="green")
        table.add_column("Status")
        table.add_column("Revisions", justify="right")
        table.add_column("Next", style="yellow")
        for schedule in schedules:
            summary = schedule_summary(schedule, now)
            table.add_row(
                str(schedule.id),
                schedule.item_id,
                summary.status.value,
                str(summary.total_revisions),
                _due_text(summary.next_due)
            )
        console.print(table)
    finally:
        db.close()


if __name__ == "__main__":
    app()
