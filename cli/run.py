# -*- coding: utf-8 -*-
import functools
import typing as t
from datetime import date

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from syllabus_server.pdf_utils import read_syllabus_text
from syllabus_server.review import ReviewDraft, ReviewItem
from syllabus_server.server import extract_assignments
from tracker.calendar_view import month_grid
from tracker.config import Settings
from tracker.derive import Urgency, contrast_text_color, day_of_week, days_until_due, format_display_date, urgency_level
from tracker.errors import ExtractionError, PersistenceError, TrackerError, ValidationError
from tracker.export import (
    CLASS_SUMMARY_COLUMNS,
    MASTERLIST_COLUMNS,
    TODO_COLUMNS,
    class_summary_records,
    clipboard_text,
    export_filename,
    masterlist_records,
    to_csv,
    todo_records,
    write_workbook,
)
from tracker.logconfig import configure_logging
from tracker.models import Assignment, AssignmentStatus, AssignmentType, CourseClass, Priority, ToDoPriority
from tracker.persistence import JsonFileBackend, SupabaseBackend
from tracker.stats import class_stats, overall_stats
from tracker.store import TrackerStore
from tracker.todo import todo_items, todo_progress

console = Console()

URGENCY_STYLES = {
    Urgency.OVERDUE: "bold red",
    Urgency.SOON: "bold yellow",
    Urgency.NONE: "",
}


def handle_errors(func: t.Callable) -> t.Callable:
    """Print tracker errors instead of a traceback and exit non-zero."""
    @functools.wraps(func)
    def wrapper(*args: t.Any, **kwargs: t.Any) -> t.Any:
        try:
            return func(*args, **kwargs)
        except TrackerError as e:
            console.print(f"[red]Error:[/red] {e.user_message} [dim]({e})[/dim]")
            raise SystemExit(1)
    return wrapper


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def resolve_assignment(store: TrackerStore, id_prefix: str) -> Assignment:
    """Find an assignment by its id or a unique id prefix."""
    matches = [a for a in store.assignments if a.id.startswith(id_prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        # Let the store raise its NotFoundError
        return store.get_assignment(id_prefix)
    raise ValidationError(f"Id prefix {id_prefix!r} matches {len(matches)} assignments")


def resolve_class(store: TrackerStore, code_or_id: str) -> CourseClass:
    course = store.find_class_by_code(code_or_id)
    if course is not None:
        return course
    return store.get_class(code_or_id)


def create_assignment_table(assignments: list[Assignment], today: date, title: str = "📚 Assignments") -> Table:
    """Create a table of assignments, highlighting overdue and due-soon rows."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Id", style="dim", width=8)
    table.add_column("Class", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Type")
    table.add_column("Due", style="yellow")
    table.add_column("Days", justify="right")
    table.add_column("Status")
    table.add_column("To-Do", justify="center")

    for a in assignments:
        days = days_until_due(a.due_date, today)
        due = f"{day_of_week(a.due_date)} {format_display_date(a.due_date)}"
        if a.due_time:
            due += f" {a.due_time}"
        table.add_row(
            a.id[:8],
            a.class_name,
            truncate_title(a.title),
            a.type.value,
            due,
            Text(str(days), style=URGENCY_STYLES[urgency_level(days, a.status)]),
            a.status.label or "[dim]—[/dim]",
            "✓" if a.added_to_todo else "",
        )
    return table


def _open_store(settings: Settings, data_path: str) -> TrackerStore:
    if settings.has_remote_store:
        backend = SupabaseBackend(
            settings.supabase_url, settings.supabase_key, settings.user_id, timeout=settings.http_timeout
        )
    else:
        backend = JsonFileBackend(data_path)
    store = TrackerStore(backend)
    store.load()
    try:
        store.sweep()
    except PersistenceError as e:
        console.print(f"[yellow]Warning:[/yellow] {e.user_message} [dim]({e})[/dim]")
    return store


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--data", "data_path", default="tracker.json", show_default=True,
              type=click.Path(dir_okay=False), help="Local data file (ignored when Supabase is configured).")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
@handle_errors
def main(ctx: click.Context, data_path: str, verbose: bool) -> None:
    """Track coursework: assignments, classes, a to-do list and exports."""
    settings = Settings.from_env()
    configure_logging("DEBUG" if verbose else settings.log_level)
    ctx.obj = _open_store(settings, data_path)


@main.command("list")
@click.option("--class", "class_code", default=None, help="Only this class (code or id).")
@click.pass_obj
@handle_errors
def list_assignments(store: TrackerStore, class_code: t.Optional[str]) -> None:
    """Show the masterlist."""
    assignments = store.assignments
    if class_code:
        assignments = store.assignments_for_class(resolve_class(store, class_code).id)
    if not assignments:
        console.print("📚 No assignments found.")
        return
    console.print(create_assignment_table(assignments, store.today()))

    stats = overall_stats(assignments)
    stats_text = Text()
    stats_text.append("Total: ", style="white")
    stats_text.append(f"{stats.total}", style="bold")
    stats_text.append("   Completed: ", style="white")
    stats_text.append(f"{stats.completed}", style="bold green")
    stats_text.append("   Progress: ", style="white")
    stats_text.append(f"{stats.percent}%", style="bold cyan")
    console.print(stats_text)


@main.command("add")
@click.argument("title")
@click.option("--class", "class_code", required=True, help="Class code or id.")
@click.option("--due", "due_date", required=True, help="Due date, YYYY-MM-DD.")
@click.option("--type", "type_", type=click.Choice([m.value for m in AssignmentType]), default="Homework")
@click.option("--time", "due_time", default="", help="Display time, e.g. '11:59 PM'.")
@click.option("--priority", type=click.Choice([m.value for m in Priority]), default="Medium")
@click.option("--notes", default="")
@click.option("--weight", type=float, default=None)
@click.pass_obj
@handle_errors
def add_assignment(store: TrackerStore, title: str, class_code: str, due_date: str, type_: str,
                   due_time: str, priority: str, notes: str, weight: t.Optional[float]) -> None:
    """Add an assignment."""
    course = resolve_class(store, class_code)
    assignment = store.add_assignment(
        class_id=course.id,
        class_name=course.display_name,
        title=title,
        due_date=due_date,
        type=type_,
        due_time=due_time,
        priority=priority,
        notes=notes,
        weight=weight,
    )
    console.print(f"[green]✓[/green] Added {assignment.title} [dim]({assignment.id[:8]})[/dim]")


@main.command("status")
@click.argument("assignment_id")
@click.argument("status", type=click.Choice([m.value for m in AssignmentStatus if m is not AssignmentStatus.UNSET]))
@click.pass_obj
@handle_errors
def set_status(store: TrackerStore, assignment_id: str, status: str) -> None:
    """Set an assignment's status."""
    assignment = store.set_status(resolve_assignment(store, assignment_id).id, status)
    console.print(f"[green]✓[/green] {assignment.title}: {assignment.status.value}")


@main.command("toggle-complete")
@click.argument("assignment_id")
@click.pass_obj
@handle_errors
def toggle_complete(store: TrackerStore, assignment_id: str) -> None:
    """Check or uncheck an assignment as done."""
    assignment = store.toggle_simple_complete(resolve_assignment(store, assignment_id).id)
    console.print(f"[green]✓[/green] {assignment.title}: {assignment.status.value}")


@main.command("delete")
@click.argument("assignment_id")
@click.pass_obj
@handle_errors
def delete_assignment(store: TrackerStore, assignment_id: str) -> None:
    """Delete an assignment."""
    assignment = resolve_assignment(store, assignment_id)
    store.delete_assignment(assignment.id)
    console.print(f"[green]✓[/green] Deleted {assignment.title}")


@main.command("sweep")
@click.pass_obj
@handle_errors
def sweep(store: TrackerStore) -> None:
    """Mark past-due assignments Overdue."""
    changed = store.sweep()
    console.print(f"{len(changed)} assignment(s) marked Overdue.")


# -----------------------------
# To-do list
# -----------------------------

@main.group("todo")
def todo() -> None:
    """Manage the personal to-do list."""


@todo.command("list")
@click.pass_obj
@handle_errors
def todo_list(store: TrackerStore) -> None:
    """Show the to-do list, high priority first."""
    assignments = store.assignments
    items = todo_items(assignments)
    if not items:
        console.print("✅ Your to-do list is empty.")
        return
    progress = todo_progress(assignments)
    table = Table(title=f"✅ To-Do ({progress.completed}/{progress.total} done)", header_style="bold magenta")
    table.add_column("", width=3)
    table.add_column("Id", style="dim", width=8)
    table.add_column("Priority")
    table.add_column("Date", style="yellow")
    table.add_column("Class", style="cyan")
    table.add_column("Task")
    for item in items:
        style = "dim strike" if item.todo_completed else ""
        table.add_row(
            "☑" if item.todo_completed else "☐",
            item.id[:8],
            Text(item.todo_priority.value, style="bold red" if item.todo_priority is ToDoPriority.HIGH else ""),
            item.due_date.isoformat(),
            item.class_name,
            Text(truncate_title(item.title), style=style),
        )
    console.print(table)


@todo.command("add")
@click.argument("assignment_id")
@click.pass_obj
@handle_errors
def todo_add(store: TrackerStore, assignment_id: str) -> None:
    """Put an assignment on the to-do list."""
    assignment = resolve_assignment(store, assignment_id)
    if assignment.added_to_todo:
        console.print(f"{assignment.title} is already on the to-do list.")
        return
    store.toggle_todo_membership(assignment.id)
    console.print(f"[green]✓[/green] Added {assignment.title} to the to-do list")


@todo.command("remove")
@click.argument("assignment_id")
@click.pass_obj
@handle_errors
def todo_remove(store: TrackerStore, assignment_id: str) -> None:
    """Take an assignment off the to-do list (the assignment is kept)."""
    assignment = resolve_assignment(store, assignment_id)
    if not assignment.added_to_todo:
        console.print(f"{assignment.title} is not on the to-do list.")
        return
    store.toggle_todo_membership(assignment.id)
    console.print(f"[green]✓[/green] Removed {assignment.title} from the to-do list")


@todo.command("done")
@click.argument("assignment_id")
@click.pass_obj
@handle_errors
def todo_done(store: TrackerStore, assignment_id: str) -> None:
    """Check or uncheck a to-do item."""
    assignment = store.toggle_todo_completion(resolve_assignment(store, assignment_id).id)
    state = "done" if assignment.todo_completed else "not done"
    console.print(f"[green]✓[/green] {assignment.title} marked {state}")


@todo.command("priority")
@click.argument("assignment_id")
@click.argument("priority", type=click.Choice([m.value for m in ToDoPriority]))
@click.pass_obj
@handle_errors
def todo_priority(store: TrackerStore, assignment_id: str, priority: str) -> None:
    """Set a to-do item's priority."""
    assignment = store.set_todo_priority(resolve_assignment(store, assignment_id).id, priority)
    console.print(f"[green]✓[/green] {assignment.title}: {assignment.todo_priority.value} priority")


# -----------------------------
# Classes
# -----------------------------

@main.group("class")
def classes() -> None:
    """Manage classes."""


@classes.command("add")
@click.argument("course_code")
@click.option("--title", "course_title", default="")
@click.option("--instructor", default="")
@click.option("--schedule", default="")
@click.option("--color", default="#E5D7FF")
@click.pass_obj
@handle_errors
def class_add(store: TrackerStore, course_code: str, course_title: str, instructor: str,
              schedule: str, color: str) -> None:
    """Add a class."""
    course = store.add_class(
        course_code=course_code,
        course_title=course_title,
        instructor=instructor,
        schedule=schedule,
        color=color,
    )
    console.print(f"[green]✓[/green] Added class {course.course_code} [dim]({course.id[:8]})[/dim]")


@classes.command("edit")
@click.argument("class_code")
@click.option("--code", "course_code", default=None)
@click.option("--title", "course_title", default=None)
@click.option("--instructor", default=None)
@click.option("--schedule", default=None)
@click.option("--color", default=None)
@click.pass_obj
@handle_errors
def class_edit(store: TrackerStore, class_code: str, **options: t.Optional[str]) -> None:
    """Edit a class's details."""
    changes = {k: v for k, v in options.items() if v is not None}
    course = store.update_class(resolve_class(store, class_code).id, **changes)
    console.print(f"[green]✓[/green] Updated {course.course_code}")


@classes.command("delete")
@click.argument("class_code")
@click.option("--yes", "-y", is_flag=True, help="Delete without asking.")
@click.pass_obj
@handle_errors
def class_delete(store: TrackerStore, class_code: str, yes: bool) -> None:
    """Delete a class. Its assignments are kept."""
    course = resolve_class(store, class_code)
    count = len(store.assignments_for_class(course.id))
    if not yes and not click.confirm(
        f"Delete {course.course_code}? Its {count} assignment(s) will be kept.", default=False
    ):
        return
    store.delete_class(course.id)
    console.print(f"[green]✓[/green] Deleted class {course.course_code}")


@classes.command("list")
@click.pass_obj
@handle_errors
def class_list(store: TrackerStore) -> None:
    """Show classes with their completion progress."""
    if not store.classes:
        console.print("No classes yet.")
        return
    assignments = store.assignments
    table = Table(title="🎓 My Classes", header_style="bold magenta")
    table.add_column("Code")
    table.add_column("Title")
    table.add_column("Instructor")
    table.add_column("Schedule")
    table.add_column("Done", justify="right")
    for course in store.classes:
        stats = class_stats(course.id, assignments)
        code_style = f"bold {contrast_text_color(course.color)}"
        if course.color.startswith("#"):
            code_style += f" on {course.color}"
        table.add_row(
            Text(course.course_code, style=code_style),
            course.course_title,
            course.instructor,
            course.schedule,
            f"{stats.completed}/{stats.total} ({stats.percent}%)",
        )
    console.print(table)


# -----------------------------
# Calendar
# -----------------------------

@main.command("calendar")
@click.option("--month", default=None, help="Month to show, YYYY-MM (default: this month).")
@click.pass_obj
@handle_errors
def show_calendar(store: TrackerStore, month: t.Optional[str]) -> None:
    """Show a month calendar of due dates."""
    today = store.today()
    year, month_num = today.year, today.month
    if month:
        try:
            year, month_num = (int(part) for part in month.split("-"))
            date(year, month_num, 1)
        except ValueError:
            raise ValidationError(f"Invalid month {month!r}; expected YYYY-MM") from None

    table = Table(title=date(year, month_num, 1).strftime("%B %Y"), show_lines=True)
    for label in ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"):
        table.add_column(label, width=14, vertical="top")
    for week in month_grid(year, month_num, store.assignments, today):
        cells = []
        for cell in week:
            if cell is None:
                cells.append("")
                continue
            text = Text(str(cell.day.day), style="bold reverse" if cell.is_today else "bold")
            for a in cell.assignments[:3]:
                text.append(f"\n{truncate_title(a.title, 12)}", style="dim" if a.status.is_done else "")
            if len(cell.assignments) > 3:
                text.append(f"\n+{len(cell.assignments) - 3} more", style="italic")
            cells.append(text)
        table.add_row(*cells)
    console.print(table)


# -----------------------------
# Export
# -----------------------------

@main.command("export")
@click.argument("kind", type=click.Choice(["masterlist", "todo", "classes"]))
@click.option("--format", "fmt", type=click.Choice(["csv", "xlsx", "clipboard"]), default="csv", show_default=True)
@click.option("--out", "out_path", default=None, type=click.Path(dir_okay=False),
              help="Output file (default: dated file name).")
@click.pass_obj
@handle_errors
def export(store: TrackerStore, kind: str, fmt: str, out_path: t.Optional[str]) -> None:
    """Export data as CSV, a spreadsheet, or clipboard text on stdout."""
    today = store.today()
    assignments = store.assignments

    if fmt == "clipboard":
        source = todo_items(assignments) if kind == "todo" else assignments
        click.echo(clipboard_text(source))
        return

    path = out_path or export_filename(kind, fmt, today)
    if fmt == "xlsx":
        write_workbook(path, assignments, store.classes, today)
    else:
        if kind == "todo":
            text = to_csv(todo_records(assignments), TODO_COLUMNS)
        elif kind == "classes":
            text = to_csv(class_summary_records(store.classes, assignments), CLASS_SUMMARY_COLUMNS)
        else:
            text = to_csv(masterlist_records(assignments, today), MASTERLIST_COLUMNS)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    console.print(f"[green]✓[/green] Exported {kind} to {path}")


# -----------------------------
# Syllabus import
# -----------------------------

@main.command("import-syllabus")
@click.argument("syllabus", type=str)
@click.option("--class", "class_code", required=True, help="Class code or id to import into.")
@click.option("--yes", "-y", is_flag=True, help="Import every extracted assignment without asking.")
@click.pass_obj
@handle_errors
def import_syllabus(store: TrackerStore, syllabus: str, class_code: str, yes: bool) -> None:
    """Extract assignments from a syllabus file with AI and add them.

    SYLLABUS: Path or URL of a PDF or text file.
    """
    course = resolve_class(store, class_code)

    try:
        with console.status(f"[bold green]Parsing syllabus for {course.course_code}..."):
            text = read_syllabus_text(syllabus)
            response = extract_assignments(
                text, course.course_code, course.course_title, model=Settings.from_env().extraction_model
            )
    except ExtractionError as e:
        console.print(Panel(
            f"[red]{e.user_message}[/red]\n[dim]{e}[/dim]\n\nAdd assignments manually with [bold]tracker add[/bold].",
            title="Parsing failed",
            border_style="red",
        ))
        raise SystemExit(1)

    draft = ReviewDraft.from_response(response)
    if not draft.items:
        console.print("No assignments found. Try adding them manually or paste the text more clearly.")
        return

    if yes:
        print_review_table(draft)
        for item in draft.exclude_invalid():
            console.print(f"[yellow]Skipping[/yellow] {item.title}: unreadable due date {item.due_date!r}")
    else:
        review_draft(draft)
        if not click.confirm(f"Add {draft.included_count} assignment(s) to {course.course_code}?", default=True):
            return

    added = store.add_assignments(draft.finalize(course))
    console.print(f"[green]✅ Added {len(added)} assignments to {course.course_code}[/green]")


REVIEW_HELP = "s N skip/keep, e N edit, r N remove, a add, blank when done"


def print_review_table(draft: ReviewDraft) -> None:
    problems = draft.problems()
    table = Table(title=f"Found {len(draft.items)} assignments", header_style="bold magenta")
    table.add_column("#", width=3)
    table.add_column("", width=3)
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Due", style="yellow")
    table.add_column("Weight", justify="right")
    for idx, item in enumerate(draft.items, 1):
        weight = f"{item.weight:g}" if item.weight is not None else ""
        due = f"{item.due_date} {item.due_time}".strip()
        if item.id in problems:
            due = f"[red]{due or '(none)'} ✗[/red]"
        table.add_row(str(idx), "✓" if item.included else "", item.title, item.type, due, weight)
    console.print(table)


def edit_review_item(draft: ReviewDraft, item: ReviewItem) -> None:
    types = [m.value for m in AssignmentType]
    draft.update(
        item.id,
        title=click.prompt("Title", default=item.title),
        type=click.prompt("Type", type=click.Choice(types),
                          default=item.type if item.type in types else AssignmentType.OTHER.value),
        due_date=click.prompt("Due date (YYYY-MM-DD)", default=item.due_date),
        due_time=click.prompt("Due time", default=item.due_time, show_default=bool(item.due_time)),
        notes=click.prompt("Notes", default=item.notes, show_default=bool(item.notes)),
    )


def review_draft(draft: ReviewDraft) -> None:
    """Let the user correct extracted rows until every included row can be saved."""
    while True:
        print_review_table(draft)
        command = click.prompt(f"Review ({REVIEW_HELP})", default="", show_default=False).strip()
        if not command:
            problems = draft.problems()
            if not problems:
                return
            for idx, item in enumerate(draft.items, 1):
                if item.id in problems:
                    console.print(f"[red]#{idx}:[/red] {problems[item.id]} Edit or skip it.")
            continue

        action, _, rest = command.partition(" ")
        action = action.lower()
        if action == "a":
            item = draft.add_blank()
            edit_review_item(draft, item)
            continue

        numbers = [int(s) for s in rest.replace(",", " ").split() if s.isdigit()]
        targets = [draft.items[n - 1] for n in dict.fromkeys(numbers) if 1 <= n <= len(draft.items)]
        if action not in ("s", "e", "r") or not targets:
            console.print(f"[yellow]Unrecognised command.[/yellow] Use: {REVIEW_HELP}")
            continue
        for item in targets:
            if action == "s":
                draft.set_included(item.id, not item.included)
            elif action == "e":
                edit_review_item(draft, item)
            else:
                draft.remove(item.id)


if __name__ == "__main__":
    main()
