# -*- coding: utf-8 -*-
import asyncio
import typing as t
from datetime import date

from fastmcp import FastMCP

from tracker.config import Settings
from tracker.derive import day_of_week, days_until_due, format_display_date, urgency_level
from tracker.export import (
    CLASS_SUMMARY_COLUMNS,
    MASTERLIST_COLUMNS,
    TODO_COLUMNS,
    class_summary_records,
    clipboard_text,
    masterlist_records,
    to_csv,
    todo_records,
)
from tracker.logconfig import configure_logging
from tracker.models import Assignment
from tracker.persistence import Backend, InMemoryBackend, SupabaseBackend, assignment_to_row, class_to_row
from tracker.store import TrackerStore
from tracker.todo import todo_items, todo_progress


def assignment_view(assignment: Assignment, today: t.Optional[date] = None) -> dict[str, t.Any]:
    """Stored fields plus the derived ones a client needs to render a row."""
    days = days_until_due(assignment.due_date, today)
    return {
        **assignment_to_row(assignment),
        "days_until_due": days,
        "day_of_week": day_of_week(assignment.due_date),
        "display_date": format_display_date(assignment.due_date),
        "urgency": urgency_level(days, assignment.status).value,
    }


def format_assignments(assignments: list[Assignment], today: t.Optional[date] = None) -> str:
    """Formats assignments as a plain text table.

    :return: Formatted table string of the given assignments.
    """
    if not assignments:
        return "📚 No assignments found."

    lines = []
    lines.append("📚 ASSIGNMENTS")
    lines.append("=" * 100)
    lines.append(f"{'#':<4} {'Class':<12} {'Title':<35} {'Due':<16} {'Days':<6} {'Status':<12}")
    lines.append("-" * 100)

    for idx, a in enumerate(assignments, 1):
        title = a.title[:34] if len(a.title) > 34 else a.title
        course = a.class_name[:11] if len(a.class_name) > 11 else a.class_name
        due = f"{day_of_week(a.due_date)} {format_display_date(a.due_date)}"
        days = days_until_due(a.due_date, today)
        lines.append(
            f"{idx:<4} {course:<12} {title:<35} {due:<16} {days:<6} {a.status.label or '—':<12}"
        )

    lines.append("=" * 100)
    lines.append(f"Total: {len(assignments)} assignment(s)")
    return "\n".join(lines)


def format_todo(assignments: list[Assignment]) -> str:
    """Formats the to-do list with its progress line."""
    items = todo_items(assignments)
    if not items:
        return "✅ Your to-do list is empty."

    progress = todo_progress(assignments)
    lines = []
    lines.append(f"✅ TO-DO ({progress.completed}/{progress.total} done)")
    lines.append("=" * 80)
    for item in items:
        mark = "x" if item.todo_completed else " "
        lines.append(f"[{mark}] {item.todo_priority.value:<5} {item.due_date.isoformat()}  {item.class_name}: {item.title}")
    return "\n".join(lines)


def create_server(store: TrackerStore) -> FastMCP:
    """Build an MCP server whose tools operate on ``store``."""
    mcp = FastMCP("CourseworkTracker")

    @mcp.tool()
    def list_assignments() -> list[dict[str, t.Any]]:
        """Lists all assignments with days until due and urgency.

        :return: A list of assignment dictionaries.
        """
        today = store.today()
        return [assignment_view(a, today) for a in store.assignments]

    @mcp.tool()
    def show_assignments() -> str:
        """Displays all assignments as a formatted table."""
        return format_assignments(store.assignments, store.today())

    @mcp.tool()
    def add_assignment(
            class_id: str,
            title: str,
            due_date: str,
            type: str = "Homework",
            due_time: str = "",
            priority: str = "Medium",
            notes: str = "",
            weight: t.Optional[float] = None,
    ) -> dict[str, t.Any]:
        """Creates an assignment for a class.

        :param class_id: Id of the owning class.
        :param title: Title of the assignment.
        :param due_date: Due date as YYYY-MM-DD.
        :param type: Homework, Reading, Quiz, Project, Exam, Coding, Recitation or Other.
        :param due_time: Optional display time, e.g. "11:59 PM".
        :param priority: High, Medium or Low.
        :param notes: Optional notes.
        :param weight: Optional points or percentage.
        :return: The created assignment.
        """
        course = store.get_class(class_id)
        assignment = store.add_assignment(
            class_id=course.id,
            class_name=course.display_name,
            title=title,
            due_date=due_date,
            type=type,
            due_time=due_time,
            priority=priority,
            notes=notes,
            weight=weight,
        )
        return assignment_view(assignment, store.today())

    @mcp.tool()
    def update_assignment(assignment_id: str, fields: dict[str, t.Any]) -> dict[str, t.Any]:
        """Updates the given fields of an assignment."""
        return assignment_view(store.update_assignment(assignment_id, **fields), store.today())

    @mcp.tool()
    def delete_assignment(assignment_id: str) -> str:
        """Deletes an assignment."""
        store.delete_assignment(assignment_id)
        return f"Deleted {assignment_id}"

    @mcp.tool()
    def set_status(assignment_id: str, status: str) -> dict[str, t.Any]:
        """Sets the status (Not Started, In Progress, Submitted, Completed, Overdue)."""
        return assignment_view(store.set_status(assignment_id, status), store.today())

    @mcp.tool()
    def toggle_complete(assignment_id: str) -> dict[str, t.Any]:
        """Toggles the done checkbox; status becomes Completed or Not Started."""
        return assignment_view(store.toggle_simple_complete(assignment_id), store.today())

    @mcp.tool()
    def toggle_todo(assignment_id: str) -> dict[str, t.Any]:
        """Adds the assignment to, or removes it from, the to-do list."""
        return assignment_view(store.toggle_todo_membership(assignment_id), store.today())

    @mcp.tool()
    def toggle_todo_done(assignment_id: str) -> dict[str, t.Any]:
        """Checks or unchecks the assignment on the to-do list."""
        return assignment_view(store.toggle_todo_completion(assignment_id), store.today())

    @mcp.tool()
    def set_todo_priority(assignment_id: str, priority: str) -> dict[str, t.Any]:
        """Sets the to-do priority (High or Low)."""
        return assignment_view(store.set_todo_priority(assignment_id, priority), store.today())

    @mcp.tool()
    def show_todo() -> str:
        """Displays the to-do list, high priority first."""
        return format_todo(store.assignments)

    @mcp.tool()
    def list_classes() -> list[dict[str, t.Any]]:
        """Lists all classes."""
        return [class_to_row(c) for c in store.classes]

    @mcp.tool()
    def add_class(
            course_code: str,
            course_title: str = "",
            instructor: str = "",
            schedule: str = "",
            color: str = "#E5D7FF",
    ) -> dict[str, t.Any]:
        """Creates a class."""
        return class_to_row(store.add_class(
            course_code=course_code,
            course_title=course_title,
            instructor=instructor,
            schedule=schedule,
            color=color,
        ))

    @mcp.tool()
    def update_class(class_id: str, fields: dict[str, str]) -> dict[str, t.Any]:
        """Updates course_code, course_title, instructor, schedule or color."""
        return class_to_row(store.update_class(class_id, **fields))

    @mcp.tool()
    def delete_class(class_id: str) -> str:
        """Deletes a class. Its assignments are kept."""
        store.delete_class(class_id)
        return f"Deleted {class_id}"

    @mcp.tool()
    def sweep_overdue() -> list[dict[str, t.Any]]:
        """Marks past-due unfinished assignments Overdue and returns them."""
        today = store.today()
        return [assignment_view(a, today) for a in store.sweep()]

    @mcp.tool()
    def export_csv(kind: str = "masterlist") -> str:
        """Exports masterlist, todo or classes as CSV text."""
        if kind == "todo":
            return to_csv(todo_records(store.assignments), TODO_COLUMNS)
        if kind == "classes":
            return to_csv(class_summary_records(store.classes, store.assignments), CLASS_SUMMARY_COLUMNS)
        return to_csv(masterlist_records(store.assignments, store.today()), MASTERLIST_COLUMNS)

    @mcp.tool()
    def copy_assignments() -> str:
        """Tab-separated lines for pasting into a spreadsheet."""
        return clipboard_text(store.assignments)

    return mcp


def build_backend(settings: Settings) -> Backend:
    if settings.has_remote_store:
        return SupabaseBackend(
            settings.supabase_url, settings.supabase_key, settings.user_id, timeout=settings.http_timeout
        )
    return InMemoryBackend()


async def serve(settings: Settings) -> None:
    async with TrackerStore(build_backend(settings), sweep_interval=settings.sweep_interval) as store:
        await create_server(store).run_async()


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    asyncio.run(serve(settings))
