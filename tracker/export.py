"""
Export projections.

Turns the assignment and class collections into flat records, then into CSV
text, a styled spreadsheet or tab-separated clipboard text. Nothing here
mutates its inputs.
"""
from __future__ import annotations

import typing as t
from datetime import date

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from tracker.derive import SOON_THRESHOLD_DAYS, contrast_text_color, days_until_due
from tracker.models import Assignment, AssignmentStatus, CourseClass, ToDoPriority
from tracker.todo import todo_items

Record = dict[str, t.Any]

MASTERLIST_COLUMNS = [
    "To-Do", "Status", "Due Date", "Due Time", "Class", "Type",
    "Assignment", "Days Until Due", "Priority", "Notes", "Completed",
]
TODO_COLUMNS = ["Completed", "Priority", "Date", "Class", "Task", "Notes"]
CLASS_SUMMARY_COLUMNS = [
    "Course Code", "Course Title", "Professor", "Schedule",
    "Total Assignments", "Completed", "Percent Complete",
]

FILENAME_PREFIXES = {
    "masterlist": "assignments",
    "todo": "todo-list",
    "classes": "classes-summary",
}

# ARGB fills keyed by band name
BAND_COLORS = {
    "done": "FFD1D5DB",
    "overdue": "FFFEE2E2",
    "soon": "FFFEF3C7",
    "normal": "FFFFFFFF",
    "todo_high": "FFFEE2E2",
    "todo_low": "FFBBF7D0",
    "complete": "FFBBF7D0",
    "high": "FFFEF3C7",
    "medium": "FFFED7AA",
    "low": "FFFEE2E2",
    "none": "FFFFFFFF",
}
# Status cell on the masterlist; UNSET stays white
STATUS_COLORS = {
    AssignmentStatus.NOT_STARTED: "FFFEE2E2",
    AssignmentStatus.IN_PROGRESS: "FFFED7AA",
    AssignmentStatus.SUBMITTED: "FFD1D5DB",
    AssignmentStatus.COMPLETED: "FFBBF7D0",
    AssignmentStatus.OVERDUE: "FFFECACA",
}
TODO_PRIORITY_COLORS = {
    ToDoPriority.HIGH: "FFFEE2E2",
    ToDoPriority.LOW: "FFBBF7D0",
}
HEADER_FILL = "FF4B5563"
GRID_COLOR = "FFE5E7EB"


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def completion_percent(completed: int, total: int) -> float:
    """Percentage rounded to one decimal; 0 for an empty class."""
    if total == 0:
        return 0
    return round(completed / total * 100, 1)


def percent_label(completed: int, total: int) -> str:
    if total == 0:
        return "0%"
    return f"{completion_percent(completed, total):.1f}%"


# -----------------------------
# Records
# -----------------------------

def masterlist_records(assignments: t.Iterable[Assignment], today: t.Optional[date] = None) -> list[Record]:
    return [
        {
            "To-Do": _yes_no(a.added_to_todo),
            "Status": a.status.label,
            "Due Date": a.due_date.isoformat(),
            "Due Time": a.due_time or "",
            "Class": a.class_name,
            "Type": a.type.value,
            "Assignment": a.title,
            "Days Until Due": days_until_due(a.due_date, today),
            "Priority": a.todo_priority.value,
            "Notes": a.notes or "",
            "Completed": _yes_no(a.completed),
        }
        for a in assignments
    ]


def todo_records(assignments: t.Iterable[Assignment]) -> list[Record]:
    """Rows for the current to-do list, in to-do order."""
    return [
        {
            "Completed": _yes_no(a.todo_completed),
            "Priority": a.todo_priority.value,
            "Date": a.due_date.isoformat(),
            "Class": a.class_name,
            "Task": a.title,
            "Notes": a.notes or "",
        }
        for a in todo_items(assignments)
    ]


def class_summary_records(
    classes: t.Iterable[CourseClass], assignments: t.Iterable[Assignment]
) -> list[Record]:
    assignments = list(assignments)
    records = []
    for course in classes:
        owned = [a for a in assignments if a.class_id == course.id]
        completed = sum(1 for a in owned if a.status.is_done)
        records.append({
            "Course Code": course.course_code,
            "Course Title": course.course_title,
            "Professor": course.instructor,
            "Schedule": course.schedule,
            "Total Assignments": len(owned),
            "Completed": completed,
            "Percent Complete": percent_label(completed, len(owned)),
        })
    return records


def clipboard_text(assignments: t.Iterable[Assignment]) -> str:
    """One tab-separated line per assignment: class, type, title, due date, status."""
    return "\n".join(
        "\t".join([a.class_name, a.type.value, a.title, a.due_date.isoformat(), a.status.label])
        for a in assignments
    )


def export_filename(kind: str, ext: str, today: t.Optional[date] = None) -> str:
    """e.g. ``assignments-2025-11-13.csv``."""
    today = today or date.today()
    return f"{FILENAME_PREFIXES[kind]}-{today.isoformat()}.{ext}"


# -----------------------------
# Bands
# -----------------------------

def masterlist_band(assignment: Assignment, days_until: int) -> str:
    if assignment.status.is_done:
        return "done"
    if days_until < 0:
        return "overdue"
    if days_until <= SOON_THRESHOLD_DAYS:
        return "soon"
    return "normal"


def todo_band(assignment: Assignment) -> str:
    if assignment.todo_completed:
        return "done"
    return "todo_high" if assignment.todo_priority is ToDoPriority.HIGH else "todo_low"


def percent_band(percent: float) -> str:
    """100 / >=75 / >=50 / >0 / 0."""
    if percent >= 100:
        return "complete"
    if percent >= 75:
        return "high"
    if percent >= 50:
        return "medium"
    if percent > 0:
        return "low"
    return "none"


# -----------------------------
# Writers
# -----------------------------

def to_csv(records: list[Record], columns: list[str]) -> str:
    """UTF-8 CSV text with a header row, even when there are no records."""
    return pd.DataFrame(records, columns=columns).to_csv(index=False, lineterminator="\n")


def _fill(argb: str) -> PatternFill:
    return PatternFill(fill_type="solid", fgColor=argb)


def _style_sheet(ws: Worksheet, widths: list[int]) -> None:
    side = Side(style="thin", color=GRID_COLOR)
    for idx, cell in enumerate(ws[1]):
        cell.font = Font(bold=True, color="FFFFFFFF")
        cell.fill = _fill(HEADER_FILL)
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[cell.column_letter].width = widths[idx]
    ws.row_dimensions[1].height = 25
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.border = Border(top=side, left=side, bottom=side, right=side)
            cell.alignment = Alignment(vertical="center")
    ws.freeze_panes = "A2"


def _shade_row(ws: Worksheet, row_idx: int, band: str) -> None:
    for cell in ws[row_idx]:
        cell.fill = _fill(BAND_COLORS[band])


def write_workbook(
    target: t.Any,
    assignments: t.Iterable[Assignment],
    classes: t.Iterable[CourseClass],
    today: t.Optional[date] = None,
) -> None:
    """Write all three exports to one workbook, one sheet each.

    ``target`` is a path or a binary file-like object.
    """
    assignments = list(assignments)
    classes = list(classes)
    tasks = todo_items(assignments)

    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        pd.DataFrame(masterlist_records(assignments, today), columns=MASTERLIST_COLUMNS).to_excel(
            writer, sheet_name="Assignments", index=False
        )
        ws = writer.sheets["Assignments"]
        _style_sheet(ws, [10, 15, 12, 10, 20, 12, 35, 15, 12, 30, 12])
        for row_idx, assignment in enumerate(assignments, start=2):
            days = days_until_due(assignment.due_date, today)
            _shade_row(ws, row_idx, masterlist_band(assignment, days))
            ws.cell(row=row_idx, column=2).font = Font(bold=True)
            ws.cell(row=row_idx, column=2).fill = _fill(STATUS_COLORS.get(assignment.status, BAND_COLORS["normal"]))
            ws.cell(row=row_idx, column=5).font = Font(bold=True)
            if not assignment.status.is_done and days < 0:
                ws.cell(row=row_idx, column=8).font = Font(bold=True, color="FFDC2626")
            elif not assignment.status.is_done and days <= SOON_THRESHOLD_DAYS:
                ws.cell(row=row_idx, column=8).font = Font(bold=True, color="FFF59E0B")

        pd.DataFrame(todo_records(tasks), columns=TODO_COLUMNS).to_excel(
            writer, sheet_name="To-Do List", index=False
        )
        ws = writer.sheets["To-Do List"]
        _style_sheet(ws, [12, 12, 12, 20, 35, 30])
        for row_idx, task in enumerate(tasks, start=2):
            _shade_row(ws, row_idx, todo_band(task))
            ws.cell(row=row_idx, column=2).font = Font(bold=True)
            ws.cell(row=row_idx, column=2).fill = _fill(TODO_PRIORITY_COLORS[task.todo_priority])
            ws.cell(row=row_idx, column=4).font = Font(bold=True)

        summary = class_summary_records(classes, assignments)
        pd.DataFrame(summary, columns=CLASS_SUMMARY_COLUMNS).to_excel(
            writer, sheet_name="Classes", index=False
        )
        ws = writer.sheets["Classes"]
        _style_sheet(ws, [15, 30, 20, 20, 18, 15, 18])
        for row_idx, (course, record) in enumerate(zip(classes, summary), start=2):
            percent = completion_percent(record["Completed"], record["Total Assignments"])
            _shade_row(ws, row_idx, percent_band(percent))
            color = course.color.lstrip("#")
            if course.color.startswith("#") and len(color) == 6:
                code_cell = ws.cell(row=row_idx, column=1)
                code_cell.fill = _fill("FF" + color.upper())
                code_cell.font = Font(bold=True, color="FF" + contrast_text_color(course.color).lstrip("#"))
            percent_cell = ws.cell(row=row_idx, column=7)
            if percent >= 100:
                percent_cell.font = Font(bold=True, color="FF16A34A")
            elif percent < 50:
                percent_cell.font = Font(bold=True, color="FFDC2626")
            else:
                percent_cell.font = Font(bold=True)
