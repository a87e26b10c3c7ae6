import io
from datetime import date

import pytest
from openpyxl import load_workbook

from tracker.export import (
    BAND_COLORS,
    CLASS_SUMMARY_COLUMNS,
    MASTERLIST_COLUMNS,
    STATUS_COLORS,
    TODO_COLUMNS,
    TODO_PRIORITY_COLORS,
    class_summary_records,
    clipboard_text,
    completion_percent,
    export_filename,
    masterlist_band,
    masterlist_records,
    percent_band,
    percent_label,
    to_csv,
    todo_records,
    write_workbook,
)
from tracker.models import Assignment, AssignmentStatus, AssignmentType, CourseClass, ToDoPriority

TODAY = date(2025, 11, 13)


@pytest.fixture
def classes():
    return [
        CourseClass(id="c1", course_code="CSE 262", course_title="Programming Languages",
                    instructor="Dr. Smith", schedule="Mon/Wed 10:00 AM", color="#1E3A8A"),
        CourseClass(id="c2", course_code="MATH 205", course_title="Linear Algebra", color="lavender"),
    ]


@pytest.fixture
def assignments():
    return [
        Assignment(id="a1", class_id="c1", class_name="CSE 262", title="Quiz 5",
                   due_date=date(2025, 11, 12), type=AssignmentType.QUIZ, status=AssignmentStatus.OVERDUE),
        Assignment(id="a2", class_id="c1", class_name="CSE 262", title="Project 2",
                   due_date=date(2025, 11, 14), type=AssignmentType.PROJECT, due_time="11:59 PM",
                   status=AssignmentStatus.IN_PROGRESS, added_to_todo=True, todo_priority=ToDoPriority.HIGH,
                   notes="Pair work"),
        Assignment(id="a3", class_id="c1", class_name="CSE 262", title="Reading 3",
                   due_date=date(2025, 11, 1), type=AssignmentType.READING,
                   status=AssignmentStatus.COMPLETED, completed=True),
        Assignment(id="a4", class_id="c1", class_name="CSE 262", title="HW 4",
                   due_date=date(2025, 11, 20), status=AssignmentStatus.SUBMITTED, completed=True,
                   added_to_todo=True, todo_completed=True),
    ]


def test_completion_percent_rounding():
    assert completion_percent(2, 4) == 50.0
    assert completion_percent(1, 3) == 33.3
    assert completion_percent(2, 3) == 66.7
    assert completion_percent(0, 0) == 0


def test_percent_label():
    assert percent_label(2, 4) == "50.0%"
    assert percent_label(0, 0) == "0%"
    assert percent_label(3, 3) == "100.0%"


def test_class_summary_counts_completed_and_submitted(classes, assignments):
    records = class_summary_records(classes, assignments)

    assert records[0] == {
        "Course Code": "CSE 262",
        "Course Title": "Programming Languages",
        "Professor": "Dr. Smith",
        "Schedule": "Mon/Wed 10:00 AM",
        "Total Assignments": 4,
        "Completed": 2,
        "Percent Complete": "50.0%",
    }
    assert records[1]["Total Assignments"] == 0
    assert records[1]["Percent Complete"] == "0%"


def test_masterlist_records(assignments):
    records = masterlist_records(assignments, TODAY)
    by_title = {r["Assignment"]: r for r in records}

    assert by_title["Quiz 5"]["Days Until Due"] == -1
    assert by_title["Project 2"]["To-Do"] == "Yes"
    assert by_title["Project 2"]["Priority"] == "High"
    assert by_title["Project 2"]["Due Time"] == "11:59 PM"
    assert by_title["Reading 3"]["Completed"] == "Yes"
    assert by_title["Quiz 5"]["Completed"] == "No"


def test_unset_status_exports_blank():
    a = Assignment(id="x", class_id="c1", class_name="CSE 262", title="Lab", due_date=TODAY)
    assert masterlist_records([a], TODAY)[0]["Status"] == ""
    assert clipboard_text([a]) == "CSE 262\tHomework\tLab\t2025-11-13\t"


def test_todo_records_follow_todo_order(assignments):
    records = todo_records(assignments)
    assert [r["Task"] for r in records] == ["Project 2", "HW 4"]
    assert records[1]["Completed"] == "Yes"


def test_csv_has_header_and_rows(assignments):
    text = to_csv(masterlist_records(assignments, TODAY), MASTERLIST_COLUMNS)
    lines = text.splitlines()
    assert lines[0] == ",".join(MASTERLIST_COLUMNS)
    assert len(lines) == 5
    assert "Quiz 5" in lines[1]


def test_csv_of_nothing_is_just_the_header():
    assert to_csv([], TODO_COLUMNS) == ",".join(TODO_COLUMNS) + "\n"


def test_csv_quotes_commas():
    a = Assignment(id="x", class_id="c1", class_name="CSE 262", title="Read ch. 1, 2", due_date=TODAY)
    assert '"Read ch. 1, 2"' in to_csv(masterlist_records([a], TODAY), MASTERLIST_COLUMNS)


def test_clipboard_text(assignments):
    lines = clipboard_text(assignments[:2]).split("\n")
    assert lines == [
        "CSE 262\tQuiz\tQuiz 5\t2025-11-12\tOverdue",
        "CSE 262\tProject\tProject 2\t2025-11-14\tIn Progress",
    ]


def test_export_filename():
    assert export_filename("masterlist", "csv", TODAY) == "assignments-2025-11-13.csv"
    assert export_filename("todo", "xlsx", TODAY) == "todo-list-2025-11-13.xlsx"
    assert export_filename("classes", "csv", TODAY) == "classes-summary-2025-11-13.csv"


@pytest.mark.parametrize(
    "percent,band",
    [(100, "complete"), (75, "high"), (50, "medium"), (0.1, "low"), (0, "none")],
)
def test_percent_band(percent, band):
    assert percent_band(percent) == band


def test_masterlist_band(assignments):
    overdue, soon, done, _ = assignments
    assert masterlist_band(overdue, -1) == "overdue"
    assert masterlist_band(soon, 1) == "soon"
    assert masterlist_band(done, -12) == "done"
    assert masterlist_band(soon, 3) == "normal"


def test_workbook_sheets_are_styled(assignments, classes):
    buffer = io.BytesIO()
    write_workbook(buffer, assignments, classes, TODAY)
    buffer.seek(0)
    wb = load_workbook(buffer)

    assert wb.sheetnames == ["Assignments", "To-Do List", "Classes"]
    for ws in wb.worksheets:
        assert ws.freeze_panes == "A2"
        assert ws["A1"].font.bold

    ws = wb["Assignments"]
    assert [c.value for c in ws[1]] == MASTERLIST_COLUMNS
    assert ws.max_row == 5
    assert ws["A2"].fill.fgColor.rgb == BAND_COLORS["overdue"]
    assert ws["A3"].fill.fgColor.rgb == BAND_COLORS["soon"]
    assert ws["A4"].fill.fgColor.rgb == BAND_COLORS["done"]
    assert ws["B2"].fill.fgColor.rgb == "FFFECACA"
    assert ws["B3"].fill.fgColor.rgb == "FFFED7AA"
    assert ws["B4"].fill.fgColor.rgb == "FFBBF7D0"
    assert ws["B5"].fill.fgColor.rgb == "FFD1D5DB"

    ws = wb["To-Do List"]
    assert [c.value for c in ws[1]] == TODO_COLUMNS
    assert ws["E2"].value == "Project 2"
    assert ws["A2"].fill.fgColor.rgb == BAND_COLORS["todo_high"]
    assert ws["B2"].fill.fgColor.rgb == "FFFEE2E2"
    assert ws["A3"].fill.fgColor.rgb == BAND_COLORS["done"]
    assert ws["B3"].fill.fgColor.rgb == "FFBBF7D0"

    ws = wb["Classes"]
    assert [c.value for c in ws[1]] == CLASS_SUMMARY_COLUMNS
    assert ws["G2"].value == "50.0%"
    assert ws["G3"].value == "0%"
    assert ws["A2"].fill.fgColor.rgb == "FF1E3A8A"
    assert ws["A2"].font.color.rgb == "FFFFFFFF"
    assert ws["B3"].fill.fgColor.rgb == BAND_COLORS["none"]


def test_status_and_priority_cells_override_row_band():
    task = Assignment(id="t1", class_id="c1", class_name="CSE 262", title="Lab 7",
                      due_date=date(2025, 11, 30), status=AssignmentStatus.IN_PROGRESS,
                      added_to_todo=True, todo_completed=True, todo_priority=ToDoPriority.HIGH)
    unset = Assignment(id="t2", class_id="c1", class_name="CSE 262", title="Lab 8", due_date=date(2025, 11, 30))
    buffer = io.BytesIO()
    write_workbook(buffer, [task, unset], [], TODAY)
    buffer.seek(0)
    wb = load_workbook(buffer)

    assert wb["Assignments"]["B2"].fill.fgColor.rgb == STATUS_COLORS[AssignmentStatus.IN_PROGRESS]
    assert wb["Assignments"]["B3"].fill.fgColor.rgb == BAND_COLORS["normal"]
    assert wb["To-Do List"]["A2"].fill.fgColor.rgb == BAND_COLORS["done"]
    assert wb["To-Do List"]["B2"].fill.fgColor.rgb == TODO_PRIORITY_COLORS[ToDoPriority.HIGH]
