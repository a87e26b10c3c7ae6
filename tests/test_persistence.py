import json
from datetime import date

import httpx
import pytest

from tracker.errors import PersistenceError
from tracker.models import Assignment, AssignmentStatus, CourseClass, ToDoPriority
from tracker.persistence import (
    ASSIGNMENTS,
    CLASSES,
    InMemoryBackend,
    JsonFileBackend,
    SupabaseBackend,
    assignment_changes_to_row,
    assignment_from_row,
    assignment_to_row,
    class_from_row,
    class_to_row,
)
from tracker.store import TrackerStore


def test_assignment_row_uses_column_names_and_plain_values():
    a = Assignment(id="a1", class_id="c1", class_name="CSE 262", title="Quiz 5",
                   due_date=date(2025, 11, 20), todo_priority=ToDoPriority.HIGH, weight=5)
    row = assignment_to_row(a)

    assert row["due_date"] == "2025-11-20"
    assert row["status"] == "Status"
    assert row["todo_priority"] == "High"
    assert row["added_to_todo"] is False
    assert row["due_time"] is None
    assert row["notes"] is None
    assert assignment_from_row(row) == a


def test_assignment_from_sparse_row_uses_defaults():
    a = assignment_from_row({"id": 7, "title": "Lab", "due_date": "2025-11-20T00:00:00+00:00"})
    assert a.id == "7"
    assert a.due_date == date(2025, 11, 20)
    assert a.status is AssignmentStatus.UNSET
    assert a.todo_priority is ToDoPriority.LOW
    assert a.due_time == "" and a.notes == ""


@pytest.mark.parametrize(
    "row",
    [
        {"title": "No id", "due_date": "2025-11-20"},
        {"id": "a1", "title": "Bad date", "due_date": "soon"},
        {"id": "a1", "title": "Bad status", "due_date": "2025-11-20", "status": "Done"},
    ],
)
def test_malformed_rows_raise_persistence_error(row):
    with pytest.raises(PersistenceError):
        assignment_from_row(row)


def test_changes_to_row_maps_only_given_fields():
    row = assignment_changes_to_row({
        "status": AssignmentStatus.OVERDUE,
        "due_date": date(2025, 12, 1),
        "due_time": "",
        "completed": True,
    })
    assert row == {"status": "Overdue", "due_date": "2025-12-01", "due_time": None, "completed": True}


def test_class_row_round_trip():
    course = CourseClass(id="c1", course_code="CSE 262", instructor="Dr. Smith")
    assert class_from_row(class_to_row(course)) == course
    with pytest.raises(PersistenceError):
        class_from_row({"course_code": "CSE 262"})


def test_in_memory_backend_rejects_missing_rows():
    backend = InMemoryBackend()
    with pytest.raises(PersistenceError):
        backend.update(ASSIGNMENTS, "nope", {"title": "x"})
    with pytest.raises(PersistenceError):
        backend.delete(CLASSES, "nope")
    with pytest.raises(PersistenceError):
        backend.fetch("grades")


def test_json_file_backend_survives_restart(tmp_path):
    path = tmp_path / "tracker.json"
    store = TrackerStore(JsonFileBackend(path))
    course = store.add_class(course_code="CSE 262")
    assignment = store.add_assignment(class_id=course.id, title="HW 1", due_date="2025-11-20")
    store.set_status(assignment.id, "Submitted")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data[ASSIGNMENTS][0]["status"] == "Submitted"

    reopened = TrackerStore(JsonFileBackend(path))
    reopened.load()
    restored = reopened.get_assignment(assignment.id)
    assert restored.status is AssignmentStatus.SUBMITTED
    assert restored.completed is True
    assert reopened.get_class(course.id).course_code == "CSE 262"


def test_json_file_backend_reports_corrupt_file(tmp_path):
    path = tmp_path / "tracker.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonFileBackend(path)


class Recorder:
    """Mock transport handler that records requests and replies from a queue."""

    def __init__(self, *responses):
        self.requests = []
        self.responses = list(responses)

    def __call__(self, request):
        self.requests.append(request)
        if self.responses:
            return self.responses.pop(0)
        return httpx.Response(204)


def _backend(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseBackend("https://demo.supabase.co/", "anon-key", "user-1", client=client)


def test_supabase_fetch_is_scoped_and_ordered():
    rows = [{"id": "a1", "title": "Quiz", "due_date": "2025-11-20"}]
    handler = Recorder(httpx.Response(200, json=rows))
    backend = _backend(handler)

    assert backend.fetch(ASSIGNMENTS) == rows
    request = handler.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/assignments"
    assert request.url.params["user_id"] == "eq.user-1"
    assert request.url.params["order"] == "due_date.asc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"


def test_supabase_insert_carries_user_id():
    handler = Recorder(httpx.Response(201))
    _backend(handler).insert(CLASSES, {"id": "c1", "course_code": "CSE 262"})

    request = handler.requests[0]
    assert request.method == "POST"
    assert "user_id" not in request.url.params
    assert json.loads(request.content) == {"id": "c1", "course_code": "CSE 262", "user_id": "user-1"}


def test_supabase_update_and_delete_target_one_row():
    handler = Recorder()
    backend = _backend(handler)
    backend.update(ASSIGNMENTS, "a1", {"status": "Overdue"})
    backend.delete(ASSIGNMENTS, "a1")

    patch, delete = handler.requests
    assert patch.method == "PATCH"
    assert patch.url.params["id"] == "eq.a1"
    assert patch.url.params["user_id"] == "eq.user-1"
    assert json.loads(patch.content) == {"status": "Overdue"}
    assert delete.method == "DELETE"
    assert delete.url.params["id"] == "eq.a1"


def test_supabase_http_error_becomes_persistence_error():
    backend = _backend(Recorder(httpx.Response(500, text="boom")))
    with pytest.raises(PersistenceError, match="500"):
        backend.update(ASSIGNMENTS, "a1", {"status": "Overdue"})


def test_supabase_timeout_becomes_persistence_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(PersistenceError, match="timed out"):
        _backend(handler).fetch(CLASSES)


def test_supabase_requires_configuration():
    with pytest.raises(PersistenceError):
        SupabaseBackend("", "", "user-1")


def test_store_over_supabase_reloads_on_change():
    assignments = [{"id": "a1", "class_id": "c1", "title": "Quiz", "due_date": "2025-11-20", "status": "Completed"}]

    def handler(request):
        if request.method == "GET" and request.url.path.endswith("/assignments"):
            return httpx.Response(200, json=assignments)
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": "c1", "course_code": "CSE 262"}])
        return httpx.Response(204)

    store = TrackerStore(_backend(handler), clock=lambda: date(2025, 11, 13))
    store.load()
    assert store.get_assignment("a1").status is AssignmentStatus.COMPLETED

    assignments[0]["status"] = "In Progress"
    store.handle_change(ASSIGNMENTS)
    assert store.get_assignment("a1").status is AssignmentStatus.IN_PROGRESS
