# -*- coding: utf-8 -*-
"""Tests for the tracker MCP server's formatting and wiring."""
import asyncio
from datetime import date

from tracker.config import Settings
from tracker.persistence import InMemoryBackend, SupabaseBackend
from tracker_server.server import (
    assignment_view,
    build_backend,
    create_server,
    format_assignments,
    format_todo,
)

TODAY = date(2025, 11, 13)


def test_assignment_view_adds_derived_fields(store, make_assignment):
    assignment = make_assignment(offset=1, status="In Progress")
    view = assignment_view(assignment, TODAY)

    assert view["id"] == assignment.id
    assert view["days_until_due"] == 1
    assert view["day_of_week"] == "Fri"
    assert view["display_date"] == "11/14/2025"
    assert view["urgency"] == "soon"


def test_format_assignments(store, make_assignment):
    assert format_assignments([]) == "📚 No assignments found."
    make_assignment("Quiz 5", offset=-1)
    text = format_assignments(store.assignments, TODAY)
    assert "Quiz 5" in text
    assert "Total: 1 assignment(s)" in text


def test_format_todo(store, make_assignment):
    assert format_todo([]) == "✅ Your to-do list is empty."
    low = make_assignment("Reading", offset=1)
    high = make_assignment("Project", offset=9)
    store.toggle_todo_membership(low.id)
    store.toggle_todo_membership(high.id)
    store.set_todo_priority(high.id, "High")
    store.toggle_todo_completion(low.id)

    lines = format_todo(store.assignments).splitlines()
    assert lines[0] == "✅ TO-DO (1/2 done)"
    assert "Project" in lines[2]
    assert lines[3].startswith("[x]")


def test_create_server_registers_tools(store):
    server = create_server(store)
    tools = asyncio.run(server.get_tools())
    for name in ("list_assignments", "set_status", "toggle_todo", "sweep_overdue", "export_csv", "delete_class"):
        assert name in tools


def test_delete_class_tool_keeps_assignments(store, course, make_assignment):
    assignment = make_assignment()
    tools = asyncio.run(create_server(store).get_tools())

    assert tools["delete_class"].fn(class_id=course.id) == f"Deleted {course.id}"
    assert store.classes == []
    assert [a.id for a in store.assignments] == [assignment.id]


def test_add_assignment_tool_labels_class_like_imports(store, course):
    tools = asyncio.run(create_server(store).get_tools())
    view = tools["add_assignment"].fn(class_id=course.id, title="Lab 1", due_date="2025-11-20")
    assert view["class_name"] == "CSE 262 - Programming Languages"


def test_build_backend_picks_supabase_only_when_configured():
    assert isinstance(build_backend(Settings()), InMemoryBackend)
    remote = Settings(supabase_url="https://demo.supabase.co", supabase_key="anon", user_id="user-1")
    assert isinstance(build_backend(remote), SupabaseBackend)
