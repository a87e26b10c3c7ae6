"""
Persistent store boundary.

Rows at this boundary are flat dicts keyed by column name and scoped by the
owning user's id. ``TrackerStore`` talks to a ``Backend`` and uses the mapping
helpers here to translate between rows and the dataclasses in
``tracker.models``.
"""
from __future__ import annotations

import copy
import json
import logging
import typing as t
from enum import Enum
from pathlib import Path

import httpx

from tracker.derive import parse_due_date
from tracker.errors import PersistenceError, ValidationError
from tracker.models import (
    Assignment,
    AssignmentStatus,
    AssignmentType,
    CourseClass,
    Priority,
    ToDoPriority,
    coerce_enum,
)

logger = logging.getLogger(__name__)

ASSIGNMENTS = "assignments"
CLASSES = "classes"
TABLES = (ASSIGNMENTS, CLASSES)

Row = dict[str, t.Any]


class Backend(t.Protocol):
    """What ``TrackerStore`` needs from an external store.

    Implementations raise ``PersistenceError`` on any failure.
    """

    def fetch(self, table: str) -> list[Row]:
        ...

    def insert(self, table: str, row: Row) -> None:
        ...

    def update(self, table: str, row_id: str, changes: Row) -> None:
        ...

    def delete(self, table: str, row_id: str) -> None:
        ...


# -----------------------------
# Row mapping
# -----------------------------

def assignment_to_row(assignment: Assignment) -> Row:
    """Flatten an assignment into its column representation."""
    return {
        "id": assignment.id,
        "class_id": assignment.class_id,
        "class_name": assignment.class_name,
        "title": assignment.title,
        "type": assignment.type.value,
        "due_date": assignment.due_date.isoformat(),
        "due_time": assignment.due_time or None,
        "status": assignment.status.value,
        "priority": assignment.priority.value,
        "notes": assignment.notes or None,
        "weight": assignment.weight,
        "completed": assignment.completed,
        "added_to_todo": assignment.added_to_todo,
        "todo_completed": assignment.todo_completed,
        "todo_priority": assignment.todo_priority.value,
    }


def assignment_changes_to_row(changes: dict[str, t.Any]) -> Row:
    """Map a partial set of assignment attributes to columns."""
    row: Row = {}
    for name, value in changes.items():
        if name == "due_date":
            row[name] = value.isoformat()
        elif isinstance(value, Enum):
            row[name] = value.value
        elif name in ("due_time", "notes"):
            row[name] = value or None
        else:
            row[name] = value
    return row


def assignment_from_row(row: Row) -> Assignment:
    """Build an assignment from a stored row.

    Missing columns fall back to model defaults.

    :raises PersistenceError: If the row holds an invalid date or enum value.
    """
    try:
        weight = row.get("weight")
        return Assignment(
            id=str(row["id"]),
            class_id=str(row.get("class_id") or ""),
            class_name=row.get("class_name") or "",
            title=row.get("title") or "",
            due_date=parse_due_date(row.get("due_date") or ""),
            type=coerce_enum(AssignmentType, row.get("type") or "Homework", "type"),
            due_time=row.get("due_time") or "",
            status=coerce_enum(AssignmentStatus, row.get("status") or "Status", "status"),
            priority=coerce_enum(Priority, row.get("priority") or "Medium", "priority"),
            notes=row.get("notes") or "",
            weight=float(weight) if weight is not None else None,
            completed=bool(row.get("completed", False)),
            added_to_todo=bool(row.get("added_to_todo", False)),
            todo_completed=bool(row.get("todo_completed", False)),
            todo_priority=coerce_enum(ToDoPriority, row.get("todo_priority") or "Low", "todo_priority"),
        )
    except (KeyError, ValidationError, ValueError, TypeError) as e:
        raise PersistenceError(f"Malformed assignment row {row.get('id')!r}: {e}") from e


def class_to_row(course: CourseClass) -> Row:
    return {
        "id": course.id,
        "course_code": course.course_code,
        "course_title": course.course_title,
        "instructor": course.instructor,
        "schedule": course.schedule,
        "color": course.color,
    }


def class_from_row(row: Row) -> CourseClass:
    try:
        return CourseClass(
            id=str(row["id"]),
            course_code=row.get("course_code") or "",
            course_title=row.get("course_title") or "",
            instructor=row.get("instructor") or "",
            schedule=row.get("schedule") or "",
            color=row.get("color") or "#E5D7FF",
        )
    except KeyError as e:
        raise PersistenceError(f"Malformed class row: missing {e}") from e


# -----------------------------
# Backends
# -----------------------------

class InMemoryBackend:
    """Dict-backed backend.

    ``fail_next_write`` makes the next insert/update/delete raise
    ``PersistenceError``, for exercising the error path.
    """

    def __init__(self, tables: t.Optional[dict[str, list[Row]]] = None) -> None:
        self.tables: dict[str, dict[str, Row]] = {name: {} for name in TABLES}
        for name, rows in (tables or {}).items():
            self.tables[name] = {str(r["id"]): dict(r) for r in rows}
        self.fail_next_write = False

    def _check_write(self, table: str) -> dict[str, Row]:
        if table not in self.tables:
            raise PersistenceError(f"Unknown table: {table}")
        if self.fail_next_write:
            self.fail_next_write = False
            raise PersistenceError(f"Simulated write failure on {table}")
        return self.tables[table]

    def fetch(self, table: str) -> list[Row]:
        if table not in self.tables:
            raise PersistenceError(f"Unknown table: {table}")
        rows = [copy.deepcopy(r) for r in self.tables[table].values()]
        if table == ASSIGNMENTS:
            rows.sort(key=lambda r: r.get("due_date") or "")
        return rows

    def insert(self, table: str, row: Row) -> None:
        rows = self._check_write(table)
        rows[str(row["id"])] = dict(row)
        self._written()

    def update(self, table: str, row_id: str, changes: Row) -> None:
        rows = self._check_write(table)
        if row_id not in rows:
            raise PersistenceError(f"No {table} row with id {row_id}")
        rows[row_id].update(changes)
        self._written()

    def delete(self, table: str, row_id: str) -> None:
        rows = self._check_write(table)
        if rows.pop(row_id, None) is None:
            raise PersistenceError(f"No {table} row with id {row_id}")
        self._written()

    def _written(self) -> None:
        """Hook called after every successful write."""


class JsonFileBackend(InMemoryBackend):
    """In-memory backend that snapshots itself to a JSON file after each write."""

    def __init__(self, path: t.Union[str, Path]) -> None:
        self.path = Path(path)
        tables: dict[str, list[Row]] = {}
        if self.path.is_file():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    tables = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise PersistenceError(f"Could not read {self.path}: {e}") from e
        super().__init__(tables)

    def _written(self) -> None:
        data = {name: list(rows.values()) for name, rows in self.tables.items()}
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e


class SupabaseBackend:
    """PostgREST (Supabase) backend scoped to a single user.

    Every request filters on ``user_id`` and every inserted row carries it.
    """

    def __init__(
        self,
        url: str,
        key: str,
        user_id: str,
        timeout: float = 30.0,
        client: t.Optional[httpx.Client] = None,
    ) -> None:
        if not url or not key:
            raise PersistenceError("Supabase URL and key must be configured")
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.user_id = user_id
        self.timeout = timeout
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }
        self._client = client

    def _request(
        self, method: str, table: str, params: dict[str, str], json_body: t.Any = None, scoped: bool = True
    ) -> httpx.Response:
        if scoped:
            params = {"user_id": f"eq.{self.user_id}", **params}
        try:
            if self._client is not None:
                response = self._client.request(
                    method, f"{self.base_url}/{table}", params=params, json=json_body, headers=self.headers
                )
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.request(
                        method, f"{self.base_url}/{table}", params=params, json=json_body, headers=self.headers
                    )
            response.raise_for_status()
            return response
        except httpx.TimeoutException as e:
            raise PersistenceError(f"{method} {table} timed out after {self.timeout} seconds") from e
        except httpx.HTTPStatusError as e:
            raise PersistenceError(
                f"Store error on {method} {table}: {e.response.status_code} {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise PersistenceError(f"Error calling store on {method} {table}: {e}") from e

    def fetch(self, table: str) -> list[Row]:
        params = {"select": "*"}
        if table == ASSIGNMENTS:
            params["order"] = "due_date.asc"
        response = self._request("GET", table, params)
        rows = response.json() if response.text else []
        logger.debug("Fetched %d %s rows", len(rows), table)
        return rows

    def insert(self, table: str, row: Row) -> None:
        self._request("POST", table, {}, {**row, "user_id": self.user_id}, scoped=False)

    def update(self, table: str, row_id: str, changes: Row) -> None:
        self._request("PATCH", table, {"id": f"eq.{row_id}"}, changes)

    def delete(self, table: str, row_id: str) -> None:
        self._request("DELETE", table, {"id": f"eq.{row_id}"})
