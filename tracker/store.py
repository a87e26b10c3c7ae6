"""
Lifecycle store for assignments and classes.

``TrackerStore`` owns the authoritative in-memory collections for one
session. Every mutation validates first, then updates memory, then writes
through to the optional backend. A failed write raises ``PersistenceError``
but leaves the in-memory change in place so the caller can decide to reload.

The periodic overdue sweep runs as an asyncio task on the same event loop as
the callers, so a sweep never interleaves with a mutation.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import typing as t
import uuid
from dataclasses import replace
from datetime import date

from tracker.derive import auto_advance_status, parse_due_date
from tracker.errors import NotFoundError, PersistenceError, ValidationError
from tracker.models import (
    ASSIGNMENT_ENUM_FIELDS,
    ASSIGNMENT_FIELDS,
    CLASS_FIELDS,
    UPDATABLE_CLASS_FIELDS,
    Assignment,
    AssignmentStatus,
    CourseClass,
    ToDoPriority,
    coerce_enum,
)
from tracker.persistence import (
    ASSIGNMENTS,
    CLASSES,
    Backend,
    assignment_changes_to_row,
    assignment_from_row,
    assignment_to_row,
    class_from_row,
    class_to_row,
)

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 60.0

ChangeCallback = t.Callable[[str], None]
Subscribe = t.Callable[[ChangeCallback], t.Callable[[], None]]


def _new_id() -> str:
    return uuid.uuid4().hex


def _normalize_assignment_field(name: str, value: t.Any) -> t.Any:
    """Validate and coerce a single assignment attribute."""
    if name in ASSIGNMENT_ENUM_FIELDS:
        return coerce_enum(ASSIGNMENT_ENUM_FIELDS[name], value, name)
    if name == "due_date":
        return parse_due_date(value)
    if name == "title":
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("Title is required")
        return value
    if name == "weight":
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid weight {value!r}") from None
    if name in ("completed", "added_to_todo", "todo_completed"):
        if not isinstance(value, bool):
            raise ValidationError(f"{name} must be true or false")
        return value
    return "" if value is None else str(value)


class TrackerStore:
    """In-memory assignments and classes for one session.

    Construct one per session and pass it to whatever needs it. Use it as an
    async context manager to load from the backend and run the periodic sweep::

        async with TrackerStore(backend) as store:
            store.set_status(assignment_id, "In Progress")
    """

    def __init__(
        self,
        backend: t.Optional[Backend] = None,
        clock: t.Optional[t.Callable[[], date]] = None,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        self._assignments: list[Assignment] = []
        self._classes: list[CourseClass] = []
        self._backend = backend
        self._clock = clock or date.today
        self.sweep_interval = sweep_interval
        self._sweep_task: t.Optional[asyncio.Task] = None
        self._unsubscribe: t.Optional[t.Callable[[], None]] = None

    # -----------------------------
    # Lifecycle
    # -----------------------------

    async def __aenter__(self) -> TrackerStore:
        self.load()
        self.start()
        return self

    async def __aexit__(self, *exc_info: t.Any) -> None:
        await self.close()

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._run_sweeps())

    async def close(self) -> None:
        """Cancel the periodic sweep and drop any realtime subscription."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _run_sweeps(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except PersistenceError as e:
                logger.warning("Sweep could not persist every change: %s", e)
            except Exception:
                logger.exception("Periodic sweep failed, retrying next interval")

    def subscribe(self, subscribe: Subscribe) -> None:
        """Register for realtime change notifications.

        ``subscribe`` is called with ``handle_change`` and must return a
        function that cancels the subscription. ``close`` calls it.
        """
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = subscribe(self.handle_change)

    def load(self) -> None:
        """Replace both collections with the backend's contents."""
        if self._backend is None:
            return
        self._reload(CLASSES)
        self._reload(ASSIGNMENTS)

    def handle_change(self, table: str) -> None:
        """React to a pushed change by fully reloading ``table``."""
        if table not in (ASSIGNMENTS, CLASSES):
            raise ValidationError(f"Unknown collection: {table}")
        if self._backend is None:
            return
        logger.info("Change notification for %s, reloading", table)
        self._reload(table)

    def _reload(self, table: str) -> None:
        rows = self._backend.fetch(table)
        if table == ASSIGNMENTS:
            self._assignments = [assignment_from_row(r) for r in rows]
        else:
            self._classes = [class_from_row(r) for r in rows]
        logger.debug("Loaded %d %s", len(rows), table)

    # -----------------------------
    # Reads
    # -----------------------------

    @property
    def assignments(self) -> list[Assignment]:
        """Snapshot of every assignment, in collection order."""
        return [replace(a) for a in self._assignments]

    @property
    def classes(self) -> list[CourseClass]:
        return [replace(c) for c in self._classes]

    def today(self) -> date:
        return self._clock()

    def get_assignment(self, assignment_id: str) -> Assignment:
        return replace(self._find_assignment(assignment_id))

    def get_class(self, class_id: str) -> CourseClass:
        return replace(self._find_class(class_id))

    def find_class_by_code(self, course_code: str) -> t.Optional[CourseClass]:
        """Look a class up by its display code. Convenience only; ids are the real key."""
        wanted = course_code.strip().lower()
        for course in self._classes:
            if course.course_code.strip().lower() == wanted:
                return replace(course)
        return None

    def assignments_for_class(self, class_id: str) -> list[Assignment]:
        return [replace(a) for a in self._assignments if a.class_id == class_id]

    def _find_assignment(self, assignment_id: str) -> Assignment:
        for assignment in self._assignments:
            if assignment.id == assignment_id:
                return assignment
        raise NotFoundError(f"No assignment with id {assignment_id}")

    def _find_class(self, class_id: str) -> CourseClass:
        for course in self._classes:
            if course.id == class_id:
                return course
        raise NotFoundError(f"No class with id {class_id}")

    # -----------------------------
    # Persistence
    # -----------------------------

    def _persist(self, op: str, table: str, *args: t.Any) -> None:
        if self._backend is None:
            return
        try:
            getattr(self._backend, op)(table, *args)
        except PersistenceError as e:
            logger.warning("Failed to %s %s: %s", op, table, e)
            raise

    def _persist_assignment_changes(self, assignment_id: str, changes: dict[str, t.Any]) -> None:
        self._persist("update", ASSIGNMENTS, assignment_id, assignment_changes_to_row(changes))

    # -----------------------------
    # Assignment mutations
    # -----------------------------

    def _build_assignment(self, data: dict[str, t.Any]) -> Assignment:
        if "id" in data:
            raise ValidationError("New assignments must not carry an id")
        unknown = set(data) - ASSIGNMENT_FIELDS
        if unknown:
            raise ValidationError(f"Unknown assignment fields: {', '.join(sorted(unknown))}")
        if not str(data.get("title") or "").strip():
            raise ValidationError("Title is required")
        if not data.get("due_date"):
            raise ValidationError("Due date is required")
        values = {name: _normalize_assignment_field(name, value) for name, value in data.items()}
        values.setdefault("class_id", "")
        values.setdefault("class_name", "")
        return Assignment(id=_new_id(), **values)

    def add_assignment(self, **data: t.Any) -> Assignment:
        """Create an assignment with a fresh id and append it.

        :raises ValidationError: If title or due date is missing or a field is invalid.
        """
        assignment = self._build_assignment(data)
        self._assignments.append(assignment)
        logger.debug("Added assignment %s (%s)", assignment.id, assignment.title)
        self._persist("insert", ASSIGNMENTS, assignment_to_row(assignment))
        return replace(assignment)

    def add_assignments(self, items: t.Iterable[dict[str, t.Any]]) -> list[Assignment]:
        """Add several assignments. The whole batch is validated before any is added."""
        built = [self._build_assignment(dict(item)) for item in items]
        self._assignments.extend(built)
        failures: list[str] = []
        for assignment in built:
            try:
                self._persist("insert", ASSIGNMENTS, assignment_to_row(assignment))
            except PersistenceError as e:
                failures.append(str(e))
        if failures:
            raise PersistenceError(f"{len(failures)} of {len(built)} assignments were not saved: {failures[0]}")
        return [replace(a) for a in built]

    def update_assignment(self, assignment_id: str, **changes: t.Any) -> Assignment:
        """Merge ``changes`` into an existing assignment.

        :raises NotFoundError: If the id is unknown.
        :raises ValidationError: If a field name or value is invalid.
        """
        assignment = self._find_assignment(assignment_id)
        if "id" in changes:
            raise ValidationError("Assignment id cannot be changed")
        unknown = set(changes) - ASSIGNMENT_FIELDS
        if unknown:
            raise ValidationError(f"Unknown assignment fields: {', '.join(sorted(unknown))}")
        values = {name: _normalize_assignment_field(name, value) for name, value in changes.items()}

        if assignment.added_to_todo and values.get("added_to_todo") is False:
            values["todo_completed"] = False

        for name, value in values.items():
            setattr(assignment, name, value)
        self._persist_assignment_changes(assignment_id, values)
        return replace(assignment)

    def delete_assignment(self, assignment_id: str) -> None:
        """Remove an assignment.

        :raises NotFoundError: If the id is unknown, including a second delete.
        """
        assignment = self._find_assignment(assignment_id)
        self._assignments.remove(assignment)
        self._persist("delete", ASSIGNMENTS, assignment_id)

    def set_status(self, assignment_id: str, status: t.Union[AssignmentStatus, str]) -> Assignment:
        """Set the status; ``completed`` follows it (true for Completed and Submitted)."""
        assignment = self._find_assignment(assignment_id)
        new_status = coerce_enum(AssignmentStatus, status, "status")
        assignment.status = new_status
        assignment.completed = new_status.is_done
        self._persist_assignment_changes(
            assignment_id, {"status": new_status, "completed": assignment.completed}
        )
        return replace(assignment)

    def toggle_simple_complete(self, assignment_id: str) -> Assignment:
        """Flip ``completed``. Overwrites status with Completed or Not Started."""
        assignment = self._find_assignment(assignment_id)
        assignment.completed = not assignment.completed
        assignment.status = AssignmentStatus.COMPLETED if assignment.completed else AssignmentStatus.NOT_STARTED
        self._persist_assignment_changes(
            assignment_id, {"completed": assignment.completed, "status": assignment.status}
        )
        return replace(assignment)

    def toggle_todo_membership(self, assignment_id: str) -> Assignment:
        """Add to or remove from the to-do list. Removal clears to-do completion."""
        assignment = self._find_assignment(assignment_id)
        assignment.added_to_todo = not assignment.added_to_todo
        changes: dict[str, t.Any] = {"added_to_todo": assignment.added_to_todo}
        if not assignment.added_to_todo:
            assignment.todo_completed = False
            changes["todo_completed"] = False
        self._persist_assignment_changes(assignment_id, changes)
        return replace(assignment)

    def toggle_todo_completion(self, assignment_id: str) -> Assignment:
        assignment = self._find_assignment(assignment_id)
        assignment.todo_completed = not assignment.todo_completed
        self._persist_assignment_changes(assignment_id, {"todo_completed": assignment.todo_completed})
        return replace(assignment)

    def set_todo_priority(self, assignment_id: str, priority: t.Union[ToDoPriority, str]) -> Assignment:
        assignment = self._find_assignment(assignment_id)
        assignment.todo_priority = coerce_enum(ToDoPriority, priority, "todo_priority")
        self._persist_assignment_changes(assignment_id, {"todo_priority": assignment.todo_priority})
        return replace(assignment)

    # -----------------------------
    # Sweep
    # -----------------------------

    def sweep(self, today: t.Optional[date] = None) -> list[Assignment]:
        """Mark past-due, unfinished assignments Overdue.

        Returns the assignments whose status changed. Every change is written
        even if an earlier write fails; failures are raised together at the end.
        """
        if not self._assignments:
            return []
        today = today or self._clock()
        changed: list[Assignment] = []
        for assignment in self._assignments:
            new_status = auto_advance_status(assignment, today)
            if new_status is not assignment.status:
                assignment.status = new_status
                changed.append(assignment)

        failures: list[str] = []
        for assignment in changed:
            logger.info("Assignment %s (%s) is now %s", assignment.id, assignment.title, assignment.status.value)
            try:
                self._persist_assignment_changes(assignment.id, {"status": assignment.status})
            except PersistenceError as e:
                failures.append(str(e))
        if failures:
            raise PersistenceError(f"{len(failures)} status change(s) were not saved: {failures[0]}")
        return [replace(a) for a in changed]

    # -----------------------------
    # Class mutations
    # -----------------------------

    def add_class(self, **data: t.Any) -> CourseClass:
        """Create a class with a fresh id.

        :raises ValidationError: If the course code is blank or a field is unknown.
        """
        if "id" in data:
            raise ValidationError("New classes must not carry an id")
        unknown = set(data) - CLASS_FIELDS
        if unknown:
            raise ValidationError(f"Unknown class fields: {', '.join(sorted(unknown))}")
        if not str(data.get("course_code") or "").strip():
            raise ValidationError("Course code is required")
        course = CourseClass(id=_new_id(), **{k: "" if v is None else str(v) for k, v in data.items()})
        self._classes.append(course)
        self._persist("insert", CLASSES, class_to_row(course))
        return replace(course)

    def update_class(self, class_id: str, **changes: t.Any) -> CourseClass:
        """Merge a subset of course_code, course_title, instructor, schedule and color."""
        course = self._find_class(class_id)
        unknown = set(changes) - UPDATABLE_CLASS_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update class fields: {', '.join(sorted(unknown))}")
        if "course_code" in changes and not str(changes["course_code"] or "").strip():
            raise ValidationError("Course code is required")
        values = {k: "" if v is None else str(v) for k, v in changes.items()}
        for name, value in values.items():
            setattr(course, name, value)
        self._persist("update", CLASSES, class_id, values)
        return replace(course)

    def delete_class(self, class_id: str) -> None:
        """Remove a class. Its assignments are kept and keep their ``class_id``."""
        course = self._find_class(class_id)
        self._classes.remove(course)
        self._persist("delete", CLASSES, class_id)
