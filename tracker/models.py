"""
Data models for the coursework tracker.

This module contains the dataclasses and enums used to represent assignments
and the classes they belong to.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass, fields
from datetime import date
from enum import Enum

from tracker.errors import ValidationError


class AssignmentType(Enum):
    """Kind of deliverable."""
    HOMEWORK = "Homework"
    READING = "Reading"
    QUIZ = "Quiz"
    PROJECT = "Project"
    EXAM = "Exam"
    CODING = "Coding"
    RECITATION = "Recitation"
    OTHER = "Other"


class AssignmentStatus(Enum):
    """Academic status of an assignment.

    ``UNSET`` is the placeholder a record carries before the user picks a real
    status. It derives exactly like ``NOT_STARTED`` but displays as blank.
    """
    UNSET = "Status"
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    SUBMITTED = "Submitted"
    COMPLETED = "Completed"
    OVERDUE = "Overdue"

    @property
    def is_done(self) -> bool:
        return self in (AssignmentStatus.COMPLETED, AssignmentStatus.SUBMITTED)

    @property
    def effective(self) -> AssignmentStatus:
        """The status used for derivations (``UNSET`` counts as not started)."""
        if self is AssignmentStatus.UNSET:
            return AssignmentStatus.NOT_STARTED
        return self

    @property
    def label(self) -> str:
        return "" if self is AssignmentStatus.UNSET else self.value


class Priority(Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ToDoPriority(Enum):
    HIGH = "High"
    LOW = "Low"


E = t.TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: type[E], value: t.Any, field_name: str = "") -> E:
    """Return ``value`` as a member of ``enum_cls``.

    Accepts a member or its string value.

    :raises ValidationError: If the value is not part of the enum.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        name = field_name or enum_cls.__name__
        raise ValidationError(f"Invalid {name} {value!r}; expected one of: {allowed}") from None


@dataclass
class Assignment:
    """A deliverable tracked for one class.

    ``completed``, ``status`` and ``todo_completed`` are three independent
    views of done-ness. Only ``TrackerStore`` operations reconcile them.
    """
    id: str
    class_id: str
    class_name: str
    title: str
    due_date: date
    type: AssignmentType = AssignmentType.HOMEWORK
    due_time: str = ""              # display only, e.g. "11:59 PM"
    status: AssignmentStatus = AssignmentStatus.UNSET
    priority: Priority = Priority.MEDIUM
    notes: str = ""
    weight: t.Optional[float] = None
    completed: bool = False
    added_to_todo: bool = False
    todo_completed: bool = False
    todo_priority: ToDoPriority = ToDoPriority.LOW


@dataclass
class CourseClass:
    """A class (course) the student is enrolled in."""
    id: str
    course_code: str
    course_title: str = ""
    instructor: str = ""
    schedule: str = ""
    color: str = "#E5D7FF"          # named token or hex, visual grouping only

    @property
    def display_name(self) -> str:
        """Label stored on assignments, e.g. "CSE 262 - Programming Languages"."""
        return f"{self.course_code} - {self.course_title}" if self.course_title else self.course_code


ASSIGNMENT_FIELDS: frozenset[str] = frozenset(f.name for f in fields(Assignment))
CLASS_FIELDS: frozenset[str] = frozenset(f.name for f in fields(CourseClass))

# Field name -> enum type, for validating partial updates.
ASSIGNMENT_ENUM_FIELDS: dict[str, type[Enum]] = {
    "type": AssignmentType,
    "status": AssignmentStatus,
    "priority": Priority,
    "todo_priority": ToDoPriority,
}

UPDATABLE_CLASS_FIELDS: frozenset[str] = frozenset(
    {"course_code", "course_title", "instructor", "schedule", "color"}
)

