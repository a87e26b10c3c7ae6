"""
Review step between extraction and import.

The user sees every extracted assignment with an ``included`` checkbox, can
edit, drop or add rows, then confirms. Only included rows with a title become
assignments.
"""
from __future__ import annotations

import typing as t
import uuid
from dataclasses import dataclass
from datetime import date

from tracker.derive import parse_due_date
from tracker.errors import NotFoundError, ValidationError
from tracker.models import (
    AssignmentStatus,
    AssignmentType,
    CourseClass,
    Priority,
    ToDoPriority,
)
from .models import ExtractedAssignment, ExtractionResponse

_EDITABLE = {"title", "type", "due_date", "due_time", "weight", "notes", "included"}


@dataclass
class ReviewItem:
    id: str
    title: str = ""
    type: str = "Homework"
    due_date: str = ""
    due_time: str = ""
    weight: t.Optional[float] = None
    notes: str = ""
    included: bool = True


def _assignment_type(value: str) -> AssignmentType:
    for member in AssignmentType:
        if member.value.lower() == (value or "").strip().lower():
            return member
    return AssignmentType.OTHER


class ReviewDraft:
    """Editable list of extracted assignments for one course."""

    def __init__(self, extracted: t.Iterable[ExtractedAssignment] = ()) -> None:
        self.items: list[ReviewItem] = [
            ReviewItem(
                id=uuid.uuid4().hex,
                title=e.title,
                type=e.type,
                due_date=e.due_date,
                due_time=e.due_time or "",
                weight=e.weight,
                notes=e.notes or "",
            )
            for e in extracted
        ]

    @classmethod
    def from_response(cls, response: ExtractionResponse) -> ReviewDraft:
        return cls(response.assignments)

    @property
    def included_count(self) -> int:
        return sum(1 for item in self.items if item.included)

    def _find(self, item_id: str) -> ReviewItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise NotFoundError(f"No review row with id {item_id}")

    def update(self, item_id: str, **fields: t.Any) -> ReviewItem:
        unknown = set(fields) - _EDITABLE
        if unknown:
            raise ValidationError(f"Cannot edit review fields: {', '.join(sorted(unknown))}")
        item = self._find(item_id)
        for name, value in fields.items():
            setattr(item, name, value)
        return item

    def set_included(self, item_id: str, included: bool) -> ReviewItem:
        return self.update(item_id, included=included)

    def remove(self, item_id: str) -> None:
        self.items.remove(self._find(item_id))

    def add_blank(self, today: t.Optional[date] = None) -> ReviewItem:
        """Append an empty Homework row due today for manual entry."""
        item = ReviewItem(id=uuid.uuid4().hex, due_date=(today or date.today()).isoformat())
        self.items.append(item)
        return item

    def problems(self) -> dict[str, str]:
        """Messages keyed by row id for included rows that ``finalize`` would reject."""
        found = {}
        for item in self.items:
            if not item.included or not item.title.strip():
                continue
            try:
                parse_due_date(item.due_date)
            except ValidationError as e:
                found[item.id] = str(e)
        return found

    def exclude_invalid(self) -> list[ReviewItem]:
        """Untick every row listed by ``problems`` and return those rows."""
        bad = self.problems()
        dropped = [item for item in self.items if item.id in bad]
        for item in dropped:
            item.included = False
        return dropped

    def finalize(self, course: CourseClass) -> list[dict[str, t.Any]]:
        """Field dicts for ``TrackerStore.add_assignments``.

        Skips excluded rows and rows with a blank title. New assignments start
        with the unset status placeholder, Medium priority, off the to-do list.

        :raises ValidationError: If an included row has a bad due date.
        """
        results = []
        for item in self.items:
            if not item.included or not item.title.strip():
                continue
            results.append({
                "class_id": course.id,
                "class_name": course.display_name,
                "title": item.title.strip(),
                "type": _assignment_type(item.type),
                "due_date": parse_due_date(item.due_date),
                "due_time": item.due_time or "",
                "status": AssignmentStatus.UNSET,
                "priority": Priority.MEDIUM,
                "notes": item.notes or "",
                "weight": item.weight,
                "completed": False,
                "added_to_todo": False,
                "todo_completed": False,
                "todo_priority": ToDoPriority.LOW,
            })
        return results
