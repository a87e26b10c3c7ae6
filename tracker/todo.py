"""
To-do list view over the assignment collection.

Membership and to-do completion are separate from academic status: finishing
a to-do item never touches ``status``, and leaving the list never deletes the
assignment.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass

from tracker.models import Assignment, ToDoPriority

_PRIORITY_RANK = {ToDoPriority.HIGH: 0, ToDoPriority.LOW: 1}


@dataclass(frozen=True)
class ToDoProgress:
    completed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.completed / self.total * 100)


def todo_items(assignments: t.Iterable[Assignment]) -> list[Assignment]:
    """Assignments on the to-do list, High before Low, then by due date.

    ``sorted`` is stable, so ties keep collection order.
    """
    members = [a for a in assignments if a.added_to_todo]
    return sorted(members, key=lambda a: (_PRIORITY_RANK[a.todo_priority], a.due_date))


def todo_progress(assignments: t.Iterable[Assignment]) -> ToDoProgress:
    items = todo_items(assignments)
    return ToDoProgress(
        completed=sum(1 for a in items if a.todo_completed),
        total=len(items),
    )
