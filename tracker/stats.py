"""Completion statistics for the dashboard and class cards."""
from __future__ import annotations

import typing as t
from dataclasses import dataclass

from tracker.models import Assignment


@dataclass(frozen=True)
class CompletionStats:
    total: int
    completed: int

    @property
    def percent(self) -> int:
        """Whole-number percentage, 0 when there is nothing to complete."""
        if self.total == 0:
            return 0
        return round(self.completed / self.total * 100)


def overall_stats(assignments: t.Iterable[Assignment]) -> CompletionStats:
    items = list(assignments)
    return CompletionStats(
        total=len(items),
        completed=sum(1 for a in items if a.status.is_done),
    )


def class_stats(class_id: str, assignments: t.Iterable[Assignment]) -> CompletionStats:
    return overall_stats(a for a in assignments if a.class_id == class_id)
