"""
Month calendar layout.

Weeks start on Sunday. Cells before the first and after the last day of the
month are ``None`` so every week has seven entries.
"""
from __future__ import annotations

import calendar
import typing as t
from dataclasses import dataclass, field
from datetime import date

from tracker.models import Assignment


@dataclass
class CalendarDay:
    day: date
    assignments: list[Assignment] = field(default_factory=list)
    is_today: bool = False


def assignments_on(assignments: t.Iterable[Assignment], day: date) -> list[Assignment]:
    return [a for a in assignments if a.due_date == day]


def month_grid(
    year: int,
    month: int,
    assignments: t.Iterable[Assignment],
    today: t.Optional[date] = None,
) -> list[list[t.Optional[CalendarDay]]]:
    """Lay out a month as weeks of seven cells."""
    today = today or date.today()
    by_day: dict[date, list[Assignment]] = {}
    for assignment in assignments:
        by_day.setdefault(assignment.due_date, []).append(assignment)

    weeks: list[list[t.Optional[CalendarDay]]] = []
    for week in calendar.Calendar(firstweekday=6).monthdatescalendar(year, month):
        weeks.append([
            CalendarDay(day=d, assignments=by_day.get(d, []), is_today=d == today)
            if d.month == month else None
            for d in week
        ])
    return weeks
