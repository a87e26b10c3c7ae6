"""
Derived values for assignments.

Everything here is pure: results depend only on the arguments and the
reference ``today``, which defaults to the local calendar date. Nothing is
persisted; callers compute these on every render or export.
"""
from __future__ import annotations

import typing as t
from datetime import date, datetime
from enum import Enum

from tracker.errors import ValidationError
from tracker.models import Assignment, AssignmentStatus

DateLike = t.Union[date, datetime, str]

# Due within this many days (inclusive) counts as "soon".
SOON_THRESHOLD_DAYS = 2

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class Urgency(Enum):
    """Display emphasis for an assignment row."""
    NONE = "none"
    SOON = "soon"
    OVERDUE = "overdue"


def parse_due_date(value: DateLike) -> date:
    """Normalize a due date to a ``date``.

    Accepts a ``date``, a ``datetime`` (time discarded) or an ISO string whose
    first ten characters are ``YYYY-MM-DD``.

    :raises ValidationError: If the value is empty or not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not str(value).strip():
        raise ValidationError("Due date is required")
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid due date {value!r}; expected YYYY-MM-DD") from None


def days_until_due(due_date: DateLike, today: t.Optional[date] = None) -> int:
    """Signed number of calendar days from ``today`` to ``due_date``.

    0 means due today, negative means past due. Clock time never matters.
    """
    today = today or date.today()
    return (parse_due_date(due_date) - today).days


def day_of_week(due_date: DateLike) -> str:
    """Abbreviated weekday label, e.g. ``"Wed"``."""
    return _WEEKDAYS[parse_due_date(due_date).weekday()]


def format_display_date(due_date: DateLike) -> str:
    """Format as ``MM/DD/YYYY``."""
    d = parse_due_date(due_date)
    return f"{d.month:02d}/{d.day:02d}/{d.year:04d}"


def urgency_level(days_until: int, status: AssignmentStatus) -> Urgency:
    """Classify how urgently a row should be highlighted."""
    if status.is_done:
        return Urgency.NONE
    if days_until < 0:
        return Urgency.OVERDUE
    if days_until <= SOON_THRESHOLD_DAYS:
        return Urgency.SOON
    return Urgency.NONE


def auto_advance_status(assignment: Assignment, today: t.Optional[date] = None) -> AssignmentStatus:
    """Status the assignment should have as of ``today``.

    Completed and Submitted are terminal. Anything else that is past due
    becomes Overdue. Applying the result again yields the same status.
    """
    if assignment.status.is_done:
        return assignment.status
    if days_until_due(assignment.due_date, today) < 0:
        return AssignmentStatus.OVERDUE
    return assignment.status


def contrast_text_color(color: str) -> str:
    """Black or white, whichever reads better on top of ``color``.

    Uses YIQ brightness for hex colors. Named tokens get black text.
    """
    hex_value = (color or "").strip().lstrip("#")
    if len(hex_value) == 3:
        hex_value = "".join(ch * 2 for ch in hex_value)
    if len(hex_value) != 6:
        return "#000000"
    try:
        r, g, b = (int(hex_value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return "#000000"
    brightness = (r * 299 + g * 587 + b * 114) / 1000
    return "#000000" if brightness >= 128 else "#FFFFFF"
