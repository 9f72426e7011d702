"""Deadline urgency classification."""

from datetime import date, datetime, timezone, tzinfo

from task_insights.db.models import COMPLETED as COMPLETED_STATUS
from task_insights.db.source import parse_dt

COMPLETED = "completed"
NO_DEADLINE = "noDeadline"
OVERDUE = "overdue"
DUE_TODAY = "dueToday"
UPCOMING = "upcoming"

UPCOMING_WINDOW_DAYS = 14


def to_local_date(value, tz: tzinfo = timezone.utc) -> date | None:
    """Calendar day of a timestamp in the report timezone, or None if unusable."""
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    dt = parse_dt(value)
    if dt is None:
        return None
    return dt.astimezone(tz).date()


def days_until_due(deadline, now: datetime, tz: tzinfo = timezone.utc) -> int | None:
    """Whole days between today and the deadline's day, negative when past."""
    due = to_local_date(deadline, tz)
    today = to_local_date(now, tz)
    if due is None or today is None:
        return None
    return (due - today).days


def classify(status: str, deadline, now: datetime, tz: tzinfo = timezone.utc) -> str | None:
    """Bucket a task by urgency.

    Returns one of COMPLETED, NO_DEADLINE, OVERDUE, DUE_TODAY or UPCOMING, or
    None when the deadline is more than UPCOMING_WINDOW_DAYS away. Both the
    deadline and ``now`` are reduced to their calendar day in ``tz`` first.
    """
    if status == COMPLETED_STATUS:
        return COMPLETED

    days = days_until_due(deadline, now, tz)
    if days is None:
        return NO_DEADLINE
    if days < 0:
        return OVERDUE
    if days == 0:
        return DUE_TODAY
    if days <= UPCOMING_WINDOW_DAYS:
        return UPCOMING
    return None
