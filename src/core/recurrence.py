"""
HomeKeeper — Due-Date Recurrence.

Pure functions, no I/O: what happens to a task's due date when it is
completed, and how a task classifies (overdue / due soon) relative to "now".
Nothing here is stored; classification is always recomputed.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from src.data.models import ActiveTask

DUE_SOON_DAYS = 7


def to_utc_naive(moment: datetime) -> datetime:
    """Normalize a datetime to naive UTC. Naive input is assumed to be UTC."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def next_due_date(start: datetime, interval_days: int) -> datetime:
    return to_utc_naive(start) + timedelta(days=interval_days)


def complete(task: ActiveTask, completed_at: datetime) -> ActiveTask:
    """Return a copy of *task* completed at *completed_at*.

    last_completed_at and next_due_date always change together; the next due
    date is exactly interval_days after the completion moment.
    """
    completed_at = to_utc_naive(completed_at)
    return replace(
        task,
        last_completed_at=completed_at,
        next_due_date=next_due_date(completed_at, task.interval_days),
    )


def local_due_date(task: ActiveTask, now: datetime) -> date:
    """The due date as a calendar date in the zone of *now* (UTC when naive)."""
    if now.tzinfo is None:
        return task.next_due_date.date()
    return task.next_due_date.replace(tzinfo=timezone.utc).astimezone(now.tzinfo).date()


def days_until_due(task: ActiveTask, now: datetime) -> int:
    """Calendar-day distance from now to the due date (negative when overdue).

    Day boundaries are those of the zone *now* carries.
    """
    return (local_due_date(task, now) - now.date()).days


def is_overdue(task: ActiveTask, now: datetime) -> bool:
    return days_until_due(task, now) < 0


def is_due_soon(task: ActiveTask, now: datetime) -> bool:
    return 0 <= days_until_due(task, now) <= DUE_SOON_DAYS
