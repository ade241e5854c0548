"""
HomeKeeper — Reminder window calculation.

Decides, for one notification preference and one evaluation moment, which
tasks are due for a reminder. Never reads the wall clock and never writes:
the caller supplies `now`, and deduplication and delivery are the caller's
job (see src.core.reminders).

Steps, each a hard filter:
1. Time-of-day gate: within 30 minutes of the preferred time, if one is set.
2. Lead time: threshold = now + reminder_days_before_due (default 1) days.
3. House scoping: only houses the user owns.
4. Due window: now <= next_due_date <= threshold, both ends inclusive.
   Overdue tasks are not re-flagged here.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING, Iterable

from src.core.recurrence import to_utc_naive

if TYPE_CHECKING:
    from src.data.db import ActiveTaskDB, HouseDB
    from src.data.models import ActiveTask, NotificationPreference

logger = logging.getLogger(__name__)

PREFERRED_TIME_TOLERANCE_MINUTES = 30
DEFAULT_REMINDER_DAYS = 1
MAX_REMINDER_DAYS = 365


def _minutes_of_day(t: time) -> float:
    return t.hour * 60 + t.minute + t.second / 60 + t.microsecond / 60_000_000


def is_within_preferred_window(now: datetime, preferred_time: time | None) -> bool:
    """Whether `now`'s time of day is within 30 minutes of *preferred_time*.

    No preferred time means the gate always passes. The difference is a plain
    absolute difference of times of day and does not wrap at midnight:
    00:10 and 23:55 are 1425 minutes apart here.
    """
    if preferred_time is None:
        return True
    diff = abs(_minutes_of_day(now.time()) - _minutes_of_day(preferred_time))
    return diff <= PREFERRED_TIME_TOLERANCE_MINUTES


def reminder_threshold(now: datetime, preference: NotificationPreference) -> datetime:
    """Latest due date that still counts as due for a reminder."""
    days = preference.reminder_days_before_due
    if days is None:
        days = DEFAULT_REMINDER_DAYS
    return now + timedelta(days=days)


def select_due_for_reminder(
    now: datetime,
    preference: NotificationPreference,
    tasks: Iterable[ActiveTask],
) -> list[ActiveTask]:
    """Pure form of the evaluator over an already-scoped candidate list."""
    if not is_within_preferred_window(now, preference.preferred_time):
        return []
    start = to_utc_naive(now)
    end = to_utc_naive(reminder_threshold(now, preference))
    due = [t for t in tasks if start <= t.next_due_date <= end]
    return sorted(due, key=lambda t: t.next_due_date)


def get_tasks_due_for_reminder(
    house_db: HouseDB,
    task_db: ActiveTaskDB,
    now: datetime,
    preference: NotificationPreference,
) -> list[ActiveTask]:
    """Store-backed evaluator: gate, scope to the user's houses, range query."""
    if not is_within_preferred_window(now, preference.preferred_time):
        logger.debug(
            "User %d outside preferred time %s", preference.user_id, preference.preferred_time,
        )
        return []

    house_ids = house_db.get_house_ids_for_owner(preference.user_id)
    if not house_ids:
        return []

    threshold = reminder_threshold(now, preference)
    return task_db.get_tasks_due_between(house_ids, now, threshold)
