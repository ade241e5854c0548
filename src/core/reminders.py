"""
HomeKeeper — Task Reminder Pass.

One pass over every enabled notification preference: evaluate which tasks
are due, skip anything already reminded about in the last 24 hours, send the
rest through the notifier and log every attempt. Users are processed one
after another; a failure for one user is logged and the pass moves on.

This module is provider-agnostic: it depends on the NotificationPort
protocol, not on a specific messaging implementation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from src.core.recurrence import days_until_due, local_due_date
from src.core.reminder_calculator import get_tasks_due_for_reminder
from src.data.models import NotificationLogEntry, NotificationMethod

if TYPE_CHECKING:
    from src.data.db import ActiveTaskDB, HouseDB, NotificationDB
    from src.data.models import ActiveTask
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

DEDUP_WINDOW = timedelta(hours=24)


@dataclass
class ReminderPassResult:
    """Counters for one reminder pass."""
    users_checked: int = 0
    reminders_sent: int = 0
    skipped_recent: int = 0
    failed_users: int = 0


async def run_reminder_pass(
    notifier: NotificationPort,
    house_db: HouseDB,
    task_db: ActiveTaskDB,
    notification_db: NotificationDB,
    now: datetime,
    method: NotificationMethod = NotificationMethod.TELEGRAM,
) -> ReminderPassResult:
    """Send due-task reminders to every user with *method* enabled."""
    result = ReminderPassResult()
    preferences = notification_db.list_enabled_preferences(method)
    logger.info("Checking reminders for %d users with %s preferences", len(preferences), method.name)

    for preference in preferences:
        result.users_checked += 1
        try:
            tasks = get_tasks_due_for_reminder(house_db, task_db, now, preference)
            for task in tasks:
                if notification_db.has_recent_log(preference.user_id, task.id, now - DEDUP_WINDOW):
                    logger.debug(
                        "Skipping task %s - reminder already sent in last 24 hours", task.id,
                    )
                    result.skipped_recent += 1
                    continue

                logger.info("Sending reminder for task %s to user %d", task.id, preference.user_id)
                if await send_task_reminder(
                    notifier, task_db, notification_db,
                    preference.user_id, task.id, now, method,
                ):
                    result.reminders_sent += 1
        except Exception as exc:
            result.failed_users += 1
            logger.error("Error processing reminders for user %d: %s", preference.user_id, exc)

    logger.info(
        "Reminder check completed: %d sent, %d skipped, %d user(s) failed",
        result.reminders_sent, result.skipped_recent, result.failed_users,
    )
    return result


async def send_task_reminder(
    notifier: NotificationPort,
    task_db: ActiveTaskDB,
    notification_db: NotificationDB,
    user_id: int,
    task_id: str,
    now: datetime,
    method: NotificationMethod = NotificationMethod.TELEGRAM,
) -> bool:
    """Deliver one reminder and log the attempt.

    Returns False when the task no longer exists. A notifier failure is
    logged as a failed attempt and re-raised.
    """
    task = task_db.get_task(task_id)
    if task is None:
        logger.warning("Task %s not found for reminder", task_id)
        return False

    recipient = str(user_id)
    try:
        await notifier.send_message(user_id, format_reminder_message(task, now))
    except Exception as exc:
        logger.error("Failed to send task reminder to %s for task %s: %s", recipient, task_id, exc)
        notification_db.add_log(NotificationLogEntry(
            user_id=user_id, task_id=task_id, method=method, sent_at=now,
            success=False, recipient=recipient, error_message=str(exc),
        ))
        raise

    notification_db.add_log(NotificationLogEntry(
        user_id=user_id, task_id=task_id, method=method, sent_at=now,
        success=True, recipient=recipient,
    ))
    logger.info("Task reminder sent to %s for task %s", recipient, task_id)
    return True


def format_reminder_message(task: ActiveTask, now: datetime) -> str:
    days = days_until_due(task, now)
    if days == 0:
        when = "today"
    elif days == 1:
        when = "tomorrow"
    else:
        when = f"in {days} days"

    return "\n".join([
        "🔧 Task reminder",
        f"Item: {task.item_name}",
        f"Task: {task.task_name}",
        f"Due: {local_due_date(task, now).isoformat()} ({when})",
        f"\nMark it done with /done {task.id}",
    ])
