"""
HomeKeeper — Active task queries and completion.

Listings only show tasks whose item type is currently selected for the
house. Rows of deselected types stay in the store with their history and
reappear when the type is selected again.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from src.core.errors import TaskNotFoundError
from src.core.recurrence import days_until_due, is_overdue

if TYPE_CHECKING:
    from src.data.db import ActiveTaskDB, HouseDB
    from src.data.models import ActiveTask, RoomType

logger = logging.getLogger(__name__)


def get_active_tasks(
    house_db: HouseDB, task_db: ActiveTaskDB, house_id: str,
) -> list[ActiveTask]:
    """Visible tasks of a house ordered by due date."""
    config = house_db.get_configuration(house_id)
    if config is None or not config.selected_item_types:
        return []
    return task_db.list_for_house(house_id, item_types=config.selected_item_types)


def get_tasks_by_room_type(
    house_db: HouseDB, task_db: ActiveTaskDB, house_id: str, room_type: RoomType,
) -> list[ActiveTask]:
    return [
        t for t in get_active_tasks(house_db, task_db, house_id)
        if t.room_type is room_type
    ]


def get_next_task(
    house_db: HouseDB, task_db: ActiveTaskDB, house_id: str,
) -> ActiveTask | None:
    tasks = get_active_tasks(house_db, task_db, house_id)
    return tasks[0] if tasks else None


def get_overdue_tasks(
    house_db: HouseDB, task_db: ActiveTaskDB, house_id: str, now: datetime,
) -> list[ActiveTask]:
    return [
        t for t in get_active_tasks(house_db, task_db, house_id)
        if is_overdue(t, now)
    ]


def get_tasks_due_within(
    house_db: HouseDB, task_db: ActiveTaskDB, house_id: str, days: int, now: datetime,
) -> list[ActiveTask]:
    """Tasks due between today and *days* calendar days from now (inclusive)."""
    return [
        t for t in get_active_tasks(house_db, task_db, house_id)
        if 0 <= days_until_due(t, now) <= days
    ]


def get_task_count(house_db: HouseDB, task_db: ActiveTaskDB, house_id: str) -> int:
    return len(get_active_tasks(house_db, task_db, house_id))


def complete_task(
    task_db: ActiveTaskDB,
    house_id: str,
    task_id: str,
    completed_at: datetime | None = None,
) -> ActiveTask:
    """Mark a task of *house_id* as completed (defaults to now, UTC).

    Raises:
        TaskNotFoundError: the id is unknown or belongs to another house.
    """
    task = task_db.get_task(task_id)
    if task is None or task.house_id != house_id:
        raise TaskNotFoundError(f"Task {task_id} not found")

    completed = task_db.complete_task(task_id, completed_at or datetime.now(timezone.utc))
    if completed is None:
        raise TaskNotFoundError(f"Task {task_id} not found")
    return completed
