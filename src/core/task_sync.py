"""
HomeKeeper — Task Synchronizer.

Brings a house's materialized tasks in line with its configuration. Insert
only: existing rows (and their completion history) are never touched, and a
deselected item type never loses its tasks.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from src.core.catalog import items_for_types
from src.core.recurrence import next_due_date, to_utc_naive
from src.data.models import ActiveTask

if TYPE_CHECKING:
    from src.data.db import ActiveTaskDB, HouseDB

logger = logging.getLogger(__name__)


def sync_active_tasks(
    house_db: HouseDB,
    task_db: ActiveTaskDB,
    house_id: str,
    now: datetime | None = None,
) -> list[ActiveTask]:
    """Create the tasks a house's configuration calls for but doesn't have yet.

    Existing natural keys (item name, template id) are fetched once; every
    missing pair becomes a new task due interval_days from *now*. All inserts
    happen in one transaction, so a store failure leaves nothing half-created
    and propagates to the caller.

    Returns:
        The newly created tasks (empty when nothing was missing).
    """
    from src.data.db import new_id

    config = house_db.get_configuration(house_id)
    if config is None or not config.selected_item_types:
        logger.debug("House %s has no configuration; nothing to sync", house_id)
        return []

    now = to_utc_naive(now or datetime.now(timezone.utc))
    items = items_for_types(config.selected_item_types)
    existing = task_db.get_task_keys(house_id)

    new_tasks: list[ActiveTask] = []
    for item in items:
        for template in item.tasks:
            key = (item.name, template.id)
            if key in existing:
                continue
            existing.add(key)
            new_tasks.append(ActiveTask(
                id=new_id(),
                house_id=house_id,
                item_name=item.name,
                task_template_id=template.id,
                task_name=template.name,
                item_type=item.item_type,
                room_type=item.room_type,
                interval_days=template.interval_days,
                next_due_date=next_due_date(now, template.interval_days),
                last_completed_at=None,
            ))

    if not new_tasks:
        logger.debug("House %s tasks already in sync", house_id)
        return []

    inserted = task_db.insert_tasks(new_tasks)
    logger.info("House %s synced: %d new task(s)", house_id, inserted)
    return new_tasks
