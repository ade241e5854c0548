"""
HomeKeeper — House Configuration.

Which item types a house has opted into. Saving a configuration applies a
case-insensitive set difference against the current selection and then
synchronizes the house's tasks. Deselecting a type removes it from the
selection only; already-materialized tasks keep their history.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from src.core.errors import MissingUserContextError
from src.core.task_sync import sync_active_tasks
from src.data.models import House, HouseConfiguration, HouseItemType, type_key

if TYPE_CHECKING:
    from src.data.db import ActiveTaskDB, HouseDB
    from src.data.models import ActiveTask

logger = logging.getLogger(__name__)


def get_or_create_house(house_db: HouseDB, owner_id: int | None) -> House:
    """Return the owner's house, creating it on first use."""
    if owner_id is None:
        raise MissingUserContextError("No user to resolve a house for")
    house = house_db.get_house_by_owner(owner_id)
    if house is None:
        house = house_db.create_house(owner_id)
    return house


def get_configuration(house_db: HouseDB, house_id: str) -> HouseConfiguration | None:
    return house_db.get_configuration(house_id)


def has_configuration(house_db: HouseDB, house_id: str) -> bool:
    config = house_db.get_configuration(house_id)
    return config is not None and bool(config.selected_item_types)


def normalize_item_types(item_types: Iterable[str]) -> list[str]:
    """Canonical, de-duplicated item type values.

    Raises:
        ValueError: if a name isn't a known item type.
    """
    result: list[str] = []
    for raw in item_types:
        member = HouseItemType.find(raw)
        if member is None or member is HouseItemType.OTHER:
            raise ValueError(f"Unknown item type: {raw!r}")
        if member.value not in result:
            result.append(member.value)
    return result


def save_configuration(
    house_db: HouseDB,
    task_db: ActiveTaskDB,
    house_id: str,
    desired_types: Iterable[str],
    now: datetime | None = None,
) -> list[ActiveTask]:
    """Replace a house's selection with *desired_types* and sync its tasks.

    Adding an already-selected type is a no-op. Errors from the store
    propagate to the caller.

    Returns:
        Tasks created by the follow-up sync.
    """
    desired = {type_key(t): t for t in normalize_item_types(desired_types)}
    config = house_db.get_configuration(house_id)
    if config is None:
        raise ValueError(f"House {house_id} not found")

    current = {type_key(t): t for t in config.selected_item_types}
    to_add = [t for k, t in desired.items() if k not in current]
    to_remove = [t for k, t in current.items() if k not in desired]

    if to_add or to_remove:
        house_db.update_selected_item_types(house_id, add=to_add, remove=to_remove)
    else:
        logger.debug("House %s selection unchanged", house_id)

    return sync_active_tasks(house_db, task_db, house_id, now=now)
