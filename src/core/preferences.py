"""
HomeKeeper — Notification preferences.

One preference per (user, delivery method). Methods the user never
configured are reported with the defaults: disabled, remind 1 day ahead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.core.errors import MissingUserContextError
from src.core.reminder_calculator import DEFAULT_REMINDER_DAYS, MAX_REMINDER_DAYS
from src.data.models import NotificationMethod, NotificationPreference

if TYPE_CHECKING:
    from src.data.db import NotificationDB

logger = logging.getLogger(__name__)


def _require_user(user_id: int | None) -> int:
    if user_id is None:
        raise MissingUserContextError("No authenticated user")
    return user_id


def default_preference(user_id: int, method: NotificationMethod) -> NotificationPreference:
    return NotificationPreference(
        user_id=user_id,
        method=method,
        is_enabled=False,
        reminder_days_before_due=DEFAULT_REMINDER_DAYS,
    )


def get_preferences(db: NotificationDB, user_id: int | None) -> list[NotificationPreference]:
    """One preference for every method, stored or default."""
    user_id = _require_user(user_id)
    stored = {p.method: p for p in db.list_preferences(user_id)}
    return [stored.get(m) or default_preference(user_id, m) for m in NotificationMethod]


def get_preference(
    db: NotificationDB, user_id: int | None, method: NotificationMethod,
) -> NotificationPreference | None:
    return db.get_preference(_require_user(user_id), method)


def save_preference(
    db: NotificationDB, user_id: int | None, preference: NotificationPreference,
) -> NotificationPreference:
    """Upsert *preference* for the user; the record's own user_id is ignored."""
    user_id = _require_user(user_id)
    days = preference.reminder_days_before_due
    if days is not None and not 0 <= days <= MAX_REMINDER_DAYS:
        raise ValueError(
            f"reminder_days_before_due must be between 0 and {MAX_REMINDER_DAYS}"
        )
    preference.user_id = user_id
    return db.save_preference(preference)
