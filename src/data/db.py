"""
HomeKeeper — SQLite storage.

Houses, their selected item types, materialized maintenance tasks,
notification preferences and the notification log all live in one SQLite
file. Each aggregate gets its own DB class; they can share a path.

Datetimes are stored as naive-UTC ISO strings with microsecond precision so
that string comparison in SQL is chronological comparison.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Iterable

from src.core.recurrence import complete, to_utc_naive
from src.data.models import (
    ActiveTask,
    House,
    HouseConfiguration,
    HouseItemType,
    NotificationLogEntry,
    NotificationMethod,
    NotificationPreference,
    RoomType,
)

logger = logging.getLogger(__name__)


def _iso(moment: datetime) -> str:
    return to_utc_naive(moment).isoformat(timespec="microseconds")


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def new_id() -> str:
    return uuid.uuid4().hex


class _SQLiteDB:
    """Connection handling shared by the DB classes."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


def _create_house_tables(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS houses (
            id          TEXT    PRIMARY KEY,
            owner_id    INTEGER NOT NULL UNIQUE,
            created_at  TEXT    NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS selected_item_types (
            id        INTEGER PRIMARY KEY AUTOINCREMENT,
            house_id  TEXT    NOT NULL REFERENCES houses(id) ON DELETE CASCADE,
            type      TEXT    NOT NULL COLLATE NOCASE,
            UNIQUE (house_id, type)
        )
    """)


class HouseDB(_SQLiteDB):
    """Houses and the item types each house has selected."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            _create_house_tables(conn)
        logger.debug("House tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_house(row: sqlite3.Row) -> House:
        return House(
            id=row["id"],
            owner_id=row["owner_id"],
            created_at=_parse_dt(row["created_at"]),
        )

    def create_house(self, owner_id: int, created_at: datetime | None = None) -> House:
        """Register a house for an owner. Each owner has at most one house."""
        house = House(
            id=new_id(),
            owner_id=owner_id,
            created_at=to_utc_naive(created_at or datetime.now(timezone.utc)),
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO houses (id, owner_id, created_at) VALUES (?, ?, ?)",
                (house.id, owner_id, _iso(house.created_at)),
            )
        logger.info("House %s created for owner %d", house.id, owner_id)
        return house

    def get_house(self, house_id: str) -> House | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM houses WHERE id = ?", (house_id,)
            ).fetchone()
        return self._row_to_house(row) if row else None

    def get_house_by_owner(self, owner_id: int) -> House | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM houses WHERE owner_id = ?", (owner_id,)
            ).fetchone()
        return self._row_to_house(row) if row else None

    def get_house_ids_for_owner(self, owner_id: int) -> list[str]:
        """IDs of every house the user owns."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id FROM houses WHERE owner_id = ?", (owner_id,)
            ).fetchall()
        return [r["id"] for r in rows]

    def get_configuration(self, house_id: str) -> HouseConfiguration | None:
        """Selected item types for a house, or None if the house doesn't exist."""
        with self._connect() as conn:
            exists = conn.execute(
                "SELECT 1 FROM houses WHERE id = ?", (house_id,)
            ).fetchone()
            if exists is None:
                return None
            rows = conn.execute(
                "SELECT type FROM selected_item_types WHERE house_id = ? ORDER BY id",
                (house_id,),
            ).fetchall()
        return HouseConfiguration(
            house_id=house_id, selected_item_types=[r["type"] for r in rows],
        )

    def update_selected_item_types(
        self, house_id: str, add: Iterable[str], remove: Iterable[str],
    ) -> None:
        """Apply a selection diff in one transaction."""
        add = list(add)
        remove = list(remove)
        with self._connect() as conn:
            for item_type in remove:
                conn.execute(
                    "DELETE FROM selected_item_types WHERE house_id = ? AND type = ?",
                    (house_id, item_type),
                )
            for item_type in add:
                conn.execute(
                    "INSERT OR IGNORE INTO selected_item_types (house_id, type) VALUES (?, ?)",
                    (house_id, item_type),
                )
        logger.info(
            "House %s item types: +%s -%s", house_id, sorted(add), sorted(remove),
        )

    def delete_house(self, house_id: str) -> bool:
        """Delete a house; its selection and tasks cascade with it."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM houses WHERE id = ?", (house_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("House %s deleted", house_id)
        return deleted


class ActiveTaskDB(_SQLiteDB):
    """Materialized maintenance tasks, one row per (house, item, template)."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            _create_house_tables(conn)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS active_tasks (
                    id                 TEXT    PRIMARY KEY,
                    house_id           TEXT    NOT NULL REFERENCES houses(id) ON DELETE CASCADE,
                    item_name          TEXT    NOT NULL,
                    task_template_id   TEXT    NOT NULL,
                    task_name          TEXT    NOT NULL DEFAULT '',
                    item_type          TEXT    NOT NULL,
                    room_type          TEXT    NOT NULL DEFAULT 'other',
                    interval_days      INTEGER NOT NULL,
                    last_completed_at  TEXT,
                    next_due_date      TEXT    NOT NULL,
                    UNIQUE (house_id, item_name, task_template_id)
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(active_tasks)").fetchall()
            }
            if "task_name" not in existing_cols:
                conn.execute(
                    "ALTER TABLE active_tasks ADD COLUMN task_name TEXT NOT NULL DEFAULT ''"
                )
            if "room_type" not in existing_cols:
                conn.execute(
                    "ALTER TABLE active_tasks ADD COLUMN room_type TEXT NOT NULL DEFAULT 'other'"
                )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS ix_active_tasks_house ON active_tasks (house_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS ix_active_tasks_due ON active_tasks (next_due_date)"
            )
        logger.debug("Active tasks table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> ActiveTask:
        return ActiveTask(
            id=row["id"],
            house_id=row["house_id"],
            item_name=row["item_name"],
            task_template_id=row["task_template_id"],
            task_name=row["task_name"],
            item_type=HouseItemType.parse(row["item_type"]),
            room_type=RoomType.parse(row["room_type"]),
            interval_days=row["interval_days"],
            next_due_date=_parse_dt(row["next_due_date"]),
            last_completed_at=_parse_dt(row["last_completed_at"]),
        )

    def get_task_keys(self, house_id: str) -> set[tuple[str, str]]:
        """Natural keys (item_name, task_template_id) already present for a house."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT item_name, task_template_id FROM active_tasks WHERE house_id = ?",
                (house_id,),
            ).fetchall()
        return {(r["item_name"], r["task_template_id"]) for r in rows}

    def insert_tasks(self, tasks: Iterable[ActiveTask]) -> int:
        """Insert tasks in a single transaction, skipping existing natural keys.

        Any error rolls back the whole batch and propagates.
        Returns the number of rows actually inserted.
        """
        inserted = 0
        with self._connect() as conn:
            for task in tasks:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO active_tasks
                        (id, house_id, item_name, task_template_id, task_name,
                         item_type, room_type, interval_days,
                         last_completed_at, next_due_date)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        task.id, task.house_id, task.item_name, task.task_template_id,
                        task.task_name, task.item_type.value, task.room_type.value,
                        task.interval_days,
                        _iso(task.last_completed_at) if task.last_completed_at else None,
                        _iso(task.next_due_date),
                    ),
                )
                inserted += cursor.rowcount
        return inserted

    def get_task(self, task_id: str) -> ActiveTask | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM active_tasks WHERE id = ?", (task_id,)
            ).fetchone()
        return self._row_to_task(row) if row else None

    def list_for_house(
        self, house_id: str, item_types: Iterable[str] | None = None,
    ) -> list[ActiveTask]:
        """Tasks of a house ordered by due date, optionally limited to item types."""
        query = "SELECT * FROM active_tasks WHERE house_id = ?"
        params: list = [house_id]
        if item_types is not None:
            values = sorted({
                t.value for t in (HouseItemType.find(s) for s in item_types) if t is not None
            })
            if not values:
                return []
            query += f" AND item_type IN ({', '.join('?' * len(values))})"
            params.extend(values)
        query += " ORDER BY next_due_date"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_task(r) for r in rows]

    def get_tasks_due_between(
        self, house_ids: Iterable[str], start: datetime, end: datetime,
    ) -> list[ActiveTask]:
        """Tasks of the given houses with start <= next_due_date <= end."""
        house_ids = list(house_ids)
        if not house_ids:
            return []
        query = (
            "SELECT * FROM active_tasks"
            f" WHERE house_id IN ({', '.join('?' * len(house_ids))})"
            " AND next_due_date >= ? AND next_due_date <= ?"
            " ORDER BY next_due_date"
        )
        with self._connect() as conn:
            rows = conn.execute(query, [*house_ids, _iso(start), _iso(end)]).fetchall()
        return [self._row_to_task(r) for r in rows]

    def complete_task(self, task_id: str, completed_at: datetime) -> ActiveTask | None:
        """Record a completion; both timestamps are written in one UPDATE."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM active_tasks WHERE id = ?", (task_id,)
            ).fetchone()
            if row is None:
                return None
            task = complete(self._row_to_task(row), completed_at)
            conn.execute(
                "UPDATE active_tasks SET last_completed_at = ?, next_due_date = ? WHERE id = ?",
                (_iso(task.last_completed_at), _iso(task.next_due_date), task_id),
            )
        logger.info(
            "Task %s '%s' completed, next due: %s",
            task_id, task.task_name, task.next_due_date.date().isoformat(),
        )
        return task

    def count_for_house(self, house_id: str) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM active_tasks WHERE house_id = ?", (house_id,)
            ).fetchone()
        return row[0]


class NotificationDB(_SQLiteDB):
    """Notification preferences and the append-only notification log."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS notification_preferences (
                    id                        INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id                   INTEGER NOT NULL,
                    method                    INTEGER NOT NULL,
                    is_enabled                INTEGER NOT NULL DEFAULT 0,
                    preferred_time            TEXT,
                    reminder_days_before_due  INTEGER,
                    UNIQUE (user_id, method)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS notification_logs (
                    id             INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id        INTEGER NOT NULL,
                    task_id        TEXT    NOT NULL,
                    method         INTEGER NOT NULL,
                    sent_at        TEXT    NOT NULL,
                    success        INTEGER NOT NULL,
                    recipient      TEXT,
                    error_message  TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS ix_notification_logs_lookup"
                " ON notification_logs (user_id, task_id, sent_at)"
            )
        logger.debug("Notification tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_preference(row: sqlite3.Row) -> NotificationPreference:
        preferred = row["preferred_time"]
        return NotificationPreference(
            id=row["id"],
            user_id=row["user_id"],
            method=NotificationMethod(row["method"]),
            is_enabled=bool(row["is_enabled"]),
            preferred_time=time.fromisoformat(preferred) if preferred else None,
            reminder_days_before_due=row["reminder_days_before_due"],
        )

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> NotificationLogEntry:
        return NotificationLogEntry(
            id=row["id"],
            user_id=row["user_id"],
            task_id=row["task_id"],
            method=NotificationMethod(row["method"]),
            sent_at=_parse_dt(row["sent_at"]),
            success=bool(row["success"]),
            recipient=row["recipient"],
            error_message=row["error_message"],
        )

    def get_preference(
        self, user_id: int, method: NotificationMethod,
    ) -> NotificationPreference | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM notification_preferences WHERE user_id = ? AND method = ?",
                (user_id, int(method)),
            ).fetchone()
        return self._row_to_preference(row) if row else None

    def list_preferences(self, user_id: int) -> list[NotificationPreference]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM notification_preferences WHERE user_id = ? ORDER BY method",
                (user_id,),
            ).fetchall()
        return [self._row_to_preference(r) for r in rows]

    def list_enabled_preferences(
        self, method: NotificationMethod,
    ) -> list[NotificationPreference]:
        """Enabled preferences for one delivery method, in user order."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM notification_preferences"
                " WHERE method = ? AND is_enabled = 1 ORDER BY user_id",
                (int(method),),
            ).fetchall()
        return [self._row_to_preference(r) for r in rows]

    def save_preference(self, preference: NotificationPreference) -> NotificationPreference:
        """Insert or update the preference for (user_id, method)."""
        preferred = (
            preference.preferred_time.isoformat(timespec="seconds")
            if preference.preferred_time else None
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notification_preferences
                    (user_id, method, is_enabled, preferred_time, reminder_days_before_due)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id, method) DO UPDATE SET
                    is_enabled = excluded.is_enabled,
                    preferred_time = excluded.preferred_time,
                    reminder_days_before_due = excluded.reminder_days_before_due
                """,
                (
                    preference.user_id, int(preference.method),
                    int(preference.is_enabled), preferred,
                    preference.reminder_days_before_due,
                ),
            )
        logger.info(
            "Notification preference saved for user %d, method %s",
            preference.user_id, preference.method.name,
        )
        return self.get_preference(preference.user_id, preference.method)

    def add_log(self, entry: NotificationLogEntry) -> NotificationLogEntry:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO notification_logs
                    (user_id, task_id, method, sent_at, success, recipient, error_message)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.user_id, entry.task_id, int(entry.method),
                    _iso(entry.sent_at), int(entry.success),
                    entry.recipient, entry.error_message,
                ),
            )
            entry.id = cursor.lastrowid
        return entry

    def has_recent_log(self, user_id: int, task_id: str, since: datetime) -> bool:
        """Whether a successful reminder for (user, task) was logged at or after *since*."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM notification_logs"
                " WHERE user_id = ? AND task_id = ? AND success = 1 AND sent_at >= ?"
                " LIMIT 1",
                (user_id, task_id, _iso(since)),
            ).fetchone()
        return row is not None

    def list_logs(self, user_id: int | None = None) -> list[NotificationLogEntry]:
        query = "SELECT * FROM notification_logs"
        params: list = []
        if user_id is not None:
            query += " WHERE user_id = ?"
            params.append(user_id)
        query += " ORDER BY id"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_log(r) for r in rows]
