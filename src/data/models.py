"""
HomeKeeper — Data Models.

Houses, their selected item types and the maintenance tasks materialized for
them persist in SQLite. Catalog templates and house items are static and live
in src.core.catalog; only the per-house state is stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum, IntEnum


def type_key(text: str) -> str:
    """Comparison key for enum text: "WashingMachine", "washing machine" and
    "washing_machine" all map to "washingmachine"."""
    return "".join(ch for ch in text.lower() if ch.isalnum())


class _ParsableEnum(str, Enum):
    """String enum with a lenient parser for values read back from storage."""

    @property
    def key(self) -> str:
        return type_key(self.value)

    @classmethod
    def find(cls, value: str | None):
        """Case-insensitive lookup; None when the text names no member."""
        if value:
            key = type_key(value)
            for member in cls:
                if member.key == key:
                    return member
        return None

    @classmethod
    def parse(cls, value: str | None):
        """Like find, but unknown or legacy text falls back to OTHER."""
        member = cls.find(value)
        return member if member is not None else cls("other")


class HouseItemType(_ParsableEnum):
    """Closed set of house item categories that key into the catalog."""

    VENTILATION = "ventilation"
    SHOWER = "shower"
    WASHING_MACHINE = "washing_machine"
    DISHWASHER = "dishwasher"
    BATHROOM_SINK = "bathroom_sink"
    BATHTUB_DRAIN = "bathtub_drain"
    INTERIOR_DOOR = "interior_door"
    SMOKE_DETECTOR = "smoke_detector"
    WATER_HEATER = "water_heater"
    OTHER = "other"


class RoomType(_ParsableEnum):
    BEDROOM = "bedroom"
    BATHROOM = "bathroom"
    KITCHEN = "kitchen"
    LIVING_ROOM = "living_room"
    DINING_ROOM = "dining_room"
    HALL = "hall"
    GARAGE = "garage"
    BASEMENT = "basement"
    ATTIC = "attic"
    OFFICE = "office"
    LAUNDRY_ROOM = "laundry_room"
    OTHER = "other"


class NotificationMethod(IntEnum):
    EMAIL = 1
    SMS = 2
    PUSH_NOTIFICATION = 3
    TELEGRAM = 4


@dataclass(frozen=True)
class MaintenanceTaskTemplate:
    """A catalog entry: one recurring maintenance action with a fixed interval."""

    id: str              # stable name key, e.g. "Dishwasher_CleanFilter"
    name: str
    description: str
    interval_days: int


@dataclass(frozen=True)
class HouseItem:
    """A static house component definition combining type, room and templates."""

    name: str
    item_type: HouseItemType
    room_type: RoomType
    tasks: tuple[MaintenanceTaskTemplate, ...] = ()


@dataclass
class House:
    """The tenant scope for all maintenance tracking. One per owner."""

    id: str
    owner_id: int          # Telegram user id
    created_at: datetime


@dataclass
class HouseConfiguration:
    """Item types a house has opted into (unique, case-insensitive)."""

    house_id: str
    selected_item_types: list[str] = field(default_factory=list)


@dataclass
class ActiveTask:
    """A materialized per-house instance of a catalog template.

    interval_days is copied from the template when the row is created and
    is never re-read from the catalog afterwards.
    """

    id: str
    house_id: str
    item_name: str
    task_template_id: str
    task_name: str
    item_type: HouseItemType
    room_type: RoomType
    interval_days: int
    next_due_date: datetime            # naive UTC
    last_completed_at: datetime | None = None

    @property
    def natural_key(self) -> tuple[str, str]:
        return (self.item_name, self.task_template_id)


@dataclass
class NotificationPreference:
    """Per-user, per-method reminder settings."""

    user_id: int
    method: NotificationMethod
    is_enabled: bool = False
    preferred_time: time | None = None
    reminder_days_before_due: int | None = None
    id: int | None = None


@dataclass
class NotificationLogEntry:
    """Append-only record of one reminder attempt."""

    user_id: int
    task_id: str
    method: NotificationMethod
    sent_at: datetime
    success: bool
    recipient: str | None = None
    error_message: str | None = None
    id: int | None = None
