"""
HomeKeeper — Maintenance Catalog.

Static, read-only registry: which maintenance tasks each kind of house item
needs and how often. Built once at import time and never mutated. Item types
without an explicit entry fall back to a generic inspection/cleaning pair, so
a configured item never ends up with zero tasks.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable

from src.data.models import (
    HouseItem,
    HouseItemType,
    MaintenanceTaskTemplate,
    RoomType,
    type_key,
)

logger = logging.getLogger(__name__)


def _t(key: str, name: str, description: str, interval_days: int) -> MaintenanceTaskTemplate:
    return MaintenanceTaskTemplate(
        id=key, name=name, description=description, interval_days=interval_days,
    )


_CATALOG: MappingProxyType[HouseItemType, tuple[MaintenanceTaskTemplate, ...]] = MappingProxyType({
    HouseItemType.VENTILATION: (
        _t("HVAC_ChangeAirFilter", "Change air filter",
           "Replace the filters of the ventilation unit.", 180),
        _t("HVAC_ProfessionalInspection", "Professional inspection",
           "Have the ventilation system serviced by a professional.", 365),
        _t("HVAC_CleanVentsAndDucts", "Clean vents and ducts",
           "Vacuum the supply and exhaust vents.", 180),
    ),
    HouseItemType.SHOWER: (
        _t("Plumbing_CheckForLeaks", "Check for leaks",
           "Inspect the mixer, hose and joints for drips.", 90),
        _t("Plumbing_CleanDrains", "Clean drains",
           "Remove hair and soap residue from the floor drain.", 180),
        _t("Plumbing_TestWaterPressure", "Test water pressure",
           "Check flow and descale the shower head if needed.", 365),
    ),
    HouseItemType.WASHING_MACHINE: (
        _t("WashingMachine_RinseDrumCompartment", "Rinse drum",
           "Run an empty hot cycle to clean the drum.", 30),
        _t("WashingMachine_RinseSoapCompartment", "Rinse soap compartment",
           "Pull out and rinse the detergent drawer.", 30),
        _t("WashingMachine_RinseDrainFilter", "Rinse drain filter",
           "Empty and clean the pump filter.", 90),
        _t("WashingMachine_RinseDrainOutlet", "Rinse drain outlet",
           "Check the drain hose and outlet for blockages.", 180),
    ),
    HouseItemType.DISHWASHER: (
        _t("Dishwasher_CleanFilter", "Clean filter",
           "Remove and rinse the bottom filter.", 14),
        _t("Dishwasher_CleanDoorAndSeals", "Clean door and seals",
           "Wipe the door gasket and edges.", 30),
    ),
    HouseItemType.BATHROOM_SINK: (
        _t("BathroomSink_CleanDrain", "Clean drain",
           "Clear the sink trap and pop-up stopper.", 90),
    ),
    HouseItemType.BATHTUB_DRAIN: (
        _t("BathtubDrain_CleanDrain", "Clean drain",
           "Clear the bathtub drain of hair and residue.", 90),
    ),
    HouseItemType.INTERIOR_DOOR: (
        _t("Door_LubricateHinges", "Lubricate hinges",
           "Oil the hinges to stop squeaking.", 180),
        _t("Door_CheckWeatherstripping", "Check weatherstripping",
           "Inspect seals and replace worn strips.", 365),
        _t("Door_TightenHardware", "Tighten hardware",
           "Tighten handles, hinges and strike plates.", 180),
    ),
    HouseItemType.SMOKE_DETECTOR: (
        _t("Safety_TestAlarm", "Test alarm",
           "Press the test button and confirm the alarm sounds.", 30),
        _t("Safety_ReplaceBatteries", "Replace batteries",
           "Fit fresh batteries.", 365),
        _t("Safety_CleanSensor", "Clean sensor",
           "Vacuum dust from the sensor chamber.", 180),
    ),
})

_GENERIC_TASKS: tuple[MaintenanceTaskTemplate, ...] = (
    _t("Generic_RegularInspection", "Regular inspection",
       "Look the item over for wear or damage.", 180),
    _t("Generic_CleanAndMaintain", "Clean and maintain",
       "Clean the item and do basic upkeep.", 365),
)


def templates_for(item_type: HouseItemType) -> list[MaintenanceTaskTemplate]:
    """Return the ordered maintenance templates for an item type.

    Total: unregistered types get the generic fallback list.
    """
    return list(_CATALOG.get(item_type, _GENERIC_TASKS))


# One static item per type; room types follow the usual placement.
_ITEM_DEFINITIONS: tuple[tuple[str, HouseItemType, RoomType], ...] = (
    ("Ventilation System", HouseItemType.VENTILATION, RoomType.OTHER),
    ("Master Bathroom Shower", HouseItemType.SHOWER, RoomType.BATHROOM),
    ("Washing Machine", HouseItemType.WASHING_MACHINE, RoomType.LAUNDRY_ROOM),
    ("Dishwasher", HouseItemType.DISHWASHER, RoomType.KITCHEN),
    ("Bathroom Sink", HouseItemType.BATHROOM_SINK, RoomType.BATHROOM),
    ("Bathtub Drain", HouseItemType.BATHTUB_DRAIN, RoomType.BATHROOM),
    ("Interior Doors", HouseItemType.INTERIOR_DOOR, RoomType.HALL),
    ("Smoke Detector", HouseItemType.SMOKE_DETECTOR, RoomType.HALL),
    ("Water Heater", HouseItemType.WATER_HEATER, RoomType.BASEMENT),
)

_ITEMS: tuple[HouseItem, ...] = tuple(
    HouseItem(
        name=name,
        item_type=item_type,
        room_type=room_type,
        tasks=tuple(templates_for(item_type)),
    )
    for name, item_type, room_type in _ITEM_DEFINITIONS
)


def all_items() -> list[HouseItem]:
    """All house items the system knows about."""
    return list(_ITEMS)


def items_for_types(selected: Iterable[str]) -> list[HouseItem]:
    """Resolve selected item-type strings (case-insensitive) to house items.

    Strings that don't name a known item type are ignored.
    """
    wanted = {type_key(s) for s in selected if s and s.strip()}
    items = [i for i in _ITEMS if i.item_type.key in wanted]
    unknown = wanted - {i.item_type.key for i in _ITEMS}
    if unknown:
        logger.debug("Ignoring unknown item types: %s", sorted(unknown))
    return items
