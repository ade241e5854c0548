"""Tests for src.core.task_sync — materializing tasks from a house configuration."""

import sqlite3
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from src.core.task_sync import sync_active_tasks

NOW = datetime(2026, 3, 10, 8, 0)


def _select(house_db, house, *types):
    house_db.update_selected_item_types(house.id, add=list(types), remove=[])


class TestSyncActiveTasks:
    def test_no_configuration_is_noop(self, house_db, task_db, house):
        assert sync_active_tasks(house_db, task_db, house.id, now=NOW) == []
        assert task_db.count_for_house(house.id) == 0

    def test_unknown_house_is_noop(self, house_db, task_db):
        assert sync_active_tasks(house_db, task_db, "missing", now=NOW) == []

    def test_creates_one_task_per_template(self, house_db, task_db, house):
        _select(house_db, house, "dishwasher")

        created = sync_active_tasks(house_db, task_db, house.id, now=NOW)

        due = {t.task_template_id: t.next_due_date for t in created}
        assert due == {
            "Dishwasher_CleanFilter": NOW + timedelta(days=14),
            "Dishwasher_CleanDoorAndSeals": NOW + timedelta(days=30),
        }
        for task in created:
            assert task.house_id == house.id
            assert task.item_name == "Dishwasher"
            assert task.last_completed_at is None
        assert task_db.count_for_house(house.id) == 2

    def test_shower_intervals(self, house_db, task_db, house):
        _select(house_db, house, "shower")

        created = sync_active_tasks(house_db, task_db, house.id, now=NOW)

        by_id = {t.task_template_id: t for t in created}
        assert len(created) == 3
        assert by_id["Plumbing_CheckForLeaks"].next_due_date == NOW + timedelta(days=90)
        assert by_id["Plumbing_TestWaterPressure"].next_due_date == NOW + timedelta(days=365)

    def test_is_idempotent(self, house_db, task_db, house):
        _select(house_db, house, "dishwasher", "shower")
        first = sync_active_tasks(house_db, task_db, house.id, now=NOW)
        second = sync_active_tasks(house_db, task_db, house.id, now=NOW + timedelta(days=1))

        assert len(first) == 5
        assert second == []
        assert task_db.count_for_house(house.id) == 5

    def test_existing_tasks_are_untouched(self, house_db, task_db, house):
        _select(house_db, house, "dishwasher")
        created = sync_active_tasks(house_db, task_db, house.id, now=NOW)
        done = task_db.complete_task(created[0].id, NOW + timedelta(days=2))

        _select(house_db, house, "bathtub drain")
        added = sync_active_tasks(house_db, task_db, house.id, now=NOW + timedelta(days=5))

        assert [t.task_template_id for t in added] == ["BathtubDrain_CleanDrain"]
        assert task_db.get_task(created[0].id) == done

    def test_legacy_type_spelling_is_matched(self, house_db, task_db, house):
        _select(house_db, house, "WashingMachine")
        created = sync_active_tasks(house_db, task_db, house.id, now=NOW)
        assert len(created) == 4

    def test_store_failure_creates_nothing(self, house_db, task_db, house):
        _select(house_db, house, "dishwasher")

        with patch.object(task_db, "insert_tasks", side_effect=sqlite3.OperationalError("disk I/O error")):
            with pytest.raises(sqlite3.OperationalError):
                sync_active_tasks(house_db, task_db, house.id, now=NOW)

        assert task_db.count_for_house(house.id) == 0
