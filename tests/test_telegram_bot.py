"""Tests for src.bot.telegram_bot — Telegram bot handlers.

Tests command handlers, argument parsing and authorization.
Handlers run against temp-file DBs patched in for the default ones.
"""

from datetime import datetime, time, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.bot.telegram_bot import (
    _format_preference,
    _format_task_line,
    _parse_remind_args,
)
from src.data.models import (
    ActiveTask,
    HouseItemType,
    NotificationMethod,
    NotificationPreference,
    RoomType,
)

NOW = datetime(2026, 3, 10, 10, 0)


def _make_update(text="", user_id=12345):
    """Create a mock Update with a text message from an authorized user."""
    update = MagicMock()
    update.message.text = text
    update.effective_user.id = user_id
    update.message.reply_text = AsyncMock()
    return update


def _make_context(args=None):
    """Create a mock context with command args."""
    context = MagicMock()
    context.args = args or []
    context.bot_data = {}
    return context


def _reply_text(update):
    return update.message.reply_text.call_args[0][0]


@pytest.fixture
def dbs(house_db, task_db, notification_db):
    """Route the handlers' DB constructors to the temp-file DBs."""
    with patch("src.data.db.HouseDB", return_value=house_db), \
         patch("src.data.db.ActiveTaskDB", return_value=task_db), \
         patch("src.data.db.NotificationDB", return_value=notification_db):
        yield house_db, task_db, notification_db


def _task(next_due, task_id="abc123"):
    return ActiveTask(
        id=task_id, house_id="h1", item_name="Dishwasher",
        task_template_id="Dishwasher_CleanFilter", task_name="Clean filter",
        item_type=HouseItemType.DISHWASHER, room_type=RoomType.KITCHEN,
        interval_days=14, next_due_date=next_due,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestParseRemindArgs:
    def test_time_only(self):
        assert _parse_remind_args(["08:30"]) == (time(8, 30), 1)

    def test_time_and_days(self):
        assert _parse_remind_args(["19:00", "3"]) == (time(19, 0), 3)

    def test_any_time(self):
        assert _parse_remind_args(["any", "0"]) == (None, 0)

    def test_invalid_returns_none(self):
        assert _parse_remind_args([]) is None
        assert _parse_remind_args(["25:00"]) is None
        assert _parse_remind_args(["08:00", "soon"]) is None
        assert _parse_remind_args(["08:00", "-1"]) is None
        assert _parse_remind_args(["08:00", "1", "extra"]) is None

    def test_lead_days_bounded(self):
        assert _parse_remind_args(["any", "365"]) == (None, 365)
        assert _parse_remind_args(["any", "366"]) is None
        assert _parse_remind_args(["any", "1000000000"]) is None


class TestFormatting:
    def test_task_line_overdue(self):
        line = _format_task_line(_task(NOW - timedelta(days=2)), NOW)
        assert "overdue by 2d" in line
        assert "`abc123`" in line

    def test_task_line_due_soon(self):
        assert "(today)" in _format_task_line(_task(NOW + timedelta(hours=1)), NOW)
        assert "(in 3d)" in _format_task_line(_task(NOW + timedelta(days=3)), NOW)

    def test_task_line_far_future_shows_date(self):
        assert "(2026-06-08)" in _format_task_line(_task(NOW + timedelta(days=90)), NOW)

    def test_preference_off(self):
        pref = NotificationPreference(user_id=1, method=NotificationMethod.TELEGRAM)
        assert _format_preference(pref).startswith("Reminders are off")

    def test_preference_on(self):
        pref = NotificationPreference(
            user_id=1, method=NotificationMethod.TELEGRAM, is_enabled=True,
            preferred_time=time(7, 5), reminder_days_before_due=2,
        )
        assert _format_preference(pref) == "Reminders on: around 07:05, 2 day(s) before a task is due."


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_unauthorized_user_is_ignored(self):
        from src.bot.telegram_bot import cmd_help

        update = _make_update("/help", user_id=99999)
        await cmd_help(update, _make_context())
        update.message.reply_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_user_is_ignored(self):
        from src.bot.telegram_bot import cmd_help

        update = _make_update("/help")
        update.effective_user = None
        await cmd_help(update, _make_context())
        update.message.reply_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_authorized_user_gets_response(self):
        from src.bot.telegram_bot import cmd_help

        update = _make_update("/help")
        await cmd_help(update, _make_context())
        update.message.reply_text.assert_called_once()
        assert "/items" in _reply_text(update)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestStartCommand:
    @pytest.mark.asyncio
    async def test_creates_house(self, dbs):
        from src.bot.telegram_bot import cmd_start

        house_db, _, _ = dbs
        update = _make_update("/start")
        await cmd_start(update, _make_context())

        assert house_db.get_house_by_owner(12345) is not None
        assert "HomeKeeper" in _reply_text(update)


class TestItemsCommand:
    @pytest.mark.asyncio
    async def test_no_args_shows_selection(self, dbs):
        from src.bot.telegram_bot import cmd_items

        update = _make_update("/items")
        await cmd_items(update, _make_context())

        text = _reply_text(update)
        assert "nothing yet" in text
        assert "dishwasher" in text
        assert "other" not in text.split("Available:")[1]

    @pytest.mark.asyncio
    async def test_select_items_creates_tasks(self, dbs):
        from src.bot.telegram_bot import cmd_items

        house_db, task_db, _ = dbs
        update = _make_update("/items dishwasher shower")
        await cmd_items(update, _make_context(["dishwasher", "shower"]))

        house = house_db.get_house_by_owner(12345)
        assert task_db.count_for_house(house.id) == 5
        assert "5 new task(s)" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_unknown_type(self, dbs):
        from src.bot.telegram_bot import cmd_items

        update = _make_update("/items jacuzzi")
        await cmd_items(update, _make_context(["jacuzzi"]))
        assert "Unknown item type" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_clear(self, dbs):
        from src.bot.telegram_bot import cmd_items

        house_db, _, _ = dbs
        await cmd_items(_make_update(), _make_context(["dishwasher"]))
        update = _make_update("/items clear")
        await cmd_items(update, _make_context(["clear"]))

        house = house_db.get_house_by_owner(12345)
        assert house_db.get_configuration(house.id).selected_item_types == []
        assert "0 new task(s)" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_store_error_reported(self):
        from src.bot.telegram_bot import cmd_items

        with patch("src.data.db.HouseDB", side_effect=RuntimeError("disk full")):
            update = _make_update("/items dishwasher")
            await cmd_items(update, _make_context(["dishwasher"]))
        assert "Couldn't save your items" in _reply_text(update)


class TestTasksCommand:
    @pytest.mark.asyncio
    async def test_no_tasks(self, dbs):
        from src.bot.telegram_bot import cmd_tasks

        update = _make_update("/tasks")
        await cmd_tasks(update, _make_context())
        assert "No maintenance tasks" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_lists_tasks(self, dbs):
        from src.bot.telegram_bot import cmd_items, cmd_tasks

        await cmd_items(_make_update(), _make_context(["dishwasher"]))
        update = _make_update("/tasks")
        await cmd_tasks(update, _make_context())

        text = _reply_text(update)
        assert "Clean filter" in text
        assert "Clean door and seals" in text


class TestOverdueCommand:
    @pytest.mark.asyncio
    async def test_nothing_overdue(self, dbs):
        from src.bot.telegram_bot import cmd_items, cmd_overdue

        await cmd_items(_make_update(), _make_context(["dishwasher"]))
        update = _make_update("/overdue")
        await cmd_overdue(update, _make_context())
        assert "Nothing overdue" in _reply_text(update)


class TestDoneCommand:
    @pytest.mark.asyncio
    async def test_usage_without_args(self, dbs):
        from src.bot.telegram_bot import cmd_done

        update = _make_update("/done")
        await cmd_done(update, _make_context())
        assert "Usage" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_unknown_task(self, dbs):
        from src.bot.telegram_bot import cmd_done

        update = _make_update("/done nope")
        await cmd_done(update, _make_context(["nope"]))
        assert "Unknown task ID" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_marks_task_done(self, dbs):
        from src.bot.telegram_bot import cmd_done, cmd_items

        house_db, task_db, _ = dbs
        await cmd_items(_make_update(), _make_context(["bathtub_drain"]))
        house = house_db.get_house_by_owner(12345)
        task = task_db.list_for_house(house.id)[0]

        update = _make_update(f"/done {task.id}")
        await cmd_done(update, _make_context([task.id]))

        done = task_db.get_task(task.id)
        assert done.last_completed_at is not None
        assert done.next_due_date == done.last_completed_at + timedelta(days=90)
        assert "Marked" in _reply_text(update)


class TestRemindCommand:
    @pytest.mark.asyncio
    async def test_show_default(self, dbs):
        from src.bot.telegram_bot import cmd_remind

        update = _make_update("/remind")
        await cmd_remind(update, _make_context())
        assert "Reminders are off" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_enable_with_time_and_days(self, dbs):
        from src.bot.telegram_bot import cmd_remind

        _, _, notification_db = dbs
        update = _make_update("/remind 08:30 2")
        await cmd_remind(update, _make_context(["08:30", "2"]))

        pref = notification_db.get_preference(12345, NotificationMethod.TELEGRAM)
        assert pref.is_enabled is True
        assert pref.preferred_time == time(8, 30)
        assert pref.reminder_days_before_due == 2
        assert "around 08:30" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_turn_off_keeps_settings(self, dbs):
        from src.bot.telegram_bot import cmd_remind

        _, _, notification_db = dbs
        await cmd_remind(_make_update(), _make_context(["08:30", "2"]))
        await cmd_remind(_make_update(), _make_context(["off"]))

        pref = notification_db.get_preference(12345, NotificationMethod.TELEGRAM)
        assert pref.is_enabled is False
        assert pref.preferred_time == time(8, 30)

    @pytest.mark.asyncio
    async def test_invalid_args(self, dbs):
        from src.bot.telegram_bot import cmd_remind

        _, _, notification_db = dbs
        update = _make_update("/remind later")
        await cmd_remind(update, _make_context(["later"]))

        assert "Usage" in _reply_text(update)
        assert notification_db.get_preference(12345, NotificationMethod.TELEGRAM) is None

        update = _make_update("/remind any 1000000000")
        await cmd_remind(update, _make_context(["any", "1000000000"]))

        assert "0 to 365" in _reply_text(update)
        assert notification_db.get_preference(12345, NotificationMethod.TELEGRAM) is None

    @pytest.mark.asyncio
    async def test_show_lists_every_channel(self, dbs):
        from src.bot.telegram_bot import cmd_remind

        await cmd_remind(_make_update(), _make_context(["any"]))
        update = _make_update("/remind")
        await cmd_remind(update, _make_context())

        text = _reply_text(update)
        assert text.startswith("Reminders on: around any time")
        assert "• Telegram: on" in text
        assert "• Email: off" in text
        assert "• Push notification: off" in text


# ---------------------------------------------------------------------------
# Scheduled reminders
# ---------------------------------------------------------------------------


class TestScheduledReminders:
    def test_job_registered_with_interval_and_delay(self):
        from src.bot.telegram_bot import _setup_task_reminders

        app = MagicMock()
        _setup_task_reminders(app, AsyncMock())

        kwargs = app.job_queue.run_repeating.call_args.kwargs
        assert kwargs["interval"] == timedelta(minutes=60)
        assert kwargs["first"] == timedelta(seconds=30)
        assert kwargs["name"] == "task_reminders"

    @pytest.mark.asyncio
    async def test_pass_errors_are_swallowed(self, dbs):
        from src.bot.telegram_bot import _run_scheduled_reminders

        with patch("src.core.reminders.run_reminder_pass", AsyncMock(side_effect=RuntimeError("boom"))):
            await _run_scheduled_reminders(AsyncMock())

    @pytest.mark.asyncio
    async def test_pass_runs_against_store(self, dbs):
        from src.bot.telegram_bot import _run_scheduled_reminders

        mock_pass = AsyncMock()
        with patch("src.core.reminders.run_reminder_pass", mock_pass):
            await _run_scheduled_reminders(AsyncMock())

        mock_pass.assert_awaited_once()
        assert mock_pass.await_args.kwargs["now"].tzinfo is not None


class TestStartSummary:
    @pytest.mark.asyncio
    async def test_unconfigured_house_points_to_items(self, dbs):
        from src.bot.telegram_bot import cmd_start

        update = _make_update("/start")
        await cmd_start(update, _make_context())
        assert "Start with /items" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_shows_count_and_next_task(self, dbs):
        from src.bot.telegram_bot import cmd_items, cmd_start

        await cmd_items(_make_update(), _make_context(["dishwasher", "bathtub_drain"]))
        update = _make_update("/start")
        await cmd_start(update, _make_context())

        text = _reply_text(update)
        assert "3 maintenance task(s)" in text
        assert "Dishwasher: Clean filter" in text


class TestTasksByRoom:
    @pytest.mark.asyncio
    async def test_filters_to_room(self, dbs):
        from src.bot.telegram_bot import cmd_items, cmd_tasks

        await cmd_items(_make_update(), _make_context(["dishwasher", "bathtub_drain"]))
        update = _make_update("/tasks kitchen")
        await cmd_tasks(update, _make_context(["kitchen"]))

        text = _reply_text(update)
        assert "(kitchen)" in text
        assert "Clean filter" in text
        assert "Bathtub Drain" not in text

    @pytest.mark.asyncio
    async def test_multi_word_room_without_tasks(self, dbs):
        from src.bot.telegram_bot import cmd_items, cmd_tasks

        await cmd_items(_make_update(), _make_context(["dishwasher"]))
        update = _make_update("/tasks living room")
        await cmd_tasks(update, _make_context(["living", "room"]))
        assert "No maintenance tasks in the living room" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_unknown_room(self, dbs):
        from src.bot.telegram_bot import cmd_tasks

        update = _make_update("/tasks sauna")
        await cmd_tasks(update, _make_context(["sauna"]))
        assert "Unknown room" in _reply_text(update)


class TestSoonCommand:
    @pytest.mark.asyncio
    async def test_default_window_is_a_week(self, dbs):
        from src.bot.telegram_bot import cmd_items, cmd_soon

        await cmd_items(_make_update(), _make_context(["dishwasher"]))
        update = _make_update("/soon")
        await cmd_soon(update, _make_context())
        assert "Nothing due in the next 7 day(s)" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_custom_window(self, dbs):
        from src.bot.telegram_bot import cmd_items, cmd_soon

        await cmd_items(_make_update(), _make_context(["dishwasher"]))
        update = _make_update("/soon 20")
        await cmd_soon(update, _make_context(["20"]))

        text = _reply_text(update)
        assert "next 20 day(s)" in text
        assert "Clean filter" in text
        assert "Clean door and seals" not in text

    @pytest.mark.asyncio
    async def test_invalid_days(self, dbs):
        from src.bot.telegram_bot import cmd_soon

        for arg in ("abc", "-1", "400"):
            update = _make_update(f"/soon {arg}")
            await cmd_soon(update, _make_context([arg]))
            assert "Usage" in _reply_text(update)


class TestDoneLocalDate:
    @pytest.mark.asyncio
    async def test_next_due_shown_in_configured_zone(self, dbs):
        from src.bot.telegram_bot import cmd_done, cmd_items

        house_db, task_db, _ = dbs
        await cmd_items(_make_update(), _make_context(["bathtub_drain"]))
        house = house_db.get_house_by_owner(12345)
        task = task_db.list_for_house(house.id)[0]

        # Completed 23:30 UTC on March 9; next due 23:30 UTC on June 7, which is June 8 in UTC+9
        local_now = datetime(2026, 3, 10, 8, 30, tzinfo=timezone(timedelta(hours=9)))
        with patch("src.bot.telegram_bot._now", return_value=local_now):
            update = _make_update(f"/done {task.id}")
            await cmd_done(update, _make_context([task.id]))

        done = task_db.get_task(task.id)
        assert done.next_due_date == datetime(2026, 6, 7, 23, 30)
        assert "Next due: 2026-06-08" in _reply_text(update)
