"""
HomeKeeper — Telegram Bot.

Telegram is the only user interface. The owner picks which items the house
has, lists and completes maintenance tasks, and sets when reminders should
arrive. The periodic reminder pass is registered on the bot's job queue.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
from datetime import datetime, time as dt_time, timedelta
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
)

from src.config import settings
from src.core.errors import HomeKeeperError, TaskNotFoundError
from src.core.reminder_calculator import MAX_REMINDER_DAYS

if TYPE_CHECKING:
    from src.data.models import ActiveTask, NotificationPreference
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


def _now() -> datetime:
    return datetime.now(ZoneInfo(settings.TIMEZONE))


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_task_line(task: ActiveTask, now: datetime) -> str:
    from src.core.recurrence import days_until_due, is_due_soon, is_overdue, local_due_date

    days = days_until_due(task, now)
    if is_overdue(task, now):
        status = f"⚠️ overdue by {-days}d"
    elif is_due_soon(task, now):
        status = "today" if days == 0 else f"in {days}d"
    else:
        status = local_due_date(task, now).isoformat()
    return f"`{task.id}` — {task.item_name}: {task.task_name} ({status})"


def _format_preference(pref: NotificationPreference) -> str:
    if not pref.is_enabled:
        return "Reminders are off. Use /remind HH:MM [days] to turn them on."
    when = pref.preferred_time.strftime("%H:%M") if pref.preferred_time else "any time"
    days = pref.reminder_days_before_due if pref.reminder_days_before_due is not None else 1
    return f"Reminders on: around {when}, {days} day(s) before a task is due."


def _format_all_preferences(prefs: list[NotificationPreference]) -> str:
    """Telegram settings first, then an on/off line per channel."""
    from src.data.models import NotificationMethod

    telegram = next(p for p in prefs if p.method is NotificationMethod.TELEGRAM)
    lines = [_format_preference(telegram), "", "Channels:"]
    for pref in prefs:
        label = pref.method.name.replace("_", " ").capitalize()
        lines.append(f"• {label}: {'on' if pref.is_enabled else 'off'}")
    return "\n".join(lines)


def _parse_remind_args(args: list[str]) -> tuple[dt_time | None, int] | None:
    """Parse `/remind HH:MM [days]` or `/remind any [days]`.

    Returns (preferred_time, days) or None when the arguments don't parse.
    """
    if not args or len(args) > 2:
        return None

    first = args[0].strip().lower()
    if first == "any":
        preferred = None
    else:
        try:
            preferred = datetime.strptime(first, "%H:%M").time()
        except ValueError:
            return None

    days = 1
    if len(args) == 2:
        try:
            days = int(args[1])
        except ValueError:
            return None
        if not 0 <= days <= MAX_REMINDER_DAYS:
            return None
    return preferred, days


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — register the house and say hello."""
    from src.core.house_config import get_or_create_house, has_configuration
    from src.core.tasks import get_next_task, get_task_count
    from src.data.db import ActiveTaskDB, HouseDB

    try:
        house_db = HouseDB()
        house = get_or_create_house(house_db, update.effective_user.id)
        if has_configuration(house_db, house.id):
            task_db = ActiveTaskDB()
            count = get_task_count(house_db, task_db, house.id)
            next_task = get_next_task(house_db, task_db, house.id)
        else:
            count, next_task = 0, None
    except Exception as exc:
        logger.error("/start error: %s", exc)
        await update.message.reply_text("Couldn't set up your house. Please try again.")
        return

    if next_task is not None:
        summary = (
            f"Your house has {count} maintenance task(s). Next up:\n"
            f"{_format_task_line(next_task, _now())}\n\n"
        )
    else:
        summary = "Your house has no items yet. Start with /items.\n\n"

    await update.message.reply_text(
        "Welcome to *HomeKeeper*!\n\n"
        f"{summary}"
        "I keep track of recurring home maintenance:\n"
        "• Use /items to choose what your house has\n"
        "• Use /tasks to see what's coming up, /done to mark a task complete\n"
        "• Use /remind to choose when I should remind you\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/items — Show item types and your selection\n"
        "/items <type> [<type> ...] — Set the items your house has\n"
        "/items clear — Deselect everything\n"
        "/tasks — List maintenance tasks\n"
        "/tasks <room> — List tasks in one room\n"
        "/soon [days] — Tasks due in the next [days] days (default 7)\n"
        "/overdue — List overdue tasks\n"
        "/done <id> — Mark a task as done\n"
        "/remind — Show reminder settings for every channel\n"
        "/remind HH:MM [days] — Remind around HH:MM, [days] before due\n"
        "/remind any [days] — Remind at any hour\n"
        "/remind off — Turn reminders off\n"
        "/help — Show this message",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_items(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /items — show or replace the house's selected item types."""
    from src.core.house_config import (
        get_configuration,
        get_or_create_house,
        save_configuration,
    )
    from src.data.db import ActiveTaskDB, HouseDB
    from src.data.models import HouseItemType

    args = context.args or []
    try:
        house_db = HouseDB()
        house = get_or_create_house(house_db, update.effective_user.id)
        if not args:
            config = get_configuration(house_db, house.id)
            selected = config.selected_item_types if config else []
            available = ", ".join(
                t.value for t in HouseItemType if t is not HouseItemType.OTHER
            )
            await update.message.reply_text(
                f"Selected: {', '.join(selected) or 'nothing yet'}\n"
                f"Available: {available}\n\n"
                "Usage: /items <type> [<type> ...]"
            )
            return

        desired = [] if [a.lower() for a in args] == ["clear"] else args
        created = save_configuration(house_db, ActiveTaskDB(), house.id, desired, now=_now())
    except ValueError as exc:
        await update.message.reply_text(f"{exc}. Use /items to see valid types.")
        return
    except Exception as exc:
        logger.error("/items error: %s", exc)
        await update.message.reply_text("Couldn't save your items. Please try again.")
        return

    await update.message.reply_text(
        f"✅ Items saved. {len(created)} new task(s) scheduled. Use /tasks to see them."
    )


@authorized_only
async def cmd_tasks(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /tasks [room] — list the house's maintenance tasks by due date."""
    from src.core.house_config import get_or_create_house
    from src.core.tasks import get_active_tasks, get_tasks_by_room_type
    from src.data.db import ActiveTaskDB, HouseDB
    from src.data.models import RoomType

    args = context.args or []
    room = None
    if args:
        room = RoomType.find(" ".join(args))
        if room is None:
            rooms = ", ".join(r.value for r in RoomType)
            await update.message.reply_text(f"Unknown room. Rooms: {rooms}")
            return

    try:
        house_db = HouseDB()
        house = get_or_create_house(house_db, update.effective_user.id)
        if room is None:
            tasks = get_active_tasks(house_db, ActiveTaskDB(), house.id)
        else:
            tasks = get_tasks_by_room_type(house_db, ActiveTaskDB(), house.id, room)
    except Exception as exc:
        logger.error("/tasks error: %s", exc)
        await update.message.reply_text("Couldn't load tasks. Please try again.")
        return

    room_label = room.value.replace("_", " ") if room else None
    if not tasks:
        if room_label:
            await update.message.reply_text(f"No maintenance tasks in the {room_label}.")
        else:
            await update.message.reply_text("No maintenance tasks. Use /items to set up your house.")
        return

    now = _now()
    header = f"*Maintenance tasks ({room_label}):*\n" if room_label else "*Maintenance tasks:*\n"
    lines = [header]
    lines.extend(_format_task_line(t, now) for t in tasks)
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_soon(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /soon [days] — list tasks due within the next few days."""
    from src.core.house_config import get_or_create_house
    from src.core.recurrence import DUE_SOON_DAYS
    from src.core.tasks import get_tasks_due_within
    from src.data.db import ActiveTaskDB, HouseDB

    args = context.args or []
    days = DUE_SOON_DAYS
    if args:
        try:
            days = int(args[0])
        except ValueError:
            days = -1
        if not 0 <= days <= MAX_REMINDER_DAYS:
            await update.message.reply_text(
                f"Usage: /soon [days] (0 to {MAX_REMINDER_DAYS}, default {DUE_SOON_DAYS})"
            )
            return

    now = _now()
    try:
        house_db = HouseDB()
        house = get_or_create_house(house_db, update.effective_user.id)
        tasks = get_tasks_due_within(house_db, ActiveTaskDB(), house.id, days, now)
    except Exception as exc:
        logger.error("/soon error: %s", exc)
        await update.message.reply_text("Couldn't load tasks. Please try again.")
        return

    if not tasks:
        await update.message.reply_text(f"Nothing due in the next {days} day(s).")
        return

    lines = [f"*Due in the next {days} day(s):*\n"]
    lines.extend(_format_task_line(t, now) for t in tasks)
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_overdue(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /overdue — list tasks past their due date."""
    from src.core.house_config import get_or_create_house
    from src.core.tasks import get_overdue_tasks
    from src.data.db import ActiveTaskDB, HouseDB

    now = _now()
    try:
        house_db = HouseDB()
        house = get_or_create_house(house_db, update.effective_user.id)
        tasks = get_overdue_tasks(house_db, ActiveTaskDB(), house.id, now)
    except Exception as exc:
        logger.error("/overdue error: %s", exc)
        await update.message.reply_text("Couldn't load tasks. Please try again.")
        return

    if not tasks:
        await update.message.reply_text("Nothing overdue. 🎉")
        return

    lines = ["*Overdue tasks:*\n"]
    lines.extend(_format_task_line(t, now) for t in tasks)
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /done <id> — mark a task as done."""
    from src.core.house_config import get_or_create_house
    from src.core.recurrence import local_due_date
    from src.core.tasks import complete_task
    from src.data.db import ActiveTaskDB, HouseDB

    args = context.args
    if not args:
        await update.message.reply_text("Usage: /done <task_id>\nUse /tasks to see IDs.")
        return

    task_id = args[0].strip()
    now = _now()
    try:
        house = get_or_create_house(HouseDB(), update.effective_user.id)
        task = complete_task(ActiveTaskDB(), house.id, task_id, completed_at=now)
    except TaskNotFoundError:
        await update.message.reply_text("Unknown task ID. Use /tasks to see valid IDs.")
        return
    except Exception as exc:
        logger.error("/done error: %s", exc)
        await update.message.reply_text(f"Couldn't mark task {task_id} as done. Please try again.")
        return

    await update.message.reply_text(
        f"✅ Marked '*{task.task_name}*' ({task.item_name}) as done. "
        f"Next due: {local_due_date(task, now).isoformat()}",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_remind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /remind — show or change Telegram reminder settings."""
    from src.core.preferences import (
        default_preference,
        get_preference,
        get_preferences,
        save_preference,
    )
    from src.data.db import NotificationDB
    from src.data.models import NotificationMethod

    user_id = update.effective_user.id
    method = NotificationMethod.TELEGRAM
    args = context.args or []

    try:
        db = NotificationDB()
        if not args:
            await update.message.reply_text(_format_all_preferences(get_preferences(db, user_id)))
            return

        pref = get_preference(db, user_id, method) or default_preference(user_id, method)

        if [a.lower() for a in args] == ["off"]:
            pref.is_enabled = False
        else:
            parsed = _parse_remind_args(args)
            if parsed is None:
                await update.message.reply_text(
                    "Usage: /remind HH:MM [days], /remind any [days] or /remind off\n"
                    f"[days] is 0 to {MAX_REMINDER_DAYS}."
                )
                return
            pref.preferred_time, pref.reminder_days_before_due = parsed
            pref.is_enabled = True

        pref = save_preference(db, user_id, pref)
    except HomeKeeperError as exc:
        logger.error("/remind error: %s", exc)
        await update.message.reply_text("Couldn't identify you. Please try again.")
        return
    except Exception as exc:
        logger.error("/remind error: %s", exc)
        await update.message.reply_text("Couldn't save reminder settings. Please try again.")
        return

    await update.message.reply_text(f"✅ {_format_preference(pref)}")


# ---------------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------------


def build_app(notifier: NotificationPort | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if notifier is None:
        from src.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["notifier"] = notifier

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("items", cmd_items))
    app.add_handler(CommandHandler("tasks", cmd_tasks))
    app.add_handler(CommandHandler("soon", cmd_soon))
    app.add_handler(CommandHandler("overdue", cmd_overdue))
    app.add_handler(CommandHandler("done", cmd_done))
    app.add_handler(CommandHandler("remind", cmd_remind))

    _setup_task_reminders(app, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


async def _run_scheduled_reminders(notifier: NotificationPort) -> None:
    """One scheduled reminder pass; errors are logged, never raised to the job queue."""
    from src.core.reminders import run_reminder_pass
    from src.data.db import ActiveTaskDB, HouseDB, NotificationDB

    try:
        await run_reminder_pass(
            notifier, HouseDB(), ActiveTaskDB(), NotificationDB(), now=_now(),
        )
    except Exception as exc:
        logger.error("Error in task reminder job: %s", exc)


def _setup_task_reminders(app: Application, notifier: NotificationPort) -> None:
    """Register the repeating reminder pass on the job queue."""

    async def _reminder_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await _run_scheduled_reminders(notifier)

    app.job_queue.run_repeating(
        _reminder_job_callback,
        interval=timedelta(minutes=settings.REMINDER_INTERVAL_MINUTES),
        first=timedelta(seconds=settings.REMINDER_STARTUP_DELAY_SECONDS),
        name="task_reminders",
    )

    logger.info(
        "Task reminders scheduled every %d min (first run in %ds, %s)",
        settings.REMINDER_INTERVAL_MINUTES,
        settings.REMINDER_STARTUP_DELAY_SECONDS,
        settings.TIMEZONE,
    )


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting HomeKeeper bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
