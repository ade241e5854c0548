"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance; the Telegram user id doubles as the chat id
for private chats with the bot.
"""

from __future__ import annotations

import logging

from telegram import Bot
from telegram.error import TelegramError

from src.ports.notification_port import NotificationError

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(self, user_id: int, text: str) -> None:
        try:
            await self._bot.send_message(chat_id=user_id, text=text)
        except TelegramError as exc:
            logger.warning("Telegram delivery to %d failed: %s", user_id, exc)
            raise NotificationError(str(exc)) from exc
