"""Telegram notification adapter — implements NotificationPort."""

from __future__ import annotations

import logging

from telegram import Bot

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Sends board notices as plain Telegram messages."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_notice(self, chat_id: int, text: str) -> None:
        await self._bot.send_message(chat_id=chat_id, text=text)
        logger.debug("Notice sent to chat %d", chat_id)
