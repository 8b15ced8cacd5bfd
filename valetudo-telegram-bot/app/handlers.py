"""Telegram command and callback handlers.

Maps chat commands and zone keyboard presses to Valetudo API calls.
Each update is handled on its own; the zone keyboard carries its selection
in the callback payload.  Authorization happens earlier, in AllowListMiddleware.
"""

from __future__ import annotations

import logging
import re

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError, TelegramRetryAfter
from aiogram.filters import Command
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from api import ValetudoClient, ValetudoError
from models import format_status
from ui import build_zones_keyboard, is_valid_zone_id, parse_zone_payload

logger = logging.getLogger("vacuum_bot.handlers")

CALLBACK_ANSWER_MAX_LEN = 200  # Telegram limit for answerCallbackQuery text
_ANY_COMMAND = re.compile(r".+")

# command -> (basic control action, success reply)
_BASIC_CONTROL_COMMANDS: dict[str, tuple[str, str]] = {
    "pause": ("pause", "Pausing"),
    "home": ("home", "Going back to the dock"),
}


def _audit(username: str, action: str, *, success: bool, error: str | None = None) -> None:
    logger.info(
        "AUDIT",
        extra={
            "username": username,
            "action": action,
            "ok": success,
            "error_detail": error,
        },
    )


def _username(obj: Message | CallbackQuery) -> str:
    user = obj.from_user
    if user is None:
        return "<unknown>"
    return user.username or str(user.id)


class Handlers:
    """Registers and dispatches all Telegram handlers."""

    def __init__(self, bot: Bot, client: ValetudoClient) -> None:
        self._bot = bot
        self._client = client

    def register(self, dp: Dispatcher) -> None:
        dp.message.register(self.cmd_zones, Command("zones"))
        dp.message.register(self.cmd_pause, Command("pause"))
        dp.message.register(self.cmd_home, Command("home"))
        dp.message.register(self.cmd_status, Command("status"))
        dp.message.register(self.cmd_start, Command("start"))
        # Must stay last: any other command addressed to this bot
        dp.message.register(self.cmd_unknown, Command(_ANY_COMMAND))
        dp.callback_query.register(self.handle_callback)

    # -----------------------------------------------------------------------
    # Sending
    # -----------------------------------------------------------------------

    async def _reply(
        self,
        message: Message,
        text: str,
        keyboard: InlineKeyboardMarkup | None = None,
    ) -> None:
        try:
            await message.answer(text, reply_markup=keyboard)
        except TelegramRetryAfter as e:
            logger.warning("Telegram rate limited on send, retry after %s", e.retry_after)
        except (TelegramBadRequest, TelegramForbiddenError) as exc:
            logger.error("Failed to send reply: %s", exc)

    async def _notify_callback(self, callback: CallbackQuery, text: str) -> None:
        """Answer the button press and echo the text into the chat."""
        try:
            await callback.answer(text[:CALLBACK_ANSWER_MAX_LEN])
        except (TelegramBadRequest, TelegramRetryAfter) as exc:
            # Query too old (>15 min) or Telegram rate-limited
            logger.warning("Failed to answer callback: %s", exc)

        if callback.message is None:
            return
        try:
            await self._bot.send_message(chat_id=callback.message.chat.id, text=text)
        except TelegramRetryAfter as e:
            logger.warning("Telegram rate limited on send, retry after %s", e.retry_after)
        except (TelegramBadRequest, TelegramForbiddenError) as exc:
            logger.error("Failed to send callback reply: %s", exc)

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    async def cmd_zones(self, message: Message) -> None:
        """Handle /zones: offer every zone preset as an inline button."""
        try:
            presets = await self._client.list_zone_presets()
        except ValetudoError as exc:
            _audit(_username(message), "/zones", success=False, error=str(exc))
            await self._reply(message, str(exc))
            return

        _audit(_username(message), "/zones", success=True)
        text, keyboard = build_zones_keyboard(presets.values())
        await self._reply(message, text, keyboard)

    async def cmd_pause(self, message: Message) -> None:
        await self._basic_control(message, "pause")

    async def cmd_home(self, message: Message) -> None:
        await self._basic_control(message, "home")

    async def _basic_control(self, message: Message, command: str) -> None:
        action, ok_text = _BASIC_CONTROL_COMMANDS[command]
        try:
            await self._client.set_basic_control(action)
        except ValetudoError as exc:
            _audit(_username(message), f"/{command}", success=False, error=str(exc))
            await self._reply(message, str(exc))
            return

        _audit(_username(message), f"/{command}", success=True)
        await self._reply(message, ok_text)

    async def cmd_status(self, message: Message) -> None:
        """Handle /status: robot status string and battery level."""
        try:
            attributes = await self._client.get_state_attributes()
        except ValetudoError as exc:
            _audit(_username(message), "/status", success=False, error=str(exc))
            await self._reply(message, str(exc))
            return

        _audit(_username(message), "/status", success=True)
        await self._reply(message, format_status(attributes))

    async def cmd_start(self, message: Message) -> None:
        """Telegram sends /start when a chat is opened; nothing to do."""

    async def cmd_unknown(self, message: Message) -> None:
        await self._reply(message, "Unknown command")

    # -----------------------------------------------------------------------
    # Zone keyboard callbacks
    # -----------------------------------------------------------------------

    async def handle_callback(self, callback: CallbackQuery) -> None:
        selection = parse_zone_payload(callback.data or "")
        username = _username(callback)

        if selection.is_all:
            try:
                await self._client.set_basic_control("start")
            except ValetudoError as exc:
                _audit(username, "zone:all", success=False, error=str(exc))
                await self._notify_callback(callback, str(exc))
                return
            _audit(username, "zone:all", success=True)
            await self._notify_callback(callback, "Starting cleanup")
            return

        zone_id = selection.zone_id or ""
        if not is_valid_zone_id(zone_id):
            logger.warning("Rejected zone id from callback: %r", zone_id)
            await self._notify_callback(callback, "Invalid zone")
            return

        try:
            await self._client.trigger_zone_preset(zone_id)
        except ValetudoError as exc:
            _audit(username, f"zone:{zone_id}", success=False, error=str(exc))
            await self._notify_callback(callback, str(exc))
            return

        _audit(username, f"zone:{zone_id}", success=True)
        await self._notify_callback(callback, f"Starting cleanup for zone: {selection.label}")
