#!/usr/bin/env python3
"""
Valetudo Telegram Bot.

Relays Telegram commands to a robot vacuum's local Valetudo API:
- /zones shows zone presets as inline buttons, a press starts that zone
- /pause, /home, /status map to basic control and state attributes
- Only allow-listed usernames get any reaction at all
- Structured JSON logs (never leaks the bot token)
- Updates are processed one at a time
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramAPIError
from aiogram.types import User

from api import ValetudoClient
from auth import AllowListMiddleware
from config import DEFAULT_CONFIG_PATH, Config, load_config
from handlers import Handlers
from ui import build_bot_commands

# ---------------------------------------------------------------------------
# Logging — structured JSON on stdout
# ---------------------------------------------------------------------------


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc"] = self.formatException(record.exc_info)
        # Merge structured extras added via `extra={…}`
        for key in ("username", "action", "ok", "error_detail"):
            val = getattr(record, key, None)
            if val is not None:
                payload[key] = val
        return json.dumps(payload, ensure_ascii=False)


def _setup_logging() -> logging.Logger:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    return logging.getLogger("vacuum_bot")


logger = logging.getLogger("vacuum_bot")

# ---------------------------------------------------------------------------
# Telegram Bot
# ---------------------------------------------------------------------------


class TelegramBot:
    """Core bot controller — wires handlers, manages lifecycle."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._bot = Bot(token=config.bot_token)
        self._dp = Dispatcher()
        self._client = ValetudoClient(config.api_url)
        self._handlers = Handlers(self._bot, self._client)

        allow_list = AllowListMiddleware(config.authorized_users)
        self._dp.message.outer_middleware(allow_list)
        self._dp.callback_query.outer_middleware(allow_list)
        self._handlers.register(self._dp)

    # -- lifecycle --

    async def run(self) -> None:
        """Connect to Telegram, then block on long-polling."""
        me = await self._connect()
        logger.info("Authorized on account %s", me.username)

        await self._client.open()
        await self._set_commands()

        logger.info("Bot polling started (API %s)", self._client.base_url)
        await self._dp.start_polling(
            self._bot,
            polling_timeout=self._config.polling_timeout,
            handle_as_tasks=False,
            allowed_updates=["message", "callback_query"],
        )

    async def shutdown(self) -> None:
        """Release all resources.  Safe to call even if ``run()`` failed."""
        errors: list[str] = []
        for label, coro in [
            ("Valetudo session", self._client.close()),
            ("bot session", self._bot.session.close()),
        ]:
            try:
                await coro
            except Exception as exc:
                errors.append(f"{label}: {exc}")
        if errors:
            logger.warning("Shutdown warnings: %s", "; ".join(errors))
        logger.info("Shutdown complete")

    # -- startup --

    async def _connect(self) -> User:
        """Check the bot token against Telegram, retrying a fixed number of times.

        Raises the last error once all attempts are used up.
        """
        attempts = self._config.connection_attempts
        attempt = 1
        while True:
            try:
                return await self._bot.get_me()
            except TelegramAPIError as exc:
                logger.warning(
                    "Telegram connection failed (attempt %d/%d): %s",
                    attempt, attempts, exc,
                )
                if attempt >= attempts:
                    logger.error("Connection attempts exhausted")
                    raise
                logger.info("Retrying in %.1fs", self._config.retry_delay)
                await asyncio.sleep(self._config.retry_delay)
                attempt += 1

    async def _set_commands(self) -> None:
        """Publish the command menu.  Failure is logged, not fatal."""
        try:
            await self._bot.set_my_commands(build_bot_commands())
        except TelegramAPIError as exc:
            logger.error("Failed to set bot commands: %s", exc)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Telegram relay for a Valetudo robot vacuum")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Config file path (default: %(default)s)",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    _setup_logging()
    args = _parse_args(argv)

    logger.info("Loading configuration…")
    config = load_config(args.config)

    bot = TelegramBot(config)
    try:
        await bot.run()  # blocks until SIGTERM / SIGINT (handled by aiogram)
    except asyncio.CancelledError:
        logger.info("Cancelled — shutting down")
    except TelegramAPIError:
        logger.exception("Could not connect to Telegram")
        sys.exit(1)
    finally:
        await bot.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
