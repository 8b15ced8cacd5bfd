"""Allow-list authorization.

Unauthorized updates are dropped without any reply so the bot does not
reveal itself to strangers.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Collection
from typing import Any

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

logger = logging.getLogger("vacuum_bot.auth")


def is_authorized(username: str | None, allow_list: Collection[str]) -> bool:
    """Exact username match against the configured allow-list."""
    if not username:
        return False
    return username in allow_list


class AllowListMiddleware(BaseMiddleware):
    """Outer middleware for message and callback_query observers."""

    def __init__(self, allow_list: Collection[str]) -> None:
        self._allow_list = allow_list

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        user = getattr(event, "from_user", None)
        username = user.username if user is not None else None
        if not is_authorized(username, self._allow_list):
            logger.info(
                "Dropped update from unauthorized user",
                extra={"username": username or "<unknown>", "ok": False},
            )
            return None
        return await handler(event, data)
