"""Bot configuration — JSON file, validated once at startup."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

logger = logging.getLogger("vacuum_bot.config")

DEFAULT_CONFIG_PATH = Path("/etc/vacuum_bot.json")

DEFAULT_POLLING_TIMEOUT = 60
DEFAULT_CONNECTION_ATTEMPTS = 5
DEFAULT_RETRY_DELAY: float = 5.0


@dataclass(frozen=True, slots=True)
class Config:
    """Validated, immutable bot configuration.

    The dataclass repr hides the bot token so the config can be logged.
    """

    api_url: str
    bot_token: str
    authorized_users: frozenset[str]
    polling_timeout: int = DEFAULT_POLLING_TIMEOUT
    connection_attempts: int = DEFAULT_CONNECTION_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY

    def __repr__(self) -> str:
        return (
            f"Config(api_url={self.api_url!r}, bot_token='***', "
            f"authorized_users={sorted(self.authorized_users)!r}, "
            f"polling_timeout={self.polling_timeout}, "
            f"connection_attempts={self.connection_attempts}, "
            f"retry_delay={self.retry_delay})"
        )


def _fail(msg: str, *args: Any) -> NoReturn:
    logger.critical(msg, *args)
    sys.exit(1)


def parse_config(raw: Any) -> Config:
    """Validate the decoded JSON document.  Exits the process on failure."""
    if not isinstance(raw, dict):
        _fail("Configuration must be a JSON object")

    # -- required --
    api_url = raw.get("apiUrl", "")
    if not isinstance(api_url, str) or not api_url.strip():
        _fail("apiUrl is missing in config")

    bot_token = raw.get("botToken", "")
    if not isinstance(bot_token, str) or not bot_token.strip():
        _fail("botToken is missing in config")

    users_raw = raw.get("authorizedUsers")
    if users_raw is None:
        _fail("authorizedUsers are missing in config")
    if not isinstance(users_raw, list) or not all(isinstance(u, str) for u in users_raw):
        _fail("authorizedUsers must be a list of usernames")
    if not users_raw:
        logger.warning("authorizedUsers is empty — every update will be dropped")

    # -- optional with defaults --
    polling_timeout = raw.get("pollingTimeout", DEFAULT_POLLING_TIMEOUT)
    if isinstance(polling_timeout, bool) or not isinstance(polling_timeout, int) or polling_timeout < 0:
        _fail("pollingTimeout must be a non-negative integer")

    attempts = raw.get("connectionAttempts", DEFAULT_CONNECTION_ATTEMPTS)
    if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 1:
        _fail("connectionAttempts must be >= 1")

    retry_delay = raw.get("retryDelay", DEFAULT_RETRY_DELAY)
    if isinstance(retry_delay, bool) or not isinstance(retry_delay, (int, float)) or retry_delay < 0:
        _fail("retryDelay must be a non-negative number")

    return Config(
        api_url=api_url.strip(),
        bot_token=bot_token.strip(),
        authorized_users=frozenset(users_raw),
        polling_timeout=polling_timeout,
        connection_attempts=attempts,
        retry_delay=float(retry_delay),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate the config file.

    Exits the process with a clear log message on any failure.
    """
    if not path.exists():
        _fail("Configuration file not found: %s", path)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        _fail("Cannot read %s: %s", path, exc)

    return parse_config(raw)
