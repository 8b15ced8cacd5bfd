"""Inline keyboard builders and callback payload codec.

Callback data format for the zone keyboard:
  "all"          -> start a full cleanup
  "<id>|<name>"  -> clean one zone preset
  "<id>"         -> same, when the name does not fit in 64 bytes

The payload is the only carrier of the user's selection; nothing is kept
server-side between /zones and the button press.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from aiogram.types import BotCommand, InlineKeyboardButton, InlineKeyboardMarkup

from models import ZonePreset

logger = logging.getLogger("vacuum_bot.ui")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ALL_ZONES = "all"
PAYLOAD_SEPARATOR = "|"
CALLBACK_DATA_MAX_BYTES = 64  # Telegram limit

# Valetudo preset ids are UUIDs; anything outside this set never reaches a URL
_ZONE_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

BOT_COMMANDS: tuple[tuple[str, str], ...] = (
    ("zones", "List zones for cleanup"),
    ("pause", "Pause"),
    ("home", "Go back to the dock"),
    ("status", "Display status"),
)


@dataclass(frozen=True, slots=True)
class ZoneSelection:
    """Decoded zone keyboard payload."""

    zone_id: str | None  # None means "all"
    zone_name: str = ""

    @property
    def is_all(self) -> bool:
        return self.zone_id is None

    @property
    def label(self) -> str:
        return self.zone_name or self.zone_id or ""


# ---------------------------------------------------------------------------
# Callback payloads
# ---------------------------------------------------------------------------


def _truncate_utf8(text: str, max_bytes: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def encode_zone_payload(preset: ZonePreset) -> str:
    """Build the callback data for a preset button, within 64 bytes."""
    prefix = preset.id + PAYLOAD_SEPARATOR
    room = CALLBACK_DATA_MAX_BYTES - len(prefix.encode("utf-8"))
    name = _truncate_utf8(preset.name, room) if room > 0 else ""
    if not name:
        return preset.id
    return prefix + name


def parse_zone_payload(data: str) -> ZoneSelection:
    """Split callback data on the first separator."""
    zone_id, _, zone_name = data.partition(PAYLOAD_SEPARATOR)
    if zone_id == ALL_ZONES:
        return ZoneSelection(zone_id=None)
    return ZoneSelection(zone_id=zone_id, zone_name=zone_name)


def is_valid_zone_id(zone_id: str) -> bool:
    return bool(_ZONE_ID_RE.match(zone_id))


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_zones_keyboard(
    presets: Iterable[ZonePreset],
) -> tuple[str, InlineKeyboardMarkup]:
    """One row: "All" first, then one button per preset.

    Presets whose id cannot travel in a callback payload are left out.
    """
    row = [InlineKeyboardButton(text="All", callback_data=ALL_ZONES)]
    for preset in presets:
        if not is_valid_zone_id(preset.id):
            logger.warning("Skipping zone preset with unusable id: %r", preset.id)
            continue
        row.append(
            InlineKeyboardButton(
                text=preset.name or preset.id,
                callback_data=encode_zone_payload(preset),
            )
        )
    return "Available zones:", InlineKeyboardMarkup(inline_keyboard=[row])


def build_bot_commands() -> list[BotCommand]:
    return [BotCommand(command=cmd, description=desc) for cmd, desc in BOT_COMMANDS]
