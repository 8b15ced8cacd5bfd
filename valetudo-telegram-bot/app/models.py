"""Valetudo data model — zone presets and robot state attributes.

State attributes arrive as a flat JSON list of objects tagged by ``__class``.
Only the status and battery attributes are decoded; every other class is
kept as an opaque ``UnknownStateAttribute``.

No imports from other project modules — pure functions only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

STATUS_CLASS = "StatusStateAttribute"
BATTERY_CLASS = "BatteryStateAttribute"


@dataclass(frozen=True, slots=True)
class ZonePreset:
    """A named cleaning zone known to the robot."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class StatusStateAttribute:
    value: str      # "docked" | "cleaning" | "returning" | "idle" | ...
    flag: str = "none"


@dataclass(frozen=True, slots=True)
class BatteryStateAttribute:
    level: int      # percent
    flag: str = "none"


@dataclass(frozen=True, slots=True)
class UnknownStateAttribute:
    class_name: str


StateAttribute = Union[StatusStateAttribute, BatteryStateAttribute, UnknownStateAttribute]


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def parse_zone_presets(raw: Any) -> dict[str, ZonePreset]:
    """Decode the presets mapping ``{key: {"id", "name"}}``.

    Raises ValueError when the payload does not have that shape.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"expected an object of zone presets, got {type(raw).__name__}")
    presets: dict[str, ZonePreset] = {}
    for key, item in raw.items():
        if not isinstance(item, dict):
            raise ValueError(f"zone preset {key!r} is not an object")
        preset_id = item.get("id")
        name = item.get("name", "")
        if not isinstance(preset_id, str) or not isinstance(name, str):
            raise ValueError(f"zone preset {key!r} has invalid id/name")
        presets[key] = ZonePreset(id=preset_id, name=name)
    return presets


def parse_state_attribute(raw: Any) -> StateAttribute:
    """Decode a single state attribute by its ``__class`` tag."""
    if not isinstance(raw, dict):
        raise ValueError(f"state attribute is not an object: {raw!r}")
    cls = raw.get("__class")
    if not isinstance(cls, str):
        raise ValueError("state attribute has no __class tag")

    flag = raw.get("flag", "none")
    if not isinstance(flag, str):
        flag = "none"

    if cls == STATUS_CLASS:
        value = raw.get("value")
        if not isinstance(value, str):
            raise ValueError(f"{STATUS_CLASS}.value must be a string, got {value!r}")
        return StatusStateAttribute(value=value, flag=flag)

    if cls == BATTERY_CLASS:
        level = raw.get("level")
        # bool is an int subclass; reject it explicitly
        if isinstance(level, bool) or not isinstance(level, (int, float)):
            raise ValueError(f"{BATTERY_CLASS}.level must be a number, got {level!r}")
        return BatteryStateAttribute(level=int(level), flag=flag)

    return UnknownStateAttribute(class_name=cls)


def parse_state_attributes(raw: Any) -> list[StateAttribute]:
    if not isinstance(raw, list):
        raise ValueError(f"expected a list of state attributes, got {type(raw).__name__}")
    return [parse_state_attribute(item) for item in raw]


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def format_status(attributes: list[StateAttribute]) -> str:
    """Render the /status reply.

    The last status and battery attributes win; missing ones fall back to an
    empty status and a 0% battery.
    """
    status = ""
    level = 0
    for attr in attributes:
        if isinstance(attr, StatusStateAttribute):
            status = attr.value
        elif isinstance(attr, BatteryStateAttribute):
            level = attr.level
    return f"Status: {status}\nBattery: {level}%"
