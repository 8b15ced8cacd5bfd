"""Valetudo REST API client — single session, blanket timeout, no retries.

Talks to the robot's local ``/api/v2`` endpoints.  Failures are raised as
``ValetudoError`` subclasses so the handlers can relay them verbatim.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from models import (
    StateAttribute,
    ZonePreset,
    parse_state_attributes,
    parse_zone_presets,
)

logger = logging.getLogger("vacuum_bot.api")

DEFAULT_BASE_URL = "http://127.0.0.1/api/v2"
API_TIMEOUT = aiohttp.ClientTimeout(total=60)
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

BASIC_CONTROL_PATH = "robot/capabilities/BasicControlCapability"
ZONE_PRESETS_PATH = "robot/capabilities/ZoneCleaningCapability/presets"
STATE_ATTRIBUTES_PATH = "robot/state/attributes"


class ValetudoError(Exception):
    """Base class for every failure talking to the robot."""


class ValetudoHTTPError(ValetudoError):
    def __init__(self, status: int) -> None:
        super().__init__(f"Received error with status code: {status}")
        self.status = status


class ValetudoDecodeError(ValetudoError):
    """Response body is not the JSON we expected."""


class ValetudoConnectionError(ValetudoError):
    """Transport failure or timeout."""


class ValetudoClient:
    """Reuses a single aiohttp.ClientSession for all robot calls."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers: dict[str, str] = {
            "Content-Type": JSON_CONTENT_TYPE,
            "Accept": JSON_CONTENT_TYPE,
        }
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def open(self) -> None:
        self._session = aiohttp.ClientSession(timeout=API_TIMEOUT)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> ValetudoClient:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # -- internal request --

    async def _request(
        self,
        method: str,
        path: str,
        json_data: dict[str, Any] | None = None,
        *,
        decode: bool = False,
    ) -> Any:
        """Send one request.  Returns the decoded body when ``decode`` is set."""
        assert self._session is not None, "ValetudoClient.open() not called"
        url = f"{self._base_url}/{path}"

        try:
            async with self._session.request(
                method, url, json=json_data, headers=self._headers
            ) as resp:
                if resp.status < 200 or resp.status >= 400:
                    logger.error(
                        "Valetudo API error: %s %s -> HTTP %d", method, path, resp.status,
                    )
                    raise ValetudoHTTPError(resp.status)
                if not decode:
                    return None
                try:
                    return await resp.json(content_type=None)
                except (json.JSONDecodeError, aiohttp.ContentTypeError) as exc:
                    logger.error("Valetudo API bad JSON: %s %s -> %s", method, path, exc)
                    raise ValetudoDecodeError(f"Invalid JSON response: {exc}") from exc
        except asyncio.TimeoutError as exc:
            logger.warning("Valetudo API timeout: %s %s", method, path)
            raise ValetudoConnectionError("Request timed out") from exc
        except aiohttp.ClientError as exc:
            logger.warning("Valetudo API connection error: %s %s -> %s", method, path, exc)
            raise ValetudoConnectionError(f"Connection error: {exc}") from exc

    # -- public helpers --

    async def set_basic_control(self, action: str) -> None:
        """PUT a basic control action ("start", "pause", "home", ...)."""
        await self._request("PUT", BASIC_CONTROL_PATH, json_data={"action": action})
        logger.info("Basic control sent: action=%s", action)

    async def list_zone_presets(self) -> dict[str, ZonePreset]:
        """Return preset key -> ZonePreset, in the order the robot sent them."""
        raw = await self._request("GET", ZONE_PRESETS_PATH, decode=True)
        try:
            return parse_zone_presets(raw)
        except ValueError as exc:
            raise ValetudoDecodeError(str(exc)) from exc

    async def trigger_zone_preset(self, preset_id: str) -> None:
        """Start cleaning a single zone preset."""
        path = f"{ZONE_PRESETS_PATH}/{quote(preset_id, safe='')}"
        await self._request("PUT", path, json_data={"action": "clean"})
        logger.info("Zone preset triggered: id=%s", preset_id)

    async def get_state_attributes(self) -> list[StateAttribute]:
        raw = await self._request("GET", STATE_ATTRIBUTES_PATH, decode=True)
        try:
            return parse_state_attributes(raw)
        except ValueError as exc:
            raise ValetudoDecodeError(str(exc)) from exc
