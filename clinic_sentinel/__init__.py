"""Clinic Sentinel Initialization."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import aiofiles
import httpx
import voluptuous as vol
import yaml

from .const import (
    CONF_BUSINESS_TIME_ZONE,
    CONF_LOG_API_URL,
    CONF_LOG_API_VERSION,
    CONF_LOG_FETCH_LIMIT,
    CONF_LOG_FETCH_TIMEOUT_SECONDS,
    CONF_LOG_LEVEL,
    CONF_NOTIFY_THROTTLE_MINUTES,
    CONF_NOTIFY_TIMEOUT_SECONDS,
    CONF_RUN_COOLDOWN_MINUTES,
    CONF_SCAN_INTERVAL_MINUTES,
    CONF_STALE_AFTER_HOURS,
    CONF_STALE_GAP_MODE,
    CONF_STORAGE_PATH,
    RECOMMENDED_BUSINESS_TIME_ZONE,
    RECOMMENDED_LOG_API_VERSION,
    RECOMMENDED_LOG_FETCH_LIMIT,
    RECOMMENDED_LOG_FETCH_TIMEOUT_SECONDS,
    RECOMMENDED_LOG_LEVEL,
    RECOMMENDED_NOTIFY_THROTTLE_MINUTES,
    RECOMMENDED_NOTIFY_TIMEOUT_SECONDS,
    RECOMMENDED_RUN_COOLDOWN_MINUTES,
    RECOMMENDED_SCAN_INTERVAL_MINUTES,
    RECOMMENDED_STALE_AFTER_HOURS,
    RECOMMENDED_STALE_GAP_MODE,
    RECOMMENDED_STORAGE_PATH,
    STORE_VERSION,
)
from .core.runtime import SentinelData
from .core.site_cache import SiteCache
from .core.storage import JsonStore
from .exceptions import ConfigValidationError, StorageError
from .logs.fetch import LogFetchClient
from .notify.dispatcher import NotificationDispatcher
from .sentinel.engine import SentinelEngine
from .sentinel.health import BusinessCalendar
from .sentinel.site_registry import STORE_KEY, SiteRegistry
from .sentinel.suppression import SuppressionManager

LOGGER = logging.getLogger(__name__)


def _time_zone(value: Any) -> str:
    try:
        ZoneInfo(str(value))
    except (ZoneInfoNotFoundError, ValueError) as err:
        msg = f"Unknown time zone: {value}"
        raise vol.Invalid(msg) from err
    return str(value)


_POSITIVE = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_LOG_API_URL): vol.Url(),
        vol.Optional(
            CONF_LOG_API_VERSION, default=RECOMMENDED_LOG_API_VERSION
        ): vol.All(str, vol.Length(min=1)),
        vol.Optional(
            CONF_LOG_FETCH_LIMIT, default=RECOMMENDED_LOG_FETCH_LIMIT
        ): vol.Any(None, vol.All(vol.Coerce(int), vol.Range(min=1))),
        vol.Optional(
            CONF_LOG_FETCH_TIMEOUT_SECONDS,
            default=RECOMMENDED_LOG_FETCH_TIMEOUT_SECONDS,
        ): _POSITIVE,
        vol.Optional(
            CONF_NOTIFY_TIMEOUT_SECONDS, default=RECOMMENDED_NOTIFY_TIMEOUT_SECONDS
        ): _POSITIVE,
        vol.Optional(
            CONF_SCAN_INTERVAL_MINUTES, default=RECOMMENDED_SCAN_INTERVAL_MINUTES
        ): _POSITIVE,
        vol.Optional(
            CONF_RUN_COOLDOWN_MINUTES, default=RECOMMENDED_RUN_COOLDOWN_MINUTES
        ): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional(
            CONF_NOTIFY_THROTTLE_MINUTES, default=RECOMMENDED_NOTIFY_THROTTLE_MINUTES
        ): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional(
            CONF_STALE_AFTER_HOURS, default=RECOMMENDED_STALE_AFTER_HOURS
        ): _POSITIVE,
        vol.Optional(
            CONF_BUSINESS_TIME_ZONE, default=RECOMMENDED_BUSINESS_TIME_ZONE
        ): _time_zone,
        vol.Optional(CONF_STALE_GAP_MODE, default=RECOMMENDED_STALE_GAP_MODE): vol.In(
            ["business", "wall_clock"]
        ),
        vol.Optional(CONF_STORAGE_PATH, default=RECOMMENDED_STORAGE_PATH): str,
        vol.Optional(CONF_LOG_LEVEL, default=RECOMMENDED_LOG_LEVEL): vol.All(
            vol.Upper, vol.In(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
        ),
    }
)


def validate_config(raw: Any) -> dict[str, Any]:
    """
    Validate service options and fill in defaults.

    Raises:
        ConfigValidationError: If the options do not match CONFIG_SCHEMA

    """
    try:
        return CONFIG_SCHEMA(raw or {})
    except vol.Invalid as err:
        msg = f"Invalid configuration: {err}"
        raise ConfigValidationError(msg) from err


async def async_load_config(path: Path | str) -> dict[str, Any]:
    """Read and validate a YAML configuration file."""
    try:
        async with aiofiles.open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(await f.read())
    except OSError as err:
        msg = f"Could not read configuration {path}: {err}"
        raise ConfigValidationError(msg) from err
    except yaml.YAMLError as err:
        msg = f"Invalid YAML in {path}: {err}"
        raise ConfigValidationError(msg) from err
    return validate_config(raw)


def build_calendar(options: dict[str, Any]) -> BusinessCalendar:
    """Create the business calendar described by the options."""
    return BusinessCalendar(
        time_zone=ZoneInfo(options[CONF_BUSINESS_TIME_ZONE]),
        stale_after=timedelta(hours=options[CONF_STALE_AFTER_HOURS]),
        gap_mode=options[CONF_STALE_GAP_MODE],
    )


async def async_setup(
    config: dict[str, Any], http_client: httpx.AsyncClient | None = None
) -> SentinelData:
    """
    Wire the monitoring components together and load stored sites.

    The engine is created but not started.
    """
    options = validate_config(config)
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient()

    calendar = build_calendar(options)
    registry = SiteRegistry(
        JsonStore(options[CONF_STORAGE_PATH], STORE_VERSION, STORE_KEY)
    )
    try:
        await registry.async_load()
    except StorageError:
        if owns_client:
            await client.aclose()
        raise

    fetch_client = LogFetchClient(
        client,
        options[CONF_LOG_API_URL],
        version=options[CONF_LOG_API_VERSION],
        limit=options[CONF_LOG_FETCH_LIMIT],
        timeout=options[CONF_LOG_FETCH_TIMEOUT_SECONDS],
    )
    cache = SiteCache()
    suppression = SuppressionManager()
    dispatcher = NotificationDispatcher(
        client,
        suppression,
        throttle_window=timedelta(minutes=options[CONF_NOTIFY_THROTTLE_MINUTES]),
        timeout=options[CONF_NOTIFY_TIMEOUT_SECONDS],
        display_tz=calendar.time_zone,
        stale_after_hours=options[CONF_STALE_AFTER_HOURS],
    )
    engine = SentinelEngine(
        registry, fetch_client, cache, suppression, dispatcher, options, calendar
    )

    LOGGER.info(
        "Clinic Sentinel initialized: %s site(s), log api=%s, time zone=%s, "
        "gap mode=%s.",
        len(await registry.async_list()),
        options[CONF_LOG_API_URL],
        options[CONF_BUSINESS_TIME_ZONE],
        options[CONF_STALE_GAP_MODE],
    )
    return SentinelData(
        options=options,
        http_client=client,
        registry=registry,
        fetch_client=fetch_client,
        cache=cache,
        suppression=suppression,
        dispatcher=dispatcher,
        calendar=calendar,
        engine=engine,
        owns_http_client=owns_client,
    )


async def async_unload(data: SentinelData) -> None:
    """Stop the engine and release the HTTP client."""
    await data.engine.stop()
    if data.owns_http_client:
        await data.http_client.aclose()
