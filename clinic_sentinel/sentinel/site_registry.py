"""Registry of monitored sites, persisted as JSON."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

import voluptuous as vol

from ..const import CADENCES, SITE_STATUSES, STORE_VERSION
from ..exceptions import ConfigValidationError, StorageError
from .models import SiteMonitorConfig

if TYPE_CHECKING:
    from ..core.storage import JsonStore

STORE_KEY = "clinic_sentinel_sites"
LOGGER = logging.getLogger(__name__)

_NON_EMPTY = vol.All(str, vol.Strip, vol.Length(min=1))
_OPTIONAL_ISO = vol.Any(None, str)

SITE_SCHEMA = vol.Schema(
    {
        vol.Required("id"): _NON_EMPTY,
        vol.Required("name"): _NON_EMPTY,
        vol.Required("siteId"): _NON_EMPTY,
        vol.Required("cadence"): vol.In(CADENCES),
        vol.Required("lastRunAt"): _OPTIONAL_ISO,
        vol.Required("nextRunAt"): _OPTIONAL_ISO,
        vol.Required("notificationsEnabled"): bool,
        vol.Required("notificationTarget"): vol.Any(None, vol.Url()),
        vol.Required("notificationChannel"): vol.Any(None, str),
        vol.Required("active"): bool,
        vol.Required("lastActivityAt"): _OPTIONAL_ISO,
        vol.Required("noActivityAlertSent"): bool,
        vol.Required("status"): vol.In(SITE_STATUSES),
    }
)

_CONFIG_FIELDS = frozenset(f.name for f in fields(SiteMonitorConfig))


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a registry mutation."""

    success: bool
    config: SiteMonitorConfig | None = None
    error: str | None = None


def validate_site_config(config: SiteMonitorConfig) -> SiteMonitorConfig:
    """
    Validate a config at save time.

    Raises:
        ConfigValidationError: With a message naming the offending field

    """
    try:
        validated = SITE_SCHEMA(config.as_dict())
    except vol.Invalid as err:
        msg = f"Invalid site configuration: {err}"
        raise ConfigValidationError(msg) from err

    if config.notifications_enabled and not config.notification_target:
        msg = (
            f"Site {config.name!r} has notifications enabled but no "
            "notification target (webhook URL)."
        )
        raise ConfigValidationError(msg)
    return SiteMonitorConfig.from_dict(validated)


class SiteRegistry:
    """Persist monitored site configurations."""

    def __init__(self, store: JsonStore) -> None:
        """Initialize site storage."""
        self._store = store
        self._sites: list[SiteMonitorConfig] = []
        self._lock = asyncio.Lock()

    async def async_load(self) -> None:
        """Load sites from storage, skipping malformed records."""
        data = await self._store.async_load()
        sites: list[SiteMonitorConfig] = []
        for raw in data if isinstance(data, list) else []:
            try:
                sites.append(validate_site_config(SiteMonitorConfig.from_dict(raw)))
            except (ConfigValidationError, KeyError, TypeError) as err:
                LOGGER.warning("Skipping stored site record: %s", err)
        self._sites = sites

    async def _async_save(self, sites: list[SiteMonitorConfig]) -> None:
        await self._store.async_save([site.as_dict() for site in sites])
        self._sites = sites

    async def async_list(self) -> list[SiteMonitorConfig]:
        """Re-read storage and return every site."""
        async with self._lock:
            try:
                await self.async_load()
            except StorageError as err:
                LOGGER.warning("Using last known site list: %s", err)
            return list(self._sites)

    def get(self, config_id: str) -> SiteMonitorConfig | None:
        """Return a site by config id from the last loaded list."""
        for site in self._sites:
            if site.id == config_id:
                return site
        return None

    def find_by_site_id(self, site_id: str) -> SiteMonitorConfig | None:
        """Return the active config monitoring a site id."""
        for site in self._sites:
            if site.site_id == site_id and site.active:
                return site
        return None

    def _check_unique(self, config: SiteMonitorConfig) -> None:
        if not config.active:
            return
        for site in self._sites:
            if site.id != config.id and site.active and site.site_id == config.site_id:
                msg = f"Site {config.site_id} is already monitored by {site.name!r}."
                raise ConfigValidationError(msg)

    async def async_add(self, config: SiteMonitorConfig) -> StoreResult:
        """Add a new site."""
        async with self._lock:
            if self.get(config.id) is not None:
                return StoreResult(False, error=f"Config {config.id} already exists.")
            try:
                validated = validate_site_config(config)
                self._check_unique(validated)
                await self._async_save([*self._sites, validated])
            except (ConfigValidationError, StorageError) as err:
                LOGGER.warning("Rejected site %s: %s", config.id, err)
                return StoreResult(False, error=str(err))
        LOGGER.info("Site registry added %s (%s).", validated.name, validated.site_id)
        return StoreResult(True, config=validated)

    async def async_update(
        self, config_id: str, changes: dict[str, Any]
    ) -> StoreResult:
        """Apply a partial update to a site, keeping its id."""
        unknown = set(changes) - _CONFIG_FIELDS
        if unknown:
            return StoreResult(False, error=f"Unknown fields: {sorted(unknown)}")
        async with self._lock:
            current = self.get(config_id)
            if current is None:
                return StoreResult(False, error=f"Config {config_id} not found.")
            updated = current.with_updates(**{**changes, "id": config_id})
            try:
                validated = validate_site_config(updated)
                self._check_unique(validated)
                await self._async_save(
                    [validated if s.id == config_id else s for s in self._sites]
                )
            except (ConfigValidationError, StorageError) as err:
                LOGGER.warning("Rejected update of %s: %s", config_id, err)
                return StoreResult(False, error=str(err))
        return StoreResult(True, config=validated)

    async def async_delete(self, config_id: str) -> StoreResult:
        """Remove a site by config id."""
        async with self._lock:
            current = self.get(config_id)
            if current is None:
                return StoreResult(False, error=f"Config {config_id} not found.")
            try:
                await self._async_save([s for s in self._sites if s.id != config_id])
            except StorageError as err:
                return StoreResult(False, error=str(err))
        LOGGER.info("Site registry removed %s.", current.name)
        return StoreResult(True, config=current)

    async def async_reset_all(self) -> StoreResult:
        """Remove every site."""
        async with self._lock:
            try:
                await self._async_save([])
            except StorageError as err:
                return StoreResult(False, error=str(err))
        LOGGER.info("Site registry reset.")
        return StoreResult(True)
