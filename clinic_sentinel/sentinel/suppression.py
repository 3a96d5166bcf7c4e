"""Notification throttling and run cooldown handling for monitored sites."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime, timedelta

LOGGER = logging.getLogger(__name__)


@dataclass
class SuppressionState:
    """In-memory suppression state. Reset on restart."""

    last_notified_by_site: dict[str, datetime] = field(default_factory=dict)
    last_triggered_by_site: dict[str, datetime] = field(default_factory=dict)


def should_throttle(
    state: SuppressionState, site_id: str, now: datetime, window: timedelta
) -> bool:
    """Return True while a site is inside its notification throttle window."""
    last = state.last_notified_by_site.get(site_id)
    if last is not None and now - last < window:
        LOGGER.debug(
            "Throttling notification for %s: last sent %s.", site_id, last.isoformat()
        )
        return True
    return False


def register_notification(
    state: SuppressionState, site_id: str, now: datetime
) -> None:
    """Record a delivered notification for throttle tracking."""
    state.last_notified_by_site[site_id] = now


def in_run_cooldown(
    state: SuppressionState, site_id: str, now: datetime, cooldown: timedelta
) -> bool:
    """Return True while a site is inside its run cooldown."""
    last = state.last_triggered_by_site.get(site_id)
    if last is not None and now - last < cooldown:
        LOGGER.debug(
            "Skipping %s: run cooldown active (last=%s).", site_id, last.isoformat()
        )
        return True
    return False


def register_run(state: SuppressionState, site_id: str, now: datetime) -> None:
    """Record a triggered evaluation for cooldown tracking."""
    state.last_triggered_by_site[site_id] = now


def forget_site(state: SuppressionState, site_id: str) -> None:
    """Drop all suppression data for a removed site."""
    state.last_notified_by_site.pop(site_id, None)
    state.last_triggered_by_site.pop(site_id, None)


class SuppressionManager:
    """Own suppression state and the per-site locks guarding it."""

    def __init__(self) -> None:
        """Initialize empty suppression state."""
        self._state = SuppressionState()
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def state(self) -> SuppressionState:
        """Return current suppression state."""
        return self._state

    def lock(self, site_id: str) -> asyncio.Lock:
        """Return the lock serializing throttle decisions for a site."""
        lock = self._locks.get(site_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[site_id] = lock
        return lock

    def forget(self, site_id: str) -> None:
        """Forget a removed site."""
        forget_site(self._state, site_id)
        self._locks.pop(site_id, None)
