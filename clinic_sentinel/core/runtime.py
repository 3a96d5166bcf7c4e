"""Clinic Sentinel runtime data."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

    from ..logs.fetch import LogFetchClient
    from ..notify.dispatcher import NotificationDispatcher
    from ..sentinel.engine import SentinelEngine
    from ..sentinel.health import BusinessCalendar
    from ..sentinel.site_registry import SiteRegistry
    from ..sentinel.suppression import SuppressionManager
    from .site_cache import SiteCache


@dataclass
class SentinelData:
    """Components wired together by async_setup."""

    options: dict[str, Any]
    http_client: httpx.AsyncClient
    registry: SiteRegistry
    fetch_client: LogFetchClient
    cache: SiteCache
    suppression: SuppressionManager
    dispatcher: NotificationDispatcher
    calendar: BusinessCalendar
    engine: SentinelEngine
    owns_http_client: bool = True
