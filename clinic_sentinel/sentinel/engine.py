"""Sentinel engine: periodic per-site monitoring loop."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from ..const import (
    CONF_RUN_COOLDOWN_MINUTES,
    CONF_SCAN_INTERVAL_MINUTES,
    RECOMMENDED_RUN_COOLDOWN_MINUTES,
    RECOMMENDED_SCAN_INTERVAL_MINUTES,
)
from ..core.datetime_utils import DateTimeUtils
from ..core.error_handlers import ErrorHandler
from ..exceptions import LogFetchError
from ..extract.extractor import TreatmentExtractor
from ..logs.normalizer import normalize_records
from .health import BusinessCalendar, build_health_summary
from .schedule import compute_next_run, fetch_window
from .suppression import in_run_cooldown, register_run

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from ..core.site_cache import SiteCache
    from ..logs.fetch import LogFetchClient
    from ..notify.dispatcher import NotificationDispatcher
    from .models import HealthSummary, SiteMonitorConfig, TreatmentEvent
    from .site_registry import SiteRegistry, StoreResult
    from .suppression import SuppressionManager

LOGGER = logging.getLogger(__name__)


class SentinelEngine:
    """Periodic site evaluation loop plus the operator operations on sites."""

    def __init__(
        self,
        registry: SiteRegistry,
        fetch_client: LogFetchClient,
        cache: SiteCache,
        suppression: SuppressionManager,
        dispatcher: NotificationDispatcher,
        options: dict[str, Any],
        calendar: BusinessCalendar | None = None,
        *,
        extractor: TreatmentExtractor | None = None,
        clock: Callable[[], datetime] = DateTimeUtils.utcnow,
    ) -> None:
        self._registry = registry
        self._fetch_client = fetch_client
        self._cache = cache
        self._suppression = suppression
        self._dispatcher = dispatcher
        self._options = options
        self._calendar = calendar or BusinessCalendar()
        self._extractor = extractor or TreatmentExtractor()
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._running: set[str] = set()
        self._inflight: set[asyncio.Task[Any]] = set()

    @property
    def cooldown(self) -> timedelta:
        """Minimum time between two triggered runs of one site."""
        return timedelta(
            minutes=float(
                self._options.get(
                    CONF_RUN_COOLDOWN_MINUTES, RECOMMENDED_RUN_COOLDOWN_MINUTES
                )
            )
        )

    def start(self) -> None:
        """Start the sentinel loop."""
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        """Stop the sentinel loop and cancel in-flight evaluations."""
        self._stop_event.set()
        tasks = [t for t in (self._task, *self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._inflight.clear()

    async def _run_loop(self) -> None:
        interval = 60 * float(
            self._options.get(
                CONF_SCAN_INTERVAL_MINUTES, RECOMMENDED_SCAN_INTERVAL_MINUTES
            )
        )
        LOGGER.info("Sentinel loop started (interval=%ss).", interval)
        while not self._stop_event.is_set():
            await self.async_run_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except TimeoutError:
                continue

    def skip_reason(self, config: SiteMonitorConfig, now: datetime) -> str | None:
        """Return why a scheduled tick should skip a site, or None to run it."""
        if not config.active:
            return "paused"
        if config.id in self._running:
            return "running"
        if in_run_cooldown(
            self._suppression.state, config.site_id, now, self.cooldown
        ):
            return "cooldown"
        if config.next_run_at is not None and config.next_run_at > now:
            return "not_due"
        return None

    async def async_run_once(self) -> None:
        """Run one scheduling tick over every stored site."""
        configs = await self._registry.async_list()
        now = self._clock()

        due: list[SiteMonitorConfig] = []
        for config in configs:
            reason = self.skip_reason(config, now)
            if reason is not None:
                LOGGER.debug("[%s] Skipping scheduled run: %s.", config.site_id, reason)
                continue
            due.append(config)

        if not due:
            LOGGER.debug("Sentinel cycle completed with no sites due.")
            return

        LOGGER.info("Sentinel cycle evaluating %s site(s).", len(due))
        results = await asyncio.gather(
            *(
                ErrorHandler.execute_with_standard_handling(
                    self.async_evaluate_site(config, send_report=True),
                    f"Evaluation of site {config.site_id}",
                )
                for config in due
            )
        )
        failed = sum(1 for _, err in results if err is not None)
        LOGGER.debug(
            "Sentinel cycle completed: %s evaluated, %s failed.",
            len(due) - failed,
            failed,
        )

    async def _async_load_treatments(
        self, config: SiteMonitorConfig, now: datetime
    ) -> list[TreatmentEvent]:
        start, end = fetch_window(config.cadence, now)
        records = await self._fetch_client.async_fetch(start, end, [config.site_id])
        normalized = normalize_records(records)
        return self._extractor.extract(normalized.entries, site_id=config.site_id)

    async def async_evaluate_site(
        self,
        config: SiteMonitorConfig,
        *,
        force: bool = False,
        send_report: bool = True,
    ) -> HealthSummary | None:
        """
        Evaluate one site end to end.

        Order: cache invalidate, fetch, extract, cache put, evaluate, persist,
        dispatch, persist the alert flag. A fetch failure leaves the stored
        config untouched and returns None.

        Args:
            config: Site to evaluate, as last read from the registry
            force: Manual run; does not start a new run cooldown
            send_report: Allow an activity report for an active site

        Returns:
            The health summary, or None when the site was skipped

        """
        if not config.active or config.id in self._running:
            LOGGER.debug("[%s] Evaluation skipped (paused or running).", config.site_id)
            return None

        self._running.add(config.id)
        try:
            now = self._clock()
            if not force:
                register_run(self._suppression.state, config.site_id, now)

            try:
                treatments = await self._cache.async_replace(
                    config.site_id,
                    lambda: self._async_load_treatments(config, now),
                )
            except LogFetchError as err:
                LOGGER.warning(
                    "[%s] Logs unavailable, status left unchanged: %s",
                    config.site_id,
                    err,
                )
                return None

            summary = build_health_summary(
                config.site_id, treatments, now, self._calendar
            )
            stored = await self._registry.async_update(
                config.id,
                {
                    "status": summary.status,
                    "last_activity_at": summary.last_activity_at
                    or config.last_activity_at,
                    "last_run_at": now,
                    "next_run_at": compute_next_run(config.cadence, now),
                },
            )
            if not stored.success or stored.config is None:
                LOGGER.warning(
                    "[%s] Could not persist evaluation: %s",
                    config.site_id,
                    stored.error,
                )
                return summary

            LOGGER.info(
                "[%s] %s is %s (%s treatment(s), last activity %s).",
                config.site_id,
                config.name,
                summary.status,
                summary.total_events,
                DateTimeUtils.as_iso(summary.last_activity_at) or "never",
            )

            dispatch = await self._dispatcher.async_dispatch(
                summary,
                stored.config,
                config.status,
                send_report=send_report,
                now=now,
            )
            if dispatch.config_updates:
                flagged = await self._registry.async_update(
                    config.id, dispatch.config_updates
                )
                if not flagged.success:
                    LOGGER.warning(
                        "[%s] Could not persist notification state: %s",
                        config.site_id,
                        flagged.error,
                    )
            return summary
        finally:
            self._running.discard(config.id)

    async def async_refresh_site(self, config_id: str) -> HealthSummary | None:
        """Run a manual evaluation, ignoring cooldown and the next scheduled run."""
        await self._registry.async_list()
        config = self._registry.get(config_id)
        if config is None:
            LOGGER.warning("Refresh requested for unknown config %s.", config_id)
            return None

        task = asyncio.create_task(
            self.async_evaluate_site(config, force=True, send_report=False)
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        summary, _err = await ErrorHandler.execute_with_standard_handling(
            task, f"Manual refresh of site {config.site_id}"
        )
        return summary

    async def async_get_summary(self, site_id: str) -> HealthSummary | None:
        """
        Return the current health of a site, reading the cache first.

        On a cache miss the site's logs are fetched and cached; nothing is
        persisted and no notification is sent.
        """
        await self._registry.async_list()
        config = self._registry.find_by_site_id(site_id)
        if config is None:
            return None

        now = self._clock()
        treatments = await self._cache.get(site_id)
        if treatments is None:
            try:
                treatments = await self._cache.async_replace(
                    site_id, lambda: self._async_load_treatments(config, now)
                )
            except LogFetchError as err:
                LOGGER.warning("[%s] Summary unavailable: %s", site_id, err)
                return None
        return build_health_summary(site_id, treatments, now, self._calendar)

    async def async_add_site(self, config: SiteMonitorConfig) -> StoreResult:
        """Start monitoring a site on the next tick."""
        return await self._registry.async_add(config.with_updates(next_run_at=None))

    async def async_update_site(
        self, config_id: str, changes: dict[str, Any]
    ) -> StoreResult:
        """Update a site; a cadence change makes it due on the next tick."""
        current = self._registry.get(config_id)
        if "cadence" in changes and "next_run_at" not in changes:
            changes = {**changes, "next_run_at": None}
        result = await self._registry.async_update(config_id, changes)
        if result.success and current is not None:
            await self._cache.invalidate(current.site_id)
            if result.config is not None and result.config.site_id != current.site_id:
                self._suppression.forget(current.site_id)
        return result

    async def async_set_site_active(self, config_id: str, active: bool) -> StoreResult:
        """Pause or resume a site."""
        result = await self._registry.async_update(config_id, {"active": active})
        if result.success and result.config is not None:
            LOGGER.info(
                "[%s] Monitoring %s.",
                result.config.site_id,
                "resumed" if active else "paused",
            )
        return result

    async def async_remove_site(self, config_id: str) -> StoreResult:
        """Stop monitoring a site and purge its cached data."""
        result = await self._registry.async_delete(config_id)
        if result.success and result.config is not None:
            await self._cache.invalidate(result.config.site_id)
            self._suppression.forget(result.config.site_id)
        return result

    async def async_reset(self) -> StoreResult:
        """Remove every site and clear the cache."""
        result = await self._registry.async_reset_all()
        if result.success:
            for site_id in self._cache.cached_sites():
                self._suppression.forget(site_id)
            await self._cache.invalidate_all()
        return result
