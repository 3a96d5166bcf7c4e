"""Notification dispatcher for site health summaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Literal

import async_timeout
import httpx

from ..const import (
    RECOMMENDED_NOTIFY_THROTTLE_MINUTES,
    RECOMMENDED_NOTIFY_TIMEOUT_SECONDS,
    RECOMMENDED_STALE_AFTER_HOURS,
)
from ..exceptions import NotificationDeliveryError
from ..sentinel.suppression import register_notification, should_throttle
from .payloads import build_activity_report, build_no_activity_alert

if TYPE_CHECKING:
    from datetime import datetime, tzinfo

    from ..const import SiteStatus
    from ..sentinel.models import HealthSummary, SiteMonitorConfig
    from ..sentinel.suppression import SuppressionManager

LOGGER = logging.getLogger(__name__)

NotificationKind = Literal["no_activity_alert", "activity_report"]


@dataclass(frozen=True)
class DispatchResult:
    """
    Outcome of one dispatch decision.

    config_updates holds attribute changes the caller must persist; it is
    only populated when the notification was delivered.
    """

    kind: NotificationKind | None
    delivered: bool = False
    throttled: bool = False
    config_updates: dict[str, Any] = field(default_factory=dict)


def select_notification(
    summary: HealthSummary,
    config: SiteMonitorConfig,
    previous_status: SiteStatus | None,
    *,
    send_report: bool,
) -> NotificationKind | None:
    """Pick which notification, if any, a summary calls for."""
    if summary.status == "inactive":
        if not config.no_activity_alert_sent or previous_status != "inactive":
            return "no_activity_alert"
        return None
    if send_report and summary.total_events > 0:
        return "activity_report"
    return None


class NotificationDispatcher:
    """Deliver site alerts and activity reports to a webhook."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        suppression: SuppressionManager,
        *,
        throttle_window: timedelta = timedelta(
            minutes=RECOMMENDED_NOTIFY_THROTTLE_MINUTES
        ),
        timeout: float = RECOMMENDED_NOTIFY_TIMEOUT_SECONDS,
        display_tz: tzinfo | None = None,
        stale_after_hours: float = RECOMMENDED_STALE_AFTER_HOURS,
    ) -> None:
        """Initialize notification dispatcher state."""
        self._client = client
        self._suppression = suppression
        self._throttle_window = throttle_window
        self._timeout = timeout
        self._display_tz = display_tz
        self._stale_after_hours = stale_after_hours

    async def async_dispatch(
        self,
        summary: HealthSummary,
        config: SiteMonitorConfig,
        previous_status: SiteStatus | None,
        *,
        send_report: bool,
        now: datetime,
    ) -> DispatchResult:
        """
        Send the alert or report a summary calls for.

        Delivery failures are logged and reported through the result, never
        raised.
        """
        if not config.notifications_enabled or not config.notification_target:
            LOGGER.debug("[%s] Notifications disabled; skipping.", config.site_id)
            return DispatchResult(kind=None)

        kind = select_notification(
            summary, config, previous_status, send_report=send_report
        )
        if kind is None:
            return DispatchResult(kind=None)

        async with self._suppression.lock(config.site_id):
            if should_throttle(
                self._suppression.state, config.site_id, now, self._throttle_window
            ):
                return DispatchResult(kind=kind, throttled=True)

            if kind == "no_activity_alert":
                payload = build_no_activity_alert(
                    config, summary, self._display_tz, self._stale_after_hours
                )
            else:
                payload = build_activity_report(config, summary, self._display_tz)

            try:
                await self._async_post(config.notification_target, payload)
            except NotificationDeliveryError as err:
                LOGGER.warning(
                    "[%s] Failed to deliver %s: %s", config.site_id, kind, err
                )
                return DispatchResult(kind=kind)

            register_notification(self._suppression.state, config.site_id, now)

        LOGGER.info("[%s] Delivered %s for %s.", config.site_id, kind, config.name)
        return DispatchResult(
            kind=kind,
            delivered=True,
            config_updates={"no_activity_alert_sent": kind == "no_activity_alert"},
        )

    async def _async_post(self, target: str, payload: dict[str, Any]) -> None:
        try:
            async with async_timeout.timeout(self._timeout):
                response = await self._client.post(target, json=payload)
                response.raise_for_status()
        except TimeoutError as err:
            msg = f"Webhook timed out after {self._timeout}s"
            raise NotificationDeliveryError(msg) from err
        except httpx.HTTPStatusError as err:
            msg = (
                f"Webhook rejected notification: {err.response.status_code} - "
                f"{err.response.text[:200]}"
            )
            raise NotificationDeliveryError(msg) from err
        except httpx.RequestError as err:
            msg = f"Network error posting notification: {err}"
            raise NotificationDeliveryError(msg) from err
