"""Block-structured webhook payloads for site alerts and reports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime, tzinfo

    from ..sentinel.models import HealthSummary, SiteMonitorConfig

_STATUS_LABELS = {
    "active": "Active",
    "warning": "Warning",
    "inactive": "Inactive",
}


def _format_instant(value: datetime | None, tz: tzinfo | None) -> str:
    if value is None:
        return "Never"
    if tz is not None:
        value = value.astimezone(tz)
    return value.strftime("%Y-%m-%d %H:%M %Z").strip()


def _field(label: str, value: object) -> dict[str, str]:
    return {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}


def _header(text: str) -> dict[str, Any]:
    return {
        "type": "header",
        "text": {"type": "plain_text", "text": text, "emoji": True},
    }


def _site_section(config: SiteMonitorConfig) -> dict[str, Any]:
    return {
        "type": "section",
        "fields": [_field("Site", config.name), _field("Site ID", config.site_id)],
    }


def _with_channel(payload: dict[str, Any], config: SiteMonitorConfig) -> dict[str, Any]:
    if config.notification_channel:
        payload["channel"] = config.notification_channel
    return payload


def build_no_activity_alert(
    config: SiteMonitorConfig,
    summary: HealthSummary,
    tz: tzinfo | None = None,
    stale_after_hours: float = 5,
) -> dict[str, Any]:
    """Build the alert sent when a site enters inactivity."""
    last_activity = _format_instant(summary.last_activity_at, tz)
    title = f"No X-ray Activity Alert: {config.name}"
    payload = {
        "text": f"{title} (last activity: {last_activity})",
        "blocks": [
            _header(title),
            _site_section(config),
            {
                "type": "section",
                "fields": [
                    _field("Status", _STATUS_LABELS[summary.status]),
                    _field("Last Activity", last_activity),
                    _field("Total X-rays", summary.total_events),
                ],
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        "No X-ray activity detected in the last "
                        f"{stale_after_hours:g} hours during business hours."
                    ),
                },
            },
        ],
    }
    return _with_channel(payload, config)


def build_activity_report(
    config: SiteMonitorConfig,
    summary: HealthSummary,
    tz: tzinfo | None = None,
) -> dict[str, Any]:
    """Build the periodic activity report for a site with recent treatments."""
    last_activity = _format_instant(summary.last_activity_at, tz)
    status = _STATUS_LABELS[summary.status]
    title = f"X-ray Activity Report: {config.name}"
    payload = {
        "text": (
            f"{title}: {status}, {summary.total_events} X-ray(s), "
            f"last activity {last_activity}"
        ),
        "blocks": [
            _header(title),
            _site_section(config),
            {
                "type": "section",
                "fields": [
                    _field("Status", status),
                    _field("Last Activity", last_activity),
                ],
            },
            {
                "type": "section",
                "fields": [
                    _field("Total X-rays", summary.total_events),
                    _field(
                        "Panoramic / Periapical",
                        f"{summary.panoramic_count} / {summary.periapical_count}",
                    ),
                    _field("Patients", summary.patient_count),
                ],
            },
        ],
    }
    return _with_channel(payload, config)
