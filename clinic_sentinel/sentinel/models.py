"""Sentinel models for sites, treatments and health summaries."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ..const import Cadence, SiteStatus, TreatmentKind
from ..core.datetime_utils import DateTimeUtils


def build_summary_id(site_id: str, evaluated_at: datetime) -> str:
    """Create a stable id for a health summary."""
    return f"summary-{site_id}-{DateTimeUtils.to_epoch_ms(evaluated_at)}"


def build_treatment_id(site_id: str, source_message: str) -> str:
    """Create a stable id for a treatment from its source message."""
    digest = hashlib.sha256(source_message.encode("utf-8")).hexdigest()
    return f"treatment-{site_id}-{digest[:12]}"


@dataclass(frozen=True)
class TreatmentEvent:
    """X-ray treatment recognised in a log message."""

    id: str
    patient_key: str
    patient_display_name: str
    kind: TreatmentKind
    succeeded: bool
    timestamp: datetime
    site_id: str
    source_message: str
    strategy: str = "treatment_created"

    def as_dict(self) -> dict[str, Any]:
        """Serialize the treatment for payloads and logs."""
        return {
            "id": self.id,
            "patientKey": self.patient_key,
            "patientDisplayName": self.patient_display_name,
            "kind": self.kind,
            "succeeded": self.succeeded,
            "timestamp": DateTimeUtils.as_iso(self.timestamp),
            "siteId": self.site_id,
            "sourceMessage": self.source_message,
            "strategy": self.strategy,
        }


@dataclass(frozen=True)
class SiteMonitorConfig:
    """Monitoring configuration of one site."""

    id: str
    name: str
    site_id: str
    cadence: Cadence = "hourly"
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    notifications_enabled: bool = False
    notification_target: str | None = None
    notification_channel: str | None = None
    active: bool = True
    last_activity_at: datetime | None = None
    no_activity_alert_sent: bool = False
    status: SiteStatus = "inactive"

    def with_updates(self, **changes: Any) -> SiteMonitorConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SiteMonitorConfig:
        """Create a config from its persisted form."""
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            site_id=str(data["siteId"]),
            cadence=data.get("cadence", "hourly"),
            last_run_at=DateTimeUtils.parse_datetime(data.get("lastRunAt")),
            next_run_at=DateTimeUtils.parse_datetime(data.get("nextRunAt")),
            notifications_enabled=bool(data.get("notificationsEnabled", False)),
            notification_target=data.get("notificationTarget"),
            notification_channel=data.get("notificationChannel"),
            active=bool(data.get("active", True)),
            last_activity_at=DateTimeUtils.parse_datetime(data.get("lastActivityAt")),
            no_activity_alert_sent=bool(data.get("noActivityAlertSent", False)),
            status=data.get("status", "inactive"),
        )

    def as_dict(self) -> dict[str, Any]:
        """Convert the config to its persisted form."""
        return {
            "id": self.id,
            "name": self.name,
            "siteId": self.site_id,
            "cadence": self.cadence,
            "lastRunAt": DateTimeUtils.as_iso(self.last_run_at),
            "nextRunAt": DateTimeUtils.as_iso(self.next_run_at),
            "notificationsEnabled": self.notifications_enabled,
            "notificationTarget": self.notification_target,
            "notificationChannel": self.notification_channel,
            "active": self.active,
            "lastActivityAt": DateTimeUtils.as_iso(self.last_activity_at),
            "noActivityAlertSent": self.no_activity_alert_sent,
            "status": self.status,
        }


@dataclass(frozen=True)
class HealthSummary:
    """Result of one evaluation cycle for a site. Never persisted."""

    id: str
    site_id: str
    evaluated_at: datetime
    total_events: int
    last_activity_at: datetime | None
    status: SiteStatus
    treatments: list[TreatmentEvent] = field(default_factory=list)

    @property
    def panoramic_count(self) -> int:
        """Number of panoramic treatments in the summary."""
        return sum(1 for t in self.treatments if t.kind == "panoramic")

    @property
    def periapical_count(self) -> int:
        """Number of periapical treatments in the summary."""
        return sum(1 for t in self.treatments if t.kind == "periapical")

    @property
    def patient_count(self) -> int:
        """Number of distinct patients in the summary."""
        return len({t.patient_key for t in self.treatments})

    def as_dict(self) -> dict[str, Any]:
        """Serialize the summary."""
        return {
            "id": self.id,
            "siteId": self.site_id,
            "evaluatedAt": DateTimeUtils.as_iso(self.evaluated_at),
            "totalEvents": self.total_events,
            "lastActivityAt": DateTimeUtils.as_iso(self.last_activity_at),
            "status": self.status,
            "panoramicCount": self.panoramic_count,
            "periapicalCount": self.periapical_count,
            "patientCount": self.patient_count,
            "treatments": [t.as_dict() for t in self.treatments],
        }
