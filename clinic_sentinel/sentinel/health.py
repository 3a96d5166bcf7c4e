"""Site health evaluation against a business-hours calendar."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from ..const import (
    BUSINESS_DAYS,
    BUSINESS_END_HOUR,
    BUSINESS_START_HOUR,
    RECOMMENDED_BUSINESS_TIME_ZONE,
    RECOMMENDED_STALE_AFTER_HOURS,
    RECOMMENDED_STALE_GAP_MODE,
    GapMode,
    SiteStatus,
)
from .models import HealthSummary, build_summary_id

if TYPE_CHECKING:
    from .models import TreatmentEvent


@dataclass(frozen=True)
class BusinessCalendar:
    """Business hours and staleness policy used by the evaluator."""

    time_zone: ZoneInfo = field(
        default_factory=lambda: ZoneInfo(RECOMMENDED_BUSINESS_TIME_ZONE)
    )
    days: frozenset[int] = BUSINESS_DAYS
    start_hour: int = BUSINESS_START_HOUR
    end_hour: int = BUSINESS_END_HOUR
    stale_after: timedelta = timedelta(hours=RECOMMENDED_STALE_AFTER_HOURS)
    gap_mode: GapMode = RECOMMENDED_STALE_GAP_MODE

    def is_business_hours(self, now: datetime) -> bool:
        """Return True if now falls inside business hours."""
        local = now.astimezone(self.time_zone)
        return (
            local.weekday() in self.days
            and self.start_hour <= local.hour < self.end_hour
        )

    def business_time_between(
        self, start: datetime, end: datetime, limit: timedelta | None = None
    ) -> timedelta:
        """
        Sum the business-hour time elapsed between start and end.

        Args:
            start: Beginning of the interval
            end: End of the interval
            limit: Stop counting once this much time has accumulated

        Returns:
            Elapsed business time, capped at limit when given

        """
        if end <= start:
            return timedelta(0)

        total = timedelta(0)
        day = start.astimezone(self.time_zone).date()
        last_day = end.astimezone(self.time_zone).date()
        while day <= last_day:
            if day.weekday() in self.days:
                open_at = datetime.combine(
                    day, time(self.start_hour), tzinfo=self.time_zone
                )
                close_at = datetime.combine(
                    day, time(self.end_hour), tzinfo=self.time_zone
                )
                overlap = min(end, close_at) - max(start, open_at)
                if overlap > timedelta(0):
                    total += overlap
            if limit is not None and total > limit:
                return total
            day += timedelta(days=1)
        return total

    def gap_since(self, last_activity_at: datetime, now: datetime) -> timedelta:
        """Return the inactivity gap according to the configured gap mode."""
        if self.gap_mode == "wall_clock":
            return now - last_activity_at
        return self.business_time_between(
            last_activity_at, now, limit=self.stale_after
        )


def is_stale(
    last_activity_at: datetime | None, now: datetime, calendar: BusinessCalendar
) -> bool:
    """
    Decide whether the last activity is too old.

    Outside business hours a long gap is never stale.
    """
    if last_activity_at is None:
        return True
    if not calendar.is_business_hours(now):
        return False
    return calendar.gap_since(last_activity_at, now) > calendar.stale_after


def evaluate_status(
    total_events: int,
    last_activity_at: datetime | None,
    now: datetime,
    calendar: BusinessCalendar | None = None,
) -> SiteStatus:
    """Return inactive, warning or active. Pure given its inputs."""
    if total_events == 0:
        return "inactive"
    if is_stale(last_activity_at, now, calendar or BusinessCalendar()):
        return "warning"
    return "active"


def build_health_summary(
    site_id: str,
    treatments: list[TreatmentEvent],
    now: datetime,
    calendar: BusinessCalendar | None = None,
) -> HealthSummary:
    """Summarize a site's treatments at instant now."""
    last_activity_at = max((t.timestamp for t in treatments), default=None)
    return HealthSummary(
        id=build_summary_id(site_id, now),
        site_id=site_id,
        evaluated_at=now,
        total_events=len(treatments),
        last_activity_at=last_activity_at,
        status=evaluate_status(len(treatments), last_activity_at, now, calendar),
        treatments=list(treatments),
    )
