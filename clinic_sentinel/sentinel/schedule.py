"""Cadence arithmetic for the monitoring scheduler."""

from __future__ import annotations

from datetime import datetime, timedelta

from ..const import FETCH_WINDOW_HOURS, Cadence
from ..core.datetime_utils import DateTimeUtils

_SUNDAY = 6


def compute_next_run(cadence: Cadence, now: datetime) -> datetime:
    """
    Return the next scheduled run for a cadence.

    hourly: top of the next hour. daily: next UTC midnight. weekly: next UTC
    Sunday midnight, a full week ahead when now is already Sunday.
    """
    now = DateTimeUtils.as_utc(now)
    if cadence == "hourly":
        return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if cadence == "daily":
        return midnight + timedelta(days=1)
    if cadence == "weekly":
        days_ahead = (_SUNDAY - now.weekday()) % 7 or 7
        return midnight + timedelta(days=days_ahead)

    msg = f"Unknown cadence: {cadence}"
    raise ValueError(msg)


def fetch_window(cadence: Cadence, now: datetime) -> tuple[datetime, datetime]:
    """Return the (start, end) log query window appropriate to a cadence."""
    hours = FETCH_WINDOW_HOURS.get(cadence, 24)
    return now - timedelta(hours=hours), now
