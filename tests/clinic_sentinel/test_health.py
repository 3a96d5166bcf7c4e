# ruff: noqa: S101
"""Tests for business-hours health evaluation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from clinic_sentinel.sentinel.health import (
    BusinessCalendar,
    build_health_summary,
    evaluate_status,
)
from clinic_sentinel.sentinel.models import TreatmentEvent

# 2025-02-28 is a Friday and 2025-03-03 the following Monday.
FRIDAY = datetime(2025, 2, 28, tzinfo=UTC)
MONDAY = datetime(2025, 3, 3, tzinfo=UTC)

BUSINESS = BusinessCalendar(gap_mode="business")
WALL_CLOCK = BusinessCalendar(gap_mode="wall_clock")


def _at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute)


@pytest.mark.parametrize("calendar", [BUSINESS, WALL_CLOCK])
def test_friday_afternoon_boundaries(calendar: BusinessCalendar) -> None:
    last = _at(FRIDAY, 10, 59)

    assert evaluate_status(3, last, _at(FRIDAY, 16, 59), calendar) == "warning"
    assert evaluate_status(3, last, _at(FRIDAY, 17, 1), calendar) == "active"


@pytest.mark.parametrize("calendar", [BUSINESS, WALL_CLOCK])
def test_monday_morning_after_friday_morning(calendar: BusinessCalendar) -> None:
    assert (
        evaluate_status(3, _at(FRIDAY, 8), _at(MONDAY, 9, 1), calendar) == "warning"
    )


def test_weekend_gap_depends_on_gap_mode() -> None:
    last = _at(FRIDAY, 16, 30)
    now = _at(MONDAY, 9, 1)

    assert evaluate_status(3, last, now, BUSINESS) == "active"
    assert evaluate_status(3, last, now, WALL_CLOCK) == "warning"


def test_zero_events_is_inactive() -> None:
    assert evaluate_status(0, None, _at(FRIDAY, 12), BUSINESS) == "inactive"
    assert evaluate_status(0, _at(FRIDAY, 11), _at(FRIDAY, 12), BUSINESS) == (
        "inactive"
    )


def test_missing_last_activity_is_stale() -> None:
    assert evaluate_status(2, None, _at(FRIDAY, 20), BUSINESS) == "warning"


def test_evaluation_is_deterministic() -> None:
    args = (4, _at(FRIDAY, 9), _at(FRIDAY, 15), BUSINESS)

    assert evaluate_status(*args) == evaluate_status(*args) == "warning"


def test_calendar_time_zone_is_respected() -> None:
    new_york = BusinessCalendar(time_zone=ZoneInfo("America/New_York"))
    # 21:00 UTC is 16:00 in New York and after hours in UTC.
    now = _at(FRIDAY, 21)
    last = _at(FRIDAY, 14)

    assert evaluate_status(1, last, now, new_york) == "warning"
    assert evaluate_status(1, last, now, BUSINESS) == "active"


def test_business_time_between_skips_closures() -> None:
    elapsed = BUSINESS.business_time_between(_at(FRIDAY, 16), _at(MONDAY, 10))

    assert elapsed == timedelta(hours=2)
    assert BUSINESS.business_time_between(_at(MONDAY, 10), _at(FRIDAY, 10)) == (
        timedelta(0)
    )


def test_build_health_summary() -> None:
    treatments = [
        TreatmentEvent(
            id=f"t{i}",
            patient_key="k",
            patient_display_name="A* B*",
            kind=kind,
            succeeded=True,
            timestamp=_at(FRIDAY, 10 + i),
            site_id="1234",
            source_message=f"m{i}",
        )
        for i, kind in enumerate(["panoramic", "periapical", "panoramic"])
    ]
    now = _at(FRIDAY, 13)

    summary = build_health_summary("1234", treatments, now, BUSINESS)

    assert summary.total_events == 3
    assert summary.last_activity_at == _at(FRIDAY, 12)
    assert summary.status == "active"
    assert summary.panoramic_count == 2
    assert summary.periapical_count == 1
    assert summary.id.startswith("summary-1234-")
    assert summary.as_dict()["totalEvents"] == 3


def test_patient_count_groups_by_patient_key() -> None:
    treatments = [
        TreatmentEvent(
            id=f"t{i}",
            patient_key=key,
            patient_display_name="A* B*",
            kind="panoramic",
            succeeded=True,
            timestamp=_at(FRIDAY, 10, i),
            site_id="1234",
            source_message=f"m{i}",
        )
        for i, key in enumerate(["AB-000001", "AB-000001", "CD-000002"])
    ]

    summary = build_health_summary("1234", treatments, _at(FRIDAY, 11), BUSINESS)

    assert summary.total_events == 3
    assert summary.patient_count == 2
    assert summary.as_dict()["patientCount"] == 2
