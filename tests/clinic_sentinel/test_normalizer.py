# ruff: noqa: S101
"""Tests for raw log normalization."""

from __future__ import annotations

from datetime import UTC, datetime

from clinic_sentinel.core.datetime_utils import DateTimeUtils
from clinic_sentinel.logs.normalizer import (
    infer_severity,
    normalize_record,
    normalize_records,
    resolve_shape,
)

CLEAN_LINE = (
    "2025-02-27T10:16:02Z createTreatment: Treatment created successfully for "
    "He**** AR**"
)


def test_field_list_shape() -> None:
    entry = normalize_record(
        [
            {"field": "@timestamp", "value": "2025-02-27 10:16:02.123"},
            {"field": "@message", "value": "Treatment created successfully for A* B*"},
            {"field": "@logStream", "value": "device-[1234]"},
        ]
    )

    assert entry is not None
    assert entry.timestamp == datetime(2025, 2, 27, 10, 16, 2, 123000, tzinfo=UTC)
    assert entry.raw_timestamp == "2025-02-27 10:16:02.123"
    assert entry.source_stream == "device-[1234]"
    assert entry.severity == "info"


def test_object_shape_with_epoch_millis() -> None:
    when = datetime(2025, 2, 27, 10, 16, 2, tzinfo=UTC)
    entry = normalize_record(
        {"timestamp": DateTimeUtils.to_epoch_ms(when), "message": "hello"}
    )

    assert entry is not None
    assert entry.timestamp == when


def test_json_string_shape() -> None:
    entry = normalize_record(
        '{"timestamp": "2025-02-27T10:16:02Z", "message": "ok", "level": "WARN"}'
    )

    assert entry is not None
    assert entry.message == "ok"
    assert entry.severity == "warning"


def test_plain_line_with_leading_timestamp() -> None:
    entry = normalize_record(CLEAN_LINE)

    assert entry is not None
    assert entry.timestamp == datetime(2025, 2, 27, 10, 16, 2, tzinfo=UTC)
    assert entry.message.startswith("createTreatment:")


def test_plain_line_without_timestamp_is_kept_but_flagged() -> None:
    result = normalize_records(["no timestamp here"])

    assert len(result.entries) == 1
    assert result.entries[0].timestamp is None
    assert not result.entries[0].has_valid_timestamp
    assert result.unparsable_timestamps == 1


def test_malformed_records_are_dropped_and_counted() -> None:
    result = normalize_records(
        [42, None, [{"x": 1}], {"timestamp": "2025-02-27T10:16:02Z"}, CLEAN_LINE]
    )

    assert result.dropped == 4
    assert len(result.entries) == 1


def test_resolve_shape_tags() -> None:
    assert resolve_shape([{"field": "a", "value": 1}]) == ("field_list", {"a": 1})
    assert resolve_shape({"message": "m"}) == ("object", {"message": "m"})
    assert resolve_shape("text") == ("string", {"message": "text"})
    assert resolve_shape(3.5) is None


def test_severity_inference() -> None:
    assert infer_severity("anything", "CRITICAL") == "error"
    assert infer_severity("Upload Error: disk full") == "error"
    assert infer_severity("low battery warning") == "warning"
    assert infer_severity("all good", "unknown-level") == "info"


def test_normalization_is_idempotent() -> None:
    first = normalize_record(CLEAN_LINE)
    assert first is not None

    assert normalize_record(first) is first
    assert normalize_record(first.as_dict()) == first


def test_entry_ids_are_deterministic() -> None:
    a = normalize_record(CLEAN_LINE)
    b = normalize_record(CLEAN_LINE)

    assert a is not None
    assert b is not None
    assert a.id == b.id
    assert a.id.startswith("log-")


def test_parse_log_timestamp_variants() -> None:
    assert DateTimeUtils.parse_log_timestamp(
        "2025-02-27 10:16:02+02:00"
    ) == datetime(2025, 2, 27, 8, 16, 2, tzinfo=UTC)
    assert DateTimeUtils.parse_log_timestamp("1740651362000") == datetime(
        2025, 2, 27, 10, 16, 2, tzinfo=UTC
    )
    assert DateTimeUtils.parse_log_timestamp("garbage") is None
    assert DateTimeUtils.parse_log_timestamp("") is None
    assert DateTimeUtils.parse_log_timestamp(True) is None  # noqa: FBT003


def test_structured_timestamps_are_unparsable_not_fatal() -> None:
    result = normalize_records(
        [
            {"timestamp": {"$date": "2025-02-27"}, "message": "hello"},
            {"timestamp": ["x"], "message": "hello"},
            CLEAN_LINE,
        ]
    )

    assert len(result.entries) == 3
    assert result.dropped == 0
    assert result.unparsable_timestamps == 2
    assert result.entries[0].timestamp is None
    assert DateTimeUtils.parse_log_timestamp({"$date": 1}) is None
    assert DateTimeUtils.parse_log_timestamp(["x"]) is None
