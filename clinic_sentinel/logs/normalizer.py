"""Normalize heterogeneous raw log records into canonical entries."""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.datetime_utils import DateTimeUtils
from .schema import LogEntry, RawShape, Severity

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

LOGGER = logging.getLogger(__name__)

_TIMESTAMP_KEYS = ("timestamp", "@timestamp")
_MESSAGE_KEYS = ("message", "@message")
_STREAM_KEYS = ("logStream", "@logStream", "source_stream")
_SEVERITY_KEYS = ("severity", "level")

_EXPLICIT_SEVERITY: dict[str, Severity] = {
    "error": "error",
    "err": "error",
    "critical": "error",
    "fatal": "error",
    "warn": "warning",
    "warning": "warning",
    "info": "info",
    "debug": "info",
    "trace": "info",
}

# Leading timestamp of a plain text line: ISO-8601 (either separator) or epoch ms.
_LEADING_TIMESTAMP = re.compile(
    r"""
    ^(?P<ts>
        \d{4}-\d{2}-\d{2}[T\ ]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?
        |\d{13}
    )\s+(?P<rest>.*)$
    """,
    re.VERBOSE | re.DOTALL,
)


@dataclass
class NormalizeResult:
    """Outcome of normalizing a batch of raw records."""

    entries: list[LogEntry] = field(default_factory=list)
    dropped: int = 0
    unparsable_timestamps: int = 0


def resolve_shape(record: Any) -> tuple[RawShape, Mapping[str, Any]] | None:
    """
    Resolve a raw record to its shape tag and a flat field mapping.

    Returns None when the record matches no known shape.
    """
    if isinstance(record, list):
        fields: dict[str, Any] = {}
        for item in record:
            if not isinstance(item, dict) or "field" not in item:
                return None
            fields[str(item["field"])] = item.get("value")
        return "field_list", fields

    if isinstance(record, dict):
        return "object", record

    if isinstance(record, str):
        text = record.strip()
        if text.startswith("{"):
            try:
                decoded = json.loads(text)
            except ValueError:
                decoded = None
            if isinstance(decoded, dict):
                return "object", decoded
        return "string", _split_plain_line(text)

    return None


def _split_plain_line(text: str) -> dict[str, Any]:
    match = _LEADING_TIMESTAMP.match(text)
    if match is None:
        return {"message": text}
    return {"timestamp": match.group("ts"), "message": match.group("rest")}


def _first(fields: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = fields.get(key)
        if value not in (None, ""):
            return value
    return None


def infer_severity(message: str, explicit: Any = None) -> Severity:
    """Return the explicit severity when recognised, else classify the message."""
    if isinstance(explicit, str):
        mapped = _EXPLICIT_SEVERITY.get(explicit.strip().lower())
        if mapped is not None:
            return mapped
    lowered = message.lower()
    if "error" in lowered:
        return "error"
    if "warn" in lowered:
        return "warning"
    return "info"


def _entry_id(raw_timestamp: str, message: str, stream: str | None) -> str:
    payload = json.dumps([raw_timestamp, message, stream])
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"log-{digest[:16]}"


def normalize_record(record: Any) -> LogEntry | None:
    """
    Convert one raw record into a LogEntry.

    Returns None when the record cannot be coerced into any known shape or
    carries no message. Never raises for malformed input.
    """
    if isinstance(record, LogEntry):
        return record

    resolved = resolve_shape(record)
    if resolved is None:
        return None
    _shape, fields = resolved

    message = _first(fields, _MESSAGE_KEYS)
    if message is None:
        return None
    message = str(message)

    raw_ts = _first(fields, _TIMESTAMP_KEYS)
    raw_timestamp = "" if raw_ts is None else str(raw_ts)
    timestamp = DateTimeUtils.parse_log_timestamp(raw_ts)

    stream = _first(fields, _STREAM_KEYS)
    source_stream = None if stream is None else str(stream)

    severity = infer_severity(message, _first(fields, _SEVERITY_KEYS))

    entry_id = fields.get("id")
    if not isinstance(entry_id, str) or not entry_id:
        entry_id = _entry_id(raw_timestamp, message, source_stream)

    return LogEntry(
        id=entry_id,
        timestamp=timestamp,
        raw_timestamp=raw_timestamp,
        message=message,
        severity=severity,
        source_stream=source_stream,
    )


def normalize_records(records: Iterable[Any]) -> NormalizeResult:
    """Normalize a batch, counting dropped records and unparsable timestamps."""
    result = NormalizeResult()
    for record in records:
        entry = normalize_record(record)
        if entry is None:
            result.dropped += 1
            continue
        if not entry.has_valid_timestamp:
            result.unparsable_timestamps += 1
        result.entries.append(entry)

    if result.dropped or result.unparsable_timestamps:
        LOGGER.warning(
            "Normalized %s log record(s): dropped %s malformed, %s with unparsable "
            "timestamps.",
            len(result.entries),
            result.dropped,
            result.unparsable_timestamps,
        )
    else:
        LOGGER.debug("Normalized %s log record(s).", len(result.entries))
    return result
