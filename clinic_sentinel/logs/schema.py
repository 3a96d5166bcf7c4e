"""Log entry schema shared by the normalizer and the fetch client."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, TypeAlias, TypedDict, cast

import voluptuous as vol

from ..core.datetime_utils import DateTimeUtils

Severity = Literal["info", "warning", "error"]
RawShape = Literal["field_list", "object", "string"]

# Raw records come in one of three shapes; see normalizer.resolve_shape.
RawLogRecord: TypeAlias = list[dict[str, Any]] | dict[str, Any] | str


class FetchResponse(TypedDict):
    """Payload returned by the log-fetch service."""

    results: list[RawLogRecord]


FETCH_RESPONSE_SCHEMA = vol.Schema(
    {
        # Items are checked one by one by the normalizer, which drops bad ones.
        vol.Required("results"): list,
    },
    extra=vol.ALLOW_EXTRA,
)


def validate_fetch_response(payload: dict[str, Any]) -> FetchResponse:
    """Validate and return a fetch response using the canonical schema."""
    validated = FETCH_RESPONSE_SCHEMA(payload)
    return cast(FetchResponse, validated)


@dataclass(frozen=True)
class LogEntry:
    """Canonical, immutable log entry."""

    id: str
    timestamp: datetime | None
    raw_timestamp: str
    message: str
    severity: Severity
    source_stream: str | None = None

    @property
    def has_valid_timestamp(self) -> bool:
        """Return True when the timestamp could be parsed."""
        return self.timestamp is not None

    def as_dict(self) -> dict[str, Any]:
        """Serialize the entry in the object raw shape."""
        return {
            "id": self.id,
            "timestamp": self.raw_timestamp,
            "parsedTimestamp": DateTimeUtils.as_iso(self.timestamp),
            "message": self.message,
            "severity": self.severity,
            "logStream": self.source_stream,
        }
