"""Datetime utilities for consistent timestamp handling."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from ..exceptions import ClinicSentinelError

_SPACE_SEPARATED = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}")
_HAS_OFFSET = re.compile(r"(Z|[+-]\d{2}:?\d{2})$")


class DateTimeUtils:
    """Centralized datetime operations for consistency."""

    @staticmethod
    def utcnow() -> datetime:
        """Return the current instant as an aware UTC datetime."""
        return datetime.now(UTC)

    @staticmethod
    def as_utc(dt: datetime) -> datetime:
        """
        Convert a datetime to UTC.

        Naive values are taken to already be UTC.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)

    @staticmethod
    def as_iso(dt: datetime | None) -> str | None:
        """Serialize a datetime as a UTC ISO-8601 string."""
        if dt is None:
            return None
        return DateTimeUtils.as_utc(dt).isoformat()

    @staticmethod
    def parse_datetime(value: str | None) -> datetime | None:
        """Parse an ISO-8601 string into an aware UTC datetime, or None."""
        if not value:
            return None
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return DateTimeUtils.as_utc(parsed)

    @staticmethod
    def parse_or_default(
        datetime_str: str | None,
        default: datetime,
        error_message: str | None = None,
    ) -> datetime:
        """
        Parse datetime string or return default.

        Args:
            datetime_str: String to parse (ISO format or None)
            default: Default datetime if parsing fails
            error_message: Optional error message to raise on failure

        Returns:
            Parsed datetime in UTC

        Raises:
            ClinicSentinelError: If error_message provided and parsing fails

        """
        if datetime_str is None:
            return default

        parsed = DateTimeUtils.parse_datetime(datetime_str)
        if parsed is None:
            if error_message:
                raise ClinicSentinelError(error_message)
            return default

        return parsed

    @staticmethod
    def parse_log_timestamp(raw: object) -> datetime | None:
        """
        Parse a raw log timestamp.

        Args:
            raw: Timestamp as found in a log record. CloudWatch style
                "2025-02-27 10:16:02.123", ISO-8601, or epoch milliseconds.
                Any other type is unparsable.

        Returns:
            Aware UTC datetime, or None when every interpretation fails.
            Callers must treat None as unparsable, never as "now".

        """
        if raw is None or isinstance(raw, bool):
            return None
        if isinstance(raw, int | float):
            return DateTimeUtils.from_epoch_ms(raw)
        if not isinstance(raw, str):
            return None

        text = raw.strip()
        if not text:
            return None

        # Compact ISO dates are 8 digits; anything longer is an epoch value.
        if text.isdigit() and len(text) > 8:  # noqa: PLR2004
            return DateTimeUtils.from_epoch_ms(int(text))

        candidate = text
        if _SPACE_SEPARATED.match(candidate):
            candidate = candidate.replace(" ", "T", 1)
            if not _HAS_OFFSET.search(candidate):
                candidate = f"{candidate}Z"

        parsed = DateTimeUtils.parse_datetime(candidate)
        if parsed is not None:
            return parsed

        try:
            return DateTimeUtils.from_epoch_ms(int(text))
        except ValueError:
            return None

    @staticmethod
    def from_epoch_ms(value: float) -> datetime | None:
        """
        Convert epoch milliseconds to an aware UTC datetime.

        Args:
            value: Milliseconds since the Unix epoch

        Returns:
            Datetime in UTC, or None when out of range

        """
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    @staticmethod
    def to_epoch_ms(dt: datetime) -> int:
        """
        Convert datetime to UTC epoch milliseconds.

        Args:
            dt: Datetime to convert

        Returns:
            Unix timestamp (milliseconds since epoch)

        """
        return int(DateTimeUtils.as_utc(dt).timestamp() * 1000)
