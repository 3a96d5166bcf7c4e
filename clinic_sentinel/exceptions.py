"""Exceptions raised by Clinic Sentinel."""

from __future__ import annotations


class ClinicSentinelError(Exception):
    """Base error for the monitoring core."""


class ConfigValidationError(ClinicSentinelError):
    """A site or service configuration was rejected at save time."""


class LogFetchError(ClinicSentinelError):
    """The log-fetch service failed, timed out or returned garbage."""


class NotificationDeliveryError(ClinicSentinelError):
    """The notification webhook could not be reached or refused the payload."""


class StorageError(ClinicSentinelError):
    """Persistent storage could not be read or written."""
