"""Clinic Sentinel core module."""

from .datetime_utils import DateTimeUtils
from .error_handlers import ErrorHandler
from .runtime import SentinelData
from .site_cache import SiteCache
from .storage import JsonStore

__all__ = [
    "DateTimeUtils",
    "ErrorHandler",
    "JsonStore",
    "SentinelData",
    "SiteCache",
]
