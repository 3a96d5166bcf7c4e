"""HTTP client for the log-fetch service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import async_timeout
import httpx
import voluptuous as vol

from ..const import (
    RECOMMENDED_LOG_API_VERSION,
    RECOMMENDED_LOG_FETCH_LIMIT,
    RECOMMENDED_LOG_FETCH_TIMEOUT_SECONDS,
)
from ..core.datetime_utils import DateTimeUtils
from ..exceptions import LogFetchError
from .schema import RawLogRecord, validate_fetch_response

if TYPE_CHECKING:
    from datetime import datetime

LOGGER = logging.getLogger(__name__)


class LogFetchClient:
    """Fetch raw log records for a time range and a set of sites."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        version: str = RECOMMENDED_LOG_API_VERSION,
        limit: int | None = RECOMMENDED_LOG_FETCH_LIMIT,
        timeout: float = RECOMMENDED_LOG_FETCH_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize the fetch client.

        Args:
            client: Shared httpx client
            url: Endpoint accepting the log query as a JSON POST
            version: Device software version the service filters on
            limit: Optional maximum number of records per query
            timeout: Hard bound on a single fetch, in seconds

        """
        self._client = client
        self._url = url
        self._version = version
        self._limit = limit
        self._timeout = timeout

    def build_request(
        self, start: datetime, end: datetime, site_ids: list[str]
    ) -> dict[str, Any]:
        """Return the JSON body for a fetch request."""
        body: dict[str, Any] = {
            "startTime": DateTimeUtils.to_epoch_ms(start),
            "endTime": DateTimeUtils.to_epoch_ms(end),
            "siteIds": list(site_ids),
            "version": self._version,
        }
        if self._limit is not None:
            body["limit"] = self._limit
        return body

    async def async_fetch(
        self, start: datetime, end: datetime, site_ids: list[str]
    ) -> list[RawLogRecord]:
        """
        Fetch raw records between start and end for the given sites.

        Raises:
            LogFetchError: On timeout, transport failure, HTTP error status or a
                response that does not match the expected schema.

        """
        body = self.build_request(start, end, site_ids)
        try:
            async with async_timeout.timeout(self._timeout):
                response = await self._client.post(self._url, json=body)
                response.raise_for_status()
                payload = response.json()
        except TimeoutError as err:
            msg = f"Log fetch timed out after {self._timeout}s for {site_ids}"
            LOGGER.warning(msg)
            raise LogFetchError(msg) from err
        except httpx.HTTPStatusError as err:
            msg = (
                f"Log fetch failed: {err.response.status_code} - "
                f"{err.response.text[:200]}"
            )
            LOGGER.warning(msg)
            raise LogFetchError(msg) from err
        except httpx.RequestError as err:
            msg = f"Network error fetching logs: {err}"
            LOGGER.warning(msg)
            raise LogFetchError(msg) from err
        except ValueError as err:
            msg = f"Log fetch returned invalid JSON: {err}"
            LOGGER.warning(msg)
            raise LogFetchError(msg) from err

        if not isinstance(payload, dict):
            msg = "Log fetch returned a non-object payload"
            raise LogFetchError(msg)
        try:
            validated = validate_fetch_response(payload)
        except vol.Invalid as err:
            msg = f"Log fetch returned an unexpected payload: {err}"
            LOGGER.warning(msg)
            raise LogFetchError(msg) from err

        LOGGER.debug(
            "Fetched %s raw log record(s) for %s.", len(validated["results"]), site_ids
        )
        return validated["results"]
