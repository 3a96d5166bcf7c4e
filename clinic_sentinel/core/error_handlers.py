"""Centralized error handling utilities."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import voluptuous as vol

from ..exceptions import ClinicSentinelError

if TYPE_CHECKING:
    from collections.abc import Coroutine

LOGGER = logging.getLogger(__name__)


class ErrorHandler:
    """Centralized error handling for per-site async operations."""

    @staticmethod
    def classify(err: BaseException) -> str:
        """Return a short error category for logs and results."""
        if isinstance(err, TimeoutError):
            return "timeout"
        if isinstance(err, ClinicSentinelError):
            return type(err).__name__
        if isinstance(err, vol.Invalid | ValueError | TypeError | KeyError):
            return "validation"
        return "execution"

    @staticmethod
    async def execute_with_standard_handling(
        coro: Coroutine[Any, Any, Any],
        operation_name: str,
        timeout: float | None = None,
    ) -> tuple[Any | None, Exception | None]:
        """
        Execute async operation with standard error handling.

        Cancellation is never caught.

        Args:
            coro: The coroutine to execute
            operation_name: Name for logging purposes
            timeout: Optional timeout in seconds

        Returns:
            (result, error) - one will be None

        """
        try:
            if timeout:
                result = await asyncio.wait_for(coro, timeout=timeout)
            else:
                result = await coro
            return result, None

        except TimeoutError as err:
            LOGGER.warning("%s timed out after %.1fs", operation_name, timeout)
            return None, err

        except (
            ClinicSentinelError,
            vol.Invalid,
            ValueError,
            TypeError,
            KeyError,
        ) as err:
            LOGGER.warning(
                "%s failed (%s): %s", operation_name, ErrorHandler.classify(err), err
            )
            return None, err

        except Exception as err:
            LOGGER.exception("Unexpected error in %s", operation_name)
            return None, err
