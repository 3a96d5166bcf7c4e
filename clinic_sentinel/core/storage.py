"""Versioned JSON file storage."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StorageError

LOGGER = logging.getLogger(__name__)


class JsonStore:
    """Load and atomically save a versioned JSON document."""

    def __init__(self, path: Path | str, version: int, key: str) -> None:
        """
        Initialize the store.

        Args:
            path: File holding the document
            version: Schema version written alongside the data
            key: Name recorded in the file for diagnostics

        """
        self._path = Path(path)
        self._version = version
        self._key = key

    @property
    def path(self) -> Path:
        """Return the backing file path."""
        return self._path

    async def async_load(self) -> Any | None:
        """
        Load stored data.

        Returns:
            The stored data, or None when the file does not exist

        Raises:
            StorageError: If the file cannot be read or decoded

        """
        try:
            async with aiofiles.open(self._path, encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except OSError as err:
            msg = f"Could not read {self._path}: {err}"
            raise StorageError(msg) from err

        try:
            document = json.loads(raw)
        except ValueError as err:
            msg = f"Invalid JSON in {self._path}: {err}"
            raise StorageError(msg) from err

        if not isinstance(document, dict) or "data" not in document:
            msg = f"Unexpected document layout in {self._path}"
            raise StorageError(msg)
        if document.get("version") != self._version:
            LOGGER.warning(
                "Store %s has version %s, expected %s.",
                self._key,
                document.get("version"),
                self._version,
            )
        return document["data"]

    async def async_save(self, data: Any) -> None:
        """
        Persist data, replacing the file atomically.

        Raises:
            StorageError: If the file cannot be written

        """
        document = {"version": self._version, "key": self._key, "data": data}
        payload = json.dumps(document, indent=2, sort_keys=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, self._path)
        except OSError as err:
            msg = f"Could not write {self._path}: {err}"
            raise StorageError(msg) from err
        LOGGER.debug("Saved store %s to %s.", self._key, os.fspath(self._path))
