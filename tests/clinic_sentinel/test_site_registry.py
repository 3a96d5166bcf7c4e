# ruff: noqa: S101
"""Tests for the persisted site registry."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from clinic_sentinel.core.storage import JsonStore
from clinic_sentinel.sentinel.models import SiteMonitorConfig
from clinic_sentinel.sentinel.site_registry import STORE_KEY, SiteRegistry

if TYPE_CHECKING:
    from pathlib import Path

WEBHOOK = "https://hooks.example.com/services/T000/B000/XXXX"


def _registry(path: Path) -> SiteRegistry:
    return SiteRegistry(JsonStore(path / "sites.json", 1, STORE_KEY))


def _config(
    config_id: str = "c1", site_id: str = "1234", **kwargs: Any
) -> SiteMonitorConfig:
    return SiteMonitorConfig(
        id=config_id, name=f"Site {site_id}", site_id=site_id, **kwargs
    )


@pytest.mark.asyncio
async def test_add_persists_and_reloads(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    next_run = datetime(2025, 2, 27, 11, tzinfo=UTC)

    result = await registry.async_add(_config(next_run_at=next_run))

    assert result.success
    reloaded = _registry(tmp_path)
    sites = await reloaded.async_list()
    assert [s.id for s in sites] == ["c1"]
    assert sites[0].next_run_at == next_run
    document = json.loads((tmp_path / "sites.json").read_text(encoding="utf-8"))
    assert document["version"] == 1
    assert document["data"][0]["siteId"] == "1234"


@pytest.mark.asyncio
async def test_duplicate_config_id_rejected(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    await registry.async_add(_config())

    result = await registry.async_add(_config(site_id="9999"))

    assert not result.success
    assert "already exists" in (result.error or "")


@pytest.mark.asyncio
async def test_notifications_require_target(tmp_path: Path) -> None:
    registry = _registry(tmp_path)

    result = await registry.async_add(_config(notifications_enabled=True))

    assert not result.success
    assert "notification target" in (result.error or "")
    assert await registry.async_list() == []


@pytest.mark.asyncio
async def test_invalid_target_url_rejected(tmp_path: Path) -> None:
    registry = _registry(tmp_path)

    result = await registry.async_add(_config(notification_target="not a url"))

    assert not result.success


@pytest.mark.asyncio
async def test_duplicate_active_site_rejected(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    await registry.async_add(_config("c1"))

    duplicate = await registry.async_add(_config("c2"))
    paused = await registry.async_add(_config("c3", active=False))

    assert not duplicate.success
    assert "already monitored" in (duplicate.error or "")
    assert paused.success


@pytest.mark.asyncio
async def test_update(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    await registry.async_add(_config())

    updated = await registry.async_update(
        "c1",
        {"notifications_enabled": True, "notification_target": WEBHOOK},
    )
    unknown = await registry.async_update("c1", {"color": "blue"})
    missing = await registry.async_update("nope", {"name": "x"})
    invalid = await registry.async_update("c1", {"notification_target": None})

    assert updated.success
    assert updated.config is not None
    assert updated.config.notification_target == WEBHOOK
    assert not unknown.success
    assert not missing.success
    assert not invalid.success
    assert registry.get("c1") == updated.config


@pytest.mark.asyncio
async def test_delete_and_reset(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    await registry.async_add(_config("c1", "1"))
    await registry.async_add(_config("c2", "2"))

    deleted = await registry.async_delete("c1")
    assert deleted.success
    assert [s.id for s in await registry.async_list()] == ["c2"]
    assert not (await registry.async_delete("c1")).success

    assert (await registry.async_reset_all()).success
    assert await registry.async_list() == []


@pytest.mark.asyncio
async def test_malformed_records_are_skipped(tmp_path: Path) -> None:
    good = _config().as_dict()
    (tmp_path / "sites.json").write_text(
        json.dumps(
            {
                "version": 1,
                "key": STORE_KEY,
                "data": [{"id": "broken"}, {**good, "cadence": "monthly"}, good],
            }
        ),
        encoding="utf-8",
    )

    sites = await _registry(tmp_path).async_list()

    assert [s.id for s in sites] == ["c1"]


@pytest.mark.asyncio
async def test_corrupt_file_keeps_last_known_list(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    await registry.async_add(_config())

    (tmp_path / "sites.json").write_text("{not json", encoding="utf-8")

    assert [s.id for s in await registry.async_list()] == ["c1"]
