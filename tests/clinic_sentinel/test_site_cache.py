# ruff: noqa: S101
"""Tests for the per-site treatment cache."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from clinic_sentinel.core.site_cache import SiteCache
from clinic_sentinel.sentinel.models import TreatmentEvent


def _event(site_id: str = "1234", suffix: str = "a") -> TreatmentEvent:
    return TreatmentEvent(
        id=f"treatment-{site_id}-{suffix}",
        patient_key="HeAR-000000",
        patient_display_name="He**** AR**",
        kind="panoramic",
        succeeded=True,
        timestamp=datetime(2025, 2, 27, 10, tzinfo=UTC),
        site_id=site_id,
        source_message=f"Treatment created successfully for He**** AR** {suffix}",
    )


@pytest.mark.asyncio
async def test_put_get_returns_copies() -> None:
    cache = SiteCache()
    assert await cache.get("1234") is None

    await cache.put("1234", [_event()])
    events = await cache.get("1234")
    assert events is not None
    events.clear()

    assert await cache.get("1234") == [_event()]
    assert cache.cached_sites() == ["1234"]


@pytest.mark.asyncio
async def test_invalidate_and_invalidate_all() -> None:
    cache = SiteCache()
    await cache.put("1", [_event("1")])
    await cache.put("2", [_event("2")])

    await cache.invalidate("1")
    assert await cache.get("1") is None
    assert await cache.get("2") is not None

    await cache.invalidate_all()
    assert cache.cached_sites() == []


@pytest.mark.asyncio
async def test_failed_loader_leaves_entry_absent() -> None:
    cache = SiteCache()
    await cache.put("1234", [_event()])

    async def _boom() -> list[TreatmentEvent]:
        msg = "fetch failed"
        raise RuntimeError(msg)

    with pytest.raises(RuntimeError):
        await cache.async_replace("1234", _boom)

    assert await cache.get("1234") is None


@pytest.mark.asyncio
async def test_cancelled_loader_leaves_entry_absent() -> None:
    cache = SiteCache()
    await cache.put("1234", [_event()])
    started = asyncio.Event()

    async def _slow() -> list[TreatmentEvent]:
        started.set()
        await asyncio.sleep(10)
        return [_event(suffix="b")]

    task = asyncio.create_task(cache.async_replace("1234", _slow))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await cache.get("1234") is None


@pytest.mark.asyncio
async def test_invalidate_waits_for_in_flight_replace() -> None:
    cache = SiteCache()
    release = asyncio.Event()
    started = asyncio.Event()

    async def _loader() -> list[TreatmentEvent]:
        started.set()
        await release.wait()
        return [_event()]

    replace = asyncio.create_task(cache.async_replace("1234", _loader))
    await started.wait()
    invalidate = asyncio.create_task(cache.invalidate("1234"))
    await asyncio.sleep(0)
    assert not invalidate.done()

    release.set()
    assert await replace == [_event()]
    await invalidate

    assert await cache.get("1234") is None
