"""Per-entity lock registry."""

import asyncio

import pytest

from erp.core.exceptions import BusyError
from erp.db.locks import LockRegistry


async def _wait_until_locked(registry: LockRegistry, key: str) -> None:
    for _ in range(100):
        if registry.is_locked(key):
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"{key} was never locked")


@pytest.mark.asyncio
async def test_cancelled_acquire_releases_taken_keys() -> None:
    registry = LockRegistry()
    held = await registry.acquire(["student:S2"], timeout=1)

    waiter = asyncio.create_task(registry.acquire(["room:R1", "student:S2"], timeout=30))
    await _wait_until_locked(registry, "room:R1")
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert not registry.is_locked("room:R1")
    registry.release(held)
    assert await registry.acquire(["room:R1", "student:S2"], timeout=0.1) == ["room:R1", "student:S2"]


@pytest.mark.asyncio
async def test_timeout_releases_taken_keys() -> None:
    registry = LockRegistry()
    held = await registry.acquire(["student:S2"], timeout=1)

    with pytest.raises(BusyError):
        await registry.acquire(["room:R1", "student:S2"], timeout=0.05)

    assert not registry.is_locked("room:R1")
    assert registry.is_locked("student:S2")
    registry.release(held)
    assert not registry.is_locked("student:S2")
