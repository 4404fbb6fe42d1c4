"""
Per-entity locks for workflows. Keys look like "student:STD-..." or "room:R-101".
Locks are acquired in sorted order with a timeout, so two workflows never wait on each other forever.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from erp.core.exceptions import BusyError

logger = logging.getLogger(__name__)


class LockRegistry:
    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        remaining = self._users.get(key, 1) - 1
        if remaining <= 0:
            self._users.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._users[key] = remaining

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())

    async def acquire(self, keys: Iterable[str], timeout: float) -> List[str]:
        """
        Acquire every key (deduplicated, sorted). On timeout, release what was taken and raise BusyError.
        Cancellation also releases what was taken before propagating.
        Returns the keys now held, in acquisition order.
        """
        held: List[str] = []
        for key in sorted(set(keys)):
            lock = self._checkout(key)
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError:
                self._checkin(key)
                self.release(held)
                logger.warning("Lock timeout on %s after %.1fs", key, timeout)
                raise BusyError(f"{key} is busy, try again")
            except BaseException:
                self._checkin(key)
                self.release(held)
                raise
            held.append(key)
        return held

    def release(self, keys: Optional[Iterable[str]]) -> None:
        for key in reversed(list(keys or [])):
            lock = self._locks.get(key)
            if lock is not None and lock.locked():
                lock.release()
            self._checkin(key)


entity_locks = LockRegistry()
