"""
Unit of Work for multi-record workflows.

Holds per-entity locks for its lifetime and commits the session once on success: the mutations and
their audit rows become visible together or not at all.

Usage:
    >>> async with UnitOfWork(db, f"student:{student_id}", f"room:{room_id}") as uow:
    ...     row = await uow.store.find_by_key("hostel_rooms", "room_id", room_id, for_update=True)
    ...     await uow.store.update_at("hostel_rooms", position, updated)
    ...     # auto-commits on exit, rolls back on any exception
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.config import settings
from erp.core.exceptions import ServiceError
from erp.db.locks import LockRegistry, entity_locks
from erp.db.table_store import TableStore

logger = logging.getLogger(__name__)


class TransactionError(ServiceError):
    """Raised when the database refuses to commit a unit of work."""


class UnitOfWork:
    def __init__(
        self,
        db: AsyncSession,
        *lock_keys: Optional[str],
        timeout: Optional[float] = None,
        registry: Optional[LockRegistry] = None,
    ) -> None:
        self.db = db
        self.store = TableStore(db)
        self._initial_keys = [k for k in lock_keys if k]
        self._timeout = settings.lock_timeout_seconds if timeout is None else timeout
        self._registry = registry or entity_locks
        self._held: List[str] = []
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        if self.db.in_transaction():
            # Reads issued before the workflow must not pin an older snapshot.
            await self.db.commit()
        await self.lock(*self._initial_keys)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        try:
            if exc_type is None:
                try:
                    await self.db.commit()
                    self._committed = True
                except SQLAlchemyError as exc:
                    logger.error("Unit of work commit failed: %s", exc)
                    await self.db.rollback()
                    raise TransactionError("Failed to commit transaction") from exc
            else:
                await self.db.rollback()
                logger.debug("Unit of work rolled back due to %s", exc_type.__name__)
        finally:
            self._registry.release(self._held)
            self._held = []
        return False

    async def lock(self, *keys: str) -> None:
        """Take additional entity locks mid-workflow. Keys already held are skipped."""
        wanted = [k for k in keys if k and k not in self._held]
        if not wanted:
            return
        self._held.extend(await self._registry.acquire(wanted, self._timeout))

    @property
    def held_keys(self) -> List[str]:
        return list(self._held)

    @property
    def is_committed(self) -> bool:
        return self._committed
