"""
Change-list guard: at most one open change list per DNS zone.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from ..client.base_client import ControlPlaneClient
from ..core.exceptions import ConflictError, NotFoundError
from ..core.models import ChangeList
from .zone_lock_manager import ZoneLockManager


class ChangeListGuard:
    """
    Resets a zone's change list before every record edit.

    Any existing draft is treated as disposable: it is deleted, never merged.
    Operations on the same zone are serialized with a per-zone asyncio.Lock;
    different zones proceed independently. Pass a ZoneLockManager to extend
    the exclusion across processes.
    """

    def __init__(
        self,
        client: ControlPlaneClient,
        lock_manager: Optional[ZoneLockManager] = None
    ):
        self.client = client
        self.lock_manager = lock_manager
        self._zone_locks: Dict[str, asyncio.Lock] = {}
        self._zone_users: Dict[str, int] = {}
        self.logger = logging.getLogger(f"{__name__}.ChangeListGuard")

    def _lock_for(self, zone: str) -> asyncio.Lock:
        lock = self._zone_locks.get(zone)
        if lock is None:
            lock = self._zone_locks[zone] = asyncio.Lock()
        return lock

    def is_busy(self, zone: str) -> bool:
        """True while this process or, with Redis locks, any process is editing the zone"""
        lock = self._zone_locks.get(zone)
        if lock is not None and lock.locked():
            return True
        return self.lock_manager is not None and self.lock_manager.is_zone_locked(zone)

    async def discard(self, zone: str) -> bool:
        """
        Delete the zone's change list if there is one.

        Returns:
            True if a change list was deleted, False if none existed
        """
        existing = await self.client.get_change_list(zone)
        if existing is None:
            return False

        self.logger.warning(
            f"Discarding existing change list for {zone} "
            f"({len(existing.record_sets)} pending record set(s), "
            f"last modified by {existing.last_modified_by or 'unknown'})"
        )
        try:
            await self.client.delete_change_list(zone)
        except NotFoundError:
            self.logger.debug(f"Change list for {zone} already gone")
            return False
        return True

    async def _reset_unlocked(self, zone: str) -> ChangeList:
        await self.discard(zone)
        change_list = await self.client.create_change_list(zone)
        self.logger.info(f"Opened fresh change list for {zone}")
        return change_list

    async def reset(self, zone: str) -> ChangeList:
        """Discard any open change list for the zone and open an empty one"""
        async with self._hold(zone):
            return await self._reset_unlocked(zone)

    @asynccontextmanager
    async def edit(self, zone: str) -> AsyncIterator[ChangeList]:
        """
        Hold the zone for a reset followed by the caller's edits.

        Usage:
            async with guard.edit("example.com") as change_list:
                await client.add_record_change("example.com", change)
        """
        async with self._hold(zone):
            yield await self._reset_unlocked(zone)

    @asynccontextmanager
    async def _hold(self, zone: str) -> AsyncIterator[None]:
        lock = self._lock_for(zone)
        self._zone_users[zone] = self._zone_users.get(zone, 0) + 1
        try:
            async with lock:
                if self.lock_manager is None:
                    yield
                    return

                async with self.lock_manager.acquire_zone_lock(zone) as acquired:
                    if not acquired:
                        raise ConflictError(f"Zone {zone} is locked by another process")
                    yield
        finally:
            self._release(zone)

    def _release(self, zone: str) -> None:
        # Forget the zone once no holder or waiter references its lock
        remaining = self._zone_users[zone] - 1
        if remaining:
            self._zone_users[zone] = remaining
        else:
            del self._zone_users[zone]
            del self._zone_locks[zone]
