import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class SyncInProgressError(RuntimeError):
    """Raised when a vendor already has a reconciliation run in flight."""


class VendorLocks:
    """At-most-one-in-flight reconciliation per vendor id within this process."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, vendor_id: str) -> asyncio.Lock:
        lock = self._locks.get(vendor_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[vendor_id] = lock
        return lock

    def is_locked(self, vendor_id: str) -> bool:
        lock = self._locks.get(vendor_id)
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, vendor_id: str) -> AsyncIterator[None]:
        lock = self._lock_for(vendor_id)
        # no await between the check and acquire, so this cannot race on one loop
        if lock.locked():
            raise SyncInProgressError(f"Sync already running for vendor {vendor_id}")
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
