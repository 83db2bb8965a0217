"""
In-process listing lock - one asyncio.Lock per listing id.
"""

import asyncio
import time
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from stayhub.core.metrics import listing_lock_wait
from stayhub.services.interfaces.listing_lock import ListingLock


class InProcessListingLock(ListingLock):
    """
    Serializes commits per listing inside one event loop.

    Locks live in a WeakValueDictionary: a lock exists only while some
    coroutine holds or awaits it, so the map never grows with the catalog.

    Use when:
    - A single worker process serves the API
    - Tests and local development
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, listing_id: int) -> asyncio.Lock:
        lock = self._locks.get(listing_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[listing_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, listing_id: int) -> AsyncIterator[None]:
        lock = self._lock_for(listing_id)
        started = time.perf_counter()
        async with lock:
            listing_lock_wait.observe(time.perf_counter() - started)
            yield
