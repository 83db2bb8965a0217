"""
Distributed listing lock backed by Redis.
Implements ListingLock so several API workers serialize commits per listing.

Circuit Breaker Pattern:
  On Redis failure the lock "fails open" to the in-process lock.
  The database version guard remains authoritative, so a Redis outage
  degrades to optimistic retries across processes instead of blocking
  every booking.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from redis.exceptions import LockError, RedisError

from stayhub.core.config import get_settings
from stayhub.core.exceptions import StorageUnavailable
from stayhub.core.logging import get_logger
from stayhub.core.metrics import listing_lock_wait, redis_connection_errors
from stayhub.infrastructure.redis_client import get_redis
from stayhub.services.interfaces.listing_lock import ListingLock
from stayhub.services.interfaces.local_lock import InProcessListingLock

logger = get_logger(__name__)
settings = get_settings()


class RedisListingLock(ListingLock):
    """
    Redis lock per listing: key "listing-lock:{listing_id}".

    The lock expires after LISTING_LOCK_TIMEOUT seconds so a crashed worker
    cannot wedge a listing. Waiting longer than LISTING_LOCK_BLOCKING_TIMEOUT
    surfaces StorageUnavailable rather than queueing indefinitely.

    Use when:
    - More than one API worker or host serves bookings
    """

    def __init__(self, fallback: Optional[ListingLock] = None):
        self.fallback = fallback or InProcessListingLock()

    @staticmethod
    def key_for(listing_id: int) -> str:
        return f"listing-lock:{listing_id}"

    @asynccontextmanager
    async def hold(self, listing_id: int) -> AsyncIterator[None]:
        client = await get_redis()
        if client is None:
            async with self.fallback.hold(listing_id):
                yield
            return

        lock = client.lock(
            self.key_for(listing_id),
            timeout=settings.LISTING_LOCK_TIMEOUT,
            blocking_timeout=settings.LISTING_LOCK_BLOCKING_TIMEOUT,
        )
        started = time.perf_counter()
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            redis_connection_errors.inc()
            logger.warning("listing_lock_fail_open", listing_id=listing_id, error=str(e))
            async with self.fallback.hold(listing_id):
                yield
            return

        if not acquired:
            logger.warning("listing_lock_timeout", listing_id=listing_id)
            raise StorageUnavailable("Listing is busy, please retry", listing_id=listing_id)

        listing_lock_wait.observe(time.perf_counter() - started)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # TTL elapsed mid-commit; the version guard already protected the write
                logger.warning("listing_lock_expired", listing_id=listing_id)
            except RedisError as e:
                redis_connection_errors.inc()
                logger.warning("listing_lock_release_failed", listing_id=listing_id, error=str(e))
