"""
Per-listing commit lock interface.
Allows swapping between in-process and distributed mutual exclusion.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class ListingLock(ABC):
    """
    Mutual exclusion for reservation commits on a single listing.

    Implementations:
    - InProcessListingLock: asyncio.Lock per listing, single worker process
    - RedisListingLock: Redis lock shared by every worker process

    Locks only reduce contention. The version-guarded UPDATE in the
    reservation store stays authoritative, so a lock that degrades (Redis
    outage) costs retries, never double bookings.
    """

    @abstractmethod
    def hold(self, listing_id: int) -> AsyncContextManager[None]:
        """
        Async context manager held around one reservation commit.

        Args:
            listing_id: Listing whose commits must not interleave

        Commits for different listing ids never wait on each other.
        """
        pass
