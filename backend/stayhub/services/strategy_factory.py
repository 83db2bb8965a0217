"""
Listing lock factory.
Configures which commit lock strategy the reservation store uses.
"""

from typing import Optional

from stayhub.core.config import get_settings
from stayhub.services.interfaces.listing_lock import ListingLock
from stayhub.services.interfaces.local_lock import InProcessListingLock
from stayhub.services.redis_listing_lock import RedisListingLock


def get_listing_lock_strategy() -> ListingLock:
    """
    Build the configured lock strategy.

    - local: InProcessListingLock (single worker, tests)
    - redis: RedisListingLock (multiple workers)

    Selected via the LISTING_LOCK_BACKEND env var.
    """
    backend = get_settings().LISTING_LOCK_BACKEND.lower()

    if backend == "redis":
        return RedisListingLock()
    return InProcessListingLock()


# Singleton instance
_lock: Optional[ListingLock] = None


def get_listing_lock() -> ListingLock:
    """Get listing lock singleton."""
    global _lock
    if _lock is None:
        _lock = get_listing_lock_strategy()
    return _lock
