"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .listing_lock import ListingLock
from .local_lock import InProcessListingLock

__all__ = ['ListingLock', 'InProcessListingLock']
