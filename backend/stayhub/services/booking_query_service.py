"""
Read side of bookings: a guest's own reservations and a host's incoming ones.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.models.reservation import Reservation, ReservationStatus
from stayhub.services.listing_service import get_owned_listing_ids
from stayhub.services.reservation_store import ReservationStore


async def list_for_requester(
    db: AsyncSession,
    user_id: int,
    status: Optional[ReservationStatus] = None,
) -> list[Reservation]:
    """Reservations the user made, newest first, with listing summaries loaded."""
    return await ReservationStore(db).find_by_requester(user_id, status=status)


async def list_for_host(
    db: AsyncSession,
    host_id: int,
    status: Optional[ReservationStatus] = None,
) -> list[Reservation]:
    """
    Reservations across every listing the host owns, newest first, with
    listing and requester summaries loaded. A host without listings gets [].
    """
    listing_ids = await get_owned_listing_ids(db, host_id)
    if not listing_ids:
        return []
    return await ReservationStore(db).find_by_listing_ids(listing_ids, status=status)
