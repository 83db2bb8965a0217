"""
Listing registry: the booking core's source of price and ownership, plus
the host-facing listing CRUD and guest-facing search.

Writes commit before returning, so a cache invalidation that follows them
never races an uncommitted change.
"""

from typing import Optional

from sqlalchemy import select, func, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stayhub.core.exceptions import ListingAccessDenied, ListingNotFound
from stayhub.core.logging import get_logger
from stayhub.models.listing import Listing
from stayhub.models.reservation import Reservation, ReservationStatus
from stayhub.schemas.listing import ListingCreate, ListingUpdate, ListingSearchParams

logger = get_logger(__name__)


async def create_listing(db: AsyncSession, listing_data: ListingCreate, host_id: int) -> Listing:
    listing = Listing(**listing_data.model_dump(), host_id=host_id)
    db.add(listing)
    await db.commit()
    await db.refresh(listing)

    logger.info("listing_created", listing_id=listing.id, host_id=host_id, price=str(listing.price))
    return listing


async def get_bookable_listing(db: AsyncSession, listing_id: int) -> Listing:
    """Active listing by id, or ListingNotFound for unknown and deactivated ones."""
    result = await db.execute(
        select(Listing).where(Listing.id == listing_id, Listing.is_active.is_(True))
    )
    listing = result.scalar_one_or_none()
    if listing is None:
        raise ListingNotFound(listing_id=listing_id)
    return listing


async def get_owned_listing_for_update(db: AsyncSession, listing_id: int, actor_id: int) -> Listing:
    listing = await get_bookable_listing(db, listing_id)
    if listing.host_id != actor_id:
        logger.warning("listing_access_denied", listing_id=listing_id, actor_id=actor_id)
        raise ListingAccessDenied(listing_id=listing_id)
    return listing


async def get_listing_detail(db: AsyncSession, listing_id: int) -> tuple[Listing, list[Reservation]]:
    """
    Listing with its host loaded, plus active reservations for calendars.
    Only dates are meant to leave the API; guest identities stay private.
    """
    result = await db.execute(
        select(Listing)
        .options(selectinload(Listing.host))
        .where(Listing.id == listing_id, Listing.is_active.is_(True))
    )
    listing = result.scalar_one_or_none()
    if listing is None:
        raise ListingNotFound(listing_id=listing_id)

    booked = await db.execute(
        select(Reservation)
        .where(
            Reservation.listing_id == listing_id,
            Reservation.status != ReservationStatus.CANCELLED.value,
        )
        .order_by(Reservation.start_date.asc())
    )
    return listing, list(booked.scalars().all())


async def update_listing(
    db: AsyncSession,
    listing_id: int,
    listing_data: ListingUpdate,
    actor_id: int,
) -> Listing:
    """Partial update by the owning host. Existing reservations keep their stored prices."""
    listing = await get_owned_listing_for_update(db, listing_id, actor_id)

    changes = listing_data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(listing, field, value)
    await db.commit()
    await db.refresh(listing)

    logger.info("listing_updated", listing_id=listing_id, fields=sorted(changes))
    return listing


async def deactivate_listing(db: AsyncSession, listing_id: int, actor_id: int) -> Listing:
    """Soft delete: the listing disappears from search and booking, history stays."""
    listing = await get_owned_listing_for_update(db, listing_id, actor_id)
    listing.is_active = False
    await db.commit()
    await db.refresh(listing)

    logger.info("listing_deactivated", listing_id=listing_id, host_id=actor_id)
    return listing


async def list_host_listings(db: AsyncSession, host_id: int) -> list[Listing]:
    result = await db.execute(
        select(Listing)
        .where(Listing.host_id == host_id, Listing.is_active.is_(True))
        .order_by(Listing.created_at.desc(), Listing.id.desc())
    )
    return list(result.scalars().all())


async def get_owned_listing_ids(db: AsyncSession, host_id: int) -> list[int]:
    """Ids of every listing the host has ever published, deactivated ones included."""
    result = await db.execute(select(Listing.id).where(Listing.host_id == host_id))
    return list(result.scalars().all())


async def search_listings(
    db: AsyncSession,
    filters: ListingSearchParams,
    page: int = 1,
    page_size: int = 12,
) -> tuple[list[Listing], int]:
    """
    Search active listings, newest first.

    A date range keeps only listings with no active reservation overlapping
    [start_date, end_date), using the same half-open rule as booking.
    """
    query = select(Listing).where(Listing.is_active.is_(True))

    if filters.location:
        pattern = f"%{filters.location.strip()}%"
        query = query.where(
            or_(
                Listing.city.ilike(pattern),
                Listing.country.ilike(pattern),
                Listing.address.ilike(pattern),
            )
        )
    if filters.min_price is not None:
        query = query.where(Listing.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.where(Listing.price <= filters.max_price)
    if filters.guests is not None:
        query = query.where(Listing.max_guests >= filters.guests)
    if filters.start_date and filters.end_date:
        booked = exists().where(
            Reservation.listing_id == Listing.id,
            Reservation.status != ReservationStatus.CANCELLED.value,
            Reservation.start_date < filters.end_date,
            Reservation.end_date > filters.start_date,
        )
        query = query.where(~booked)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    listings_query = (
        query
        .order_by(Listing.created_at.desc(), Listing.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(listings_query)
    return list(result.scalars().all()), total


def search_cache_params(filters: ListingSearchParams, page: int, page_size: int) -> dict:
    params: dict[str, Optional[object]] = filters.model_dump()
    params.update(page=page, page_size=page_size)
    return params
