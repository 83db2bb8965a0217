"""
Booking endpoints with conflict-free reservation commits.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.db.session import get_db
from stayhub.models.reservation import ReservationStatus
from stayhub.schemas.reservation import BookingCreate, ReservationResponse, ReservationSummary
from stayhub.services.booking_service import book_stay, cancel_reservation
from stayhub.services.booking_query_service import list_for_requester, list_for_host
from stayhub.services.cache_service import invalidate_listing_cache
from stayhub.core.security import CurrentUser, get_current_user_id, require_host

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve [start_date, end_date) at a listing.

    Overlapping requests for the same listing are serialized; exactly one
    of them succeeds and the rest get 400 `dates_unavailable`.
    """
    reservation = await book_stay(
        db,
        requester_id=user_id,
        listing_id=booking_data.listing_id,
        start_date=booking_data.start_date,
        end_date=booking_data.end_date,
    )
    # Date-filtered searches now exclude this listing
    await invalidate_listing_cache()
    return reservation


@router.get("/mine", response_model=list[ReservationSummary])
async def list_my_bookings(
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Reservations made by the authenticated user, newest first."""
    return await list_for_requester(db, user_id, status=status_filter)


@router.get("/hosted", response_model=list[ReservationSummary])
async def list_hosted_bookings(
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    host: CurrentUser = Depends(require_host),
    db: AsyncSession = Depends(get_db),
):
    """Reservations on the authenticated host's listings, newest first."""
    return await list_for_host(db, host.id, status=status_filter)


@router.patch("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_booking(
    reservation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a reservation as its guest or as the listing's host."""
    reservation = await cancel_reservation(db, reservation_id, user_id)
    await invalidate_listing_cache()
    return reservation
