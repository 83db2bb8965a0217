"""
Booking service: validates a requested stay, prices it and commits it
through the reservation store; cancels reservations.

Validation order (first failure wins, nothing is written before step 6):
  1. end_date > start_date              -> InvalidDateRange
  2. start_date >= today (UTC)          -> PastDate
  3. listing exists and is active       -> ListingNotFound
  4. requester is not the listing host  -> SelfBookingNotAllowed
  5. total_price = nights * nightly price
  6. ReservationStore.try_commit        -> DatesUnavailable on conflict

Reservations are created directly as `confirmed`; there is no payment gate.
`DatesUnavailable` is a business fact, not a transient failure: callers
should ask the guest for other dates rather than retry.
"""

import time
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.core.exceptions import (
    AlreadyCancelled,
    DatesUnavailable,
    DomainError,
    InvalidDateRange,
    InvalidStatusTransition,
    NotAuthorized,
    PastDate,
    ReservationConflict,
    SelfBookingNotAllowed,
)
from stayhub.core.logging import get_logger
from stayhub.core.metrics import booking_latency, record_booking_attempt, record_cancellation
from stayhub.domain.interval import StayInterval, utc_today
from stayhub.models.reservation import Reservation, ReservationStatus
from stayhub.services.interfaces.listing_lock import ListingLock
from stayhub.services.listing_service import get_bookable_listing
from stayhub.services.reservation_store import ReservationStore

logger = get_logger(__name__)


async def book_stay(
    db: AsyncSession,
    requester_id: int,
    listing_id: int,
    start_date: date,
    end_date: date,
    *,
    lock: Optional[ListingLock] = None,
    today: Optional[date] = None,
) -> Reservation:
    """Book [start_date, end_date) at a listing for the requester."""
    started = time.perf_counter()
    interval = StayInterval(start_date, end_date)
    today = today or utc_today()

    try:
        if not interval.is_valid:
            raise InvalidDateRange(start_date=str(start_date), end_date=str(end_date))

        if interval.start < today:
            raise PastDate(start_date=str(start_date), today=str(today))

        listing = await get_bookable_listing(db, listing_id)
        host_id, nightly_price = listing.host_id, listing.price

        if requester_id == host_id:
            raise SelfBookingNotAllowed(listing_id=listing_id)

        candidate = Reservation(
            listing_id=listing_id,
            requester_id=requester_id,
            start_date=interval.start,
            end_date=interval.end,
            total_price=interval.nights * nightly_price,
            status=ReservationStatus.CONFIRMED.value,
        )

        store = ReservationStore(db, lock=lock)
        try:
            reservation = await store.try_commit(candidate)
        except ReservationConflict as e:
            raise DatesUnavailable(
                listing_id=listing_id,
                conflicting_reservation_id=e.context.get("conflicting_reservation_id"),
            ) from e

    except DatesUnavailable:
        record_booking_attempt("conflict")
        logger.info("booking_failed_dates_unavailable", listing_id=listing_id, requested=str(interval))
        raise
    except DomainError as e:
        record_booking_attempt("rejected" if e.status_code < 500 else "error")
        logger.info("booking_rejected", listing_id=listing_id, reason=e.code)
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        reservation_id=reservation.id,
        listing_id=listing_id,
        requester_id=requester_id,
        nights=interval.nights,
        total_price=str(reservation.total_price),
    )
    return reservation


async def cancel_reservation(db: AsyncSession, reservation_id: int, actor_id: int) -> Reservation:
    """
    Cancel a reservation on behalf of its requester or the listing's host.

    Cancelling twice is an error (AlreadyCancelled), not a no-op. The freed
    interval is immediately bookable again.
    """
    store = ReservationStore(db)
    reservation = await store.get(reservation_id)
    # Copied out: a retried read below rolls back and expires the instance
    requester_id, listing_id = reservation.requester_id, reservation.listing_id
    current_status = reservation.status

    host_id = await store.host_of(listing_id)

    is_requester = requester_id == actor_id
    is_host = host_id == actor_id
    if not is_requester and not is_host:
        logger.warning("cancel_not_authorized", reservation_id=reservation_id, actor_id=actor_id)
        raise NotAuthorized(reservation_id=reservation_id)

    if current_status == ReservationStatus.CANCELLED.value:
        raise AlreadyCancelled(reservation_id=reservation_id)

    try:
        reservation = await store.set_status(reservation_id, ReservationStatus.CANCELLED)
    except InvalidStatusTransition:
        # A concurrent cancel won the conditional update
        raise AlreadyCancelled(reservation_id=reservation_id)

    record_cancellation(by_host=is_host and not is_requester)
    logger.info(
        "reservation_cancelled",
        reservation_id=reservation_id,
        listing_id=reservation.listing_id,
        actor_id=actor_id,
        by_host=is_host and not is_requester,
    )
    return reservation
