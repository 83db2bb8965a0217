"""
Tests for booking and cancellation rules, including the concurrency guarantee.

Ids are copied into locals up front: a rejected commit rolls the session
back, which expires every ORM instance the session holds.
"""

import asyncio
import random
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import Update, func, select, update
from sqlalchemy.exc import OperationalError

from stayhub.core.exceptions import (
    AlreadyCancelled,
    DatesUnavailable,
    InvalidDateRange,
    ListingNotFound,
    NotAuthorized,
    PastDate,
    ReservationNotFound,
    SelfBookingNotAllowed,
    StorageUnavailable,
)
from stayhub.domain.interval import StayInterval
from stayhub.models.listing import Listing
from stayhub.models.reservation import Reservation
from stayhub.services import reservation_store as store_module
from stayhub.services.booking_service import book_stay, cancel_reservation


@pytest.mark.asyncio
async def test_book_stay_prices_by_nights(db_session, listing, guest_user, base_day):
    reservation = await book_stay(
        db_session, guest_user.id, listing.id, base_day, base_day + timedelta(days=4)
    )

    assert reservation.status == "confirmed"
    assert reservation.total_price == Decimal("400.00")
    assert reservation.nights == 4


@pytest.mark.asyncio
async def test_adjacent_stays_both_succeed(db_session, listing, guest_user, other_guest, base_day):
    listing_id, guest_id, other_id = listing.id, guest_user.id, other_guest.id

    first = await book_stay(db_session, guest_id, listing_id, base_day, base_day + timedelta(days=3))
    second = await book_stay(
        db_session, other_id, listing_id, base_day + timedelta(days=3), base_day + timedelta(days=5)
    )

    assert first.end_date == second.start_date


@pytest.mark.asyncio
async def test_overlapping_stay_is_unavailable(db_session, listing, guest_user, other_guest, base_day):
    listing_id, guest_id, other_id = listing.id, guest_user.id, other_guest.id

    first = await book_stay(db_session, guest_id, listing_id, base_day, base_day + timedelta(days=5))
    first_id = first.id

    with pytest.raises(DatesUnavailable) as exc_info:
        await book_stay(
            db_session, other_id, listing_id, base_day + timedelta(days=4), base_day + timedelta(days=8)
        )
    assert exc_info.value.context["conflicting_reservation_id"] == first_id


@pytest.mark.asyncio
async def test_cancellation_frees_the_interval(db_session, listing, guest_user, other_guest, base_day):
    listing_id, guest_id, other_id = listing.id, guest_user.id, other_guest.id
    end = base_day + timedelta(days=4)

    first = await book_stay(db_session, guest_id, listing_id, base_day, end)
    await cancel_reservation(db_session, first.id, guest_id)

    rebooked = await book_stay(db_session, other_id, listing_id, base_day, end)
    assert rebooked.requester_id == other_id


@pytest.mark.asyncio
async def test_total_price_is_fixed_at_booking_time(session_factory, listing, guest_user, base_day):
    listing_id, guest_id = listing.id, guest_user.id

    async with session_factory() as session:
        before = await book_stay(session, guest_id, listing_id, base_day, base_day + timedelta(days=2))
        before_id = before.id

    async with session_factory() as session:
        await session.execute(
            update(Listing).where(Listing.id == listing_id).values(price=Decimal("180.00"))
        )
        await session.commit()

    async with session_factory() as session:
        after = await book_stay(
            session, guest_id, listing_id, base_day + timedelta(days=10), base_day + timedelta(days=12)
        )
        assert after.total_price == Decimal("360.00")

        stored = (
            await session.execute(select(Reservation.total_price).where(Reservation.id == before_id))
        ).scalar_one()
        assert stored == Decimal("200.00")


async def assert_store_untouched(session_factory, listing_id):
    """No reservation rows and the listing's booking_version still at its initial value."""
    async with session_factory() as session:
        count = (await session.execute(select(func.count(Reservation.id)))).scalar_one()
        version = (
            await session.execute(select(Listing.booking_version).where(Listing.id == listing_id))
        ).scalar_one()
    assert count == 0
    assert version == 1


@pytest.mark.asyncio
async def test_host_cannot_book_own_listing(db_session, session_factory, listing, host_user, base_day):
    listing_id = listing.id
    with pytest.raises(SelfBookingNotAllowed):
        await book_stay(db_session, host_user.id, listing_id, base_day, base_day + timedelta(days=1))
    await assert_store_untouched(session_factory, listing_id)


@pytest.mark.asyncio
async def test_past_start_date_rejected(db_session, session_factory, listing, guest_user, base_day):
    listing_id = listing.id
    with pytest.raises(PastDate):
        await book_stay(
            db_session,
            guest_user.id,
            listing_id,
            base_day - timedelta(days=1),
            base_day + timedelta(days=2),
            today=base_day,
        )
    await assert_store_untouched(session_factory, listing_id)


@pytest.mark.asyncio
async def test_start_today_is_allowed(db_session, listing, guest_user, base_day):
    reservation = await book_stay(
        db_session, guest_user.id, listing.id, base_day, base_day + timedelta(days=1), today=base_day
    )
    assert reservation.start_date == base_day


@pytest.mark.asyncio
@pytest.mark.parametrize("length", [0, -2])
async def test_empty_or_reversed_range_rejected(
    db_session, session_factory, listing, guest_user, base_day, length
):
    listing_id = listing.id
    with pytest.raises(InvalidDateRange):
        await book_stay(db_session, guest_user.id, listing_id, base_day, base_day + timedelta(days=length))
    await assert_store_untouched(session_factory, listing_id)


@pytest.mark.asyncio
async def test_unknown_listing(db_session, guest_user, base_day):
    with pytest.raises(ListingNotFound):
        await book_stay(db_session, guest_user.id, 9999, base_day, base_day + timedelta(days=1))


@pytest.mark.asyncio
async def test_deactivated_listing_is_not_bookable(db_session, listing, guest_user, base_day):
    listing_id, guest_id = listing.id, guest_user.id
    await db_session.execute(update(Listing).where(Listing.id == listing_id).values(is_active=False))
    await db_session.commit()

    with pytest.raises(ListingNotFound):
        await book_stay(db_session, guest_id, listing_id, base_day, base_day + timedelta(days=1))


@pytest.mark.asyncio
async def test_validation_order(db_session, listing, host_user, guest_user, base_day):
    listing_id, host_id, guest_id = listing.id, host_user.id, guest_user.id
    yesterday = base_day - timedelta(days=1)

    # Reversed range in the past on a missing listing: range check comes first
    with pytest.raises(InvalidDateRange):
        await book_stay(db_session, guest_id, 9999, base_day, yesterday, today=base_day)

    # Past start on a missing listing: date check precedes the lookup
    with pytest.raises(PastDate):
        await book_stay(db_session, guest_id, 9999, yesterday, base_day, today=base_day)

    # Host booking a missing listing: lookup precedes ownership
    with pytest.raises(ListingNotFound):
        await book_stay(db_session, host_id, 9999, base_day, base_day + timedelta(days=1))

    # Host booking over an existing stay: ownership precedes availability
    await book_stay(db_session, guest_id, listing_id, base_day, base_day + timedelta(days=3))
    with pytest.raises(SelfBookingNotAllowed):
        await book_stay(db_session, host_id, listing_id, base_day, base_day + timedelta(days=3))


@pytest.mark.asyncio
async def test_cancel_twice_raises_already_cancelled(db_session, listing, guest_user, base_day):
    guest_id = guest_user.id
    reservation = await book_stay(db_session, guest_id, listing.id, base_day, base_day + timedelta(days=2))
    reservation_id, created_at = reservation.id, reservation.created_at

    cancelled = await cancel_reservation(db_session, reservation_id, guest_id)
    assert cancelled.status == "cancelled"
    assert cancelled.created_at == created_at

    with pytest.raises(AlreadyCancelled):
        await cancel_reservation(db_session, reservation_id, guest_id)


@pytest.mark.asyncio
async def test_host_may_cancel_guest_reservation(db_session, listing, host_user, guest_user, base_day):
    host_id = host_user.id
    reservation = await book_stay(db_session, guest_user.id, listing.id, base_day, base_day + timedelta(days=2))

    cancelled = await cancel_reservation(db_session, reservation.id, host_id)
    assert cancelled.status == "cancelled"


@pytest.mark.asyncio
async def test_stranger_cannot_cancel(db_session, listing, guest_user, other_guest, base_day):
    other_id = other_guest.id
    reservation = await book_stay(db_session, guest_user.id, listing.id, base_day, base_day + timedelta(days=2))

    with pytest.raises(NotAuthorized):
        await cancel_reservation(db_session, reservation.id, other_id)
    assert reservation.status == "confirmed"


@pytest.mark.asyncio
async def test_cancel_unknown_reservation(db_session, guest_user):
    with pytest.raises(ReservationNotFound):
        await cancel_reservation(db_session, 4242, guest_user.id)


@pytest.mark.asyncio
async def test_cancel_survives_transient_storage_error(db_session, listing, guest_user, base_day, monkeypatch):
    monkeypatch.setattr(store_module.get_settings(), "COMMIT_RETRY_BACKOFF", 0.0)
    guest_id = guest_user.id
    reservation = await book_stay(db_session, guest_id, listing.id, base_day, base_day + timedelta(days=2))
    reservation_id = reservation.id

    original = db_session.execute
    failed = []

    async def execute(statement, *args, **kwargs):
        if isinstance(statement, Update) and not failed:
            failed.append(statement)
            raise OperationalError("UPDATE reservations", {}, Exception("connection reset"))
        return await original(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", execute)

    cancelled = await cancel_reservation(db_session, reservation_id, guest_id)
    assert cancelled.status == "cancelled"
    assert len(failed) == 1


@pytest.mark.asyncio
async def test_cancel_reports_storage_unavailable(db_session, listing, guest_user, base_day, monkeypatch):
    monkeypatch.setattr(store_module.get_settings(), "COMMIT_RETRY_BACKOFF", 0.0)
    guest_id = guest_user.id
    reservation = await book_stay(db_session, guest_id, listing.id, base_day, base_day + timedelta(days=2))
    reservation_id = reservation.id

    async def down(statement, *args, **kwargs):
        raise OperationalError(str(statement), {}, Exception("connection refused"))

    monkeypatch.setattr(db_session, "execute", down)

    with pytest.raises(StorageUnavailable):
        await cancel_reservation(db_session, reservation_id, guest_id)


@pytest.mark.asyncio
async def test_fifty_concurrent_requests_one_winner(session_factory, listing, guest_user, base_day):
    """50 simultaneous requests for the same dates: exactly one reservation."""
    listing_id, guest_id = listing.id, guest_user.id
    start, end = base_day, base_day + timedelta(days=3)

    async def attempt():
        async with session_factory() as session:
            reservation = await book_stay(session, guest_id, listing_id, start, end)
            return reservation.id

    results = await asyncio.gather(*(attempt() for _ in range(50)), return_exceptions=True)

    winners = [r for r in results if isinstance(r, int)]
    losers = [r for r in results if isinstance(r, DatesUnavailable)]
    assert len(winners) == 1
    assert len(losers) == 49

    async with session_factory() as session:
        stored = (
            await session.execute(select(Reservation).where(Reservation.listing_id == listing_id))
        ).scalars().all()
    assert [r.id for r in stored] == winners


@pytest.mark.asyncio
async def test_concurrent_random_ranges_never_overlap(
    session_factory, listing, guest_user, other_guest, base_day
):
    listing_id = listing.id
    requesters = [guest_user.id, other_guest.id]
    rng = random.Random(20240601)

    requests = []
    for _ in range(40):
        start = base_day + timedelta(days=rng.randint(0, 30))
        requests.append((rng.choice(requesters), start, start + timedelta(days=rng.randint(1, 6))))

    async def attempt(requester_id, start, end):
        async with session_factory() as session:
            await book_stay(session, requester_id, listing_id, start, end)

    results = await asyncio.gather(*(attempt(*r) for r in requests), return_exceptions=True)
    assert all(r is None or isinstance(r, DatesUnavailable) for r in results)

    async with session_factory() as session:
        stored = (
            await session.execute(select(Reservation).where(Reservation.listing_id == listing_id))
        ).scalars().all()

    intervals = [StayInterval(r.start_date, r.end_date) for r in stored]
    assert len(intervals) == sum(1 for r in results if r is None)
    for i, a in enumerate(intervals):
        for b in intervals[i + 1:]:
            assert not a.overlaps(b)


@pytest.mark.asyncio
async def test_concurrent_cancels_one_wins(session_factory, listing, guest_user, host_user, base_day):
    listing_id, guest_id, host_id = listing.id, guest_user.id, host_user.id

    async with session_factory() as session:
        reservation = await book_stay(session, guest_id, listing_id, base_day, base_day + timedelta(days=2))
        reservation_id = reservation.id

    async def cancel(actor_id):
        async with session_factory() as session:
            await cancel_reservation(session, reservation_id, actor_id)

    results = await asyncio.gather(cancel(guest_id), cancel(host_id), return_exceptions=True)

    assert results.count(None) == 1
    assert sum(isinstance(r, AlreadyCancelled) for r in results) == 1
