"""
Reservation store with a conflict-free commit guarantee per listing.

CONCURRENCY STRATEGY: Listing Lock + Optimistic Version Guard
=============================================================

Problem:
  Two guests request overlapping stays at the same listing simultaneously.
  Both read "no conflicting reservation", both insert, both succeed.
  Result: A double booking.

Solution, three layers, outermost first:

  1. Per-listing lock (ListingLock). Commits for the same listing queue up
     instead of racing; commits for different listings never share a lock.

  2. Version guard on the listing row. Every commit runs
       UPDATE listings SET booking_version = booking_version + 1
       WHERE id = :listing_id AND booking_version = :version_read_before_check
     If rows_affected == 0, another writer (another process, or a degraded
     lock) committed after our conflict check, so we roll back and re-check.
     The row lock taken by this UPDATE also makes a concurrent writer wait
     for our COMMIT before it can evaluate its own guard.

  3. PostgreSQL exclusion constraint (migration 002):
       EXCLUDE USING gist (listing_id WITH =, daterange(start_date, end_date, '[)') WITH &&)
       WHERE (status <> 'cancelled')
     Anything that bypasses this module still cannot store an overlap.

  The conflict check itself is the half-open test from StayInterval, so
  back-to-back stays (checkout == next check-in) are allowed.

Transient storage errors on every read and write are retried a bounded
number of times with linear backoff and then surface as StorageUnavailable.
A failed attempt is always rolled back, so nothing is ever partially written.
"""

import asyncio
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stayhub.core.config import get_settings
from stayhub.core.exceptions import (
    InvalidStatusTransition,
    ListingNotFound,
    ReservationConflict,
    ReservationNotFound,
    StorageUnavailable,
)
from stayhub.core.logging import get_logger
from stayhub.core.metrics import record_commit_retry
from stayhub.domain.interval import StayInterval
from stayhub.models.listing import Listing
from stayhub.models.reservation import Reservation, ReservationStatus, allowed_predecessors
from stayhub.services.interfaces.listing_lock import ListingLock
from stayhub.services.strategy_factory import get_listing_lock

logger = get_logger(__name__)

OVERLAP_CONSTRAINT = "no_overlapping_reservations"


class _VersionConflict(Exception):
    """The listing's booking_version moved between check and write."""


T = TypeVar("T")


class ReservationStore:
    def __init__(self, db: AsyncSession, lock: Optional[ListingLock] = None):
        self.db = db
        self.lock = lock or get_listing_lock()
        self.settings = get_settings()

    async def _retrying(self, operation: str, fn: Callable[[int], Awaitable[T]], **context) -> T:
        """
        Run `fn(attempt)` until it succeeds or COMMIT_MAX_ATTEMPTS run out.

        OperationalError and InterfaceError (dropped connection, locked
        database) and version conflicts roll the session back and retry.
        Domain errors propagate on the first raise. Exhaustion surfaces as
        StorageUnavailable carrying `context`.
        """
        max_attempts = self.settings.COMMIT_MAX_ATTEMPTS

        for attempt in range(1, max_attempts + 1):
            try:
                return await fn(attempt)
            except _VersionConflict:
                await self.db.rollback()
                record_commit_retry("version_conflict")
                logger.info(
                    f"{operation}_retry",
                    attempt=attempt,
                    reason="version_conflict",
                    **context,
                )
            except (OperationalError, InterfaceError) as e:
                await self.db.rollback()
                record_commit_retry("transient_error")
                logger.warning(
                    f"{operation}_retry",
                    attempt=attempt,
                    reason="transient_error",
                    error=str(e),
                    **context,
                )
                if attempt < max_attempts:
                    await asyncio.sleep(self.settings.COMMIT_RETRY_BACKOFF * attempt)

        logger.error(f"{operation}_exhausted", attempts=max_attempts, **context)
        raise StorageUnavailable(**context)

    async def get(self, reservation_id: int) -> Reservation:
        return await self._retrying(
            "reservation_read",
            lambda attempt: self._get_once(reservation_id),
            reservation_id=reservation_id,
        )

    async def _get_once(self, reservation_id: int) -> Reservation:
        result = await self.db.execute(
            select(Reservation).where(Reservation.id == reservation_id)
        )
        reservation = result.scalar_one_or_none()
        if reservation is None:
            raise ReservationNotFound(reservation_id=reservation_id)
        return reservation

    async def host_of(self, listing_id: int) -> Optional[int]:
        """Host id of a listing, None if the listing row is gone."""

        async def read(attempt):
            result = await self.db.execute(select(Listing.host_id).where(Listing.id == listing_id))
            return result.scalar_one_or_none()

        return await self._retrying("listing_read", read, listing_id=listing_id)

    async def find_active_for_listing(self, listing_id: int) -> list[Reservation]:
        """All non-cancelled reservations for a listing, in no particular order."""
        return await self._retrying(
            "reservation_read",
            lambda attempt: self._active_for_listing(listing_id),
            listing_id=listing_id,
        )

    async def _active_for_listing(self, listing_id: int) -> list[Reservation]:
        result = await self.db.execute(
            select(Reservation).where(
                Reservation.listing_id == listing_id,
                Reservation.status != ReservationStatus.CANCELLED.value,
            )
        )
        return list(result.scalars().all())

    async def try_commit(self, candidate: Reservation) -> Reservation:
        """
        Persist `candidate` unless it overlaps an active reservation.

        Raises ReservationConflict (nothing written), ListingNotFound, or
        StorageUnavailable once COMMIT_MAX_ATTEMPTS transient failures or
        version conflicts have been exhausted.
        """
        fields = {
            "listing_id": candidate.listing_id,
            "requester_id": candidate.requester_id,
            "start_date": candidate.start_date,
            "end_date": candidate.end_date,
            "total_price": candidate.total_price,
            "status": candidate.status or ReservationStatus.CONFIRMED.value,
        }
        listing_id = fields["listing_id"]
        interval = StayInterval(fields["start_date"], fields["end_date"])

        async with self.lock.hold(listing_id):
            return await self._retrying(
                "reservation_commit",
                lambda attempt: self._commit_once(fields, interval, attempt),
                listing_id=listing_id,
            )

    async def _commit_once(self, fields: dict, interval: StayInterval, attempt: int) -> Reservation:
        listing_id = fields["listing_id"]

        # Step 1: Read the guard version before looking at reservations
        version = (
            await self.db.execute(
                select(Listing.booking_version).where(Listing.id == listing_id)
            )
        ).scalar_one_or_none()
        if version is None:
            raise ListingNotFound(listing_id=listing_id)

        # Step 2: Re-read active reservations and apply the half-open test
        for existing in await self._active_for_listing(listing_id):
            if existing.interval.overlaps(interval):
                conflicting_id = existing.id
                logger.info(
                    "reservation_conflict",
                    listing_id=listing_id,
                    requested=str(interval),
                    conflicting_reservation_id=conflicting_id,
                    existing=str(existing.interval),
                )
                await self.db.rollback()
                raise ReservationConflict(conflicting_reservation_id=conflicting_id)

        # Step 3: Claim the listing - update only if nobody committed since step 1
        bumped = await self.db.execute(
            update(Listing)
            .where(Listing.id == listing_id, Listing.booking_version == version)
            .values(booking_version=Listing.booking_version + 1)
            .execution_options(synchronize_session=False)
        )
        if bumped.rowcount == 0:
            raise _VersionConflict()

        # Step 4: Insert and commit while still holding the claim
        reservation = Reservation(**fields)
        self.db.add(reservation)
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if OVERLAP_CONSTRAINT in str(e.orig):
                logger.warning("reservation_exclusion_violation", listing_id=listing_id)
                raise ReservationConflict(listing_id=listing_id)
            raise
        await self.db.refresh(reservation)

        logger.info(
            "reservation_committed",
            reservation_id=reservation.id,
            listing_id=listing_id,
            requester_id=reservation.requester_id,
            interval=str(interval),
            attempt=attempt,
        )
        return reservation

    async def set_status(self, reservation_id: int, new_status: ReservationStatus) -> Reservation:
        """
        Move a reservation to `new_status` if the transition table allows it.

        The status check and the write are one conditional UPDATE, so two
        concurrent cancellations cannot both succeed.
        """
        return await self._retrying(
            "reservation_status",
            lambda attempt: self._set_status_once(reservation_id, new_status),
            reservation_id=reservation_id,
        )

    async def _set_status_once(self, reservation_id: int, new_status: ReservationStatus) -> Reservation:
        reservation = await self._get_once(reservation_id)

        result = await self.db.execute(
            update(Reservation)
            .where(
                Reservation.id == reservation_id,
                Reservation.status.in_(allowed_predecessors(new_status)),
            )
            .values(status=new_status.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            await self.db.refresh(reservation)
            raise InvalidStatusTransition(
                reservation_id=reservation_id,
                current=reservation.status,
                requested=new_status.value,
            )

        await self.db.commit()
        await self.db.refresh(reservation)
        return reservation

    def _summaries_query(self, status: Optional[ReservationStatus]):
        query = select(Reservation).options(
            selectinload(Reservation.listing),
            selectinload(Reservation.requester),
        )
        if status is not None:
            query = query.where(Reservation.status == status.value)
        return query.order_by(Reservation.created_at.desc(), Reservation.id.desc())

    async def _summaries(self, query, **context) -> list[Reservation]:
        async def read(attempt):
            result = await self.db.execute(query)
            return list(result.scalars().all())

        return await self._retrying("reservation_read", read, **context)

    async def find_by_requester(
        self,
        user_id: int,
        status: Optional[ReservationStatus] = None,
    ) -> list[Reservation]:
        """Reservations made by a user, newest first, with listing and requester loaded."""
        return await self._summaries(
            self._summaries_query(status).where(Reservation.requester_id == user_id),
            requester_id=user_id,
        )

    async def find_by_listing_ids(
        self,
        listing_ids: Iterable[int],
        status: Optional[ReservationStatus] = None,
    ) -> list[Reservation]:
        """Reservations for any of the listings, newest first, with relations loaded."""
        listing_ids = list(listing_ids)
        if not listing_ids:
            return []
        return await self._summaries(
            self._summaries_query(status).where(Reservation.listing_id.in_(listing_ids)),
            listing_count=len(listing_ids),
        )
