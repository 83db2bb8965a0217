"""
Reservation model: a guest's stay at a listing over a half-open date range.

Key design decisions:
- Dates are calendar dates; `[start_date, end_date)` is enforced by a CHECK
- total_price is stored at creation so later listing price changes never
  rewrite history
- Cancellation is a status change, rows are never deleted
- Relationships are lazy="raise"; read paths load them explicitly
- Composite index on (listing_id, start_date, end_date) serves the conflict
  check; the PostgreSQL exclusion constraint lives in migration 002
"""

import enum

from sqlalchemy import Column, Integer, String, Date, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from stayhub.db.base import Base, TimestampMixin
from stayhub.domain.interval import StayInterval


class ReservationStatus(str, enum.Enum):
    # Never assigned by the booking flow; kept for a future payment step
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.CANCELLED: frozenset(),
}


def allowed_predecessors(target: ReservationStatus) -> list[str]:
    return [source.value for source, targets in ALLOWED_TRANSITIONS.items() if target in targets]


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)

    listing = relationship("Listing", lazy="raise")
    requester = relationship("User", lazy="raise")

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="check_reservation_dates"),
        CheckConstraint("total_price >= 0", name="check_reservation_price_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="check_reservation_status",
        ),
        Index("ix_reservations_listing_dates", "listing_id", "start_date", "end_date"),
    )

    @property
    def interval(self) -> StayInterval:
        return StayInterval(self.start_date, self.end_date)

    @property
    def nights(self) -> int:
        return self.interval.nights

    @property
    def is_active(self) -> bool:
        return self.status != ReservationStatus.CANCELLED.value

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, listing={self.listing_id}, "
            f"requester={self.requester_id}, {self.interval}, status={self.status})>"
        )
