"""
Domain error taxonomy.

Each error carries a stable machine-readable `code` and the HTTP status the
API boundary maps it to. Services raise these; `stayhub.main` registers a
single handler that turns them into `{"detail": ..., "code": ...}` responses.
"""

from typing import Optional


class DomainError(Exception):
    status_code: int = 400
    code: str = "domain_error"
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


# Booking input and business-rule rejections

class InvalidDateRange(DomainError):
    code = "invalid_date_range"
    default_message = "End date must be after start date"


class PastDate(DomainError):
    code = "past_date"
    default_message = "Cannot book dates in the past"


class ListingNotFound(DomainError):
    status_code = 404
    code = "listing_not_found"
    default_message = "Listing not found"


class SelfBookingNotAllowed(DomainError):
    code = "self_booking_not_allowed"
    default_message = "Cannot book your own listing"


class DatesUnavailable(DomainError):
    code = "dates_unavailable"
    default_message = "Listing is not available for selected dates"


# Cancellation

class ReservationNotFound(DomainError):
    status_code = 404
    code = "reservation_not_found"
    default_message = "Booking not found"


class NotAuthorized(DomainError):
    status_code = 403
    code = "not_authorized"
    default_message = "Not authorized to cancel this booking"


class AlreadyCancelled(DomainError):
    code = "already_cancelled"
    default_message = "Booking is already cancelled"


# Reservation store

class ReservationConflict(DomainError):
    """An active reservation already covers part of the requested interval."""

    status_code = 409
    code = "reservation_conflict"
    default_message = "Interval overlaps an active reservation"


class InvalidStatusTransition(DomainError):
    status_code = 409
    code = "invalid_status_transition"
    default_message = "Reservation status cannot change that way"


class StorageUnavailable(DomainError):
    status_code = 503
    code = "storage_unavailable"
    default_message = "Booking storage is temporarily unavailable. Please try again."


# Listing registry

class ListingAccessDenied(DomainError):
    status_code = 403
    code = "listing_access_denied"
    default_message = "Not authorized to modify this listing"
