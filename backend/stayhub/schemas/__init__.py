from stayhub.schemas.user import UserCreate, UserResponse, UserLogin, UserSummary, Token
from stayhub.schemas.listing import (
    ListingCreate, ListingUpdate, ListingResponse, ListingSummary,
    ListingDetailResponse, ListingListResponse, ListingSearchParams, BookedInterval,
)
from stayhub.schemas.reservation import BookingCreate, ReservationResponse, ReservationSummary

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "UserSummary", "Token",
    "ListingCreate", "ListingUpdate", "ListingResponse", "ListingSummary",
    "ListingDetailResponse", "ListingListResponse", "ListingSearchParams", "BookedInterval",
    "BookingCreate", "ReservationResponse", "ReservationSummary",
]
