"""
Pydantic schemas for booking-related request/response validation.

Dates are accepted as ISO dates or datetimes; datetimes are truncated to
their calendar date. Range checks (end after start, not in the past) are
business rules and live in the booking service, not here.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, field_validator

from stayhub.domain.interval import to_calendar_date
from stayhub.schemas.listing import ListingSummary
from stayhub.schemas.user import UserSummary


class BookingCreate(BaseModel):
    listing_id: int
    start_date: date
    end_date: date

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_date(cls, value: Any) -> Any:
        if isinstance(value, (str, datetime)):
            return to_calendar_date(value)
        return value


class ReservationResponse(BaseModel):
    id: int
    listing_id: int
    requester_id: int
    start_date: date
    end_date: date
    nights: int
    total_price: Decimal
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReservationSummary(ReservationResponse):
    listing: ListingSummary
    requester: UserSummary
