"""
Pydantic schemas for listing-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from stayhub.schemas.user import UserSummary


class ListingCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=255)
    description: str = Field(..., min_length=20, max_length=5000)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    images: list[str] = Field(..., min_length=1)
    amenities: list[str] = Field(default_factory=list)
    max_guests: int = Field(..., ge=1, le=100)
    bedrooms: int = Field(0, ge=0, le=100)
    bathrooms: float = Field(0, ge=0, le=100)


class ListingUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=255)
    description: Optional[str] = Field(None, min_length=20, max_length=5000)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    images: Optional[list[str]] = Field(None, min_length=1)
    amenities: Optional[list[str]] = None
    max_guests: Optional[int] = Field(None, ge=1, le=100)
    bedrooms: Optional[int] = Field(None, ge=0, le=100)
    bathrooms: Optional[float] = Field(None, ge=0, le=100)


class ListingResponse(BaseModel):
    id: int
    title: str
    description: str
    price: Decimal
    address: str
    city: str
    country: str
    location: str
    latitude: Optional[float]
    longitude: Optional[float]
    images: list[str]
    primary_image: Optional[str]
    amenities: list[str]
    max_guests: int
    bedrooms: int
    bathrooms: float
    host_id: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ListingSummary(BaseModel):
    id: int
    title: str
    primary_image: Optional[str]
    location: str
    price: Decimal

    model_config = {"from_attributes": True}


class BookedInterval(BaseModel):
    start_date: date
    end_date: date

    model_config = {"from_attributes": True}


class ListingDetailResponse(ListingResponse):
    host: Optional[UserSummary] = None
    booked_dates: list[BookedInterval] = Field(default_factory=list)


class ListingSearchParams(BaseModel):
    location: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    guests: Optional[int] = Field(None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ListingListResponse(BaseModel):
    listings: list[ListingResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
