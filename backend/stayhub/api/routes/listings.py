"""
Listing endpoints with Redis caching on search.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.db.session import get_db
from stayhub.schemas.listing import (
    BookedInterval,
    ListingCreate,
    ListingDetailResponse,
    ListingListResponse,
    ListingResponse,
    ListingSearchParams,
    ListingUpdate,
)
from stayhub.schemas.user import UserSummary
from stayhub.services import listing_service
from stayhub.services.cache_service import get_cached_search, set_cached_search, invalidate_listing_cache
from stayhub.core.security import CurrentUser, require_host
from stayhub.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/listings", tags=["Listings"])


@router.post("/", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_listing_endpoint(
    listing_data: ListingCreate,
    host: CurrentUser = Depends(require_host),
    db: AsyncSession = Depends(get_db),
):
    """Publish a new listing. Requires a host account."""
    listing = await listing_service.create_listing(db, listing_data, host.id)
    await invalidate_listing_cache()
    return listing


@router.get("/", response_model=ListingListResponse)
async def search_listings_endpoint(
    location: Optional[str] = Query(None, max_length=100),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    guests: Optional[int] = Query(None, ge=1),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    Search active listings with pagination.
    Results are cached in Redis for 5 minutes and invalidated whenever a
    listing changes or a stay is booked or cancelled.
    """
    if (start_date is None) != (end_date is None):
        raise HTTPException(
            status_code=422,
            detail="start_date and end_date must be given together",
        )
    if start_date is not None and end_date <= start_date:
        raise HTTPException(
            status_code=422,
            detail="end_date must be after start_date",
        )

    filters = ListingSearchParams(
        location=location,
        min_price=min_price,
        max_price=max_price,
        guests=guests,
        start_date=start_date,
        end_date=end_date,
    )
    cache_params = listing_service.search_cache_params(filters, page, page_size)

    cached = await get_cached_search(cache_params)
    if cached:
        logger.info("listing_search_cache_hit", page=page)
        cached["cached"] = True
        return ListingListResponse(**cached)

    listings, total = await listing_service.search_listings(db, filters, page, page_size)

    response_data = {
        "listings": [ListingResponse.model_validate(listing).model_dump(mode="json") for listing in listings],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_search(cache_params, response_data)

    return ListingListResponse(**response_data)


@router.get("/host/mine", response_model=list[ListingResponse])
async def list_my_listings(
    host: CurrentUser = Depends(require_host),
    db: AsyncSession = Depends(get_db),
):
    """Active listings owned by the authenticated host."""
    return await listing_service.list_host_listings(db, host.id)


@router.get("/{listing_id}", response_model=ListingDetailResponse)
async def get_listing_endpoint(
    listing_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Listing detail with booked date ranges. Not cached (calendars must be current)."""
    listing, booked = await listing_service.get_listing_detail(db, listing_id)
    return ListingDetailResponse(
        **ListingResponse.model_validate(listing).model_dump(),
        host=UserSummary.model_validate(listing.host) if listing.host else None,
        booked_dates=[BookedInterval.model_validate(r) for r in booked],
    )


@router.put("/{listing_id}", response_model=ListingResponse)
async def update_listing_endpoint(
    listing_id: int,
    listing_data: ListingUpdate,
    host: CurrentUser = Depends(require_host),
    db: AsyncSession = Depends(get_db),
):
    """Update a listing you own. Existing bookings keep the price they were made at."""
    listing = await listing_service.update_listing(db, listing_id, listing_data, host.id)
    await invalidate_listing_cache()
    return listing


@router.delete("/{listing_id}", response_model=ListingResponse)
async def delete_listing_endpoint(
    listing_id: int,
    host: CurrentUser = Depends(require_host),
    db: AsyncSession = Depends(get_db),
):
    """Remove a listing from search and booking. Its reservation history is kept."""
    listing = await listing_service.deactivate_listing(db, listing_id, host.id)
    await invalidate_listing_cache()
    return listing
