"""
Listing API endpoints: landlord CRUD and public search.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional
from uuid import UUID
from decimal import Decimal
import math

from renteasy.models.listing import ListingStatus
from renteasy.models.user import User
from renteasy.schemas.error import get_common_error_responses, get_error_responses
from renteasy.schemas.listing import (
    ListingCreate,
    ListingUpdate,
    ListingResponse,
    ListingListResponse,
    ListingSearchFilters,
)
from renteasy.services.listing import ListingService
from renteasy.utils.dependencies import (
    get_current_active_user,
    get_optional_current_user,
    get_listing_service,
    require_landlord,
)


router = APIRouter(prefix="/listings", tags=["Listings"])


@router.post(
    "",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create listing",
    description="Create a rental listing. Requires landlord or admin role.",
    responses=get_common_error_responses()
)
async def create_listing(
    listing_data: ListingCreate,
    current_user: User = Depends(require_landlord),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.create_listing(listing_data, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.get(
    "",
    response_model=ListingListResponse,
    status_code=status.HTTP_200_OK,
    summary="Search listings",
    description="Paginated listing search with text, rent range and room type filters"
)
async def search_listings(
    query: Optional[str] = Query(None, description="Text matched against title, address and description"),
    min_rent: Optional[Decimal] = Query(None, ge=0, description="Minimum monthly rent"),
    max_rent: Optional[Decimal] = Query(None, ge=0, description="Maximum monthly rent"),
    room_type: Optional[str] = Query(None, description="Exact room type"),
    listing_status: ListingStatus = Query(ListingStatus.ACTIVE, alias="status", description="Listing status"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of listings per page"),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingListResponse:
    """
    Search listings.

    Returns:
        Paginated list of listings with metadata
    """
    filters = ListingSearchFilters(
        query=query,
        min_rent=min_rent,
        max_rent=max_rent,
        room_type=room_type,
        status=listing_status,
        page=page,
        page_size=page_size
    )
    listings, total_count = await listing_service.search_listings(filters)

    total_pages = math.ceil(total_count / page_size) if total_count > 0 else 1

    return ListingListResponse(
        listings=[ListingResponse.model_validate(listing.to_dict()) for listing in listings],
        total=total_count,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1
    )


@router.get(
    "/mine",
    response_model=list[ListingResponse],
    status_code=status.HTTP_200_OK,
    summary="My listings",
    description="Every listing owned by the current landlord, active or archived"
)
async def my_listings(
    current_user: User = Depends(require_landlord),
    listing_service: ListingService = Depends(get_listing_service)
) -> list[ListingResponse]:
    listings = await listing_service.get_my_listings(current_user)
    return [ListingResponse.model_validate(listing.to_dict()) for listing in listings]


@router.get(
    "/{listing_id}",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Get listing",
    responses=get_error_responses(404)
)
async def get_listing(
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: Optional[User] = Depends(get_optional_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.get_listing(listing_id, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.put(
    "/{listing_id}",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Update listing",
    description="Update listing details. Only the owner or an admin can update.",
    responses=get_common_error_responses()
)
async def update_listing(
    listing_data: ListingUpdate,
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.update_listing(listing_id, listing_data, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.post(
    "/{listing_id}/archive",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Archive listing",
    description="Withdraw a listing from search",
    responses=get_common_error_responses()
)
async def archive_listing(
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.archive_listing(listing_id, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.delete(
    "/{listing_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete listing",
    description="Delete a listing with no active rental",
    responses=get_error_responses(401, 403, 404, 409)
)
async def delete_listing(
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: User = Depends(get_current_active_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> None:
    await listing_service.delete_listing(listing_id, current_user)
