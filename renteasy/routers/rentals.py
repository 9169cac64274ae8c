"""
Rental API endpoints: starting a rental, the month ledger and the move-out flow.
"""

from fastapi import APIRouter, Depends, status, Path
from uuid import UUID

from renteasy.models.user import User
from renteasy.schemas.error import get_common_error_responses, get_error_responses
from renteasy.schemas.rental import (
    LeaveResponse,
    MoveOutDueResponse,
    MoveOutNoticeResponse,
    MoveOutRequest,
    RentalLedgerResponse,
    RentalResponse,
    StopRentalResponse,
    TenantRentalListResponse,
)
from renteasy.services.rental import RentalService
from renteasy.utils.dependencies import get_rental_service, require_tenant


router = APIRouter(tags=["Rentals"])


@router.post(
    "/rentals/{listing_id}/start",
    response_model=RentalLedgerResponse,
    status_code=status.HTTP_200_OK,
    summary="Start rental",
    description="Open the tenant's rental of a listing, or return the one already active",
    responses=get_common_error_responses()
)
async def start_rental(
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: User = Depends(require_tenant),
    rental_service: RentalService = Depends(get_rental_service)
) -> RentalLedgerResponse:
    view = await rental_service.start_rental(listing_id, current_user)
    return RentalLedgerResponse.model_validate(view)


@router.get(
    "/rentals/{rental_id}",
    response_model=RentalLedgerResponse,
    status_code=status.HTTP_200_OK,
    summary="Get rental",
    description="Rental with paid, blocked and recommended months",
    responses=get_error_responses(401, 403, 404)
)
async def get_rental(
    rental_id: UUID = Path(..., description="Rental ID"),
    current_user: User = Depends(require_tenant),
    rental_service: RentalService = Depends(get_rental_service)
) -> RentalLedgerResponse:
    view = await rental_service.get_rental(rental_id, current_user)
    return RentalLedgerResponse.model_validate(view)


@router.get(
    "/tenant/rentals",
    response_model=TenantRentalListResponse,
    status_code=status.HTTP_200_OK,
    summary="Tenant rentals",
    description="Active rentals of the current tenant with the next payment month"
)
async def tenant_rentals(
    current_user: User = Depends(require_tenant),
    rental_service: RentalService = Depends(get_rental_service)
) -> TenantRentalListResponse:
    rentals = await rental_service.tenant_rentals(current_user)
    return TenantRentalListResponse.model_validate({"rentals": rentals})


@router.post(
    "/rentals/{rental_id}/moveout-notice",
    response_model=MoveOutNoticeResponse,
    status_code=status.HTTP_200_OK,
    summary="Give move-out notice",
    description="Record the month the tenant will leave. Notice shorter than one full month incurs a fine.",
    responses=get_common_error_responses()
)
async def give_move_out_notice(
    notice: MoveOutRequest,
    rental_id: UUID = Path(..., description="Rental ID"),
    current_user: User = Depends(require_tenant),
    rental_service: RentalService = Depends(get_rental_service)
) -> MoveOutNoticeResponse:
    rental = await rental_service.give_move_out_notice(rental_id, current_user, notice.move_out_month)
    return MoveOutNoticeResponse(rental=RentalResponse.model_validate(rental.to_dict()))


@router.get(
    "/rentals/{rental_id}/moveout-due",
    response_model=MoveOutDueResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Move-out dues",
    description="Months and fine the tenant must pay before leaving",
    responses=get_error_responses(400, 401, 403, 404, 409)
)
async def get_move_out_due(
    rental_id: UUID = Path(..., description="Rental ID"),
    current_user: User = Depends(require_tenant),
    rental_service: RentalService = Depends(get_rental_service)
) -> MoveOutDueResponse:
    due = await rental_service.get_move_out_due(rental_id, current_user)
    return MoveOutDueResponse.model_validate(due)


@router.post(
    "/rentals/{rental_id}/leave",
    response_model=LeaveResponse,
    status_code=status.HTTP_200_OK,
    summary="Leave rental",
    description="End the rental once all dues are settled",
    responses=get_error_responses(400, 401, 403, 404, 409)
)
async def leave_rental(
    rental_id: UUID = Path(..., description="Rental ID"),
    current_user: User = Depends(require_tenant),
    rental_service: RentalService = Depends(get_rental_service)
) -> LeaveResponse:
    result = await rental_service.leave_rental(rental_id, current_user)
    return LeaveResponse.model_validate(result)


@router.post(
    "/rentals/{rental_id}/stop",
    response_model=StopRentalResponse,
    status_code=status.HTTP_200_OK,
    summary="Stop rental",
    description="Direct move-out: ends the rental or returns what must be paid first",
    responses=get_common_error_responses()
)
async def stop_rental(
    request_data: MoveOutRequest,
    rental_id: UUID = Path(..., description="Rental ID"),
    current_user: User = Depends(require_tenant),
    rental_service: RentalService = Depends(get_rental_service)
) -> StopRentalResponse:
    result = await rental_service.stop_rental(rental_id, current_user, request_data.move_out_month)
    return StopRentalResponse.model_validate(result)
