"""
Viewing API endpoints: landlord availability and tenant appointment requests.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from uuid import UUID

from renteasy.models.user import User
from renteasy.schemas.appointment import (
    AppointmentEnvelope,
    AppointmentListResponse,
    AppointmentRequest,
    AppointmentResponse,
    AvailabilityCreate,
    RescheduleRequest,
    SlotListResponse,
    SlotResponse,
    UpcomingCountResponse,
)
from renteasy.schemas.error import get_common_error_responses, get_error_responses
from renteasy.services.appointment import AppointmentService
from renteasy.utils.dependencies import (
    get_appointment_service,
    require_landlord,
    require_tenant_only,
    require_tenant_or_landlord,
)


router = APIRouter(tags=["Appointments"])


def _slots(slots) -> SlotListResponse:
    return SlotListResponse(slots=[SlotResponse.model_validate(slot.to_dict()) for slot in slots])


def _envelope(appointment) -> AppointmentEnvelope:
    return AppointmentEnvelope(appointment=AppointmentResponse.model_validate(appointment.to_dict()))


@router.post(
    "/availability",
    response_model=SlotListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open viewing slots",
    description="Split a time window on a listing into equal viewing slots",
    responses=get_common_error_responses()
)
async def create_availability(
    availability: AvailabilityCreate,
    current_user: User = Depends(require_landlord),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> SlotListResponse:
    slots = await appointment_service.create_availability(
        availability.listing_id,
        current_user,
        availability.date,
        availability.start_time,
        availability.end_time,
        availability.slot_count,
    )
    return _slots(slots)


@router.get(
    "/availability/{listing_id}",
    response_model=SlotListResponse,
    status_code=status.HTTP_200_OK,
    summary="Open viewing slots",
    description="Future slots on a day that are neither booked nor requested",
    responses=get_error_responses(400, 401, 403, 404)
)
async def get_availability(
    listing_id: UUID = Path(..., description="Listing ID"),
    date: str = Query(..., description="Day to list (YYYY-MM-DD)"),
    current_user: User = Depends(require_tenant_or_landlord),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> SlotListResponse:
    return _slots(await appointment_service.get_availability(listing_id, date))


@router.post(
    "/appointments/request",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Request viewing",
    responses=get_common_error_responses()
)
async def request_appointment(
    request_data: AppointmentRequest,
    current_user: User = Depends(require_tenant_only),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentEnvelope:
    appointment = await appointment_service.request_appointment(
        request_data.listing_id, request_data.slot_id, current_user
    )
    return _envelope(appointment)


@router.patch(
    "/appointments/{appointment_id}/reschedule",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Reschedule viewing",
    description="Move a viewing to another slot; it returns to requested",
    responses=get_common_error_responses()
)
async def reschedule_appointment(
    request_data: RescheduleRequest,
    appointment_id: UUID = Path(..., description="Appointment ID"),
    current_user: User = Depends(require_tenant_only),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentEnvelope:
    appointment = await appointment_service.reschedule_appointment(
        appointment_id, request_data.new_slot_id, current_user
    )
    return _envelope(appointment)


@router.get(
    "/appointments/tenant",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="Tenant viewings"
)
async def tenant_appointments(
    current_user: User = Depends(require_tenant_only),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentListResponse:
    return AppointmentListResponse.model_validate(
        {"appointments": await appointment_service.tenant_appointments(current_user)}
    )


@router.get(
    "/appointments/landlord/upcoming-count",
    response_model=UpcomingCountResponse,
    status_code=status.HTTP_200_OK,
    summary="Upcoming viewings count"
)
async def landlord_upcoming_count(
    current_user: User = Depends(require_landlord),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> UpcomingCountResponse:
    return UpcomingCountResponse(count=await appointment_service.landlord_upcoming_count(current_user))


@router.get(
    "/appointments/landlord",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="Landlord viewings"
)
async def landlord_appointments(
    current_user: User = Depends(require_landlord),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentListResponse:
    return AppointmentListResponse.model_validate(
        {"appointments": await appointment_service.landlord_appointments(current_user)}
    )


@router.patch(
    "/appointments/{appointment_id}/accept",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Accept viewing",
    responses=get_error_responses(400, 401, 403, 404)
)
async def accept_appointment(
    appointment_id: UUID = Path(..., description="Appointment ID"),
    current_user: User = Depends(require_landlord),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentEnvelope:
    return _envelope(await appointment_service.accept_appointment(appointment_id, current_user))


@router.patch(
    "/appointments/{appointment_id}/reject",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Reject viewing",
    responses=get_error_responses(400, 401, 403, 404)
)
async def reject_appointment(
    appointment_id: UUID = Path(..., description="Appointment ID"),
    current_user: User = Depends(require_landlord),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentEnvelope:
    return _envelope(await appointment_service.reject_appointment(appointment_id, current_user))
