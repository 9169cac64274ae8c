"""
Support ticket API endpoints for tenants, landlords and administrators.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from typing import Optional
from uuid import UUID

from renteasy.models.ticket import TicketPriority, TicketStatus, TicketType
from renteasy.models.user import User
from renteasy.schemas.error import get_common_error_responses, get_error_responses
from renteasy.schemas.ticket import (
    TicketCreate,
    TicketDetailResponse,
    TicketEnvelope,
    TicketListResponse,
    TicketMessageCreate,
    TicketMessageEnvelope,
    TicketMessageResponse,
    TicketResponse,
    TicketStatusUpdate,
    TicketUnreadResponse,
)
from renteasy.services.ticket import TicketService, parse_date_filter
from renteasy.utils.dependencies import (
    get_current_active_user,
    get_ticket_service,
    require_admin,
    require_landlord,
    require_tenant_only,
)


router = APIRouter(tags=["Support"])


def _ticket(ticket, user: User) -> TicketResponse:
    return TicketResponse.model_validate(ticket.to_dict(viewer_role=user.role))


def _ticket_list(tickets, user: User) -> TicketListResponse:
    return TicketListResponse(tickets=[_ticket(ticket, user) for ticket in tickets])


@router.post(
    "/tickets",
    response_model=TicketEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Open ticket",
    description="Technical tickets go to an administrator, property tickets to the listing's landlord",
    responses=get_common_error_responses()
)
async def create_ticket(
    ticket_data: TicketCreate,
    current_user: User = Depends(require_tenant_only),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketEnvelope:
    ticket = await ticket_service.create_ticket(
        current_user,
        ticket_data.type,
        ticket_data.subject,
        ticket_data.description,
        priority=ticket_data.priority,
        listing_id=ticket_data.listing_id,
    )
    return TicketEnvelope(ticket=_ticket(ticket, current_user))


@router.get(
    "/tickets/my",
    response_model=TicketListResponse,
    status_code=status.HTTP_200_OK,
    summary="My tickets"
)
async def my_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    type: Optional[TicketType] = Query(None),
    current_user: User = Depends(require_tenant_only),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketListResponse:
    tickets = await ticket_service.list_tickets(current_user, type=type, status=status_filter)
    return _ticket_list(tickets, current_user)


@router.get(
    "/tickets/unread-count",
    response_model=TicketUnreadResponse,
    status_code=status.HTTP_200_OK,
    summary="Unread ticket messages"
)
async def unread_count(
    current_user: User = Depends(get_current_active_user),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketUnreadResponse:
    return TicketUnreadResponse.model_validate(await ticket_service.unread_summary(current_user))


@router.get(
    "/tickets/{ticket_id}",
    response_model=TicketDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Ticket thread",
    responses=get_error_responses(401, 403, 404)
)
async def get_ticket(
    ticket_id: UUID = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_active_user),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketDetailResponse:
    ticket, messages = await ticket_service.get_ticket(ticket_id, current_user)
    return TicketDetailResponse(
        ticket=_ticket(ticket, current_user),
        messages=[TicketMessageResponse.model_validate(message.to_dict()) for message in messages]
    )


@router.post(
    "/tickets/{ticket_id}/messages",
    response_model=TicketMessageEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to ticket",
    responses=get_common_error_responses()
)
async def add_message(
    message_data: TicketMessageCreate,
    ticket_id: UUID = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_active_user),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketMessageEnvelope:
    message = await ticket_service.add_message(ticket_id, current_user, message_data.text)
    return TicketMessageEnvelope(message=TicketMessageResponse.model_validate(message.to_dict()))


@router.post(
    "/tickets/{ticket_id}/read",
    response_model=TicketUnreadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark ticket read",
    responses=get_error_responses(401, 403, 404)
)
async def mark_read(
    ticket_id: UUID = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_active_user),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketUnreadResponse:
    return TicketUnreadResponse.model_validate(await ticket_service.mark_read(ticket_id, current_user))


@router.patch(
    "/tickets/{ticket_id}/status",
    response_model=TicketEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Update ticket status",
    description="Administrators handle technical tickets and landlords handle property tickets",
    responses=get_common_error_responses()
)
async def update_status(
    status_data: TicketStatusUpdate,
    ticket_id: UUID = Path(..., description="Ticket ID"),
    current_user: User = Depends(get_current_active_user),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketEnvelope:
    ticket = await ticket_service.update_status(ticket_id, current_user, status_data.status)
    return TicketEnvelope(ticket=_ticket(ticket, current_user))


@router.get(
    "/admin/tickets",
    response_model=TicketListResponse,
    status_code=status.HTTP_200_OK,
    summary="Assigned technical tickets",
    responses=get_error_responses(400, 401, 403)
)
async def admin_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    priority: Optional[TicketPriority] = Query(None),
    created_from: Optional[str] = Query(None, alias="from", description="Created on or after (ISO date)"),
    created_to: Optional[str] = Query(None, alias="to", description="Created on or before (ISO date)"),
    current_user: User = Depends(require_admin),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketListResponse:
    tickets = await ticket_service.list_tickets(
        current_user,
        status=status_filter,
        priority=priority,
        created_from=parse_date_filter(created_from, "from"),
        created_to=parse_date_filter(created_to, "to"),
    )
    return _ticket_list(tickets, current_user)


@router.get(
    "/landlord/tickets",
    response_model=TicketListResponse,
    status_code=status.HTTP_200_OK,
    summary="Assigned property tickets"
)
async def landlord_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    priority: Optional[TicketPriority] = Query(None),
    listing_id: Optional[UUID] = Query(None),
    current_user: User = Depends(require_landlord),
    ticket_service: TicketService = Depends(get_ticket_service)
) -> TicketListResponse:
    tickets = await ticket_service.list_tickets(
        current_user, status=status_filter, priority=priority, listing_id=listing_id
    )
    return _ticket_list(tickets, current_user)
