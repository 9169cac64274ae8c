"""
Pydantic schemas for support tickets.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from renteasy.models.ticket import TicketPriority, TicketStatus, TicketType
from renteasy.models.user import UserRole


class TicketCreate(BaseModel):
    """New ticket opened by a tenant."""

    type: TicketType
    subject: str = Field(..., max_length=200)
    description: str
    priority: TicketPriority = TicketPriority.MEDIUM
    listing_id: Optional[UUID] = Field(None, description="Required for property tickets")


class TicketMessageCreate(BaseModel):
    text: str


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TicketResponse(BaseModel):
    id: str
    created_by_id: str
    assigned_to_role: UserRole
    assigned_to_id: str
    listing_id: Optional[str] = None
    rental_id: Optional[str] = None
    listing_title: Optional[str] = None
    tenant_name: Optional[str] = None
    subject: str
    description: str
    type: TicketType
    status: TicketStatus
    priority: TicketPriority
    last_message_at: datetime
    unread_count: int = Field(0, description="Unread messages for the viewer")
    created_at: datetime
    updated_at: datetime


class TicketMessageResponse(BaseModel):
    id: str
    ticket_id: str
    sender_role: UserRole
    sender_id: str
    text: str
    created_at: datetime


class TicketEnvelope(BaseModel):
    ticket: TicketResponse


class TicketDetailResponse(BaseModel):
    ticket: TicketResponse
    messages: List[TicketMessageResponse]


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]


class TicketMessageEnvelope(BaseModel):
    message: TicketMessageResponse


class TicketUnreadResponse(BaseModel):
    total_unread_tickets: int
    total_unread_messages: int
