"""
Pydantic schemas for viewing availability and appointments.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from renteasy.models.appointment import AppointmentStatus
from renteasy.schemas.user import UserSummary


class AvailabilityCreate(BaseModel):
    """Viewing window a landlord opens on a listing."""

    listing_id: UUID
    date: str = Field(..., description="Day of the window (YYYY-MM-DD)", examples=["2025-06-14"])
    start_time: str = Field(..., description="Opening time in UTC (HH:MM)", examples=["10:00"])
    end_time: str = Field(..., description="Closing time in UTC (HH:MM)", examples=["12:00"])
    slot_count: int = Field(1, description="Number of equal slots to split the window into")


class SlotResponse(BaseModel):
    id: str
    listing_id: str
    landlord_id: str
    date: str
    start_time: datetime
    end_time: datetime
    is_booked: bool


class SlotListResponse(BaseModel):
    slots: List[SlotResponse]


class AppointmentRequest(BaseModel):
    listing_id: UUID
    slot_id: UUID


class RescheduleRequest(BaseModel):
    new_slot_id: UUID


class AppointmentListing(BaseModel):
    id: str
    title: str
    address: str


class AppointmentResponse(BaseModel):
    """Viewing appointment with optional party summaries."""

    id: str
    listing_id: str
    landlord_id: str
    tenant_id: str
    slot_id: str
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    reschedule_count: int = 0
    listing: Optional[AppointmentListing] = None
    tenant: Optional[UserSummary] = None
    landlord: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class AppointmentEnvelope(BaseModel):
    appointment: AppointmentResponse


class AppointmentListResponse(BaseModel):
    appointments: List[AppointmentResponse]


class UpcomingCountResponse(BaseModel):
    count: int = Field(..., description="Requested or accepted viewings not yet started")
