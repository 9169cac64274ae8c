"""
Pydantic schemas for rentals and the move-out flow.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from renteasy.models.rental import RentalStatus
from renteasy.schemas.common import Money
from renteasy.schemas.listing import ListingSummary


class MoveOutRequest(BaseModel):
    """Move-out month submitted with a notice or a direct stop."""

    move_out_month: str = Field(..., description="Month the tenant leaves (YYYY-MM)", examples=["2025-06"])


class RentalResponse(BaseModel):
    """Rental record."""

    id: str
    tenant_id: str
    landlord_id: str
    listing_id: str
    start_month: str = Field(..., description="First month rent is owed")
    status: RentalStatus
    move_out_notice_month: Optional[str] = None
    move_out_notice_given_at: Optional[datetime] = None
    end_month: Optional[str] = None
    ended_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class RentalLedgerResponse(BaseModel):
    """Rental with its month ledger, as used by the booking payment page."""

    rental_id: str
    rental: RentalResponse
    listing: ListingSummary
    paid_months: List[str] = Field(default_factory=list, description="Months covered by succeeded payments")
    blocked_months: List[str] = Field(default_factory=list, description="Months covered by succeeded or processing payments")
    next_unpaid_month: Optional[str] = Field(None, description="First month not yet blocked")
    recommended_months: List[str] = Field(default_factory=list)
    locked_months: List[str] = Field(default_factory=list, description="Months the next payment must include")


class TenantRentalItem(BaseModel):
    """Active rental row on the tenant dashboard."""

    rental_id: str
    start_month: str
    move_out_notice_month: Optional[str] = None
    move_out_notice_given_at: Optional[datetime] = None
    listing: ListingSummary
    next_payment_month: Optional[str] = None
    next_payment_date: Optional[str] = Field(None, description="First day of the next payment month")


class TenantRentalListResponse(BaseModel):
    rentals: List[TenantRentalItem]


class MoveOutNoticeResponse(BaseModel):
    rental: RentalResponse


class BreakdownResponse(BaseModel):
    """Charge breakdown for a set of months plus any penalty."""

    rent_subtotal: Money
    service_charge: Money
    service_charge_per_month: Money
    service_charge_total: Money
    penalty_amount: Money
    tax: Money
    platform_fee: Money
    total: Money


class MoveOutDueResponse(BaseModel):
    """What the tenant must still pay before leaving."""

    due_months: List[str]
    fine_amount: Money
    breakdown: BreakdownResponse
    move_out_month: str
    overstay: Optional[bool] = None
    message: Optional[str] = None


class LeaveResponse(BaseModel):
    ended: bool = True


class StopRentalResponse(BaseModel):
    """Outcome of a direct stop request."""

    ended: bool
    rental_id: Optional[str] = None
    move_out_month: Optional[str] = None
    required_months: List[str] = Field(default_factory=list)
    penalty_amount: Money = Decimal("0")
