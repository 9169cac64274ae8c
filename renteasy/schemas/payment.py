"""
Pydantic schemas for rent payments.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from renteasy.models.payment import PaymentStatus
from renteasy.schemas.common import Money
from renteasy.schemas.user import UserSummary


class PaymentIntentCreate(BaseModel):
    """Request to start a Stripe payment for rent months and/or a move-out fine."""

    rental_id: str = Field(..., description="Rental being paid for")

    selected_months: List[str] = Field(
        default_factory=list,
        description="Month tokens to pay (YYYY-MM)",
        examples=[["2025-03", "2025-04"]]
    )

    move_out_month: Optional[str] = Field(
        None,
        description="Move-out month; must match the rental's notice"
    )

    leave_flow: bool = Field(False, description="Settle everything owed before leaving")

    @model_validator(mode="after")
    def validate_rental_id(self):
        """Rental id is required."""
        if not self.rental_id or not self.rental_id.strip():
            raise ValueError("Rental id is required.")
        return self


class PaymentIntentResponse(BaseModel):
    """Client secret plus the charge breakdown."""

    client_secret: Optional[str] = Field(None, description="Stripe PaymentIntent client secret")
    payment_id: str
    total: Money
    rent_subtotal: Money
    service_charge: Money
    service_charge_per_month: Money
    service_charge_total: Money
    tax: Money
    platform_fee: Money
    penalty_amount: Money
    months_paid: List[str]


class PaymentListingSummary(BaseModel):
    id: str
    title: str
    address: Optional[str] = None


class PaymentResponse(BaseModel):
    """Payment record."""

    id: str
    rental_id: str
    tenant_id: str
    landlord_id: str
    listing_id: str
    months_paid: List[str]
    rent_subtotal: Money
    service_charge: Money
    service_charge_per_month: Money
    tax: Money
    platform_fee: Money
    penalty_amount: Money
    total: Money
    currency: str
    status: PaymentStatus
    stripe_payment_intent_id: Optional[str] = None
    receipt_url: Optional[str] = None
    paid_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    move_out_month: Optional[str] = None
    created_at: datetime
    listing: Optional[PaymentListingSummary] = None
    tenant: Optional[UserSummary] = None


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]


class PaymentStatusResponse(BaseModel):
    status: PaymentStatus


class ReceiptUrlResponse(BaseModel):
    url: str


class LandlordPaymentSummary(BaseModel):
    """Succeeded payment totals for a landlord."""

    this_month: Money
    last_month: Money
    all_time: Money
    upcoming_payout: Optional[Money] = None


class WebhookAck(BaseModel):
    received: bool = True
