"""
Payment model for Stripe-backed rent charges.
A payment covers one or more calendar months and/or a move-out penalty.
"""

from sqlalchemy import String, DateTime, Numeric, JSON, Enum as SQLEnum, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from renteasy.database import Base
from datetime import datetime
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from renteasy.models.listing import Listing
    from renteasy.models.user import User


class PaymentStatus(str, enum.Enum):
    """Settlement state of a payment intent."""
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Payment(Base):
    """
    Rent payment record mirroring a Stripe PaymentIntent.
    Payments are never removed with their rental, listing or users.
    """

    __tablename__ = "payments"

    rental_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rentals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    landlord_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    months_paid: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Month tokens covered by this payment"
    )

    rent_subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    service_charge: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    service_charge_per_month: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0")
    )

    tax: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    platform_fee: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    penalty_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0")
    )

    total: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="bdt")

    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PROCESSING,
        index=True
    )

    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True
    )

    stripe_charge_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    receipt_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    failure_reason: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    move_out_month: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    listing: Mapped["Listing"] = relationship("Listing", lazy="selectin")

    tenant: Mapped["User"] = relationship("User", foreign_keys=[tenant_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, status={self.status}, total={self.total})>"

    @property
    def is_processing(self) -> bool:
        return self.status == PaymentStatus.PROCESSING

    def to_dict(self, include_listing: bool = False, include_tenant: bool = False) -> dict:
        """
        Convert payment to dictionary.

        Args:
            include_listing: Whether to embed a listing summary
            include_tenant: Whether to embed a tenant summary
        """
        result = {
            "id": str(self.id),
            "rental_id": str(self.rental_id),
            "tenant_id": str(self.tenant_id),
            "landlord_id": str(self.landlord_id),
            "listing_id": str(self.listing_id),
            "months_paid": list(self.months_paid or []),
            "rent_subtotal": self.rent_subtotal,
            "service_charge": self.service_charge,
            "service_charge_per_month": self.service_charge_per_month,
            "tax": self.tax,
            "platform_fee": self.platform_fee,
            "penalty_amount": self.penalty_amount,
            "total": self.total,
            "currency": self.currency,
            "status": self.status.value,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "receipt_url": self.receipt_url,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "failure_reason": self.failure_reason,
            "move_out_month": self.move_out_month,
            "created_at": self.created_at.isoformat(),
        }

        if include_listing and self.listing:
            result["listing"] = {
                "id": str(self.listing.id),
                "title": self.listing.title,
                "address": self.listing.address,
            }

        if include_tenant and self.tenant:
            result["tenant"] = self.tenant.to_summary()

        return result


rental_status_index = Index(
    "idx_payments_rental_status",
    Payment.rental_id,
    Payment.status
)

tenant_created_index = Index(
    "idx_payments_tenant_created",
    Payment.tenant_id,
    Payment.created_at.desc()
)

landlord_created_index = Index(
    "idx_payments_landlord_created",
    Payment.landlord_id,
    Payment.created_at.desc()
)
