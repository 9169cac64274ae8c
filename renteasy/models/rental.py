"""
Rental model: a tenant's occupancy of a listing.
"""

from sqlalchemy import String, DateTime, Enum as SQLEnum, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from renteasy.database import Base
from datetime import datetime
import enum
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from renteasy.models.listing import Listing
    from renteasy.models.user import User


class RentalStatus(str, enum.Enum):
    """Rental lifecycle state."""
    ACTIVE = "active"
    ENDED = "ended"


class Rental(Base):
    """
    A tenant's occupancy record for a listing.
    Rent is owed for every month from start_month until the rental ends.
    """

    __tablename__ = "rentals"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    landlord_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    start_month: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        comment="First month rent is owed (YYYY-MM)"
    )

    status: Mapped[RentalStatus] = mapped_column(
        SQLEnum(RentalStatus),
        nullable=False,
        default=RentalStatus.ACTIVE,
        index=True
    )

    move_out_notice_month: Mapped[Optional[str]] = mapped_column(
        String(7),
        nullable=True,
        comment="Month the tenant intends to vacate"
    )

    move_out_notice_given_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    end_month: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    listing: Mapped["Listing"] = relationship("Listing", lazy="selectin")

    tenant: Mapped["User"] = relationship("User", foreign_keys=[tenant_id], lazy="selectin")

    landlord: Mapped["User"] = relationship("User", foreign_keys=[landlord_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Rental(id={self.id}, listing_id={self.listing_id}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status == RentalStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "tenant_id": str(self.tenant_id),
            "landlord_id": str(self.landlord_id),
            "listing_id": str(self.listing_id),
            "start_month": self.start_month,
            "status": self.status.value,
            "move_out_notice_month": self.move_out_notice_month,
            "move_out_notice_given_at": self.move_out_notice_given_at.isoformat() if self.move_out_notice_given_at else None,
            "end_month": self.end_month,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# One active rental per tenant and listing
active_rental_index = Index(
    "uq_rentals_active_tenant_listing",
    Rental.tenant_id,
    Rental.listing_id,
    unique=True,
    postgresql_where=Rental.status == RentalStatus.ACTIVE,
    sqlite_where=Rental.status == RentalStatus.ACTIVE
)

tenant_status_index = Index(
    "idx_rentals_tenant_status",
    Rental.tenant_id,
    Rental.status
)

listing_status_index = Index(
    "idx_rentals_listing_status",
    Rental.listing_id,
    Rental.status
)
