"""
Availability slot model: viewing windows a landlord opens on a listing.
"""

from sqlalchemy import String, DateTime, Boolean, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from renteasy.database import Base
from datetime import datetime
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from renteasy.models.listing import Listing


class AvailabilitySlot(Base):
    """
    One bookable viewing window.
    A slot is booked once the landlord accepts an appointment for it.
    """

    __tablename__ = "availability_slots"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    landlord_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
        comment="Calendar day of the slot (YYYY-MM-DD)"
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    is_booked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    listing: Mapped["Listing"] = relationship("Listing", lazy="selectin")

    def __repr__(self) -> str:
        return f"<AvailabilitySlot(id={self.id}, listing_id={self.listing_id}, start_time={self.start_time})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "listing_id": str(self.listing_id),
            "landlord_id": str(self.landlord_id),
            "date": self.date,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "is_booked": self.is_booked,
        }


listing_date_index = Index(
    "idx_slots_listing_date_start",
    AvailabilitySlot.listing_id,
    AvailabilitySlot.date,
    AvailabilitySlot.start_time
)

landlord_date_index = Index(
    "idx_slots_landlord_date",
    AvailabilitySlot.landlord_id,
    AvailabilitySlot.date
)
