"""
Appointment model: a tenant's viewing request for an availability slot.
"""

from sqlalchemy import DateTime, Integer, Enum as SQLEnum, Index, ForeignKey, or_
from sqlalchemy.orm import Mapped, mapped_column, relationship
from renteasy.database import Base
from datetime import datetime
import enum
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from renteasy.models.listing import Listing
    from renteasy.models.user import User


class AppointmentStatus(str, enum.Enum):
    """Viewing request state."""
    REQUESTED = "REQUESTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.REQUESTED, AppointmentStatus.ACCEPTED)


class Appointment(Base):
    """
    Viewing appointment between a tenant and a landlord.
    Start and end times are copied from the slot when it is requested.
    """

    __tablename__ = "appointments"

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

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    slot_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("availability_slots.id", ondelete="CASCADE"),
        nullable=False
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus),
        nullable=False,
        default=AppointmentStatus.REQUESTED,
        index=True
    )

    reschedule_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    listing: Mapped["Listing"] = relationship("Listing", lazy="selectin")

    tenant: Mapped["User"] = relationship("User", foreign_keys=[tenant_id], lazy="selectin")

    landlord: Mapped["User"] = relationship("User", foreign_keys=[landlord_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, slot_id={self.slot_id}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_APPOINTMENT_STATUSES

    def to_dict(self, include_parties: bool = False) -> dict:
        """
        Convert appointment to dictionary.

        Args:
            include_parties: Whether to embed listing, tenant and landlord summaries
        """
        result = {
            "id": str(self.id),
            "listing_id": str(self.listing_id),
            "landlord_id": str(self.landlord_id),
            "tenant_id": str(self.tenant_id),
            "slot_id": str(self.slot_id),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "status": self.status.value,
            "reschedule_count": self.reschedule_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if include_parties:
            if self.listing:
                result["listing"] = {
                    "id": str(self.listing.id),
                    "title": self.listing.title,
                    "address": self.listing.address,
                }
            if self.tenant:
                result["tenant"] = self.tenant.to_summary()
            if self.landlord:
                result["landlord"] = self.landlord.to_summary()

        return result


# One active appointment per slot
active_slot_index = Index(
    "uq_appointments_active_slot",
    Appointment.slot_id,
    unique=True,
    postgresql_where=or_(
        Appointment.status == AppointmentStatus.REQUESTED,
        Appointment.status == AppointmentStatus.ACCEPTED
    ),
    sqlite_where=or_(
        Appointment.status == AppointmentStatus.REQUESTED,
        Appointment.status == AppointmentStatus.ACCEPTED
    )
)

landlord_start_index = Index(
    "idx_appointments_landlord_start",
    Appointment.landlord_id,
    Appointment.start_time
)

tenant_start_index = Index(
    "idx_appointments_tenant_start",
    Appointment.tenant_id,
    Appointment.start_time
)
