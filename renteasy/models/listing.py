"""
Listing model for rental properties.
Holds rent terms, location data and availability status.
"""

from sqlalchemy import String, Text, Integer, Numeric, Boolean, JSON, Enum as SQLEnum, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from renteasy.database import Base
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from renteasy.models.user import User


class ListingStatus(str, enum.Enum):
    """Listing availability. Archived listings are occupied or withdrawn."""
    ACTIVE = "active"
    ARCHIVED = "archived"


class Listing(Base):
    """
    Listing model for a property offered for monthly rent.
    """

    __tablename__ = "listings"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Listing title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Detailed listing description"
    )

    rent: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        index=True,
        comment="Monthly rent"
    )

    service_charge: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0"),
        comment="Monthly service charge added to rent"
    )

    rent_start_month: Mapped[Optional[str]] = mapped_column(
        String(7),
        nullable=True,
        comment="First rentable month (YYYY-MM)"
    )

    address: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Street address"
    )

    latitude: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=8),
        nullable=True
    )

    longitude: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=11, scale=8),
        nullable=True
    )

    room_type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="Entire Place",
        comment="Room type label"
    )

    beds: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    baths: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    amenities: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    photos: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[ListingStatus] = mapped_column(
        SQLEnum(ListingStatus),
        nullable=False,
        default=ListingStatus.ACTIVE,
        index=True,
        comment="Whether the listing can be rented"
    )

    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the landlord who owns this listing"
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="listings",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title={self.title[:30]}, rent={self.rent})>"

    @property
    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE

    @property
    def thumbnail(self) -> Optional[str]:
        return self.photos[0] if self.photos else None

    def to_dict(self) -> dict:
        """Full representation of the listing."""
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "rent": self.rent,
            "service_charge": self.service_charge,
            "rent_start_month": self.rent_start_month,
            "address": self.address,
            "latitude": float(self.latitude) if self.latitude is not None else None,
            "longitude": float(self.longitude) if self.longitude is not None else None,
            "room_type": self.room_type,
            "beds": self.beds,
            "baths": self.baths,
            "amenities": list(self.amenities or []),
            "photos": list(self.photos or []),
            "status": self.status.value,
            "featured": self.featured,
            "owner_id": str(self.owner_id),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def to_summary(self) -> dict:
        """Compact listing view embedded in rental and payment responses."""
        return {
            "id": str(self.id),
            "title": self.title,
            "address": self.address,
            "rent": self.rent,
            "service_charge": self.service_charge or Decimal("0"),
            "rent_start_month": self.rent_start_month,
            "room_type": self.room_type,
            "photos": list(self.photos or []),
            "thumbnail": self.thumbnail,
        }


owner_status_index = Index(
    "idx_listings_owner_status",
    Listing.owner_id,
    Listing.status
)

search_index = Index(
    "idx_listings_status_rent",
    Listing.status,
    Listing.rent
)
