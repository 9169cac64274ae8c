"""
Support ticket models.
Technical tickets go to an administrator, property tickets to the listing's landlord.
"""

from sqlalchemy import String, Text, Integer, DateTime, Enum as SQLEnum, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from renteasy.database import Base, utcnow
from renteasy.models.user import UserRole
from datetime import datetime
import enum
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from renteasy.models.listing import Listing
    from renteasy.models.user import User


class TicketType(str, enum.Enum):
    TECHNICAL = "technical"
    PROPERTY = "property"


class TicketStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Ticket(Base):
    """
    Support request opened by a tenant.
    Each party keeps its own unread message counter.
    """

    __tablename__ = "tickets"

    created_by_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    assigned_to_role: Mapped[UserRole] = mapped_column(SQLEnum(UserRole), nullable=False)

    assigned_to_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    listing_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("listings.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    rental_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("rentals.id", ondelete="SET NULL"),
        nullable=True
    )

    subject: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    type: Mapped[TicketType] = mapped_column(SQLEnum(TicketType), nullable=False)

    status: Mapped[TicketStatus] = mapped_column(
        SQLEnum(TicketStatus),
        nullable=False,
        default=TicketStatus.OPEN
    )

    priority: Mapped[TicketPriority] = mapped_column(
        SQLEnum(TicketPriority),
        nullable=False,
        default=TicketPriority.MEDIUM
    )

    last_message_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow
    )

    unread_tenant: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    unread_admin: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    unread_landlord: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    listing: Mapped[Optional["Listing"]] = relationship("Listing", lazy="selectin")

    created_by: Mapped["User"] = relationship("User", foreign_keys=[created_by_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, type={self.type}, status={self.status})>"

    def unread_for(self, role: UserRole) -> int:
        return getattr(self, unread_column(role))

    def to_dict(self, viewer_role: Optional[UserRole] = None) -> dict:
        """
        Convert ticket to dictionary.

        Args:
            viewer_role: Role whose unread counter is reported
        """
        return {
            "id": str(self.id),
            "created_by_id": str(self.created_by_id),
            "assigned_to_role": self.assigned_to_role.value,
            "assigned_to_id": str(self.assigned_to_id),
            "listing_id": str(self.listing_id) if self.listing_id else None,
            "rental_id": str(self.rental_id) if self.rental_id else None,
            "listing_title": self.listing.title if self.listing else None,
            "tenant_name": self.created_by.full_name if self.created_by else None,
            "subject": self.subject,
            "description": self.description,
            "type": self.type.value,
            "status": self.status.value,
            "priority": self.priority.value,
            "last_message_at": self.last_message_at.isoformat(),
            "unread_count": self.unread_for(viewer_role) if viewer_role else 0,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def unread_column(role: UserRole) -> str:
    """Name of the unread counter kept for a role."""
    return f"unread_{UserRole(role).value}"


class TicketMessage(Base):
    """A message in a ticket thread."""

    __tablename__ = "ticket_messages"

    ticket_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    sender_role: Mapped[UserRole] = mapped_column(SQLEnum(UserRole), nullable=False)

    sender_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "ticket_id": str(self.ticket_id),
            "sender_role": self.sender_role.value,
            "sender_id": str(self.sender_id),
            "text": self.text,
            "created_at": self.created_at.isoformat(),
        }


created_by_index = Index("idx_tickets_created_by_last", Ticket.created_by_id, Ticket.last_message_at.desc())

assignee_index = Index("idx_tickets_assignee_last", Ticket.assigned_to_id, Ticket.last_message_at.desc())

type_status_index = Index("idx_tickets_type_status_priority", Ticket.type, Ticket.status, Ticket.priority)

thread_index = Index("idx_ticket_messages_thread", TicketMessage.ticket_id, TicketMessage.created_at)
