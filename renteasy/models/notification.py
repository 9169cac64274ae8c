"""
In-app notification model.
"""

from sqlalchemy import String, Text, Boolean, JSON, Enum as SQLEnum, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from renteasy.database import Base
import enum
import uuid
from typing import Any, Dict, Optional


class NotificationType(str, enum.Enum):
    """Notification categories shown in the bell menu."""
    MESSAGE = "MESSAGE"
    BOOKING = "BOOKING"
    PAYMENT = "PAYMENT"
    SUPPORT = "SUPPORT"
    RENTAL = "RENTAL"


class Notification(Base):
    """
    Notification addressed to a single user.
    Rows carrying a dedupe key are created at most once per key.
    """

    __tablename__ = "notifications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Recipient"
    )

    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    type: Mapped[NotificationType] = mapped_column(SQLEnum(NotificationType), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    body: Mapped[str] = mapped_column(Text, nullable=False, default="")

    link: Mapped[str] = mapped_column(String(512), nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # "metadata" is reserved on declarative classes
    extra: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    dedupe_key: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="event_type:recipient:event_id"
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "type": self.type.value,
            "title": self.title,
            "body": self.body,
            "link": self.link,
            "is_read": self.is_read,
            "metadata": self.extra,
            "created_at": self.created_at.isoformat(),
        }


user_created_index = Index(
    "idx_notifications_user_created",
    Notification.user_id,
    Notification.created_at.desc()
)

user_read_index = Index(
    "idx_notifications_user_read",
    Notification.user_id,
    Notification.is_read
)
