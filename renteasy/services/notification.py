"""
Notification service.
Creation is idempotent per dedupe key so replayed events notify once.
"""

from typing import Any, Dict, List, Optional, Tuple, Union
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.models.notification import Notification, NotificationType
from renteasy.repositories.notification import NotificationRepository
from renteasy.utils.exceptions import NotFoundError, ValidationError
import uuid
import logging

logger = logging.getLogger(__name__)


def build_dedupe_key(event_type: Optional[str], recipient_id, event_id) -> Optional[str]:
    """event_type:recipient:event_id, or None when any part is missing."""
    if not event_type or recipient_id is None or event_id is None:
        return None
    return f"{event_type}:{recipient_id}:{event_id}"


class NotificationService:
    """
    Creates and reads in-app notifications.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.notification_repo = NotificationRepository(db_session)

    async def create_notification(
        self,
        user_id: Optional[uuid.UUID],
        type: Union[NotificationType, str, None],
        title: Optional[str],
        link: Optional[str],
        body: str = "",
        actor_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        event_type: Optional[str] = None,
        event_id: Optional[Any] = None
    ) -> Tuple[Notification, bool]:
        """
        Create a notification, or return the existing one for a replayed event.

        Args:
            user_id: Recipient
            type: Notification category
            title: Short headline
            link: Client route the notification opens
            body: Message text
            actor_id: User who caused the event
            metadata: Free-form JSON context
            event_type: Event name used for deduplication (defaults to type)
            event_id: Event identifier used for deduplication

        Returns:
            Tuple of (notification, created)

        Raises:
            ValidationError: If a required field is missing or the type is unknown
        """
        missing = [
            name for name, value in (("user_id", user_id), ("type", type), ("title", title), ("link", link))
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        try:
            notification_type = NotificationType(type)
        except ValueError:
            raise ValidationError(f"Unknown notification type: {type}")

        dedupe_key = build_dedupe_key(
            event_type or notification_type.value,
            user_id,
            str(event_id) if event_id is not None else None
        )

        if dedupe_key:
            existing = await self.notification_repo.get_by_dedupe_key(dedupe_key)
            if existing:
                logger.debug(f"Notification {dedupe_key} already delivered")
                return existing, False

        payload = {
            "user_id": user_id,
            "actor_id": actor_id,
            "type": notification_type,
            "title": title,
            "body": body or "",
            "link": link,
            "extra": metadata,
            "dedupe_key": dedupe_key,
        }

        try:
            notification = await self.notification_repo.create(payload)
        except IntegrityError:
            # Lost a race with a concurrent delivery of the same event
            existing = await self.notification_repo.get_by_dedupe_key(dedupe_key) if dedupe_key else None
            if existing is None:
                raise
            return existing, False

        logger.info(f"Notification {notification.type.value} created for user {user_id}")
        return notification, True

    async def notify_safely(self, **kwargs) -> Optional[Notification]:
        """
        Create a notification without failing the caller.
        Errors are logged and swallowed.
        """
        try:
            notification, _ = await self.create_notification(**kwargs)
            return notification
        except Exception as e:
            logger.error(f"Failed to send notification '{kwargs.get('title')}': {e}")
            return None

    async def list_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 20
    ) -> List[Notification]:
        limit = max(1, min(limit, 50))
        return await self.notification_repo.list_for_user(user_id, unread_only=unread_only, limit=limit)

    async def unread_count(self, user_id: uuid.UUID) -> int:
        return await self.notification_repo.count_unread(user_id)

    async def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> int:
        """
        Mark one notification read.

        Returns:
            Remaining unread count

        Raises:
            NotFoundError: If the notification does not belong to the user
        """
        if not await self.notification_repo.mark_read(notification_id, user_id):
            raise NotFoundError("Notification", str(notification_id))
        return await self.notification_repo.count_unread(user_id)

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        """Mark everything read and return the remaining unread count."""
        updated = await self.notification_repo.mark_all_read(user_id)
        logger.debug(f"Marked {updated} notifications read for {user_id}")
        return await self.notification_repo.count_unread(user_id)
