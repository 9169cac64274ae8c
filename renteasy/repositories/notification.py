"""
Notification repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from renteasy.repositories.base import BaseRepository
from renteasy.models.notification import Notification
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    """
    Repository for user notifications.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    async def get_by_dedupe_key(self, dedupe_key: str) -> Optional[Notification]:
        return await self.get_by_field("dedupe_key", dedupe_key)

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 20
    ) -> List[Notification]:
        """Newest notifications of a user."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))

        query = query.order_by(Notification.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_unread(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False)
            )
        )
        return result.scalar() or 0

    async def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """
        Mark one of the user's notifications as read.

        Returns:
            False if the notification does not belong to the user
        """
        try:
            result = await self.db.execute(
                update(Notification)
                .where(Notification.id == notification_id, Notification.user_id == user_id)
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount > 0
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to mark notification {notification_id} read: {e}")
            raise

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        """Mark every unread notification of the user as read."""
        try:
            result = await self.db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to mark notifications read for {user_id}: {e}")
            raise

    async def mark_read_by_link(self, user_id: uuid.UUID, link: str) -> int:
        """Mark the user's unread notifications pointing at a link as read."""
        try:
            result = await self.db.execute(
                update(Notification)
                .where(
                    Notification.user_id == user_id,
                    Notification.link == link,
                    Notification.is_read.is_(False)
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to mark notifications for {link} read: {e}")
            raise
