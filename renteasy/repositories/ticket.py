"""
Support ticket repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from renteasy.repositories.base import BaseRepository
from renteasy.models.ticket import (
    Ticket,
    TicketMessage,
    TicketPriority,
    TicketStatus,
    TicketType,
    unread_column,
)
from renteasy.models.user import UserRole
from datetime import datetime
from typing import List, Optional, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class TicketRepository(BaseRepository[Ticket]):
    """
    Repository for support tickets.
    Unread counters change through single UPDATE statements.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Ticket, db)

    def _visible_to(self, query, user_id: uuid.UUID, role: UserRole):
        """Tenants see what they opened, staff see what is assigned to them."""
        if role == UserRole.TENANT:
            return query.where(Ticket.created_by_id == user_id)
        return query.where(Ticket.assigned_to_role == role, Ticket.assigned_to_id == user_id)

    async def list_visible(
        self,
        user_id: uuid.UUID,
        role: UserRole,
        type: Optional[TicketType] = None,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        listing_id: Optional[uuid.UUID] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None
    ) -> List[Ticket]:
        """Tickets a user may see, most recently active first."""
        query = self._visible_to(select(Ticket), user_id, role)
        if type is not None:
            query = query.where(Ticket.type == type)
        if status is not None:
            query = query.where(Ticket.status == status)
        if priority is not None:
            query = query.where(Ticket.priority == priority)
        if listing_id is not None:
            query = query.where(Ticket.listing_id == listing_id)
        if created_from is not None:
            query = query.where(Ticket.created_at >= created_from)
        if created_to is not None:
            query = query.where(Ticket.created_at <= created_to)

        query = query.order_by(Ticket.last_message_at.desc(), Ticket.updated_at.desc())
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def _apply(self, ticket_id: uuid.UUID, values: dict) -> None:
        try:
            await self.db.execute(
                update(Ticket)
                .where(Ticket.id == ticket_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update ticket {ticket_id}: {e}")
            raise

    async def record_activity(self, ticket_id: uuid.UUID, unread_role: UserRole, at: datetime, **values) -> None:
        """Bump last_message_at and the recipient's unread counter."""
        column = getattr(Ticket, unread_column(unread_role))
        await self._apply(ticket_id, {"last_message_at": at, column.key: column + 1, **values})

    async def reset_unread(self, ticket_id: uuid.UUID, role: UserRole) -> None:
        await self._apply(ticket_id, {unread_column(role): 0})

    async def unread_totals(self, user_id: uuid.UUID, role: UserRole) -> Tuple[int, int]:
        """
        Unread totals for a user.

        Returns:
            Tuple of (tickets with unread messages, unread messages)
        """
        column = getattr(Ticket, unread_column(role))
        query = self._visible_to(
            select(func.count(Ticket.id), func.coalesce(func.sum(column), 0)),
            user_id,
            role
        ).where(column > 0)

        tickets, messages = (await self.db.execute(query)).one()
        return tickets or 0, int(messages or 0)


class TicketMessageRepository(BaseRepository[TicketMessage]):
    """
    Repository for ticket thread messages.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(TicketMessage, db)

    async def list_for_ticket(self, ticket_id: uuid.UUID) -> List[TicketMessage]:
        """Thread messages, oldest first."""
        result = await self.db.execute(
            select(TicketMessage)
            .where(TicketMessage.ticket_id == ticket_id)
            .order_by(TicketMessage.created_at)
        )
        return list(result.scalars().all())
