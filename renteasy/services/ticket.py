"""
Support tickets opened by tenants.

Technical tickets are routed to an administrator and property tickets to the
landlord of the rented listing. Every message bumps the other party's unread
counter and sends them a notification.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.database import utcnow
from renteasy.models.notification import NotificationType
from renteasy.models.ticket import Ticket, TicketMessage, TicketPriority, TicketStatus, TicketType
from renteasy.models.user import User, UserRole
from renteasy.repositories.listing import ListingRepository
from renteasy.repositories.notification import NotificationRepository
from renteasy.repositories.rental import RentalRepository
from renteasy.repositories.ticket import TicketMessageRepository, TicketRepository
from renteasy.repositories.user import UserRepository
from renteasy.services.notification import NotificationService
from renteasy.utils.exceptions import (
    BadRequestError,
    ForbiddenError,
    ListingNotFoundError,
    TicketNotFoundError,
)
import uuid
import logging

logger = logging.getLogger(__name__)


def ticket_link(ticket_id: uuid.UUID) -> str:
    return f"/support/tickets/{ticket_id}"


def parse_date_filter(value: Optional[str], name: str) -> Optional[datetime]:
    """ISO date or datetime query value as UTC; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise BadRequestError(f"Invalid '{name}' date")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class TicketService:
    """
    Ticket routing, threads and unread tracking.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.ticket_repo = TicketRepository(db_session)
        self.message_repo = TicketMessageRepository(db_session)
        self.listing_repo = ListingRepository(db_session)
        self.rental_repo = RentalRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.notification_repo = NotificationRepository(db_session)
        self.notifications = NotificationService(db_session)

    async def _route(self, tenant: User, type: TicketType, listing_id: Optional[uuid.UUID]) -> Dict[str, Any]:
        """Assignee and context columns for a new ticket."""
        if type == TicketType.TECHNICAL:
            admin = await self.user_repo.get_first_by_role(UserRole.ADMIN)
            if not admin:
                raise BadRequestError("No admin available to receive ticket")
            return {"assigned_to_role": UserRole.ADMIN, "assigned_to_id": admin.id}

        if not listing_id:
            raise BadRequestError("Listing is required for property tickets")
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        rental = await self.rental_repo.get_active_for_listing(tenant.id, listing_id)
        if not rental:
            raise ForbiddenError("You must be an active renter to open this ticket")

        return {
            "assigned_to_role": UserRole.LANDLORD,
            "assigned_to_id": listing.owner_id,
            "listing_id": listing.id,
            "rental_id": rental.id,
        }

    async def create_ticket(
        self,
        tenant: User,
        type: TicketType,
        subject: str,
        description: str,
        priority: TicketPriority = TicketPriority.MEDIUM,
        listing_id: Optional[uuid.UUID] = None
    ) -> Ticket:
        """
        Open a ticket and post its description as the first message.

        Raises:
            BadRequestError: If text is missing, the listing is missing for a
                property ticket, or no admin exists for a technical one
            ListingNotFoundError: If the listing does not exist
            ForbiddenError: If the tenant does not rent the listing
        """
        subject = (subject or "").strip()
        description = (description or "").strip()
        if not subject or not description:
            raise BadRequestError("Subject and description are required")

        tenant_id = tenant.id
        routing = await self._route(tenant, type, listing_id)
        assignee_role = routing["assigned_to_role"]
        assignee_id = routing["assigned_to_id"]

        ticket = await self.ticket_repo.create({
            **routing,
            "created_by_id": tenant_id,
            "subject": subject,
            "description": description,
            "type": type,
            "priority": priority,
            "status": TicketStatus.OPEN,
            "last_message_at": utcnow(),
            f"unread_{assignee_role.value}": 1,
        })
        ticket_id = ticket.id
        await self.message_repo.create({
            "ticket_id": ticket_id,
            "sender_role": UserRole.TENANT,
            "sender_id": tenant_id,
            "text": description,
        })
        logger.info(f"Ticket {ticket_id} ({type.value}) opened by {tenant_id} for {assignee_role.value} {assignee_id}")

        await self.notifications.notify_safely(
            user_id=assignee_id,
            actor_id=tenant_id,
            type=NotificationType.SUPPORT,
            title="New support ticket",
            body=subject,
            link=ticket_link(ticket_id),
            metadata={"ticket_id": str(ticket_id), "ticket_type": type.value},
            event_type="TICKET_CREATED",
            event_id=ticket_id,
        )
        return await self.ticket_repo.get_by_id(ticket_id, refresh=True)

    async def _accessible(self, ticket_id: uuid.UUID, user: User) -> Ticket:
        """Load a ticket the user opened or is assigned to."""
        ticket = await self.ticket_repo.get_by_id(ticket_id, refresh=True)
        if not ticket:
            raise TicketNotFoundError(str(ticket_id))

        if user.role == UserRole.TENANT:
            allowed = ticket.created_by_id == user.id
        else:
            allowed = ticket.assigned_to_role == user.role and ticket.assigned_to_id == user.id
        if not allowed:
            raise ForbiddenError("Forbidden")
        return ticket

    async def get_ticket(self, ticket_id: uuid.UUID, user: User) -> Tuple[Ticket, List[TicketMessage]]:
        ticket = await self._accessible(ticket_id, user)
        return ticket, await self.message_repo.list_for_ticket(ticket.id)

    async def add_message(self, ticket_id: uuid.UUID, user: User, text: str) -> TicketMessage:
        """
        Post a reply to a ticket thread.
        The tenant's replies go to the assignee; staff replies go to the tenant.
        """
        text = (text or "").strip()
        if not text:
            raise BadRequestError("Message text is required")

        ticket = await self._accessible(ticket_id, user)
        if user.role == UserRole.TENANT:
            recipient_role, recipient_id = ticket.assigned_to_role, ticket.assigned_to_id
        else:
            recipient_role, recipient_id = UserRole.TENANT, ticket.created_by_id
        subject = ticket.subject
        sender_id = user.id

        message = await self.message_repo.create({
            "ticket_id": ticket_id,
            "sender_role": user.role,
            "sender_id": sender_id,
            "text": text,
        })
        await self.ticket_repo.record_activity(ticket_id, recipient_role, utcnow())

        await self.notifications.notify_safely(
            user_id=recipient_id,
            actor_id=sender_id,
            type=NotificationType.SUPPORT,
            title=f"New reply on {subject}",
            body=text[:200],
            link=ticket_link(ticket_id),
            metadata={"ticket_id": str(ticket_id), "message_id": str(message.id)},
            event_type="TICKET_REPLY",
            event_id=message.id,
        )
        return message

    async def mark_read(self, ticket_id: uuid.UUID, user: User) -> Dict[str, int]:
        """Clear the user's unread counter and the ticket's notifications."""
        await self._accessible(ticket_id, user)
        await self.ticket_repo.reset_unread(ticket_id, user.role)
        await self.notification_repo.mark_read_by_link(user.id, ticket_link(ticket_id))
        return await self.unread_summary(user)

    async def update_status(self, ticket_id: uuid.UUID, user: User, status: TicketStatus) -> Ticket:
        """
        Change a ticket's status and tell the tenant.

        Raises:
            ForbiddenError: If the user is a tenant, the wrong kind of staff for
                the ticket type, or not the assignee
        """
        if user.role == UserRole.TENANT:
            raise ForbiddenError("Tenants cannot change ticket status")

        ticket = await self._accessible(ticket_id, user)
        required_role = UserRole.ADMIN if ticket.type == TicketType.TECHNICAL else UserRole.LANDLORD
        if user.role != required_role:
            raise ForbiddenError("Forbidden")
        if ticket.status == status:
            return ticket

        tenant_id = ticket.created_by_id
        subject = ticket.subject
        await self.ticket_repo.record_activity(ticket_id, UserRole.TENANT, utcnow(), status=status)
        logger.info(f"Ticket {ticket_id} moved to {status.value} by {user.id}")

        await self.notifications.notify_safely(
            user_id=tenant_id,
            actor_id=user.id,
            type=NotificationType.SUPPORT,
            title="Ticket status updated",
            body=f"{subject} is now {status.value.replace('_', ' ')}.",
            link=ticket_link(ticket_id),
            metadata={"ticket_id": str(ticket_id), "status": status.value},
            event_type="TICKET_STATUS_CHANGED",
            event_id=f"{ticket_id}:{status.value}",
        )
        return await self.ticket_repo.get_by_id(ticket_id, refresh=True)

    async def list_tickets(
        self,
        user: User,
        type: Optional[TicketType] = None,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        listing_id: Optional[uuid.UUID] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None
    ) -> List[Ticket]:
        """Tickets the user opened (tenants) or is assigned (staff)."""
        if created_from and created_to and created_from > created_to:
            raise BadRequestError("'from' must not be after 'to'")

        return await self.ticket_repo.list_visible(
            user.id,
            user.role,
            type=type,
            status=status,
            priority=priority,
            listing_id=listing_id,
            created_from=created_from,
            created_to=created_to,
        )

    async def unread_summary(self, user: User) -> Dict[str, int]:
        tickets, messages = await self.ticket_repo.unread_totals(user.id, user.role)
        return {"total_unread_tickets": tickets, "total_unread_messages": messages}
