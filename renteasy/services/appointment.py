"""
Viewing appointments: landlord availability slots and tenant viewing requests.
Slot dates and times are read as UTC.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.database import utcnow
from renteasy.models.appointment import Appointment, AppointmentStatus
from renteasy.models.availability import AvailabilitySlot
from renteasy.models.listing import Listing
from renteasy.models.notification import NotificationType
from renteasy.models.user import User, UserRole
from renteasy.repositories.appointment import AppointmentRepository
from renteasy.repositories.availability import AvailabilitySlotRepository
from renteasy.repositories.listing import ListingRepository
from renteasy.services.notification import NotificationService
from renteasy.utils.exceptions import (
    AppointmentNotFoundError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    ListingNotFoundError,
    SlotNotFoundError,
)
import uuid
import logging

logger = logging.getLogger(__name__)

STATUS_ORDER = {
    AppointmentStatus.REQUESTED: 0,
    AppointmentStatus.ACCEPTED: 1,
    AppointmentStatus.REJECTED: 2,
    AppointmentStatus.CANCELLED: 3,
}


def as_utc(value: datetime) -> datetime:
    """Attach UTC to datetimes read back without tzinfo."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_slot_window(date: str, start_time: str, end_time: str) -> Tuple[datetime, datetime]:
    """
    Combine a day and two clock times into a UTC window.

    Args:
        date: Day in YYYY-MM-DD form
        start_time: Opening time in HH:MM form
        end_time: Closing time in HH:MM form

    Raises:
        BadRequestError: If a value is malformed or the window is empty
    """
    try:
        start = datetime.strptime(f"{date} {start_time}", "%Y-%m-%d %H:%M")
        end = datetime.strptime(f"{date} {end_time}", "%Y-%m-%d %H:%M")
    except (TypeError, ValueError):
        raise BadRequestError("Invalid date or time.")

    if end <= start:
        raise BadRequestError("End time must be after start time.")
    return start.replace(tzinfo=timezone.utc), end.replace(tzinfo=timezone.utc)


def split_window(start: datetime, end: datetime, slot_count: int) -> List[Tuple[datetime, datetime]]:
    """Cut [start, end) into slot_count equal consecutive windows."""
    step = (end - start) / slot_count
    windows = []
    for index in range(slot_count):
        slot_end = end if index == slot_count - 1 else start + step * (index + 1)
        windows.append((start + step * index, slot_end))
    return windows


def sort_appointments(appointments: List[Appointment]) -> List[Appointment]:
    """Requested first, then accepted, rejected and cancelled; earliest first within each."""
    return sorted(appointments, key=lambda item: (STATUS_ORDER[item.status], as_utc(item.start_time)))


class AppointmentService:
    """
    Availability publishing and the viewing request workflow.
    A slot holds at most one requested or accepted appointment.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.slot_repo = AvailabilitySlotRepository(db_session)
        self.appointment_repo = AppointmentRepository(db_session)
        self.listing_repo = ListingRepository(db_session)
        self.notifications = NotificationService(db_session)

    async def _owned_listing(self, listing_id: uuid.UUID, user: User) -> Listing:
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        if listing.owner_id != user.id and user.role != UserRole.ADMIN:
            raise ForbiddenError("You can only manage availability for your own listings")
        return listing

    async def create_availability(
        self,
        listing_id: uuid.UUID,
        user: User,
        date: str,
        start_time: str,
        end_time: str,
        slot_count: int = 1
    ) -> List[AvailabilitySlot]:
        """
        Open viewing slots on a listing.

        The window from start_time to end_time is split into slot_count equal
        slots.

        Raises:
            BadRequestError: If the window or slot count is invalid
            ListingNotFoundError: If the listing does not exist
            ForbiddenError: If the user does not own the listing
            ConflictError: If the window overlaps existing slots
        """
        start, end = parse_slot_window(date, start_time, end_time)
        if slot_count < 1:
            raise BadRequestError("slot_count must be a positive number.")

        listing = await self._owned_listing(listing_id, user)
        if await self.slot_repo.find_overlap(listing.id, date, start, end):
            raise ConflictError("Availability already exists in this time window.")

        slots = await self.slot_repo.create_many([
            {
                "listing_id": listing.id,
                "landlord_id": listing.owner_id,
                "date": date,
                "start_time": slot_start,
                "end_time": slot_end,
                "is_booked": False,
            }
            for slot_start, slot_end in split_window(start, end, slot_count)
        ])
        logger.info(f"Opened {len(slots)} viewing slots on listing {listing.id} for {date}")
        return slots

    async def get_availability(self, listing_id: uuid.UUID, date: str) -> List[AvailabilitySlot]:
        """Future, unbooked and unrequested slots of a listing on a day."""
        try:
            datetime.strptime(date, "%Y-%m-%d")
        except (TypeError, ValueError):
            raise BadRequestError("Date must be in YYYY-MM-DD format.")

        if not await self.listing_repo.get_by_id(listing_id):
            raise ListingNotFoundError(str(listing_id))

        now = utcnow()
        slots = [
            slot for slot in await self.slot_repo.list_for_date(listing_id, date)
            if not slot.is_booked and as_utc(slot.start_time) >= now
        ]
        reserved = await self.appointment_repo.reserved_slot_ids(slot.id for slot in slots)
        return [slot for slot in slots if slot.id not in reserved]

    async def _bookable_slot(self, slot_id: uuid.UUID, listing_id: uuid.UUID) -> AvailabilitySlot:
        slot = await self.slot_repo.get_by_id(slot_id, refresh=True)
        if not slot or slot.listing_id != listing_id:
            raise SlotNotFoundError()
        if slot.is_booked:
            raise ConflictError("Slot is already booked.")
        if as_utc(slot.start_time) < utcnow():
            raise BadRequestError("Slot is no longer available.")
        if await self.appointment_repo.get_active_for_slot(slot.id):
            raise ConflictError("Slot already has an active request.")
        return slot

    async def request_appointment(self, listing_id: uuid.UUID, slot_id: uuid.UUID, tenant: User) -> Appointment:
        """
        Request a viewing of a listing in one of its slots.

        Raises:
            SlotNotFoundError: If the slot does not belong to the listing
            ConflictError: If the slot is booked or already requested
            BadRequestError: If the slot has started
            ListingNotFoundError: If the listing does not exist
        """
        tenant_id = tenant.id
        slot = await self._bookable_slot(slot_id, listing_id)
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        if slot.landlord_id != listing.owner_id:
            raise BadRequestError("Slot does not match listing landlord.")

        landlord_id = listing.owner_id
        title = listing.title
        try:
            appointment = await self.appointment_repo.create({
                "listing_id": listing_id,
                "landlord_id": landlord_id,
                "tenant_id": tenant_id,
                "slot_id": slot.id,
                "start_time": slot.start_time,
                "end_time": slot.end_time,
                "status": AppointmentStatus.REQUESTED,
            })
        except IntegrityError:
            # Another tenant requested the slot first
            raise ConflictError("Slot already has an active request.")

        logger.info(f"Viewing {appointment.id} requested by tenant {tenant_id} for slot {slot_id}")
        await self.notifications.notify_safely(
            user_id=landlord_id,
            actor_id=tenant_id,
            type=NotificationType.BOOKING,
            title="New viewing request",
            body=f"A tenant requested a viewing of {title}.",
            link="/dashboard/landlord/appointments",
            metadata={"appointment_id": str(appointment.id), "listing_id": str(listing_id)},
            event_type="APPOINTMENT_REQUESTED",
            event_id=appointment.id,
        )
        return appointment

    async def reschedule_appointment(
        self,
        appointment_id: uuid.UUID,
        new_slot_id: uuid.UUID,
        tenant: User
    ) -> Appointment:
        """
        Move a viewing to another slot of the same listing.
        The appointment goes back to requested and an accepted slot is released.
        """
        tenant_id = tenant.id
        appointment = await self.appointment_repo.get_for_party(appointment_id, tenant_id=tenant_id)
        if not appointment:
            raise AppointmentNotFoundError(str(appointment_id))
        if appointment.status == AppointmentStatus.CANCELLED:
            raise BadRequestError("Cancelled appointments cannot be rescheduled.")
        if appointment.slot_id == new_slot_id:
            raise BadRequestError("Please choose a different slot.")

        slot = await self._bookable_slot(new_slot_id, appointment.listing_id)
        listing = await self.listing_repo.get_by_id(appointment.listing_id)
        if not listing:
            raise ListingNotFoundError(str(appointment.listing_id))
        if slot.landlord_id != listing.owner_id:
            raise BadRequestError("Slot does not match listing landlord.")

        old_slot_id = appointment.slot_id
        was_accepted = appointment.status == AppointmentStatus.ACCEPTED
        reschedule_count = appointment.reschedule_count + 1
        try:
            await self.appointment_repo.update(appointment_id, {
                "slot_id": slot.id,
                "start_time": slot.start_time,
                "end_time": slot.end_time,
                "status": AppointmentStatus.REQUESTED,
                "reschedule_count": reschedule_count,
            })
        except IntegrityError:
            raise ConflictError("Slot already has an active request.")

        if was_accepted:
            await self.slot_repo.set_booked(old_slot_id, False)

        logger.info(f"Viewing {appointment_id} moved from slot {old_slot_id} to {slot.id}")
        await self.notifications.notify_safely(
            user_id=listing.owner_id,
            actor_id=tenant_id,
            type=NotificationType.BOOKING,
            title="Viewing reschedule requested",
            body=f"A tenant asked to move their viewing of {listing.title}.",
            link="/dashboard/landlord/appointments",
            metadata={"appointment_id": str(appointment_id), "slot_id": str(slot.id)},
            event_type="APPOINTMENT_RESCHEDULED",
            event_id=f"{appointment_id}:{reschedule_count}",
        )
        return await self.appointment_repo.get_by_id(appointment_id, refresh=True)

    async def _landlord_appointment(self, appointment_id: uuid.UUID, landlord: User) -> Appointment:
        landlord_id = None if landlord.role == UserRole.ADMIN else landlord.id
        appointment = await self.appointment_repo.get_for_party(appointment_id, landlord_id=landlord_id)
        if not appointment:
            raise AppointmentNotFoundError(str(appointment_id))
        return appointment

    async def _decide(
        self,
        appointment_id: uuid.UUID,
        landlord: User,
        outcome: AppointmentStatus
    ) -> Appointment:
        appointment = await self._landlord_appointment(appointment_id, landlord)
        booked = outcome == AppointmentStatus.ACCEPTED
        verb = "accepted" if booked else "rejected"

        if appointment.status == outcome:
            await self.slot_repo.set_booked(appointment.slot_id, booked)
            return await self.appointment_repo.get_by_id(appointment_id, refresh=True)
        if appointment.status != AppointmentStatus.REQUESTED:
            raise BadRequestError(f"Only requested appointments can be {verb}.")

        slot_id = appointment.slot_id
        tenant_id = appointment.tenant_id
        title = appointment.listing.title if appointment.listing else "the property"

        await self.appointment_repo.update(appointment_id, {"status": outcome})
        await self.slot_repo.set_booked(slot_id, booked)
        logger.info(f"Viewing {appointment_id} {verb}")

        await self.notifications.notify_safely(
            user_id=tenant_id,
            actor_id=landlord.id,
            type=NotificationType.BOOKING,
            title="Viewing confirmed" if booked else "Viewing request rejected",
            body=f"Your viewing of {title} was {verb}.",
            link="/dashboard/tenant/appointments",
            metadata={"appointment_id": str(appointment_id)},
            event_type=f"APPOINTMENT_{outcome.value}",
            event_id=appointment_id,
        )
        return await self.appointment_repo.get_by_id(appointment_id, refresh=True)

    async def accept_appointment(self, appointment_id: uuid.UUID, landlord: User) -> Appointment:
        """Accept a requested viewing and book its slot. Accepting twice is a no-op."""
        return await self._decide(appointment_id, landlord, AppointmentStatus.ACCEPTED)

    async def reject_appointment(self, appointment_id: uuid.UUID, landlord: User) -> Appointment:
        """Reject a requested viewing and release its slot. Rejecting twice is a no-op."""
        return await self._decide(appointment_id, landlord, AppointmentStatus.REJECTED)

    async def tenant_appointments(self, tenant: User) -> List[Dict[str, Any]]:
        appointments = await self.appointment_repo.list_for_party(tenant_id=tenant.id)
        return [item.to_dict(include_parties=True) for item in sort_appointments(appointments)]

    async def landlord_appointments(self, landlord: User) -> List[Dict[str, Any]]:
        appointments = await self.appointment_repo.list_for_party(landlord_id=landlord.id)
        return [item.to_dict(include_parties=True) for item in sort_appointments(appointments)]

    async def landlord_upcoming_count(self, landlord: User, now: Optional[datetime] = None) -> int:
        """Requested or accepted viewings that have not started yet."""
        return await self.appointment_repo.count_upcoming_for_landlord(landlord.id, now or utcnow())
