"""
Appointment repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from renteasy.repositories.base import BaseRepository
from renteasy.models.appointment import Appointment, ACTIVE_APPOINTMENT_STATUSES
from datetime import datetime
from typing import Iterable, List, Optional, Set
import uuid
import logging

logger = logging.getLogger(__name__)


class AppointmentRepository(BaseRepository[Appointment]):
    """
    Repository for viewing appointments.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Appointment, db)

    async def get_active_for_slot(self, slot_id: uuid.UUID) -> Optional[Appointment]:
        result = await self.db.execute(
            select(Appointment).where(
                Appointment.slot_id == slot_id,
                Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES)
            )
        )
        return result.scalar_one_or_none()

    async def reserved_slot_ids(self, slot_ids: Iterable[uuid.UUID]) -> Set[uuid.UUID]:
        """Slots among slot_ids that hold a requested or accepted appointment."""
        slot_ids = list(slot_ids)
        if not slot_ids:
            return set()

        result = await self.db.execute(
            select(Appointment.slot_id).where(
                Appointment.slot_id.in_(slot_ids),
                Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES)
            )
        )
        return set(result.scalars().all())

    async def get_for_party(
        self,
        appointment_id: uuid.UUID,
        tenant_id: Optional[uuid.UUID] = None,
        landlord_id: Optional[uuid.UUID] = None
    ) -> Optional[Appointment]:
        """Appointment visible to the given tenant or landlord."""
        query = select(Appointment).where(Appointment.id == appointment_id)
        if tenant_id is not None:
            query = query.where(Appointment.tenant_id == tenant_id)
        if landlord_id is not None:
            query = query.where(Appointment.landlord_id == landlord_id)

        result = await self.db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def list_for_party(
        self,
        tenant_id: Optional[uuid.UUID] = None,
        landlord_id: Optional[uuid.UUID] = None
    ) -> List[Appointment]:
        """Appointments of a tenant or landlord, earliest first."""
        query = select(Appointment)
        if tenant_id is not None:
            query = query.where(Appointment.tenant_id == tenant_id)
        if landlord_id is not None:
            query = query.where(Appointment.landlord_id == landlord_id)

        result = await self.db.execute(
            query.order_by(Appointment.start_time).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count_upcoming_for_landlord(self, landlord_id: uuid.UUID, now: datetime) -> int:
        result = await self.db.execute(
            select(func.count(Appointment.id)).where(
                Appointment.landlord_id == landlord_id,
                Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
                Appointment.start_time >= now
            )
        )
        return result.scalar() or 0
