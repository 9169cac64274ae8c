"""
Availability slot repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from renteasy.repositories.base import BaseRepository
from renteasy.models.availability import AvailabilitySlot
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)


class AvailabilitySlotRepository(BaseRepository[AvailabilitySlot]):
    """
    Repository for landlord viewing slots.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(AvailabilitySlot, db)

    async def find_overlap(
        self,
        listing_id: uuid.UUID,
        date: str,
        start: datetime,
        end: datetime
    ) -> Optional[AvailabilitySlot]:
        """First slot of the listing on that day intersecting [start, end)."""
        result = await self.db.execute(
            select(AvailabilitySlot)
            .where(
                AvailabilitySlot.listing_id == listing_id,
                AvailabilitySlot.date == date,
                AvailabilitySlot.start_time < end,
                AvailabilitySlot.end_time > start
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_many(self, slots: List[Dict[str, Any]]) -> List[AvailabilitySlot]:
        """Insert several slots in one transaction."""
        try:
            objects = [AvailabilitySlot(**slot) for slot in slots]
            self.db.add_all(objects)
            await self.db.commit()
            for obj in objects:
                await self.db.refresh(obj)
            logger.debug(f"Created {len(objects)} availability slots")
            return objects
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create availability slots: {e}")
            raise

    async def list_for_date(self, listing_id: uuid.UUID, date: str) -> List[AvailabilitySlot]:
        """Slots of a listing on one day, earliest first."""
        result = await self.db.execute(
            select(AvailabilitySlot)
            .where(AvailabilitySlot.listing_id == listing_id, AvailabilitySlot.date == date)
            .order_by(AvailabilitySlot.start_time)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def set_booked(self, slot_id: uuid.UUID, booked: bool) -> Optional[AvailabilitySlot]:
        return await self.update(slot_id, {"is_booked": booked})
