"""
Rental repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from renteasy.repositories.base import BaseRepository
from renteasy.models.rental import Rental, RentalStatus
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)


class RentalRepository(BaseRepository[Rental]):
    """
    Repository for tenant rentals.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Rental, db)

    async def get_active_for_listing(self, tenant_id: uuid.UUID, listing_id: uuid.UUID) -> Optional[Rental]:
        """The tenant's active rental of a listing, if any."""
        result = await self.db.execute(
            select(Rental)
            .where(
                Rental.tenant_id == tenant_id,
                Rental.listing_id == listing_id,
                Rental.status == RentalStatus.ACTIVE
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_tenant(
        self,
        rental_id: uuid.UUID,
        tenant_id: uuid.UUID,
        active_only: bool = True
    ) -> Optional[Rental]:
        """
        Get a rental owned by a tenant.

        Args:
            rental_id: UUID of the rental
            tenant_id: UUID of the tenant who must own it
            active_only: Ignore ended rentals
        """
        query = select(Rental).where(Rental.id == rental_id, Rental.tenant_id == tenant_id)
        if active_only:
            query = query.where(Rental.status == RentalStatus.ACTIVE)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_active_for_tenant(self, tenant_id: uuid.UUID) -> List[Rental]:
        """Active rentals of a tenant, newest first."""
        return await self.get_multi(
            limit=None,
            filters={"tenant_id": tenant_id, "status": RentalStatus.ACTIVE}
        )

    async def count_active_for_listing(self, listing_id: uuid.UUID) -> int:
        """Number of active rentals on a listing."""
        result = await self.db.execute(
            select(func.count(Rental.id)).where(
                Rental.listing_id == listing_id,
                Rental.status == RentalStatus.ACTIVE
            )
        )
        return result.scalar() or 0
