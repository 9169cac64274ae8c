"""
Listing repository with search and filtering.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, desc
from renteasy.repositories.base import BaseRepository
from renteasy.models.listing import Listing, ListingStatus
from renteasy.schemas.listing import ListingSearchFilters
from typing import List, Dict, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class ListingRepository(BaseRepository[Listing]):
    """
    Repository for rental listings.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Listing, db)

    def _build_filter_conditions(self, filters: ListingSearchFilters) -> list:
        conditions = []

        if filters.query:
            pattern = f"%{filters.query.strip()}%"
            conditions.append(
                or_(
                    Listing.title.ilike(pattern),
                    Listing.address.ilike(pattern),
                    Listing.description.ilike(pattern)
                )
            )

        if filters.min_rent is not None:
            conditions.append(Listing.rent >= filters.min_rent)

        if filters.max_rent is not None:
            conditions.append(Listing.rent <= filters.max_rent)

        if filters.room_type:
            conditions.append(Listing.room_type == filters.room_type)

        if filters.status is not None:
            conditions.append(Listing.status == filters.status)

        if filters.owner_id:
            conditions.append(Listing.owner_id == uuid.UUID(str(filters.owner_id)))

        return conditions

    async def search_listings(self, filters: ListingSearchFilters) -> Tuple[List[Listing], int]:
        """
        Search listings with filtering and pagination.

        Returns:
            Tuple of (listings list, total count)
        """
        try:
            query = select(Listing)
            count_query = select(func.count(Listing.id))

            conditions = self._build_filter_conditions(filters)
            if conditions:
                query = query.where(and_(*conditions))
                count_query = count_query.where(and_(*conditions))

            total_count = (await self.db.execute(count_query)).scalar() or 0

            skip = (filters.page - 1) * filters.page_size
            query = (
                query.order_by(desc(Listing.featured), desc(Listing.created_at))
                .offset(skip)
                .limit(filters.page_size)
            )

            result = await self.db.execute(query)
            listings = list(result.scalars().all())

            logger.debug(f"Listing search returned {len(listings)} of {total_count}")
            return listings, total_count
        except Exception as e:
            logger.error(f"Failed to search listings: {e}")
            raise

    async def get_by_owner(self, owner_id: uuid.UUID) -> List[Listing]:
        """All listings of one landlord, newest first."""
        return await self.get_multi(limit=None, filters={"owner_id": owner_id})

    async def set_status(self, listing_id: uuid.UUID, status: ListingStatus) -> bool:
        """
        Change a listing's availability.

        Returns:
            True if the status changed
        """
        listing = await self.get_by_id(listing_id)
        if listing is None or listing.status == status:
            return False

        await self.update(listing_id, {"status": status})
        logger.info(f"Listing {listing_id} status set to {status.value}")
        return True

    async def count_by_status(self) -> Dict[ListingStatus, int]:
        """Number of listings per status."""
        result = await self.db.execute(
            select(Listing.status, func.count(Listing.id)).group_by(Listing.status)
        )
        counts = {status: 0 for status in ListingStatus}
        for status, count in result.all():
            counts[status] = count
        return counts
