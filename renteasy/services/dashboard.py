"""
Dashboard service: platform-wide metrics for administrators.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.config import settings
from renteasy.database import utcnow
from renteasy.models.listing import ListingStatus
from renteasy.models.user import UserRole
from renteasy.repositories.listing import ListingRepository
from renteasy.repositories.payment import PaymentRepository
from renteasy.repositories.user import UserRepository
import logging

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.listing_repo = ListingRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.payment_repo = PaymentRepository(db_session)

    async def admin_metrics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Listing and user counts plus platform-fee revenue.

        Revenue is dated by paid_at, or created_at for payments settled
        before paid_at was recorded.
        """
        now = now or utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        listing_counts = await self.listing_repo.count_by_status()
        role_counts = await self.user_repo.count_by_role()
        tenants = role_counts[UserRole.TENANT]
        landlords = role_counts[UserRole.LANDLORD]

        metrics = {
            "listings": {
                "active": listing_counts[ListingStatus.ACTIVE],
                "archived": listing_counts[ListingStatus.ARCHIVED],
                "total": sum(listing_counts.values()),
            },
            "users": {
                "total": tenants + landlords,
                "tenants": tenants,
                "landlords": landlords,
            },
            "revenue": {
                "total_platform_fees": await self.payment_repo.sum_platform_fees(),
                "this_month_platform_fees": await self.payment_repo.sum_platform_fees(since=month_start),
                "currency": settings.currency,
            },
        }
        logger.debug(f"Admin metrics computed: {metrics['listings']}, {metrics['users']}")
        return metrics
