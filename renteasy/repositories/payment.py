"""
Payment repository.
Status transitions are conditional updates so concurrent webhook deliveries
and status polls settle a payment at most once.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from renteasy.repositories.base import BaseRepository
from renteasy.models.payment import Payment, PaymentStatus
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)

LEDGER_STATUSES = (PaymentStatus.SUCCEEDED, PaymentStatus.PROCESSING)


def _as_decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


class PaymentRepository(BaseRepository[Payment]):
    """
    Repository for rent payments.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Payment, db)

    async def get_by_intent_id(self, intent_id: str) -> Optional[Payment]:
        return await self.get_by_field("stripe_payment_intent_id", intent_id)

    async def list_for_rental(
        self,
        rental_id: uuid.UUID,
        statuses: Iterable[PaymentStatus] = LEDGER_STATUSES
    ) -> List[Payment]:
        """Payments of a rental in the given statuses, oldest first."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.rental_id == rental_id, Payment.status.in_(list(statuses)))
            .order_by(Payment.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    def _landlord_query(
        self,
        query,
        landlord_id: uuid.UUID,
        status: Optional[PaymentStatus] = None,
        listing_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ):
        query = query.where(Payment.landlord_id == landlord_id)
        if status is not None:
            query = query.where(Payment.status == status)
        if listing_id is not None:
            query = query.where(Payment.listing_id == listing_id)
        if start_date is not None:
            query = query.where(Payment.created_at >= start_date)
        if end_date is not None:
            query = query.where(Payment.created_at <= end_date)
        return query

    async def list_processing(
        self,
        tenant_id: Optional[uuid.UUID] = None,
        landlord_id: Optional[uuid.UUID] = None,
        listing_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Payment]:
        """Processing payments that still have a Stripe intent to check."""
        query = select(Payment).where(
            Payment.status == PaymentStatus.PROCESSING,
            Payment.stripe_payment_intent_id.is_not(None)
        )
        if tenant_id is not None:
            query = query.where(Payment.tenant_id == tenant_id)
        if landlord_id is not None:
            query = self._landlord_query(query, landlord_id, None, listing_id, start_date, end_date)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_for_tenant(self, tenant_id: uuid.UUID, limit: Optional[int] = None) -> List[Payment]:
        """Tenant payments, newest first."""
        query = (
            select(Payment)
            .where(Payment.tenant_id == tenant_id)
            .order_by(Payment.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if limit:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_for_landlord(
        self,
        landlord_id: uuid.UUID,
        status: Optional[PaymentStatus] = None,
        listing_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Payment]:
        """Landlord payments with optional filters, newest first."""
        query = self._landlord_query(select(Payment), landlord_id, status, listing_id, start_date, end_date)
        query = query.order_by(Payment.created_at.desc()).execution_options(populate_existing=True)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def mark_succeeded(
        self,
        payment_id: uuid.UUID,
        paid_at: datetime,
        charge_id: Optional[str] = None,
        receipt_url: Optional[str] = None
    ) -> bool:
        """
        Settle a payment as succeeded unless it already is.

        Returns:
            True if this call performed the transition
        """
        values = {"status": PaymentStatus.SUCCEEDED, "paid_at": paid_at}
        if charge_id:
            values["stripe_charge_id"] = charge_id
        if receipt_url:
            values["receipt_url"] = receipt_url

        try:
            result = await self.db.execute(
                update(Payment)
                .where(Payment.id == payment_id, Payment.status != PaymentStatus.SUCCEEDED)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to mark payment {payment_id} succeeded: {e}")
            raise

        won = result.rowcount > 0
        logger.debug(f"Payment {payment_id} succeeded transition applied: {won}")
        return won

    async def mark_failed(self, payment_id: uuid.UUID, failure_reason: Optional[str] = None) -> bool:
        """
        Move a processing payment to failed.

        Returns:
            True if this call performed the transition
        """
        values = {"status": PaymentStatus.FAILED}
        if failure_reason:
            values["failure_reason"] = failure_reason

        try:
            result = await self.db.execute(
                update(Payment)
                .where(Payment.id == payment_id, Payment.status == PaymentStatus.PROCESSING)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to mark payment {payment_id} failed: {e}")
            raise

        return result.rowcount > 0

    async def find_settled_penalty(self, rental_id: uuid.UUID, fine_amount: Decimal) -> Optional[Payment]:
        """Latest succeeded payment whose penalty covers the fine."""
        result = await self.db.execute(
            select(Payment)
            .where(
                Payment.rental_id == rental_id,
                Payment.status == PaymentStatus.SUCCEEDED,
                Payment.penalty_amount >= fine_amount
            )
            .order_by(Payment.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def has_processing_penalty(self, rental_id: uuid.UUID) -> bool:
        """Whether a processing payment of the rental carries a penalty."""
        result = await self.db.execute(
            select(func.count(Payment.id)).where(
                Payment.rental_id == rental_id,
                Payment.status == PaymentStatus.PROCESSING,
                Payment.penalty_amount > 0
            )
        )
        return (result.scalar() or 0) > 0

    async def sum_succeeded_totals(
        self,
        landlord_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Decimal:
        """Sum of succeeded payment totals created in [start, end)."""
        query = select(func.sum(Payment.total)).where(
            Payment.landlord_id == landlord_id,
            Payment.status == PaymentStatus.SUCCEEDED
        )
        if start is not None:
            query = query.where(Payment.created_at >= start)
        if end is not None:
            query = query.where(Payment.created_at < end)

        result = await self.db.execute(query)
        return _as_decimal(result.scalar())

    async def sum_platform_fees(self, since: Optional[datetime] = None) -> Decimal:
        """Platform fees of succeeded payments, dated by paid_at or else created_at."""
        query = select(func.sum(Payment.platform_fee)).where(Payment.status == PaymentStatus.SUCCEEDED)
        if since is not None:
            query = query.where(func.coalesce(Payment.paid_at, Payment.created_at) >= since)

        result = await self.db.execute(query)
        return _as_decimal(result.scalar())

    async def count_for_listing(self, listing_id: uuid.UUID) -> int:
        """Number of payments of any status recorded against a listing."""
        return await self.count(filters={"listing_id": listing_id})
