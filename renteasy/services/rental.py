"""
Rental service: starting a rental, move-out notices and ending a stay.
"""

from decimal import Decimal
from typing import Any, Dict, List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.config import settings
from renteasy.database import utcnow
from renteasy.models.listing import Listing, ListingStatus
from renteasy.models.notification import NotificationType
from renteasy.models.payment import PaymentStatus
from renteasy.models.rental import Rental, RentalStatus
from renteasy.models.user import User
from renteasy.repositories.listing import ListingRepository
from renteasy.repositories.payment import PaymentRepository
from renteasy.repositories.rental import RentalRepository
from renteasy.services.notification import NotificationService
from renteasy.services.payment import PaymentService
from renteasy.services.stripe_gateway import StripeGateway
from renteasy.utils.exceptions import (
    BadRequestError,
    ListingNotFoundError,
    MonthSelectionError,
    PaymentProcessingError,
    RentalNotFoundError,
)
from renteasy.utils.ledger import MonthLedger, calculate_totals, collect_payment_months
from renteasy.utils.months import (
    add_months,
    compare_months,
    current_month,
    is_valid_month,
    list_months,
    month_label,
    next_unpaid_month,
)
import uuid
import logging

logger = logging.getLogger(__name__)


def build_ledger_view(rental: Rental, listing: Listing, ledger: MonthLedger) -> Dict[str, Any]:
    """Rental, listing summary and month ledger as shown on the payment page."""
    next_month = next_unpaid_month(rental.start_month, ledger.blocked)
    rent_start = listing.rent_start_month
    locked = []
    if rent_start and rent_start not in ledger.paid and rent_start not in ledger.blocked:
        locked = [rent_start]

    return {
        "rental_id": str(rental.id),
        "rental": rental.to_dict(),
        "listing": listing.to_summary(),
        "paid_months": ledger.sorted_paid(),
        "blocked_months": ledger.sorted_blocked(),
        "next_unpaid_month": next_month,
        "recommended_months": [next_month] if next_month else [],
        "locked_months": locked,
    }


class RentalService:
    """
    Rental lifecycle for tenants.
    Ledger reads reconcile processing payments through the payment service.
    """

    def __init__(self, db_session: AsyncSession, gateway: StripeGateway):
        self.db = db_session
        self.rental_repo = RentalRepository(db_session)
        self.listing_repo = ListingRepository(db_session)
        self.payment_repo = PaymentRepository(db_session)
        self.payments = PaymentService(db_session, gateway)
        self.notifications = NotificationService(db_session)

    async def _load_owned(self, rental_id: uuid.UUID, tenant_id: uuid.UUID, active_only: bool = True):
        rental = await self.rental_repo.get_for_tenant(rental_id, tenant_id, active_only=active_only)
        if not rental:
            raise RentalNotFoundError()
        listing = await self.listing_repo.get_by_id(rental.listing_id)
        if not listing:
            raise ListingNotFoundError()
        return rental, listing

    async def _ledger_snapshot(self, rental_id: uuid.UUID, listing_id: uuid.UUID):
        """Reconciled ledger plus freshly loaded rental and listing."""
        ledger = await self.payments.load_ledger(rental_id)
        rental = await self.rental_repo.get_by_id(rental_id, refresh=True)
        listing = await self.listing_repo.get_by_id(listing_id, refresh=True)
        return rental, listing, ledger

    async def start_rental(self, listing_id: uuid.UUID, tenant: User) -> Dict[str, Any]:
        """
        Open (or resume) the tenant's rental of a listing.

        Returns:
            Ledger view of the rental

        Raises:
            ListingNotFoundError: If the listing does not exist
            BadRequestError: If the listing is not available
        """
        tenant_id = tenant.id
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        if listing.status != ListingStatus.ACTIVE:
            raise BadRequestError("Listing is not available for rent.")

        rental = await self.rental_repo.get_active_for_listing(tenant_id, listing_id)
        if not rental:
            try:
                rental = await self.rental_repo.create({
                    "tenant_id": tenant_id,
                    "landlord_id": listing.owner_id,
                    "listing_id": listing_id,
                    "start_month": listing.rent_start_month or current_month(),
                    "status": RentalStatus.ACTIVE,
                })
                logger.info(f"Rental {rental.id} started by tenant {tenant_id} for listing {listing_id}")
            except IntegrityError:
                # Concurrent start for the same tenant and listing
                rental = await self.rental_repo.get_active_for_listing(tenant_id, listing_id)
                if not rental:
                    raise

        rental, listing, ledger = await self._ledger_snapshot(rental.id, listing_id)
        return build_ledger_view(rental, listing, ledger)

    async def get_rental(self, rental_id: uuid.UUID, tenant: User) -> Dict[str, Any]:
        rental, listing = await self._load_owned(rental_id, tenant.id, active_only=False)
        rental, listing, ledger = await self._ledger_snapshot(rental.id, listing.id)
        return build_ledger_view(rental, listing, ledger)

    async def tenant_rentals(self, tenant: User) -> List[Dict[str, Any]]:
        """Active rentals with the next month rent is owed for."""
        items = []
        for rental in await self.rental_repo.list_active_for_tenant(tenant.id):
            payments = await self.payment_repo.list_for_rental(rental.id, statuses=(PaymentStatus.SUCCEEDED,))
            ledger = collect_payment_months(payments)
            next_month = next_unpaid_month(rental.start_month, ledger.paid)
            listing = rental.listing

            items.append({
                "rental_id": str(rental.id),
                "start_month": rental.start_month,
                "move_out_notice_month": rental.move_out_notice_month,
                "move_out_notice_given_at": rental.move_out_notice_given_at,
                "listing": listing.to_summary(),
                "next_payment_month": next_month,
                "next_payment_date": f"{next_month}-01" if next_month else None,
            })
        return items

    async def give_move_out_notice(self, rental_id: uuid.UUID, tenant: User, move_out_month: str) -> Rental:
        """
        Record the month the tenant intends to leave and tell the landlord.

        Raises:
            BadRequestError: If the month is malformed, early, or a notice exists
            RentalNotFoundError: If the tenant has no such active rental
        """
        if not is_valid_month(move_out_month):
            raise BadRequestError("Move-out month must be in YYYY-MM format.")

        rental, listing = await self._load_owned(rental_id, tenant.id)
        if rental.move_out_notice_month:
            raise BadRequestError("Move-out notice already given.")
        if compare_months(move_out_month, rental.start_month) < 0:
            raise BadRequestError("Move-out month cannot be before the rental start month.")
        if compare_months(move_out_month, current_month()) < 0:
            raise BadRequestError("Move-out month cannot be in the past.")

        landlord_id = rental.landlord_id
        tenant_id = rental.tenant_id
        title = listing.title

        await self.rental_repo.update(rental_id, {
            "move_out_notice_month": move_out_month,
            "move_out_notice_given_at": utcnow(),
        })
        logger.info(f"Move-out notice for rental {rental_id}: {move_out_month}")

        await self.notifications.notify_safely(
            user_id=landlord_id,
            actor_id=tenant_id,
            type=NotificationType.RENTAL,
            title="Move-out notice received",
            body=f"A tenant of {title} plans to move out in {month_label(move_out_month)}.",
            link="/dashboard/landlord",
            metadata={"rental_id": str(rental_id), "move_out_month": move_out_month},
            event_type="MOVE_OUT_NOTICE",
            event_id=rental_id,
        )
        return await self.rental_repo.get_by_id(rental_id, refresh=True)

    async def _move_out_state(self, rental_id: uuid.UUID, tenant: User):
        rental, listing = await self._load_owned(rental_id, tenant.id)
        if not rental.move_out_notice_month:
            raise BadRequestError("Give move-out notice first.")

        rental, listing, ledger = await self._ledger_snapshot(rental.id, listing.id)
        due = await self.payments.move_out_due(rental, listing, ledger)
        if due.processing_overlap:
            raise PaymentProcessingError()
        return rental, listing, due

    async def get_move_out_due(self, rental_id: uuid.UUID, tenant: User) -> Dict[str, Any]:
        """Months and fine still owed before the tenant may leave."""
        rental, listing, due = await self._move_out_state(rental_id, tenant)

        breakdown = calculate_totals(
            rent=listing.rent,
            service_charge_per_month=listing.service_charge,
            months_count=len(due.due_months),
            penalty=due.fine_amount,
            tax_rate=settings.tax_rate,
            platform_fee_rate=settings.platform_fee_rate,
        )
        result = {
            "due_months": due.due_months,
            "fine_amount": due.fine_amount,
            "breakdown": breakdown.to_dict(),
            "move_out_month": rental.move_out_notice_month,
        }
        if due.overstay:
            result["overstay"] = True
            result["message"] = (
                f"Move-out month has passed. Please settle rent through {month_label(due.required_paid_until)}."
            )
        return result

    async def _end_rental(self, rental: Rental, listing: Listing, end_month: str) -> None:
        rental_id = rental.id
        listing_id = listing.id
        await self.rental_repo.update(rental_id, {
            "status": RentalStatus.ENDED,
            "ended_at": utcnow(),
            "end_month": end_month,
        })
        await self.listing_repo.set_status(listing_id, ListingStatus.ACTIVE)
        logger.info(f"Rental {rental_id} ended at {end_month}; listing {listing_id} re-activated")

    async def leave_rental(self, rental_id: uuid.UUID, tenant: User) -> Dict[str, Any]:
        """
        End a rental once every due month and the notice fine are paid.

        Raises:
            MonthSelectionError: If months are still due
            BadRequestError: If the notice fine is outstanding
            PaymentProcessingError: If a due month is still processing
        """
        rental, listing, due = await self._move_out_state(rental_id, tenant)

        if due.due_months:
            labels = ", ".join(month_label(month) for month in due.due_months)
            raise MonthSelectionError(f"Please clear due rent for {labels} before leaving.", due.due_months)
        if due.fine_amount > 0:
            raise BadRequestError("Please pay the move-out notice fine before leaving.")

        landlord_id = rental.landlord_id
        tenant_id = rental.tenant_id
        title = listing.title
        await self._end_rental(rental, listing, due.required_paid_until)

        await self.notifications.notify_safely(
            user_id=landlord_id,
            actor_id=tenant_id,
            type=NotificationType.RENTAL,
            title="Tenant left property",
            body=f"The tenant has moved out of {title}. The listing is active again.",
            link="/dashboard/landlord",
            metadata={"rental_id": str(rental_id)},
            event_type="RENTAL_ENDED",
            event_id=rental_id,
        )
        return {"ended": True}

    async def stop_rental(self, rental_id: uuid.UUID, tenant: User, move_out_month: str) -> Dict[str, Any]:
        """
        Direct move-out without a prior notice settlement.

        Rent must be paid through the current month. The rental ends at once
        when nothing else is owed; otherwise the months and penalty to pay are
        returned.
        """
        if not is_valid_month(move_out_month):
            raise BadRequestError("Move-out month must be in YYYY-MM format.")

        rental, listing = await self._load_owned(rental_id, tenant.id)
        if compare_months(move_out_month, rental.start_month) < 0:
            raise BadRequestError("Move-out month cannot be before the rental start month.")

        rental, listing, ledger = await self._ledger_snapshot(rental.id, listing.id)
        now_month = current_month()

        unpaid = [month for month in list_months(rental.start_month, now_month) if month not in ledger.paid]
        if unpaid:
            labels = ", ".join(month_label(month) for month in unpaid)
            await self.notifications.notify_safely(
                user_id=rental.tenant_id,
                type=NotificationType.PAYMENT,
                title="Rent due before move-out",
                body=f"Please pay rent for {labels} before moving out.",
                link="/dashboard/tenant",
                metadata={"rental_id": str(rental_id), "due_months": unpaid},
            )
            raise MonthSelectionError(f"Please clear due rent for {labels} before moving out.", unpaid)

        penalty = Decimal("0")
        if compare_months(move_out_month, add_months(now_month, 1)) < 0:
            penalty = Decimal(listing.rent)

        next_month = next_unpaid_month(rental.start_month, ledger.paid)
        required: List[str] = []
        if next_month and compare_months(move_out_month, next_month) >= 0:
            required = list_months(next_month, move_out_month)

        if not required and not penalty:
            landlord_id = rental.landlord_id
            tenant_id = rental.tenant_id
            title = listing.title
            await self._end_rental(rental, listing, move_out_month)
            await self.notifications.notify_safely(
                user_id=landlord_id,
                actor_id=tenant_id,
                type=NotificationType.RENTAL,
                title="Move-out confirmed",
                body=f"The tenant of {title} moved out in {month_label(move_out_month)}.",
                link="/dashboard/landlord",
                metadata={"rental_id": str(rental_id)},
                event_type="RENTAL_STOPPED",
                event_id=rental_id,
            )
            return {"ended": True, "rental_id": str(rental_id), "move_out_month": move_out_month}

        return {
            "ended": False,
            "rental_id": str(rental_id),
            "move_out_month": move_out_month,
            "required_months": required,
            "penalty_amount": penalty,
        }
