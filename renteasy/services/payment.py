"""
Payment service: Stripe-backed rent payments and settlement.

Every path that settles a payment (webhook, status poll, reconciliation on
read) goes through finalize_succeeded / finalize_failed, whose repository
updates are conditional, so side effects run once per payment.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from renteasy.config import settings
from renteasy.database import utcnow
from renteasy.models.listing import Listing, ListingStatus
from renteasy.models.notification import NotificationType
from renteasy.models.payment import Payment, PaymentStatus
from renteasy.models.rental import Rental
from renteasy.models.user import User
from renteasy.repositories.listing import ListingRepository
from renteasy.repositories.payment import PaymentRepository
from renteasy.repositories.rental import RentalRepository
from renteasy.schemas.payment import PaymentIntentCreate
from renteasy.services.notification import NotificationService
from renteasy.services.receipt import ReceiptGenerator
from renteasy.services.stripe_gateway import IntentSnapshot, StripeGateway
from renteasy.utils.exceptions import (
    BadRequestError,
    ForbiddenError,
    ListingNotFoundError,
    PaymentConfigurationError,
    PaymentNotFoundError,
    PaymentProcessingError,
    ReceiptNotAvailableError,
    RentalNotFoundError,
)
from renteasy.utils.ledger import (
    MonthLedger,
    MoveOutDue,
    calculate_totals,
    collect_payment_months,
    compute_move_out_due,
    move_out_penalty,
    normalize_months,
    validate_month_tokens,
    validate_move_out_selection,
    validate_rent_selection,
)
from renteasy.utils.months import add_months, compare_months, current_month, is_valid_month
import uuid
import logging

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal, multiplier: int) -> int:
    """Convert a major-unit amount to the integer Stripe expects."""
    return int((Decimal(amount) * multiplier).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    """UUID from a string, or None when malformed."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class PaymentService:
    """
    Creates payment intents, settles them and serves payment history.
    """

    def __init__(self, db_session: AsyncSession, gateway: StripeGateway):
        self.db = db_session
        self.gateway = gateway
        self.payment_repo = PaymentRepository(db_session)
        self.rental_repo = RentalRepository(db_session)
        self.listing_repo = ListingRepository(db_session)
        self.notifications = NotificationService(db_session)

    # Settlement

    async def finalize_succeeded(self, payment: Payment, intent: IntentSnapshot) -> Payment:
        """
        Mark a payment succeeded and run its side effects once.

        The listing is archived while the rental is active, then tenant and
        landlord are notified. Replays return the stored payment unchanged.
        """
        if payment.status == PaymentStatus.SUCCEEDED:
            return payment

        payment_id = payment.id
        rental_id = payment.rental_id
        listing_id = payment.listing_id
        tenant_id = payment.tenant_id
        landlord_id = payment.landlord_id

        receipt_url = intent.receipt_url
        if not receipt_url and intent.charge_id and self.gateway.configured:
            try:
                receipt_url = await self.gateway.charge_receipt_url(intent.charge_id)
            except Exception as e:
                logger.warning(f"Receipt lookup failed for payment {payment_id}: {e}")

        won = await self.payment_repo.mark_succeeded(
            payment_id,
            paid_at=utcnow(),
            charge_id=intent.charge_id,
            receipt_url=receipt_url,
        )
        if not won:
            logger.debug(f"Payment {payment_id} was already settled")
            return await self.payment_repo.get_by_id(payment_id, refresh=True)

        logger.info(f"Payment {payment_id} succeeded (intent {intent.id})")

        rental = await self.rental_repo.get_by_id(rental_id)
        listing = await self.listing_repo.get_by_id(listing_id)
        listing_title = listing.title if listing else "listing"
        if rental and rental.is_active and listing and listing.status != ListingStatus.ARCHIVED:
            await self.listing_repo.set_status(listing_id, ListingStatus.ARCHIVED)

        metadata = {"payment_id": str(payment_id)}
        await self.notifications.notify_safely(
            user_id=tenant_id,
            type=NotificationType.PAYMENT,
            title="Payment successful",
            body=f"Your rent payment for {listing_title} was successful.",
            link="/dashboard/tenant",
            metadata=metadata,
            event_type="PAYMENT_SUCCEEDED",
            event_id=payment_id,
        )
        await self.notifications.notify_safely(
            user_id=landlord_id,
            actor_id=tenant_id,
            type=NotificationType.PAYMENT,
            title="Rent payment received",
            body=f"A tenant paid rent for {listing_title}.",
            link="/dashboard/landlord/payments",
            metadata=metadata,
            event_type="PAYMENT_RECEIVED",
            event_id=payment_id,
        )

        return await self.payment_repo.get_by_id(payment_id, refresh=True)

    async def finalize_failed(self, payment: Payment, intent: IntentSnapshot) -> Payment:
        """Move a processing payment to failed and tell the tenant."""
        if payment.status != PaymentStatus.PROCESSING:
            return payment

        payment_id = payment.id
        tenant_id = payment.tenant_id

        won = await self.payment_repo.mark_failed(payment_id, intent.failure_message)
        if won:
            logger.info(f"Payment {payment_id} failed: {intent.failure_message}")
            await self.notifications.notify_safely(
                user_id=tenant_id,
                type=NotificationType.PAYMENT,
                title="Payment failed",
                body="Your payment could not be completed. Please try again.",
                link="/dashboard/tenant",
                metadata={"payment_id": str(payment_id)},
                event_type="PAYMENT_FAILED",
                event_id=payment_id,
            )

        return await self.payment_repo.get_by_id(payment_id, refresh=True)

    async def apply_intent(self, payment: Payment, intent: IntentSnapshot) -> Payment:
        """Settle a payment according to its intent's status."""
        if intent.succeeded:
            return await self.finalize_succeeded(payment, intent)
        if intent.failed:
            return await self.finalize_failed(payment, intent)
        return payment

    async def reconcile_payment(self, payment: Payment) -> Payment:
        """Refresh one processing payment from Stripe."""
        if not payment.stripe_payment_intent_id or payment.status != PaymentStatus.PROCESSING:
            return payment

        intent = await self.gateway.retrieve_intent(payment.stripe_payment_intent_id)
        return await self.apply_intent(payment, intent)

    async def reconcile_processing(self, payments: Iterable[Payment]) -> None:
        """
        Reconcile every processing payment in turn.
        A failure on one payment is logged and the rest still run.
        """
        pending = [
            payment.id for payment in payments
            if payment.status == PaymentStatus.PROCESSING and payment.stripe_payment_intent_id
        ]
        if not pending:
            return
        if not self.gateway.configured:
            logger.debug(f"Skipping reconciliation of {len(pending)} payments: Stripe is not configured")
            return

        for payment_id in pending:
            try:
                # A failed settlement rolls back and expires loaded rows
                payment = await self.payment_repo.get_by_id(payment_id, refresh=True)
                if payment:
                    await self.reconcile_payment(payment)
            except Exception as e:
                logger.error(f"Failed to reconcile payment {payment_id}: {e}")

    # Ledger

    async def load_ledger(self, rental_id: uuid.UUID) -> MonthLedger:
        """Month ledger of a rental after reconciling its processing payments."""
        payments = await self.payment_repo.list_for_rental(rental_id)
        await self.reconcile_processing(payments)
        payments = await self.payment_repo.list_for_rental(rental_id)
        return collect_payment_months(payments)

    async def move_out_due(self, rental: Rental, listing: Listing, ledger: MonthLedger) -> MoveOutDue:
        """
        What the tenant owes before leaving.
        The notice month is the month the notice was given.
        """
        notice_month = current_month(rental.move_out_notice_given_at) if rental.move_out_notice_given_at else current_month()
        fine = move_out_penalty(rental.move_out_notice_month, notice_month, listing.rent)

        penalty_settled = False
        if fine > 0:
            penalty_settled = await self.payment_repo.find_settled_penalty(rental.id, fine) is not None

        return compute_move_out_due(
            start_month=rental.start_month,
            move_out_month=rental.move_out_notice_month,
            notice_month=notice_month,
            now_month=current_month(),
            rent=listing.rent,
            ledger=ledger,
            penalty_settled=penalty_settled,
        )

    # Payment intents

    async def create_payment_intent(self, data: PaymentIntentCreate, tenant: User) -> Dict[str, Any]:
        """
        Validate a month selection and open a Stripe PaymentIntent for it.

        Returns:
            Client secret, payment id and charge breakdown

        Raises:
            RentalNotFoundError: If the rental is not the tenant's active rental
            MonthSelectionError: If the selection breaks a ledger rule
            PaymentProcessingError: If an overlapping payment is still processing
            PaymentConfigurationError: If Stripe is not configured
        """
        tenant_id = tenant.id
        rental_id = parse_uuid(data.rental_id)
        rental = await self.rental_repo.get_for_tenant(rental_id, tenant_id) if rental_id else None
        if not rental:
            raise RentalNotFoundError()
        listing_id = rental.listing_id

        incoming = list(data.selected_months or [])
        months = normalize_months(incoming)
        validate_month_tokens(incoming, months)

        ledger = await self.load_ledger(rental_id)
        rental = await self.rental_repo.get_by_id(rental_id, refresh=True)
        listing = await self.listing_repo.get_by_id(listing_id, refresh=True)
        if not listing:
            raise ListingNotFoundError()
        use_leave_flow = bool(data.leave_flow or data.move_out_month)
        penalty = Decimal("0")
        effective_move_out = None

        if use_leave_flow:
            if data.move_out_month and not is_valid_month(data.move_out_month):
                raise BadRequestError("Move-out month must be in YYYY-MM format.")
            effective_move_out = rental.move_out_notice_month
            if not effective_move_out:
                raise BadRequestError("Give move-out notice first.")
            if data.move_out_month and data.move_out_month != effective_move_out:
                raise BadRequestError("Move-out month does not match your notice.")
            if compare_months(effective_move_out, rental.start_month) < 0:
                raise BadRequestError("Move-out month cannot be before the rental start month.")

            due = await self.move_out_due(rental, listing, ledger)
            if due.fine_amount > 0 and await self.payment_repo.has_processing_penalty(rental.id):
                raise PaymentProcessingError()
            validate_move_out_selection(months, due)
            penalty = due.fine_amount
        else:
            validate_rent_selection(months, ledger, rental.start_month, listing.rent_start_month)

        if not months and not penalty:
            raise BadRequestError("Please select at least one month to pay.")

        breakdown = calculate_totals(
            rent=listing.rent,
            service_charge_per_month=listing.service_charge,
            months_count=len(months),
            penalty=penalty,
            tax_rate=settings.tax_rate,
            platform_fee_rate=settings.platform_fee_rate,
        )

        if not self.gateway.configured:
            raise PaymentConfigurationError()

        intent = await self.gateway.create_intent(
            amount=to_minor_units(breakdown.total, settings.currency_minor_units),
            currency=settings.currency,
            metadata={"rental_id": str(rental.id), "tenant_id": str(tenant_id)},
        )

        payment = await self.payment_repo.create({
            "rental_id": rental.id,
            "tenant_id": rental.tenant_id,
            "landlord_id": rental.landlord_id,
            "listing_id": rental.listing_id,
            "months_paid": months,
            "rent_subtotal": breakdown.rent_subtotal,
            "service_charge": breakdown.service_charge_total,
            "service_charge_per_month": breakdown.service_charge_per_month,
            "tax": breakdown.tax,
            "platform_fee": breakdown.platform_fee,
            "penalty_amount": breakdown.penalty_amount,
            "total": breakdown.total,
            "currency": settings.currency,
            "status": PaymentStatus.PROCESSING,
            "stripe_payment_intent_id": intent.id,
            "move_out_month": effective_move_out,
        })
        logger.info(f"Payment {payment.id} opened for rental {rental.id}: {months} total {breakdown.total}")

        return {
            "client_secret": intent.client_secret,
            "payment_id": str(payment.id),
            "months_paid": months,
            **breakdown.to_dict(),
        }

    # Webhook and polling

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, bool]:
        """
        Verify and apply a Stripe webhook delivery.
        Unknown intents and unrelated events are acknowledged.
        """
        event = self.gateway.construct_event(payload, signature)
        event_type = event.get("type")
        intent_data = (event.get("data") or {}).get("object") or {}
        intent_id = intent_data.get("id")
        logger.info(f"Stripe event {event_type} for {intent_id}")

        if not intent_id or event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
            return {"received": True}

        payment = await self.payment_repo.get_by_intent_id(intent_id)
        if not payment:
            logger.warning(f"No payment recorded for intent {intent_id}")
            return {"received": True}

        intent = IntentSnapshot.from_stripe(intent_data)
        if event_type == "payment_intent.succeeded":
            await self.finalize_succeeded(payment, intent)
        else:
            await self.finalize_failed(payment, intent)

        return {"received": True}

    async def get_payment_for_user(self, payment_id: uuid.UUID, user: User) -> Payment:
        """
        Payment visible to its tenant, its landlord or an admin.

        Raises:
            PaymentNotFoundError: If the payment does not exist
            ForbiddenError: If the user is not a party to the payment
        """
        payment = await self.payment_repo.get_by_id(payment_id)
        if not payment:
            raise PaymentNotFoundError()

        if user.id not in (payment.tenant_id, payment.landlord_id) and not user.is_admin:
            raise ForbiddenError("Forbidden.")
        return payment

    async def refresh_status(self, payment_id: uuid.UUID, user: User) -> PaymentStatus:
        """Poll Stripe for a payment's intent and settle it."""
        payment = await self.get_payment_for_user(payment_id, user)
        if not payment.stripe_payment_intent_id:
            return payment.status

        intent = await self.gateway.retrieve_intent(payment.stripe_payment_intent_id)
        payment = await self.apply_intent(payment, intent)
        return payment.status

    async def get_receipt_url(self, payment_id: uuid.UUID, user: User) -> str:
        payment = await self.get_payment_for_user(payment_id, user)
        if not payment.receipt_url:
            raise ReceiptNotAvailableError()
        return payment.receipt_url

    async def get_receipt_pdf(self, payment_id: uuid.UUID, user: User) -> bytes:
        """Render a PDF receipt for a succeeded payment."""
        payment = await self.get_payment_for_user(payment_id, user)
        if payment.status != PaymentStatus.SUCCEEDED:
            raise ReceiptNotAvailableError()
        return ReceiptGenerator().generate(payment)

    # History

    async def tenant_payments(self, tenant: User, limit: Optional[int] = None) -> List[Payment]:
        """Tenant payment history, newest first, after reconciliation."""
        tenant_id = tenant.id
        await self.reconcile_processing(await self.payment_repo.list_processing(tenant_id=tenant_id))
        return await self.payment_repo.list_for_tenant(tenant_id, limit=limit)

    async def landlord_payments(
        self,
        landlord: User,
        status: Optional[PaymentStatus] = None,
        listing_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Payment]:
        """Payments received by a landlord, newest first, after reconciliation."""
        landlord_id = landlord.id
        processing = await self.payment_repo.list_processing(
            landlord_id=landlord_id,
            listing_id=listing_id,
            start_date=start_date,
            end_date=end_date,
        )
        await self.reconcile_processing(processing)

        return await self.payment_repo.list_for_landlord(
            landlord_id,
            status=status,
            listing_id=listing_id,
            start_date=start_date,
            end_date=end_date,
        )

    async def landlord_summary(self, landlord: User, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Succeeded totals for this month, last month and all time."""
        now = now or utcnow()
        this_month = current_month(now)
        start_of_this_month = _month_start(this_month, now)
        start_of_next_month = _month_start(add_months(this_month, 1), now)
        start_of_last_month = _month_start(add_months(this_month, -1), now)

        return {
            "this_month": await self.payment_repo.sum_succeeded_totals(
                landlord.id, start_of_this_month, start_of_next_month
            ),
            "last_month": await self.payment_repo.sum_succeeded_totals(
                landlord.id, start_of_last_month, start_of_this_month
            ),
            "all_time": await self.payment_repo.sum_succeeded_totals(landlord.id),
            "upcoming_payout": None,
        }


def _month_start(month: str, like: datetime) -> datetime:
    year, month_index = (int(part) for part in month.split("-"))
    return datetime(year, month_index, 1, tzinfo=like.tzinfo)
