"""
Tests for PaymentService: intent creation, settlement, reconciliation,
webhooks and payment history.
"""

import uuid
from decimal import Decimal

import pytest

from renteasy.models.listing import ListingStatus
from renteasy.models.payment import PaymentStatus
from renteasy.services.payment import PaymentService, parse_uuid, to_minor_units
from renteasy.services.stripe_gateway import IntentSnapshot
from renteasy.utils.exceptions import (
    BadRequestError,
    ForbiddenError,
    MonthSelectionError,
    PaymentConfigurationError,
    PaymentNotFoundError,
    PaymentProcessingError,
    ReceiptNotAvailableError,
    RentalNotFoundError,
    WebhookSignatureError,
)
from renteasy.utils.months import current_month
from tests.conftest import (
    FakeStripeGateway,
    ListingFactory,
    intent_event,
    month_offset,
    open_payment,
    pay_months,
    sign_webhook,
)


async def titles_for(notification_repository, user):
    return [n.title for n in await notification_repository.list_for_user(user.id, limit=50)]


class TestHelpers:

    def test_to_minor_units(self):
        assert to_minor_units(Decimal("11235"), 100) == 1123500
        assert to_minor_units(Decimal("10.005"), 100) == 1001

    def test_parse_uuid(self):
        value = uuid.uuid4()
        assert parse_uuid(str(value)) == value
        assert parse_uuid(value) == value
        assert parse_uuid("not-a-uuid") is None
        assert parse_uuid(None) is None


class TestCreatePaymentIntent:

    async def test_first_payment(self, payment_service, stripe_gateway, payment_repository, test_tenant, test_rental):
        cm = current_month()

        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [cm])

        assert result["months_paid"] == [cm]
        assert result["rent_subtotal"] == Decimal("10000")
        assert result["service_charge"] == Decimal("500")
        assert result["tax"] == Decimal("525")
        assert result["platform_fee"] == Decimal("210")
        assert result["total"] == Decimal("11235")
        assert result["client_secret"] == "pi_test_1_secret_abc"

        intent = stripe_gateway.intents["pi_test_1"]
        assert intent["amount"] == 1123500
        assert intent["currency"] == "bdt"
        assert intent["metadata"] == {"rental_id": test_rental["rental_id"], "tenant_id": str(test_tenant.id)}

        payment = await payment_repository.get_by_id(uuid.UUID(result["payment_id"]))
        assert payment.status == PaymentStatus.PROCESSING
        assert payment.months_paid == [cm]
        assert payment.total == Decimal("11235")
        assert payment.stripe_payment_intent_id == "pi_test_1"
        assert payment.move_out_month is None

    async def test_several_months_at_once(self, payment_service, test_tenant, test_rental):
        months = [month_offset(0), month_offset(1), month_offset(2)]

        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], months)

        assert result["months_paid"] == months
        assert result["rent_subtotal"] == Decimal("30000")
        assert result["total"] == Decimal("33705")

    async def test_selection_is_normalized(self, payment_service, test_tenant, test_rental):
        result = await open_payment(
            payment_service, test_tenant, test_rental["rental_id"], [month_offset(1), f" {month_offset(0)}"]
        )
        assert result["months_paid"] == [month_offset(0), month_offset(1)]

    async def test_unknown_rental(self, payment_service, test_tenant, test_rental):
        with pytest.raises(RentalNotFoundError):
            await open_payment(payment_service, test_tenant, str(uuid.uuid4()), [current_month()])

        with pytest.raises(RentalNotFoundError):
            await open_payment(payment_service, test_tenant, "not-a-uuid", [current_month()])

    async def test_rental_of_another_tenant(self, payment_service, other_tenant, test_rental):
        with pytest.raises(RentalNotFoundError):
            await open_payment(payment_service, other_tenant, test_rental["rental_id"], [current_month()])

    async def test_must_start_from_next_unpaid_month(self, payment_service, test_tenant, test_rental):
        with pytest.raises(MonthSelectionError, match="next unpaid month"):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(1)])

    async def test_months_must_be_contiguous(self, payment_service, test_tenant, test_rental):
        with pytest.raises(MonthSelectionError, match="contiguous"):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(0), month_offset(2)])

    async def test_duplicate_months(self, payment_service, test_tenant, test_rental):
        cm = current_month()
        with pytest.raises(MonthSelectionError, match="Duplicate months selected."):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], [cm, cm])

    async def test_malformed_month(self, payment_service, test_tenant, test_rental):
        with pytest.raises(MonthSelectionError, match="Invalid month format"):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], ["2025-13"])

    async def test_empty_selection(self, payment_service, test_tenant, test_rental):
        with pytest.raises(BadRequestError, match="Please select at least one month to pay."):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], [])

    async def test_processing_start_month_blocks_next_payment(self, payment_service, test_tenant, test_rental):
        await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(0)])

        with pytest.raises(PaymentProcessingError):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(1)])

    async def test_paid_months_cannot_be_paid_again(self, payment_service, stripe_gateway, test_tenant, test_rental):
        await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [month_offset(0)])

        with pytest.raises(MonthSelectionError):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(0)])

        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(1)])
        assert result["months_paid"] == [month_offset(1)]

    async def test_stripe_not_configured(self, db_session, test_tenant, test_rental):
        service = PaymentService(db_session, FakeStripeGateway(configured=False))

        with pytest.raises(PaymentConfigurationError):
            await open_payment(service, test_tenant, test_rental["rental_id"], [current_month()])


class TestLeaveFlowIntent:

    async def test_requires_notice(self, payment_service, test_tenant, test_rental):
        with pytest.raises(BadRequestError, match="Give move-out notice first."):
            await open_payment(payment_service, test_tenant, test_rental["rental_id"], [], leave_flow=True)

    async def test_due_months_settlement(
        self, payment_service, rental_service, stripe_gateway, payment_repository, test_tenant, test_rental
    ):
        rental_id = test_rental["rental_id"]
        await pay_months(payment_service, stripe_gateway, test_tenant, rental_id, [month_offset(0)])
        await rental_service.give_move_out_notice(uuid.UUID(rental_id), test_tenant, month_offset(1))

        with pytest.raises(MonthSelectionError, match="must match the due months"):
            await open_payment(payment_service, test_tenant, rental_id, [], leave_flow=True)

        result = await open_payment(
            payment_service, test_tenant, rental_id, [month_offset(1)], move_out_month=month_offset(1)
        )

        assert result["penalty_amount"] == Decimal("0")
        assert result["total"] == Decimal("11235")
        payment = await payment_repository.get_by_id(uuid.UUID(result["payment_id"]))
        assert payment.move_out_month == month_offset(1)

    async def test_move_out_month_must_match_notice(self, payment_service, rental_service, test_tenant, test_rental):
        rental_id = test_rental["rental_id"]
        await rental_service.give_move_out_notice(uuid.UUID(rental_id), test_tenant, month_offset(2))

        with pytest.raises(BadRequestError, match="does not match your notice"):
            await open_payment(payment_service, test_tenant, rental_id, [], move_out_month=month_offset(3))

        with pytest.raises(BadRequestError, match="YYYY-MM"):
            await open_payment(payment_service, test_tenant, rental_id, [], move_out_month="March")

    async def test_short_notice_fine(self, payment_service, rental_service, stripe_gateway, test_tenant, test_rental):
        rental_id = test_rental["rental_id"]
        await pay_months(payment_service, stripe_gateway, test_tenant, rental_id, [month_offset(0)])
        await rental_service.give_move_out_notice(uuid.UUID(rental_id), test_tenant, month_offset(0))

        result = await open_payment(payment_service, test_tenant, rental_id, [], leave_flow=True)

        assert result["months_paid"] == []
        assert result["penalty_amount"] == Decimal("10000")
        assert result["total"] == Decimal("10700")

        with pytest.raises(PaymentProcessingError):
            await open_payment(payment_service, test_tenant, rental_id, [], leave_flow=True)


class TestSettlement:

    async def test_status_poll_settles_success(
        self,
        payment_service,
        stripe_gateway,
        payment_repository,
        listing_repository,
        notification_repository,
        test_tenant,
        test_landlord,
        test_listing,
        test_rental
    ):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        payment_id = uuid.UUID(result["payment_id"])
        stripe_gateway.succeed("pi_test_1")

        status = await payment_service.refresh_status(payment_id, test_tenant)

        assert status == PaymentStatus.SUCCEEDED
        payment = await payment_repository.get_by_id(payment_id, refresh=True)
        assert payment.paid_at is not None
        assert payment.stripe_charge_id == "ch_pi_test_1"
        assert payment.receipt_url == "https://pay.stripe.com/receipts/test"

        listing = await listing_repository.get_by_id(test_listing.id, refresh=True)
        assert listing.status == ListingStatus.ARCHIVED

        assert await titles_for(notification_repository, test_tenant) == ["Payment successful"]
        assert await titles_for(notification_repository, test_landlord) == ["Rent payment received"]

    async def test_receipt_looked_up_from_charge(self, payment_service, stripe_gateway, payment_repository, test_tenant, test_rental):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        stripe_gateway.succeed("pi_test_1", receipt_url=None)
        stripe_gateway.charge_receipts["ch_pi_test_1"] = "https://pay.stripe.com/receipts/lookup"

        await payment_service.refresh_status(uuid.UUID(result["payment_id"]), test_tenant)

        payment = await payment_repository.get_by_id(uuid.UUID(result["payment_id"]), refresh=True)
        assert payment.receipt_url == "https://pay.stripe.com/receipts/lookup"

    async def test_replayed_success_notifies_once(
        self, payment_service, stripe_gateway, notification_repository, test_tenant, test_landlord, test_rental
    ):
        result = await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [current_month()])
        payment_id = uuid.UUID(result["payment_id"])

        await payment_service.refresh_status(payment_id, test_tenant)
        await payment_service.refresh_status(payment_id, test_landlord)

        assert await titles_for(notification_repository, test_tenant) == ["Payment successful"]
        assert await titles_for(notification_repository, test_landlord) == ["Rent payment received"]

    async def test_conditional_success_update(self, payment_service, payment_repository, test_tenant, test_rental):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        payment_id = uuid.UUID(result["payment_id"])
        paid_at = (await payment_repository.get_by_id(payment_id)).created_at

        assert await payment_repository.mark_succeeded(payment_id, paid_at=paid_at, charge_id="ch_1") is True
        assert await payment_repository.mark_succeeded(payment_id, paid_at=paid_at, charge_id="ch_2") is False

        payment = await payment_repository.get_by_id(payment_id, refresh=True)
        assert payment.stripe_charge_id == "ch_1"

    async def test_failed_payment_frees_its_months(
        self, payment_service, stripe_gateway, payment_repository, notification_repository, test_tenant, test_rental
    ):
        cm = current_month()
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [cm])
        payment_id = uuid.UUID(result["payment_id"])
        stripe_gateway.fail("pi_test_1")

        status = await payment_service.refresh_status(payment_id, test_tenant)

        assert status == PaymentStatus.FAILED
        payment = await payment_repository.get_by_id(payment_id, refresh=True)
        assert payment.failure_reason == "Your card was declined."
        assert await titles_for(notification_repository, test_tenant) == ["Payment failed"]

        retry = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [cm])
        assert retry["payment_id"] != result["payment_id"]

    async def test_success_is_never_downgraded(self, payment_service, stripe_gateway, payment_repository, test_tenant, test_rental):
        result = await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [current_month()])
        payment = await payment_repository.get_by_id(uuid.UUID(result["payment_id"]), refresh=True)

        failed = await payment_service.finalize_failed(payment, IntentSnapshot(id="pi_test_1", status="canceled"))

        assert failed.status == PaymentStatus.SUCCEEDED
        assert await payment_repository.mark_failed(payment.id, "late failure") is False

    async def test_pending_intent_leaves_payment_processing(self, payment_service, stripe_gateway, test_tenant, test_rental):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        stripe_gateway.intents["pi_test_1"]["status"] = "requires_action"

        status = await payment_service.refresh_status(uuid.UUID(result["payment_id"]), test_tenant)

        assert status == PaymentStatus.PROCESSING


class TestReconciliation:

    async def test_ledger_read_reconciles_processing_payments(
        self, payment_service, rental_service, stripe_gateway, test_tenant, test_rental
    ):
        cm = current_month()
        await open_payment(payment_service, test_tenant, test_rental["rental_id"], [cm])
        stripe_gateway.succeed("pi_test_1")

        view = await rental_service.get_rental(uuid.UUID(test_rental["rental_id"]), test_tenant)

        assert view["paid_months"] == [cm]
        assert view["next_unpaid_month"] == month_offset(1)
        assert stripe_gateway.retrieved == ["pi_test_1"]

    async def test_one_failure_does_not_stop_the_rest(
        self,
        payment_service,
        rental_service,
        stripe_gateway,
        payment_repository,
        listing_repository,
        test_tenant,
        test_landlord,
        test_rental
    ):
        second_listing = await ListingFactory.create_listing(
            listing_repository, owner_id=test_landlord.id, title="Second flat", rent_start_month=current_month()
        )
        second_rental = await rental_service.start_rental(second_listing.id, test_tenant)

        first = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        second = await open_payment(payment_service, test_tenant, second_rental["rental_id"], [current_month()])
        del stripe_gateway.intents["pi_test_1"]
        stripe_gateway.succeed("pi_test_2")

        payments = await payment_service.tenant_payments(test_tenant)

        statuses = {str(p.id): p.status for p in payments}
        assert statuses[first["payment_id"]] == PaymentStatus.PROCESSING
        assert statuses[second["payment_id"]] == PaymentStatus.SUCCEEDED

    async def test_skipped_without_stripe(self, db_session, payment_service, test_tenant, test_rental):
        await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        offline_gateway = FakeStripeGateway(configured=False)
        offline = PaymentService(db_session, offline_gateway)

        ledger = await offline.load_ledger(uuid.UUID(test_rental["rental_id"]))

        assert ledger.processing == {current_month()}
        assert offline_gateway.retrieved == []


class TestWebhook:

    async def test_success_event_settles_payment(self, payment_service, stripe_gateway, payment_repository, test_tenant, test_rental):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        payload = intent_event("payment_intent.succeeded", stripe_gateway.succeed("pi_test_1"))

        ack = await payment_service.handle_webhook(payload.encode(), sign_webhook(payload))

        assert ack == {"received": True}
        payment = await payment_repository.get_by_id(uuid.UUID(result["payment_id"]), refresh=True)
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.receipt_url == "https://pay.stripe.com/receipts/test"

    async def test_failure_event(self, payment_service, stripe_gateway, payment_repository, test_tenant, test_rental):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        payload = intent_event("payment_intent.payment_failed", stripe_gateway.fail("pi_test_1", "Insufficient funds."))

        await payment_service.handle_webhook(payload.encode(), sign_webhook(payload))

        payment = await payment_repository.get_by_id(uuid.UUID(result["payment_id"]), refresh=True)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Insufficient funds."

    async def test_unknown_intent_is_acknowledged(self, payment_service):
        payload = intent_event("payment_intent.succeeded", {"id": "pi_unknown", "status": "succeeded"})
        assert await payment_service.handle_webhook(payload.encode(), sign_webhook(payload)) == {"received": True}

    async def test_unrelated_event_is_acknowledged(self, payment_service):
        payload = intent_event("customer.created", {"id": "cus_1"})
        assert await payment_service.handle_webhook(payload.encode(), sign_webhook(payload)) == {"received": True}

    async def test_invalid_signature(self, payment_service):
        payload = intent_event("payment_intent.succeeded", {"id": "pi_1"})
        with pytest.raises(WebhookSignatureError):
            await payment_service.handle_webhook(payload.encode(), sign_webhook(payload, secret="whsec_wrong"))

    async def test_missing_signature(self, payment_service):
        with pytest.raises(BadRequestError, match="Missing Stripe signature."):
            await payment_service.handle_webhook(b"{}", None)

    async def test_missing_webhook_secret(self, payment_service, stripe_gateway):
        stripe_gateway.webhook_secret = None
        payload = intent_event("payment_intent.succeeded", {"id": "pi_1"})
        with pytest.raises(PaymentConfigurationError):
            await payment_service.handle_webhook(payload.encode(), sign_webhook(payload))


class TestAccessAndReceipts:

    async def test_parties_can_read_payment(
        self, payment_service, test_tenant, test_landlord, test_admin, other_tenant, test_rental
    ):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        payment_id = uuid.UUID(result["payment_id"])

        for user in (test_tenant, test_landlord, test_admin):
            payment = await payment_service.get_payment_for_user(payment_id, user)
            assert str(payment.id) == result["payment_id"]

        with pytest.raises(ForbiddenError, match="Forbidden."):
            await payment_service.get_payment_for_user(payment_id, other_tenant)

        with pytest.raises(PaymentNotFoundError):
            await payment_service.get_payment_for_user(uuid.uuid4(), test_tenant)

    async def test_receipt_url(self, payment_service, stripe_gateway, test_tenant, test_rental):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        payment_id = uuid.UUID(result["payment_id"])

        with pytest.raises(ReceiptNotAvailableError, match="Receipt not available yet."):
            await payment_service.get_receipt_url(payment_id, test_tenant)

        stripe_gateway.succeed("pi_test_1")
        await payment_service.refresh_status(payment_id, test_tenant)

        assert await payment_service.get_receipt_url(payment_id, test_tenant) == "https://pay.stripe.com/receipts/test"

    async def test_receipt_pdf_requires_success(self, payment_service, stripe_gateway, test_tenant, test_landlord, test_rental):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [current_month()])
        payment_id = uuid.UUID(result["payment_id"])

        with pytest.raises(ReceiptNotAvailableError):
            await payment_service.get_receipt_pdf(payment_id, test_tenant)

        stripe_gateway.succeed("pi_test_1")
        await payment_service.refresh_status(payment_id, test_tenant)

        pdf = await payment_service.get_receipt_pdf(payment_id, test_landlord)
        assert pdf.startswith(b"%PDF")


class TestHistory:

    async def test_tenant_history_newest_first(self, payment_service, stripe_gateway, test_tenant, test_rental):
        first = await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [month_offset(0)])
        second = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(1)])

        payments = await payment_service.tenant_payments(test_tenant)
        assert [str(p.id) for p in payments] == [second["payment_id"], first["payment_id"]]

        limited = await payment_service.tenant_payments(test_tenant, limit=1)
        assert [str(p.id) for p in limited] == [second["payment_id"]]

    async def test_landlord_filters(self, payment_service, stripe_gateway, test_tenant, test_landlord, test_listing, test_rental):
        await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [month_offset(0)])
        await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(1)])

        assert len(await payment_service.landlord_payments(test_landlord)) == 2
        succeeded = await payment_service.landlord_payments(test_landlord, status=PaymentStatus.SUCCEEDED)
        assert [p.months_paid for p in succeeded] == [[month_offset(0)]]
        assert len(await payment_service.landlord_payments(test_landlord, listing_id=test_listing.id)) == 2
        assert await payment_service.landlord_payments(test_landlord, listing_id=uuid.uuid4()) == []

    async def test_landlord_status_filter_reconciles_first(
        self, payment_service, stripe_gateway, test_tenant, test_landlord, test_rental
    ):
        result = await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(0)])
        payment = await payment_service.payment_repo.get_by_id(uuid.UUID(result["payment_id"]))
        stripe_gateway.succeed(payment.stripe_payment_intent_id)

        succeeded = await payment_service.landlord_payments(test_landlord, status=PaymentStatus.SUCCEEDED)

        assert [str(p.id) for p in succeeded] == [result["payment_id"]]
        assert succeeded[0].status == PaymentStatus.SUCCEEDED
        assert await payment_service.landlord_payments(test_landlord, status=PaymentStatus.PROCESSING) == []

    async def test_landlord_summary(self, payment_service, stripe_gateway, test_tenant, test_landlord, other_landlord, test_rental):
        await pay_months(payment_service, stripe_gateway, test_tenant, test_rental["rental_id"], [month_offset(0)])
        await open_payment(payment_service, test_tenant, test_rental["rental_id"], [month_offset(1)])

        summary = await payment_service.landlord_summary(test_landlord)

        assert summary["this_month"] == Decimal("11235")
        assert summary["last_month"] == Decimal("0")
        assert summary["all_time"] == Decimal("11235")
        assert summary["upcoming_payout"] is None

        empty = await payment_service.landlord_summary(other_landlord)
        assert empty["all_time"] == Decimal("0")
