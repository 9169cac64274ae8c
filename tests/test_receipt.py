"""
Tests for PDF receipt rendering.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from renteasy.models.payment import Payment, PaymentStatus
from renteasy.services.receipt import ReceiptGenerator, format_amount


def build_payment(**overrides) -> Payment:
    values = {
        "id": uuid.uuid4(),
        "rental_id": uuid.uuid4(),
        "tenant_id": uuid.uuid4(),
        "landlord_id": uuid.uuid4(),
        "listing_id": uuid.uuid4(),
        "months_paid": ["2025-03", "2025-04"],
        "rent_subtotal": Decimal("20000"),
        "service_charge": Decimal("1000"),
        "service_charge_per_month": Decimal("500"),
        "tax": Decimal("1050"),
        "platform_fee": Decimal("420"),
        "penalty_amount": Decimal("0"),
        "total": Decimal("22470"),
        "currency": "bdt",
        "status": PaymentStatus.SUCCEEDED,
        "stripe_payment_intent_id": "pi_receipt",
        "paid_at": datetime(2025, 3, 2, 9, 30, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return Payment(**values)


class TestFormatAmount:

    def test_groups_thousands(self):
        assert format_amount(Decimal("22470"), "bdt") == "BDT 22,470.00"

    def test_missing_amount(self):
        assert format_amount(None, "usd") == "USD 0.00"


class TestReceiptGenerator:

    def test_renders_pdf(self):
        pdf = ReceiptGenerator().generate(build_payment())

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_details_rows(self):
        rows = dict(ReceiptGenerator()._details_rows(build_payment(move_out_month="2025-04")))

        assert rows["Status:"] == "Succeeded"
        assert rows["Reference:"] == "pi_receipt"
        assert rows["Move-out Month:"] == "Apr 2025"

    def test_penalty_row_only_when_charged(self):
        generator = ReceiptGenerator()

        plain = [label for label, _ in generator._charge_rows(build_payment())]
        assert "Move-out notice fine" not in plain

        fined = dict(generator._charge_rows(build_payment(penalty_amount=Decimal("9000"))))
        assert fined["Move-out notice fine"] == "BDT 9,000.00"
        assert fined["Total"] == "BDT 22,470.00"

    def test_fine_only_payment(self):
        pdf = ReceiptGenerator(brand="Test Homes").generate(
            build_payment(months_paid=[], rent_subtotal=Decimal("0"), penalty_amount=Decimal("9000"))
        )
        assert pdf.startswith(b"%PDF")
