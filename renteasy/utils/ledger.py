"""
Rent ledger rules.

Pure functions that classify a rental's months from its payments and decide
whether a requested month selection may be charged. Nothing here touches the
database or Stripe; services load payments, reconcile them, and then hand
them to these helpers.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Set

from renteasy.models.payment import PaymentStatus
from renteasy.utils.exceptions import MonthSelectionError, PaymentProcessingError
from renteasy.utils.months import (
    add_months,
    compare_months,
    is_valid_month,
    list_months,
    next_unpaid_month,
)

WHOLE_UNIT = Decimal("1")


@dataclass
class MonthLedger:
    """Month classification for one rental."""

    paid: Set[str] = field(default_factory=set)
    blocked: Set[str] = field(default_factory=set)
    processing: Set[str] = field(default_factory=set)

    def sorted_paid(self) -> List[str]:
        return sorted(self.paid)

    def sorted_blocked(self) -> List[str]:
        return sorted(self.blocked)


@dataclass
class PaymentBreakdown:
    """Charge breakdown for a set of months plus any penalty."""

    rent_subtotal: Decimal
    service_charge_per_month: Decimal
    service_charge_total: Decimal
    penalty_amount: Decimal
    tax: Decimal
    platform_fee: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "rent_subtotal": self.rent_subtotal,
            "service_charge": self.service_charge_total,
            "service_charge_per_month": self.service_charge_per_month,
            "service_charge_total": self.service_charge_total,
            "penalty_amount": self.penalty_amount,
            "tax": self.tax,
            "platform_fee": self.platform_fee,
            "total": self.total,
        }


@dataclass
class MoveOutDue:
    """What a tenant still owes before leaving."""

    due_months: List[str]
    fine_amount: Decimal
    overstay: bool
    required_paid_until: str
    processing_overlap: bool
    penalty_settled: bool = False


def collect_payment_months(payments: Iterable) -> MonthLedger:
    """
    Classify months from a rental's payments.

    Only succeeded and processing payments count; failed payments free their
    months again.
    """
    ledger = MonthLedger()
    for payment in payments:
        if payment.status not in (PaymentStatus.SUCCEEDED, PaymentStatus.PROCESSING):
            continue
        for month in payment.months_paid or []:
            ledger.blocked.add(month)
            if payment.status == PaymentStatus.SUCCEEDED:
                ledger.paid.add(month)
            else:
                ledger.processing.add(month)
    return ledger


def normalize_months(months: Iterable) -> List[str]:
    """Strip, de-duplicate and sort month tokens."""
    return sorted({str(month).strip() for month in months})


def _round_whole(value: Decimal) -> Decimal:
    return value.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def calculate_totals(
    rent: Decimal,
    service_charge_per_month: Optional[Decimal],
    months_count: int,
    penalty: Decimal = Decimal("0"),
    tax_rate: Decimal = Decimal("0.05"),
    platform_fee_rate: Decimal = Decimal("0.02"),
) -> PaymentBreakdown:
    """
    Compute the charge for a number of months.

    Tax and platform fee are taken on rent, service charge and penalty
    together, each rounded half-up to a whole currency unit.
    """
    rent = Decimal(rent)
    service_charge = Decimal(service_charge_per_month or 0)
    penalty = Decimal(penalty or 0)

    rent_subtotal = rent * months_count
    service_charge_total = service_charge * months_count
    base = rent_subtotal + service_charge_total + penalty
    tax = _round_whole(base * Decimal(tax_rate))
    platform_fee = _round_whole(base * Decimal(platform_fee_rate))

    return PaymentBreakdown(
        rent_subtotal=rent_subtotal,
        service_charge_per_month=service_charge,
        service_charge_total=service_charge_total,
        penalty_amount=penalty,
        tax=tax,
        platform_fee=platform_fee,
        total=base + tax + platform_fee,
    )


def move_out_penalty(move_out_month: str, notice_month: str, rent: Decimal) -> Decimal:
    """One month's rent when notice is shorter than one full month, else zero."""
    notice_valid_month = add_months(notice_month, 1)
    if compare_months(move_out_month, notice_valid_month) < 0:
        return Decimal(rent)
    return Decimal("0")


def validate_month_tokens(selected: List, normalized: List[str]) -> None:
    """Reject duplicate or malformed month tokens."""
    if len(normalized) != len(selected):
        raise MonthSelectionError("Duplicate months selected.")

    for month in normalized:
        if not is_valid_month(month):
            raise MonthSelectionError(f"Invalid month format: {month}")


def validate_rent_selection(
    selected: List[str],
    ledger: MonthLedger,
    rental_start_month: str,
    rent_start_month: Optional[str],
) -> None:
    """
    Validate months picked for a regular rent payment.

    The selection must begin at the first month not already covered by a
    succeeded or processing payment and run without gaps. Until the listing's
    rent start month is paid, every payment must begin with it.

    Raises:
        MonthSelectionError: If the selection breaks a ledger rule
        PaymentProcessingError: If the rent start month is held by a processing payment
    """
    expected_start = next_unpaid_month(rental_start_month, ledger.blocked)

    if not expected_start and selected:
        raise MonthSelectionError("No unpaid months remain for this rental.")

    if selected:
        if selected[0] != expected_start:
            raise MonthSelectionError("Selected months must start from the next unpaid month.")
        for offset, month in enumerate(selected):
            if month != add_months(expected_start, offset):
                raise MonthSelectionError("Selected months must be contiguous.")

    start_month_paid = rent_start_month in ledger.paid
    start_month_blocked = rent_start_month in ledger.blocked
    if rent_start_month and not start_month_paid and start_month_blocked:
        raise PaymentProcessingError("Start month payment is still processing. Please wait for confirmation.")
    if rent_start_month and not start_month_paid and selected and selected[0] != rent_start_month:
        raise MonthSelectionError("First payment must include the rent start month.")

    for month in selected:
        if month in ledger.paid or month in ledger.blocked:
            raise MonthSelectionError(f"Month {month} has already been paid.")


def compute_move_out_due(
    start_month: str,
    move_out_month: str,
    notice_month: str,
    now_month: str,
    rent: Decimal,
    ledger: MonthLedger,
    penalty_settled: bool = False,
) -> MoveOutDue:
    """
    Work out the rent and fine still owed before a tenant may leave.

    When the move-out month has already passed the tenant owes rent through
    the current month instead.
    """
    penalty = move_out_penalty(move_out_month, notice_month, rent)
    overstay = compare_months(now_month, move_out_month) > 0
    required_paid_until = now_month if overstay else move_out_month

    next_month = next_unpaid_month(start_month, ledger.paid)
    if next_month and compare_months(next_month, required_paid_until) <= 0:
        due_range = list_months(next_month, required_paid_until)
    else:
        due_range = []
    due_months = [month for month in due_range if month not in ledger.paid]

    return MoveOutDue(
        due_months=due_months,
        fine_amount=Decimal("0") if penalty_settled else penalty,
        overstay=overstay,
        required_paid_until=required_paid_until,
        processing_overlap=any(month in ledger.processing for month in due_months),
        penalty_settled=penalty_settled and penalty > 0,
    )


def validate_move_out_selection(selected: List[str], due: MoveOutDue) -> None:
    """
    Validate months picked for a move-out settlement.

    Raises:
        PaymentProcessingError: If a due month is held by a processing payment
        MonthSelectionError: If the selection differs from the due months
    """
    if due.processing_overlap:
        raise PaymentProcessingError()

    if selected != sorted(due.due_months):
        raise MonthSelectionError("Selected months must match the due months for move-out.")

    if not selected and not due.fine_amount:
        raise MonthSelectionError("No due payment remains for this move-out.")
