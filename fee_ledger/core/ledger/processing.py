"""Per-fee ledger state for a pupil: discounted amount, amount paid and balance."""

from decimal import Decimal
from typing import List, Sequence

from fee_ledger.core.enums import PREVIOUS_BALANCE_FEE_ID, PaymentType, ValidationCode
from fee_ledger.core.ledger.discounts import resolve_discount
from fee_ledger.core.ledger.reconciliation import calculate_fee_payments
from fee_ledger.core.logger import log
from fee_ledger.core.models import (
    AcademicYear,
    FeeStructure,
    PaymentRecord,
    PaymentValidation,
    PreviousTermBalance,
    Pupil,
    PupilFee,
    TermTotals,
)

DEFAULT_OVERPAYMENT_RATIO = Decimal("1.1")


def process_pupil_fees(
    fee_structures: Sequence[FeeStructure],
    payments: Sequence[PaymentRecord],
    all_fee_structures: Sequence[FeeStructure],
    pupil: Pupil,
    term_id: str,
    academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear] = (),
) -> List[PupilFee]:
    """
    Turn already-filtered fee structures into PupilFee records.
    all_fee_structures is the full set, needed to resolve discount definitions.
    """
    processed: List[PupilFee] = []
    for fee in fee_structures:
        discounted = resolve_discount(fee, pupil, all_fee_structures, term_id, academic_year, all_academic_years)
        fee_payments = calculate_fee_payments(fee.id, payments)
        balance = max(Decimal("0"), discounted.final_amount - fee_payments.total_paid)

        data = fee.model_dump()
        data.update(
            amount=discounted.final_amount,
            paid=fee_payments.total_paid,
            balance=balance,
            payments=fee_payments.payments,
            discount=discounted.discount,
            original_amount=discounted.original_amount,
        )
        processed.append(PupilFee(**data))
        log.debug(
            "Processed fee %r: amount=%s paid=%s balance=%s",
            fee.name, discounted.final_amount, fee_payments.total_paid, balance,
        )
    return processed


def create_previous_balance_fee(
    previous_balance: PreviousTermBalance,
    payments: Sequence[PaymentRecord] = (),
) -> PupilFee:
    """
    Synthetic current-term fee standing for every carried-forward balance.

    previous_balance.amount is already net of carry-forward payments, since each one
    is credited back to its original fee. The payments are reported as paid on top
    of that outstanding amount, never subtracted from it again.
    """
    carried = [
        p for p in payments if p.is_previous_balance_record and not p.reverted and p.is_carry_forward_payment
    ]
    paid = sum((p.amount for p in carried), Decimal("0"))

    return PupilFee(
        id=PREVIOUS_BALANCE_FEE_ID,
        name="Previous Term Balances",
        description="Outstanding balances from previous terms",
        category="Other Fee",
        amount=previous_balance.amount + paid,
        is_required=True,
        is_recurring=False,
        academic_year_id="multiple",
        term_id="previous-terms",
        paid=paid,
        balance=previous_balance.amount,
        payments=carried,
        fee_breakdown=previous_balance.breakdown,
    )


def compute_term_totals(fees: Sequence[PupilFee]) -> TermTotals:
    return TermTotals(
        total_fees=sum((f.amount for f in fees), Decimal("0")),
        total_paid=sum((f.paid for f in fees), Decimal("0")),
        total_balance=sum((f.balance for f in fees), Decimal("0")),
    )


def determine_payment_type(amount: Decimal, balance: Decimal) -> PaymentType:
    if amount == balance:
        return PaymentType.FULL_PAYMENT
    if amount < balance:
        return PaymentType.PARTIAL_PAYMENT
    return PaymentType.OVERPAYMENT


def validate_payment_amount(
    amount: Decimal,
    balance: Decimal,
    overpayment_ratio: Decimal = DEFAULT_OVERPAYMENT_RATIO,
) -> PaymentValidation:
    """A direct fee payment may exceed the balance by at most the overpayment ratio."""
    if amount <= 0:
        return PaymentValidation.fail(ValidationCode.NON_POSITIVE_AMOUNT, "Payment amount must be greater than zero")
    limit = balance * overpayment_ratio
    if amount > limit:
        return PaymentValidation.fail(
            ValidationCode.EXCEEDS_ALLOWED_OVERPAYMENT,
            f"Payment amount cannot exceed {limit:,.0f} ({overpayment_ratio * 100:.0f}% of balance)",
        )
    return PaymentValidation.ok()
