"""Spreading one payment over the items of a previous-term balance."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from fee_ledger.core.enums import PREVIOUS_BALANCE_FEE_ID, DistributionMode, ValidationCode
from fee_ledger.core.logger import log
from fee_ledger.core.models import (
    CarryForwardItem,
    CarryForwardPayment,
    PaidBy,
    PaymentAllocation,
    PaymentRecord,
    PaymentValidation,
)

WHOLE_UNIT = Decimal("1")


def format_money(amount: Decimal, currency: str) -> str:
    return f"{currency} {amount:,.0f}"


def total_balance(breakdown: Sequence[CarryForwardItem]) -> Decimal:
    return sum((item.balance for item in breakdown), Decimal("0"))


def validate_carry_forward_payment(
    amount: Decimal,
    mode: DistributionMode,
    breakdown: Sequence[CarryForwardItem],
    target_item: Optional[CarryForwardItem] = None,
    currency: str = "UGX",
) -> PaymentValidation:
    if amount <= 0:
        return PaymentValidation.fail(ValidationCode.NON_POSITIVE_AMOUNT, "Payment amount must be greater than zero")

    if not breakdown:
        return PaymentValidation.fail(ValidationCode.EMPTY_BREAKDOWN, "No carry forward items found")

    if mode == DistributionMode.ITEM_SPECIFIC:
        if target_item is None:
            return PaymentValidation.fail(
                ValidationCode.MISSING_TARGET_ITEM, "Target item is required for item-specific payments"
            )
        if amount > target_item.balance:
            return PaymentValidation.fail(
                ValidationCode.EXCEEDS_ITEM_BALANCE,
                f"Payment amount cannot exceed item balance of {format_money(target_item.balance, currency)}",
            )
        return PaymentValidation.ok()

    limit = total_balance(breakdown)
    if amount > limit:
        return PaymentValidation.fail(
            ValidationCode.EXCEEDS_TOTAL_BALANCE,
            f"Payment amount cannot exceed total balance of {format_money(limit, currency)}",
        )
    return PaymentValidation.ok()


def calculate_payment_distribution(
    amount: Decimal,
    mode: DistributionMode,
    breakdown: Sequence[CarryForwardItem],
    target_item: Optional[CarryForwardItem] = None,
) -> List[PaymentAllocation]:
    """
    Item-specific payments go to the target item, capped at its balance. General
    payments are split in proportion to each item's balance, rounded to whole
    units; items whose share rounds to zero get nothing.
    """
    if mode == DistributionMode.ITEM_SPECIFIC and target_item is not None:
        allocated = min(amount, target_item.balance)
        if allocated > 0:
            return [PaymentAllocation(item=target_item, allocated_amount=allocated)]
        return []

    outstanding = total_balance(breakdown)
    if outstanding <= 0:
        return []

    allocations: List[PaymentAllocation] = []
    for item in breakdown:
        share = (amount * item.balance / outstanding).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
        if share > 0:
            allocations.append(PaymentAllocation(item=item, allocated_amount=share))
    return allocations


def build_carry_forward_payment(
    allocation: PaymentAllocation,
    pupil_id: str,
    current_term_id: str,
    current_academic_year_id: str,
    paid_by: Optional[PaidBy],
    payment_date: datetime,
) -> CarryForwardPayment:
    """
    The single record written for an allocation. It is filed in the current term
    against "previous-balance" and names the original obligation, which is how the
    reconciler credits it back to the original fee.
    """
    item = allocation.item
    return CarryForwardPayment(
        pupil_id=pupil_id,
        fee_structure_id=PREVIOUS_BALANCE_FEE_ID,
        academic_year_id=current_academic_year_id,
        term_id=current_term_id,
        amount=allocation.allocated_amount,
        payment_date=payment_date,
        paid_by=paid_by,
        notes=f"Carry forward payment: {item.name} ({item.term} - {item.year})",
        original_fee_structure_id=item.fee_structure_id,
        original_term=item.term,
        original_year=item.year,
        original_term_id=item.term_id,
        original_academic_year_id=item.academic_year_id,
        carry_forward_item_name=item.name,
        payment_made_in_term=current_term_id,
        payment_made_in_year=current_academic_year_id,
    )


def distribution_message(
    mode: DistributionMode,
    allocations: Sequence[PaymentAllocation],
    currency: str = "UGX",
) -> str:
    total = sum((a.allocated_amount for a in allocations), Decimal("0"))
    if mode == DistributionMode.GENERAL:
        return f"Payment of {format_money(total, currency)} distributed across {len(allocations)} item(s)"
    name = allocations[0].item.name if allocations else "selected item"
    return f"Payment of {format_money(total, currency)} applied to {name}"


def get_carry_forward_payment_history(
    payments: Sequence[PaymentRecord],
    breakdown: Sequence[CarryForwardItem],
) -> List[PaymentRecord]:
    """Carry-forward payments and payments against any breakdown fee, newest first."""
    fee_ids = {item.fee_structure_id for item in breakdown}
    history = [p for p in payments if p.is_carry_forward_payment or p.fee_structure_id in fee_ids]
    history.sort(key=lambda p: p.payment_date, reverse=True)
    log.debug("Carry-forward history: %d of %d payments", len(history), len(payments))
    return history
