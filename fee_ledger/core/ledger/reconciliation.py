"""
Payment reconciliation: total paid against one fee, counting each payment once.

A carry-forward payment is written once, in the term it was made, against the
"previous-balance" fee id with the original fee recorded in its metadata. Older
records were also written a second time against the original fee. Both copies
describe the same money; the carry-forward record wins.

Copies are paired by amount (within AMOUNT_TOLERANCE) and payment time (within
DUPLICATE_WINDOW). The records carry no explicit link to each other, so this
pairing is a heuristic. It decides the balances reported today and must not be
loosened or tightened without migrating the stored records to an explicit link.
"""

from datetime import timedelta
from decimal import Decimal
from typing import List, NamedTuple, Sequence

from fee_ledger.core.logger import log
from fee_ledger.core.models import CarryForwardPayment, PaymentRecord

AMOUNT_TOLERANCE = Decimal("0.01")
DUPLICATE_WINDOW = timedelta(seconds=60)


class FeePayments(NamedTuple):
    total_paid: Decimal
    payments: List[PaymentRecord]


def _original_fee_id(payment: PaymentRecord):
    if isinstance(payment, CarryForwardPayment):
        return payment.original_fee_structure_id
    return None


def _is_carry_forward_for(payment: PaymentRecord, fee_id: str) -> bool:
    return payment.is_previous_balance_record and _original_fee_id(payment) == fee_id


def _same_money(a: PaymentRecord, b: PaymentRecord) -> bool:
    return (
        abs(a.amount - b.amount) < AMOUNT_TOLERANCE
        and abs(a.payment_date - b.payment_date) < DUPLICATE_WINDOW
    )


def _linked(a: PaymentRecord, b: PaymentRecord) -> bool:
    return (
        a.fee_structure_id == b.fee_structure_id
        or _is_carry_forward_for(a, b.fee_structure_id)
        or _is_carry_forward_for(b, a.fee_structure_id)
    )


def _deduplicate(candidates: List[PaymentRecord]) -> List[PaymentRecord]:
    unique: List[PaymentRecord] = []
    seen_ids = set()
    for payment in candidates:
        if payment.id is not None:
            if payment.id in seen_ids:
                continue
            seen_ids.add(payment.id)

        duplicates = [
            other
            for other in candidates
            if other.id != payment.id and _same_money(other, payment) and _linked(other, payment)
        ]
        if duplicates and not payment.is_previous_balance_record:
            if any(d.is_previous_balance_record for d in duplicates):
                continue
        unique.append(payment)
    return unique


def calculate_fee_payments(fee_id: str, payments: Sequence[PaymentRecord]) -> FeePayments:
    """
    Total paid toward fee_id and the payments counted for it.

    Counted: direct payments to the fee, carry-forward payments whose original fee is
    this fee, and legacy carry-forward copies written against the fee itself when no
    matching carry-forward record exists. Reverted payments never count.
    """
    live = [p for p in payments if not p.reverted]

    direct = [p for p in live if p.fee_structure_id == fee_id]
    carried = [p for p in live if _is_carry_forward_for(p, fee_id)]
    legacy = [
        p
        for p in live
        if p.fee_structure_id == fee_id
        and p.is_carry_forward_payment
        and not any(_same_money(cf, p) and _original_fee_id(cf) == p.fee_structure_id for cf in carried)
    ]

    candidates = direct + carried + legacy
    unique = _deduplicate(candidates)
    total_paid = sum((p.amount for p in unique), Decimal("0"))

    log.debug(
        "Fee %s payments: direct=%d carried=%d legacy=%d counted=%d total=%s",
        fee_id, len(direct), len(carried), len(legacy), len(unique), total_paid,
    )
    return FeePayments(total_paid=total_paid, payments=unique)
