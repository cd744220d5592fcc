"""Discounts assigned to a pupil and linked to a fee."""

from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence, Tuple

from fee_ledger.core.enums import DiscountType
from fee_ledger.core.ledger.validity import is_assignment_valid
from fee_ledger.core.logger import log
from fee_ledger.core.models import AcademicYear, FeeDiscount, FeeStructure, Pupil

MULTIPLE_DISCOUNTS_ID = "multiple-discounts"
HUNDRED = Decimal("100")


class DiscountResult(NamedTuple):
    final_amount: Decimal
    discount: Optional[FeeDiscount]
    original_amount: Optional[Decimal]
    total_deduction: Decimal


def _index_structures(fee_structures: Sequence[FeeStructure]):
    return {fs.id: fs for fs in fee_structures}


def find_applicable_discounts(
    fee: FeeStructure,
    pupil: Pupil,
    fee_structures: Sequence[FeeStructure],
    term_id: str,
    academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear] = (),
) -> List[FeeStructure]:
    """Discount structures assigned to the pupil, linked to fee, and valid for the period."""
    by_id = _index_structures(fee_structures)
    found: List[FeeStructure] = []
    for assignment in pupil.assigned_fees:
        structure = by_id.get(assignment.fee_structure_id)
        if structure is None or not structure.is_discount or structure.linked_fee_id != fee.id:
            continue
        if not is_assignment_valid(assignment, term_id, academic_year, all_academic_years):
            continue
        found.append(structure)
    return found


def discount_deduction(discount: FeeStructure, original_amount: Decimal) -> Tuple[Decimal, DiscountType]:
    """Negative amounts are fixed deductions; others are a percentage of the original fee."""
    if discount.amount < 0:
        return abs(discount.amount), DiscountType.FIXED
    return original_amount * discount.amount / HUNDRED, DiscountType.PERCENTAGE


def resolve_discount(
    fee: FeeStructure,
    pupil: Pupil,
    fee_structures: Sequence[FeeStructure],
    term_id: str,
    academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear] = (),
) -> DiscountResult:
    """
    Apply every valid discount linked to fee.

    With one discount its name and type are reported. With several, a combined
    "N Discounts Applied" fixed descriptor carries the total deduction.
    """
    discounts = find_applicable_discounts(fee, pupil, fee_structures, term_id, academic_year, all_academic_years)
    if not discounts:
        return DiscountResult(fee.amount, None, None, Decimal("0"))

    original_amount = fee.amount
    total_deduction = Decimal("0")
    discount_type = DiscountType.FIXED
    for structure in discounts:
        deduction, discount_type = discount_deduction(structure, original_amount)
        total_deduction += deduction
        log.debug("Applied discount %r to fee %r: -%s", structure.name, fee.name, deduction)

    final_amount = max(Decimal("0"), original_amount - total_deduction)

    if len(discounts) == 1:
        descriptor = FeeDiscount(
            id=discounts[0].id,
            name=discounts[0].name,
            amount=total_deduction,
            type=discount_type,
        )
    else:
        descriptor = FeeDiscount(
            id=MULTIPLE_DISCOUNTS_ID,
            name=f"{len(discounts)} Discounts Applied",
            amount=total_deduction,
            type=DiscountType.FIXED,
        )

    return DiscountResult(final_amount, descriptor, original_amount, total_deduction)
