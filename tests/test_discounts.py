"""Unit tests for discount resolution."""

from decimal import Decimal

from fee_ledger.core.enums import AssignmentStatus, DiscountType, ValidityType
from fee_ledger.core.ledger.discounts import (
    MULTIPLE_DISCOUNTS_ID,
    discount_deduction,
    find_applicable_discounts,
    resolve_discount,
)
from fee_ledger.core.models import AssignedFee, Pupil

from factories import make_fee

TUITION = make_fee("tuition", 100000, name="Tuition")


def _pupil(*assignments) -> Pupil:
    return Pupil(id="pupil-1", class_id="P4", section="A", assigned_fees=list(assignments))


def _discount(fee_id: str, amount, linked: str = "tuition"):
    return make_fee(fee_id, amount, category="Discount", linked_fee_id=linked, is_required=False)


def test_percentage_discount(year_2024) -> None:
    """A 10% discount on 100,000 leaves 90,000."""
    structures = [TUITION, _discount("bursary", 10)]
    pupil = _pupil(AssignedFee(fee_structure_id="bursary"))

    result = resolve_discount(TUITION, pupil, structures, "t1-2024", year_2024)

    assert result.final_amount == Decimal("90000")
    assert result.original_amount == Decimal("100000")
    assert result.discount.id == "bursary"
    assert result.discount.amount == Decimal("10000")
    assert result.discount.type == DiscountType.PERCENTAGE


def test_negative_amount_is_fixed_deduction() -> None:
    deduction, kind = discount_deduction(_discount("staff", -25000), Decimal("100000"))
    assert deduction == Decimal("25000")
    assert kind == DiscountType.FIXED


def test_several_discounts_combine(year_2024) -> None:
    structures = [TUITION, _discount("bursary", 10), _discount("staff", -25000)]
    pupil = _pupil(AssignedFee(fee_structure_id="bursary"), AssignedFee(fee_structure_id="staff"))

    result = resolve_discount(TUITION, pupil, structures, "t1-2024", year_2024)

    assert result.final_amount == Decimal("65000")
    assert result.total_deduction == Decimal("35000")
    assert result.discount.id == MULTIPLE_DISCOUNTS_ID
    assert result.discount.name == "2 Discounts Applied"
    assert result.discount.type == DiscountType.FIXED


def test_final_amount_is_floored_at_zero(year_2024) -> None:
    structures = [TUITION, _discount("full", -150000)]
    pupil = _pupil(AssignedFee(fee_structure_id="full"))

    result = resolve_discount(TUITION, pupil, structures, "t1-2024", year_2024)

    assert result.final_amount == Decimal("0")
    assert result.discount.amount == Decimal("150000")


def test_no_discount_leaves_fee_untouched(year_2024) -> None:
    result = resolve_discount(TUITION, _pupil(), [TUITION], "t1-2024", year_2024)
    assert result.final_amount == Decimal("100000")
    assert result.discount is None
    assert result.original_amount is None
    assert result.total_deduction == Decimal("0")


def test_discounts_need_a_valid_assignment_and_matching_link(year_2023, year_2024) -> None:
    structures = [
        TUITION,
        _discount("bursary", 10),
        _discount("other-fee", 50, linked="exam"),
        _discount("old", 20),
    ]
    pupil = _pupil(
        AssignedFee(fee_structure_id="bursary", status=AssignmentStatus.DISABLED),
        AssignedFee(fee_structure_id="other-fee"),
        AssignedFee(
            fee_structure_id="old",
            validity_type=ValidityType.SPECIFIC_YEAR,
            start_academic_year_id="y2023",
        ),
        AssignedFee(fee_structure_id="missing-structure"),
    )

    assert find_applicable_discounts(TUITION, pupil, structures, "t1-2024", year_2024) == []
    found = find_applicable_discounts(TUITION, pupil, structures, "t1-2023", year_2023)
    assert [d.id for d in found] == ["old"]


def test_conservation(year_2024) -> None:
    """final amount plus total deduction equals the original amount while above zero."""
    structures = [TUITION, _discount("bursary", 15), _discount("staff", -5000)]
    pupil = _pupil(AssignedFee(fee_structure_id="bursary"), AssignedFee(fee_structure_id="staff"))
    result = resolve_discount(TUITION, pupil, structures, "t1-2024", year_2024)
    assert result.final_amount + result.total_deduction == result.original_amount
