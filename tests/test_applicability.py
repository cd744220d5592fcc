"""Unit tests for which fee structures apply to a pupil in a period."""

from fee_ledger.core.enums import FeeScope, ValidityType
from fee_ledger.core.ledger.applicability import filter_applicable_fees, is_fee_applicable
from fee_ledger.core.models import AssignedFee

from factories import make_fee


def test_unscoped_fee_applies_to_every_period(pupil, year_2023, year_2024) -> None:
    fee = make_fee("library", 10000)
    assert is_fee_applicable(fee, pupil, "t3-2023", year_2023)
    assert is_fee_applicable(fee, pupil, "t2-2024", year_2024)


def test_year_and_term_scoping_is_exact(pupil, year_2024) -> None:
    fee = make_fee("exam", 50000, academic_year_id="y2024", term_id="t1-2024")
    assert is_fee_applicable(fee, pupil, "t1-2024", year_2024)
    assert not is_fee_applicable(fee, pupil, "t2-2024", year_2024)

    other_year = make_fee("exam-2023", 50000, academic_year_id="y2023")
    assert not is_fee_applicable(other_year, pupil, "t1-2024", year_2024)


def test_class_restriction(pupil, year_2024) -> None:
    p4_only = make_fee("p4", 1000, class_fee_type=FeeScope.SPECIFIC, class_ids=["P4", "P5"])
    p3_only = make_fee("p3", 1000, class_fee_type=FeeScope.SPECIFIC, class_ids=["P3"])
    assert is_fee_applicable(p4_only, pupil, "t2-2024", year_2024)
    assert not is_fee_applicable(p3_only, pupil, "t2-2024", year_2024)


def test_specific_class_without_class_list_does_not_restrict(pupil, year_2024) -> None:
    fee = make_fee("any", 1000, class_fee_type=FeeScope.SPECIFIC)
    assert is_fee_applicable(fee, pupil, "t2-2024", year_2024)


def test_section_restriction(pupil, year_2024) -> None:
    section_a = make_fee("a", 1000, section_fee_type=FeeScope.SPECIFIC, section="A")
    section_b = make_fee("b", 1000, section_fee_type=FeeScope.SPECIFIC, section="B")
    assert is_fee_applicable(section_a, pupil, "t2-2024", year_2024)
    assert not is_fee_applicable(section_b, pupil, "t2-2024", year_2024)


def test_historical_class_decides_applicability(pupil, year_2023) -> None:
    """The same pupil owes a P3 fee only as they were when in P3."""
    fee = make_fee("p3", 1000, class_fee_type=FeeScope.SPECIFIC, class_ids=["P3"])
    historical = pupil.model_copy(update={"class_id": "P3"})
    assert not is_fee_applicable(fee, pupil, "t3-2023", year_2023)
    assert is_fee_applicable(fee, historical, "t3-2023", year_2023)


def test_discount_structures_are_never_fees(pupil, year_2024) -> None:
    by_category = make_fee("bursary", 10, category="Discount", linked_fee_id="tuition")
    by_amount = make_fee("rebate", -5000, category="Tuition")
    assert not is_fee_applicable(by_category, pupil, "t2-2024", year_2024)
    assert not is_fee_applicable(by_amount, pupil, "t2-2024", year_2024)


def test_assignment_fee_needs_valid_assignment(pupil, year_2023, year_2024) -> None:
    bus = make_fee("bus", 60000, is_assignment_fee=True)
    assert not is_fee_applicable(bus, pupil, "t2-2024", year_2024)

    assigned = pupil.model_copy(
        update={
            "assigned_fees": [
                AssignedFee(
                    fee_structure_id="bus",
                    validity_type=ValidityType.SPECIFIC_YEAR,
                    start_academic_year_id="y2024",
                )
            ]
        }
    )
    assert is_fee_applicable(bus, assigned, "t2-2024", year_2024)
    assert not is_fee_applicable(bus, assigned, "t3-2023", year_2023)


def test_filter_keeps_input_order(pupil, year_2024, fee_structures) -> None:
    applicable = filter_applicable_fees(fee_structures, pupil, "t1-2024", year_2024)
    assert [f.id for f in applicable] == ["tuition-2024-t1", "exam-2024-t1", "swimming"]
