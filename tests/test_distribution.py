"""Unit tests for carry-forward payment validation and distribution."""

from datetime import timedelta
from decimal import Decimal

import pytest

from fee_ledger.core.enums import DistributionMode, ValidationCode
from fee_ledger.core.ledger.distribution import (
    build_carry_forward_payment,
    calculate_payment_distribution,
    distribution_message,
    get_carry_forward_payment_history,
    validate_carry_forward_payment,
)
from fee_ledger.core.models import CarryForwardPayment, PaidBy, PaymentAllocation, RegularPayment

from factories import NOW, make_carry_forward_payment, make_item, make_payment

GENERAL = DistributionMode.GENERAL
ITEM = DistributionMode.ITEM_SPECIFIC


@pytest.fixture()
def breakdown():
    return [make_item("tuition", 30000), make_item("exam", 10000)]


def test_general_payment_is_proportional(breakdown) -> None:
    """20,000 over balances of 30,000 and 10,000 splits 15,000 / 5,000."""
    allocations = calculate_payment_distribution(Decimal("20000"), GENERAL, breakdown)
    assert [(a.item.fee_structure_id, a.allocated_amount) for a in allocations] == [
        ("tuition", Decimal("15000")),
        ("exam", Decimal("5000")),
    ]


def test_general_allocations_round_to_whole_units() -> None:
    items = [make_item("a", 1), make_item("b", 1), make_item("c", 1)]
    allocations = calculate_payment_distribution(Decimal("100"), GENERAL, items)
    assert [a.allocated_amount for a in allocations] == [Decimal("33"), Decimal("33"), Decimal("33")]


def test_half_units_round_up() -> None:
    items = [make_item("a", 1), make_item("b", 1)]
    allocations = calculate_payment_distribution(Decimal("5"), GENERAL, items)
    assert [a.allocated_amount for a in allocations] == [Decimal("3"), Decimal("3")]


def test_zero_shares_are_skipped() -> None:
    items = [make_item("big", 1000000), make_item("tiny", 1)]
    allocations = calculate_payment_distribution(Decimal("1000"), GENERAL, items)
    assert [a.item.fee_structure_id for a in allocations] == ["big"]


def test_zero_total_balance_distributes_nothing() -> None:
    assert calculate_payment_distribution(Decimal("1000"), GENERAL, [make_item("paid", 0)]) == []


@pytest.mark.parametrize("amount", [1, 999, 12345, 25000, 39999, 40000])
def test_general_distribution_conserves_amount(breakdown, amount) -> None:
    allocations = calculate_payment_distribution(Decimal(amount), GENERAL, breakdown)
    total = sum(a.allocated_amount for a in allocations)
    assert abs(total - amount) <= len(breakdown)


def test_item_specific_caps_at_item_balance(breakdown) -> None:
    """50,000 against a 30,000 item allocates 30,000."""
    allocations = calculate_payment_distribution(Decimal("50000"), ITEM, breakdown, breakdown[0])
    assert len(allocations) == 1
    assert allocations[0].item.fee_structure_id == "tuition"
    assert allocations[0].allocated_amount == Decimal("30000")


def test_item_specific_rejects_amount_above_item_balance(breakdown) -> None:
    validation = validate_carry_forward_payment(Decimal("50000"), ITEM, breakdown, breakdown[0])
    assert not validation.is_valid
    assert validation.code == ValidationCode.EXCEEDS_ITEM_BALANCE
    assert validation.error == "Payment amount cannot exceed item balance of UGX 30,000"


@pytest.mark.parametrize(
    "amount, mode, target, code, error",
    [
        (0, GENERAL, None, ValidationCode.NON_POSITIVE_AMOUNT, "Payment amount must be greater than zero"),
        (-5, ITEM, None, ValidationCode.NON_POSITIVE_AMOUNT, "Payment amount must be greater than zero"),
        (100, ITEM, None, ValidationCode.MISSING_TARGET_ITEM, "Target item is required for item-specific payments"),
        (
            40001, GENERAL, None, ValidationCode.EXCEEDS_TOTAL_BALANCE,
            "Payment amount cannot exceed total balance of UGX 40,000",
        ),
    ],
)
def test_validation_failures(breakdown, amount, mode, target, code, error) -> None:
    validation = validate_carry_forward_payment(Decimal(amount), mode, breakdown, target)
    assert not validation.is_valid
    assert validation.code == code
    assert validation.error == error


def test_empty_breakdown_is_rejected() -> None:
    validation = validate_carry_forward_payment(Decimal("100"), GENERAL, [])
    assert validation.code == ValidationCode.EMPTY_BREAKDOWN
    assert validation.error == "No carry forward items found"


def test_valid_payments(breakdown) -> None:
    assert validate_carry_forward_payment(Decimal("40000"), GENERAL, breakdown).is_valid
    assert validate_carry_forward_payment(Decimal("10000"), ITEM, breakdown, breakdown[1]).is_valid


def test_payment_record_names_the_original_obligation(breakdown) -> None:
    cashier = PaidBy(id="staff-1", name="Bursar", role="accountant")
    allocation = PaymentAllocation(item=breakdown[0], allocated_amount=Decimal("15000"))

    record = build_carry_forward_payment(allocation, "pupil-1", "t2-2024", "y2024", cashier, NOW)

    assert isinstance(record, CarryForwardPayment)
    assert record.fee_structure_id == "previous-balance"
    assert record.is_carry_forward_payment
    assert record.is_previous_balance_record
    assert record.term_id == "t2-2024"
    assert record.academic_year_id == "y2024"
    assert record.amount == Decimal("15000")
    assert record.payment_date == NOW
    assert record.paid_by == cashier
    assert record.notes == "Carry forward payment: Tuition (Term 1 - 2024)"
    assert record.original_fee_structure_id == "tuition"
    assert record.original_term == "Term 1"
    assert record.original_year == "2024"
    assert record.original_term_id == "t1-2024"
    assert record.original_academic_year_id == "y2024"
    assert record.carry_forward_item_name == "Tuition"
    assert record.payment_made_in_term == "t2-2024"
    assert record.payment_made_in_year == "y2024"


def test_messages(breakdown) -> None:
    general = calculate_payment_distribution(Decimal("20000"), GENERAL, breakdown)
    assert distribution_message(GENERAL, general) == "Payment of UGX 20,000 distributed across 2 item(s)"

    targeted = calculate_payment_distribution(Decimal("5000"), ITEM, breakdown, breakdown[1])
    assert distribution_message(ITEM, targeted, "KES") == "Payment of KES 5,000 applied to Exam"


def test_history_is_newest_first(breakdown) -> None:
    payments = [
        make_payment("tuition", 1000, "old", at=NOW - timedelta(days=30)),
        make_payment("library", 1000, "unrelated", at=NOW - timedelta(days=1)),
        make_carry_forward_payment("uniform", 2000, "cf", at=NOW),
        make_payment("exam", 1000, "mid", at=NOW - timedelta(days=10)),
    ]
    history = get_carry_forward_payment_history(payments, breakdown)
    assert [p.id for p in history] == ["cf", "mid", "old"]


def test_history_sorts_exported_naive_timestamps(breakdown) -> None:
    exported = RegularPayment.model_validate(
        {
            "id": "exported",
            "pupilId": "pupil-1",
            "feeStructureId": "exam",
            "amount": "1000",
            "paymentDate": "2024-06-15T09:00:20",
        }
    )
    payments = [exported, make_carry_forward_payment("uniform", 2000, "cf", at=NOW)]

    history = get_carry_forward_payment_history(payments, breakdown)

    assert [p.id for p in history] == ["exported", "cf"]
    assert exported.payment_date == NOW + timedelta(seconds=20)
