"""Derived ledger entities. Recomputed on every request, never persisted."""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from fee_ledger.core.enums import DiscountType, ValidationCode
from fee_ledger.core.models.base import LedgerModel
from fee_ledger.core.models.fee_structure import FeeStructure
from fee_ledger.core.models.payment_record import PaymentRecord


class FeeDiscount(LedgerModel):
    id: str
    name: str
    amount: Decimal
    type: DiscountType


class CarryForwardItem(LedgerModel):
    """One unpaid historical obligation inside a previous-term balance."""

    name: str
    amount: Decimal
    paid: Decimal
    balance: Decimal
    term: str
    year: str
    fee_structure_id: str
    term_id: str
    academic_year_id: str

    def same_obligation(self, other: "CarryForwardItem") -> bool:
        return (
            self.fee_structure_id == other.fee_structure_id
            and self.term_id == other.term_id
            and self.academic_year_id == other.academic_year_id
        )


class TermInfo(LedgerModel):
    term: str
    year: str


class PreviousTermBalance(LedgerModel):
    amount: Decimal
    term_info: TermInfo
    breakdown: List[CarryForwardItem]


class PupilFee(FeeStructure):
    """
    A fee as it stands for a pupil in one period. amount is the discounted amount;
    original_amount is only set when a discount applied.
    """

    paid: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    payments: List[PaymentRecord] = Field(default_factory=list)
    discount: Optional[FeeDiscount] = None
    original_amount: Optional[Decimal] = None
    fee_breakdown: Optional[List[CarryForwardItem]] = None
    is_uniform_fee: bool = False


class PaymentAllocation(LedgerModel):
    item: CarryForwardItem
    allocated_amount: Decimal


class PaymentValidation(LedgerModel):
    is_valid: bool
    code: Optional[ValidationCode] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "PaymentValidation":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, code: ValidationCode, error: str) -> "PaymentValidation":
        return cls(is_valid=False, code=code, error=error)


class TermTotals(LedgerModel):
    total_fees: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_balance: Decimal = Decimal("0")
