"""Ledger schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from fee_ledger.core.enums import DistributionMode, PaymentType
from fee_ledger.core.models import (
    CarryForwardItem,
    PaidBy,
    PaymentAllocation,
    PreviousTermBalance,
    PupilFee,
    TermTotals,
)
from fee_ledger.core.models.base import LedgerModel


class PupilFeeStatement(LedgerModel):
    """Everything a pupil owes in one term, previous-term balances first."""

    pupil_id: str
    academic_year_id: str
    term_id: str
    fees: List[PupilFee]
    previous_balance: Optional[PreviousTermBalance] = None
    totals: TermTotals


class CarryForwardPaymentCreate(LedgerModel):
    academic_year_id: str
    term_id: str
    amount: Decimal = Field(..., description="Amount paid toward previous-term balances")
    payment_type: DistributionMode = DistributionMode.GENERAL
    target_item: Optional[CarryForwardItem] = None
    paid_by: Optional[PaidBy] = None


class CarryForwardPaymentResult(LedgerModel):
    success: bool
    payment_ids: List[str] = Field(default_factory=list)
    distributions: List[PaymentAllocation] = Field(default_factory=list)
    message: str


class FeePaymentCreate(LedgerModel):
    academic_year_id: str
    term_id: str
    amount: Decimal = Field(..., description="Amount paid toward the fee")
    paid_by: Optional[PaidBy] = None
    notes: Optional[str] = None


class FeePaymentResult(LedgerModel):
    payment_id: str
    payment_type: PaymentType
    balance_before: Decimal
    balance_after: Decimal
