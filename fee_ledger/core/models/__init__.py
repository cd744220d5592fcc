from fee_ledger.core.models.academic_year import AcademicYear, Period, Term
from fee_ledger.core.models.fee_structure import FeeStructure
from fee_ledger.core.models.ledger import (
    CarryForwardItem,
    FeeDiscount,
    PaymentAllocation,
    PaymentValidation,
    PreviousTermBalance,
    PupilFee,
    TermInfo,
    TermTotals,
)
from fee_ledger.core.models.payment_record import (
    CarryForwardPayment,
    PaidBy,
    PaymentRecord,
    RegularPayment,
)
from fee_ledger.core.models.pupil import AssignedFee, PromotionRecord, Pupil, PupilTermSnapshot
from fee_ledger.core.models.uniform_fee import UniformFeeLine

__all__ = [
    "AcademicYear",
    "AssignedFee",
    "CarryForwardItem",
    "CarryForwardPayment",
    "FeeDiscount",
    "FeeStructure",
    "PaidBy",
    "PaymentAllocation",
    "PaymentRecord",
    "PaymentValidation",
    "Period",
    "PreviousTermBalance",
    "PromotionRecord",
    "Pupil",
    "PupilFee",
    "PupilTermSnapshot",
    "RegularPayment",
    "Term",
    "TermInfo",
    "TermTotals",
    "UniformFeeLine",
]
