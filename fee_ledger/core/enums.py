from enum import Enum


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


class ValidityType(str, Enum):
    CURRENT_TERM = "current_term"
    CURRENT_YEAR = "current_year"
    SPECIFIC_YEAR = "specific_year"
    YEAR_RANGE = "year_range"
    SPECIFIC_TERMS = "specific_terms"
    INDEFINITE = "indefinite"


class TermApplicability(str, Enum):
    ALL_TERMS = "all_terms"
    SPECIFIC_TERMS = "specific_terms"


class FeeScope(str, Enum):
    """classFeeType / sectionFeeType on a fee structure."""

    ALL = "all"
    SPECIFIC = "specific"


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class PaymentType(str, Enum):
    FULL_PAYMENT = "full_payment"
    PARTIAL_PAYMENT = "partial_payment"
    OVERPAYMENT = "overpayment"


class DistributionMode(str, Enum):
    GENERAL = "general"
    ITEM_SPECIFIC = "item-specific"


class ValidationCode(str, Enum):
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    EMPTY_BREAKDOWN = "empty_breakdown"
    MISSING_TARGET_ITEM = "missing_target_item"
    EXCEEDS_ITEM_BALANCE = "exceeds_item_balance"
    EXCEEDS_TOTAL_BALANCE = "exceeds_total_balance"
    EXCEEDS_ALLOWED_OVERPAYMENT = "exceeds_allowed_overpayment"


DISCOUNT_CATEGORY = "Discount"
PREVIOUS_BALANCE_FEE_ID = "previous-balance"
