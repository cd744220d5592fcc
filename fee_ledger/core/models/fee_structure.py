"""Fee structure: a billable obligation definition, or a discount linked to one."""

from decimal import Decimal
from typing import List, Optional

from fee_ledger.core.enums import DISCOUNT_CATEGORY, FeeScope
from fee_ledger.core.models.base import LedgerModel


class FeeStructure(LedgerModel):
    """
    Discounts use category "Discount" (or a negative amount) and point at the fee they
    reduce through linked_fee_id. A negative discount amount is a fixed deduction; a
    non-negative one is a percentage of the linked fee.
    No academic_year_id / term_id means the fee applies to every year / term.
    """

    id: str
    name: str
    description: Optional[str] = None
    category: str = "Tuition"
    amount: Decimal
    is_required: bool = False
    is_recurring: bool = False
    academic_year_id: Optional[str] = None
    term_id: Optional[str] = None
    class_fee_type: FeeScope = FeeScope.ALL
    class_ids: Optional[List[str]] = None
    section_fee_type: FeeScope = FeeScope.ALL
    section: Optional[str] = None
    linked_fee_id: Optional[str] = None
    is_assignment_fee: bool = False
    status: str = "active"

    @property
    def is_discount(self) -> bool:
        return self.category == DISCOUNT_CATEGORY or self.amount < 0
