"""
Payment records. A record is either a regular payment or a carry-forward payment;
the variant is picked from the stored isCarryForwardPayment flag.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Discriminator, Tag, field_validator

from fee_ledger.core.enums import PREVIOUS_BALANCE_FEE_ID
from fee_ledger.core.models.base import LedgerModel


class PaidBy(LedgerModel):
    id: str
    name: str
    role: Optional[str] = None


class PaymentBase(LedgerModel):
    id: Optional[str] = None
    pupil_id: str
    fee_structure_id: str
    academic_year_id: Optional[str] = None
    term_id: Optional[str] = None
    amount: Decimal
    payment_date: datetime
    paid_by: Optional[PaidBy] = None
    notes: Optional[str] = None
    reverted: bool = False
    reverted_by: Optional[PaidBy] = None
    reverted_at: Optional[datetime] = None

    @field_validator("payment_date", "reverted_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Exports mix naive and offset timestamps; naive ones were written in UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_previous_balance_record(self) -> bool:
        return self.fee_structure_id == PREVIOUS_BALANCE_FEE_ID


class RegularPayment(PaymentBase):
    is_carry_forward_payment: Literal[False] = False


class CarryForwardPayment(PaymentBase):
    """
    Payment toward an item of a previous-term balance. Normally written against the
    "previous-balance" fee id; legacy dual-write records carry the original fee id instead.
    """

    is_carry_forward_payment: Literal[True] = True
    original_fee_structure_id: str
    original_term: str
    original_year: str
    original_term_id: Optional[str] = None
    original_academic_year_id: Optional[str] = None
    carry_forward_item_name: Optional[str] = None
    payment_made_in_term: Optional[str] = None
    payment_made_in_year: Optional[str] = None


def _payment_kind(value: Any) -> str:
    if isinstance(value, dict):
        flag = value.get("isCarryForwardPayment", value.get("is_carry_forward_payment", False))
    else:
        flag = getattr(value, "is_carry_forward_payment", False)
    return "carry_forward" if flag else "regular"


PaymentRecord = Annotated[
    Union[
        Annotated[RegularPayment, Tag("regular")],
        Annotated[CarryForwardPayment, Tag("carry_forward")],
    ],
    Discriminator(_payment_kind),
]
