"""Uniform-tracking balances, supplied by the uniform integration as fee fragments."""

from decimal import Decimal

from fee_ledger.core.models.base import LedgerModel
from fee_ledger.core.models.ledger import PupilFee


class UniformFeeLine(LedgerModel):
    id: str
    name: str
    amount: Decimal
    paid: Decimal = Decimal("0")
    balance: Decimal
    term_id: str
    academic_year_id: str
    is_required: bool = True

    def to_pupil_fee(self) -> PupilFee:
        return PupilFee(
            id=self.id,
            name=self.name,
            category="Uniform",
            amount=self.amount,
            is_required=self.is_required,
            academic_year_id=self.academic_year_id,
            term_id=self.term_id,
            paid=self.paid,
            balance=self.balance,
            is_uniform_fee=True,
        )
