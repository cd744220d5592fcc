"""Academic years and their ordered terms."""

from datetime import date
from typing import List, Optional

from pydantic import Field

from fee_ledger.core.models.base import LedgerModel


class Term(LedgerModel):
    id: str
    name: str
    start_date: date
    end_date: date
    is_current: bool = False


class AcademicYear(LedgerModel):
    """
    Academic year with its terms in calendar order.
    Terms within a year are contiguous and non-overlapping; years order by start_date.
    """

    id: str
    name: str
    start_date: date
    end_date: date
    is_active: bool = False
    is_locked: bool = False
    terms: List[Term] = Field(default_factory=list)

    def find_term(self, term_id: str) -> Optional[Term]:
        return next((t for t in self.terms if t.id == term_id), None)

    def term_index(self, term_id: str) -> int:
        """Position of term_id in this year, or -1 when the term is not part of it."""
        for i, term in enumerate(self.terms):
            if term.id == term_id:
                return i
        return -1


class Period(LedgerModel):
    """One (term, academic year) pair walked by the carry-forward calculation."""

    term_id: str
    term_name: str
    academic_year: AcademicYear
