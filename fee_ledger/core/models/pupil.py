"""Pupil, pupil-specific fee assignments and per-term class/section snapshots."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from fee_ledger.core.enums import AssignmentStatus, TermApplicability, ValidityType
from fee_ledger.core.models.base import LedgerModel


class AssignedFee(LedgerModel):
    """
    Activation of a fee or discount structure for one pupil.
    The validity window is independent of the fee structure's own year/term scoping.
    """

    fee_structure_id: str
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    validity_type: ValidityType = ValidityType.INDEFINITE
    term_applicability: Optional[TermApplicability] = None
    applicable_term_ids: Optional[List[str]] = None
    start_academic_year_id: Optional[str] = None
    end_academic_year_id: Optional[str] = None
    assigned_date: Optional[datetime] = None


class PromotionRecord(LedgerModel):
    promoted_on: date = Field(alias="date")
    from_class_id: Optional[str] = None
    to_class_id: str


class PupilTermSnapshot(LedgerModel):
    """Class and section a pupil held during one term."""

    id: Optional[str] = None
    pupil_id: str
    term_id: str
    academic_year_id: str
    class_id: str
    section: str
    admission_number: Optional[str] = None
    term_start_date: Optional[date] = None
    term_end_date: Optional[date] = None
    snapshot_date: Optional[datetime] = None
    is_virtual: bool = False


class Pupil(LedgerModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    admission_number: Optional[str] = None
    class_id: str
    section: str = ""
    registration_date: Optional[date] = None
    assigned_fees: List[AssignedFee] = Field(default_factory=list)
    promotion_history: List[PromotionRecord] = Field(default_factory=list)

    def find_assignment(self, fee_structure_id: str) -> Optional[AssignedFee]:
        return next(
            (a for a in self.assigned_fees if a.fee_structure_id == fee_structure_id),
            None,
        )

    def with_snapshot(self, snapshot: PupilTermSnapshot) -> "Pupil":
        """Virtual pupil as they were during the snapshot's term."""
        return self.model_copy(
            update={
                "class_id": snapshot.class_id,
                "section": snapshot.section,
                "admission_number": snapshot.admission_number or self.admission_number,
            }
        )
