"""Which fee structures a pupil owes in a period."""

from typing import List, Sequence

from fee_ledger.core.enums import FeeScope
from fee_ledger.core.ledger.validity import is_assignment_valid
from fee_ledger.core.logger import log
from fee_ledger.core.models import AcademicYear, FeeStructure, Pupil


def is_fee_applicable(
    fee: FeeStructure,
    pupil: Pupil,
    term_id: str,
    academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear] = (),
) -> bool:
    """
    Year and term scoping is exact: a fee bound to a year or term applies to that period
    only, so every fee is attributable to exactly one period when carried forward.
    """
    if fee.is_assignment_fee:
        assignment = pupil.find_assignment(fee.id)
        if assignment is None:
            log.debug("Assignment fee %r rejected: not assigned to pupil %s", fee.name, pupil.id)
            return False
        if not is_assignment_valid(assignment, term_id, academic_year, all_academic_years):
            log.debug("Assignment fee %r rejected: assignment not valid for term %s", fee.name, term_id)
            return False

    if fee.is_discount:
        return False

    if fee.academic_year_id and fee.academic_year_id != academic_year.id:
        log.debug("Fee %r rejected: bound to year %s, not %s", fee.name, fee.academic_year_id, academic_year.id)
        return False

    if fee.term_id and fee.term_id != term_id:
        log.debug("Fee %r rejected: bound to term %s, not %s", fee.name, fee.term_id, term_id)
        return False

    if fee.class_fee_type == FeeScope.SPECIFIC and fee.class_ids is not None:
        if pupil.class_id not in fee.class_ids:
            log.debug("Fee %r rejected: class %s not in %s", fee.name, pupil.class_id, fee.class_ids)
            return False

    if fee.section_fee_type == FeeScope.SPECIFIC and fee.section:
        if fee.section != pupil.section:
            log.debug("Fee %r rejected: section %s != %s", fee.name, pupil.section, fee.section)
            return False

    return True


def filter_applicable_fees(
    fee_structures: Sequence[FeeStructure],
    pupil: Pupil,
    term_id: str,
    academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear] = (),
) -> List[FeeStructure]:
    """Fee structures that apply to the pupil (current or historical) in the given period."""
    applicable = [
        fee
        for fee in fee_structures
        if is_fee_applicable(fee, pupil, term_id, academic_year, all_academic_years)
    ]
    log.debug(
        "Filtered %d of %d fee structures for pupil %s in term %s (%s)",
        len(applicable), len(fee_structures), pupil.id, term_id, academic_year.name,
    )
    return applicable
