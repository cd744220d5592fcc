"""Whether a pupil's fee or discount assignment is live for a given term and year."""

from typing import Optional, Sequence

from fee_ledger.core.enums import AssignmentStatus, TermApplicability, ValidityType
from fee_ledger.core.logger import log
from fee_ledger.core.models import AcademicYear, AssignedFee


def _find_year(academic_years: Sequence[AcademicYear], year_id: Optional[str]) -> Optional[AcademicYear]:
    if year_id is None:
        return None
    return next((y for y in academic_years if y.id == year_id), None)


def _term_listed(assignment: AssignedFee, term_id: str) -> bool:
    return assignment.applicable_term_ids is not None and term_id in assignment.applicable_term_ids


def _passes_validity_type(
    assignment: AssignedFee,
    term_id: str,
    academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear],
) -> bool:
    validity = assignment.validity_type

    if validity == ValidityType.CURRENT_TERM:
        return _term_listed(assignment, term_id) or assignment.term_applicability == TermApplicability.ALL_TERMS

    if validity == ValidityType.CURRENT_YEAR:
        return not assignment.start_academic_year_id or assignment.start_academic_year_id == academic_year.id

    if validity == ValidityType.SPECIFIC_YEAR:
        return assignment.start_academic_year_id == academic_year.id

    if validity == ValidityType.YEAR_RANGE:
        start_year = _find_year(all_academic_years, assignment.start_academic_year_id)
        end_year = _find_year(all_academic_years, assignment.end_academic_year_id)
        if start_year is None or end_year is None:
            # unresolved bounds leave the range open
            return True
        return start_year.start_date <= academic_year.start_date <= end_year.end_date

    if validity == ValidityType.SPECIFIC_TERMS:
        return assignment.applicable_term_ids is None or term_id in assignment.applicable_term_ids

    return True


def is_assignment_valid(
    assignment: AssignedFee,
    term_id: str,
    academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear] = (),
) -> bool:
    """
    Evaluate an assignment against a target period.

    A disabled assignment is never valid. The validity_type rule is checked first; an
    assignment restricted to specific terms through term_applicability must additionally
    list the target term. Both gates must pass.
    """
    if assignment.status == AssignmentStatus.DISABLED:
        log.debug("Assignment %s rejected: disabled", assignment.fee_structure_id)
        return False

    if not _passes_validity_type(assignment, term_id, academic_year, all_academic_years):
        log.debug(
            "Assignment %s rejected: %s does not cover term %s of %s",
            assignment.fee_structure_id, assignment.validity_type.value, term_id, academic_year.name,
        )
        return False

    if assignment.term_applicability == TermApplicability.SPECIFIC_TERMS and not _term_listed(assignment, term_id):
        log.debug("Assignment %s rejected: term %s not in applicable terms", assignment.fee_structure_id, term_id)
        return False

    return True
