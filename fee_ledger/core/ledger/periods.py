"""
Academic period ordering and registration-date validity.
A term or year is valid for a pupil when it ended on or after the pupil's registration date.
A pupil without a registration date is valid for every period.
"""

from datetime import date
from typing import List, Optional, Sequence

from fee_ledger.core.logger import log
from fee_ledger.core.models import AcademicYear, Period, Pupil, Term


def is_term_valid_for_pupil(term: Term, registration_date: Optional[date]) -> bool:
    if registration_date is None:
        return True
    return registration_date <= term.end_date


def is_academic_year_valid_for_pupil(academic_year: AcademicYear, registration_date: Optional[date]) -> bool:
    if registration_date is None:
        return True
    return academic_year.end_date >= registration_date


def get_valid_academic_years_for_pupil(
    academic_years: Sequence[AcademicYear],
    registration_date: Optional[date],
) -> List[AcademicYear]:
    return [y for y in academic_years if is_academic_year_valid_for_pupil(y, registration_date)]


def get_valid_terms_for_pupil(academic_year: AcademicYear, registration_date: Optional[date]) -> List[Term]:
    return [t for t in academic_year.terms if is_term_valid_for_pupil(t, registration_date)]


def is_pupil_valid_for_term(pupil: Pupil, term: Term) -> bool:
    """Whether the pupil belongs on the collection list for the term."""
    return is_term_valid_for_pupil(term, pupil.registration_date)


def is_valid_term_for_academic_year(term_id: str, academic_year: AcademicYear) -> bool:
    return academic_year.find_term(term_id) is not None


def sort_academic_years(academic_years: Sequence[AcademicYear]) -> List[AcademicYear]:
    """Chronological order by start date. Returns a new list; the input is left untouched."""
    return sorted(academic_years, key=lambda y: y.start_date)


def get_previous_periods(
    current_term_id: str,
    current_academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear],
    registration_date: Optional[date] = None,
) -> List[Period]:
    """
    Every (term, year) strictly before the current term, oldest first.

    Years starting after the current year are skipped. In the current year only terms
    positioned before the current term are included. Years and terms that ended before
    the registration date are skipped.
    """
    periods: List[Period] = []
    current_index = current_academic_year.term_index(current_term_id)

    for year in sort_academic_years(all_academic_years):
        if year.start_date > current_academic_year.start_date:
            log.debug("Skipping future year %s", year.name)
            continue
        if not is_academic_year_valid_for_pupil(year, registration_date):
            log.debug("Skipping year %s: ended before registration (%s)", year.name, registration_date)
            continue

        if year.id == current_academic_year.id:
            # the current year's own copy of the terms is authoritative
            terms = current_academic_year.terms[: max(current_index, 0)]
        else:
            terms = year.terms

        for term in terms:
            if not is_term_valid_for_pupil(term, registration_date):
                log.debug("Skipping term %s (%s): ended before registration", term.name, year.name)
                continue
            periods.append(Period(term_id=term.id, term_name=term.name, academic_year=year))

    log.debug("Found %d previous periods before term %s", len(periods), current_term_id)
    return periods
