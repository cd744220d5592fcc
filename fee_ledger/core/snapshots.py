"""
Historical class/section lookup.

The carry-forward calculation re-evaluates every past term against the class and
section the pupil held in that term. A provider must raise SnapshotUnavailableError
rather than answer with the pupil's current class/section when it has no record.
"""

from datetime import date, datetime
from typing import Dict, Iterable, Optional, Protocol, Tuple

from fee_ledger.core.exceptions import SnapshotUnavailableError
from fee_ledger.core.logger import log
from fee_ledger.core.models import AcademicYear, Pupil, PupilTermSnapshot, Term


class HistoricalSnapshotProvider(Protocol):
    def get_snapshot(self, pupil: Pupil, term_id: str, academic_year: AcademicYear) -> PupilTermSnapshot:
        ...


class PrefetchedSnapshotProvider:
    """Answers from snapshots fetched ahead of a computation, keyed by (pupil, term)."""

    def __init__(self, snapshots: Iterable[PupilTermSnapshot] = ()) -> None:
        self._snapshots: Dict[Tuple[str, str], PupilTermSnapshot] = {}
        for snapshot in snapshots:
            self.add(snapshot)

    def add(self, snapshot: PupilTermSnapshot) -> None:
        self._snapshots[(snapshot.pupil_id, snapshot.term_id)] = snapshot

    def find(self, pupil_id: str, term_id: str) -> Optional[PupilTermSnapshot]:
        return self._snapshots.get((pupil_id, term_id))

    def get_snapshot(self, pupil: Pupil, term_id: str, academic_year: AcademicYear) -> PupilTermSnapshot:
        snapshot = self.find(pupil.id, term_id)
        if snapshot is None:
            raise SnapshotUnavailableError(
                f"No class/section snapshot for pupil {pupil.id} in term {term_id} ({academic_year.name})"
            )
        return snapshot


def term_has_ended(term: Term, today: date) -> bool:
    """Current and future terms are answered from live data; only ended terms need history."""
    return term.end_date < today


def _virtual_snapshot(pupil: Pupil, term: Term, academic_year: AcademicYear, now: datetime) -> PupilTermSnapshot:
    if not pupil.class_id or not pupil.section:
        raise SnapshotUnavailableError(f"Pupil {pupil.id} has no current class/section for {term.name}")
    return PupilTermSnapshot(
        id=f"virtual-{pupil.id}-{term.id}",
        pupil_id=pupil.id,
        term_id=term.id,
        academic_year_id=academic_year.id,
        class_id=pupil.class_id,
        section=pupil.section,
        admission_number=pupil.admission_number,
        term_start_date=term.start_date,
        term_end_date=term.end_date,
        snapshot_date=now,
        is_virtual=True,
    )


def class_from_promotions(pupil: Pupil, term: Term) -> Optional[str]:
    """
    Class held during term according to the promotion history. A promotion on or
    before the term start moved the pupil into to_class_id for the term; a promotion
    during the term means the pupil spent it in from_class_id.
    """
    class_id = None
    for promotion in sorted(pupil.promotion_history, key=lambda p: p.promoted_on):
        if promotion.promoted_on <= term.start_date:
            class_id = promotion.to_class_id
        elif promotion.promoted_on <= term.end_date:
            class_id = promotion.from_class_id or promotion.to_class_id
        else:
            break
    return class_id


def _earlier_same_year(
    stored: Iterable[PupilTermSnapshot],
    term: Term,
    academic_year: AcademicYear,
) -> Optional[PupilTermSnapshot]:
    earlier = [
        s
        for s in stored
        if s.academic_year_id == academic_year.id
        and s.term_start_date is not None
        and s.term_start_date < term.start_date
    ]
    if not earlier:
        return None
    return max(earlier, key=lambda s: s.term_start_date)


def resolve_snapshot(
    pupil: Pupil,
    term_id: str,
    academic_year: AcademicYear,
    stored: Iterable[PupilTermSnapshot],
    now: datetime,
) -> Tuple[PupilTermSnapshot, bool]:
    """
    Class/section of pupil during term_id, and whether the result is newly recovered
    and should be stored.

    Raises SnapshotUnavailableError when the term is unknown or an ended term has no
    stored snapshot and none can be recovered.
    """
    term = academic_year.find_term(term_id)
    if term is None:
        raise SnapshotUnavailableError(f"Term {term_id} not found in academic year {academic_year.name}")

    if not term_has_ended(term, now.date()):
        return _virtual_snapshot(pupil, term, academic_year, now), False

    own = [s for s in stored if s.pupil_id == pupil.id]
    existing = next((s for s in own if s.term_id == term_id), None)
    if existing is not None:
        return existing, False

    recovered = PupilTermSnapshot(
        id=f"{pupil.id}_{term_id}",
        pupil_id=pupil.id,
        term_id=term_id,
        academic_year_id=academic_year.id,
        class_id=pupil.class_id,
        section=pupil.section,
        admission_number=pupil.admission_number,
        term_start_date=term.start_date,
        term_end_date=term.end_date,
        snapshot_date=now,
    )

    class_id = class_from_promotions(pupil, term)
    if class_id is not None:
        log.info("Recovered class %s for pupil %s in %s from promotion history", class_id, pupil.id, term.name)
        return recovered.model_copy(update={"class_id": class_id}), True

    earlier = _earlier_same_year(own, term, academic_year)
    if earlier is not None:
        log.warning(
            "Using %s snapshot for pupil %s in %s; no record for the term itself",
            earlier.term_id, pupil.id, term.name,
        )
        return recovered.model_copy(
            update={
                "class_id": earlier.class_id,
                "section": earlier.section,
                "admission_number": earlier.admission_number or pupil.admission_number,
            }
        ), True

    raise SnapshotUnavailableError(
        f"No historical class/section for pupil {pupil.id} in {term.name} ({academic_year.name})"
    )
