"""
Carry-forward: unpaid required-fee balances from every earlier period, consolidated
into one previous-balance obligation for the current term.

Each earlier period is recomputed from scratch against the pupil's class/section in
that period and the live fee, discount and assignment configuration. Nothing is read
from a stored ledger, so the figure always agrees with the configuration.
"""

from decimal import Decimal
from typing import List, Optional, Sequence

from fee_ledger.core.exceptions import SnapshotUnavailableError
from fee_ledger.core.ledger.applicability import filter_applicable_fees
from fee_ledger.core.ledger.discounts import resolve_discount
from fee_ledger.core.ledger.periods import get_previous_periods
from fee_ledger.core.ledger.reconciliation import calculate_fee_payments
from fee_ledger.core.logger import log
from fee_ledger.core.models import (
    AcademicYear,
    CarryForwardItem,
    FeeStructure,
    PaymentRecord,
    Period,
    PreviousTermBalance,
    Pupil,
    TermInfo,
    UniformFeeLine,
)
from fee_ledger.core.snapshots import HistoricalSnapshotProvider

PREVIOUS_TERMS_LABEL = "Previous Terms"
MULTIPLE_YEARS_LABEL = "Multiple Years"


def historical_pupil(
    pupil: Pupil,
    period: Period,
    snapshots: HistoricalSnapshotProvider,
) -> Pupil:
    """The pupil as they were in period. Snapshot failures propagate."""
    try:
        snapshot = snapshots.get_snapshot(pupil, period.term_id, period.academic_year)
    except SnapshotUnavailableError:
        log.error(
            "Snapshot unavailable for pupil %s in %s (%s); carry-forward aborted",
            pupil.id, period.term_name, period.academic_year.name,
        )
        raise
    if snapshot is None:
        raise SnapshotUnavailableError(
            f"Snapshot provider returned nothing for pupil {pupil.id} in term {period.term_id}"
        )
    return pupil.with_snapshot(snapshot)


def _period_fee_items(
    period: Period,
    pupil: Pupil,
    fee_structures: Sequence[FeeStructure],
    payments: Sequence[PaymentRecord],
    all_academic_years: Sequence[AcademicYear],
) -> List[CarryForwardItem]:
    applicable = filter_applicable_fees(
        fee_structures, pupil, period.term_id, period.academic_year, all_academic_years
    )
    items: List[CarryForwardItem] = []
    for fee in applicable:
        if fee.is_discount or not fee.is_required:
            continue

        discounted = resolve_discount(
            fee, pupil, fee_structures, period.term_id, period.academic_year, all_academic_years
        )
        total_paid = calculate_fee_payments(fee.id, payments).total_paid
        balance = max(Decimal("0"), discounted.final_amount - total_paid)
        if balance <= 0:
            continue

        items.append(
            CarryForwardItem(
                name=fee.name,
                amount=discounted.final_amount,
                paid=total_paid,
                balance=balance,
                term=period.term_name,
                year=period.academic_year.name,
                fee_structure_id=fee.id,
                term_id=period.term_id,
                academic_year_id=period.academic_year.id,
            )
        )
        log.debug("Carrying forward %r from %s: %s", fee.name, period.term_name, balance)
    return items


def _period_uniform_items(period: Period, uniform_fees: Sequence[UniformFeeLine]) -> List[CarryForwardItem]:
    return [
        CarryForwardItem(
            name=line.name,
            amount=line.amount,
            paid=line.paid,
            balance=line.balance,
            term=period.term_name,
            year=period.academic_year.name,
            fee_structure_id=line.id,
            term_id=period.term_id,
            academic_year_id=period.academic_year.id,
        )
        for line in uniform_fees
        if line.term_id == period.term_id
        and line.academic_year_id == period.academic_year.id
        and line.balance > 0
    ]


def calculate_previous_term_balances(
    pupil: Pupil,
    current_term_id: str,
    current_academic_year: AcademicYear,
    all_academic_years: Sequence[AcademicYear],
    fee_structures: Sequence[FeeStructure],
    payments: Sequence[PaymentRecord],
    snapshots: HistoricalSnapshotProvider,
    uniform_fees: Sequence[UniformFeeLine] = (),
) -> Optional[PreviousTermBalance]:
    """
    Consolidated unpaid balance from all periods before the current term, or None.

    uniform_fees is every uniform-tracking line of the pupil; lines are matched to
    periods by term and year. Raises SnapshotUnavailableError when any period's
    class/section cannot be established.
    """
    periods = get_previous_periods(
        current_term_id, current_academic_year, all_academic_years, pupil.registration_date
    )

    breakdown: List[CarryForwardItem] = []
    for period in periods:
        past_pupil = historical_pupil(pupil, period, snapshots)
        breakdown.extend(_period_fee_items(period, past_pupil, fee_structures, payments, all_academic_years))
        breakdown.extend(_period_uniform_items(period, uniform_fees))

    if not breakdown:
        log.debug("No previous balances to carry forward for pupil %s", pupil.id)
        return None

    total = sum((item.balance for item in breakdown), Decimal("0"))
    log.info("Pupil %s carries forward %s across %d item(s)", pupil.id, total, len(breakdown))
    return PreviousTermBalance(
        amount=total,
        term_info=TermInfo(term=PREVIOUS_TERMS_LABEL, year=MULTIPLE_YEARS_LABEL),
        breakdown=breakdown,
    )
