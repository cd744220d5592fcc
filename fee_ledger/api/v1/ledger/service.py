"""Ledger service: fee statements, previous-term balances and carry-forward payments.

Every call fetches what it needs from the source up front, then runs the engine on
those collections. Nothing derived is stored; a statement is recomputed on each read.
"""

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from fastapi import status

from fee_ledger.core.config import settings
from fee_ledger.core.enums import DistributionMode
from fee_ledger.core.exceptions import ServiceError
from fee_ledger.core.ledger.applicability import filter_applicable_fees
from fee_ledger.core.ledger.carry_forward import calculate_previous_term_balances
from fee_ledger.core.ledger.distribution import (
    build_carry_forward_payment,
    calculate_payment_distribution,
    distribution_message,
    get_carry_forward_payment_history,
    validate_carry_forward_payment,
)
from fee_ledger.core.ledger.periods import get_previous_periods
from fee_ledger.core.ledger.processing import (
    compute_term_totals,
    create_previous_balance_fee,
    determine_payment_type,
    process_pupil_fees,
    validate_payment_amount,
)
from fee_ledger.core.logger import log
from fee_ledger.core.models import (
    AcademicYear,
    CarryForwardItem,
    PaidBy,
    PaymentRecord,
    PreviousTermBalance,
    Pupil,
    PupilFee,
    RegularPayment,
)
from fee_ledger.core.snapshots import PrefetchedSnapshotProvider
from fee_ledger.core.timing import LedgerContext
from fee_ledger.db.source import LedgerSource

from .schemas import (
    CarryForwardPaymentCreate,
    CarryForwardPaymentResult,
    FeePaymentCreate,
    FeePaymentResult,
    PupilFeeStatement,
)


async def _get_pupil(source: LedgerSource, pupil_id: str) -> Pupil:
    pupil = await source.get_pupil(pupil_id)
    if pupil is None:
        raise ServiceError(f"Pupil {pupil_id} not found", status.HTTP_404_NOT_FOUND)
    return pupil


async def _get_period(
    source: LedgerSource, academic_year_id: str, term_id: str
) -> Tuple[AcademicYear, List[AcademicYear]]:
    years = await source.get_all_academic_years()
    academic_year = next((y for y in years if y.id == academic_year_id), None)
    if academic_year is None:
        raise ServiceError(f"Academic year {academic_year_id} not found", status.HTTP_404_NOT_FOUND)
    if academic_year.find_term(term_id) is None:
        raise ServiceError(
            f"Term {term_id} not found in academic year {academic_year.name}",
            status.HTTP_404_NOT_FOUND,
        )
    return academic_year, years


async def _prefetch_snapshots(
    source: LedgerSource,
    pupil: Pupil,
    term_id: str,
    academic_year: AcademicYear,
    years: Sequence[AcademicYear],
) -> PrefetchedSnapshotProvider:
    """Snapshots for every period before term_id. A missing one raises SnapshotUnavailableError."""
    provider = PrefetchedSnapshotProvider()
    for period in get_previous_periods(term_id, academic_year, years, pupil.registration_date):
        provider.add(
            await source.get_or_create_historical_snapshot(pupil, period.term_id, period.academic_year)
        )
    return provider


async def _previous_balance(
    source: LedgerSource,
    pupil: Pupil,
    term_id: str,
    academic_year: AcademicYear,
    years: Sequence[AcademicYear],
    payments: Sequence[PaymentRecord],
    context: LedgerContext,
) -> Optional[PreviousTermBalance]:
    fee_structures = await source.get_all_fee_structures()
    uniform_fees = await source.get_all_uniform_fees_for_pupil(pupil.id)
    snapshots = await _prefetch_snapshots(source, pupil, term_id, academic_year, years)

    with context.measure("carry_forward"):
        return calculate_previous_term_balances(
            pupil,
            term_id,
            academic_year,
            years,
            fee_structures,
            payments,
            snapshots,
            uniform_fees,
        )


async def get_previous_term_balance(
    source: LedgerSource,
    pupil_id: str,
    academic_year_id: str,
    term_id: str,
    context: LedgerContext,
) -> Optional[PreviousTermBalance]:
    pupil = await _get_pupil(source, pupil_id)
    academic_year, years = await _get_period(source, academic_year_id, term_id)
    payments = await source.get_payments_for_pupil(pupil.id)
    return await _previous_balance(source, pupil, term_id, academic_year, years, payments, context)


async def get_pupil_fee_statement(
    source: LedgerSource,
    pupil_id: str,
    academic_year_id: str,
    term_id: str,
    context: LedgerContext,
) -> PupilFeeStatement:
    """
    Statement for one term: the previous-balance fee (when anything is carried
    forward), the term's fees as they apply to the pupil's class/section in that
    term, then the term's uniform lines.
    """
    pupil = await _get_pupil(source, pupil_id)
    academic_year, years = await _get_period(source, academic_year_id, term_id)
    fee_structures = await source.get_all_fee_structures()
    payments = await source.get_payments_for_pupil(pupil.id)
    term_snapshot = await source.get_or_create_historical_snapshot(pupil, term_id, academic_year)
    uniform_lines = await source.get_uniform_fees_for_pupil(pupil.id, term_id, academic_year.id)

    previous_balance = await _previous_balance(
        source, pupil, term_id, academic_year, years, payments, context
    )

    with context.measure("fee_statement"):
        term_pupil = pupil.with_snapshot(term_snapshot)
        applicable = filter_applicable_fees(fee_structures, term_pupil, term_id, academic_year, years)
        processed = process_pupil_fees(
            applicable, payments, fee_structures, term_pupil, term_id, academic_year, years
        )

        fees: List[PupilFee] = []
        if previous_balance is not None and previous_balance.amount > 0:
            fees.append(create_previous_balance_fee(previous_balance, payments))
        fees.extend(processed)
        fees.extend(line.to_pupil_fee() for line in uniform_lines)

    totals = compute_term_totals(fees)
    log.info(
        "Statement for pupil %s, %s %s: %d fees, balance %s",
        pupil.id, academic_year.name, term_id, len(fees), totals.total_balance,
    )
    return PupilFeeStatement(
        pupil_id=pupil.id,
        academic_year_id=academic_year.id,
        term_id=term_id,
        fees=fees,
        previous_balance=previous_balance,
        totals=totals,
    )


async def get_carry_forward_history(
    source: LedgerSource,
    pupil_id: str,
    academic_year_id: str,
    term_id: str,
    context: LedgerContext,
) -> List[PaymentRecord]:
    pupil = await _get_pupil(source, pupil_id)
    academic_year, years = await _get_period(source, academic_year_id, term_id)
    payments = await source.get_payments_for_pupil(pupil.id)
    previous_balance = await _previous_balance(
        source, pupil, term_id, academic_year, years, payments, context
    )
    breakdown = previous_balance.breakdown if previous_balance else []
    return get_carry_forward_payment_history(payments, breakdown)


async def process_carry_forward_payment(
    source: LedgerSource,
    pupil_id: str,
    current_term_id: str,
    current_academic_year_id: str,
    amount: Decimal,
    mode: DistributionMode,
    breakdown: Sequence[CarryForwardItem],
    target_item: Optional[CarryForwardItem],
    paid_by: Optional[PaidBy],
    context: LedgerContext,
) -> CarryForwardPaymentResult:
    """Distribute amount over breakdown and write one payment record per allocation."""
    allocations = calculate_payment_distribution(amount, mode, breakdown, target_item)
    if not allocations:
        log.info("Nothing to distribute for pupil %s: no item received a share", pupil_id)
        return CarryForwardPaymentResult(
            success=False, message="No valid items found for payment distribution"
        )

    payment_date = context.now()
    payment_ids: List[str] = []
    for allocation in allocations:
        record = build_carry_forward_payment(
            allocation, pupil_id, current_term_id, current_academic_year_id, paid_by, payment_date
        )
        payment_id = await source.create_payment(record)
        payment_ids.append(payment_id)
        log.info(
            "Recorded carry-forward payment %s: %s toward %s (%s - %s)",
            payment_id, allocation.allocated_amount, allocation.item.fee_structure_id,
            allocation.item.term, allocation.item.year,
        )

    return CarryForwardPaymentResult(
        success=True,
        payment_ids=payment_ids,
        distributions=allocations,
        message=distribution_message(mode, allocations, settings.currency),
    )


async def record_carry_forward_payment(
    source: LedgerSource,
    pupil_id: str,
    payload: CarryForwardPaymentCreate,
    context: LedgerContext,
) -> CarryForwardPaymentResult:
    """
    Pay toward the pupil's previous-term balances as they stand now. The target
    item is matched against the recomputed breakdown so its balance is current.
    """
    pupil = await _get_pupil(source, pupil_id)
    academic_year, years = await _get_period(source, payload.academic_year_id, payload.term_id)
    payments = await source.get_payments_for_pupil(pupil.id)
    previous_balance = await _previous_balance(
        source, pupil, payload.term_id, academic_year, years, payments, context
    )
    breakdown = previous_balance.breakdown if previous_balance else []

    target_item = None
    if payload.target_item is not None:
        target_item = next((i for i in breakdown if i.same_obligation(payload.target_item)), None)
        if target_item is None:
            raise ServiceError(
                f"{payload.target_item.name} has no outstanding balance from "
                f"{payload.target_item.term} - {payload.target_item.year}",
                status.HTTP_400_BAD_REQUEST,
            )

    validation = validate_carry_forward_payment(
        payload.amount, payload.payment_type, breakdown, target_item, settings.currency
    )
    if not validation.is_valid:
        log.warning("Rejected carry-forward payment for pupil %s: %s", pupil.id, validation.error)
        raise ServiceError(validation.error, status.HTTP_400_BAD_REQUEST)

    return await process_carry_forward_payment(
        source,
        pupil.id,
        payload.term_id,
        academic_year.id,
        payload.amount,
        payload.payment_type,
        breakdown,
        target_item,
        payload.paid_by,
        context,
    )


async def record_fee_payment(
    source: LedgerSource,
    pupil_id: str,
    fee_id: str,
    payload: FeePaymentCreate,
    context: LedgerContext,
) -> FeePaymentResult:
    """
    Pay directly toward one of the term's fees. The balance is recomputed from the
    stored payments; up to the configured overpayment ratio of it is accepted.
    """
    pupil = await _get_pupil(source, pupil_id)
    academic_year, years = await _get_period(source, payload.academic_year_id, payload.term_id)
    fee_structures = await source.get_all_fee_structures()
    payments = await source.get_payments_for_pupil(pupil.id)
    term_snapshot = await source.get_or_create_historical_snapshot(pupil, payload.term_id, academic_year)

    with context.measure("fee_payment"):
        term_pupil = pupil.with_snapshot(term_snapshot)
        applicable = filter_applicable_fees(fee_structures, term_pupil, payload.term_id, academic_year, years)
        fee = next((f for f in applicable if f.id == fee_id), None)
        if fee is None:
            raise ServiceError(
                f"Fee {fee_id} does not apply to pupil {pupil.id} in {payload.term_id}",
                status.HTTP_404_NOT_FOUND,
            )
        [current] = process_pupil_fees(
            [fee], payments, fee_structures, term_pupil, payload.term_id, academic_year, years
        )

    validation = validate_payment_amount(payload.amount, current.balance, settings.overpayment_ratio)
    if not validation.is_valid:
        log.warning("Rejected payment toward %s for pupil %s: %s", fee_id, pupil.id, validation.error)
        raise ServiceError(validation.error, status.HTTP_400_BAD_REQUEST)

    record = RegularPayment(
        pupil_id=pupil.id,
        fee_structure_id=fee.id,
        academic_year_id=academic_year.id,
        term_id=payload.term_id,
        amount=payload.amount,
        payment_date=context.now(),
        paid_by=payload.paid_by,
        notes=payload.notes,
    )
    payment_id = await source.create_payment(record)
    payment_type = determine_payment_type(payload.amount, current.balance)
    log.info(
        "Recorded %s %s: %s toward %s for pupil %s",
        payment_type.value, payment_id, payload.amount, fee.id, pupil.id,
    )
    return FeePaymentResult(
        payment_id=payment_id,
        payment_type=payment_type,
        balance_before=current.balance,
        balance_after=max(Decimal("0"), current.balance - payload.amount),
    )
