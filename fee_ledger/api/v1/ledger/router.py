"""Ledger router: pupil fee statements, fee payments and previous-term balance payments."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fee_ledger.core.exceptions import ServiceError
from fee_ledger.core.models import PaymentRecord, PreviousTermBalance
from fee_ledger.core.timing import LedgerContext, get_ledger_context
from fee_ledger.db.source import LedgerSource, get_ledger_source

from .schemas import (
    CarryForwardPaymentCreate,
    CarryForwardPaymentResult,
    FeePaymentCreate,
    FeePaymentResult,
    PupilFeeStatement,
)
from . import service

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])


@router.get("/pupils/{pupil_id}/fees", response_model=PupilFeeStatement)
async def read_pupil_fees(
    pupil_id: str,
    academic_year_id: str = Query(..., description="Academic year of the statement"),
    term_id: str = Query(..., description="Term of the statement"),
    source: LedgerSource = Depends(get_ledger_source),
    context: LedgerContext = Depends(get_ledger_context),
) -> PupilFeeStatement:
    try:
        return await service.get_pupil_fee_statement(source, pupil_id, academic_year_id, term_id, context)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/pupils/{pupil_id}/fees/{fee_id}/payments",
    response_model=FeePaymentResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_payment(
    pupil_id: str,
    fee_id: str,
    payload: FeePaymentCreate,
    source: LedgerSource = Depends(get_ledger_source),
    context: LedgerContext = Depends(get_ledger_context),
) -> FeePaymentResult:
    try:
        return await service.record_fee_payment(source, pupil_id, fee_id, payload, context)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/pupils/{pupil_id}/carry-forward", response_model=Optional[PreviousTermBalance])
async def read_previous_term_balance(
    pupil_id: str,
    academic_year_id: str = Query(...),
    term_id: str = Query(...),
    source: LedgerSource = Depends(get_ledger_source),
    context: LedgerContext = Depends(get_ledger_context),
) -> Optional[PreviousTermBalance]:
    try:
        return await service.get_previous_term_balance(source, pupil_id, academic_year_id, term_id, context)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/pupils/{pupil_id}/carry-forward/payments", response_model=List[PaymentRecord])
async def read_carry_forward_payments(
    pupil_id: str,
    academic_year_id: str = Query(...),
    term_id: str = Query(...),
    source: LedgerSource = Depends(get_ledger_source),
    context: LedgerContext = Depends(get_ledger_context),
) -> List[PaymentRecord]:
    try:
        return await service.get_carry_forward_history(source, pupil_id, academic_year_id, term_id, context)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/pupils/{pupil_id}/carry-forward/payments",
    response_model=CarryForwardPaymentResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_carry_forward_payment(
    pupil_id: str,
    payload: CarryForwardPaymentCreate,
    source: LedgerSource = Depends(get_ledger_source),
    context: LedgerContext = Depends(get_ledger_context),
) -> CarryForwardPaymentResult:
    try:
        return await service.record_carry_forward_payment(source, pupil_id, payload, context)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
