# backoffice/routers/investment_pools.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_principal, require_operator, require_owner
from ..db import get_db
from ..schemas import (
    DividendChoiceIn,
    DividendOut,
    DividendPaymentIn,
    PoolOut,
    PoolPerformanceIn,
    WorkflowResultOut,
)
from ..services.responses import workflow_response
from ..workflows.base import Actor
from ..workflows.security_deposits import SecurityDepositWorkflow

router = APIRouter(prefix="/investment-pools", tags=["investment-pools"])


def _wf(db: Session, p) -> SecurityDepositWorkflow:
    return SecurityDepositWorkflow(db, Actor.from_principal(p))


@router.post("/{year}", response_model=WorkflowResultOut)
def get_or_create_pool(year: int, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).get_or_create_investment_pool(year), PoolOut)


@router.post("/{year}/performance", response_model=WorkflowResultOut)
def record_performance(year: int, payload: PoolPerformanceIn, db: Session = Depends(get_db), p=Depends(require_owner)):
    res = _wf(db, p).record_investment_performance(year, **payload.model_dump())
    return workflow_response(res, PoolOut)


@router.post("/{year}/calculate", response_model=WorkflowResultOut)
def calculate(year: int, db: Session = Depends(get_db), p=Depends(require_owner)):
    return workflow_response(_wf(db, p).calculate_dividends(year), PoolOut)


@router.post("/{year}/distribute", response_model=WorkflowResultOut)
def distribute(year: int, db: Session = Depends(get_db), p=Depends(require_owner)):
    return workflow_response(_wf(db, p).mark_dividends_distributed(year), PoolOut)


@router.post("/{year}/close", response_model=WorkflowResultOut)
def close(year: int, db: Session = Depends(get_db), p=Depends(require_owner)):
    return workflow_response(_wf(db, p).close_investment_pool(year), PoolOut)


@router.get("/{year}/dividends", response_model=list[DividendOut])
def list_dividends(year: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return _wf(db, p).list_dividends(year)


@router.post("/dividends/{dividend_id}/choice", response_model=WorkflowResultOut)
def dividend_choice(dividend_id: int, payload: DividendChoiceIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).record_dividend_choice(dividend_id, **payload.model_dump())
    return workflow_response(res, DividendOut)


@router.post("/dividends/{dividend_id}/payment", response_model=WorkflowResultOut)
def dividend_payment(
    dividend_id: int, payload: DividendPaymentIn, db: Session = Depends(get_db), p=Depends(require_operator)
):
    res = _wf(db, p).process_dividend_payment(dividend_id, payment_reference=payload.payment_reference)
    return workflow_response(res, DividendOut)
