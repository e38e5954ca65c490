# backoffice/routers/leases.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_principal, require_operator
from ..db import get_db
from ..schemas import (
    DepositOut,
    DepositRefundIn,
    EarlyTerminateIn,
    LeaseActivate,
    LeaseOut,
    LeaseRenewIn,
    MonthToMonthIn,
    MoveOutIn,
    SettlementIn,
    SettlementOut,
    TerminationNoticeIn,
    WorkflowResultOut,
)
from ..services.ownership import must_get_deposit_for_lease, must_get_lease
from ..services.responses import workflow_response
from ..workflows.base import Actor
from ..workflows.leases import LeaseWorkflow

router = APIRouter(prefix="/leases", tags=["leases"])


def _wf(db: Session, p) -> LeaseWorkflow:
    return LeaseWorkflow(db, Actor.from_principal(p))


@router.get("/{lease_id}", response_model=LeaseOut)
def get_lease(lease_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_lease(db, org_id=p.org_id, lease_id=lease_id)


@router.get("/{lease_id}/deposit", response_model=DepositOut)
def get_deposit(lease_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_deposit_for_lease(db, org_id=p.org_id, lease_id=lease_id)


@router.post("/{lease_id}/activate", response_model=WorkflowResultOut)
def activate(lease_id: int, payload: LeaseActivate, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).activate_lease(lease_id, move_in_date=payload.move_in_date), LeaseOut)


@router.post("/{lease_id}/notice", response_model=WorkflowResultOut)
def termination_notice(
    lease_id: int, payload: TerminationNoticeIn, db: Session = Depends(get_db), p=Depends(require_operator)
):
    res = _wf(db, p).record_termination_notice(lease_id, **payload.model_dump())
    return workflow_response(res, LeaseOut)


@router.post("/{lease_id}/month-to-month", response_model=WorkflowResultOut)
def month_to_month(lease_id: int, payload: MonthToMonthIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).convert_to_month_to_month(lease_id, new_monthly_rent=payload.new_monthly_rent)
    return workflow_response(res, LeaseOut)


@router.post("/{lease_id}/renew", response_model=WorkflowResultOut)
def renew(lease_id: int, payload: LeaseRenewIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).renew_lease(lease_id, **payload.model_dump()), LeaseOut)


@router.post("/{lease_id}/move-out", response_model=WorkflowResultOut)
def move_out(lease_id: int, payload: MoveOutIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).complete_move_out(lease_id, move_out_date=payload.move_out_date), LeaseOut)


@router.post("/{lease_id}/terminate", response_model=WorkflowResultOut)
def terminate(lease_id: int, payload: EarlyTerminateIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).early_terminate(lease_id, reason=payload.reason, effective_date=payload.effective_date)
    return workflow_response(res, LeaseOut)


@router.post("/expire-overdue", response_model=WorkflowResultOut)
def expire_overdue(db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).expire_overdue_leases())


# -------------------- Deposit settlement --------------------

@router.post("/{lease_id}/deposit/settlement", response_model=WorkflowResultOut)
def deposit_settlement(lease_id: int, payload: SettlementIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).initiate_deposit_settlement(lease_id, **payload.model_dump())
    return workflow_response(res, SettlementOut)


@router.post("/deposits/{deposit_id}/refund", response_model=WorkflowResultOut)
def deposit_refund(deposit_id: int, payload: DepositRefundIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).record_deposit_refund(deposit_id, **payload.model_dump())
    return workflow_response(res, DepositOut)
