# backoffice/routers/applications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_principal, require_operator
from ..db import get_db
from ..schemas import (
    ApplicationFeeIn,
    ApplicationOut,
    ApplicationStateOut,
    ApplicationSubmit,
    LeaseOfferCreate,
    LeaseOfferOut,
    ReasonIn,
    ScreeningComplete,
    ScreeningInitiate,
    ScreeningOut,
    WorkflowResultOut,
)
from ..services.responses import workflow_response
from ..workflows.applications import ApplicationWorkflow
from ..workflows.base import Actor
from ..workflows.lease_offers import LeaseOfferWorkflow

router = APIRouter(prefix="/applications", tags=["applications"])


def _wf(db: Session, p) -> ApplicationWorkflow:
    return ApplicationWorkflow(db, Actor.from_principal(p))


@router.post("", response_model=WorkflowResultOut)
def submit_application(payload: ApplicationSubmit, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).submit_application(**payload.model_dump())
    return workflow_response(res, ApplicationOut)


@router.get("/{application_id}", response_model=ApplicationStateOut)
def get_application_state(application_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    res = _wf(db, p).get_application_workflow_state(application_id)
    if not res.success:
        raise HTTPException(status_code=404, detail=res.message)
    return ApplicationStateOut.model_validate(res.data)


@router.post("/{application_id}/fee", response_model=WorkflowResultOut)
def record_fee(application_id: int, payload: ApplicationFeeIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).record_application_fee(application_id, payment_method=payload.payment_method, paid_on=payload.paid_on)
    return workflow_response(res, ApplicationOut)


@router.post("/{application_id}/review", response_model=WorkflowResultOut)
def mark_under_review(application_id: int, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).mark_under_review(application_id), ApplicationOut)


@router.post("/{application_id}/screening", response_model=WorkflowResultOut)
def initiate_screening(
    application_id: int, payload: ScreeningInitiate, db: Session = Depends(get_db), p=Depends(require_operator)
):
    res = _wf(db, p).initiate_screening(application_id, **payload.model_dump())
    return workflow_response(res, ScreeningOut)


@router.post("/{application_id}/screening/complete", response_model=WorkflowResultOut)
def complete_screening(
    application_id: int, payload: ScreeningComplete, db: Session = Depends(get_db), p=Depends(require_operator)
):
    res = _wf(db, p).complete_screening(application_id, **payload.model_dump())
    return workflow_response(res, ScreeningOut)


@router.post("/{application_id}/approve", response_model=WorkflowResultOut)
def approve(application_id: int, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).approve_application(application_id), ApplicationOut)


@router.post("/{application_id}/deny", response_model=WorkflowResultOut)
def deny(application_id: int, payload: ReasonIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).deny_application(application_id, reason=payload.reason), ApplicationOut)


@router.post("/{application_id}/withdraw", response_model=WorkflowResultOut)
def withdraw(application_id: int, payload: ReasonIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).withdraw_application(application_id, reason=payload.reason), ApplicationOut)


@router.post("/{application_id}/lease-offer", response_model=WorkflowResultOut)
def generate_lease_offer(
    application_id: int, payload: LeaseOfferCreate, db: Session = Depends(get_db), p=Depends(require_operator)
):
    wf = LeaseOfferWorkflow(db, Actor.from_principal(p))
    res = wf.generate_lease_offer(application_id, **payload.model_dump())
    return workflow_response(res, LeaseOfferOut)
