# backoffice/routers/lease_offers.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import require_operator
from ..db import get_db
from ..schemas import LeaseOfferAccept, LeaseOfferOut, LeaseOut, ReasonIn, WorkflowResultOut
from ..services.responses import workflow_response
from ..workflows.base import Actor
from ..workflows.lease_offers import LeaseOfferWorkflow

router = APIRouter(prefix="/lease-offers", tags=["lease-offers"])


def _wf(db: Session, p) -> LeaseOfferWorkflow:
    return LeaseOfferWorkflow(db, Actor.from_principal(p))


@router.post("/{offer_id}/accept", response_model=WorkflowResultOut)
def accept_offer(offer_id: int, payload: LeaseOfferAccept, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = _wf(db, p).accept_lease_offer(offer_id, **payload.model_dump())
    return workflow_response(res, LeaseOut)


@router.post("/{offer_id}/decline", response_model=WorkflowResultOut)
def decline_offer(offer_id: int, payload: ReasonIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).decline_lease_offer(offer_id, reason=payload.reason), LeaseOfferOut)


@router.post("/{offer_id}/expire", response_model=WorkflowResultOut)
def expire_offer(offer_id: int, db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).expire_lease_offer(offer_id), LeaseOfferOut)


@router.post("/expire-stale", response_model=WorkflowResultOut)
def expire_stale_offers(db: Session = Depends(get_db), p=Depends(require_operator)):
    return workflow_response(_wf(db, p).expire_stale_lease_offers())
