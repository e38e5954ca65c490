# backoffice/routers/prospects.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from ..auth import get_principal, require_operator
from ..db import get_db
from ..domain.statuses import ProspectStatus
from ..models import ProspectiveTenant
from ..schemas import ProspectCreate, ProspectOut, ReasonIn, TourComplete, TourCreate, TourOut, WorkflowResultOut
from ..services.ownership import must_get_property, must_get_prospect
from ..services.responses import workflow_response
from ..workflows.base import Actor
from ..workflows.tours import TourWorkflow

router = APIRouter(prefix="/prospects", tags=["prospects"])


@router.post("", response_model=ProspectOut)
def create_prospect(payload: ProspectCreate, db: Session = Depends(get_db), p=Depends(require_operator)):
    if payload.interested_property_id is not None:
        must_get_property(db, org_id=p.org_id, property_id=payload.interested_property_id)
    row = ProspectiveTenant(**payload.model_dump(), org_id=p.org_id, status=ProspectStatus.LEAD, created_by=str(p.user_id))
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[ProspectOut])
def list_prospects(
    status: ProspectStatus | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    q = select(ProspectiveTenant).where(ProspectiveTenant.org_id == p.org_id, ProspectiveTenant.is_deleted.is_(False))
    if status is not None:
        q = q.where(ProspectiveTenant.status == status)
    return list(db.scalars(q.order_by(desc(ProspectiveTenant.id)).limit(limit)).all())


@router.get("/{prospect_id}", response_model=ProspectOut)
def get_prospect(prospect_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_prospect(db, org_id=p.org_id, prospect_id=prospect_id)


# -------------------- Tours --------------------

@router.post("/{prospect_id}/tours", response_model=WorkflowResultOut)
def schedule_tour(prospect_id: int, payload: TourCreate, db: Session = Depends(get_db), p=Depends(require_operator)):
    wf = TourWorkflow(db, Actor.from_principal(p))
    res = wf.schedule_tour(
        prospect_id=prospect_id,
        property_id=payload.property_id,
        scheduled_on=payload.scheduled_on,
        duration_minutes=payload.duration_minutes,
    )
    return workflow_response(res, TourOut)


@router.post("/tours/{tour_id}/complete", response_model=WorkflowResultOut)
def complete_tour(tour_id: int, payload: TourComplete, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = TourWorkflow(db, Actor.from_principal(p)).complete_tour(
        tour_id, feedback=payload.feedback, interest_level=payload.interest_level
    )
    return workflow_response(res, TourOut)


@router.post("/tours/{tour_id}/cancel", response_model=WorkflowResultOut)
def cancel_tour(tour_id: int, payload: ReasonIn, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = TourWorkflow(db, Actor.from_principal(p)).cancel_tour(tour_id, reason=payload.reason)
    return workflow_response(res, TourOut)


@router.post("/tours/{tour_id}/no-show", response_model=WorkflowResultOut)
def mark_no_show(tour_id: int, db: Session = Depends(get_db), p=Depends(require_operator)):
    res = TourWorkflow(db, Actor.from_principal(p)).mark_no_show(tour_id)
    return workflow_response(res, TourOut)
