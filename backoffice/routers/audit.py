# backoffice/routers/audit.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.audit import get_audit_history
from ..models import WorkflowAuditLog
from ..schemas import WorkflowAuditLogOut

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[WorkflowAuditLogOut])
def list_audit(
    entity_type: str | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    q = (
        select(WorkflowAuditLog)
        .where(WorkflowAuditLog.org_id == p.org_id, WorkflowAuditLog.is_deleted.is_(False))
        .order_by(desc(WorkflowAuditLog.id))
    )
    if entity_type:
        q = q.where(WorkflowAuditLog.entity_type == entity_type)
    if action:
        q = q.where(WorkflowAuditLog.action == action)
    return list(db.scalars(q.limit(limit)).all())


@router.get("/{entity_type}/{entity_id}", response_model=list[WorkflowAuditLogOut])
def entity_history(entity_type: str, entity_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return get_audit_history(db, org_id=p.org_id, entity_type=entity_type, entity_id=entity_id)
