# backoffice/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import WorkflowAuditLog, _utcnow
from .statuses import status_value


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if not v:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def _loads(s: Optional[str]) -> dict[str, Any]:
    if not s:
        return {}
    x = json.loads(s)
    return x if isinstance(x, dict) else {}


def log_transition(
    db: Session,
    *,
    org_id: int,
    performed_by: str,
    entity_type: str,
    entity_id: int,
    from_status,
    to_status,
    action: str,
    reason: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    performed_on: Optional[datetime] = None,
) -> WorkflowAuditLog:
    """
    Stage one workflow audit row.

    Never flushes or commits: the row lives and dies with the enclosing unit of
    work, so a rolled-back transition leaves no history behind.
    """
    now = performed_on or _utcnow()
    row = WorkflowAuditLog(
        org_id=org_id,
        entity_type=entity_type,
        entity_id=int(entity_id),
        from_status=status_value(from_status),
        to_status=status_value(to_status),
        action=action,
        reason=reason,
        performed_by=str(performed_by),
        performed_on=now,
        metadata_json=_dumps(metadata),
        created_by=str(performed_by),
        created_at=now,
    )
    db.add(row)
    return row


def get_audit_history(db: Session, *, org_id: int, entity_type: str, entity_id: int) -> list[WorkflowAuditLog]:
    q = (
        select(WorkflowAuditLog)
        .where(WorkflowAuditLog.org_id == org_id)
        .where(WorkflowAuditLog.entity_type == entity_type)
        .where(WorkflowAuditLog.entity_id == int(entity_id))
        .where(WorkflowAuditLog.is_deleted.is_(False))
        .order_by(WorkflowAuditLog.performed_on.asc(), WorkflowAuditLog.id.asc())
    )
    return list(db.scalars(q).all())


def audit_metadata(row: WorkflowAuditLog) -> dict[str, Any]:
    return _loads(row.metadata_json)
