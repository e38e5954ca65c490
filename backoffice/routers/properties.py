# backoffice/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from ..auth import get_principal, require_operator
from ..db import get_db
from ..domain.statuses import PropertyStatus
from ..models import Property
from ..schemas import PropertyCreate, PropertyOut
from ..services.ownership import must_get_property

router = APIRouter(prefix="/properties", tags=["properties"])


@router.post("", response_model=PropertyOut)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p=Depends(require_operator)):
    row = Property(**payload.model_dump(), org_id=p.org_id, status=PropertyStatus.AVAILABLE, created_by=str(p.user_id))
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[PropertyOut])
def list_properties(
    status: PropertyStatus | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    q = select(Property).where(Property.org_id == p.org_id, Property.is_deleted.is_(False))
    if status is not None:
        q = q.where(Property.status == status)
    return list(db.scalars(q.order_by(desc(Property.id)).limit(limit)).all())


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_property(db, org_id=p.org_id, property_id=property_id)
