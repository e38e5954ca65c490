# backoffice/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Lease, Property, ProspectiveTenant, SecurityDeposit


def must_get_property(db: Session, *, org_id: int, property_id: int) -> Property:
    row = db.scalar(
        select(Property).where(Property.id == property_id, Property.org_id == org_id, Property.is_deleted.is_(False))
    )
    if not row:
        raise HTTPException(status_code=404, detail="property not found")
    return row


def must_get_prospect(db: Session, *, org_id: int, prospect_id: int) -> ProspectiveTenant:
    row = db.scalar(
        select(ProspectiveTenant).where(
            ProspectiveTenant.id == prospect_id,
            ProspectiveTenant.org_id == org_id,
            ProspectiveTenant.is_deleted.is_(False),
        )
    )
    if not row:
        raise HTTPException(status_code=404, detail="prospect not found")
    return row


def must_get_lease(db: Session, *, org_id: int, lease_id: int) -> Lease:
    row = db.scalar(select(Lease).where(Lease.id == lease_id, Lease.org_id == org_id, Lease.is_deleted.is_(False)))
    if not row:
        raise HTTPException(status_code=404, detail="lease not found")
    return row


def must_get_deposit_for_lease(db: Session, *, org_id: int, lease_id: int) -> SecurityDeposit:
    row = db.scalar(
        select(SecurityDeposit).where(
            SecurityDeposit.lease_id == lease_id,
            SecurityDeposit.org_id == org_id,
            SecurityDeposit.is_deleted.is_(False),
        )
    )
    if not row:
        raise HTTPException(status_code=404, detail="security deposit not found")
    return row
