# backoffice/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.db import SessionLocal
from backoffice.domain.statuses import PropertyStatus, ProspectStatus
from backoffice.models import (
    AppUser,
    Organization,
    OrganizationSettings,
    OrgMembership,
    Property,
    ProspectiveTenant,
)


@dataclass(frozen=True)
class SeedResult:
    org_slug: str
    user_email: str
    property_id: Optional[int]
    prospect_id: Optional[int]


def _get_or_create_org(db: Session, slug: str, name: str) -> Organization:
    row = db.scalar(select(Organization).where(Organization.slug == slug))
    if row:
        return row
    row = Organization(slug=slug, name=name)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_user(db: Session, email: str, display_name: str) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(email=email, display_name=display_name)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _ensure_membership(db: Session, org_id: int, user_id: int, role: str = "owner") -> None:
    existing = db.scalar(
        select(OrgMembership).where(OrgMembership.org_id == int(org_id), OrgMembership.user_id == int(user_id))
    )
    if existing:
        return
    db.add(OrgMembership(org_id=int(org_id), user_id=int(user_id), role=str(role)))
    db.commit()


def _ensure_settings(db: Session, org_id: int) -> None:
    if db.scalar(select(OrganizationSettings.id).where(OrganizationSettings.org_id == int(org_id))):
        return
    db.add(OrganizationSettings(org_id=int(org_id)))
    db.commit()


def seed_demo(
    *,
    org_slug: str,
    org_name: str,
    user_email: str,
    user_name: str,
    create_samples: bool = True,
) -> SeedResult:
    db = SessionLocal()
    try:
        org = _get_or_create_org(db, org_slug, org_name)
        user = _get_or_create_user(db, user_email, user_name)
        _ensure_membership(db, int(org.id), int(user.id), "owner")
        _ensure_settings(db, int(org.id))

        if not create_samples:
            return SeedResult(org_slug=org.slug, user_email=user.email, property_id=None, prospect_id=None)

        prop = db.scalar(select(Property).where(Property.org_id == org.id).order_by(Property.id))
        if prop is None:
            prop = Property(
                org_id=org.id,
                address="123 Demo St",
                city="Detroit",
                state="MI",
                zip="48201",
                bedrooms=3,
                bathrooms=1.0,
                monthly_rent=1450.0,
                status=PropertyStatus.AVAILABLE,
                created_by="seed",
            )
            db.add(prop)
            db.commit()
            db.refresh(prop)

        prospect = db.scalar(select(ProspectiveTenant).where(ProspectiveTenant.org_id == org.id).order_by(ProspectiveTenant.id))
        if prospect is None:
            prospect = ProspectiveTenant(
                org_id=org.id,
                first_name="Jordan",
                last_name="Demo",
                email="jordan.demo@example.com",
                interested_property_id=prop.id,
                status=ProspectStatus.LEAD,
                created_by="seed",
            )
            db.add(prospect)
            db.commit()
            db.refresh(prospect)

        return SeedResult(org_slug=org.slug, user_email=user.email, property_id=prop.id, prospect_id=prospect.id)
    finally:
        db.close()
