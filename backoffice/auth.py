# backoffice/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser, Organization, OrgMembership


@dataclass(frozen=True)
class Principal:
    org_id: int
    org_slug: str
    user_id: int
    email: str
    role: str  # owner | operator | analyst


ROLE_ORDER = {"analyst": 1, "operator": 2, "owner": 3}


def _require_role(principal: Principal, min_role: str) -> None:
    if ROLE_ORDER.get(principal.role, 0) < ROLE_ORDER.get(min_role, 999):
        raise HTTPException(status_code=403, detail=f"Requires role >= {min_role}")


# -------------------------
# Org + membership helpers
# -------------------------
def _get_org(db: Session, org_slug: str) -> Organization | None:
    return db.scalar(select(Organization).where(Organization.slug == org_slug))


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


def _get_membership(db: Session, org_id: int, user_id: int) -> OrgMembership | None:
    return db.scalar(select(OrgMembership).where(OrgMembership.org_id == org_id, OrgMembership.user_id == user_id))


def _provision(db: Session, *, org_slug: str, email: str, role_hint: str) -> tuple[Organization, AppUser, OrgMembership]:
    org = _get_org(db, org_slug)
    if org is None:
        org = Organization(slug=org_slug, name=org_slug)
        db.add(org)
        db.commit()
        db.refresh(org)

    user = _get_user_by_email(db, email)
    if user is None:
        user = AppUser(email=email, display_name=email.split("@")[0])
        db.add(user)
        db.commit()
        db.refresh(user)

    mem = _get_membership(db, int(org.id), int(user.id))
    if mem is None:
        mem = OrgMembership(org_id=int(org.id), user_id=int(user.id), role=role_hint if role_hint in ROLE_ORDER else "owner")
        db.add(mem)
        db.commit()
        db.refresh(mem)
    return org, user, mem


def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    """
    Active org comes from X-Org-Slug; the user from X-User-Email.

    auth_mode=dev    unknown org/user/membership rows are provisioned on the fly
                     (X-User-Role picks the role of a new membership)
    auth_mode=header all three rows must already exist
    """
    org_slug = (request.headers.get(settings.dev_header_org_slug) or "").strip()
    if not org_slug:
        raise HTTPException(status_code=401, detail="Missing X-Org-Slug (active org context).")

    email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail="Missing X-User-Email")

    mode = (settings.auth_mode or "").strip().lower()
    if mode == "dev" and settings.dev_auto_provision:
        role_hint = (request.headers.get(settings.dev_header_user_role) or "owner").strip().lower()
        org, user, mem = _provision(db, org_slug=org_slug, email=email, role_hint=role_hint)
    else:
        org = _get_org(db, org_slug)
        if org is None:
            raise HTTPException(status_code=401, detail="Unknown org")
        user = _get_user_by_email(db, email)
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        mem: Optional[OrgMembership] = _get_membership(db, int(org.id), int(user.id))
        if mem is None:
            raise HTTPException(status_code=403, detail="Not a member of this org")

    return Principal(
        org_id=int(org.id),
        org_slug=str(org.slug),
        user_id=int(user.id),
        email=str(user.email),
        role=str(mem.role),
    )


def require_operator(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "operator")
    return p


def require_owner(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "owner")
    return p
