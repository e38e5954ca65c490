# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from datetime import date, timedelta

import pytest

# settings are read at import time
_DB_PATH = os.path.join(tempfile.gettempdir(), f"backoffice-test-{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTH_MODE", "dev")

from backoffice import models  # noqa: E402,F401
from backoffice.db import Base, SessionLocal, engine  # noqa: E402
from backoffice.domain.statuses import PropertyStatus, ProspectStatus, ScreeningResult  # noqa: E402
from backoffice.models import AppUser, Organization, OrgMembership, Property, ProspectiveTenant  # noqa: E402
from backoffice.workflows.base import Actor  # noqa: E402
from backoffice.workflows.lease_offers import LeaseOfferWorkflow  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


def _mk_org_user(db, slug: str, email: str) -> Actor:
    org = Organization(slug=slug, name=slug)
    user = AppUser(email=email, display_name=email.split("@")[0])
    db.add_all([org, user])
    db.commit()
    db.refresh(org)
    db.refresh(user)
    db.add(OrgMembership(org_id=org.id, user_id=user.id, role="owner"))
    db.commit()
    return Actor(org_id=int(org.id), user_id=int(user.id))


@pytest.fixture
def actor(db) -> Actor:
    return _mk_org_user(db, "org-a", "manager@a.local")


@pytest.fixture
def other_actor(db) -> Actor:
    return _mk_org_user(db, "org-b", "manager@b.local")


@pytest.fixture
def mk_property(db):
    def _mk(org_id: int, address: str = "100 Main St", status: PropertyStatus = PropertyStatus.AVAILABLE) -> int:
        p = Property(
            org_id=org_id,
            address=address,
            city="Detroit",
            state="MI",
            zip="48201",
            bedrooms=3,
            bathrooms=1.0,
            monthly_rent=1400.0,
            status=status,
        )
        db.add(p)
        db.commit()
        db.refresh(p)
        return int(p.id)

    return _mk


@pytest.fixture
def mk_prospect(db):
    def _mk(org_id: int, first_name: str = "Dana", email: str | None = None) -> int:
        row = ProspectiveTenant(
            org_id=org_id,
            first_name=first_name,
            last_name="Applicant",
            email=email or f"{first_name.lower()}@example.com",
            status=ProspectStatus.LEAD,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return int(row.id)

    return _mk


@pytest.fixture
def approved_application(db):
    """Drive a fresh application to Approved and return its id."""

    def _run(actor: Actor, *, prospect_id: int, property_id: int) -> int:
        wf = LeaseOfferWorkflow(db, actor)
        res = wf.submit_application(prospect_id=prospect_id, property_id=property_id, application_fee=35.0)
        assert res.success, res.errors
        app_id = int(res.data.id)

        assert wf.record_application_fee(app_id, payment_method="Card").success
        assert wf.mark_under_review(app_id).success
        assert wf.initiate_screening(app_id).success
        assert wf.complete_screening(
            app_id,
            overall_result=ScreeningResult.PASSED,
            background_check_passed=True,
            credit_check_passed=True,
            credit_score=712,
        ).success
        assert wf.approve_application(app_id).success
        return app_id

    return _run


@pytest.fixture
def offer_dates() -> tuple[date, date]:
    start = date.today() + timedelta(days=14)
    return start, start + timedelta(days=365)
