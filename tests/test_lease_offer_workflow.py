# tests/test_lease_offer_workflow.py
from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func, select

from backoffice.domain.statuses import (
    ApplicationStatus,
    DepositStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PropertyStatus,
    ProspectStatus,
)
from backoffice.models import (
    Lease,
    LeaseOffer,
    OrganizationSettings,
    Property,
    ProspectiveTenant,
    RentalApplication,
    SecurityDeposit,
    Tenant,
    WorkflowAuditLog,
    _utcnow,
)
from backoffice.workflows.lease_offers import LeaseOfferWorkflow


def _offer(wf, app_id, dates, rent=1450.0, deposit=1450.0):
    start, end = dates
    return wf.generate_lease_offer(app_id, start_date=start, end_date=end, monthly_rent=rent, security_deposit=deposit)


def test_full_lifecycle_creates_tenant_lease_and_deposit(
    db, actor, mk_property, mk_prospect, approved_application, offer_dates
):
    pid = mk_property(actor.org_id)
    prid = mk_prospect(actor.org_id)
    app_id = approved_application(actor, prospect_id=prid, property_id=pid)
    wf = LeaseOfferWorkflow(db, actor)

    res = _offer(wf, app_id, offer_dates)
    assert res.success, res.errors
    offer_id = res.data.id
    assert db.get(RentalApplication, app_id).status == ApplicationStatus.LEASE_OFFERED
    assert db.get(Property, pid).status == PropertyStatus.LEASE_PENDING
    assert db.get(ProspectiveTenant, prid).status == ProspectStatus.LEASE_OFFERED

    res = wf.accept_lease_offer(offer_id, deposit_payment_method="ACH", deposit_reference="TX-1")
    assert res.success, res.errors
    lease = db.get(Lease, res.data.id)

    assert lease.status == LeaseStatus.ACTIVE
    assert lease.lease_offer_id == offer_id
    assert lease.start_date == offer_dates[0]
    assert lease.monthly_rent == 1450.0

    tenant = db.get(Tenant, lease.tenant_id)
    assert tenant.prospect_id == prid
    assert tenant.first_name == "Dana"

    deposit = db.scalar(select(SecurityDeposit).where(SecurityDeposit.lease_id == lease.id))
    assert deposit.status == DepositStatus.HELD
    assert deposit.amount == 1450.0
    assert deposit.in_investment_pool is True
    assert deposit.pool_entry_date == offer_dates[0]

    offer = db.get(LeaseOffer, offer_id)
    assert offer.status == LeaseOfferStatus.ACCEPTED
    assert offer.converted_lease_id == lease.id
    assert db.get(RentalApplication, app_id).status == ApplicationStatus.LEASE_ACCEPTED
    assert db.get(ProspectiveTenant, prid).status == ProspectStatus.CONVERTED_TO_TENANT
    assert db.get(Property, pid).status == PropertyStatus.OCCUPIED

    actions = db.scalars(
        select(WorkflowAuditLog.action).where(WorkflowAuditLog.entity_type == "Lease", WorkflowAuditLog.entity_id == lease.id)
    ).all()
    assert actions == ["AcceptLeaseOffer"]


def test_offer_denies_competing_applications(
    db, actor, mk_property, mk_prospect, approved_application, offer_dates
):
    pid = mk_property(actor.org_id)
    winner = approved_application(actor, prospect_id=mk_prospect(actor.org_id, "Ana"), property_id=pid)
    wf = LeaseOfferWorkflow(db, actor)
    loser_prospect = mk_prospect(actor.org_id, "Ben")
    loser = wf.submit_application(prospect_id=loser_prospect, property_id=pid).data.id

    assert _offer(wf, winner, offer_dates).success

    app = db.get(RentalApplication, loser)
    assert app.status == ApplicationStatus.DENIED
    assert app.denial_reason == "Property leased to another applicant"
    assert db.get(ProspectiveTenant, loser_prospect).status == ProspectStatus.DENIED

    row = db.scalar(
        select(WorkflowAuditLog).where(
            WorkflowAuditLog.entity_type == "RentalApplication",
            WorkflowAuditLog.entity_id == loser,
            WorkflowAuditLog.action == "DenyCompetingApplication",
        )
    )
    assert row is not None
    assert row.reason == "Property leased to another applicant"


def test_offer_validation_collects_every_error(db, actor, mk_property, mk_prospect, approved_application):
    app_id = approved_application(actor, prospect_id=mk_prospect(actor.org_id), property_id=mk_property(actor.org_id))
    wf = LeaseOfferWorkflow(db, actor)
    past = date.today() - timedelta(days=3)

    res = wf.generate_lease_offer(
        app_id, start_date=past, end_date=past - timedelta(days=1), monthly_rent=0, security_deposit=-5
    )

    assert not res.success
    assert res.errors == [
        "Lease start date must be before end date",
        "Lease start date cannot be in the past",
        "Monthly rent must be greater than zero",
        "Security deposit cannot be negative",
    ]
    assert db.scalar(select(func.count()).select_from(LeaseOffer)) == 0
    assert db.get(RentalApplication, app_id).status == ApplicationStatus.APPROVED


def test_offer_requires_approved_application(db, actor, mk_property, mk_prospect, offer_dates):
    wf = LeaseOfferWorkflow(db, actor)
    app_id = wf.submit_application(prospect_id=mk_prospect(actor.org_id), property_id=mk_property(actor.org_id)).data.id

    res = _offer(wf, app_id, offer_dates)
    assert res.errors == ["Application must be Approved to generate a lease offer (current: Submitted)"]


def test_decline_releases_property(db, actor, mk_property, mk_prospect, approved_application, offer_dates):
    pid = mk_property(actor.org_id)
    prid = mk_prospect(actor.org_id)
    app_id = approved_application(actor, prospect_id=prid, property_id=pid)
    wf = LeaseOfferWorkflow(db, actor)
    offer_id = _offer(wf, app_id, offer_dates).data.id

    res = wf.decline_lease_offer(offer_id, reason="Rent too high")

    assert res.success
    assert db.get(LeaseOffer, offer_id).status == LeaseOfferStatus.DECLINED
    assert db.get(RentalApplication, app_id).status == ApplicationStatus.LEASE_DECLINED
    assert db.get(ProspectiveTenant, prid).status == ProspectStatus.LEASE_DECLINED
    assert db.get(Property, pid).status == PropertyStatus.AVAILABLE

    again = wf.accept_lease_offer(offer_id, deposit_payment_method="ACH")
    assert again.errors == ["Lease offer is not pending (current: Declined)"]


def test_expire_only_after_deadline(db, actor, mk_property, mk_prospect, approved_application, offer_dates):
    pid = mk_property(actor.org_id)
    app_id = approved_application(actor, prospect_id=mk_prospect(actor.org_id), property_id=pid)
    wf = LeaseOfferWorkflow(db, actor)
    offer_id = _offer(wf, app_id, offer_dates).data.id

    assert wf.expire_lease_offer(offer_id).errors == ["Lease offer has not expired yet"]

    offer = db.get(LeaseOffer, offer_id)
    offer.expires_on = _utcnow() - timedelta(days=1)
    db.commit()

    assert wf.accept_lease_offer(offer_id, deposit_payment_method="ACH").errors == ["Lease offer has expired"]

    res = wf.expire_stale_lease_offers()
    assert res.success
    assert res.data == 1
    assert db.get(LeaseOffer, offer_id).status == LeaseOfferStatus.EXPIRED
    assert db.get(RentalApplication, app_id).status == ApplicationStatus.EXPIRED
    assert db.get(Property, pid).status == PropertyStatus.AVAILABLE

    row = db.scalar(
        select(WorkflowAuditLog).where(
            WorkflowAuditLog.entity_type == "LeaseOffer",
            WorkflowAuditLog.entity_id == offer_id,
            WorkflowAuditLog.action == "ExpireLeaseOffer",
        )
    )
    assert row.reason == "Offer expired after 30 days"
    assert row.from_status == "Pending"


def test_accept_without_pooling_when_investment_disabled(
    db, actor, mk_property, mk_prospect, approved_application, offer_dates
):
    db.add(OrganizationSettings(org_id=actor.org_id, security_deposit_investment_enabled=False))
    db.commit()

    app_id = approved_application(actor, prospect_id=mk_prospect(actor.org_id), property_id=mk_property(actor.org_id))
    wf = LeaseOfferWorkflow(db, actor)
    offer_id = _offer(wf, app_id, offer_dates).data.id
    lease_id = wf.accept_lease_offer(offer_id, deposit_payment_method="Check").data.id

    deposit = db.scalar(select(SecurityDeposit).where(SecurityDeposit.lease_id == lease_id))
    assert deposit.in_investment_pool is False
    assert deposit.pool_entry_date is None
