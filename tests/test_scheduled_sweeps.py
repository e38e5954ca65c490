# tests/test_scheduled_sweeps.py
from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func, select

from backoffice.domain.statuses import (
    ApplicationStatus,
    DepositStatus,
    InvoiceStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PoolStatus,
    PropertyStatus,
)
from backoffice.models import (
    Invoice,
    Lease,
    LeaseOffer,
    OrganizationSettings,
    Property,
    RentalApplication,
    SecurityDeposit,
    SecurityDepositInvestmentPool,
    Tenant,
    WorkflowAuditLog,
    _utcnow,
)
from backoffice.tasks import scheduled
from backoffice.tasks.celery_app import celery_app
from backoffice.tasks.scheduled import (
    expire_overdue_leases,
    expire_stale_applications,
    mark_overdue_invoices,
    run_nightly_sweeps,
    run_org_sweeps,
    run_year_end_dividends,
)
from backoffice.workflows.lease_offers import LeaseOfferWorkflow
from backoffice.workflows.security_deposits import SecurityDepositWorkflow

TODAY = date(2026, 3, 15)


def _mk_lease(db, org_id: int, property_id: int, end: date, status=LeaseStatus.ACTIVE) -> int:
    t = Tenant(org_id=org_id, first_name="Kim", last_name="Payer", email="kim@example.com")
    db.add(t)
    db.flush()
    lease = Lease(
        org_id=org_id,
        property_id=property_id,
        tenant_id=t.id,
        start_date=end - timedelta(days=365),
        end_date=end,
        monthly_rent=1200.0,
        status=status,
    )
    db.add(lease)
    db.commit()
    return int(lease.id)


def _mk_invoice(db, org_id: int, lease_id: int, number: str, amount: float, due_on: date) -> int:
    inv = Invoice(org_id=org_id, lease_id=lease_id, invoice_number=number, amount=amount, due_on=due_on)
    db.add(inv)
    db.commit()
    return int(inv.id)


def _audit_count(db) -> int:
    return int(db.scalar(select(func.count()).select_from(WorkflowAuditLog)))


def test_overdue_invoices_get_capped_late_fee_after_grace(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=date(2026, 12, 31))
    late = _mk_invoice(db, actor.org_id, lease_id, "INV-1", 1200.0, TODAY - timedelta(days=10))
    small = _mk_invoice(db, actor.org_id, lease_id, "INV-2", 400.0, TODAY - timedelta(days=10))
    in_grace = _mk_invoice(db, actor.org_id, lease_id, "INV-3", 1200.0, TODAY - timedelta(days=1))
    not_due = _mk_invoice(db, actor.org_id, lease_id, "INV-4", 1200.0, TODAY)

    marked, fees = mark_overdue_invoices(db, org_id=actor.org_id, today=TODAY)

    assert (marked, fees) == (3, 2)

    inv = db.get(Invoice, late)
    assert inv.status == InvoiceStatus.OVERDUE
    assert inv.late_fee_amount == 50.0
    assert inv.amount == 1250.0
    assert inv.notes == "Late fee of $50.00 applied on Mar 15, 2026"

    inv = db.get(Invoice, small)
    assert inv.late_fee_amount == 20.0
    assert inv.amount == 420.0

    inv = db.get(Invoice, in_grace)
    assert inv.status == InvoiceStatus.OVERDUE
    assert inv.late_fee_applied is False
    assert inv.amount == 1200.0

    assert db.get(Invoice, not_due).status == InvoiceStatus.PENDING
    assert _audit_count(db) == 0


def test_late_fee_is_not_applied_twice(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=date(2026, 12, 31))
    inv_id = _mk_invoice(db, actor.org_id, lease_id, "INV-9", 1000.0, TODAY - timedelta(days=10))
    mark_overdue_invoices(db, org_id=actor.org_id, today=TODAY)

    # already overdue, so the second pass does not pick it up
    assert mark_overdue_invoices(db, org_id=actor.org_id, today=TODAY + timedelta(days=1)) == (0, 0)
    assert db.get(Invoice, inv_id).amount == 1050.0


def test_late_fees_respect_org_settings(db, actor, mk_property):
    db.add(OrganizationSettings(org_id=actor.org_id, late_fee_auto_apply=False))
    db.commit()
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=date(2026, 12, 31))
    inv_id = _mk_invoice(db, actor.org_id, lease_id, "INV-5", 1200.0, TODAY - timedelta(days=10))

    assert mark_overdue_invoices(db, org_id=actor.org_id, today=TODAY) == (1, 0)
    assert db.get(Invoice, inv_id).late_fee_amount is None


def test_stale_applications_expire_without_audit(db, actor, mk_property, mk_prospect):
    pid = mk_property(actor.org_id)
    now = _utcnow()
    stale = RentalApplication(
        org_id=actor.org_id,
        prospect_id=mk_prospect(actor.org_id, "Old"),
        property_id=pid,
        status=ApplicationStatus.UNDER_REVIEW,
        expires_on=now - timedelta(days=1),
    )
    fresh = RentalApplication(
        org_id=actor.org_id,
        prospect_id=mk_prospect(actor.org_id, "New"),
        property_id=pid,
        status=ApplicationStatus.SUBMITTED,
        expires_on=now + timedelta(days=10),
    )
    approved = RentalApplication(
        org_id=actor.org_id,
        prospect_id=mk_prospect(actor.org_id, "Yes"),
        property_id=pid,
        status=ApplicationStatus.APPROVED,
        expires_on=now - timedelta(days=1),
    )
    db.add_all([stale, fresh, approved])
    db.commit()

    assert expire_stale_applications(db, org_id=actor.org_id, now=now) == 1

    assert db.get(RentalApplication, stale.id).status == ApplicationStatus.EXPIRED
    assert db.get(RentalApplication, stale.id).modified_by == "system"
    assert db.get(RentalApplication, fresh.id).status == ApplicationStatus.SUBMITTED
    assert db.get(RentalApplication, approved.id).status == ApplicationStatus.APPROVED
    assert _audit_count(db) == 0


def test_leases_past_end_date_expire(db, actor, other_actor, mk_property):
    mine = _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=TODAY - timedelta(days=1))
    theirs = _mk_lease(db, other_actor.org_id, mk_property(other_actor.org_id), end=TODAY - timedelta(days=1))
    notice = _mk_lease(
        db, actor.org_id, mk_property(actor.org_id, "5 Birch"), end=TODAY - timedelta(days=1), status=LeaseStatus.NOTICE_GIVEN
    )

    assert expire_overdue_leases(db, org_id=actor.org_id, today=TODAY) == 1

    assert db.get(Lease, mine).status == LeaseStatus.EXPIRED
    assert db.get(Lease, theirs).status == LeaseStatus.ACTIVE
    assert db.get(Lease, notice).status == LeaseStatus.NOTICE_GIVEN
    assert _audit_count(db) == 0


def test_run_org_sweeps_summary(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=TODAY - timedelta(days=1))
    _mk_invoice(db, actor.org_id, lease_id, "INV-7", 900.0, TODAY - timedelta(days=20))

    out = run_org_sweeps(db, org_id=actor.org_id, today=TODAY)

    assert out.as_dict() == {
        "org_id": actor.org_id,
        "invoices_marked_overdue": 1,
        "late_fees_applied": 1,
        "applications_expired": 0,
        "leases_expired": 1,
        "lease_offers_expired": 0,
    }


def test_nightly_task_runs_every_org(db, actor, other_actor, mk_property):
    _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=date.today() - timedelta(days=2))
    _mk_lease(db, other_actor.org_id, mk_property(other_actor.org_id), end=date.today() - timedelta(days=2))

    out = run_nightly_sweeps()

    assert out["ok"] is True
    assert out["failed_org_ids"] == []
    assert sorted(r["org_id"] for r in out["results"]) == sorted([actor.org_id, other_actor.org_id])
    assert all(r["leases_expired"] == 1 for r in out["results"])


def test_failing_step_leaves_no_partial_writes_for_the_org(db, actor, mk_property, monkeypatch):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=date.today() + timedelta(days=200))
    inv_id = _mk_invoice(db, actor.org_id, lease_id, "INV-11", 1000.0, date.today() - timedelta(days=10))

    def _boom(*args, **kwargs):
        raise RuntimeError("lease sweep exploded")

    monkeypatch.setattr(scheduled, "expire_overdue_leases", _boom)

    out = run_nightly_sweeps()

    assert out["ok"] is False
    assert out["failed_org_ids"] == [actor.org_id]

    db.expire_all()
    inv = db.get(Invoice, inv_id)
    assert inv.status == InvoiceStatus.PENDING
    assert inv.late_fee_applied is False
    assert inv.amount == 1000.0


def test_org_sweep_commits_its_batch(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id), end=TODAY - timedelta(days=1))
    inv_id = _mk_invoice(db, actor.org_id, lease_id, "INV-12", 500.0, TODAY - timedelta(days=10))

    run_org_sweeps(db, org_id=actor.org_id, today=TODAY)
    db.rollback()

    db.expire_all()
    assert db.get(Invoice, inv_id).status == InvoiceStatus.OVERDUE
    assert db.get(Lease, lease_id).status == LeaseStatus.EXPIRED


def test_nightly_sweep_expires_stale_lease_offers(db, actor, mk_property, mk_prospect, approved_application, offer_dates):
    pid = mk_property(actor.org_id)
    app_id = approved_application(actor, prospect_id=mk_prospect(actor.org_id), property_id=pid)
    start, end = offer_dates
    res = LeaseOfferWorkflow(db, actor).generate_lease_offer(
        app_id, start_date=start, end_date=end, monthly_rent=1400.0, security_deposit=1400.0
    )
    assert res.success, res.errors
    offer_id = int(res.data.id)

    offer = db.get(LeaseOffer, offer_id)
    offer.expires_on = _utcnow() - timedelta(days=1)
    db.commit()

    out = run_nightly_sweeps()

    assert out["ok"] is True
    assert out["results"][0]["lease_offers_expired"] == 1

    db.expire_all()
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
    assert row is not None
    assert row.performed_by == "system"
    assert row.org_id == actor.org_id


def _pooled_deposit(db, org_id: int, property_id: int, entry: date) -> int:
    lease_id = _mk_lease(db, org_id, property_id, end=date(entry.year + 1, entry.month, 1))
    lease = db.get(Lease, lease_id)
    dep = SecurityDeposit(
        org_id=org_id,
        lease_id=lease_id,
        tenant_id=lease.tenant_id,
        amount=1000.0,
        date_received=entry,
        status=DepositStatus.HELD,
        in_investment_pool=True,
        pool_entry_date=entry,
    )
    db.add(dep)
    db.commit()
    return int(dep.id)


def test_year_end_dividends_calculate_ready_pools_only(db, actor, other_actor, mk_property):
    _pooled_deposit(db, actor.org_id, mk_property(actor.org_id), date(2024, 3, 1))
    res = SecurityDepositWorkflow(db, actor).record_investment_performance(
        2025, starting_balance=1000.0, ending_balance=1100.0, total_earnings=100.0
    )
    assert res.success, res.errors

    out = run_year_end_dividends(2025)

    assert out["year"] == 2025
    assert out["outcomes"] == {actor.org_id: "calculated", other_actor.org_id: "no_pool"}

    db.expire_all()
    pool = db.scalar(select(SecurityDepositInvestmentPool).where(SecurityDepositInvestmentPool.org_id == actor.org_id))
    assert pool.status == PoolStatus.CALCULATED
    assert pool.active_lease_count == 1

    again = run_year_end_dividends(2025)
    assert again["outcomes"][actor.org_id] == "already_processed"


def test_year_end_dividends_skip_pools_without_earnings(db, actor):
    assert SecurityDepositWorkflow(db, actor).get_or_create_investment_pool(2025).success

    out = run_year_end_dividends(2025)

    assert out["outcomes"] == {actor.org_id: "no_earnings"}
    db.expire_all()
    assert db.scalar(select(SecurityDepositInvestmentPool)).status == PoolStatus.OPEN


def test_year_end_dividends_respect_disabled_investment(db, actor):
    db.add(OrganizationSettings(org_id=actor.org_id, security_deposit_investment_enabled=False))
    db.commit()

    assert run_year_end_dividends(2025)["outcomes"] == {actor.org_id: "disabled"}


def test_year_end_dividends_are_on_the_beat_schedule():
    entry = celery_app.conf.beat_schedule["year-end-dividends"]
    assert entry["task"] == "backoffice.tasks.scheduled.run_year_end_dividends"
