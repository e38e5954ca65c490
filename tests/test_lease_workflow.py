# tests/test_lease_workflow.py
from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select

from backoffice.domain.statuses import DepositStatus, LeaseStatus, PropertyStatus
from backoffice.models import Lease, Property, SecurityDeposit, Tenant, WorkflowAuditLog
from backoffice.workflows.leases import LeaseWorkflow


def _mk_lease(db, org_id: int, property_id: int, *, status=LeaseStatus.ACTIVE, start=None, end=None, deposit=1200.0) -> int:
    start = start or date.today() - timedelta(days=200)
    end = end or start + timedelta(days=365)
    t = Tenant(org_id=org_id, first_name="Sam", last_name="Renter", email="sam@example.com")
    db.add(t)
    db.flush()
    lease = Lease(
        org_id=org_id,
        property_id=property_id,
        tenant_id=t.id,
        start_date=start,
        end_date=end,
        monthly_rent=1200.0,
        security_deposit_amount=deposit,
        status=status,
    )
    db.add(lease)
    db.flush()
    db.add(
        SecurityDeposit(
            org_id=org_id,
            lease_id=lease.id,
            tenant_id=t.id,
            amount=deposit,
            date_received=start,
            status=DepositStatus.HELD,
            in_investment_pool=True,
            pool_entry_date=start,
        )
    )
    db.commit()
    return int(lease.id)


def _deposit(db, lease_id: int) -> SecurityDeposit:
    return db.scalar(select(SecurityDeposit).where(SecurityDeposit.lease_id == lease_id))


def test_notice_then_move_out_releases_property(db, actor, mk_property):
    pid = mk_property(actor.org_id, status=PropertyStatus.OCCUPIED)
    lease_id = _mk_lease(db, actor.org_id, pid)
    wf = LeaseWorkflow(db, actor)
    move_out = date.today() + timedelta(days=30)

    res = wf.record_termination_notice(
        lease_id, notice_date=date.today(), expected_move_out_date=move_out, reason="Relocating"
    )
    assert res.success, res.errors
    assert res.message == f"Termination notice recorded. Move-out date: {move_out:%b %d, %Y}"
    assert db.get(Lease, lease_id).status == LeaseStatus.NOTICE_GIVEN

    res = wf.complete_move_out(lease_id, move_out_date=move_out)
    assert res.success
    lease = db.get(Lease, lease_id)
    assert lease.status == LeaseStatus.TERMINATED
    assert lease.actual_move_out_date == move_out
    assert db.get(Property, pid).status == PropertyStatus.AVAILABLE

    actions = db.scalars(
        select(WorkflowAuditLog.action)
        .where(WorkflowAuditLog.entity_type == "Lease", WorkflowAuditLog.entity_id == lease_id)
        .order_by(WorkflowAuditLog.id)
    ).all()
    assert actions == ["RecordTerminationNotice", "CompleteMoveOut"]


def test_notice_requires_future_move_out(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id, status=PropertyStatus.OCCUPIED))
    res = LeaseWorkflow(db, actor).record_termination_notice(
        lease_id, notice_date=date.today(), expected_move_out_date=date.today(), reason="x"
    )
    assert res.errors == ["Expected move-out date must be in the future"]
    assert db.get(Lease, lease_id).status == LeaseStatus.ACTIVE


def test_renewal_links_leases_and_moves_deposit(db, actor, mk_property):
    pid = mk_property(actor.org_id, status=PropertyStatus.OCCUPIED)
    lease_id = _mk_lease(db, actor.org_id, pid)
    old_end = db.get(Lease, lease_id).end_date
    wf = LeaseWorkflow(db, actor)

    assert wf.renew_lease(lease_id, new_end_date=old_end, new_monthly_rent=1300).errors == [
        "New end date must be after current end date"
    ]

    res = wf.renew_lease(lease_id, new_end_date=old_end + timedelta(days=365), new_monthly_rent=1300)
    assert res.success, res.errors
    renewed = db.get(Lease, res.data.id)

    assert renewed.previous_lease_id == lease_id
    assert renewed.renewal_number == 1
    assert renewed.start_date == old_end + timedelta(days=1)
    assert renewed.status == LeaseStatus.ACTIVE
    assert renewed.monthly_rent == 1300.0
    assert db.get(Lease, lease_id).status == LeaseStatus.RENEWED
    assert _deposit(db, renewed.id) is not None
    assert _deposit(db, lease_id) is None

    again = wf.renew_lease(lease_id, new_end_date=old_end + timedelta(days=800), new_monthly_rent=1300)
    assert again.errors == ["Cannot transition from Renewed to Renewed. Renewed is a terminal status"]


def test_month_to_month_records_rent_change(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id, status=PropertyStatus.OCCUPIED))
    wf = LeaseWorkflow(db, actor)

    res = wf.convert_to_month_to_month(lease_id, new_monthly_rent=1275.5)
    assert res.success
    assert res.data.monthly_rent == 1275.5
    assert db.get(Lease, lease_id).status == LeaseStatus.MONTH_TO_MONTH

    row = db.scalar(select(WorkflowAuditLog).where(WorkflowAuditLog.action == "ConvertToMonthToMonth"))
    assert row.from_status == "Active"
    assert row.to_status == "Month-to-Month"
    assert '"new_rent": 1275.5' in row.metadata_json


def test_pending_lease_activation(db, actor, mk_property):
    pid = mk_property(actor.org_id, status=PropertyStatus.LEASE_PENDING)
    soon = _mk_lease(db, actor.org_id, pid, status=LeaseStatus.PENDING, start=date.today() + timedelta(days=5))
    far = _mk_lease(db, actor.org_id, pid, status=LeaseStatus.PENDING, start=date.today() + timedelta(days=90))
    wf = LeaseWorkflow(db, actor)

    assert wf.activate_lease(far).errors == ["Lease cannot be activated more than 30 days before its start date"]

    res = wf.activate_lease(soon, move_in_date=date.today() + timedelta(days=5))
    assert res.success
    assert db.get(Lease, soon).status == LeaseStatus.ACTIVE
    assert db.get(Property, pid).status == PropertyStatus.OCCUPIED


def test_early_termination_needs_reason(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id, status=PropertyStatus.OCCUPIED))
    wf = LeaseWorkflow(db, actor)

    assert wf.early_terminate(lease_id, reason="").errors == ["Termination reason is required"]
    res = wf.early_terminate(lease_id, reason="Job transfer")
    assert res.success
    assert res.data.termination_reason == "Job transfer"


def test_expire_overdue_leases_is_audited(db, actor, mk_property):
    pid = mk_property(actor.org_id, status=PropertyStatus.OCCUPIED)
    start = date.today() - timedelta(days=400)
    overdue = _mk_lease(db, actor.org_id, pid, start=start, end=start + timedelta(days=365))
    current = _mk_lease(db, actor.org_id, mk_property(actor.org_id, "2 Elm", PropertyStatus.OCCUPIED))

    res = LeaseWorkflow(db, actor).expire_overdue_leases()

    assert res.data == 1
    assert db.get(Lease, overdue).status == LeaseStatus.EXPIRED
    assert db.get(Lease, current).status == LeaseStatus.ACTIVE
    row = db.scalar(select(WorkflowAuditLog).where(WorkflowAuditLog.action == "ExpireLease"))
    assert row.entity_id == overdue


def test_settlement_with_deductions_then_partial_refund(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id, status=PropertyStatus.OCCUPIED), deposit=1500.0)
    wf = LeaseWorkflow(db, actor)

    res = wf.initiate_deposit_settlement(lease_id, deductions_amount=200)
    assert res.errors == [
        "Deposit settlement requires a lease with notice given, expired or terminated (current: Active)"
    ]

    assert wf.early_terminate(lease_id, reason="Mutual agreement", effective_date=date.today()).success

    assert wf.initiate_deposit_settlement(lease_id, deductions_amount=2000).errors == [
        "Deductions cannot exceed the deposit amount"
    ]

    res = wf.initiate_deposit_settlement(lease_id, deductions_amount=250.0, deductions_description="Carpet")
    assert res.success
    assert res.data.refund_amount == 1250.0
    assert res.data.status == DepositStatus.PENDING_RETURN

    dep = _deposit(db, lease_id)
    assert dep.pool_exit_date == date.today()

    res = wf.record_deposit_refund(dep.id, refund_method="Check")
    assert res.success
    assert _deposit(db, lease_id).status == DepositStatus.PARTIALLY_REFUNDED

    assert wf.initiate_deposit_settlement(lease_id).errors == ["Security deposit has already been settled"]


def test_full_deduction_forfeits_deposit(db, actor, mk_property):
    lease_id = _mk_lease(db, actor.org_id, mk_property(actor.org_id, status=PropertyStatus.OCCUPIED), deposit=800.0)
    wf = LeaseWorkflow(db, actor)
    wf.early_terminate(lease_id, reason="Abandoned unit")

    res = wf.initiate_deposit_settlement(lease_id, deductions_amount=800.0)

    assert res.data.status == DepositStatus.FORFEITED
    assert res.data.refund_amount == 0.0
    dep = _deposit(db, lease_id)
    refund = wf.record_deposit_refund(dep.id, refund_method="Check")
    assert not refund.success
    assert refund.errors[0].startswith("Cannot transition from Forfeited to Partially Refunded")
