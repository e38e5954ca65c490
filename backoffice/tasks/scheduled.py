# backoffice/tasks/scheduled.py
from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import SessionLocal
from ..domain.statuses import ApplicationStatus, InvoiceStatus, LeaseStatus, PoolStatus
from ..models import Invoice, Lease, Organization, RentalApplication, SecurityDepositInvestmentPool, _utcnow
from ..workflows.base import Actor, get_org_settings
from ..workflows.lease_offers import LeaseOfferWorkflow
from ..workflows.security_deposits import SecurityDepositWorkflow
from .celery_app import celery_app

log = logging.getLogger("backoffice.sweeps")

# -----------------------------------------------------------------------------
# Nightly sweeps.
#
# The invoice, application and lease steps write status columns directly and
# write no WorkflowAuditLog rows; they only stage changes, and run_org_sweeps
# commits them once per organization. The audited equivalents live on the
# workflow services (e.g. LeaseWorkflow.expire_overdue_leases) for
# operator-driven runs. Stale lease offers are the exception: they expire
# through LeaseOfferWorkflow in their own audited unit.
# -----------------------------------------------------------------------------

SYSTEM_USER = "system"


@dataclass(frozen=True)
class SweepResult:
    org_id: int
    invoices_marked_overdue: int = 0
    late_fees_applied: int = 0
    applications_expired: int = 0
    leases_expired: int = 0
    lease_offers_expired: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def _stamp(row, now: datetime) -> None:
    row.modified_by = SYSTEM_USER
    row.modified_at = now


def mark_overdue_invoices(db: Session, *, org_id: int, today: Optional[date] = None) -> tuple[int, int]:
    """
    Pending invoices past due -> Overdue; late fee added once the grace period lapses.

    Status and fee are staged together. Returns (marked_overdue, fees_applied).
    """
    today = today or date.today()
    now = _utcnow()
    cfg = get_org_settings(db, org_id=org_id)
    grace_cutoff = today - timedelta(days=int(cfg.late_fee_grace_period_days or 0))

    rows = db.scalars(
        select(Invoice).where(
            Invoice.org_id == org_id,
            Invoice.is_deleted.is_(False),
            Invoice.status == InvoiceStatus.PENDING,
            Invoice.due_on < today,
        )
    ).all()

    fees = 0
    for inv in rows:
        inv.status = InvoiceStatus.OVERDUE
        _stamp(inv, now)

        if cfg.late_fee_enabled and cfg.late_fee_auto_apply and inv.due_on < grace_cutoff and not inv.late_fee_applied:
            fee = round(min(inv.amount * float(cfg.late_fee_percentage), float(cfg.max_late_fee_amount)), 2)
            inv.late_fee_amount = fee
            inv.late_fee_applied = True
            inv.late_fee_applied_on = now
            inv.amount = round(inv.amount + fee, 2)
            line = f"Late fee of ${fee:,.2f} applied on {today:%b %d, %Y}"
            inv.notes = f"{inv.notes}\n{line}" if inv.notes else line
            fees += 1

    if rows:
        db.flush()
        log.info(
            "processed overdue invoices",
            extra={"event": "sweep_invoices", "org_id": org_id, "count": len(rows)},
        )
    return len(rows), fees


def expire_stale_applications(db: Session, *, org_id: int, now: Optional[datetime] = None) -> int:
    now = now or _utcnow()
    rows = db.scalars(
        select(RentalApplication).where(
            RentalApplication.org_id == org_id,
            RentalApplication.is_deleted.is_(False),
            RentalApplication.status.in_(
                [ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW, ApplicationStatus.SCREENING]
            ),
            RentalApplication.expires_on.is_not(None),
            RentalApplication.expires_on < now,
        )
    ).all()
    for app in rows:
        app.status = ApplicationStatus.EXPIRED
        _stamp(app, now)

    if rows:
        db.flush()
        log.info("expired applications", extra={"event": "sweep_applications", "org_id": org_id, "count": len(rows)})
    return len(rows)


def expire_overdue_leases(db: Session, *, org_id: int, today: Optional[date] = None) -> int:
    today = today or date.today()
    now = _utcnow()
    rows = db.scalars(
        select(Lease).where(
            Lease.org_id == org_id,
            Lease.is_deleted.is_(False),
            Lease.status == LeaseStatus.ACTIVE,
            Lease.end_date < today,
        )
    ).all()
    for lease in rows:
        lease.status = LeaseStatus.EXPIRED
        _stamp(lease, now)

    if rows:
        db.flush()
        log.info("expired leases", extra={"event": "sweep_leases", "org_id": org_id, "count": len(rows)})
    return len(rows)


def expire_stale_lease_offers(db: Session, *, org_id: int) -> int:
    """Pending offers past their deadline, expired through the audited workflow."""
    res = LeaseOfferWorkflow(db, Actor(org_id=org_id)).expire_stale_lease_offers()
    if not res.success:
        log.warning(
            "lease offer expiry rejected: %s",
            res.message,
            extra={"event": "sweep_lease_offers", "org_id": org_id},
        )
        return 0
    if res.data:
        log.info("expired lease offers", extra={"event": "sweep_lease_offers", "org_id": org_id, "count": res.data})
    return int(res.data or 0)


def run_org_sweeps(db: Session, *, org_id: int, today: Optional[date] = None) -> SweepResult:
    """
    Every nightly job for one org.

    Offers expire first in their own workflow unit. The unaudited steps that
    follow share a single commit, so a failure in any of them leaves none of
    their changes behind once the caller rolls back.
    """
    today = today or date.today()
    offers = expire_stale_lease_offers(db, org_id=org_id)

    marked, fees = mark_overdue_invoices(db, org_id=org_id, today=today)
    apps = expire_stale_applications(db, org_id=org_id)
    leases = expire_overdue_leases(db, org_id=org_id, today=today)
    db.commit()

    return SweepResult(
        org_id=org_id,
        invoices_marked_overdue=marked,
        late_fees_applied=fees,
        applications_expired=apps,
        leases_expired=leases,
        lease_offers_expired=offers,
    )


@celery_app.task(name="backoffice.tasks.scheduled.run_nightly_sweeps")
def run_nightly_sweeps() -> dict:
    """
    One pass over every organization.

    A failing org is rolled back and logged; the remaining orgs still run.
    """
    db = SessionLocal()
    results: list[dict] = []
    failed: list[int] = []
    try:
        org_ids = list(db.scalars(select(Organization.id).order_by(Organization.id)).all())
        for org_id in org_ids:
            try:
                results.append(run_org_sweeps(db, org_id=int(org_id)).as_dict())
            except Exception:
                db.rollback()
                failed.append(int(org_id))
                log.exception("sweep failed", extra={"event": "sweep_failed", "org_id": int(org_id)})
        return {"ok": not failed, "results": results, "failed_org_ids": failed}
    finally:
        db.close()


# -----------------------------------------------------------------------------
# Year-end dividends (first week of January, for the year just closed)
# -----------------------------------------------------------------------------

def process_year_end_dividends(db: Session, *, org_id: int, year: int) -> str:
    """
    Calculate dividends for one org's pool if it is ready.

    Returns what happened: disabled, no_pool, already_processed, no_earnings,
    calculated or failed.
    """
    cfg = get_org_settings(db, org_id=org_id)
    if not cfg.security_deposit_investment_enabled:
        return "disabled"

    pool = db.scalar(
        select(SecurityDepositInvestmentPool).where(
            SecurityDepositInvestmentPool.org_id == org_id,
            SecurityDepositInvestmentPool.year == int(year),
            SecurityDepositInvestmentPool.is_deleted.is_(False),
        )
    )
    if pool is None:
        return "no_pool"
    if pool.status in (PoolStatus.CALCULATED, PoolStatus.DISTRIBUTED, PoolStatus.CLOSED):
        return "already_processed"
    if not pool.total_earnings:
        log.info(
            "no earnings recorded; skipping dividend calculation",
            extra={"event": "year_end_dividends", "org_id": org_id, "year": int(year)},
        )
        return "no_earnings"

    res = SecurityDepositWorkflow(db, Actor(org_id=org_id)).calculate_dividends(year)
    if not res.success:
        log.warning(
            "dividend calculation rejected: %s",
            res.message,
            extra={"event": "year_end_dividends", "org_id": org_id, "year": int(year)},
        )
        return "failed"

    log.info(res.message, extra={"event": "year_end_dividends", "org_id": org_id, "year": int(year)})
    return "calculated"


@celery_app.task(name="backoffice.tasks.scheduled.run_year_end_dividends")
def run_year_end_dividends(year: Optional[int] = None) -> dict:
    year = int(year) if year is not None else date.today().year - 1
    db = SessionLocal()
    outcomes: dict[int, str] = {}
    try:
        org_ids = list(db.scalars(select(Organization.id).order_by(Organization.id)).all())
        for org_id in org_ids:
            outcomes[int(org_id)] = process_year_end_dividends(db, org_id=int(org_id), year=year)
        return {"ok": "failed" not in outcomes.values(), "year": year, "outcomes": outcomes}
    finally:
        db.close()
