# backoffice/workflows/leases.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select

from ..config import settings
from ..domain.statuses import DepositStatus, LeaseStatus, PropertyStatus
from ..domain.transitions import DEPOSIT_TRANSITIONS, LEASE_TRANSITIONS
from ..models import Lease, Property, SecurityDeposit, _utcnow
from .base import WorkflowService
from .result import WorkflowResult

ENTITY = "Lease"


@dataclass(frozen=True)
class DepositSettlement:
    deposit_id: int
    lease_id: int
    deposit_amount: float
    deductions_amount: float
    refund_amount: float
    status: DepositStatus


class LeaseWorkflow(WorkflowService):
    """Lease lifecycle after signing, plus deposit settlement at move-out."""

    def _transition(self, lease: Lease, new_status: LeaseStatus, action: str, reason=None, metadata=None) -> None:
        old = lease.status
        lease.status = new_status
        self._touch(lease)
        self._log_transition(ENTITY, lease.id, old, new_status, action, reason, metadata)

    def _guard(self, lease_id: int, new_status: LeaseStatus) -> tuple[Optional[Lease], Optional[str]]:
        lease = self._get(Lease, lease_id)
        if lease is None:
            return None, "Lease not found"
        if not LEASE_TRANSITIONS.is_valid_transition(lease.status, new_status):
            return lease, LEASE_TRANSITIONS.invalid_transition_reason(lease.status, new_status)
        return lease, None

    def _release_property_if_vacant(self, lease: Lease) -> None:
        self.db.flush()
        other = self.db.scalar(
            select(Lease.id).where(
                Lease.org_id == self.org_id,
                Lease.property_id == lease.property_id,
                Lease.id != lease.id,
                Lease.is_deleted.is_(False),
                Lease.status.in_(list(LeaseStatus.occupying())),
            )
        )
        if other is not None:
            return
        prop = self._get(Property, lease.property_id)
        if prop is not None and prop.status == PropertyStatus.OCCUPIED:
            prop.status = PropertyStatus.AVAILABLE
            self._touch(prop)

    # -----------------------------
    # Lifecycle
    # -----------------------------
    def activate_lease(self, lease_id: int, *, move_in_date: Optional[date] = None) -> WorkflowResult[Lease]:
        def op() -> WorkflowResult[Lease]:
            lease, err = self._guard(lease_id, LeaseStatus.ACTIVE)
            if err:
                return WorkflowResult.fail(err)
            window = int(settings.lease_activation_window_days)
            if lease.start_date > date.today() + timedelta(days=window):
                return WorkflowResult.fail(f"Lease cannot be activated more than {window} days before its start date")

            lease.signed_on = lease.signed_on or _utcnow()
            self._transition(lease, LeaseStatus.ACTIVE, "ActivateLease", metadata={"move_in_date": move_in_date})

            prop = self._get(Property, lease.property_id)
            if prop is not None:
                prop.status = PropertyStatus.OCCUPIED
                self._touch(prop)
            return WorkflowResult.ok("Lease activated successfully", lease)

        return self._execute(op)

    def record_termination_notice(
        self,
        lease_id: int,
        *,
        notice_date: date,
        expected_move_out_date: date,
        reason: str,
    ) -> WorkflowResult[Lease]:
        def op() -> WorkflowResult[Lease]:
            lease, err = self._guard(lease_id, LeaseStatus.NOTICE_GIVEN)
            if err:
                return WorkflowResult.fail(err)
            if expected_move_out_date <= date.today():
                return WorkflowResult.fail("Expected move-out date must be in the future")
            if not (reason or "").strip():
                return WorkflowResult.fail("Termination notice reason is required")

            lease.notice_given_on = notice_date
            lease.expected_move_out_date = expected_move_out_date
            lease.termination_reason = reason.strip()
            self._transition(lease, LeaseStatus.NOTICE_GIVEN, "RecordTerminationNotice", reason.strip())
            return WorkflowResult.ok(
                f"Termination notice recorded. Move-out date: {expected_move_out_date:%b %d, %Y}", lease
            )

        return self._execute(op)

    def convert_to_month_to_month(self, lease_id: int, *, new_monthly_rent: Optional[float] = None) -> WorkflowResult[Lease]:
        def op() -> WorkflowResult[Lease]:
            lease, err = self._guard(lease_id, LeaseStatus.MONTH_TO_MONTH)
            if err:
                return WorkflowResult.fail(err)
            if new_monthly_rent is not None and new_monthly_rent <= 0:
                return WorkflowResult.fail("Monthly rent must be greater than zero")

            meta = None
            if new_monthly_rent is not None:
                meta = {"old_rent": lease.monthly_rent, "new_rent": round(float(new_monthly_rent), 2)}
                lease.monthly_rent = round(float(new_monthly_rent), 2)
            self._transition(lease, LeaseStatus.MONTH_TO_MONTH, "ConvertToMonthToMonth", metadata=meta)
            return WorkflowResult.ok("Lease converted to month-to-month successfully", lease)

        return self._execute(op)

    def renew_lease(
        self,
        lease_id: int,
        *,
        new_end_date: date,
        new_monthly_rent: float,
        new_start_date: Optional[date] = None,
        terms: Optional[str] = None,
    ) -> WorkflowResult[Lease]:
        def op() -> WorkflowResult[Lease]:
            old, err = self._guard(lease_id, LeaseStatus.RENEWED)
            if err:
                return WorkflowResult.fail(err)
            if new_end_date <= old.end_date:
                return WorkflowResult.fail("New end date must be after current end date")
            if new_monthly_rent <= 0:
                return WorkflowResult.fail("Monthly rent must be greater than zero")

            start = new_start_date or (old.end_date + timedelta(days=1))
            if start >= new_end_date:
                return WorkflowResult.fail("Renewal start date must be before the new end date")

            renewed = self._new(
                Lease,
                property_id=old.property_id,
                tenant_id=old.tenant_id,
                lease_offer_id=old.lease_offer_id,
                start_date=start,
                end_date=new_end_date,
                monthly_rent=round(float(new_monthly_rent), 2),
                security_deposit_amount=old.security_deposit_amount,
                terms=terms if terms is not None else old.terms,
                status=LeaseStatus.ACTIVE,
                signed_on=_utcnow(),
                renewal_number=int(old.renewal_number or 0) + 1,
                previous_lease_id=old.id,
            )
            self.db.flush()

            # the deposit follows the tenant onto the renewed lease
            deposit = self.db.scalar(
                select(SecurityDeposit).where(
                    SecurityDeposit.org_id == self.org_id,
                    SecurityDeposit.lease_id == old.id,
                    SecurityDeposit.is_deleted.is_(False),
                )
            )
            if deposit is not None:
                deposit.lease_id = renewed.id
                self._touch(deposit)

            self._transition(old, LeaseStatus.RENEWED, "RenewLease", metadata={"renewed_lease_id": renewed.id})
            self._log_transition(
                ENTITY,
                renewed.id,
                None,
                LeaseStatus.ACTIVE,
                "RenewLease",
                metadata={"previous_lease_id": old.id, "renewal_number": renewed.renewal_number},
            )
            return WorkflowResult.ok(f"Lease renewed (renewal #{renewed.renewal_number})", renewed)

        return self._execute(op)

    def complete_move_out(self, lease_id: int, *, move_out_date: Optional[date] = None) -> WorkflowResult[Lease]:
        def op() -> WorkflowResult[Lease]:
            lease = self._get(Lease, lease_id)
            if lease is None:
                return WorkflowResult.fail("Lease not found")
            allowed = (LeaseStatus.NOTICE_GIVEN, LeaseStatus.EXPIRED, LeaseStatus.ACTIVE)
            if lease.status not in allowed:
                return WorkflowResult.fail(
                    f"Cannot complete move-out for a lease in status {lease.status.value}"
                )

            lease.actual_move_out_date = move_out_date or date.today()
            self._transition(lease, LeaseStatus.TERMINATED, "CompleteMoveOut")
            self._release_property_if_vacant(lease)
            return WorkflowResult.ok("Move-out completed successfully", lease)

        return self._execute(op)

    def early_terminate(self, lease_id: int, *, reason: str, effective_date: Optional[date] = None) -> WorkflowResult[Lease]:
        def op() -> WorkflowResult[Lease]:
            if not (reason or "").strip():
                return WorkflowResult.fail("Termination reason is required")
            lease, err = self._guard(lease_id, LeaseStatus.TERMINATED)
            if err:
                return WorkflowResult.fail(err)

            lease.termination_reason = reason.strip()
            lease.actual_move_out_date = effective_date or date.today()
            self._transition(lease, LeaseStatus.TERMINATED, "EarlyTerminate", reason.strip())
            self._release_property_if_vacant(lease)
            return WorkflowResult.ok("Lease terminated (early termination)", lease)

        return self._execute(op)

    def expire_overdue_leases(self, *, today: Optional[date] = None) -> WorkflowResult[int]:
        """Audited counterpart of the nightly sweep, for operators running it by hand."""
        cutoff = today or date.today()

        def op() -> WorkflowResult[int]:
            rows = self.db.scalars(
                select(Lease).where(
                    Lease.org_id == self.org_id,
                    Lease.is_deleted.is_(False),
                    Lease.status == LeaseStatus.ACTIVE,
                    Lease.end_date < cutoff,
                )
            ).all()
            for lease in rows:
                self._transition(lease, LeaseStatus.EXPIRED, "ExpireLease", "Lease end date passed")
            return WorkflowResult.ok(f"{len(rows)} lease(s) expired", len(rows))

        return self._execute(op)

    # -----------------------------
    # Deposit settlement
    # -----------------------------
    def initiate_deposit_settlement(
        self,
        lease_id: int,
        *,
        deductions_amount: float = 0.0,
        deductions_description: Optional[str] = None,
    ) -> WorkflowResult[DepositSettlement]:
        def op() -> WorkflowResult[DepositSettlement]:
            lease = self._get(Lease, lease_id)
            if lease is None:
                return WorkflowResult.fail("Lease not found")
            if lease.status not in (LeaseStatus.NOTICE_GIVEN, LeaseStatus.EXPIRED, LeaseStatus.TERMINATED):
                return WorkflowResult.fail(
                    f"Deposit settlement requires a lease with notice given, expired or terminated (current: {lease.status.value})"
                )

            deposit = self.db.scalar(
                select(SecurityDeposit).where(
                    SecurityDeposit.org_id == self.org_id,
                    SecurityDeposit.lease_id == lease.id,
                    SecurityDeposit.is_deleted.is_(False),
                )
            )
            if deposit is None:
                return WorkflowResult.fail("Security deposit record not found")
            if deposit.status != DepositStatus.HELD:
                return WorkflowResult.fail("Security deposit has already been settled")
            if deductions_amount < 0:
                return WorkflowResult.fail("Deductions cannot be negative")
            if deductions_amount > deposit.amount:
                return WorkflowResult.fail("Deductions cannot exceed the deposit amount")

            refund = round(deposit.amount - deductions_amount, 2)
            new_status = DepositStatus.PENDING_RETURN if refund > 0 else DepositStatus.FORFEITED
            if not DEPOSIT_TRANSITIONS.is_valid_transition(deposit.status, new_status):
                return WorkflowResult.fail(DEPOSIT_TRANSITIONS.invalid_transition_reason(deposit.status, new_status))

            old = deposit.status
            deposit.deductions_amount = round(float(deductions_amount), 2)
            deposit.deductions_description = deductions_description
            deposit.refund_amount = refund
            deposit.status = new_status
            if deposit.in_investment_pool:
                deposit.pool_exit_date = lease.actual_move_out_date or date.today()
            self._touch(deposit)
            self._log_transition(
                "SecurityDeposit",
                deposit.id,
                old,
                new_status,
                "InitiateDepositSettlement",
                deductions_description,
                {"deductions": deposit.deductions_amount, "refund": refund},
            )

            out = DepositSettlement(
                deposit_id=deposit.id,
                lease_id=lease.id,
                deposit_amount=deposit.amount,
                deductions_amount=deposit.deductions_amount,
                refund_amount=refund,
                status=new_status,
            )
            return WorkflowResult.ok(f"Deposit settlement calculated: refund {refund:.2f}", out)

        return self._execute(op)

    def record_deposit_refund(
        self,
        deposit_id: int,
        *,
        refund_method: str,
        refunded_on: Optional[date] = None,
    ) -> WorkflowResult[SecurityDeposit]:
        def op() -> WorkflowResult[SecurityDeposit]:
            deposit = self._get(SecurityDeposit, deposit_id)
            if deposit is None:
                return WorkflowResult.fail("Security deposit record not found")
            new_status = (
                DepositStatus.PARTIALLY_REFUNDED if (deposit.deductions_amount or 0) > 0 else DepositStatus.REFUNDED
            )
            if not DEPOSIT_TRANSITIONS.is_valid_transition(deposit.status, new_status):
                return WorkflowResult.fail(DEPOSIT_TRANSITIONS.invalid_transition_reason(deposit.status, new_status))
            if not (refund_method or "").strip():
                return WorkflowResult.fail("Refund method is required")

            old = deposit.status
            deposit.refund_method = refund_method.strip()
            deposit.refunded_on = refunded_on or date.today()
            deposit.status = new_status
            self._touch(deposit)
            self._log_transition("SecurityDeposit", deposit.id, old, new_status, "RecordDepositRefund")
            return WorkflowResult.ok("Security deposit refund recorded", deposit)

        return self._execute(op)
