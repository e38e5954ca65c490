# backoffice/workflows/lease_offers.py
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select

from ..domain.statuses import (
    ApplicationStatus,
    DepositStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PropertyStatus,
    ProspectStatus,
)
from ..domain.transitions import APPLICATION_TRANSITIONS, LEASE_OFFER_TRANSITIONS
from ..models import (
    Lease,
    LeaseOffer,
    Property,
    ProspectiveTenant,
    RentalApplication,
    SecurityDeposit,
    Tenant,
    _utcnow,
)
from .applications import ApplicationWorkflow
from .result import WorkflowResult

ENTITY = "LeaseOffer"
COMPETING_DENIAL_REASON = "Property leased to another applicant"


class LeaseOfferWorkflow(ApplicationWorkflow):
    """Approved application -> offer -> lease (or decline / expiry)."""

    def _offer_transition(self, offer: LeaseOffer, new_status: LeaseOfferStatus, action: str, reason=None, metadata=None) -> None:
        old = offer.status
        offer.status = new_status
        self._touch(offer)
        self._log_transition(ENTITY, offer.id, old, new_status, action, reason, metadata)

    def generate_lease_offer(
        self,
        application_id: int,
        *,
        start_date: date,
        end_date: date,
        monthly_rent: float,
        security_deposit: float,
        terms: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> WorkflowResult[LeaseOffer]:
        def op() -> WorkflowResult[LeaseOffer]:
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            if app.status != ApplicationStatus.APPROVED:
                return WorkflowResult.fail(
                    f"Application must be Approved to generate a lease offer (current: {app.status.value})"
                )

            prop = self._get(Property, app.property_id)
            if prop is None:
                return WorkflowResult.fail("Property not found")
            if prop.status == PropertyStatus.OCCUPIED:
                return WorkflowResult.fail("Property is already occupied")

            errors: list[str] = []
            if start_date >= end_date:
                errors.append("Lease start date must be before end date")
            if start_date < date.today():
                errors.append("Lease start date cannot be in the past")
            if monthly_rent <= 0:
                errors.append("Monthly rent must be greater than zero")
            if security_deposit < 0:
                errors.append("Security deposit cannot be negative")
            if errors:
                return WorkflowResult.fail(*errors)

            prospect = self._get(ProspectiveTenant, app.prospect_id)
            if prospect is None:
                return WorkflowResult.fail("Prospective tenant not found")

            now = _utcnow()
            days = int(self._org_settings().lease_offer_expiration_days or 30)
            offer = self._new(
                LeaseOffer,
                application_id=app.id,
                property_id=prop.id,
                prospect_id=prospect.id,
                start_date=start_date,
                end_date=end_date,
                monthly_rent=round(float(monthly_rent), 2),
                security_deposit=round(float(security_deposit), 2),
                terms=terms,
                notes=notes,
                offered_on=now,
                expires_on=now + timedelta(days=days),
                status=LeaseOfferStatus.PENDING,
            )
            self.db.flush()

            self._transition(app, ApplicationStatus.LEASE_OFFERED, "GenerateLeaseOffer", metadata={"lease_offer_id": offer.id})
            self._set_prospect_status(prospect, ProspectStatus.LEASE_OFFERED, "GenerateLeaseOffer")
            prop.status = PropertyStatus.LEASE_PENDING
            self._touch(prop)

            competing = self.db.scalars(
                select(RentalApplication).where(
                    RentalApplication.org_id == self.org_id,
                    RentalApplication.property_id == prop.id,
                    RentalApplication.id != app.id,
                    RentalApplication.is_deleted.is_(False),
                    RentalApplication.status.in_(list(ApplicationStatus.active())),
                )
            ).all()
            for other in competing:
                if APPLICATION_TRANSITIONS.is_valid_transition(other.status, ApplicationStatus.DENIED):
                    self._deny(other, COMPETING_DENIAL_REASON, "DenyCompetingApplication")

            self._log_transition(
                ENTITY,
                offer.id,
                None,
                LeaseOfferStatus.PENDING,
                "GenerateLeaseOffer",
                metadata={"application_id": app.id, "monthly_rent": offer.monthly_rent},
            )
            return WorkflowResult.ok("Lease offer generated successfully", offer)

        return self._execute(op)

    def accept_lease_offer(
        self,
        offer_id: int,
        *,
        deposit_payment_method: str,
        deposit_payment_date: Optional[date] = None,
        deposit_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> WorkflowResult[Lease]:
        def op() -> WorkflowResult[Lease]:
            offer = self._get(LeaseOffer, offer_id)
            if offer is None:
                return WorkflowResult.fail("Lease offer not found")
            if offer.status != LeaseOfferStatus.PENDING:
                return WorkflowResult.fail(f"Lease offer is not pending (current: {offer.status.value})")
            if offer.expires_on < _utcnow():
                return WorkflowResult.fail("Lease offer has expired")
            if not (deposit_payment_method or "").strip():
                return WorkflowResult.fail("Deposit payment method is required")

            app = self._get(RentalApplication, offer.application_id)
            prospect = self._get(ProspectiveTenant, offer.prospect_id)
            prop = self._get(Property, offer.property_id)
            if app is None or prospect is None or prop is None:
                return WorkflowResult.fail("Lease offer references missing records")
            if prop.status == PropertyStatus.OCCUPIED:
                return WorkflowResult.fail("Property is already occupied")

            now = _utcnow()
            tenant = self._new(
                Tenant,
                prospect_id=prospect.id,
                first_name=prospect.first_name,
                last_name=prospect.last_name,
                email=prospect.email,
                phone=prospect.phone,
            )
            self.db.flush()

            lease = self._new(
                Lease,
                property_id=prop.id,
                tenant_id=tenant.id,
                lease_offer_id=offer.id,
                start_date=offer.start_date,
                end_date=offer.end_date,
                monthly_rent=offer.monthly_rent,
                security_deposit_amount=offer.security_deposit,
                terms=offer.terms,
                status=LeaseStatus.ACTIVE,
                signed_on=now,
                renewal_number=0,
            )
            self.db.flush()

            pooled = bool(self._org_settings().security_deposit_investment_enabled)
            self._new(
                SecurityDeposit,
                lease_id=lease.id,
                tenant_id=tenant.id,
                amount=offer.security_deposit,
                date_received=deposit_payment_date or date.today(),
                payment_method=deposit_payment_method.strip(),
                transaction_reference=deposit_reference,
                status=DepositStatus.HELD,
                in_investment_pool=pooled,
                pool_entry_date=offer.start_date if pooled else None,
            )

            offer.responded_on = now
            offer.response_notes = notes
            offer.converted_lease_id = lease.id
            self._offer_transition(offer, LeaseOfferStatus.ACCEPTED, "AcceptLeaseOffer", notes, {"lease_id": lease.id})

            self._transition(app, ApplicationStatus.LEASE_ACCEPTED, "AcceptLeaseOffer")
            self._set_prospect_status(prospect, ProspectStatus.CONVERTED_TO_TENANT, "AcceptLeaseOffer")

            prop.status = PropertyStatus.OCCUPIED
            self._touch(prop)

            self._log_transition("Lease", lease.id, None, LeaseStatus.ACTIVE, "AcceptLeaseOffer", metadata={"lease_offer_id": offer.id})
            return WorkflowResult.ok("Lease offer accepted; lease created", lease)

        return self._execute(op)

    def decline_lease_offer(self, offer_id: int, *, reason: str) -> WorkflowResult[LeaseOffer]:
        def op() -> WorkflowResult[LeaseOffer]:
            if not (reason or "").strip():
                return WorkflowResult.fail("Decline reason is required")
            offer = self._get(LeaseOffer, offer_id)
            if offer is None:
                return WorkflowResult.fail("Lease offer not found")
            if not LEASE_OFFER_TRANSITIONS.is_valid_transition(offer.status, LeaseOfferStatus.DECLINED):
                return WorkflowResult.fail(
                    LEASE_OFFER_TRANSITIONS.invalid_transition_reason(offer.status, LeaseOfferStatus.DECLINED)
                )

            offer.responded_on = _utcnow()
            offer.response_notes = reason.strip()
            self._offer_transition(offer, LeaseOfferStatus.DECLINED, "DeclineLeaseOffer", reason.strip())

            app = self._get(RentalApplication, offer.application_id)
            if app is not None and app.status == ApplicationStatus.LEASE_OFFERED:
                self._transition(app, ApplicationStatus.LEASE_DECLINED, "DeclineLeaseOffer", reason.strip())

            prospect = self._get(ProspectiveTenant, offer.prospect_id)
            if prospect is not None:
                self._set_prospect_status(prospect, ProspectStatus.LEASE_DECLINED, "DeclineLeaseOffer", reason.strip())

            self._rollback_property_status_if_needed(offer.property_id)
            return WorkflowResult.ok("Lease offer declined", offer)

        return self._execute(op)

    def expire_lease_offer(self, offer_id: int) -> WorkflowResult[LeaseOffer]:
        def op() -> WorkflowResult[LeaseOffer]:
            offer = self._get(LeaseOffer, offer_id)
            if offer is None:
                return WorkflowResult.fail("Lease offer not found")
            if offer.status != LeaseOfferStatus.PENDING:
                return WorkflowResult.fail(f"Lease offer is not pending (current: {offer.status.value})")
            if offer.expires_on >= _utcnow():
                return WorkflowResult.fail("Lease offer has not expired yet")

            reason = "Offer expired after 30 days"
            self._offer_transition(offer, LeaseOfferStatus.EXPIRED, "ExpireLeaseOffer", reason)

            app = self._get(RentalApplication, offer.application_id)
            if app is not None and app.status == ApplicationStatus.LEASE_OFFERED:
                self._transition(app, ApplicationStatus.EXPIRED, "ExpireLeaseOffer", reason)

            self._rollback_property_status_if_needed(offer.property_id)
            return WorkflowResult.ok("Lease offer expired", offer)

        return self._execute(op)

    def expire_stale_lease_offers(self) -> WorkflowResult[int]:
        """Expire every pending offer past its deadline; each expiry is audited."""

        def op() -> WorkflowResult[int]:
            ids = self.db.scalars(
                select(LeaseOffer.id).where(
                    LeaseOffer.org_id == self.org_id,
                    LeaseOffer.is_deleted.is_(False),
                    LeaseOffer.status == LeaseOfferStatus.PENDING,
                    LeaseOffer.expires_on < _utcnow(),
                )
            ).all()
            count = 0
            for oid in ids:
                res = self.expire_lease_offer(oid)
                if not res.success:
                    return WorkflowResult.fail(*res.errors)
                count += 1
            return WorkflowResult.ok(f"{count} lease offer(s) expired", count)

        return self._execute(op)
