# backoffice/workflows/applications.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select

from ..domain.statuses import (
    ApplicationStatus,
    PropertyStatus,
    ProspectStatus,
    ScreeningResult,
)
from ..domain.transitions import APPLICATION_TRANSITIONS
from ..models import (
    ApplicationScreening,
    LeaseOffer,
    Property,
    ProspectiveTenant,
    RentalApplication,
    WorkflowAuditLog,
    _utcnow,
)
from .base import WorkflowService
from .result import WorkflowResult

ENTITY = "RentalApplication"


@dataclass(frozen=True)
class ApplicationWorkflowState:
    application: RentalApplication
    prospect: Optional[ProspectiveTenant]
    property: Optional[Property]
    screening: Optional[ApplicationScreening]
    lease_offer: Optional[LeaseOffer]
    valid_next_states: list[str] = field(default_factory=list)
    audit_history: list[WorkflowAuditLog] = field(default_factory=list)


class ApplicationWorkflow(WorkflowService):
    """Rental application lifecycle: submit, review, screen, decide."""

    def _transition(self, app: RentalApplication, new_status: ApplicationStatus, action: str, reason=None, metadata=None) -> None:
        old = app.status
        app.status = new_status
        self._touch(app)
        self._log_transition(ENTITY, app.id, old, new_status, action, reason, metadata)

    def _check_transition(self, app: RentalApplication, new_status: ApplicationStatus) -> Optional[str]:
        if APPLICATION_TRANSITIONS.is_valid_transition(app.status, new_status):
            return None
        return APPLICATION_TRANSITIONS.invalid_transition_reason(app.status, new_status)

    # -----------------------------
    # Submit
    # -----------------------------
    def submit_application(
        self,
        *,
        prospect_id: int,
        property_id: int,
        application_fee: float = 0.0,
        current_address: Optional[str] = None,
        employer_name: Optional[str] = None,
        monthly_income: Optional[float] = None,
    ) -> WorkflowResult[RentalApplication]:
        def op() -> WorkflowResult[RentalApplication]:
            prospect = self._get(ProspectiveTenant, prospect_id)
            if prospect is None:
                return WorkflowResult.fail("Prospective tenant not found")
            if prospect.status == ProspectStatus.CONVERTED_TO_TENANT:
                return WorkflowResult.fail("Prospect has already been converted to a tenant")

            prop = self._get(Property, property_id)
            if prop is None:
                return WorkflowResult.fail("Property not found")
            if prop.status == PropertyStatus.OCCUPIED:
                return WorkflowResult.fail("Property is currently occupied")

            existing = self.db.scalar(
                select(RentalApplication.id).where(
                    RentalApplication.org_id == self.org_id,
                    RentalApplication.prospect_id == prospect.id,
                    RentalApplication.is_deleted.is_(False),
                    RentalApplication.status.in_(list(ApplicationStatus.active())),
                )
            )
            if existing is not None:
                return WorkflowResult.fail("An active application already exists for this prospect")

            if application_fee < 0:
                return WorkflowResult.fail("Application fee cannot be negative")

            now = _utcnow()
            days = int(self._org_settings().application_expiration_days or 30)
            app = self._new(
                RentalApplication,
                prospect_id=prospect.id,
                property_id=prop.id,
                applied_on=now,
                status=ApplicationStatus.SUBMITTED,
                application_fee=round(float(application_fee), 2),
                application_fee_paid=False,
                current_address=current_address,
                employer_name=employer_name,
                monthly_income=monthly_income,
                expires_on=now + timedelta(days=days),
            )

            if prop.status == PropertyStatus.AVAILABLE:
                prop.status = PropertyStatus.APPLICATION_PENDING
                self._touch(prop)

            self.db.flush()

            self._set_prospect_status(prospect, ProspectStatus.APPLIED, "SubmitApplication")
            self._log_transition(
                ENTITY,
                app.id,
                None,
                ApplicationStatus.SUBMITTED,
                "SubmitApplication",
                metadata={"property_id": prop.id, "prospect_id": prospect.id},
            )
            return WorkflowResult.ok("Application submitted successfully", app)

        return self._execute(op)

    def record_application_fee(
        self,
        application_id: int,
        *,
        payment_method: str,
        paid_on: Optional[datetime] = None,
    ) -> WorkflowResult[RentalApplication]:
        def op() -> WorkflowResult[RentalApplication]:
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            if APPLICATION_TRANSITIONS.is_terminal(app.status):
                return WorkflowResult.fail(f"Application is {app.status.value}; fee cannot be recorded")
            if app.application_fee_paid:
                return WorkflowResult.fail("Application fee has already been paid")
            if not (payment_method or "").strip():
                return WorkflowResult.fail("Payment method is required")

            app.application_fee_paid = True
            app.application_fee_paid_on = paid_on or _utcnow()
            app.application_fee_payment_method = payment_method.strip()
            self._touch(app)
            return WorkflowResult.ok("Application fee recorded", app)

        return self._execute(op)

    # -----------------------------
    # Review / screening
    # -----------------------------
    def mark_under_review(self, application_id: int) -> WorkflowResult[RentalApplication]:
        def op() -> WorkflowResult[RentalApplication]:
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            err = self._check_transition(app, ApplicationStatus.UNDER_REVIEW)
            if err:
                return WorkflowResult.fail(err)

            app.decision_by = self.actor.performed_by
            self._transition(app, ApplicationStatus.UNDER_REVIEW, "MarkUnderReview")
            return WorkflowResult.ok("Application marked as under review", app)

        return self._execute(op)

    def initiate_screening(
        self,
        application_id: int,
        *,
        request_background_check: bool = True,
        request_credit_check: bool = True,
    ) -> WorkflowResult[ApplicationScreening]:
        def op() -> WorkflowResult[ApplicationScreening]:
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            if app.status != ApplicationStatus.UNDER_REVIEW:
                return WorkflowResult.fail(
                    f"Application must be Under Review to initiate screening (current: {app.status.value})"
                )
            if not app.application_fee_paid:
                return WorkflowResult.fail("Application fee must be paid before initiating screening")

            existing = self.db.scalar(
                select(ApplicationScreening.id).where(
                    ApplicationScreening.org_id == self.org_id,
                    ApplicationScreening.application_id == app.id,
                )
            )
            if existing is not None:
                return WorkflowResult.fail("Screening already exists for this application")

            prospect = self._get(ProspectiveTenant, app.prospect_id)
            if prospect is None:
                return WorkflowResult.fail("Prospective tenant not found")

            now = _utcnow()
            screening = self._new(
                ApplicationScreening,
                application_id=app.id,
                background_check_requested=bool(request_background_check),
                background_check_requested_on=now if request_background_check else None,
                credit_check_requested=bool(request_credit_check),
                credit_check_requested_on=now if request_credit_check else None,
                overall_result=ScreeningResult.PENDING,
            )

            self._transition(
                app,
                ApplicationStatus.SCREENING,
                "InitiateScreening",
                metadata={"background_check": bool(request_background_check), "credit_check": bool(request_credit_check)},
            )
            self._set_prospect_status(prospect, ProspectStatus.SCREENING, "InitiateScreening")

            self.db.flush()
            return WorkflowResult.ok("Screening initiated successfully", screening)

        return self._execute(op)

    def complete_screening(
        self,
        application_id: int,
        *,
        overall_result: ScreeningResult,
        background_check_passed: Optional[bool] = None,
        credit_check_passed: Optional[bool] = None,
        credit_score: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> WorkflowResult[ApplicationScreening]:
        def op() -> WorkflowResult[ApplicationScreening]:
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            if app.status != ApplicationStatus.SCREENING:
                return WorkflowResult.fail(f"Application is not in screening (current: {app.status.value})")

            result = ScreeningResult(overall_result)
            if result == ScreeningResult.PENDING:
                return WorkflowResult.fail("Overall screening result must be Passed, Failed or Conditional Pass")

            screening = self.db.scalar(
                select(ApplicationScreening).where(
                    ApplicationScreening.org_id == self.org_id,
                    ApplicationScreening.application_id == app.id,
                )
            )
            if screening is None:
                return WorkflowResult.fail("Screening not found for this application")
            if screening.overall_result != ScreeningResult.PENDING:
                return WorkflowResult.fail("Screening has already been completed")

            if screening.background_check_requested:
                screening.background_check_passed = background_check_passed
            if screening.credit_check_requested:
                screening.credit_check_passed = credit_check_passed
                screening.credit_score = credit_score
            screening.overall_result = result
            screening.result_notes = notes
            screening.completed_on = _utcnow()
            self._touch(screening)

            self._log_transition(
                "ApplicationScreening",
                screening.id,
                ScreeningResult.PENDING,
                result,
                "CompleteScreening",
                notes,
                metadata={"application_id": app.id, "credit_score": credit_score},
            )
            return WorkflowResult.ok(f"Screening completed: {result.value}", screening)

        return self._execute(op)

    # -----------------------------
    # Decisions
    # -----------------------------
    def approve_application(self, application_id: int) -> WorkflowResult[RentalApplication]:
        def op() -> WorkflowResult[RentalApplication]:
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            if app.status != ApplicationStatus.SCREENING:
                return WorkflowResult.fail(
                    f"Application must be in Screening to approve (current: {app.status.value})"
                )

            screening = self.db.scalar(
                select(ApplicationScreening).where(
                    ApplicationScreening.org_id == self.org_id,
                    ApplicationScreening.application_id == app.id,
                )
            )
            if screening is None or screening.overall_result not in (
                ScreeningResult.PASSED,
                ScreeningResult.CONDITIONAL_PASS,
            ):
                return WorkflowResult.fail("Screening must be passed before approval")

            prospect = self._get(ProspectiveTenant, app.prospect_id)

            app.decided_on = _utcnow()
            app.decision_by = self.actor.performed_by
            self._transition(app, ApplicationStatus.APPROVED, "ApproveApplication")
            if prospect is not None:
                self._set_prospect_status(prospect, ProspectStatus.APPROVED, "ApproveApplication")

            return WorkflowResult.ok("Application approved", app)

        return self._execute(op)

    def deny_application(self, application_id: int, *, reason: str) -> WorkflowResult[RentalApplication]:
        def op() -> WorkflowResult[RentalApplication]:
            if not (reason or "").strip():
                return WorkflowResult.fail("Denial reason is required")
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            err = self._check_transition(app, ApplicationStatus.DENIED)
            if err:
                return WorkflowResult.fail(err)

            self._deny(app, reason.strip(), "DenyApplication")
            self._rollback_property_status_if_needed(app.property_id)
            return WorkflowResult.ok("Application denied", app)

        return self._execute(op)

    def _deny(self, app: RentalApplication, reason: str, action: str) -> None:
        app.denial_reason = reason
        app.decided_on = _utcnow()
        app.decision_by = self.actor.performed_by
        self._transition(app, ApplicationStatus.DENIED, action, reason)

        prospect = self._get(ProspectiveTenant, app.prospect_id)
        if prospect is not None:
            self._set_prospect_status(prospect, ProspectStatus.DENIED, action, reason)

    def withdraw_application(self, application_id: int, *, reason: str) -> WorkflowResult[RentalApplication]:
        def op() -> WorkflowResult[RentalApplication]:
            if not (reason or "").strip():
                return WorkflowResult.fail("Withdrawal reason is required")
            app = self._get(RentalApplication, application_id)
            if app is None:
                return WorkflowResult.fail("Application not found")
            err = self._check_transition(app, ApplicationStatus.WITHDRAWN)
            if err:
                return WorkflowResult.fail(err)

            self._transition(app, ApplicationStatus.WITHDRAWN, "WithdrawApplication", reason.strip())
            prospect = self._get(ProspectiveTenant, app.prospect_id)
            if prospect is not None:
                self._set_prospect_status(prospect, ProspectStatus.WITHDRAWN, "WithdrawApplication", reason.strip())

            self._rollback_property_status_if_needed(app.property_id)
            return WorkflowResult.ok("Application withdrawn", app)

        return self._execute(op)

    # -----------------------------
    # Read model
    # -----------------------------
    def get_application_workflow_state(self, application_id: int) -> WorkflowResult[ApplicationWorkflowState]:
        app = self._get(RentalApplication, application_id)
        if app is None:
            return WorkflowResult.fail("Application not found")

        screening = self.db.scalar(
            select(ApplicationScreening).where(
                ApplicationScreening.org_id == self.org_id,
                ApplicationScreening.application_id == app.id,
            )
        )
        offer = self.db.scalar(
            select(LeaseOffer)
            .where(LeaseOffer.org_id == self.org_id, LeaseOffer.application_id == app.id)
            .order_by(LeaseOffer.id.desc())
        )
        state = ApplicationWorkflowState(
            application=app,
            prospect=self._get(ProspectiveTenant, app.prospect_id),
            property=self._get(Property, app.property_id),
            screening=screening,
            lease_offer=offer,
            valid_next_states=sorted(s.value for s in APPLICATION_TRANSITIONS.valid_next_states(app.status)),
            audit_history=self.get_audit_history(ENTITY, app.id),
        )
        return WorkflowResult.ok("", state)
