# backoffice/workflows/base.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import get_audit_history, log_transition
from ..domain.statuses import (
    ApplicationStatus,
    DividendPaymentMethod,
    LeaseOfferStatus,
    PropertyStatus,
    ProspectStatus,
    status_value,
)
from ..models import (
    LeaseOffer,
    OrganizationSettings,
    Property,
    ProspectiveTenant,
    RentalApplication,
    WorkflowAuditLog,
    _utcnow,
)
from .executor import run_workflow
from .result import WorkflowResult

log = logging.getLogger("backoffice.workflow")

T = TypeVar("T")
M = TypeVar("M")


@dataclass(frozen=True)
class Actor:
    """Who is acting, and inside which organization."""

    org_id: int
    user_id: Optional[int] = None

    @property
    def performed_by(self) -> str:
        return str(self.user_id) if self.user_id is not None else "system"

    @classmethod
    def from_principal(cls, p) -> "Actor":
        return cls(org_id=int(p.org_id), user_id=int(p.user_id))


def get_org_settings(db: Session, *, org_id: int) -> OrganizationSettings:
    """Stored settings row, or an unsaved one filled from app defaults."""
    row = db.scalar(select(OrganizationSettings).where(OrganizationSettings.org_id == org_id))
    if row is not None:
        return row
    return OrganizationSettings(
        org_id=org_id,
        application_expiration_days=settings.application_expiration_days,
        lease_offer_expiration_days=settings.lease_offer_expiration_days,
        security_deposit_investment_enabled=True,
        organization_share_percentage=settings.organization_share_percentage,
        allow_tenant_dividend_choice=True,
        default_dividend_payment_method=DividendPaymentMethod(settings.default_dividend_payment_method),
        late_fee_enabled=True,
        late_fee_auto_apply=True,
        late_fee_grace_period_days=3,
        late_fee_percentage=0.05,
        max_late_fee_amount=50.0,
    )


class WorkflowService:
    """
    Shared plumbing for the feature workflows.

    Holds the session and the acting user; every lookup is scoped to the
    actor's org and ignores soft-deleted rows.
    """

    def __init__(self, db: Session, actor: Actor):
        self.db = db
        self.actor = actor

    @property
    def org_id(self) -> int:
        return self.actor.org_id

    # -----------------------------
    # Unit of work + audit
    # -----------------------------
    def _execute(self, operation: Callable[[], WorkflowResult[T]]) -> WorkflowResult[T]:
        return run_workflow(self.db, operation)

    def _log_transition(
        self,
        entity_type: str,
        entity_id: int,
        from_status,
        to_status,
        action: str,
        reason: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> WorkflowAuditLog:
        row = log_transition(
            self.db,
            org_id=self.org_id,
            performed_by=self.actor.performed_by,
            entity_type=entity_type,
            entity_id=entity_id,
            from_status=from_status,
            to_status=to_status,
            action=action,
            reason=reason,
            metadata=metadata,
        )
        log.info(
            "workflow transition %s",
            action,
            extra={
                "org_id": self.org_id,
                "user_id": self.actor.user_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "from_status": status_value(from_status),
                "to_status": status_value(to_status),
            },
        )
        return row

    def get_audit_history(self, entity_type: str, entity_id: int) -> list[WorkflowAuditLog]:
        return get_audit_history(self.db, org_id=self.org_id, entity_type=entity_type, entity_id=entity_id)

    # -----------------------------
    # Lookups
    # -----------------------------
    def _get(self, model: type[M], entity_id: int) -> Optional[M]:
        return self.db.scalar(
            select(model).where(
                model.id == int(entity_id),  # type: ignore[attr-defined]
                model.org_id == self.org_id,  # type: ignore[attr-defined]
                model.is_deleted.is_(False),  # type: ignore[attr-defined]
            )
        )

    def _org_settings(self) -> OrganizationSettings:
        return get_org_settings(self.db, org_id=self.org_id)

    def _touch(self, row) -> None:
        row.modified_by = self.actor.performed_by
        row.modified_at = _utcnow()

    def _new(self, model: type[M], **values) -> M:
        row = model(org_id=self.org_id, created_by=self.actor.performed_by, created_at=_utcnow(), **values)
        self.db.add(row)
        return row

    # -----------------------------
    # Shared transitions
    # -----------------------------
    def _set_prospect_status(self, prospect: ProspectiveTenant, new_status: ProspectStatus, action: str, reason=None) -> None:
        old = prospect.status
        if old == new_status:
            return
        prospect.status = new_status
        self._touch(prospect)
        self._log_transition("ProspectiveTenant", prospect.id, old, new_status, action, reason)

    def _rollback_property_status_if_needed(self, property_id: int) -> None:
        """
        Put a property back on the market once nothing claims it.

        Only ApplicationPending / LeasePending are rolled back, and only when no
        active application and no pending lease offer remain.
        """
        prop = self._get(Property, property_id)
        if prop is None:
            return
        if prop.status not in (PropertyStatus.APPLICATION_PENDING, PropertyStatus.LEASE_PENDING):
            return

        # staged status changes must be visible to the checks below
        self.db.flush()

        active_app = self.db.scalar(
            select(RentalApplication.id).where(
                RentalApplication.org_id == self.org_id,
                RentalApplication.property_id == prop.id,
                RentalApplication.is_deleted.is_(False),
                RentalApplication.status.in_(list(ApplicationStatus.active())),
            )
        )
        pending_offer = self.db.scalar(
            select(LeaseOffer.id).where(
                LeaseOffer.org_id == self.org_id,
                LeaseOffer.property_id == prop.id,
                LeaseOffer.is_deleted.is_(False),
                LeaseOffer.status == LeaseOfferStatus.PENDING,
            )
        )
        if active_app is not None or pending_offer is not None:
            return

        prop.status = PropertyStatus.AVAILABLE
        self._touch(prop)
