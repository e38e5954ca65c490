# backoffice/workflows/tours.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..domain.statuses import ProspectStatus, TourStatus
from ..domain.transitions import TOUR_TRANSITIONS
from ..models import Property, ProspectiveTenant, Tour
from .base import WorkflowService
from .result import WorkflowResult

ENTITY = "Tour"


class TourWorkflow(WorkflowService):
    def _close(self, tour_id: int, new_status: TourStatus, action: str, reason: Optional[str] = None) -> WorkflowResult[Tour]:
        tour = self._get(Tour, tour_id)
        if tour is None:
            return WorkflowResult.fail("Tour not found")
        if not TOUR_TRANSITIONS.is_valid_transition(tour.status, new_status):
            return WorkflowResult.fail(TOUR_TRANSITIONS.invalid_transition_reason(tour.status, new_status))

        old = tour.status
        tour.status = new_status
        self._touch(tour)
        self._log_transition(ENTITY, tour.id, old, new_status, action, reason)
        return WorkflowResult.ok(f"Tour {new_status.value.lower()}", tour)

    def schedule_tour(
        self,
        *,
        prospect_id: int,
        property_id: int,
        scheduled_on: datetime,
        duration_minutes: int = 30,
    ) -> WorkflowResult[Tour]:
        def op() -> WorkflowResult[Tour]:
            prospect = self._get(ProspectiveTenant, prospect_id)
            if prospect is None:
                return WorkflowResult.fail("Prospective tenant not found")
            if prospect.status == ProspectStatus.CONVERTED_TO_TENANT:
                return WorkflowResult.fail("Prospect has already been converted to a tenant")
            prop = self._get(Property, property_id)
            if prop is None:
                return WorkflowResult.fail("Property not found")
            if duration_minutes <= 0:
                return WorkflowResult.fail("Tour duration must be positive")

            tour = self._new(
                Tour,
                prospect_id=prospect.id,
                property_id=prop.id,
                scheduled_on=scheduled_on,
                duration_minutes=int(duration_minutes),
                status=TourStatus.SCHEDULED,
                conducted_by=self.actor.performed_by,
            )
            self.db.flush()

            if prospect.status == ProspectStatus.LEAD:
                self._set_prospect_status(prospect, ProspectStatus.TOUR_SCHEDULED, "ScheduleTour")
            if prospect.interested_property_id is None:
                prospect.interested_property_id = prop.id

            self._log_transition(ENTITY, tour.id, None, TourStatus.SCHEDULED, "ScheduleTour")
            return WorkflowResult.ok("Tour scheduled", tour)

        return self._execute(op)

    def complete_tour(
        self,
        tour_id: int,
        *,
        feedback: Optional[str] = None,
        interest_level: Optional[str] = None,
    ) -> WorkflowResult[Tour]:
        def op() -> WorkflowResult[Tour]:
            res = self._close(tour_id, TourStatus.COMPLETED, "CompleteTour")
            if res.success:
                res.data.feedback = feedback
                res.data.interest_level = interest_level
            return res

        return self._execute(op)

    def cancel_tour(self, tour_id: int, *, reason: str) -> WorkflowResult[Tour]:
        def op() -> WorkflowResult[Tour]:
            if not (reason or "").strip():
                return WorkflowResult.fail("Cancellation reason is required")
            return self._close(tour_id, TourStatus.CANCELLED, "CancelTour", reason.strip())

        return self._execute(op)

    def mark_no_show(self, tour_id: int) -> WorkflowResult[Tour]:
        return self._execute(lambda: self._close(tour_id, TourStatus.NO_SHOW, "MarkNoShow"))
