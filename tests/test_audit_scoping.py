# tests/test_audit_scoping.py
from __future__ import annotations

from backoffice.domain.audit import audit_metadata, get_audit_history, log_transition
from backoffice.domain.statuses import ApplicationStatus
from backoffice.models import _utcnow
from backoffice.workflows.base import Actor


def test_history_is_scoped_to_org_and_ordered(db, actor, other_actor):
    now = _utcnow()
    log_transition(
        db,
        org_id=actor.org_id,
        performed_by=actor.performed_by,
        entity_type="RentalApplication",
        entity_id=7,
        from_status=ApplicationStatus.SUBMITTED,
        to_status=ApplicationStatus.UNDER_REVIEW,
        action="MarkUnderReview",
        performed_on=now,
    )
    log_transition(
        db,
        org_id=actor.org_id,
        performed_by=actor.performed_by,
        entity_type="RentalApplication",
        entity_id=7,
        from_status=None,
        to_status=ApplicationStatus.SUBMITTED,
        action="SubmitApplication",
        metadata={"property_id": 3},
        performed_on=now.replace(year=now.year - 1),
    )
    # same entity id in another org
    log_transition(
        db,
        org_id=other_actor.org_id,
        performed_by=other_actor.performed_by,
        entity_type="RentalApplication",
        entity_id=7,
        from_status=None,
        to_status=ApplicationStatus.SUBMITTED,
        action="SubmitApplication",
    )
    db.commit()

    rows = get_audit_history(db, org_id=actor.org_id, entity_type="RentalApplication", entity_id=7)
    assert [r.action for r in rows] == ["SubmitApplication", "MarkUnderReview"]
    assert all(r.org_id == actor.org_id for r in rows)
    assert rows[0].from_status is None
    assert rows[1].from_status == "Submitted"
    assert rows[1].to_status == "Under Review"
    assert audit_metadata(rows[0]) == {"property_id": 3}
    assert audit_metadata(rows[1]) == {}

    other = get_audit_history(db, org_id=other_actor.org_id, entity_type="RentalApplication", entity_id=7)
    assert len(other) == 1


def test_system_actor_is_recorded_as_system(db, actor):
    assert Actor(org_id=actor.org_id).performed_by == "system"
    assert actor.performed_by == str(actor.user_id)
