# tests/test_api.py
from __future__ import annotations

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from backoffice.main import create_app


def _headers(org_slug: str = "org-a", role: str = "owner", email: str = "manager@demo.local") -> dict[str, str]:
    return {
        "X-Org-Slug": org_slug,
        "X-User-Email": email,
        "X-User-Role": role,
    }


@pytest.fixture
def client():
    return TestClient(create_app())


def _mk_property(client, org_slug: str = "org-a") -> int:
    r = client.post(
        "/api/properties",
        json={"address": "77 Grand River Ave", "city": "Detroit", "zip": "48226", "bedrooms": 2, "monthly_rent": 1350},
        headers=_headers(org_slug),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "Available"
    return r.json()["id"]


def _mk_prospect(client, org_slug: str = "org-a", first_name: str = "Riley") -> int:
    r = client.post(
        "/api/prospects",
        json={"first_name": first_name, "last_name": "Mover", "email": f"{first_name.lower()}@example.com"},
        headers=_headers(org_slug),
    )
    assert r.status_code == 200, r.text
    return r.json()["id"]


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers.get("X-Request-ID")


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"


def test_missing_org_header_is_401(client):
    r = client.get("/api/properties", headers={"X-User-Email": "a@b.c"})
    assert r.status_code == 401


def test_cross_org_property_access_is_404(client):
    pid_a = _mk_property(client, "org-a")
    pid_b = _mk_property(client, "org-b")

    assert client.get(f"/api/properties/{pid_a}", headers=_headers("org-a")).status_code == 200
    assert client.get(f"/api/properties/{pid_b}", headers=_headers("org-a")).status_code == 404


def test_analyst_cannot_run_workflows(client):
    r = client.post(
        "/api/properties",
        json={"address": "1 A St", "city": "Detroit", "zip": "48201"},
        headers=_headers("org-a", role="analyst", email="analyst@demo.local"),
    )
    assert r.status_code == 403


def test_failed_operation_returns_envelope(client):
    pid = _mk_property(client)
    prid = _mk_prospect(client)
    r = client.post("/api/applications", json={"prospect_id": prid, "property_id": pid}, headers=_headers())
    app_id = r.json()["data"]["id"]

    r = client.post(f"/api/applications/{app_id}/approve", headers=_headers())

    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["success"] is False
    assert detail["errors"] == ["Application must be in Screening to approve (current: Submitted)"]


def test_application_to_lease_over_http(client):
    pid = _mk_property(client)
    prid = _mk_prospect(client)
    h = _headers()

    r = client.post(
        "/api/applications",
        json={"prospect_id": prid, "property_id": pid, "application_fee": 40, "monthly_income": 5200},
        headers=h,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["data"]["status"] == "Submitted"
    app_id = body["data"]["id"]

    assert client.post(f"/api/applications/{app_id}/fee", json={"payment_method": "Card"}, headers=h).status_code == 200
    assert client.post(f"/api/applications/{app_id}/review", headers=h).status_code == 200
    r = client.post(f"/api/applications/{app_id}/screening", json={}, headers=h)
    assert r.status_code == 200, r.text
    r = client.post(
        f"/api/applications/{app_id}/screening/complete",
        json={"overall_result": "Passed", "background_check_passed": True, "credit_check_passed": True, "credit_score": 700},
        headers=h,
    )
    assert r.json()["data"]["overall_result"] == "Passed"
    assert client.post(f"/api/applications/{app_id}/approve", headers=h).json()["data"]["status"] == "Approved"

    start = date.today() + timedelta(days=10)
    r = client.post(
        f"/api/applications/{app_id}/lease-offer",
        json={
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=364)).isoformat(),
            "monthly_rent": 1350,
            "security_deposit": 1350,
        },
        headers=h,
    )
    assert r.status_code == 200, r.text
    offer_id = r.json()["data"]["id"]

    r = client.post(f"/api/lease-offers/{offer_id}/accept", json={"deposit_payment_method": "ACH"}, headers=h)
    assert r.status_code == 200, r.text
    lease = r.json()["data"]
    assert lease["status"] == "Active"
    assert lease["start_date"] == start.isoformat()

    r = client.get(f"/api/leases/{lease['id']}/deposit", headers=h)
    assert r.status_code == 200
    assert r.json()["status"] == "Held"
    assert r.json()["in_investment_pool"] is True

    assert client.get(f"/api/properties/{pid}", headers=h).json()["status"] == "Occupied"

    r = client.get(f"/api/applications/{app_id}", headers=h)
    assert r.status_code == 200
    state = r.json()
    assert state["application"]["status"] == "Lease Accepted"
    assert state["valid_next_states"] == []
    assert [x["to_status"] for x in state["audit_history"]] == [
        "Submitted",
        "Under Review",
        "Screening",
        "Approved",
        "Lease Offered",
        "Lease Accepted",
    ]

    r = client.get(f"/api/audit/LeaseOffer/{offer_id}", headers=h)
    rows = r.json()
    assert [x["action"] for x in rows] == ["GenerateLeaseOffer", "AcceptLeaseOffer"]
    assert rows[1]["metadata"] == {"lease_id": lease["id"]}

    # other org sees nothing
    assert client.get(f"/api/applications/{app_id}", headers=_headers("org-b")).status_code == 404
    assert client.get(f"/api/audit/LeaseOffer/{offer_id}", headers=_headers("org-b")).json() == []


def test_tour_scheduling_moves_lead(client):
    pid = _mk_property(client)
    prid = _mk_prospect(client)
    h = _headers()

    r = client.post(
        f"/api/prospects/{prid}/tours",
        json={"property_id": pid, "scheduled_on": "2030-05-01T15:00:00"},
        headers=h,
    )
    assert r.status_code == 200, r.text
    tour_id = r.json()["data"]["id"]
    assert client.get(f"/api/prospects/{prid}", headers=h).json()["status"] == "Tour Scheduled"

    r = client.post(f"/api/prospects/tours/{tour_id}/complete", json={"interest_level": "High"}, headers=h)
    assert r.json()["data"]["status"] == "Completed"

    r = client.post(f"/api/prospects/tours/{tour_id}/no-show", headers=h)
    assert r.status_code == 400
    assert r.json()["detail"]["message"] == "Cannot transition from Completed to No Show. Completed is a terminal status"


def test_investment_pool_requires_owner(client):
    r = client.post(
        "/api/investment-pools/2025/calculate",
        headers=_headers("org-a", role="operator", email="op@demo.local"),
    )
    assert r.status_code == 403

    r = client.post("/api/investment-pools/2025", headers=_headers())
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "Open"


def test_blank_request_id_is_replaced(client):
    r = client.get("/api/health", headers={"X-Request-ID": "   "})
    assert len(r.headers["X-Request-ID"]) == 36
