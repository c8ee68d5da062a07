"""Tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from backend.dependencies import get_engine
from backend.main import app


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class TestBillingFlow:

    def test_health(self, client) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_reading_charges_bill_and_payment(self, client) -> None:
        reading = client.post("/api/meter-readings", json={
            "room_id": "room-201", "type": "electric", "current_reading": "1050", "reading_date": "2026-03-01",
        })
        assert reading.status_code == 201
        assert reading.json()["alerts"] == []

        charges = client.get("/api/bills/charges", params={"room_id": "room-201", "month": 3, "year": 2026})
        assert charges.status_code == 200
        assert charges.json()["total_amount"] == "3800.00"

        created = client.post("/api/bills", json={"room_id": "room-201", "month": 3, "year": 2026})
        assert created.status_code == 201
        bill = created.json()
        assert bill["status"] == "pending"
        assert bill["due_date"] == "2026-03-05"

        paid = client.post(f"/api/bills/{bill['id']}/payments", json={
            "id": "p1", "amount": "3800", "method": "promptpay", "reference": "PP-1",
        })
        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"

        payments = client.get(f"/api/bills/{bill['id']}/payments")
        assert [p["id"] for p in payments.json()] == ["p1"]

    def test_overdue_and_late_fee(self, client, make_bill) -> None:
        bill_id = make_bill(total="1000")

        overdue = client.post(f"/api/bills/{bill_id}/overdue", json={"now": "2026-03-07T08:00:00"})
        assert overdue.json()["status"] == "overdue"

        fee = client.get(f"/api/bills/{bill_id}/late-fee", params={"on": "2026-03-10"})
        assert fee.json()["late_fee"] == "100"

    def test_reports(self, client, make_bill) -> None:
        make_bill(total="1000")
        client.post("/api/meter-readings", json={
            "room_id": "room-201", "current_reading": "1020", "reading_date": "2026-03-01",
        })

        summary = client.get("/api/reports/summary", params={"dormitory_id": "dorm-1"})
        assert summary.json()["pending_bills"] == 1

        usage = client.get("/api/reports/utility-usage", params={"dormitory_id": "dorm-1", "year": 2026})
        assert usage.json()["rooms"] == [{"room": "201", "months": {
            str(m): (20.0 if m == 3 else 0.0) for m in range(1, 13)
        }}]


class TestErrorResponses:

    def test_non_monotonic_reading(self, client) -> None:
        response = client.post("/api/meter-readings", json={
            "room_id": "room-201", "type": "electric", "current_reading": "900", "reading_date": "2026-03-01",
        })
        assert response.status_code == 422
        assert response.json()["error_code"] == "NonMonotonicReading"

    def test_duplicate_bill(self, client) -> None:
        client.post("/api/bills", json={"room_id": "room-201", "month": 3, "year": 2026})
        response = client.post("/api/bills", json={"room_id": "room-201", "month": 3, "year": 2026})

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "DuplicateBillPeriod"
        assert body["details"]["room_id"] == "room-201"

    def test_overpayment(self, client, make_bill) -> None:
        bill_id = make_bill(total="1000")
        response = client.post(f"/api/bills/{bill_id}/payments", json={"amount": "1200"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "OverpaymentRejected"

    def test_missing_reference(self, client, make_bill) -> None:
        bill_id = make_bill()
        response = client.post(f"/api/bills/{bill_id}/payments", json={"amount": "100", "method": "bank_transfer"})
        assert response.json()["error_code"] == "MissingReference"

    def test_unknown_bill(self, client) -> None:
        response = client.get("/api/bills/nope")
        assert response.status_code == 404
        assert response.json()["error_code"] == "DocumentNotFound"

    def test_configuration_error(self, client, store) -> None:
        store.update("rooms", "room-201", {"room_type_id": "ghost"})
        response = client.get("/api/bills/charges", params={"room_id": "room-201", "month": 3, "year": 2026})

        assert response.status_code == 424
        assert response.json()["error_code"] == "UnknownRoomType"
