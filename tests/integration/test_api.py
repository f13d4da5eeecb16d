"""Integration tests for API endpoints"""

import uuid
import pytest
from fastapi.testclient import TestClient

READER = {"X-User-Id": "reader-1", "X-User-Role": "0"}
OTHER_READER = {"X-User-Id": "reader-2", "X-User-Role": "0"}
STAFF = {"X-User-Id": "staff-1", "X-User-Role": "1"}


def error_code(response) -> str:
    return response.json()["detail"]["error"]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "library-circulation"}


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "library_transition_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/health").headers["X-Request-ID"]


def test_identity_headers_are_required(client: TestClient):
    response = client.get("/v1/registrations")
    assert response.status_code == 401
    assert error_code(response) == "unauthenticated"

    response = client.get("/v1/registrations", headers={"X-User-Id": "someone", "X-User-Role": "7"})
    assert response.status_code == 403


def test_registration_flow(client: TestClient, make_book, book_quantity, notifier):
    """Reader registers, staff approves, the loan shows up as a borrow ticket"""
    book = make_book(quantity=1)

    response = client.post(
        "/v1/registrations",
        json={"book_id": str(book.id), "desired_borrow_date": "2024-02-01T08:00:00+07:00", "note": "Cho luận văn"},
        headers=READER,
    )
    assert response.status_code == 201
    registration = response.json()
    assert registration["status"] == "pending"
    assert registration["desired_borrow_date"].startswith("2024-02-01T01:00:00")

    response = client.put(
        f"/v1/registrations/{registration['id']}/process",
        json={"status": "approved", "note": "Nhận tại quầy"},
        headers=STAFF,
    )
    assert response.status_code == 200
    approved = response.json()
    assert approved["status"] == "approved"
    assert approved["borrow_ticket_id"] is not None
    assert book_quantity(book.id) == 0

    response = client.get(f"/v1/borrow-tickets/{approved['borrow_ticket_id']}", headers=READER)
    assert response.status_code == 200
    ticket = response.json()
    assert ticket["status"] == "approved"
    assert ticket["due_date"].startswith("2024-02-15T01:00:00")

    assert [e.type.value for e in notifier.events] == ["borrow_request", "borrow_request"]
    assert notifier.events[0].audience == "staff"
    assert notifier.events[1].user_id == "reader-1"


def test_registration_errors(client: TestClient, make_book):
    book = make_book(quantity=0)
    response = client.post("/v1/registrations", json={"book_id": str(book.id)}, headers=READER)
    assert response.status_code == 201
    registration_id = response.json()["id"]

    response = client.put(f"/v1/registrations/{registration_id}/process", json={"status": "approved"}, headers=READER)
    assert response.status_code == 403
    assert error_code(response) == "permission_denied"

    response = client.put(f"/v1/registrations/{registration_id}/process", json={"status": "approved"}, headers=STAFF)
    assert response.status_code == 409
    assert error_code(response) == "out_of_stock"

    response = client.put(f"/v1/registrations/{registration_id}/process", json={"status": "expired"}, headers=STAFF)
    assert response.status_code == 422

    response = client.put(f"/v1/registrations/{registration_id}/cancel", headers=OTHER_READER)
    assert response.status_code == 403

    response = client.put(f"/v1/registrations/{registration_id}/cancel", headers=READER)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = client.put(f"/v1/registrations/{registration_id}/cancel", headers=READER)
    assert response.status_code == 409
    assert error_code(response) == "invalid_state"

    response = client.get(f"/v1/registrations/{uuid.uuid4()}", headers=STAFF)
    assert response.status_code == 404

    response = client.get("/v1/registrations/not-a-uuid", headers=STAFF)
    assert response.status_code == 400
    assert error_code(response) == "invalid_id"

    response = client.post("/v1/registrations", json={"book_id": str(uuid.uuid4())}, headers=READER)
    assert response.status_code == 404


def test_registration_listing(client: TestClient, make_book):
    book = make_book(quantity=1)
    client.post("/v1/registrations", json={"book_id": str(book.id)}, headers=READER)
    client.post("/v1/registrations", json={"book_id": str(book.id)}, headers=OTHER_READER)

    mine = client.get("/v1/registrations", headers=READER).json()["data"]
    assert [r["user_id"] for r in mine] == ["reader-1"]
    assert len(client.get("/v1/registrations", headers=STAFF).json()["data"]) == 2
    assert client.get("/v1/registrations?status=approved", headers=STAFF).json()["data"] == []


def test_borrow_ticket_flow(client: TestClient, make_book, book_quantity):
    book = make_book(quantity=1, rental_price=40_000)

    response = client.post("/v1/borrow-tickets", json={"book_id": str(book.id)}, headers=READER)
    assert response.status_code == 201
    ticket = response.json()
    assert ticket["status"] == "pending"
    assert ticket["due_date"] is None

    response = client.post("/v1/borrow-tickets", json={"book_id": str(book.id)}, headers=READER)
    assert response.status_code == 409
    assert error_code(response) == "conflict"

    response = client.get(f"/v1/borrow-tickets/{ticket['id']}", headers=OTHER_READER)
    assert response.status_code == 403

    response = client.put(f"/v1/borrow-tickets/{ticket['id']}/process", json={"status": "approved"}, headers=STAFF)
    assert response.status_code == 200
    assert response.json()["due_date"] is not None
    assert book_quantity(book.id) == 0

    response = client.put(f"/v1/borrow-tickets/{ticket['id']}/process", json={"status": "rejected"}, headers=STAFF)
    assert response.status_code == 409
    assert error_code(response) == "invalid_state"

    response = client.post("/v1/borrow-tickets", json={"book_id": str(book.id)}, headers=OTHER_READER)
    assert response.status_code == 409
    assert error_code(response) == "out_of_stock"

    assert len(client.get("/v1/borrow-tickets", headers=READER).json()["data"]) == 1
    assert client.get("/v1/borrow-tickets", headers=OTHER_READER).json()["data"] == []


def _approved_ticket(client: TestClient, book_id) -> str:
    ticket = client.post("/v1/borrow-tickets", json={"book_id": str(book_id)}, headers=READER).json()
    client.put(f"/v1/borrow-tickets/{ticket['id']}/process", json={"status": "approved"}, headers=STAFF)
    return ticket["id"]


def test_return_and_fine_flow(client: TestClient, make_book, book_quantity, notifier):
    book = make_book(quantity=1, rental_price=100_000)
    ticket_id = _approved_ticket(client, book.id)

    response = client.post(
        "/v1/return-tickets",
        json={"borrow_ticket_id": ticket_id, "condition": "damaged"},
        headers=READER,
    )
    assert response.status_code == 403

    response = client.post(
        "/v1/return-tickets",
        json={"borrow_ticket_id": ticket_id, "condition": "damaged", "note": "Rách bìa"},
        headers=STAFF,
    )
    assert response.status_code == 201
    return_ticket = response.json()
    assert return_ticket["fine"] == {"amount": 50_000, "reason": "Sách bị hư hỏng", "paid": False}
    assert return_ticket["processed_by"] == "staff-1"
    assert book_quantity(book.id) == 1

    response = client.post("/v1/return-tickets", json={"borrow_ticket_id": ticket_id}, headers=STAFF)
    assert response.status_code == 409
    assert error_code(response) == "already_returned"

    response = client.get(f"/v1/return-tickets/{return_ticket['id']}", headers=READER)
    assert response.status_code == 200
    response = client.get(f"/v1/return-tickets/{return_ticket['id']}", headers=OTHER_READER)
    assert response.status_code == 403

    response = client.put(f"/v1/return-tickets/{return_ticket['id']}/fine", headers=STAFF)
    assert response.status_code == 200
    assert response.json()["fine"]["paid"] is True

    response = client.put(f"/v1/return-tickets/{return_ticket['id']}/fine", headers=STAFF)
    assert response.status_code == 409
    assert error_code(response) == "already_paid"

    assert len(notifier.of_type("fine_payment")) == 1
    assert len(notifier.of_type("return_ticket")) == 1


def test_fine_payment_without_fine(client: TestClient, make_book):
    book = make_book(quantity=1)
    ticket_id = _approved_ticket(client, book.id)
    return_ticket = client.post("/v1/return-tickets", json={"borrow_ticket_id": ticket_id}, headers=STAFF).json()

    response = client.put(f"/v1/return-tickets/{return_ticket['id']}/fine", headers=STAFF)
    assert response.status_code == 400
    assert error_code(response) == "no_fine"


def test_return_of_pending_ticket(client: TestClient, make_book):
    book = make_book(quantity=1)
    ticket = client.post("/v1/borrow-tickets", json={"book_id": str(book.id)}, headers=READER).json()

    response = client.post("/v1/return-tickets", json={"borrow_ticket_id": ticket["id"]}, headers=STAFF)
    assert response.status_code == 409
    assert error_code(response) == "invalid_state"

    response = client.post("/v1/return-tickets", json={"borrow_ticket_id": str(uuid.uuid4())}, headers=STAFF)
    assert response.status_code == 404


def test_return_listing_and_stats(client: TestClient, make_book, book_quantity):
    good_book = make_book(quantity=1, rental_price=20_000)
    lost_book = make_book(quantity=1, rental_price=30_000)
    client.post("/v1/return-tickets", json={"borrow_ticket_id": _approved_ticket(client, good_book.id)}, headers=STAFF)
    client.post(
        "/v1/return-tickets",
        json={"borrow_ticket_id": _approved_ticket(client, lost_book.id), "condition": "lost"},
        headers=STAFF,
    )
    assert book_quantity(lost_book.id) == 0

    response = client.get("/v1/return-tickets?condition=lost", headers=STAFF)
    assert response.status_code == 200
    assert [t["fine"]["amount"] for t in response.json()["data"]] == [60_000]
    assert client.get("/v1/return-tickets", headers=READER).status_code == 403

    response = client.get("/v1/return-tickets/stats?period=today", headers=STAFF)
    assert response.status_code == 200
    stats = response.json()
    assert stats["period"] == "today"
    assert stats["total_returns"] == 2
    assert stats["total_rental_income"] == 50_000
    assert stats["total_fines"] == 60_000
    assert stats["total_unpaid_fines"] == 60_000
    assert stats["total_revenue"] == 50_000
    assert stats["returns_by_condition"] == {"good": 1, "damaged": 0, "lost": 1}
    assert stats["fines_by_reason"] == {"Sách bị mất": 60_000}

    assert client.get("/v1/return-tickets/stats", headers=STAFF).json()["period"] == "all"
    assert client.get("/v1/return-tickets/stats?period=decade", headers=STAFF).status_code == 422
    assert client.get("/v1/return-tickets/stats", headers=READER).status_code == 403


@pytest.mark.parametrize("path", ["/v1/borrow-tickets/123", "/v1/return-tickets/abc/fine"])
def test_malformed_ids(client: TestClient, path: str):
    method = client.put if path.endswith("/fine") else client.get
    response = method(path, headers=STAFF)
    assert response.status_code == 400
    assert error_code(response) == "invalid_id"
