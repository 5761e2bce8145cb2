"""Unit tests for the HTTP function endpoints."""

import pytest
from fastapi.testclient import TestClient

from app.api.routes import get_auth, get_store
from app.main import app
from tests.fakes import USER_TOKEN

AUTH = {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture
def client(store, auth):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_auth] = lambda: auth
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestMintPaymentToken:
    """Test cases for POST /mint-payment-token."""

    def test_success(self, client):
        response = client.post(
            "/mint-payment-token",
            json={"invoiceId": "inv-1"},
            headers={**AUTH, "Origin": "https://dash.test"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["url"].startswith("https://dash.test/pay/inv-1?token=")
        assert body["expiresAt"].endswith("Z")
        assert response.headers["access-control-allow-origin"] == "*"

    def test_missing_authorization(self, client):
        response = client.post("/mint-payment-token", json={"invoiceId": "inv-1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing authorization header"}

    def test_invalid_credential(self, client):
        response = client.post(
            "/mint-payment-token", json={"invoiceId": "inv-1"}, headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Unauthorized"}

    def test_missing_invoice_id(self, client):
        response = client.post("/mint-payment-token", json={}, headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"error": "invoiceId is required"}

    def test_unknown_invoice(self, client):
        response = client.post("/mint-payment-token", json={"invoiceId": "inv-404"}, headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"error": "Invoice not found"}

    def test_malformed_body(self, client):
        response = client.post(
            "/mint-payment-token",
            content="not json",
            headers={**AUTH, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_preflight(self, client):
        response = client.options(
            "/mint-payment-token",
            headers={"Origin": "https://dash.test", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "GET, POST, PUT, DELETE, OPTIONS"
        assert "Authorization" in response.headers["access-control-allow-headers"]


class TestInvoiceMarkPaid:
    """Test cases for POST /invoice-mark-paid."""

    def test_partial_payment(self, client, store):
        response = client.post(
            "/invoice-mark-paid",
            json={"invoiceId": "inv-1", "amount": 40, "paymentMethod": "check", "paymentDate": "2024-01-15"},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json() == {
            "invoiceId": "inv-1",
            "paidAmount": 40.0,
            "status": "partial",
            "remainingAmount": 60.0,
        }
        assert store.invoices["inv-1"]["status"] == "partial"
        assert store.payments[0]["payment_method"] == "check"
        assert store.audit_logs[0]["action"] == "manual_payment"

    @pytest.mark.parametrize("amount", [0, -5, "abc", None])
    def test_rejects_invalid_amount(self, client, store, amount):
        response = client.post(
            "/invoice-mark-paid", json={"invoiceId": "inv-1", "amount": amount}, headers=AUTH
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Enter a valid payment amount"}
        assert store.payments == []

    def test_rejects_overpayment(self, client, store):
        response = client.post(
            "/invoice-mark-paid", json={"invoiceId": "inv-1", "amount": 150}, headers=AUTH
        )

        assert response.status_code == 400
        assert "remaining balance" in response.json()["error"]
        assert store.payments == []


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
