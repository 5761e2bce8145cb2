"""Shared fixtures for unit and integration tests."""

import pytest

from app.client.events import TOAST, EventEmitter
from app.models.invoice import AuthSession, AuthUser
from app.store.abstractions import Row
from tests.fakes import USER_TOKEN, InMemoryInvoiceStore, LocalFunctions, StaticAuth


@pytest.fixture
def owner() -> AuthUser:
    return AuthUser(id="user-1", email="owner@example.com", display_name="Owner")


@pytest.fixture
def auth(owner) -> StaticAuth:
    return StaticAuth({USER_TOKEN: owner})


@pytest.fixture
def invoice_row() -> Row:
    return {
        "id": "inv-1",
        "invoice_number": "INV-001",
        "customer_id": "cust-1",
        "customer_name": "Acme Ltd",
        "amount": 100,
        "paid_amount": 0,
        "status": "sent",
        "issue_date": "2024-01-01",
        "due_date": "2024-01-31",
        "created_at": "2024-01-01T09:00:00+00:00",
        "items": '[{"description": "Consulting", "quantity": 1, "rate": 100}]',
        "notes": "Thanks for your business",
        "allow_partial": True,
        "minimum_amount": 20,
    }


@pytest.fixture
def store(invoice_row) -> InMemoryInvoiceStore:
    return InMemoryInvoiceStore([invoice_row])


@pytest.fixture
def session(owner) -> AuthSession:
    return AuthSession(access_token=USER_TOKEN, user=owner)


@pytest.fixture
def functions(store, auth, session) -> LocalFunctions:
    return LocalFunctions(store, auth, session)


@pytest.fixture
def events() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def toasts(events) -> list:
    received: list = []
    events.subscribe(TOAST, received.append)
    return received
