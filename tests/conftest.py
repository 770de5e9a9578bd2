"""
Shared fixtures for the Abode test suite.

Everything runs against the in-memory collection store; the SQLite store
gets its own tests on a temporary file.
"""

from datetime import date
from decimal import Decimal

import pytest

from abode.audit import AuditLogger
from abode.auth import InMemorySessionStore
from abode.models import Payment, PaymentStatus, Property, Tenant
from abode.orchestrator import AbodeApp
from abode.services.storage import InMemoryCollectionStore
from abode.validation import CascadeCoordinator


@pytest.fixture
def store():
    return InMemoryCollectionStore()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def coordinator(store, audit_logger):
    return CascadeCoordinator(store, audit_logger)


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def app(store, session_store, audit_logger):
    return AbodeApp(store, session_store, audit_logger, min_password_length=6)


@pytest.fixture
def make_property():
    def _make(**overrides) -> Property:
        fields = {"name": "Maple Court", "address": "12 Maple St", "floor_count": 2, "room_count": 4}
        fields.update(overrides)
        return Property(**fields)
    return _make


@pytest.fixture
def make_tenant():
    def _make(property_id: str, **overrides) -> Tenant:
        fields = {
            "name": "Alice Smith",
            "rent": Decimal("1000"),
            "lease_start": date(2024, 1, 1),
            "lease_end": date(2024, 12, 31),
            "property_id": property_id,
        }
        fields.update(overrides)
        return Tenant(**fields)
    return _make


@pytest.fixture
def make_payment():
    def _make(tenant_id: str, **overrides) -> Payment:
        fields = {
            "tenant_id": tenant_id,
            "amount": Decimal("1000"),
            "payment_date": date(2024, 3, 5),
            "month": "March",
            "status": PaymentStatus.PAID,
        }
        fields.update(overrides)
        return Payment(**fields)
    return _make
