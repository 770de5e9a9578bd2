"""
Demo data for a fresh install.

Each collection is seeded only if it is empty, so running this against a
database in use never adds or overwrites anything the user created.
Records are written straight to the store; the demo set is consistent by
construction.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import structlog

from abode.models.entities import (
    CollectionName,
    ContractStatus,
    Payment,
    PaymentStatus,
    Property,
    StoredRecord,
    Tenant,
    Todo,
    User,
    utc_now,
)
from abode.services.storage import CollectionStoreInterface


logger = structlog.get_logger("abode.seed")

DEMO_PROPERTY_ID = "prop-001"
DEMO_TENANT_ID = "1"


def _previous_month_fifth(today: date) -> date:
    first_of_month = today.replace(day=1)
    return (first_of_month - timedelta(days=1)).replace(day=5)


def demo_records(today: Optional[date] = None) -> dict[CollectionName, list[StoredRecord]]:
    """The demo entities, keyed by collection."""
    today = today or date.today()
    paid_on = _previous_month_fifth(today)

    return {
        CollectionName.USERS: [
            User(username="testuser", password="password123", name="Test User"),
        ],
        CollectionName.PROPERTIES: [
            Property(
                id=DEMO_PROPERTY_ID,
                name="Ocean View Condo",
                address="456 Beach Rd, Coast City",
                floor_count=1,
                room_count=1,
            ),
        ],
        CollectionName.TENANTS: [
            Tenant(
                id=DEMO_TENANT_ID,
                name="Diana Prince",
                rent=Decimal("950"),
                lease_start=date(2023, 2, 1),
                lease_end=date(2024, 1, 31),
                contract_status=ContractStatus.CONTRACT_EXPIRED,
                property_id=DEMO_PROPERTY_ID,
                floor=1,
                room="Room 1",
            ),
        ],
        CollectionName.PAYMENTS: [
            Payment(
                tenant_id=DEMO_TENANT_ID,
                amount=Decimal("1200"),
                payment_date=paid_on,
                month=calendar.month_name[paid_on.month],
                status=PaymentStatus.PAID,
            ),
        ],
        CollectionName.TODOS: [
            Todo(
                text="Prepare new property for new tenants.",
                created_at=utc_now() - timedelta(days=2),
            ),
        ],
    }


async def seed_if_empty(
    store: CollectionStoreInterface,
    today: Optional[date] = None,
) -> list[str]:
    """
    Fill every empty collection with its demo records.

    Returns:
        Names of the collections that were seeded
    """
    seeded = []
    for collection, entities in demo_records(today).items():
        if await store.get(collection.value):
            continue
        await store.set(collection.value, [entity.to_record() for entity in entities])
        seeded.append(collection.value)

    if seeded:
        logger.info("demo_data_seeded", collections=seeded)
    return seeded
