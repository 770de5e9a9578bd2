"""Tests for cross-entity rules enforced by the cascade coordinator."""

from decimal import Decimal

import pytest

from abode.models import AuditEventType, LatestPaymentStatus
from abode.services.storage import (
    PaymentRepository,
    PropertyArchivedError,
    PropertyRepository,
    TenantArchivedError,
    TenantRepository,
)
from abode.status import StatusEngine
from abode.validation import EntityValidationError


@pytest.fixture
def properties(store, audit_logger):
    return PropertyRepository(store, audit_logger)


@pytest.fixture
def tenants(store, coordinator, audit_logger):
    return TenantRepository(store, coordinator, audit_logger)


@pytest.fixture
def payments(store, coordinator, audit_logger):
    return PaymentRepository(store, coordinator, audit_logger)


class TestTenantDeletion:
    """Tests for the tenant -> payments hard cascade."""

    @pytest.mark.asyncio
    async def test_delete_tenant_removes_payments(
        self, store, properties, tenants, payments, make_property, make_tenant, make_payment,
    ):
        """Test deleting a tenant deletes exactly its payments."""
        prop = await properties.add(make_property())
        doomed = await tenants.add(make_tenant(prop.id))
        other = await tenants.add(make_tenant(prop.id, name="Bob"))
        for day in (1, 2, 3):
            await payments.add(make_payment(doomed.id, amount=Decimal(day)))
        kept = await payments.add(make_payment(other.id))

        assert await tenants.delete(doomed.id) is True
        assert await tenants.list() == [other]
        assert await payments.list() == [kept]

    @pytest.mark.asyncio
    async def test_confirm_receives_payment_count(
        self, properties, tenants, payments, make_property, make_tenant, make_payment,
    ):
        """Test the confirmation callback is told how many payments go."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await payments.add(make_payment(tenant.id))
        await payments.add(make_payment(tenant.id))

        asked = []

        def confirm(count):
            asked.append(count)
            return True

        assert await tenants.delete(tenant.id, confirm=confirm) is True
        assert asked == [2]

    @pytest.mark.asyncio
    async def test_declined_confirmation_changes_nothing(
        self, store, audit_logger, properties, tenants, payments,
        make_property, make_tenant, make_payment,
    ):
        """Test answering no leaves tenants and payments intact."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await payments.add(make_payment(tenant.id))
        before = (await store.get("tenants"), await store.get("payments"))

        assert await tenants.delete(tenant.id, confirm=lambda count: False) is False
        assert (await store.get("tenants"), await store.get("payments")) == before
        assert audit_logger.recent_events[0].event_type == AuditEventType.CASCADE_DECLINED

    @pytest.mark.asyncio
    async def test_cascade_is_correlated(
        self, audit_logger, properties, tenants, payments,
        make_property, make_tenant, make_payment,
    ):
        """Test payment and tenant deletions share one correlation id."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await payments.add(make_payment(tenant.id))

        await tenants.delete(tenant.id)

        deletions = [
            event for event in audit_logger.recent_events
            if event.event_type in (AuditEventType.ENTITY_DELETED, AuditEventType.CASCADE_DELETED)
        ]
        assert len(deletions) == 3
        assert len({event.correlation_id for event in deletions}) == 1
        assert deletions[0].correlation_id is not None

    @pytest.mark.asyncio
    async def test_delete_tenant_without_payments(
        self, properties, tenants, make_property, make_tenant,
    ):
        """Test a tenant with no payments is simply removed."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        assert await tenants.delete(tenant.id, confirm=lambda count: count == 0) is True
        assert await tenants.list() == []

    @pytest.mark.asyncio
    async def test_delete_missing_tenant(self, tenants):
        """Test deleting an unknown tenant reports False."""
        assert await tenants.delete("ghost") is False


class TestPropertyDeletion:
    """Tests for the property -> tenants soft boundary."""

    @pytest.mark.asyncio
    async def test_property_delete_keeps_tenants(
        self, store, properties, tenants, payments,
        make_property, make_tenant, make_payment,
    ):
        """Test tenants survive their property and become effectively archived."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await payments.add(make_payment(tenant.id))

        assert await properties.delete(prop.id) is True

        remaining = await tenants.list()
        assert remaining == [tenant]
        engine = StatusEngine(await properties.list(), remaining, await payments.list())
        assert engine.tenant_effectively_archived(tenant)
        assert engine.latest_payment_status(tenant.id) == LatestPaymentStatus.ARCHIVED

    @pytest.mark.asyncio
    async def test_dangling_tenant_cannot_be_edited_or_paid(
        self, store, properties, tenants, payments, make_property, make_tenant, make_payment,
    ):
        """Test writes against a deleted property's tenant are rejected."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await properties.delete(prop.id)

        with pytest.raises(PropertyArchivedError):
            await tenants.update(tenant.model_copy(update={"name": "Renamed"}))
        with pytest.raises(TenantArchivedError):
            await payments.add(make_payment(tenant.id))
        assert await store.get("payments") == []

    @pytest.mark.asyncio
    async def test_dangling_tenant_can_be_archived_but_not_restored(
        self, properties, tenants, make_property, make_tenant,
    ):
        """Test a deleted property's tenant accepts archiving only."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await properties.delete(prop.id)

        archived = await tenants.set_archived(tenant.id, True)
        assert archived.archived is True
        assert (await tenants.get(tenant.id)).archived is True

        with pytest.raises(PropertyArchivedError):
            await tenants.set_archived(tenant.id, False)
        assert (await tenants.get(tenant.id)).archived is True


class TestArchivedPropertyRules:
    """Tests for writes against archived properties."""

    @pytest.mark.asyncio
    async def test_tenant_add_rejected(self, store, audit_logger, properties, tenants, make_property, make_tenant):
        """Test adding a tenant to an archived property fails and writes nothing."""
        prop = await properties.add(make_property(archived=True))

        with pytest.raises(PropertyArchivedError) as exc:
            await tenants.add(make_tenant(prop.id))

        assert "unarchive it first" in str(exc.value)
        assert await store.get("tenants") == []
        assert audit_logger.recent_events[0].event_type == AuditEventType.CASCADE_REJECTED

    @pytest.mark.asyncio
    async def test_tenant_add_to_missing_property_rejected(self, store, tenants, make_tenant):
        """Test a tenant needs an existing property."""
        with pytest.raises(PropertyArchivedError):
            await tenants.add(make_tenant("nowhere"))
        assert await store.get("tenants") == []

    @pytest.mark.asyncio
    async def test_tenant_update_rejected(self, store, properties, tenants, make_property, make_tenant):
        """Test editing a tenant of an archived property fails."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await properties.update(prop.model_copy(update={"archived": True}))
        before = await store.get("tenants")

        with pytest.raises(PropertyArchivedError):
            await tenants.update(tenant.model_copy(update={"rent": Decimal("1")}))
        assert await store.get("tenants") == before

    @pytest.mark.asyncio
    async def test_toggle_blocked_while_property_archived(
        self, store, properties, tenants, make_property, make_tenant,
    ):
        """Test the tenant flag cannot be changed in either direction."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id, archived=True))
        await properties.update(prop.model_copy(update={"archived": True}))

        with pytest.raises(PropertyArchivedError):
            await tenants.set_archived(tenant.id, False)
        with pytest.raises(PropertyArchivedError):
            await tenants.set_archived(tenant.id, True)
        assert (await tenants.get(tenant.id)).archived is True

    @pytest.mark.asyncio
    async def test_toggle_allowed_after_unarchiving_property(
        self, properties, tenants, make_property, make_tenant,
    ):
        """Test unarchiving the property frees the tenant flag again."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        await properties.update(prop.model_copy(update={"archived": True}))
        await properties.update(prop.model_copy(update={"archived": False}))

        updated = await tenants.set_archived(tenant.id, True)
        assert updated.archived is True
        assert (await tenants.get(tenant.id)).archived is True

    @pytest.mark.asyncio
    async def test_toggle_missing_tenant(self, tenants):
        """Test toggling an unknown tenant returns None."""
        assert await tenants.set_archived("ghost", True) is None

    @pytest.mark.asyncio
    async def test_floor_beyond_property_rejected(
        self, store, properties, tenants, make_property, make_tenant,
    ):
        """Test a tenant floor must exist in the property."""
        prop = await properties.add(make_property(floor_count=2))
        with pytest.raises(EntityValidationError):
            await tenants.add(make_tenant(prop.id, floor=3))
        assert await store.get("tenants") == []

    @pytest.mark.asyncio
    async def test_room_must_exist(self, store, properties, tenants, make_property, make_tenant):
        """Test a tenant room must be one of the property's labels or all rooms."""
        prop = await properties.add(make_property(room_count=2))
        with pytest.raises(EntityValidationError) as exc:
            await tenants.add(make_tenant(prop.id, room="Room 3"))
        assert exc.value.issues[0].field == "room"

        placed = await tenants.add(make_tenant(prop.id, room="Room 2"))
        whole = await tenants.add(make_tenant(prop.id))
        assert await tenants.list() == [placed, whole]


class TestArchivedTenantRules:
    """Tests for payment writes against archived tenants."""

    @pytest.mark.asyncio
    async def test_payment_for_archived_tenant_rejected(
        self, store, properties, tenants, payments, make_property, make_tenant, make_payment,
    ):
        """Test payments need a tenant that is not archived."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id, archived=True))

        with pytest.raises(TenantArchivedError):
            await payments.add(make_payment(tenant.id))
        assert await store.get("payments") == []

    @pytest.mark.asyncio
    async def test_payment_for_tenant_in_archived_property_rejected(
        self, store, properties, tenants, payments, make_property, make_tenant, make_payment,
    ):
        """Test the property's archival reaches payments."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        paid = await payments.add(make_payment(tenant.id))
        await properties.update(prop.model_copy(update={"archived": True}))
        before = await store.get("payments")

        with pytest.raises(TenantArchivedError):
            await payments.add(make_payment(tenant.id))
        with pytest.raises(TenantArchivedError):
            await payments.update(paid.model_copy(update={"amount": Decimal("1")}))
        assert await store.get("payments") == before

    @pytest.mark.asyncio
    async def test_payment_for_unknown_tenant_rejected(self, payments, make_payment):
        """Test a payment needs an existing tenant."""
        with pytest.raises(TenantArchivedError):
            await payments.add(make_payment("ghost"))

    @pytest.mark.asyncio
    async def test_payment_for_active_tenant_accepted(
        self, properties, tenants, payments, make_property, make_tenant, make_payment,
    ):
        """Test the happy path."""
        prop = await properties.add(make_property())
        tenant = await tenants.add(make_tenant(prop.id))
        payment = await payments.add(make_payment(tenant.id))
        assert await payments.for_tenant(tenant.id) == [payment]
