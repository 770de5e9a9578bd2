"""
Status Derivation Engine

DESIGN DECISION: Derived state is COMPUTED, never stored.
Effective archival, latest payment status and the monthly rent figures are
pure functions of the current collection snapshots. Every view builds a
fresh engine from fresh snapshots; nothing is cached between reads.

Reference rules:
- property_archived() of a missing property is False (fail-open lookup)
- A tenant whose property is missing IS effectively archived
- A missing tenant IS archived (fail-closed)
A dangling reference must never make a tenant or payment look active.
"""

import calendar
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from abode.models.entities import (
    LatestPaymentStatus,
    MonthlyRentSummary,
    Payment,
    Property,
    Tenant,
    Todo,
)


def month_window(now: date) -> tuple[date, date]:
    """First and last day (inclusive) of the calendar month containing now."""
    if isinstance(now, datetime):
        now = now.date()
    last_day = calendar.monthrange(now.year, now.month)[1]
    return now.replace(day=1), now.replace(day=last_day)


def _index_by_id(records: Iterable) -> dict:
    # First record wins, like a linear find() over the collection
    index: dict = {}
    for record in records:
        index.setdefault(record.id, record)
    return index


class StatusEngine:
    """
    Pure derivations over one set of snapshots.

    Args:
        properties: Snapshot of the properties collection
        tenants: Snapshot of the tenants collection
        payments: Snapshot of the payments collection (order matters for ties)
        todos: Snapshot of the todos collection
    """

    def __init__(
        self,
        properties: Iterable[Property] = (),
        tenants: Iterable[Tenant] = (),
        payments: Iterable[Payment] = (),
        todos: Iterable[Todo] = (),
    ):
        self.properties: list[Property] = list(properties)
        self.tenants: list[Tenant] = list(tenants)
        self.payments: list[Payment] = list(payments)
        self.todos: list[Todo] = list(todos)
        self._properties_by_id: dict[str, Property] = _index_by_id(self.properties)
        self._tenants_by_id: dict[str, Tenant] = _index_by_id(self.tenants)

    # -------------------------------------------------------------------------
    # Reference resolution
    # -------------------------------------------------------------------------

    def resolve_property(self, property_id: str) -> Optional[Property]:
        return self._properties_by_id.get(property_id)

    def resolve_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self._tenants_by_id.get(tenant_id)

    # -------------------------------------------------------------------------
    # Effective archival
    # -------------------------------------------------------------------------

    def property_archived(self, property_id: str) -> bool:
        """True iff the property exists and is archived."""
        prop = self.resolve_property(property_id)
        return prop is not None and prop.archived

    def tenant_effectively_archived(self, tenant: Tenant) -> bool:
        """
        Own flag OR archived property OR deleted property.

        A tenant whose property was deleted is treated as sitting in an
        archived property, so it drops out of every active view.
        """
        if tenant.archived:
            return True
        prop = self.resolve_property(tenant.property_id)
        return prop is None or prop.archived

    def tenant_id_effectively_archived(self, tenant_id: str) -> bool:
        """Like tenant_effectively_archived, but an unknown id counts as archived."""
        tenant = self.resolve_tenant(tenant_id)
        if tenant is None:
            return True
        return self.tenant_effectively_archived(tenant)

    def payment_effectively_archived(self, payment: Payment) -> bool:
        """Own flag OR tenant effectively archived (which covers the property)."""
        return payment.archived or self.tenant_id_effectively_archived(payment.tenant_id)

    # -------------------------------------------------------------------------
    # Payment status
    # -------------------------------------------------------------------------

    def payments_for_tenant(self, tenant_id: str) -> list[Payment]:
        """Payments of one tenant, newest first (later-stored first on equal dates)."""
        indexed = [
            (payment.payment_date, position, payment)
            for position, payment in enumerate(self.payments)
            if payment.tenant_id == tenant_id
        ]
        indexed.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [payment for _, _, payment in indexed]

    def latest_payment(self, tenant_id: str) -> Optional[Payment]:
        """
        Most recent payment of a tenant.

        Equal dates are broken by collection order: the payment stored last wins.
        """
        latest: Optional[Payment] = None
        for payment in self.payments:
            if payment.tenant_id != tenant_id:
                continue
            if latest is None or payment.payment_date >= latest.payment_date:
                latest = payment
        return latest

    def latest_payment_status(self, tenant_id: str) -> LatestPaymentStatus:
        """Display status for a tenant. Archival beats payment history."""
        if self.tenant_id_effectively_archived(tenant_id):
            return LatestPaymentStatus.ARCHIVED

        latest = self.latest_payment(tenant_id)
        if latest is None:
            return LatestPaymentStatus.NO_PAYMENTS
        return LatestPaymentStatus.from_payment(latest.status)

    def tenant_statuses(self) -> dict[str, LatestPaymentStatus]:
        return {tenant.id: self.latest_payment_status(tenant.id) for tenant in self.tenants}

    # -------------------------------------------------------------------------
    # Monthly aggregation
    # -------------------------------------------------------------------------

    def monthly_rent_summary(self, now: Optional[date] = None) -> MonthlyRentSummary:
        """
        Rent expected vs collected for the calendar month containing now.

        Expected covers tenants that are not effectively archived and pay a
        positive rent. Collected sums every payment dated inside the month.
        A tenant counts as paid when their payments in the month add up to
        at least their rent, however many records that takes.
        """
        window_start, window_end = month_window(now or date.today())

        active = [
            tenant for tenant in self.tenants
            if not self.tenant_effectively_archived(tenant) and tenant.rent > 0
        ]

        collected = Decimal("0")
        paid_by_tenant: dict[str, Decimal] = {}
        for payment in self.payments:
            if not window_start <= payment.payment_date <= window_end:
                continue
            collected += payment.amount
            paid_by_tenant[payment.tenant_id] = (
                paid_by_tenant.get(payment.tenant_id, Decimal("0")) + payment.amount
            )

        paid_ids = [
            tenant.id for tenant in active
            if paid_by_tenant.get(tenant.id, Decimal("0")) >= tenant.rent
        ]

        return MonthlyRentSummary(
            window_start=window_start,
            window_end=window_end,
            active_tenants_count=len(active),
            paid_tenants_count=len(paid_ids),
            total_expected_rent=sum((tenant.rent for tenant in active), Decimal("0")),
            total_collected_this_month=collected,
            paid_tenant_ids=paid_ids,
        )

    # -------------------------------------------------------------------------
    # View helpers
    # -------------------------------------------------------------------------

    def active_properties(self) -> list[Property]:
        return [prop for prop in self.properties if not prop.archived]

    def active_tenants(self) -> list[Tenant]:
        return [t for t in self.tenants if not self.tenant_effectively_archived(t)]

    def archived_tenants(self) -> list[Tenant]:
        return [t for t in self.tenants if self.tenant_effectively_archived(t)]

    def tenants_for_property(self, property_id: str) -> list[Tenant]:
        return [t for t in self.tenants if t.property_id == property_id]

    def dangling_tenants(self) -> list[Tenant]:
        """Tenants whose property no longer exists."""
        return [t for t in self.tenants if self.resolve_property(t.property_id) is None]

    def open_todos(self) -> list[Todo]:
        """Todos not yet completed, newest first."""
        return sorted(
            (todo for todo in self.todos if not todo.completed),
            key=lambda todo: todo.created_at,
            reverse=True,
        )
