"""Tests for the status derivation engine."""

from datetime import date, datetime
from decimal import Decimal

from abode.models import LatestPaymentStatus, PaymentStatus, Todo
from abode.status import StatusEngine, month_window


class TestMonthWindow:
    """Tests for calendar month windows."""

    def test_window_for_date(self):
        """Test first and last day of a 31-day month."""
        assert month_window(date(2024, 3, 17)) == (date(2024, 3, 1), date(2024, 3, 31))

    def test_window_for_leap_february(self):
        """Test February of a leap year."""
        assert month_window(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_window_accepts_datetime(self):
        """Test a datetime is reduced to its date."""
        assert month_window(datetime(2023, 11, 30, 23, 59)) == (
            date(2023, 11, 1),
            date(2023, 11, 30),
        )


class TestEffectiveArchival:
    """Tests for archival derived from tenant and property flags."""

    def test_active_tenant_in_active_property(self, make_property, make_tenant):
        """Test a tenant with no archived flags is active."""
        prop = make_property()
        tenant = make_tenant(prop.id)
        engine = StatusEngine([prop], [tenant])
        assert not engine.tenant_effectively_archived(tenant)
        assert engine.active_tenants() == [tenant]

    def test_own_flag_archives_tenant(self, make_property, make_tenant):
        """Test the tenant's own flag."""
        prop = make_property()
        tenant = make_tenant(prop.id, archived=True)
        engine = StatusEngine([prop], [tenant])
        assert engine.tenant_effectively_archived(tenant)

    def test_archived_property_archives_tenant(self, make_property, make_tenant):
        """Test an archived property archives its tenants regardless of their flag."""
        prop = make_property(archived=True)
        tenant = make_tenant(prop.id, archived=False)
        engine = StatusEngine([prop], [tenant])
        assert engine.property_archived(prop.id)
        assert engine.tenant_effectively_archived(tenant)
        assert engine.archived_tenants() == [tenant]

    def test_missing_property_is_not_archived_but_tenant_is(self, make_tenant):
        """Test a deleted property: lookup fails open, the tenant still drops out."""
        tenant = make_tenant("gone")
        engine = StatusEngine([], [tenant])
        assert not engine.property_archived("gone")
        assert engine.tenant_effectively_archived(tenant)
        assert engine.dangling_tenants() == [tenant]

    def test_unknown_tenant_id_is_archived(self):
        """Test a missing tenant is treated as archived."""
        engine = StatusEngine()
        assert engine.tenant_id_effectively_archived("nobody")

    def test_payment_archived_through_property(self, make_property, make_tenant, make_payment):
        """Test payment archival follows tenant and property."""
        prop = make_property(archived=True)
        tenant = make_tenant(prop.id)
        payment = make_payment(tenant.id)
        engine = StatusEngine([prop], [tenant], [payment])
        assert engine.payment_effectively_archived(payment)

    def test_payment_own_flag(self, make_property, make_tenant, make_payment):
        """Test a payment's own archived flag."""
        prop = make_property()
        tenant = make_tenant(prop.id)
        payment = make_payment(tenant.id, archived=True)
        engine = StatusEngine([prop], [tenant], [payment])
        assert engine.payment_effectively_archived(payment)

    def test_first_record_wins_on_duplicate_ids(self, make_property, make_tenant):
        """Test duplicate ids resolve to the first record in the collection."""
        first = make_property(id="dup", archived=False)
        second = make_property(id="dup", archived=True)
        tenant = make_tenant("dup")
        engine = StatusEngine([first, second], [tenant])
        assert engine.resolve_property("dup") is first
        assert not engine.tenant_effectively_archived(tenant)


class TestLatestPaymentStatus:
    """Tests for the per-tenant display status."""

    def test_no_payments(self, make_property, make_tenant):
        """Test a tenant with no payments."""
        prop = make_property()
        tenant = make_tenant(prop.id)
        engine = StatusEngine([prop], [tenant])
        assert engine.latest_payment_status(tenant.id) == LatestPaymentStatus.NO_PAYMENTS

    def test_latest_by_date(self, make_property, make_tenant, make_payment):
        """Test the most recent payment's status is used."""
        prop = make_property()
        tenant = make_tenant(prop.id)
        newer = make_payment(tenant.id, payment_date=date(2024, 4, 5), status=PaymentStatus.PARTIAL)
        older = make_payment(tenant.id, payment_date=date(2024, 3, 5), status=PaymentStatus.PAID)
        engine = StatusEngine([prop], [tenant], [newer, older])
        assert engine.latest_payment(tenant.id) is newer
        assert engine.latest_payment_status(tenant.id) == LatestPaymentStatus.PARTIAL

    def test_tie_goes_to_later_stored(self, make_property, make_tenant, make_payment):
        """Test equal dates pick the payment stored last."""
        prop = make_property()
        tenant = make_tenant(prop.id)
        first = make_payment(tenant.id, status=PaymentStatus.DUE)
        second = make_payment(tenant.id, status=PaymentStatus.PAID)
        engine = StatusEngine([prop], [tenant], [first, second])
        assert engine.latest_payment(tenant.id) is second
        assert engine.payments_for_tenant(tenant.id) == [second, first]

    def test_archived_overrides_history(self, make_property, make_tenant, make_payment):
        """Test archival beats any payment history."""
        prop = make_property(archived=True)
        tenant = make_tenant(prop.id)
        payment = make_payment(tenant.id, status=PaymentStatus.PAID)
        engine = StatusEngine([prop], [tenant], [payment])
        assert engine.latest_payment_status(tenant.id) == LatestPaymentStatus.ARCHIVED

    def test_deleted_property_shows_archived(self, make_tenant, make_payment):
        """Test a tenant of a deleted property shows as archived."""
        tenant = make_tenant("gone")
        engine = StatusEngine([], [tenant], [make_payment(tenant.id)])
        assert engine.tenant_statuses() == {tenant.id: LatestPaymentStatus.ARCHIVED}


class TestMonthlyRentSummary:
    """Tests for the monthly expected vs collected figures."""

    NOW = date(2024, 3, 20)

    def test_empty(self):
        """Test an empty portfolio."""
        summary = StatusEngine().monthly_rent_summary(self.NOW)
        assert summary.active_tenants_count == 0
        assert summary.total_expected_rent == Decimal("0")
        assert summary.total_collected_this_month == Decimal("0")

    def test_partial_payments_add_up(self, make_property, make_tenant, make_payment):
        """Test two partial payments that reach the rent count as paid."""
        prop = make_property()
        tenant = make_tenant(prop.id, rent=Decimal("1000"))
        payments = [
            make_payment(tenant.id, amount=Decimal("400"), payment_date=date(2024, 3, 2)),
            make_payment(tenant.id, amount=Decimal("600"), payment_date=date(2024, 3, 15)),
        ]
        summary = StatusEngine([prop], [tenant], payments).monthly_rent_summary(self.NOW)
        assert summary.paid_tenants_count == 1
        assert summary.paid_tenant_ids == [tenant.id]
        assert summary.total_collected_this_month == Decimal("1000")

    def test_short_payment_is_unpaid(self, make_property, make_tenant, make_payment):
        """Test a payment below the rent does not count as paid."""
        prop = make_property()
        tenant = make_tenant(prop.id, rent=Decimal("1000"))
        payment = make_payment(tenant.id, amount=Decimal("999.99"))
        summary = StatusEngine([prop], [tenant], [payment]).monthly_rent_summary(self.NOW)
        assert summary.paid_tenants_count == 0
        assert summary.unpaid_tenants_count == 1

    def test_overpayment_is_collected_in_full(self, make_property, make_tenant, make_payment):
        """Test collected sums the full amount even above the rent."""
        prop = make_property()
        tenant = make_tenant(prop.id, rent=Decimal("1000"))
        payment = make_payment(tenant.id, amount=Decimal("1500"))
        summary = StatusEngine([prop], [tenant], [payment]).monthly_rent_summary(self.NOW)
        assert summary.total_collected_this_month == Decimal("1500")
        assert summary.paid_tenants_count == 1

    def test_window_boundaries(self, make_property, make_tenant, make_payment):
        """Test payments on the first and last day count, neighbours do not."""
        prop = make_property()
        tenant = make_tenant(prop.id)
        payments = [
            make_payment(tenant.id, amount=Decimal("1"), payment_date=date(2024, 2, 29)),
            make_payment(tenant.id, amount=Decimal("10"), payment_date=date(2024, 3, 1)),
            make_payment(tenant.id, amount=Decimal("100"), payment_date=date(2024, 3, 31)),
            make_payment(tenant.id, amount=Decimal("1000"), payment_date=date(2024, 4, 1)),
        ]
        summary = StatusEngine([prop], [tenant], payments).monthly_rent_summary(self.NOW)
        assert summary.total_collected_this_month == Decimal("110")

    def test_archived_and_zero_rent_tenants_not_expected(self, make_property, make_tenant):
        """Test expected rent covers only active tenants with positive rent."""
        prop = make_property()
        archived_prop = make_property(archived=True)
        tenants = [
            make_tenant(prop.id, rent=Decimal("800")),
            make_tenant(prop.id, rent=Decimal("0")),
            make_tenant(prop.id, rent=Decimal("700"), archived=True),
            make_tenant(archived_prop.id, rent=Decimal("600")),
            make_tenant("gone", rent=Decimal("500")),
        ]
        summary = StatusEngine([prop, archived_prop], tenants).monthly_rent_summary(self.NOW)
        assert summary.active_tenants_count == 1
        assert summary.total_expected_rent == Decimal("800")

    def test_collected_includes_archived_tenants_payments(self, make_property, make_tenant, make_payment):
        """Test collected counts every payment in the month."""
        prop = make_property(archived=True)
        tenant = make_tenant(prop.id)
        payment = make_payment(tenant.id, amount=Decimal("300"))
        summary = StatusEngine([prop], [tenant], [payment]).monthly_rent_summary(self.NOW)
        assert summary.total_collected_this_month == Decimal("300")
        assert summary.paid_tenants_count == 0


class TestViewHelpers:
    """Tests for list helpers used by views."""

    def test_open_todos_newest_first(self):
        """Test completed todos are hidden and the rest sorted newest first."""
        old = Todo(text="old", created_at=datetime(2024, 1, 1))
        new = Todo(text="new", created_at=datetime(2024, 2, 1))
        done = Todo(text="done", completed=True)
        engine = StatusEngine(todos=[old, done, new])
        assert engine.open_todos() == [new, old]

    def test_active_properties(self, make_property):
        """Test archived properties are excluded."""
        live = make_property()
        engine = StatusEngine([live, make_property(archived=True)])
        assert engine.active_properties() == [live]

    def test_tenants_for_property(self, make_property, make_tenant):
        """Test tenants are grouped by property id."""
        prop = make_property()
        mine = make_tenant(prop.id)
        engine = StatusEngine([prop], [mine, make_tenant("other")])
        assert engine.tenants_for_property(prop.id) == [mine]
