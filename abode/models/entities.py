"""
Core Data Models for Abode

These models define the strict schemas for every record the system persists.
They are designed to:
1. Enforce type safety at runtime
2. Serialize to the flat camelCase records kept in each collection
3. Keep drafts (form input) separate from committed, immutable entities

DESIGN DECISION: Committed entities are frozen. Changing a record means
building a new one (model_copy(update=...)) and handing it to a repository,
which rewrites the whole collection.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
)
from pydantic.alias_generators import to_camel


# Credentials are opaque: never stripped, even where the model strips strings
OpaqueStr = Annotated[str, StringConstraints(strip_whitespace=False)]


ALL_ROOMS = "All Rooms"


def new_id() -> str:
    """Generate a fresh opaque record id."""
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CollectionName(str, Enum):
    """The named collections held by the collection store."""
    USERS = "users"
    PROPERTIES = "properties"
    TENANTS = "tenants"
    PAYMENTS = "payments"
    TODOS = "todos"


class ContractStatus(str, Enum):
    """Lease contract state of a tenant."""
    ADVANCE_PAID = "advance-paid"
    CONTRACT_ACTIVE = "contract-active"
    CONTRACT_RENEWED = "contract-renewed"
    CONTRACT_BREACH = "contract-breach"
    CONTRACT_EXPIRED = "contract-expired"
    NOTICE_PERIOD = "notice-period"


class PaymentStatus(str, Enum):
    """Status recorded on a single rent payment."""
    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"
    DUE = "due"
    OVERDUE = "overdue"


class LatestPaymentStatus(str, Enum):
    """
    Display status of a tenant's rent.

    Mirrors PaymentStatus plus two sentinels. ARCHIVED always wins over
    payment history.
    """
    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"
    DUE = "due"
    OVERDUE = "overdue"
    NO_PAYMENTS = "no payments"
    ARCHIVED = "archived"

    @classmethod
    def from_payment(cls, status: PaymentStatus) -> "LatestPaymentStatus":
        return cls(status.value)


# =============================================================================
# COMMITTED ENTITIES
# =============================================================================

class StoredRecord(BaseModel):
    """
    Base for every persisted entity.

    Field names are snake_case in Python and camelCase in storage.
    Unknown keys in a stored record are ignored on read.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique id, generated client-side"
    )

    def to_record(self) -> dict[str, Any]:
        """Convert to the raw record written to the collection store."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, raw: dict[str, Any]):
        """Parse a raw record read from the collection store."""
        return cls.model_validate(raw)


class Property(StoredRecord):
    """A rental property."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Property name"
    )
    address: str = Field(
        default="",
        max_length=500,
        description="Street address"
    )
    floor_count: int = Field(
        default=1,
        ge=0,
        description="Number of floors"
    )
    room_count: int = Field(
        default=0,
        ge=0,
        description="Total rooms across all floors"
    )
    archived: bool = False

    def room_labels(self) -> list[str]:
        """Room labels a tenant of this property may be assigned to."""
        return [f"Room {number}" for number in range(1, self.room_count + 1)]

    def accepts_room(self, room: str) -> bool:
        return room == ALL_ROOMS or room in self.room_labels()


class Tenant(StoredRecord):
    """
    A tenant renting (part of) a property.

    property_id is a reference that is NOT enforced by storage: the property
    may be deleted later. Resolve it through the status engine.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Tenant name"
    )
    rent: Annotated[
        Decimal,
        Field(ge=0, description="Monthly rent")
    ]
    lease_start: date
    lease_end: date
    contract_status: ContractStatus = ContractStatus.CONTRACT_ACTIVE
    property_id: str = Field(
        ...,
        min_length=1,
        description="Referenced property id"
    )
    floor: int = Field(
        default=1,
        ge=1,
        description="Floor number, 1-based"
    )
    room: str = Field(
        default=ALL_ROOMS,
        description="Room label or 'All Rooms'"
    )
    archived: bool = False


class Payment(StoredRecord):
    """
    A rent payment made by a tenant.

    The archived flag is rarely set directly; archival is normally derived
    from the tenant and property.
    """

    tenant_id: str = Field(
        ...,
        min_length=1,
        description="Referenced tenant id"
    )
    amount: Annotated[
        Decimal,
        Field(ge=0, description="Amount paid")
    ]
    payment_date: date = Field(
        ...,
        alias="date",
        description="Date the payment was made"
    )
    month: str = Field(
        default="",
        description="Month label, e.g. 'October'"
    )
    status: PaymentStatus = PaymentStatus.PAID
    archived: bool = False


class Todo(StoredRecord):
    """A reminder on the alerts page."""

    text: str = Field(
        ...,
        min_length=1,
        max_length=1000,
    )
    completed: bool = False
    created_at: datetime = Field(default_factory=utc_now)


class User(StoredRecord):
    """
    A local account.

    The password is an opaque credential stored and compared as given.
    """

    username: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    name: Optional[str] = None
    password: Annotated[OpaqueStr, Field(min_length=1)]

    def matches_username(self, username: str) -> bool:
        return self.username.lower() == username.strip().lower()


# =============================================================================
# DRAFTS - partial records coming from forms
# =============================================================================

class Draft(BaseModel):
    """
    Base for form drafts.

    Drafts are mutable and every field is optional. The DraftValidator turns
    a draft into a committed entity or reports what is missing.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    id: Optional[str] = None


class PropertyDraft(Draft):
    name: Optional[str] = None
    address: Optional[str] = None
    floor_count: Optional[int] = None
    room_count: Optional[int] = None
    # Per-floor room allocations entered in the form (floor 1 first)
    rooms_per_floor: list[int] = Field(default_factory=list)
    archived: bool = False


class TenantDraft(Draft):
    name: Optional[str] = None
    rent: Optional[Decimal] = None
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    contract_status: Optional[ContractStatus] = None
    property_id: Optional[str] = None
    floor: Optional[int] = None
    room: Optional[str] = None
    archived: bool = False


class PaymentDraft(Draft):
    tenant_id: Optional[str] = None
    amount: Optional[Decimal] = None
    payment_date: Optional[date] = Field(default=None, alias="date")
    month: Optional[str] = None
    status: Optional[PaymentStatus] = None
    archived: bool = False


class TodoDraft(Draft):
    text: Optional[str] = None
    completed: bool = False
    created_at: Optional[datetime] = None


class UserDraft(Draft):
    username: Optional[str] = None
    name: Optional[str] = None
    password: Optional[OpaqueStr] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on a draft."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating a draft."""

    entity_type: str
    validated_at: datetime = Field(default_factory=utc_now)
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# DERIVED MODELS
# =============================================================================

class MonthlyRentSummary(BaseModel):
    """
    Rent collection figures for one calendar month.

    Computed on every read from the current snapshots, never stored.
    """
    model_config = ConfigDict(frozen=True)

    window_start: date
    window_end: date
    active_tenants_count: int = Field(ge=0)
    paid_tenants_count: int = Field(ge=0)
    total_expected_rent: Decimal = Decimal("0")
    total_collected_this_month: Decimal = Decimal("0")
    paid_tenant_ids: list[str] = Field(default_factory=list)

    @property
    def unpaid_tenants_count(self) -> int:
        return self.active_tenants_count - self.paid_tenants_count

    @property
    def collection_rate(self) -> float:
        """Collected / expected, 0.0 when nothing is expected."""
        if self.total_expected_rent <= 0:
            return 0.0
        return float(self.total_collected_this_month / self.total_expected_rent)
