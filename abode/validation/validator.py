"""
Draft Validation

DESIGN DECISION: Forms produce DRAFTS, repositories accept ENTITIES.
The validator is the only way from one to the other:

STAGE 1 - REQUIRED FIELDS:
- Every field the committed entity needs must be present
- Missing fields are errors

STAGE 2 - VALUE CHECKS:
- Negative amounts and counts are errors
- Suspicious but allowed values (lease ending before it starts,
  room count disagreeing with the per-floor allocations) are warnings

IMPORTANT: Validation happens BEFORE any storage call. A rejected draft
leaves every collection untouched.
"""

import calendar
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from abode.models.entities import (
    ALL_ROOMS,
    ContractStatus,
    Draft,
    Payment,
    PaymentDraft,
    PaymentStatus,
    Property,
    PropertyDraft,
    StoredRecord,
    Tenant,
    TenantDraft,
    Todo,
    TodoDraft,
    User,
    UserDraft,
    ValidationIssue,
    ValidationResult,
    new_id,
)


class EntityValidationError(Exception):
    """A draft (or entity write) failed local validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [issue.message for issue in result.issues if issue.severity == "error"]
        super().__init__("; ".join(messages) or "Validation failed")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


def _missing(field: str, label: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="missing",
        message=f"{label} is required",
        severity="error",
    )


def _negative(field: str, label: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="invalid_value",
        message=f"{label} cannot be negative",
        severity="error",
    )


class DraftValidator:
    """
    Validates drafts and converts them into committed entities.

    Usage:
        result = validator.validate(draft)       # for showing issues in a form
        tenant = validator.commit(tenant_draft)  # raises EntityValidationError
    """

    def validate(self, draft: Draft) -> ValidationResult:
        """Run all checks for the draft's entity type."""
        entity_type, issues, _ = self._check(draft)
        return self._result(entity_type, issues)

    def commit(self, draft: Draft) -> StoredRecord:
        """
        Turn a draft into an immutable entity.

        Keeps the draft's id when editing an existing record, otherwise
        generates a fresh one.

        Raises:
            EntityValidationError: If any error-level issue was found
        """
        entity_type, issues, fields = self._check(draft)
        result = self._result(entity_type, issues)
        if result.has_errors:
            raise EntityValidationError(result)

        model = _MODELS[type(draft)]
        fields["id"] = draft.id or new_id()
        try:
            return model.model_validate(fields)
        except ValidationError as e:
            issues.extend(
                ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]),
                    issue_type="invalid_value",
                    message=error["msg"],
                    severity="error",
                )
                for error in e.errors()
            )
            raise EntityValidationError(self._result(entity_type, issues)) from e

    def _result(self, entity_type: str, issues: list[ValidationIssue]) -> ValidationResult:
        return ValidationResult(
            entity_type=entity_type,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )

    def _check(self, draft: Draft) -> tuple[str, list[ValidationIssue], dict[str, Any]]:
        if isinstance(draft, PropertyDraft):
            return ("property", *self._check_property(draft))
        if isinstance(draft, TenantDraft):
            return ("tenant", *self._check_tenant(draft))
        if isinstance(draft, PaymentDraft):
            return ("payment", *self._check_payment(draft))
        if isinstance(draft, TodoDraft):
            return ("todo", *self._check_todo(draft))
        if isinstance(draft, UserDraft):
            return ("user", *self._check_user(draft))
        raise TypeError(f"Unsupported draft type: {type(draft).__name__}")

    def _check_property(
        self,
        draft: PropertyDraft,
    ) -> tuple[list[ValidationIssue], dict[str, Any]]:
        """
        Property checks.

        With more than one floor, the room count is the sum of the per-floor
        allocations entered in the form.
        """
        issues = []

        if not draft.name:
            issues.append(_missing("name", "Property name"))

        floor_count = 1 if draft.floor_count is None else draft.floor_count
        if floor_count < 0:
            issues.append(_negative("floor_count", "Floor count"))

        room_count = draft.room_count or 0
        if floor_count > 1 and draft.rooms_per_floor:
            if any(rooms < 0 for rooms in draft.rooms_per_floor):
                issues.append(_negative("rooms_per_floor", "Rooms per floor"))
            if len(draft.rooms_per_floor) != floor_count:
                issues.append(ValidationIssue(
                    field="rooms_per_floor",
                    issue_type="inconsistent",
                    message=(
                        f"Room allocations given for {len(draft.rooms_per_floor)} "
                        f"floors but the property has {floor_count}"
                    ),
                    severity="warning",
                    suggested_fix="Enter a room count for every floor",
                ))
            allocated = sum(draft.rooms_per_floor)
            if draft.room_count is not None and draft.room_count != allocated:
                issues.append(ValidationIssue(
                    field="room_count",
                    issue_type="inconsistent",
                    message=(
                        f"Room count {draft.room_count} replaced by the per-floor "
                        f"total {allocated}"
                    ),
                    severity="warning",
                ))
            room_count = allocated
        elif room_count < 0:
            issues.append(_negative("room_count", "Room count"))

        fields = {
            "name": draft.name,
            "address": draft.address or "",
            "floor_count": floor_count,
            "room_count": room_count,
            "archived": draft.archived,
        }
        return issues, fields

    def _check_tenant(
        self,
        draft: TenantDraft,
    ) -> tuple[list[ValidationIssue], dict[str, Any]]:
        issues = []

        if not draft.name:
            issues.append(_missing("name", "Tenant name"))
        if not draft.property_id:
            issues.append(_missing("property_id", "Property"))
        if draft.rent is None:
            issues.append(_missing("rent", "Rent"))
        elif draft.rent < 0:
            issues.append(_negative("rent", "Rent"))
        if draft.lease_start is None:
            issues.append(_missing("lease_start", "Lease start"))
        if draft.lease_end is None:
            issues.append(_missing("lease_end", "Lease end"))

        if (
            draft.lease_start
            and draft.lease_end
            and draft.lease_end < draft.lease_start
        ):
            issues.append(ValidationIssue(
                field="lease_end",
                issue_type="inconsistent",
                message="Lease end is before lease start",
                severity="warning",
                suggested_fix="Please verify both dates",
            ))

        floor = 1 if draft.floor is None else draft.floor
        if floor < 1:
            issues.append(ValidationIssue(
                field="floor",
                issue_type="invalid_value",
                message="Floor must be 1 or higher",
                severity="error",
            ))

        fields = {
            "name": draft.name,
            "rent": draft.rent,
            "lease_start": draft.lease_start,
            "lease_end": draft.lease_end,
            "contract_status": draft.contract_status or ContractStatus.CONTRACT_ACTIVE,
            "property_id": draft.property_id,
            "floor": floor,
            "room": draft.room or ALL_ROOMS,
            "archived": draft.archived,
        }
        return issues, fields

    def _check_payment(
        self,
        draft: PaymentDraft,
    ) -> tuple[list[ValidationIssue], dict[str, Any]]:
        issues = []

        if not draft.tenant_id:
            issues.append(_missing("tenant_id", "Tenant"))
        if draft.amount is None:
            issues.append(_missing("amount", "Amount"))
        elif draft.amount < 0:
            issues.append(_negative("amount", "Amount"))
        if draft.payment_date is None:
            issues.append(_missing("date", "Payment date"))

        month: Optional[str] = draft.month
        if not month and draft.payment_date is not None:
            month = calendar.month_name[draft.payment_date.month]

        fields = {
            "tenant_id": draft.tenant_id,
            "amount": draft.amount if draft.amount is not None else Decimal("0"),
            "payment_date": draft.payment_date,
            "month": month or "",
            "status": draft.status or PaymentStatus.PAID,
            "archived": draft.archived,
        }
        return issues, fields

    def _check_todo(
        self,
        draft: TodoDraft,
    ) -> tuple[list[ValidationIssue], dict[str, Any]]:
        issues = []
        if not draft.text:
            issues.append(_missing("text", "Todo text"))
        fields: dict[str, Any] = {"text": draft.text, "completed": draft.completed}
        if draft.created_at is not None:
            fields["created_at"] = draft.created_at
        return issues, fields

    def _check_user(
        self,
        draft: UserDraft,
    ) -> tuple[list[ValidationIssue], dict[str, Any]]:
        issues = []
        if not draft.username:
            issues.append(_missing("username", "Username"))
        if not draft.password:
            issues.append(_missing("password", "Password"))
        fields = {
            "username": draft.username,
            "name": draft.name or None,
            "password": draft.password,
        }
        return issues, fields


_MODELS: dict[type, type] = {
    PropertyDraft: Property,
    TenantDraft: Tenant,
    PaymentDraft: Payment,
    TodoDraft: Todo,
    UserDraft: User,
}
