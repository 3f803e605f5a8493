"""
Working Copy Validation

DESIGN DECISION: Validation runs on the form data the user typed, not on
server records. Form models accept anything so that an empty name or a
negative amount can be held in the working copy; this module is where
such values are reported.

A row is valid when:
- its name is non-empty after trimming
- its amount is >= 0 (or > 0 when the collection requires a positive
  magnitude, e.g. transactions)

Deleted rows are never validated: they are on their way out.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can block the save.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable

from pydantic import BaseModel

from budgetsync.models.editing import EditableEntry, ValidationIssue, ValidationResult


class EntryValidator:
    """Field validation for the active rows of a working copy."""

    def __init__(self, require_positive_amount: bool = False):
        """
        Args:
            require_positive_amount: Reject zero amounts as well as
                negative ones.
        """
        self._require_positive = require_positive_amount

    @property
    def require_positive_amount(self) -> bool:
        return self._require_positive

    def validate_form(self, entry_id: str, form: BaseModel) -> list[ValidationIssue]:
        """Check one row's form data. Returns the issues found (empty = valid)."""
        issues = []

        name = getattr(form, "name", None)
        if name is None or not str(name).strip():
            issues.append(ValidationIssue(
                entry_id=entry_id,
                field="name",
                issue_type="missing",
                message="Name is required",
            ))

        amount = getattr(form, "amount", None)
        try:
            value = Decimal(str(amount)) if amount is not None else None
        except InvalidOperation:
            value = None

        if value is None or not value.is_finite():
            issues.append(ValidationIssue(
                entry_id=entry_id,
                field="amount",
                issue_type="missing",
                message="Amount is required",
            ))
        elif self._require_positive and value <= 0:
            issues.append(ValidationIssue(
                entry_id=entry_id,
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))
        elif value < 0:
            issues.append(ValidationIssue(
                entry_id=entry_id,
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
            ))

        return issues

    def validate(self, entries: Iterable[EditableEntry]) -> ValidationResult:
        """Validate every non-deleted entry."""
        issues = []
        checked = 0

        for entry in entries:
            if entry.is_deleted:
                continue
            checked += 1
            issues.extend(self.validate_form(str(entry.id), entry.form_data))

        return ValidationResult(
            is_valid=not issues,
            checked_count=checked,
            issues=issues,
        )
