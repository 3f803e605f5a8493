"""
Editing Models

Models for the local working copy of a server-owned collection.

DESIGN DECISION: Identity is a tagged value, not a string convention.
A row created locally gets EntryId(namespace="local"); a row that exists
on the server gets EntryId(namespace="persisted"). Code asks `is_local`
instead of sniffing prefixes, and identity is never derived from the
row's position in the list.
"""

from enum import Enum
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from budgetsync.models.budget import PropagationSummary


class EntryId(BaseModel):
    """Stable identifier of a row in a working copy."""

    model_config = ConfigDict(frozen=True)

    namespace: Literal["local", "persisted"]
    value: str = Field(..., min_length=1)

    @classmethod
    def local(cls, sequence: int) -> "EntryId":
        return cls(namespace="local", value=str(sequence))

    @classmethod
    def persisted(cls, server_id: str) -> "EntryId":
        return cls(namespace="persisted", value=server_id)

    @property
    def is_local(self) -> bool:
        return self.namespace == "local"

    def __str__(self) -> str:
        if self.is_local:
            return f"local:{self.value}"
        return self.value


FormT = TypeVar("FormT", bound=BaseModel)
RecordT = TypeVar("RecordT", bound=BaseModel)


class EditableEntry(BaseModel, Generic[FormT, RecordT]):
    """
    One row of a working copy.

    `original` is the persisted record this row mirrors. A row without an
    original has never been saved, so `is_new` is derived from it rather
    than stored - the two can never disagree.
    """

    id: EntryId
    form_data: FormT
    is_deleted: bool = False
    original: Optional[RecordT] = None

    @property
    def is_new(self) -> bool:
        return self.original is None


CreateT = TypeVar("CreateT", bound=BaseModel)
UpdateT = TypeVar("UpdateT", bound=BaseModel)


class OperationBatch(BaseModel, Generic[CreateT, UpdateT]):
    """
    The minimal set of operations that brings the server in sync.

    Each entry of the working copy contributes to at most one list;
    unchanged rows contribute nothing.
    """

    create: list[CreateT] = Field(default_factory=list)
    update: list[UpdateT] = Field(default_factory=list)
    delete: list[str] = Field(default_factory=list)
    propagate_to_budgets: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return not (self.create or self.update or self.delete)

    @property
    def operation_count(self) -> int:
        return len(self.create) + len(self.update) + len(self.delete)

    def to_payload(self) -> dict:
        """Request body for the bulk-operations endpoint."""
        payload: dict[str, Any] = {
            "create": [item.to_payload() for item in self.create],
            "update": [item.to_payload() for item in self.update],
            "delete": list(self.delete),
        }
        if self.propagate_to_budgets is not None:
            payload["propagateToBudgets"] = self.propagate_to_budgets
        return payload


class SaveErrorKind(str, Enum):
    """Why a save did not go through."""
    VALIDATION = "validation"            # Blocked locally, never sent
    SUBMISSION = "submission"            # Network/server failure
    CONCURRENT_SAVE = "concurrent_save"  # Another save is in flight


class SaveResult(BaseModel):
    """
    Outcome of a save. Errors are values, never exceptions.

    `updated_lines` holds the server records for created rows followed by
    the server records for updated rows.
    """

    success: bool
    updated_lines: list[Any] = Field(default_factory=list)
    deleted_ids: list[str] = Field(default_factory=list)
    propagation: Optional[PropagationSummary] = None
    error: Optional[str] = None
    error_kind: Optional[SaveErrorKind] = None

    @classmethod
    def nothing_to_save(cls) -> "SaveResult":
        return cls(success=True)

    @classmethod
    def failed(cls, kind: SaveErrorKind, message: str) -> "SaveResult":
        return cls(success=False, error=message, error_kind=kind)


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found on one row of a working copy."""

    entry_id: str = Field(
        ...,
        description="Rendered EntryId of the offending row"
    )
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class ValidationResult(BaseModel):
    """Result of validating every active row of a working copy."""

    is_valid: bool
    checked_count: int = Field(default=0, ge=0)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def first_message(self) -> Optional[str]:
        if not self.issues:
            return None
        return self.issues[0].message
