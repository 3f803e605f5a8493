"""
Budget Domain Models

These models define the schemas of everything exchanged with the budget
API and everything the user edits locally.

DESIGN DECISION: Two families of models with different strictness:
1. Server records (TemplateLine, BudgetLine, Transaction) are validated
   on the way in - they are the source of truth after a save.
2. Form data (LineFormData, TransactionFormData) is deliberately lax.
   The user may type an empty name or a negative amount; the editor must
   be able to HOLD that state and report it, not reject it on keystroke.

Wire payloads are camelCase, Python attributes are snake_case.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """
    Direction of money for a line or transaction.

    Amounts are always stored non-negative; the sign is implied by the kind.
    """
    INCOME = "income"
    EXPENSE = "expense"
    SAVING = "saving"

    @property
    def sign(self) -> int:
        """+1 for money coming in, -1 for money going out or set aside."""
        return 1 if self is TransactionKind.INCOME else -1


class TransactionRecurrence(str, Enum):
    """
    How often a planned line repeats.

    VARIABLE is only ever received from the server (legacy rows); it is
    displayed and ordered together with FIXED.
    """
    FIXED = "fixed"
    VARIABLE = "variable"
    ONE_OFF = "one_off"


class ApiModel(BaseModel):
    """Base for every model that crosses the API boundary."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_payload(self) -> dict:
        """Serialize to the camelCase JSON shape the API expects."""
        return self.model_dump(mode="json", by_alias=True)


def _amount_to_json(value: Decimal) -> int | float:
    """The API speaks JSON numbers, not decimal strings."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Amount = Annotated[Decimal, PlainSerializer(_amount_to_json, when_used="json")]


def _timestamp_to_str(value):
    """Accept datetimes from in-process callers, keep server strings verbatim."""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


# =============================================================================
# SERVER RECORDS
# =============================================================================

class TemplateLine(ApiModel):
    """A line of a budget template (the template editor's record)."""

    id: str = Field(..., min_length=1)
    name: str
    amount: Amount = Field(..., ge=0)
    kind: TransactionKind
    recurrence: TransactionRecurrence = TransactionRecurrence.FIXED
    description: str = ""
    created_at: Optional[str] = None

    normalize_created_at = field_validator("created_at", mode="before")(_timestamp_to_str)


class BudgetLine(ApiModel):
    """
    A planned budget entry for one period.

    A line may come from a template (template_line_id), may have been
    adjusted by hand after propagation (is_manually_adjusted), or may carry
    over the unresolved balance of a previous budget (rollover).
    """

    id: str = Field(..., min_length=1)
    budget_id: Optional[str] = None
    name: str
    amount: Amount = Field(..., ge=0)
    kind: TransactionKind
    recurrence: TransactionRecurrence = TransactionRecurrence.FIXED
    template_line_id: Optional[str] = None
    is_manually_adjusted: bool = False
    rollover_source_budget_id: Optional[str] = None
    created_at: Optional[str] = None

    normalize_created_at = field_validator("created_at", mode="before")(_timestamp_to_str)

    @property
    def is_rollover(self) -> bool:
        return self.rollover_source_budget_id is not None


class Transaction(ApiModel):
    """An actual movement of money, optionally allocated to a BudgetLine."""

    id: str = Field(..., min_length=1)
    budget_id: Optional[str] = None
    name: str
    amount: Amount = Field(..., ge=0)
    kind: TransactionKind
    line_id: Optional[str] = None
    transaction_date: Optional[str] = None
    checked_at: Optional[str] = None
    created_at: Optional[str] = None

    normalize_timestamps = field_validator(
        "transaction_date", "checked_at", "created_at", mode="before"
    )(_timestamp_to_str)

    @property
    def is_allocated(self) -> bool:
        return self.line_id is not None


# =============================================================================
# FORM DATA (what the user edits)
# =============================================================================

class LineFormData(ApiModel):
    """Editable fields of a template line."""

    name: str = ""
    amount: Amount = Decimal("0")
    kind: TransactionKind = TransactionKind.EXPENSE


class TransactionFormData(ApiModel):
    """Editable fields of a transaction."""

    name: str = ""
    amount: Amount = Decimal("0")
    kind: TransactionKind = TransactionKind.EXPENSE
    transaction_date: Optional[str] = None
    line_id: Optional[str] = None

    normalize_transaction_date = field_validator(
        "transaction_date", mode="before"
    )(_timestamp_to_str)


# =============================================================================
# CREATE / UPDATE RECORDS (bulk-operations payload items)
# =============================================================================

class TemplateLineCreate(ApiModel):
    name: str
    amount: Amount
    kind: TransactionKind
    recurrence: TransactionRecurrence
    description: str = ""


class TemplateLineUpdate(TemplateLineCreate):
    """
    Update payload for an existing template line.

    The API requires the immutable fields (recurrence, description) even
    though the editor never changes them, so they are carried through from
    the original record.
    """
    id: str


class TransactionCreate(ApiModel):
    name: str
    amount: Amount
    kind: TransactionKind
    transaction_date: Optional[str] = None
    line_id: Optional[str] = None


class TransactionUpdate(TransactionCreate):
    id: str


# =============================================================================
# BULK OPERATIONS RESPONSE
# =============================================================================

class PropagationSummary(ApiModel):
    """What the server did with template changes on budgets using the template."""

    mode: Literal["propagate", "template-only"] = "template-only"
    affected_budget_ids: list[str] = Field(default_factory=list)
    affected_budgets_count: int = Field(default=0, ge=0)


RecordT = TypeVar("RecordT", bound=ApiModel)


class BulkOperationsResult(ApiModel, Generic[RecordT]):
    """
    The `data` object of a bulk-operations response.

    `created` is in the same order as the `create` list that was sent.
    """

    created: list[RecordT] = Field(default_factory=list)
    updated: list[RecordT] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    propagation: Optional[PropagationSummary] = None
