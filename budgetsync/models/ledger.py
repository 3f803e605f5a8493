"""
Ledger View Models

The display projection of a budget: planned lines and actual
transactions merged into one ordered, grouped list where every row knows
the running balance up to and including itself.
"""

from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from budgetsync.models.budget import BudgetLine, Transaction, TransactionKind


class LineConsumption(BaseModel):
    """
    How much of a planned line is already accounted for by transactions.

    percentage is NOT clamped: 120 means the line is 20% over plan.
    """

    consumed: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)
    percentage: int = Field(default=0, ge=0)

    @property
    def has_transactions(self) -> bool:
        return self.transaction_count > 0

    @property
    def is_overrun(self) -> bool:
        return self.percentage > 100


class GroupHeaderRow(BaseModel):
    """Synthetic row placed ahead of each non-empty kind bucket."""

    row_type: Literal["group_header"] = "group_header"
    kind: TransactionKind
    item_count: int = Field(..., ge=1)


class BudgetLineRow(BaseModel):
    row_type: Literal["budget_line"] = "budget_line"
    line: BudgetLine
    cumulative_balance: Decimal
    consumption: LineConsumption = Field(default_factory=LineConsumption)
    is_rollover: bool = False
    is_template_linked: bool = False
    # Template-linked AND manually adjusted: template propagation skips it
    is_propagation_locked: bool = False
    can_reset_from_template: bool = False
    rollover_source_budget_id: Optional[str] = None

    @property
    def id(self) -> str:
        return self.line.id

    @property
    def kind(self) -> TransactionKind:
        return self.line.kind


class TransactionRow(BaseModel):
    row_type: Literal["transaction"] = "transaction"
    transaction: Transaction
    cumulative_balance: Decimal
    is_nested_under_envelope: bool = False
    envelope_name: Optional[str] = None

    @property
    def id(self) -> str:
        return self.transaction.id

    @property
    def kind(self) -> TransactionKind:
        return self.transaction.kind


LedgerRow = Annotated[
    Union[GroupHeaderRow, BudgetLineRow, TransactionRow],
    Field(discriminator="row_type"),
]


class BudgetSummary(BaseModel):
    """Headline totals of a budget."""

    planned_income: Decimal = Decimal("0")
    # Expenses + savings planned on lines
    fixed_block: Decimal = Decimal("0")
    # What is left to live on once the fixed block is covered
    living_allowance: Decimal = Decimal("0")
    total_available: Decimal = Decimal("0")
    actual_transactions_amount: Decimal = Decimal("0")
    ending_balance: Decimal = Decimal("0")


class LedgerViewModel(BaseModel):
    """Everything a ledger display needs in one object."""

    rows: list[LedgerRow] = Field(default_factory=list)
    summary: BudgetSummary = Field(default_factory=BudgetSummary)
    has_one_off_items: bool = False
    has_unallocated_transactions: bool = False
    is_empty: bool = True
