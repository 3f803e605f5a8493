"""Headline totals of a budget."""

from decimal import Decimal
from typing import Iterable

from budgetsync.ledger.consumption import calculate_all_consumptions
from budgetsync.ledger.sorting import signed_amount
from budgetsync.ledger.view_builder import effective_line_amount
from budgetsync.models.budget import BudgetLine, Transaction, TransactionKind
from budgetsync.models.ledger import BudgetSummary


def _total(items) -> Decimal:
    return sum((item.amount for item in items), Decimal("0"))


def calculate_budget_summary(
    lines: Iterable[BudgetLine],
    transactions: Iterable[Transaction],
) -> BudgetSummary:
    """
    Planned income, fixed block (expenses and savings planned on lines),
    living allowance, total available and the ending balance.

    The ending balance uses the same rules as the ledger's running balance:
    lines count for max(planned, consumed), allocated transactions count
    only through their line.
    """
    lines = list(lines)
    transactions = list(transactions)
    consumptions = calculate_all_consumptions(lines, transactions)

    planned_income = _total(line for line in lines if line.kind is TransactionKind.INCOME)
    fixed_block = _total(line for line in lines if line.kind is not TransactionKind.INCOME)
    income_transactions = _total(
        t for t in transactions if t.kind is TransactionKind.INCOME
    )

    actual = sum(
        (signed_amount(t.kind, t.amount) for t in transactions),
        Decimal("0"),
    )

    ending = sum(
        (
            signed_amount(line.kind, effective_line_amount(line, consumptions.get(line.id)))
            for line in lines
        ),
        Decimal("0"),
    )
    ending += sum(
        (signed_amount(t.kind, t.amount) for t in transactions if not t.is_allocated),
        Decimal("0"),
    )

    return BudgetSummary(
        planned_income=planned_income,
        fixed_block=fixed_block,
        living_allowance=planned_income - fixed_block,
        total_available=planned_income + income_transactions,
        actual_transactions_amount=actual,
        ending_balance=ending,
    )
