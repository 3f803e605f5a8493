"""
Consumption Calculator

For each planned line: how much of it the allocated transactions have
used, how many transactions that is, and the percentage of the plan.

Percentages are rounded half-up and are NOT clamped. A line planned at
500 with 600 of transactions is at 120%; callers decide how to show an
overrun.
"""

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from budgetsync.models.budget import BudgetLine, Transaction
from budgetsync.models.ledger import LineConsumption


def calculate_percentage(reserved: Decimal, consumed: Decimal) -> int:
    """Consumed as a whole-number percentage of reserved (0 when nothing is reserved)."""
    if reserved <= 0:
        return 0
    ratio = Decimal(consumed) / Decimal(reserved) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_consumption(
    line: BudgetLine,
    transactions: Iterable[Transaction],
) -> LineConsumption:
    matching = [t for t in transactions if t.line_id == line.id]
    consumed = sum((t.amount for t in matching), Decimal("0"))
    return LineConsumption(
        consumed=consumed,
        transaction_count=len(matching),
        percentage=calculate_percentage(line.amount, consumed),
    )


def calculate_all_consumptions(
    lines: Iterable[BudgetLine],
    transactions: Iterable[Transaction],
) -> dict[str, LineConsumption]:
    """Consumption of every line, keyed by line id, in one pass over the transactions."""
    by_line: dict[str, list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        if transaction.line_id is not None:
            by_line[transaction.line_id].append(transaction)

    return {
        line.id: calculate_consumption(line, by_line.get(line.id, []))
        for line in lines
    }
