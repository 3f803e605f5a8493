"""
Ledger View Builder

Projects planned lines and transactions into display rows.

Two layouts:

ENVELOPES (`build_ledger_rows`)
    Every line, then every transaction not allocated to a line, each set
    sorted with its own key, then bucketed by kind (income, saving,
    expense) behind a header row. Allocated transactions do not appear:
    they are counted through their line's consumption.

TRANSACTIONS (`build_nested_ledger_rows`)
    Per kind bucket: each line followed by its allocated transactions,
    then the bucket's unallocated transactions.

In both, a line contributes max(planned, consumed) to the running
balance, so an overrun shows up in the balance. An allocated transaction
contributes nothing and shows its parent's balance.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional, Union

from budgetsync.ledger.consumption import calculate_all_consumptions
from budgetsync.ledger.sorting import (
    GROUP_ORDER,
    line_sort_key,
    signed_amount,
    transaction_sort_key,
)
from budgetsync.models.budget import BudgetLine, Transaction, TransactionKind
from budgetsync.models.ledger import (
    BudgetLineRow,
    GroupHeaderRow,
    LineConsumption,
    TransactionRow,
)


Row = Union[GroupHeaderRow, BudgetLineRow, TransactionRow]


def effective_line_amount(line: BudgetLine, consumption: Optional[LineConsumption]) -> Decimal:
    if consumption is None:
        return line.amount
    return max(line.amount, consumption.consumed)


def _line_row(
    line: BudgetLine,
    balance: Decimal,
    consumption: Optional[LineConsumption],
) -> BudgetLineRow:
    is_template_linked = line.template_line_id is not None
    is_locked = is_template_linked and line.is_manually_adjusted
    return BudgetLineRow(
        line=line,
        cumulative_balance=balance,
        consumption=consumption or LineConsumption(),
        is_rollover=line.is_rollover,
        is_template_linked=is_template_linked,
        is_propagation_locked=is_locked,
        can_reset_from_template=is_locked,
        rollover_source_budget_id=line.rollover_source_budget_id,
    )


def build_ledger_rows(
    lines: Iterable[BudgetLine],
    transactions: Iterable[Transaction],
) -> list[Row]:
    """Envelope layout: grouped, sorted, balance-annotated rows."""
    lines = list(lines)
    transactions = list(transactions)
    consumptions = calculate_all_consumptions(lines, transactions)

    planned = sorted(lines, key=line_sort_key)
    unallocated = sorted(
        (t for t in transactions if not t.is_allocated),
        key=transaction_sort_key,
    )

    buckets: dict[TransactionKind, list[Union[BudgetLine, Transaction]]] = defaultdict(list)
    for item in [*planned, *unallocated]:
        buckets[item.kind].append(item)

    rows: list[Row] = []
    balance = Decimal("0")
    for kind in GROUP_ORDER:
        items = buckets.get(kind)
        if not items:
            continue
        rows.append(GroupHeaderRow(kind=kind, item_count=len(items)))

        for item in items:
            if isinstance(item, BudgetLine):
                consumption = consumptions.get(item.id)
                balance += signed_amount(item.kind, effective_line_amount(item, consumption))
                rows.append(_line_row(item, balance, consumption))
            else:
                balance += signed_amount(item.kind, item.amount)
                rows.append(TransactionRow(transaction=item, cumulative_balance=balance))

    return rows


def build_nested_ledger_rows(
    lines: Iterable[BudgetLine],
    transactions: Iterable[Transaction],
) -> list[Row]:
    """Transaction layout: allocated transactions nested under their line."""
    lines = list(lines)
    transactions = list(transactions)
    consumptions = calculate_all_consumptions(lines, transactions)

    allocated: dict[str, list[Transaction]] = defaultdict(list)
    unallocated: dict[TransactionKind, list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        if transaction.is_allocated:
            allocated[transaction.line_id].append(transaction)
        else:
            unallocated[transaction.kind].append(transaction)

    lines_by_kind: dict[TransactionKind, list[BudgetLine]] = defaultdict(list)
    for line in lines:
        lines_by_kind[line.kind].append(line)

    rows: list[Row] = []
    balance = Decimal("0")
    for kind in GROUP_ORDER:
        kind_lines = sorted(lines_by_kind.get(kind, []), key=line_sort_key)
        free = sorted(unallocated.get(kind, []), key=transaction_sort_key)
        if not kind_lines and not free:
            continue

        rows.append(GroupHeaderRow(kind=kind, item_count=len(kind_lines) + len(free)))

        for line in kind_lines:
            consumption = consumptions.get(line.id)
            balance += signed_amount(kind, effective_line_amount(line, consumption))
            rows.append(_line_row(line, balance, consumption))

            for transaction in sorted(allocated.get(line.id, []), key=transaction_sort_key):
                rows.append(TransactionRow(
                    transaction=transaction,
                    cumulative_balance=balance,
                    is_nested_under_envelope=True,
                    envelope_name=line.name,
                ))

        for transaction in free:
            balance += signed_amount(transaction.kind, transaction.amount)
            rows.append(TransactionRow(transaction=transaction, cumulative_balance=balance))

    return rows
