"""
Ordering rules shared by the ledger builders.

Lines:        recurrence (fixed before one-off), creation time, kind, name
Transactions: transaction date (else creation time), kind, name

Missing or unparseable timestamps sort last.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from budgetsync.models.budget import (
    BudgetLine,
    Transaction,
    TransactionKind,
    TransactionRecurrence,
)


KIND_ORDER = {
    TransactionKind.INCOME: 1,
    TransactionKind.SAVING: 2,
    TransactionKind.EXPENSE: 3,
}

# Display order of the kind buckets
GROUP_ORDER = sorted(KIND_ORDER, key=KIND_ORDER.get)

RECURRENCE_ORDER = {
    TransactionRecurrence.FIXED: 1,
    TransactionRecurrence.VARIABLE: 1,
    TransactionRecurrence.ONE_OFF: 2,
}


def safe_parse_timestamp(value: Optional[str]) -> float:
    """
    POSIX timestamp of an ISO-8601 string, or +inf when it cannot be read.

    Naive values are taken as UTC.
    """
    if not value:
        return math.inf
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return math.inf
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def line_sort_key(line: BudgetLine) -> tuple:
    return (
        RECURRENCE_ORDER.get(line.recurrence, math.inf),
        safe_parse_timestamp(line.created_at),
        KIND_ORDER.get(line.kind, math.inf),
        line.name.casefold(),
        line.name,
    )


def transaction_sort_key(transaction: Transaction) -> tuple:
    return (
        safe_parse_timestamp(transaction.transaction_date or transaction.created_at),
        KIND_ORDER.get(transaction.kind, math.inf),
        transaction.name.casefold(),
        transaction.name,
    )


def signed_amount(kind: TransactionKind, amount: Decimal) -> Decimal:
    """Income adds to the balance; expenses and savings take from it."""
    return amount * kind.sign
