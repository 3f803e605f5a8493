"""
Ledger Package

Pure functions from (lines, transactions) to display rows and totals.
"""

from budgetsync.ledger.consumption import (
    calculate_all_consumptions,
    calculate_consumption,
    calculate_percentage,
)
from budgetsync.ledger.sorting import (
    KIND_ORDER,
    RECURRENCE_ORDER,
    line_sort_key,
    safe_parse_timestamp,
    signed_amount,
    transaction_sort_key,
)
from budgetsync.ledger.summary import calculate_budget_summary
from budgetsync.ledger.view_builder import build_ledger_rows, build_nested_ledger_rows

__all__ = [
    "KIND_ORDER",
    "RECURRENCE_ORDER",
    "build_ledger_rows",
    "build_nested_ledger_rows",
    "calculate_all_consumptions",
    "calculate_budget_summary",
    "calculate_consumption",
    "calculate_percentage",
    "line_sort_key",
    "safe_parse_timestamp",
    "signed_amount",
    "transaction_sort_key",
]
