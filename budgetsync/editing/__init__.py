"""
Editing Package

The working copy of a server-owned collection and the engine that saves it.
"""

from budgetsync.editing.collection import EditableCollection
from budgetsync.editing.diff import (
    PlannedOperation,
    SavePlan,
    compute_operations,
    compute_save_plan,
)
from budgetsync.editing.identity import IdentityAllocator
from budgetsync.editing.reconciliation import ReconciliationEngine
from budgetsync.editing.schemas import (
    EntrySchema,
    TemplateLineSchema,
    TransactionSchema,
)

__all__ = [
    "EditableCollection",
    "EntrySchema",
    "IdentityAllocator",
    "PlannedOperation",
    "ReconciliationEngine",
    "SavePlan",
    "TemplateLineSchema",
    "TransactionSchema",
    "compute_operations",
    "compute_save_plan",
]
