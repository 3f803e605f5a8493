"""
Data Models Package

This package contains all Pydantic models used in Budget Sync.
All data flowing through the system must conform to these schemas.
"""

from budgetsync.models.budget import (
    ApiModel,
    BudgetLine,
    BulkOperationsResult,
    LineFormData,
    PropagationSummary,
    TemplateLine,
    TemplateLineCreate,
    TemplateLineUpdate,
    Transaction,
    TransactionCreate,
    TransactionFormData,
    TransactionKind,
    TransactionRecurrence,
    TransactionUpdate,
)
from budgetsync.models.editing import (
    EditableEntry,
    EntryId,
    OperationBatch,
    SaveErrorKind,
    SaveResult,
    ValidationIssue,
    ValidationResult,
)
from budgetsync.models.ledger import (
    BudgetLineRow,
    BudgetSummary,
    GroupHeaderRow,
    LedgerRow,
    LedgerViewModel,
    LineConsumption,
    TransactionRow,
)
from budgetsync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Budget models
    "ApiModel",
    "BudgetLine",
    "BulkOperationsResult",
    "LineFormData",
    "PropagationSummary",
    "TemplateLine",
    "TemplateLineCreate",
    "TemplateLineUpdate",
    "Transaction",
    "TransactionCreate",
    "TransactionFormData",
    "TransactionKind",
    "TransactionRecurrence",
    "TransactionUpdate",
    # Editing models
    "EditableEntry",
    "EntryId",
    "OperationBatch",
    "SaveErrorKind",
    "SaveResult",
    "ValidationIssue",
    "ValidationResult",
    # Ledger models
    "BudgetLineRow",
    "BudgetSummary",
    "GroupHeaderRow",
    "LedgerRow",
    "LedgerViewModel",
    "LineConsumption",
    "TransactionRow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
