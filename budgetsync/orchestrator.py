"""
Main Orchestrator for Budget Sync

This module ties together all the components and defines the
end-to-end flows for:
1. Editing (open working copy -> add/update/remove -> save -> reconcile)
2. Display (lines + transactions -> rows + totals)

DESIGN DECISION: The orchestrator enforces the boundaries:
- One editing session owns one working copy and one correlation id
- Nothing reaches the server without passing validation
- Every step is audited
"""

from typing import Any, Iterable, Literal, Optional
from uuid import UUID

import httpx

from budgetsync.audit import AuditLogger, create_correlation_id
from budgetsync.config import ApiSettings, EditorSettings
from budgetsync.editing import (
    EditableCollection,
    EntrySchema,
    ReconciliationEngine,
    TemplateLineSchema,
    TransactionSchema,
)
from budgetsync.editing.reconciliation import Submitter
from budgetsync.ledger import (
    build_ledger_rows,
    build_nested_ledger_rows,
    calculate_budget_summary,
)
from budgetsync.models.budget import (
    BudgetLine,
    TemplateLine,
    Transaction,
    TransactionRecurrence,
)
from budgetsync.models.editing import SaveResult
from budgetsync.models.ledger import LedgerViewModel
from budgetsync.services.api import HttpBulkOperationsClient
from budgetsync.services.storage import AuditStorageInterface


class EditingSession:
    """
    One editing session (one dialog open).

    Flow:
    1. Open -> working copy built from the server records
    2. Edit -> add / update / remove on `collection`
    3. Save -> one bulk call, working copy reconciled with the response

    The session is discarded when the dialog closes.
    """

    def __init__(
        self,
        schema: EntrySchema,
        submitter: Submitter,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
        editor_settings: Optional[EditorSettings] = None,
    ):
        self._correlation_id = correlation_id or create_correlation_id()
        self._audit_logger = audit_logger or AuditLogger()
        self._submitter = submitter
        self._collection = EditableCollection(
            schema,
            audit_logger=self._audit_logger,
            correlation_id=self._correlation_id,
        )
        self._engine = ReconciliationEngine(self._collection, settings=editor_settings)

    @property
    def correlation_id(self) -> UUID:
        return self._correlation_id

    @property
    def collection(self) -> EditableCollection:
        return self._collection

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def submitter(self) -> Submitter:
        return self._submitter

    def open(
        self,
        records: Iterable[Any],
        seed: Optional[Iterable[Any]] = None,
    ) -> None:
        """
        Build the working copy.

        Without `seed` the form data is taken from the records. With it,
        seed rows are paired with records by position.
        """
        self._engine.clear_error()
        if seed is None:
            self._collection.initialize_from_records(records)
        else:
            self._collection.initialize(records, seed)

    async def save(self, propagate_to_budgets: Optional[bool] = None) -> SaveResult:
        return await self._engine.save(self._submitter, propagate_to_budgets)


def _session(
    schema: EntrySchema,
    owner_id: str,
    records: Iterable[Any],
    seed: Optional[Iterable[Any]],
    submitter: Optional[Submitter],
    audit_storage: Optional[AuditStorageInterface],
    api_settings: Optional[ApiSettings],
    editor_settings: Optional[EditorSettings],
    transport: Optional[httpx.AsyncBaseTransport],
) -> EditingSession:
    if submitter is None:
        submitter = HttpBulkOperationsClient(
            collection=schema.collection,
            owner_id=owner_id,
            record_model=schema.record_model,
            settings=api_settings,
            transport=transport,
        )

    session = EditingSession(
        schema,
        submitter,
        audit_logger=AuditLogger(audit_storage),
        editor_settings=editor_settings,
    )
    session.open(records, seed)
    return session


def create_template_line_session(
    template_id: str,
    lines: Iterable[TemplateLine],
    seed: Optional[Iterable[Any]] = None,
    submitter: Optional[Submitter] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    api_settings: Optional[ApiSettings] = None,
    editor_settings: Optional[EditorSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> EditingSession:
    """
    Factory for the template-line editor.

    Args:
        template_id: Template whose lines are edited
        lines: The template's current lines
        seed: Form data to start from (defaults to the lines themselves)
        submitter: Bulk submitter. Defaults to the HTTP client.
        audit_storage: Where audit events are kept (local log only if None)
    """
    default_recurrence = None
    if editor_settings is not None:
        default_recurrence = TransactionRecurrence(editor_settings.default_recurrence)

    return _session(
        TemplateLineSchema(default_recurrence),
        template_id,
        lines,
        seed,
        submitter,
        audit_storage,
        api_settings,
        editor_settings,
        transport,
    )


def create_transaction_session(
    budget_id: str,
    transactions: Iterable[Transaction],
    seed: Optional[Iterable[Any]] = None,
    submitter: Optional[Submitter] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    api_settings: Optional[ApiSettings] = None,
    editor_settings: Optional[EditorSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> EditingSession:
    """Factory for the transaction editor of one budget."""
    return _session(
        TransactionSchema(),
        budget_id,
        transactions,
        seed,
        submitter,
        audit_storage,
        api_settings,
        editor_settings,
        transport,
    )


def prepare_ledger_view(
    lines: Iterable[BudgetLine],
    transactions: Iterable[Transaction],
    mode: Literal["envelopes", "transactions"] = "envelopes",
) -> LedgerViewModel:
    """
    Everything a budget page displays.

    Args:
        mode: "envelopes" lists lines then unallocated transactions;
              "transactions" nests allocated transactions under their line.
    """
    lines = list(lines)
    transactions = list(transactions)

    if mode == "envelopes":
        rows = build_ledger_rows(lines, transactions)
    elif mode == "transactions":
        rows = build_nested_ledger_rows(lines, transactions)
    else:
        raise ValueError(f"Unknown ledger mode: {mode}")

    return LedgerViewModel(
        rows=rows,
        summary=calculate_budget_summary(lines, transactions),
        has_one_off_items=any(
            line.recurrence is TransactionRecurrence.ONE_OFF for line in lines
        ),
        has_unallocated_transactions=any(not t.is_allocated for t in transactions),
        is_empty=not lines and not transactions,
    )
