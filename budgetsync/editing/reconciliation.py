"""
Reconciliation Engine

Runs a save for one EditableCollection:

    busy? -> nothing to save? -> valid? -> diff -> submit -> reconcile

DESIGN DECISION: Two-phase commit.
The batch is computed from the entries as they are when the save starts
(the save plan). Nothing in the working copy changes while the request is
in flight. Only when the server confirms does the engine stage a new
entry list and swap it in with one call. A failed, timed-out or cancelled
save stages nothing, so the user's edits are never lost.

DESIGN DECISION: The working copy stays editable during a save.
Edits made while the request is in flight are merged, not overwritten:
- a row edited in flight keeps its newer form data and only adopts the
  server record as its original (so it stays dirty)
- a new row removed in flight comes back as a deleted persisted row, so
  the next save deletes what the server just created

Row identity never changes on save; a locally added row keeps its
`local:<n>` id after the server assigns it a record.

Errors are returned as SaveResult values, never raised. The one exception
is asyncio cancellation, which is propagated after clearing `loading`.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from budgetsync.config import EditorSettings, get_settings
from budgetsync.editing.collection import EditableCollection
from budgetsync.editing.diff import SavePlan, compute_save_plan
from budgetsync.models.budget import BulkOperationsResult
from budgetsync.models.editing import (
    EditableEntry,
    OperationBatch,
    SaveErrorKind,
    SaveResult,
)
from budgetsync.services.api import (
    BulkOperationsSubmitter,
    InvalidResponseError,
    SubmissionError,
)


SubmitFunction = Callable[[OperationBatch], Awaitable[BulkOperationsResult]]
Submitter = Union[BulkOperationsSubmitter, SubmitFunction]


class ReconciliationEngine:
    """Save state machine: idle -> saving -> idle (success or error)."""

    def __init__(
        self,
        collection: EditableCollection,
        settings: Optional[EditorSettings] = None,
    ):
        self._collection = collection
        self._settings = settings or get_settings().editor
        self._loading = False
        self._error: Optional[str] = None

    @property
    def collection(self) -> EditableCollection:
        return self._collection

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    def clear_error(self) -> None:
        self._error = None

    async def save(
        self,
        submitter: Submitter,
        propagate_to_budgets: Optional[bool] = None,
    ) -> SaveResult:
        """
        Persist the working copy's pending changes in one bulk call.

        Args:
            submitter: A BulkOperationsSubmitter, or any async callable
                taking an OperationBatch
            propagate_to_budgets: Sent as `propagateToBudgets` when set

        Returns:
            SaveResult. `success=False` carries an error kind and message.
        """
        collection = self._collection
        audit = collection.audit_logger
        name = collection.schema.collection
        correlation_id = collection.correlation_id

        if self._loading:
            audit.log_save_rejected(collection=name, correlation_id=correlation_id)
            return SaveResult.failed(
                SaveErrorKind.CONCURRENT_SAVE,
                "A save is already in progress",
            )

        if not collection.has_unsaved_changes():
            audit.log_save_skipped(collection=name, correlation_id=correlation_id)
            return SaveResult.nothing_to_save()

        validation = collection.validate()
        if not validation.is_valid:
            self._error = validation.first_message
            audit.log_validation_failed(
                collection=name,
                issues=[issue.model_dump() for issue in validation.issues],
                correlation_id=correlation_id,
            )
            return SaveResult.failed(SaveErrorKind.VALIDATION, self._error)

        self._loading = True
        self._error = None
        plan = compute_save_plan(
            collection.schema,
            collection.entries,
            propagate_to_budgets,
        )
        audit.log_save_started(
            collection=name,
            create_count=len(plan.batch.create),
            update_count=len(plan.batch.update),
            delete_count=len(plan.batch.delete),
            correlation_id=correlation_id,
        )

        try:
            result = await self._submit(submitter, plan.batch)
        except asyncio.CancelledError:
            audit.log_save_cancelled(collection=name, correlation_id=correlation_id)
            raise
        except Exception as e:
            self._error = self._normalize_error(e)
            audit.log_save_failed(
                collection=name,
                error_message=self._error,
                error_type=type(e).__name__,
                correlation_id=correlation_id,
                reason=getattr(e, "reason", None),
            )
            return SaveResult.failed(SaveErrorKind.SUBMISSION, self._error)
        finally:
            self._loading = False

        self._reconcile(plan, result)
        audit.log_save_succeeded(
            collection=name,
            created=len(result.created),
            updated=len(result.updated),
            deleted=len(result.deleted),
            correlation_id=correlation_id,
        )

        return SaveResult(
            success=True,
            updated_lines=[*result.created, *result.updated],
            deleted_ids=list(result.deleted),
            propagation=result.propagation,
        )

    async def _submit(
        self,
        submitter: Submitter,
        batch: OperationBatch,
    ) -> BulkOperationsResult:
        send = submitter.submit if isinstance(submitter, BulkOperationsSubmitter) else submitter
        timeout = self._settings.save_timeout_seconds

        try:
            if timeout is None:
                raw = await send(batch)
            else:
                raw = await asyncio.wait_for(send(batch), timeout)
        except asyncio.TimeoutError as e:
            raise SubmissionError(f"Save timed out after {timeout:g} seconds") from e

        return self._coerce_result(raw)

    def _coerce_result(self, raw) -> BulkOperationsResult:
        """Accept a result model, a `data` object, or a full `{data: ...}` body."""
        if isinstance(raw, BulkOperationsResult):
            return raw

        if isinstance(raw, dict) and isinstance(raw.get("data"), dict):
            raw = raw["data"]

        record_model = self._collection.schema.record_model
        try:
            return BulkOperationsResult[record_model].model_validate(raw)
        except ValidationError as e:
            raise InvalidResponseError(f"Malformed bulk operations result: {e}") from e

    def _normalize_error(self, error: Exception) -> str:
        message = str(error).strip()
        return message or self._settings.save_error_fallback_message

    def _reconcile(self, plan: SavePlan, result: BulkOperationsResult) -> None:
        """Stage the post-save entry list from the current working copy and commit it."""
        schema = self._collection.schema

        created_records = {
            op.entry_id: (op, record)
            for op, record in zip(plan.created, result.created)
        }
        updated_by_server_id = {record.id: record for record in result.updated}
        updated_records = {
            op.entry_id: (op, updated_by_server_id[op.persisted_id])
            for op in plan.updated
            if op.persisted_id in updated_by_server_id
        }
        deleted_ids = set(result.deleted)
        deleted_entries = {
            op.entry_id for op in plan.deleted if op.persisted_id in deleted_ids
        }

        staged = []
        present = set()
        for entry in self._collection.entries:
            present.add(entry.id)
            if entry.id in deleted_entries:
                continue
            match = created_records.get(entry.id) or updated_records.get(entry.id)
            if match is None:
                staged.append(entry)
                continue
            op, record = match
            if entry.form_data == op.form_data:
                form_data = schema.form_from_record(record)
            else:
                form_data = entry.form_data
            staged.append(entry.model_copy(update={
                "form_data": form_data,
                "original": record,
            }))

        for entry_id, (op, record) in created_records.items():
            if entry_id in present:
                continue
            staged.append(EditableEntry(
                id=entry_id,
                form_data=schema.form_from_record(record),
                original=record,
                is_deleted=True,
            ))

        self._collection.replace_entries(staged)
