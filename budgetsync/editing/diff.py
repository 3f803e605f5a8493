"""
Diff Engine

Derives the minimal operation batch from the entries of a working copy:

    new, not deleted          -> create
    persisted, deleted        -> delete (by persisted id)
    persisted, modified       -> update (carrying the original's id)
    persisted, unmodified     -> nothing

A save plan is the same batch plus, for every operation, which entry it
came from and the form data that was sent. The reconciliation engine
needs both to merge the server response back into the working copy.
"""

from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from budgetsync.editing.schemas import EntrySchema
from budgetsync.models.editing import EditableEntry, EntryId, OperationBatch


class PlannedOperation(BaseModel):
    """One entry's contribution to a batch."""

    entry_id: EntryId
    form_data: Any = None
    persisted_id: Optional[str] = None


class SavePlan(BaseModel):
    batch: OperationBatch
    created: list[PlannedOperation] = Field(default_factory=list)
    updated: list[PlannedOperation] = Field(default_factory=list)
    deleted: list[PlannedOperation] = Field(default_factory=list)


def compute_save_plan(
    schema: EntrySchema,
    entries: Iterable[EditableEntry],
    propagate_to_budgets: Optional[bool] = None,
) -> SavePlan:
    """Walk the entries once, in working-copy order."""
    create, update, delete = [], [], []
    created, updated, deleted = [], [], []

    for entry in entries:
        if entry.is_new:
            # New rows that were removed never reach this point
            if entry.is_deleted:
                continue
            create.append(schema.to_create(entry.form_data))
            created.append(PlannedOperation(
                entry_id=entry.id,
                form_data=entry.form_data,
            ))
        elif entry.is_deleted:
            delete.append(entry.original.id)
            deleted.append(PlannedOperation(
                entry_id=entry.id,
                persisted_id=entry.original.id,
            ))
        elif schema.is_modified(entry.form_data, entry.original):
            update.append(schema.to_update(entry.form_data, entry.original))
            updated.append(PlannedOperation(
                entry_id=entry.id,
                form_data=entry.form_data,
                persisted_id=entry.original.id,
            ))

    batch = OperationBatch(
        create=create,
        update=update,
        delete=delete,
        propagate_to_budgets=propagate_to_budgets,
    )
    return SavePlan(batch=batch, created=created, updated=updated, deleted=deleted)


def compute_operations(
    schema: EntrySchema,
    entries: Iterable[EditableEntry],
    propagate_to_budgets: Optional[bool] = None,
) -> OperationBatch:
    return compute_save_plan(schema, entries, propagate_to_budgets).batch


def entry_has_changes(schema: EntrySchema, entry: EditableEntry) -> bool:
    """True when the entry would produce an operation."""
    if entry.is_new:
        return not entry.is_deleted
    if entry.is_deleted:
        return True
    return schema.is_modified(entry.form_data, entry.original)
