"""
Editable Collection

The working copy of a server-owned collection.

DESIGN DECISION: Entries are replaced, never mutated in place.
Every mutation swaps one EditableEntry (or the whole list) for a new one,
so a snapshot taken by a save in flight can never be changed under it.

DESIGN DECISION: Derived state is computed on demand.
`has_unsaved_changes()`, `is_valid()` and `pending_operations()` are
plain functions of the entries. Callers that need push updates register
a listener with `subscribe()`.

All public operations report failure through their return value; none
of them raise for bad input or a blocked removal.
"""

from typing import Any, Callable, Generic, Iterable, Optional, TypeVar, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from budgetsync.audit import AuditLogger
from budgetsync.editing.diff import compute_operations, entry_has_changes
from budgetsync.editing.identity import IdentityAllocator
from budgetsync.editing.schemas import EntrySchema
from budgetsync.models.editing import (
    EditableEntry,
    EntryId,
    OperationBatch,
    ValidationResult,
)
from budgetsync.validation import EntryValidator


logger = structlog.get_logger(__name__)

FormT = TypeVar("FormT", bound=BaseModel)
RecordT = TypeVar("RecordT", bound=BaseModel)

Listener = Callable[["EditableCollection"], None]


class EditableCollection(Generic[FormT, RecordT]):
    """
    Holds the entries of one editing session.

    Each instance belongs to exactly one session (one dialog, one page);
    a new session builds a new collection or calls `initialize` again.
    """

    def __init__(
        self,
        schema: EntrySchema,
        allocator: Optional[IdentityAllocator] = None,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._schema = schema
        self._allocator = allocator or IdentityAllocator()
        self._audit = audit_logger or AuditLogger()
        self._correlation_id = correlation_id
        self._validator = EntryValidator(
            require_positive_amount=schema.require_positive_amount,
        )
        self._entries: list[EditableEntry] = []
        self._listeners: list[Listener] = []

    @property
    def schema(self) -> EntrySchema:
        return self._schema

    @property
    def entries(self) -> tuple[EditableEntry, ...]:
        """All entries, including ones marked for deletion."""
        return tuple(self._entries)

    @property
    def correlation_id(self) -> Optional[UUID]:
        return self._correlation_id

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        originals: Iterable[RecordT],
        seed: Iterable[Union[FormT, dict[str, Any]]],
    ) -> None:
        """
        Replace the working copy.

        Seed rows are paired with originals by position. Seed rows past the
        end of `originals` are new; originals past the end of `seed` are
        ignored. A seed row the form model cannot hold is logged and
        replaced by its original, or skipped when it has none.
        """
        originals = list(originals)
        seed = list(seed)

        if len(originals) > len(seed):
            logger.warning(
                "surplus_originals_ignored",
                collection=self._schema.collection,
                originals=len(originals),
                seed=len(seed),
            )

        entries = []
        for index, data in enumerate(seed):
            original = originals[index] if index < len(originals) else None
            form = self._coerce_form(data, "seed_row_rejected", index=index)
            if form is None:
                # A paired row falls back to its record, an unpaired one is dropped
                if original is None:
                    continue
                form = self._schema.form_from_record(original)

            if original is None:
                entry_id = self._allocator.allocate()
            else:
                entry_id = self._allocator.persisted(original.id)
            entries.append(EditableEntry(
                id=entry_id,
                form_data=form,
                original=original,
            ))

        self._entries = entries
        self._audit.log_collection_initialized(
            collection=self._schema.collection,
            entry_count=len(entries),
            new_count=sum(1 for e in entries if e.is_new),
            correlation_id=self._correlation_id,
        )
        self._notify()

    def initialize_from_records(self, records: Iterable[RecordT]) -> None:
        """Initialize with form data taken from the records themselves."""
        records = list(records)
        self.initialize(
            records,
            [self._schema.form_from_record(record) for record in records],
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, data: Union[FormT, dict[str, Any], None] = None) -> Optional[EntryId]:
        """
        Append a new row and return its identifier.

        Returns None, and adds nothing, when `data` cannot be held by the
        form model.
        """
        form = self._coerce_form(data, "add_rejected")
        if form is None:
            return None

        entry = EditableEntry(
            id=self._allocator.allocate(),
            form_data=form,
        )
        self._entries.append(entry)
        self._audit.log_entry_added(
            collection=self._schema.collection,
            entry_id=str(entry.id),
            correlation_id=self._correlation_id,
        )
        self._notify()
        return entry.id

    def update(
        self,
        entry_id: Union[EntryId, str],
        patch: Union[FormT, dict[str, Any]],
    ) -> bool:
        """
        Shallow-merge `patch` into a row's form data.

        Keys may be field names or their camelCase aliases. Returns False
        for an unknown or deleted row, a key the form model does not have,
        or a value it cannot hold.
        """
        index = self._index_of(entry_id)
        if index is None or self._entries[index].is_deleted:
            return False

        if isinstance(patch, BaseModel):
            patch = patch.model_dump(exclude_unset=True)

        entry = self._entries[index]
        fields = self._field_names()
        unknown = [key for key in patch if key not in fields]
        if unknown:
            logger.warning(
                "update_rejected",
                collection=self._schema.collection,
                entry_id=str(entry.id),
                unknown_fields=sorted(unknown),
            )
            return False

        patch = {fields[key]: value for key, value in patch.items()}
        form = self._coerce_form(
            {**entry.form_data.model_dump(), **patch},
            "update_rejected",
            entry_id=str(entry.id),
        )
        if form is None:
            return False

        self._entries[index] = entry.model_copy(update={"form_data": form})
        self._audit.log_entry_updated(
            collection=self._schema.collection,
            entry_id=str(entry.id),
            fields=sorted(patch),
            correlation_id=self._correlation_id,
        )
        self._notify()
        return True

    def remove(self, entry_id: Union[EntryId, str]) -> bool:
        """
        Remove a row.

        A new row disappears outright; a persisted row is marked deleted so
        the next save deletes it on the server. The last active row can
        never be removed.
        """
        index = self._index_of(entry_id)
        if index is None or self._entries[index].is_deleted:
            return False

        entry = self._entries[index]
        if not self.can_remove():
            self._audit.log_removal_blocked(
                collection=self._schema.collection,
                entry_id=str(entry.id),
                correlation_id=self._correlation_id,
            )
            return False

        if entry.is_new:
            del self._entries[index]
        else:
            self._entries[index] = entry.model_copy(update={"is_deleted": True})

        self._audit.log_entry_removed(
            collection=self._schema.collection,
            entry_id=str(entry.id),
            was_new=entry.is_new,
            correlation_id=self._correlation_id,
        )
        self._notify()
        return True

    def replace_entries(self, entries: Iterable[EditableEntry]) -> None:
        """Swap in a whole new entry list (used to commit a reconciled save)."""
        self._entries = list(entries)
        self._notify()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def active_entries(self) -> list[EditableEntry]:
        return [entry for entry in self._entries if not entry.is_deleted]

    def get_entry(self, entry_id: Union[EntryId, str]) -> Optional[EditableEntry]:
        index = self._index_of(entry_id)
        if index is None or self._entries[index].is_deleted:
            return None
        return self._entries[index]

    def can_remove(self) -> bool:
        return len(self.active_entries()) > 1

    def has_unsaved_changes(self) -> bool:
        return any(entry_has_changes(self._schema, entry) for entry in self._entries)

    def validate(self) -> ValidationResult:
        return self._validator.validate(self._entries)

    def is_valid(self) -> bool:
        return self.validate().is_valid

    def pending_operations(self) -> OperationBatch:
        return compute_operations(self._schema, self._entries)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener(collection)` after every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        # Runs after the change is committed; listener errors are logged only
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception(
                    "listener_failed",
                    collection=self._schema.collection,
                    listener=repr(listener),
                )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _field_names(self) -> dict[str, str]:
        """Accepted patch keys (names and aliases) mapped to field names."""
        names = {}
        for name, field in self._schema.form_model.model_fields.items():
            names[name] = name
            if field.alias:
                names[field.alias] = name
        return names

    def _coerce_form(self, data: Any, event: str, **context: Any) -> Optional[FormT]:
        """The form model built from `data`, or None (logged) when it cannot be."""
        try:
            return self._schema.new_form(data)
        except ValidationError as e:
            logger.warning(
                event,
                collection=self._schema.collection,
                error=str(e),
                **context,
            )
            return None

    def _index_of(self, entry_id: Union[EntryId, str]) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id or str(entry.id) == entry_id:
                return index
        return None
