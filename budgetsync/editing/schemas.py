"""
Entry Schemas

DESIGN DECISION: The working copy is generic; everything record-specific
lives in a schema object. A schema knows:
1. How a server record is turned into editable form data
2. Which fields count when deciding whether a row was modified
3. How form data becomes a create or update payload item

The template-line editor and the transaction editor are the same engine
with different schemas.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel

from budgetsync.config import get_settings
from budgetsync.models.budget import (
    LineFormData,
    TemplateLine,
    TemplateLineCreate,
    TemplateLineUpdate,
    Transaction,
    TransactionCreate,
    TransactionFormData,
    TransactionRecurrence,
    TransactionUpdate,
)


FormT = TypeVar("FormT", bound=BaseModel)
RecordT = TypeVar("RecordT", bound=BaseModel)


class EntrySchema(ABC, Generic[FormT, RecordT]):
    """Binds the generic working copy to one record type."""

    # Path segment of the bulk-operations endpoint and audit collection name
    collection: str
    form_model: type[BaseModel]
    record_model: type[BaseModel]
    tracked_fields: tuple[str, ...]
    require_positive_amount: bool = False

    def new_form(self, data: Union[FormT, dict[str, Any], None] = None) -> FormT:
        """Coerce user input into this schema's form model."""
        if data is None:
            return self.form_model()
        if isinstance(data, self.form_model):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump()
        return self.form_model.model_validate(data)

    @abstractmethod
    def form_from_record(self, record: RecordT) -> FormT:
        """Editable view of a persisted record."""
        pass

    def changed_fields(self, form: FormT, original: RecordT) -> list[str]:
        reference = self.form_from_record(original)
        return [
            name for name in self.tracked_fields
            if getattr(form, name) != getattr(reference, name)
        ]

    def is_modified(self, form: FormT, original: RecordT) -> bool:
        return bool(self.changed_fields(form, original))

    @abstractmethod
    def to_create(self, form: FormT) -> BaseModel:
        pass

    @abstractmethod
    def to_update(self, form: FormT, original: RecordT) -> BaseModel:
        pass


class TemplateLineSchema(EntrySchema[LineFormData, TemplateLine]):
    """
    Lines of a budget template.

    The editor only exposes name, amount and kind. Recurrence and
    description are not editable but the update endpoint requires them,
    so they are carried through from the original record.
    """

    collection = "budget-templates"
    form_model = LineFormData
    record_model = TemplateLine
    tracked_fields = ("name", "amount", "kind")
    require_positive_amount = False

    def __init__(self, default_recurrence: Optional[TransactionRecurrence] = None):
        if default_recurrence is None:
            default_recurrence = TransactionRecurrence(
                get_settings().editor.default_recurrence
            )
        self.default_recurrence = default_recurrence

    def form_from_record(self, record: TemplateLine) -> LineFormData:
        return LineFormData(
            name=record.name,
            amount=record.amount,
            kind=record.kind,
        )

    def to_create(self, form: LineFormData) -> TemplateLineCreate:
        return TemplateLineCreate(
            name=form.name,
            amount=form.amount,
            kind=form.kind,
            recurrence=self.default_recurrence,
            description="",
        )

    def to_update(self, form: LineFormData, original: TemplateLine) -> TemplateLineUpdate:
        return TemplateLineUpdate(
            id=original.id,
            name=form.name,
            amount=form.amount,
            kind=form.kind,
            recurrence=original.recurrence,
            description=original.description,
        )


class TransactionSchema(EntrySchema[TransactionFormData, Transaction]):
    """Transactions of a budget. A transaction must move a positive amount."""

    collection = "budgets"
    form_model = TransactionFormData
    record_model = Transaction
    tracked_fields = ("name", "amount", "kind", "transaction_date", "line_id")
    require_positive_amount = True

    def form_from_record(self, record: Transaction) -> TransactionFormData:
        return TransactionFormData(
            name=record.name,
            amount=record.amount,
            kind=record.kind,
            transaction_date=record.transaction_date,
            line_id=record.line_id,
        )

    def to_create(self, form: TransactionFormData) -> TransactionCreate:
        return TransactionCreate(
            name=form.name,
            amount=form.amount,
            kind=form.kind,
            transaction_date=form.transaction_date,
            line_id=form.line_id,
        )

    def to_update(
        self,
        form: TransactionFormData,
        original: Transaction,
    ) -> TransactionUpdate:
        return TransactionUpdate(
            id=original.id,
            name=form.name,
            amount=form.amount,
            kind=form.kind,
            transaction_date=form.transaction_date,
            line_id=form.line_id,
        )
