"""Shared fixtures."""

import pytest

from budgetsync.audit import AuditLogger
from budgetsync.config import EditorSettings, get_settings
from budgetsync.editing import EditableCollection, TemplateLineSchema, TransactionSchema
from budgetsync.models.budget import TemplateLine, TransactionRecurrence
from budgetsync.services.storage import InMemoryAuditStorage

from factories import make_template_line, make_transaction


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def editor_settings() -> EditorSettings:
    return EditorSettings()


@pytest.fixture
def template_lines() -> list[TemplateLine]:
    """Row A (1200 expense) and row B (5000 income)."""
    return [
        make_template_line(id="a", name="Rent", amount=1200, kind="expense"),
        make_template_line(id="b", name="Salary", amount=5000, kind="income"),
    ]


@pytest.fixture
def template_collection(template_lines, audit_logger) -> EditableCollection:
    collection = EditableCollection(
        TemplateLineSchema(TransactionRecurrence.FIXED),
        audit_logger=audit_logger,
    )
    collection.initialize_from_records(template_lines)
    return collection


@pytest.fixture
def transaction_collection(audit_logger) -> EditableCollection:
    collection = EditableCollection(TransactionSchema(), audit_logger=audit_logger)
    collection.initialize_from_records([
        make_transaction(id="t1", name="Groceries", amount=80),
        make_transaction(id="t2", name="Fuel", amount=60),
    ])
    return collection
