"""
Tests for saving a working copy.

Test strategy:
1. Submitters are plain async functions or the in-memory backend
2. No network calls
3. Every failure mode must leave the user's edits in place
"""

import asyncio
from decimal import Decimal

import pytest

from budgetsync.config import EditorSettings
from budgetsync.editing import EditableCollection, ReconciliationEngine, TemplateLineSchema
from budgetsync.models.audit import AuditEventType
from budgetsync.models.budget import (
    BulkOperationsResult,
    TemplateLine,
    Transaction,
    TransactionRecurrence,
)
from budgetsync.models.editing import SaveErrorKind
from budgetsync.services.api import ApiResponseError, InMemoryBulkOperationsBackend

from factories import make_template_line, make_transaction


def _result(created=(), updated=(), deleted=()) -> BulkOperationsResult:
    return BulkOperationsResult[TemplateLine](
        created=list(created),
        updated=list(updated),
        deleted=list(deleted),
    )


class RecordingSubmitter:
    """Async callable that records batches and returns a canned result."""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else _result()
        self.error = error
        self.batches = []

    async def __call__(self, batch):
        self.batches.append(batch)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def engine(template_collection, editor_settings) -> ReconciliationEngine:
    return ReconciliationEngine(template_collection, settings=editor_settings)


@pytest.fixture
def backend(template_lines) -> InMemoryBulkOperationsBackend:
    return InMemoryBulkOperationsBackend(TemplateLine, template_lines)


class TestNoOp:
    """Tests for saving without changes."""

    @pytest.mark.anyio
    async def test_nothing_to_save_never_calls_submitter(self, engine):
        submitter = RecordingSubmitter()
        result = await engine.save(submitter)

        assert result.success
        assert result.updated_lines == []
        assert result.deleted_ids == []
        assert submitter.batches == []

    @pytest.mark.anyio
    async def test_nothing_to_save_is_audited(self, engine, audit_storage):
        await engine.save(RecordingSubmitter())
        types = {e.event_type for e in audit_storage.get_recent_events()}
        assert AuditEventType.SAVE_SKIPPED in types


class TestRoundTrip:
    """Tests for successful saves."""

    @pytest.mark.anyio
    async def test_update_round_trip(self, engine, template_collection, template_lines):
        a = template_lines[0]
        template_collection.update("a", {"amount": 1300})
        submitter = RecordingSubmitter(
            _result(updated=[a.model_copy(update={"amount": Decimal("1300")})])
        )

        result = await engine.save(submitter)

        assert result.success
        assert template_collection.active_entries()[0].form_data.amount == Decimal("1300")
        assert template_collection.active_entries()[0].original.amount == Decimal("1300")
        assert not template_collection.has_unsaved_changes()
        assert [r.id for r in result.updated_lines] == ["a"]
        assert not engine.loading
        assert engine.error is None

    @pytest.mark.anyio
    async def test_only_changed_rows_are_sent(self, engine, template_collection):
        template_collection.update("a", {"amount": 1300})
        submitter = RecordingSubmitter()

        await engine.save(submitter)

        batch = submitter.batches[0]
        assert [u.id for u in batch.update] == ["a"]
        assert batch.create == []
        assert batch.delete == []

    @pytest.mark.anyio
    async def test_created_rows_adopt_server_records(self, engine, template_collection, backend):
        gym = template_collection.add({"name": "  Gym  ", "amount": 40})
        phone = template_collection.add({"name": "Phone", "amount": 30})

        result = await engine.save(backend)

        assert result.success
        gym_entry = template_collection.get_entry(gym)
        phone_entry = template_collection.get_entry(phone)
        assert not gym_entry.is_new
        assert gym_entry.form_data.name == "Gym"
        assert gym_entry.original.recurrence == TransactionRecurrence.FIXED
        assert phone_entry.original.name == "Phone"
        assert gym_entry.original.id != phone_entry.original.id
        assert not template_collection.has_unsaved_changes()

    @pytest.mark.anyio
    async def test_row_identity_is_stable_across_save(self, engine, template_collection, backend):
        gym = template_collection.add({"name": "Gym", "amount": 40})
        await engine.save(backend)
        assert template_collection.update(gym, {"amount": 45})
        assert [u.id for u in template_collection.pending_operations().update] == [
            template_collection.get_entry(gym).original.id
        ]

    @pytest.mark.anyio
    async def test_deleted_rows_are_dropped(self, engine, template_collection, backend):
        template_collection.remove("b")

        result = await engine.save(backend)

        assert result.deleted_ids == ["b"]
        assert [str(e.id) for e in template_collection.entries] == ["a"]
        assert backend.get("b") is None

    @pytest.mark.anyio
    async def test_update_missing_from_response_stays_dirty(self, engine, template_collection):
        template_collection.update("a", {"amount": 1300})

        result = await engine.save(RecordingSubmitter(_result()))

        assert result.success
        assert template_collection.get_entry("a").original.amount == Decimal("1200")
        assert template_collection.has_unsaved_changes()

    @pytest.mark.anyio
    async def test_surplus_created_records_are_ignored(self, engine, template_collection):
        template_collection.add({"name": "Gym", "amount": 40})
        extra = [
            make_template_line(id="new-1", name="Gym", amount=40),
            make_template_line(id="new-2", name="Ghost", amount=1),
        ]

        await engine.save(RecordingSubmitter(_result(created=extra)))

        assert [str(e.id) for e in template_collection.entries][:2] == ["a", "b"]
        assert len(template_collection) == 3
        assert template_collection.entries[2].original.id == "new-1"

    @pytest.mark.anyio
    async def test_accepts_raw_response_body(self, engine, template_collection, template_lines):
        template_collection.update("a", {"amount": 1300})
        body = {"data": {
            "created": [],
            "updated": [{**template_lines[0].to_payload(), "amount": 1300}],
            "deleted": [],
            "propagation": {
                "mode": "propagate",
                "affectedBudgetIds": ["budget-1"],
                "affectedBudgetsCount": 1,
            },
        }}

        result = await engine.save(RecordingSubmitter(body), propagate_to_budgets=True)

        assert result.success
        assert result.propagation.affected_budgets_count == 1
        assert not template_collection.has_unsaved_changes()

    @pytest.mark.anyio
    async def test_success_is_audited(self, engine, template_collection, backend, audit_storage):
        template_collection.update("a", {"amount": 1300})
        await engine.save(backend)
        types = {e.event_type for e in audit_storage.get_recent_events()}
        assert {AuditEventType.SAVE_STARTED, AuditEventType.SAVE_SUCCEEDED} <= types


class TestFailure:
    """Tests for failed saves."""

    @pytest.mark.anyio
    async def test_rollback_on_failure_keeps_edits(self, engine, template_collection):
        template_collection.update("a", {"amount": 1300})
        submitter = RecordingSubmitter(error=ApiResponseError("Server exploded", 500))

        result = await engine.save(submitter)

        assert not result.success
        assert result.error_kind == SaveErrorKind.SUBMISSION
        assert result.error == "Server exploded"
        assert engine.error == "Server exploded"
        assert not engine.loading
        assert template_collection.active_entries()[0].form_data.amount == Decimal("1300")
        assert template_collection.has_unsaved_changes()

    @pytest.mark.anyio
    async def test_retry_after_failure(self, engine, template_collection, backend):
        template_collection.update("a", {"amount": 1300})
        backend.fail_next()

        first = await engine.save(backend)
        second = await engine.save(backend)

        assert not first.success
        assert second.success
        assert engine.error is None
        assert backend.get("a").amount == Decimal("1300")

    @pytest.mark.anyio
    async def test_message_less_failure_uses_fallback(self, engine, template_collection):
        template_collection.update("a", {"amount": 1300})

        result = await engine.save(RecordingSubmitter(error=RuntimeError()))

        assert result.error == "An error occurred while saving"

    @pytest.mark.anyio
    async def test_malformed_response_is_a_submission_error(self, engine, template_collection):
        template_collection.update("a", {"amount": 1300})

        result = await engine.save(RecordingSubmitter({"data": {"created": "nope"}}))

        assert result.error_kind == SaveErrorKind.SUBMISSION
        assert result.error == "The server returned an unexpected response"
        assert engine.error == result.error
        assert template_collection.has_unsaved_changes()

    @pytest.mark.anyio
    async def test_raw_response_values_never_reach_the_user(
        self, engine, template_collection, audit_storage,
    ):
        template_collection.update("a", {"amount": 1300})

        result = await engine.save(RecordingSubmitter("oops-raw-value"))

        assert result.error == "The server returned an unexpected response"
        assert "oops-raw-value" not in result.error
        failed = [
            e for e in audit_storage.get_recent_events()
            if e.event_type == AuditEventType.SAVE_FAILED
        ]
        assert failed[0].details["error_type"] == "InvalidResponseError"
        assert "oops-raw-value" in failed[0].details["reason"]

    @pytest.mark.anyio
    async def test_failure_is_audited(self, engine, template_collection, audit_storage):
        template_collection.update("a", {"amount": 1300})
        await engine.save(RecordingSubmitter(error=ApiResponseError("Nope", 400)))
        failed = [
            e for e in audit_storage.get_recent_events()
            if e.event_type == AuditEventType.SAVE_FAILED
        ]
        assert failed[0].details["error_type"] == "ApiResponseError"

    @pytest.mark.anyio
    async def test_clear_error(self, engine, template_collection):
        template_collection.update("a", {"amount": 1300})
        await engine.save(RecordingSubmitter(error=RuntimeError("boom")))
        engine.clear_error()
        assert engine.error is None


class TestValidationGate:
    """Tests for saves blocked before the network."""

    @pytest.mark.anyio
    async def test_invalid_rows_block_the_save(self, engine, template_collection):
        template_collection.update("a", {"name": " "})
        submitter = RecordingSubmitter()

        result = await engine.save(submitter)

        assert not result.success
        assert result.error_kind == SaveErrorKind.VALIDATION
        assert result.error == "Name is required"
        assert engine.error == "Name is required"
        assert submitter.batches == []

    @pytest.mark.anyio
    async def test_negative_amount_blocks_the_save(self, engine, template_collection):
        template_collection.update("a", {"amount": -5})
        result = await engine.save(RecordingSubmitter())
        assert result.error_kind == SaveErrorKind.VALIDATION


class TestConcurrency:
    """Tests for saves overlapping with other saves and edits."""

    @pytest.mark.anyio
    async def test_second_save_while_loading_is_rejected(self, engine, template_collection, template_lines):
        template_collection.update("a", {"amount": 1300})
        gate = asyncio.Event()
        calls = []

        async def slow(batch):
            calls.append(batch)
            await gate.wait()
            return _result(updated=[template_lines[0].model_copy(update={"amount": Decimal("1300")})])

        first = asyncio.create_task(engine.save(slow))
        await asyncio.sleep(0)
        assert engine.loading

        second = await engine.save(slow)
        gate.set()
        first_result = await first

        assert second.error_kind == SaveErrorKind.CONCURRENT_SAVE
        assert first_result.success
        assert len(calls) == 1
        assert not engine.loading

    @pytest.mark.anyio
    async def test_edit_during_save_is_preserved(self, engine, template_collection, template_lines):
        template_collection.update("a", {"amount": 1300})

        async def submit(batch):
            template_collection.update("a", {"amount": 1400})
            return _result(updated=[template_lines[0].model_copy(update={"amount": Decimal("1300")})])

        result = await engine.save(submit)

        entry = template_collection.get_entry("a")
        assert result.success
        assert entry.form_data.amount == Decimal("1400")
        assert entry.original.amount == Decimal("1300")
        assert template_collection.has_unsaved_changes()

    @pytest.mark.anyio
    async def test_row_added_during_save_stays_new(self, engine, template_collection, backend):
        template_collection.update("a", {"amount": 1300})
        added = []

        async def submit(batch):
            added.append(template_collection.add({"name": "Late", "amount": 5}))
            return await backend.submit(batch)

        await engine.save(submit)

        assert template_collection.get_entry(added[0]).is_new
        assert [c.name for c in template_collection.pending_operations().create] == ["Late"]

    @pytest.mark.anyio
    async def test_new_row_removed_during_save_is_deleted_next_time(
        self, engine, template_collection, backend,
    ):
        gym = template_collection.add({"name": "Gym", "amount": 40})

        async def submit(batch):
            template_collection.remove(gym)
            return await backend.submit(batch)

        await engine.save(submit)

        pending = template_collection.pending_operations()
        assert template_collection.get_entry(gym) is None
        assert len(pending.delete) == 1
        assert backend.get(pending.delete[0]) is not None

        await engine.save(backend)
        assert backend.get(pending.delete[0]) is None
        assert not template_collection.has_unsaved_changes()


class TestTimeoutAndCancellation:
    """Tests for saves that never complete."""

    @pytest.mark.anyio
    async def test_timeout_is_a_submission_error(self, template_collection):
        engine = ReconciliationEngine(
            template_collection,
            settings=EditorSettings(save_timeout_seconds=0.01),
        )
        template_collection.update("a", {"amount": 1300})

        async def hang(batch):
            await asyncio.sleep(5)

        result = await engine.save(hang)

        assert result.error_kind == SaveErrorKind.SUBMISSION
        assert "timed out" in result.error
        assert not engine.loading
        assert template_collection.get_entry("a").form_data.amount == Decimal("1300")

    @pytest.mark.anyio
    async def test_cancellation_clears_loading_and_keeps_edits(
        self, engine, template_collection, audit_storage,
    ):
        template_collection.update("a", {"amount": 1300})
        before = template_collection.entries

        async def hang(batch):
            await asyncio.sleep(5)

        task = asyncio.create_task(engine.save(hang))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert not engine.loading
        assert template_collection.entries == before
        types = {e.event_type for e in audit_storage.get_recent_events()}
        assert AuditEventType.SAVE_CANCELLED in types


class TestTransactions:
    """The same engine drives the transaction editor."""

    @pytest.mark.anyio
    async def test_transaction_round_trip(self, transaction_collection, editor_settings):
        backend = InMemoryBulkOperationsBackend(Transaction, [
            make_transaction(id="t1", name="Groceries", amount=80),
            make_transaction(id="t2", name="Fuel", amount=60),
        ])
        engine = ReconciliationEngine(transaction_collection, settings=editor_settings)
        transaction_collection.update("t2", {"line_id": "line-1"})

        result = await engine.save(backend)

        assert result.success
        assert backend.get("t2").line_id == "line-1"
        assert not transaction_collection.has_unsaved_changes()


def test_default_schema_uses_configured_recurrence(monkeypatch):
    monkeypatch.setenv("BUDGETSYNC_EDITOR_DEFAULT_RECURRENCE", "one_off")
    schema = TemplateLineSchema()
    collection = EditableCollection(schema)
    collection.initialize_from_records([make_template_line(id="a")])
    collection.add({"name": "Gift", "amount": 50})
    assert collection.pending_operations().create[0].recurrence == TransactionRecurrence.ONE_OFF
