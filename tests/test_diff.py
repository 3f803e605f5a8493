"""Tests for deriving the operation batch from a working copy."""

from decimal import Decimal

from budgetsync.editing import (
    EditableCollection,
    TemplateLineSchema,
    TransactionSchema,
    compute_save_plan,
)
from budgetsync.models.budget import (
    TemplateLineCreate,
    TemplateLineUpdate,
    TransactionCreate,
    TransactionRecurrence,
    TransactionUpdate,
)

from factories import make_template_line, make_transaction


class TestOperationBatch:
    """Tests for create/update/delete derivation."""

    def test_unchanged_collection_produces_empty_batch(self, template_collection):
        batch = template_collection.pending_operations()
        assert batch.is_empty
        assert batch.operation_count == 0

    def test_each_kind_of_change_lands_in_one_list(self, template_collection):
        template_collection.update("a", {"amount": 1300})
        template_collection.remove("b")
        template_collection.add({"name": "Gym", "amount": 40})

        batch = template_collection.pending_operations()

        assert [c.name for c in batch.create] == ["Gym"]
        assert [u.id for u in batch.update] == ["a"]
        assert batch.delete == ["b"]

    def test_create_fills_server_defaults(self, template_collection):
        template_collection.add({"name": "Gym", "amount": 40})
        created = template_collection.pending_operations().create[0]
        assert isinstance(created, TemplateLineCreate)
        assert created.recurrence == TransactionRecurrence.FIXED
        assert created.description == ""

    def test_update_carries_immutable_fields_from_original(self, audit_logger):
        collection = EditableCollection(TemplateLineSchema(), audit_logger=audit_logger)
        collection.initialize_from_records([
            make_template_line(
                id="a",
                recurrence=TransactionRecurrence.ONE_OFF,
                description="Yearly insurance",
            ),
            make_template_line(id="b"),
        ])
        collection.update("a", {"amount": 900})

        update = collection.pending_operations().update[0]

        assert isinstance(update, TemplateLineUpdate)
        assert update.recurrence == TransactionRecurrence.ONE_OFF
        assert update.description == "Yearly insurance"
        assert update.amount == Decimal("900")

    def test_removed_new_row_never_reaches_batch(self, template_collection):
        entry_id = template_collection.add({"name": "Gym", "amount": 40})
        template_collection.remove(entry_id)
        assert template_collection.pending_operations().is_empty

    def test_edit_reverted_produces_no_update(self, template_collection):
        template_collection.update("a", {"name": "Loyer"})
        template_collection.update("a", {"name": "Rent"})
        assert template_collection.pending_operations().update == []

    def test_transaction_schema_tracks_line_allocation(self, transaction_collection):
        transaction_collection.update("t1", {"line_id": "line-9"})
        update = transaction_collection.pending_operations().update[0]
        assert isinstance(update, TransactionUpdate)
        assert update.line_id == "line-9"

    def test_transaction_create(self, transaction_collection):
        transaction_collection.add({"name": "Cinema", "amount": 12, "transaction_date": "2024-02-01"})
        created = transaction_collection.pending_operations().create[0]
        assert isinstance(created, TransactionCreate)
        assert created.transaction_date == "2024-02-01"


class TestPayload:
    """Tests for the bulk-operations request body."""

    def test_payload_is_camel_case_with_numeric_amounts(self, transaction_collection):
        transaction_collection.update("t1", {"amount": "80.5", "line_id": "line-1"})
        payload = transaction_collection.pending_operations().to_payload()

        assert payload["update"] == [{
            "name": "Groceries",
            "amount": 80.5,
            "kind": "expense",
            "transactionDate": "2024-01-10",
            "lineId": "line-1",
            "id": "t1",
        }]
        assert payload["create"] == []
        assert payload["delete"] == []
        assert "propagateToBudgets" not in payload

    def test_propagation_flag_included_when_set(self, template_collection):
        template_collection.update("a", {"amount": 1300})
        plan = compute_save_plan(
            template_collection.schema,
            template_collection.entries,
            propagate_to_budgets=True,
        )
        payload = plan.batch.to_payload()
        assert payload["propagateToBudgets"] is True
        assert payload["update"][0]["amount"] == 1300


class TestSavePlan:
    """Tests for the bookkeeping kept alongside the batch."""

    def test_plan_records_entry_ids_and_sent_forms(self, template_collection):
        template_collection.update("a", {"amount": 1300})
        new_id = template_collection.add({"name": "Gym", "amount": 40})
        template_collection.remove("b")

        plan = compute_save_plan(template_collection.schema, template_collection.entries)

        assert [op.entry_id for op in plan.created] == [new_id]
        assert plan.created[0].form_data.name == "Gym"
        assert [op.persisted_id for op in plan.updated] == ["a"]
        assert [op.persisted_id for op in plan.deleted] == ["b"]

    def test_schemas_disagree_on_positive_amounts(self):
        assert not TemplateLineSchema(TransactionRecurrence.FIXED).require_positive_amount
        assert TransactionSchema().require_positive_amount

    def test_changed_fields(self):
        schema = TransactionSchema()
        original = make_transaction(id="t1", amount=80)
        form = schema.form_from_record(original).model_copy(update={"amount": Decimal("90")})
        assert schema.changed_fields(form, original) == ["amount"]
