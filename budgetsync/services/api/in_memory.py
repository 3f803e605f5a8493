"""
In-Memory Bulk Operations Backend

A stand-in for the budget API: keeps records in a dict and applies
batches the way the server does (assigns ids and creation timestamps,
trims names). Used by tests and by local sessions without a server.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from budgetsync.models.budget import ApiModel, BulkOperationsResult
from budgetsync.models.editing import OperationBatch
from budgetsync.services.api.interface import (
    ApiResponseError,
    BulkOperationsSubmitter,
)


class InMemoryBulkOperationsBackend(BulkOperationsSubmitter):
    """Applies batches to an in-process record store."""

    def __init__(
        self,
        record_model: type[ApiModel],
        records: Optional[Iterable[ApiModel]] = None,
    ):
        self._record_model = record_model
        self._records: dict[str, ApiModel] = {}
        self._pending_failure: Optional[Exception] = None
        self.batches: list[OperationBatch] = []

        for record in records or []:
            self._records[record.id] = record

    @property
    def records(self) -> list[ApiModel]:
        return list(self._records.values())

    @property
    def call_count(self) -> int:
        return len(self.batches)

    def get(self, record_id: str) -> Optional[ApiModel]:
        return self._records.get(record_id)

    def fail_next(self, error: Optional[Exception] = None) -> None:
        """Make the next submit raise `error` (a 500 by default)."""
        self._pending_failure = error or ApiResponseError(
            "Internal server error", status_code=500
        )

    async def submit(self, batch: OperationBatch) -> BulkOperationsResult:
        self.batches.append(batch)

        if self._pending_failure is not None:
            error, self._pending_failure = self._pending_failure, None
            raise error

        for item in batch.update:
            if item.id not in self._records:
                raise ApiResponseError(f"Record {item.id} not found", status_code=404)

        now = datetime.now(timezone.utc).isoformat()
        created = []
        for item in batch.create:
            values = item.model_dump()
            values["name"] = values["name"].strip()
            record = self._record_model(id=str(uuid4()), created_at=now, **values)
            self._records[record.id] = record
            created.append(record)

        updated = []
        for item in batch.update:
            current = self._records[item.id]
            values = item.model_dump(exclude={"id"})
            values["name"] = values["name"].strip()
            record = current.model_copy(update=values)
            self._records[record.id] = record
            updated.append(record)

        deleted = []
        for record_id in batch.delete:
            if self._records.pop(record_id, None) is not None:
                deleted.append(record_id)

        return BulkOperationsResult[self._record_model](
            created=created,
            updated=updated,
            deleted=deleted,
        )
