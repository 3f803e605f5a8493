"""
In-Memory Audit Storage

Keeps audit events for the lifetime of the process. Used by tests and
by sessions that only need a local trail.
"""

from typing import Optional
from uuid import UUID

from budgetsync.models.audit import AuditEvent
from budgetsync.services.storage.interface import AuditStorageInterface, StorageError


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events with an optional capacity."""

    def __init__(self, max_events: Optional[int] = None):
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    def append_event(self, event: AuditEvent) -> bool:
        if self._max_events is not None and len(self._events) >= self._max_events:
            raise StorageError(
                f"Audit storage is full ({self._max_events} events)"
            )
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def __len__(self) -> int:
        return len(self._events)
