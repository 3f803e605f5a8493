"""
Abstract Audit Storage Interface

DESIGN DECISION: We define an abstract interface for where audit events
end up. This allows us to:
1. Keep events in memory for tests and short-lived sessions
2. Ship them to a real sink later without touching the editing engine
3. Keep business logic decoupled from storage implementation

Audit writes happen inside synchronous mutations (add/update/remove),
so the interface is synchronous.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from budgetsync.models.audit import AuditEvent


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the backend rejects the write
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events of one editing session in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass
