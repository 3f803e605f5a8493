"""
Audit Logger

DESIGN DECISION: Every significant action on a working copy is logged.
This provides:
1. Traceability of an editing session
2. Debugging capability when a save fails
3. A history the user can be shown

The audit logger:
- Is synchronous, because mutations are synchronous
- Gracefully handles failures (a broken audit sink never breaks editing)
- Supports correlation IDs to trace one editing session
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budgetsync.config import get_settings
from budgetsync.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from budgetsync.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Send structlog output to stderr at the configured level.

    Uses AppSettings.log_level when no level is given.
    """
    level_name = level or get_settings().app.log_level
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name.upper()),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("budgetsync.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_collection_initialized(
        self,
        collection: str,
        entry_count: int,
        new_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.collection_initialized(
            collection=collection,
            entry_count=entry_count,
            new_count=new_count,
            correlation_id=correlation_id,
        ))

    def log_entry_added(
        self,
        collection: str,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entry_added(
            collection=collection,
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    def log_entry_updated(
        self,
        collection: str,
        entry_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entry_updated(
            collection=collection,
            entry_id=entry_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    def log_entry_removed(
        self,
        collection: str,
        entry_id: str,
        was_new: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entry_removed(
            collection=collection,
            entry_id=entry_id,
            was_new=was_new,
            correlation_id=correlation_id,
        ))

    def log_removal_blocked(
        self,
        collection: str,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.removal_blocked(
            collection=collection,
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    def log_save_skipped(
        self,
        collection: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_skipped(
            collection=collection,
            correlation_id=correlation_id,
        ))

    def log_save_rejected(
        self,
        collection: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_rejected(
            collection=collection,
            correlation_id=correlation_id,
        ))

    def log_validation_failed(
        self,
        collection: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(
            collection=collection,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_save_started(
        self,
        collection: str,
        create_count: int,
        update_count: int,
        delete_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_started(
            collection=collection,
            create_count=create_count,
            update_count=update_count,
            delete_count=delete_count,
            correlation_id=correlation_id,
        ))

    def log_save_succeeded(
        self,
        collection: str,
        created: int,
        updated: int,
        deleted: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_succeeded(
            collection=collection,
            created=created,
            updated=updated,
            deleted=deleted,
            correlation_id=correlation_id,
        ))

    def log_save_failed(
        self,
        collection: str,
        error_message: str,
        error_type: str,
        correlation_id: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_failed(
            collection=collection,
            error_message=error_message,
            error_type=error_type,
            correlation_id=correlation_id,
            reason=reason,
        ))

    def log_save_cancelled(
        self,
        collection: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_cancelled(
            collection=collection,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this when an editing session opens and pass it to every
    component of that session.
    """
    return uuid4()
