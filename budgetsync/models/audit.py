"""
Audit Models for Budget Sync

Every significant action on a working copy is logged for audit purposes.
This provides:
1. Traceability of what the user changed before a save
2. Debugging information when a save fails
3. Ability to reconstruct an editing session

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of an editing session has its own event type.
    """
    # Working copy lifecycle
    COLLECTION_INITIALIZED = "collection_initialized"

    # User edits
    ENTRY_ADDED = "entry_added"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_REMOVED = "entry_removed"
    REMOVAL_BLOCKED = "removal_blocked"

    # Save pipeline
    SAVE_SKIPPED = "save_skipped"
    SAVE_REJECTED = "save_rejected"
    VALIDATION_FAILED = "validation_failed"
    SAVE_STARTED = "save_started"
    SAVE_SUCCEEDED = "save_succeeded"
    SAVE_FAILED = "save_failed"
    SAVE_CANCELLED = "save_cancelled"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which collection (e.g. 'template_lines') and which row
    collection: Optional[str] = None
    entry_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Groups every event of one editing session"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "entry_id": self.entry_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added("template_lines", "local:1", correlation_id)
    """

    @staticmethod
    def collection_initialized(
        collection: str,
        entry_count: int,
        new_count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_INITIALIZED,
            collection=collection,
            correlation_id=correlation_id,
            description=f"Working copy loaded with {entry_count} rows",
            details={
                "entry_count": entry_count,
                "new_count": new_count,
            },
        )

    @staticmethod
    def entry_added(
        collection: str,
        entry_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            collection=collection,
            entry_id=entry_id,
            correlation_id=correlation_id,
            description="Row added",
            is_user_action=True,
        )

    @staticmethod
    def entry_updated(
        collection: str,
        entry_id: str,
        fields: list[str],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            collection=collection,
            entry_id=entry_id,
            correlation_id=correlation_id,
            description=f"Row updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def entry_removed(
        collection: str,
        entry_id: str,
        was_new: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REMOVED,
            collection=collection,
            entry_id=entry_id,
            correlation_id=correlation_id,
            description=(
                "Unsaved row discarded" if was_new else "Row marked for deletion"
            ),
            details={"was_new": was_new},
            is_user_action=True,
        )

    @staticmethod
    def removal_blocked(
        collection: str,
        entry_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOVAL_BLOCKED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            entry_id=entry_id,
            correlation_id=correlation_id,
            description="Removal blocked: at least one row must remain",
            is_user_action=True,
        )

    @staticmethod
    def save_skipped(
        collection: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_SKIPPED,
            severity=AuditSeverity.DEBUG,
            collection=collection,
            correlation_id=correlation_id,
            description="Save skipped: no unsaved changes",
        )

    @staticmethod
    def save_rejected(
        collection: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_REJECTED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            correlation_id=correlation_id,
            description="Save rejected: another save is in progress",
        )

    @staticmethod
    def validation_failed(
        collection: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def save_started(
        collection: str,
        create_count: int,
        update_count: int,
        delete_count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_STARTED,
            collection=collection,
            correlation_id=correlation_id,
            description=(
                f"Bulk save started: {create_count} create, "
                f"{update_count} update, {delete_count} delete"
            ),
            details={
                "create": create_count,
                "update": update_count,
                "delete": delete_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def save_succeeded(
        collection: str,
        created: int,
        updated: int,
        deleted: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_SUCCEEDED,
            collection=collection,
            correlation_id=correlation_id,
            description="Bulk save succeeded",
            details={
                "created": created,
                "updated": updated,
                "deleted": deleted,
            },
        )

    @staticmethod
    def save_failed(
        collection: str,
        error_message: str,
        error_type: str,
        correlation_id: Optional[UUID],
        reason: Optional[str] = None,
    ) -> AuditEvent:
        details = {"error_type": error_type}
        if reason:
            details["reason"] = reason
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            correlation_id=correlation_id,
            description="Bulk save failed, local edits kept",
            error_message=error_message,
            details=details,
        )

    @staticmethod
    def save_cancelled(
        collection: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_CANCELLED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            correlation_id=correlation_id,
            description="Bulk save cancelled, local edits kept",
        )
