"""Tests for audit logging."""

import logging

import pytest

from budgetsync.audit import AuditLogger, configure_logging, create_correlation_id
from budgetsync.models.audit import AuditEventBuilder, AuditEventType
from budgetsync.services.storage import InMemoryAuditStorage, StorageError


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_logs_without_storage(self):
        """A logger without storage only logs locally."""
        logger = AuditLogger()
        event = AuditEventBuilder.entry_added("budgets", "local:1", None)
        assert logger.log(event) is True

    def test_events_reach_storage(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        audit_logger.log_entry_added("budgets", "local:1", correlation_id)
        audit_logger.log_entry_updated("budgets", "t1", ["amount"], correlation_id)

        events = audit_storage.get_events_by_correlation_id(correlation_id)

        assert [e.event_type for e in events] == [
            AuditEventType.ENTRY_ADDED,
            AuditEventType.ENTRY_UPDATED,
        ]
        assert events[1].details == {"fields": ["amount"]}

    def test_storage_failure_does_not_raise(self):
        """A full audit sink must never break editing."""
        storage = InMemoryAuditStorage(max_events=1)
        logger = AuditLogger(storage)

        assert logger.log(AuditEventBuilder.save_skipped("budgets", None)) is True
        assert logger.log(AuditEventBuilder.save_skipped("budgets", None)) is False
        assert len(storage) == 1

    def test_save_failure_is_an_error_event(self, audit_logger, audit_storage):
        audit_logger.log_save_failed("budgets", "boom", "ApiResponseError")
        event = audit_storage.get_recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.SAVE_FAILED
        assert event.error_message == "boom"

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


class TestInMemoryAuditStorage:
    """Tests for the in-memory audit sink."""

    def test_capacity_raises_storage_error(self):
        storage = InMemoryAuditStorage(max_events=0)
        with pytest.raises(StorageError, match="full"):
            storage.append_event(AuditEventBuilder.save_skipped("budgets", None))

    def test_recent_events_limit(self, audit_logger, audit_storage):
        for n in range(5):
            audit_logger.log_entry_added("budgets", f"local:{n}")
        assert len(audit_storage.get_recent_events(limit=3)) == 3


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_explicit_level(self, monkeypatch):
        captured = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: captured.update(kw))
        configure_logging("warning")
        assert captured["level"] == logging.WARNING

    def test_level_from_settings(self, monkeypatch):
        captured = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: captured.update(kw))
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        configure_logging()
        assert captured["level"] == logging.DEBUG
