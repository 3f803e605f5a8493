"""
Storage Services Package

Provides the audit storage interface and its in-memory implementation.
"""

from budgetsync.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)
from budgetsync.services.storage.memory import InMemoryAuditStorage

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
