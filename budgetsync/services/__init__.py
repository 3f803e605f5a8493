"""Services package."""

from budgetsync.services.api import (
    ApiConnectionError,
    ApiResponseError,
    BulkOperationsSubmitter,
    HttpBulkOperationsClient,
    InMemoryBulkOperationsBackend,
    InvalidResponseError,
    SubmissionError,
)
from budgetsync.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)

__all__ = [
    # Bulk operations
    "ApiConnectionError",
    "ApiResponseError",
    "BulkOperationsSubmitter",
    "HttpBulkOperationsClient",
    "InMemoryBulkOperationsBackend",
    "InvalidResponseError",
    "SubmissionError",
    # Audit storage
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
