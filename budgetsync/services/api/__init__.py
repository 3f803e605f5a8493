"""
API Services Package

The submitter boundary between the editing engine and the budget API.
"""

from budgetsync.services.api.interface import (
    ApiConnectionError,
    ApiResponseError,
    BulkOperationsSubmitter,
    InvalidResponseError,
    SubmissionError,
)
from budgetsync.services.api.http_client import HttpBulkOperationsClient
from budgetsync.services.api.in_memory import InMemoryBulkOperationsBackend

__all__ = [
    "ApiConnectionError",
    "ApiResponseError",
    "BulkOperationsSubmitter",
    "HttpBulkOperationsClient",
    "InMemoryBulkOperationsBackend",
    "InvalidResponseError",
    "SubmissionError",
]
