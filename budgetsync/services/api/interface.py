"""
Bulk Operations Submitter Interface

DESIGN DECISION: The editing engine never talks HTTP.
It hands an OperationBatch to a submitter and gets a BulkOperationsResult
back. This allows us to:
1. Use the real HTTP client in the application
2. Use an in-memory backend in tests and local runs
3. Keep transport concerns (status codes, retries, auth) out of the engine

Submitters raise SubmissionError subclasses; the reconciliation engine
turns them into failed SaveResults.
"""

from abc import ABC, abstractmethod
from typing import Optional

from budgetsync.models.budget import BulkOperationsResult
from budgetsync.models.editing import OperationBatch


class BulkOperationsSubmitter(ABC):
    """Sends one operation batch per save."""

    @abstractmethod
    async def submit(self, batch: OperationBatch) -> BulkOperationsResult:
        """
        Apply a batch on the server.

        Returns:
            The server's view of what was created, updated and deleted.
            `created` is in the order of `batch.create`.

        Raises:
            SubmissionError: If the batch could not be applied
        """
        pass


class SubmissionError(Exception):
    """Base exception for bulk submission failures."""
    pass


class ApiConnectionError(SubmissionError):
    """The request never got a response (DNS, refused, timeout)."""
    pass


class ApiResponseError(SubmissionError):
    """The server answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        return self.status_code is not None and (
            self.status_code >= 500 or self.status_code == 429
        )


class InvalidResponseError(SubmissionError):
    """
    The server answered, but not with the bulk-operations contract.

    The message is fixed because it is shown to the user; what was wrong
    with the payload is kept in `reason` for the logs.
    """

    MESSAGE = "The server returned an unexpected response"

    def __init__(self, reason: str = ""):
        super().__init__(self.MESSAGE)
        self.reason = reason
