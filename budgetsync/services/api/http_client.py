"""
HTTP Bulk Operations Client

Posts an OperationBatch to

    POST {base_url}/{collection}/{owner_id}/lines/bulk-operations

and unwraps the `{"data": {...}}` envelope into a BulkOperationsResult.

Retries:
- transport errors (connection refused, timeouts)
- 5xx responses and 429
Everything else (4xx, malformed payloads) fails immediately.
"""

from typing import Optional

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from budgetsync.config import ApiSettings, get_settings
from budgetsync.models.budget import ApiModel, BulkOperationsResult
from budgetsync.models.editing import OperationBatch
from budgetsync.services.api.interface import (
    ApiConnectionError,
    ApiResponseError,
    BulkOperationsSubmitter,
    InvalidResponseError,
)


logger = structlog.get_logger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ApiConnectionError):
        return True
    if isinstance(exc, ApiResponseError):
        return exc.is_retryable
    return False


class HttpBulkOperationsClient(BulkOperationsSubmitter):
    """
    Bulk-operations submitter backed by httpx.

    One client per editing session: it is bound to a collection path
    (e.g. "budget-templates"), an owner id and the record model that
    the response is parsed into.
    """

    def __init__(
        self,
        collection: str,
        owner_id: str,
        record_model: type[ApiModel],
        settings: Optional[ApiSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_multiplier: float = 1.0,
    ):
        """
        Args:
            collection: First path segment of the endpoint
            owner_id: Template or budget the lines belong to
            record_model: Model of the records in the response
            settings: API settings. Loaded from the environment if None.
            transport: httpx transport override (tests use MockTransport)
            backoff_multiplier: Scale of the exponential backoff between
                attempts; 0 disables waiting.
        """
        self._settings = settings or get_settings().api
        self._collection = collection
        self._owner_id = owner_id
        self._record_model = record_model
        self._transport = transport
        self._backoff_multiplier = backoff_multiplier

    @property
    def url(self) -> str:
        return (
            f"{self._settings.base_url}/{self._collection}/"
            f"{self._owner_id}/lines/bulk-operations"
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._settings.access_token:
            headers["Authorization"] = f"Bearer {self._settings.access_token}"
        return headers

    async def submit(self, batch: OperationBatch) -> BulkOperationsResult:
        """Send the batch, retrying transient failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(
                multiplier=self._backoff_multiplier,
                min=0,
                max=10 * self._backoff_multiplier,
            ),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                response = await self._post(batch, attempt_number)

        return self._parse(response)

    async def _post(self, batch: OperationBatch, attempt_number: int) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.url,
                    json=batch.to_payload(),
                    headers=self._headers(),
                )
        except httpx.RequestError as e:
            logger.warning(
                "bulk_operations_transport_error",
                url=self.url,
                attempt=attempt_number,
                error=str(e),
            )
            raise ApiConnectionError(f"Could not reach {self.url}: {e}") from e

        if response.is_error:
            logger.warning(
                "bulk_operations_http_error",
                url=self.url,
                attempt=attempt_number,
                status_code=response.status_code,
            )
            raise ApiResponseError(
                self._error_message(response),
                status_code=response.status_code,
            )

        logger.info(
            "bulk_operations_sent",
            url=self.url,
            attempt=attempt_number,
            status_code=response.status_code,
            operations=batch.operation_count,
        )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the server's own message over the status line."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if isinstance(message, str) and message:
                return message
        return f"Bulk operations failed with HTTP {response.status_code}"

    def _parse(self, response: httpx.Response) -> BulkOperationsResult:
        try:
            body = response.json()
        except ValueError as e:
            raise self._invalid("Response is not JSON") from e

        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            raise self._invalid("Response has no 'data' object")

        try:
            return BulkOperationsResult[self._record_model].model_validate(body["data"])
        except ValidationError as e:
            raise self._invalid(f"Malformed bulk operations result: {e}") from e

    def _invalid(self, reason: str) -> InvalidResponseError:
        logger.warning("bulk_operations_invalid_response", url=self.url, reason=reason)
        return InvalidResponseError(reason)
