"""
REST Storage Implementation

Talks to the income HTTP API (see income_matrix.api) with JSON bodies and
the {"success": true, "data": ...} / {"success": false, "error": ...}
envelope.

Transport failures (connection refused, timeouts) are retried with
exponential backoff. HTTP error responses are never retried; they are
mapped back onto the error kinds the server reported.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from income_matrix.config import RestApiSettings, get_settings
from income_matrix.core.errors import (
    AdapterError,
    ErrorCode,
    IncomeMatrixError,
    NotFoundError,
    ValidationError,
    adapter_operation,
)
from income_matrix.core.grid import IncomeGrid
from income_matrix.models.category import Category, YearMatrix
from income_matrix.services.storage.interface import IncomeStorageInterface

logger = structlog.get_logger(__name__)


def _error_from_response(response: httpx.Response) -> IncomeMatrixError:
    """Rebuild the server-side error kind from an error envelope."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("error") or response.reason_phrase or "Request failed"
    details = body.get("details")
    try:
        code = ErrorCode(body.get("code"))
    except ValueError:
        code = None

    if response.status_code == 404:
        return NotFoundError(message, code=code, details=details)
    if 400 <= response.status_code < 500:
        return ValidationError(message, code=code, details=details)
    return AdapterError(
        f"HTTP {response.status_code}: {message}",
        code=code or ErrorCode.CONNECTION_FAILED,
        details=details,
    )


class RestIncomeStorage(IncomeStorageInterface):
    """
    HTTP client implementation of income storage.

    Args:
        base_url: API root, e.g. "http://127.0.0.1:8000/api/income"
        api_key: Optional bearer token
        client: Pre-built httpx.AsyncClient (tests pass one with a custom transport)
        settings: Timeout and retry policy; defaults to the configured RestApiSettings
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[RestApiSettings] = None,
    ):
        self._settings = settings or get_settings().rest_api
        self._base_url = (base_url or self._settings.base_url).rstrip("/")

        headers = {"Content-Type": "application/json"}
        token = api_key or self._settings.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers

        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "rest_request_retry",
            attempt=retry_state.attempt_number,
            error=str(error) if error else None,
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send one request, unwrap the envelope and return its data."""
        url = f"{self._base_url}{endpoint}"
        client = self._get_client()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.retry_wait_min,
                max=self._settings.retry_wait_max,
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await client.request(
                        method,
                        url,
                        json=body,
                        params=params,
                        headers=self._headers,
                    )
        except httpx.TransportError as e:
            raise AdapterError(
                f"Could not reach income API at {self._base_url}",
                code=ErrorCode.CONNECTION_FAILED,
                cause=e,
            ) from e

        if response.is_error:
            raise _error_from_response(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise AdapterError("Income API returned invalid JSON", code=ErrorCode.CONNECTION_FAILED, cause=e) from e

        if not isinstance(payload, dict) or "success" not in payload:
            raise AdapterError("Income API returned an unexpected payload", code=ErrorCode.CONNECTION_FAILED)
        if not payload["success"]:
            try:
                code = ErrorCode(payload.get("code"))
            except ValueError:
                code = ErrorCode.CONNECTION_FAILED
            raise AdapterError(
                payload.get("error") or "Income API reported a failure",
                code=code,
                details=payload.get("details"),
            )
        return payload.get("data")

    # -------------------------------------------------------------------------
    # IncomeStorageInterface
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """GET /health"""
        try:
            await self._request("GET", "/health")
        except Exception as e:
            raise AdapterError(
                "Could not connect to the income API",
                code=ErrorCode.CONNECTION_FAILED,
                cause=e,
            ) from e

    @adapter_operation(ErrorCode.LOAD_CATEGORIES_FAILED, "Failed to fetch categories")
    async def list_categories(self) -> list[Category]:
        """GET /categories"""
        data = await self._request("GET", "/categories")
        categories = [Category.model_validate(item) for item in data or []]
        return sorted(categories, key=lambda c: c.order)

    @adapter_operation(ErrorCode.CREATE_CATEGORY_FAILED, "Failed to create category")
    async def create_category(self, name: str) -> Category:
        """POST /categories {name}"""
        data = await self._request("POST", "/categories", {"name": name})
        return Category.model_validate(data)

    @adapter_operation(ErrorCode.RENAME_CATEGORY_FAILED, "Failed to rename category")
    async def rename_category(self, category_id: str, name: str) -> None:
        """PATCH /categories/{id} {name}"""
        await self._request("PATCH", f"/categories/{category_id}", {"name": name})

    @adapter_operation(ErrorCode.DELETE_CATEGORY_FAILED, "Failed to delete category")
    async def delete_category(self, category_id: str) -> None:
        """DELETE /categories/{id}"""
        await self._request("DELETE", f"/categories/{category_id}")

    @adapter_operation(ErrorCode.REORDER_CATEGORIES_FAILED, "Failed to reorder categories")
    async def reorder_categories(self, ordered_ids: Sequence[str]) -> None:
        """PATCH /categories/reorder {order}"""
        await self._request("PATCH", "/categories/reorder", {"order": list(ordered_ids)})

    @adapter_operation(ErrorCode.LOAD_MATRIX_FAILED, "Failed to fetch matrix")
    async def get_matrix(self, year: int) -> YearMatrix:
        """GET /matrix?year=YYYY"""
        data = await self._request("GET", "/matrix", params={"year": year})
        return IncomeGrid({year: data or {}}).get_year(year)

    @adapter_operation(ErrorCode.SET_CELL_FAILED, "Failed to update cell")
    async def set_cell(self, year: int, category_id: str, month: int, value: float) -> None:
        """PATCH /matrix {year, categoryId, month, value}"""
        await self._request("PATCH", "/matrix", {
            "year": year,
            "categoryId": category_id,
            "month": month,
            "value": value,
        })

    @adapter_operation(ErrorCode.BULK_SET_ROW_FAILED, "Failed to update row")
    async def bulk_set_row(
        self,
        year: int,
        category_id: str,
        values_by_month: Mapping[int, float],
    ) -> None:
        """POST /matrix/bulk-row {year, categoryId, valuesByMonth}"""
        await self._request("POST", "/matrix/bulk-row", {
            "year": year,
            "categoryId": category_id,
            "valuesByMonth": {str(month): value for month, value in values_by_month.items()},
        })

    @adapter_operation(ErrorCode.RESET_FAILED, "Failed to reset data")
    async def reset(self) -> None:
        """DELETE /reset"""
        await self._request("DELETE", "/reset")
